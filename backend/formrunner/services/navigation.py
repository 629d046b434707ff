"""Navigation resolution between steps."""

import logging
from typing import Any, List, Mapping, Optional, Sequence

from formrunner.models.runtime import NavigationOutcome
from formrunner.schemas.form import ConditionalNavigation, NavigationTargetType, Step
from formrunner.services.condition import ConditionService

logger = logging.getLogger(__name__)


def _index_of(steps: Sequence[Step], step_id: Optional[str]) -> int:
    if not step_id:
        return -1
    for index, step in enumerate(steps):
        if step.id == step_id:
            return index
    return -1


class NavigationService:
    """Service deciding where Continue, Back and conditional rules lead."""

    @staticmethod
    def sorted_rules(step: Step) -> List[ConditionalNavigation]:
        """Rules by descending priority; ties keep their authored order."""
        return sorted(step.conditional_navigation, key=lambda rule: -rule.priority)

    @staticmethod
    def any_rule_matches(step: Step, answers: Mapping[str, Any]) -> bool:
        """Whether any conditional navigation rule of ``step`` currently holds."""
        return any(
            ConditionService.evaluate(rule.condition, answers)
            for rule in step.conditional_navigation
        )

    @staticmethod
    def resolve_target(
        rule: ConditionalNavigation,
        current_index: int,
        steps: Sequence[Step]
    ) -> Optional[NavigationOutcome]:
        """Resolve a rule's target, or ``None`` when the runtime cannot follow it."""
        target = rule.target
        if target.type == NavigationTargetType.SUBMIT:
            return NavigationOutcome.to_submit()
        if target.type == NavigationTargetType.SPECIFIC and target.step_id:
            index = _index_of(steps, target.step_id)
            if index != -1:
                return NavigationOutcome.to_step(index)
            logger.warning("Navigation rule %s targets unknown step %s", rule.id, target.step_id)
            return None
        if target.type == NavigationTargetType.NEXT:
            return NavigationService._bounded(current_index + 1, steps)
        return None

    @staticmethod
    def resolve_by_rules(
        step: Step,
        answers: Mapping[str, Any],
        steps: Sequence[Step],
        current_index: Optional[int] = None
    ) -> Optional[NavigationOutcome]:
        """First resolvable outcome among the matching rules, by priority."""
        if current_index is None:
            current_index = _index_of(steps, step.id)
        for rule in NavigationService.sorted_rules(step):
            if not ConditionService.evaluate(rule.condition, answers):
                continue
            outcome = NavigationService.resolve_target(rule, current_index, steps)
            if outcome is not None:
                logger.debug("Step %s: rule %s matched -> %s", step.id, rule.id, outcome)
                return outcome
        return None

    @staticmethod
    def resolve_next(
        step: Step,
        answers: Mapping[str, Any],
        steps: Sequence[Step],
        current_index: Optional[int] = None
    ) -> NavigationOutcome:
        """
        Decide where Continue leads from ``step``.

        Conditional rules are tried first, then ``default_next_step``, then the
        following step. Running past the last step means submission.
        """
        if current_index is None:
            current_index = _index_of(steps, step.id)

        outcome = NavigationService.resolve_by_rules(step, answers, steps, current_index)
        if outcome is not None:
            return outcome

        default_index = _index_of(steps, step.default_next_step)
        if default_index != -1:
            return NavigationOutcome.to_step(default_index)

        return NavigationService._bounded(current_index + 1, steps)

    @staticmethod
    def resolve_previous(step: Step, steps: Sequence[Step], current_index: Optional[int] = None) -> int:
        """Index Back leads to: ``default_prev_step`` when known, else the previous step."""
        if current_index is None:
            current_index = _index_of(steps, step.id)
        default_index = _index_of(steps, step.default_prev_step)
        if default_index != -1:
            return default_index
        return max(0, current_index - 1)

    @staticmethod
    def _bounded(index: int, steps: Sequence[Step]) -> NavigationOutcome:
        if index >= len(steps):
            return NavigationOutcome.to_submit()
        return NavigationOutcome.to_step(index)
