"""Condition evaluation against the current answers."""

import math
from typing import Any, Mapping, Optional

from formrunner.coercion import to_number, to_text, is_falsy
from formrunner.schemas.form import (
    Condition,
    ConditionRule,
    ConditionLogic,
    ConditionOperator,
    Question,
)


class ConditionService:
    """Evaluates condition trees used for visibility and navigation."""

    @staticmethod
    def evaluate(condition: Condition, answers: Mapping[str, Any]) -> bool:
        """
        Evaluate ``condition`` against ``answers``.

        ``AND`` requires every rule to hold, anything else is treated as ``OR``.
        A condition with no rules is true under ``AND`` and false under ``OR``.
        """
        results = [ConditionService.evaluate_rule(rule, answers) for rule in condition.rules]
        if condition.logic == ConditionLogic.AND.value:
            return all(results)
        return any(results)

    @staticmethod
    def evaluate_rule(rule: ConditionRule, answers: Mapping[str, Any]) -> bool:
        """Evaluate a single rule. Unknown operators evaluate true."""
        value = answers.get(rule.question_id)
        if value is None:
            value = ""
        expected = rule.value
        operator = rule.operator

        if isinstance(value, (list, tuple)):
            return ConditionService._evaluate_many(operator, list(value), expected)
        return ConditionService._evaluate_one(operator, value, expected)

    @staticmethod
    def _evaluate_many(operator: str, values: list, expected: Any) -> bool:
        """Element-wise semantics for multi-value answers."""
        needle = to_text(expected)

        if operator == ConditionOperator.EQUALS:
            return any(_strict_equals(item, expected) for item in values)
        if operator == ConditionOperator.NOT_EQUALS:
            return not any(_strict_equals(item, expected) for item in values)
        if operator == ConditionOperator.CONTAINS:
            return any(needle in to_text(item) for item in values)
        if operator == ConditionOperator.NOT_CONTAINS:
            # No element may contain the needle
            return not any(needle in to_text(item) for item in values)
        if operator == ConditionOperator.IS_EMPTY:
            return len(values) == 0
        if operator == ConditionOperator.IS_NOT_EMPTY:
            return len(values) > 0
        if operator == ConditionOperator.GREATER_THAN:
            return _greater(to_number(values), to_number(expected))
        if operator == ConditionOperator.LESS_THAN:
            return _greater(to_number(expected), to_number(values))
        if operator == ConditionOperator.STARTS_WITH:
            return any(to_text(item).startswith(needle) for item in values)
        if operator == ConditionOperator.ENDS_WITH:
            return any(to_text(item).endswith(needle) for item in values)
        return True

    @staticmethod
    def _evaluate_one(operator: str, value: Any, expected: Any) -> bool:
        """Scalar semantics."""
        if operator == ConditionOperator.EQUALS:
            return _strict_equals(value, expected)
        if operator == ConditionOperator.NOT_EQUALS:
            return not _strict_equals(value, expected)
        if operator == ConditionOperator.CONTAINS:
            return to_text(expected) in to_text(value)
        if operator == ConditionOperator.NOT_CONTAINS:
            return to_text(expected) not in to_text(value)
        if operator == ConditionOperator.IS_EMPTY:
            return is_falsy(value)
        if operator == ConditionOperator.IS_NOT_EMPTY:
            return not is_falsy(value)
        if operator == ConditionOperator.GREATER_THAN:
            return _greater(to_number(value), to_number(expected))
        if operator == ConditionOperator.LESS_THAN:
            return _greater(to_number(expected), to_number(value))
        if operator == ConditionOperator.STARTS_WITH:
            return to_text(value).startswith(to_text(expected))
        if operator == ConditionOperator.ENDS_WITH:
            return to_text(value).endswith(to_text(expected))
        return True

    @staticmethod
    def is_visible(question: Question, answers: Mapping[str, Any]) -> bool:
        """Whether ``question`` is displayed given ``answers``."""
        if question.conditional_display is None:
            return True
        return ConditionService.evaluate(question.conditional_display, answers)

    @staticmethod
    def holds(condition: Optional[Condition], answers: Mapping[str, Any]) -> bool:
        """Evaluate an optional condition; a missing condition always holds."""
        if condition is None:
            return True
        return ConditionService.evaluate(condition, answers)


def _strict_equals(left: Any, right: Any) -> bool:
    """Equality without cross-type coercion (``"1"`` never equals ``1``)."""
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    if isinstance(left, str) != isinstance(right, str):
        return False
    return left == right


def _greater(left: float, right: float) -> bool:
    if math.isnan(left) or math.isnan(right):
        return False
    return left > right
