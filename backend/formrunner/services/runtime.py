"""Step runtime: drives a form preview through its steps."""

import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, List, Optional

from formrunner.coercion import has_answer
from formrunner.config import Settings, get_settings
from formrunner.models.runtime import (
    ActionType,
    ButtonState,
    NavigationOutcome,
    PendingTransition,
    PreviewState,
    RuntimeAction,
    RuntimeStatus,
    TransitionPhase,
    TransitionTrigger,
)
from formrunner.schemas.form import ButtonConfig, Form, Question, Step
from formrunner.services.condition import ConditionService
from formrunner.services.navigation import NavigationService
from formrunner.services.progress import ProgressService
from formrunner.services.scheduler import ManualScheduler, ScheduledTask, Scheduler
from formrunner.services.validation import ValidationService

logger = logging.getLogger(__name__)

SubmitHandler = Callable[[Dict[str, Any]], Any]


class EmptyFormError(ValueError):
    """Raised when a runtime is created for a form without steps."""


def reduce(state: PreviewState, action: RuntimeAction) -> PreviewState:
    """Apply ``action`` to ``state`` and return the new snapshot."""
    if action.type == ActionType.SET_ANSWER:
        answers = dict(state.answers)
        answers[action.field_key] = action.value
        errors = {key: message for key, message in state.errors.items() if key != action.field_key}
        return state.model_copy(update={"answers": answers, "errors": errors})

    if action.type == ActionType.SET_ERRORS:
        return state.model_copy(update={"errors": dict(action.errors or {})})

    if action.type == ActionType.BEGIN_TRANSITION:
        if state.is_busy:
            return state
        transition = action.transition
        status = state.status
        if transition.phase != TransitionPhase.PENDING:
            status = RuntimeStatus.TRANSITIONING
        return state.model_copy(update={"transition": transition, "status": status})

    if action.type == ActionType.ADVANCE_TRANSITION:
        transition = state.transition
        if transition is None:
            return state
        if transition.phase == TransitionPhase.PENDING:
            moved = transition.model_copy(update={"phase": TransitionPhase.FADE_OUT})
            return state.model_copy(update={"transition": moved, "status": RuntimeStatus.TRANSITIONING})
        if transition.phase == TransitionPhase.FADE_OUT:
            moved = transition.model_copy(update={"phase": TransitionPhase.FADE_IN})
            index = state.current_step_index
            if transition.outcome.step_index is not None:
                index = transition.outcome.step_index
            return state.model_copy(update={"transition": moved, "current_step_index": index})
        return state.model_copy(update={"transition": None, "status": RuntimeStatus.VIEWING})

    if action.type == ActionType.CANCEL_TRANSITION:
        if state.transition is None:
            return state
        return state.model_copy(update={"transition": None, "status": RuntimeStatus.VIEWING})

    if action.type == ActionType.BEGIN_SUBMIT:
        if state.status in (RuntimeStatus.SUBMITTING, RuntimeStatus.SUBMITTED):
            return state
        return state.model_copy(update={
            "status": RuntimeStatus.SUBMITTING,
            "transition": None,
            "submit_error": None,
        })

    if action.type == ActionType.SUBMIT_SUCCEEDED:
        if state.status != RuntimeStatus.SUBMITTING:
            return state
        return state.model_copy(update={"status": RuntimeStatus.SUBMITTED})

    if action.type == ActionType.SUBMIT_FAILED:
        if state.status != RuntimeStatus.SUBMITTING:
            return state
        return state.model_copy(update={"status": RuntimeStatus.VIEWING, "submit_error": action.message})

    if action.type == ActionType.RESET:
        return PreviewState(epoch=state.epoch + 1)

    raise ValueError(f"Unknown action type: {action.type}")


class StepRuntime:
    """
    Runtime for one interactive pass through a form.

    All events (answers, button presses, timer callbacks) run to completion
    one at a time. Delays go through a single cancellable scheduled task, and
    every callback is tagged with the state epoch it was created under so a
    reset structurally invalidates anything still pending.
    """

    def __init__(
        self,
        form: Form,
        scheduler: Optional[Scheduler] = None,
        settings: Optional[Settings] = None,
        submit_handler: Optional[SubmitHandler] = None,
        on_change: Optional[Callable[[PreviewState], None]] = None,
    ):
        if not form.steps:
            raise EmptyFormError("Form must contain at least one step")

        self.form = form
        self.scheduler = scheduler or ManualScheduler()
        self.settings = settings or get_settings()
        self.submit_handler = submit_handler
        self.on_change = on_change
        self.state = PreviewState()
        self._task: Optional[ScheduledTask] = None
        self._submission: Optional["asyncio.Future"] = None

        # Resolved once per load: question id -> answer key
        self._field_keys: Dict[str, str] = {}
        for question in form.all_questions():
            self._field_keys[question.id] = question.field_key

    # ------------------------------------------------------------------
    # Read-only views

    @property
    def steps(self) -> List[Step]:
        return self.form.steps

    @property
    def current_step(self) -> Step:
        return self.steps[self.state.current_step_index]

    @property
    def answers(self) -> Dict[str, Any]:
        return dict(self.state.answers)

    @property
    def errors(self) -> Dict[str, str]:
        return dict(self.state.errors)

    @property
    def is_first_step(self) -> bool:
        return self.state.current_step_index == 0

    @property
    def is_last_step(self) -> bool:
        return self.state.current_step_index == len(self.steps) - 1

    @property
    def progress(self) -> float:
        config = self.form.progress_config
        return ProgressService.compute(
            config.mode, self.state.current_step_index, self.steps, self.state.answers, config
        )

    def field_key(self, question_id: str) -> str:
        """Answer key for a question id (or an already-resolved key)."""
        return self._field_keys.get(question_id, question_id)

    def evaluation_answers(self) -> Dict[str, Any]:
        """Answers keyed by field key, plus question-id aliases for custom field names."""
        view = dict(self.state.answers)
        for question_id, key in self._field_keys.items():
            if question_id != key and question_id not in view and key in view:
                view[question_id] = view[key]
        return view

    def visible_questions(self) -> List[Question]:
        view = self.evaluation_answers()
        return [q for q in self.current_step.questions if ConditionService.is_visible(q, view)]

    def back_button(self) -> ButtonState:
        config: ButtonConfig = self.current_step.back_button
        view = self.evaluation_answers()
        visible = (
            config.enabled
            and not self.is_first_step
            and ConditionService.holds(config.show_if, view)
        )
        enabled = not self.state.is_busy and ConditionService.holds(config.enable_if, view)
        return ButtonState(visible=visible, enabled=enabled, label=config.label)

    def continue_button(self) -> ButtonState:
        config: ButtonConfig = self.current_step.continue_button
        view = self.evaluation_answers()
        visible = config.enabled and ConditionService.holds(config.show_if, view)
        submitting = self.state.status == RuntimeStatus.SUBMITTING
        enabled = not submitting and ConditionService.holds(config.enable_if, view)
        if submitting:
            label = "Submitting..."
        elif self.is_last_step:
            label = "Submit"
        else:
            label = config.label
        return ButtonState(visible=visible, enabled=enabled, label=label)

    # ------------------------------------------------------------------
    # Events

    def dispatch(self, action: RuntimeAction) -> PreviewState:
        previous = self.state
        self.state = reduce(previous, action)
        if self.state is not previous:
            if self.on_change is not None:
                self.on_change(self.state)
        return self.state

    def set_answer(self, question_id: str, value: Any) -> None:
        """User input handler: store ``value`` then run auto-navigation checks."""
        if self.state.status in (RuntimeStatus.SUBMITTING, RuntimeStatus.SUBMITTED):
            logger.debug("Ignoring answer for %s while %s", question_id, self.state.status.value)
            return
        key = self.field_key(question_id)
        self.dispatch(RuntimeAction(type=ActionType.SET_ANSWER, field_key=key, value=value))
        self._after_answer_change(value)

    def press_continue(self) -> bool:
        """Continue button handler. Returns ``True`` when navigation started."""
        if self.state.is_busy:
            logger.debug("Continue ignored: runtime busy")
            return False

        step = self.current_step
        view = self.evaluation_answers()
        rule_matched = NavigationService.any_rule_matches(step, view)
        if rule_matched:
            logger.debug("Step %s: conditional navigation matched, skipping validation", step.id)
        elif step.validate_on_continue:
            errors = ValidationService.validate_step(step, view)
            self.dispatch(RuntimeAction(type=ActionType.SET_ERRORS, errors=errors))
            if errors:
                return False

        outcome = NavigationService.resolve_next(step, view, self.steps, self.state.current_step_index)
        return self._navigate(outcome, TransitionTrigger.CONTINUE)

    def press_back(self) -> bool:
        """Back button handler."""
        if self.state.is_busy:
            return False
        index = NavigationService.resolve_previous(
            self.current_step, self.steps, self.state.current_step_index
        )
        if index == self.state.current_step_index:
            return False
        return self._start_transition(NavigationOutcome.to_step(index), TransitionTrigger.BACK)

    def press_enter(self, multiline: bool = False) -> bool:
        """Enter key handler; multi-line inputs keep Enter for newlines."""
        if multiline or not self.current_step.enter_key_advance:
            return False
        return self.press_continue()

    def submit(self) -> None:
        """Begin submission; the handler runs after the simulated delay."""
        if self.state.status in (RuntimeStatus.SUBMITTING, RuntimeStatus.SUBMITTED):
            return
        self._cancel_task()
        self.dispatch(RuntimeAction(type=ActionType.BEGIN_SUBMIT))
        logger.info("Submitting form %s", self.form.id)
        self._schedule(self.settings.submit_delay_ms, self._complete_submission)

    def reset(self) -> None:
        """Back to step 0 with no answers; pending timers never fire."""
        self._cancel_task()
        if self._submission is not None:
            self._submission.cancel()
            self._submission = None
        self.dispatch(RuntimeAction(type=ActionType.RESET))
        logger.debug("Runtime for form %s reset (epoch %d)", self.form.id, self.state.epoch)

    # ------------------------------------------------------------------
    # Internals

    def _after_answer_change(self, value: Any) -> None:
        if self.state.is_busy:
            return
        step = self.current_step
        view = self.evaluation_answers()

        outcome = NavigationService.resolve_by_rules(
            step, view, self.steps, self.state.current_step_index
        )
        if outcome is not None:
            self._schedule_pending(outcome, TransitionTrigger.AUTO_NAVIGATE, self.settings.auto_navigate_delay_ms)
            return

        if step.auto_advance and len(step.questions) == 1 and has_answer(value):
            outcome = NavigationService.resolve_next(step, view, self.steps, self.state.current_step_index)
            self._schedule_pending(outcome, TransitionTrigger.AUTO_ADVANCE, self.settings.auto_advance_delay_ms)

    def _navigate(self, outcome: NavigationOutcome, trigger: TransitionTrigger) -> bool:
        if outcome.submit:
            self.submit()
            return True
        return self._start_transition(outcome, trigger)

    def _start_transition(self, outcome: NavigationOutcome, trigger: TransitionTrigger) -> bool:
        transition = PendingTransition(outcome=outcome, phase=TransitionPhase.FADE_OUT, trigger=trigger)
        before = self.state
        self.dispatch(RuntimeAction(type=ActionType.BEGIN_TRANSITION, transition=transition))
        if self.state is before:
            return False
        logger.debug("Transition (%s) to step %s", trigger.value, outcome.step_index)
        self._schedule(self.settings.transition_out_ms, self._advance_transition)
        return True

    def _schedule_pending(self, outcome: NavigationOutcome, trigger: TransitionTrigger, delay_ms: int) -> None:
        transition = PendingTransition(outcome=outcome, phase=TransitionPhase.PENDING, trigger=trigger)
        before = self.state
        self.dispatch(RuntimeAction(type=ActionType.BEGIN_TRANSITION, transition=transition))
        if self.state is before:
            return
        logger.debug("Scheduled %s to %s", trigger.value, "submit" if outcome.submit else outcome.step_index)
        self._schedule(delay_ms, self._fire_pending)

    def _fire_pending(self) -> None:
        transition = self.state.transition
        if transition is None or transition.phase != TransitionPhase.PENDING:
            return
        if transition.outcome.submit:
            self.dispatch(RuntimeAction(type=ActionType.CANCEL_TRANSITION))
            self.submit()
            return
        self.dispatch(RuntimeAction(type=ActionType.ADVANCE_TRANSITION))
        self._schedule(self.settings.transition_out_ms, self._advance_transition)

    def _advance_transition(self) -> None:
        self.dispatch(RuntimeAction(type=ActionType.ADVANCE_TRANSITION))
        transition = self.state.transition
        if transition is not None and transition.phase == TransitionPhase.FADE_IN:
            self._schedule(self.settings.transition_in_ms, self._advance_transition)

    def _complete_submission(self) -> None:
        answers = self.answers
        if self.submit_handler is None:
            self._finish_submission(True)
            return
        try:
            result = self.submit_handler(answers)
        except Exception:
            logger.exception("Submission handler failed for form %s", self.form.id)
            self._finish_submission(False)
            return
        if inspect.isawaitable(result):
            epoch = self.state.epoch
            future = asyncio.ensure_future(result)
            self._submission = future
            future.add_done_callback(lambda done: self._on_submission_done(done, epoch))
            return
        self._finish_submission(result is None or bool(result))

    def _on_submission_done(self, future: "asyncio.Future", epoch: int) -> None:
        if future is self._submission:
            self._submission = None
        if epoch != self.state.epoch:
            return
        if future.cancelled():
            self._finish_submission(False)
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Submission handler failed for form %s: %s", self.form.id, exc)
            self._finish_submission(False)
            return
        result = future.result()
        self._finish_submission(result is None or bool(result))

    def _finish_submission(self, ok: bool) -> None:
        if ok:
            logger.info("Form %s submitted", self.form.id)
            self.dispatch(RuntimeAction(type=ActionType.SUBMIT_SUCCEEDED))
        else:
            message = self.form.submission_config.error_message
            logger.warning("Form %s submission failed", self.form.id)
            self.dispatch(RuntimeAction(type=ActionType.SUBMIT_FAILED, message=message))

    def _schedule(self, delay_ms: int, callback: Callable[[], None]) -> None:
        self._cancel_task()
        epoch = self.state.epoch

        def run() -> None:
            self._task = None
            if epoch != self.state.epoch:
                logger.debug("Dropping stale timer from epoch %d", epoch)
                return
            callback()

        self._task = self.scheduler.call_later(delay_ms / 1000.0, run)

    def _cancel_task(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
