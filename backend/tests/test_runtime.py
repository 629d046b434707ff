"""Tests for the step runtime state machine."""

from __future__ import annotations

import asyncio

import pytest

from builders import condition, form, nav, question, rule, step
from conftest import TEST_SETTINGS
from formrunner.models.runtime import (
    ActionType,
    NavigationOutcome,
    PendingTransition,
    PreviewState,
    RuntimeAction,
    RuntimeStatus,
    TransitionPhase,
    TransitionTrigger,
)
from formrunner.services.runtime import EmptyFormError, StepRuntime, reduce
from formrunner.services.scheduler import ManualScheduler
from formrunner.services.validation import REQUIRED_MESSAGE


def _three_steps(**first_step):
    return form(
        step("a", [question("name")], **first_step),
        step("b", [question("email", "email")]),
        step("c", [question("notes", "textarea")]),
    )


def test_empty_form_is_rejected() -> None:
    with pytest.raises(EmptyFormError):
        StepRuntime(form())


def test_continue_commits_after_fade_out(make_runtime, scheduler) -> None:
    runtime = make_runtime(_three_steps())

    assert runtime.press_continue() is True
    assert runtime.state.status == RuntimeStatus.TRANSITIONING
    assert runtime.state.current_step_index == 0

    scheduler.advance(0.15)
    assert runtime.state.current_step_index == 1
    assert runtime.state.transition.phase == TransitionPhase.FADE_IN

    scheduler.advance(0.1)
    assert runtime.state.status == RuntimeStatus.VIEWING
    assert runtime.state.transition is None
    assert runtime.current_step.id == "b"


def test_second_continue_during_transition_is_ignored(make_runtime, scheduler) -> None:
    runtime = make_runtime(_three_steps())

    assert runtime.press_continue() is True
    assert runtime.press_continue() is False
    scheduler.run_all()

    assert runtime.state.current_step_index == 1


def test_validation_blocks_continue(make_runtime, scheduler) -> None:
    f = form(step("a", [question("name", validation={"required": True})]), step("b"))
    runtime = make_runtime(f)

    assert runtime.press_continue() is False
    assert runtime.errors == {"name": REQUIRED_MESSAGE}
    assert scheduler.pending == 0

    runtime.set_answer("name", "Ada")
    assert runtime.errors == {}
    assert runtime.press_continue() is True


def test_validation_disabled_on_step(make_runtime, scheduler) -> None:
    f = form(
        step("a", [question("name", validation={"required": True})], validateOnContinue=False),
        step("b"),
    )
    runtime = make_runtime(f)

    assert runtime.press_continue() is True
    scheduler.run_all()
    assert runtime.state.current_step_index == 1


def test_matching_rule_skips_validation(make_runtime, scheduler) -> None:
    f = form(
        step(
            "a",
            [question("name", validation={"required": True}), question("skip")],
            conditionalNavigation=[nav(condition(rule("skip", "is_empty")), "specific", "c")],
        ),
        step("b"),
        step("c"),
    )
    runtime = make_runtime(f)

    assert runtime.press_continue() is True
    assert runtime.errors == {}
    scheduler.run_all()
    assert runtime.current_step.id == "c"


def test_answer_change_triggers_auto_navigation(make_runtime, scheduler) -> None:
    f = form(
        step("a", [question("route", "radio")], conditionalNavigation=[
            nav(condition(rule("route", "equals", "express")), "specific", "c"),
        ]),
        step("b"),
        step("c"),
    )
    runtime = make_runtime(f)

    runtime.set_answer("route", "express")
    transition = runtime.state.transition
    assert transition.phase == TransitionPhase.PENDING
    assert transition.trigger == TransitionTrigger.AUTO_NAVIGATE

    scheduler.advance(0.25)
    assert runtime.state.current_step_index == 0

    scheduler.advance(0.1)
    assert runtime.state.transition.phase == TransitionPhase.FADE_OUT
    assert runtime.state.current_step_index == 0

    scheduler.advance(0.1)
    assert runtime.state.current_step_index == 2

    scheduler.advance(0.1)
    assert runtime.state.status == RuntimeStatus.VIEWING
    assert runtime.state.transition is None


def test_non_matching_answer_does_not_navigate(make_runtime, scheduler) -> None:
    f = form(
        step("a", [question("route", "radio")], conditionalNavigation=[
            nav(condition(rule("route", "equals", "express")), "specific", "c"),
        ]),
        step("b"),
        step("c"),
    )
    runtime = make_runtime(f)

    runtime.set_answer("route", "standard")
    assert runtime.state.transition is None
    assert scheduler.pending == 0


def test_auto_navigation_to_submit(make_runtime, scheduler) -> None:
    f = form(
        step("a", [question("done", "radio")], conditionalNavigation=[
            nav(condition(rule("done", "equals", "yes")), "submit"),
        ]),
        step("b"),
    )
    submitted = []
    runtime = make_runtime(f, submit_handler=submitted.append)

    runtime.set_answer("done", "yes")
    scheduler.advance(0.3)
    assert runtime.state.status == RuntimeStatus.SUBMITTING

    scheduler.advance(1.5)
    assert runtime.state.status == RuntimeStatus.SUBMITTED
    assert submitted == [{"done": "yes"}]


def test_auto_advance_single_question_step(make_runtime, scheduler) -> None:
    f = form(step("a", [question("pick", "radio")], autoAdvance=True), step("b"))
    runtime = make_runtime(f)

    runtime.set_answer("pick", "")
    assert runtime.state.transition is None

    runtime.set_answer("pick", "one")
    assert runtime.state.transition.trigger == TransitionTrigger.AUTO_ADVANCE

    scheduler.advance(0.35)
    assert runtime.state.current_step_index == 0
    scheduler.run_all()
    assert runtime.state.current_step_index == 1


def test_auto_advance_ignores_empty_list_and_multi_question_steps(make_runtime, scheduler) -> None:
    f = form(
        step("a", [question("tags", "checkbox")], autoAdvance=True),
        step("b", [question("x"), question("y")], autoAdvance=True),
        step("c"),
    )
    runtime = make_runtime(f)

    runtime.set_answer("tags", [])
    assert scheduler.pending == 0

    runtime.set_answer("tags", ["t"])
    scheduler.run_all()
    assert runtime.current_step.id == "b"

    runtime.set_answer("x", "value")
    assert scheduler.pending == 0
    assert runtime.current_step.id == "b"


def test_reset_during_auto_advance_delay_cancels_navigation(make_runtime, scheduler) -> None:
    f = form(step("a", [question("pick", "radio")], autoAdvance=True), step("b"))
    runtime = make_runtime(f)

    runtime.set_answer("pick", "one")
    scheduler.advance(0.2)
    runtime.reset()
    scheduler.advance(5)

    assert runtime.state.current_step_index == 0
    assert runtime.answers == {}
    assert runtime.state.transition is None
    assert scheduler.pending == 0


class NonCancellingScheduler(ManualScheduler):
    """Scheduler whose handles ignore cancel(), so late timers still fire."""

    def call_later(self, delay, callback):
        task = super().call_later(delay, callback)
        task.cancel = lambda: None
        return task


def test_stale_timer_after_reset_is_dropped() -> None:
    scheduler = NonCancellingScheduler()
    f = form(step("a", [question("pick", "radio")], autoAdvance=True), step("b"))

    runtime = StepRuntime(f, scheduler=scheduler, settings=TEST_SETTINGS)
    runtime.set_answer("pick", "one")
    runtime.reset()
    scheduler.run_all()

    assert runtime.state.current_step_index == 0
    assert runtime.state.epoch == 1


def test_back_button(make_runtime, scheduler) -> None:
    runtime = make_runtime(_three_steps())

    assert runtime.press_back() is False

    runtime.press_continue()
    scheduler.run_all()
    assert runtime.press_back() is True
    scheduler.run_all()
    assert runtime.state.current_step_index == 0


def test_back_uses_default_previous_step(make_runtime, scheduler) -> None:
    f = form(step("a"), step("b"), step("c", defaultPrevStep="a"), step("d"))
    runtime = make_runtime(f)
    for _ in range(2):
        runtime.press_continue()
        scheduler.run_all()
    assert runtime.current_step.id == "c"

    runtime.press_back()
    scheduler.run_all()
    assert runtime.current_step.id == "a"


def test_enter_key(make_runtime, scheduler) -> None:
    plain = make_runtime(_three_steps())
    assert plain.press_enter() is False

    runtime = make_runtime(_three_steps(enterKeyAdvance=True))
    assert runtime.press_enter(multiline=True) is False
    assert runtime.press_enter() is True


def test_submit_flow(make_runtime, scheduler) -> None:
    received = []

    def handler(answers):
        received.append(answers)
        return True

    f = form(step("only", [question("name")]))
    runtime = make_runtime(f, submit_handler=handler)
    runtime.set_answer("name", "Ada")

    assert runtime.continue_button().label == "Submit"
    assert runtime.press_continue() is True
    assert runtime.state.status == RuntimeStatus.SUBMITTING

    button = runtime.continue_button()
    assert button.enabled is False
    assert button.label == "Submitting..."
    assert runtime.press_continue() is False

    scheduler.advance(1.5)
    assert runtime.state.status == RuntimeStatus.SUBMITTED
    assert received == [{"name": "Ada"}]

    runtime.set_answer("name", "Bob")
    assert runtime.answers == {"name": "Ada"}


@pytest.mark.parametrize("outcome", ["false", "raise"])
def test_submit_failure_returns_to_viewing(make_runtime, scheduler, outcome) -> None:
    def handler(answers):
        if outcome == "raise":
            raise ConnectionError("endpoint down")
        return False

    f = form(step("only"), submissionConfig={"errorMessage": "Could not send"})
    runtime = make_runtime(f, submit_handler=handler)

    runtime.press_continue()
    scheduler.run_all()

    assert runtime.state.status == RuntimeStatus.VIEWING
    assert runtime.state.submit_error == "Could not send"


def test_reset_clears_submission(make_runtime, scheduler) -> None:
    runtime = make_runtime(form(step("only")))
    runtime.press_continue()
    scheduler.run_all()
    assert runtime.state.status == RuntimeStatus.SUBMITTED

    runtime.reset()
    assert runtime.state.status == RuntimeStatus.VIEWING
    assert runtime.state.current_step_index == 0


def test_conditions_see_answers_stored_under_field_names(make_runtime, scheduler) -> None:
    f = form(
        step("a", [question("q1", "radio", fieldName="plan")], conditionalNavigation=[
            nav(condition(rule("q1", "equals", "pro")), "specific", "c"),
        ]),
        step("b"),
        step("c"),
    )
    runtime = make_runtime(f)

    runtime.set_answer("q1", "pro")
    assert runtime.answers == {"plan": "pro"}
    scheduler.run_all()
    assert runtime.current_step.id == "c"


def test_visible_questions_and_buttons(make_runtime, scheduler) -> None:
    f = form(
        step(
            "a",
            [
                question("has_car", "radio"),
                question("plate", "numberplate",
                         conditionalDisplay=condition(rule("has_car", "equals", "yes"))),
            ],
            continueButton={"enabled": True, "label": "Next",
                            "enableIf": condition(rule("has_car", "is_not_empty"))},
        ),
        step("b", backButton={"enabled": False, "label": "Back"}),
    )
    runtime = make_runtime(f)

    assert [q.id for q in runtime.visible_questions()] == ["has_car"]
    assert runtime.back_button().visible is False
    assert runtime.continue_button().enabled is False
    assert runtime.continue_button().label == "Next"

    runtime.set_answer("has_car", "yes")
    assert [q.id for q in runtime.visible_questions()] == ["has_car", "plate"]
    assert runtime.continue_button().enabled is True


def test_progress_follows_current_step(make_runtime, scheduler) -> None:
    runtime = make_runtime(_three_steps())
    assert runtime.progress == pytest.approx(100 / 3)
    runtime.press_continue()
    scheduler.run_all()
    assert runtime.progress == pytest.approx(200 / 3)


def test_on_change_receives_snapshots(make_runtime, scheduler) -> None:
    snapshots = []
    runtime = make_runtime(_three_steps(), on_change=snapshots.append)

    runtime.set_answer("name", "Ada")
    assert snapshots[-1].answers == {"name": "Ada"}
    assert all(isinstance(s, PreviewState) for s in snapshots)


def test_reducer_is_pure() -> None:
    state = PreviewState()
    updated = reduce(state, RuntimeAction(type=ActionType.SET_ANSWER, field_key="q", value="x"))

    assert state.answers == {}
    assert updated.answers == {"q": "x"}
    assert updated is not state


def test_reducer_guards_against_second_transition() -> None:
    first = PendingTransition(
        outcome=NavigationOutcome.to_step(1),
        phase=TransitionPhase.FADE_OUT,
        trigger=TransitionTrigger.CONTINUE,
    )
    second = first.model_copy(update={"outcome": NavigationOutcome.to_step(2)})

    state = reduce(PreviewState(), RuntimeAction(type=ActionType.BEGIN_TRANSITION, transition=first))
    again = reduce(state, RuntimeAction(type=ActionType.BEGIN_TRANSITION, transition=second))

    assert again is state
    assert again.transition.outcome.step_index == 1


def test_reset_action_bumps_epoch() -> None:
    state = PreviewState(current_step_index=2, answers={"a": 1}, epoch=4)
    assert reduce(state, RuntimeAction(type=ActionType.RESET)) == PreviewState(epoch=5)


def test_async_submit_handler_completes(make_runtime, scheduler) -> None:
    async def handler(answers):
        await asyncio.sleep(0)
        return True

    async def drive():
        runtime = make_runtime(form(step("only")), submit_handler=handler)
        runtime.press_continue()
        scheduler.advance(1.5)
        assert runtime.state.status == RuntimeStatus.SUBMITTING
        for _ in range(5):
            await asyncio.sleep(0)
        return runtime

    runtime = asyncio.run(drive())
    assert runtime.state.status == RuntimeStatus.SUBMITTED


def test_reset_cancels_in_flight_async_submission(make_runtime, scheduler) -> None:
    async def handler(answers):
        await asyncio.sleep(10)
        return True

    async def drive():
        runtime = make_runtime(form(step("only")), submit_handler=handler)
        runtime.press_continue()
        scheduler.advance(1.5)
        in_flight = runtime._submission
        assert in_flight is not None
        await asyncio.sleep(0)
        runtime.reset()
        for _ in range(5):
            await asyncio.sleep(0)
        return runtime, in_flight

    runtime, in_flight = asyncio.run(drive())
    assert in_flight.cancelled()
    assert runtime._submission is None
    assert runtime.state.status == RuntimeStatus.VIEWING
    assert runtime.state.submit_error is None
