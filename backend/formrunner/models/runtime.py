"""Runtime state snapshots and actions for the step runtime."""

from enum import Enum as PyEnum
from typing import Optional, Dict, Any

from pydantic import BaseModel


class RuntimeStatus(str, PyEnum):
    """Runtime workflow states."""
    VIEWING = "viewing"
    TRANSITIONING = "transitioning"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"


class TransitionPhase(str, PyEnum):
    """Stages of a step transition."""
    PENDING = "pending"  # waiting out an auto-navigation or auto-advance delay
    FADE_OUT = "fade_out"
    FADE_IN = "fade_in"


class TransitionTrigger(str, PyEnum):
    """What started a transition."""
    CONTINUE = "continue"
    BACK = "back"
    AUTO_NAVIGATE = "auto_navigate"
    AUTO_ADVANCE = "auto_advance"


class NavigationOutcome(BaseModel):
    """Result of resolving a navigation: a step index or submission."""
    step_index: Optional[int] = None
    submit: bool = False

    class Config:
        frozen = True

    @classmethod
    def to_step(cls, index: int) -> "NavigationOutcome":
        return cls(step_index=index)

    @classmethod
    def to_submit(cls) -> "NavigationOutcome":
        return cls(submit=True)


class PendingTransition(BaseModel):
    """A transition in flight."""
    outcome: NavigationOutcome
    phase: TransitionPhase
    trigger: TransitionTrigger

    class Config:
        frozen = True


class PreviewState(BaseModel):
    """
    Immutable snapshot of a runtime.

    The reducer never mutates a snapshot; every action yields a new one, so a
    history of snapshots can be kept and restored by replacement.
    """
    current_step_index: int = 0
    answers: Dict[str, Any] = {}
    errors: Dict[str, str] = {}
    status: RuntimeStatus = RuntimeStatus.VIEWING
    transition: Optional[PendingTransition] = None
    submit_error: Optional[str] = None
    epoch: int = 0

    class Config:
        frozen = True

    @property
    def is_busy(self) -> bool:
        """True while a transition or submission blocks navigation."""
        return self.transition is not None or self.status in (
            RuntimeStatus.SUBMITTING,
            RuntimeStatus.SUBMITTED,
        )


class ActionType(str, PyEnum):
    """Commands understood by the runtime reducer."""
    SET_ANSWER = "set_answer"
    SET_ERRORS = "set_errors"
    BEGIN_TRANSITION = "begin_transition"
    ADVANCE_TRANSITION = "advance_transition"
    CANCEL_TRANSITION = "cancel_transition"
    BEGIN_SUBMIT = "begin_submit"
    SUBMIT_SUCCEEDED = "submit_succeeded"
    SUBMIT_FAILED = "submit_failed"
    RESET = "reset"


class RuntimeAction(BaseModel):
    """A command plus its payload."""
    type: ActionType
    field_key: Optional[str] = None
    value: Any = None
    errors: Optional[Dict[str, str]] = None
    transition: Optional[PendingTransition] = None
    message: Optional[str] = None

    class Config:
        frozen = True


class ButtonState(BaseModel):
    """Computed display state of a navigation button."""
    visible: bool
    enabled: bool
    label: str
