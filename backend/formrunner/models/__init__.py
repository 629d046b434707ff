"""Runtime state models for the form runtime."""

from formrunner.models.runtime import (
    RuntimeStatus,
    TransitionPhase,
    TransitionTrigger,
    NavigationOutcome,
    PendingTransition,
    PreviewState,
    ActionType,
    RuntimeAction,
    ButtonState,
)

__all__ = [
    "RuntimeStatus",
    "TransitionPhase",
    "TransitionTrigger",
    "NavigationOutcome",
    "PendingTransition",
    "PreviewState",
    "ActionType",
    "RuntimeAction",
    "ButtonState",
]
