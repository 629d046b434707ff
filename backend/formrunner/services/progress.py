"""Progress percentage calculation."""

from typing import Any, Mapping, Optional, Sequence

from formrunner.coercion import is_falsy
from formrunner.schemas.form import ProgressConfig, ProgressMode, Step

DEFAULT_EXPONENTIAL_BASE = 2.0


class ProgressService:
    """Service computing the 0-100 completion percentage."""

    @staticmethod
    def compute(
        mode: str,
        current_index: int,
        steps: Sequence[Step],
        answers: Mapping[str, Any],
        config: Optional[ProgressConfig] = None
    ) -> float:
        """Progress for ``mode``; unknown modes and empty forms report 0."""
        config = config or ProgressConfig()
        total_steps = len(steps)
        if total_steps == 0:
            return 0.0

        if mode in (ProgressMode.LINEAR, ProgressMode.STEP_BASED):
            progress = (current_index + 1) / total_steps * 100
        elif mode == ProgressMode.WEIGHTED:
            progress = ProgressService._weighted(current_index, steps, config)
        elif mode == ProgressMode.EXPONENTIAL:
            progress = ProgressService._exponential(current_index, total_steps, config)
        elif mode == ProgressMode.QUESTION_BASED:
            progress = ProgressService._question_based(steps, answers)
        else:
            progress = 0.0

        return min(100.0, max(0.0, progress))

    @staticmethod
    def _weighted(current_index: int, steps: Sequence[Step], config: ProgressConfig) -> float:
        weights = config.step_weights or {}
        step_weights = [weights.get(step.id, 1) for step in steps]
        total = sum(step_weights)
        if total <= 0:
            return 0.0
        return sum(step_weights[: current_index + 1]) / total * 100

    @staticmethod
    def _exponential(current_index: int, total_steps: int, config: ProgressConfig) -> float:
        base = config.exponential_base or DEFAULT_EXPONENTIAL_BASE
        denominator = base ** total_steps - 1
        if denominator == 0:
            # Base 1 is flat; fall back to linear
            return (current_index + 1) / total_steps * 100
        return (base ** (current_index + 1) - 1) / denominator * 100

    @staticmethod
    def _question_based(steps: Sequence[Step], answers: Mapping[str, Any]) -> float:
        total_questions = sum(len(step.questions) for step in steps)
        if total_questions == 0:
            return 0.0
        answered = sum(1 for value in answers.values() if _truthy(value))
        return answered / total_questions * 100


def _truthy(value: Any) -> bool:
    """Answered for progress purposes: non-empty list or a truthy scalar (``0`` is not)."""
    if isinstance(value, (list, tuple)):
        return len(value) > 0
    return not is_falsy(value)
