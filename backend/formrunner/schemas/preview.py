"""Preview session and runtime service Pydantic schemas."""

from typing import Optional, List, Dict, Any

from pydantic import BaseModel, Field

from formrunner.models.runtime import ButtonState, RuntimeStatus, TransitionPhase, TransitionTrigger
from formrunner.schemas.form import Condition


class PreviewSessionCreate(BaseModel):
    """Schema for starting a preview session."""
    form: Dict[str, Any] = Field(..., description="Form document or export envelope")


class AnswerUpdate(BaseModel):
    """Schema for a single answer change."""
    question_id: str = Field(..., min_length=1, description="Question id or field name")
    value: Any = None


class EnterKeyPress(BaseModel):
    """Schema for an Enter key press inside the form."""
    multiline: bool = Field(False, description="Whether the focused control is a multi-line text area")


class TransitionResponse(BaseModel):
    """Schema for a transition in flight."""
    phase: TransitionPhase
    trigger: TransitionTrigger
    target_step_index: Optional[int] = None
    submit: bool = False


class PreviewStateResponse(BaseModel):
    """Schema for preview session state responses."""
    session_id: str
    form_id: str
    status: RuntimeStatus
    current_step_index: int
    current_step_id: str
    total_steps: int
    answers: Dict[str, Any]
    errors: Dict[str, str]
    progress: float
    visible_question_ids: List[str]
    back_button: ButtonState
    continue_button: ButtonState
    transition: Optional[TransitionResponse] = None
    submit_error: Optional[str] = None


class StepAnswersRequest(BaseModel):
    """Schema for stateless step operations."""
    form: Dict[str, Any]
    step_id: str
    answers: Dict[str, Any] = {}


class StepValidationResponse(BaseModel):
    """Schema for step validation results."""
    valid: bool
    errors: Dict[str, str]


class NextStepResponse(BaseModel):
    """Schema for navigation resolution results."""
    submit: bool
    step_index: Optional[int] = None
    step_id: Optional[str] = None


class ProgressRequest(BaseModel):
    """Schema for progress calculation."""
    form: Dict[str, Any]
    current_step_index: int = Field(0, ge=0)
    answers: Dict[str, Any] = {}
    mode: Optional[str] = Field(None, description="Overrides the form's progress mode")


class ProgressResponse(BaseModel):
    """Schema for progress results."""
    mode: str
    progress: float


class ConditionRequest(BaseModel):
    """Schema for evaluating a condition."""
    condition: Condition
    answers: Dict[str, Any] = {}


class ConditionResponse(BaseModel):
    """Schema for condition results."""
    result: bool
