"""Pydantic schemas for form documents and request/response validation."""

from formrunner.schemas.form import (
    QuestionType,
    ConditionOperator,
    ConditionLogic,
    NavigationTargetType,
    ProgressMode,
    ConditionRule,
    Condition,
    QuestionOption,
    QuestionValidation,
    Question,
    NavigationTarget,
    ConditionalNavigation,
    ButtonConfig,
    Step,
    ProgressConfig,
    SubmissionConfig,
    Form,
    FormExport,
)
from formrunner.schemas.preview import (
    PreviewSessionCreate,
    AnswerUpdate,
    EnterKeyPress,
    TransitionResponse,
    PreviewStateResponse,
    StepAnswersRequest,
    StepValidationResponse,
    NextStepResponse,
    ProgressRequest,
    ProgressResponse,
    ConditionRequest,
    ConditionResponse,
)

__all__ = [
    # Enums
    "QuestionType",
    "ConditionOperator",
    "ConditionLogic",
    "NavigationTargetType",
    "ProgressMode",
    # Form document
    "ConditionRule",
    "Condition",
    "QuestionOption",
    "QuestionValidation",
    "Question",
    "NavigationTarget",
    "ConditionalNavigation",
    "ButtonConfig",
    "Step",
    "ProgressConfig",
    "SubmissionConfig",
    "Form",
    "FormExport",
    # Preview
    "PreviewSessionCreate",
    "AnswerUpdate",
    "EnterKeyPress",
    "TransitionResponse",
    "PreviewStateResponse",
    "StepAnswersRequest",
    "StepValidationResponse",
    "NextStepResponse",
    "ProgressRequest",
    "ProgressResponse",
    "ConditionRequest",
    "ConditionResponse",
]
