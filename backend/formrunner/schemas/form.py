"""Form document Pydantic schemas.

These models mirror the JSON document produced by the form editor. Attribute
names are snake_case; the wire format is camelCase and both spellings are
accepted on input.
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel


class QuestionType(str, PyEnum):
    """Known question (field) kinds."""
    TEXT = "text"
    TEXTAREA = "textarea"
    EMAIL = "email"
    PHONE = "phone"
    NUMBER = "number"
    CURRENCY = "currency"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    SELECT = "select"
    MULTISELECT = "multiselect"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    FILE = "file"
    RATING = "rating"
    SLIDER = "slider"
    HIDDEN = "hidden"
    EIRCODE = "eircode"
    NUMBERPLATE = "numberplate"
    PRIVACY_POLICY = "privacy_policy"
    HELPER_TEXT = "helper_text"


# Question types that never collect user input
NON_INPUT_TYPES = frozenset({QuestionType.HIDDEN.value, QuestionType.HELPER_TEXT.value})


class ConditionOperator(str, PyEnum):
    """Comparison operators available to condition rules."""
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"


class ConditionLogic(str, PyEnum):
    """How the rules of a condition are combined."""
    AND = "AND"
    OR = "OR"


class NavigationTargetType(str, PyEnum):
    """Kinds of conditional navigation target."""
    NEXT = "next"
    PREVIOUS = "previous"
    SPECIFIC = "specific"
    SUBMIT = "submit"
    URL = "url"


class ProgressMode(str, PyEnum):
    """Progress bar calculation modes."""
    LINEAR = "linear"
    STEP_BASED = "step_based"
    WEIGHTED = "weighted"
    EXPONENTIAL = "exponential"
    QUESTION_BASED = "question_based"


class CamelModel(BaseModel):
    """Base model for camelCase documents."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


# ==================== Conditions ====================

class ConditionRule(CamelModel):
    """A single field comparison."""
    id: str = ""
    question_id: str = Field("", description="Question whose answer is compared")
    operator: str = Field(ConditionOperator.EQUALS.value, description="One of ConditionOperator")
    value: Any = ""


class Condition(CamelModel):
    """Boolean combination of rules."""
    id: str = ""
    logic: str = ConditionLogic.AND.value
    rules: List[ConditionRule] = []


# ==================== Questions ====================

class QuestionOption(CamelModel):
    """Choice for radio, checkbox and select fields."""
    id: str = ""
    label: str = ""
    value: str = ""


class QuestionValidation(CamelModel):
    """Validation rules for a question."""
    required: bool = False
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = None
    pattern_message: Optional[str] = None


class Question(CamelModel):
    """One input field definition within a step."""
    id: str
    type: str = Field(QuestionType.TEXT.value, description="One of QuestionType")
    label: str = ""
    field_name: Optional[str] = Field(None, description="Answer key; falls back to id")
    placeholder: Optional[str] = None
    help_text: Optional[str] = None
    default_value: Optional[str] = None
    options: Optional[List[QuestionOption]] = None
    validation: QuestionValidation = Field(default_factory=QuestionValidation)
    use_date_input_mask: bool = False
    privacy_policy_url: Optional[str] = None
    privacy_policy_text: Optional[str] = None
    helper_content: Optional[str] = None
    # Grid positioning (presentation only)
    grid_column: int = 1
    grid_column_span: int = 12
    grid_row: int = 1
    conditional_display: Optional[Condition] = None

    @property
    def field_key(self) -> str:
        """Key under which this question's answer is stored."""
        return self.field_name or self.id

    @property
    def collects_input(self) -> bool:
        return self.type not in NON_INPUT_TYPES


# ==================== Navigation ====================

class NavigationTarget(CamelModel):
    """Where a conditional navigation rule leads."""
    type: str = NavigationTargetType.NEXT.value
    step_id: Optional[str] = None
    url: Optional[str] = None


class ConditionalNavigation(CamelModel):
    """Priority-ordered rule mapping a condition to a navigation target."""
    id: str = ""
    condition: Condition = Field(default_factory=Condition)
    target: NavigationTarget = Field(default_factory=NavigationTarget)
    priority: int = 0


class ButtonConfig(CamelModel):
    """Back/continue button configuration."""
    enabled: bool = True
    label: str = ""
    show_if: Optional[Condition] = None
    enable_if: Optional[Condition] = None
    custom_class: Optional[str] = None
    icon: Optional[str] = None


# ==================== Step ====================

class Step(CamelModel):
    """One screen of a multi-step form."""
    id: str
    title: str = ""
    description: Optional[str] = None
    questions: List[Question] = []
    # Grid configuration (presentation only)
    grid_columns: int = 12
    grid_gap: int = 16
    # Navigation
    back_button: ButtonConfig = Field(default_factory=lambda: ButtonConfig(label="Back"))
    continue_button: ButtonConfig = Field(default_factory=lambda: ButtonConfig(label="Continue"))
    conditional_navigation: List[ConditionalNavigation] = []
    default_next_step: Optional[str] = None
    default_prev_step: Optional[str] = None
    validate_on_continue: bool = True
    auto_advance: bool = False
    enter_key_advance: bool = False


# ==================== Progress / Submission ====================

class ProgressConfig(CamelModel):
    """Progress bar configuration."""
    enabled: bool = True
    mode: str = ProgressMode.LINEAR.value
    position: str = "top"
    step_weights: Optional[Dict[str, float]] = None
    exponential_base: Optional[float] = None
    show_percentage: bool = True
    show_step_indicator: bool = True
    show_step_labels: bool = False
    animation_duration: int = 300


class SubmissionConfig(CamelModel):
    """Where and how answers are sent on submit."""
    method: str = "POST"
    url: str = ""
    headers: Dict[str, str] = {}
    include_fields: Any = "all"
    success_message: str = "Thank you! Your submission has been received."
    error_message: str = "Something went wrong. Please try again."
    redirect_on_success: Optional[str] = None
    redirect_on_error: Optional[str] = None
    success_icon: Optional[str] = None
    success_background_color: Optional[str] = None
    success_text_color: Optional[str] = None


# ==================== Form ====================

class Form(CamelModel):
    """Complete form document."""
    id: str
    name: str = ""
    description: Optional[str] = None
    version: str = "1.0.0"
    steps: List[Step]
    theme: Dict[str, Any] = {}
    progress_config: ProgressConfig = Field(default_factory=ProgressConfig)
    submission_config: SubmissionConfig = Field(default_factory=SubmissionConfig)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    author: Optional[str] = None
    plugin_settings: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def check_unique_step_ids(self) -> "Form":
        seen = set()
        for step in self.steps:
            if step.id in seen:
                raise ValueError(f"Duplicate step id: {step.id}")
            seen.add(step.id)
        return self

    def step_index(self, step_id: Optional[str]) -> int:
        """Return the index of ``step_id`` or -1 when it is unknown."""
        if not step_id:
            return -1
        for index, step in enumerate(self.steps):
            if step.id == step_id:
                return index
        return -1

    def all_questions(self) -> List[Question]:
        return [question for step in self.steps for question in step.questions]


class FormExport(CamelModel):
    """Envelope used when a form is exported as JSON."""
    version: str = "1.0.0"
    exported_at: datetime
    form: Form
