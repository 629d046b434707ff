"""Stateless form runtime operations router."""

from typing import Any, Dict

from fastapi import APIRouter, HTTPException, status

from formrunner.schemas.form import Form, Step
from formrunner.schemas.preview import (
    StepAnswersRequest,
    StepValidationResponse,
    NextStepResponse,
    ProgressRequest,
    ProgressResponse,
    ConditionRequest,
    ConditionResponse,
)
from formrunner.services.condition import ConditionService
from formrunner.services.form import FormService
from formrunner.services.navigation import NavigationService
from formrunner.services.progress import ProgressService
from formrunner.services.session import load_form_or_400
from formrunner.services.validation import ValidationService

router = APIRouter()


def _get_step(form: Form, step_id: str) -> Step:
    index = form.step_index(step_id)
    if index == -1:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Step not found"
        )
    return form.steps[index]


@router.post("/import")
async def import_form(document: Dict[str, Any]):
    """
    Validate and normalise a form document.
    
    Accepts a bare form or an export envelope and returns the export envelope.
    """
    form = load_form_or_400(document)
    return FormService.export_form(form)


@router.post("/evaluate-condition", response_model=ConditionResponse)
async def evaluate_condition(request: ConditionRequest):
    """Evaluate a condition against a set of answers."""
    return ConditionResponse(result=ConditionService.evaluate(request.condition, request.answers))


@router.post("/validate-step", response_model=StepValidationResponse)
async def validate_step(request: StepAnswersRequest):
    """Validate one step's answers."""
    form = load_form_or_400(request.form)
    step = _get_step(form, request.step_id)
    errors = ValidationService.validate_step(step, request.answers)
    return StepValidationResponse(valid=not errors, errors=errors)


@router.post("/next-step", response_model=NextStepResponse)
async def next_step(request: StepAnswersRequest):
    """Resolve where Continue leads from a step."""
    form = load_form_or_400(request.form)
    step = _get_step(form, request.step_id)
    outcome = NavigationService.resolve_next(step, request.answers, form.steps)
    if outcome.submit:
        return NextStepResponse(submit=True)
    return NextStepResponse(
        submit=False,
        step_index=outcome.step_index,
        step_id=form.steps[outcome.step_index].id,
    )


@router.post("/progress", response_model=ProgressResponse)
async def progress(request: ProgressRequest):
    """Compute the progress percentage at a step."""
    form = load_form_or_400(request.form)
    if form.steps and request.current_step_index >= len(form.steps):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Step index out of range"
        )
    mode = request.mode or form.progress_config.mode
    value = ProgressService.compute(
        mode, request.current_step_index, form.steps, request.answers, form.progress_config
    )
    return ProgressResponse(mode=mode, progress=round(value, 2))
