"""Interactive preview session router."""

from fastapi import APIRouter, Depends, HTTPException, status

from formrunner.schemas.preview import (
    PreviewSessionCreate,
    AnswerUpdate,
    EnterKeyPress,
    PreviewStateResponse,
)
from formrunner.services.session import PreviewSessionService, get_session_service

router = APIRouter()


@router.post("", response_model=PreviewStateResponse)
async def create_session(
    request: PreviewSessionCreate,
    sessions: PreviewSessionService = Depends(get_session_service)
):
    """Start a preview session for a form document."""
    session_id = sessions.create_session(request.form)
    return sessions.describe(session_id)


@router.get("/{session_id}", response_model=PreviewStateResponse)
async def get_session(
    session_id: str,
    sessions: PreviewSessionService = Depends(get_session_service)
):
    """Get the current state of a preview session."""
    return sessions.describe(session_id)


@router.post("/{session_id}/answers", response_model=PreviewStateResponse)
async def set_answer(
    session_id: str,
    update: AnswerUpdate,
    sessions: PreviewSessionService = Depends(get_session_service)
):
    """Record an answer change (may schedule auto-navigation)."""
    sessions.get_runtime(session_id).set_answer(update.question_id, update.value)
    return sessions.describe(session_id)


@router.post("/{session_id}/continue", response_model=PreviewStateResponse)
async def press_continue(
    session_id: str,
    sessions: PreviewSessionService = Depends(get_session_service)
):
    """Press the Continue button."""
    sessions.get_runtime(session_id).press_continue()
    return sessions.describe(session_id)


@router.post("/{session_id}/back", response_model=PreviewStateResponse)
async def press_back(
    session_id: str,
    sessions: PreviewSessionService = Depends(get_session_service)
):
    """Press the Back button."""
    sessions.get_runtime(session_id).press_back()
    return sessions.describe(session_id)


@router.post("/{session_id}/enter", response_model=PreviewStateResponse)
async def press_enter(
    session_id: str,
    key_press: EnterKeyPress,
    sessions: PreviewSessionService = Depends(get_session_service)
):
    """Press Enter inside the form."""
    sessions.get_runtime(session_id).press_enter(multiline=key_press.multiline)
    return sessions.describe(session_id)


@router.post("/{session_id}/reset", response_model=PreviewStateResponse)
async def reset_session(
    session_id: str,
    sessions: PreviewSessionService = Depends(get_session_service)
):
    """Reset the preview to its first step."""
    sessions.get_runtime(session_id).reset()
    return sessions.describe(session_id)


@router.delete("/{session_id}")
async def delete_session(
    session_id: str,
    sessions: PreviewSessionService = Depends(get_session_service)
):
    """End a preview session."""
    if not sessions.delete_session(session_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Preview session not found"
        )
    return {"message": "Preview session deleted"}
