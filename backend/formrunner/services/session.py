"""In-memory preview session management."""

import logging
import uuid
from collections import OrderedDict
from typing import Any, Dict, Optional

from fastapi import HTTPException, status

from formrunner.config import get_settings
from formrunner.schemas.form import Form
from formrunner.schemas.preview import PreviewStateResponse, TransitionResponse
from formrunner.services.form import FormImportError, FormService
from formrunner.services.runtime import EmptyFormError, StepRuntime
from formrunner.services.scheduler import AsyncioScheduler, Scheduler

logger = logging.getLogger(__name__)


class PreviewSessionService:
    """Service holding live preview runtimes keyed by session id."""
    
    def __init__(self, max_sessions: Optional[int] = None):
        self.max_sessions = max_sessions or get_settings().max_preview_sessions
        self._sessions: "OrderedDict[str, StepRuntime]" = OrderedDict()
    
    def create_session(
        self,
        document: Dict[str, Any],
        scheduler: Optional[Scheduler] = None
    ) -> str:
        """Load a form document and start a runtime for it."""
        try:
            form = FormService.load_form(document)
            runtime = StepRuntime(form, scheduler=scheduler or AsyncioScheduler())
        except (FormImportError, EmptyFormError) as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(e)
            )
        
        session_id = uuid.uuid4().hex
        self._sessions[session_id] = runtime
        
        # Evict the oldest sessions beyond capacity
        while len(self._sessions) > self.max_sessions:
            evicted_id, evicted = self._sessions.popitem(last=False)
            evicted.reset()
            logger.info("Evicted preview session %s", evicted_id)
        
        logger.info("Started preview session %s for form %s", session_id, form.id)
        return session_id
    
    def get_runtime(self, session_id: str) -> StepRuntime:
        """Get a session's runtime or raise 404."""
        runtime = self._sessions.get(session_id)
        if runtime is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Preview session not found"
            )
        return runtime
    
    def delete_session(self, session_id: str) -> bool:
        """Stop and forget a session."""
        runtime = self._sessions.pop(session_id, None)
        if runtime is None:
            return False
        runtime.reset()
        return True
    
    def describe(self, session_id: str) -> PreviewStateResponse:
        """Build the response snapshot for a session."""
        runtime = self.get_runtime(session_id)
        state = runtime.state
        
        transition = None
        if state.transition is not None:
            transition = TransitionResponse(
                phase=state.transition.phase,
                trigger=state.transition.trigger,
                target_step_index=state.transition.outcome.step_index,
                submit=state.transition.outcome.submit,
            )
        
        return PreviewStateResponse(
            session_id=session_id,
            form_id=runtime.form.id,
            status=state.status,
            current_step_index=state.current_step_index,
            current_step_id=runtime.current_step.id,
            total_steps=len(runtime.steps),
            answers=runtime.answers,
            errors=runtime.errors,
            progress=round(runtime.progress, 2),
            visible_question_ids=[q.id for q in runtime.visible_questions()],
            back_button=runtime.back_button(),
            continue_button=runtime.continue_button(),
            transition=transition,
            submit_error=state.submit_error,
        )


_session_service: Optional[PreviewSessionService] = None


def get_session_service() -> PreviewSessionService:
    """Dependency that provides the process-wide session service."""
    global _session_service
    if _session_service is None:
        _session_service = PreviewSessionService()
    return _session_service


def load_form_or_400(document: Dict[str, Any]) -> Form:
    """Load a form document, translating import errors into a 400."""
    try:
        return FormService.load_form(document)
    except FormImportError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
