"""Form document import and export."""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Union

from pydantic import ValidationError

from formrunner.schemas.form import Form, FormExport

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0.0"


class FormImportError(ValueError):
    """Raised when a form document cannot be loaded."""


class FormService:
    """Service for loading and exporting form documents."""
    
    @staticmethod
    def load_form(payload: Union[str, bytes, Dict[str, Any]]) -> Form:
        """
        Load a form from JSON text or an already-parsed mapping.
        
        Accepts either a bare form or an export envelope (``{"form": {...}}``).
        """
        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload)
            except json.JSONDecodeError as e:
                raise FormImportError(f"Invalid JSON: {e}")
        
        if not isinstance(payload, dict):
            raise FormImportError("Form document must be a JSON object")
        
        data = payload.get("form") if isinstance(payload.get("form"), dict) else payload
        
        if not data.get("id") or "steps" not in data:
            raise FormImportError("Invalid form structure")
        
        try:
            form = Form.model_validate(data)
        except ValidationError as e:
            logger.info("Rejected form document: %s", e.errors())
            raise FormImportError(f"Invalid form structure: {e.error_count()} error(s)")
        
        logger.debug("Loaded form %s with %d step(s)", form.id, len(form.steps))
        return form
    
    @staticmethod
    def export_form(form: Form) -> Dict[str, Any]:
        """Wrap ``form`` in the export envelope."""
        envelope = FormExport(
            version=EXPORT_VERSION,
            exported_at=datetime.now(timezone.utc),
            form=form,
        )
        return envelope.model_dump(mode="json", by_alias=True)
    
    @staticmethod
    def export_form_json(form: Form) -> str:
        """Export envelope as indented JSON text."""
        return json.dumps(FormService.export_form(form), indent=2)
