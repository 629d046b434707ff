"""Service layer for business logic."""

from formrunner.services.condition import ConditionService
from formrunner.services.validation import ValidationService
from formrunner.services.navigation import NavigationService
from formrunner.services.progress import ProgressService
from formrunner.services.form import FormService, FormImportError
from formrunner.services.runtime import StepRuntime, EmptyFormError, reduce
from formrunner.services.scheduler import Scheduler, AsyncioScheduler, ManualScheduler

__all__ = [
    "ConditionService",
    "ValidationService",
    "NavigationService",
    "ProgressService",
    "FormService",
    "FormImportError",
    "StepRuntime",
    "EmptyFormError",
    "reduce",
    "Scheduler",
    "AsyncioScheduler",
    "ManualScheduler",
]
