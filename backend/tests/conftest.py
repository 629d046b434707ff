"""Shared fixtures for form runtime tests."""

from typing import Any

import pytest

from formrunner.config import Settings
from formrunner.schemas.form import Form
from formrunner.services.runtime import StepRuntime
from formrunner.services.scheduler import ManualScheduler

# Delays used by runtime tests (milliseconds)
TEST_SETTINGS = Settings(
    auto_navigate_delay_ms=300,
    auto_advance_delay_ms=400,
    transition_out_ms=100,
    transition_in_ms=100,
    submit_delay_ms=1500,
)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def make_runtime(scheduler):
    """Factory for runtimes driven by the manual scheduler."""

    def factory(form_doc: Form, **kwargs: Any) -> StepRuntime:
        return StepRuntime(form_doc, scheduler=scheduler, settings=TEST_SETTINGS, **kwargs)

    return factory
