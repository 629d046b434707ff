"""Tests for form document import and export."""

from __future__ import annotations

import json

import pytest

from builders import form, form_document, question, step
from formrunner.services.form import EXPORT_VERSION, FormImportError, FormService


def test_load_bare_form_from_dict() -> None:
    doc = form_document(step("s1", [question("q1", fieldName="full_name")]))
    loaded = FormService.load_form(doc)

    assert loaded.id == "form-1"
    assert loaded.steps[0].questions[0].field_key == "full_name"
    assert loaded.steps[0].continue_button.label == "Continue"
    assert loaded.steps[0].validate_on_continue is True


def test_load_export_envelope_from_json_text() -> None:
    text = json.dumps({"version": "1.0.0", "exportedAt": "2024-01-01T00:00:00Z",
                       "form": form_document(step("s1"))})
    assert FormService.load_form(text).steps[0].id == "s1"
    assert FormService.load_form(text.encode()).steps[0].id == "s1"


@pytest.mark.parametrize(
    "payload",
    [
        "{not json",
        "[1, 2]",
        {"name": "no id", "steps": []},
        {"id": "f"},
        {"id": "f", "steps": "nope"},
    ],
)
def test_invalid_documents_are_rejected(payload) -> None:
    with pytest.raises(FormImportError):
        FormService.load_form(payload)


def test_duplicate_step_ids_are_rejected() -> None:
    with pytest.raises(FormImportError):
        FormService.load_form(form_document(step("s1"), step("s1")))


def test_export_envelope_uses_camel_case() -> None:
    f = form(step("s1", [question("q1", validation={"minLength": 2})], autoAdvance=True))
    exported = FormService.export_form(f)

    assert set(exported) == {"version", "exportedAt", "form"}
    assert exported["version"] == EXPORT_VERSION
    s1 = exported["form"]["steps"][0]
    assert s1["autoAdvance"] is True
    assert s1["questions"][0]["validation"]["minLength"] == 2


def test_exported_json_loads_back() -> None:
    f = form(step("s1"), step("s2", defaultPrevStep="s1"))
    again = FormService.load_form(FormService.export_form_json(f))
    assert [s.id for s in again.steps] == ["s1", "s2"]
    assert again.steps[1].default_prev_step == "s1"
