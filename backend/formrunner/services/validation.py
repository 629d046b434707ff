"""Field and step validation."""

import calendar
import logging
import re
from functools import lru_cache
from typing import Any, Dict, Mapping, Optional, Pattern

from formrunner.coercion import to_number, to_text, has_answer
from formrunner.schemas.form import Question, QuestionType, Step
from formrunner.services.condition import ConditionService

logger = logging.getLogger(__name__)

REQUIRED_MESSAGE = "This field is required"
EMAIL_MESSAGE = "Please enter a valid email address"
PHONE_MESSAGE = "Please enter a valid phone number"
EIRCODE_MESSAGE = "Please enter a valid Eircode (e.g. D02 X285)"
NUMBERPLATE_MESSAGE = "Please enter a valid number plate (e.g. 191-D-12345)"
DATE_MESSAGE = "Please enter a valid date (DD/MM/YYYY)"
DATETIME_MESSAGE = "Please enter a valid date and time (DD/MM/YYYY HH:MM)"
PATTERN_MESSAGE = "Invalid format"

# Matched with fullmatch; digits are ASCII only
EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
PHONE_RE = re.compile(r"[0-9\s\-+()]{7,}")
NUMBERPLATE_RE = re.compile(r"[0-9]{2,3}-[A-Z]{1,2}-[0-9]{1,6}")
DATE_MASK_RE = re.compile(r"([0-9]{2})/([0-9]{2})/([0-9]{4})")
DATETIME_MASK_RE = re.compile(r"([0-9]{2})/([0-9]{2})/([0-9]{4}) ([0-9]{2}):([0-9]{2})")

MIN_YEAR = 1900
MAX_YEAR = 2100

# Irish Eircode routing keys
EIRCODE_ROUTING_KEYS = frozenset([
    "A41", "A42", "A45", "A63", "A67", "A75", "A81", "A82", "A83", "A84",
    "A85", "A86", "A91", "A92", "A94", "A96", "A98", "C15", "D01", "D02",
    "D03", "D04", "D05", "D06", "D6W", "D07", "D08", "D09", "D10", "D11",
    "D12", "D13", "D14", "D15", "D16", "D17", "D18", "D20", "D22", "D24",
    "E21", "E25", "E32", "E34", "E41", "E45", "E53", "E91", "F12", "F23",
    "F26", "F28", "F31", "F35", "F42", "F45", "F52", "F56", "F91", "F92",
    "F93", "F94", "H12", "H14", "H16", "H18", "H23", "H53", "H54", "H62",
    "H65", "H71", "H91", "K32", "K34", "K36", "K45", "K56", "K67", "K78",
    "N37", "N39", "N41", "N91", "P12", "P14", "P17", "P24", "P25", "P31",
    "P32", "P36", "P43", "P47", "P51", "P56", "P61", "P67", "P72", "P75",
    "P81", "P85", "R14", "R21", "R32", "R35", "R42", "R45", "R51", "R56",
    "R93", "R95", "T12", "T23", "T34", "T45", "T56", "V14", "V15", "V23",
    "V31", "V35", "V42", "V92", "V93", "V94", "V95", "W12", "W23", "W34",
    "W91", "X35", "X42", "X91", "Y14", "Y21", "Y25", "Y34", "Y35",
])


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> Optional[Pattern]:
    """Compile an author-supplied pattern, or ``None`` when it is invalid."""
    try:
        return re.compile(pattern)
    except re.error as exc:
        logger.warning("Skipping invalid validation pattern %r: %s", pattern, exc)
        return None


def is_valid_eircode(value: Any) -> bool:
    code = re.sub(r"\s", "", to_text(value)).upper()
    return len(code) >= 7 and code[:3] in EIRCODE_ROUTING_KEYS


def is_valid_numberplate(value: Any) -> bool:
    return NUMBERPLATE_RE.fullmatch(to_text(value).upper()) is not None


def is_valid_masked_date(text: str, with_time: bool = False) -> bool:
    """Check ``DD/MM/YYYY`` (or ``DD/MM/YYYY HH:MM``) text against the calendar."""
    expected_length = 16 if with_time else 10
    if len(text) != expected_length:
        return False
    match = (DATETIME_MASK_RE if with_time else DATE_MASK_RE).fullmatch(text)
    if match is None:
        return False

    parts = [int(part) for part in match.groups()]
    day, month, year = parts[0], parts[1], parts[2]
    if not 1 <= month <= 12:
        return False
    if not MIN_YEAR <= year <= MAX_YEAR:
        return False
    if with_time:
        hour, minute = parts[3], parts[4]
        if not 0 <= hour <= 23 or not 0 <= minute <= 59:
            return False
    return 1 <= day <= calendar.monthrange(year, month)[1]


class ValidationService:
    """Service for per-field and per-step validation."""

    @staticmethod
    def validate_question(question: Question, value: Any) -> Optional[str]:
        """
        Return the error message for ``value`` or ``None`` when it is valid.

        A missing required answer short-circuits. Otherwise every format check
        runs and a later failure replaces an earlier one, so the message that
        surfaces is the last failing check.
        """
        rules = question.validation

        if rules.required and not has_answer(value):
            return REQUIRED_MESSAGE

        if not has_answer(value):
            return None

        error = None
        text = to_text(value)
        question_type = question.type

        if question_type == QuestionType.EMAIL and not EMAIL_RE.fullmatch(text):
            error = EMAIL_MESSAGE
        if question_type == QuestionType.PHONE and not PHONE_RE.fullmatch(text):
            error = PHONE_MESSAGE
        if question_type == QuestionType.EIRCODE and not is_valid_eircode(value):
            error = EIRCODE_MESSAGE
        if question_type == QuestionType.NUMBERPLATE and not is_valid_numberplate(value):
            error = NUMBERPLATE_MESSAGE
        if question.use_date_input_mask:
            if question_type == QuestionType.DATE and not is_valid_masked_date(text):
                error = DATE_MESSAGE
            if question_type == QuestionType.DATETIME and not is_valid_masked_date(text, with_time=True):
                error = DATETIME_MESSAGE

        if rules.min_length and len(text) < rules.min_length:
            error = f"Minimum {rules.min_length} characters required"
        if rules.max_length and len(text) > rules.max_length:
            error = f"Maximum {rules.max_length} characters allowed"
        if rules.min is not None and to_number(value) < rules.min:
            error = f"Minimum value is {to_text(rules.min)}"
        if rules.max is not None and to_number(value) > rules.max:
            error = f"Maximum value is {to_text(rules.max)}"
        if rules.pattern:
            regex = compile_pattern(rules.pattern)
            if regex is not None and regex.search(text) is None:
                error = rules.pattern_message or PATTERN_MESSAGE

        return error

    @staticmethod
    def validate_step(step: Step, answers: Mapping[str, Any]) -> Dict[str, str]:
        """Validate every visible input question of ``step``."""
        errors: Dict[str, str] = {}
        for question in step.questions:
            if not question.collects_input:
                continue
            if not ConditionService.is_visible(question, answers):
                continue
            message = ValidationService.validate_question(question, answers.get(question.field_key))
            if message:
                errors[question.field_key] = message
        if errors:
            logger.debug("Step %s failed validation: %s", step.id, sorted(errors))
        return errors
