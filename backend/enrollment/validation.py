"""Declarative request-body validation.

Each request shape is a table of ``(field, rules)``; a rule returns an error
message or ``None``. ``validate`` returns the cleaned values and a mapping of
field name to all of its error messages.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

Rule = Callable[[Any], Optional[str]]

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _clean_string(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def not_empty(label: str) -> Rule:
    def rule(value: Any) -> Optional[str]:
        if value is None or _clean_string(value) == "":
            return f"{label} is required."
        return None

    return rule


def min_length(label: str, length: int) -> Rule:
    def rule(value: Any) -> Optional[str]:
        if value is None or _clean_string(value) == "":
            return None
        if len(_clean_string(value)) < length:
            return f"{label} must be at least {length} characters long."
        return None

    return rule


def email_address(label: str) -> Rule:
    def rule(value: Any) -> Optional[str]:
        if value is None or _clean_string(value) == "":
            return None
        if not _EMAIL_RE.match(_clean_string(value)):
            return f"{label} is not a valid email address."
        return None

    return rule


def int_between(label: str, minimum: int, maximum: int) -> Rule:
    def rule(value: Any) -> Optional[str]:
        # JSON numbers only; strings and booleans are rejected.
        if isinstance(value, bool) or not isinstance(value, int):
            return f"{label} must be a whole number."
        if value < minimum or value > maximum:
            return f"{label} must be between {minimum} and {maximum}."
        return None

    return rule


FieldRules = Sequence[Tuple[str, Sequence[Rule]]]

REGISTER_RULES: FieldRules = (
    ("email", (not_empty("Email"), email_address("Email"))),
    ("firstName", (not_empty("First name"), min_length("First name", 2))),
    ("lastName", (not_empty("Last name"), min_length("Last name", 2))),
    ("password", (not_empty("Password"), min_length("Password", 6))),
)

LOGIN_RULES: FieldRules = (
    ("email", (not_empty("Email"), email_address("Email"))),
    ("password", (not_empty("Password"),)),
)

COURSE_RULES: FieldRules = (
    ("name", (not_empty("Name"), min_length("Name", 2))),
    ("description", (not_empty("Description"),)),
    ("capacity", (int_between("Capacity", 1, 1000),)),
)

ENROLL_RULES: FieldRules = (
    ("courseId", (not_empty("Course id"),)),
)


def validate(
    payload: Dict[str, Any] | None, rules: FieldRules
) -> Tuple[Dict[str, Any], Dict[str, List[str]]]:
    """Apply ``rules`` to ``payload``; passwords are never trimmed."""

    if not isinstance(payload, dict):
        return {}, {"body": ["Request body must be a JSON object."]}

    cleaned: Dict[str, Any] = {}
    errors: Dict[str, List[str]] = {}

    for field, field_rules in rules:
        value = payload.get(field)
        messages = [message for message in (rule(value) for rule in field_rules) if message]
        if messages:
            errors[field] = messages
            continue
        if field == "password":
            cleaned[field] = str(value)
        elif field == "capacity":
            cleaned[field] = int(value)
        else:
            cleaned[field] = _clean_string(value)

    return cleaned, errors


__all__ = [
    "COURSE_RULES",
    "ENROLL_RULES",
    "LOGIN_RULES",
    "REGISTER_RULES",
    "validate",
]
