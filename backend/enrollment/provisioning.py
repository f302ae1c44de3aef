"""Find-or-create local students from an authenticated identity's claims."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from pymongo.errors import DuplicateKeyError

from .db import get_students_collection
from .students import ROLE_ADMIN, ROLE_STUDENT, build_student

ClaimValue = Union[str, Sequence[str]]
Claims = Mapping[str, ClaimValue]

_WS_CLAIMS = "http://schemas.xmlsoap.org/ws/2005/05/identity/claims"
EMAIL_URI = f"{_WS_CLAIMS}/emailaddress"
GIVEN_NAME_URI = f"{_WS_CLAIMS}/givenname"
SURNAME_URI = f"{_WS_CLAIMS}/surname"
NAME_URI = f"{_WS_CLAIMS}/name"
ROLE_URI = "http://schemas.microsoft.com/ws/2008/06/identity/claims/role"

EMAIL_CLAIMS = (EMAIL_URI, "email", "preferred_username")
GIVEN_NAME_CLAIMS = (GIVEN_NAME_URI, "given_name", "first_name", "FirstName")
SURNAME_CLAIMS = (SURNAME_URI, "family_name", "last_name", "LastName")
NAME_CLAIMS = (NAME_URI, "name")
ROLE_CLAIMS = (ROLE_URI, "role", "roles")

FALLBACK_LAST_NAME = "User"

logger = logging.getLogger(__name__)


def _values(claims: Claims, claim_type: str) -> List[str]:
    value = claims.get(claim_type)
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value if item is not None]


def find_first(claims: Claims, claim_types: Iterable[str]) -> Optional[str]:
    """Return the first value of the first claim type present in ``claims``."""

    for claim_type in claim_types:
        values = _values(claims, claim_type)
        if values:
            return values[0]
    return None


def _name_parts(claims: Claims) -> List[str]:
    name = find_first(claims, NAME_CLAIMS)
    if not name or not name.strip():
        return []
    return name.split()


def resolve_email(claims: Claims) -> Optional[str]:
    email = find_first(claims, EMAIL_CLAIMS)
    if email is None or not email.strip():
        return None
    return email


def resolve_names(claims: Claims, email: str) -> tuple[str, str]:
    parts = _name_parts(claims)

    first_name = find_first(claims, GIVEN_NAME_CLAIMS)
    if first_name is None and parts:
        first_name = parts[0]

    last_name = find_first(claims, SURNAME_CLAIMS)
    if last_name is None and len(parts) > 1:
        last_name = " ".join(parts[1:])

    if not first_name or not first_name.strip():
        first_name = email.split("@")[0]
    if not last_name or not last_name.strip():
        last_name = FALLBACK_LAST_NAME

    return first_name, last_name


def resolve_role(claims: Claims) -> str:
    for claim_type in ROLE_CLAIMS:
        values = _values(claims, claim_type)
        if not values:
            continue
        tokens = [token.lower() for value in values for token in value.split()]
        if ROLE_ADMIN.lower() in tokens:
            return ROLE_ADMIN
        return ROLE_STUDENT
    return ROLE_STUDENT


def provision_student(claims: Claims) -> Optional[Dict[str, Any]]:
    """Return the student matching the email claim, creating it if needed.

    Returns ``None`` when the claims carry no usable email. Calling this twice
    with the same email yields the same record.
    """

    email = resolve_email(claims)
    if email is None:
        logger.warning("Cannot provision user: no email claim found")
        return None

    collection = get_students_collection()
    existing = collection.find_one({"email": email})
    if existing is not None:
        return existing

    first_name, last_name = resolve_names(claims, email)
    student = build_student(
        email, first_name, last_name, password_hash="", role=resolve_role(claims)
    )

    try:
        collection.insert_one(student)
    except DuplicateKeyError:
        # Another request provisioned the same email first.
        return collection.find_one({"email": email})

    logger.info("Auto-provisioned student %s from identity claims", student["_id"])
    return student


__all__ = [
    "Claims",
    "find_first",
    "provision_student",
    "resolve_email",
    "resolve_names",
    "resolve_role",
]
