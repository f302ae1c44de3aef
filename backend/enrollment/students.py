"""Identity store: student accounts and password credentials."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional, Tuple

from pymongo.errors import DuplicateKeyError
from werkzeug.security import check_password_hash, generate_password_hash

from .db import get_students_collection
from .errors import ErrorKind, Result

ROLE_STUDENT = "Student"
ROLE_ADMIN = "Admin"
ROLES = (ROLE_STUDENT, ROLE_ADMIN)

logger = logging.getLogger(__name__)


def new_id() -> str:
    return str(uuid.uuid4())


def find_student_by_email(email: str) -> Optional[Dict[str, Any]]:
    return get_students_collection().find_one({"email": email})


def find_student(student_id: str) -> Optional[Dict[str, Any]]:
    return get_students_collection().find_one({"_id": student_id})


def build_student(
    email: str,
    first_name: str,
    last_name: str,
    *,
    password_hash: str = "",
    role: str = ROLE_STUDENT,
    student_id: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "_id": student_id or new_id(),
        "email": email,
        "first_name": first_name,
        "last_name": last_name,
        "password_hash": password_hash,
        "role": role,
    }


def register_student(
    email: str, first_name: str, last_name: str, password: str
) -> Result[Dict[str, Any]]:
    """Create a password account; the unique email index settles races."""

    collection = get_students_collection()
    duplicate = Result.failure(ErrorKind.DUPLICATE_EMAIL, "Email already registered")

    if collection.find_one({"email": email}, projection={"_id": 1}):
        return duplicate

    document = build_student(
        email,
        first_name,
        last_name,
        password_hash=generate_password_hash(password),
    )
    try:
        collection.insert_one(document)
    except DuplicateKeyError:
        return duplicate

    logger.info("Registered student %s", document["_id"])
    return Result.success(document)


def authenticate(email: str, password: str) -> Tuple[Optional[Dict[str, Any]], str]:
    """Return ``(student, "")`` on success or ``(None, reason)`` otherwise."""

    student = find_student_by_email(email)
    if student is None:
        return None, (
            "You do not have a valid account. Please register for a new account."
        )

    password_hash = student.get("password_hash") or ""
    # Provisioned accounts carry no hash and cannot sign in with a password.
    if not password_hash or not check_password_hash(password_hash, password):
        return None, "Incorrect password. Please try again."

    return student, ""


__all__ = [
    "ROLES",
    "ROLE_ADMIN",
    "ROLE_STUDENT",
    "authenticate",
    "build_student",
    "find_student",
    "find_student_by_email",
    "new_id",
    "register_student",
]
