"""Domain outcomes shared by the services and the HTTP layer."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, TypeVar

from flask import jsonify

T = TypeVar("T")


class ErrorKind(enum.Enum):
    NOT_FOUND = "not_found"
    DUPLICATE_EMAIL = "duplicate_email"
    ALREADY_ENROLLED = "already_enrolled"
    COURSE_FULL = "course_full"
    COURSE_HAS_ENROLLMENTS = "course_has_enrollments"
    CAPACITY_BELOW_ENROLLMENTS = "capacity_below_enrollments"


# Conflicts answer 400, not 409.
_STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.DUPLICATE_EMAIL: 400,
    ErrorKind.ALREADY_ENROLLED: 400,
    ErrorKind.COURSE_FULL: 400,
    ErrorKind.COURSE_HAS_ENROLLMENTS: 400,
    ErrorKind.CAPACITY_BELOW_ENROLLMENTS: 400,
}


@dataclass(frozen=True)
class DomainError:
    kind: ErrorKind
    title: str
    detail: Optional[str] = None

    @property
    def status(self) -> int:
        return _STATUS_BY_KIND[self.kind]


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a value or a domain error, never both."""

    value: Optional[T] = None
    error: Optional[DomainError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(
        cls, kind: ErrorKind, title: str, detail: Optional[str] = None
    ) -> "Result[T]":
        return cls(error=DomainError(kind=kind, title=title, detail=detail))


class AuthenticationError(Exception):
    """Raised when a bearer credential is missing or cannot be trusted."""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


def problem(
    title: str,
    status: int,
    detail: Optional[str] = None,
    errors: Optional[Dict[str, List[str]]] = None,
    **extensions: Any,
):
    """Build a problem-details JSON response tuple."""

    payload: Dict[str, Any] = {"title": title, "statusCode": status}
    if detail:
        payload["detail"] = detail
    if errors:
        payload["errors"] = errors
    payload.update(extensions)
    return jsonify(payload), status


def validation_problem(errors: Dict[str, List[str]]):
    return problem("One or more validation errors occurred.", 400, errors=errors)


def domain_problem(error: DomainError):
    return problem(error.title, error.status, error.detail)


__all__ = [
    "AuthenticationError",
    "DomainError",
    "ErrorKind",
    "Result",
    "domain_problem",
    "problem",
    "validation_problem",
]
