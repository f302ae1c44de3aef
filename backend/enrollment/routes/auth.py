"""Account endpoints plus the bearer-token decorators used by every blueprint."""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Dict, TypeVar, cast

from flask import Blueprint, g, jsonify, request

from ..errors import AuthenticationError, domain_problem, problem, validation_problem
from ..provisioning import provision_student
from ..students import ROLE_ADMIN, ROLE_STUDENT, authenticate, register_student
from ..tokens import SUBJECT_CLAIM, decode_token, issue_token, roles_from_claims
from ..validation import LOGIN_RULES, REGISTER_RULES, validate

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

_F = TypeVar("_F", bound=Callable[..., Any])

# Policy name -> role the caller must hold.
POLICIES: Dict[str, str] = {
    "CanEnroll": ROLE_STUDENT,
    "CanManageCourses": ROLE_ADMIN,
}


def _bearer_token() -> str:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


def token_required(func: _F) -> _F:
    """Reject requests without a valid bearer token; expose claims on ``g``."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        try:
            claims = decode_token(_bearer_token())
        except AuthenticationError as exc:
            return problem("Unauthorized", 401, exc.detail)
        g.claims = claims
        g.student_id = str(claims.get(SUBJECT_CLAIM, ""))
        return func(*args, **kwargs)

    return cast(_F, wrapper)


def require_policy(name: str) -> Callable[[_F], _F]:
    """Require a valid token whose role claim satisfies the named policy."""

    role = POLICIES[name]

    def decorator(func: _F) -> _F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            if role not in roles_from_claims(g.claims):
                return problem("Forbidden", 403)
            return func(*args, **kwargs)

        return cast(_F, token_required(wrapper))

    return decorator


@auth_bp.post("/register")
def register():
    cleaned, errors = validate(request.get_json(silent=True), REGISTER_RULES)
    if errors:
        return validation_problem(errors)

    result = register_student(
        cleaned["email"], cleaned["firstName"], cleaned["lastName"], cleaned["password"]
    )
    if not result.ok:
        return domain_problem(result.error)

    student = result.value
    return jsonify(
        {
            "id": student["_id"],
            "email": student["email"],
            "firstName": student["first_name"],
            "lastName": student["last_name"],
        }
    )


@auth_bp.post("/login")
def login():
    cleaned, errors = validate(request.get_json(silent=True), LOGIN_RULES)
    if errors:
        return validation_problem(errors)

    student, reason = authenticate(cleaned["email"], cleaned["password"])
    if student is None:
        return problem("Invalid credentials", 401, reason)

    token = issue_token(
        student["_id"],
        student["email"],
        student["first_name"],
        student["last_name"],
        [student.get("role") or ROLE_STUDENT],
    )
    return jsonify(
        {
            "token": token,
            "id": student["_id"],
            "email": student["email"],
            "firstName": student["first_name"],
            "lastName": student["last_name"],
        }
    )


@auth_bp.post("/provision")
@token_required
def provision():
    student = provision_student(g.claims)
    if student is None:
        return problem(
            "Could not provision user",
            400,
            "Could not provision user from authentication claims.",
        )

    return jsonify(
        {
            "id": student["_id"],
            "email": student["email"],
            "firstName": student["first_name"],
            "lastName": student["last_name"],
            "role": student.get("role") or ROLE_STUDENT,
        }
    )


__all__ = ["POLICIES", "auth_bp", "require_policy", "token_required"]
