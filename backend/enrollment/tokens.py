"""JWT issuing and verification."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Sequence

import jwt

from .config import JwtSettings, get_jwt_settings
from .errors import AuthenticationError

SUBJECT_CLAIM = "sub"
EMAIL_CLAIM = "email"
NAME_CLAIM = "name"
ROLE_CLAIM = "role"
FIRST_NAME_CLAIM = "first_name"
LAST_NAME_CLAIM = "last_name"


def issue_token(
    student_id: str,
    email: str,
    first_name: str,
    last_name: str,
    roles: Sequence[str],
    *,
    settings: JwtSettings | None = None,
) -> str:
    """Mint a signed bearer token for a student."""

    settings = settings or get_jwt_settings()
    now = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        SUBJECT_CLAIM: str(student_id),
        EMAIL_CLAIM: email,
        NAME_CLAIM: f"{first_name} {last_name}".strip(),
        FIRST_NAME_CLAIM: first_name,
        LAST_NAME_CLAIM: last_name,
        ROLE_CLAIM: roles[0] if len(roles) == 1 else list(roles),
        "iss": settings.issuer,
        "aud": settings.audience,
        "iat": now,
        "exp": now + timedelta(hours=settings.expiry_hours),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def decode_token(token: str, *, settings: JwtSettings | None = None) -> Dict[str, Any]:
    """Verify signature, expiry, issuer and audience and return the claims."""

    if not token:
        raise AuthenticationError("Token is missing.")

    settings = settings or get_jwt_settings()
    try:
        return jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            audience=settings.audience,
            issuer=settings.issuer,
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired.") from None
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token.") from None


def roles_from_claims(claims: Dict[str, Any]) -> list[str]:
    value = claims.get(ROLE_CLAIM)
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value]


__all__ = [
    "EMAIL_CLAIM",
    "FIRST_NAME_CLAIM",
    "LAST_NAME_CLAIM",
    "NAME_CLAIM",
    "ROLE_CLAIM",
    "SUBJECT_CLAIM",
    "decode_token",
    "issue_token",
    "roles_from_claims",
]
