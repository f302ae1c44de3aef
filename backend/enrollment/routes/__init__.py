"""Application route blueprints and helpers."""

from .auth import auth_bp, require_policy, token_required
from .courses import courses_bp
from .enrollments import enrollments_bp

__all__ = [
    "auth_bp",
    "courses_bp",
    "enrollments_bp",
    "require_policy",
    "token_required",
]
