"""Application configuration helpers."""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

_BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
_DOTENV_PATH = os.path.join(_BASE_DIR, ".env")

if os.path.exists(_DOTENV_PATH):
    load_dotenv(_DOTENV_PATH)


MIN_SECRET_LENGTH = 32
DEFAULT_TOKEN_EXPIRY_HOURS = 24
DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://localhost:5173"


class ConfigError(RuntimeError):
    """Raised when configuration values are missing or invalid."""


@dataclass(frozen=True)
class JwtSettings:
    issuer: str
    audience: str
    secret_key: str
    expiry_hours: int = DEFAULT_TOKEN_EXPIRY_HOURS
    algorithm: str = "HS256"


_MONGO_URI_CACHE = None
_DB_NAME_CACHE = None
_JWT_SETTINGS_CACHE = None


def get_mongo_uri():
    """Return the MongoDB connection string from the environment."""

    global _MONGO_URI_CACHE

    if _MONGO_URI_CACHE:
        return _MONGO_URI_CACHE

    uri = os.getenv("MONGODB_URI")
    if not uri:
        raise ConfigError("MONGODB_URI is not set. Define it in backend/.env.")

    _MONGO_URI_CACHE = uri
    return uri


def get_db_name():
    """Return the database name derived from the MongoDB URI or env var."""

    global _DB_NAME_CACHE

    if _DB_NAME_CACHE:
        return _DB_NAME_CACHE

    db_name = os.getenv("MONGODB_DB")
    if db_name:
        _DB_NAME_CACHE = db_name
        return db_name

    uri = get_mongo_uri()
    main = uri.split("?", 1)[0].rstrip("/")
    if not main:
        raise ConfigError(
            "Database name not found. Provide it via MONGODB_URI or MONGODB_DB."
        )

    if "://" in main:
        after_scheme = main.split("://", 1)[1]
    else:
        after_scheme = main

    if "/" not in after_scheme:
        raise ConfigError(
            "Database name not found. Provide it via MONGODB_URI or MONGODB_DB."
        )

    candidate = after_scheme.split("/", 1)[1]
    if not candidate:
        raise ConfigError(
            "Database name not found. Provide it via MONGODB_URI or MONGODB_DB."
        )

    _DB_NAME_CACHE = candidate
    return candidate


def get_jwt_settings() -> JwtSettings:
    """Return the token signing settings, validating them on first use."""

    global _JWT_SETTINGS_CACHE

    if _JWT_SETTINGS_CACHE is not None:
        return _JWT_SETTINGS_CACHE

    issuer = (os.getenv("JWT_ISSUER") or "").strip()
    audience = (os.getenv("JWT_AUDIENCE") or "").strip()
    secret_key = os.getenv("JWT_SECRET_KEY") or ""

    if not issuer:
        raise ConfigError("JWT_ISSUER is required.")
    if not audience:
        raise ConfigError("JWT_AUDIENCE is required.")
    if not secret_key.strip():
        raise ConfigError("JWT_SECRET_KEY is required.")
    if len(secret_key) < MIN_SECRET_LENGTH:
        raise ConfigError(
            f"JWT_SECRET_KEY must be at least {MIN_SECRET_LENGTH} characters long."
        )

    raw_expiry = os.getenv("JWT_EXPIRY_HOURS")
    if raw_expiry in (None, ""):
        expiry_hours = DEFAULT_TOKEN_EXPIRY_HOURS
    else:
        try:
            expiry_hours = int(raw_expiry)
        except ValueError:
            raise ConfigError("JWT_EXPIRY_HOURS must be an integer.") from None
        if expiry_hours <= 0:
            raise ConfigError("JWT_EXPIRY_HOURS must be positive.")

    _JWT_SETTINGS_CACHE = JwtSettings(
        issuer=issuer,
        audience=audience,
        secret_key=secret_key,
        expiry_hours=expiry_hours,
    )
    return _JWT_SETTINGS_CACHE


def seed_on_startup() -> bool:
    value = os.getenv("SEED_ON_STARTUP", "true").strip().lower()
    return value not in {"0", "false", "no", "off"}


def get_cors_origins() -> list[str]:
    """Origins allowed to call the API with credentials (comma-separated)."""

    raw = os.getenv("CORS_ORIGINS", DEFAULT_CORS_ORIGINS)
    origins = [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]
    if "*" in origins:
        raise ConfigError("CORS_ORIGINS must list explicit origins, not '*'.")
    return origins


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"


def reset_cache() -> None:
    """Forget cached values so the next getter call re-reads the environment."""

    global _MONGO_URI_CACHE, _DB_NAME_CACHE, _JWT_SETTINGS_CACHE

    _MONGO_URI_CACHE = None
    _DB_NAME_CACHE = None
    _JWT_SETTINGS_CACHE = None


__all__ = [
    "ConfigError",
    "JwtSettings",
    "get_cors_origins",
    "get_db_name",
    "get_jwt_settings",
    "get_log_level",
    "get_mongo_uri",
    "reset_cache",
    "seed_on_startup",
]
