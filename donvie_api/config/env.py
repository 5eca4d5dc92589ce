"""Environment variable resolution utilities.

Canonical env names + fail-fast validation in production.
"""

import os
from typing import Optional

_DEV_SESSION_SECRET = "donvie-dev-session-secret-change-me"

DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5000",
    "http://localhost:8000",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5000",
    "http://127.0.0.1:8000",
]


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def get_donvie_env() -> str:
    """Get environment name.

    Priority:
    1. DONVIE_ENV (canonical)
    2. NODE_ENV (legacy deployment compat)
    3. Default: "local"

    Returns:
        Environment name (lowercase)
    """
    return (os.getenv("DONVIE_ENV") or os.getenv("NODE_ENV") or "local").lower()


def is_production_env() -> bool:
    """True when DONVIE_ENV (or NODE_ENV) is prod/production."""
    return get_donvie_env() in {"prod", "production"}


def get_database_url() -> str:
    """Get database URL.

    Production fail-fast: DATABASE_URL is mandatory in prod/production.
    Development falls back to a local SQLite file.

    Raises:
        RuntimeError: If DATABASE_URL is missing in production
    """
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    if is_production_env():
        raise RuntimeError(
            "DATABASE_URL environment variable is required in production (DONVIE_ENV=prod/production). "
            "Check deployment configuration and secrets injection."
        )
    return "sqlite:///./donvie.db"


def get_session_secret() -> str:
    """Get the HMAC key used to hash session tokens.

    Raises:
        RuntimeError: If SESSION_SECRET is missing in production
    """
    secret = os.getenv("SESSION_SECRET")
    if secret:
        return secret
    if is_production_env():
        raise RuntimeError(
            "SESSION_SECRET is required in production. "
            "Generate with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
        )
    return _DEV_SESSION_SECRET


def get_session_cookie_name() -> str:
    return os.getenv("SESSION_COOKIE_NAME", "donvie_session")


def get_session_days() -> int:
    """Session lifetime in days (SESSION_DAYS, default 7, minimum 1)."""
    raw = os.getenv("SESSION_DAYS", "7")
    try:
        days = int(raw)
    except ValueError:
        raise ValueError(f"Invalid SESSION_DAYS value: {raw!r}. Must be an integer.") from None
    return max(days, 1)


def is_cookie_secure() -> bool:
    """Secure flag on the session cookie; defaults to on in production only."""
    return _env_flag("COOKIE_SECURE", default=is_production_env())


def get_session_backend() -> str:
    """Session store backend: "sql" (default) or "redis".

    Raises:
        ValueError: On any other value
    """
    backend = os.getenv("SESSION_BACKEND", "sql").lower()
    if backend not in {"sql", "redis"}:
        raise ValueError(
            f"Invalid SESSION_BACKEND value: {backend}. "
            "Must be 'sql' or 'redis'."
        )
    return backend


def is_external_auth_configured() -> bool:
    """External claims verification is enabled only when Supabase is configured."""
    return bool(
        os.getenv("SUPABASE_URL")
        and (os.getenv("SB_PUBLISHABLE_KEY") or os.getenv("SUPABASE_ANON_KEY"))
    )


def get_external_auth_provider() -> str:
    """Provider label stored on users created from external claims."""
    return os.getenv("EXTERNAL_AUTH_PROVIDER", "replit").lower()


def get_cors_origins() -> list[str]:
    """Explicit CORS allowlist (comma-separated); localhost variants otherwise."""
    raw = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if raw:
        return [origin.strip() for origin in raw.split(",") if origin.strip()]
    return list(DEFAULT_CORS_ORIGINS)


def should_seed_demo_data() -> bool:
    return _env_flag("DONVIE_SEED", default=not is_production_env())


def get_log_level(default: Optional[str] = None) -> str:
    return (os.getenv("LOG_LEVEL") or default or "INFO").upper()


def json_logs_enabled() -> bool:
    return _env_flag("DONVIE_JSON_LOGS", default=True)
