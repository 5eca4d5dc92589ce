"""Environment configuration guardrails."""

import pytest

from donvie_api.config.env import (
    get_cors_origins,
    get_database_url,
    get_donvie_env,
    get_session_backend,
    get_session_days,
    get_session_secret,
    is_cookie_secure,
    is_external_auth_configured,
    should_seed_demo_data,
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "DONVIE_ENV",
        "NODE_ENV",
        "DATABASE_URL",
        "SESSION_SECRET",
        "SESSION_DAYS",
        "SESSION_BACKEND",
        "COOKIE_SECURE",
        "CORS_ALLOWED_ORIGINS",
        "DONVIE_SEED",
        "SUPABASE_URL",
        "SB_PUBLISHABLE_KEY",
        "SUPABASE_ANON_KEY",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults_for_local_development(clean_env):
    assert get_donvie_env() == "local"
    assert get_database_url() == "sqlite:///./donvie.db"
    assert get_session_secret()
    assert get_session_days() == 7
    assert get_session_backend() == "sql"
    assert is_cookie_secure() is False
    assert should_seed_demo_data() is True
    assert "http://localhost:5000" in get_cors_origins()


def test_node_env_is_legacy_fallback(clean_env):
    clean_env.setenv("NODE_ENV", "Production")

    assert get_donvie_env() == "production"


def test_production_requires_database_url(clean_env):
    clean_env.setenv("DONVIE_ENV", "prod")

    with pytest.raises(RuntimeError, match="DATABASE_URL"):
        get_database_url()


def test_production_requires_session_secret(clean_env):
    clean_env.setenv("DONVIE_ENV", "production")

    with pytest.raises(RuntimeError, match="SESSION_SECRET"):
        get_session_secret()


def test_production_defaults(clean_env):
    clean_env.setenv("DONVIE_ENV", "production")

    assert is_cookie_secure() is True
    assert should_seed_demo_data() is False


def test_invalid_session_backend(clean_env):
    clean_env.setenv("SESSION_BACKEND", "memcached")

    with pytest.raises(ValueError, match="SESSION_BACKEND"):
        get_session_backend()


def test_invalid_session_days(clean_env):
    clean_env.setenv("SESSION_DAYS", "a week")

    with pytest.raises(ValueError):
        get_session_days()


def test_session_days_minimum(clean_env):
    clean_env.setenv("SESSION_DAYS", "0")

    assert get_session_days() == 1


def test_cors_allowlist(clean_env):
    clean_env.setenv("CORS_ALLOWED_ORIGINS", "https://donvie.fr, https://www.donvie.fr,")

    assert get_cors_origins() == ["https://donvie.fr", "https://www.donvie.fr"]


def test_external_auth_needs_url_and_key(clean_env):
    assert is_external_auth_configured() is False

    clean_env.setenv("SUPABASE_URL", "https://project.supabase.co")
    assert is_external_auth_configured() is False

    clean_env.setenv("SUPABASE_ANON_KEY", "anon")
    assert is_external_auth_configured() is True
