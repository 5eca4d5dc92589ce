"""External Bearer token verification (Supabase mocked)."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from donvie_api.auth.external_claims import claims_from_user, verify_bearer_token


@pytest.fixture
def supabase_env(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.co")
    monkeypatch.setenv("SB_PUBLISHABLE_KEY", "sb_publishable_test")
    monkeypatch.delenv("EXTERNAL_AUTH_PROVIDER", raising=False)


def _supabase_user(**overrides):
    fields = {
        "id": "5f0c-uuid",
        "email": "ada@example.fr",
        "user_metadata": {"full_name": "Ada King Lovelace", "avatar_url": "https://img/ada.png"},
        "app_metadata": {"provider": "google"},
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


def test_claims_from_user_splits_full_name():
    claims = claims_from_user(_supabase_user())

    assert claims.sub == "5f0c-uuid"
    assert claims.first_name == "Ada"
    assert claims.last_name == "King Lovelace"
    assert claims.profile_image_url == "https://img/ada.png"
    assert claims.provider == "google"


def test_explicit_names_win_over_full_name():
    user = _supabase_user(user_metadata={"first_name": "Ada", "last_name": "Byron", "full_name": "X Y"})

    claims = claims_from_user(user)

    assert (claims.first_name, claims.last_name) == ("Ada", "Byron")


def test_unknown_provider_uses_configured_label(monkeypatch):
    monkeypatch.setenv("EXTERNAL_AUTH_PROVIDER", "Replit")

    claims = claims_from_user(_supabase_user(app_metadata={"provider": "github"}))

    assert claims.provider == "replit"


def test_verify_disabled_without_configuration(monkeypatch):
    monkeypatch.delenv("SUPABASE_URL", raising=False)

    with patch("donvie_api.auth.external_claims.get_supabase_client") as get_client:
        assert verify_bearer_token("jwt") is None

    get_client.assert_not_called()


def test_verify_valid_token(supabase_env):
    client = MagicMock()
    client.auth.get_user.return_value = SimpleNamespace(user=_supabase_user())

    with patch("donvie_api.auth.external_claims.get_supabase_client", return_value=client):
        claims = verify_bearer_token("jwt")

    client.auth.get_user.assert_called_once_with("jwt")
    assert claims.email == "ada@example.fr"


def test_verify_rejected_token_never_raises(supabase_env):
    client = MagicMock()
    client.auth.get_user.side_effect = Exception("JWT expired")

    with patch("donvie_api.auth.external_claims.get_supabase_client", return_value=client):
        assert verify_bearer_token("jwt") is None


def test_verify_response_without_user(supabase_env):
    client = MagicMock()
    client.auth.get_user.return_value = SimpleNamespace(user=None)

    with patch("donvie_api.auth.external_claims.get_supabase_client", return_value=client):
        assert verify_bearer_token("jwt") is None
