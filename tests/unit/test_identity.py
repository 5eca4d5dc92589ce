"""Unit tests for the identity resolver."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest

from donvie_api.auth.external_claims import ExternalClaims
from donvie_api.auth.identity import IdentityResolver, UserCandidate
from donvie_api.auth.passwords import verify_password
from donvie_api.auth.session_store import SqlSessionStore
from donvie_api.db.models import Association, AuthSession, User
from donvie_api.errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from donvie_api.schemas import RegisterRequest
from tests.helpers import association_payload


def _claims(sub: str = "sb-1", email: str = "ext@example.fr") -> ExternalClaims:
    return ExternalClaims(
        sub=sub,
        email=email,
        first_name="Ada",
        last_name="Lovelace",
        profile_image_url="https://img.example/ada.png",
        provider="google",
    )


def _register(db_session, **overrides) -> User:
    fields = {
        "email": "jane@example.fr",
        "password": "correct-horse-battery",
        "firstName": "Jane",
        "lastName": "Doe",
    }
    fields.update(overrides)
    return IdentityResolver(db_session).register_local_user(RegisterRequest.model_validate(fields))


class TestResolve:
    def test_no_credentials_is_anonymous(self, db_session):
        assert IdentityResolver(db_session).resolve() is None

    def test_session_token_resolves_user(self, db_session):
        user = _register(db_session)
        token = SqlSessionStore(db_session).issue(user.id)

        principal = IdentityResolver(db_session).resolve(session_token=token)

        assert principal.id == user.id
        assert principal.email == "jane@example.fr"
        assert principal.auth_provider == "email"

    def test_session_takes_priority_over_bearer(self, db_session):
        user = _register(db_session)
        token = SqlSessionStore(db_session).issue(user.id)

        with patch("donvie_api.auth.identity.verify_bearer_token", return_value=_claims()) as verify:
            principal = IdentityResolver(db_session).resolve(session_token=token, bearer_token="jwt")

        assert principal.id == user.id
        verify.assert_not_called()

    def test_unknown_session_falls_back_to_bearer(self, db_session, external_user):
        claims = _claims(sub=external_user.id, email=external_user.email)
        with patch("donvie_api.auth.identity.verify_bearer_token", return_value=claims):
            principal = IdentityResolver(db_session).resolve(session_token="stale", bearer_token="jwt")

        assert principal.id == external_user.id

    def test_expired_session_is_anonymous(self, db_session):
        user = _register(db_session)
        store = SqlSessionStore(db_session, ttl=timedelta(days=1))
        token = store.issue(user.id)
        row = db_session.query(AuthSession).one()
        row.expires_at = datetime.now(timezone.utc) - timedelta(seconds=1)
        db_session.commit()

        assert IdentityResolver(db_session, sessions=store).resolve(session_token=token) is None

    def test_dangling_session_is_anonymous(self, db_session):
        sessions = MagicMock()
        sessions.resolve.return_value = "deleted-user"

        assert IdentityResolver(db_session, sessions=sessions).resolve(session_token="t") is None

    def test_bearer_bootstraps_user_once(self, db_session):
        with patch("donvie_api.auth.identity.verify_bearer_token", return_value=_claims()):
            first = IdentityResolver(db_session).resolve(bearer_token="jwt")
            second = IdentityResolver(db_session).resolve(bearer_token="jwt")

        assert first == second
        assert db_session.query(User).count() == 1
        stored = db_session.get(User, "sb-1")
        assert stored.auth_provider == "google"
        assert stored.profile_image_url == "https://img.example/ada.png"

    def test_bearer_email_taken_by_other_account_is_anonymous(self, db_session):
        _register(db_session, email="ext@example.fr")

        with patch("donvie_api.auth.identity.verify_bearer_token", return_value=_claims()):
            assert IdentityResolver(db_session).resolve(bearer_token="jwt") is None

        assert db_session.get(User, "sb-1") is None

    def test_invalid_bearer_is_anonymous(self, db_session):
        with patch("donvie_api.auth.identity.verify_bearer_token", return_value=None):
            assert IdentityResolver(db_session).resolve(bearer_token="bad") is None


class TestUpsertUser:
    def test_insert_then_merge_non_null_fields(self, db_session):
        resolver = IdentityResolver(db_session)
        created = resolver.upsert_user(UserCandidate(id="u-1", email="A@Example.fr", first_name="Ann"))
        first_updated_at = created.updated_at

        merged = resolver.upsert_user(UserCandidate(id="u-1", last_name="Smith"))

        assert merged.email == "a@example.fr"
        assert merged.first_name == "Ann"
        assert merged.last_name == "Smith"
        assert merged.updated_at >= first_updated_at
        assert db_session.query(User).count() == 1

    def test_email_conflict(self, db_session):
        resolver = IdentityResolver(db_session)
        resolver.upsert_user(UserCandidate(id="u-1", email="a@example.fr"))

        with pytest.raises(ConflictError):
            resolver.upsert_user(UserCandidate(id="u-2", email="A@example.fr"))


class TestRegisterLocalUser:
    def test_password_is_hashed(self, db_session):
        user = _register(db_session)

        assert user.password_hash != "correct-horse-battery"
        assert verify_password("correct-horse-battery", user.password_hash)
        assert user.auth_provider == "email"

    def test_association_account_creates_both(self, db_session):
        user = _register(db_session, userType="association", association=association_payload())

        association = db_session.query(Association).one()
        assert user.association_id == association.id
        assert user.user_type == "association"

    def test_donor_with_association_payload_rejected(self, db_session):
        with pytest.raises(ValidationError):
            _register(db_session, userType="donor", association=association_payload())

        assert db_session.query(Association).count() == 0

    def test_duplicate_email(self, db_session):
        _register(db_session)

        with pytest.raises(ConflictError):
            _register(db_session, email="JANE@example.fr")


class TestAuthenticateLocal:
    def test_success(self, db_session):
        user = _register(db_session)

        assert IdentityResolver(db_session).authenticate_local("jane@example.fr", "correct-horse-battery").id == user.id

    @pytest.mark.parametrize(
        "email,password",
        [("jane@example.fr", "wrong-password"), ("nobody@example.fr", "correct-horse-battery")],
    )
    def test_failure(self, db_session, email, password):
        _register(db_session)

        with pytest.raises(UnauthorizedError):
            IdentityResolver(db_session).authenticate_local(email, password)


class TestUpdateUserType:
    def test_set_and_repeat(self, db_session):
        user = _register(db_session)
        resolver = IdentityResolver(db_session)

        resolver.update_user_type(user.id, "association")
        resolver.update_user_type(user.id, "association")

        assert db_session.get(User, user.id).user_type == "association"

    def test_unknown_user(self, db_session):
        with pytest.raises(NotFoundError):
            IdentityResolver(db_session).update_user_type("ghost", "donor")

    def test_owner_cannot_leave_association_type(self, db_session):
        user = _register(db_session, userType="association", association=association_payload())

        with pytest.raises(ConflictError):
            IdentityResolver(db_session).update_user_type(user.id, "donor")
