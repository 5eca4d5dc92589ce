"""Identity Resolver.

Reconciles the two authentication schemes into one Principal:

FLOW:
1. Local session cookie (email/password login) is checked first
2. Otherwise an external Bearer JWT is verified via Supabase
3. The first scheme that yields a user id wins; that id must match a
   stored User or the request is treated as anonymous
4. resolve_principal stores the result on request.state.principal before
   any handler runs; attach_principal binds it to the log context

Resolution never raises: missing or bad credentials mean "anonymous".
Handlers that need a caller depend on require_principal (401) or
require_association_owner (403).
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from donvie_api.auth.external_claims import ExternalClaims, verify_bearer_token
from donvie_api.auth.passwords import hash_password, verify_password
from donvie_api.auth.principal import Principal
from donvie_api.auth.session_store import SessionStore, get_session_store
from donvie_api.config.env import get_session_cookie_name
from donvie_api.context import user_id_var
from donvie_api.db.models import User
from donvie_api.db.repo_users import UserRepository
from donvie_api.db.session import get_db
from donvie_api.errors import (
    ConflictError,
    ForbiddenError,
    UnauthorizedError,
    ValidationError,
    user_not_found,
)
from donvie_api.ledger.directory import AssociationDirectory
from donvie_api.schemas import RegisterRequest

logger = logging.getLogger(__name__)

LOCAL_PROVIDER = "email"


@dataclass
class UserCandidate:
    """Fields offered to upsert_user; None means "leave unchanged"."""

    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    user_type: Optional[str] = None
    association_id: Optional[int] = None
    auth_provider: Optional[str] = None
    password_hash: Optional[str] = None

    @classmethod
    def from_claims(cls, claims: ExternalClaims) -> "UserCandidate":
        return cls(
            id=claims.sub,
            email=claims.email,
            first_name=claims.first_name,
            last_name=claims.last_name,
            profile_image_url=claims.profile_image_url,
            auth_provider=claims.provider,
        )


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() != "bearer" or not credentials.strip():
        return None
    return credentials.strip()


class IdentityResolver:
    """Identity operations bound to one database session."""

    def __init__(self, db: Session, sessions: Optional[SessionStore] = None):
        self.db = db
        self.users = UserRepository(db)
        self.sessions = sessions if sessions is not None else get_session_store(db)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(
        self,
        session_token: Optional[str] = None,
        bearer_token: Optional[str] = None,
    ) -> Optional[Principal]:
        """Resolve credentials to a Principal, or None for anonymous."""
        if session_token:
            user_id = self.sessions.resolve(session_token)
            if user_id:
                user = self.users.get_by_id(user_id)
                if user is None:
                    logger.warning(
                        "Session refers to a missing user",
                        extra={"event": "auth.session.dangling"},
                    )
                    return None
                return Principal.from_user(user)

        if bearer_token:
            claims = verify_bearer_token(bearer_token)
            if claims is not None:
                user = self.users.get_by_id(claims.sub)
                if user is None:
                    # First request from this external identity: bootstrap the user row
                    try:
                        user = self.upsert_user(UserCandidate.from_claims(claims))
                    except ConflictError:
                        logger.warning(
                            "External identity email already used by another account",
                            extra={"event": "auth.external.email_conflict"},
                        )
                        return None
                return Principal.from_user(user)

        return None

    def resolve_request(self, request: Request) -> Optional[Principal]:
        return self.resolve(
            session_token=request.cookies.get(get_session_cookie_name()),
            bearer_token=_bearer_token(request),
        )

    # ------------------------------------------------------------------
    # User lifecycle
    # ------------------------------------------------------------------

    def upsert_user(self, candidate: UserCandidate, commit: bool = True) -> User:
        """Insert a user, or merge non-null fields into the existing row.

        Last write wins for each provided field; updated_at is refreshed.

        Raises:
            ConflictError: The email belongs to a different user
        """
        email = candidate.email.strip().lower() if candidate.email else None
        if email:
            owner = self.users.get_by_email(email)
            if owner is not None and owner.id != candidate.id:
                raise ConflictError("An account with this email already exists")

        now = datetime.now(timezone.utc)
        user = self.users.get_by_id(candidate.id)

        try:
            if user is None:
                user = User(
                    id=candidate.id,
                    email=email,
                    first_name=candidate.first_name,
                    last_name=candidate.last_name,
                    profile_image_url=candidate.profile_image_url,
                    user_type=candidate.user_type,
                    association_id=candidate.association_id,
                    auth_provider=candidate.auth_provider or "replit",
                    password_hash=candidate.password_hash,
                    created_at=now,
                    updated_at=now,
                )
                self.users.add(user)
                event = "user.created"
            else:
                merged = {
                    "email": email,
                    "first_name": candidate.first_name,
                    "last_name": candidate.last_name,
                    "profile_image_url": candidate.profile_image_url,
                    "user_type": candidate.user_type,
                    "association_id": candidate.association_id,
                    "auth_provider": candidate.auth_provider,
                    "password_hash": candidate.password_hash,
                }
                for field, value in merged.items():
                    if value is not None:
                        setattr(user, field, value)
                user.updated_at = now
                self.db.flush()
                event = "user.updated"

            if commit:
                self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("An account with this email already exists") from None

        logger.info("User upserted", extra={"event": event, "auth_provider": user.auth_provider})
        return user

    def register_local_user(self, data: RegisterRequest) -> User:
        """Email/password signup.

        userType="association" (or an association payload) creates the user
        and its association in one transaction.

        Raises:
            ConflictError: Email already registered
            ValidationError: Inconsistent userType / association payload
        """
        user_type = data.user_type or ("association" if data.association is not None else None)
        if user_type == "association" and data.association is None:
            raise ValidationError.for_field(
                "association", "Association details are required for association accounts"
            )
        if user_type == "donor" and data.association is not None:
            raise ValidationError.for_field(
                "userType", "Donor accounts cannot register an association"
            )
        if self.users.get_by_email(data.email) is not None:
            raise ConflictError("An account with this email already exists")

        try:
            association_id = None
            if data.association is not None:
                association = AssociationDirectory(self.db).create(data.association, commit=False)
                association_id = association.id

            user = self.upsert_user(
                UserCandidate(
                    id=str(uuid.uuid4()),
                    email=data.email,
                    first_name=data.first_name,
                    last_name=data.last_name,
                    user_type=user_type,
                    association_id=association_id,
                    auth_provider=LOCAL_PROVIDER,
                    password_hash=hash_password(data.password),
                ),
                commit=False,
            )
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("An account with this email already exists") from None
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(user)
        logger.info(
            "Local account registered",
            extra={"event": "auth.register", "user_type": user.user_type},
        )
        return user

    def authenticate_local(self, email: str, password: str) -> User:
        """Check email/password credentials.

        Raises:
            UnauthorizedError: Same message for unknown email, no local
                password, or wrong password
        """
        user = self.users.get_by_email(email)
        if user is None or not user.password_hash or not verify_password(password, user.password_hash):
            logger.warning("Local login failed", extra={"event": "auth.login.failed"})
            raise UnauthorizedError("Invalid email or password")
        return user

    def update_user_type(self, user_id: str, user_type: str) -> None:
        """Set userType (onboarding). Idempotent.

        Raises:
            NotFoundError: User does not exist
            ConflictError: Leaving "association" while owning one
        """
        user = self.users.get_by_id(user_id)
        if user is None:
            raise user_not_found(user_id)
        if user.user_type == user_type:
            return
        if user.association_id is not None and user_type != "association":
            raise ConflictError("This account manages an association and must stay an association account")

        user.user_type = user_type
        user.updated_at = datetime.now(timezone.utc)
        self.db.commit()
        logger.info("User type updated", extra={"event": "user.type_updated", "user_type": user_type})


# ----------------------------------------------------------------------
# FastAPI dependencies
# ----------------------------------------------------------------------


def resolve_principal(request: Request, db: Session = Depends(get_db)) -> Optional[Principal]:
    """Resolve the caller in the threadpool (database and Supabase calls block).

    The lookup transaction is closed before the handler runs so the SQLite
    write lock is not held across the request.
    """
    try:
        principal = IdentityResolver(db).resolve_request(request)
    finally:
        db.commit()
    request.state.principal = principal
    return principal


async def attach_principal(
    principal: Optional[Principal] = Depends(resolve_principal),
) -> Optional[Principal]:
    """Application-wide dependency: binds the caller to the log context.

    Runs on the request task, so user_id_var reaches the handler's logs.
    Cached per request, so handlers depending on it again get the same value.
    """
    if principal is not None:
        user_id_var.set(principal.id)
    return principal


def require_principal(
    principal: Optional[Principal] = Depends(attach_principal),
) -> Principal:
    """Raises UnauthorizedError (401) for anonymous requests."""
    if principal is None:
        raise UnauthorizedError("Authentication required. Please log in first.")
    return principal


def require_association_owner(
    principal: Principal = Depends(require_principal),
) -> Principal:
    """Raises ForbiddenError (403) when the caller manages no association."""
    if principal.association_id is None:
        logger.warning(
            "Association owner required",
            extra={"event": "auth.insufficient_permissions", "user_type": principal.user_type},
        )
        raise ForbiddenError("This operation requires an association account")
    return principal
