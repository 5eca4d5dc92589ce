"""Local login sessions.

The browser holds an opaque random token in an httponly cookie; the store
keeps only its HMAC (see auth.tokens). Two backends:
- sql (default): auth_sessions table
- redis: donvie:session:<hash> keys with a TTL
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

import redis
from sqlalchemy.orm import Session

from donvie_api.auth.tokens import generate_token, hash_token
from donvie_api.config.env import get_session_backend, get_session_days
from donvie_api.db.models import AuthSession
from donvie_api.db.redis_client import get_redis, redis_key

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    def issue(self, user_id: str, user_agent: Optional[str] = None) -> str: ...

    def resolve(self, raw_token: str) -> Optional[str]: ...

    def revoke(self, raw_token: str) -> None: ...


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlSessionStore:
    def __init__(self, db: Session, ttl: Optional[timedelta] = None):
        self.db = db
        self.ttl = ttl or timedelta(days=get_session_days())

    def issue(self, user_id: str, user_agent: Optional[str] = None) -> str:
        """Create a session and return the raw token (display once)."""
        raw_token = generate_token()
        now = datetime.now(timezone.utc)
        self.db.add(
            AuthSession(
                token_hash=hash_token(raw_token),
                user_id=user_id,
                user_agent=(user_agent or "")[:256] or None,
                created_at=now,
                expires_at=now + self.ttl,
            )
        )
        self.db.commit()
        logger.info("Session issued", extra={"event": "session.issued", "backend": "sql"})
        return raw_token

    def resolve(self, raw_token: str) -> Optional[str]:
        """User id for a live session, None for unknown or expired tokens."""
        row = self.db.get(AuthSession, hash_token(raw_token))
        if row is None:
            return None
        if _as_utc(row.expires_at) <= datetime.now(timezone.utc):
            return None
        return row.user_id

    def revoke(self, raw_token: str) -> None:
        row = self.db.get(AuthSession, hash_token(raw_token))
        if row is None:
            return
        self.db.delete(row)
        self.db.commit()
        logger.info("Session revoked", extra={"event": "session.revoked", "backend": "sql"})


class RedisSessionStore:
    def __init__(self, client: redis.Redis, ttl: Optional[timedelta] = None):
        self.client = client
        self.ttl = ttl or timedelta(days=get_session_days())

    @staticmethod
    def _key(raw_token: str) -> str:
        return redis_key("session", hash_token(raw_token))

    def issue(self, user_id: str, user_agent: Optional[str] = None) -> str:
        raw_token = generate_token()
        self.client.set(self._key(raw_token), user_id, ex=int(self.ttl.total_seconds()))
        logger.info("Session issued", extra={"event": "session.issued", "backend": "redis"})
        return raw_token

    def resolve(self, raw_token: str) -> Optional[str]:
        value = self.client.get(self._key(raw_token))
        if value is None:
            return None
        return value.decode("utf-8") if isinstance(value, bytes) else str(value)

    def revoke(self, raw_token: str) -> None:
        self.client.delete(self._key(raw_token))
        logger.info("Session revoked", extra={"event": "session.revoked", "backend": "redis"})


def get_session_store(db: Session) -> SessionStore:
    """Session store for the configured SESSION_BACKEND."""
    if get_session_backend() == "redis":
        return RedisSessionStore(get_redis())
    return SqlSessionStore(db)
