"""Opaque token generation and hashing.

Used for session cookies and receipt capability tokens.

SECURITY:
- Tokens are HMAC-SHA256 hashed with SESSION_SECRET
- Raw tokens are NEVER stored
- Display-once: raw tokens are returned only at issuance
"""

import base64
import hashlib
import hmac
import secrets

from donvie_api.config.env import get_session_secret


def generate_token(nbytes: int = 32) -> str:
    """New URL-safe random token (32 bytes = 256 bits of entropy by default)."""
    return secrets.token_urlsafe(nbytes)


def hash_token(raw_token: str) -> str:
    """HMAC-SHA256 of a raw token, base64url without padding."""
    digest = hmac.new(
        key=get_session_secret().encode("utf-8"),
        msg=raw_token.encode("utf-8"),
        digestmod=hashlib.sha256,
    ).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def verify_token(raw_token: str, stored_hash: str) -> bool:
    """Constant-time comparison of a raw token against its stored hash."""
    return hmac.compare_digest(hash_token(raw_token), stored_hash)
