"""External identity provider claims.

Bearer JWTs are verified by Supabase (signature and expiry); this module
only maps the returned user into the claims the resolver needs.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from donvie_api.config.env import get_external_auth_provider, is_external_auth_configured
from donvie_api.supabase_client import get_supabase_client

logger = logging.getLogger(__name__)

KNOWN_PROVIDERS = frozenset({"google", "apple", "email"})


@dataclass(frozen=True)
class ExternalClaims:
    sub: str
    email: Optional[str]
    first_name: Optional[str]
    last_name: Optional[str]
    profile_image_url: Optional[str]
    provider: str


def _split_full_name(metadata: dict[str, Any]) -> tuple[Optional[str], Optional[str]]:
    first = metadata.get("first_name") or metadata.get("given_name")
    last = metadata.get("last_name") or metadata.get("family_name")
    if first or last:
        return first, last
    full = metadata.get("full_name") or metadata.get("name")
    if not full:
        return None, None
    parts = str(full).split(" ", 1)
    return parts[0], parts[1] if len(parts) > 1 else None


def claims_from_user(user: Any) -> ExternalClaims:
    """Map a Supabase auth user object to ExternalClaims."""
    metadata = getattr(user, "user_metadata", None) or {}
    app_metadata = getattr(user, "app_metadata", None) or {}

    first_name, last_name = _split_full_name(metadata)
    provider = str(app_metadata.get("provider") or "").lower()
    if provider not in KNOWN_PROVIDERS:
        provider = get_external_auth_provider()

    return ExternalClaims(
        sub=str(user.id),
        email=getattr(user, "email", None),
        first_name=first_name,
        last_name=last_name,
        profile_image_url=(
            metadata.get("profile_image_url")
            or metadata.get("avatar_url")
            or metadata.get("picture")
        ),
        provider=provider,
    )


def verify_bearer_token(token: str) -> Optional[ExternalClaims]:
    """Verify an external access token.

    Returns:
        ExternalClaims, or None when the scheme is disabled or the token is
        invalid/expired. Never raises.
    """
    if not token or not is_external_auth_configured():
        return None

    try:
        response = get_supabase_client().auth.get_user(token)
    except Exception as e:
        logger.warning(
            "External token verification failed",
            extra={"event": "auth.external.invalid", "error_type": type(e).__name__},
        )
        return None

    if not response or not getattr(response, "user", None):
        logger.warning(
            "External token rejected",
            extra={"event": "auth.external.invalid", "error_type": "no_user"},
        )
        return None

    claims = claims_from_user(response.user)
    logger.info(
        "External token validated",
        extra={"event": "auth.external.validated", "provider": claims.provider},
    )
    return claims
