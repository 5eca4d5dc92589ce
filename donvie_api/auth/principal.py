"""Authenticated principal attached to each request."""

from dataclasses import dataclass
from typing import Optional

from donvie_api.db.models import User


@dataclass(frozen=True)
class Principal:
    """Who is making the request, as seen by handlers.

    Built from the stored User row, never from raw claims, so a principal
    always refers to an existing user.
    """

    id: str
    email: Optional[str]
    user_type: Optional[str]
    association_id: Optional[int]
    auth_provider: str

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(
            id=user.id,
            email=user.email,
            user_type=user.user_type,
            association_id=user.association_id,
            auth_provider=user.auth_provider,
        )

    def owns_association(self, association_id: int) -> bool:
        return self.association_id is not None and self.association_id == association_id
