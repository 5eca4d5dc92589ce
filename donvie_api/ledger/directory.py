"""Association Directory.

Lookup, search, registration and presentation updates for associations,
plus the aggregate bookkeeping the donation ledger calls inside its
transaction. The cached counters (donor_count, total_raised_cents) and the
verified flag are never writable through create() or update().
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from donvie_api.db.models import Association
from donvie_api.db.repo_associations import AssociationRepository
from donvie_api.db.repo_donations import DonationRepository
from donvie_api.db.repo_users import UserRepository
from donvie_api.errors import ConflictError, association_not_found, user_not_found
from donvie_api.schemas import AssociationCreate, AssociationUpdate, to_validation_error

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "all"

# Keys callers may send but that only the system sets
PRIVILEGED_FIELDS = frozenset({
    "id",
    "verified",
    "donorCount",
    "donor_count",
    "totalRaised",
    "total_raised",
    "total_raised_cents",
    "createdAt",
    "created_at",
})


def normalize_donor_key(email: str) -> str:
    """Donor identity used for distinct-donor counting."""
    return email.strip().lower()


class AssociationDirectory:
    """Association lookups and mutations bound to one database session."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AssociationRepository(db)

    def get(self, association_id: int) -> Association:
        association = self.repo.get_by_id(association_id)
        if association is None:
            raise association_not_found(association_id)
        return association

    def list(self) -> list[Association]:
        return self.repo.list_all()

    def search(self, query: Optional[str]) -> list[Association]:
        """Case-insensitive substring match on name OR mission.

        Blank queries return the unfiltered list. Matching uses casefold()
        in Python so accented characters behave the same on every backend.
        """
        needle = (query or "").strip().casefold()
        associations = self.repo.list_all()
        if not needle:
            return associations
        return [
            a for a in associations
            if needle in a.name.casefold() or needle in a.mission.casefold()
        ]

    def by_category(self, category: str) -> list[Association]:
        if category == ALL_CATEGORIES:
            return self.repo.list_all()
        return self.repo.list_by_category(category)

    def owned_by(self, user_id: str) -> Optional[Association]:
        user = UserRepository(self.db).get_by_id(user_id)
        if user is None or user.association_id is None:
            return None
        return self.repo.get_by_id(user.association_id)

    def create(
        self,
        data: Union[AssociationCreate, Mapping[str, Any]],
        commit: bool = True,
    ) -> Association:
        """Register a new association.

        verified=False, donor_count=0 and total_raised=0 regardless of input;
        privileged keys in a mapping are dropped before validation.

        Args:
            data: Validated schema or raw mapping (camelCase or snake_case keys)
            commit: False when the caller owns the transaction (registration)

        Raises:
            ValidationError: Mapping input fails validation
        """
        if not isinstance(data, AssociationCreate):
            cleaned = {k: v for k, v in data.items() if k not in PRIVILEGED_FIELDS}
            try:
                data = AssociationCreate.model_validate(cleaned)
            except PydanticValidationError as e:
                raise to_validation_error(e, "Invalid association") from None

        association = Association(
            **data.model_dump(),
            verified=False,
            donor_count=0,
            total_raised_cents=0,
        )
        self.repo.add(association)
        if commit:
            self.db.commit()
            self.db.refresh(association)

        logger.info(
            "Association created",
            extra={
                "event": "association.created",
                "association_id": association.id,
                "category": association.category,
            },
        )
        return association

    def register_for_owner(
        self,
        user_id: str,
        data: Union[AssociationCreate, Mapping[str, Any]],
    ) -> Association:
        """Create an association and bind it to its owning user in one transaction.

        The user becomes userType="association".

        Raises:
            NotFoundError: User does not exist
            ConflictError: User already owns an association
        """
        users = UserRepository(self.db)
        user = users.get_by_id(user_id)
        if user is None:
            raise user_not_found(user_id)
        if user.association_id is not None:
            raise ConflictError("This account already manages an association")

        try:
            association = self.create(data, commit=False)
            user.association_id = association.id
            user.user_type = "association"
            user.updated_at = datetime.now(timezone.utc)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(association)
        return association

    def update(
        self,
        association_id: int,
        data: Union[AssociationUpdate, Mapping[str, Any]],
    ) -> Association:
        """Apply a partial update to presentation fields only.

        Raises:
            NotFoundError: Association does not exist
            ValidationError: Mapping input fails validation (including
                privileged or unknown keys)
        """
        if not isinstance(data, AssociationUpdate):
            try:
                data = AssociationUpdate.model_validate(dict(data))
            except PydanticValidationError as e:
                raise to_validation_error(e, "Invalid association update") from None

        association = self.get(association_id)
        changes = data.model_dump(exclude_unset=True)
        for field, value in changes.items():
            if value is None and field != "website":
                # Required columns keep their value when explicitly nulled
                continue
            setattr(association, field, value)
        self.db.commit()
        self.db.refresh(association)

        logger.info(
            "Association updated",
            extra={
                "event": "association.updated",
                "association_id": association_id,
                "fields": sorted(changes),
            },
        )
        return association

    def set_verified(self, association_id: int, verified: bool = True) -> Association:
        """Administrative verification toggle (not exposed over HTTP)."""
        association = self.get(association_id)
        association.verified = verified
        self.db.commit()
        self.db.refresh(association)
        logger.info(
            "Association verification changed",
            extra={
                "event": "association.verified",
                "association_id": association_id,
                "verified": verified,
            },
        )
        return association

    def record_donation(self, association_id: int, amount_cents: int, donor_email: str) -> None:
        """Fold one new donation into the cached aggregates.

        Must run inside the ledger's open transaction, after the donation row
        has been flushed and the association row locked. donor_count moves
        only when this donation is the donor's first to the association.
        Does not commit.

        Raises:
            NotFoundError: Association does not exist
        """
        donor_key = normalize_donor_key(donor_email)
        donations_from_donor = DonationRepository(self.db).count_from_donor(association_id, donor_key)
        new_donors = 1 if donations_from_donor == 1 else 0

        updated = self.repo.increment_aggregates(association_id, amount_cents, new_donors)
        if updated == 0:
            raise association_not_found(association_id)
