"""Donation Ledger.

Write path for donations. A donation insert and the owning association's
aggregate update commit together or not at all:

1. Lock the association row (404 if absent)
2. Insert the donation and flush
3. AssociationDirectory.record_donation() increments the cached counters
4. Commit; any exception rolls back steps 2-3
"""

import logging
import secrets
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from donvie_api.auth.principal import Principal
from donvie_api.auth.tokens import hash_token
from donvie_api.db.models import Donation
from donvie_api.db.repo_associations import AssociationRepository
from donvie_api.db.repo_donations import DonationRepository
from donvie_api.errors import association_not_found, donation_not_found
from donvie_api.ledger.directory import AssociationDirectory, normalize_donor_key
from donvie_api.schemas import DonationCreate, to_validation_error

logger = logging.getLogger(__name__)

DONATION_STATUS_COMPLETED = "completed"

_TRANSACTION_ID_ATTEMPTS = 5


def generate_transaction_id(now: Optional[datetime] = None) -> str:
    """DN<year>-<10 uppercase hex chars>, e.g. DN2026-9F1C04B2AA."""
    year = (now or datetime.now(timezone.utc)).year
    return f"DN{year}-{secrets.token_hex(5).upper()}"


class DonationLedger:
    """Creates and queries ledger entries within one database session."""

    def __init__(self, db: Session):
        self.db = db
        self.donations = DonationRepository(db)
        self.associations = AssociationRepository(db)
        self.directory = AssociationDirectory(db)

    def _new_transaction_id(self) -> str:
        for _ in range(_TRANSACTION_ID_ATTEMPTS):
            transaction_id = generate_transaction_id()
            if not self.donations.transaction_id_exists(transaction_id):
                return transaction_id
        # Unique constraint on transaction_id still guards the insert
        return generate_transaction_id()

    def create(
        self,
        data: Union[DonationCreate, Mapping[str, Any]],
        principal: Optional[Principal] = None,
        receipt_token: Optional[str] = None,
    ) -> Donation:
        """Record a donation and update the association aggregates atomically.

        Donor contact fields always come from the submitted data; the
        principal only contributes donor_user_id.

        Args:
            data: Validated schema or raw mapping
            principal: Authenticated caller, if any
            receipt_token: Raw receipt capability token; only its hash is stored

        Returns:
            The committed Donation

        Raises:
            ValidationError: Missing donor fields or invalid amount
            NotFoundError: Association does not exist
        """
        if not isinstance(data, DonationCreate):
            try:
                data = DonationCreate.model_validate(dict(data))
            except PydanticValidationError as e:
                raise to_validation_error(e, "Invalid donation") from None

        amount_cents = data.amount_cents

        try:
            association = self.associations.get_by_id(data.association_id, for_update=True)
            if association is None:
                raise association_not_found(data.association_id)

            donation = Donation(
                association_id=association.id,
                donor_first_name=data.donor_first_name,
                donor_last_name=data.donor_last_name,
                donor_email=data.donor_email,
                donor_key=normalize_donor_key(data.donor_email),
                donor_phone=data.donor_phone,
                donor_address=data.donor_address,
                donor_postal_code=data.donor_postal_code,
                donor_city=data.donor_city,
                donor_user_id=principal.id if principal else None,
                amount_cents=amount_cents,
                transaction_id=self._new_transaction_id(),
                status=DONATION_STATUS_COMPLETED,
                receipt_token_hash=hash_token(receipt_token) if receipt_token else None,
            )
            self.donations.add(donation)
            self.directory.record_donation(association.id, amount_cents, data.donor_email)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(donation)

        logger.info(
            "Donation recorded",
            extra={
                "event": "donation.created",
                "donation_id": donation.id,
                "association_id": donation.association_id,
                "transaction_id": donation.transaction_id,
                "amount_cents": amount_cents,
                "authenticated": principal is not None,
            },
        )
        return donation

    def by_id(self, donation_id: int) -> Donation:
        donation = self.donations.get_by_id(donation_id)
        if donation is None:
            raise donation_not_found(donation_id)
        return donation

    def by_email(self, email: str) -> list[Donation]:
        """Donations submitted with this donor email (case-insensitive)."""
        return self.donations.list_by_donor_key(normalize_donor_key(email))

    def by_user_id(self, user_id: str) -> list[Donation]:
        return self.donations.list_by_user_id(user_id)

    def by_association(self, association_id: int) -> list[Donation]:
        return self.donations.list_by_association(association_id)
