"""Donation ledger persistence."""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from donvie_api.db.models import Donation


class DonationRepository:
    """Repository for donations. Rows are insert-only."""

    def __init__(self, db: Session):
        self.db = db

    def add(self, donation: Donation) -> Donation:
        self.db.add(donation)
        self.db.flush()
        return donation

    def get_by_id(self, donation_id: int) -> Optional[Donation]:
        return self.db.get(Donation, donation_id)

    def transaction_id_exists(self, transaction_id: str) -> bool:
        stmt = select(Donation.id).where(Donation.transaction_id == transaction_id)
        return self.db.execute(stmt).first() is not None

    def count_from_donor(self, association_id: int, donor_key: str) -> int:
        """Number of donations a donor identity has made to one association."""
        stmt = select(func.count(Donation.id)).where(
            Donation.association_id == association_id,
            Donation.donor_key == donor_key,
        )
        return self.db.execute(stmt).scalar_one()

    def _newest_first(self, *criteria) -> list[Donation]:
        stmt = select(Donation).where(*criteria).order_by(
            Donation.created_at.desc(), Donation.id.desc()
        )
        return list(self.db.execute(stmt).scalars())

    def list_by_donor_key(self, donor_key: str) -> list[Donation]:
        return self._newest_first(Donation.donor_key == donor_key)

    def list_by_user_id(self, user_id: str) -> list[Donation]:
        return self._newest_first(Donation.donor_user_id == user_id)

    def list_by_association(self, association_id: int) -> list[Donation]:
        return self._newest_first(Donation.association_id == association_id)
