"""Stats Aggregator: dashboard figures computed from the ledger itself."""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from donvie_api.db.models import Donation
from donvie_api.db.repo_associations import AssociationRepository
from donvie_api.db.repo_donations import DonationRepository
from donvie_api.errors import association_not_found
from donvie_api.utils.money import cents_to_decimal, round_to_cent


@dataclass(frozen=True)
class AssociationStats:
    total_raised: Decimal
    donor_count: int
    donation_count: int
    avg_donation: Decimal
    this_month_amount: Decimal
    this_month_count: int


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they were written as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def summarize(donations: list[Donation], now: Optional[datetime] = None) -> AssociationStats:
    """Aggregate a list of donations.

    donor_count counts distinct donor identities (lower-cased email), the
    same definition the cached association counter uses.
    """
    now = now or datetime.now(timezone.utc)

    total_cents = sum(d.amount_cents for d in donations)
    donation_count = len(donations)
    donor_count = len({d.donor_key for d in donations})

    if donation_count:
        avg = round_to_cent(cents_to_decimal(total_cents) / donation_count)
    else:
        avg = cents_to_decimal(0)

    this_month = [
        d for d in donations
        if (_as_utc(d.created_at).year, _as_utc(d.created_at).month) == (now.year, now.month)
    ]

    return AssociationStats(
        total_raised=cents_to_decimal(total_cents),
        donor_count=donor_count,
        donation_count=donation_count,
        avg_donation=avg,
        this_month_amount=cents_to_decimal(sum(d.amount_cents for d in this_month)),
        this_month_count=len(this_month),
    )


class StatsAggregator:
    def __init__(self, db: Session):
        self.db = db

    def stats_for(self, association_id: int, now: Optional[datetime] = None) -> AssociationStats:
        """Full scan of the association's donations.

        Raises:
            NotFoundError: Association does not exist
        """
        if AssociationRepository(self.db).get_by_id(association_id) is None:
            raise association_not_found(association_id)
        donations = DonationRepository(self.db).list_by_association(association_id)
        return summarize(donations, now=now)
