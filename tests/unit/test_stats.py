"""Unit tests for the stats aggregator."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from donvie_api.db.models import Donation
from donvie_api.errors import NotFoundError
from donvie_api.ledger.stats import StatsAggregator, summarize

NOW = datetime(2026, 10, 15, 12, 0, tzinfo=timezone.utc)


def _donation(amount_cents: int, email: str, created_at: datetime) -> Donation:
    return Donation(
        association_id=1,
        donor_first_name="A",
        donor_last_name="B",
        donor_email=email,
        donor_key=email.lower(),
        donor_address="x",
        donor_postal_code="75000",
        donor_city="Paris",
        amount_cents=amount_cents,
        transaction_id=f"DN2026-{amount_cents:010d}",
        status="completed",
        created_at=created_at,
    )


def test_empty_ledger():
    stats = summarize([], now=NOW)

    assert stats.total_raised == Decimal("0.00")
    assert stats.donor_count == 0
    assert stats.donation_count == 0
    assert stats.avg_donation == Decimal("0.00")
    assert stats.this_month_amount == Decimal("0.00")
    assert stats.this_month_count == 0


def test_distinct_donors_and_month_window():
    donations = [
        _donation(1000, "a@example.fr", datetime(2026, 10, 1, 0, 0, tzinfo=timezone.utc)),
        _donation(2000, "A@EXAMPLE.FR", datetime(2026, 10, 14, 9, 30, tzinfo=timezone.utc)),
        _donation(1550, "b@example.fr", datetime(2026, 9, 30, 23, 59, tzinfo=timezone.utc)),
        # Same month, previous year
        _donation(500, "c@example.fr", datetime(2025, 10, 10, tzinfo=timezone.utc)),
    ]

    stats = summarize(donations, now=NOW)

    assert stats.total_raised == Decimal("50.50")
    assert stats.donor_count == 3
    assert stats.donation_count == 4
    assert stats.avg_donation == Decimal("12.63")
    assert stats.this_month_amount == Decimal("30.00")
    assert stats.this_month_count == 2


def test_naive_timestamps_are_treated_as_utc():
    donations = [_donation(700, "a@example.fr", datetime(2026, 10, 2, 8, 0))]

    stats = summarize(donations, now=NOW)

    assert stats.this_month_count == 1


def test_stats_for_unknown_association(db_session):
    with pytest.raises(NotFoundError):
        StatsAggregator(db_session).stats_for(77)


def test_stats_match_cached_counters(db_session, association):
    from donvie_api.ledger.donations import DonationLedger
    from tests.helpers import donation_payload

    ledger = DonationLedger(db_session)
    for email, amount in [("x@example.fr", "5"), ("X@example.fr", "7"), ("y@example.fr", "9.99")]:
        ledger.create(donation_payload(association.id, donorEmail=email, amount=amount))

    stats = StatsAggregator(db_session).stats_for(association.id)
    db_session.refresh(association)

    assert stats.total_raised == association.total_raised == Decimal("21.99")
    assert stats.donor_count == association.donor_count == 2
    assert stats.donation_count == 3
    assert stats.this_month_count == 3
