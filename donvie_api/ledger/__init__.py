"""Donation ledger and aggregation services."""

from donvie_api.ledger.directory import AssociationDirectory
from donvie_api.ledger.donations import DonationLedger
from donvie_api.ledger.receipts import ReceiptAssembler, real_cost, tax_benefit
from donvie_api.ledger.stats import StatsAggregator

__all__ = [
    "AssociationDirectory",
    "DonationLedger",
    "ReceiptAssembler",
    "StatsAggregator",
    "tax_benefit",
    "real_cost",
]
