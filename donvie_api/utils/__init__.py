"""Utility functions and helpers."""

from donvie_api.utils.logging import JSONFormatter, configure_json_logging
from donvie_api.utils.money import (
    AmountTooLargeError,
    MoneyError,
    NonPositiveAmountError,
    TooManyDecimalsError,
    cents_to_decimal,
    parse_eur_amount,
)

__all__ = [
    "MoneyError",
    "NonPositiveAmountError",
    "TooManyDecimalsError",
    "AmountTooLargeError",
    "cents_to_decimal",
    "parse_eur_amount",
    "JSONFormatter",
    "configure_json_logging",
]
