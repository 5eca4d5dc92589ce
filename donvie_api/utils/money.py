"""EUR amount handling.

Amounts are stored as integer cents (BIGINT) and exposed as 2dp decimal
strings ("50.00"). Floats never touch the arithmetic: inputs are parsed
through Decimal(str(value)).
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

CENTS_PER_EUR = 100

# NUMERIC(10, 2) ceiling carried over from the association totals column
MAX_AMOUNT_CENTS = 9_999_999_999

_CENT = Decimal("0.01")
_MAX_AMOUNT = Decimal(MAX_AMOUNT_CENTS) / CENTS_PER_EUR
_EURO = Decimal("1")


class MoneyError(ValueError):
    """Base error for invalid monetary amounts."""


class NonPositiveAmountError(MoneyError):
    """Amount is zero or negative."""


class TooManyDecimalsError(MoneyError):
    """Amount has more than two decimal places."""


class AmountTooLargeError(MoneyError):
    """Amount exceeds MAX_AMOUNT_CENTS."""


def to_decimal(value: Union[str, int, float, Decimal]) -> Decimal:
    """Convert an incoming amount to Decimal without binary float artefacts."""
    if isinstance(value, bool):
        raise MoneyError("Amount must be a number")
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise MoneyError(f"Invalid amount: {value!r}") from None
    if not amount.is_finite():
        raise MoneyError(f"Invalid amount: {value!r}")
    return amount


def parse_eur_amount(value: Union[str, int, float, Decimal]) -> int:
    """Parse a positive EUR amount with at most two decimals into cents.

    Examples:
        >>> parse_eur_amount("50")
        5000
        >>> parse_eur_amount(25.5)
        2550

    Raises:
        NonPositiveAmountError: amount <= 0
        TooManyDecimalsError: more than 2 decimal places
        AmountTooLargeError: above 99,999,999.99
    """
    amount = to_decimal(value)

    if amount <= 0:
        raise NonPositiveAmountError("Amount must be greater than 0")

    # Before quantize(), which fails past the context precision
    if amount > _MAX_AMOUNT:
        raise AmountTooLargeError("Amount exceeds the maximum of 99999999.99")

    if amount != amount.quantize(_CENT):
        raise TooManyDecimalsError("Amount must have at most 2 decimal places")

    return int(amount * CENTS_PER_EUR)


def cents_to_decimal(cents: int) -> Decimal:
    """Convert integer cents to a 2dp Decimal (5000 -> Decimal("50.00"))."""
    return (Decimal(cents) / CENTS_PER_EUR).quantize(_CENT)


def round_to_euro(amount: Decimal) -> Decimal:
    """Round to the nearest whole euro, halves away from zero."""
    return amount.quantize(_EURO, rounding=ROUND_HALF_UP)


def round_to_cent(amount: Decimal) -> Decimal:
    return amount.quantize(_CENT, rounding=ROUND_HALF_UP)
