"""
Currency normalization for the currencies Paystack settles in.
"""
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

from domain.common.exceptions import UnsupportedCurrencyException


SUPPORTED_CURRENCIES: tuple[str, ...] = ("NGN", "GHS", "ZAR", "USD")

# kobo, pesewas, cents
SUBUNIT_EXPONENT = {
    "NGN": 2,
    "GHS": 2,
    "ZAR": 2,
    "USD": 2,
}


def normalize_currency(code: Optional[str]) -> str:
    """Return the upper-cased supported code or raise UnsupportedCurrencyException."""
    normalized = (code or "").strip().upper()
    if normalized not in SUPPORTED_CURRENCIES:
        raise UnsupportedCurrencyException(code, SUPPORTED_CURRENCIES)
    return normalized


def round_subunits(amount: Union[int, float, Decimal, str]) -> int:
    return int(Decimal(str(amount)).to_integral_value(rounding=ROUND_HALF_UP))


def to_subunits(amount: Union[int, float, Decimal, str], currency: str) -> int:
    """Convert a major-unit amount into integer sub-units of ``currency``."""
    exponent = SUBUNIT_EXPONENT[normalize_currency(currency)]
    return round_subunits(Decimal(str(amount)) * (Decimal(10) ** exponent))
