"""
Domain: money helpers (pure).

Money is always carried as integer minor units (cents). Display amounts are
derived by dividing by 100 and rounding to 2 decimals; they are never
authoritative.
"""

from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

DEFAULT_CURRENCY: str = "eur"
DEFAULT_FEE_PERCENT: float = 15.0
MIN_FEE_PERCENT: float = 1.0
MAX_FEE_PERCENT: float = 30.0

_CURRENCY_RE = re.compile(r"^[a-z]{3}$")


def normalize_currency(value: Any) -> str:
    """Lowercase 3-letter ISO code; anything else falls back to the default."""

    raw = str(value or DEFAULT_CURRENCY).strip().lower()
    if not _CURRENCY_RE.match(raw):
        return DEFAULT_CURRENCY
    return raw


def to_price_cents(value: Any) -> Optional[int]:
    """
    Convert request input into integer cents.

    Integers are taken as cents already. Anything else is parsed as a decimal
    amount in major units and rounded half-up to cents. Returns None when the
    value cannot be parsed.
    """

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if value is None:
        return None

    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_display_amount(cents: Optional[int]) -> Optional[float]:
    if cents is None:
        return None
    return round(cents / 100, 2)


def clamp_fee_percent(value: Any) -> float:
    """
    Resolve the configured platform fee percent.

    Unset or unparseable values use the default; parsed values are clamped to
    [MIN_FEE_PERCENT, MAX_FEE_PERCENT].
    """

    try:
        parsed = float(str(value).strip()) if value is not None else DEFAULT_FEE_PERCENT
    except ValueError:
        return DEFAULT_FEE_PERCENT
    if not math.isfinite(parsed):
        return DEFAULT_FEE_PERCENT
    return max(MIN_FEE_PERCENT, min(parsed, MAX_FEE_PERCENT))


def compute_application_fee(price_cents: int, fee_percent: float) -> int:
    """
    Platform cut of a sale in cents, rounded half-up to an integer minor unit.

    Example:
        compute_application_fee(10000, 15)  # 1500
    """

    fee = Decimal(price_cents) * Decimal(str(fee_percent)) / Decimal(100)
    return int(fee.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


__all__ = [
    "DEFAULT_CURRENCY",
    "DEFAULT_FEE_PERCENT",
    "normalize_currency",
    "to_price_cents",
    "to_display_amount",
    "clamp_fee_percent",
    "compute_application_fee",
]
