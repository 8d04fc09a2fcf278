"""
Tests for `domain/money.py`.

Covers contract rules:
- Integer input is already cents; decimal strings are major units.
- The platform fee percent defaults to 15 and is clamped to [1, 30].
- The application fee is rounded half-up to a whole cent.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from domain.money import (
    DEFAULT_FEE_PERCENT,
    clamp_fee_percent,
    compute_application_fee,
    normalize_currency,
    to_display_amount,
    to_price_cents,
)


def test_fee_is_fifteen_percent_of_price() -> None:
    """A 100.00 listing at 15% yields a 15.00 fee."""

    assert compute_application_fee(10000, 15) == 1500


def test_fee_rounds_half_up() -> None:
    """Half cents round away from zero rather than to even."""

    # 3 * 15% = 0.45 -> 0; 10 * 15% = 1.5 -> 2; 333 * 15% = 49.95 -> 50
    assert compute_application_fee(3, 15) == 0
    assert compute_application_fee(10, 15) == 2
    assert compute_application_fee(333, 15) == 50


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, DEFAULT_FEE_PERCENT),
        ("", DEFAULT_FEE_PERCENT),
        ("abc", DEFAULT_FEE_PERCENT),
        ("nan", DEFAULT_FEE_PERCENT),
        ("0", 1.0),
        ("45", 30.0),
        ("12.5", 12.5),
        (20, 20.0),
    ],
)
def test_fee_percent_is_clamped(raw, expected) -> None:
    assert clamp_fee_percent(raw) == expected


def test_integer_price_is_taken_as_cents() -> None:
    assert to_price_cents(4999) == 4999


def test_decimal_price_is_converted_from_major_units() -> None:
    assert to_price_cents("49.99") == 4999
    assert to_price_cents(12.5) == 1250
    assert to_price_cents(Decimal("0.005")) == 1


def test_unparseable_price_is_none() -> None:
    assert to_price_cents(None) is None
    assert to_price_cents("twelve") is None
    assert to_price_cents(True) is None
    assert to_price_cents("inf") is None


def test_currency_falls_back_to_eur() -> None:
    assert normalize_currency("USD") == "usd"
    assert normalize_currency(None) == "eur"
    assert normalize_currency("euro") == "eur"


def test_display_amount() -> None:
    assert to_display_amount(10050) == 100.5
    assert to_display_amount(None) is None
