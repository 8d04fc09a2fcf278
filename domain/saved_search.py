"""
Domain: saved searches and wishlist items.

A saved search stores browse filters a customer wants to be notified about.
Prices are optional integer cents; when both bounds are present the minimum
may not exceed the maximum.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from .errors import ValidationError
from .money import to_display_amount, to_price_cents
from .time import require_utc_timestamp


class SortKey(str, Enum):
    NEWEST = "newest"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"


@dataclass(frozen=True, slots=True)
class SavedSearch:
    saved_search_id: str
    customer_id: str
    sort_key: SortKey
    notify_email: bool = True
    search_query: Optional[str] = None
    brand: Optional[str] = None
    size: Optional[str] = None
    condition: Optional[str] = None
    min_price_cents: Optional[int] = None
    max_price_cents: Optional[int] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "id": self.saved_search_id,
            "customer_id": self.customer_id,
            "search_query": self.search_query,
            "brand": self.brand,
            "size": self.size,
            "condition": self.condition,
            "min_price_cents": self.min_price_cents,
            "max_price_cents": self.max_price_cents,
            "min_price": to_display_amount(self.min_price_cents),
            "max_price": to_display_amount(self.max_price_cents),
            "sort_key": self.sort_key.value,
            "notify_email": self.notify_email,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True, slots=True)
class WishlistItem:
    item_id: str
    customer_id: str
    listing_id: str
    created_at: Optional[datetime] = None

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "id": self.item_id,
            "listing_id": self.listing_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


def parse_sort_key(value: Optional[str]) -> SortKey:
    try:
        return SortKey((value or "").strip().lower() or SortKey.NEWEST.value)
    except ValueError:
        raise ValidationError("sort must be one of: newest, price_asc, price_desc.") from None


def parse_optional_price_cents(value: Any) -> Optional[int]:
    """
    Optional price bound in cents.

    Empty input means "no bound". Anything present must parse to a
    non-negative amount.
    """

    if value is None or str(value).strip() == "":
        return None
    cents = to_price_cents(value)
    if cents is None or cents < 0:
        raise ValidationError("min_price/max_price must be positive numbers when provided.")
    return cents


def validate_price_range(min_price_cents: Optional[int], max_price_cents: Optional[int]) -> None:
    if min_price_cents is not None and max_price_cents is not None and min_price_cents > max_price_cents:
        raise ValidationError("min_price cannot be higher than max_price.")
