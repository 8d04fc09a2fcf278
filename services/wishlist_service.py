"""
Wishlists and saved searches.

Both belong to a customer identified by email. Reads for an unknown
customer return nothing; writes for an unknown customer are a 404.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from domain.errors import ConflictError, NotFoundError, ValidationError
from domain.listing import ModerationStatus
from domain.saved_search import (
    SavedSearch,
    WishlistItem,
    parse_optional_price_cents,
    parse_sort_key,
    validate_price_range,
)
from domain.validation import clamp_int, sanitize_text
from repositories.listing_repository import ListingRepository
from repositories.profile_repository import CustomerRepository
from repositories.wishlist_repository import SavedSearchRepository, WishlistRepository
from services.customer_service import require_customer, resolve_customer

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WishlistAddResult:
    item: WishlistItem
    exists: bool


@dataclass(frozen=True, slots=True)
class SavedSearchInput:
    search_query: Optional[str] = None
    brand: Optional[str] = None
    size: Optional[str] = None
    condition: Optional[str] = None
    min_price: Any = None
    max_price: Any = None
    sort_key: Optional[str] = None
    notify_email: bool = True


def _require_listing_id(value: Any) -> str:
    listing_id = sanitize_text(value, 90)
    if not listing_id:
        raise ValidationError("listingId is required.")
    return listing_id


class WishlistService:
    def __init__(
        self,
        wishlist: WishlistRepository,
        listings: ListingRepository,
        customers: CustomerRepository,
    ) -> None:
        self._wishlist = wishlist
        self._listings = listings
        self._customers = customers

    def list_items(self, customer_email: Any) -> List[Dict[str, Any]]:
        """Wishlist items, newest first, each with its formatted listing (or None)."""

        customer = resolve_customer(self._customers, customer_email)
        if customer is None:
            return []

        items = self._wishlist.list_for_customer(customer.customer_id)
        listings = self._listings.get_many(item.listing_id for item in items)

        enriched = []
        for item in items:
            entry = item.to_public_dict()
            listing = listings.get(item.listing_id)
            entry["listing"] = listing.to_public_dict() if listing else None
            enriched.append(entry)
        return enriched

    def add(self, customer_email: Any, listing_id: Any) -> WishlistAddResult:
        """
        Save a listing; saving the same listing again returns the existing item.

        Raises:
            NotFoundError: unknown customer or listing
            ConflictError: listing is not approved
        """

        customer = require_customer(self._customers, customer_email)
        listing_id = _require_listing_id(listing_id)

        listing = self._listings.get(listing_id)
        if listing is None:
            raise NotFoundError("Listing not found.")
        if listing.moderation_status is not ModerationStatus.APPROVED:
            raise ConflictError("Only approved listings can be saved to wishlist.")

        existing = self._wishlist.find(customer.customer_id, listing.listing_id)
        if existing is not None:
            return WishlistAddResult(item=existing, exists=True)

        item = self._wishlist.add(customer.customer_id, listing.listing_id)
        logger.info("Customer %s saved listing %s", customer.customer_id, listing.listing_id)
        return WishlistAddResult(item=item, exists=False)

    def remove(self, customer_email: Any, listing_id: Any) -> str:
        customer = require_customer(self._customers, customer_email)
        listing_id = _require_listing_id(listing_id)
        self._wishlist.remove(customer.customer_id, listing_id)
        return listing_id


class SavedSearchService:
    def __init__(self, searches: SavedSearchRepository, customers: CustomerRepository) -> None:
        self._searches = searches
        self._customers = customers

    def list_searches(self, customer_email: Any, limit: Any = None, offset: Any = None) -> List[SavedSearch]:
        customer = resolve_customer(self._customers, customer_email)
        if customer is None:
            return []
        return self._searches.list_for_customer(
            customer.customer_id,
            limit=clamp_int(limit, 1, 50, 25),
            offset=clamp_int(offset, 0, 5000, 0),
        )

    def create(self, customer_email: Any, data: SavedSearchInput) -> SavedSearch:
        """
        Raises:
            ValidationError: unknown sort key, negative or unparseable price
                bound, min above max
            NotFoundError: unknown customer
        """

        customer = require_customer(self._customers, customer_email)

        sort_key = parse_sort_key(sanitize_text(data.sort_key, 20))
        min_price_cents = parse_optional_price_cents(data.min_price)
        max_price_cents = parse_optional_price_cents(data.max_price)
        validate_price_range(min_price_cents, max_price_cents)

        saved = self._searches.create(
            customer.customer_id,
            {
                "search_query": sanitize_text(data.search_query, 120) or None,
                "brand": sanitize_text(data.brand, 80) or None,
                "size": sanitize_text(data.size, 40) or None,
                "condition": sanitize_text(data.condition, 40) or None,
                "min_price_cents": min_price_cents,
                "max_price_cents": max_price_cents,
                "sort_key": sort_key,
                "notify_email": bool(data.notify_email),
            },
        )
        logger.info("Customer %s saved search %s", customer.customer_id, saved.saved_search_id)
        return saved

    def remove(self, customer_email: Any, saved_search_id: Any) -> str:
        customer = require_customer(self._customers, customer_email)
        search_id = sanitize_text(saved_search_id, 90)
        if not search_id:
            raise ValidationError("savedSearchId is required.")
        self._searches.remove(customer.customer_id, search_id)
        return search_id


__all__ = [
    "WishlistAddResult",
    "SavedSearchInput",
    "WishlistService",
    "SavedSearchService",
]
