"""
Listing service.

Handles seller submissions, public browsing and owner-initiated status
changes. New listings start ACTIVE but PENDING moderation, so they are not
visible in the public browse until approved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from domain.errors import ConflictError, NotFoundError, PreconditionError, ValidationError
from domain.listing import Listing, ListingStatus, ModerationStatus, plan_owner_status_change
from domain.media import normalize_media_urls
from domain.money import normalize_currency, to_price_cents
from domain.validation import (
    clamp_int,
    is_valid_email,
    parse_http_url,
    parse_search_term,
    sanitize_email,
    sanitize_text,
)
from repositories.listing_repository import ListingRepository
from repositories.profile_repository import SellerRepository

logger = logging.getLogger(__name__)

_NEW_CONDITIONS = frozenset({"new"})
_USED_CONDITIONS = frozenset({"used", "pre-owned", "preowned"})


@dataclass(frozen=True, slots=True)
class ListingSubmission:
    seller_email: Optional[str]
    title: Optional[str]
    brand: Optional[str]
    price: Any
    description: Optional[str] = None
    size: Optional[str] = None
    condition: Optional[str] = None
    is_new: bool = False
    currency: Optional[str] = None
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    media_urls: Any = field(default=None)


@dataclass(frozen=True, slots=True)
class ListingBrowseQuery:
    status: Optional[str] = None
    search: Optional[str] = None
    condition: Optional[str] = None
    seller_email: Optional[str] = None
    limit: Any = None
    offset: Any = None


def _parse_status_filter(value: Optional[str]) -> Optional[ListingStatus]:
    status = sanitize_text(value, 20).lower() or ListingStatus.ACTIVE.value
    if status == "all":
        return None
    try:
        return ListingStatus(status)
    except ValueError:
        raise ValidationError("Invalid listing status filter.") from None


class ListingService:
    def __init__(self, listings: ListingRepository, sellers: SellerRepository) -> None:
        self._listings = listings
        self._sellers = sellers

    def submit(self, submission: ListingSubmission) -> Listing:
        """
        Create a listing for an onboarded seller.

        Raises:
            ValidationError: bad seller email, missing title/brand, price <= 0
            NotFoundError: seller has no profile
            PreconditionError: seller has no Stripe account
        """

        seller_email = sanitize_email(submission.seller_email, 160)
        title = sanitize_text(submission.title, 140)
        brand = sanitize_text(submission.brand, 80)
        price_cents = to_price_cents(submission.price)

        if not is_valid_email(seller_email):
            raise ValidationError("sellerEmail is required and must be valid.")
        if not title or not brand:
            raise ValidationError("title and brand are required.")
        if price_cents is None or price_cents <= 0:
            raise ValidationError("price must be a positive number.")

        seller = self._sellers.get_by_email(seller_email)
        if seller is None:
            raise NotFoundError("Seller not found. Complete onboarding first.")
        if not seller.has_payout_account:
            raise PreconditionError("Seller has no Stripe account. Complete onboarding first.")

        image_url = parse_http_url(submission.image_url, 700)
        media = normalize_media_urls(submission.media_urls)
        if not media and image_url:
            media = (image_url,)

        is_new = bool(submission.is_new)
        condition = sanitize_text(submission.condition, 60) or ("New with tags" if is_new else "Pre-owned")

        listing = self._listings.create(
            {
                "seller_id": seller.seller_id,
                "title": title,
                "brand": brand,
                "description": sanitize_text(submission.description, 4000),
                "size": sanitize_text(submission.size, 40) or None,
                "condition": condition,
                "is_new": is_new,
                "price_cents": price_cents,
                "currency": normalize_currency(submission.currency),
                "image_url": image_url or (media[0] if media else None),
                "video_url": parse_http_url(submission.video_url, 700),
                "media_urls": list(media),
                "approved_media_urls": [],
                "status": ListingStatus.ACTIVE.value,
                "moderation_status": ModerationStatus.PENDING.value,
                "moderation_reason": None,
                "checkout_session_id": None,
                "reserved_at": None,
                "sold_at": None,
            }
        )
        logger.info("Listing %s submitted by seller %s", listing.listing_id, seller.seller_id)
        return listing

    def browse(self, query: ListingBrowseQuery) -> List[Listing]:
        """
        Public browse, or a seller's own listings when seller_email is given.

        The public only sees APPROVED listings; owners see theirs regardless
        of moderation.
        """

        status = _parse_status_filter(query.status)
        condition = sanitize_text(query.condition, 20).lower()
        limit = clamp_int(query.limit, 1, 60, 24)
        offset = clamp_int(query.offset, 0, 5000, 0)

        filters: Dict[str, Any] = {}
        if status is not None:
            filters["status"] = status
        if condition in _NEW_CONDITIONS:
            filters["is_new"] = True
        elif condition in _USED_CONDITIONS:
            filters["is_new"] = False

        seller_email = sanitize_email(query.seller_email, 160)
        if seller_email:
            if not is_valid_email(seller_email):
                raise ValidationError("seller_email is invalid.")
            seller = self._sellers.get_by_email(seller_email)
            if seller is None:
                return []
            filters["seller_id"] = seller.seller_id
        else:
            filters["moderation_status"] = ModerationStatus.APPROVED

        return self._listings.search(
            filters=filters,
            search_term=parse_search_term(query.search),
            limit=limit,
            offset=offset,
        )

    def change_status(self, *, listing_id: Optional[str], status: Optional[str], seller_email: Optional[str]) -> Listing:
        """
        Owner toggles a listing between active and archived.

        Raises:
            ValidationError: missing id, invalid target status or email
            NotFoundError: seller or listing does not exist
            AuthorizationError: seller does not own the listing
            ConflictError: listing is reserved/sold or changed concurrently
        """

        listing_id = sanitize_text(listing_id, 80)
        target = sanitize_text(status, 20).lower()
        email = sanitize_email(seller_email, 160)

        if not listing_id or target not in {s.value for s in ListingStatus}:
            raise ValidationError("listingId and valid status (active|archived) are required.")
        if not is_valid_email(email):
            raise ValidationError("Valid sellerEmail is required for updates.")

        seller = self._sellers.get_by_email(email)
        if seller is None:
            raise NotFoundError("Seller not found.")

        listing = self._listings.get(listing_id)
        if listing is None:
            raise NotFoundError("Listing not found.")

        changes = plan_owner_status_change(listing, seller.seller_id, ListingStatus(target))
        updated = self._listings.apply_changes(listing, changes)
        if updated is None:
            logger.warning("Listing %s changed during owner status update", listing.listing_id)
            raise ConflictError("Listing was changed by another request. Reload and try again.")
        logger.info("Listing %s set to %s by its owner", updated.listing_id, updated.status.value)
        return updated


__all__ = ["ListingSubmission", "ListingBrowseQuery", "ListingService"]
