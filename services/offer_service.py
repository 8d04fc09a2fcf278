"""
Offer negotiation service.

Handles:
- Customers opening an offer on an active, approved listing (one open offer
  per customer and listing)
- Listing offers by participant or listing, enriched with emails and a
  listing summary
- Seller and customer actions, applied with a compare-and-swap on the
  status the action was planned against
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from domain.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from domain.listing import Listing
from domain.money import to_price_cents
from domain.offer import (
    ACTION_ACTORS,
    Offer,
    OfferActor,
    OfferStatus,
    parse_action,
    plan_offer_action,
    require_open,
)
from domain.time import utc_now
from domain.validation import clamp_int, is_valid_email, sanitize_email, sanitize_text
from repositories.listing_repository import ListingRepository
from repositories.offer_repository import OfferRepository
from repositories.profile_repository import CustomerRepository, SellerRepository
from repositories.record_store import DuplicateRecordError

logger = logging.getLogger(__name__)

MESSAGE_MAX: int = 1000


@dataclass(frozen=True, slots=True)
class OfferQuery:
    customer_email: Optional[str] = None
    seller_email: Optional[str] = None
    listing_id: Optional[str] = None
    status: Optional[str] = None
    limit: Any = None
    offset: Any = None


@dataclass(frozen=True, slots=True)
class OfferActionRequest:
    offer_id: str
    action: str
    seller_email: Optional[str] = None
    customer_email: Optional[str] = None
    message: Optional[str] = None
    counter_amount: Any = None


def listing_summary(listing: Listing) -> Dict[str, Any]:
    return {
        "id": listing.listing_id,
        "title": listing.title,
        "brand": listing.brand,
        "image_url": listing.primary_image_url,
        "status": listing.status.value,
        "moderation_status": listing.moderation_status.value,
    }


def _parse_status_filter(value: Optional[str]) -> Optional[OfferStatus]:
    status = sanitize_text(value, 20).lower()
    if not status or status == "all":
        return None
    try:
        return OfferStatus(status)
    except ValueError:
        raise ValidationError("Invalid offer status filter.") from None


class OfferService:
    def __init__(
        self,
        offers: OfferRepository,
        listings: ListingRepository,
        sellers: SellerRepository,
        customers: CustomerRepository,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._offers = offers
        self._listings = listings
        self._sellers = sellers
        self._customers = customers
        self._clock = clock

    def create_offer(
        self,
        *,
        customer_email: Optional[str],
        listing_id: Optional[str],
        amount: Any,
        message: Optional[str] = None,
    ) -> Offer:
        """
        Open a new offer.

        Raises:
            ValidationError: bad email, missing listing id, non-positive amount
            NotFoundError: customer or listing does not exist
            ConflictError: listing not purchasable, or an open offer exists
        """

        email = sanitize_email(customer_email)
        listing_id = sanitize_text(listing_id, 90)
        amount_cents = to_price_cents(amount)

        if not is_valid_email(email):
            raise ValidationError("Valid customerEmail is required.")
        if not listing_id:
            raise ValidationError("listingId is required.")
        if amount_cents is None or amount_cents <= 0:
            raise ValidationError("Offer amount must be a positive number.")

        customer = self._customers.get_by_email(email)
        if customer is None:
            raise NotFoundError("Customer not found. Create a customer account first.")

        listing = self._listings.get(listing_id)
        if listing is None:
            raise NotFoundError("Listing not found.")
        if not listing.is_purchasable:
            raise ConflictError("Offers are only possible on active, approved listings.")

        if self._offers.find_open_offer(listing.listing_id, customer.customer_id) is not None:
            raise ConflictError("You already have an open offer on this listing.")

        try:
            offer = self._offers.create(
                listing_id=listing.listing_id,
                seller_id=listing.seller_id,
                customer_id=customer.customer_id,
                currency=listing.currency,
                amount_cents=amount_cents,
                buyer_message=sanitize_text(message, MESSAGE_MAX) or None,
            )
        except DuplicateRecordError as e:
            # A concurrent create won the open-offer index.
            raise ConflictError("You already have an open offer on this listing.") from e

        logger.info("Offer %s opened on listing %s", offer.offer_id, listing.listing_id)
        return offer

    def list_offers(self, query: OfferQuery) -> List[Dict[str, Any]]:
        """
        Offers matching the given participant/listing filters, newest first.

        An unknown customer or seller email yields an empty list.
        """

        customer_email = sanitize_email(query.customer_email)
        seller_email = sanitize_email(query.seller_email)
        listing_id = sanitize_text(query.listing_id, 90)
        limit = clamp_int(query.limit, 1, 80, 30)
        offset = clamp_int(query.offset, 0, 5000, 0)

        if not customer_email and not seller_email and not listing_id:
            raise ValidationError("Use one filter: customer_email, seller_email, or listing_id.")

        filters: Dict[str, Any] = {}
        if customer_email:
            if not is_valid_email(customer_email):
                raise ValidationError("customer_email is invalid.")
            customer = self._customers.get_by_email(customer_email)
            if customer is None:
                return []
            filters["customer_id"] = customer.customer_id

        if seller_email:
            if not is_valid_email(seller_email):
                raise ValidationError("seller_email is invalid.")
            seller = self._sellers.get_by_email(seller_email)
            if seller is None:
                return []
            filters["seller_id"] = seller.seller_id

        if listing_id:
            filters["listing_id"] = listing_id

        status = _parse_status_filter(query.status)
        if status is not None:
            filters["status"] = status

        offers = self._offers.search(filters=filters, limit=limit, offset=offset)
        return self._enrich(offers)

    def _enrich(self, offers: List[Offer]) -> List[Dict[str, Any]]:
        listings = self._listings.get_many(o.listing_id for o in offers)
        customer_emails = self._customers.emails_by_id(o.customer_id for o in offers)
        seller_emails = self._sellers.emails_by_id(o.seller_id for o in offers)

        enriched = []
        for offer in offers:
            item = offer.to_public_dict()
            listing = listings.get(offer.listing_id)
            item["customer_email"] = customer_emails.get(offer.customer_id)
            item["seller_email"] = seller_emails.get(offer.seller_id)
            item["listing"] = listing_summary(listing) if listing else None
            enriched.append(item)
        return enriched

    def act(self, request: OfferActionRequest) -> Offer:
        """
        Apply a seller or customer action to an offer.

        Checks run in a fixed order: offer exists, offer is still open,
        actor email is well formed, actor owns the offer, action-specific
        guard, then the conditional write.

        Raises:
            ValidationError: unknown action, bad actor email, bad counter amount
            NotFoundError: offer does not exist
            ConflictError: offer is terminal, not countered (accept_counter),
                or changed concurrently
            AuthorizationError: actor is not the offer's seller/customer
        """

        offer_id = sanitize_text(request.offer_id, 90)
        action_name = sanitize_text(request.action, 30).lower()
        if not offer_id:
            raise ValidationError("offerId and valid action are required.")
        action = parse_action(action_name)

        offer = self._offers.get(offer_id)
        if offer is None:
            raise NotFoundError("Offer not found.")
        require_open(offer)

        if ACTION_ACTORS[action] is OfferActor.SELLER:
            self._require_seller(offer, request.seller_email)
        else:
            self._require_customer(offer, request.customer_email)

        changes = plan_offer_action(
            offer,
            action,
            now=self._clock(),
            message=sanitize_text(request.message, MESSAGE_MAX) or None,
            counter_amount_cents=to_price_cents(request.counter_amount),
        )

        updated = self._offers.apply_changes(offer, changes)
        if updated is None:
            logger.warning("Offer %s changed while applying %s", offer.offer_id, action.value)
            raise ConflictError("Offer was changed by another request. Reload and try again.")

        logger.info("Offer %s: %s -> %s", offer.offer_id, action.value, updated.status.value)
        return updated

    def _require_seller(self, offer: Offer, email: Optional[str]) -> None:
        seller_email = sanitize_email(email)
        if not is_valid_email(seller_email):
            raise ValidationError("Valid sellerEmail is required for seller actions.")
        seller = self._sellers.get_by_email(seller_email)
        if seller is None or seller.seller_id != offer.seller_id:
            raise AuthorizationError("Seller is not authorized for this offer.")

    def _require_customer(self, offer: Offer, email: Optional[str]) -> None:
        customer_email = sanitize_email(email)
        if not is_valid_email(customer_email):
            raise ValidationError("Valid customerEmail is required for this action.")
        customer = self._customers.get_by_email(customer_email)
        if customer is None or customer.customer_id != offer.customer_id:
            raise AuthorizationError("Customer is not authorized for this offer.")


__all__ = ["OfferQuery", "OfferActionRequest", "OfferService", "listing_summary"]
