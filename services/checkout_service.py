"""
Checkout orchestrator.

Handles:
- Reserving a listing with a compare-and-swap on ACTIVE (the only concurrency
  control; two simultaneous checkouts for one listing yield exactly one
  reservation)
- Creating a Stripe Checkout session that routes the price to the seller's
  connected account minus the platform fee
- Compensating rollback: if anything fails after the reservation and before
  the session id is attached, the listing is put back to ACTIVE
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional
from urllib.parse import urlsplit

from domain.errors import (
    ConfigurationError,
    ConflictError,
    NotFoundError,
    PreconditionError,
    UpstreamError,
    ValidationError,
)
from domain.listing import Listing, require_purchasable
from domain.money import compute_application_fee
from domain.profiles import SellerProfile
from domain.time import utc_now
from domain.validation import is_valid_email, normalize_origin, sanitize_text
from repositories.listing_repository import ListingRepository
from repositories.profile_repository import SellerRepository
from services.payment_provider import CheckoutSession, CheckoutSessionParams, PaymentProvider
from services.settings import Settings

logger = logging.getLogger(__name__)

PRODUCT_DESCRIPTION_MAX: int = 240


@dataclass(frozen=True, slots=True)
class CheckoutRequest:
    """
    Request to buy one listing.

    origin is an explicit public origin from the caller; request_origin is
    the origin inferred from the HTTP request's (forwarded) host and is only
    used when neither origin nor PUBLIC_ORIGIN is set.
    """

    listing_id: str
    buyer_email: Optional[str] = None
    origin: Optional[str] = None
    request_origin: Optional[str] = None
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None


@dataclass(frozen=True, slots=True)
class CheckoutResult:
    session_id: str
    url: Optional[str]
    listing_id: str
    application_fee_amount: int
    application_fee_percent: float

    def to_public_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "url": self.url,
            "listing_id": self.listing_id,
            "application_fee_amount": self.application_fee_amount,
            "application_fee_percent": self.application_fee_percent,
        }


def _parse_redirect_url(value: Optional[str]) -> Optional[str]:
    """Accept only absolute http(s) URLs with a host."""

    if not value:
        return None
    candidate = value.strip()
    try:
        parts = urlsplit(candidate)
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return None
    return candidate


def resolve_public_origin(settings: Settings, explicit: Optional[str], request_origin: Optional[str]) -> str:
    """
    Public site origin for redirect URLs.

    Order: explicit origin from the caller, PUBLIC_ORIGIN, then the origin of
    the incoming request.

    Raises:
        ConfigurationError: none of them is a usable http(s) origin
    """

    origin = normalize_origin(explicit) or settings.public_origin or normalize_origin(request_origin)
    if not origin:
        raise ConfigurationError("Unable to resolve PUBLIC_ORIGIN for redirect URLs.")
    return origin


def default_redirect_urls(origin: str, listing_id: str) -> tuple[str, str]:
    """Fallback success/cancel URLs carrying the listing id and outcome marker."""

    return (
        f"{origin}/?checkout=success&listing={listing_id}",
        f"{origin}/?checkout=cancelled&listing={listing_id}",
    )


class CheckoutService:
    def __init__(
        self,
        listings: ListingRepository,
        sellers: SellerRepository,
        payments: PaymentProvider,
        settings: Settings,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._listings = listings
        self._sellers = sellers
        self._payments = payments
        self._settings = settings
        self._clock = clock

    def _load_purchasable_listing(self, listing_id: str) -> Listing:
        listing = self._listings.get(listing_id)
        if listing is None:
            raise NotFoundError("Listing not found.")
        require_purchasable(listing)
        return listing

    def _load_payable_seller(self, listing: Listing) -> SellerProfile:
        seller = self._sellers.get(listing.seller_id)
        if seller is None or not seller.has_payout_account:
            raise PreconditionError("Seller payout account is missing.")

        account = self._payments.retrieve_account(seller.stripe_account_id)
        if not account.is_fully_enabled:
            raise ConflictError("Seller Stripe account is not fully enabled yet.")
        return seller

    def create_checkout_session(self, request: CheckoutRequest) -> CheckoutResult:
        """
        Reserve a listing and open a payment session for it.

        Process:
        1. Validate input and resolve the public origin for redirects
        2. Load the listing; it must be ACTIVE and APPROVED
        3. Load the seller; it must have a fully enabled Stripe account
        4. Reserve: ACTIVE -> RESERVED via compare-and-swap
        5. Compute the application fee
        6. Create the Stripe Checkout session
        7. Attach the session id to the still-RESERVED listing

        Any failure after step 4 and before step 7 completes releases the
        reservation before the error is re-raised.

        Raises:
            ValidationError: missing listing id or malformed buyer email
            NotFoundError: listing does not exist
            PreconditionError: seller has no payout account
            ConflictError: listing not purchasable, seller account not
                enabled, or another checkout reserved it first
            UpstreamError: Stripe or the record store failed
        """

        listing_id = sanitize_text(request.listing_id, 80)
        buyer_email = sanitize_text(request.buyer_email, 160).lower()
        if not listing_id:
            raise ValidationError("listingId is required.")
        if buyer_email and not is_valid_email(buyer_email):
            raise ValidationError("buyerEmail is invalid.")

        origin = resolve_public_origin(self._settings, request.origin, request.request_origin)
        listing = self._load_purchasable_listing(listing_id)
        seller = self._load_payable_seller(listing)

        reserved = self._listings.reserve(listing.listing_id, self._clock())
        if reserved is None:
            logger.info("Checkout lost reservation race for listing %s", listing.listing_id)
            raise ConflictError("Listing is no longer available.")

        session: Optional[CheckoutSession] = None
        try:
            fee_percent = self._settings.platform_fee_percent
            fee_amount = compute_application_fee(reserved.price_cents, fee_percent)

            fallback_success, fallback_cancel = default_redirect_urls(origin, reserved.listing_id)
            metadata = {
                "listing_id": reserved.listing_id,
                "seller_id": seller.seller_id,
                "platform": self._settings.platform_name,
            }
            session = self._payments.create_checkout_session(
                CheckoutSessionParams(
                    price_cents=reserved.price_cents,
                    currency=reserved.currency,
                    destination_account=seller.stripe_account_id,
                    application_fee_amount=fee_amount,
                    success_url=_parse_redirect_url(request.success_url) or fallback_success,
                    cancel_url=_parse_redirect_url(request.cancel_url) or fallback_cancel,
                    product_name=reserved.product_name,
                    product_description=sanitize_text(reserved.description, PRODUCT_DESCRIPTION_MAX) or None,
                    image_url=reserved.primary_image_url,
                    customer_email=buyer_email or None,
                    metadata=metadata,
                )
            )

            attached = self._listings.attach_checkout_session(reserved.listing_id, session.session_id)
            if attached is None:
                raise ConflictError("Listing is no longer available.")
        except Exception:
            self._compensate(reserved.listing_id, session)
            raise

        logger.info(
            "Checkout session %s created for listing %s (fee %s)",
            session.session_id,
            reserved.listing_id,
            fee_amount,
        )
        return CheckoutResult(
            session_id=session.session_id,
            url=session.url,
            listing_id=reserved.listing_id,
            application_fee_amount=fee_amount,
            application_fee_percent=fee_percent,
        )

    def _compensate(self, listing_id: str, session: Optional[CheckoutSession]) -> None:
        """
        Undo a reservation whose session never got attached.

        Guarded by "still RESERVED with no other session attached", so a
        listing already sold, released or re-reserved by someone else is left
        alone. A created but unattached session is expired so it cannot be
        paid.
        """

        logger.warning("Checkout failed after reserving listing %s; releasing reservation", listing_id)
        try:
            self._listings.release_reservation(listing_id, session_id=session.session_id if session else None)
        except UpstreamError:
            logger.exception("Failed to release reservation for listing %s", listing_id)

        if session is not None:
            try:
                self._payments.expire_checkout_session(session.session_id)
            except UpstreamError:
                logger.exception("Failed to expire checkout session %s", session.session_id)


__all__ = [
    "CheckoutRequest",
    "CheckoutResult",
    "CheckoutService",
    "default_redirect_urls",
    "resolve_public_origin",
]
