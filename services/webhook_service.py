"""
Webhook reconciler.

Applies Stripe checkout events to listings:
- checkout.session.completed -> SOLD
- checkout.session.expired / checkout.session.async_payment_failed -> ACTIVE

Every write is conditioned on the listing's current status, so redelivered
or out-of-order events change nothing the second time. Store errors are not
caught here: they surface as a 500 so Stripe retries the delivery.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from domain.errors import ConfigurationError, ValidationError
from domain.time import utc_now
from repositories.listing_repository import ListingRepository
from services.payment_provider import PaymentProvider, WebhookEvent

logger = logging.getLogger(__name__)

SESSION_COMPLETED: str = "checkout.session.completed"
SESSION_EXPIRED: str = "checkout.session.expired"
SESSION_PAYMENT_FAILED: str = "checkout.session.async_payment_failed"

RELEASE_EVENTS = frozenset({SESSION_EXPIRED, SESSION_PAYMENT_FAILED})


@dataclass(frozen=True, slots=True)
class WebhookOutcome:
    event_type: str
    handled: bool
    listings_updated: int = 0

    def to_public_dict(self) -> dict:
        return {
            "received": True,
            "type": self.event_type,
            "handled": self.handled,
            "updated": self.listings_updated,
        }


def _metadata_listing_id(data_object: Mapping[str, Any]) -> Optional[str]:
    metadata = data_object.get("metadata") or {}
    listing_id = metadata.get("listing_id") if isinstance(metadata, Mapping) else None
    return str(listing_id) if listing_id else None


class WebhookReconciler:
    def __init__(
        self,
        listings: ListingRepository,
        payments: PaymentProvider,
        webhook_secret: Optional[str],
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._listings = listings
        self._payments = payments
        self._webhook_secret = webhook_secret
        self._clock = clock

    def handle(self, raw_body: bytes, signature_header: Optional[str]) -> WebhookOutcome:
        """
        Verify and apply one webhook delivery.

        Raises:
            ConfigurationError: STRIPE_WEBHOOK_SECRET not configured
            ValidationError: Stripe-Signature header missing
            WebhookSignatureError: signature does not verify
        """

        if not self._webhook_secret:
            raise ConfigurationError("STRIPE_WEBHOOK_SECRET is required.")
        if not signature_header:
            raise ValidationError("Missing Stripe-Signature header.")

        event = self._payments.verify_and_parse_webhook(raw_body, signature_header, self._webhook_secret)
        return self.apply(event)

    def apply(self, event: WebhookEvent) -> WebhookOutcome:
        session_id = str(event.data_object.get("id") or "")
        listing_id = _metadata_listing_id(event.data_object)

        if event.event_type == SESSION_COMPLETED:
            if not session_id and not listing_id:
                logger.warning("Event %s has neither session id nor listing id", event.event_id)
                return WebhookOutcome(event.event_type, handled=True)
            updated = self._listings.mark_sold_by_session(session_id, self._clock(), listing_id=listing_id)
            logger.info(
                "Event %s: %d listing(s) marked sold for session %s",
                event.event_id,
                len(updated),
                session_id,
            )
            return WebhookOutcome(event.event_type, handled=True, listings_updated=len(updated))

        if event.event_type in RELEASE_EVENTS:
            if not session_id and not listing_id:
                logger.warning("Event %s has neither session id nor listing id", event.event_id)
                return WebhookOutcome(event.event_type, handled=True)
            released = self._listings.release_by_session(session_id, listing_id=listing_id)
            logger.info(
                "Event %s: %d reservation(s) released for session %s",
                event.event_id,
                len(released),
                session_id,
            )
            return WebhookOutcome(event.event_type, handled=True, listings_updated=len(released))

        logger.debug("Ignoring webhook event type %s", event.event_type)
        return WebhookOutcome(event.event_type, handled=False)


__all__ = [
    "SESSION_COMPLETED",
    "SESSION_EXPIRED",
    "SESSION_PAYMENT_FAILED",
    "WebhookOutcome",
    "WebhookReconciler",
]
