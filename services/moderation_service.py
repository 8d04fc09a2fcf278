"""
Moderation service (admin only).

Every call is authorized with a shared admin token (MARKETPLACE_ADMIN_TOKEN,
falling back to ADMIN_TOKEN). Approval and rejection are planned in
domain.listing and written with a compare-and-swap on the listing's status
and moderation status.
"""

from __future__ import annotations

import hmac
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from domain.errors import AuthenticationError, ConfigurationError, ConflictError, NotFoundError, ValidationError
from domain.listing import Listing, ModerationStatus, plan_moderation_approval, plan_moderation_rejection
from domain.time import utc_now
from domain.validation import clamp_int, sanitize_text
from repositories.listing_repository import ListingRepository
from repositories.profile_repository import SellerRepository

logger = logging.getLogger(__name__)

MODERATION_ACTIONS = frozenset({"approve", "reject"})


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Token from an 'Authorization: Bearer <token>' header, else ''."""

    parts = (authorization or "").strip().split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return ""
    return parts[1].strip()


class ModerationService:
    def __init__(
        self,
        listings: ListingRepository,
        sellers: SellerRepository,
        admin_token: Optional[str],
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._listings = listings
        self._sellers = sellers
        self._admin_token = admin_token
        self._clock = clock

    def authorize(self, *candidates: Optional[str]) -> None:
        """
        Check the first non-empty candidate token against the configured one.

        Raises:
            ConfigurationError: no admin token configured
            AuthenticationError: token missing or wrong
        """

        if not self._admin_token:
            raise ConfigurationError("MARKETPLACE_ADMIN_TOKEN is required for moderation endpoints.")

        supplied = next((sanitize_text(c, 500) for c in candidates if sanitize_text(c, 500)), "")
        if not supplied or not hmac.compare_digest(supplied.encode(), self._admin_token.encode()):
            logger.warning("Rejected moderation request with invalid admin token")
            raise AuthenticationError("Unauthorized moderation request.")

    def list_for_review(
        self,
        moderation_status: Optional[str] = None,
        limit: Any = None,
        offset: Any = None,
    ) -> List[Dict[str, Any]]:
        state = sanitize_text(moderation_status, 20).lower() or ModerationStatus.PENDING.value
        filters: Dict[str, Any] = {}
        if state != "all":
            try:
                filters["moderation_status"] = ModerationStatus(state)
            except ValueError:
                raise ValidationError("moderation_status must be pending, approved, rejected, or all.") from None

        listings = self._listings.search(
            filters=filters,
            limit=clamp_int(limit, 1, 80, 40),
            offset=clamp_int(offset, 0, 10000, 0),
        )
        seller_emails = self._sellers.emails_by_id(listing.seller_id for listing in listings)

        results = []
        for listing in listings:
            item = listing.to_public_dict()
            item["seller_email"] = seller_emails.get(listing.seller_id)
            results.append(item)
        return results

    def moderate(self, *, listing_id: Optional[str], action: Optional[str], reason: Optional[str] = None) -> Listing:
        """
        Approve or reject one listing.

        Raises:
            ValidationError: missing id, unknown action, approval without
                media, rejection without a reason
            NotFoundError: listing does not exist
            ConflictError: listing changed concurrently
        """

        listing_id = sanitize_text(listing_id, 90)
        action_name = sanitize_text(action, 20).lower()
        if not listing_id or action_name not in MODERATION_ACTIONS:
            raise ValidationError("listingId and action (approve|reject) are required.")

        listing = self._listings.get(listing_id)
        if listing is None:
            raise NotFoundError("Listing not found.")

        now = self._clock()
        if action_name == "approve":
            changes = plan_moderation_approval(listing, now)
        else:
            changes = plan_moderation_rejection(listing, sanitize_text(reason, 500), now)

        updated = self._listings.apply_changes(listing, changes)
        if updated is None:
            logger.warning("Listing %s changed during moderation", listing.listing_id)
            raise ConflictError("Listing was changed by another request. Reload and try again.")

        logger.info("Listing %s moderated: %s", updated.listing_id, updated.moderation_status.value)
        return updated


__all__ = ["ModerationService", "extract_bearer_token", "MODERATION_ACTIONS"]
