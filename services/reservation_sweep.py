"""
Stale-reservation sweep.

A checkout that crashes between reserving a listing and attaching its
payment session leaves the listing RESERVED with no session, and no webhook
will ever release it. This sweep puts such listings back to ACTIVE once
they are older than the grace period. Rows reserved before reserved_at was
recorded have no timestamp and are treated as stale.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, List

from domain.listing import Listing
from domain.time import utc_now
from repositories.listing_repository import ListingRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SweepReport:
    examined: int = 0
    released: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    def to_public_dict(self) -> dict:
        return {"examined": self.examined, "released": list(self.released), "skipped": list(self.skipped)}


def is_stale(listing: Listing, cutoff: datetime) -> bool:
    return listing.reserved_at is None or listing.reserved_at <= cutoff


def release_stale_reservations(
    listings: ListingRepository,
    grace_minutes: int,
    clock: Callable[[], datetime] = utc_now,
) -> SweepReport:
    """
    Release RESERVED listings without a checkout session older than
    grace_minutes.

    Each release is a compare-and-swap on RESERVED with no session, so a
    listing whose checkout attaches a session meanwhile is left alone.
    """

    cutoff = clock() - timedelta(minutes=grace_minutes)
    report = SweepReport()

    for listing in listings.list_reserved_without_session():
        report.examined += 1
        if not is_stale(listing, cutoff):
            continue
        if listings.release_reservation(listing.listing_id) is None:
            report.skipped.append(listing.listing_id)
            logger.info("Listing %s changed before it could be released", listing.listing_id)
            continue
        report.released.append(listing.listing_id)
        logger.warning("Released stale reservation on listing %s", listing.listing_id)

    return report


__all__ = ["SweepReport", "is_stale", "release_stale_reservations"]
