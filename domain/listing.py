"""
Domain: Listing entity and its lifecycle state machine.

Rules implemented here:
- A listing may be purchased only when status is ACTIVE and moderation_status
  is APPROVED.
- ACTIVE -> RESERVED belongs to checkout; RESERVED -> SOLD to payment
  confirmation; RESERVED -> ACTIVE to rollback, expiry/failure events and the
  stale-reservation sweep; ACTIVE <-> ARCHIVED to the owner.
- Moderation is an independent lifecycle. Approval needs at least one valid
  media URL. Rejection needs a reason and archives a listing that is still
  ACTIVE or RESERVED so it cannot be bought.
- checkout_session_id is meaningful only while the listing is RESERVED (and
  as the record of the paying session once SOLD).

Transition planners return the column changes to write; the repository
performs them with a compare-and-swap on the state the plan was derived from.
No I/O happens in this module.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional

from .errors import AuthorizationError, ConflictError, ValidationError
from .media import MediaUrls, select_primary_image
from .money import to_display_amount
from .time import require_utc_timestamp, to_iso_utc


class ListingStatus(str, Enum):
    ACTIVE = "active"
    RESERVED = "reserved"
    ARCHIVED = "archived"
    SOLD = "sold"


class ModerationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# States the owner may toggle between.
OWNER_STATUSES: FrozenSet[ListingStatus] = frozenset({ListingStatus.ACTIVE, ListingStatus.ARCHIVED})

# A completed payment may arrive before or after the session is attached.
SELLABLE_STATUSES: FrozenSet[ListingStatus] = frozenset({ListingStatus.ACTIVE, ListingStatus.RESERVED})


@dataclass(frozen=True, slots=True)
class Listing:
    """
    A single item for sale, owned by one seller.

    Media fields are already normalized (see domain.media) when a Listing is
    built from a stored row.
    """

    listing_id: str
    seller_id: str
    title: str
    brand: str
    price_cents: int
    currency: str
    status: ListingStatus
    moderation_status: ModerationStatus

    description: Optional[str] = None
    size: Optional[str] = None
    condition: Optional[str] = None
    is_new: bool = False
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    media_urls: MediaUrls = ()
    approved_media_urls: MediaUrls = ()

    moderation_reason: Optional[str] = None
    moderated_at: Optional[datetime] = None
    checkout_session_id: Optional[str] = None
    reserved_at: Optional[datetime] = None
    sold_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.price_cents <= 0:
            raise ValueError("price_cents must be positive")
        for name in ("moderated_at", "reserved_at", "sold_at", "created_at"):
            value = getattr(self, name)
            if value is not None:
                require_utc_timestamp(name, value)

    @property
    def is_purchasable(self) -> bool:
        return self.status is ListingStatus.ACTIVE and self.moderation_status is ModerationStatus.APPROVED

    @property
    def primary_image_url(self) -> Optional[str]:
        return select_primary_image(self.approved_media_urls, self.media_urls, self.image_url)

    @property
    def product_name(self) -> str:
        return f"{self.brand} {self.title}".strip()

    def to_public_dict(self) -> Dict[str, Any]:
        """JSON shape returned by the API, with a derived display price."""

        return {
            "id": self.listing_id,
            "seller_id": self.seller_id,
            "title": self.title,
            "brand": self.brand,
            "description": self.description,
            "size": self.size,
            "condition": self.condition,
            "is_new": self.is_new,
            "price_cents": self.price_cents,
            "price": to_display_amount(self.price_cents),
            "currency": self.currency,
            "image_url": self.image_url,
            "video_url": self.video_url,
            "media_urls": list(self.media_urls),
            "approved_media_urls": list(self.approved_media_urls),
            "primary_image_url": self.primary_image_url,
            "status": self.status.value,
            "moderation_status": self.moderation_status.value,
            "moderation_reason": self.moderation_reason,
            "moderated_at": self.moderated_at.isoformat() if self.moderated_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "sold_at": self.sold_at.isoformat() if self.sold_at else None,
        }


def require_purchasable(listing: Listing) -> None:
    """Raise ConflictError unless the listing is ACTIVE and APPROVED."""

    if listing.status is not ListingStatus.ACTIVE:
        raise ConflictError(
            f"Listing cannot be purchased while status is '{listing.status.value}'."
        )
    if listing.moderation_status is not ModerationStatus.APPROVED:
        raise ConflictError(
            "Listing cannot be purchased before moderation approval "
            f"(current: {listing.moderation_status.value})."
        )


def reservation_changes(now: datetime) -> Dict[str, Any]:
    """Columns written by the ACTIVE -> RESERVED edge."""

    return {
        "status": ListingStatus.RESERVED.value,
        "reserved_at": to_iso_utc(now, name="reserved_at"),
        "checkout_session_id": None,
    }


def release_changes() -> Dict[str, Any]:
    """Columns written by the RESERVED -> ACTIVE edge."""

    return {
        "status": ListingStatus.ACTIVE.value,
        "checkout_session_id": None,
        "reserved_at": None,
    }


def sold_changes(session_id: Optional[str], now: datetime) -> Dict[str, Any]:
    """Columns written on payment. An unknown session keeps the attached one."""

    changes: Dict[str, Any] = {
        "status": ListingStatus.SOLD.value,
        "sold_at": to_iso_utc(now, name="sold_at"),
    }
    if session_id:
        changes["checkout_session_id"] = session_id
    return changes


def plan_owner_status_change(listing: Listing, seller_id: str, target: ListingStatus) -> Dict[str, Any]:
    """
    Owner toggles a listing between ACTIVE and ARCHIVED.

    Raises:
        ValidationError: target is not an owner-settable status
        AuthorizationError: seller_id does not own the listing
        ConflictError: listing is RESERVED or SOLD
    """

    if target not in OWNER_STATUSES:
        raise ValidationError("listingId and valid status (active|archived) are required.")
    if listing.seller_id != seller_id:
        raise AuthorizationError("Seller is not authorized for this listing.")
    if listing.status not in OWNER_STATUSES:
        raise ConflictError(
            f"Listing status cannot be changed while it is '{listing.status.value}'."
        )
    return {"status": target.value}


def plan_moderation_approval(listing: Listing, now: datetime) -> Dict[str, Any]:
    """
    Approve a listing.

    The approved media are the submitted media, falling back to the legacy
    single image_url. RESERVED and SOLD listings keep their status; anything
    else becomes ACTIVE.

    Raises:
        ValidationError: no valid media URL to approve
    """

    media = select_approval_media(listing)
    if not media:
        raise ValidationError("Cannot approve a listing without at least one valid image.")

    if listing.status in (ListingStatus.RESERVED, ListingStatus.SOLD):
        status = listing.status
    else:
        status = ListingStatus.ACTIVE

    return {
        "moderation_status": ModerationStatus.APPROVED.value,
        "moderation_reason": None,
        "moderated_at": to_iso_utc(now, name="moderated_at"),
        "approved_media_urls": list(media),
        "image_url": media[0],
        "status": status.value,
    }


def select_approval_media(listing: Listing) -> MediaUrls:
    if listing.media_urls:
        return listing.media_urls
    fallback = select_primary_image((), (), listing.image_url)
    return (fallback,) if fallback else ()


def plan_moderation_rejection(listing: Listing, reason: str, now: datetime) -> Dict[str, Any]:
    """
    Reject a listing.

    A rejected listing must not remain purchasable, so ACTIVE and RESERVED
    listings are archived as part of the same write.

    Raises:
        ValidationError: reason is empty
    """

    if not reason or not reason.strip():
        raise ValidationError("A reason is required to reject a listing.")

    changes: Dict[str, Any] = {
        "moderation_status": ModerationStatus.REJECTED.value,
        "moderation_reason": reason.strip(),
        "moderated_at": to_iso_utc(now, name="moderated_at"),
    }
    if listing.status in SELLABLE_STATUSES:
        changes["status"] = ListingStatus.ARCHIVED.value
    return changes


__all__ = [
    "ListingStatus",
    "ModerationStatus",
    "Listing",
    "OWNER_STATUSES",
    "SELLABLE_STATUSES",
    "require_purchasable",
    "reservation_changes",
    "release_changes",
    "sold_changes",
    "plan_owner_status_change",
    "plan_moderation_approval",
    "select_approval_media",
    "plan_moderation_rejection",
]
