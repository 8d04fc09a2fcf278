"""
Domain: Offer entity and the buyer/seller negotiation state machine.

States:
- PENDING, COUNTERED are open.
- ACCEPTED, REJECTED, CANCELLED, EXPIRED are terminal; a terminal offer never
  changes again. EXPIRED is only reached through an external time-based
  process but is treated as terminal everywhere.

Actions:
- Seller (owner of offer.seller_id): ACCEPT, REJECT, COUNTER.
- Customer (owner of offer.customer_id): CANCEL, ACCEPT_COUNTER.

Invariants:
- final_amount_cents is set iff status is ACCEPTED and equals the counter
  amount when a counter exists, else the original amount.
- At most one open offer per (listing_id, customer_id); enforced by the offer
  service before insert.

plan_offer_action() is pure: it validates the action against the current
offer and returns the column changes. Actor identity is checked by the
service after the terminal guard, as the guard must win over every other
failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional

from .errors import ConflictError, ValidationError
from .money import to_display_amount
from .time import require_utc_timestamp, to_iso_utc


class OfferStatus(str, Enum):
    PENDING = "pending"
    COUNTERED = "countered"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class OfferAction(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    COUNTER = "counter"
    CANCEL = "cancel"
    ACCEPT_COUNTER = "accept_counter"


class OfferActor(str, Enum):
    SELLER = "seller"
    CUSTOMER = "customer"


OPEN_STATUSES: FrozenSet[OfferStatus] = frozenset({OfferStatus.PENDING, OfferStatus.COUNTERED})

TERMINAL_STATUSES: FrozenSet[OfferStatus] = frozenset(
    {OfferStatus.ACCEPTED, OfferStatus.REJECTED, OfferStatus.CANCELLED, OfferStatus.EXPIRED}
)

ACTION_ACTORS: Mapping[OfferAction, OfferActor] = {
    OfferAction.ACCEPT: OfferActor.SELLER,
    OfferAction.REJECT: OfferActor.SELLER,
    OfferAction.COUNTER: OfferActor.SELLER,
    OfferAction.CANCEL: OfferActor.CUSTOMER,
    OfferAction.ACCEPT_COUNTER: OfferActor.CUSTOMER,
}

DEFAULT_REJECTION_MESSAGE = "Offer rejected."


@dataclass(frozen=True, slots=True)
class Offer:
    """A buyer-initiated price negotiation against one listing."""

    offer_id: str
    listing_id: str
    seller_id: str
    customer_id: str
    currency: str
    amount_cents: int
    status: OfferStatus

    counter_amount_cents: Optional[int] = None
    final_amount_cents: Optional[int] = None
    buyer_message: Optional[str] = None
    seller_message: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        for name in ("created_at", "updated_at", "resolved_at"):
            value = getattr(self, name)
            if value is not None:
                require_utc_timestamp(name, value)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def display_amount_cents(self) -> int:
        """Most recent amount on the table: final, else counter, else the ask."""

        return self.final_amount_cents or self.counter_amount_cents or self.amount_cents

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "id": self.offer_id,
            "listing_id": self.listing_id,
            "seller_id": self.seller_id,
            "customer_id": self.customer_id,
            "currency": self.currency,
            "amount_cents": self.amount_cents,
            "counter_amount_cents": self.counter_amount_cents,
            "final_amount_cents": self.final_amount_cents,
            "amount": to_display_amount(self.amount_cents),
            "counter_amount": to_display_amount(self.counter_amount_cents),
            "final_amount": to_display_amount(self.final_amount_cents),
            "display_amount": to_display_amount(self.display_amount_cents),
            "status": self.status.value,
            "buyer_message": self.buyer_message,
            "seller_message": self.seller_message,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
        }


def parse_action(value: str) -> OfferAction:
    try:
        return OfferAction(value)
    except ValueError:
        raise ValidationError("offerId and valid action are required.") from None


def require_open(offer: Offer) -> None:
    """Terminal guard; runs before any identity or input check."""

    if offer.is_terminal:
        raise ConflictError(f"Offer is already {offer.status.value} and cannot be changed.")


def final_amount_for(offer: Offer) -> int:
    return offer.counter_amount_cents or offer.amount_cents


def plan_offer_action(
    offer: Offer,
    action: OfferAction,
    *,
    now: datetime,
    message: Optional[str] = None,
    counter_amount_cents: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Compute the column changes for applying action to offer.

    Raises:
        ConflictError: offer is terminal, or ACCEPT_COUNTER on an offer that
            is not COUNTERED
        ValidationError: COUNTER without a positive integer amount
    """

    require_open(offer)
    resolved_at = to_iso_utc(now, name="resolved_at")

    if action is OfferAction.ACCEPT:
        return {
            "status": OfferStatus.ACCEPTED.value,
            "final_amount_cents": final_amount_for(offer),
            "seller_message": message or None,
            "resolved_at": resolved_at,
        }

    if action is OfferAction.REJECT:
        return {
            "status": OfferStatus.REJECTED.value,
            "seller_message": message or DEFAULT_REJECTION_MESSAGE,
            "resolved_at": resolved_at,
        }

    if action is OfferAction.COUNTER:
        if (
            not isinstance(counter_amount_cents, int)
            or isinstance(counter_amount_cents, bool)
            or counter_amount_cents <= 0
        ):
            raise ValidationError("counterAmount must be a positive number for counter action.")
        # Stays open: no resolved_at.
        return {
            "status": OfferStatus.COUNTERED.value,
            "counter_amount_cents": counter_amount_cents,
            "seller_message": message or None,
        }

    if action is OfferAction.CANCEL:
        return {
            "status": OfferStatus.CANCELLED.value,
            "resolved_at": resolved_at,
        }

    if offer.status is not OfferStatus.COUNTERED or not offer.counter_amount_cents:
        raise ConflictError("Only countered offers can be accepted by customer.")
    return {
        "status": OfferStatus.ACCEPTED.value,
        "final_amount_cents": offer.counter_amount_cents,
        "resolved_at": resolved_at,
    }


__all__ = [
    "OfferStatus",
    "OfferAction",
    "OfferActor",
    "Offer",
    "OPEN_STATUSES",
    "TERMINAL_STATUSES",
    "ACTION_ACTORS",
    "DEFAULT_REJECTION_MESSAGE",
    "parse_action",
    "require_open",
    "final_amount_for",
    "plan_offer_action",
]
