"""
Domain: seller and customer profiles.

Identity records keyed by email. The negotiation and checkout core treats
them as opaque references resolved by email lookup.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from .time import require_utc_timestamp


@dataclass(frozen=True, slots=True)
class SellerProfile:
    """Seller with an optional Stripe Connect payout account."""

    seller_id: str
    email: str
    stripe_account_id: Optional[str] = None
    onboarding_complete: bool = False

    @property
    def has_payout_account(self) -> bool:
        return bool(self.stripe_account_id)

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "id": self.seller_id,
            "email": self.email,
            "stripe_account_id": self.stripe_account_id,
            "onboarding_complete": self.onboarding_complete,
        }


@dataclass(frozen=True, slots=True)
class CustomerProfile:
    customer_id: str
    email: str
    phone: Optional[str] = None
    full_name: Optional[str] = None
    marketing_opt_in: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)
        if self.updated_at is not None:
            require_utc_timestamp("updated_at", self.updated_at)

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "id": self.customer_id,
            "email": self.email,
            "phone": self.phone,
            "full_name": self.full_name,
            "marketing_opt_in": self.marketing_opt_in,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
