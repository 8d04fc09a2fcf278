"""
Seller onboarding and payout account status.

Sellers get a Stripe Express connected account. The account id is stored on
the seller profile (upserted by email) so a seller who restarts onboarding
gets a fresh link for the same account instead of a second account.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from domain.errors import NotFoundError, ValidationError
from domain.profiles import SellerProfile
from domain.validation import is_valid_email, sanitize_email, sanitize_text
from repositories.profile_repository import SellerRepository
from services.checkout_service import resolve_public_origin
from services.payment_provider import ConnectedAccountStatus, PaymentProvider
from services.settings import Settings

logger = logging.getLogger(__name__)

ONBOARDING_PATH: str = "/pages/sell-with-us"


@dataclass(frozen=True, slots=True)
class OnboardingResult:
    url: str
    seller: SellerProfile

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "stripe_account_id": self.seller.stripe_account_id,
            "seller": self.seller.to_public_dict(),
        }


@dataclass(frozen=True, slots=True)
class AccountStatusResult:
    seller: SellerProfile
    account: Optional[ConnectedAccountStatus]

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "exists": True,
            "onboarding_complete": self.seller.onboarding_complete,
            "seller": self.seller.to_public_dict(),
            "stripe": self.account.to_public_dict() if self.account else None,
        }


class SellerService:
    def __init__(self, sellers: SellerRepository, payments: PaymentProvider, settings: Settings) -> None:
        self._sellers = sellers
        self._payments = payments
        self._settings = settings

    def start_onboarding(
        self,
        email: Optional[str],
        *,
        origin: Optional[str] = None,
        request_origin: Optional[str] = None,
    ) -> OnboardingResult:
        """
        Create (or reuse) the seller's connected account and return an
        onboarding link.

        Raises:
            ValidationError: email missing or malformed
            ConfigurationError: no public origin for the return URL
            UpstreamError: Stripe or the record store failed
        """

        seller_email = sanitize_email(email)
        if not seller_email:
            raise ValidationError("Email required")
        if not is_valid_email(seller_email):
            raise ValidationError("Invalid email format.")

        public_origin = resolve_public_origin(self._settings, origin, request_origin)

        existing = self._sellers.get_by_email(seller_email)
        if existing is not None and existing.has_payout_account:
            account_id = existing.stripe_account_id
            seller = existing
            logger.info("Reusing Stripe account %s for seller %s", account_id, existing.seller_id)
        else:
            account_id = self._payments.create_connected_account(seller_email)
            seller = self._sellers.upsert_account(seller_email, account_id)
            logger.info("Created Stripe account %s for seller %s", account_id, seller.seller_id)

        return_url = f"{public_origin}{ONBOARDING_PATH}"
        url = self._payments.create_account_onboarding_link(account_id, return_url, return_url)
        return OnboardingResult(url=url, seller=seller)

    def account_status(self, *, email: Optional[str] = None, stripe_account_id: Optional[str] = None) -> AccountStatusResult:
        """
        Report the seller's Stripe account state and sync onboarding_complete.

        Raises:
            ValidationError: neither identifier given, or malformed email
            NotFoundError: no seller profile matches
        """

        seller_email = sanitize_email(email)
        account_id = sanitize_text(stripe_account_id, 120)

        if not seller_email and not account_id:
            raise ValidationError("Provide either email or stripe_account_id.")
        if seller_email and not is_valid_email(seller_email):
            raise ValidationError("Invalid email format.")

        if seller_email:
            seller = self._sellers.get_by_email(seller_email)
        else:
            seller = self._sellers.get_by_stripe_account(account_id)
        if seller is None:
            raise NotFoundError("Seller profile not found. Start onboarding first.")

        resolved_account_id = account_id or seller.stripe_account_id
        if not resolved_account_id:
            return AccountStatusResult(
                seller=SellerProfile(
                    seller_id=seller.seller_id,
                    email=seller.email,
                    stripe_account_id=None,
                    onboarding_complete=False,
                ),
                account=None,
            )

        account = self._payments.retrieve_account(resolved_account_id)
        complete = account.onboarding_complete
        if seller.onboarding_complete != complete:
            self._sellers.set_onboarding_complete(seller.seller_id, complete)
            logger.info("Seller %s onboarding_complete -> %s", seller.seller_id, complete)

        return AccountStatusResult(
            seller=SellerProfile(
                seller_id=seller.seller_id,
                email=seller.email,
                stripe_account_id=seller.stripe_account_id,
                onboarding_complete=complete,
            ),
            account=account,
        )


__all__ = ["SellerService", "OnboardingResult", "AccountStatusResult", "ONBOARDING_PATH"]
