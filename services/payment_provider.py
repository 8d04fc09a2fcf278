"""
Payment provider client (Stripe Connect).

The checkout orchestrator, webhook reconciler and seller onboarding only see
the PaymentProvider interface and the plain dataclasses below, never Stripe
objects. StripePaymentProvider is the production implementation; it passes
its API key on every call instead of mutating the global stripe.api_key.

Stripe failures are raised as UpstreamError with Stripe's message; invalid
webhook signatures as WebhookSignatureError.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

import stripe

from domain.errors import ConfigurationError, UpstreamError, WebhookSignatureError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ConnectedAccountStatus:
    account_id: str
    charges_enabled: bool
    payouts_enabled: bool
    details_submitted: bool
    requirements_due: Tuple[str, ...] = ()

    @property
    def is_fully_enabled(self) -> bool:
        """Can take charges and receive payouts."""
        return self.charges_enabled and self.payouts_enabled

    @property
    def onboarding_complete(self) -> bool:
        return self.details_submitted and self.is_fully_enabled

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "id": self.account_id,
            "charges_enabled": self.charges_enabled,
            "payouts_enabled": self.payouts_enabled,
            "details_submitted": self.details_submitted,
            "requirements_due": list(self.requirements_due),
        }


@dataclass(frozen=True, slots=True)
class CheckoutSessionParams:
    """
    A single-item destination-charge checkout.

    price_cents goes to destination_account minus application_fee_amount.
    metadata is attached to both the session and its payment intent.
    """

    price_cents: int
    currency: str
    destination_account: str
    application_fee_amount: int
    success_url: str
    cancel_url: str
    product_name: str
    metadata: Mapping[str, str] = field(default_factory=dict)
    product_description: Optional[str] = None
    image_url: Optional[str] = None
    customer_email: Optional[str] = None


@dataclass(frozen=True, slots=True)
class CheckoutSession:
    session_id: str
    url: Optional[str]


@dataclass(frozen=True, slots=True)
class WebhookEvent:
    """A verified webhook event; data_object is the event's data.object as plain JSON."""

    event_id: str
    event_type: str
    data_object: Mapping[str, Any]


class PaymentProvider(ABC):
    @abstractmethod
    def create_connected_account(self, email: str) -> str:
        ...

    @abstractmethod
    def create_account_onboarding_link(self, account_id: str, return_url: str, refresh_url: str) -> str:
        ...

    @abstractmethod
    def retrieve_account(self, account_id: str) -> ConnectedAccountStatus:
        ...

    @abstractmethod
    def create_checkout_session(self, params: CheckoutSessionParams) -> CheckoutSession:
        ...

    @abstractmethod
    def expire_checkout_session(self, session_id: str) -> None:
        ...

    @abstractmethod
    def verify_and_parse_webhook(self, raw_body: bytes, signature_header: str, secret: str) -> WebhookEvent:
        ...


class StripePaymentProvider(PaymentProvider):
    """
    Stripe Connect client.

    The API key is checked on first use, so endpoints that never touch
    Stripe keep working without STRIPE_SECRET_KEY.
    """

    def __init__(self, api_key: Optional[str]) -> None:
        self._configured_key = api_key

    @property
    def _api_key(self) -> str:
        if not self._configured_key:
            raise ConfigurationError("Missing environment variable: STRIPE_SECRET_KEY.")
        return self._configured_key

    def create_connected_account(self, email: str) -> str:
        try:
            account = stripe.Account.create(
                type="express",
                email=email,
                capabilities={"transfers": {"requested": True}},
                api_key=self._api_key,
            )
        except stripe.StripeError as e:
            logger.error("Stripe account creation failed for %s: %s", email, e)
            raise UpstreamError(str(e.user_message or e)) from e
        return str(account.id)

    def create_account_onboarding_link(self, account_id: str, return_url: str, refresh_url: str) -> str:
        try:
            link = stripe.AccountLink.create(
                account=account_id,
                refresh_url=refresh_url,
                return_url=return_url,
                type="account_onboarding",
                api_key=self._api_key,
            )
        except stripe.StripeError as e:
            raise UpstreamError(str(e.user_message or e)) from e
        return str(link.url)

    def retrieve_account(self, account_id: str) -> ConnectedAccountStatus:
        try:
            account = stripe.Account.retrieve(account_id, api_key=self._api_key)
        except stripe.StripeError as e:
            raise UpstreamError(str(e.user_message or e)) from e

        requirements = getattr(account, "requirements", None)
        currently_due = getattr(requirements, "currently_due", None) if requirements else None
        return ConnectedAccountStatus(
            account_id=str(account.id),
            charges_enabled=bool(getattr(account, "charges_enabled", False)),
            payouts_enabled=bool(getattr(account, "payouts_enabled", False)),
            details_submitted=bool(getattr(account, "details_submitted", False)),
            requirements_due=tuple(currently_due or ()),
        )

    def create_checkout_session(self, params: CheckoutSessionParams) -> CheckoutSession:
        product_data: Dict[str, Any] = {"name": params.product_name}
        if params.product_description:
            product_data["description"] = params.product_description
        if params.image_url:
            product_data["images"] = [params.image_url]

        request: Dict[str, Any] = {
            "mode": "payment",
            "line_items": [
                {
                    "quantity": 1,
                    "price_data": {
                        "currency": params.currency,
                        "unit_amount": params.price_cents,
                        "product_data": product_data,
                    },
                }
            ],
            "success_url": params.success_url,
            "cancel_url": params.cancel_url,
            "payment_intent_data": {
                "application_fee_amount": params.application_fee_amount,
                "transfer_data": {"destination": params.destination_account},
                "metadata": dict(params.metadata),
            },
            "metadata": dict(params.metadata),
        }
        if params.customer_email:
            request["customer_email"] = params.customer_email

        try:
            session = stripe.checkout.Session.create(api_key=self._api_key, **request)
        except stripe.StripeError as e:
            logger.error("Stripe checkout session creation failed: %s", e)
            raise UpstreamError(str(e.user_message or e)) from e
        return CheckoutSession(session_id=str(session.id), url=getattr(session, "url", None))

    def expire_checkout_session(self, session_id: str) -> None:
        try:
            stripe.checkout.Session.expire(session_id, api_key=self._api_key)
        except stripe.StripeError as e:
            raise UpstreamError(str(e.user_message or e)) from e

    def verify_and_parse_webhook(self, raw_body: bytes, signature_header: str, secret: str) -> WebhookEvent:
        """
        Verify the Stripe-Signature header and decode the event.

        The payload is decoded as plain JSON after verification so callers
        work with dicts rather than StripeObjects.
        """

        payload = raw_body.decode("utf-8", errors="replace")
        try:
            stripe.WebhookSignature.verify_header(
                payload, signature_header, secret, stripe.Webhook.DEFAULT_TOLERANCE
            )
        except stripe.SignatureVerificationError as e:
            logger.warning("Webhook signature invalid: %s", e)
            raise WebhookSignatureError("Invalid webhook signature.") from e

        try:
            event = json.loads(payload)
        except ValueError as e:
            raise WebhookSignatureError("Invalid webhook payload.") from e

        data_object = (event.get("data") or {}).get("object") or {}
        return WebhookEvent(
            event_id=str(event.get("id") or ""),
            event_type=str(event.get("type") or ""),
            data_object=data_object,
        )


__all__ = [
    "ConnectedAccountStatus",
    "CheckoutSessionParams",
    "CheckoutSession",
    "WebhookEvent",
    "PaymentProvider",
    "StripePaymentProvider",
]
