"""
Pytest configuration and shared fixtures.

Adds the project root to the Python path so tests can import domain,
repositories, services and api, and provides:
- an in-memory record store
- a fake payment provider standing in for Stripe
- factories that seed sellers, customers, listings and offers
- a FastAPI TestClient wired to the two above
"""

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.errors import UpstreamError, WebhookSignatureError  # noqa: E402
from repositories.client import UNIQUE_COLUMNS  # noqa: E402
from repositories.listing_repository import ListingRepository  # noqa: E402
from repositories.memory_store import InMemoryRecordStore  # noqa: E402
from repositories.offer_repository import OfferRepository  # noqa: E402
from repositories.profile_repository import CustomerRepository, SellerRepository  # noqa: E402
from services.payment_provider import (  # noqa: E402
    CheckoutSession,
    CheckoutSessionParams,
    ConnectedAccountStatus,
    PaymentProvider,
    WebhookEvent,
)
from services.settings import Settings  # noqa: E402

VALID_SIGNATURE = "t=1,v1=valid"
FIXED_NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakePaymentProvider(PaymentProvider):
    """
    In-process stand-in for Stripe.

    Records every call. Set fail_checkout to make session creation raise,
    and before_session to run code (e.g. a concurrent write) just before a
    session is returned.
    """

    def __init__(self) -> None:
        self.accounts: Dict[str, ConnectedAccountStatus] = {}
        self.created_accounts: List[str] = []
        self.onboarding_links: List[tuple] = []
        self.sessions: List[CheckoutSessionParams] = []
        self.expired_sessions: List[str] = []
        self.fail_checkout: Optional[Exception] = None
        self.before_session: Optional[Callable[[], None]] = None
        self.before_retrieve: Optional[Callable[[], None]] = None

    def set_account(self, account_id: str, *, enabled: bool = True, details_submitted: bool = True) -> None:
        self.accounts[account_id] = ConnectedAccountStatus(
            account_id=account_id,
            charges_enabled=enabled,
            payouts_enabled=enabled,
            details_submitted=details_submitted,
            requirements_due=() if enabled else ("external_account",),
        )

    def create_connected_account(self, email: str) -> str:
        account_id = f"acct_test_{len(self.created_accounts) + 1}"
        self.created_accounts.append(account_id)
        self.set_account(account_id, enabled=False, details_submitted=False)
        return account_id

    def create_account_onboarding_link(self, account_id: str, return_url: str, refresh_url: str) -> str:
        self.onboarding_links.append((account_id, return_url, refresh_url))
        return f"https://connect.stripe.test/setup/{account_id}"

    def retrieve_account(self, account_id: str) -> ConnectedAccountStatus:
        if self.before_retrieve is not None:
            self.before_retrieve()
        if account_id not in self.accounts:
            raise UpstreamError(f"No such account: '{account_id}'")
        return self.accounts[account_id]

    def create_checkout_session(self, params: CheckoutSessionParams) -> CheckoutSession:
        if self.fail_checkout is not None:
            raise self.fail_checkout
        self.sessions.append(params)
        session_id = f"cs_test_{len(self.sessions)}"
        if self.before_session is not None:
            self.before_session()
        return CheckoutSession(session_id=session_id, url=f"https://checkout.stripe.test/{session_id}")

    def expire_checkout_session(self, session_id: str) -> None:
        self.expired_sessions.append(session_id)

    def verify_and_parse_webhook(self, raw_body: bytes, signature_header: str, secret: str) -> WebhookEvent:
        if signature_header != VALID_SIGNATURE:
            raise WebhookSignatureError("Invalid webhook signature.")
        event = json.loads(raw_body.decode("utf-8"))
        return WebhookEvent(
            event_id=event.get("id", ""),
            event_type=event.get("type", ""),
            data_object=(event.get("data") or {}).get("object") or {},
        )


def webhook_payload(event_type: str, session_id: str, listing_id: Optional[str] = None) -> bytes:
    metadata = {"listing_id": listing_id} if listing_id else {}
    return json.dumps(
        {
            "id": f"evt_{session_id}",
            "type": event_type,
            "data": {"object": {"id": session_id, "metadata": metadata}},
        }
    ).encode("utf-8")


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def valid_signature() -> str:
    return VALID_SIGNATURE


@pytest.fixture
def event_body():
    """Builder for raw Stripe checkout-session event bodies."""

    return webhook_payload


@pytest.fixture
def settings() -> Settings:
    return Settings(
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret="whsec_test",
        public_origin="https://shop.example.com",
        platform_fee_percent=15.0,
        admin_token="admin-secret",
        store_backend="memory",
    )


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore(unique_columns=UNIQUE_COLUMNS)


@pytest.fixture
def payments() -> FakePaymentProvider:
    return FakePaymentProvider()


@pytest.fixture
def listing_repo(store: InMemoryRecordStore) -> ListingRepository:
    return ListingRepository(store)


@pytest.fixture
def offer_repo(store: InMemoryRecordStore) -> OfferRepository:
    return OfferRepository(store)


@pytest.fixture
def seller_repo(store: InMemoryRecordStore) -> SellerRepository:
    return SellerRepository(store)


@pytest.fixture
def customer_repo(store: InMemoryRecordStore) -> CustomerRepository:
    return CustomerRepository(store)


@pytest.fixture
def make_seller(store: InMemoryRecordStore, payments: FakePaymentProvider):
    """Seed a seller; by default with a fully enabled Stripe account."""

    def _make(email: str = "seller@example.com", *, account_id: Optional[str] = "acct_seller", enabled: bool = True):
        row = store.seed(
            "seller_profiles",
            {"email": email, "stripe_account_id": account_id, "onboarding_complete": enabled},
        )
        if account_id:
            payments.set_account(account_id, enabled=enabled)
        return row

    return _make


@pytest.fixture
def make_customer(store: InMemoryRecordStore):
    def _make(email: str = "buyer@example.com", phone: str = "+33612345678"):
        return store.seed(
            "customer_profiles",
            {"email": email, "phone": phone, "full_name": None, "marketing_opt_in": False},
        )

    return _make


@pytest.fixture
def make_listing(store: InMemoryRecordStore):
    """Seed a listing; by default active, approved and priced at 100.00."""

    def _make(seller_id: str, **overrides: Any):
        row = {
            "seller_id": seller_id,
            "title": "Wool coat",
            "brand": "Acne Studios",
            "description": "Oversized double-breasted coat.",
            "price_cents": 10000,
            "currency": "eur",
            "status": "active",
            "moderation_status": "approved",
            "is_new": False,
            "image_url": "https://cdn.example.com/coat.jpg",
            "media_urls": ["https://cdn.example.com/coat.jpg"],
            "approved_media_urls": ["https://cdn.example.com/coat.jpg"],
            "checkout_session_id": None,
            "reserved_at": None,
        }
        row.update(overrides)
        return store.seed("listings", row)

    return _make


@pytest.fixture
def make_offer(store: InMemoryRecordStore):
    def _make(listing: Dict[str, Any], customer: Dict[str, Any], **overrides: Any):
        row = {
            "listing_id": listing["id"],
            "seller_id": listing["seller_id"],
            "customer_id": customer["id"],
            "currency": "eur",
            "amount_cents": 5000,
            "counter_amount_cents": None,
            "final_amount_cents": None,
            "status": "pending",
            "buyer_message": None,
            "seller_message": None,
            "resolved_at": None,
        }
        row.update(overrides)
        return store.seed("offers", row)

    return _make


@pytest.fixture
def client(settings: Settings, store: InMemoryRecordStore, payments: FakePaymentProvider):
    from fastapi.testclient import TestClient

    from api.main import create_app

    app = create_app(settings=settings, store=store, payments=payments)
    with TestClient(app) as test_client:
        yield test_client
