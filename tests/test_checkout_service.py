"""
Tests for `services/checkout_service.py`.

Covers contract rules:
- A purchasable listing is reserved and a destination-charge session is
  created with the platform fee and listing metadata.
- Non-purchasable listings are refused without any state change.
- A failure after reserving releases the reservation; a created but
  unattached session is expired.
- Two simultaneous checkouts for one listing produce exactly one session.
"""

from __future__ import annotations

import threading
from typing import List

import pytest

from domain.errors import (
    ConfigurationError,
    ConflictError,
    NotFoundError,
    PreconditionError,
    UpstreamError,
    ValidationError,
)
from services.checkout_service import CheckoutRequest, CheckoutService, resolve_public_origin
from services.settings import Settings


@pytest.fixture
def checkout(listing_repo, seller_repo, payments, settings, now) -> CheckoutService:
    return CheckoutService(listing_repo, seller_repo, payments, settings, clock=lambda: now)


def test_checkout_reserves_listing_and_creates_session(checkout, payments, store, make_seller, make_listing, now) -> None:
    """A 100.00 listing at a 15% fee opens a session with a 15.00 application fee."""

    seller = make_seller()
    listing = make_listing(seller["id"])

    result = checkout.create_checkout_session(
        CheckoutRequest(listing_id=listing["id"], buyer_email="Buyer@Example.com")
    )

    assert result.session_id == "cs_test_1"
    assert result.application_fee_amount == 1500
    assert result.application_fee_percent == 15.0

    params = payments.sessions[0]
    assert params.price_cents == 10000
    assert params.destination_account == "acct_seller"
    assert params.application_fee_amount == 1500
    assert params.customer_email == "buyer@example.com"
    assert params.product_name == "Acne Studios Wool coat"
    assert params.image_url == "https://cdn.example.com/coat.jpg"
    assert params.metadata == {"listing_id": listing["id"], "seller_id": seller["id"], "platform": "archive-sur-mer"}
    assert params.success_url == f"https://shop.example.com/?checkout=success&listing={listing['id']}"
    assert params.cancel_url == f"https://shop.example.com/?checkout=cancelled&listing={listing['id']}"

    stored = store.get("listings", listing["id"])
    assert stored["status"] == "reserved"
    assert stored["checkout_session_id"] == "cs_test_1"
    assert stored["reserved_at"] == now.isoformat()


def test_checkout_uses_caller_redirect_urls_when_valid(checkout, payments, make_seller, make_listing) -> None:
    seller = make_seller()
    listing = make_listing(seller["id"])

    checkout.create_checkout_session(
        CheckoutRequest(
            listing_id=listing["id"],
            success_url="https://shop.example.com/thanks",
            cancel_url="javascript:alert(1)",
        )
    )

    assert payments.sessions[0].success_url == "https://shop.example.com/thanks"
    assert payments.sessions[0].cancel_url.startswith("https://shop.example.com/?checkout=cancelled")


@pytest.mark.parametrize(
    "overrides",
    [
        {"status": "sold"},
        {"status": "reserved"},
        {"status": "archived"},
        {"moderation_status": "pending"},
        {"moderation_status": "rejected"},
    ],
)
def test_checkout_refuses_non_purchasable_listing(checkout, payments, store, make_seller, make_listing, overrides) -> None:
    seller = make_seller()
    listing = make_listing(seller["id"], **overrides)

    with pytest.raises(ConflictError):
        checkout.create_checkout_session(CheckoutRequest(listing_id=listing["id"]))

    assert payments.sessions == []
    assert store.get("listings", listing["id"]) == listing


def test_checkout_validates_input(checkout) -> None:
    with pytest.raises(ValidationError):
        checkout.create_checkout_session(CheckoutRequest(listing_id="  "))

    with pytest.raises(ValidationError):
        checkout.create_checkout_session(CheckoutRequest(listing_id="abc", buyer_email="not-an-email"))

    with pytest.raises(NotFoundError):
        checkout.create_checkout_session(CheckoutRequest(listing_id="missing"))


def test_checkout_requires_seller_payout_account(checkout, make_seller, make_listing) -> None:
    seller = make_seller(account_id=None)
    listing = make_listing(seller["id"])

    with pytest.raises(PreconditionError):
        checkout.create_checkout_session(CheckoutRequest(listing_id=listing["id"]))


def test_checkout_requires_enabled_seller_account(checkout, store, make_seller, make_listing) -> None:
    seller = make_seller(enabled=False)
    listing = make_listing(seller["id"])

    with pytest.raises(ConflictError):
        checkout.create_checkout_session(CheckoutRequest(listing_id=listing["id"]))

    assert store.get("listings", listing["id"])["status"] == "active"


def test_session_failure_releases_reservation(checkout, payments, store, make_seller, make_listing) -> None:
    seller = make_seller()
    listing = make_listing(seller["id"])
    payments.fail_checkout = UpstreamError("Stripe is down")

    with pytest.raises(UpstreamError):
        checkout.create_checkout_session(CheckoutRequest(listing_id=listing["id"]))

    stored = store.get("listings", listing["id"])
    assert stored["status"] == "active"
    assert stored["checkout_session_id"] is None
    assert stored["reserved_at"] is None
    assert payments.expired_sessions == []


def test_attach_failure_expires_unattached_session(checkout, payments, store, make_seller, make_listing) -> None:
    """The reservation is lost between session creation and attach."""

    seller = make_seller()
    listing = make_listing(seller["id"])
    payments.before_session = lambda: store.update(
        "listings", {"status": "archived"}, {"id": listing["id"]}
    )

    with pytest.raises(ConflictError):
        checkout.create_checkout_session(CheckoutRequest(listing_id=listing["id"]))

    assert payments.expired_sessions == ["cs_test_1"]
    assert store.get("listings", listing["id"])["status"] == "archived"


def test_failed_checkout_leaves_another_sessions_reservation(checkout, payments, store, make_seller, make_listing) -> None:
    """Another checkout re-reserved the listing and attached its session first."""

    seller = make_seller()
    listing = make_listing(seller["id"])
    payments.before_session = lambda: store.update(
        "listings", {"checkout_session_id": "cs_other"}, {"id": listing["id"]}
    )

    with pytest.raises(ConflictError):
        checkout.create_checkout_session(CheckoutRequest(listing_id=listing["id"]))

    stored = store.get("listings", listing["id"])
    assert stored["status"] == "reserved"
    assert stored["checkout_session_id"] == "cs_other"
    assert payments.expired_sessions == ["cs_test_1"]


def test_concurrent_checkouts_yield_one_reservation(checkout, payments, store, make_seller, make_listing) -> None:
    """Both requests pass the purchasable check before either reserves."""

    seller = make_seller()
    listing = make_listing(seller["id"])
    barrier = threading.Barrier(2, timeout=5)
    payments.before_retrieve = barrier.wait

    outcomes: List[object] = []
    lock = threading.Lock()

    def buy() -> None:
        try:
            result = checkout.create_checkout_session(CheckoutRequest(listing_id=listing["id"]))
        except ConflictError as e:
            result = e
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=buy) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    winners = [o for o in outcomes if not isinstance(o, ConflictError)]
    losers = [o for o in outcomes if isinstance(o, ConflictError)]
    assert len(winners) == 1
    assert len(losers) == 1
    assert len(payments.sessions) == 1
    assert store.get("listings", listing["id"])["checkout_session_id"] == winners[0].session_id


def test_public_origin_resolution_order() -> None:
    configured = Settings(public_origin="https://shop.example.com")

    assert resolve_public_origin(configured, "https://preview.example.com/", None) == "https://preview.example.com"
    assert resolve_public_origin(configured, None, "https://api.example.com") == "https://shop.example.com"
    assert resolve_public_origin(Settings(), None, "https://api.example.com") == "https://api.example.com"

    with pytest.raises(ConfigurationError):
        resolve_public_origin(Settings(), "not-an-origin", None)
