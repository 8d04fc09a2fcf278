"""
Tests for `services/webhook_service.py`.

Covers contract rules:
- A completed session marks its listing SOLD, resolved by metadata listing
  id first, else by the attached session id.
- Redelivered events change nothing the second time.
- Expired and failed sessions release a RESERVED listing back to ACTIVE,
  but never a reservation held by a different session.
- Missing secret, missing header and bad signatures are refused before any
  state is touched.
"""

from __future__ import annotations

import pytest

from domain.errors import ConfigurationError, ValidationError, WebhookSignatureError
from services.webhook_service import (
    SESSION_COMPLETED,
    SESSION_EXPIRED,
    SESSION_PAYMENT_FAILED,
    WebhookReconciler,
)


@pytest.fixture
def reconciler(listing_repo, payments, now) -> WebhookReconciler:
    return WebhookReconciler(listing_repo, payments, "whsec_test", clock=lambda: now)


@pytest.fixture
def reserved_listing(make_seller, make_listing, now):
    seller = make_seller()
    return make_listing(
        seller["id"],
        status="reserved",
        checkout_session_id="cs_live_1",
        reserved_at=now.isoformat(),
    )


def test_completed_session_marks_listing_sold(reconciler, store, reserved_listing, event_body, valid_signature, now) -> None:
    outcome = reconciler.handle(event_body(SESSION_COMPLETED, "cs_live_1", reserved_listing["id"]), valid_signature)

    assert outcome.handled
    assert outcome.listings_updated == 1
    stored = store.get("listings", reserved_listing["id"])
    assert stored["status"] == "sold"
    assert stored["sold_at"] == now.isoformat()
    assert stored["checkout_session_id"] == "cs_live_1"


def test_completed_session_resolves_by_session_id_without_metadata(reconciler, store, reserved_listing, event_body, valid_signature) -> None:
    reconciler.handle(event_body(SESSION_COMPLETED, "cs_live_1"), valid_signature)

    assert store.get("listings", reserved_listing["id"])["status"] == "sold"


def test_completed_session_before_attach_still_sells(reconciler, store, make_seller, make_listing, event_body, valid_signature) -> None:
    """Payment can be confirmed before the session id is written back."""

    seller = make_seller()
    listing = make_listing(seller["id"], status="reserved")

    reconciler.handle(event_body(SESSION_COMPLETED, "cs_live_9", listing["id"]), valid_signature)

    stored = store.get("listings", listing["id"])
    assert stored["status"] == "sold"
    assert stored["checkout_session_id"] == "cs_live_9"


def test_redelivered_completion_is_idempotent(reconciler, store, reserved_listing, event_body, valid_signature) -> None:
    body = event_body(SESSION_COMPLETED, "cs_live_1", reserved_listing["id"])

    reconciler.handle(body, valid_signature)
    first = store.get("listings", reserved_listing["id"])
    second_outcome = reconciler.handle(body, valid_signature)

    assert second_outcome.listings_updated == 0
    assert store.get("listings", reserved_listing["id"]) == first


@pytest.mark.parametrize("event_type", [SESSION_EXPIRED, SESSION_PAYMENT_FAILED])
def test_expired_or_failed_session_releases_reservation(reconciler, store, reserved_listing, event_body, valid_signature, event_type) -> None:
    outcome = reconciler.handle(event_body(event_type, "cs_live_1"), valid_signature)

    assert outcome.listings_updated == 1
    stored = store.get("listings", reserved_listing["id"])
    assert stored["status"] == "active"
    assert stored["checkout_session_id"] is None
    assert stored["reserved_at"] is None


def test_expiry_after_sale_leaves_listing_sold(reconciler, store, reserved_listing, event_body, valid_signature) -> None:
    reconciler.handle(event_body(SESSION_COMPLETED, "cs_live_1", reserved_listing["id"]), valid_signature)
    outcome = reconciler.handle(event_body(SESSION_EXPIRED, "cs_live_1", reserved_listing["id"]), valid_signature)

    assert outcome.listings_updated == 0
    assert store.get("listings", reserved_listing["id"])["status"] == "sold"


def test_late_expiry_leaves_newer_reservation_alone(reconciler, listing_repo, store, reserved_listing, event_body, valid_signature, now) -> None:
    """Session 1 expires, the listing is re-reserved under session 2, then session 1's expiry is redelivered."""

    body = event_body(SESSION_EXPIRED, "cs_live_1", reserved_listing["id"])
    reconciler.handle(body, valid_signature)
    assert listing_repo.reserve(reserved_listing["id"], now) is not None
    assert listing_repo.attach_checkout_session(reserved_listing["id"], "cs_live_2") is not None

    outcome = reconciler.handle(body, valid_signature)

    assert outcome.listings_updated == 0
    stored = store.get("listings", reserved_listing["id"])
    assert stored["status"] == "reserved"
    assert stored["checkout_session_id"] == "cs_live_2"


def test_completion_without_session_id_keeps_attached_session(reconciler, store, reserved_listing, event_body, valid_signature) -> None:
    reconciler.handle(event_body(SESSION_COMPLETED, "", reserved_listing["id"]), valid_signature)

    stored = store.get("listings", reserved_listing["id"])
    assert stored["status"] == "sold"
    assert stored["checkout_session_id"] == "cs_live_1"


def test_other_event_types_are_acknowledged_but_ignored(reconciler, store, reserved_listing, event_body, valid_signature) -> None:
    outcome = reconciler.handle(event_body("payment_intent.created", "pi_1"), valid_signature)

    assert not outcome.handled
    assert outcome.to_public_dict() == {"received": True, "type": "payment_intent.created", "handled": False, "updated": 0}
    assert store.get("listings", reserved_listing["id"]) == reserved_listing


def test_missing_secret_is_a_configuration_error(listing_repo, payments, event_body, valid_signature) -> None:
    reconciler = WebhookReconciler(listing_repo, payments, None)

    with pytest.raises(ConfigurationError):
        reconciler.handle(event_body(SESSION_COMPLETED, "cs_live_1"), valid_signature)


def test_missing_signature_header_is_rejected(reconciler, event_body) -> None:
    with pytest.raises(ValidationError):
        reconciler.handle(event_body(SESSION_COMPLETED, "cs_live_1"), None)


def test_bad_signature_changes_nothing(reconciler, store, reserved_listing, event_body) -> None:
    with pytest.raises(WebhookSignatureError):
        reconciler.handle(event_body(SESSION_COMPLETED, "cs_live_1", reserved_listing["id"]), "t=1,v1=forged")

    assert store.get("listings", reserved_listing["id"])["status"] == "reserved"
