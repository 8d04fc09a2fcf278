"""
Tests for `services/listing_service.py`.

Covers contract rules:
- Submissions start ACTIVE and PENDING moderation with normalized media.
- Only onboarded sellers with a payout account may submit.
- Public browse shows approved listings only; owners see all of theirs.
- Owners toggle ACTIVE <-> ARCHIVED; other transitions are refused.
"""

from __future__ import annotations

import pytest

from domain.errors import AuthorizationError, ConflictError, NotFoundError, PreconditionError, ValidationError
from domain.listing import ListingStatus, ModerationStatus
from services.listing_service import ListingBrowseQuery, ListingService, ListingSubmission


@pytest.fixture
def listings(listing_repo, seller_repo) -> ListingService:
    return ListingService(listing_repo, seller_repo)


def _submission(**overrides) -> ListingSubmission:
    fields = dict(
        seller_email="seller@example.com",
        title="Silk scarf",
        brand="Hermes",
        price="120.00",
        media_urls=["https://cdn.example.com/scarf-1.jpg", "https://cdn.example.com/scarf-2.jpg"],
    )
    fields.update(overrides)
    return ListingSubmission(**fields)


def test_submission_starts_active_and_pending(listings, make_seller) -> None:
    seller = make_seller()

    listing = listings.submit(_submission())

    assert listing.seller_id == seller["id"]
    assert listing.status is ListingStatus.ACTIVE
    assert listing.moderation_status is ModerationStatus.PENDING
    assert listing.price_cents == 12000
    assert listing.currency == "eur"
    assert listing.condition == "Pre-owned"
    assert listing.media_urls == ("https://cdn.example.com/scarf-1.jpg", "https://cdn.example.com/scarf-2.jpg")
    assert listing.approved_media_urls == ()
    assert listing.image_url == "https://cdn.example.com/scarf-1.jpg"
    assert not listing.is_purchasable


def test_submission_falls_back_to_single_image(listings, make_seller) -> None:
    make_seller()

    listing = listings.submit(
        _submission(media_urls=None, image_url="https://cdn.example.com/only.jpg", is_new=True, price=9900)
    )

    assert listing.media_urls == ("https://cdn.example.com/only.jpg",)
    assert listing.condition == "New with tags"
    assert listing.price_cents == 9900


def test_submission_guards(listings, make_seller) -> None:
    make_seller("nopayout@example.com", account_id=None)

    with pytest.raises(ValidationError):
        listings.submit(_submission(seller_email="bad"))

    with pytest.raises(ValidationError):
        listings.submit(_submission(brand="  "))

    with pytest.raises(ValidationError):
        listings.submit(_submission(price="-5"))

    with pytest.raises(NotFoundError):
        listings.submit(_submission(seller_email="stranger@example.com"))

    with pytest.raises(PreconditionError):
        listings.submit(_submission(seller_email="nopayout@example.com"))


def test_public_browse_shows_only_approved(listings, make_seller, make_listing) -> None:
    seller = make_seller()
    approved = make_listing(seller["id"], title="Approved coat")
    make_listing(seller["id"], title="Pending coat", moderation_status="pending")
    make_listing(seller["id"], title="Reserved coat", status="reserved")

    results = listings.browse(ListingBrowseQuery())

    assert [listing.listing_id for listing in results] == [approved["id"]]


def test_owner_browse_includes_unmoderated(listings, make_seller, make_listing) -> None:
    seller = make_seller()
    make_listing(seller["id"], moderation_status="pending")
    make_listing(seller["id"], moderation_status="rejected", status="archived")

    assert len(listings.browse(ListingBrowseQuery(seller_email="seller@example.com", status="all"))) == 2
    assert listings.browse(ListingBrowseQuery(seller_email="nobody@example.com")) == []


def test_browse_filters_by_search_and_condition(listings, make_seller, make_listing) -> None:
    seller = make_seller()
    new_bag = make_listing(seller["id"], title="Leather bag", is_new=True)
    make_listing(seller["id"], title="Leather belt", is_new=False)
    make_listing(seller["id"], title="Wool coat", is_new=True)

    results = listings.browse(ListingBrowseQuery(search="leather%", condition="new"))

    assert [listing.listing_id for listing in results] == [new_bag["id"]]

    with pytest.raises(ValidationError):
        listings.browse(ListingBrowseQuery(status="gone"))


def test_owner_archives_and_reactivates(listings, make_seller, make_listing) -> None:
    seller = make_seller()
    listing = make_listing(seller["id"])

    archived = listings.change_status(listing_id=listing["id"], status="archived", seller_email="seller@example.com")
    assert archived.status is ListingStatus.ARCHIVED

    active = listings.change_status(listing_id=listing["id"], status="active", seller_email="seller@example.com")
    assert active.status is ListingStatus.ACTIVE


def test_owner_status_change_guards(listings, store, make_seller, make_listing) -> None:
    seller = make_seller()
    make_seller("other@example.com", account_id="acct_other")
    listing = make_listing(seller["id"])
    reserved = make_listing(seller["id"], status="reserved")

    with pytest.raises(AuthorizationError):
        listings.change_status(listing_id=listing["id"], status="archived", seller_email="other@example.com")

    with pytest.raises(ValidationError):
        listings.change_status(listing_id=listing["id"], status="sold", seller_email="seller@example.com")

    with pytest.raises(ConflictError):
        listings.change_status(listing_id=reserved["id"], status="archived", seller_email="seller@example.com")

    with pytest.raises(NotFoundError):
        listings.change_status(listing_id="missing", status="archived", seller_email="seller@example.com")

    assert store.get("listings", listing["id"])["status"] == "active"
