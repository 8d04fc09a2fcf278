"""
Tests for `services/seller_service.py`.

Covers:
- Onboarding creates one connected account per seller email and reuses it.
- The onboarding link returns to the public origin.
- Account status syncs onboarding_complete from the provider.
"""

from __future__ import annotations

import pytest

from domain.errors import NotFoundError, ValidationError
from services.seller_service import ONBOARDING_PATH, SellerService


@pytest.fixture
def sellers(seller_repo, payments, settings) -> SellerService:
    return SellerService(seller_repo, payments, settings)


def test_onboarding_creates_account_and_link(sellers, payments, store) -> None:
    result = sellers.start_onboarding(" New.Seller@Example.com ")

    assert result.seller.email == "new.seller@example.com"
    assert result.seller.stripe_account_id == "acct_test_1"
    assert result.url == "https://connect.stripe.test/setup/acct_test_1"
    return_url = f"https://shop.example.com{ONBOARDING_PATH}"
    assert payments.onboarding_links == [("acct_test_1", return_url, return_url)]

    rows = [row for row in store.select("seller_profiles") if row["email"] == "new.seller@example.com"]
    assert len(rows) == 1


def test_onboarding_again_reuses_account(sellers, payments) -> None:
    first = sellers.start_onboarding("seller@example.com")
    second = sellers.start_onboarding("seller@example.com", origin="https://preview.example.com")

    assert payments.created_accounts == ["acct_test_1"]
    assert second.seller.seller_id == first.seller.seller_id
    assert payments.onboarding_links[-1][1] == f"https://preview.example.com{ONBOARDING_PATH}"


def test_onboarding_email_validation(sellers) -> None:
    with pytest.raises(ValidationError, match="Email required"):
        sellers.start_onboarding("")

    with pytest.raises(ValidationError, match="Invalid email format"):
        sellers.start_onboarding("seller@")


def test_account_status_syncs_onboarding_flag(sellers, payments, store, make_seller) -> None:
    seller = make_seller(enabled=False)
    payments.set_account("acct_seller", enabled=True, details_submitted=True)

    status = sellers.account_status(email="seller@example.com")

    assert status.seller.onboarding_complete is True
    assert status.account.charges_enabled
    assert store.get("seller_profiles", seller["id"])["onboarding_complete"] is True


def test_account_status_by_stripe_account_id(sellers, make_seller) -> None:
    make_seller()

    status = sellers.account_status(stripe_account_id="acct_seller")

    assert status.seller.email == "seller@example.com"
    assert status.to_public_dict()["stripe"]["id"] == "acct_seller"


def test_account_status_without_account(sellers, make_seller) -> None:
    make_seller(account_id=None, enabled=False)

    status = sellers.account_status(email="seller@example.com")

    assert status.account is None
    assert status.to_public_dict()["onboarding_complete"] is False


def test_account_status_errors(sellers) -> None:
    with pytest.raises(ValidationError):
        sellers.account_status()

    with pytest.raises(NotFoundError):
        sellers.account_status(email="nobody@example.com")
