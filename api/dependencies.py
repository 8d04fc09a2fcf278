"""
Service wiring.

create_app() builds one Services container from the settings, record store
and payment provider, and stores it on app.state. Route handlers get at it
through the get_services dependency.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from repositories.listing_repository import ListingRepository
from repositories.offer_repository import OfferRepository
from repositories.profile_repository import CustomerRepository, SellerRepository
from repositories.record_store import RecordStore
from repositories.wishlist_repository import SavedSearchRepository, WishlistRepository
from services.checkout_service import CheckoutService
from services.customer_service import CustomerService
from services.listing_service import ListingService
from services.moderation_service import ModerationService
from services.offer_service import OfferService
from services.payment_provider import PaymentProvider
from services.seller_service import SellerService
from services.settings import Settings
from services.webhook_service import WebhookReconciler
from services.wishlist_service import SavedSearchService, WishlistService


@dataclass(frozen=True)
class Services:
    settings: Settings
    listings: ListingService
    moderation: ModerationService
    offers: OfferService
    checkout: CheckoutService
    webhooks: WebhookReconciler
    sellers: SellerService
    customers: CustomerService
    wishlist: WishlistService
    saved_searches: SavedSearchService


def build_services(settings: Settings, store: RecordStore, payments: PaymentProvider) -> Services:
    listing_repo = ListingRepository(store)
    seller_repo = SellerRepository(store)
    customer_repo = CustomerRepository(store)

    return Services(
        settings=settings,
        listings=ListingService(listing_repo, seller_repo),
        moderation=ModerationService(listing_repo, seller_repo, settings.admin_token),
        offers=OfferService(OfferRepository(store), listing_repo, seller_repo, customer_repo),
        checkout=CheckoutService(listing_repo, seller_repo, payments, settings),
        webhooks=WebhookReconciler(listing_repo, payments, settings.stripe_webhook_secret),
        sellers=SellerService(seller_repo, payments, settings),
        customers=CustomerService(customer_repo),
        wishlist=WishlistService(WishlistRepository(store), listing_repo, customer_repo),
        saved_searches=SavedSearchService(SavedSearchRepository(store), customer_repo),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def request_origin(request: Request) -> Optional[str]:
    """
    Origin of the incoming request, honouring proxy headers.

    x-forwarded-host / x-forwarded-proto win over Host; only the first value
    of a comma-separated list is used. Protocol defaults to https.
    """

    host = (request.headers.get("x-forwarded-host") or request.headers.get("host") or "").split(",")[0].strip()
    if not host:
        return None
    proto = (request.headers.get("x-forwarded-proto") or "https").split(",")[0].strip() or "https"
    return f"{proto}://{host}"


__all__ = ["Services", "build_services", "get_services", "request_origin"]
