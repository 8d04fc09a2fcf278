"""
Marketplace API - Main Application.

FastAPI application factory. Collaborators (settings, record store, payment
provider) are built once here and injected into the services; tests pass
their own in-memory store and fake payment provider.

Run locally with:
    uvicorn api.main:create_app --factory --reload
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api import __version__
from api.dependencies import build_services
from api.routers import (
    checkout,
    customers,
    listings,
    moderation,
    offers,
    saved_searches,
    sellers,
    webhooks,
    wishlist,
)
from domain.errors import MarketplaceError
from repositories.client import build_record_store
from repositories.record_store import RecordStore
from services.payment_provider import PaymentProvider, StripePaymentProvider
from services.settings import Settings

logger = logging.getLogger(__name__)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request."
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))


def register_exception_handlers(app: FastAPI) -> None:
    """Every error leaves the API as {"error": message}."""

    @app.exception_handler(MarketplaceError)
    async def handle_marketplace_error(request: Request, exc: MarketplaceError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return _error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return _error_response(400, _validation_message(exc))


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[RecordStore] = None,
    payments: Optional[PaymentProvider] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    store = store or build_record_store(settings)
    payments = payments or StripePaymentProvider(settings.stripe_secret_key)

    app = FastAPI(
        title="Marketplace API",
        description="Listings, offers and Stripe Connect checkout for a second-hand fashion marketplace",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    allow_origins = [origin.strip() for origin in settings.cors_allow_origin.split(",") if origin.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins or ["*"],
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Stripe-Signature"],
    )

    app.state.services = build_services(settings, store, payments)
    register_exception_handlers(app)

    @app.get("/health", tags=["Health"])
    def health_check():
        """
        Health check endpoint.

        Returns the API status and version.
        """
        return {
            "status": "healthy",
            "version": __version__,
            "service": "marketplace-api",
        }

    app.include_router(listings.router, tags=["Listings"])
    app.include_router(offers.router, tags=["Offers"])
    app.include_router(checkout.router, tags=["Checkout"])
    app.include_router(webhooks.router, tags=["Webhooks"])
    app.include_router(moderation.router, tags=["Moderation"])
    app.include_router(sellers.router, tags=["Sellers"])
    app.include_router(customers.router, tags=["Customers"])
    app.include_router(wishlist.router, tags=["Wishlist"])
    app.include_router(saved_searches.router, tags=["Saved searches"])

    logger.info("Marketplace API %s ready (store backend: %s)", __version__, settings.store_backend)
    return app
