"""
Checkout API Endpoints.

Reserves a listing and opens a Stripe Checkout session for it.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from api.dependencies import Services, get_services, request_origin
from api.models import CheckoutSessionRequest
from domain.errors import MarketplaceError
from services.checkout_service import CheckoutRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/create-checkout-session",
    summary="Create Checkout Session",
    description="Reserve a listing and return a Stripe Checkout URL.",
)
def create_checkout_session(
    body: CheckoutSessionRequest,
    http_request: Request,
    services: Services = Depends(get_services),
):
    """
    Start checkout for one listing.

    **Process:**
    1. Validates the listing is active and approved
    2. Validates the seller's Stripe account can take charges and payouts
    3. Reserves the listing (only one concurrent checkout can win)
    4. Creates a Checkout session paying the seller minus the platform fee
    5. Attaches the session to the listing

    If anything fails after the reservation, the listing is released again.

    **Example request:**
    ```json
    {
      "listingId": "8f7c5d1e-0d43-4a55-9b8a-8a1a6f0c2b11",
      "buyerEmail": "buyer@example.com"
    }
    ```

    **Success response:**
    ```json
    {
      "session_id": "cs_test_123",
      "url": "https://checkout.stripe.com/c/pay/cs_test_123",
      "listing_id": "8f7c5d1e-0d43-4a55-9b8a-8a1a6f0c2b11",
      "application_fee_amount": 1500,
      "application_fee_percent": 15.0
    }
    ```
    """
    try:
        result = services.checkout.create_checkout_session(
            CheckoutRequest(
                listing_id=body.listing_id or "",
                buyer_email=body.buyer_email,
                origin=body.origin,
                request_origin=request_origin(http_request),
                success_url=body.success_url,
                cancel_url=body.cancel_url,
            )
        )
        return result.to_public_dict()

    except MarketplaceError:
        raise
    except Exception as e:
        logger.exception("Checkout failed")
        raise HTTPException(status_code=500, detail=f"Failed to create checkout session: {str(e)}")
