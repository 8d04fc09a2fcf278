"""
Stripe Webhook Endpoint.

Reads the raw request body; the signature is computed over the exact bytes
Stripe sent, so the body must not be parsed before verification.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from starlette.concurrency import run_in_threadpool

from api.dependencies import Services, get_services
from domain.errors import MarketplaceError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/stripe-webhook",
    summary="Stripe Webhook",
    description="Marks listings sold or releases reservations from Checkout events.",
)
async def stripe_webhook(request: Request, services: Services = Depends(get_services)):
    """
    Receive a Stripe event.

    **Handled events:**
    - `checkout.session.completed`: listing becomes sold
    - `checkout.session.expired`, `checkout.session.async_payment_failed`:
      reservation is released

    Other event types are acknowledged and ignored. Store failures return
    500 so Stripe retries the delivery.
    """
    raw_body = await request.body()
    try:
        outcome = await run_in_threadpool(
            services.webhooks.handle, raw_body, request.headers.get("stripe-signature")
        )
        return outcome.to_public_dict()

    except MarketplaceError:
        raise
    except Exception as e:
        logger.exception("Webhook processing failed")
        raise HTTPException(status_code=500, detail=f"Webhook processing failed: {str(e)}")
