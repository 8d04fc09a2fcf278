"""
Seller API Endpoints.

Stripe Connect onboarding and payout account status.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from api.dependencies import Services, get_services, request_origin
from api.models import AccountStatusRequest, OnboardingRequest
from domain.errors import MarketplaceError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/start-onboarding",
    summary="Start Seller Onboarding",
    description="Create (or reuse) a Stripe Express account and return an onboarding link.",
)
def start_onboarding(
    body: OnboardingRequest,
    http_request: Request,
    services: Services = Depends(get_services),
):
    """
    Start or resume Stripe onboarding for a seller.

    **Example response:**
    ```json
    {
      "url": "https://connect.stripe.com/setup/e/acct_123/abc",
      "stripe_account_id": "acct_123"
    }
    ```
    """
    try:
        result = services.sellers.start_onboarding(
            body.email,
            origin=body.origin,
            request_origin=request_origin(http_request),
        )
        return result.to_public_dict()

    except MarketplaceError:
        raise
    except Exception as e:
        logger.exception("Seller onboarding failed")
        raise HTTPException(status_code=500, detail=f"Failed to start onboarding: {str(e)}")


def _account_status(services: Services, email: Optional[str], stripe_account_id: Optional[str]):
    try:
        return services.sellers.account_status(email=email, stripe_account_id=stripe_account_id).to_public_dict()

    except MarketplaceError:
        raise
    except Exception as e:
        logger.exception("Account status lookup failed")
        raise HTTPException(status_code=500, detail=f"Failed to load account status: {str(e)}")


@router.get(
    "/account-status",
    summary="Seller Account Status",
    description="Stripe account state for a seller, by email or Stripe account id.",
)
def get_account_status(
    email: Optional[str] = None,
    stripe_account_id: Optional[str] = None,
    services: Services = Depends(get_services),
):
    """
    Report whether the seller can be paid.

    `onboarding_complete` is synced onto the seller profile as a side effect.
    """
    return _account_status(services, email, stripe_account_id)


@router.post(
    "/account-status",
    summary="Seller Account Status",
    description="Same as GET, with the identifiers in the body.",
)
def post_account_status(body: AccountStatusRequest, services: Services = Depends(get_services)):
    return _account_status(services, body.email, body.stripe_account_id)
