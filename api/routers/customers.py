"""
Customer API Endpoints.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import Services, get_services
from api.models import CustomerSignupRequest
from domain.errors import MarketplaceError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/customer-signup",
    summary="Customer Signup",
    description="Create or update a customer profile by email.",
)
def customer_signup(request: CustomerSignupRequest, services: Services = Depends(get_services)):
    """
    Sign up a customer.

    The phone number is normalized to international format (`+` and digits)
    before validation. Signing up again with the same email updates the
    profile; `created` tells the two cases apart.
    """
    try:
        result = services.customers.signup(
            email=request.email,
            phone=request.phone,
            full_name=request.full_name,
            marketing_opt_in=request.marketing_opt_in,
        )
        return result.to_public_dict()

    except MarketplaceError:
        raise
    except Exception as e:
        logger.exception("Customer signup failed")
        raise HTTPException(status_code=500, detail=f"Failed to save customer: {str(e)}")
