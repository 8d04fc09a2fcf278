"""
Offers API Endpoints.

Buyer/seller price negotiation on a listing.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import Services, get_services
from api.models import OfferActionRequestBody, OfferCreateRequest
from domain.errors import MarketplaceError
from services.offer_service import OfferActionRequest, OfferQuery

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/offers",
    summary="List Offers",
    description="Offers filtered by customer email, seller email and/or listing id.",
)
def list_offers(
    customer_email: Optional[str] = None,
    seller_email: Optional[str] = None,
    listing_id: Optional[str] = None,
    status: Optional[str] = None,
    limit: Optional[str] = None,
    offset: Optional[str] = None,
    services: Services = Depends(get_services),
):
    """
    List offers, newest first.

    At least one of `customer_email`, `seller_email` or `listing_id` is
    required. Each offer carries display amounts, both participants' emails
    and a short listing summary.
    """
    try:
        offers = services.offers.list_offers(
            OfferQuery(
                customer_email=customer_email,
                seller_email=seller_email,
                listing_id=listing_id,
                status=status,
                limit=limit,
                offset=offset,
            )
        )
        return {"count": len(offers), "offers": offers}

    except MarketplaceError:
        raise
    except Exception as e:
        logger.exception("Offer listing failed")
        raise HTTPException(status_code=500, detail=f"Failed to load offers: {str(e)}")


@router.post(
    "/offers",
    status_code=201,
    summary="Make Offer",
    description="Customer opens an offer on an active, approved listing.",
)
def create_offer(request: OfferCreateRequest, services: Services = Depends(get_services)):
    """
    Open an offer.

    A customer can hold only one open (pending or countered) offer per
    listing; a second one is rejected with 409.
    """
    try:
        offer = services.offers.create_offer(
            customer_email=request.customer_email,
            listing_id=request.listing_id,
            amount=request.amount,
            message=request.message,
        )
        return {"offer": offer.to_public_dict()}

    except MarketplaceError:
        raise
    except Exception as e:
        logger.exception("Offer creation failed")
        raise HTTPException(status_code=500, detail=f"Failed to create offer: {str(e)}")


@router.patch(
    "/offers",
    summary="Act On Offer",
    description="Seller accepts, rejects or counters; customer cancels or accepts a counter.",
)
def act_on_offer(request: OfferActionRequestBody, services: Services = Depends(get_services)):
    """
    Apply an action to an offer.

    **Actions:**
    - `accept`, `reject`, `counter` (seller, identified by `sellerEmail`)
    - `cancel`, `accept_counter` (customer, identified by `customerEmail`)

    Accepted, rejected, cancelled and expired offers can no longer change.
    """
    try:
        offer = services.offers.act(
            OfferActionRequest(
                offer_id=request.offer_id or "",
                action=request.action or "",
                seller_email=request.seller_email,
                customer_email=request.customer_email,
                message=request.message,
                counter_amount=request.counter_amount,
            )
        )
        return {"offer": offer.to_public_dict(), "action": (request.action or "").strip().lower()}

    except MarketplaceError:
        raise
    except Exception as e:
        logger.exception("Offer action failed")
        raise HTTPException(status_code=500, detail=f"Failed to update offer: {str(e)}")
