"""
Wishlist API Endpoints.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from api.dependencies import Services, get_services
from api.models import WishlistRequest
from domain.errors import MarketplaceError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/wishlist",
    summary="Get Wishlist",
    description="A customer's saved listings, newest first.",
)
def get_wishlist(customer_email: Optional[str] = None, services: Services = Depends(get_services)):
    """Unknown customers get an empty wishlist."""
    try:
        items = services.wishlist.list_items(customer_email)
        return {"count": len(items), "items": items}

    except MarketplaceError:
        raise
    except Exception as e:
        logger.exception("Wishlist load failed")
        raise HTTPException(status_code=500, detail=f"Failed to load wishlist: {str(e)}")


@router.post(
    "/wishlist",
    summary="Save To Wishlist",
    description="Save an approved listing; saving it again returns the existing item.",
)
def add_to_wishlist(request: WishlistRequest, services: Services = Depends(get_services)):
    """
    Returns 201 for a new item and 200 with `exists: true` when the listing
    was already saved.
    """
    try:
        result = services.wishlist.add(request.customer_email, request.listing_id)
        return JSONResponse(
            status_code=200 if result.exists else 201,
            content={"exists": result.exists, "item": result.item.to_public_dict()},
        )

    except MarketplaceError:
        raise
    except Exception as e:
        logger.exception("Wishlist save failed")
        raise HTTPException(status_code=500, detail=f"Failed to save listing: {str(e)}")


@router.delete(
    "/wishlist",
    summary="Remove From Wishlist",
)
def remove_from_wishlist(request: WishlistRequest, services: Services = Depends(get_services)):
    try:
        listing_id = services.wishlist.remove(request.customer_email, request.listing_id)
        return {"removed": True, "listing_id": listing_id}

    except MarketplaceError:
        raise
    except Exception as e:
        logger.exception("Wishlist removal failed")
        raise HTTPException(status_code=500, detail=f"Failed to remove listing: {str(e)}")
