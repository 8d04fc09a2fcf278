"""
Listings API Endpoints.

Public browse, seller submission and owner status changes.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import Services, get_services
from api.models import ListingCreateRequest, ListingStatusRequest
from domain.errors import MarketplaceError
from services.listing_service import ListingBrowseQuery, ListingSubmission

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/listings",
    summary="Browse Listings",
    description="Browse approved listings, or a seller's own listings when seller_email is given.",
)
def browse_listings(
    status: Optional[str] = None,
    search: Optional[str] = None,
    condition: Optional[str] = None,
    seller_email: Optional[str] = None,
    limit: Optional[str] = None,
    offset: Optional[str] = None,
    services: Services = Depends(get_services),
):
    """
    Browse listings, newest first.

    **Query parameters:**
    - `status`: active (default), reserved, archived, sold or all
    - `search`: case-insensitive match on title or brand
    - `condition`: `new` or `used`
    - `seller_email`: show this seller's listings regardless of moderation
    - `limit` (1-60, default 24), `offset` (0-5000)
    """
    try:
        results = services.listings.browse(
            ListingBrowseQuery(
                status=status,
                search=search,
                condition=condition,
                seller_email=seller_email,
                limit=limit,
                offset=offset,
            )
        )
        return {"count": len(results), "listings": [listing.to_public_dict() for listing in results]}

    except MarketplaceError:
        raise
    except Exception as e:
        logger.exception("Listing browse failed")
        raise HTTPException(status_code=500, detail=f"Failed to load listings: {str(e)}")


@router.post(
    "/listings",
    status_code=201,
    summary="Submit Listing",
    description="Create a listing for an onboarded seller. New listings wait for moderation.",
)
def submit_listing(request: ListingCreateRequest, services: Services = Depends(get_services)):
    """
    Submit a new listing.

    **Rules:**
    - `sellerEmail` must belong to a seller with a Stripe account
    - `title` and `brand` are required
    - `price` is integer cents or a decimal amount, and must be positive
    - Up to 8 media URLs are kept
    """
    try:
        listing = services.listings.submit(
            ListingSubmission(
                seller_email=request.seller_email,
                title=request.title,
                brand=request.brand,
                price=request.price,
                description=request.description,
                size=request.size,
                condition=request.condition,
                is_new=request.is_new,
                currency=request.currency,
                image_url=request.image_url,
                video_url=request.video_url,
                media_urls=request.media_urls,
            )
        )
        return {"listing": listing.to_public_dict()}

    except MarketplaceError:
        raise
    except Exception as e:
        logger.exception("Listing submission failed")
        raise HTTPException(status_code=500, detail=f"Failed to create listing: {str(e)}")


@router.patch(
    "/listings",
    summary="Change Listing Status",
    description="Owner toggles a listing between active and archived.",
)
def change_listing_status(request: ListingStatusRequest, services: Services = Depends(get_services)):
    """
    Archive or re-activate a listing.

    Reserved and sold listings cannot be toggled (409). A seller acting on
    someone else's listing gets 403.
    """
    try:
        listing = services.listings.change_status(
            listing_id=request.listing_id,
            status=request.status,
            seller_email=request.seller_email,
        )
        return {"listing": listing.to_public_dict()}

    except MarketplaceError:
        raise
    except Exception as e:
        logger.exception("Listing status change failed")
        raise HTTPException(status_code=500, detail=f"Failed to update listing: {str(e)}")
