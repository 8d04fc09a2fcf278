"""
Moderation API Endpoints (admin).

Authorized with the shared admin token, sent as `Authorization: Bearer
<token>`, as the `admin_token` query parameter, or (POST only) in the body.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException

from api.dependencies import Services, get_services
from api.models import ModerationRequest
from domain.errors import MarketplaceError
from services.moderation_service import extract_bearer_token

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/moderate-listings",
    summary="Moderation Queue",
    description="Listings by moderation status, with seller emails.",
)
def moderation_queue(
    moderation_status: Optional[str] = None,
    limit: Optional[str] = None,
    offset: Optional[str] = None,
    admin_token: Optional[str] = None,
    authorization: Optional[str] = Header(None),
    services: Services = Depends(get_services),
):
    """
    List listings awaiting (or past) review.

    `moderation_status` is pending (default), approved, rejected or all.
    """
    try:
        services.moderation.authorize(extract_bearer_token(authorization), admin_token)
        results = services.moderation.list_for_review(moderation_status, limit, offset)
        return {"count": len(results), "listings": results}

    except MarketplaceError:
        raise
    except Exception as e:
        logger.exception("Moderation queue failed")
        raise HTTPException(status_code=500, detail=f"Failed to load moderation queue: {str(e)}")


@router.post(
    "/moderate-listings",
    summary="Moderate Listing",
    description="Approve or reject a listing.",
)
def moderate_listing(
    request: ModerationRequest,
    admin_token: Optional[str] = None,
    authorization: Optional[str] = Header(None),
    services: Services = Depends(get_services),
):
    """
    Approve or reject a listing.

    **Approve:** requires at least one valid image; the submitted media
    become the approved media and the listing becomes visible.

    **Reject:** requires a `reason`; an active or reserved listing is
    archived.
    """
    try:
        services.moderation.authorize(extract_bearer_token(authorization), admin_token, request.admin_token)
        listing = services.moderation.moderate(
            listing_id=request.listing_id,
            action=request.action,
            reason=request.reason,
        )
        return {"listing": listing.to_public_dict(), "action": (request.action or "").strip().lower()}

    except MarketplaceError:
        raise
    except Exception as e:
        logger.exception("Moderation failed")
        raise HTTPException(status_code=500, detail=f"Failed to moderate listing: {str(e)}")
