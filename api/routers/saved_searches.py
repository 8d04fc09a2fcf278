"""
Saved Searches API Endpoints.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import Services, get_services
from api.models import SavedSearchCreateRequest, SavedSearchDeleteRequest
from domain.errors import MarketplaceError
from services.wishlist_service import SavedSearchInput

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/saved-searches",
    summary="List Saved Searches",
)
def list_saved_searches(
    customer_email: Optional[str] = None,
    limit: Optional[str] = None,
    offset: Optional[str] = None,
    services: Services = Depends(get_services),
):
    """Newest first; `limit` 1-50 (default 25), `offset` 0-5000."""
    try:
        searches = services.saved_searches.list_searches(customer_email, limit, offset)
        return {"count": len(searches), "searches": [s.to_public_dict() for s in searches]}

    except MarketplaceError:
        raise
    except Exception as e:
        logger.exception("Saved search load failed")
        raise HTTPException(status_code=500, detail=f"Failed to load saved searches: {str(e)}")


@router.post(
    "/saved-searches",
    status_code=201,
    summary="Save Search",
    description="Store browse filters for a customer.",
)
def create_saved_search(request: SavedSearchCreateRequest, services: Services = Depends(get_services)):
    """
    Save a search.

    **Validation:**
    - `sort` is newest (default), price_asc or price_desc
    - `min_price` / `max_price` are optional, non-negative, and min <= max
    """
    try:
        saved = services.saved_searches.create(
            request.customer_email,
            SavedSearchInput(
                search_query=request.search_query,
                brand=request.brand,
                size=request.size,
                condition=request.condition,
                min_price=request.min_price,
                max_price=request.max_price,
                sort_key=request.sort_key,
                notify_email=request.notify_email,
            ),
        )
        return {"saved_search": saved.to_public_dict()}

    except MarketplaceError:
        raise
    except Exception as e:
        logger.exception("Saved search creation failed")
        raise HTTPException(status_code=500, detail=f"Failed to save search: {str(e)}")


@router.delete(
    "/saved-searches",
    summary="Delete Saved Search",
)
def delete_saved_search(request: SavedSearchDeleteRequest, services: Services = Depends(get_services)):
    try:
        search_id = services.saved_searches.remove(request.customer_email, request.saved_search_id)
        return {"removed": True, "id": search_id}

    except MarketplaceError:
        raise
    except Exception as e:
        logger.exception("Saved search deletion failed")
        raise HTTPException(status_code=500, detail=f"Failed to delete saved search: {str(e)}")
