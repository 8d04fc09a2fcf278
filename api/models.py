"""
API Request Models.

Pydantic models for validating API request bodies. Browser clients send
camelCase and server-side callers snake_case, so most fields accept both
spellings. Semantic validation (email format, price ranges, state rules)
lives in the services; these models only shape the input.
"""

from typing import Any, List, Optional, Union

from pydantic import AliasChoices, BaseModel, Field


# ============================================================================
# Listing Models
# ============================================================================

class ListingCreateRequest(BaseModel):
    """Seller submission of a new listing."""
    seller_email: Optional[str] = Field(None, validation_alias=AliasChoices("sellerEmail", "seller_email"))
    title: Optional[str] = None
    brand: Optional[str] = None
    price: Any = Field(
        None,
        validation_alias=AliasChoices("price_cents", "priceCents", "price"),
        description="Integer cents, or a decimal amount in major units",
    )
    description: Optional[str] = None
    size: Optional[str] = None
    condition: Optional[str] = None
    is_new: bool = Field(False, validation_alias=AliasChoices("isNew", "is_new"))
    currency: Optional[str] = None
    image_url: Optional[str] = Field(None, validation_alias=AliasChoices("imageUrl", "image_url"))
    video_url: Optional[str] = Field(None, validation_alias=AliasChoices("videoUrl", "video_url"))
    media_urls: Union[List[Any], str, None] = Field(None, validation_alias=AliasChoices("mediaUrls", "media_urls"))

    class Config:
        json_schema_extra = {
            "example": {
                "sellerEmail": "seller@example.com",
                "title": "Wool coat",
                "brand": "Maison Margiela",
                "price": "249.00",
                "condition": "Pre-owned",
                "mediaUrls": ["https://cdn.example.com/coat-1.jpg"],
            }
        }


class ListingStatusRequest(BaseModel):
    """Owner toggling a listing between active and archived."""
    listing_id: Optional[str] = Field(None, validation_alias=AliasChoices("listingId", "listing_id", "id"))
    status: Optional[str] = None
    seller_email: Optional[str] = Field(None, validation_alias=AliasChoices("sellerEmail", "seller_email"))


# ============================================================================
# Offer Models
# ============================================================================

class OfferCreateRequest(BaseModel):
    """Customer opening an offer."""
    customer_email: Optional[str] = Field(None, validation_alias=AliasChoices("customerEmail", "customer_email"))
    listing_id: Optional[str] = Field(None, validation_alias=AliasChoices("listingId", "listing_id"))
    amount: Any = Field(None, validation_alias=AliasChoices("amount_cents", "amountCents", "amount"))
    message: Optional[str] = Field(None, validation_alias=AliasChoices("message", "buyerMessage", "buyer_message"))

    class Config:
        json_schema_extra = {
            "example": {
                "customerEmail": "buyer@example.com",
                "listingId": "8f7c5d1e-0d43-4a55-9b8a-8a1a6f0c2b11",
                "amount": "50.00",
            }
        }


class OfferActionRequestBody(BaseModel):
    """Seller or customer acting on an offer."""
    offer_id: Optional[str] = Field(None, validation_alias=AliasChoices("offerId", "offer_id"))
    action: Optional[str] = None
    seller_email: Optional[str] = Field(None, validation_alias=AliasChoices("sellerEmail", "seller_email"))
    customer_email: Optional[str] = Field(None, validation_alias=AliasChoices("customerEmail", "customer_email"))
    message: Optional[str] = Field(None, validation_alias=AliasChoices("message", "seller_message"))
    counter_amount: Any = Field(
        None,
        validation_alias=AliasChoices("counterAmount", "counter_amount", "counter_amount_cents"),
    )

    class Config:
        json_schema_extra = {
            "example": {
                "offerId": "3d0f7c1e-6a4e-4a58-9a1f-1c2b3d4e5f60",
                "action": "counter",
                "sellerEmail": "seller@example.com",
                "counterAmount": 6000,
            }
        }


# ============================================================================
# Checkout Models
# ============================================================================

class CheckoutSessionRequest(BaseModel):
    """Request to reserve a listing and open a Stripe Checkout session."""
    listing_id: Optional[str] = Field(None, validation_alias=AliasChoices("listingId", "listing_id"))
    buyer_email: Optional[str] = Field(None, validation_alias=AliasChoices("buyerEmail", "buyer_email"))
    origin: Optional[str] = None
    success_url: Optional[str] = Field(None, validation_alias=AliasChoices("successUrl", "success_url"))
    cancel_url: Optional[str] = Field(None, validation_alias=AliasChoices("cancelUrl", "cancel_url"))


# ============================================================================
# Moderation Models
# ============================================================================

class ModerationRequest(BaseModel):
    """Admin approval or rejection of a listing."""
    listing_id: Optional[str] = Field(None, validation_alias=AliasChoices("listingId", "listing_id"))
    action: Optional[str] = None
    reason: Optional[str] = None
    admin_token: Optional[str] = Field(None, validation_alias=AliasChoices("admin_token", "adminToken"))


# ============================================================================
# Seller / Customer Models
# ============================================================================

class OnboardingRequest(BaseModel):
    email: Optional[str] = None
    origin: Optional[str] = None


class AccountStatusRequest(BaseModel):
    email: Optional[str] = None
    stripe_account_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("stripe_account_id", "stripeAccountId")
    )


class CustomerSignupRequest(BaseModel):
    email: Optional[str] = None
    phone: Optional[str] = None
    full_name: Optional[str] = Field(None, validation_alias=AliasChoices("fullName", "full_name"))
    marketing_opt_in: bool = Field(False, validation_alias=AliasChoices("marketingOptIn", "marketing_opt_in"))


# ============================================================================
# Wishlist / Saved Search Models
# ============================================================================

class WishlistRequest(BaseModel):
    customer_email: Optional[str] = Field(None, validation_alias=AliasChoices("customerEmail", "customer_email"))
    listing_id: Optional[str] = Field(None, validation_alias=AliasChoices("listingId", "listing_id"))


class SavedSearchCreateRequest(BaseModel):
    customer_email: Optional[str] = Field(None, validation_alias=AliasChoices("customerEmail", "customer_email"))
    search_query: Optional[str] = Field(None, validation_alias=AliasChoices("search", "searchQuery", "search_query"))
    brand: Optional[str] = None
    size: Optional[str] = None
    condition: Optional[str] = None
    min_price: Any = Field(None, validation_alias=AliasChoices("min_price", "minPrice", "min_price_cents"))
    max_price: Any = Field(None, validation_alias=AliasChoices("max_price", "maxPrice", "max_price_cents"))
    sort_key: Optional[str] = Field(None, validation_alias=AliasChoices("sort", "sort_key"))
    notify_email: bool = Field(True, validation_alias=AliasChoices("notify_email", "notifyEmail"))


class SavedSearchDeleteRequest(BaseModel):
    customer_email: Optional[str] = Field(None, validation_alias=AliasChoices("customerEmail", "customer_email"))
    saved_search_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("savedSearchId", "saved_search_id", "id")
    )


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Listing is no longer available."
            }
        }
