"""
Listing routes

Anyone holding the client key may browse; creating requires a user and
editing or deleting requires the listing's seller.
"""
from typing import Optional

from fastapi import APIRouter, Depends

from secondhand.api.deps import get_current_user, get_listing_service, require_client_key
from secondhand.schemas.listing import (
    ListingListResponse,
    ListingResponse,
    ListingWrite,
    MessageResponse,
)
from secondhand.services.identity import AuthenticatedUser
from secondhand.services.listing_service import UNSET, ListingService

router = APIRouter(tags=["products"])


@router.post("/products", response_model=ListingResponse)
async def create_product(
    payload: ListingWrite,
    user: AuthenticatedUser = Depends(get_current_user),
    listings: ListingService = Depends(get_listing_service),
):
    product = await listings.create(
        user.id,
        title=payload.title,
        description=payload.description,
        category=payload.category,
        price=payload.price,
        image_url=payload.imageUrl,
        image_path=payload.imagePath,
    )
    return ListingResponse(product=product)


@router.get("/products", response_model=ListingListResponse, dependencies=[Depends(require_client_key)])
async def list_products(
    category: Optional[str] = None,
    search: Optional[str] = None,
    listings: ListingService = Depends(get_listing_service),
):
    """All listings, newest first, optionally filtered by category and search text"""
    return ListingListResponse(products=await listings.list(category=category, search=search))


@router.get("/my-products", response_model=ListingListResponse)
async def my_products(
    user: AuthenticatedUser = Depends(get_current_user),
    listings: ListingService = Depends(get_listing_service),
):
    return ListingListResponse(products=await listings.list_by_owner(user.id))


@router.get("/products/{product_id}", response_model=ListingResponse, dependencies=[Depends(require_client_key)])
async def get_product(
    product_id: str,
    listings: ListingService = Depends(get_listing_service),
):
    return ListingResponse(product=await listings.get(product_id))


@router.put("/products/{product_id}", response_model=ListingResponse)
async def update_product(
    product_id: str,
    payload: ListingWrite,
    user: AuthenticatedUser = Depends(get_current_user),
    listings: ListingService = Depends(get_listing_service),
):
    """Replace a listing's fields. Image fields missing from the body are kept."""
    sent = payload.model_fields_set
    product = await listings.update(
        user.id,
        product_id,
        title=payload.title,
        description=payload.description,
        category=payload.category,
        price=payload.price,
        image_url=payload.imageUrl if "imageUrl" in sent else UNSET,
        image_path=payload.imagePath if "imagePath" in sent else UNSET,
    )
    return ListingResponse(product=product)


@router.delete("/products/{product_id}", response_model=MessageResponse)
async def delete_product(
    product_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    listings: ListingService = Depends(get_listing_service),
):
    await listings.delete(user.id, product_id)
    return MessageResponse(message="Product deleted successfully")
