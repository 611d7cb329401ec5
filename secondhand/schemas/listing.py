"""
Listing schemas

Field names follow the JSON the browser client already sends (camelCase
request fields, snake_case stored documents).
"""
from typing import Any, List, Optional
from pydantic import BaseModel

from secondhand.models.listing import Listing


class ListingWrite(BaseModel):
    """Body of create and update. Required-ness is checked by the service."""
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    # Number or numeric string
    price: Any = None
    imageUrl: Optional[str] = None
    imagePath: Optional[str] = None


class ListingResponse(BaseModel):
    product: Listing


class ListingListResponse(BaseModel):
    products: List[Listing]


class MessageResponse(BaseModel):
    message: str
