"""
Cart schemas
"""
from typing import List, Optional
from pydantic import BaseModel

from secondhand.models.cart import CartEntry
from secondhand.models.listing import Listing


class CartAddRequest(BaseModel):
    productId: Optional[str] = None


class CartAddResponse(BaseModel):
    message: str
    cartItem: CartEntry


class CartItemResponse(CartEntry):
    product: Listing


class CartResponse(BaseModel):
    cartItems: List[CartItemResponse]
