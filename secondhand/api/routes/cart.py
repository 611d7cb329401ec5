"""
Cart routes
"""
from fastapi import APIRouter, Depends

from secondhand.api.deps import get_cart_service, get_current_user
from secondhand.schemas.cart import CartAddRequest, CartAddResponse, CartResponse
from secondhand.schemas.listing import MessageResponse
from secondhand.services.cart_service import CartService
from secondhand.services.identity import AuthenticatedUser

router = APIRouter(tags=["cart"])


@router.post("/cart", response_model=CartAddResponse)
async def add_to_cart(
    payload: CartAddRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    cart: CartService = Depends(get_cart_service),
):
    entry = await cart.add(user.id, payload.productId)
    return CartAddResponse(message="Product added to cart", cartItem=entry)


@router.get("/cart", response_model=CartResponse)
async def get_cart(
    user: AuthenticatedUser = Depends(get_current_user),
    cart: CartService = Depends(get_cart_service),
):
    """Cart entries with their listings; entries for deleted listings are left out"""
    lines = await cart.list(user.id)
    return {"cartItems": [line.to_dict() for line in lines]}


@router.delete("/cart/{product_id}", response_model=MessageResponse)
async def remove_from_cart(
    product_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    cart: CartService = Depends(get_cart_service),
):
    await cart.remove(user.id, product_id)
    return MessageResponse(message="Product removed from cart")
