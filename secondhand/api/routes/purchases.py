"""
Purchase routes

Checkout is simulated (no payment). Ids whose listing no longer exists are
skipped, so the number of purchases returned may be lower than requested.
"""
from fastapi import APIRouter, Depends, Request

from secondhand.api.deps import get_checkout_service, get_current_user
from secondhand.core.rate_limit import get_checkout_limit
from secondhand.schemas.purchase import PurchaseHistoryResponse, PurchaseRequest, PurchaseResponse
from secondhand.services.checkout_service import CheckoutService
from secondhand.services.identity import AuthenticatedUser

router = APIRouter(tags=["purchases"])


@router.post("/purchase", response_model=PurchaseResponse)
@get_checkout_limit()
async def purchase(
    request: Request,
    payload: PurchaseRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    checkout: CheckoutService = Depends(get_checkout_service),
):
    purchases = await checkout.checkout(user.id, payload.productIds or [])
    return PurchaseResponse(message="Purchase completed", purchases=purchases)


@router.get("/purchases", response_model=PurchaseHistoryResponse)
async def purchase_history(
    user: AuthenticatedUser = Depends(get_current_user),
    checkout: CheckoutService = Depends(get_checkout_service),
):
    return {"purchases": await checkout.list_purchases(user.id)}
