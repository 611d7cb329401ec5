"""
Purchase schemas
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel

from secondhand.models.purchase import PurchaseRecord


class PurchaseRequest(BaseModel):
    productIds: Optional[List[str]] = None


class PurchaseResponse(BaseModel):
    message: str
    purchases: List[PurchaseRecord]


class PurchaseHistoryItem(PurchaseRecord):
    # Live listing, or {title, image_placeholder} once the listing is gone
    product: Dict[str, Any]


class PurchaseHistoryResponse(BaseModel):
    purchases: List[PurchaseHistoryItem]
