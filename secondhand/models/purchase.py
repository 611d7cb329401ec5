"""
Purchase record document

Stored at purchase:{id}. Price and title are snapshots taken at checkout and
stay valid after the listing changes or is deleted.
"""
from pydantic import BaseModel

KEY_PREFIX = "purchase:"


class PurchaseRecord(BaseModel):
    id: str
    user_id: str
    product_id: str
    purchased_at: str
    price: float
    title: str

    @staticmethod
    def key(purchase_id: str) -> str:
        return f"{KEY_PREFIX}{purchase_id}"
