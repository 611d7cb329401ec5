"""
Listing document

Stored at product:{id}. The id, seller_id and created_at never change after
creation; everything else is replaced by the owner on update.
"""
from typing import Optional
from pydantic import BaseModel

# Shown by the client when a listing has no image
DEFAULT_PLACEHOLDER = "📦"

KEY_PREFIX = "product:"


class Listing(BaseModel):
    id: str
    title: str
    description: str
    category: str
    price: float
    seller_id: str
    created_at: str
    image_placeholder: Optional[str] = DEFAULT_PLACEHOLDER
    image_url: Optional[str] = None
    image_path: Optional[str] = None

    @staticmethod
    def key(listing_id: str) -> str:
        return f"{KEY_PREFIX}{listing_id}"

    def is_owned_by(self, user_id: str) -> bool:
        return self.seller_id == user_id
