"""
Cart entry document

Stored at cart:{user_id}:{product_id}, so one entry per (user, listing) pair
and a prefix scan on cart:{user_id}: enumerates a user's cart.
"""
from pydantic import BaseModel


class CartEntry(BaseModel):
    user_id: str
    product_id: str
    added_at: str

    @staticmethod
    def key(user_id: str, product_id: str) -> str:
        return f"cart:{user_id}:{product_id}"

    @staticmethod
    def user_prefix(user_id: str) -> str:
        return f"cart:{user_id}:"
