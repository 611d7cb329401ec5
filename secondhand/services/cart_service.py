"""
CartService - per-user cart entries

A cart entry is the pair (user, listing) stored at cart:{user}:{listing}.
Adding the same pair again overwrites the entry and refreshes added_at.
"""
import logging
from dataclasses import dataclass
from typing import List

from secondhand.core.error_handler import collaborator_boundary
from secondhand.core.exceptions import NotFoundError, ValidationError
from secondhand.core.utils import utcnow_iso
from secondhand.models.cart import CartEntry
from secondhand.models.listing import Listing
from secondhand.services.entity_store import EntityStore
from secondhand.services.listing_service import ListingService

logger = logging.getLogger(__name__)


@dataclass
class CartLine:
    """A cart entry joined with the current state of its listing."""
    entry: CartEntry
    product: Listing

    def to_dict(self) -> dict:
        return {**self.entry.model_dump(), "product": self.product.model_dump()}


class CartService:
    """Cart Manager."""

    def __init__(self, store: EntityStore, listings: ListingService):
        self.store = store
        self.listings = listings

    async def add(self, actor_id: str, listing_id: str) -> CartEntry:
        if not listing_id:
            raise ValidationError("Product ID is required")

        with collaborator_boundary("adding to cart"):
            listing = await self.listings.find(listing_id)
            if listing is None:
                raise NotFoundError("Product not found", entity_key=Listing.key(listing_id))
            if listing.is_owned_by(actor_id):
                raise ValidationError("Cannot add your own product to cart")

            entry = CartEntry(user_id=actor_id, product_id=listing_id, added_at=utcnow_iso())
            await self.store.set(CartEntry.key(actor_id, listing_id), entry.model_dump())

        logger.info(f"Listing {listing_id} added to cart of {actor_id}")
        return entry

    async def remove(self, actor_id: str, listing_id: str) -> None:
        """Delete the entry if present; removing an absent entry is not an error."""
        with collaborator_boundary("removing from cart"):
            await self.store.delete(CartEntry.key(actor_id, listing_id))

    async def list(self, actor_id: str) -> List[CartLine]:
        """
        Every cart entry of the actor with its live listing, newest first.

        Entries whose listing no longer exists are omitted from the result;
        the stale entry itself stays in the store.
        """
        lines: List[CartLine] = []
        with collaborator_boundary("fetching cart"):
            documents = await self.store.scan_prefix(CartEntry.user_prefix(actor_id))
            for doc in documents:
                entry = CartEntry.model_validate(doc)
                listing = await self.listings.find(entry.product_id)
                if listing is None:
                    logger.debug(f"Omitting cart entry for deleted listing {entry.product_id}")
                    continue
                lines.append(CartLine(entry=entry, product=listing))

        lines.sort(key=lambda line: line.entry.added_at, reverse=True)
        return lines
