"""
ListingService - listings offered for sale

Owns product:{id} documents: creation on behalf of a seller, owner-only
update and delete, and filtered retrieval. Filtering is a linear scan over
every listing; there is no index and no pagination.
"""
import logging
import math
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from secondhand.core.config import LISTING_CATEGORIES, settings
from secondhand.core.error_handler import collaborator_boundary
from secondhand.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from secondhand.core.utils import new_id, utcnow_iso
from secondhand.models.listing import DEFAULT_PLACEHOLDER, KEY_PREFIX, Listing
from secondhand.services.entity_store import EntityStore

logger = logging.getLogger(__name__)

# Sentinel for "field not present in the request" as opposed to an explicit null
UNSET: Any = object()


def parse_price(value: Any) -> float:
    """
    Parse a listing price.

    Accepts numbers and numeric strings ("12.50"). The result must be a
    finite number greater than zero.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError("Price must be a positive number")
    try:
        price = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("Price must be a positive number")
    if not price.is_finite() or price <= 0:
        raise ValidationError("Price must be a positive number")
    result = float(price)
    if not math.isfinite(result) or result <= 0:
        raise ValidationError("Price must be a positive number")
    return result


def _required_text(value: Optional[str]) -> str:
    if value is None or not str(value).strip():
        raise ValidationError("All product fields are required")
    return str(value).strip()


def validate_listing_fields(
    title: Optional[str],
    description: Optional[str],
    category: Optional[str],
    price: Any,
) -> Dict[str, Any]:
    """Validate the mandatory listing fields shared by create and update."""
    if price is None or (isinstance(price, str) and not price.strip()):
        raise ValidationError("All product fields are required")
    fields = {
        "title": _required_text(title),
        "description": _required_text(description),
        "category": _required_text(category),
        "price": parse_price(price),
    }
    if settings.ENFORCE_LISTING_CATEGORIES and fields["category"] not in LISTING_CATEGORIES:
        raise ValidationError(
            f"Invalid category. Allowed: {', '.join(LISTING_CATEGORIES)}"
        )
    return fields


def newest_first(listings: List[Listing]) -> List[Listing]:
    return sorted(listings, key=lambda listing: listing.created_at, reverse=True)


def matches_filter(listing: Listing, category: Optional[str], search: Optional[str]) -> bool:
    """Exact category match and/or case-insensitive substring over title or description."""
    if category and category != "all" and listing.category != category:
        return False
    if search:
        needle = search.lower()
        if needle not in listing.title.lower() and needle not in listing.description.lower():
            return False
    return True


class ListingService:
    """Listing Manager."""

    def __init__(self, store: EntityStore):
        self.store = store

    async def _load(self, listing_id: str) -> Optional[Listing]:
        data = await self.store.get(Listing.key(listing_id))
        return Listing.model_validate(data) if data else None

    async def _load_owned(self, actor_id: str, listing_id: str, verb: str) -> Listing:
        listing = await self._load(listing_id)
        if listing is None:
            raise NotFoundError("Product not found", entity_key=Listing.key(listing_id))
        if not listing.is_owned_by(actor_id):
            raise AuthorizationError(f"Not authorized to {verb} this product")
        return listing

    async def _all(self) -> List[Listing]:
        return [Listing.model_validate(doc) for doc in await self.store.scan_prefix(KEY_PREFIX)]

    async def create(
        self,
        actor_id: str,
        title: Optional[str],
        description: Optional[str],
        category: Optional[str],
        price: Any,
        image_url: Optional[str] = None,
        image_path: Optional[str] = None,
        image_placeholder: str = DEFAULT_PLACEHOLDER,
    ) -> Listing:
        fields = validate_listing_fields(title, description, category, price)
        listing = Listing(
            id=new_id(),
            seller_id=actor_id,
            created_at=utcnow_iso(),
            image_placeholder=image_placeholder,
            image_url=image_url or None,
            image_path=image_path or None,
            **fields,
        )
        with collaborator_boundary("creating product"):
            await self.store.set(Listing.key(listing.id), listing.model_dump())
        logger.info(f"Listing {listing.id} created by {actor_id}")
        return listing

    async def update(
        self,
        actor_id: str,
        listing_id: str,
        title: Optional[str],
        description: Optional[str],
        category: Optional[str],
        price: Any,
        image_url: Any = UNSET,
        image_path: Any = UNSET,
    ) -> Listing:
        """
        Replace the mutable fields of a listing.

        Image fields left UNSET keep their previous values; an explicit None
        clears them. id, seller_id and created_at are preserved.
        """
        with collaborator_boundary("updating product"):
            existing = await self._load_owned(actor_id, listing_id, "edit")
        fields = validate_listing_fields(title, description, category, price)

        changes: Dict[str, Any] = dict(fields)
        if image_url is not UNSET:
            changes["image_url"] = image_url
        if image_path is not UNSET:
            changes["image_path"] = image_path
        updated = existing.model_copy(update=changes)

        with collaborator_boundary("updating product"):
            await self.store.set(Listing.key(listing_id), updated.model_dump())
        logger.info(f"Listing {listing_id} updated by {actor_id}")
        return updated

    async def delete(self, actor_id: str, listing_id: str) -> None:
        """Remove a listing. Cart entries and purchases referencing it are left alone."""
        with collaborator_boundary("deleting product"):
            await self._load_owned(actor_id, listing_id, "delete")
            await self.store.delete(Listing.key(listing_id))
        logger.info(f"Listing {listing_id} deleted by {actor_id}")

    async def get(self, listing_id: str) -> Listing:
        with collaborator_boundary("fetching product"):
            listing = await self._load(listing_id)
        if listing is None:
            raise NotFoundError("Product not found", entity_key=Listing.key(listing_id))
        return listing

    async def find(self, listing_id: str) -> Optional[Listing]:
        """Live lookup used by joins; None if the listing was deleted."""
        return await self._load(listing_id)

    async def list(self, category: Optional[str] = None, search: Optional[str] = None) -> List[Listing]:
        with collaborator_boundary("fetching products"):
            listings = await self._all()
        return newest_first([l for l in listings if matches_filter(l, category, search)])

    async def list_by_owner(self, actor_id: str) -> List[Listing]:
        with collaborator_boundary("fetching my products"):
            listings = await self._all()
        return newest_first([l for l in listings if l.is_owned_by(actor_id)])
