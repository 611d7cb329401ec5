"""
CheckoutService - turning cart entries into purchase records

Purchase is simulated: no payment is taken. For each requested listing, in
request order, the listing is looked up; a missing listing is skipped, an
existing one gets a purchase record snapshotting its price and title, and the
buyer's cart entry for it is removed. Lines are independent: there is no
rollback across lines.

Known gap: nothing marks a listing as sold, so two checkouts over the same
listing both succeed and produce two purchase records.

Each request writes a checkout intent (checkout:{id}) before touching any
line and deletes it once every line is settled. Purchase ids are minted into
the intent up front, so an interrupted batch can be resumed by
reconcile_pending() without duplicating the records that were already
written. A batch that fails to resume is kept as FAILED and not retried.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from secondhand.core.error_handler import collaborator_boundary
from secondhand.core.exceptions import ValidationError
from secondhand.core.utils import new_id, utcnow, utcnow_iso
from secondhand.models.cart import CartEntry
from secondhand.models.checkout import (
    KEY_PREFIX as CHECKOUT_PREFIX,
    CheckoutIntent,
    CheckoutLine,
    CheckoutStatus,
    LineStatus,
)
from secondhand.models.listing import DEFAULT_PLACEHOLDER
from secondhand.models.purchase import KEY_PREFIX as PURCHASE_PREFIX, PurchaseRecord
from secondhand.services.entity_store import EntityStore
from secondhand.services.listing_service import ListingService

logger = logging.getLogger(__name__)


class CheckoutService:
    """Checkout Process and Purchase History Query."""

    def __init__(self, store: EntityStore, listings: ListingService):
        self.store = store
        self.listings = listings

    async def _save_intent(self, intent: CheckoutIntent) -> None:
        await self.store.set(CheckoutIntent.key(intent.id), intent.model_dump(mode="json"))

    async def _process_line(self, intent: CheckoutIntent, line: CheckoutLine) -> Optional[PurchaseRecord]:
        """Commit or skip one pending line. Returns the purchase when committed."""
        existing = await self.store.get(PurchaseRecord.key(line.purchase_id))
        if existing:
            # Written before an interruption; finish the line without a second record
            purchase = PurchaseRecord.model_validate(existing)
        else:
            listing = await self.listings.find(line.product_id)
            if listing is None:
                line.status = LineStatus.SKIPPED
                logger.info(f"Checkout {intent.id}: listing {line.product_id} no longer exists, skipped")
                return None

            purchase = PurchaseRecord(
                id=line.purchase_id,
                user_id=intent.user_id,
                product_id=line.product_id,
                purchased_at=intent.created_at,
                price=listing.price,
                title=listing.title,
            )
            await self.store.set(PurchaseRecord.key(purchase.id), purchase.model_dump())

        await self.store.delete(CartEntry.key(intent.user_id, line.product_id))
        line.status = LineStatus.COMMITTED
        return purchase

    async def _run(self, intent: CheckoutIntent) -> List[PurchaseRecord]:
        purchases: List[PurchaseRecord] = []
        for line in intent.lines:
            if line.status != LineStatus.PENDING:
                continue
            purchase = await self._process_line(intent, line)
            if purchase is not None:
                purchases.append(purchase)
            await self._save_intent(intent)

        await self.store.delete(CheckoutIntent.key(intent.id))
        return purchases

    async def _mark_failed(self, intent: CheckoutIntent) -> None:
        intent.status = CheckoutStatus.FAILED
        intent.failed_at = utcnow_iso()
        try:
            await self._save_intent(intent)
        except Exception:
            logger.exception(f"Could not mark checkout {intent.id} as failed")

    async def checkout(self, actor_id: str, listing_ids: Sequence[str]) -> List[PurchaseRecord]:
        """
        Purchase the given listings for the actor.

        Returns the purchase records actually created, which may be fewer
        than the ids requested. There is no failure mode for stale ids.
        """
        if not listing_ids or isinstance(listing_ids, str):
            raise ValidationError("Product IDs array is required")
        if not all(isinstance(listing_id, str) and listing_id for listing_id in listing_ids):
            raise ValidationError("Product IDs array is required")

        intent = CheckoutIntent(
            id=new_id(),
            user_id=actor_id,
            created_at=utcnow_iso(),
            lines=[CheckoutLine(product_id=pid, purchase_id=new_id()) for pid in listing_ids],
        )

        with collaborator_boundary("processing purchase"):
            await self._save_intent(intent)
            purchases = await self._run(intent)

        logger.info(
            f"Checkout {intent.id} for {actor_id}: {len(purchases)} of {len(listing_ids)} purchased"
        )
        return purchases

    async def reconcile_pending(self, older_than: timedelta = timedelta(0)) -> Dict[str, int]:
        """
        Resume checkout batches that were interrupted before settling.

        Only batches created more than older_than ago are touched, so requests
        still in flight are left to finish on their own. A batch that raises
        is marked FAILED and the scan moves on to the next one. Returns the
        number of purchases committed per resumed batch.
        """
        cutoff = utcnow() - older_than
        resumed: Dict[str, int] = {}

        for doc in await self.store.scan_prefix(CHECKOUT_PREFIX):
            try:
                intent = CheckoutIntent.model_validate(doc)
                created_at = datetime.fromisoformat(intent.created_at)
            except (PydanticValidationError, ValueError):
                logger.exception(f"Unreadable checkout intent {doc.get('id')}, skipped")
                continue
            if intent.status != CheckoutStatus.PENDING:
                continue
            if created_at > cutoff:
                continue

            pending = len(intent.pending_lines())
            try:
                purchases = await self._run(intent)
            except Exception:
                logger.exception(f"Could not resume checkout {intent.id} for {intent.user_id}")
                await self._mark_failed(intent)
                continue
            resumed[intent.id] = len(purchases)
            logger.warning(
                f"Resumed interrupted checkout {intent.id} for {intent.user_id}: "
                f"{pending} pending lines, {len(purchases)} purchased"
            )

        return resumed

    async def list_purchases(self, actor_id: str) -> List[Dict[str, Any]]:
        """
        Purchase history of the actor, newest first.

        Each record is joined with the live listing when it still exists;
        otherwise with a stand-in built from the record's own title.
        """
        history: List[Dict[str, Any]] = []
        with collaborator_boundary("fetching purchase history"):
            documents = await self.store.scan_prefix(PURCHASE_PREFIX)
            for doc in documents:
                purchase = PurchaseRecord.model_validate(doc)
                if purchase.user_id != actor_id:
                    continue
                listing = await self.listings.find(purchase.product_id)
                product = (
                    listing.model_dump()
                    if listing is not None
                    else {"title": purchase.title, "image_placeholder": DEFAULT_PLACEHOLDER}
                )
                history.append({**purchase.model_dump(), "product": product})

        history.sort(key=lambda item: item["purchased_at"], reverse=True)
        return history

    async def list_all_purchases(self) -> List[PurchaseRecord]:
        with collaborator_boundary("fetching purchases"):
            return [PurchaseRecord.model_validate(doc) for doc in await self.store.scan_prefix(PURCHASE_PREFIX)]
