"""
Tests for cart management.
"""
import pytest

from secondhand.core.exceptions import NotFoundError, ValidationError
from secondhand.models.cart import CartEntry
from secondhand.services import cart_service as cart_module


@pytest.fixture
def clock(monkeypatch):
    """Deterministic, strictly increasing added_at timestamps."""
    ticks = iter(f"2024-05-01T10:00:{second:02d}+00:00" for second in range(60))
    monkeypatch.setattr(cart_module, "utcnow_iso", lambda: next(ticks))


@pytest.fixture
async def bike(listing_service, sample_listing_data):
    return await listing_service.create("seller-1", **sample_listing_data)


class TestAdd:

    async def test_add_stores_entry(self, cart_service, store, bike):
        entry = await cart_service.add("buyer-1", bike.id)

        assert entry.user_id == "buyer-1"
        assert entry.product_id == bike.id
        assert await store.get(CartEntry.key("buyer-1", bike.id)) == entry.model_dump()

    async def test_add_requires_product_id(self, cart_service):
        with pytest.raises(ValidationError, match="Product ID is required"):
            await cart_service.add("buyer-1", "")

    async def test_add_missing_listing(self, cart_service):
        with pytest.raises(NotFoundError):
            await cart_service.add("buyer-1", "ghost")

    async def test_cannot_add_own_listing(self, cart_service, store, bike):
        with pytest.raises(ValidationError, match="Cannot add your own product to cart"):
            await cart_service.add("seller-1", bike.id)
        assert await store.scan_prefix("cart:") == []

    async def test_adding_twice_keeps_one_entry_and_refreshes_timestamp(self, cart_service, store, bike, clock):
        first = await cart_service.add("buyer-1", bike.id)
        second = await cart_service.add("buyer-1", bike.id)

        entries = await store.scan_prefix(CartEntry.user_prefix("buyer-1"))
        assert len(entries) == 1
        assert second.added_at > first.added_at
        assert entries[0]["added_at"] == second.added_at


class TestRemove:

    async def test_remove_deletes_entry(self, cart_service, store, bike):
        await cart_service.add("buyer-1", bike.id)
        await cart_service.remove("buyer-1", bike.id)
        assert await store.get(CartEntry.key("buyer-1", bike.id)) is None

    async def test_remove_absent_entry_is_not_an_error(self, cart_service):
        await cart_service.remove("buyer-1", "never-added")
        await cart_service.remove("buyer-1", "never-added")

    async def test_remove_only_touches_actor_cart(self, cart_service, store, bike):
        await cart_service.add("buyer-1", bike.id)
        await cart_service.add("buyer-2", bike.id)
        await cart_service.remove("buyer-1", bike.id)
        assert await store.get(CartEntry.key("buyer-2", bike.id)) is not None


class TestList:

    async def test_list_joins_live_listing_newest_first(
        self, cart_service, listing_service, sample_listing_data, clock
    ):
        first = await listing_service.create("seller-1", **sample_listing_data)
        second = await listing_service.create("seller-1", **{**sample_listing_data, "title": "Helmet"})
        await cart_service.add("buyer-1", first.id)
        await cart_service.add("buyer-1", second.id)

        lines = await cart_service.list("buyer-1")

        assert [line.product.id for line in lines] == [second.id, first.id]
        assert lines[0].product.title == "Helmet"
        data = lines[0].to_dict()
        assert data["product_id"] == second.id
        assert data["product"]["title"] == "Helmet"

    async def test_list_reflects_listing_edits(self, cart_service, listing_service, sample_listing_data, bike):
        await cart_service.add("buyer-1", bike.id)
        await listing_service.update("seller-1", bike.id, **{**sample_listing_data, "price": 99})

        lines = await cart_service.list("buyer-1")
        assert lines[0].product.price == 99.0

    async def test_list_omits_deleted_listings_but_keeps_entry(self, cart_service, listing_service, store, bike):
        await cart_service.add("buyer-1", bike.id)
        await listing_service.delete("seller-1", bike.id)

        assert await cart_service.list("buyer-1") == []
        assert await store.get(CartEntry.key("buyer-1", bike.id)) is not None

    async def test_list_is_scoped_to_actor(self, cart_service, bike):
        await cart_service.add("buyer-2", bike.id)
        assert await cart_service.list("buyer-1") == []
