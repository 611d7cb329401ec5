"""
Tests for the listing manager: validation, ownership, filtering and ordering.
"""
import pytest

from secondhand.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from secondhand.models.listing import DEFAULT_PLACEHOLDER, Listing
from secondhand.services.listing_service import UNSET, parse_price


async def _put_listing(store, listing_id, created_at, **overrides):
    data = {
        "id": listing_id,
        "title": f"Item {listing_id}",
        "description": "Gently used",
        "category": "Other",
        "price": 10.0,
        "seller_id": "seller-1",
        "created_at": created_at,
    }
    data.update(overrides)
    await store.set(Listing.key(listing_id), Listing(**data).model_dump())


class TestParsePrice:

    @pytest.mark.parametrize("value, expected", [(12.5, 12.5), ("12.50", 12.5), (3, 3.0), (" 7 ", 7.0)])
    def test_accepts_positive_numbers(self, value, expected):
        assert parse_price(value) == expected

    @pytest.mark.parametrize("value", [0, -1, "-3.2", "abc", "nan", "inf", True, None, "1e999"])
    def test_rejects_non_positive_or_non_numeric(self, value):
        with pytest.raises(ValidationError):
            parse_price(value)


class TestCreate:

    async def test_create_persists_listing_owned_by_actor(self, listing_service, store, sample_listing_data):
        listing = await listing_service.create("seller-1", **sample_listing_data)

        assert listing.seller_id == "seller-1"
        assert listing.image_placeholder == DEFAULT_PLACEHOLDER
        assert listing.image_url is None
        assert await store.get(Listing.key(listing.id)) == listing.model_dump()

    async def test_create_keeps_image_reference(self, listing_service, sample_listing_data):
        listing = await listing_service.create(
            "seller-1", image_url="https://img/1.png", image_path="seller-1/1.png", **sample_listing_data
        )
        assert listing.image_url == "https://img/1.png"
        assert listing.image_path == "seller-1/1.png"

    @pytest.mark.parametrize("missing", ["title", "description", "category", "price"])
    async def test_create_requires_every_field(self, listing_service, sample_listing_data, missing):
        sample_listing_data[missing] = "  " if missing != "price" else None
        with pytest.raises(ValidationError):
            await listing_service.create("seller-1", **sample_listing_data)

    @pytest.mark.parametrize("price", [0, -5, "free"])
    async def test_create_rejects_bad_price(self, listing_service, store, sample_listing_data, price):
        sample_listing_data["price"] = price
        with pytest.raises(ValidationError):
            await listing_service.create("seller-1", **sample_listing_data)
        assert await store.scan_prefix("") == []

    async def test_create_rejects_unknown_category(self, listing_service, sample_listing_data):
        sample_listing_data["category"] = "Spaceships"
        with pytest.raises(ValidationError):
            await listing_service.create("seller-1", **sample_listing_data)

    async def test_unknown_category_allowed_when_enforcement_disabled(
        self, listing_service, sample_listing_data, monkeypatch
    ):
        from secondhand.core.config import settings
        monkeypatch.setattr(settings, "ENFORCE_LISTING_CATEGORIES", False)
        sample_listing_data["category"] = "Spaceships"
        listing = await listing_service.create("seller-1", **sample_listing_data)
        assert listing.category == "Spaceships"


class TestUpdateAndDelete:

    async def test_update_preserves_identity_owner_and_timestamp(self, listing_service, sample_listing_data):
        original = await listing_service.create("seller-1", **sample_listing_data)

        updated = await listing_service.update(
            "seller-1", original.id,
            title="Road Bike (new tyres)", description="Now with new tyres",
            category="Sports", price="175",
        )

        assert updated.id == original.id
        assert updated.seller_id == "seller-1"
        assert updated.created_at == original.created_at
        assert updated.title == "Road Bike (new tyres)"
        assert updated.price == 175.0

    async def test_update_omitted_image_fields_keep_previous_value(self, listing_service, sample_listing_data):
        original = await listing_service.create(
            "seller-1", image_url="https://img/1.png", image_path="seller-1/1.png", **sample_listing_data
        )
        updated = await listing_service.update("seller-1", original.id, **sample_listing_data)
        assert updated.image_url == "https://img/1.png"
        assert updated.image_path == "seller-1/1.png"

    async def test_update_explicit_null_clears_image(self, listing_service, sample_listing_data):
        original = await listing_service.create(
            "seller-1", image_url="https://img/1.png", image_path="seller-1/1.png", **sample_listing_data
        )
        updated = await listing_service.update(
            "seller-1", original.id, image_url=None, image_path=UNSET, **sample_listing_data
        )
        assert updated.image_url is None
        assert updated.image_path == "seller-1/1.png"

    async def test_update_missing_listing(self, listing_service, sample_listing_data):
        with pytest.raises(NotFoundError):
            await listing_service.update("seller-1", "nope", **sample_listing_data)

    @pytest.mark.parametrize("fields", [
        {"title": "x", "description": "y", "category": "Other", "price": 5},
        {"title": "", "description": None, "category": None, "price": -1},
    ])
    async def test_update_by_non_owner_is_forbidden_regardless_of_fields(
        self, listing_service, sample_listing_data, fields
    ):
        listing = await listing_service.create("seller-1", **sample_listing_data)
        with pytest.raises(AuthorizationError):
            await listing_service.update("intruder", listing.id, **fields)

    async def test_delete_by_non_owner_is_forbidden(self, listing_service, sample_listing_data):
        listing = await listing_service.create("seller-1", **sample_listing_data)
        with pytest.raises(AuthorizationError):
            await listing_service.delete("intruder", listing.id)
        assert (await listing_service.get(listing.id)).id == listing.id

    async def test_delete_removes_listing(self, listing_service, sample_listing_data):
        listing = await listing_service.create("seller-1", **sample_listing_data)
        await listing_service.delete("seller-1", listing.id)
        with pytest.raises(NotFoundError):
            await listing_service.get(listing.id)

    async def test_delete_missing_listing(self, listing_service):
        with pytest.raises(NotFoundError):
            await listing_service.delete("seller-1", "nope")


class TestListing:

    async def test_list_is_newest_first(self, listing_service, store):
        await _put_listing(store, "a", "2024-01-01T00:00:00+00:00")
        await _put_listing(store, "c", "2024-03-01T00:00:00+00:00")
        await _put_listing(store, "b", "2024-02-01T00:00:00+00:00")

        assert [l.id for l in await listing_service.list()] == ["c", "b", "a"]

    async def test_list_filters_by_exact_category(self, listing_service, store):
        await _put_listing(store, "phone", "2024-01-01T00:00:00+00:00", category="Electronics")
        await _put_listing(store, "lamp", "2024-01-02T00:00:00+00:00", category="Home & Garden")
        await _put_listing(store, "cable", "2024-01-03T00:00:00+00:00", category="electronics")

        result = await listing_service.list(category="Electronics")
        assert [l.id for l in result] == ["phone"]

    async def test_category_all_means_no_filter(self, listing_service, store):
        await _put_listing(store, "phone", "2024-01-01T00:00:00+00:00", category="Electronics")
        await _put_listing(store, "lamp", "2024-01-02T00:00:00+00:00", category="Home & Garden")
        assert len(await listing_service.list(category="all")) == 2

    async def test_search_matches_title_or_description_case_insensitively(self, listing_service, store):
        await _put_listing(store, "t", "2024-01-01T00:00:00+00:00", title="Vintage CAMERA")
        await _put_listing(store, "d", "2024-01-02T00:00:00+00:00", description="comes with camera bag")
        await _put_listing(store, "x", "2024-01-03T00:00:00+00:00", title="Desk", description="Oak")

        result = await listing_service.list(search="Camera")
        assert sorted(l.id for l in result) == ["d", "t"]

    async def test_category_and_search_combine(self, listing_service, store):
        await _put_listing(store, "1", "2024-01-01T00:00:00+00:00", title="Camera", category="Electronics")
        await _put_listing(store, "2", "2024-01-02T00:00:00+00:00", title="Camera strap", category="Other")
        result = await listing_service.list(category="Electronics", search="camera")
        assert [l.id for l in result] == ["1"]

    async def test_list_by_owner(self, listing_service, store):
        await _put_listing(store, "mine-old", "2024-01-01T00:00:00+00:00", seller_id="me")
        await _put_listing(store, "theirs", "2024-01-02T00:00:00+00:00", seller_id="them")
        await _put_listing(store, "mine-new", "2024-01-03T00:00:00+00:00", seller_id="me")

        assert [l.id for l in await listing_service.list_by_owner("me")] == ["mine-new", "mine-old"]

    async def test_get_missing(self, listing_service):
        with pytest.raises(NotFoundError):
            await listing_service.get("missing")
