"""
Pytest configuration and fixtures for the marketplace tests.

Collaborators are replaced by in-memory fakes: the package's
InMemoryEntityStore, a token-table identity gateway and a blob store that
only records uploads.
"""
import os
from typing import Any, Dict, List

import pytest

# Set test environment before importing app modules
os.environ["ENVIRONMENT"] = "development"
os.environ["REDIS_URL"] = ""
os.environ["SUPABASE_URL"] = "https://auth.test"
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "service-role-test-key"
os.environ["SUPABASE_ANON_KEY"] = ""
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["STORAGE_INIT_ON_STARTUP"] = "false"
os.environ["CHECKOUT_RECONCILE_ON_STARTUP"] = "false"

from httpx import ASGITransport, AsyncClient  # noqa: E402

from secondhand.core.exceptions import AuthenticationError, ValidationError  # noqa: E402
from secondhand.services.cart_service import CartService  # noqa: E402
from secondhand.services.checkout_service import CheckoutService  # noqa: E402
from secondhand.services.entity_store import InMemoryEntityStore  # noqa: E402
from secondhand.services.identity import AuthenticatedUser, IdentityGateway  # noqa: E402
from secondhand.services.listing_service import ListingService  # noqa: E402
from secondhand.services.profile_service import ProfileService  # noqa: E402
from secondhand.services.storage import BlobStore, UploadResult, build_image_key  # noqa: E402


class FakeIdentityGateway(IdentityGateway):
    """Resolves tokens from a table; signup issues token-{n} ids."""

    def __init__(self):
        self.tokens: Dict[str, AuthenticatedUser] = {}
        self.created: List[Dict[str, Any]] = []

    def issue(self, user_id: str, email: str = None) -> str:
        token = f"token-for-{user_id}"
        self.tokens[token] = AuthenticatedUser(id=user_id, email=email or f"{user_id}@example.com")
        return token

    async def resolve(self, token: str) -> AuthenticatedUser:
        user = self.tokens.get(token)
        if user is None:
            raise AuthenticationError("Unauthorized")
        return user

    async def create_user(self, email: str, password: str, username: str) -> Dict[str, Any]:
        if any(u["email"] == email for u in self.created):
            raise ValidationError("A user with this email address has already been registered")
        user = {
            "id": f"user-{len(self.created) + 1}",
            "email": email,
            "user_metadata": {"username": username},
        }
        self.created.append(user)
        return user


class FakeBlobStore(BlobStore):
    """Records uploads instead of talking to object storage."""

    def __init__(self):
        self.uploads: List[Dict[str, Any]] = []
        self.fail = False

    async def upload_listing_image(self, content, filename, content_type, owner_id) -> UploadResult:
        if self.fail:
            return UploadResult(success=False, error="Failed to upload image")
        key = build_image_key(owner_id, filename, content_type)
        self.uploads.append({"key": key, "size": len(content), "content_type": content_type})
        return UploadResult(
            success=True,
            url=f"https://blobs.test/{key}?signature=abc",
            key=key,
            content_type=content_type,
            size_bytes=len(content),
        )


@pytest.fixture
def store() -> InMemoryEntityStore:
    return InMemoryEntityStore()


@pytest.fixture
def identity() -> FakeIdentityGateway:
    return FakeIdentityGateway()


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def listing_service(store) -> ListingService:
    return ListingService(store)


@pytest.fixture
def cart_service(store, listing_service) -> CartService:
    return CartService(store, listing_service)


@pytest.fixture
def checkout_service(store, listing_service) -> CheckoutService:
    return CheckoutService(store, listing_service)


@pytest.fixture
def profile_service(store, identity, listing_service, checkout_service) -> ProfileService:
    return ProfileService(store, identity, listing_service, checkout_service)


@pytest.fixture
def sample_listing_data() -> dict:
    return {
        "title": "Road Bike",
        "description": "Aluminium frame, 21 gears, recently serviced.",
        "category": "Sports",
        "price": 150.0,
    }


@pytest.fixture
def app(store, identity, blob_store):
    """FastAPI app wired to the in-memory fakes."""
    from secondhand.api import deps
    from secondhand.main import app as fastapi_app

    fastapi_app.dependency_overrides[deps.get_store] = lambda: store
    fastapi_app.dependency_overrides[deps.get_identity] = lambda: identity
    fastapi_app.dependency_overrides[deps.get_blob_store] = lambda: blob_store
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client


@pytest.fixture
def api_prefix() -> str:
    from secondhand.core.config import settings
    return settings.API_PREFIX


@pytest.fixture
def seller_headers(identity) -> dict:
    return {"Authorization": f"Bearer {identity.issue('seller-1')}"}


@pytest.fixture
def buyer_headers(identity) -> dict:
    return {"Authorization": f"Bearer {identity.issue('buyer-1')}"}


@pytest.fixture
def png_bytes() -> bytes:
    return b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
