"""
API dependencies

Every user-scoped route resolves the Authorization bearer token through the
identity gateway. Public routes only need the client key when one is
configured; a valid user token is accepted in its place.
"""
import secrets
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from secondhand.core.config import settings
from secondhand.core.error_handler import collaborator_boundary
from secondhand.core.exceptions import AuthenticationError
from secondhand.services.cart_service import CartService
from secondhand.services.checkout_service import CheckoutService
from secondhand.services.entity_store import EntityStore, get_entity_store
from secondhand.services.identity import AuthenticatedUser, IdentityGateway, get_identity_gateway
from secondhand.services.listing_service import ListingService
from secondhand.services.profile_service import ProfileService
from secondhand.services.storage import BlobStore, get_storage_service

# Optional bearer - doesn't fail if no Authorization header
security = HTTPBearer(auto_error=False)


def get_store() -> EntityStore:
    return get_entity_store()


def get_identity() -> IdentityGateway:
    return get_identity_gateway()


def get_blob_store() -> BlobStore:
    return get_storage_service()


def get_listing_service(store: EntityStore = Depends(get_store)) -> ListingService:
    return ListingService(store)


def get_cart_service(
    store: EntityStore = Depends(get_store),
    listings: ListingService = Depends(get_listing_service),
) -> CartService:
    return CartService(store, listings)


def get_checkout_service(
    store: EntityStore = Depends(get_store),
    listings: ListingService = Depends(get_listing_service),
) -> CheckoutService:
    return CheckoutService(store, listings)


def get_profile_service(
    store: EntityStore = Depends(get_store),
    identity: IdentityGateway = Depends(get_identity),
    listings: ListingService = Depends(get_listing_service),
    checkout: CheckoutService = Depends(get_checkout_service),
) -> ProfileService:
    return ProfileService(store, identity, listings, checkout)


def _bearer_token(credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if credentials and credentials.credentials:
        return credentials.credentials
    return None


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    identity: IdentityGateway = Depends(get_identity),
) -> AuthenticatedUser:
    """Resolve the bearer token to the acting user."""
    token = _bearer_token(credentials)
    if not token:
        raise AuthenticationError("Authorization token required")

    with collaborator_boundary("authenticating request"):
        return await identity.resolve(token)


async def require_client_key(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    identity: IdentityGateway = Depends(get_identity),
) -> None:
    """
    Gate for public routes.

    Open when SUPABASE_ANON_KEY is not configured. Otherwise the bearer must
    be the anon key or a token the identity provider accepts.
    """
    if not settings.SUPABASE_ANON_KEY:
        return

    token = _bearer_token(credentials)
    if not token:
        raise AuthenticationError("Authorization token required")
    if secrets.compare_digest(token.encode(), settings.SUPABASE_ANON_KEY.encode()):
        return

    with collaborator_boundary("authenticating request"):
        await identity.resolve(token)
