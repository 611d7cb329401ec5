"""
ProfileService - signup, profiles and seller/buyer stats

Signup creates the identity with the provider and then stores the profile
document at user:{id}. Demo accounts (username containing the demo marker)
get a few sample listings from a shared demo seller so the feed is not empty.
"""
import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from secondhand.core.config import settings
from secondhand.core.error_handler import collaborator_boundary
from secondhand.core.exceptions import NotFoundError, ValidationError
from secondhand.core.utils import new_id, utcnow, utcnow_iso
from secondhand.models.listing import Listing
from secondhand.models.user import UserProfile
from secondhand.services.checkout_service import CheckoutService
from secondhand.services.entity_store import EntityStore
from secondhand.services.identity import IdentityGateway
from secondhand.services.listing_service import ListingService

logger = logging.getLogger(__name__)

DEMO_SELLER_ID = "demo-seller"

DEMO_LISTINGS = [
    {
        "title": "Vintage Leather Jacket",
        "description": "Classic brown leather jacket in excellent condition. Perfect for sustainable fashion lovers.",
        "category": "Clothing",
        "price": 89.99,
        "image_placeholder": "🧥",
        "age_days": 0,
    },
    {
        "title": "MacBook Air (Pre-owned)",
        "description": "2020 MacBook Air in great condition. Battery still holds excellent charge. Perfect for students or professionals.",
        "category": "Electronics",
        "price": 699.00,
        "image_placeholder": "💻",
        "age_days": 1,
    },
    {
        "title": "Ceramic Planter Set",
        "description": "Beautiful set of 3 ceramic planters with drainage holes. Perfect for your favorite succulents or herbs.",
        "category": "Home & Garden",
        "price": 34.50,
        "image_placeholder": "🪴",
        "age_days": 2,
    },
]

# Optional profile fields a user may edit besides the username
EDITABLE_FIELDS = ("full_name", "bio", "location", "phone", "avatar_url")


class ProfileService:
    """Profile Manager."""

    def __init__(
        self,
        store: EntityStore,
        identity: IdentityGateway,
        listings: ListingService,
        checkout: CheckoutService,
    ):
        self.store = store
        self.identity = identity
        self.listings = listings
        self.checkout = checkout

    async def signup(self, email: Optional[str], password: Optional[str], username: Optional[str]) -> Dict[str, Any]:
        if not email or not password or not username:
            raise ValidationError("Email, password, and username are required")

        with collaborator_boundary("during signup"):
            user = await self.identity.create_user(email, password, username)
            profile = UserProfile(
                id=user["id"],
                email=email,
                username=username,
                created_at=utcnow_iso(),
            )
            await self.store.set(UserProfile.key(profile.id), profile.model_dump(exclude_none=True))

        logger.info(f"User {profile.id} signed up")

        if settings.DEMO_USERNAME_MARKER and settings.DEMO_USERNAME_MARKER in username:
            await self.seed_demo_listings(profile.id)

        return user

    async def seed_demo_listings(self, user_id: str) -> int:
        """Store the demo listings. Failures are logged; signup still succeeds."""
        now = utcnow()
        created = 0
        try:
            for demo in DEMO_LISTINGS:
                listing = Listing(
                    id=new_id(),
                    title=demo["title"],
                    description=demo["description"],
                    category=demo["category"],
                    price=demo["price"],
                    seller_id=DEMO_SELLER_ID,
                    created_at=(now - timedelta(days=demo["age_days"])).isoformat(),
                    image_placeholder=demo["image_placeholder"],
                )
                await self.store.set(Listing.key(listing.id), listing.model_dump())
                created += 1
        except Exception as e:
            logger.error(f"Error creating demo products: {e}")
        else:
            logger.info(f"Created {created} demo products for user {user_id}")
        return created

    async def _load(self, user_id: str) -> UserProfile:
        data = await self.store.get(UserProfile.key(user_id))
        if not data:
            raise NotFoundError("Profile not found", entity_key=UserProfile.key(user_id))
        return UserProfile.model_validate(data)

    async def get_profile(self, actor_id: str) -> UserProfile:
        with collaborator_boundary("fetching profile"):
            return await self._load(actor_id)

    async def update_profile(self, actor_id: str, username: Optional[str], **fields: Any) -> UserProfile:
        if not username or not str(username).strip():
            raise ValidationError("Username is required")

        changes: Dict[str, Any] = {"username": str(username).strip()}
        changes.update({name: value for name, value in fields.items() if name in EDITABLE_FIELDS})

        with collaborator_boundary("updating profile"):
            existing = await self._load(actor_id)
            updated = existing.model_copy(update=changes)
            await self.store.set(UserProfile.key(actor_id), updated.model_dump(exclude_none=True))
        return updated

    async def stats(self, actor_id: str) -> Dict[str, int]:
        """
        Listing and purchase counts for the dashboard.

        totalSales counts purchase records against listings the actor still
        owns; sales of listings deleted since are not attributable.
        """
        my_listings = await self.listings.list_by_owner(actor_id)
        listing_ids = {listing.id for listing in my_listings}
        purchases = await self.checkout.list_all_purchases()
        return {
            "totalListings": len(my_listings),
            "totalSales": sum(1 for p in purchases if p.product_id in listing_ids),
            "totalPurchases": sum(1 for p in purchases if p.user_id == actor_id),
        }
