from secondhand.models.user import UserProfile
from secondhand.models.listing import Listing, DEFAULT_PLACEHOLDER
from secondhand.models.cart import CartEntry
from secondhand.models.purchase import PurchaseRecord
from secondhand.models.checkout import CheckoutIntent, CheckoutLine, CheckoutStatus, LineStatus

__all__ = [
    "UserProfile",
    "Listing",
    "DEFAULT_PLACEHOLDER",
    "CartEntry",
    "PurchaseRecord",
    "CheckoutIntent",
    "CheckoutLine",
    "CheckoutStatus",
    "LineStatus",
]
