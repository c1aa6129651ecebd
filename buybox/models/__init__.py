from .subject import Subject
from .seller_profile import SellerProfile
from .tracked_item import TrackedItem
from .offer_state import OfferState
from .sale_event import SaleEvent

# This ensures all models are registered with SQLAlchemy
__all__ = [
    'Subject',
    'SellerProfile',
    'TrackedItem',
    'OfferState',
    'SaleEvent',
]
