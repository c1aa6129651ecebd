"""
Values returned by the snapshot provider. These are transient: the Diff Engine
folds them into OfferState and never stores them as-is.
"""
from datetime import datetime, timezone
from typing import Optional

from pydantic import Field

from buybox.schemas.base import BaseSchema


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OfferSnapshot(BaseSchema):
    """Current featured-offer holder of a listing"""
    item_id: str
    holder_id: Optional[str] = None
    holder_name: Optional[str] = None
    price: Optional[float] = None
    currency: str = "GBP"
    is_prime: bool = False
    observed_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def vacant(cls, item_id: str, currency: str = "GBP") -> "OfferSnapshot":
        """Snapshot of a listing that currently has no BuyBox winner"""
        return cls(item_id=item_id, currency=currency)


class StockObservation(BaseSchema):
    item_id: str
    holder_id: str
    stock_level: Optional[int] = None
    availability: str = "unknown"
    observed_at: datetime = Field(default_factory=utcnow)


class SellerListing(BaseSchema):
    """One search result when listing a seller's catalogue"""
    item_id: str
    seller_id: str
    title: Optional[str] = None
    price: Optional[float] = None
    currency: str = "GBP"
    rating: Optional[float] = None
    ratings_total: Optional[int] = None
    image: Optional[str] = None
