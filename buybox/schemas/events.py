"""
Domain events emitted by the Diff Engine and rendered by the notifier.
"""
from datetime import datetime
from typing import Literal, Optional, Union

from pydantic import Field

from buybox.core.enums import EventKind
from buybox.schemas.base import BaseSchema
from buybox.schemas.snapshot import utcnow


class OwnershipChangeEvent(BaseSchema):
    """
    The BuyBox moved from one holder to another. Either side may be None
    (listing had or now has no winner). is_gain and is_loss are computed
    independently: a swap between two tracked sellers sets both.
    """
    kind: Literal[EventKind.OWNERSHIP_CHANGE] = EventKind.OWNERSHIP_CHANGE
    subject_id: str
    item_id: str
    item_label: Optional[str] = None
    old_holder_id: Optional[str] = None
    old_holder_name: Optional[str] = None
    new_holder_id: Optional[str] = None
    new_holder_name: Optional[str] = None
    price: Optional[float] = None
    currency: str = "GBP"
    is_gain: bool = False
    is_loss: bool = False
    occurred_at: datetime = Field(default_factory=utcnow)


class SaleEstimateEvent(BaseSchema):
    kind: Literal[EventKind.SALE_ESTIMATE] = EventKind.SALE_ESTIMATE
    subject_id: str
    item_id: str
    item_label: Optional[str] = None
    holder_id: str
    holder_name: Optional[str] = None
    stock_before: int
    stock_after: int
    units_estimated: int
    price: Optional[float] = None
    currency: str = "GBP"
    occurred_at: datetime = Field(default_factory=utcnow)


TrackingEvent = Union[OwnershipChangeEvent, SaleEstimateEvent]
