"""
Records exchanged between the state store and the tracker, plus the
summaries reported by the scheduler.
"""
from datetime import datetime
from typing import Dict, Optional

from pydantic import Field

from buybox.core.enums import ItemOutcome
from buybox.schemas.base import BaseSchema


class SubjectRecord(BaseSchema):
    id: str
    email: Optional[str] = None
    webhook_url: Optional[str] = None
    is_active: bool = True


class SellerRecord(BaseSchema):
    subject_id: str
    seller_id: str
    label: str


class TrackedItemRecord(BaseSchema):
    subject_id: str
    item_id: str
    seller_id: Optional[str] = None
    label: Optional[str] = None


class OfferStateRecord(BaseSchema):
    subject_id: str
    item_id: str
    holder_id: Optional[str] = None
    holder_name: Optional[str] = None
    price: Optional[float] = None
    currency: str = "GBP"
    stock_level: Optional[int] = None
    availability: Optional[str] = None
    observed_at: datetime


class SaleEventRecord(BaseSchema):
    id: Optional[int] = None
    subject_id: str
    item_id: str
    holder_id: str
    stock_before: int
    stock_after: int
    units_estimated: int = Field(gt=0)
    occurred_at: datetime


class RunSummary(BaseSchema):
    """Per-item outcome counts for one subject run"""
    subject_id: Optional[str] = None
    processed: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.processed + self.skipped + self.failed

    def record(self, outcome: ItemOutcome) -> None:
        if outcome == ItemOutcome.PROCESSED:
            self.processed += 1
        elif outcome == ItemOutcome.SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1


class CycleSummary(BaseSchema):
    started_at: datetime
    finished_at: Optional[datetime] = None
    subjects_processed: int = 0
    subjects_failed: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.subjects_failed == 0 and self.failed == 0

    def merge(self, run: RunSummary) -> None:
        self.subjects_processed += 1
        self.processed += run.processed
        self.skipped += run.skipped
        self.failed += run.failed


class SchedulerStatus(BaseSchema):
    running: bool
    cycle_in_progress: bool = False
    period_seconds: Optional[int] = None
    next_run_at: Optional[datetime] = None
    cycles_completed: int = 0
    cycles_skipped: int = 0
    last_cycle: Optional[CycleSummary] = None


class ItemStats(BaseSchema):
    total_items: int = 0
    total_sellers: int = 0
    items_per_seller: Dict[str, int] = Field(default_factory=dict)
