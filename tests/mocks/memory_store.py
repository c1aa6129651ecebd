from typing import Dict, List, Optional, Set, Tuple

from buybox.core.exceptions import StoreFailureError
from buybox.schemas.tracking import (
    OfferStateRecord,
    SaleEventRecord,
    SellerRecord,
    SubjectRecord,
    TrackedItemRecord,
)


class InMemoryStateStore:
    """Dict-backed StateStore with switches to simulate database failures"""

    def __init__(self):
        self.subjects: Dict[str, SubjectRecord] = {}
        self.sellers: List[SellerRecord] = []
        self.items: List[TrackedItemRecord] = []
        self.states: Dict[Tuple[str, str], OfferStateRecord] = {}
        self.sale_events: List[SaleEventRecord] = []
        self.fail_reads = False
        self.fail_writes = False

    # Test setup helpers
    def add_subject(self, subject_id: str, webhook_url: Optional[str] = "https://hooks.example.com/s",
                    is_active: bool = True, seller_ids=()):
        self.subjects[subject_id] = SubjectRecord(id=subject_id, webhook_url=webhook_url, is_active=is_active)
        for seller_id in seller_ids:
            self.sellers.append(SellerRecord(subject_id=subject_id, seller_id=seller_id, label=f"Seller {seller_id}"))

    def add_item(self, subject_id: str, item_id: str, seller_id: Optional[str] = None, label: Optional[str] = None):
        self.items.append(TrackedItemRecord(subject_id=subject_id, item_id=item_id, seller_id=seller_id, label=label))

    def _check(self, failing: bool, operation: str):
        if failing:
            raise StoreFailureError(f"{operation} failed: database unavailable")

    # StateStore interface
    async def get_subject(self, subject_id: str) -> Optional[SubjectRecord]:
        self._check(self.fail_reads, "get_subject")
        return self.subjects.get(subject_id)

    async def list_active_subjects(self) -> List[str]:
        self._check(self.fail_reads, "list_active_subjects")
        return sorted(s.id for s in self.subjects.values() if s.is_active)

    async def list_sellers(self, subject_id: str) -> List[SellerRecord]:
        self._check(self.fail_reads, "list_sellers")
        return [s for s in self.sellers if s.subject_id == subject_id]

    async def list_subjects_with_seller_ids(self, subject_id: str) -> Set[str]:
        self._check(self.fail_reads, "list_subjects_with_seller_ids")
        return {s.seller_id for s in self.sellers if s.subject_id == subject_id}

    async def list_tracked_items(self, subject_id: str) -> List[TrackedItemRecord]:
        self._check(self.fail_reads, "list_tracked_items")
        return [i for i in self.items if i.subject_id == subject_id]

    async def add_tracked_item(self, item: TrackedItemRecord) -> TrackedItemRecord:
        self._check(self.fail_writes, "add_tracked_item")
        self.items = [i for i in self.items
                      if not (i.subject_id == item.subject_id and i.item_id == item.item_id)]
        self.items.append(item)
        return item

    async def delete_tracked_items(self, subject_id: str, seller_id: str) -> int:
        self._check(self.fail_writes, "delete_tracked_items")
        before = len(self.items)
        self.items = [i for i in self.items
                      if not (i.subject_id == subject_id and i.seller_id == seller_id)]
        return before - len(self.items)

    async def get_offer_state(self, subject_id: str, item_id: str) -> Optional[OfferStateRecord]:
        self._check(self.fail_reads, "get_offer_state")
        return self.states.get((subject_id, item_id))

    async def upsert_offer_state(self, state: OfferStateRecord) -> None:
        await self.record_observation(state)

    async def append_sale_event(self, event: SaleEventRecord) -> SaleEventRecord:
        self._check(self.fail_writes, "append_sale_event")
        stored = event.model_copy(update={"id": len(self.sale_events) + 1})
        self.sale_events.append(stored)
        return stored

    async def record_observation(self, state: OfferStateRecord,
                                 sale_event: Optional[SaleEventRecord] = None) -> Optional[SaleEventRecord]:
        self._check(self.fail_writes, "record_observation")
        self.states[(state.subject_id, state.item_id)] = state
        if sale_event is None:
            return None
        return await self.append_sale_event(sale_event)

    async def list_sale_events(self, subject_id: str, limit: int = 100, offset: int = 0) -> List[SaleEventRecord]:
        self._check(self.fail_reads, "list_sale_events")
        events = [e for e in self.sale_events if e.subject_id == subject_id]
        events.sort(key=lambda e: (e.occurred_at, e.id), reverse=True)
        return events[offset:offset + limit]

    async def count_sale_events(self, subject_id: str) -> int:
        self._check(self.fail_reads, "count_sale_events")
        return sum(1 for e in self.sale_events if e.subject_id == subject_id)
