# buybox/services/state_store.py
"""
State store over the async SQLAlchemy session.

The tracker treats this as a passive ledger: point lookups and upserts of
OfferState, appends to the sale-event log, and read access to subjects,
their tracked sellers and tracked items. Each public method opens its own
session, so per-item writes never share a transaction with other items.
Every SQLAlchemy error is re-raised as StoreFailureError.
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, List, Optional, Set

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from buybox.core.exceptions import StoreFailureError
from buybox.database import async_session
from buybox.models import OfferState, SaleEvent, SellerProfile, Subject, TrackedItem
from buybox.schemas.tracking import (
    OfferStateRecord,
    SaleEventRecord,
    SellerRecord,
    SubjectRecord,
    TrackedItemRecord,
)

logger = logging.getLogger(__name__)


class StateStore:

    def __init__(self, session_factory: Callable[[], AsyncSession] = async_session):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            logger.error(f"State store {operation} failed: {str(e)}")
            await session.rollback()
            raise StoreFailureError(f"{operation} failed: {str(e)}") from e
        finally:
            await session.close()

    # ------------------------------------------------------------------
    # Subjects, sellers, tracked items
    # ------------------------------------------------------------------
    async def get_subject(self, subject_id: str) -> Optional[SubjectRecord]:
        async with self._session("get_subject") as session:
            subject = await session.get(Subject, subject_id)
            return SubjectRecord.from_orm_model(subject) if subject else None

    async def list_active_subjects(self) -> List[str]:
        async with self._session("list_active_subjects") as session:
            result = await session.execute(
                select(Subject.id).where(Subject.is_active.is_(True)).order_by(Subject.id)
            )
            return list(result.scalars().all())

    async def list_sellers(self, subject_id: str) -> List[SellerRecord]:
        async with self._session("list_sellers") as session:
            result = await session.execute(
                select(SellerProfile)
                .where(SellerProfile.subject_id == subject_id)
                .order_by(SellerProfile.id)
            )
            return [SellerRecord.from_orm_model(row) for row in result.scalars().all()]

    async def list_subjects_with_seller_ids(self, subject_id: str) -> Set[str]:
        """Seller identities owned by the subject, used for gain/loss classification"""
        async with self._session("list_subjects_with_seller_ids") as session:
            result = await session.execute(
                select(SellerProfile.seller_id).where(SellerProfile.subject_id == subject_id)
            )
            return set(result.scalars().all())

    async def list_tracked_items(self, subject_id: str) -> List[TrackedItemRecord]:
        async with self._session("list_tracked_items") as session:
            result = await session.execute(
                select(TrackedItem)
                .where(TrackedItem.subject_id == subject_id)
                .order_by(TrackedItem.id)
            )
            return [TrackedItemRecord.from_orm_model(row) for row in result.scalars().all()]

    async def add_tracked_item(self, item: TrackedItemRecord) -> TrackedItemRecord:
        """Insert or update a tracked item keyed by (subject_id, item_id)"""
        async with self._session("add_tracked_item") as session:
            result = await session.execute(
                select(TrackedItem).where(
                    TrackedItem.subject_id == item.subject_id,
                    TrackedItem.item_id == item.item_id,
                )
            )
            row = result.scalar_one_or_none()
            if row is None:
                row = TrackedItem(subject_id=item.subject_id, item_id=item.item_id)
                session.add(row)
            row.seller_id = item.seller_id
            row.label = item.label
            await session.commit()
            return TrackedItemRecord.from_orm_model(row)

    async def delete_tracked_items(self, subject_id: str, seller_id: str) -> int:
        """Remove every tracked item discovered through one seller"""
        async with self._session("delete_tracked_items") as session:
            result = await session.execute(
                delete(TrackedItem).where(
                    TrackedItem.subject_id == subject_id,
                    TrackedItem.seller_id == seller_id,
                )
            )
            await session.commit()
            return result.rowcount or 0

    # ------------------------------------------------------------------
    # Offer state and sale log
    # ------------------------------------------------------------------
    async def get_offer_state(self, subject_id: str, item_id: str) -> Optional[OfferStateRecord]:
        async with self._session("get_offer_state") as session:
            state = await session.get(OfferState, (subject_id, item_id))
            return OfferStateRecord.from_orm_model(state) if state else None

    async def upsert_offer_state(self, state: OfferStateRecord) -> None:
        await self.record_observation(state)

    async def append_sale_event(self, event: SaleEventRecord) -> SaleEventRecord:
        async with self._session("append_sale_event") as session:
            row = self._sale_row(event)
            session.add(row)
            await session.commit()
            return SaleEventRecord.from_orm_model(row)

    async def record_observation(
        self,
        state: OfferStateRecord,
        sale_event: Optional[SaleEventRecord] = None,
    ) -> Optional[SaleEventRecord]:
        """
        Upsert the OfferState row and, when given, append the SaleEvent in the
        same transaction. Either both are written or neither is.
        """
        async with self._session("record_observation") as session:
            row = await session.get(OfferState, (state.subject_id, state.item_id))
            if row is None:
                row = OfferState(subject_id=state.subject_id, item_id=state.item_id)
                session.add(row)
            row.holder_id = state.holder_id
            row.holder_name = state.holder_name
            row.price = state.price
            row.currency = state.currency
            row.stock_level = state.stock_level
            row.availability = state.availability
            row.observed_at = state.observed_at

            sale_row = None
            if sale_event is not None:
                sale_row = self._sale_row(sale_event)
                session.add(sale_row)

            await session.commit()
            return SaleEventRecord.from_orm_model(sale_row) if sale_row is not None else None

    @staticmethod
    def _sale_row(event: SaleEventRecord) -> SaleEvent:
        return SaleEvent(
            subject_id=event.subject_id,
            item_id=event.item_id,
            holder_id=event.holder_id,
            stock_before=event.stock_before,
            stock_after=event.stock_after,
            units_estimated=event.units_estimated,
            occurred_at=event.occurred_at,
        )

    async def list_sale_events(self, subject_id: str, limit: int = 100, offset: int = 0) -> List[SaleEventRecord]:
        """Most recent sale estimates first"""
        async with self._session("list_sale_events") as session:
            result = await session.execute(
                select(SaleEvent)
                .where(SaleEvent.subject_id == subject_id)
                .order_by(SaleEvent.occurred_at.desc(), SaleEvent.id.desc())
                .offset(offset)
                .limit(limit)
            )
            return [SaleEventRecord.from_orm_model(row) for row in result.scalars().all()]

    async def count_sale_events(self, subject_id: str) -> int:
        async with self._session("count_sale_events") as session:
            result = await session.execute(
                select(func.count(SaleEvent.id)).where(SaleEvent.subject_id == subject_id)
            )
            return result.scalar_one()
