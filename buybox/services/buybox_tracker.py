# buybox/services/buybox_tracker.py
"""
Diff engine: one BuyBox observation for one tracked item.

For each item the engine fetches a fresh snapshot, compares it with the last
stored OfferState, classifies the transition (ownership change and/or stock
drop), commits the new state (with the SaleEvent, if any) and hands the
resulting events to the notifier.

process_item never raises. Provider and store failures leave the stored
state untouched and are reported through the returned ItemOutcome.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Set

from buybox.core.enums import ItemOutcome
from buybox.core.exceptions import (
    NoFeaturedOfferError,
    NotFoundError,
    ProviderUnavailableError,
    RateLimitedError,
    StoreFailureError,
)
from buybox.schemas.events import OwnershipChangeEvent, SaleEstimateEvent, TrackingEvent
from buybox.schemas.snapshot import OfferSnapshot, StockObservation
from buybox.schemas.tracking import OfferStateRecord, SaleEventRecord, TrackedItemRecord
from buybox.services.notification_service import WebhookNotificationService
from buybox.services.rainforest import RainforestClient
from buybox.services.state_store import StateStore

logger = logging.getLogger(__name__)


class BuyBoxDiffEngine:

    def __init__(
        self,
        provider: Optional[RainforestClient] = None,
        store: Optional[StateStore] = None,
        notifier: Optional[WebhookNotificationService] = None,
    ):
        self.provider = provider or RainforestClient()
        self.store = store or StateStore()
        self.notifier = notifier or WebhookNotificationService()

    async def process_item(
        self,
        subject_id: str,
        item: TrackedItemRecord,
        webhook_url: Optional[str] = None,
    ) -> ItemOutcome:
        """
        Run one observation of item for subject_id and notify webhook_url of
        anything detected.
        """
        try:
            events = await self.observe(subject_id, item)
        except (NotFoundError, RateLimitedError) as e:
            logger.warning(f"Skipping ASIN {item.item_id} for subject {subject_id}: {str(e)}")
            return ItemOutcome.SKIPPED
        except (ProviderUnavailableError, StoreFailureError) as e:
            logger.error(f"Error processing ASIN {item.item_id} for subject {subject_id}: {str(e)}")
            return ItemOutcome.FAILED
        except Exception as e:
            logger.exception(f"Unexpected error processing ASIN {item.item_id} for subject {subject_id}: {str(e)}")
            return ItemOutcome.FAILED

        # State is already committed; delivery problems stay in the notifier
        for event in events:
            await self.notifier.notify(webhook_url, event)

        return ItemOutcome.PROCESSED

    async def observe(self, subject_id: str, item: TrackedItemRecord) -> List[TrackingEvent]:
        """
        Fetch, compare and persist. Returns the events to dispatch.

        Raises the provider/store taxonomy errors; nothing is written unless
        every read succeeded.
        """
        try:
            snapshot = await self.provider.get_offer(item.item_id)
            previous = await self.store.get_offer_state(subject_id, item.item_id)
        except NoFeaturedOfferError:
            previous = await self.store.get_offer_state(subject_id, item.item_id)
            if previous is None or previous.holder_id is None:
                raise
            # The listing lost its winner: that is a transition to "no holder"
            logger.info(f"BuyBox vacated for ASIN {item.item_id} (was {previous.holder_id})")
            snapshot = OfferSnapshot.vacant(item.item_id, currency=previous.currency)

        seller_ids = await self.store.list_subjects_with_seller_ids(subject_id)
        events: List[TrackingEvent] = []

        ownership_event = self._classify_ownership(subject_id, item, previous, snapshot, seller_ids)
        if ownership_event is not None:
            events.append(ownership_event)

        observation = await self._fetch_stock(snapshot)
        stock_level = observation.stock_level if observation else None
        observed_at = datetime.now(timezone.utc)

        sale = self._detect_sale(subject_id, item, previous, snapshot, stock_level, seller_ids, observed_at)

        state = OfferStateRecord(
            subject_id=subject_id,
            item_id=item.item_id,
            holder_id=snapshot.holder_id,
            holder_name=snapshot.holder_name,
            price=snapshot.price,
            currency=snapshot.currency,
            stock_level=stock_level,
            availability=observation.availability if observation else None,
            observed_at=observed_at,
        )
        await self.store.record_observation(state, sale)

        if sale is not None:
            logger.info(
                f"Stock decrease detected for ASIN {item.item_id}: "
                f"{sale.stock_before} → {sale.stock_after} ({sale.units_estimated} units)"
            )
            events.append(SaleEstimateEvent(
                subject_id=subject_id,
                item_id=item.item_id,
                item_label=item.label,
                holder_id=sale.holder_id,
                holder_name=snapshot.holder_name,
                stock_before=sale.stock_before,
                stock_after=sale.stock_after,
                units_estimated=sale.units_estimated,
                price=snapshot.price,
                currency=snapshot.currency,
                occurred_at=sale.occurred_at,
            ))

        return events

    def _classify_ownership(
        self,
        subject_id: str,
        item: TrackedItemRecord,
        previous: Optional[OfferStateRecord],
        snapshot: OfferSnapshot,
        seller_ids: Set[str],
    ) -> Optional[OwnershipChangeEvent]:
        # First observation only seeds state
        if previous is None or previous.holder_id == snapshot.holder_id:
            return None

        is_gain = snapshot.holder_id is not None and snapshot.holder_id in seller_ids
        is_loss = previous.holder_id is not None and previous.holder_id in seller_ids
        logger.info(
            f"BuyBox change detected for ASIN {item.item_id}: "
            f"{previous.holder_id} → {snapshot.holder_id} (gain={is_gain}, loss={is_loss})"
        )
        return OwnershipChangeEvent(
            subject_id=subject_id,
            item_id=item.item_id,
            item_label=item.label,
            old_holder_id=previous.holder_id,
            old_holder_name=previous.holder_name,
            new_holder_id=snapshot.holder_id,
            new_holder_name=snapshot.holder_name,
            price=snapshot.price,
            currency=snapshot.currency,
            is_gain=is_gain,
            is_loss=is_loss,
        )

    async def _fetch_stock(self, snapshot: OfferSnapshot) -> Optional[StockObservation]:
        if snapshot.holder_id is None:
            return None
        try:
            return await self.provider.get_stock(snapshot.item_id, snapshot.holder_id)
        except NotFoundError as e:
            # Unknown stock is stored as null; rate limits and outages still abort the item
            logger.info(f"No stock level for ASIN {snapshot.item_id}: {str(e)}")
            return None

    @staticmethod
    def _detect_sale(
        subject_id: str,
        item: TrackedItemRecord,
        previous: Optional[OfferStateRecord],
        snapshot: OfferSnapshot,
        stock_level: Optional[int],
        seller_ids: Set[str],
        observed_at: datetime,
    ) -> Optional[SaleEventRecord]:
        if snapshot.holder_id is None or snapshot.holder_id not in seller_ids:
            return None
        if previous is None or previous.stock_level is None or stock_level is None:
            return None
        if stock_level >= previous.stock_level:
            return None

        return SaleEventRecord(
            subject_id=subject_id,
            item_id=item.item_id,
            holder_id=snapshot.holder_id,
            stock_before=previous.stock_level,
            stock_after=stock_level,
            units_estimated=previous.stock_level - stock_level,
            occurred_at=observed_at,
        )
