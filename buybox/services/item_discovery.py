# buybox/services/item_discovery.py
import logging
from typing import Any, Dict, List, Optional

from buybox.core.config import Settings, get_settings
from buybox.core.exceptions import NotFoundError, ProviderError, StoreFailureError
from buybox.schemas.tracking import ItemStats, TrackedItemRecord
from buybox.services.rainforest import RainforestClient
from buybox.services.state_store import StateStore

logger = logging.getLogger(__name__)


class ItemDiscoveryService:
    """
    Populates a subject's tracked items from the listings its tracked sellers
    currently offer.

    Discovery is an administrative action: it shares the provider (and so the
    rate limiter) with the tracking cycle but never touches OfferState.
    """

    def __init__(
        self,
        provider: Optional[RainforestClient] = None,
        store: Optional[StateStore] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.provider = provider or RainforestClient(self.settings)
        self.store = store or StateStore()

    async def fetch_and_store_items(
        self,
        subject_id: str,
        seller_id: str,
        seller_label: str,
        limit: Optional[int] = None,
    ) -> List[TrackedItemRecord]:
        """
        Fetch a seller's listings and store each as a tracked item.

        Returns the items stored. Provider failures yield an empty list;
        a failed write skips that one item.
        """
        limit = limit or self.settings.SELLER_ITEM_LIMIT
        logger.info(f"Fetching ASINs for seller: {seller_label} ({seller_id})")

        try:
            listings = await self.provider.get_seller_items(seller_id, limit)
        except ProviderError as e:
            logger.error(f"Error fetching ASINs for seller {seller_label}: {str(e)}")
            return []

        if not listings:
            logger.warning(f"No ASINs found for seller: {seller_label}")
            return []

        stored = []
        for listing in listings:
            try:
                stored.append(await self.store.add_tracked_item(TrackedItemRecord(
                    subject_id=subject_id,
                    item_id=listing.item_id,
                    seller_id=seller_id,
                    label=listing.title,
                )))
            except StoreFailureError as e:
                logger.error(f"Error storing ASIN {listing.item_id}: {str(e)}")

        logger.info(f"Stored {len(stored)} of {len(listings)} ASINs for seller: {seller_label}")
        return stored

    async def fetch_all_subject_items(self, subject_id: str) -> Dict[str, Any]:
        """Run discovery for every tracked seller of a subject"""
        sellers = await self.store.list_sellers(subject_id)
        if not sellers:
            logger.info(f"No sellers found for subject: {subject_id}")
            return {"total_sellers": 0, "total_items": 0, "sellers": []}

        results = []
        total_items = 0
        for seller in sellers:
            items = await self.fetch_and_store_items(subject_id, seller.seller_id, seller.label)
            results.append({
                "seller_id": seller.seller_id,
                "seller_label": seller.label,
                "item_count": len(items),
            })
            total_items += len(items)

        logger.info(
            f"Completed ASIN fetch for subject {subject_id}: "
            f"{total_items} total ASINs across {len(sellers)} sellers"
        )
        return {"total_sellers": len(sellers), "total_items": total_items, "sellers": results}

    async def refresh_seller_items(self, subject_id: str, seller_id: str) -> Dict[str, Any]:
        """Replace the tracked items discovered through one seller with a fresh fetch"""
        sellers = await self.store.list_sellers(subject_id)
        seller = next((s for s in sellers if s.seller_id == seller_id), None)
        if seller is None:
            raise NotFoundError(f"Seller {seller_id} not found for subject {subject_id}")

        deleted = await self.store.delete_tracked_items(subject_id, seller_id)
        logger.info(f"Deleted {deleted} existing ASINs for seller: {seller.label}")

        items = await self.fetch_and_store_items(subject_id, seller_id, seller.label)
        return {
            "seller_id": seller_id,
            "seller_label": seller.label,
            "deleted_count": deleted,
            "new_count": len(items),
        }

    async def get_item_stats(self, subject_id: str) -> ItemStats:
        items = await self.store.list_tracked_items(subject_id)
        sellers = await self.store.list_sellers(subject_id)

        per_seller = {
            seller.label: sum(1 for item in items if item.seller_id == seller.seller_id)
            for seller in sellers
        }
        return ItemStats(
            total_items=len(items),
            total_sellers=len(sellers),
            items_per_seller=per_seller,
        )
