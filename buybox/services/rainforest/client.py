import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from buybox.core.config import Settings, get_settings
from buybox.core.exceptions import (
    NoFeaturedOfferError,
    NotFoundError,
    ProviderUnavailableError,
    RateLimitedError,
)
from buybox.schemas.snapshot import OfferSnapshot, SellerListing, StockObservation
from buybox.services.rate_limiter import ProviderRateLimiter

logger = logging.getLogger(__name__)


class RainforestClient:
    """
    Purpose: Snapshot provider backed by the Rainforest product data API.

    Functionality:
        - get_offer: current BuyBox winner of a listing (holder, price, currency).
        - get_stock: visible stock level of one seller's offer on a listing.
        - get_seller_items: listings a seller currently offers (item discovery).

    Every request goes through the shared ProviderRateLimiter. A 429 answer
    is waited out once (RATE_LIMIT_BACKOFF_SECONDS) and then surfaced as
    RateLimitedError; nothing is retried here, the next tracking cycle is the
    retry.

    Documentation: https://docs.trajectdata.com/rainforestapi
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        limiter: Optional[ProviderRateLimiter] = None,
    ):
        self.settings = settings or get_settings()
        self.api_key = self.settings.RAINFOREST_API_KEY
        self.base_url = self.settings.RAINFOREST_BASE_URL
        self.amazon_domain = self.settings.AMAZON_DOMAIN
        self.default_currency = self.settings.DEFAULT_CURRENCY
        self.timeout = self.settings.PROVIDER_TIMEOUT_SECONDS
        self.backoff_seconds = self.settings.RATE_LIMIT_BACKOFF_SECONDS
        self.limiter = limiter or ProviderRateLimiter(self.settings.PROVIDER_MIN_INTERVAL_SECONDS)

    async def _make_request(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Make a GET request to the Rainforest API

        Args:
            params: Query parameters (api_key is added here)

        Returns:
            Dict: Decoded JSON body

        Raises:
            RateLimitedError: provider answered 429 (after the backoff wait)
            ProviderUnavailableError: network error, timeout, bad status or body
        """
        if not self.api_key:
            raise ProviderUnavailableError("Rainforest API key not configured")

        query = {"api_key": self.api_key, "amazon_domain": self.amazon_domain, **params}
        logger.debug(f"Rainforest request: {params}")

        async with self.limiter:
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(self.base_url, params=query)
            except httpx.TimeoutException as e:
                logger.error(f"Timeout error: {str(e)}")
                raise ProviderUnavailableError(f"Request timed out: {str(e)}")
            except httpx.RequestError as e:
                logger.error(f"Network error: {str(e)}")
                raise ProviderUnavailableError(f"Network error: {str(e)}")

            if response.status_code == 429:
                logger.warning(f"Rate limit exceeded, backing off {self.backoff_seconds}s")
                await asyncio.sleep(self.backoff_seconds)
                raise RateLimitedError("Rainforest rate limit exceeded")

        if response.status_code != 200:
            logger.error(f"Rainforest API error {response.status_code}: {response.text[:500]}")
            raise ProviderUnavailableError(f"Request failed with status {response.status_code}")

        try:
            data = response.json()
        except ValueError:
            raise ProviderUnavailableError("Invalid response from Rainforest API")
        if not isinstance(data, dict):
            raise ProviderUnavailableError("Invalid response from Rainforest API")
        return data

    async def _get_product(self, item_id: str) -> Dict[str, Any]:
        data = await self._make_request({
            "type": "product",
            "asin": item_id,
            "include_offers": "true",
        })
        product = data.get("product")
        if not isinstance(product, dict):
            raise ProviderUnavailableError("Invalid response from Rainforest API")
        return product

    @staticmethod
    def _merchant(entry: Dict[str, Any]) -> Dict[str, Any]:
        return entry.get("merchant_info") or {}

    async def get_offer(self, item_id: str) -> OfferSnapshot:
        """
        Current BuyBox winner for a listing.

        Raises:
            NoFeaturedOfferError: the listing has no BuyBox winner right now
        """
        logger.info(f"Fetching BuyBox info for ASIN: {item_id}")
        product = await self._get_product(item_id)

        winner = product.get("buybox_winner")
        if not winner:
            raise NoFeaturedOfferError(f"No BuyBox winner found for {item_id}")

        merchant = self._merchant(winner)
        price = winner.get("price") or {}
        holder_name = merchant.get("name") or "Unknown"
        # Some listings omit the merchant id; the name is the only identity then.
        # A winner with neither is still a holder, never "no holder".
        holder_id = merchant.get("id") or holder_name

        return OfferSnapshot(
            item_id=item_id,
            holder_id=holder_id,
            holder_name=holder_name,
            price=price.get("value"),
            currency=price.get("currency") or self.default_currency,
            is_prime=bool((winner.get("delivery") or {}).get("is_prime_eligible", False)),
        )

    async def get_stock(self, item_id: str, holder_id: str) -> StockObservation:
        """
        Stock level of holder_id's offer on the listing.

        Raises:
            NotFoundError: the seller has no offer in the listing's offer list
        """
        logger.info(f"Fetching stock level for ASIN: {item_id}, Seller: {holder_id}")
        product = await self._get_product(item_id)

        offers = product.get("offers")
        if not isinstance(offers, list):
            raise ProviderUnavailableError("Invalid response from Rainforest API")

        for offer in offers:
            merchant = self._merchant(offer)
            if holder_id in (merchant.get("id"), merchant.get("name")):
                availability = offer.get("availability") or {}
                return StockObservation(
                    item_id=item_id,
                    holder_id=holder_id,
                    stock_level=self._parse_stock(availability.get("stock_level")),
                    availability=availability.get("type") or "unknown",
                )

        raise NotFoundError(f"Seller offer {holder_id} not found for {item_id}")

    @staticmethod
    def _parse_stock(value: Any) -> Optional[int]:
        if value is None or isinstance(value, bool):
            return None
        try:
            level = int(value)
        except (TypeError, ValueError):
            return None
        return level if level >= 0 else None

    async def get_seller_items(self, seller_id: str, limit: Optional[int] = None) -> List[SellerListing]:
        """Listings currently offered by a seller"""
        limit = limit or self.settings.SELLER_ITEM_LIMIT
        logger.info(f"Fetching ASINs for seller: {seller_id}")
        data = await self._make_request({
            "type": "search",
            "search_term": f"seller:{seller_id}",
            "sort_by": "featured",
            "limit": limit,
        })

        results = data.get("search_results")
        if not isinstance(results, list):
            raise ProviderUnavailableError("Invalid response from Rainforest API")

        listings = []
        for result in results[:limit]:
            if not result.get("asin"):
                continue
            price = result.get("price") or {}
            listings.append(SellerListing(
                item_id=result["asin"],
                seller_id=seller_id,
                title=result.get("title"),
                price=price.get("value"),
                currency=price.get("currency") or self.default_currency,
                rating=result.get("rating"),
                ratings_total=result.get("ratings_total"),
                image=result.get("image"),
            ))
        return listings
