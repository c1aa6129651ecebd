# Rainforest client unit tests
import pytest
import httpx
from unittest.mock import AsyncMock, MagicMock

from buybox.core.exceptions import (
    NoFeaturedOfferError,
    NotFoundError,
    ProviderUnavailableError,
    RateLimitedError,
)
from buybox.services.rainforest import RainforestClient

ASIN = "B00TEST001"


def make_response(status_code=200, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body if body is not None else {}
    response.text = "error body"
    return response


@pytest.fixture
def mock_http(mocker):
    """Patch httpx.AsyncClient and return the client used inside the context manager"""
    mock_client = mocker.patch("httpx.AsyncClient")
    inner = MagicMock()
    inner.get = AsyncMock()
    mock_client.return_value.__aenter__ = AsyncMock(return_value=inner)
    mock_client.return_value.__aexit__ = AsyncMock(return_value=False)
    return inner


@pytest.fixture
def client(settings):
    return RainforestClient(settings)


def product_body(winner=None, offers=None):
    product = {"asin": ASIN, "title": "Test Guitar Strings"}
    if winner is not None:
        product["buybox_winner"] = winner
    product["offers"] = offers if offers is not None else []
    return {"request_info": {"success": True}, "product": product}


"""
1. Request handling
"""

@pytest.mark.asyncio
async def test_request_carries_api_key_and_domain(client, mock_http):
    mock_http.get.return_value = make_response(body={"ok": True})

    result = await client._make_request({"type": "product", "asin": ASIN})

    assert result == {"ok": True}
    args, kwargs = mock_http.get.call_args
    assert args[0] == "https://api.rainforestapi.com/request"
    assert kwargs["params"]["api_key"] == "test_key"
    assert kwargs["params"]["amazon_domain"] == "amazon.co.uk"
    assert kwargs["params"]["asin"] == ASIN
    assert client.limiter.calls == 1


@pytest.mark.asyncio
async def test_missing_api_key_is_unavailable(settings, mock_http):
    settings.RAINFOREST_API_KEY = ""
    client = RainforestClient(settings)

    with pytest.raises(ProviderUnavailableError):
        await client._make_request({"type": "product"})
    mock_http.get.assert_not_called()


@pytest.mark.asyncio
async def test_rate_limit_waits_backoff_then_raises(client, mock_http, mocker):
    mock_sleep = mocker.patch("buybox.services.rainforest.client.asyncio.sleep", new=AsyncMock())
    client.backoff_seconds = 5.0
    mock_http.get.return_value = make_response(status_code=429)

    with pytest.raises(RateLimitedError):
        await client._make_request({"type": "product"})

    mock_sleep.assert_awaited_once_with(5.0)
    assert mock_http.get.await_count == 1
    assert not client.limiter.busy


@pytest.mark.asyncio
async def test_server_error_is_unavailable(client, mock_http):
    mock_http.get.return_value = make_response(status_code=503)

    with pytest.raises(ProviderUnavailableError):
        await client._make_request({"type": "product"})


@pytest.mark.asyncio
async def test_timeout_is_unavailable(client, mock_http):
    mock_http.get.side_effect = httpx.ReadTimeout("timed out")

    with pytest.raises(ProviderUnavailableError):
        await client._make_request({"type": "product"})
    assert not client.limiter.busy


@pytest.mark.asyncio
async def test_invalid_json_is_unavailable(client, mock_http):
    response = make_response()
    response.json.side_effect = ValueError("not json")
    mock_http.get.return_value = response

    with pytest.raises(ProviderUnavailableError):
        await client._make_request({"type": "product"})


"""
2. Offer and stock parsing
"""

@pytest.mark.asyncio
async def test_get_offer_parses_buybox_winner(client, mocker):
    mocker.patch.object(RainforestClient, "_make_request", return_value=product_body(winner={
        "merchant_info": {"id": "A1OWNSELLER", "name": "Our Shop"},
        "price": {"value": 24.99, "currency": "GBP"},
        "delivery": {"is_prime_eligible": True},
    }))

    snapshot = await client.get_offer(ASIN)

    assert snapshot.item_id == ASIN
    assert snapshot.holder_id == "A1OWNSELLER"
    assert snapshot.holder_name == "Our Shop"
    assert snapshot.price == 24.99
    assert snapshot.currency == "GBP"
    assert snapshot.is_prime is True


@pytest.mark.asyncio
async def test_get_offer_falls_back_to_merchant_name(client, mocker):
    mocker.patch.object(RainforestClient, "_make_request", return_value=product_body(winner={
        "merchant_info": {"name": "Amazon"},
        "price": {"value": 10.0},
    }))

    snapshot = await client.get_offer(ASIN)

    assert snapshot.holder_id == "Amazon"
    assert snapshot.currency == "GBP"


@pytest.mark.asyncio
async def test_get_offer_without_winner_raises(client, mocker):
    mocker.patch.object(RainforestClient, "_make_request", return_value=product_body())

    with pytest.raises(NoFeaturedOfferError):
        await client.get_offer(ASIN)


@pytest.mark.asyncio
async def test_get_offer_without_product_is_unavailable(client, mocker):
    mocker.patch.object(RainforestClient, "_make_request", return_value={"request_info": {}})

    with pytest.raises(ProviderUnavailableError):
        await client.get_offer(ASIN)


@pytest.mark.asyncio
async def test_get_stock_matches_seller_offer(client, mocker):
    mocker.patch.object(RainforestClient, "_make_request", return_value=product_body(offers=[
        {"merchant_info": {"id": "A9COMPETITOR"}, "availability": {"type": "in_stock", "stock_level": 40}},
        {"merchant_info": {"id": "A1OWNSELLER"}, "availability": {"type": "in_stock", "stock_level": "7"}},
    ]))

    observation = await client.get_stock(ASIN, "A1OWNSELLER")

    assert observation.stock_level == 7
    assert observation.availability == "in_stock"


@pytest.mark.asyncio
async def test_get_stock_unparseable_level_is_none(client, mocker):
    mocker.patch.object(RainforestClient, "_make_request", return_value=product_body(offers=[
        {"merchant_info": {"id": "A1OWNSELLER"}, "availability": {"stock_level": "lots"}},
    ]))

    observation = await client.get_stock(ASIN, "A1OWNSELLER")

    assert observation.stock_level is None
    assert observation.availability == "unknown"


@pytest.mark.asyncio
async def test_get_stock_for_absent_seller_raises(client, mocker):
    mocker.patch.object(RainforestClient, "_make_request", return_value=product_body(offers=[
        {"merchant_info": {"id": "A9COMPETITOR"}, "availability": {"stock_level": 3}},
    ]))

    with pytest.raises(NotFoundError):
        await client.get_stock(ASIN, "A1OWNSELLER")


@pytest.mark.parametrize("value,expected", [(5, 5), ("12", 12), (0, 0), (-1, None), (None, None), (True, None)])
def test_parse_stock(value, expected):
    assert RainforestClient._parse_stock(value) == expected


"""
3. Seller catalogue
"""

@pytest.mark.asyncio
async def test_get_seller_items(client, mocker):
    mock_request = mocker.patch.object(RainforestClient, "_make_request", return_value={"search_results": [
        {"asin": "B001", "title": "Strings", "price": {"value": 5.0, "currency": "GBP"}, "rating": 4.5},
        {"title": "No ASIN result"},
        {"asin": "B002", "title": "Picks"},
    ]})

    listings = await client.get_seller_items("A1OWNSELLER", limit=10)

    assert [l.item_id for l in listings] == ["B001", "B002"]
    assert listings[0].seller_id == "A1OWNSELLER"
    assert listings[0].price == 5.0
    params = mock_request.call_args[0][0]
    assert params["search_term"] == "seller:A1OWNSELLER"
    assert params["limit"] == 10


@pytest.mark.asyncio
async def test_get_offer_winner_without_merchant_info_is_unknown_holder(client, mocker):
    mocker.patch.object(RainforestClient, "_make_request", return_value=product_body(winner={
        "price": {"value": 15.0, "currency": "GBP"},
    }))

    snapshot = await client.get_offer(ASIN)

    assert snapshot.holder_id == "Unknown"
    assert snapshot.holder_name == "Unknown"
    assert snapshot.price == 15.0
