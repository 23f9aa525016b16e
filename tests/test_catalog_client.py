"""Tests for the catalog HTTP client."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from smartmatch.catalog import CatalogApiError
from smartmatch.catalog.client import CatalogClient


@pytest.fixture()
def catalog_client():
    """Create a CatalogClient with mocked HTTP client."""
    with patch.object(CatalogClient, "__init__", lambda self: None):
        client = CatalogClient.__new__(CatalogClient)
        client._base_url = "http://catalog.test"
        client._client = AsyncMock()
        return client


def _mock_response(payload, status_code=200):
    """Create a mock HTTP response with synchronous .json()."""
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = str(payload)
    resp.json.return_value = payload
    return resp


def _spu(pid, name):
    return {
        "id": pid,
        "name": name,
        "brand": "vivo",
        "skus": [{"id": pid * 10, "name": f"{name} 8+256 白金", "color": "白金"}],
    }


class TestFetchBrands:
    @pytest.mark.asyncio
    async def test_list_payload(self, catalog_client):
        catalog_client._client.get = AsyncMock(return_value=_mock_response(
            [{"name": "vivo", "spell": "vivo"}, {"name": "华为", "spell": "huawei"}]
        ))
        brands = await catalog_client.fetch_brands()
        assert [b.name for b in brands] == ["vivo", "华为"]
        assert brands[1].spell == "huawei"
        catalog_client._client.get.assert_awaited_once_with("http://catalog.test/brands", params=None)

    @pytest.mark.asyncio
    async def test_wrapped_payload(self, catalog_client):
        catalog_client._client.get = AsyncMock(return_value=_mock_response(
            {"data": [{"name": "OPPO"}]}
        ))
        brands = await catalog_client.fetch_brands()
        assert brands[0].name == "OPPO"
        assert brands[0].spell is None

    @pytest.mark.asyncio
    async def test_malformed_row_skipped(self, catalog_client):
        catalog_client._client.get = AsyncMock(return_value=_mock_response(
            [{"spell": "nameless"}, {"name": "vivo"}]
        ))
        brands = await catalog_client.fetch_brands()
        assert [b.name for b in brands] == ["vivo"]


class TestFetchProducts:
    @pytest.mark.asyncio
    async def test_pagination(self, catalog_client):
        catalog_client._client.get = AsyncMock(side_effect=[
            _mock_response({"data": [_spu(1, "vivo Y50"), _spu(2, "vivo X200s")], "total": 3}),
            _mock_response({"data": [_spu(3, "vivo X Fold5")], "total": 3}),
        ])
        products = await catalog_client.fetch_products(page_size=2)
        assert [p.id for p in products] == [1, 2, 3]
        assert products[0].skus[0].color == "白金"
        assert catalog_client._client.get.call_count == 2

    @pytest.mark.asyncio
    async def test_stops_at_total(self, catalog_client):
        catalog_client._client.get = AsyncMock(return_value=_mock_response(
            {"data": [_spu(1, "vivo Y50"), _spu(2, "vivo X200s")], "total": 2}
        ))
        products = await catalog_client.fetch_products(page_size=2)
        assert len(products) == 2
        assert catalog_client._client.get.call_count == 1

    @pytest.mark.asyncio
    async def test_brand_filter(self, catalog_client):
        catalog_client._client.get = AsyncMock(return_value=_mock_response({"data": [], "total": 0}))
        await catalog_client.fetch_products(brand="vivo", page_size=50)
        params = catalog_client._client.get.call_args.kwargs["params"]
        assert params == {"page": 1, "size": 50, "brand": "vivo"}

    @pytest.mark.asyncio
    async def test_missing_data_field(self, catalog_client):
        catalog_client._client.get = AsyncMock(return_value=_mock_response({"total": 0}))
        with pytest.raises(CatalogApiError):
            await catalog_client.fetch_products(page_size=2)

    @pytest.mark.asyncio
    async def test_malformed_row_skipped(self, catalog_client):
        catalog_client._client.get = AsyncMock(return_value=_mock_response(
            {"data": [{"id": 1}, _spu(2, "vivo X200s")], "total": 2}
        ))
        products = await catalog_client.fetch_products(page_size=10)
        assert [p.id for p in products] == [2]


class TestErrors:
    @pytest.mark.asyncio
    async def test_http_status(self, catalog_client):
        catalog_client._client.get = AsyncMock(return_value=_mock_response("boom", status_code=500))
        with pytest.raises(CatalogApiError) as exc_info:
            await catalog_client.fetch_brands()
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_transport_error(self, catalog_client):
        catalog_client._client.get = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(CatalogApiError):
            await catalog_client.fetch_brands()

    @pytest.mark.asyncio
    async def test_invalid_json(self, catalog_client):
        resp = _mock_response(None)
        resp.json.side_effect = ValueError("Expecting value")
        catalog_client._client.get = AsyncMock(return_value=resp)
        with pytest.raises(CatalogApiError):
            await catalog_client.fetch_brands()


class TestClose:
    @pytest.mark.asyncio
    async def test_close(self, catalog_client):
        await catalog_client.close()
        catalog_client._client.aclose.assert_awaited_once()
