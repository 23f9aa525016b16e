"""Async catalog service client using httpx."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from ..config import settings
from ..schemas import BrandEntry, CatalogProduct
from . import CatalogApiError

logger = logging.getLogger(__name__)

_MAX_PAGES = 200  # Hard stop for misbehaving pagination


class CatalogClient:
    """Read-only client for the product catalog (brands and SPUs with SKUs).

    Endpoints:
      GET {base}/brands           → [{"name", "spell"}]
      GET {base}/spus?page=&size= → {"data": [{"id", "name", "brand", "skus"}], "total"}
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self._base_url = (base_url or settings.catalog_api_url).rstrip("/")
        token = token if token is not None else settings.catalog_api_token
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = httpx.AsyncClient(
            timeout=timeout or settings.catalog_timeout,
            headers=headers,
        )

    async def fetch_brands(self) -> list[BrandEntry]:
        """Fetch the brand table."""
        data = await self._get("/brands")
        rows = data.get("data", []) if isinstance(data, dict) else data
        brands = []
        for row in rows or []:
            try:
                brands.append(BrandEntry.model_validate(row))
            except ValidationError as e:
                logger.warning("Skipping malformed brand row %r: %s", row, e)
        logger.info("Fetched %d brands from catalog", len(brands))
        return brands

    async def fetch_products(
        self,
        brand: str | None = None,
        page_size: int | None = None,
    ) -> list[CatalogProduct]:
        """Fetch every SPU (optionally for one brand), following pagination."""
        size = page_size or settings.catalog_page_size
        products: list[CatalogProduct] = []

        for page in range(1, _MAX_PAGES + 1):
            params: dict[str, Any] = {"page": page, "size": size}
            if brand:
                params["brand"] = brand
            data = await self._get("/spus", params=params)
            rows = data.get("data") if isinstance(data, dict) else data
            if rows is None:
                raise CatalogApiError(f"Catalog SPU page {page} has no data field")

            for row in rows:
                try:
                    products.append(CatalogProduct.model_validate(row))
                except ValidationError as e:
                    logger.warning("Skipping malformed SPU row %r: %s", row, e)

            total = data.get("total") if isinstance(data, dict) else None
            if len(rows) < size or (total is not None and page * size >= total):
                break
        else:
            logger.warning("Catalog pagination stopped after %d pages", _MAX_PAGES)

        logger.info("Fetched %d SPUs from catalog", len(products))
        return products

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        try:
            resp = await self._client.get(f"{self._base_url}{path}", params=params)
        except httpx.HTTPError as e:
            raise CatalogApiError(f"Catalog HTTP error: {e}") from e

        if resp.status_code != 200:
            raise CatalogApiError(
                f"Catalog API returned {resp.status_code}: {resp.text}",
                status_code=resp.status_code,
            )

        try:
            return resp.json()
        except ValueError as e:
            raise CatalogApiError(f"Catalog returned invalid JSON: {e}") from e
