"""FastAPI application with lifespan-managed reference data and catalog."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api.router import api_router
from .catalog import CatalogApiError
from .catalog.index import CatalogIndex, load_reference
from .config import settings
from .reference import DEFAULT_REFERENCE, ReferenceData, overrides

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Shared state accessible by API endpoints
app_state: dict = {}


async def reload_catalog() -> tuple[ReferenceData, CatalogIndex | None]:
    """Rebuild reference data (and the catalog index when a catalog is configured).

    Raises CatalogApiError when the catalog cannot be fetched; the previous
    state is kept in that case.
    """
    client = app_state.get("client")
    if client is None:
        overrides.reload(settings.matcher_overrides_path)
        reference = overrides.apply(DEFAULT_REFERENCE)
        app_state["reference"] = reference
        return reference, None

    brands = await client.fetch_brands()
    products = await client.fetch_products()
    overrides.reload(settings.matcher_overrides_path)
    reference = load_reference(brands, products)
    catalog = CatalogIndex(products, reference)

    app_state["reference"] = reference
    app_state["catalog"] = catalog
    app_state.pop("catalog_error", None)
    return reference, catalog


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    overrides.reload(settings.matcher_overrides_path)
    app_state["reference"] = overrides.apply(DEFAULT_REFERENCE)

    # Catalog service (graceful degradation)
    if settings.catalog_enabled:
        from .catalog.client import CatalogClient

        app_state["client"] = CatalogClient()
        if settings.catalog_load_on_startup:
            try:
                _, catalog = await reload_catalog()
                logger.info("Catalog loaded (%d SPUs)", len(catalog))
            except CatalogApiError as e:
                app_state["catalog_error"] = str(e)
                logger.warning("Catalog load failed, matching against defaults only: %s", e)
    else:
        logger.info("Catalog service not configured, skipping")

    logger.info("smartmatch started")

    yield

    # Shutdown
    if "client" in app_state:
        await app_state["client"].close()
    app_state.clear()
    logger.info("smartmatch stopped")


app = FastAPI(
    title="smartmatch",
    description="Chinese product listing matcher",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(api_router)
