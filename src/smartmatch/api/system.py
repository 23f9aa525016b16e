"""Health check endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter

from ..schemas import HealthResponse, ServiceStatus

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["system"])


@router.get("/health", response_model=HealthResponse)
def health_check():
    from ..main import app_state

    services: list[ServiceStatus] = []
    overall = "ok"

    reference = app_state.get("reference")
    if reference is not None:
        services.append(ServiceStatus(name="reference", status="ok"))
    else:
        services.append(ServiceStatus(name="reference", status="unavailable", detail="not loaded"))
        overall = "degraded"

    # Catalog
    catalog = app_state.get("catalog")
    if catalog is not None:
        services.append(ServiceStatus(name="catalog", status="ok", detail=f"{len(catalog)} SPUs"))
    elif "client" in app_state:
        error = app_state.get("catalog_error", "")
        services.append(ServiceStatus(name="catalog", status="degraded", detail=error or "not loaded"))
        overall = "degraded"
    else:
        services.append(ServiceStatus(name="catalog", status="unavailable", detail="not configured"))

    return HealthResponse(
        status=overall,
        brand_count=len(reference.brands) if reference is not None else 0,
        product_count=len(catalog) if catalog is not None else 0,
        model_count=reference.model_count if reference is not None else 0,
        services=services,
    )
