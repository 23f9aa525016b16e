"""Attribute extraction, pairwise scoring and catalog matching endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from ..catalog import CatalogApiError
from ..catalog.index import CatalogIndex, extract_spu_part
from ..catalog.search import find_best_sku, find_best_spu
from ..extractor import extract_attributes, extract_version
from ..matcher import match_listings
from ..normalizer import normalize
from ..reference import DEFAULT_REFERENCE, ReferenceData
from ..schemas import (
    AttributesResponse,
    ExtractRequest,
    MatchItem,
    MatchRequest,
    MatchResponse,
    ReloadResponse,
    ScoreRequest,
    ScoreResponse,
    SkuMatch,
    SpuMatch,
    VersionResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["matching"])


def _get_reference() -> ReferenceData:
    from ..main import app_state
    return app_state.get("reference") or DEFAULT_REFERENCE


def _get_catalog() -> CatalogIndex:
    from ..main import app_state

    catalog = app_state.get("catalog")
    if catalog is None:
        raise HTTPException(503, "Catalog not loaded")
    return catalog


@router.post("/extract", response_model=AttributesResponse)
def extract(body: ExtractRequest):
    attrs = extract_attributes(body.text, _get_reference())
    version = None
    if attrs.version:
        version = VersionResponse(
            type=attrs.version.type,
            value=attrs.version.value,
            priority=attrs.version.priority,
        )
    return AttributesResponse(
        text=body.text,
        normalized=normalize(body.text),
        brand=attrs.brand,
        model=attrs.model,
        version=version,
        capacity=attrs.capacity,
        color=attrs.color,
        watch_size=attrs.watch_size,
        watch_band=attrs.watch_band,
    )


@router.post("/score", response_model=ScoreResponse)
def score(body: ScoreRequest):
    result = match_listings(body.text_a, body.text_b, _get_reference())
    return ScoreResponse(
        score=round(result.score, 4),
        filtered=result.filtered,
        is_likely_match=result.is_likely_match,
        brand_match=result.brand_match,
        model_match=result.model_match,
        reasons=result.reasons,
    )


@router.post("/match", response_model=MatchResponse)
def match_catalog(body: MatchRequest):
    catalog = _get_catalog()
    items: list[MatchItem] = []

    for text in body.texts:
        spu = find_best_spu(text, catalog)
        if spu is None:
            items.append(MatchItem(text=text))
            continue

        version = extract_version(extract_spu_part(text, catalog.reference))
        sku = find_best_sku(text, spu.product.skus, catalog.reference, version)
        items.append(MatchItem(
            text=text,
            spu=SpuMatch(
                id=spu.product.id,
                name=spu.product.name,
                brand=spu.product.brand,
                score=round(spu.score, 4),
                priority=spu.priority,
            ),
            sku=SkuMatch(id=sku.sku.id, name=sku.sku.name, score=round(sku.score, 4)) if sku else None,
        ))

    matched = sum(1 for item in items if item.spu is not None)
    logger.info("Matched %d/%d listings against the catalog", matched, len(items))
    return MatchResponse(items=items, matched=matched, total=len(items))


@router.post("/reference/reload", response_model=ReloadResponse)
async def reload_reference():
    from ..main import reload_catalog

    try:
        reference, catalog = await reload_catalog()
    except CatalogApiError as e:
        logger.warning("Catalog reload failed: %s", e)
        raise HTTPException(502, f"Catalog reload failed: {e}")
    return ReloadResponse(
        brands=len(reference.brands),
        products=len(catalog) if catalog is not None else 0,
        models=reference.model_count,
    )
