"""Best SPU / SKU lookup for a supplier listing.

SPU search runs in two stages over same-brand candidates:
  exact  brand + model match; scored by version agreement
  fuzzy  model token similarity > 0.5; score 0.4 + 0.6 * similarity
Both stages add up to 0.1 for shared keywords and skip vetoed SPUs.  Candidates
are ranked on the uncapped score; the returned score is capped at 1.0.

Exact-stage version scores:
  both sides, same version      → 1.00
  both sides, different version → 0.60
  neither side                  → 1.00
  listing only                  → 0.70
  SPU only                      → 0.95

Ties are broken by priority (standard SPU 3 > matching special version 2 >
other 1), then by a name without Pro/Max/... suffix, then by more tokens.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

from ..colors import match_colors
from ..config import settings
from ..extractor import (
    ProductVersion,
    extract_brand,
    extract_capacity,
    extract_color,
    extract_model,
    extract_version,
    extract_watch_band,
    extract_watch_size,
    split_compound_words,
)
from ..matcher import (
    GIFT_BOX_WORDS,
    is_brand_match,
    is_model_match,
    should_filter_spu,
    version_similarity,
)
from ..normalizer import clean_demo_markers, normalize, preprocess
from ..schemas import CatalogProduct, CatalogSKU
from .index import WATCH_RE, CatalogEntry, CatalogIndex, extract_spu_part

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Scores
# ---------------------------------------------------------------------------

VERSION_EXACT = 1.0
VERSION_MISMATCH = 0.6
NO_VERSION = 1.0
INPUT_VERSION_ONLY = 0.7
SPU_VERSION_ONLY = 0.95

FUZZY_BASE = 0.4
FUZZY_MODEL_WEIGHT = 0.6
MODEL_SIMILARITY_THRESHOLD = 0.5
UNKNOWN_BRAND_BASE = 0.3

KEYWORD_BONUS_PER_MATCH = 0.05
KEYWORD_BONUS_MAX = 0.1

EXACT_ENOUGH = 0.99

PRIORITY_STANDARD = 3
PRIORITY_VERSION_MATCH = 2
PRIORITY_OTHER = 1

_SPECIAL_VERSION_WORDS = ("蓝牙版", "esim版", "5g版", "4g版", "3g版", "全网通版")
_SUFFIX_WORD_RE = re.compile(r"(?<![a-z0-9])(?:pro|max|plus|ultra|mini|se|air|lite|note|turbo)(?![a-z0-9])")
_TOKEN_RE = re.compile(r"[a-z0-9]+|[\u4e00-\u9fff]+")


@dataclass
class SpuCandidate:
    product: CatalogProduct
    score: float
    priority: int


@dataclass
class SkuCandidate:
    sku: CatalogSKU
    score: float


def _tokens(text: str) -> list[str]:
    return _TOKEN_RE.findall(normalize(text))


def token_similarity(tokens_a: list[str], tokens_b: list[str]) -> float:
    """Share of tokens with a counterpart (equal or containing) on the other side."""
    if not tokens_a or not tokens_b:
        return 0.0
    hits = sum(
        1 for a in tokens_a
        if any(a == b or a in b or b in a for b in tokens_b)
    )
    return hits / max(len(tokens_a), len(tokens_b))


def spu_priority(text: str, spu_name: str) -> int:
    lowered = text.lower()
    spu = spu_name.lower()
    special = [w for w in _SPECIAL_VERSION_WORDS if w in spu]
    if not special and not any(w in spu for w in GIFT_BOX_WORDS):
        return PRIORITY_STANDARD
    if any(w in lowered for w in special):
        return PRIORITY_VERSION_MATCH
    return PRIORITY_OTHER


def keyword_bonus(text: str, spu_name: str) -> float:
    spu = normalize(spu_name)
    hits = sum(1 for t in _tokens(text) if len(t) > 2 and t in spu)
    return min(hits * KEYWORD_BONUS_PER_MATCH, KEYWORD_BONUS_MAX)


def exact_spu_score(
    version: ProductVersion | None,
    spu_version: ProductVersion | None,
) -> float:
    if version and spu_version:
        return VERSION_EXACT if version.value == spu_version.value else VERSION_MISMATCH
    if version:
        return INPUT_VERSION_ONLY
    if spu_version:
        return SPU_VERSION_ONLY
    return NO_VERSION


def _has_suffix(name: str) -> bool:
    return _SUFFIX_WORD_RE.search(normalize(name)) is not None


def select_best(candidates: list[SpuCandidate]) -> SpuCandidate:
    """Highest score, then priority, then plain name, then more tokens."""
    def rank(c: SpuCandidate):
        return (
            c.score,
            c.priority,
            not _has_suffix(c.product.name),
            len(_tokens(c.product.name)),
        )
    return max(candidates, key=rank)


# ---------------------------------------------------------------------------
# SPU search
# ---------------------------------------------------------------------------


def _candidates(index: CatalogIndex, brand: str | None) -> list[CatalogEntry]:
    if not brand:
        logger.debug("No brand found, searching all %d SPUs", len(index))
        return index.entries
    entries = index.for_brand(brand)
    if entries:
        return entries
    return [
        e for e in index.entries
        if e.brand and is_brand_match(brand, e.brand, index.reference)
    ]


def find_best_spu(
    text: str,
    index: CatalogIndex,
    threshold: float | None = None,
) -> SpuCandidate | None:
    """Find the catalog SPU a listing refers to, or None below ``threshold``."""
    threshold = settings.spu_match_threshold if threshold is None else threshold
    reference = index.reference
    text = preprocess(clean_demo_markers(text), reference)

    part = extract_spu_part(text, reference)
    brand = extract_brand(part, reference)
    model = extract_model(part, brand, reference)
    version = extract_version(part)

    candidates = [
        e for e in _candidates(index, brand)
        if not should_filter_spu(text, e.product.name, reference)
    ]
    if not candidates:
        return None

    best: SpuCandidate | None = None

    exact = [
        SpuCandidate(
            product=e.product,
            score=exact_spu_score(version, e.version) + keyword_bonus(text, e.product.name),
            priority=spu_priority(text, e.product.name),
        )
        for e in candidates
        if brand and e.brand
        and is_brand_match(brand, e.brand, reference)
        and is_model_match(model, e.model)
    ]
    if exact:
        best = select_best(exact)

    if best is None or best.score < EXACT_ENOUGH:
        fuzzy = list(_fuzzy_candidates(text, candidates, brand, model, threshold, reference))
        if fuzzy:
            fuzzy_best = select_best(fuzzy)
            if best is None or fuzzy_best.score > best.score:
                best = fuzzy_best

    if best is None or best.score < threshold:
        logger.debug("No SPU for %r (brand=%s model=%s)", text, brand, model)
        return None
    best.score = min(best.score, 1.0)
    logger.debug("SPU for %r: %s (%.3f)", text, best.product.name, best.score)
    return best


def _fuzzy_candidates(
    text: str,
    candidates: Iterable[CatalogEntry],
    brand: str | None,
    model: str | None,
    threshold: float,
    reference,
) -> Iterable[SpuCandidate]:
    if not model:
        return
    model_tokens = split_compound_words(model).split()

    for e in candidates:
        if brand and (not e.brand or not is_brand_match(brand, e.brand, reference)):
            continue
        if not e.model:
            continue

        sim = token_similarity(model_tokens, split_compound_words(e.model).split())
        if sim <= MODEL_SIMILARITY_THRESHOLD:
            continue

        base = UNKNOWN_BRAND_BASE if not brand and e.brand else 0.0
        score = max(base, FUZZY_BASE + sim * FUZZY_MODEL_WEIGHT)
        if score < threshold:
            continue
        yield SpuCandidate(
            product=e.product,
            score=score + keyword_bonus(text, e.product.name),
            priority=spu_priority(text, e.product.name),
        )


# ---------------------------------------------------------------------------
# SKU search
# ---------------------------------------------------------------------------

SKU_VERSION_WEIGHT = 0.3
SKU_CAPACITY_WEIGHT = 0.4
SKU_COLOR_WEIGHT = 0.3
SKU_WATCH_SIZE_WEIGHT = 0.3
SKU_WATCH_BAND_WEIGHT = 0.2
BAND_SAME_MATERIAL = 0.7

_BAND_MATERIALS = ("编织", "皮革", "金属", "硅胶", "橡胶", "不锈钢", "钛金属")


def _band_similarity(a: str, b: str) -> float:
    if a.lower() == b.lower():
        return 1.0
    if any(m in a and m in b for m in _BAND_MATERIALS):
        return BAND_SAME_MATERIAL
    return 0.0


def sku_score(text: str, sku: CatalogSKU, reference, version: ProductVersion | None = None) -> float:
    """Weighted agreement of version, capacity, color and watch specs.

    Attributes missing on either side are left out of the weighting.
    """
    text = preprocess(text, reference)
    sku_text = " ".join(p for p in (sku.name, sku.spec, sku.color) if p)
    sku_text = preprocess(sku_text, reference)
    norm = normalize(text)
    sku_norm = normalize(sku_text)
    is_watch = WATCH_RE.search(norm) is not None

    total = 0.0
    earned = 0.0

    sku_version = extract_version(sku_text)
    if version and sku_version:
        sim = version_similarity(version, sku_version)
        if sim is not None:
            total += SKU_VERSION_WEIGHT
            earned += SKU_VERSION_WEIGHT * sim

    capacity, sku_capacity = extract_capacity(norm), extract_capacity(sku_norm)
    if capacity and sku_capacity:
        total += SKU_CAPACITY_WEIGHT
        if capacity == sku_capacity:
            earned += SKU_CAPACITY_WEIGHT

    color = extract_color(text, reference)
    sku_color = sku.color or extract_color(sku_text, reference)
    if color and sku_color:
        total += SKU_COLOR_WEIGHT
        earned += SKU_COLOR_WEIGHT * match_colors(color, sku_color, reference)

    if is_watch:
        size, sku_size = extract_watch_size(norm), extract_watch_size(sku_norm)
        if size and sku_size:
            total += SKU_WATCH_SIZE_WEIGHT
            if size == sku_size:
                earned += SKU_WATCH_SIZE_WEIGHT
        band, sku_band = extract_watch_band(norm), extract_watch_band(sku_norm)
        if band and sku_band:
            total += SKU_WATCH_BAND_WEIGHT
            earned += SKU_WATCH_BAND_WEIGHT * _band_similarity(band, sku_band)

    if total == 0:
        return 0.1
    return earned / total


def find_best_sku(
    text: str,
    skus: Iterable[CatalogSKU],
    reference,
    version: ProductVersion | None = None,
    threshold: float | None = None,
) -> SkuCandidate | None:
    """Pick the SKU whose capacity, color and version agree best with ``text``."""
    threshold = settings.sku_match_threshold if threshold is None else threshold
    best: SkuCandidate | None = None
    for sku in skus:
        score = sku_score(text, sku, reference, version)
        if best is None or score > best.score:
            best = SkuCandidate(sku=sku, score=score)
    if best is None or best.score < threshold:
        return None
    return best
