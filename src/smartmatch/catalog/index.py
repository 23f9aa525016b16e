"""Catalog-derived lookup structures.

- ``extract_spu_part`` trims a listing to its SPU-level part (no network,
  capacity, watch size or color suffix).
- ``build_model_index`` collects exact model strings from SPU names for the
  first model extraction layer.
- ``CatalogIndex`` extracts every SPU's attributes once and groups SPUs by
  brand so a lookup only scores same-brand candidates.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass

from ..extractor import (
    VERSION_WORDS,
    ProductVersion,
    extract_brand,
    extract_color,
    extract_model,
    extract_version,
    model_core,
)
from ..normalizer import normalize_spaces, preprocess
from ..reference import (
    DEFAULT_REFERENCE,
    GLOBAL_INDEX_KEY,
    MatcherOverrides,
    ReferenceData,
    overrides,
)
from ..schemas import BrandEntry, CatalogProduct

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# SPU part of a listing
# ---------------------------------------------------------------------------

_FULL_NETWORK_CUT_RE = re.compile(r"(.+?)\s*全网通\s*5g(?:版)?(?![a-z0-9])", re.IGNORECASE)
_NETWORK_CUT_RE = re.compile(r"(.+?)\s*(?<!\d)[2345]g(?:版)?(?![a-z0-9])", re.IGNORECASE)
_CAPACITY_CUT_RE = re.compile(r"(.+?)\s*\(?(?<!\d)\d+\s*(?:gb)?\s*\+\s*\d+", re.IGNORECASE)
_WATCH_SIZE_CUT_RE = re.compile(r"(.+?)\s+\d+\s*mm(?![a-z])", re.IGNORECASE)
WATCH_RE = re.compile(r"watch|band|手表|手环", re.IGNORECASE)

# Everything after these belongs to an accessory, not to the product color.
_COLOR_CUT_ACCESSORIES = (
    "表带", "表盘", "表链", "表扣", "表冠", "手环", "腕带",
    "耳机", "耳塞", "充电器", "数据线", "保护壳", "保护套",
    "键盘", "鼠标", "触控笔", "手写笔",
)
_MATERIAL_RE = re.compile(r"软胶|硅胶|皮革|陶瓷|玻璃")
_WS_RE = re.compile(r"\s+")


def extract_spu_part(text: str, reference: ReferenceData | None = None) -> str:
    """Cut a listing down to the part that names the SPU.

    Examples:
        "vivo Y50 全网通5G 8GB+256GB 白金"  → "vivo Y50"
        "华为 Watch GT5 46mm 复合编织表带"  → "华为 Watch GT5"
        "OPPO Reno15 活力版 星光紫"        → "OPPO Reno15 活力版"
    """
    reference = reference or DEFAULT_REFERENCE
    text = normalize_spaces(text)

    for pattern in (_FULL_NETWORK_CUT_RE, _NETWORK_CUT_RE, _CAPACITY_CUT_RE):
        m = pattern.match(text)
        if m:
            return m.group(1).strip()

    m = _WATCH_SIZE_CUT_RE.match(text)
    if m and WATCH_RE.search(m.group(1)):
        return m.group(1).strip()

    lowered = text.lower()
    for keyword in VERSION_WORDS:
        pos = lowered.find(keyword.lower())
        if pos >= 0:
            return text[:pos + len(keyword)].strip()

    spu_part = text
    brand = extract_brand(text, reference)
    brand_end = 0
    if brand:
        for term in (brand, reference.brand_spells.get(brand.lower())):
            m = re.search(re.escape(term), text, re.IGNORECASE) if term else None
            if m:
                brand_end = m.end()
                break

    color_zone = text[brand_end:]
    for keyword in _COLOR_CUT_ACCESSORIES:
        pos = color_zone.find(keyword)
        if pos >= 0:
            color_zone = color_zone[:pos]
            break

    color = extract_color(color_zone, reference)
    if color:
        pos = text.rfind(color)
        if pos >= brand_end:
            spu_part = text[:pos]

    return _WS_RE.sub(" ", _MATERIAL_RE.sub("", spu_part)).strip()


# ---------------------------------------------------------------------------
# Model index
# ---------------------------------------------------------------------------

MIN_MODEL_LENGTH = 2
MAX_MODEL_LENGTH = 50


def _index_keys(brand: str | None, reference: ReferenceData) -> list[str]:
    keys = [GLOBAL_INDEX_KEY]
    if brand:
        keys.append(brand.lower())
        spell = reference.brand_spells.get(brand.lower())
        if spell:
            keys.append(spell)
    return list(dict.fromkeys(keys))


def build_model_index(
    products: Iterable[CatalogProduct],
    reference: ReferenceData | None = None,
) -> dict[str, frozenset[str]]:
    """Model strings from SPU names, keyed by brand name, spell and "" (all)."""
    reference = reference or DEFAULT_REFERENCE
    index: dict[str, set[str]] = defaultdict(set)
    for product in products:
        name = preprocess(product.name, reference)
        model = model_core(extract_spu_part(name, reference), reference)
        if not MIN_MODEL_LENGTH <= len(model) <= MAX_MODEL_LENGTH:
            continue
        brand = product.brand or extract_brand(name, reference)
        for key in _index_keys(brand, reference):
            index[key].add(model)
    return {key: frozenset(models) for key, models in index.items()}


def load_reference(
    brands: Iterable[BrandEntry],
    products: Iterable[CatalogProduct],
    matcher_overrides: MatcherOverrides | None = None,
) -> ReferenceData:
    """Build the reference data for a matching session from catalog data.

    The overrides (the process-wide ones by default) are applied as they are
    currently loaded; reloading them from disk is up to the caller.
    """
    products = list(products)
    matcher_overrides = matcher_overrides or overrides

    reference = matcher_overrides.apply(DEFAULT_REFERENCE.with_catalog(brands=list(brands) or None))
    colors = sorted({
        sku.color.strip()
        for product in products
        for sku in product.skus
        if sku.color and sku.color.strip()
    })
    reference = reference.with_catalog(
        model_index=build_model_index(products, reference),
        colors=(*reference.colors, *colors),
    )
    logger.info(
        "Reference data loaded: %d brands, %d SPUs, %d models, %d colors",
        len(reference.brands), len(products), reference.model_count, len(reference.colors),
    )
    return reference


# ---------------------------------------------------------------------------
# Catalog index
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CatalogEntry:
    product: CatalogProduct
    spu_part: str
    brand: str | None
    model: str | None
    version: ProductVersion | None


class CatalogIndex:
    """SPUs with pre-extracted attributes, grouped by brand."""

    def __init__(self, products: Iterable[CatalogProduct], reference: ReferenceData) -> None:
        self.reference = reference
        self.entries: list[CatalogEntry] = []
        self._by_brand: dict[str, list[CatalogEntry]] = defaultdict(list)

        for product in products:
            spu_part = extract_spu_part(preprocess(product.name, reference), reference)
            brand = product.brand or extract_brand(spu_part, reference)
            entry = CatalogEntry(
                product=product,
                spu_part=spu_part,
                brand=brand,
                model=extract_model(spu_part, brand, reference),
                version=extract_version(spu_part),
            )
            self.entries.append(entry)
            if brand:
                for key in _index_keys(brand, reference)[1:]:
                    self._by_brand[key].append(entry)

        logger.info(
            "Catalog index built: %d SPUs across %d brand keys",
            len(self.entries), len(self._by_brand),
        )

    def __len__(self) -> int:
        return len(self.entries)

    def for_brand(self, brand: str) -> list[CatalogEntry]:
        """SPUs indexed under a brand name or its spell."""
        key = brand.lower()
        entries = self._by_brand.get(key)
        if not entries:
            spell = self.reference.brand_spells.get(key)
            entries = self._by_brand.get(spell, []) if spell else []
        return entries
