"""Listing comparison: decides whether two product listings are the same product.

Handles:
- Brand aliases (华为 = HUAWEI = huawei) through the brand spell table
- Model comparison ignoring case, spaces, hyphens and underscores
- Gift-box / promotional listings vs plain products
- Bluetooth-only vs eSIM hardware variants
- Accessories (chargers, docks, cases) vs the device they belong to
- Version, capacity and color differences as soft penalties

Veto (score 0, filtered):
  gift box on one side only          礼盒 / 套装 / 系列 ...
  promotional gift on one side only  赠品 / 定制 / 立牌 ...
  蓝牙版 vs eSIM版
  charging dock on one side only     底座 / 充电底座
  accessory on one side only         充电器 / 保护壳 / 支架 ...

Identity score:
  brand + model match                → 1.00
  model match, a brand unknown       → 0.85
  model conflict                     → 0.40 * model token similarity
  model unknown, brand match         → 0.50
  model unknown, brand unknown       → 0.30
  brand conflict                     → 0.00

Attribute factor (weighted over attributes present on BOTH sides):
  version  0.3   exact 1.0, same generation / tier 0.83
  capacity 0.4   exact 1.0
  color    0.3   exact 1.0, variant 0.9, basic family 0.5

Final score = identity * (0.5 + 0.5 * attribute factor)
Threshold: score >= 0.60 → likely the same product
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from .colors import match_colors
from .config import settings
from .extractor import (
    ProductAttributes,
    ProductVersion,
    compact_model,
    extract_attributes,
    split_compound_words,
)
from .reference import DEFAULT_REFERENCE, ReferenceData

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Veto keywords
# ---------------------------------------------------------------------------

GIFT_BOX_WORDS = ("礼盒", "套装", "系列", "礼品", "礼包")

_PROMO_GIFT_WORDS = ("赠品", "定制", "限定", "立牌", "周边", "手办", "摆件")

_DOCK_WORDS = ("充电底座", "底座")

_ACCESSORY_WORDS = frozenset({
    "充电器", "充电线", "数据线", "耳机", "保护壳", "保护套", "保护膜",
    "贴膜", "钢化膜", "支架", "转接头", "适配器", "电源", "原装", "配件",
    "套餐", "底座", "充电底座", "无线充电",
})


def _found(text: str, words) -> list[str]:
    return [w for w in words if w in text]


def _one_sided(a: str, b: str, words) -> list[str] | None:
    """Keywords present on exactly one side, or None when both or neither match."""
    hits_a = _found(a, words)
    hits_b = _found(b, words)
    if bool(hits_a) != bool(hits_b):
        return hits_a or hits_b
    return None


def filter_reason(raw_a: str, raw_b: str, reference: ReferenceData | None = None) -> str | None:
    """Return why two listings can never be the same product, or None."""
    reference = reference or DEFAULT_REFERENCE
    a = raw_a.lower()
    b = raw_b.lower()

    hits = _one_sided(a, b, GIFT_BOX_WORDS)
    if hits:
        return f"gift box on one side: {','.join(hits)}"

    hits = _one_sided(a, b, _PROMO_GIFT_WORDS)
    if hits:
        return f"promotional gift on one side: {','.join(hits)}"

    if ("蓝牙版" in a and "esim版" in b) or ("esim版" in a and "蓝牙版" in b):
        return "bluetooth vs esim variant"

    hits = _one_sided(a, b, _DOCK_WORDS)
    if hits:
        return f"charging dock on one side: {','.join(hits)}"

    hits = _one_sided(a, b, _ACCESSORY_WORDS | reference.extra_accessory_words)
    if hits:
        return f"accessory on one side: {','.join(sorted(hits))}"

    return None


def should_filter_spu(
    input_name: str,
    candidate_name: str,
    reference: ReferenceData | None = None,
) -> bool:
    """True when ``candidate_name`` must be excluded for ``input_name``."""
    reason = filter_reason(input_name, candidate_name, reference)
    if reason:
        logger.debug("Filtered %r for %r: %s", candidate_name, input_name, reason)
    return reason is not None


# ---------------------------------------------------------------------------
# Brand / model comparison
# ---------------------------------------------------------------------------


def is_brand_match(a: str | None, b: str | None, reference: ReferenceData | None = None) -> bool:
    if not a or not b:
        return False
    if a == b or a.lower() == b.lower():
        return True
    spells = (reference or DEFAULT_REFERENCE).brand_spells
    spell_a = spells.get(a.lower())
    return spell_a is not None and spell_a == spells.get(b.lower())


def is_model_match(a: str | None, b: str | None) -> bool:
    if not a or not b:
        return False
    compact_a = compact_model(a)
    return bool(compact_a) and compact_a == compact_model(b)


def model_similarity(a: str, b: str) -> float:
    """Jaccard similarity of the letter/digit runs of two model strings."""
    tokens_a = set(split_compound_words(compact_model(a)).split())
    tokens_b = set(split_compound_words(compact_model(b)).split())
    if not tokens_a or not tokens_b:
        return 0.0
    return len(tokens_a & tokens_b) / len(tokens_a | tokens_b)


# ---------------------------------------------------------------------------
# Attribute comparison
# ---------------------------------------------------------------------------

VERSION_WEIGHT = 0.3
CAPACITY_WEIGHT = 0.4
COLOR_WEIGHT = 0.3

VERSION_SAME_TIER = 0.83

IDENTITY_FULL = 1.0
IDENTITY_MODEL_ONLY = 0.85
IDENTITY_MODEL_CONFLICT = 0.40
IDENTITY_BRAND_ONLY = 0.50
IDENTITY_UNKNOWN = 0.30

ATTRIBUTE_FLOOR = 0.5

_GENERATION_RE = re.compile(r"[345]g", re.IGNORECASE)


def version_similarity(a: ProductVersion, b: ProductVersion) -> float | None:
    """Similarity of two versions; None when they are not comparable.

    A network variant and a product edition describe different things, so
    a listing saying "5G" says nothing about an SPU's "活力版".
    """
    if a.type != b.type:
        return None
    if a.value.lower() == b.value.lower():
        return 1.0
    if a.type == "network":
        gen_a = _GENERATION_RE.search(a.value)
        gen_b = _GENERATION_RE.search(b.value)
        if gen_a and gen_b and gen_a.group(0).lower() == gen_b.group(0).lower():
            return VERSION_SAME_TIER
        return 0.0
    if a.priority == b.priority:
        return VERSION_SAME_TIER
    return 0.0


@dataclass
class MatchResult:
    """Result of comparing two product listings."""

    score: float            # 0.0 – 1.0
    filtered: bool = False  # Vetoed; never the same product
    reasons: list[str] = field(default_factory=list)
    brand_match: bool = False
    brand_conflict: bool = False
    model_match: bool = False
    model_conflict: bool = False

    @property
    def is_likely_match(self) -> bool:
        if self.filtered or self.brand_conflict or self.model_conflict:
            return False
        return self.score >= settings.match_threshold


def _attribute_factor(
    a: ProductAttributes,
    b: ProductAttributes,
    reference: ReferenceData,
    reasons: list[str],
) -> float:
    total = 0.0
    earned = 0.0

    if a.version and b.version:
        sim = version_similarity(a.version, b.version)
        if sim is not None:
            total += VERSION_WEIGHT
            earned += VERSION_WEIGHT * sim
            if sim < 1.0:
                reasons.append(f"version differs: {a.version.value} vs {b.version.value}")

    if a.capacity and b.capacity:
        total += CAPACITY_WEIGHT
        if a.capacity.lower() == b.capacity.lower():
            earned += CAPACITY_WEIGHT
        else:
            reasons.append(f"capacity differs: {a.capacity} vs {b.capacity}")

    if a.color and b.color:
        sim = match_colors(a.color, b.color, reference)
        total += COLOR_WEIGHT
        earned += COLOR_WEIGHT * sim
        if sim < 1.0:
            reasons.append(f"color differs: {a.color} vs {b.color}")

    return earned / total if total else 1.0


def match(
    attrs_a: ProductAttributes,
    attrs_b: ProductAttributes,
    raw_a: str,
    raw_b: str,
    reference: ReferenceData | None = None,
) -> MatchResult:
    """Compare two listings given their extracted attributes and raw text."""
    reference = reference or DEFAULT_REFERENCE

    reason = filter_reason(raw_a, raw_b, reference)
    if reason:
        return MatchResult(score=0.0, filtered=True, reasons=[reason])

    reasons: list[str] = []
    brand_match = is_brand_match(attrs_a.brand, attrs_b.brand, reference)
    brand_conflict = bool(attrs_a.brand and attrs_b.brand and not brand_match)
    model_match = is_model_match(attrs_a.model, attrs_b.model)
    model_conflict = bool(attrs_a.model and attrs_b.model and not model_match)

    if brand_conflict:
        identity = 0.0
        reasons.append(f"brand mismatch: {attrs_a.brand} vs {attrs_b.brand}")
    elif model_match:
        identity = IDENTITY_FULL if brand_match else IDENTITY_MODEL_ONLY
    elif model_conflict:
        identity = IDENTITY_MODEL_CONFLICT * model_similarity(attrs_a.model, attrs_b.model)
        reasons.append(f"model mismatch: {attrs_a.model} vs {attrs_b.model}")
    else:
        identity = IDENTITY_BRAND_ONLY if brand_match else IDENTITY_UNKNOWN
        reasons.append("model unknown")

    factor = _attribute_factor(attrs_a, attrs_b, reference, reasons)
    score = identity * (ATTRIBUTE_FLOOR + (1 - ATTRIBUTE_FLOOR) * factor)

    return MatchResult(
        score=max(0.0, min(1.0, score)),
        reasons=reasons,
        brand_match=brand_match,
        brand_conflict=brand_conflict,
        model_match=model_match,
        model_conflict=model_conflict,
    )


def match_listings(a: str, b: str, reference: ReferenceData | None = None) -> MatchResult:
    """Extract attributes from both listings and compare them."""
    reference = reference or DEFAULT_REFERENCE
    result = match(
        extract_attributes(a, reference),
        extract_attributes(b, reference),
        a, b, reference,
    )
    logger.debug("match %r vs %r → %.3f %s", a, b, result.score, result.reasons)
    return result


def calculate_match_score(a: str, b: str, reference: ReferenceData | None = None) -> float:
    return match_listings(a, b, reference).score
