"""Attribute extraction from product listings.

Pulls brand, model, version, capacity and color (plus watch size and band)
out of a free-form listing.  Every extractor is total: ``None`` means the
attribute was not found, never that extraction failed.

Model extraction tries an ordered list of layers; the first non-empty
result wins:
  1. catalog model index      (coverage of the listing >= 0.5)
  2. product-noun compounds   "x fold5", "watch gt 5", "手环10"
  3. suffixed models          "mate 60 pro", "k13 turbo", "s30 pro mini"
  4. simple models            "y50", "a5x", "x200s"
  5. alphabetic word pair     "magic vs"

Layer 2 reads the listing before brand stripping and layer 4 reads it before
the letter/digit split used by layer 3, so "fold5" and "y50" survive intact.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from functools import lru_cache

from .config import settings
from .normalizer import normalize, preprocess
from .reference import DEFAULT_REFERENCE, ReferenceData

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProductVersion:
    type: str  # "network" / "product"
    value: str
    priority: int = 0


@dataclass(frozen=True)
class ProductAttributes:
    brand: str | None = None
    model: str | None = None
    version: ProductVersion | None = None
    capacity: str | None = None
    color: str | None = None
    watch_size: str | None = None
    watch_band: str | None = None


# ---------------------------------------------------------------------------
# Keyword patterns
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1024)
def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    """Case-insensitive pattern for a keyword.

    Latin edges get word boundaries so "5g" does not fire inside "15g" and
    "y" does not fire inside "y50".  Whitespace is tolerated between
    characters ("pro 版", "全网通 5g").
    """
    kw = keyword.lower()
    body = r"\s*".join(re.escape(ch) for ch in kw if not ch.isspace())
    prefix = r"(?<![a-z0-9])" if kw[0].isascii() and kw[0].isalnum() else ""
    suffix = r"(?![a-z0-9])" if kw[-1].isascii() and kw[-1].isalnum() else ""
    return re.compile(prefix + body + suffix)


def _contains(text: str, keyword: str) -> bool:
    return bool(keyword) and _keyword_pattern(keyword).search(text.lower()) is not None


def _remove_keywords(text: str, keywords: Iterable[str]) -> str:
    for kw in keywords:
        if kw:
            text = _keyword_pattern(kw).sub(" ", text)
    return text


# ---------------------------------------------------------------------------
# Brand
# ---------------------------------------------------------------------------


def extract_brand(text: str, reference: ReferenceData | None = None) -> str | None:
    """Return the canonical name of the longest brand found in ``text``."""
    reference = reference or DEFAULT_REFERENCE
    lowered = normalize(text)
    for brand in reference.sorted_brands:
        if _contains(lowered, brand.name) or (brand.spell and _contains(lowered, brand.spell)):
            return brand.name
    return None


# ---------------------------------------------------------------------------
# Version
# ---------------------------------------------------------------------------

_NETWORK_VERSIONS: tuple[tuple[str, int], ...] = tuple(sorted(
    (
        ("全网通5G", 10), ("卫星通信版", 9), ("全网通版", 8),
        ("蓝牙版", 7), ("eSIM版", 7), ("WiFi版", 7),
        ("5G版", 6), ("4G版", 5), ("3G版", 4),
        ("5G", 6), ("4G", 5), ("3G", 4),
    ),
    key=lambda item: len(item[0]),
    reverse=True,
))

_EDITION_VERSIONS: tuple[tuple[str, int], ...] = (
    ("标准版", 1), ("基础版", 1), ("普通版", 1),
    ("活力版", 2), ("轻享版", 2), ("青春版", 2),
    ("优享版", 3), ("尊享版", 4), ("Pro版", 5),
    ("旗舰版", 6), ("至尊版", 6), ("典藏版", 6), ("限定版", 6),
    ("纪念版", 6), ("特别版", 6), ("定制版", 6),
)

# A "pro" directly followed by another suffix word belongs to the model name.
_PRO_EDITION_RE = re.compile(r"(?<![a-z0-9])pro\s*版")
_MODEL_SUFFIX_AFTER_RE = re.compile(r"\s*(?:mini|max|plus|ultra|air|lite|se)(?![a-z0-9])")

VERSION_WORDS: tuple[str, ...] = tuple(kw for kw, _ in _NETWORK_VERSIONS + _EDITION_VERSIONS)


def _has_pro_edition(lowered: str) -> bool:
    """True when some "Pro版" is not immediately followed by a model suffix word."""
    return any(
        _MODEL_SUFFIX_AFTER_RE.match(lowered, m.end()) is None
        for m in _PRO_EDITION_RE.finditer(lowered)
    )


def extract_version(text: str) -> ProductVersion | None:
    """Network variant first (longest keyword wins), then product edition."""
    lowered = normalize(text)
    for keyword, priority in _NETWORK_VERSIONS:
        if _contains(lowered, keyword):
            return ProductVersion("network", keyword, priority)

    for keyword, priority in _EDITION_VERSIONS:
        if keyword == "Pro版":
            if _has_pro_edition(lowered):
                return ProductVersion("product", keyword, priority)
            continue
        if _contains(lowered, keyword):
            return ProductVersion("product", keyword, priority)
    return None


# ---------------------------------------------------------------------------
# Capacity
# ---------------------------------------------------------------------------

CAPACITY_RE = re.compile(
    r"(?<![\d.])(\d+)\s*(?:gb|g)?\s*\+\s*(\d+)\s*(gb|g|tb|t)?(?![a-z])",
    re.IGNORECASE,
)
_STORAGE_RE = re.compile(r"(?<![\d.+])(\d+)\s*(gb|tb|t)(?![a-z0-9])", re.IGNORECASE)


def _is_terabyte(unit: str | None) -> bool:
    return bool(unit) and unit.lower().startswith("t")


def extract_capacity(text: str) -> str | None:
    """Return "<ram>+<storage>" ("8+256", "16+1T"), or storage alone ("256")."""
    m = CAPACITY_RE.search(text)
    if m:
        ram, storage, unit = m.groups()
        return f"{int(ram)}+{int(storage)}{'T' if _is_terabyte(unit) else ''}"

    storages = [
        (int(size) * (1024 if _is_terabyte(unit) else 1), f"{int(size)}{'T' if _is_terabyte(unit) else ''}")
        for size, unit in _STORAGE_RE.findall(text)
    ]
    if storages:
        return max(storages)[1]
    return None


def _remove_capacity(text: str) -> str:
    return _STORAGE_RE.sub(" ", CAPACITY_RE.sub(" ", text))


# ---------------------------------------------------------------------------
# Color
# ---------------------------------------------------------------------------

# Words that look like colors or sit where colors sit but are not colors.
_COLOR_NOISE_WORDS = (
    # materials
    "真皮", "素皮", "皮革", "陶瓷", "玻璃", "金属", "塑料", "硅胶", "软胶",
    "钛合金", "不锈钢", "铝合金", "碳纤维",
    # accessories
    "表带", "表盘", "手环", "耳机", "耳塞", "充电器", "数据线",
    "保护壳", "保护套", "手机壳", "手机套",
    # connectivity
    "超级快充", "快充", "蓝牙", "无线", "有线", "充电",
    "全网通", "5G", "4G", "3G", "WiFi", "NFC", "eSIM",
    # product types
    "智能", "手表", "手机", "平板", "笔记本", "电脑",
)

_COLOR_TAIL_STOPWORDS = frozenset({
    "全网通", "网通", "版本", "标准", "套餐",
})

_COLOR_TAIL_RE = re.compile(r"([\u4e00-\u9fff]{2,5})$")


def extract_color(text: str, reference: ReferenceData | None = None) -> str | None:
    """Find the color of a listing.

    Looks for a configured color variant, then a color from the catalog
    color list, then falls back to the trailing 2-5 CJK characters.
    """
    reference = reference or DEFAULT_REFERENCE
    cleaned = _remove_keywords(_remove_capacity(normalize(text)), _COLOR_NOISE_WORDS)

    for color in reference.sorted_variant_colors:
        if color in cleaned:
            return color
    for color in reference.sorted_colors:
        if color in cleaned:
            return color

    m = _COLOR_TAIL_RE.search(cleaned.strip())
    if m:
        tail = m.group(1)
        if tail not in _COLOR_TAIL_STOPWORDS and tail not in VERSION_WORDS and not tail.endswith("版"):
            return tail
    return None


# ---------------------------------------------------------------------------
# Watch attributes
# ---------------------------------------------------------------------------

_WATCH_MM_RE = re.compile(r"(?<![\d.])(\d{2})\s*mm(?![a-z])", re.IGNORECASE)
_WATCH_INCH_RE = re.compile(r"(?<![\d.])(\d+(?:\.\d+)?)\s*(?:英寸|寸)")

_WATCH_BAND_WORDS = tuple(sorted(
    (
        "编织表带", "复合编织表带", "尼龙编织表带",
        "皮革表带", "真皮表带", "素皮表带",
        "金属表带", "不锈钢表带", "钛金属表带",
        "硅胶表带", "氟橡胶表带", "橡胶表带",
        "表带", "腕带", "表链",
    ),
    key=len,
    reverse=True,
))


def extract_watch_size(text: str) -> str | None:
    m = _WATCH_MM_RE.search(text)
    if m:
        return f"{m.group(1)}mm"
    m = _WATCH_INCH_RE.search(text)
    if m:
        return f"{m.group(1)}寸"
    return None


def extract_watch_band(text: str) -> str | None:
    """Band keyword plus whatever follows it in the same token."""
    for word in _WATCH_BAND_WORDS:
        pos = text.find(word)
        if pos >= 0:
            return text[pos:].split()[0]
    return None


# ---------------------------------------------------------------------------
# Model: text preparation
# ---------------------------------------------------------------------------

_MODEL_DESCRIPTORS = (
    "智能手机", "手机", "智能手表", "平板电脑", "平板", "笔记本电脑", "笔记本",
    "无线耳机", "耳机", "智能", "英寸", "钛合金", "陶瓷", "素皮", "皮革",
    "玻璃", "金属", "塑料", "蓝牙", "新品", "上市", "发布",
    "全网通", "mm", "wifi", "esim", "nfc",
)

_BASIC_COLOR_RUN_RE = re.compile(r"[\u4e00-\u9fff]*[黑白蓝红绿紫粉金银灰棕青橙黄][\u4e00-\u9fff]*")
_MODEL_FILLER_RE = re.compile(r"[款版年月日]")
_COMPACT_RE = re.compile(r"[\s\-_]+")


def compact_model(text: str) -> str:
    """Lowercase and drop whitespace, hyphens and underscores."""
    return _COMPACT_RE.sub("", text.lower())


def strip_brands(text: str, reference: ReferenceData) -> str:
    return _remove_keywords(text, reference.brand_removal_terms)


def _strip_descriptors(text: str) -> str:
    text = _remove_keywords(text, VERSION_WORDS)
    text = _remove_keywords(text, _MODEL_DESCRIPTORS)
    text = _BASIC_COLOR_RUN_RE.sub(" ", text)
    return _MODEL_FILLER_RE.sub(" ", text)


def model_core(text: str, reference: ReferenceData | None = None) -> str:
    """Listing reduced to its model-bearing part, brand and noise removed.

    Used for model index entries and index lookups alike, so both sides of
    the lookup are prepared the same way.
    """
    reference = reference or DEFAULT_REFERENCE
    lowered = _remove_capacity(normalize(text))
    return compact_model(_strip_descriptors(strip_brands(lowered, reference)))


@dataclass(frozen=True)
class _ModelContext:
    base: str          # normalized, capacity removed, brand kept
    stripped: str      # base minus brands, versions, descriptors and colors
    brand: str | None
    reference: ReferenceData


# ---------------------------------------------------------------------------
# Model layer 1: catalog index
# ---------------------------------------------------------------------------

MIN_INDEX_COVERAGE = 0.5


def _best_index_match(compact: str, models: Iterable[str]) -> str | None:
    best: str | None = None
    best_key = (0.0, 0)
    for model in sorted(models):
        if not model or model not in compact:
            continue
        key = (len(model) / len(compact), -len(model))
        if best is None or key > best_key:
            best, best_key = model, key
    if best is not None and best_key[0] >= MIN_INDEX_COVERAGE:
        return best
    return None


def _model_from_index(ctx: _ModelContext) -> str | None:
    compact = compact_model(ctx.stripped)
    if not compact:
        return None
    # The global index is only consulted when the brand has no indexed models.
    models = ctx.reference.models_for(ctx.brand) or ctx.reference.all_models
    return _best_index_match(compact, models)


# ---------------------------------------------------------------------------
# Model layer 2: product-noun compounds
# ---------------------------------------------------------------------------

_LETTER_NOUN_RE = re.compile(r"(?<![a-z0-9])([a-z])\s*(note|fold|flip|pad)\s*(\d*)(?![a-z0-9])")
_NOUN_QUALIFIER_RE = re.compile(
    r"(?<![a-z0-9])(watch|band|buds|(?:mate|i)?pad|fold|flip)\s*"
    r"(gt|se|pro|max|plus|ultra|air|lite|fit|\d+[a-z]*|[a-z]\d+[a-z]*)"
    r"(?:\s*(mini|pro|plus|ultra|air|lite|max|\d+))?"
    r"(?![a-z0-9])"
)
_WEARABLE_RE = re.compile(r"(手环|手表)\s*(\d+)\s*(pro|max|plus|ultra|nfc|se)?(?![a-z0-9])")


def _model_from_compound(ctx: _ModelContext) -> str | None:
    found = [
        compact_model(m.group(0))
        for pattern in (_LETTER_NOUN_RE, _NOUN_QUALIFIER_RE, _WEARABLE_RE)
        for m in pattern.finditer(ctx.base)
    ]
    return max(found, key=len) if found else None


# ---------------------------------------------------------------------------
# Model layer 3: suffixed models
# ---------------------------------------------------------------------------

_LETTER_DIGIT_RE = re.compile(r"(?<=[a-z])(?=\d)|(?<=\d)(?=[a-z])")
_GLUED_SUFFIX_RE = re.compile(r"(?<=[a-z])(?=(?:pro|max|plus|ultra|mini|air|lite|turbo)(?![a-z]))")
_SUFFIXED_MODEL_RE = re.compile(
    r"(?<![a-z0-9])([a-z]*)\s*(\d+)\s*(pro|max|plus|ultra|mini|se|air|lite|note|turbo)(\+)?"
    r"(?:\s+(mini|max|plus|ultra|pro))?(?![a-z0-9])"
)
_CAPACITY_LIKE_RE = re.compile(r"gb|\d+g$")


def split_compound_words(text: str) -> str:
    """Space out letter/digit runs and glued suffixes: "s30promini" → "s 30 pro mini"."""
    return _GLUED_SUFFIX_RE.sub(" ", _LETTER_DIGIT_RE.sub(" ", text))


def _model_from_suffix(ctx: _ModelContext) -> str | None:
    found = [
        compact_model(m.group(0))
        for m in _SUFFIXED_MODEL_RE.finditer(split_compound_words(ctx.stripped))
    ]
    found = [f for f in found if not _CAPACITY_LIKE_RE.search(f)]
    return max(found, key=len) if found else None


# ---------------------------------------------------------------------------
# Model layer 4: simple models
# ---------------------------------------------------------------------------

_SIMPLE_MODEL_RE = re.compile(
    r"(?<![a-z0-9])(?:[a-z]+\d+[a-z]*|\d+[a-z]+|\d{2,3}|[a-z]{2,} \d{1,3}[a-z]*)(?![a-z0-9])"
)
_NETWORK_TOKEN_RE = re.compile(r"^[345]g$")
_SPEC_UNIT_RE = re.compile(r"^\d+(?:mah|mhz|ghz|gb|tb|mb|hz|mm|cm|kg|mp|db|g|t|w|v)$")
_RATIO_RE = re.compile(r"^\d+\+\d+$")
_SUFFIXED_RE = re.compile(r"[a-z]\d+[a-z]+")


def _is_simple_candidate(token: str) -> bool:
    return not (
        _NETWORK_TOKEN_RE.match(token)
        or "gb" in token
        or _SPEC_UNIT_RE.match(token)
        or _RATIO_RE.match(token)
    )


def _model_from_simple(ctx: _ModelContext) -> str | None:
    found = [
        compact_model(m.group(0))
        for m in _SIMPLE_MODEL_RE.finditer(ctx.stripped)
    ]
    found = [f for f in found if _is_simple_candidate(f)]
    if not found:
        return None
    return max(found, key=lambda f: (bool(_SUFFIXED_RE.search(f)), len(f)))


# ---------------------------------------------------------------------------
# Model layer 5: word pair
# ---------------------------------------------------------------------------

_WORD_PAIR_FILLERS = frozenset({"new", "version", "edition"})
_LATIN_WORD_RE = re.compile(r"[a-z]+")


def _is_pair_word(token: str, min_length: int = 1) -> bool:
    return (
        len(token) >= min_length
        and _LATIN_WORD_RE.fullmatch(token) is not None
        and token not in _WORD_PAIR_FILLERS
    )


def _model_from_word_pair(ctx: _ModelContext) -> str | None:
    """Two adjacent Latin words; Chinese filler such as 原封 or 国行 never qualifies."""
    tokens = ctx.stripped.split()
    for first, second in zip(tokens, tokens[1:]):
        if _is_pair_word(first) and _is_pair_word(second, min_length=2):
            return compact_model(first + second)
    return None


MODEL_LAYERS: tuple[Callable[[_ModelContext], str | None], ...] = (
    _model_from_index,
    _model_from_compound,
    _model_from_suffix,
    _model_from_simple,
    _model_from_word_pair,
)


def extract_model(
    text: str,
    brand: str | None = None,
    reference: ReferenceData | None = None,
) -> str | None:
    """Extract a lowercase, whitespace-free model string."""
    reference = reference or DEFAULT_REFERENCE
    base = _remove_capacity(normalize(text))
    ctx = _ModelContext(
        base=base,
        stripped=_strip_descriptors(strip_brands(base, reference)),
        brand=brand,
        reference=reference,
    )
    for layer in MODEL_LAYERS:
        model = layer(ctx)
        if model:
            logger.debug("Model %r from %s: %r", model, layer.__name__, text)
            return model
    return None


# ---------------------------------------------------------------------------
# All attributes
# ---------------------------------------------------------------------------


@lru_cache(maxsize=settings.extraction_cache_size)
def _extract_cached(text: str, reference: ReferenceData) -> ProductAttributes:
    text = preprocess(text, reference)
    brand = extract_brand(text, reference)
    return ProductAttributes(
        brand=brand,
        model=extract_model(text, brand, reference),
        version=extract_version(text),
        capacity=extract_capacity(normalize(text)),
        color=extract_color(text, reference),
        watch_size=extract_watch_size(normalize(text)),
        watch_band=extract_watch_band(normalize(text)),
    )


def extract_attributes(text: str, reference: ReferenceData | None = None) -> ProductAttributes:
    """Extract every attribute of a listing after applying the text mappings.

    Results are memoized per (text, reference) pair; reference objects are
    immutable so a reload produces a fresh cache key.
    """
    return _extract_cached(text, reference or DEFAULT_REFERENCE)
