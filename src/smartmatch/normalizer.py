"""Text normalization for product listings.

Each stage is a pure ``str -> str`` function.  ``normalize_spaces`` runs the
case-preserving pipeline; ``normalize`` additionally lowercases Latin
letters.  Both are idempotent.

Pipeline:
  1. full-width folding "（）＋" → "()+"
  2. bracket removal    "Vivo X200S 5G(12+512)简黑" → "Vivo X200S 5G 12+512 简黑"
  3. boundary spaces    "K13Turbo" → "K13 Turbo", "WatchX2mini" → "Watch X2mini"
  4. whitespace collapse

``preprocess`` runs the pipeline and then applies the supplier text mappings
of a ``ReferenceData`` (typo corrections, abbreviations, brand aliases).
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Callable
from functools import lru_cache

from .reference import DEFAULT_REFERENCE, ReferenceData

# ---------------------------------------------------------------------------
# Bracketed substrings
# ---------------------------------------------------------------------------

_BRACKET_RE = re.compile(r"\s*[(（][^)）]*[)）]")
_BRACKET_CAPACITY_RE = re.compile(
    r"[(（]\s*("
    r"\d+\s*(?:GB|G|TB|T)?\s*[+＋]\s*\d+\s*(?:GB|G|TB|T)?"
    r"|\d+\s*(?:GB|TB|T)"
    r")\s*[)）]",
    re.IGNORECASE,
)

# Capacity goes back right after the edition keyword when one is present.
_EDITION_ANCHORS = ("活力版", "标准版", "优享版", "尊享版", "Pro版", "pro版", "轻享版", "基础版")

_CJK_RE = re.compile(r"[\u4e00-\u9fff]")


def _strip_brackets(text: str) -> str:
    """Drop bracketed codes, keeping any capacity they held."""
    capacities = [m.group(1) for m in _BRACKET_CAPACITY_RE.finditer(text)]
    stripped = _BRACKET_RE.sub("", text)
    if not capacities:
        return stripped

    capacity = " ".join(capacities)
    for anchor in _EDITION_ANCHORS:
        pos = stripped.find(anchor)
        if pos >= 0:
            end = pos + len(anchor)
            return f"{stripped[:end]} {capacity} {stripped[end:]}"

    cjk = _CJK_RE.search(stripped)
    if cjk:
        pos = cjk.start()
        return f"{stripped[:pos]} {capacity} {stripped[pos:]}"
    return f"{stripped} {capacity}"


# ---------------------------------------------------------------------------
# Full-width folding
# ---------------------------------------------------------------------------


def _fold_width(text: str) -> str:
    """NFKC: full-width ASCII, ＋, （）, and ideographic space → ASCII."""
    return unicodedata.normalize("NFKC", text)


# ---------------------------------------------------------------------------
# Concatenation boundaries
# ---------------------------------------------------------------------------

# "K13Turbo" → "K13 Turbo"
_CODE_WORD_RE = re.compile(r"([A-Z]\d+)([A-Z][a-z]{2,})")
# "5GTurbo" stays, "60Pro" → "60 Pro"
_DIGIT_WORD_RE = re.compile(r"(\d)([A-Z][a-z]+)")
# "WatchX2mini" → "Watch X2mini"; "iPhone", "eSIM" and a lone trailing
# capital ("novaS") are left alone.
_CAMEL_RE = re.compile(r"(?<=[A-Za-z][a-z])(?=[A-Z][A-Za-z0-9])")


def _split_boundaries(text: str) -> str:
    text = _CODE_WORD_RE.sub(r"\1 \2", text)
    text = _DIGIT_WORD_RE.sub(r"\1 \2", text)
    return _CAMEL_RE.sub(" ", text)


# ---------------------------------------------------------------------------
# Whitespace
# ---------------------------------------------------------------------------

_WS_RE = re.compile(r"\s+")


def _collapse_whitespace(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


PIPELINE: tuple[Callable[[str], str], ...] = (
    _fold_width,
    _strip_brackets,
    _split_boundaries,
    _collapse_whitespace,
)


def normalize_spaces(text: str) -> str:
    """Run the normalization pipeline, preserving letter case."""
    for stage in PIPELINE:
        text = stage(text)
    return text


def normalize(text: str) -> str:
    """Normalize a listing and lowercase it."""
    return normalize_spaces(text).lower()


# ---------------------------------------------------------------------------
# Listing cleanup
# ---------------------------------------------------------------------------

_DEMO_MARKERS = ("演示机", "样机", "展示机", "体验机", "试用机", "测试机")
_MARKETPLACE_PREFIXES = ("优诺严选", "品牌", "赠品", "严选", "檀木")


def clean_demo_markers(text: str) -> str:
    """Remove demo-unit markers and leading marketplace prefixes."""
    for marker in _DEMO_MARKERS:
        text = text.replace(marker, " ")
    text = text.strip()
    stripped = True
    while stripped:
        stripped = False
        for prefix in _MARKETPLACE_PREFIXES:
            if text.startswith(prefix):
                text = text[len(prefix):].lstrip()
                stripped = True
    return _collapse_whitespace(text)


# ---------------------------------------------------------------------------
# Supplier text mappings
# ---------------------------------------------------------------------------


@lru_cache(maxsize=512)
def _term_pattern(term: str) -> re.Pattern[str]:
    """Case-insensitive pattern; Latin edges must not touch other letters or digits."""
    prefix = r"(?<![A-Za-z0-9])" if term[0].isascii() and term[0].isalnum() else ""
    suffix = r"(?![A-Za-z0-9])" if term[-1].isascii() and term[-1].isalnum() else ""
    return re.compile(prefix + re.escape(term) + suffix, re.IGNORECASE)


def _compact(text: str) -> str:
    return _WS_RE.sub("", text).lower()


def apply_text_mappings(text: str, reference: ReferenceData | None = None) -> str:
    """Correct typos, expand abbreviations and map brand aliases.

    "华为 GT5 雾松蓝" → "华为 Watch GT 5 雾凇蓝"
    "HUAWEI Mate 60" → "华为 Mate 60"

    An abbreviation whose expansion already appears (ignoring spaces and
    case) is left alone, so "华为 Watch GT5" stays as it is.
    """
    reference = reference or DEFAULT_REFERENCE

    for typo, correction in reference.typo_corrections.items():
        text = _term_pattern(typo).sub(lambda _m, c=correction: c, text)

    for abbreviation, full in reference.sorted_abbreviations:
        if _compact(full) in _compact(text):
            continue
        text = _term_pattern(abbreviation).sub(lambda _m, f=full: f, text)

    for alias, canonical in reference.sorted_brand_aliases:
        text = _term_pattern(alias).sub(lambda _m, c=canonical: c, text)

    return text


def preprocess(text: str, reference: ReferenceData | None = None) -> str:
    """Normalize a listing (case preserved) and apply the text mappings."""
    return _collapse_whitespace(apply_text_mappings(normalize_spaces(text), reference))
