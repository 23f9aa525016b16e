"""Reference data shared by extraction and matching.

``ReferenceData`` bundles the brand table, the dynamic model index built
from the catalog, the color tables and the supplier text mappings.  It is
immutable: a new instance is built whenever the catalog or the overrides
file is reloaded, and the instance is passed explicitly to the extractor
and matcher functions.

``MatcherOverrides`` holds supplemental tables read from a JSON file
(``settings.matcher_overrides_path``) and merges them on top of the
built-in defaults.  Expected layout::

    {
      "brands": [{"name": "红米", "spell": "redmi"}],
      "color_variants": [["雾凇蓝", "雾松蓝"]],
      "colors": ["皓月银", "星河银"],
      "accessory_keywords": ["表带"],
      "typo_corrections": {"玥金": "曜金"},
      "abbreviations": {"GT4": "Watch GT 4"},
      "brand_aliases": {"荣耀": ["HONOR"]}
    }
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from functools import cached_property
from pathlib import Path

from .schemas import BrandEntry

logger = logging.getLogger(__name__)

GLOBAL_INDEX_KEY = ""

# ---------------------------------------------------------------------------
# Built-in tables (used until the catalog has been loaded)
# ---------------------------------------------------------------------------

DEFAULT_BRANDS: tuple[BrandEntry, ...] = (
    BrandEntry(name="小米", spell="xiaomi"),
    BrandEntry(name="红米", spell="redmi"),
    BrandEntry(name="华为", spell="huawei"),
    BrandEntry(name="荣耀", spell="honor"),
    BrandEntry(name="vivo", spell="vivo"),
    BrandEntry(name="iQOO", spell="iqoo"),
    BrandEntry(name="OPPO", spell="oppo"),
    BrandEntry(name="一加", spell="oneplus"),
    BrandEntry(name="真我", spell="realme"),
    BrandEntry(name="魅族", spell="meizu"),
    BrandEntry(name="中兴", spell="zte"),
    BrandEntry(name="努比亚", spell="nubia"),
    BrandEntry(name="联想", spell="lenovo"),
    BrandEntry(name="摩托罗拉", spell="motorola"),
    BrandEntry(name="三星", spell="samsung"),
    BrandEntry(name="苹果", spell="apple"),
    BrandEntry(name="诺基亚", spell="nokia"),
)

# Each group lists spellings of the same marketed color; the first is primary.
DEFAULT_COLOR_VARIANTS: tuple[tuple[str, ...], ...] = (
    ("雾凇蓝", "雾松蓝"),
    ("曜石黑", "耀石黑"),
    ("玉龙雪", "玉龙白"),
    ("星河银", "银河银"),
)

# Basic color families: any listed character in a color name places the
# color in that family.
DEFAULT_BASIC_COLOR_FAMILIES: dict[str, str] = {
    "黑": "黑深曜玄纯简辰",
    "白": "白零雪空格告",
    "蓝": "蓝天星冰悠自薄",
    "红": "红",
    "绿": "绿原玉",
    "紫": "紫灵龙流极惬",
    "粉": "粉玛晶梦桃酷",
    "金": "金祥柠",
    "银": "银",
    "灰": "灰",
    "棕": "棕琥马旷",
    "青": "青",
}

# Supplier shorthand, applied before extraction.  An abbreviation is left
# alone when its expansion is already in the listing.
DEFAULT_TYPO_CORRECTIONS: dict[str, str] = {
    "雾松蓝": "雾凇蓝",
}

DEFAULT_ABBREVIATIONS: dict[str, str] = {
    "GT5": "Watch GT 5",
}

# Canonical brand name → spellings suppliers write instead.
DEFAULT_BRAND_ALIASES: dict[str, tuple[str, ...]] = {
    "华为": ("HUAWEI",),
    "小米": ("XIAOMI",),
}


@dataclass(frozen=True, eq=False)
class ReferenceData:
    """Read-only lookup tables for one matching session."""

    brands: tuple[BrandEntry, ...] = DEFAULT_BRANDS
    model_index: Mapping[str, frozenset[str]] = field(default_factory=dict)
    color_variants: tuple[tuple[str, ...], ...] = DEFAULT_COLOR_VARIANTS
    colors: tuple[str, ...] = ()
    basic_color_families: Mapping[str, str] = field(
        default_factory=lambda: dict(DEFAULT_BASIC_COLOR_FAMILIES)
    )
    extra_accessory_words: frozenset[str] = frozenset()
    typo_corrections: Mapping[str, str] = field(
        default_factory=lambda: dict(DEFAULT_TYPO_CORRECTIONS)
    )
    abbreviations: Mapping[str, str] = field(
        default_factory=lambda: dict(DEFAULT_ABBREVIATIONS)
    )
    brand_aliases: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: dict(DEFAULT_BRAND_ALIASES)
    )

    @cached_property
    def sorted_brand_aliases(self) -> tuple[tuple[str, str], ...]:
        """(alias, canonical brand) pairs, longest alias first."""
        pairs = [
            (alias, canonical)
            for canonical, aliases in self.brand_aliases.items()
            for alias in aliases
            if alias
        ]
        return tuple(sorted(pairs, key=lambda p: len(p[0]), reverse=True))

    @cached_property
    def sorted_abbreviations(self) -> tuple[tuple[str, str], ...]:
        return tuple(sorted(self.abbreviations.items(), key=lambda p: len(p[0]), reverse=True))

    @cached_property
    def sorted_brands(self) -> tuple[BrandEntry, ...]:
        """Brands ordered longest name first so specific names win."""
        return tuple(sorted(self.brands, key=lambda b: len(b.name), reverse=True))

    @cached_property
    def brand_spells(self) -> dict[str, str]:
        """Lowercase brand name or spell → lowercase spell."""
        spells: dict[str, str] = {}
        for brand in self.brands:
            if brand.spell:
                spell = brand.spell.lower()
                spells[brand.name.lower()] = spell
                spells.setdefault(spell, spell)
        return spells

    @cached_property
    def brand_removal_terms(self) -> tuple[str, ...]:
        terms = {b.name.lower() for b in self.brands}
        terms.update(b.spell.lower() for b in self.brands if b.spell)
        return tuple(sorted(terms, key=len, reverse=True))

    @cached_property
    def sorted_colors(self) -> tuple[str, ...]:
        return tuple(sorted(set(self.colors), key=len, reverse=True))

    @cached_property
    def _variant_lookup(self) -> dict[str, tuple[str, ...]]:
        lookup: dict[str, tuple[str, ...]] = {}
        for group in self.color_variants:
            for color in group:
                lookup[color] = group
        return lookup

    @cached_property
    def sorted_variant_colors(self) -> tuple[str, ...]:
        return tuple(sorted(self._variant_lookup, key=len, reverse=True))

    def variant_group(self, color: str) -> tuple[str, ...] | None:
        return self._variant_lookup.get(color)

    def models_for(self, brand: str | None) -> frozenset[str]:
        """Models indexed under a brand name or spell (empty when unknown)."""
        if not brand:
            return frozenset()
        key = brand.lower()
        models = self.model_index.get(key)
        if models is None:
            spell = self.brand_spells.get(key)
            models = self.model_index.get(spell, frozenset()) if spell else frozenset()
        return models

    @property
    def all_models(self) -> frozenset[str]:
        return self.model_index.get(GLOBAL_INDEX_KEY, frozenset())

    @property
    def model_count(self) -> int:
        return len(self.all_models)

    def with_catalog(
        self,
        brands: Iterable[BrandEntry] | None = None,
        model_index: Mapping[str, frozenset[str]] | None = None,
        colors: Iterable[str] | None = None,
    ) -> ReferenceData:
        """Return a copy with catalog-derived tables replaced."""
        changes: dict = {}
        if brands is not None:
            changes["brands"] = _merge_brands(tuple(brands), ())
        if model_index is not None:
            changes["model_index"] = dict(model_index)
        if colors is not None:
            changes["colors"] = tuple(colors)
        return replace(self, **changes)


def _merge_brands(
    base: tuple[BrandEntry, ...], extra: Iterable[BrandEntry],
) -> tuple[BrandEntry, ...]:
    seen: dict[str, BrandEntry] = {}
    for brand in (*base, *extra):
        if not brand.name.strip():
            continue
        seen.setdefault(brand.name.lower(), brand)
    return tuple(seen.values())


def _string_map(value) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(k): str(v) for k, v in value.items() if k and v}


# ---------------------------------------------------------------------------
# Overrides file
# ---------------------------------------------------------------------------


class MatcherOverrides:
    """Thread-safe container for supplemental matcher tables."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._brands: tuple[BrandEntry, ...] = ()
        self._color_variants: tuple[tuple[str, ...], ...] = ()
        self._colors: tuple[str, ...] = ()
        self._accessory_words: frozenset[str] = frozenset()
        self._typo_corrections: dict[str, str] = {}
        self._abbreviations: dict[str, str] = {}
        self._brand_aliases: dict[str, tuple[str, ...]] = {}

    def reload(self, path: str | Path | None) -> None:
        """Reload supplemental tables from a JSON file.

        A missing path clears the overrides.  An unreadable or malformed
        file is logged and the previously loaded tables are kept.
        """
        if not path:
            with self._lock:
                self._brands = ()
                self._color_variants = ()
                self._colors = ()
                self._accessory_words = frozenset()
                self._typo_corrections = {}
                self._abbreviations = {}
                self._brand_aliases = {}
            return

        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Failed to read matcher overrides from %s: %s", path, e)
            return
        if not isinstance(data, dict):
            logger.warning("Matcher overrides in %s must be a JSON object", path)
            return

        brands = tuple(
            BrandEntry(name=b["name"], spell=b.get("spell"))
            for b in data.get("brands", [])
            if isinstance(b, dict) and b.get("name")
        )
        variants = tuple(
            tuple(str(c) for c in group)
            for group in data.get("color_variants", [])
            if isinstance(group, list) and len(group) >= 2
        )
        colors = tuple(str(c) for c in data.get("colors", []) if c)
        accessory = frozenset(str(w) for w in data.get("accessory_keywords", []) if w)
        typos = _string_map(data.get("typo_corrections"))
        abbreviations = _string_map(data.get("abbreviations"))
        raw_aliases = data.get("brand_aliases")
        aliases = {
            str(brand): tuple(str(a) for a in names if a)
            for brand, names in raw_aliases.items()
            if isinstance(names, list)
        } if isinstance(raw_aliases, dict) else {}

        with self._lock:
            self._brands = brands
            self._color_variants = variants
            self._colors = colors
            self._accessory_words = accessory
            self._typo_corrections = typos
            self._abbreviations = abbreviations
            self._brand_aliases = aliases

        logger.info(
            "Matcher overrides reloaded: %d brands, %d color variant groups, "
            "%d colors, %d accessory words, %d text mappings",
            len(brands), len(variants), len(colors), len(accessory),
            len(typos) + len(abbreviations) + len(aliases),
        )

    def apply(self, reference: ReferenceData) -> ReferenceData:
        """Merge the supplemental tables into ``reference``."""
        with self._lock:
            brands = self._brands
            variants = self._color_variants
            colors = self._colors
            accessory = self._accessory_words
            typos = self._typo_corrections
            abbreviations = self._abbreviations
            aliases = self._brand_aliases
        return replace(
            reference,
            brands=_merge_brands(reference.brands, brands),
            color_variants=reference.color_variants + variants,
            colors=reference.colors + colors,
            extra_accessory_words=reference.extra_accessory_words | accessory,
            typo_corrections={**reference.typo_corrections, **typos},
            abbreviations={**reference.abbreviations, **abbreviations},
            brand_aliases={**reference.brand_aliases, **aliases},
        )

    @property
    def extra_accessory_words(self) -> frozenset[str]:
        with self._lock:
            return self._accessory_words


# Module-level singletons
overrides = MatcherOverrides()
DEFAULT_REFERENCE = ReferenceData()
