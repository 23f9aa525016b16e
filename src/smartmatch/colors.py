"""Color comparison.

Scores:
  identical name              → 1.0
  same variant group          → 0.9  (雾凇蓝 / 雾松蓝)
  same basic color family     → 0.5  (曜石黑 / 深空黑)
  otherwise                   → 0.0
"""

from __future__ import annotations

from .reference import DEFAULT_REFERENCE, ReferenceData

COLOR_EXACT = 1.0
COLOR_VARIANT = 0.9
COLOR_BASIC_FAMILY = 0.5


def basic_color_family(color: str, reference: ReferenceData | None = None) -> str | None:
    """Map a marketed color name to its basic color (黑, 白, 蓝, ...).

    A literal basic color character wins over the looser family hints, so
    "深海蓝" is blue even though "深" hints at black.
    """
    reference = reference or DEFAULT_REFERENCE
    families = reference.basic_color_families
    for basic in families:
        if basic in color:
            return basic
    for ch in color:
        for basic, hints in families.items():
            if ch in hints:
                return basic
    return None


def match_colors(a: str | None, b: str | None, reference: ReferenceData | None = None) -> float:
    if not a or not b:
        return 0.0
    if a == b:
        return COLOR_EXACT

    reference = reference or DEFAULT_REFERENCE
    group = reference.variant_group(a)
    if group is not None and b in group:
        return COLOR_VARIANT

    family_a = basic_color_family(a, reference)
    if family_a is not None and family_a == basic_color_family(b, reference):
        return COLOR_BASIC_FAMILY
    return 0.0
