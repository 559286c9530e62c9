from __future__ import annotations

"""Brand synonym expansion and brand string variants.

``expand_synonyms`` builds the set of strings treated as the same brand when
the gate compares an expected brand against catalog brand fields. It stores
both the comparison-normalized and the plain lower-cased form of every
variant so substring tests work against fields normalized either way.
"""

import re
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from .constants import BRAND_ALIASES
from .normalize import fold_accents, normalize_display, normalize_for_comparison

_CAMEL_BOUNDARY_RE = re.compile(r"([a-z])([A-Z])")
_SINGLE_LETTER_AMP_RE = re.compile(r"^([a-z])\s*&\s*([a-z])('?s)?$", flags=re.IGNORECASE)


def _merge_alias_groups(table: Mapping[str, Iterable[str]]) -> Mapping[str, Tuple[str, ...]]:
    """Re-key the alias table by normalized key, merging keys that collide."""
    merged: Dict[str, List[str]] = {}
    for key, aliases in table.items():
        bucket = merged.setdefault(normalize_for_comparison(key), [])
        for alias in aliases:
            if alias not in bucket:
                bucket.append(alias)
    return MappingProxyType({k: tuple(v) for k, v in merged.items()})


_ALIAS_GROUPS = _merge_alias_groups(BRAND_ALIASES)


def _variants(value: str) -> Tuple[str, str]:
    return normalize_for_comparison(value), value.lower()


def _spacing_variant(brand_name: str, normalized: str) -> Optional[str]:
    if " " in normalized:
        return normalized.replace(" ", "")  # "mr beast" -> "mrbeast"
    if len(normalized) > 6:
        # case is gone after normalization, so split on the raw spelling
        spaced = normalize_for_comparison(_CAMEL_BOUNDARY_RE.sub(r"\1 \2", fold_accents(brand_name)))
        if spaced != normalized:
            return spaced  # "MrBeast" -> "mr beast"
    return None


def expand_synonyms(brand_name: Optional[str], hints: Optional[Iterable[str]] = None) -> Set[str]:
    """
    Return every string considered equivalent to ``brand_name``.

    Sources, in order: the brand itself, caller hints (e.g. extractor
    synonyms), the static alias table, and a spacing heuristic. Members of
    length <= 1 are dropped. Calling twice with the same arguments yields
    equal sets.
    """
    if not brand_name or not str(brand_name).strip():
        return set()
    brand_name = str(brand_name)

    normalized = normalize_for_comparison(brand_name)
    synonyms: Set[str] = set(_variants(brand_name))

    for hint in hints or ():
        if hint and str(hint).strip():
            synonyms.update(_variants(str(hint)))

    for alias in _ALIAS_GROUPS.get(normalized, ()):
        synonyms.update(_variants(alias))

    spaced = _spacing_variant(brand_name, normalized)
    if spaced:
        synonyms.add(spaced)

    return {s for s in synonyms if len(s) > 1}


# ---------------------------------------------------------------------------
# Search-side variants
# ---------------------------------------------------------------------------


def brand_slugs(value: Optional[str]) -> List[str]:
    """
    ``brands_tags``-style slugs for a brand.

    "Coca-Cola" -> ["coca-cola"]; single letters joined by '&' get both
    spellings seen in the catalog: "M&M's" -> ["m-ms", "m-m-s"].
    """
    if not value:
        return []
    slug = fold_accents(value).lower()
    slug = slug.replace("&", "-")
    slug = re.sub(r"[\"'‘’`´]", "", slug)
    slug = slug.replace("_", "-")
    slug = re.sub(r"[^a-z0-9\s-]", "-", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug).strip("-")

    out = [slug] if slug else []
    m = _SINGLE_LETTER_AMP_RE.match(value.strip())
    if m:
        first, second, possessive = m.group(1).lower(), m.group(2).lower(), m.group(3)
        out.append(f"{first}-{second}{'s' if possessive else ''}")
        out.append(f"{first}-{second}{'-s' if possessive else ''}")

    return list(dict.fromkeys(out))


def brand_search_variants(brand: Optional[str], limit: int = 2) -> List[str]:
    """Query-side spellings of a brand: display form, hyphen slug, collapsed form."""
    if not brand:
        return []
    variants: List[str] = []
    display = normalize_display(brand)
    if display:
        variants.append(display)

    hyphenated = normalize_for_comparison(brand).replace(" ", "-")
    if hyphenated and hyphenated not in variants:
        variants.append(hyphenated)

    collapsed = re.sub(r"[^a-z0-9]", "", brand.lower())
    if collapsed and collapsed not in variants:
        variants.append(collapsed)

    return variants[:limit]
