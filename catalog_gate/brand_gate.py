from __future__ import annotations

"""
Brand Match Gate.

When the extractor is confident about a brand, search results from a
fuzzy backend still include other brands' products. This gate keeps only
the entries whose brand fields match the expected brand's synonym set.

Matching precedence per entry (first hit wins):

1. ``brands_tags`` (language prefix stripped)          -> "brands_tags"
2. ``brands`` as a comma string or a list             -> "brands_array"
3. product names, only when the entry has no brand tags -> "product_name_salvage"

A salvage hit is weaker evidence and carries a lower confidence so the
scorer can discount it.
"""

from typing import Any, Iterable, List, Optional, Sequence, Set

from .config import (
    CONFIDENCE_BRAND_FIELD,
    CONFIDENCE_BRAND_TAGS,
    CONFIDENCE_NAME_SALVAGE,
    GateSettings,
    load_settings,
)
from .constants import PRODUCT_NAME_FIELDS
from .normalize import normalize_for_comparison, strip_lang_prefix
from .observability import DecisionSink, resolve_sink
from .pipeline_types import (
    REASON_BRAND_MISMATCH,
    SOURCE_BRANDS_ARRAY,
    SOURCE_BRANDS_TAGS,
    SOURCE_NAME_SALVAGE,
    SOURCE_NONE,
    BlockedEntry,
    BrandGateResult,
    BrandGateStats,
    BrandMatch,
    CatalogEntry,
    SalvagedEntry,
    entry_code,
    entry_field,
    entry_name,
)
from .synonyms import expand_synonyms


# ---------------------------------------------------------------------------
# Field extraction
# ---------------------------------------------------------------------------


def _brand_tag_values(entry: Any) -> List[str]:
    tags = entry_field(entry, "brands_tags", [])
    if not isinstance(tags, (list, tuple)):
        return []
    out = [normalize_for_comparison(strip_lang_prefix(t)) for t in tags if t]
    return [t for t in out if t]


def _brand_field_values(entry: Any) -> List[str]:
    raw = entry_field(entry, "brands")
    if isinstance(raw, str):
        parts: Iterable[Any] = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        parts = raw
    else:
        return []
    out = [normalize_for_comparison(p) for p in parts if p]
    return [b for b in out if b]


def _product_name_values(entry: Any) -> List[str]:
    names = (entry_field(entry, f) for f in PRODUCT_NAME_FIELDS)
    out = [normalize_for_comparison(n) for n in names if isinstance(n, str)]
    return [n for n in out if n]


def _overlaps(synonyms: Set[str], values: Sequence[str]) -> bool:
    return any(s in v or v in s for s in synonyms for v in values)


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------


def _match_with_synonyms(entry: Any, synonyms: Set[str]) -> BrandMatch:
    used = frozenset(synonyms)
    if not synonyms:
        return BrandMatch(match=False, source=SOURCE_NONE, synonyms_used=used)

    tags = _brand_tag_values(entry)
    if _overlaps(synonyms, tags):
        return BrandMatch(True, SOURCE_BRANDS_TAGS, used, CONFIDENCE_BRAND_TAGS)

    if _overlaps(synonyms, _brand_field_values(entry)):
        return BrandMatch(True, SOURCE_BRANDS_ARRAY, used, CONFIDENCE_BRAND_FIELD)

    if not tags and _overlaps(synonyms, _product_name_values(entry)):
        return BrandMatch(True, SOURCE_NAME_SALVAGE, used, CONFIDENCE_NAME_SALVAGE)

    return BrandMatch(match=False, source=SOURCE_NONE, synonyms_used=used)


def match_brand(
    entry: CatalogEntry,
    brand_name: Optional[str],
    hints: Optional[Iterable[str]] = None,
) -> BrandMatch:
    """Decide whether ``entry`` belongs to ``brand_name`` (or one of its synonyms)."""
    return _match_with_synonyms(entry, expand_synonyms(brand_name, hints))


def should_enforce_brand_gate(brand_name: Optional[str], settings: Optional[GateSettings] = None) -> bool:
    """The gate only runs for a known brand and with the enforce flag on."""
    settings = load_settings(settings)
    return bool(brand_name and str(brand_name).strip()) and settings.enforce_brand_gate


# ---------------------------------------------------------------------------
# Gate
# ---------------------------------------------------------------------------


def _passthrough(entries: List[CatalogEntry]) -> BrandGateResult:
    n = len(entries)
    return BrandGateResult(
        valid_candidates=entries,
        stats=BrandGateStats(total=n, blocked=0, salvaged=0, passed=n),
        enforced=False,
    )


def apply_brand_gate(
    entries: Optional[Sequence[CatalogEntry]],
    brand_name: Optional[str],
    hints: Optional[Iterable[str]] = None,
    enforce: bool = True,
    sink: Optional[DecisionSink] = None,
) -> BrandGateResult:
    """
    Partition ``entries`` into valid / blocked / salvaged for ``brand_name``.

    Not enforcing, an empty brand, or no entries make this a no-op where
    every entry passes. Invariants: ``passed + len(blocked) == total`` and
    ``len(salvaged) <= passed``.
    """
    entries = list(entries or [])
    if not enforce or not brand_name or not str(brand_name).strip() or not entries:
        return _passthrough(entries)

    emit = resolve_sink(sink)
    hints = list(hints or [])
    synonyms = expand_synonyms(brand_name, hints)

    valid: List[CatalogEntry] = []
    blocked: List[BlockedEntry] = []
    salvaged: List[SalvagedEntry] = []

    for entry in entries:
        verdict = _match_with_synonyms(entry, synonyms)
        if verdict.match:
            valid.append(entry)
            if verdict.salvaged:
                salvaged.append(
                    SalvagedEntry(
                        code=entry_code(entry),
                        name=entry_name(entry),
                        source=verdict.source,
                        confidence=verdict.confidence,
                    )
                )
        else:
            blocked.append(
                BlockedEntry(
                    code=entry_code(entry),
                    name=entry_name(entry),
                    brands=entry_field(entry, "brands", "N/A"),
                    reason=REASON_BRAND_MISMATCH,
                )
            )

    emit(
        "brand_gate.applied",
        {
            "brand": brand_name,
            "synonyms": sorted(synonyms)[:5],
            "total_products": len(entries),
            "valid_candidates": len(valid),
            "blocked_count": len(blocked),
            "salvaged_count": len(salvaged),
            "blocked_codes": [b.code for b in blocked],
        },
    )
    if salvaged:
        emit(
            "brand_gate.salvaged",
            {
                "brand": brand_name,
                "salvaged_count": len(salvaged),
                "salvaged_codes": [s.code for s in salvaged],
            },
        )

    return BrandGateResult(
        valid_candidates=valid,
        blocked=blocked,
        salvaged=salvaged,
        stats=BrandGateStats(
            total=len(entries),
            blocked=len(blocked),
            salvaged=len(salvaged),
            passed=len(valid),
        ),
        enforced=True,
    )
