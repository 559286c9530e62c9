from __future__ import annotations

"""
Category / form compatibility guard.

Lexical search happily returns ice cream for "chocolate bar". For an
expected canonical category (snack-sweet, dairy, ...) this module

* annotates each candidate with a category boost and/or conflict penalty,
* hard-blocks candidates whose category conflicts while the brand is known
  (when hard blocks are enabled),
* hard-blocks candidates whose detected form is incompatible with the
  expected form under the tiered rules in :func:`are_forms_compatible`.

Form compatibility tiers, first decisive one wins:

  a. family rule   both forms in the family's list       -> 0.9
  b. uncertainty   expected form is one the extractor
                   guesses poorly (unknown/raw/soup/loaf) -> 0.3, fallback
  c. strict pairs  candy<->bar, spread<->jar, ...        -> 0.8, else 0.1
"""

from typing import Any, Iterable, List, Mapping, Optional, Sequence

from .classify import detect_family, detect_form, extract_categories
from .config import GateSettings, load_settings
from .constants import CATEGORY_MAPPINGS, FAMILY_FORM_RULES, STRICT_FORM_PAIRS, UNCERTAIN_FORMS
from .observability import DecisionSink, resolve_sink
from .pipeline_types import (
    REASON_CATEGORY_CONFLICT,
    REASON_CATEGORY_CONFLICT_PENALTY,
    REASON_CATEGORY_MATCH,
    REASON_FORM_INCOMPATIBLE,
    BlockedEntry,
    CatalogEntry,
    CategoryCheck,
    CategoryGuardResult,
    CategoryGuardStats,
    FormCompatibility,
    ScoreAdjustment,
    entry_code,
    entry_field,
    entry_name,
)

_ICE_CREAM_MARKERS = ("ice-cream", "ice-creams", "frozen")


# ---------------------------------------------------------------------------
# Category match
# ---------------------------------------------------------------------------


def _shares_substring(a: str, b: str) -> bool:
    return a in b or b in a


def check_category_match(
    entry: CatalogEntry,
    expected_category: Optional[str],
    settings: Optional[GateSettings] = None,
) -> CategoryCheck:
    """
    Compare an entry's category/label tags with the expected category.

    ``match`` and ``conflict`` are independent and may both be true; callers
    hard-blocking on conflict must let it win.
    """
    if not expected_category:
        return CategoryCheck()
    mapping = CATEGORY_MAPPINGS.get(expected_category)
    if mapping is None:
        return CategoryCheck()

    settings = load_settings(settings)
    categories = extract_categories(entry)

    matched = tuple(
        cat for cat in categories if any(_shares_substring(cat, m) for m in mapping.match_tags)
    )
    conflict = any(
        _shares_substring(cat, c) for cat in categories for c in mapping.conflict_tags
    )
    match = bool(matched)

    return CategoryCheck(
        match=match,
        conflict=conflict,
        boost=settings.boost_for(mapping.boost) if match else 0.0,
        penalty=settings.conflict_penalty if conflict else 0.0,
        matched_categories=matched,
        categories=tuple(categories),
        preferred_forms=mapping.preferred_forms,
    )


# ---------------------------------------------------------------------------
# Form compatibility
# ---------------------------------------------------------------------------


def _tiered_compatibility(expected: str, actual: str, categories: Iterable[str]) -> FormCompatibility:
    family = detect_family(categories)
    rule = FAMILY_FORM_RULES.get(family) if family else None
    if rule is not None and expected in rule.compatible and actual in rule.compatible:
        return FormCompatibility(True, 0.9, rule.reason, family=family)

    if expected in UNCERTAIN_FORMS:
        return FormCompatibility(True, 0.3, "extractor_uncertainty", family=family, fallback=True)

    if frozenset({expected, actual}) in STRICT_FORM_PAIRS:
        return FormCompatibility(True, 0.8, "strict_pair", family=family)
    return FormCompatibility(False, 0.1, "no_compatibility", family=family)


def are_forms_compatible(
    expected_form: Optional[str],
    actual_form: Optional[str],
    categories: Optional[Iterable[str]] = None,
) -> FormCompatibility:
    """Whether an entry of ``actual_form`` can satisfy a request for ``expected_form``."""
    if not expected_form or not actual_form:
        return FormCompatibility(True, 1.0, "form_unset")
    expected = expected_form.strip().lower()
    actual = actual_form.strip().lower()
    if expected == actual:
        return FormCompatibility(True, 1.0, "same_form")
    return _tiered_compatibility(expected, actual, list(categories or []))


# ---------------------------------------------------------------------------
# Guard
# ---------------------------------------------------------------------------


def _annotate(entry: CatalogEntry, check: CategoryCheck) -> CatalogEntry:
    annotated = dict(entry) if isinstance(entry, Mapping) else {}
    annotated["category_boost"] = check.boost
    annotated["category_penalty"] = check.penalty
    annotated["category_match"] = check.match
    annotated["category_conflict"] = check.conflict
    return annotated


def _emit_ice_cream_blocks(emit: DecisionSink, blocked: List[BlockedEntry]) -> None:
    hits = [
        b for b in blocked if any(m in cat for cat in b.categories for m in _ICE_CREAM_MARKERS)
    ]
    if hits:
        emit(
            "category_guard.ice_cream_blocked",
            {"blocked_codes": [b.code for b in hits], "count": len(hits)},
        )


def apply_category_guard(
    entries: Optional[Sequence[CatalogEntry]],
    expected_category: Optional[str],
    expected_form: Optional[str] = None,
    brand_known: bool = False,
    settings: Optional[GateSettings] = None,
    sink: Optional[DecisionSink] = None,
) -> CategoryGuardResult:
    """
    Filter and annotate ``entries`` for ``expected_category`` / ``expected_form``.

    Without an expected category or entries every entry passes untouched.
    Otherwise accepted entries come back as copies carrying
    ``category_boost``, ``category_penalty``, ``category_match`` and
    ``category_conflict``. ``total == len(blocked) + len(valid_candidates)``.
    """
    entries = list(entries or [])
    if not expected_category or not entries:
        n = len(entries)
        return CategoryGuardResult(
            valid_candidates=entries,
            stats=CategoryGuardStats(total=n, passed=n),
        )

    settings = load_settings(settings)
    emit = resolve_sink(sink)

    valid: List[CatalogEntry] = []
    blocked: List[BlockedEntry] = []
    boosted: List[ScoreAdjustment] = []
    penalized: List[ScoreAdjustment] = []

    for entry in entries:
        check = check_category_match(entry, expected_category, settings)
        actual_form = detect_form(entry)
        code = entry_code(entry)
        name = entry_name(entry)

        if settings.hard_blocks_enabled and brand_known and check.conflict:
            blocked.append(
                BlockedEntry(
                    code=code,
                    name=name,
                    reason=REASON_CATEGORY_CONFLICT,
                    categories=list(check.categories),
                    expected_form=expected_form,
                    actual_form=actual_form,
                )
            )
            continue

        if expected_form and actual_form:
            compat = are_forms_compatible(expected_form, actual_form, check.categories)
            if not compat.compatible:
                blocked.append(
                    BlockedEntry(
                        code=code,
                        name=name,
                        reason=REASON_FORM_INCOMPATIBLE,
                        categories=list(check.categories),
                        expected_form=expected_form,
                        actual_form=actual_form,
                        compatibility_reason=compat.reason,
                        confidence=compat.confidence,
                    )
                )
                continue

        valid.append(_annotate(entry, check))
        if check.boost > 0:
            boosted.append(
                ScoreAdjustment(
                    code=code,
                    amount=check.boost,
                    reason=REASON_CATEGORY_MATCH,
                    form_preferred=actual_form in check.preferred_forms if actual_form else None,
                )
            )
        if check.penalty > 0:
            penalized.append(
                ScoreAdjustment(code=code, amount=check.penalty, reason=REASON_CATEGORY_CONFLICT_PENALTY)
            )

    for b in blocked:
        emit(
            "category_guard.blocked",
            {
                "code": b.code,
                "reason": b.reason,
                "categories": b.categories,
                "compatibility_reason": b.compatibility_reason,
                "confidence": b.confidence,
            },
        )
    emit(
        "category_guard.applied",
        {
            "expected_category": expected_category,
            "expected_form": expected_form,
            "brand_known": brand_known,
            "hard_blocks_enabled": settings.hard_blocks_enabled,
            "total_products": len(entries),
            "valid_candidates": len(valid),
            "blocked_count": len(blocked),
            "boosted_count": len(boosted),
            "penalized_count": len(penalized),
        },
    )
    if expected_category == "snack-sweet":
        _emit_ice_cream_blocks(emit, blocked)

    return CategoryGuardResult(
        valid_candidates=valid,
        blocked=blocked,
        boosted=boosted,
        penalized=penalized,
        stats=CategoryGuardStats(
            total=len(entries),
            blocked=len(blocked),
            boosted=len(boosted),
            penalized=len(penalized),
            passed=len(valid),
        ),
        applied=True,
    )


def apply_category_scoring(base_score: float, entry: Any) -> float:
    """``base_score + category_boost - category_penalty``; missing fields count as 0."""
    boost = entry_field(entry, "category_boost", 0) or 0
    penalty = entry_field(entry, "category_penalty", 0) or 0
    return float(base_score) + float(boost) - float(penalty)
