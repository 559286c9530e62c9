from __future__ import annotations

"""
Gate orchestration for one extracted food item.

- Brand gate first (only when enforcement is on and a brand is known)
- Category / form guard on what the brand gate let through; the brand
  counts as known exactly when the brand gate was enforced
- Optional memoization of the whole decision in the shared cache
- ``rank_candidates`` folds the guard's boost/penalty into caller scores
"""

from typing import Any, Dict, Hashable, List, Mapping, Optional, Sequence, Tuple

from loguru import logger
from pydantic import BaseModel, Field

from .brand_gate import apply_brand_gate, should_enforce_brand_gate
from .cache import TTLCache, cached
from .category_guard import apply_category_guard, apply_category_scoring
from .config import GateSettings, load_settings
from .observability import DecisionSink
from .pipeline_types import BrandGateResult, CatalogEntry, CategoryGuardResult, entry_code


class ItemExpectation(BaseModel):
    """What the extraction step believes the user ate."""

    brand: Optional[str] = None
    brand_hints: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    form: Optional[str] = None


class PipelineResult(BaseModel):
    expectation: ItemExpectation
    brand: BrandGateResult
    category: CategoryGuardResult

    @property
    def candidates(self) -> List[Any]:
        return self.category.valid_candidates

    @property
    def total_blocked(self) -> int:
        return len(self.brand.blocked) + len(self.category.blocked)


def _run_gates(
    entries: List[CatalogEntry],
    expectation: ItemExpectation,
    settings: GateSettings,
    sink: Optional[DecisionSink],
) -> PipelineResult:
    enforce = should_enforce_brand_gate(expectation.brand, settings)
    brand = apply_brand_gate(
        entries,
        expectation.brand,
        hints=expectation.brand_hints,
        enforce=enforce,
        sink=sink,
    )
    category = apply_category_guard(
        brand.valid_candidates,
        expectation.category,
        expected_form=expectation.form,
        brand_known=brand.enforced,
        settings=settings,
        sink=sink,
    )
    logger.info(
        "Gates done: {} in, {} after brand, {} after category",
        len(entries),
        brand.stats.passed,
        category.stats.passed,
    )
    return PipelineResult(expectation=expectation, brand=brand, category=category)


def gate_candidates(
    entries: Optional[Sequence[CatalogEntry]],
    expectation: ItemExpectation,
    settings: Optional[GateSettings] = None,
    sink: Optional[DecisionSink] = None,
    cache_key: Optional[Hashable] = None,
    cache: Optional[TTLCache] = None,
) -> PipelineResult:
    """
    Run brand gate then category guard over ``entries``.

    With ``cache_key`` the result is memoized for ``settings.cache_ttl_ms``;
    a cache hit emits no decision events.
    """
    settings = load_settings(settings)
    entries = list(entries or [])

    def compute() -> PipelineResult:
        return _run_gates(entries, expectation, settings, sink)

    if cache_key is None:
        return compute()
    return cached(cache_key, settings.cache_ttl_ms, compute, cache=cache)


def rank_candidates(
    candidates: Sequence[CatalogEntry],
    base_scores: Mapping[str, float],
) -> List[Tuple[CatalogEntry, float]]:
    """
    Adjust each candidate's base score by its category annotations and sort
    best first; ties break on entry code. Missing base scores count as 0.
    """
    scored: List[Tuple[CatalogEntry, float]] = []
    for entry in candidates:
        code = entry_code(entry) or ""
        scored.append((entry, apply_category_scoring(base_scores.get(code, 0.0), entry)))
    scored.sort(key=lambda pair: (-pair[1], entry_code(pair[0]) or ""))
    return scored


def best_candidate(
    candidates: Sequence[CatalogEntry],
    base_scores: Mapping[str, float],
) -> Optional[Dict[str, Any]]:
    ranked = rank_candidates(candidates, base_scores)
    return ranked[0][0] if ranked else None
