"""Typed containers shared across gate modules."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple

from pydantic import BaseModel, Field

CatalogEntry = Dict[str, Any]

SOURCE_BRANDS_TAGS = "brands_tags"
SOURCE_BRANDS_ARRAY = "brands_array"
SOURCE_NAME_SALVAGE = "product_name_salvage"
SOURCE_NONE = "none"

REASON_BRAND_MISMATCH = "brand_mismatch"
REASON_CATEGORY_CONFLICT = "category_mismatch_with_known_brand"
REASON_FORM_INCOMPATIBLE = "form_incompatible"
REASON_CATEGORY_MATCH = "category_match"
REASON_CATEGORY_CONFLICT_PENALTY = "category_conflict"


# ---------------------------------------------------------------------------
# Per-entry verdicts (plain dataclasses, never serialised)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BrandMatch:
    match: bool
    source: str
    synonyms_used: FrozenSet[str]
    confidence: float = 0.0

    @property
    def salvaged(self) -> bool:
        return self.source == SOURCE_NAME_SALVAGE


@dataclass(frozen=True)
class CategoryCheck:
    match: bool = False
    conflict: bool = False
    boost: float = 0.0
    penalty: float = 0.0
    matched_categories: Tuple[str, ...] = ()
    categories: Tuple[str, ...] = ()
    preferred_forms: Tuple[str, ...] = ()


@dataclass(frozen=True)
class FormCompatibility:
    compatible: bool
    confidence: float
    reason: str
    family: Optional[str] = None
    fallback: bool = False

    def __bool__(self) -> bool:
        return self.compatible


# ---------------------------------------------------------------------------
# Gate results
# ---------------------------------------------------------------------------

class BlockedEntry(BaseModel):
    """A rejected candidate and the machine-readable reason it was dropped."""

    code: Optional[str] = None
    name: Optional[str] = None
    reason: str
    brands: Optional[Any] = None
    categories: List[str] = Field(default_factory=list)
    expected_form: Optional[str] = None
    actual_form: Optional[str] = None
    compatibility_reason: Optional[str] = None
    confidence: Optional[float] = None


class SalvagedEntry(BaseModel):
    code: Optional[str] = None
    name: Optional[str] = None
    source: str = SOURCE_NAME_SALVAGE
    confidence: float = 0.0


class ScoreAdjustment(BaseModel):
    code: Optional[str] = None
    amount: float
    reason: str
    form_preferred: Optional[bool] = None


class BrandGateStats(BaseModel):
    total: int = 0
    blocked: int = 0
    salvaged: int = 0
    passed: int = 0


class BrandGateResult(BaseModel):
    valid_candidates: List[Any] = Field(default_factory=list)
    blocked: List[BlockedEntry] = Field(default_factory=list)
    salvaged: List[SalvagedEntry] = Field(default_factory=list)
    stats: BrandGateStats = Field(default_factory=BrandGateStats)
    enforced: bool = False


class CategoryGuardStats(BaseModel):
    total: int = 0
    blocked: int = 0
    boosted: int = 0
    penalized: int = 0
    passed: int = 0


class CategoryGuardResult(BaseModel):
    valid_candidates: List[Any] = Field(default_factory=list)
    blocked: List[BlockedEntry] = Field(default_factory=list)
    boosted: List[ScoreAdjustment] = Field(default_factory=list)
    penalized: List[ScoreAdjustment] = Field(default_factory=list)
    stats: CategoryGuardStats = Field(default_factory=CategoryGuardStats)
    applied: bool = False


def entry_code(entry: Any) -> Optional[str]:
    code = entry_field(entry, "code")
    return None if code is None else str(code)


def entry_field(entry: Any, name: str, default: Any = None) -> Any:
    """Read a field from a dict-like entry; anything else reads as absent."""
    if isinstance(entry, Mapping):
        value = entry.get(name, default)
        return default if value is None else value
    return default


def entry_name(entry: Any) -> Optional[str]:
    """Display name of an entry; non-scalar names (e.g. a language dict) read as absent."""
    name = entry_field(entry, "product_name")
    if isinstance(name, str):
        return name
    if isinstance(name, (int, float)) and not isinstance(name, bool):
        return str(name)
    return None
