"""Form and family inference for catalog entries."""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional, Pattern, Tuple

from .constants import (
    FAMILY_TERMS,
    FORM_NAME_KEYWORDS,
    FORM_NEUTRAL_TAGS,
    FORM_TAG_FRAGMENTS,
    PRODUCT_NAME_FIELDS,
)
from .normalize import normalize_for_comparison, normalize_tag, normalize_tags
from .pipeline_types import entry_field

_Compiled = Tuple[Tuple[str, Tuple[Pattern[str], ...]], ...]


def _compile_keywords(table: Tuple[Tuple[str, Tuple[str, ...]], ...]) -> _Compiled:
    compiled = []
    for form, keywords in table:
        patterns = tuple(
            re.compile(r"\b" + re.escape(normalize_for_comparison(kw)) + r"\b") for kw in keywords
        )
        compiled.append((form, patterns))
    return tuple(compiled)


def _compile_fragments(table: Tuple[Tuple[str, Tuple[str, ...]], ...]) -> _Compiled:
    compiled = []
    for form, fragments in table:
        patterns = tuple(
            re.compile(r"(?:^|-)" + re.escape(frag) + r"s?(?:-|$)") for frag in fragments
        )
        compiled.append((form, patterns))
    return tuple(compiled)


_NAME_PATTERNS = _compile_keywords(FORM_NAME_KEYWORDS)
_TAG_PATTERNS = _compile_fragments(FORM_TAG_FRAGMENTS)


def _informative(tags: Iterable[str]) -> List[str]:
    return [t for t in tags if t and t not in FORM_NEUTRAL_TAGS]


def extract_categories(entry: Any) -> List[str]:
    """Category and label tags of an entry, prefix-stripped and lower-cased."""
    return normalize_tags(entry_field(entry, "categories_tags", [])) + normalize_tags(
        entry_field(entry, "labels_tags", [])
    )


def _product_name(entry: Any) -> str:
    for field_name in PRODUCT_NAME_FIELDS:
        raw = entry_field(entry, field_name)
        name = normalize_for_comparison(raw) if isinstance(raw, str) else ""
        if name:
            return name
    return ""


def detect_form_from_tags(tags: Iterable[str]) -> Optional[str]:
    tags = _informative(normalize_tag(t) for t in tags)
    for form, patterns in _TAG_PATTERNS:
        if any(p.search(tag) for tag in tags for p in patterns):
            return form
    return None


def detect_form_from_name(name: str) -> Optional[str]:
    if not name:
        return None
    for form, patterns in _NAME_PATTERNS:
        if any(p.search(name) for p in patterns):
            return form
    return None


def detect_form(entry: Any) -> Optional[str]:
    """
    Infer the physical form of an entry (bar, spread, drink, ...).

    Tags are the stronger signal and are checked first; the product name is
    only consulted when no tag names a form. Returns None when nothing hits.
    """
    return detect_form_from_tags(extract_categories(entry)) or detect_form_from_name(
        _product_name(entry)
    )


def detect_family(category_tags: Iterable[Any]) -> Optional[str]:
    """Coarse family (confectionery, dairy, beverages, spreads) from category tags."""
    if category_tags is None or isinstance(category_tags, str):
        return None
    tags = _informative(normalize_tag(t) for t in category_tags)
    blob = " ".join(t.replace("-", " ") for t in tags)
    if not blob:
        return None
    for family, terms in FAMILY_TERMS:
        if any(term in blob for term in terms):
            return family
    return None


def describe_entry(entry: Any) -> Dict[str, Any]:
    """Classifier view of one entry, for diagnostics and reports."""
    categories = extract_categories(entry)
    return {
        "form": detect_form(entry),
        "family": detect_family(categories),
        "categories": categories,
    }
