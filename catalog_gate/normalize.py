from __future__ import annotations

"""
Text normalisation helpers shared by the brand gate and the category guard.

Two profiles exist and must not be mixed up:

* normalize_display(text) -> str
    Display-safe profile. Folds case and accents but keeps '&', apostrophes,
    hyphens, digits and spaces, so "M&M's" stays recognisable. This is the
    shape the extraction prompt is asked to produce.

* normalize_for_comparison(text) -> str
    Comparison profile used only for matching. On top of the display
    profile it folds '&' to "and", drops apostrophes and turns every other
    punctuation mark into a space.

Tag helpers:

* strip_lang_prefix(tag) -> str   'en:chocolates' -> 'chocolates'
* normalize_tag(tag) -> str       prefix stripped + lower-cased
"""

import re
import unicodedata
from typing import Any, Iterable, List

from .constants import BRAND_NORMALIZATION_EXAMPLES

_LANG_PREFIX_RE = re.compile(r"^[a-z]{2}:", flags=re.IGNORECASE)
_APOSTROPHES_RE = re.compile(r"['‘’`´]")
_PUNCT_RE = re.compile(r"[^\w\s]")
_WS_RE = re.compile(r"\s+")


# ---------------------------------------------------------------------------
# Low-level helpers
# ---------------------------------------------------------------------------


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        return str(value)
    return value


def fold_accents(text: Any) -> str:
    """Unicode-decompose and drop combining marks ("Häagen" -> "Haagen")."""
    decomposed = unicodedata.normalize("NFKD", _as_text(text))
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _collapse(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def normalize_display(text: Any) -> str:
    """Lower-case, accent-fold and collapse whitespace; punctuation survives."""
    return _collapse(fold_accents(text).lower())


def normalize_for_comparison(text: Any) -> str:
    """Heavier normalisation for substring matching of brands and names."""
    norm = normalize_display(text)
    if not norm:
        return ""
    norm = norm.replace("&", " and ")
    norm = _APOSTROPHES_RE.sub("", norm)
    norm = _PUNCT_RE.sub(" ", norm)
    return _collapse(norm)


def strip_lang_prefix(tag: Any) -> str:
    return _LANG_PREFIX_RE.sub("", _as_text(tag))


def normalize_tag(tag: Any) -> str:
    return strip_lang_prefix(tag).strip().lower()


def normalize_tags(tags: Iterable[Any]) -> List[str]:
    """Normalise a tag list, dropping empties. Non-list inputs yield []."""
    if isinstance(tags, str) or not isinstance(tags, (list, tuple)):
        return []
    out = [normalize_tag(t) for t in tags]
    return [t for t in out if t]


def brand_normalization_examples() -> str:
    """Render the reference pairs as "'M&M's' → 'm&m's', ..." for a prompt."""
    return ", ".join(
        f"'{original}' → '{normalized}'"
        for original, normalized in BRAND_NORMALIZATION_EXAMPLES.items()
    )
