from __future__ import annotations

"""Static lookup tables shared by the gates.

Everything here is built once at import and exposed read-only
(``MappingProxyType`` / tuples / frozensets) so no request can mutate a
table another request relies on. The form and family tables were authored
from observed false positives; treat them as configuration.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import FrozenSet, Mapping, Tuple

from .config import DEFAULT_MATCH_BOOST


# ---------------------------------------------------------------------------
# Brands
# ---------------------------------------------------------------------------

# Keys are compared in comparison-normalized form; keys that normalize to
# the same string ("coca cola" / "coca-cola") are merged by the synonym
# expander into one alias group.
BRAND_ALIASES: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "mr beast": ("mrbeast", "feastables", "mr. beast"),
    "feastables": ("mr beast", "mrbeast", "mr. beast"),
    "coca cola": ("coca-cola", "coke", "cocacola"),
    "coca-cola": ("coca cola", "coke", "cocacola"),
    "ben jerry": ("ben & jerry", "ben and jerry", "ben jerrys", "ben & jerrys"),
    "ben & jerry": ("ben jerry", "ben and jerry", "ben jerrys", "ben & jerrys"),
    "mcdonalds": ("mcdonald", "mc donald", "mc donalds", "mcd"),
    "central lechera asturiana": ("asturiana", "lechera asturiana", "central lechera"),
    "nutella": ("ferrero nutella", "nutella ferrero"),
    "amazon": ("by amazon", "amazon brand", "amazon basics"),
})

# Reference pairs for the display-safe brand normalizer; rendered into the
# extraction prompt so the model emits the same shape we compare against.
BRAND_NORMALIZATION_EXAMPLES: Mapping[str, str] = MappingProxyType({
    "M&M's": "m&m's",
    "Ben & Jerry's": "ben & jerry's",
    "Coca-Cola": "coca-cola",
    "Häagen-Dazs": "haagen-dazs",
    "Central Lechera Asturiana": "central lechera asturiana",
    "Dr. Pepper": "dr. pepper",
    "7-Eleven": "7-eleven",
    "L'Oréal": "l'oreal",
    "McDonald's": "mcdonald's",
    "Kellogg's": "kellogg's",
})


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CategoryMapping:
    match_tags: Tuple[str, ...]
    conflict_tags: Tuple[str, ...]
    boost: float
    preferred_forms: Tuple[str, ...] = ()


CATEGORY_MAPPINGS: Mapping[str, CategoryMapping] = MappingProxyType({
    "snack-sweet": CategoryMapping(
        match_tags=("chocolates", "bars", "candies", "sweets", "confectioneries"),
        conflict_tags=(
            "ice-creams-and-sorbets",
            "frozen-desserts",
            "dairy-desserts",
            "spreads",
            "nut-butters",
            "peanut-butters",
            "oilseed-purees",
            "plant-based-spreads",
        ),
        boost=DEFAULT_MATCH_BOOST,
        preferred_forms=("bar", "candy"),
    ),
    "dessert": CategoryMapping(
        match_tags=("desserts", "puddings", "mousses", "tiramisu"),
        conflict_tags=("chocolates", "candies", "ice-creams-and-sorbets"),
        boost=2.0,
        preferred_forms=("jar", "whipped"),
    ),
    "dairy": CategoryMapping(
        match_tags=("milk", "cream", "yogurt", "cheese", "dairy"),
        conflict_tags=("plant-based-milk-substitutes", "soy-milk", "almond-milk"),
        boost=DEFAULT_MATCH_BOOST,
        preferred_forms=("drink", "spread", "whipped"),
    ),
    "beverage": CategoryMapping(
        match_tags=("beverages", "sodas", "juices", "waters", "energy-drinks"),
        conflict_tags=("dairy", "milk", "yogurt"),
        boost=2.0,
        preferred_forms=("drink",),
    ),
    "cookie-biscuit": CategoryMapping(
        match_tags=("biscuits", "cookies", "crackers", "wafers"),
        conflict_tags=("chocolates", "bars", "ice-creams"),
        boost=DEFAULT_MATCH_BOOST,
        preferred_forms=(),
    ),
})


# ---------------------------------------------------------------------------
# Forms
# ---------------------------------------------------------------------------

# Checked in this order against category + label tags; first form wins.
# A fragment matches whole hyphen-delimited segments of a tag, with an
# optional plural "s" ("ice-cream" hits "ice-creams-and-sorbets", "bars"
# does not hit "crowbars").
FORM_TAG_FRAGMENTS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("whipped", ("whipped-cream", "nata-montada")),
    ("spray", ("spray", "aerosol")),
    ("frozen", ("ice-cream", "sorbet", "frozen")),
    ("spread", ("spreads", "nut-butters", "peanut-butters")),
    ("drink", ("beverages", "drinks", "sodas", "juices")),
    ("bar", ("chocolate-bars", "bars", "tablets")),
    ("candy", ("candies", "confectioneries", "bonbons")),
    ("jar", ("jars",)),
)

# Umbrella tags that say nothing about form or family; plain chocolates
# routinely carry "plant-based-foods-and-beverages".
FORM_NEUTRAL_TAGS: FrozenSet[str] = frozenset({
    "plant-based-foods-and-beverages",
    "plant-based-foods",
    "foods-and-beverages",
    "beverages-and-beverages-preparations",
})

# Name keywords, fixed priority; matched on whole words of the normalized name.
FORM_NAME_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("spray", ("spray", "aerosol")),
    ("whipped", ("whipped", "montada", "chantilly")),
    ("frozen", ("ice cream", "helado", "sorbet", "frozen")),
    ("spread", ("spread", "untable", "peanut butter", "crema de cacao")),
    ("drink", ("drink", "bebida", "soda", "juice", "zumo", "refresco")),
    ("bar", ("bar", "bars", "tablet", "tableta", "barrita")),
    ("candy", ("candy", "candies", "caramelo", "gummies", "bonbon")),
    ("jar", ("jar", "tarro")),
)


# ---------------------------------------------------------------------------
# Families
# ---------------------------------------------------------------------------

# Priority order matters: confectionery terms are checked before dairy, etc.
FAMILY_TERMS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("confectionery", ("chocolate", "candies", "confectioneries", "sweet snacks")),
    ("dairy", ("dairy", "milk", "butter", "cream")),
    ("beverages", ("beverage", "drinks", "sodas", "juices")),
    ("spreads", ("spreads",)),
)


@dataclass(frozen=True)
class FamilyRule:
    compatible: FrozenSet[str]
    reason: str


FAMILY_FORM_RULES: Mapping[str, FamilyRule] = MappingProxyType({
    "confectionery": FamilyRule(frozenset({"candy", "bar", "tablet", "raw"}), "confectionery_family"),
    "dairy": FamilyRule(frozenset({"spread", "jar", "whipped", "drink", "loaf"}), "dairy_family"),
    "beverages": FamilyRule(frozenset({"drink", "beverage", "bottle", "can"}), "beverages_family"),
    "spreads": FamilyRule(frozenset({"spread", "jar", "tub"}), "spreads_family"),
})

# Forms the extractor is known to guess unreliably.
UNCERTAIN_FORMS: FrozenSet[str] = frozenset({"unknown", "raw", "soup", "loaf"})

STRICT_FORM_PAIRS: FrozenSet[FrozenSet[str]] = frozenset({
    frozenset({"candy", "bar"}),
    frozenset({"candy", "tablet"}),
    frozenset({"spread", "jar"}),
    frozenset({"drink", "beverage"}),
})

# Product-name fields consulted by the brand salvage path, in order.
PRODUCT_NAME_FIELDS: Tuple[str, ...] = (
    "product_name",
    "product_name_en",
    "product_name_fr",
    "product_name_es",
    "product_name_de",
    "abbreviated_product_name",
)
