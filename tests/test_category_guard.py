import pytest

from catalog_gate.category_guard import (
    apply_category_guard,
    apply_category_scoring,
    are_forms_compatible,
    check_category_match,
)
from catalog_gate.config import GateSettings
from catalog_gate.pipeline_types import REASON_CATEGORY_CONFLICT, REASON_FORM_INCOMPATIBLE

HARD = GateSettings(hard_blocks_enabled=True)
SOFT = GateSettings(hard_blocks_enabled=False)

ICE_CREAM = {"code": "ic", "product_name": "Chocolate ice cream", "categories_tags": ["en:ice-creams-and-sorbets"]}
CHOC_BAR = {"code": "cb", "product_name": "Milk chocolate", "categories_tags": ["en:chocolates", "en:bars"]}
CHOC_SPREAD = {"code": "cs", "product_name": "Choc", "categories_tags": ["en:chocolates", "en:spreads"]}


class _Collect:
    def __init__(self):
        self.events = []

    def __call__(self, event, payload):
        self.events.append((event, payload))

    def names(self):
        return [e for e, _ in self.events]


# ---------------------------------------------------------------------------
# check_category_match
# ---------------------------------------------------------------------------


def test_check_category_match_boost_and_penalty():
    bar = check_category_match(CHOC_BAR, "snack-sweet", SOFT)
    assert bar.match and not bar.conflict
    assert bar.boost == 3.0 and bar.penalty == 0.0
    assert bar.matched_categories == ("chocolates", "bars")

    both = check_category_match(CHOC_SPREAD, "snack-sweet", SOFT)
    assert both.match and both.conflict
    assert both.penalty == 5.0


def test_check_category_match_unknown_or_missing_category():
    for key in (None, "", "pizza"):
        check = check_category_match(CHOC_BAR, key, SOFT)
        assert not check.match and not check.conflict
        assert check.boost == 0.0 and check.penalty == 0.0


def test_check_category_match_uses_mapping_boost_unless_overridden():
    dessert = {"categories_tags": ["en:desserts"]}
    assert check_category_match(dessert, "dessert", SOFT).boost == 2.0
    assert check_category_match(dessert, "dessert", GateSettings(match_boost=4)).boost == 4.0


def test_check_category_match_reads_env_overrides(monkeypatch):
    monkeypatch.setenv("CATEGORY_MATCH_BOOST", "1.5")
    monkeypatch.setenv("CATEGORY_CONFLICT_PENALTY", "7")
    check = check_category_match(CHOC_SPREAD, "snack-sweet")
    assert check.boost == 1.5
    assert check.penalty == 7.0


# ---------------------------------------------------------------------------
# are_forms_compatible
# ---------------------------------------------------------------------------


def test_forms_unset_or_equal_are_compatible():
    assert are_forms_compatible(None, "bar").reason == "form_unset"
    assert are_forms_compatible("bar", "").confidence == 1.0
    same = are_forms_compatible("Bar", "bar")
    assert same.compatible and same.reason == "same_form"


def test_forms_family_rule():
    compat = are_forms_compatible("candy", "bar", ["en:chocolate-bars"])
    assert compat.compatible
    assert compat.confidence == 0.9
    assert compat.reason == "confectionery_family"
    assert compat.family == "confectionery"

    spreads = are_forms_compatible("jar", "spread", ["en:nut-spreads"])
    assert spreads.reason == "spreads_family"


def test_forms_uncertain_expected_form_falls_back():
    compat = are_forms_compatible("unknown", "candy", [])
    assert compat.compatible is True
    assert compat.confidence == pytest.approx(0.3)
    assert compat.fallback
    assert compat.reason == "extractor_uncertainty"


def test_forms_strict_pairs():
    pair = are_forms_compatible("candy", "bar", [])
    assert pair.compatible and pair.confidence == 0.8 and pair.reason == "strict_pair"
    assert are_forms_compatible("beverage", "drink", []).compatible

    nope = are_forms_compatible("bar", "frozen", [])
    assert not nope
    assert nope.confidence == 0.1
    assert nope.reason == "no_compatibility"


# ---------------------------------------------------------------------------
# apply_category_guard
# ---------------------------------------------------------------------------


def test_guard_no_op_without_category_or_entries():
    entries = [ICE_CREAM, CHOC_BAR]
    result = apply_category_guard(entries, None, "bar", brand_known=True, settings=HARD)
    assert result.valid_candidates == entries
    assert result.blocked == []
    assert not result.applied

    empty = apply_category_guard([], "snack-sweet", settings=HARD)
    assert empty.stats.total == 0


def test_guard_hard_blocks_conflict_for_known_brand():
    sink = _Collect()
    result = apply_category_guard(
        [ICE_CREAM, CHOC_BAR], "snack-sweet", "bar", brand_known=True, settings=HARD, sink=sink
    )

    assert [b.code for b in result.blocked] == ["ic"]
    assert result.blocked[0].reason == REASON_CATEGORY_CONFLICT
    assert [e["code"] for e in result.valid_candidates] == ["cb"]
    assert result.valid_candidates[0]["category_boost"] == 3
    assert result.valid_candidates[0]["category_match"] is True
    assert result.stats.total == len(result.blocked) + len(result.valid_candidates)

    assert "category_guard.blocked" in sink.names()
    assert "category_guard.applied" in sink.names()
    ice = [p for e, p in sink.events if e == "category_guard.ice_cream_blocked"]
    assert ice == [{"blocked_codes": ["ic"], "count": 1}]


def test_conflict_wins_over_simultaneous_match():
    result = apply_category_guard([CHOC_SPREAD], "snack-sweet", brand_known=True, settings=HARD, sink=_Collect())
    assert [b.code for b in result.blocked] == ["cs"]
    assert result.valid_candidates == []


def test_conflict_only_penalizes_when_brand_unknown_or_blocks_off():
    for brand_known, settings in ((False, HARD), (True, SOFT)):
        result = apply_category_guard(
            [CHOC_SPREAD], "snack-sweet", brand_known=brand_known, settings=settings, sink=_Collect()
        )
        assert result.blocked == []
        entry = result.valid_candidates[0]
        assert entry["category_boost"] == 3.0
        assert entry["category_penalty"] == 5.0
        assert entry["category_conflict"] is True
        assert [a.code for a in result.boosted] == ["cs"]
        assert [a.code for a in result.penalized] == ["cs"]


def test_guard_blocks_incompatible_form():
    result = apply_category_guard([ICE_CREAM], "snack-sweet", "bar", brand_known=False, settings=SOFT, sink=_Collect())
    assert len(result.blocked) == 1
    blocked = result.blocked[0]
    assert blocked.reason == REASON_FORM_INCOMPATIBLE
    assert blocked.actual_form == "frozen"
    assert blocked.compatibility_reason == "no_compatibility"
    assert blocked.confidence == 0.1


def test_guard_passes_entries_without_detectable_form():
    plain = {"code": "p", "product_name": "Assorted", "categories_tags": ["en:sweets"]}
    result = apply_category_guard([plain], "snack-sweet", "bar", settings=SOFT, sink=_Collect())
    assert [e["code"] for e in result.valid_candidates] == ["p"]
    assert result.boosted[0].form_preferred is None


def test_guard_does_not_mutate_inputs_and_records_preferred_form():
    entry = dict(CHOC_BAR)
    result = apply_category_guard([entry], "snack-sweet", settings=SOFT, sink=_Collect())
    assert "category_boost" not in entry
    assert result.boosted[0].form_preferred is True


def test_boosted_and_penalized_are_subsets_of_valid():
    entries = [ICE_CREAM, CHOC_BAR, CHOC_SPREAD, {"code": "x"}]
    result = apply_category_guard(entries, "snack-sweet", "bar", settings=SOFT, sink=_Collect())
    valid_codes = {e["code"] for e in result.valid_candidates}
    assert {a.code for a in result.boosted} <= valid_codes
    assert {a.code for a in result.penalized} <= valid_codes
    assert result.stats.total == len(result.blocked) + len(result.valid_candidates) == 4


def test_apply_category_scoring():
    assert apply_category_scoring(10, {"category_boost": 3.0, "category_penalty": 5.0}) == 8.0
    assert apply_category_scoring(10, {"category_boost": 3.0}) == 13.0
    assert apply_category_scoring(10, {}) == 10.0
    assert apply_category_scoring(1.5, None) == 1.5


def test_plain_chocolate_with_umbrella_tags_is_not_blocked_as_drink():
    dark = {
        "code": "dk",
        "product_name": "Dark chocolate 70%",
        "categories_tags": [
            "en:snacks",
            "en:sweet-snacks",
            "en:cocoa-and-its-products",
            "en:plant-based-foods-and-beverages",
            "en:chocolates",
            "en:dark-chocolates",
        ],
    }
    result = apply_category_guard([dark], "snack-sweet", "bar", brand_known=True, settings=HARD, sink=_Collect())
    assert result.blocked == []
    assert [e["code"] for e in result.valid_candidates] == ["dk"]
    assert result.valid_candidates[0]["category_boost"] == 3.0


def test_guard_tolerates_malformed_names_and_entries():
    odd = [
        {"code": "n1", "product_name": {"en": "Ice cream"}, "categories_tags": ["en:ice-creams-and-sorbets"]},
        {"code": "n2", "product_name": 12345, "categories_tags": ["en:chocolates"]},
        None,
    ]
    result = apply_category_guard(odd, "snack-sweet", "bar", brand_known=True, settings=HARD, sink=_Collect())
    assert [(b.code, b.name) for b in result.blocked] == [("n1", None)]
    assert result.boosted[0].code == "n2"
    assert result.stats.total == len(result.blocked) + len(result.valid_candidates) == 3
