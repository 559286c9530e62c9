import json

import pandas as pd
import pytest

from catalog_gate.config import GateSettings
from catalog_gate.pipeline import ItemExpectation, gate_candidates
from catalog_gate.report import REPORT_COLUMNS, decisions_frame, load_candidates, main, summary

CANDIDATES = [
    {
        "code": "100",
        "product_name": "Feastables Ice Cream",
        "brands_tags": ["feastables"],
        "categories_tags": ["en:ice-creams-and-sorbets"],
    },
    {
        "code": "200",
        "product_name": "Feastables Milk Chocolate Bar",
        "brands_tags": ["feastables"],
        "categories_tags": ["en:chocolates", "en:bars"],
    },
    {
        "code": "300",
        "product_name": "Milka Alpine Milk",
        "brands_tags": ["milka"],
        "categories_tags": ["en:chocolates"],
    },
]


def _result():
    settings = GateSettings(enforce_brand_gate=True, hard_blocks_enabled=True)
    expectation = ItemExpectation(brand="Mr Beast", category="snack-sweet", form="bar")
    return gate_candidates(CANDIDATES, expectation, settings=settings, sink=lambda e, p: None)


def test_decisions_frame_has_one_row_per_decision():
    df = decisions_frame(_result())
    assert list(df.columns) == REPORT_COLUMNS

    rows = {(r.stage, r.decision, r.code) for r in df.itertuples()}
    assert ("brand", "blocked", "300") in rows
    assert ("category", "blocked", "100") in rows
    assert ("category", "boosted", "200") in rows
    assert ("final", "passed", "200") in rows
    assert len(df) == 4

    final = df[df["stage"] == "final"].iloc[0]
    assert final["form"] == "bar"
    assert final["family"] == "confectionery"


def test_summary_counts():
    assert summary(_result()) == {
        "total": 3,
        "brand_blocked": 1,
        "brand_salvaged": 0,
        "category_blocked": 1,
        "boosted": 1,
        "penalized": 0,
        "passed": 1,
    }


def test_load_candidates_accepts_list_or_products_object(tmp_path):
    bare = tmp_path / "bare.json"
    bare.write_text(json.dumps(CANDIDATES), encoding="utf-8")
    wrapped = tmp_path / "wrapped.json"
    wrapped.write_text(json.dumps({"products": CANDIDATES + ["junk"]}), encoding="utf-8")

    assert load_candidates(bare) == CANDIDATES
    assert load_candidates(wrapped) == CANDIDATES


def test_load_candidates_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_candidates(tmp_path / "missing.json")

    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"count": 3}), encoding="utf-8")
    with pytest.raises(ValueError):
        load_candidates(bad)


def test_main_writes_csv(tmp_path, capsys):
    src = tmp_path / "candidates.json"
    src.write_text(json.dumps({"products": CANDIDATES}), encoding="utf-8")
    out = tmp_path / "out" / "decisions.csv"

    rc = main(
        [
            "--candidates", str(src),
            "--brand", "Mr Beast",
            "--category", "snack-sweet",
            "--form", "bar",
            "--enforce-brand",
            "--hard-blocks",
            "--csv", str(out),
        ]
    )

    assert rc == 0
    df = pd.read_csv(out)
    assert len(df) == 4
    assert set(df["code"].astype(str)) == {"100", "200", "300"}
    printed = capsys.readouterr().out
    assert "passed: 1" in printed
