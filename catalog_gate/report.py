# catalog_gate/report.py
from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .classify import describe_entry
from .config import LOG_DIR, GateSettings
from .observability import configure_logging
from .pipeline import ItemExpectation, PipelineResult, gate_candidates
from .pipeline_types import entry_code, entry_name

REPORT_COLUMNS = [
    "stage",
    "code",
    "name",
    "decision",
    "reason",
    "confidence",
    "amount",
    "form",
    "family",
]

# ---------- IO helpers ----------

def load_candidates(path: Path) -> List[Dict[str, Any]]:
    """
    Read a candidate list from JSON: either a bare list of entries or an
    object with a ``products`` list (the search backend's response shape).
    """
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("products")
    if not isinstance(data, list):
        raise ValueError(f"Expected a list of entries or {{'products': [...]}} in {path}")
    return [e for e in data if isinstance(e, dict)]

# ---------- frame building ----------

def _row(stage: str, decision: str, **fields: Any) -> Dict[str, Any]:
    row = {c: None for c in REPORT_COLUMNS}
    row.update(stage=stage, decision=decision, **fields)
    return row


def decisions_frame(result: PipelineResult) -> pd.DataFrame:
    """One row per gate decision, brand stage first, then category stage."""
    rows: List[Dict[str, Any]] = []

    for b in result.brand.blocked:
        rows.append(_row("brand", "blocked", code=b.code, name=b.name, reason=b.reason))
    for s in result.brand.salvaged:
        rows.append(
            _row("brand", "salvaged", code=s.code, name=s.name, reason=s.source, confidence=s.confidence)
        )

    for b in result.category.blocked:
        rows.append(
            _row(
                "category",
                "blocked",
                code=b.code,
                name=b.name,
                reason=b.compatibility_reason or b.reason,
                confidence=b.confidence,
                form=b.actual_form,
            )
        )
    for adj in result.category.boosted:
        rows.append(_row("category", "boosted", code=adj.code, reason=adj.reason, amount=adj.amount))
    for adj in result.category.penalized:
        rows.append(_row("category", "penalized", code=adj.code, reason=adj.reason, amount=-adj.amount))

    for entry in result.candidates:
        info = describe_entry(entry)
        rows.append(
            _row(
                "final",
                "passed",
                code=entry_code(entry),
                name=entry_name(entry),
                form=info["form"],
                family=info["family"],
            )
        )

    return pd.DataFrame(rows, columns=REPORT_COLUMNS)


def summary(result: PipelineResult) -> Dict[str, int]:
    return {
        "total": result.brand.stats.total,
        "brand_blocked": result.brand.stats.blocked,
        "brand_salvaged": result.brand.stats.salvaged,
        "category_blocked": result.category.stats.blocked,
        "boosted": result.category.stats.boosted,
        "penalized": result.category.stats.penalized,
        "passed": result.category.stats.passed,
    }

# ---------- CLI ----------

def _settings_from_args(args: argparse.Namespace) -> GateSettings:
    settings = GateSettings.from_env()
    update: Dict[str, Any] = {}
    if args.enforce_brand:
        update["enforce_brand_gate"] = True
    if args.hard_blocks:
        update["hard_blocks_enabled"] = True
    return settings.model_copy(update=update) if update else settings


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Show gate decisions for a candidate list")
    ap.add_argument("--candidates", type=Path, required=True,
                    help="JSON file with a list of catalog entries")
    ap.add_argument("--brand", default=None)
    ap.add_argument("--hint", action="append", default=[],
                    help="Extra brand synonym; repeatable")
    ap.add_argument("--category", default=None, help="Canonical category, e.g. snack-sweet")
    ap.add_argument("--form", default=None, help="Expected form, e.g. bar")
    ap.add_argument("--enforce-brand", action="store_true",
                    help="Enforce the brand gate regardless of ENFORCE_BRAND_GATE")
    ap.add_argument("--hard-blocks", action="store_true",
                    help="Enable category hard blocks regardless of CATEGORY_HARD_BLOCKS_ENABLED")
    ap.add_argument("--csv", type=Path, default=None, help="Write the decision table here")
    ap.add_argument("--log-level", default="WARNING")
    ap.add_argument("--log-file", action="store_true",
                    help=f"Also write decision logs under {LOG_DIR}")
    args = ap.parse_args(argv)

    configure_logging(level=args.log_level, log_dir=LOG_DIR if args.log_file else None)

    entries = load_candidates(args.candidates)
    expectation = ItemExpectation(
        brand=args.brand,
        brand_hints=args.hint,
        category=args.category,
        form=args.form,
    )
    result = gate_candidates(entries, expectation, settings=_settings_from_args(args))
    df = decisions_frame(result)

    if args.csv is not None:
        args.csv.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(args.csv, index=False, encoding="utf-8")
        print(f"Wrote {len(df)} rows to {args.csv}")
    else:
        print(df.to_string(index=False) if not df.empty else "(no decisions)")

    for key, value in summary(result).items():
        print(f"{key}: {value}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
