from __future__ import annotations
from typing import List, Dict, Any, Iterable
import csv
import io
import math

from services.valuation.dcf import ValuationResult

SCHEMAS = {
    "projection": [
        "year", "metric_value", "share_count", "per_share_value", "present_value"
    ],
    "valuation_summary": [
        "metric", "terminal_value", "terminal_present_value", "total_present_value",
        "fair_value_per_share", "implied_cagr", "upside_percent", "final_share_count",
        "current_implied_value",
    ],
}


def _fmt(v: Any) -> Any:
    # Two decimals, as the calculator displays them
    if isinstance(v, float):
        return f"{v:.2f}" if math.isfinite(v) else ""
    return v


def write_csv(rows: Iterable[Dict[str, Any]], columns: List[str]) -> str:
    buf = io.StringIO()
    w = csv.DictWriter(buf, fieldnames=columns, extrasaction="ignore", lineterminator="\n")
    w.writeheader()
    for r in rows:
        w.writerow({k: _fmt(r.get(k)) for k in columns})
    return buf.getvalue()


def write_projection(result: ValuationResult) -> str:
    rows = [
        {
            "year": p.year,
            "metric_value": p.metric_value,
            "share_count": p.share_count,
            "per_share_value": p.per_share_value,
            "present_value": p.present_value,
        }
        for p in result.projections
    ]
    return write_csv(rows, SCHEMAS["projection"])


def write_valuation_summary(result: ValuationResult) -> str:
    return write_csv([{
        "metric": result.metric.value,
        "terminal_value": result.terminal_value,
        "terminal_present_value": result.terminal_present_value,
        "total_present_value": result.total_present_value,
        "fair_value_per_share": result.fair_value_per_share,
        "implied_cagr": result.implied_cagr,
        "upside_percent": result.upside_percent,
        "final_share_count": result.final_share_count,
        "current_implied_value": result.current_implied_value,
    }], SCHEMAS["valuation_summary"])
