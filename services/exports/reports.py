from __future__ import annotations
from typing import List
import math

from services.valuation.dcf import ValuationInputs, ValuationResult
from services.portfolio.currency import format_currency


def _pct(x: float) -> str:
    if not math.isfinite(x):
        return "n/a"
    sign = "+" if x >= 0 else ""
    return f"{sign}{x:.2f}%"


def assumptions_md(i: ValuationInputs) -> str:
    m = i.metric
    lines = ["# Assumptions", ""]
    lines.append(f"- Metric: {m.label}")
    lines.append(f"- Projection years: {i.projection_years}")
    lines.append(f"- Current {m.label} ($M): {i.current_metric_value:.2f}")
    lines.append(f"- Share growth rate: {i.share_count_growth_rate * 100:.2f}%")
    lines.append(f"- {m.label} growth rate: {i.metric_growth_rate * 100:.2f}%")
    lines.append(f"- Terminal {m.short_label} multiple: {i.terminal_multiple:g}")
    lines.append(f"- Discount rate (WACC): {i.discount_rate * 100:.2f}%")
    lines.append(f"- Current stock price: {format_currency(i.current_share_price)}")
    lines.append(f"- Current {m.short_label} multiple: {i.current_multiple:g}")
    return "\n".join(lines) + "\n"


def valuation_md(i: ValuationInputs, r: ValuationResult, blurred: bool = False) -> str:
    """Markdown rendering of the fair value summary and the projection table."""
    short = r.metric.short_label
    lines: List[str] = [assumptions_md(i).rstrip("\n"), "", "# Fair Value Analysis", ""]
    lines.append(f"- Fair value: {format_currency(r.fair_value_per_share, blurred)}")
    lines.append(f"- Current price: {format_currency(i.current_share_price, blurred)}")
    lines.append(f"- Expected CAGR: {_pct(r.implied_cagr)}")
    lines.append(f"- Upside/Downside: {_pct(r.upside_percent)}")
    lines += ["", "# Projections", ""]
    lines.append(f"| Year | {short} ($M) | Shares (Rel.) | Per Share ($) | PV ($M) |")
    lines.append("|---:|---:|---:|---:|---:|")
    for p in r.projections:
        lines.append(
            f"| {p.year} | {p.metric_value:.2f} | {p.share_count:.2f} | {p.per_share_value:.2f} | {p.present_value:.2f} |"
        )
    lines.append(f"| Terminal Value | {r.terminal_value:.2f} | | | {r.terminal_present_value:.2f} |")
    lines.append(f"| **Total Present Value ($M)** | | | | **{r.total_present_value:.2f}** |")
    return "\n".join(lines) + "\n"
