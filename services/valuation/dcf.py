from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple
import math
import re

from services.config.logging_config import get_logger

logger = get_logger(__name__)

BASE_SHARE_COUNT = 100.0
INSUFFICIENT_INPUT_MESSAGE = "Enter valid inputs to see calculations"
# Horizons past this are rejected at the API and CLI boundary
MAX_PROJECTION_YEARS = 100


class Metric(str, Enum):
    FREE_CASH_FLOW = "fcf"
    OPERATING_INCOME = "operating-income"
    DIVIDEND = "dividend"
    EBITDA = "ebitda"

    @property
    def label(self) -> str:
        return METRIC_LABELS[self][0]

    @property
    def short_label(self) -> str:
        return METRIC_LABELS[self][1]

    @classmethod
    def parse(cls, raw: Any) -> "Metric":
        """Accept the form key ('fcf'), the member name or its CamelCase spelling."""
        if isinstance(raw, Metric):
            return raw
        key = re.sub(r"[^a-z]", "", str(raw or "").lower())
        for m in cls:
            if key in (re.sub(r"[^a-z]", "", m.value), m.name.replace("_", "").lower()):
                return m
        raise ValueError(f"unknown metric: {raw!r}")


METRIC_LABELS: Dict[Metric, Tuple[str, str]] = {
    Metric.FREE_CASH_FLOW: ("Free Cash Flow", "FCF"),
    Metric.OPERATING_INCOME: ("Operating Income", "Op. Income"),
    Metric.DIVIDEND: ("Dividend", "Dividend"),
    Metric.EBITDA: ("EBITDA", "EBITDA"),
}


@dataclass(frozen=True)
class ValuationInputs:
    # Rates are fractions (0.10 == 10%)
    metric: Metric = Metric.FREE_CASH_FLOW
    projection_years: int = 5
    current_metric_value: float = 1000.0
    share_count_growth_rate: float = 0.0
    metric_growth_rate: float = 0.10
    terminal_multiple: float = 15.0
    discount_rate: float = 0.10
    current_share_price: float = 230.0
    current_multiple: float = 25.0

    def is_sufficient(self) -> bool:
        return not (
            self.projection_years <= 0
            or self.current_metric_value == 0
            or self.terminal_multiple == 0
            or self.discount_rate == 0
            or self.current_share_price == 0
            or self.current_multiple == 0
        )


@dataclass(frozen=True)
class ProjectionRow:
    year: int
    metric_value: float
    share_count: float
    per_share_value: float
    present_value: float


@dataclass(frozen=True)
class ValuationResult:
    projections: Tuple[ProjectionRow, ...]
    terminal_value: float
    terminal_present_value: float
    total_present_value: float
    fair_value_per_share: float
    implied_cagr: float  # percent; NaN when fair value or price is not positive
    upside_percent: float
    final_share_count: float
    current_implied_value: float
    metric: Metric = field(default=Metric.FREE_CASH_FLOW)


# Form fields as the calculator presents them: percents are whole numbers
DEFAULT_FORM: Dict[str, str] = {
    "metric": Metric.FREE_CASH_FLOW.value,
    "projectionYears": "5",
    "currentMetricValue": "1000",
    "shareCountGrowthRate": "0",
    "metricGrowthRate": "10",
    "terminalMultiple": "15",
    "discountRate": "10",
    "currentSharePrice": "230",
    "currentMultiple": "25",
}

_FLOAT_PREFIX = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_INT_PREFIX = re.compile(r"^\s*[+-]?\d+")


def parse_number(raw: Any) -> float:
    """Leading numeric prefix of `raw` as a float; anything unparseable is 0."""
    if isinstance(raw, bool) or raw is None:
        return 0.0
    if isinstance(raw, (int, float)):
        return float(raw) if math.isfinite(raw) else 0.0
    m = _FLOAT_PREFIX.match(str(raw))
    if not m:
        return 0.0
    val = float(m.group(0))
    return val if math.isfinite(val) else 0.0


def parse_int(raw: Any) -> int:
    if isinstance(raw, bool) or raw is None:
        return 0
    if isinstance(raw, (int, float)):
        return int(raw) if math.isfinite(raw) else 0
    m = _INT_PREFIX.match(str(raw))
    return int(m.group(0)) if m else 0


def parse_inputs(form: Mapping[str, Any]) -> ValuationInputs:
    """Coerce calculator form values into ValuationInputs.

    Missing keys take the calculator defaults, present-but-empty values parse
    to 0. Growth and discount rates are given in percent.
    """
    values = {**DEFAULT_FORM, **{k: v for k, v in form.items() if k in DEFAULT_FORM}}
    return ValuationInputs(
        metric=Metric.parse(values["metric"]),
        projection_years=parse_int(values["projectionYears"]),
        current_metric_value=parse_number(values["currentMetricValue"]),
        share_count_growth_rate=parse_number(values["shareCountGrowthRate"]) / 100.0,
        metric_growth_rate=parse_number(values["metricGrowthRate"]) / 100.0,
        terminal_multiple=parse_number(values["terminalMultiple"]),
        discount_rate=parse_number(values["discountRate"]) / 100.0,
        current_share_price=parse_number(values["currentSharePrice"]),
        current_multiple=parse_number(values["currentMultiple"]),
    )


def check_horizon(i: ValuationInputs) -> None:
    if i.projection_years > MAX_PROJECTION_YEARS:
        raise ValueError(f"projection years must be at most {MAX_PROJECTION_YEARS}")


def _div(num: float, den: float) -> float:
    # IEEE result instead of ZeroDivisionError: +-inf, or nan for 0/0
    if den == 0:
        if num == 0 or math.isnan(num):
            return math.nan
        return math.copysign(math.inf, num) * math.copysign(1.0, den)
    return num / den


def _pow(base: float, exp: int) -> float:
    try:
        return math.pow(base, exp)
    except OverflowError:
        return math.inf if base > 0 or exp % 2 == 0 else -math.inf


def implied_cagr(fair_value: float, price: float, years: int) -> float:
    if math.isnan(fair_value) or fair_value <= 0 or price <= 0 or years <= 0:
        return math.nan
    return (math.pow(fair_value / price, 1.0 / years) - 1.0) * 100.0


def project(i: ValuationInputs) -> Optional[ValuationResult]:
    """Year-by-year DCF projection, or None when the inputs are insufficient."""
    if not i.is_sufficient():
        logger.debug("insufficient valuation inputs: %s", i)
        return None

    rows: List[ProjectionRow] = []
    metric_value = float(i.current_metric_value)
    share_count = BASE_SHARE_COUNT
    for year in range(1, i.projection_years + 1):
        metric_value = metric_value * (1.0 + i.metric_growth_rate)
        share_count = share_count * (1.0 + i.share_count_growth_rate)
        rows.append(ProjectionRow(
            year=year,
            metric_value=metric_value,
            share_count=share_count,
            per_share_value=_div(metric_value, share_count),
            present_value=_div(metric_value, _pow(1.0 + i.discount_rate, year)),
        ))

    final = rows[-1]
    terminal_value = final.metric_value * i.terminal_multiple
    terminal_pv = _div(terminal_value, _pow(1.0 + i.discount_rate, i.projection_years))
    total_pv = sum(r.present_value for r in rows) + terminal_pv
    fair_value = _div(total_pv, final.share_count)
    price = i.current_share_price

    return ValuationResult(
        projections=tuple(rows),
        terminal_value=terminal_value,
        terminal_present_value=terminal_pv,
        total_present_value=total_pv,
        fair_value_per_share=fair_value,
        implied_cagr=implied_cagr(fair_value, price, i.projection_years),
        upside_percent=(fair_value - price) / price * 100.0,
        final_share_count=final.share_count,
        current_implied_value=_div(
            i.current_metric_value, BASE_SHARE_COUNT * (i.current_multiple / i.terminal_multiple)
        ),
        metric=i.metric,
    )


def _finite_or_none(x: float) -> Optional[float]:
    return x if math.isfinite(x) else None


def result_to_dict(r: ValuationResult) -> Dict[str, Any]:
    """JSON-ready view of a result (camelCase keys, NaN and infinities as null)."""
    return {
        "metric": r.metric.value,
        "metricLabel": r.metric.label,
        "projections": [
            {
                "year": p.year,
                "metricValue": _finite_or_none(p.metric_value),
                "shareCount": _finite_or_none(p.share_count),
                "perShareValue": _finite_or_none(p.per_share_value),
                "presentValue": _finite_or_none(p.present_value),
            }
            for p in r.projections
        ],
        "terminalValue": _finite_or_none(r.terminal_value),
        "terminalPresentValue": _finite_or_none(r.terminal_present_value),
        "totalPresentValue": _finite_or_none(r.total_present_value),
        "fairValuePerShare": _finite_or_none(r.fair_value_per_share),
        "impliedCAGR": _finite_or_none(r.implied_cagr),
        "upsidePercent": _finite_or_none(r.upside_percent),
        "finalShareCount": _finite_or_none(r.final_share_count),
        "currentImpliedValue": _finite_or_none(r.current_implied_value),
    }
