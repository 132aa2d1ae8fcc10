from __future__ import annotations
from typing import Callable, Dict, List, Optional, Tuple

from services.portfolio.models import StockSummary
from services.valuation.dcf import parse_number

SORT_COLUMNS = (
    "name", "shares", "price", "latestPrice", "value", "allocation",
    "priceTarget", "difference", "starred",
)


def filter_stocks(stocks: List[StockSummary], query: str) -> List[StockSummary]:
    """Case-insensitive substring match on name, ticker and strategy names."""
    q = (query or "").strip().lower()
    if not q:
        return list(stocks)
    out: List[StockSummary] = []
    for s in stocks:
        if q in s.stock.name.lower() or q in s.stock.ticker.lower():
            out.append(s)
        elif any(q in st.name.lower() for st in s.strategies):
            out.append(s)
    return out


def position_value(s: StockSummary) -> float:
    return (s.stock.shares or 0) * parse_number(s.stock.price)


def portfolio_total(stocks: List[StockSummary]) -> float:
    """Market value of held (non-watchlist, shares > 0) positions."""
    return sum(position_value(s) for s in stocks if not s.stock.is_watchlist and (s.stock.shares or 0) > 0)


def allocation_percent(s: StockSummary, total: float) -> float:
    if s.stock.is_watchlist or total == 0:
        return 0.0
    return position_value(s) / total * 100.0


def price_target_difference(s: StockSummary) -> Optional[float]:
    price = parse_number(s.stock.price)
    target = parse_number(s.stock.price_target)
    if price == 0 or target == 0:
        return None
    return (target - price) / price * 100.0


def favorites_first(stocks: List[StockSummary]) -> List[StockSummary]:
    # stable: keeps insertion order within each group
    return sorted(stocks, key=lambda s: not s.stock.is_favorite)


def split_portfolio(stocks: List[StockSummary]) -> Tuple[List[StockSummary], List[StockSummary]]:
    """(portfolio, watchlist), each with favorites first."""
    held = [s for s in stocks if not s.stock.is_watchlist]
    watch = [s for s in stocks if s.stock.is_watchlist]
    return favorites_first(held), favorites_first(watch)


def sort_stocks(
    stocks: List[StockSummary],
    column: Optional[str],
    direction: Optional[str] = "asc",
    total: Optional[float] = None,
) -> List[StockSummary]:
    """Sort a stock table by column; no column or direction keeps the given order."""
    if not column or not direction:
        return list(stocks)
    if column not in SORT_COLUMNS:
        raise ValueError(f"unknown sort column: {column!r}")
    if direction not in ("asc", "desc"):
        raise ValueError(f"unknown sort direction: {direction!r}")
    if total is None:
        total = portfolio_total(stocks)

    keys: Dict[str, Callable[[StockSummary], object]] = {
        "name": lambda s: s.stock.name.lower(),
        "shares": lambda s: s.stock.shares or 0,
        "price": lambda s: parse_number(s.stock.price),
        "latestPrice": lambda s: parse_number(s.stock.price),
        "value": position_value,
        "allocation": lambda s: allocation_percent(s, total),
        "priceTarget": lambda s: parse_number(s.stock.price_target),
        "difference": lambda s: price_target_difference(s) or 0.0,
        "starred": lambda s: 1 if s.stock.is_favorite else 0,
    }
    return sorted(stocks, key=keys[column], reverse=(direction == "desc"))


def next_sort_state(
    current_column: Optional[str], current_direction: Optional[str], clicked: str
) -> Tuple[Optional[str], Optional[str]]:
    """Header click cycle: asc -> desc -> unsorted; a new column starts at asc."""
    if current_column != clicked:
        return clicked, "asc"
    if current_direction == "asc":
        return clicked, "desc"
    return None, None
