from __future__ import annotations
from dataclasses import asdict, replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional
import json
import threading

from services.config.logging_config import get_logger
from services.portfolio.models import (
    CanvasNode,
    JournalEntry,
    Stock,
    StockStrategy,
    StockSummary,
    Strategy,
    new_id,
    utcnow,
)
from services.valuation.dcf import parse_int

logger = get_logger(__name__)

STOCK_FIELDS = {
    "ticker", "name", "investment_type", "shares", "price", "thesis",
    "is_watchlist", "is_favorite", "price_target",
}
STRATEGY_FIELDS = {"name", "description", "color", "icon", "is_active"}

DEFAULT_STRATEGIES = (
    Strategy(id="strategy_short_term", name="Short-term Trade",
             description="Quick trades to capitalize on short-term price movements",
             color="#f97316", icon="TrendingUp"),
    Strategy(id="strategy_long_term", name="Long-term Appreciation",
             description="Buy and hold for long-term capital appreciation",
             color="#3b82f6", icon="TrendingUp"),
    Strategy(id="strategy_dividend_growth", name="Dividend Growth",
             description="Invest in companies with growing dividend payments",
             color="#22c55e", icon="DollarSign"),
    Strategy(id="strategy_high_dividend", name="High Dividend",
             description="Focus on high current dividend yield",
             color="#a855f7", icon="Coins"),
    Strategy(id="strategy_core", name="Core",
             description="Core portfolio holdings for stability",
             color="#6366f1", icon="Shield"),
    Strategy(id="strategy_speculative", name="Speculative",
             description="Higher risk, potentially higher reward investments",
             color="#ef4444", icon="Zap"),
)


def _as_bool(v: Any) -> bool:
    if isinstance(v, str):
        return v.strip().lower() in ("1", "true", "yes", "on")
    return bool(v)


def _coerce_stock_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize request values to the Stock field types."""
    out = dict(fields)
    if "shares" in out:
        out["shares"] = parse_int(out["shares"])
    if "price" in out:
        out["price"] = str(out["price"] if out["price"] not in (None, "") else "0")
    if "price_target" in out:
        out["price_target"] = str(out["price_target"]) if out["price_target"] not in (None, "") else None
    for flag in ("is_watchlist", "is_favorite"):
        if flag in out:
            out[flag] = _as_bool(out[flag])
    if "ticker" in out:
        out["ticker"] = str(out["ticker"]).upper()
    return out


class NotFoundError(KeyError):
    def __init__(self, kind: str, rid: str):
        super().__init__(rid)
        self.kind = kind
        self.rid = rid

    def __str__(self) -> str:
        return f"{self.kind} not found"


class PortfolioStore:
    """In-process tables for the portfolio, optionally snapshotted to a JSON file.

    Every public method takes the store lock; when `path` is set each mutation
    rewrites the snapshot.
    """

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path else None
        self._lock = threading.RLock()
        self._stocks: Dict[str, Stock] = {}
        self._strategies: Dict[str, Strategy] = {}
        self._links: Dict[str, StockStrategy] = {}
        self._entries: Dict[str, JournalEntry] = {}
        self._nodes: Dict[str, CanvasNode] = {}
        if self.path is not None and self.path.exists():
            self.load()

    # Snapshot

    def load(self) -> None:
        data = json.loads(self.path.read_text())
        with self._lock:
            self._stocks = {d["id"]: Stock.from_dict(d) for d in data.get("stocks", [])}
            self._strategies = {d["id"]: Strategy.from_dict(d) for d in data.get("strategies", [])}
            self._links = {d["id"]: StockStrategy.from_dict(d) for d in data.get("stock_strategies", [])}
            self._entries = {d["id"]: JournalEntry.from_dict(d) for d in data.get("journal_entries", [])}
            self._nodes = {d["id"]: CanvasNode.from_dict(d) for d in data.get("canvas_nodes", [])}
        logger.info("Loaded %d stocks from %s", len(self._stocks), self.path)

    def save(self) -> None:
        if self.path is None:
            return
        with self._lock:
            data = {
                "stocks": [asdict(s) for s in self._stocks.values()],
                "strategies": [asdict(s) for s in self._strategies.values()],
                "stock_strategies": [asdict(s) for s in self._links.values()],
                "journal_entries": [asdict(e) for e in self._entries.values()],
                "canvas_nodes": [asdict(n) for n in self._nodes.values()],
            }
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(json.dumps(data, indent=2))
            tmp.replace(self.path)

    # Stocks

    def get_stock(self, sid: str) -> Stock:
        with self._lock:
            s = self._stocks.get(sid)
            if s is None:
                raise NotFoundError("Stock", sid)
            return s

    def list_stocks(self) -> List[StockSummary]:
        with self._lock:
            return [self._summary(s) for s in self._stocks.values()]

    def _summary(self, s: Stock) -> StockSummary:
        count = sum(1 for e in self._entries.values() if e.stock_id == s.id)
        strategies = [
            self._strategies[link.strategy_id]
            for link in self._links.values()
            if link.stock_id == s.id and link.strategy_id in self._strategies
        ]
        return StockSummary(stock=s, entry_count=count, strategies=strategies)

    def create_stock(self, ticker: str, name: str, strategy_ids: Iterable[str] = (), **fields: Any) -> Stock:
        unknown = set(fields) - STOCK_FIELDS
        if unknown:
            raise ValueError(f"unknown stock fields: {sorted(unknown)}")
        stock = Stock(id=new_id("stock"), ticker=str(ticker).upper(), name=name, **_coerce_stock_fields(fields))
        with self._lock:
            self._stocks[stock.id] = stock
            self._link_strategies(stock.id, strategy_ids)
            self.save()
        logger.info("Created stock %s (%s)", stock.id, stock.ticker)
        return stock

    def update_stock(self, sid: str, strategy_ids: Optional[Iterable[str]] = None, **updates: Any) -> Stock:
        unknown = set(updates) - STOCK_FIELDS
        if unknown:
            raise ValueError(f"unknown stock fields: {sorted(unknown)}")
        updates = _coerce_stock_fields(updates)
        with self._lock:
            stock = self.get_stock(sid)
            for k, v in updates.items():
                setattr(stock, k, v)
            stock.updated_at = utcnow()
            if strategy_ids is not None:
                for lid in [lid for lid, link in self._links.items() if link.stock_id == sid]:
                    del self._links[lid]
                self._link_strategies(sid, strategy_ids)
            self.save()
            return stock

    def update_thesis(self, sid: str, thesis: str) -> Stock:
        return self.update_stock(sid, thesis=thesis)

    def _link_strategies(self, sid: str, strategy_ids: Iterable[str]) -> None:
        for strategy_id in strategy_ids:
            link = StockStrategy(id=new_id("stock_strategy"), stock_id=sid, strategy_id=strategy_id)
            self._links[link.id] = link

    def delete_stock(self, sid: str) -> bool:
        with self._lock:
            if self._stocks.pop(sid, None) is None:
                return False
            self._nodes = {k: n for k, n in self._nodes.items() if n.stock_id != sid}
            self._entries = {k: e for k, e in self._entries.items() if e.stock_id != sid}
            self._links = {k: link for k, link in self._links.items() if link.stock_id != sid}
            self.save()
        logger.info("Deleted stock %s", sid)
        return True

    # Journal entries

    def list_entries(self, sid: str) -> List[JournalEntry]:
        with self._lock:
            entries = [e for e in self._entries.values() if e.stock_id == sid]
        return sorted(entries, key=lambda e: e.date)

    def latest_entry(self, sid: str) -> Optional[JournalEntry]:
        entries = self.list_entries(sid)
        return entries[-1] if entries else None

    def create_entry(self, sid: str, date: str, content: str = "") -> JournalEntry:
        entry = JournalEntry(id=new_id("entry"), stock_id=sid, date=date, content=content or "")
        with self._lock:
            self.get_stock(sid)
            self._entries[entry.id] = entry
            self.save()
        return entry

    def update_entry(self, entry_id: str, content: str) -> JournalEntry:
        with self._lock:
            entry = self._entries.get(entry_id)
            if entry is None:
                raise NotFoundError("Journal entry", entry_id)
            entry.content = content
            entry.updated_at = utcnow()
            self.save()
            return entry

    def delete_entry(self, entry_id: str) -> bool:
        with self._lock:
            if self._entries.pop(entry_id, None) is None:
                return False
            self.save()
            return True

    # Canvas nodes

    def list_nodes(self, sid: str) -> List[CanvasNode]:
        with self._lock:
            return [n for n in self._nodes.values() if n.stock_id == sid]

    def create_node(self, sid: str, type: str, position: Any, data: Any) -> CanvasNode:
        node = CanvasNode(
            id=new_id("node"),
            stock_id=sid,
            type=type,
            position=json.dumps(position),
            data=json.dumps(data),
        )
        with self._lock:
            self.get_stock(sid)
            self._nodes[node.id] = node
            self.save()
        return node

    def update_node(self, node_id: str, position: Any = None, data: Any = None) -> CanvasNode:
        with self._lock:
            node = self._nodes.get(node_id)
            if node is None:
                raise NotFoundError("Node", node_id)
            if position is not None:
                node.position = json.dumps(position)
            if data is not None:
                node.data = json.dumps(data)
            node.updated_at = utcnow()
            self.save()
            return node

    def delete_node(self, node_id: str) -> bool:
        with self._lock:
            if self._nodes.pop(node_id, None) is None:
                return False
            self.save()
            return True

    # Strategies

    def list_strategies(self) -> List[Strategy]:
        with self._lock:
            return sorted(self._strategies.values(), key=lambda s: s.name)

    def get_strategy(self, strategy_id: str) -> Strategy:
        with self._lock:
            s = self._strategies.get(strategy_id)
            if s is None:
                raise NotFoundError("Strategy", strategy_id)
            return s

    def create_strategy(self, name: str, **fields: Any) -> Strategy:
        unknown = set(fields) - STRATEGY_FIELDS
        if unknown:
            raise ValueError(f"unknown strategy fields: {sorted(unknown)}")
        strategy = Strategy(id=new_id("strategy"), name=name, **fields)
        with self._lock:
            self._strategies[strategy.id] = strategy
            self.save()
        logger.info("Created strategy %s (%s)", strategy.id, strategy.name)
        return strategy

    def update_strategy(self, strategy_id: str, **updates: Any) -> Strategy:
        unknown = set(updates) - STRATEGY_FIELDS
        if unknown:
            raise ValueError(f"unknown strategy fields: {sorted(unknown)}")
        with self._lock:
            strategy = self.get_strategy(strategy_id)
            for k, v in updates.items():
                setattr(strategy, k, v)
            strategy.updated_at = utcnow()
            self.save()
            return strategy

    def delete_strategy(self, strategy_id: str) -> bool:
        with self._lock:
            if self._strategies.pop(strategy_id, None) is None:
                return False
            self._links = {k: link for k, link in self._links.items() if link.strategy_id != strategy_id}
            self.save()
        logger.info("Deleted strategy %s", strategy_id)
        return True

    def seed_strategies(self) -> List[Strategy]:
        """Insert the default strategies that are not present yet; returns the ones added."""
        added: List[Strategy] = []
        with self._lock:
            for s in DEFAULT_STRATEGIES:
                if s.id in self._strategies:
                    logger.info("Strategy already exists: %s", s.name)
                    continue
                now = utcnow()
                copy = replace(s, created_at=now, updated_at=now)
                self._strategies[copy.id] = copy
                added.append(copy)
                logger.info("Created strategy: %s", s.name)
            if added:
                self.save()
        return added
