from __future__ import annotations
from dataclasses import dataclass, field, fields
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional
import json
import random
import re
import string
import time

_ID_ALPHABET = string.digits + string.ascii_lowercase

INVESTMENT_TYPES: Dict[str, Dict[str, str]] = {
    "short-term": {"label": "Short Term", "icon": "TrendingUp"},
    "long-term-appreciation": {"label": "Long Term Appreciation", "icon": "TrendingUp"},
    "dividend-growth": {"label": "Dividend Growth", "icon": "DollarSign"},
    "high-dividend": {"label": "High Dividend", "icon": "Coins"},
    "core": {"label": "Core", "icon": "Shield"},
    "speculative": {"label": "Speculative", "icon": "Zap"},
}
DEFAULT_INVESTMENT_TYPE = "core"

NODE_TYPES = ("text", "chart", "image", "central-thesis")


def investment_type_label(kind: str) -> str:
    return INVESTMENT_TYPES.get(kind, {}).get("label", kind)


def investment_type_icon(kind: str) -> str:
    return INVESTMENT_TYPES.get(kind, {}).get("icon", "Circle")


def new_id(prefix: str) -> str:
    """`<prefix>_<epoch millis>_<9 base-36 chars>`"""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p.capitalize() for p in rest)


def _snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


class Record:
    """Mixin for dataclass records: camelCase dict views for the API and snapshot."""

    def to_dict(self) -> Dict[str, Any]:
        return {_camel(f.name): getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]):
        names = {f.name for f in fields(cls)}
        return cls(**{_snake(k): v for k, v in d.items() if _snake(k) in names})


@dataclass
class Stock(Record):
    id: str
    name: str
    ticker: str
    investment_type: str = DEFAULT_INVESTMENT_TYPE
    shares: int = 0
    price: str = "0"  # decimal text, kept as entered
    thesis: str = ""
    is_watchlist: bool = False
    is_favorite: bool = False
    price_target: Optional[str] = None
    created_at: str = field(default_factory=utcnow)
    updated_at: str = field(default_factory=utcnow)


@dataclass
class Strategy(Record):
    id: str
    name: str
    description: str = ""
    color: str = "#3b82f6"
    icon: str = "Shield"
    is_active: bool = True
    created_at: str = field(default_factory=utcnow)
    updated_at: str = field(default_factory=utcnow)

    def brief(self) -> Dict[str, Any]:
        d = self.to_dict()
        d.pop("createdAt")
        d.pop("updatedAt")
        return d


@dataclass
class StockStrategy(Record):
    id: str
    stock_id: str
    strategy_id: str
    weight: int = 100
    created_at: str = field(default_factory=utcnow)
    updated_at: str = field(default_factory=utcnow)


@dataclass
class JournalEntry(Record):
    id: str
    stock_id: str
    date: str  # YYYY-MM-DD
    content: str = ""
    created_at: str = field(default_factory=utcnow)
    updated_at: str = field(default_factory=utcnow)

    def __post_init__(self):
        try:
            date.fromisoformat(self.date)
        except (TypeError, ValueError):
            raise ValueError(f"date must be YYYY-MM-DD, got {self.date!r}")


@dataclass
class CanvasNode(Record):
    id: str
    stock_id: str
    type: str
    position: str  # JSON text {"x": .., "y": ..}
    data: str      # JSON text, node content
    created_at: str = field(default_factory=utcnow)
    updated_at: str = field(default_factory=utcnow)

    def __post_init__(self):
        if self.type not in NODE_TYPES:
            raise ValueError(f"unknown node type: {self.type!r}")

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["position"] = json.loads(self.position)
        d["data"] = json.loads(self.data)
        return d


@dataclass
class StockSummary:
    """A stock with its journal entry count and attached strategies."""
    stock: Stock
    entry_count: int = 0
    strategies: List[Strategy] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.stock.to_dict(),
            "entryCount": self.entry_count,
            "strategies": [s.brief() for s in self.strategies],
        }
