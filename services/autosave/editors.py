from __future__ import annotations
from typing import Any, Optional

from services.autosave.debounce import DebouncedSaver
from services.config.env import get_autosave_config
from services.portfolio.store import PortfolioStore


def _delay(delay: Optional[float]) -> float:
    return get_autosave_config().delay_sec if delay is None else delay


def journal_saver(store: PortfolioStore, delay: Optional[float] = None) -> DebouncedSaver:
    """Saver keyed by journal entry id; values are the entry's rich-text content."""
    def save(entry_id: Any, content: Any) -> None:
        store.update_entry(entry_id, content)
    return DebouncedSaver(save, delay=_delay(delay))


def canvas_saver(store: PortfolioStore, delay: Optional[float] = None) -> DebouncedSaver:
    """Saver keyed by canvas node id; values are the node's data payload."""
    def save(node_id: Any, data: Any) -> None:
        store.update_node(node_id, data=data)
    return DebouncedSaver(save, delay=_delay(delay))


def thesis_saver(store: PortfolioStore, delay: Optional[float] = None) -> DebouncedSaver:
    """Saver keyed by stock id for the central thesis note."""
    def save(stock_id: Any, thesis: Any) -> None:
        store.update_thesis(stock_id, thesis)
    return DebouncedSaver(save, delay=_delay(delay))
