from __future__ import annotations
from enum import Enum
from typing import Any, Callable, Dict, Hashable, Optional
import threading

from services.config.logging_config import get_logger

logger = get_logger(__name__)


class SaveStatus(str, Enum):
    SAVED = "saved"
    SAVING = "saving"
    UNSAVED = "unsaved"


SaveFn = Callable[[Hashable, Any], None]


class DebouncedSaver:
    """Coalesce rapid edits per key into a single save after a quiet period.

    `edit()` echoes the value locally right away and (re)starts the key's
    timer. When a timer fires the latest value is handed to `save_fn`. A
    failing save leaves the key UNSAVED and is logged; it is not retried.
    """

    def __init__(self, save_fn: SaveFn, delay: float = 2.0):
        self._save_fn = save_fn
        self.delay = float(delay)
        self._lock = threading.Lock()
        self._timers: Dict[Hashable, threading.Timer] = {}
        self._values: Dict[Hashable, Any] = {}
        self._status: Dict[Hashable, SaveStatus] = {}
        self._closed = False

    def edit(self, key: Hashable, value: Any) -> None:
        with self._lock:
            if self._closed:
                raise RuntimeError("DebouncedSaver is closed")
            self._values[key] = value
            self._status[key] = SaveStatus.UNSAVED
            existing = self._timers.pop(key, None)
            if existing is not None:
                existing.cancel()
            t = threading.Timer(self.delay, self._fire, args=(key,))
            t.daemon = True
            self._timers[key] = t
            t.start()

    def value(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            return self._values.get(key, default)

    def status(self, key: Hashable) -> SaveStatus:
        with self._lock:
            return self._status.get(key, SaveStatus.SAVED)

    @property
    def overall_status(self) -> SaveStatus:
        with self._lock:
            states = set(self._status.values())
        if SaveStatus.SAVING in states:
            return SaveStatus.SAVING
        if SaveStatus.UNSAVED in states:
            return SaveStatus.UNSAVED
        return SaveStatus.SAVED

    def pending(self) -> int:
        with self._lock:
            return len(self._timers)

    def _fire(self, key: Hashable) -> None:
        with self._lock:
            timer = self._timers.get(key)
            # A newer edit replaced this timer, or close() ran
            if timer is None or timer is not threading.current_thread():
                return
            del self._timers[key]
            value = self._values.get(key)
            self._status[key] = SaveStatus.SAVING
        self._run_save(key, value)

    def _run_save(self, key: Hashable, value: Any) -> None:
        try:
            self._save_fn(key, value)
        except Exception:
            logger.exception("Autosave failed for %r", key)
            new_status = SaveStatus.UNSAVED
        else:
            new_status = SaveStatus.SAVED
        with self._lock:
            # Keep UNSAVED if the key was edited again while saving
            if self._status.get(key) is SaveStatus.SAVING and key not in self._timers:
                self._status[key] = new_status

    def flush(self, key: Optional[Hashable] = None) -> None:
        """Save pending edits now instead of waiting for their timers."""
        with self._lock:
            keys = [key] if key is not None else list(self._timers)
            ready = []
            for k in keys:
                t = self._timers.pop(k, None)
                if t is None:
                    continue
                t.cancel()
                self._status[k] = SaveStatus.SAVING
                ready.append((k, self._values.get(k)))
        for k, v in ready:
            self._run_save(k, v)

    def cancel(self, key: Hashable) -> None:
        with self._lock:
            t = self._timers.pop(key, None)
            if t is not None:
                t.cancel()

    def close(self) -> None:
        """Cancel every pending timer; unsaved edits are dropped."""
        with self._lock:
            self._closed = True
            timers = list(self._timers.values())
            self._timers.clear()
        for t in timers:
            t.cancel()

    def __enter__(self) -> "DebouncedSaver":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
