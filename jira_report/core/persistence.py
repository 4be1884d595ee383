"""Snapshot files and debounced live saving."""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

from .config import LIVE_SAVE_DELAY, TOPIC_UNSAVED
from .errors import InvalidFormatError
from .store import TaskStore

logger = logging.getLogger(__name__)


def save_snapshot(store: TaskStore, path: str | Path) -> Path:
    """Write the store snapshot as JSON and mark the store saved.

    The file is written next to its destination first and then swapped in, so
    an interrupted save never leaves a truncated snapshot behind. Changes made
    while the file is being written keep the store unsaved.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload, revision = store.snapshot()
    tmp_path = path.with_name(path.name + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as fh:
        fh.write(payload)
    os.replace(tmp_path, path)
    store.mark_saved(revision)
    logger.info("Saved %s task(s) to %s", len(store), path)
    return path


def load_snapshot(store: TaskStore, path: str | Path) -> int:
    """Load ``path`` into ``store``; returns the number of tasks loaded."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidFormatError(f"Snapshot {path} is not UTF-8 text") from exc
    store.from_json(text)
    return len(store)


class LiveSaver:
    """Saves the store shortly after its last modification.

    Each unsaved-change notification cancels the pending save and schedules a
    new one ``delay`` seconds later, so a burst of edits results in a single
    write. ``timer_factory`` mirrors ``threading.Timer(interval, function)``.
    """

    def __init__(
        self,
        store: TaskStore,
        path: str | Path,
        delay: float = LIVE_SAVE_DELAY,
        timer_factory: Callable[[float, Callable[[], None]], Any] = threading.Timer,
    ):
        self.store = store
        self.path = Path(path)
        self.delay = delay
        self._timer_factory = timer_factory
        self._timer: Any = None
        self._lock = threading.Lock()
        self._unsubscribe: Callable[[], bool] | None = None
        self.last_error: Exception | None = None

    @property
    def enabled(self) -> bool:
        return self._unsubscribe is not None

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def enable(self) -> None:
        if self.enabled:
            return
        self._unsubscribe = self.store.subscribe(TOPIC_UNSAVED, self._on_unsaved_changes)
        logger.info("Live save enabled (%s)", self.path)

    def disable(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.cancel()

    def cancel(self) -> None:
        with self._lock:
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()

    def schedule(self) -> None:
        """(Re)start the countdown to the next save."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            timer = self._timer_factory(self.delay, self._fire)
            if hasattr(timer, "daemon"):
                timer.daemon = True
            self._timer = timer
        timer.start()

    def flush(self) -> bool:
        """Save immediately when changes are pending; returns whether a save ran."""
        self.cancel()
        return self._save()

    def _on_unsaved_changes(self, store: TaskStore) -> None:
        if store.has_unsaved_changes:
            self.schedule()

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
        self._save()

    def _save(self) -> bool:
        if not self.store.has_unsaved_changes:
            return False
        try:
            save_snapshot(self.store, self.path)
        except OSError as exc:
            self.last_error = exc
            logger.error("Live save to %s failed: %s", self.path, exc)
            return False
        self.last_error = None
        return True
