"""Topic-based publish/subscribe with isolated subscriber failures."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

logger = logging.getLogger(__name__)

Callback = Callable[..., Any]


class EventEmitter:
    """Routes notifications to callbacks registered per topic.

    Callbacks run synchronously in registration order. An exception raised by
    one callback is logged and does not prevent delivery to the others.
    """

    def __init__(self, topics: Iterable[str] | None = None):
        self._topics = frozenset(topics) if topics is not None else None
        self._subscribers: dict[str, list[Callback]] = {}

    def _check_topic(self, topic: str) -> None:
        if self._topics is not None and topic not in self._topics:
            raise ValueError(f"Unknown topic: {topic}")

    def subscribe(self, topic: str, callback: Callback) -> Callable[[], bool]:
        """Register ``callback`` for ``topic``; returns a function that unsubscribes it."""
        self._check_topic(topic)
        callbacks = self._subscribers.setdefault(topic, [])
        if callback not in callbacks:
            callbacks.append(callback)
        return lambda: self.unsubscribe(topic, callback)

    def unsubscribe(self, topic: str, callback: Callback) -> bool:
        callbacks = self._subscribers.get(topic, [])
        if callback in callbacks:
            callbacks.remove(callback)
            return True
        return False

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, []))

    def emit(self, topic: str, *args: Any, **kwargs: Any) -> int:
        """Call every subscriber of ``topic``; returns how many raised."""
        self._check_topic(topic)
        failures = 0
        # Snapshot so callbacks may (un)subscribe while being notified
        for callback in list(self._subscribers.get(topic, [])):
            try:
                callback(*args, **kwargs)
            except Exception:
                failures += 1
                logger.exception("Error in %s subscriber %r", topic, callback)
        return failures

    def clear(self) -> None:
        self._subscribers.clear()
