"""Ordered, capped collection of live thoughts (most recent first)."""
from __future__ import annotations

import logging
from typing import Callable, List, Tuple

from .model import Thought, ThoughtView

_log = logging.getLogger(__name__)

Listener = Callable[[Tuple[ThoughtView, ...]], None]


class ThoughtStore:
    def __init__(self, max_thoughts: int = 12) -> None:
        if max_thoughts < 1:
            raise ValueError("max_thoughts must be >= 1")
        self.max_thoughts = int(max_thoughts)
        self._items: List[Thought] = []
        self._listeners: List[Listener] = []

    def __len__(self) -> int:
        return len(self._items)

    def push(self, thought: Thought) -> None:
        """Prepend ``thought``; evict from the tail beyond capacity."""
        self._items.insert(0, thought)
        if len(self._items) > self.max_thoughts:
            dropped = self._items[self.max_thoughts:]
            del self._items[self.max_thoughts:]
            _log.debug("evicted %d thought(s) over cap %d", len(dropped), self.max_thoughts)
        self.publish()

    def snapshot(self) -> Tuple[ThoughtView, ...]:
        return tuple(t.view() for t in self._items)

    def replace(self, step: Callable[[Thought], bool]) -> int:
        """Run ``step`` on every thought in order; keep those it returns True for.

        The new list is swapped in only after every member was visited, so a
        reader never sees a half-updated frame. Returns the number removed.
        """
        survivors = [t for t in list(self._items) if step(t)]
        removed = len(self._items) - len(survivors)
        self._items = survivors
        self.publish()
        return removed

    def clear(self) -> None:
        self._items = []
        self.publish()

    # ---- observers -------------------------------------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def publish(self) -> None:
        if not self._listeners:
            return
        frame = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(frame)
            except Exception as exc:
                _log.warning("thought listener %r failed: %s", listener, exc)
