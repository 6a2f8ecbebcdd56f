"""Plain-text renderer for the terminal front-end.

Draws each thought once, when it first appears in a published frame; thoughts
that later drift away are simply forgotten.
"""
from __future__ import annotations

import sys
from typing import Dict, Iterable, Optional, TextIO

from aether.thoughts import ThoughtKind, ThoughtView

_MARKS = {ThoughtKind.USER: "›", ThoughtKind.RESPONSE: "~"}


def format_view(view: ThoughtView) -> str:
    mark = _MARKS.get(view.kind, "~")
    shade = "░▒▓█"[min(3, max(0, int(view.opacity * 4) - 1))] if view.opacity > 0 else " "
    return f"{shade} {mark} {view.text}"


class TerminalRenderer:
    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self.stream = stream or sys.stdout
        self._seen: Dict[str, ThoughtView] = {}

    def __call__(self, frame: Iterable[ThoughtView]) -> None:
        frame = tuple(frame)
        live = {v.id for v in frame}
        # oldest first so the newest line lands at the bottom
        for view in reversed(frame):
            if view.id not in self._seen:
                self.stream.write(format_view(view) + "\n")
                self.stream.flush()
            self._seen[view.id] = view
        for gone in [k for k in self._seen if k not in live]:
            del self._seen[gone]

    @property
    def visible(self) -> int:
        return len(self._seen)
