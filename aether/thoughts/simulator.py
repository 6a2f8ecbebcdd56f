"""Per-frame drift/decay simulation.

One ``tick`` advances every live thought by one display frame:

* position integrates velocity (plain Euler, no delta-time scaling: a slow
  frame simply means a slower drift, and the ephemeral fade assumes a roughly
  constant tick rate);
* persistent thoughts bounce inside the margins and fade with age down to a
  floor, so they only ever leave through capacity eviction;
* ephemeral thoughts fly outward, lose a fixed amount of opacity per tick and
  are retired when transparent or far enough off screen.

The simulator is the only component that mutates thought state; renderers
get value copies through :meth:`ThoughtStore.snapshot`.
"""
from __future__ import annotations

import logging
from typing import Optional, Tuple

from aether.config import DriftConfig, EphemeralConfig

from .model import Clock, Thought, Viewport, now_ms
from .store import ThoughtStore

_log = logging.getLogger(__name__)


def _band(lo: float, hi: float) -> Tuple[float, float]:
    # Viewport smaller than both margins: collapse to the middle line.
    if lo > hi:
        mid = (lo + hi) / 2.0
        return mid, mid
    return lo, hi


def _reflect_axis(pos: float, vel: float, lo: float, hi: float) -> Tuple[float, float]:
    if pos < lo:
        if vel < 0:
            vel = -vel
        pos = lo
    elif pos > hi:
        if vel > 0:
            vel = -vel
        pos = hi
    return pos, vel


class DriftSimulator:
    def __init__(
        self,
        store: ThoughtStore,
        viewport: Viewport,
        drift: Optional[DriftConfig] = None,
        ephemeral: Optional[EphemeralConfig] = None,
        *,
        clock: Clock = now_ms,
    ) -> None:
        self.store = store
        self.viewport = viewport
        self.drift = drift or DriftConfig()
        self.ephemeral = ephemeral or EphemeralConfig()
        self.clock = clock
        self.frames = 0

    # ---- bounds ----------------------------------------------------------
    def bounds(self) -> Tuple[Tuple[float, float], Tuple[float, float]]:
        """((x_lo, x_hi), (y_lo, y_hi)) for persistent thoughts."""
        d, vp = self.drift, self.viewport
        return (
            _band(d.margin_x, vp.width - d.margin_x),
            _band(d.margin_top, vp.height - d.margin_bottom),
        )

    def is_off_screen(self, thought: Thought) -> bool:
        thr = self.ephemeral.exit_threshold
        p, vp = thought.position, self.viewport
        return p.x < -thr or p.x > vp.width + thr or p.y < -thr or p.y > vp.height + thr

    # ---- opacity ---------------------------------------------------------
    def age_opacity(self, age_ms: float) -> float:
        d = self.drift
        window = d.decay_window_ms if d.decay_window_ms > 0 else 1.0
        return max(d.floor, min(1.0, d.baseline - age_ms / window))

    # ---- stepping --------------------------------------------------------
    def step(self, thought: Thought, now: float) -> bool:
        """Advance one thought by one frame. Returns False when it should be retired."""
        policy = thought.policy
        pos, vel = thought.position, thought.velocity

        pos.x += vel.x
        pos.y += vel.y

        if policy.reflect:
            (x_lo, x_hi), (y_lo, y_hi) = self.bounds()
            pos.x, vel.x = _reflect_axis(pos.x, vel.x, x_lo, x_hi)
            pos.y, vel.y = _reflect_axis(pos.y, vel.y, y_lo, y_hi)

        if policy.age_decay:
            thought.opacity = self.age_opacity(thought.age_ms(now))
        else:
            thought.opacity = max(0.0, thought.opacity - self.ephemeral.fade_step)

        if not policy.removable:
            return True
        return not (thought.opacity <= 0.0 or self.is_off_screen(thought))

    def tick(self) -> int:
        """Advance the whole store one frame and publish it. Returns removals."""
        now = self.clock()
        removed = self.store.replace(lambda t: self.step(t, now))
        self.frames += 1
        if removed:
            _log.debug("frame %d retired %d thought(s)", self.frames, removed)
        return removed

    def resize(self, width: float, height: float) -> None:
        self.viewport.width = float(width)
        self.viewport.height = float(height)
