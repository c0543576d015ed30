# src/nav_core/actuation.py
"""
Actuation gate: the only path from a steering target to the sink.

Checks, in order:
  - the projected surface point is finite and not wildly off-screen
  - enough time has passed since the previous emission; the required
    gap shrinks as the target gets further away
Then emits a click (or cursor move + movement key), records the
emission and reports whether the surface point repeated the last one.

Sink failures are reported in the GateResult, never raised.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from contracts.interfaces import ActuationSink, WorldStateProvider
from contracts.types import Point2D, SurfacePoint
from profiles.schema import ActuationSettings

from .geometry import distance
from .tracing import ActuationTracer

log = logging.getLogger(__name__)


@dataclass
class GateResult:
    """
    Outcome of one gate submission.

    error codes: "implausible_projection", "rate_limited", "sink_error".
    """

    emitted: bool
    surface_point: Optional[SurfacePoint] = None
    duplicate: bool = False
    delay_s: float = 0.0
    error: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


class ActuationGate:
    def __init__(
        self,
        sink: ActuationSink,
        cfg: ActuationSettings,
        pursuit_radius: float,
        tracer: Optional[ActuationTracer] = None,
    ) -> None:
        self._sink = sink
        self.cfg = cfg
        self._pursuit_radius = pursuit_radius
        self._tracer = tracer
        self._last_key: Optional[Tuple[int, int]] = None
        self._last_emitted_at: Optional[float] = None
        self.emitted_count = 0

    @property
    def last_emitted_at(self) -> Optional[float]:
        return self._last_emitted_at

    def reset(self) -> None:
        self._last_key = None
        self._last_emitted_at = None

    def required_delay(self, target_distance: float) -> float:
        """Linear from max_delay (at the agent) to min_delay (at the pursuit radius)."""
        frac = min(1.0, max(0.0, target_distance / self._pursuit_radius))
        return self.cfg.max_delay_s - (self.cfg.max_delay_s - self.cfg.min_delay_s) * frac

    def submit(
        self,
        world_target: Point2D,
        agent: Point2D,
        world: WorldStateProvider,
        now: float,
    ) -> GateResult:
        surface = world.project_to_surface(world_target)
        if not self._is_plausible(surface, world):
            log.warning("Skipping implausible projection %s for target %s", surface, world_target)
            return GateResult(False, surface, error="implausible_projection")

        delay = self.required_delay(distance(agent, world_target))
        if self._last_emitted_at is not None:
            elapsed = now - self._last_emitted_at
            if elapsed < delay:
                return GateResult(
                    False,
                    surface,
                    delay_s=delay,
                    error="rate_limited",
                    details={"wait_s": delay - elapsed},
                )

        key = (int(round(surface.x)), int(round(surface.y)))
        duplicate = self._last_key == key
        mode = "key" if self.cfg.use_movement_key else "click"

        error: Optional[str] = None
        details: Dict[str, Any] = {}
        try:
            if self.cfg.use_movement_key:
                self._sink.move_cursor(surface)
                self._sink.press_key(self.cfg.movement_key)
            else:
                self._sink.move_and_click(surface)
        except Exception as exc:
            log.exception("Actuation sink failed for %s", surface)
            error = "sink_error"
            details["exception"] = repr(exc)

        # Failed emissions still consume the slot so a broken sink is not hammered.
        self._last_key = key
        self._last_emitted_at = now
        if error is None:
            self.emitted_count += 1

        if self._tracer is not None:
            self._tracer.record(
                world_target=world_target,
                surface_point=surface,
                agent_position=agent,
                mode=mode,
                delay_s=delay,
                duplicate=duplicate,
                error=error,
            )
        return GateResult(
            emitted=error is None,
            surface_point=surface,
            duplicate=duplicate,
            delay_s=delay,
            error=error,
            details=details,
        )

    def _is_plausible(self, surface: SurfacePoint, world: WorldStateProvider) -> bool:
        if not (math.isfinite(surface.x) and math.isfinite(surface.y)):
            return False
        view = world.viewport_bounds()
        margin = max(view.width, view.height) * self.cfg.plausible_margin
        return view.contains(surface.x, surface.y, margin=margin)
