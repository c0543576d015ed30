# src/nav_core/stuck.py
"""
Stuck and loop detection with bounded recovery.

Three independent signals feed it:
  - position samples: a full window of samples within movement precision
    of their centroid means the agent is not moving
  - steering targets: the same target tick after tick while the agent
    stays put means pursuit is looping on one spot
  - actuation points: the gate emitting the same rounded surface point
    over and over

Each trigger returns a RecoveryAction for the controller to apply. The
two loop signals only ever skip the cursor ahead; a re-path is reserved
for a still window near the end of the path. The detector updates the
counters in NavigationState but never touches the path or cursor itself.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque

from contracts.types import Point2D
from profiles.schema import StuckSettings

from .geometry import distance
from .state import NavigationState

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecoveryAction:
    """kind is "none", "advance" (skip advance_by waypoints) or "repath"."""
    kind: str = "none"
    advance_by: int = 0
    reason: str = ""

    @property
    def triggered(self) -> bool:
        return self.kind != "none"


NO_RECOVERY = RecoveryAction()


class StuckDetector:
    def __init__(self, cfg: StuckSettings, movement_precision: float) -> None:
        self.cfg = cfg
        self.movement_precision = movement_precision
        self._window: Deque[Point2D] = deque(maxlen=cfg.window)
        self.triggers = 0

    def reset(self, state: NavigationState | None = None) -> None:
        self._window.clear()
        if state is not None:
            state.reset_counters()

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    def observe_position(self, state: NavigationState, position: Point2D) -> RecoveryAction:
        self._window.append(position)
        if self._max_deviation() >= self.movement_precision:
            self._window.clear()
            self._window.append(position)
            state.stuck_counter = 0
            return NO_RECOVERY

        state.stuck_counter += 1
        if state.stuck_counter < self.cfg.window:
            return NO_RECOVERY

        self._window.clear()
        state.stuck_counter = 0
        log.warning("No movement over %d samples at %s", self.cfg.window, position)
        return self._recover(state, self.cfg.advance_steps, "no movement")

    def observe_target(
        self,
        state: NavigationState,
        target: Point2D,
        position: Point2D,
    ) -> RecoveryAction:
        """
        Count ticks where the target repeats and the agent is still within
        movement precision of where the repeat started. Walking steadily
        toward a fixed target (the destination fallback) never counts.
        """
        last = state.last_target_point
        anchor = state.last_target_anchor
        repeated = (
            last is not None
            and anchor is not None
            and distance(last, target) <= self.cfg.duplicate_target_tolerance
            and distance(anchor, position) <= self.movement_precision
        )
        if repeated:
            state.duplicate_target_counter += 1
        else:
            state.duplicate_target_counter = 0
            state.last_target_anchor = position
        state.last_target_point = target

        if state.duplicate_target_counter < self.cfg.duplicate_target_threshold:
            return NO_RECOVERY
        state.duplicate_target_counter = 0
        log.warning("Steering target repeated near %s", target)
        return self._skip_ahead(state, self.cfg.duplicate_target_advance_steps, "repeated steering target")

    def observe_actuation(self, state: NavigationState, duplicate: bool) -> RecoveryAction:
        if not duplicate:
            state.duplicate_actuation_counter = 0
            return NO_RECOVERY
        state.duplicate_actuation_counter += 1
        if state.duplicate_actuation_counter < self.cfg.duplicate_actuation_threshold:
            return NO_RECOVERY
        state.duplicate_actuation_counter = 0
        log.warning("Actuation point repeated %d times", self.cfg.duplicate_actuation_threshold)
        return self._skip_ahead(state, self.cfg.advance_steps, "repeated actuation point")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _max_deviation(self) -> float:
        n = len(self._window)
        cx = sum(p.x for p in self._window) / n
        cy = sum(p.y for p in self._window) / n
        centroid = Point2D(cx, cy)
        return max(distance(p, centroid) for p in self._window)

    def _recover(self, state: NavigationState, steps: int, reason: str) -> RecoveryAction:
        self.triggers += 1
        if state.current_path is None or state.remaining_waypoints <= self.cfg.near_end_waypoints:
            return RecoveryAction("repath", 0, reason)
        return RecoveryAction("advance", min(steps, state.remaining_waypoints), reason)

    def _skip_ahead(self, state: NavigationState, steps: int, reason: str) -> RecoveryAction:
        remaining = state.remaining_waypoints
        if remaining == 0:
            # Already on the last waypoint; the position window handles it.
            return NO_RECOVERY
        self.triggers += 1
        return RecoveryAction("advance", min(steps, remaining), reason)
