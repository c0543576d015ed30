# src/nav_core/pursuit.py
"""
Pure pursuit steering over the accepted path.

Responsibilities:
  - pick a steering target on the path at the pursuit radius
  - fall back to destination / lookahead / cardinal targets
  - pull the target back onto the visible surface
  - advance the path cursor with a taper near the end
  - report arrival at the final waypoint

It reads the world only through project_to_surface / viewport_bounds and
writes only NavigationState.cursor_index (via advance_cursor).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from contracts.interfaces import WorldStateProvider
from contracts.types import Path, Point2D
from profiles.schema import MovementSettings

from .geometry import (
    bearing,
    distance,
    offset,
    passed_midpoint,
    segment_circle_intersection,
    wrap_angle,
)
from .state import NavigationState, PursuitResult

log = logging.getLogger(__name__)

# Eight compass headings, math convention (0 = +x, counter-clockwise).
CARDINAL_ANGLES: Tuple[float, ...] = tuple(i * math.pi / 4.0 for i in range(8))


@dataclass
class PursuitOutcome:
    """
    Result of one navigator step.

    reason is one of: "intersection", "destination", "lookahead",
    "cardinal", "arrived", "no_path", "no_target", "off_surface".
    """

    result: Optional[PursuitResult]
    reason: str
    advanced_by: int = 0
    arrived: bool = False
    clamped: bool = False

    @property
    def target(self) -> Optional[Point2D]:
        return self.result.target if self.result is not None else None


def advance_step(remaining: int) -> int:
    """How many waypoints to skip given how many remain after the cursor."""
    if remaining <= 3:
        return 1
    if remaining <= 10:
        return 2 if remaining <= 6 else 3
    if remaining <= 20:
        return 3
    if remaining <= 40:
        return 4
    return 5


class PurePursuitNavigator:
    def __init__(self, cfg: MovementSettings) -> None:
        self.cfg = cfg

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def step(
        self,
        state: NavigationState,
        agent: Point2D,
        world: WorldStateProvider,
        now: float,
    ) -> PursuitOutcome:
        path = state.current_path
        if path is None:
            return PursuitOutcome(None, "no_path")

        if self._has_arrived(state, agent):
            return PursuitOutcome(None, "arrived", arrived=True)

        found = self.find_intersection(path, state.cursor_index, agent)
        reason = "intersection"
        if found is None:
            fallback = self.fallback_target(path, state.cursor_index, agent, world)
            if fallback is None:
                log.debug("No pursuit target at cursor=%d", state.cursor_index)
                return PursuitOutcome(None, "no_target")
            found, reason = fallback

        visible = self.ensure_visible(agent, found.target, world)
        if visible is None:
            log.debug("Pursuit target %s has no visible substitute", found.target)
            return PursuitOutcome(None, "off_surface")
        clamped = visible != found.target
        if clamped:
            found = PursuitResult(
                target=visible,
                source_segment_index=found.source_segment_index,
                distance_from_agent=distance(agent, visible),
            )

        advanced = self._maybe_advance(state, agent, found.target, now)
        arrived = self._has_arrived(state, agent)
        return PursuitOutcome(
            result=found,
            reason=reason,
            advanced_by=advanced,
            arrived=arrived,
            clamped=clamped,
        )

    def find_intersection(
        self,
        path: Path,
        cursor: int,
        agent: Point2D,
    ) -> Optional[PursuitResult]:
        """First segment from the cursor forward that the pursuit circle crosses."""
        radius = self.cfg.pursuit_radius
        for i in range(cursor, path.last_index):
            hit = segment_circle_intersection(agent, radius, path.point(i), path.point(i + 1))
            if hit is None:
                continue
            point, _ = hit
            return PursuitResult(
                target=point,
                source_segment_index=i,
                distance_from_agent=distance(agent, point),
            )
        return None

    def fallback_target(
        self,
        path: Path,
        cursor: int,
        agent: Point2D,
        world: WorldStateProvider,
    ) -> Optional[Tuple[PursuitResult, str]]:
        radius = self.cfg.pursuit_radius

        # a) destination close enough to aim at directly
        dest = path.point(path.last_index)
        dest_dist = distance(agent, dest)
        if dest_dist <= radius / 2.0:
            seg = max(0, path.last_index - 1)
            return PursuitResult(dest, seg, dest_dist), "destination"

        # b) furthest-along waypoint in a usable distance band
        best: Optional[PursuitResult] = None
        upper = min(path.last_index, cursor + self.cfg.lookahead_waypoints)
        for i in range(cursor + 1, upper + 1):
            wp = path.point(i)
            d = distance(agent, wp)
            if self.cfg.lookahead_min_distance <= d <= 2.0 * radius:
                best = PursuitResult(wp, max(0, i - 1), d)
        if best is not None:
            return best, "lookahead"

        # c) nearest compass heading that projects onto the surface
        next_wp = path.point(min(cursor + 1, path.last_index))
        heading = bearing(agent, next_wp)
        if heading is None:
            heading = bearing(agent, dest) or 0.0
        for angle in self._angles_by_closeness(heading, CARDINAL_ANGLES):
            candidate = offset(agent, angle, radius)
            if self._is_visible(candidate, world):
                return PursuitResult(candidate, cursor, radius), "cardinal"
        return None

    def ensure_visible(
        self,
        agent: Point2D,
        target: Point2D,
        world: WorldStateProvider,
    ) -> Optional[Point2D]:
        """Return target, or the closest visible substitute, or None."""
        if self._is_visible(target, world):
            return target

        radius = self.cfg.pursuit_radius
        heading = bearing(agent, target)
        if heading is None:
            heading = 0.0
        for fraction in self.cfg.visibility_fractions:
            candidate = offset(agent, heading, radius * fraction)
            if self._is_visible(candidate, world):
                return candidate

        sweep_radius = radius * self.cfg.sweep_radius_fraction
        count = self.cfg.sweep_angles
        sweep = [i * 2.0 * math.pi / count for i in range(count)]
        for angle in self._angles_by_closeness(heading, sweep):
            candidate = offset(agent, angle, sweep_radius)
            if self._is_visible(candidate, world):
                return candidate
        return None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _has_arrived(self, state: NavigationState, agent: Point2D) -> bool:
        """
        Arrival needs the cursor on the last waypoint and the agent within
        goal_tolerance of it. goal_tolerance is the tighter of the two
        (clamped to at most arrival_tolerance), which only governs cursor
        advancement.
        """
        path = state.current_path
        if path is None or state.cursor_index < path.last_index:
            return False
        return distance(agent, path.point(path.last_index)) <= self.cfg.goal_tolerance

    def _maybe_advance(
        self,
        state: NavigationState,
        agent: Point2D,
        target: Point2D,
        now: float,
    ) -> int:
        path = state.current_path
        idx = state.cursor_index
        if path is None or idx >= path.last_index:
            return 0

        reached = distance(agent, target) < self.cfg.arrival_tolerance
        passed = passed_midpoint(agent, path.point(idx), path.point(idx + 1))
        if not (reached or passed):
            return 0
        return state.advance_cursor(advance_step(path.last_index - idx), now)

    @staticmethod
    def _angles_by_closeness(heading: float, angles) -> List[float]:
        return sorted(angles, key=lambda a: abs(wrap_angle(a - heading)))

    @staticmethod
    def _is_visible(point: Point2D, world: WorldStateProvider) -> bool:
        surface = world.project_to_surface(point)
        if not surface.is_finite():
            return False
        return world.viewport_bounds().contains(surface.x, surface.y)
