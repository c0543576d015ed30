# src/nav_core/candidates.py
"""
Candidate goal generation for path acquisition rounds.

Produces a bounded, ordered list of exploration targets around the agent:
zone-edge probes first (favouring edges away from spawn), then radial
probes in eight directions, then an outward spiral. Order matters: the
acquisition manager dispatches candidates in this order.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from contracts.types import CancelToken, Point2D, Rect
from profiles.schema import AcquisitionSettings

from .geometry import clamp_to_rect, distance, offset

DIRECTION_NAMES: Tuple[Tuple[str, float], ...] = tuple(
    (name, i * math.pi / 4.0)
    for i, name in enumerate(("E", "NE", "N", "NW", "W", "SW", "S", "SE"))
)

# Candidates closer than this to the agent or to each other are dropped.
MIN_SEPARATION = 1.0


@dataclass(frozen=True)
class CandidateGoal:
    target: Point2D
    rationale: str


@dataclass(frozen=True)
class CandidateRequest:
    """A dispatched (or queued) oracle request for one candidate goal."""
    request_id: int
    round_id: int
    target: Point2D
    rationale: str
    cancel_token: CancelToken


class CandidateGenerator:
    def __init__(self, cfg: AcquisitionSettings) -> None:
        self.cfg = cfg

    def generate(
        self,
        position: Point2D,
        spawn: Optional[Point2D] = None,
        zone_bounds: Optional[Rect] = None,
        limit: Optional[int] = None,
    ) -> List[CandidateGoal]:
        ordered: List[CandidateGoal] = []
        ordered.extend(self.edge_probes(position, spawn, zone_bounds))
        ordered.extend(self._rank_away_from(spawn, self.direction_probes(position)))
        ordered.extend(self.spiral_probes(position))

        result: List[CandidateGoal] = []
        for goal in ordered:
            target = goal.target
            if zone_bounds is not None:
                target = clamp_to_rect(
                    target, zone_bounds.left, zone_bounds.top, zone_bounds.right, zone_bounds.bottom
                )
            if distance(target, position) < MIN_SEPARATION:
                continue
            if any(distance(target, g.target) < MIN_SEPARATION for g in result):
                continue
            result.append(CandidateGoal(target, goal.rationale))
            if limit is not None and len(result) >= limit:
                break
        return result

    # ------------------------------------------------------------------
    # Probe families
    # ------------------------------------------------------------------

    def direction_probes(self, position: Point2D) -> List[CandidateGoal]:
        goals = []
        for dist in self.cfg.probe_distances:
            for name, angle in DIRECTION_NAMES:
                goals.append(
                    CandidateGoal(offset(position, angle, dist), f"{name} probe at {dist:g}")
                )
        return goals

    def edge_probes(
        self,
        position: Point2D,
        spawn: Optional[Point2D],
        zone_bounds: Optional[Rect],
    ) -> List[CandidateGoal]:
        if zone_bounds is None:
            return []
        goals = []
        for fraction in self.cfg.edge_fractions:
            pct = int(round(fraction * 100))
            goals.extend(
                [
                    CandidateGoal(
                        Point2D(position.x + fraction * (zone_bounds.right - position.x), position.y),
                        f"east edge {pct}%",
                    ),
                    CandidateGoal(
                        Point2D(position.x - fraction * (position.x - zone_bounds.left), position.y),
                        f"west edge {pct}%",
                    ),
                    CandidateGoal(
                        Point2D(position.x, position.y - fraction * (position.y - zone_bounds.top)),
                        f"top edge {pct}%",
                    ),
                    CandidateGoal(
                        Point2D(position.x, position.y + fraction * (zone_bounds.bottom - position.y)),
                        f"bottom edge {pct}%",
                    ),
                ]
            )
        # Without a spawn reference, prefer the edge with the most room.
        anchor = spawn if spawn is not None else position
        return self._rank_away_from(anchor, goals)

    def spiral_probes(self, position: Point2D) -> List[CandidateGoal]:
        count = self.cfg.spiral_points
        goals = []
        for k in range(count):
            angle = k * 2.0 * math.pi / count
            radius = self.cfg.spiral_start_radius + k * self.cfg.spiral_radius_step
            goals.append(CandidateGoal(offset(position, angle, radius), f"spiral {k}"))
        return goals

    @staticmethod
    def _rank_away_from(
        anchor: Optional[Point2D],
        goals: Iterable[CandidateGoal],
    ) -> List[CandidateGoal]:
        goals = list(goals)
        if anchor is None:
            return goals
        # sorted() is stable, so ties keep generation order.
        return sorted(goals, key=lambda g: -distance(anchor, g.target))
