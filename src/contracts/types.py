# core shared value types: Point2D, Waypoint, Path, Rect, CancelToken
# src/contracts/types.py

from __future__ import annotations

import math
import threading
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Sequence, Tuple, Union

# Zone identity as reported by the world feed (area name / instance id).
ZoneId = str


@dataclass(frozen=True)
class Point2D:
    """A point in world/grid space. Coordinates may be fractional."""

    x: float
    y: float

    def distance_to(self, other: "Point2D") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)


@dataclass(frozen=True)
class Waypoint:
    """One integer grid coordinate of an oracle-returned path."""

    x: int
    y: int

    def as_point(self) -> Point2D:
        return Point2D(float(self.x), float(self.y))


@dataclass(frozen=True)
class SurfacePoint:
    """A point on the actuation surface (screen pixels)."""

    x: float
    y: float

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle; `top` is the smaller y value."""

    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    def contains(self, x: float, y: float, margin: float = 0.0) -> bool:
        """
        Return True if (x, y) lies inside the rectangle grown by `margin`
        on every side. A negative margin shrinks it.
        """
        return (
            self.left - margin <= x <= self.right + margin
            and self.top - margin <= y <= self.bottom + margin
        )


WaypointLike = Union[Waypoint, Sequence[float]]


@dataclass(frozen=True)
class Path:
    """
    Ordered, non-empty sequence of waypoints.

    Paths are immutable: acceptance produces a stamped copy via
    `stamped(now)` and the navigation state swaps the whole object.
    `accepted_at` stays None for candidates that were never accepted.
    """

    waypoints: Tuple[Waypoint, ...]
    accepted_at: Optional[float] = None

    def __post_init__(self) -> None:
        if not self.waypoints:
            raise ValueError("Path requires at least one waypoint")

    @classmethod
    def from_points(
        cls,
        points: Iterable[WaypointLike],
        accepted_at: Optional[float] = None,
    ) -> "Path":
        """Build a Path from Waypoints or (x, y) pairs, rounding to the grid."""
        waypoints = []
        for p in points:
            if isinstance(p, Waypoint):
                waypoints.append(p)
            else:
                waypoints.append(Waypoint(int(round(p[0])), int(round(p[1]))))
        return cls(waypoints=tuple(waypoints), accepted_at=accepted_at)

    @property
    def length(self) -> int:
        return len(self.waypoints)

    @property
    def start(self) -> Waypoint:
        return self.waypoints[0]

    @property
    def end(self) -> Waypoint:
        return self.waypoints[-1]

    @property
    def last_index(self) -> int:
        return len(self.waypoints) - 1

    def point(self, index: int) -> Point2D:
        return self.waypoints[index].as_point()

    def stamped(self, now: float) -> "Path":
        return replace(self, accepted_at=now)

    def age(self, now: float) -> float:
        if self.accepted_at is None:
            return 0.0
        return max(0.0, now - self.accepted_at)


class CancelToken:
    """
    Thread-safe cancellation flag.

    Tokens form a tree: a child reports cancelled when it or any ancestor
    was cancelled. An acquisition round owns one scope token and hands a
    child to every request it dispatches, so cancelling the scope cancels
    the whole round.
    """

    def __init__(self, parent: Optional["CancelToken"] = None) -> None:
        self._event = threading.Event()
        self._parent = parent

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._parent is not None and self._parent.cancelled

    def child(self) -> "CancelToken":
        return CancelToken(parent=self)

    def __repr__(self) -> str:
        return f"CancelToken(cancelled={self.cancelled})"
