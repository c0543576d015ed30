# src/nav_core/testing/fakes.py
"""
Test helpers for nav_core.

Provides:
- FakeWorld: settable position / zone, linear camera projection.
- FakeOracle: records requests; tests resolve them by hand (or via a
  responder function called synchronously). Can drop and restore its
  connection.
- FakeSink: records every emitted command; can be told to fail.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from contracts.types import CancelToken, Point2D, Rect, SurfacePoint, Waypoint
from contracts.interfaces import PathCallback


class FakeWorld:
    """
    Camera follows the agent: the agent always projects to the viewport
    centre and one world unit is `scale` surface pixels.
    """

    def __init__(
        self,
        position: Tuple[float, float] = (0.0, 0.0),
        zone_id: str = "the_aqueduct_1",
        viewport: Rect = Rect(0, 0, 2000, 2000),
        scale: float = 1.0,
        bounds: Optional[Rect] = None,
    ) -> None:
        self.position = Point2D(float(position[0]), float(position[1]))
        self.zone_id = zone_id
        self.viewport = viewport
        self.scale = scale
        self.bounds = bounds
        self.position_reads = 0

    def move_to(self, x: float, y: float) -> None:
        self.position = Point2D(float(x), float(y))

    # WorldStateProvider
    def current_position(self) -> Point2D:
        self.position_reads += 1
        return self.position

    def current_zone_id(self) -> str:
        return self.zone_id

    def zone_bounds(self) -> Optional[Rect]:
        return self.bounds

    def project_to_surface(self, world_point: Point2D) -> SurfacePoint:
        cx = (self.viewport.left + self.viewport.right) / 2.0
        cy = (self.viewport.top + self.viewport.bottom) / 2.0
        return SurfacePoint(
            cx + (world_point.x - self.position.x) * self.scale,
            cy + (world_point.y - self.position.y) * self.scale,
        )

    def viewport_bounds(self) -> Rect:
        return self.viewport


@dataclass
class OracleCall:
    target: Point2D
    callback: PathCallback
    cancel_token: CancelToken
    answered: bool = False

    def respond(self, waypoints: Optional[Sequence]) -> None:
        self.answered = True
        self.callback(waypoints)


class FakeOracle:
    def __init__(
        self,
        available: bool = True,
        responder: Optional[Callable[[Point2D], Optional[Sequence]]] = None,
    ) -> None:
        self.available = available
        self.responder = responder
        self.calls: List[OracleCall] = []
        self.availability_checks = 0
        self.fail_requests = False
        # Mirrors IpcPathOracle.connected; flip to simulate a dropped transport.
        self.connected = True

    def drop_connection(self) -> None:
        self.connected = False
        self.available = False

    def restore_connection(self) -> None:
        self.connected = True
        self.available = True

    def is_available(self) -> bool:
        self.availability_checks += 1
        return self.available

    def request_path(
        self,
        target: Point2D,
        on_result: PathCallback,
        cancel_token: CancelToken,
    ) -> None:
        if self.fail_requests:
            raise ConnectionError("oracle offline")
        call = OracleCall(target, on_result, cancel_token)
        self.calls.append(call)
        if self.responder is not None:
            call.respond(self.responder(target))

    # ------------------------------------------------------------------
    # Test-only helpers
    # ------------------------------------------------------------------

    def pending(self) -> List[OracleCall]:
        return [c for c in self.calls if not c.answered]

    def respond(self, index: int, waypoints: Optional[Sequence]) -> None:
        self.calls[index].respond(waypoints)

    def respond_all(self, waypoints: Optional[Sequence]) -> None:
        for call in self.pending():
            call.respond(waypoints)


@dataclass
class FakeSink:
    clicks: List[SurfacePoint] = field(default_factory=list)
    cursor_moves: List[SurfacePoint] = field(default_factory=list)
    keys: List[str] = field(default_factory=list)
    fail: bool = False

    def move_and_click(self, point: SurfacePoint) -> None:
        if self.fail:
            raise OSError("input device unavailable")
        self.clicks.append(point)

    def move_cursor(self, point: SurfacePoint) -> None:
        if self.fail:
            raise OSError("input device unavailable")
        self.cursor_moves.append(point)

    def press_key(self, key: str) -> None:
        if self.fail:
            raise OSError("input device unavailable")
        self.keys.append(key)


def straight_path(length: int, step: int = 1, y: int = 0) -> List[Waypoint]:
    """Waypoints (0,y), (step,y), ... with `length` entries."""
    return [Waypoint(i * step, y) for i in range(length)]
