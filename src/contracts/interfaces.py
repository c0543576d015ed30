# collaborator interfaces: world feed, pathfinding oracle, actuation sink
# src/contracts/interfaces.py

from __future__ import annotations

from typing import Callable, Optional, Protocol, Sequence

from .types import CancelToken, Point2D, Rect, SurfacePoint, Waypoint, ZoneId

# Oracle result callback. None or an empty sequence means "no path found".
PathCallback = Callable[[Optional[Sequence[Waypoint]]], None]


class OracleUnavailableError(ConnectionError):
    """Raised by request_path when the transport to the oracle is gone."""


class WorldStateProvider(Protocol):
    """Read-only view of the agent and its surroundings.

    Implementations wrap whatever the host exposes (game memory reader,
    simulator, replay file). The navigation loop only reads through this
    interface and never caches its answers across ticks.
    """

    def current_position(self) -> Point2D:
        """Agent position in grid coordinates."""
        ...

    def current_zone_id(self) -> ZoneId:
        """Identity of the zone (area instance) the agent is in."""
        ...

    def zone_bounds(self) -> Optional[Rect]:
        """Grid-space bounds of the current zone, or None if unknown."""
        ...

    def project_to_surface(self, world_point: Point2D) -> SurfacePoint:
        """Project a grid point onto the actuation surface."""
        ...

    def viewport_bounds(self) -> Rect:
        """Visible region of the actuation surface."""
        ...


class PathfindingOracle(Protocol):
    """Asynchronous black-box pathfinder.

    `request_path` must return immediately. `on_result` is invoked zero or
    one time, possibly from another thread, at any later point.

    Transport-backed oracles may also expose `tick()` (pumped once per
    navigation tick) and a `connected` property. Losing the transport is
    reported through `connected` and OracleUnavailableError, never by
    raising from `tick()`.
    """

    def is_available(self) -> bool:
        """Return True when the oracle can currently accept requests."""
        ...

    def request_path(
        self,
        target: Point2D,
        on_result: PathCallback,
        cancel_token: CancelToken,
    ) -> None:
        ...


class ActuationSink(Protocol):
    """Fire-and-forget pointer/keyboard emitter."""

    def move_and_click(self, point: SurfacePoint) -> None:
        ...

    def move_cursor(self, point: SurfacePoint) -> None:
        ...

    def press_key(self, key: str) -> None:
        ...
