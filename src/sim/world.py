# src/sim/world.py
"""
Offline stand-in for the game client.

SimWorld implements WorldStateProvider over a GridMap: the agent walks
toward the last commanded point at a fixed speed, walls block it, and
stepping on an exit cell moves it into a transit zone. After a short
dwell it re-enters a fresh instance of the target zone at the spawn,
which is what a completed run looks like from the navigation loop.

SimSink implements ActuationSink by unprojecting surface points back into
grid space and commanding the SimWorld.
"""

from __future__ import annotations

import logging
import math
from threading import Lock
from typing import Optional

from contracts.types import Point2D, Rect, SurfacePoint

from .grid import GridMap

log = logging.getLogger(__name__)

# Grid cell -> game world units.
GRID_TO_WORLD = 250.0 / 23.0


class SimWorld:
    def __init__(
        self,
        grid: GridMap,
        *,
        speed: float = 8.0,
        viewport: Rect = Rect(0, 0, 1280, 720),
        zoom: float = 3.5,
        zone_name: str = "the_aqueduct",
        transit_zone_name: str = "hideout",
        transit_dwell_s: float = 0.5,
    ) -> None:
        self.grid = grid
        self.speed = speed
        self.viewport = viewport
        self.zoom = zoom
        self.zone_name = zone_name
        self.transit_zone_name = transit_zone_name
        self.transit_dwell_s = transit_dwell_s

        self._lock = Lock()
        self._position = Point2D(float(grid.spawn[0]), float(grid.spawn[1]))
        self._commanded: Optional[Point2D] = None
        self.instance = 1
        self._in_transit = False
        self._transit_elapsed = 0.0
        self.exits_taken = 0
        self.blocked_steps = 0

    # ------------------------------------------------------------------
    # WorldStateProvider
    # ------------------------------------------------------------------

    def current_position(self) -> Point2D:
        with self._lock:
            return self._position

    def current_zone_id(self) -> str:
        if self._in_transit:
            return f"{self.transit_zone_name}_{self.instance}"
        return f"{self.zone_name}_{self.instance}"

    def zone_bounds(self) -> Optional[Rect]:
        return None if self._in_transit else self.grid.bounds()

    def project_to_surface(self, world_point: Point2D) -> SurfacePoint:
        pos = self.current_position()
        scale = GRID_TO_WORLD * self.zoom
        cx = (self.viewport.left + self.viewport.right) / 2.0
        cy = (self.viewport.top + self.viewport.bottom) / 2.0
        return SurfacePoint(cx + (world_point.x - pos.x) * scale, cy + (world_point.y - pos.y) * scale)

    def viewport_bounds(self) -> Rect:
        return self.viewport

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------

    def unproject(self, point: SurfacePoint) -> Point2D:
        pos = self.current_position()
        scale = GRID_TO_WORLD * self.zoom
        cx = (self.viewport.left + self.viewport.right) / 2.0
        cy = (self.viewport.top + self.viewport.bottom) / 2.0
        return Point2D(pos.x + (point.x - cx) / scale, pos.y + (point.y - cy) / scale)

    def command(self, target: Point2D) -> None:
        with self._lock:
            self._commanded = target

    def advance(self, dt: float) -> None:
        """Move the agent for dt seconds."""
        if self._in_transit:
            self._transit_elapsed += dt
            if self._transit_elapsed >= self.transit_dwell_s:
                self._enter_new_instance()
            return

        with self._lock:
            target = self._commanded
            pos = self._position
            if target is None:
                return
            dx = target.x - pos.x
            dy = target.y - pos.y
            dist = math.hypot(dx, dy)
            if dist < 1e-6:
                return
            step = min(dist, self.speed * dt)
            nxt = Point2D(pos.x + dx / dist * step, pos.y + dy / dist * step)
            if not self._walkable(nxt):
                # Slide along whichever axis is free.
                slide_x = Point2D(nxt.x, pos.y)
                slide_y = Point2D(pos.x, nxt.y)
                if self._walkable(slide_x):
                    nxt = slide_x
                elif self._walkable(slide_y):
                    nxt = slide_y
                else:
                    self.blocked_steps += 1
                    return
            self._position = nxt

        if self.grid.is_exit(self._cell(nxt)):
            self._enter_transit()

    def _enter_transit(self) -> None:
        log.info("Agent reached exit of %s", self.current_zone_id())
        self.exits_taken += 1
        self._in_transit = True
        self._transit_elapsed = 0.0
        with self._lock:
            self._commanded = None

    def _enter_new_instance(self) -> None:
        self._in_transit = False
        self.instance += 1
        with self._lock:
            self._position = Point2D(float(self.grid.spawn[0]), float(self.grid.spawn[1]))
            self._commanded = None
        log.info("Entered %s", self.current_zone_id())

    def _walkable(self, p: Point2D) -> bool:
        return self.grid.is_walkable(self._cell(p))

    @staticmethod
    def _cell(p: Point2D):
        return (int(round(p.x)), int(round(p.y)))


class SimSink:
    """ActuationSink that drives a SimWorld."""

    def __init__(self, world: SimWorld) -> None:
        self._world = world
        self._cursor: Optional[SurfacePoint] = None
        self.commands = 0

    def move_and_click(self, point: SurfacePoint) -> None:
        self._world.command(self._world.unproject(point))
        self.commands += 1

    def move_cursor(self, point: SurfacePoint) -> None:
        self._cursor = point

    def press_key(self, key: str) -> None:
        if self._cursor is None:
            return
        self._world.command(self._world.unproject(self._cursor))
        self.commands += 1
