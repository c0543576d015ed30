# A* pathfinding over GridMap
# src/sim/pathfinder.py
"""
A* pathfinding over GridMap.

- Octile distance heuristic, 8-directional moves without corner cutting.
- Goals inside walls or off-map snap to the nearest walkable cell.
- max_steps guard to bound search time per request.
"""

from __future__ import annotations

import heapq
import math
from dataclasses import dataclass
from typing import Dict, List, Optional

from contracts.types import Point2D, Waypoint

from .grid import Cell, GridMap


@dataclass
class PathfindingResult:
    """Structured result for a pathfinding attempt."""

    path: List[Cell]
    success: bool
    reason: str | None = None


def _heuristic(a: Cell, b: Cell) -> float:
    dx = abs(a[0] - b[0])
    dy = abs(a[1] - b[1])
    return max(dx, dy) + (math.sqrt(2.0) - 1.0) * min(dx, dy)


def find_path(
    grid: GridMap,
    start: Cell,
    goal: Cell,
    max_steps: int = 20_000,
) -> PathfindingResult:
    """
    A* search from start to goal.

    Returns a PathfindingResult whose path includes both endpoints when
    successful.
    """
    if not grid.is_walkable(start):
        return PathfindingResult(path=[], success=False, reason="start_blocked")
    if not grid.is_walkable(goal):
        return PathfindingResult(path=[], success=False, reason="goal_blocked")
    if start == goal:
        return PathfindingResult(path=[start], success=True)

    open_heap: List[tuple[float, Cell]] = [(0.0, start)]
    came_from: Dict[Cell, Cell] = {}
    g_score: Dict[Cell, float] = {start: 0.0}
    steps_remaining = max_steps

    while open_heap and steps_remaining > 0:
        _, current = heapq.heappop(open_heap)
        steps_remaining -= 1

        if current == goal:
            return PathfindingResult(path=_reconstruct_path(came_from, current), success=True)

        for nxt, cost in grid.neighbors_8dir(current):
            tentative_g = g_score[current] + cost
            if tentative_g < g_score.get(nxt, float("inf")):
                came_from[nxt] = current
                g_score[nxt] = tentative_g
                heapq.heappush(open_heap, (tentative_g + _heuristic(nxt, goal), nxt))

    reason = "max_steps_exhausted" if steps_remaining <= 0 else "no_path_found"
    return PathfindingResult(path=[], success=False, reason=reason)


def _reconstruct_path(came_from: Dict[Cell, Cell], current: Cell) -> List[Cell]:
    path: List[Cell] = [current]
    while current in came_from:
        current = came_from[current]
        path.append(current)
    path.reverse()
    return path


def find_waypoints(grid: GridMap, start: Point2D, goal: Point2D) -> Optional[List[Waypoint]]:
    """
    Oracle-shaped wrapper: world points in, waypoints (or None) out.
    """
    start_cell = grid.nearest_walkable((int(round(start.x)), int(round(start.y))))
    goal_cell = grid.nearest_walkable((int(round(goal.x)), int(round(goal.y))))
    if start_cell is None or goal_cell is None:
        return None
    result = find_path(grid, start_cell, goal_cell)
    if not result.success:
        return None
    return [Waypoint(x, y) for x, y in result.path]
