# tests/test_sim_pathfinder.py
"""
Unit tests for sim.grid.GridMap + sim.pathfinder.

We build small synthetic maps from ASCII rows, so no game data is
required.
"""

from __future__ import annotations

from contracts.types import Point2D, Rect, Waypoint
from sim.grid import Cell, GridMap
from sim.pathfinder import find_path, find_waypoints


OPEN_ROOM = (
    "#######",
    "#S....#",
    "#.....#",
    "#######",
)

WALLED_ROOM = (
    "#######",
    "#S.#..#",
    "#..#..#",
    "#.....#",
    "#######",
)

SEALED_ROOM = (
    "#######",
    "#S.#..#",
    "#..#..#",
    "#######",
)


def test_map_parsing() -> None:
    grid = GridMap.from_rows(OPEN_ROOM)

    assert grid.width == 7
    assert grid.height == 4
    assert grid.spawn == (1, 1)
    assert not grid.is_walkable((0, 0))
    assert grid.is_walkable((3, 2))
    assert not grid.is_walkable((10, 10))
    assert grid.bounds() == Rect(0, 0, 6, 3)


def test_default_map_has_exits() -> None:
    grid = GridMap.default()

    assert grid.spawn == (1, 1)
    assert grid.is_exit((58, 1))
    assert grid.is_walkable((58, 3))


def test_diagonals_do_not_cut_corners() -> None:
    grid = GridMap.from_rows(WALLED_ROOM)

    neighbours = dict(grid.neighbors_8dir((2, 2)))

    # (3, 1) and (3, 3) would slip past the wall at (3, 2)
    assert (3, 3) not in neighbours
    assert (1, 3) in neighbours
    assert neighbours[(1, 3)] > 1.4


def test_find_path_in_open_space() -> None:
    grid = GridMap.from_rows(OPEN_ROOM)
    start: Cell = (1, 1)
    goal: Cell = (5, 1)

    result = find_path(grid, start=start, goal=goal, max_steps=100)

    assert result.success
    assert result.path[0] == start
    assert result.path[-1] == goal
    assert len(result.path) == 5


def test_find_path_around_wall() -> None:
    grid = GridMap.from_rows(WALLED_ROOM)

    result = find_path(grid, start=(1, 1), goal=(5, 1), max_steps=200)

    assert result.success
    assert result.path[-1] == (5, 1)
    for cell in result.path:
        assert grid.is_walkable(cell), f"path crosses wall at {cell}"
    assert any(y == 3 for _, y in result.path)


def test_find_path_no_route() -> None:
    grid = GridMap.from_rows(SEALED_ROOM)

    result = find_path(grid, start=(1, 1), goal=(5, 1))

    assert not result.success
    assert result.reason == "no_path_found"
    assert result.path == []


def test_find_path_max_steps_exhaustion() -> None:
    grid = GridMap.default()

    result = find_path(grid, start=(1, 1), goal=(58, 2), max_steps=10)

    assert not result.success
    assert result.reason == "max_steps_exhausted"


def test_blocked_endpoints() -> None:
    grid = GridMap.from_rows(OPEN_ROOM)

    assert find_path(grid, (0, 0), (5, 1)).reason == "start_blocked"
    assert find_path(grid, (1, 1), (0, 0)).reason == "goal_blocked"


def test_find_waypoints_crosses_default_map() -> None:
    grid = GridMap.default()

    waypoints = find_waypoints(grid, Point2D(1.2, 0.8), Point2D(58.0, 2.0))

    assert waypoints is not None
    assert waypoints[0] == Waypoint(1, 1)
    assert waypoints[-1] == Waypoint(58, 2)


def test_find_waypoints_snaps_goal_out_of_walls() -> None:
    grid = GridMap.from_rows(WALLED_ROOM)

    waypoints = find_waypoints(grid, Point2D(1, 1), Point2D(3, 1))

    assert waypoints is not None
    end = waypoints[-1]
    assert grid.is_walkable((end.x, end.y))
    assert abs(end.x - 3) <= 1 and abs(end.y - 1) <= 1


def test_find_waypoints_unreachable_is_none() -> None:
    grid = GridMap.from_rows(SEALED_ROOM)

    assert find_waypoints(grid, Point2D(1, 1), Point2D(5, 1)) is None
