# walkability grid for the offline simulator
# src/sim/grid.py
"""
GridMap: a flat 2D walkability grid parsed from ASCII rows.

Legend:
    '#'  wall
    '.'  floor
    'S'  spawn (floor)
    'E'  zone exit (floor); stepping on it changes zone
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Sequence, Tuple

from contracts.types import Rect

Cell = Tuple[int, int]


DEFAULT_MAP: Tuple[str, ...] = (
    "############################################################",
    "#S.........#...............#..............................E#",
    "#..........#...............#..............................E#",
    "#..........#.......####....#.......#########..............E#",
    "#..........#..........#....#...............#...............#",
    "#.....................#....................#...............#",
    "#.....................#....................#...............#",
    "#######.......#########.........############.......#########",
    "#.............#.......................#....................#",
    "#.............#.......................#....................#",
    "#......########.......#####...........#..........#.........#",
    "#.........................#......................#.........#",
    "#.........................#......................#.........#",
    "#..............############..........#############.........#",
    "#..........................................................#",
    "#..........................................................#",
    "############################################################",
)


@dataclass(frozen=True)
class GridMap:
    width: int
    height: int
    walls: FrozenSet[Cell]
    exits: FrozenSet[Cell]
    spawn: Cell

    @classmethod
    def from_rows(cls, rows: Sequence[str]) -> "GridMap":
        if not rows:
            raise ValueError("GridMap needs at least one row")
        width = max(len(r) for r in rows)
        walls = set()
        exits = set()
        spawn: Optional[Cell] = None
        for y, row in enumerate(rows):
            for x in range(width):
                ch = row[x] if x < len(row) else "#"
                if ch == "#":
                    walls.add((x, y))
                elif ch == "E":
                    exits.add((x, y))
                elif ch == "S":
                    spawn = (x, y)
                elif ch != ".":
                    raise ValueError(f"Unknown map character {ch!r} at ({x}, {y})")
        if spawn is None:
            raise ValueError("Map has no spawn cell 'S'")
        return cls(
            width=width,
            height=len(rows),
            walls=frozenset(walls),
            exits=frozenset(exits),
            spawn=spawn,
        )

    @classmethod
    def default(cls) -> "GridMap":
        return cls.from_rows(DEFAULT_MAP)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def in_bounds(self, cell: Cell) -> bool:
        return 0 <= cell[0] < self.width and 0 <= cell[1] < self.height

    def is_walkable(self, cell: Cell) -> bool:
        return self.in_bounds(cell) and cell not in self.walls

    def is_exit(self, cell: Cell) -> bool:
        return cell in self.exits

    def bounds(self) -> Rect:
        return Rect(0.0, 0.0, float(self.width - 1), float(self.height - 1))

    def neighbors_8dir(self, cell: Cell) -> List[Tuple[Cell, float]]:
        """Walkable neighbours with step cost; diagonals may not cut corners."""
        x, y = cell
        out: List[Tuple[Cell, float]] = []
        for dx in (-1, 0, 1):
            for dy in (-1, 0, 1):
                if dx == 0 and dy == 0:
                    continue
                nxt = (x + dx, y + dy)
                if not self.is_walkable(nxt):
                    continue
                if dx and dy:
                    if not (self.is_walkable((x + dx, y)) and self.is_walkable((x, y + dy))):
                        continue
                    out.append((nxt, 1.4142135623730951))
                else:
                    out.append((nxt, 1.0))
        return out

    def nearest_walkable(self, cell: Cell, max_radius: int = 8) -> Optional[Cell]:
        """Closest walkable cell by ring search, clamped into the map first."""
        cx = min(max(cell[0], 0), self.width - 1)
        cy = min(max(cell[1], 0), self.height - 1)
        if self.is_walkable((cx, cy)):
            return (cx, cy)
        for r in range(1, max_radius + 1):
            ring = [
                (cx + dx, cy + dy)
                for dx in range(-r, r + 1)
                for dy in range(-r, r + 1)
                if max(abs(dx), abs(dy)) == r
            ]
            walkable = [c for c in ring if self.is_walkable(c)]
            if walkable:
                return min(walkable, key=lambda c: (c[0] - cx) ** 2 + (c[1] - cy) ** 2)
        return None
