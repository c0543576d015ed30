# BotPhase, NavigationState and per-tick result types
# src/nav_core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, List, Optional, Set, Tuple

from contracts.types import Path, Point2D, SurfacePoint


class BotPhase(Enum):
    """Lifecycle phase of the navigation loop."""
    IDLE = auto()
    AWAITING_ORACLE = auto()
    AWAITING_GOAL = auto()
    ACQUIRING_PATH = auto()
    FOLLOWING = auto()
    AT_GOAL = auto()
    FAULTED = auto()


# Phases in which tick() does real work.
ACTIVE_PHASES = frozenset(
    {
        BotPhase.AWAITING_ORACLE,
        BotPhase.AWAITING_GOAL,
        BotPhase.ACQUIRING_PATH,
        BotPhase.FOLLOWING,
        BotPhase.AT_GOAL,
    }
)


@dataclass
class NavigationState:
    """
    Mutable navigation memory, written only from the tick loop.

    Invariants:
      - cursor_index is 0 when there is no path, otherwise within
        [0, current_path.last_index].
      - current_path, cursor_index and last_accepted_at change together
        through replace_path() / clear_path().
    """

    current_path: Optional[Path] = None
    cursor_index: int = 0
    last_accepted_at: Optional[float] = None
    last_advancement_at: Optional[float] = None

    stuck_counter: int = 0
    duplicate_target_counter: int = 0
    duplicate_actuation_counter: int = 0
    last_target_point: Optional[Point2D] = None
    last_target_anchor: Optional[Point2D] = None

    initial_spawn_position: Optional[Point2D] = None
    visited_zones: Set[str] = field(default_factory=set)

    # ------------------------------------------------------------------
    # Path lifecycle
    # ------------------------------------------------------------------

    def replace_path(self, path: Path, now: float) -> Path:
        """Install a freshly accepted path and rewind the cursor."""
        stamped = path.stamped(now)
        self.current_path = stamped
        self.cursor_index = 0
        self.last_accepted_at = now
        self.last_advancement_at = now
        self.duplicate_target_counter = 0
        self.last_target_point = None
        self.last_target_anchor = None
        return stamped

    def clear_path(self) -> None:
        self.current_path = None
        self.cursor_index = 0
        self.last_accepted_at = None
        self.last_advancement_at = None
        self.duplicate_target_counter = 0
        self.last_target_point = None
        self.last_target_anchor = None

    def advance_cursor(self, steps: int, now: float) -> int:
        """
        Move the cursor forward by `steps`, clamped to the final waypoint.

        Returns the number of waypoints actually advanced.
        """
        if self.current_path is None or steps <= 0:
            return 0
        before = self.cursor_index
        self.cursor_index = min(before + steps, self.current_path.last_index)
        moved = self.cursor_index - before
        if moved:
            self.last_advancement_at = now
        return moved

    @property
    def remaining_waypoints(self) -> int:
        if self.current_path is None:
            return 0
        return self.current_path.last_index - self.cursor_index

    def path_age(self, now: float) -> Optional[float]:
        if self.current_path is None:
            return None
        return self.current_path.age(now)

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def reset_counters(self) -> None:
        self.stuck_counter = 0
        self.duplicate_target_counter = 0
        self.duplicate_actuation_counter = 0
        self.last_target_point = None
        self.last_target_anchor = None

    def reset_session(self) -> None:
        """Forget everything; used on start()."""
        self.clear_path()
        self.reset_counters()
        self.initial_spawn_position = None
        self.visited_zones = set()


@dataclass(frozen=True)
class PursuitResult:
    """Steering target chosen for one tick."""
    target: Point2D
    source_segment_index: int
    distance_from_agent: float


@dataclass
class TickResult:
    """
    What one tick did. Never raised; always returned.

    events holds (event_name, detail) pairs in the order they happened.
    """

    phase: BotPhase
    target: Optional[Point2D] = None
    surface_point: Optional[SurfacePoint] = None
    emitted: bool = False
    skipped: bool = False
    events: List[Tuple[str, str]] = field(default_factory=list)
    diagnostics: Dict[str, Any] = field(default_factory=dict)

    def has_event(self, name: str) -> bool:
        return any(ev == name for ev, _ in self.events)
