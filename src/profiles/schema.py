# NavConfig and per-concern settings dataclasses
# src/profiles/schema.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple


@dataclass
class BotSettings:
    """Session-level behaviour."""
    target_zone: str = "aqueduct"   # case-insensitive substring of the zone id
    max_runs: int = 0               # 0 = unlimited
    max_runtime_s: float = 0.0      # 0 = unlimited

    def __post_init__(self) -> None:
        self.target_zone = str(self.target_zone).strip()
        self.max_runs = max(0, int(self.max_runs))
        self.max_runtime_s = max(0.0, float(self.max_runtime_s))


@dataclass
class OracleSettings:
    """Pathfinding oracle connection and request pacing."""
    mode: str = "ipc"                  # "ipc" or "threaded"
    host: str = "127.0.0.1"
    port: int = 47800
    connect_timeout_s: float = 1.0
    retry_interval_s: float = 2.0      # availability re-check while unreachable
    request_timeout_s: float = 15.0    # whole-round timeout
    min_request_interval_s: float = 1.0
    max_fanout: int = 12
    dispatch_stagger_s: float = 0.05   # gap between dispatches inside a round
    worker_threads: int = 4            # threaded mode only

    def __post_init__(self) -> None:
        if self.mode not in ("ipc", "threaded"):
            raise ValueError(f"Unknown oracle mode: {self.mode!r}")
        self.port = int(self.port)
        self.retry_interval_s = max(0.1, float(self.retry_interval_s))
        self.request_timeout_s = max(0.5, float(self.request_timeout_s))
        self.min_request_interval_s = max(0.0, float(self.min_request_interval_s))
        self.max_fanout = max(1, int(self.max_fanout))
        self.dispatch_stagger_s = max(0.0, float(self.dispatch_stagger_s))
        self.worker_threads = max(1, int(self.worker_threads))


@dataclass
class AcquisitionSettings:
    """Candidate generation and the path acceptance policy."""
    probe_distances: Tuple[float, ...] = (100.0, 200.0, 350.0)
    edge_fractions: Tuple[float, ...] = (0.8, 0.9)
    spiral_points: int = 12
    spiral_start_radius: float = 80.0
    spiral_radius_step: float = 20.0
    stability_grace_s: float = 3.0
    score_margin: float = 0.15
    staleness_s: float = 30.0
    shorter_path_ratio: float = 0.7

    def __post_init__(self) -> None:
        self.probe_distances = tuple(max(1.0, float(d)) for d in self.probe_distances)
        self.edge_fractions = tuple(
            min(1.0, max(0.05, float(f))) for f in self.edge_fractions
        )
        self.spiral_points = max(0, int(self.spiral_points))
        self.stability_grace_s = max(0.0, float(self.stability_grace_s))
        self.score_margin = max(0.0, float(self.score_margin))
        # Grace must leave room for a scored comparison before staleness.
        self.staleness_s = max(self.stability_grace_s, float(self.staleness_s))
        self.shorter_path_ratio = min(1.0, max(0.05, float(self.shorter_path_ratio)))


@dataclass
class MovementSettings:
    """Pure pursuit geometry and cursor advancement."""
    pursuit_radius: float = 300.0
    arrival_tolerance: float = 10.0
    goal_tolerance: float = 6.0
    movement_precision: float = 10.0
    lookahead_waypoints: int = 10
    lookahead_min_distance: float = 20.0
    visibility_fractions: Tuple[float, ...] = (0.8, 0.7, 0.6, 0.5, 0.4, 0.3)
    sweep_angles: int = 12
    sweep_radius_fraction: float = 0.5

    def __post_init__(self) -> None:
        self.pursuit_radius = max(1.0, float(self.pursuit_radius))
        self.arrival_tolerance = max(0.1, float(self.arrival_tolerance))
        self.goal_tolerance = min(self.arrival_tolerance, max(0.1, float(self.goal_tolerance)))
        self.movement_precision = max(0.0, float(self.movement_precision))
        self.lookahead_waypoints = max(1, int(self.lookahead_waypoints))
        self.lookahead_min_distance = max(0.0, float(self.lookahead_min_distance))
        self.visibility_fractions = tuple(
            min(1.0, max(0.05, float(f))) for f in self.visibility_fractions
        )
        self.sweep_angles = max(1, int(self.sweep_angles))
        self.sweep_radius_fraction = min(1.0, max(0.05, float(self.sweep_radius_fraction)))


@dataclass
class StuckSettings:
    """Stuck / loop detection thresholds and recovery steps."""
    window: int = 5
    advance_steps: int = 3
    near_end_waypoints: int = 2
    duplicate_target_tolerance: float = 1.0
    duplicate_target_threshold: int = 8
    duplicate_target_advance_steps: int = 5
    duplicate_actuation_threshold: int = 4

    def __post_init__(self) -> None:
        self.window = max(2, int(self.window))
        self.advance_steps = max(1, int(self.advance_steps))
        self.near_end_waypoints = max(0, int(self.near_end_waypoints))
        self.duplicate_target_tolerance = max(0.0, float(self.duplicate_target_tolerance))
        self.duplicate_target_threshold = max(1, int(self.duplicate_target_threshold))
        self.duplicate_target_advance_steps = max(1, int(self.duplicate_target_advance_steps))
        self.duplicate_actuation_threshold = max(1, int(self.duplicate_actuation_threshold))


@dataclass
class TimingSettings:
    tick_interval_s: float = 0.1
    area_transition_timeout_s: float = 5.0

    def __post_init__(self) -> None:
        self.tick_interval_s = max(0.001, float(self.tick_interval_s))
        self.area_transition_timeout_s = max(0.0, float(self.area_transition_timeout_s))


@dataclass
class ActuationSettings:
    """Actuation gate pacing and emission mode."""
    min_delay_s: float = 0.2
    max_delay_s: float = 0.8
    use_movement_key: bool = False
    movement_key: str = "T"
    plausible_margin: float = 0.5   # viewport growth, as a fraction of its size

    def __post_init__(self) -> None:
        self.min_delay_s = max(0.0, float(self.min_delay_s))
        self.max_delay_s = max(self.min_delay_s, float(self.max_delay_s))
        self.use_movement_key = bool(self.use_movement_key)
        self.movement_key = str(self.movement_key)
        self.plausible_margin = max(0.0, float(self.plausible_margin))


@dataclass
class NavConfig:
    """Fully resolved settings for one navigation profile."""
    profile_name: str = "default"
    bot: BotSettings = field(default_factory=BotSettings)
    oracle: OracleSettings = field(default_factory=OracleSettings)
    acquisition: AcquisitionSettings = field(default_factory=AcquisitionSettings)
    movement: MovementSettings = field(default_factory=MovementSettings)
    stuck: StuckSettings = field(default_factory=StuckSettings)
    timing: TimingSettings = field(default_factory=TimingSettings)
    actuation: ActuationSettings = field(default_factory=ActuationSettings)
