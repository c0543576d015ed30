# src/app/runtime.py
"""
Runtime wiring for the navigation loop.

Responsibilities:
- build the EventBus, optional JSONL event log, NavigationController and
  RunController for a given NavConfig
- pick the oracle from config (IPC) or the simulator (thread pool)
- run a fixed-rate tick loop

It does NOT:
- read hotkeys or draw anything (see monitoring.dashboard_tui)
- decide navigation behaviour (see nav_core)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Optional

from contracts.interfaces import ActuationSink, PathfindingOracle, WorldStateProvider
from monitoring.bus import EventBus
from monitoring.controller import RunController
from monitoring.logger import JsonFileLogger
from nav_core.controller import NavigationController
from nav_core.oracle.ipc import IpcPathOracle
from nav_core.oracle.threaded import ThreadPoolOracle
from profiles.schema import NavConfig
from sim.grid import GridMap
from sim.pathfinder import find_waypoints
from sim.world import SimSink, SimWorld

log = logging.getLogger(__name__)


@dataclass
class NavRuntime:
    config: NavConfig
    bus: EventBus
    nav: NavigationController
    control: RunController
    world: WorldStateProvider
    oracle: PathfindingOracle
    sink: ActuationSink
    event_log: Optional[JsonFileLogger] = None
    _closers: List[Callable[[], None]] = field(default_factory=list)

    def close(self) -> None:
        """Release oracle threads/sockets and the event log."""
        self.control.close()
        for closer in self._closers:
            try:
                closer()
            except Exception:
                log.exception("Error while closing runtime component")
        if self.event_log is not None:
            self.event_log.close()


def build_runtime(
    config: NavConfig,
    world: WorldStateProvider,
    sink: ActuationSink,
    *,
    oracle: Optional[PathfindingOracle] = None,
    bus: Optional[EventBus] = None,
    events_path: Optional[Path] = None,
    clock: Callable[[], float] = time.monotonic,
) -> NavRuntime:
    """
    Wire a runtime around host-provided world and sink.

    Without an explicit oracle, an IPC oracle is built from config; the
    "threaded" mode needs an in-process path function, so it is only
    available through build_sim_runtime or an explicit oracle.
    """
    closers: List[Callable[[], None]] = []
    if oracle is None:
        if config.oracle.mode != "ipc":
            raise ValueError(
                f"oracle.mode={config.oracle.mode!r} needs an explicit oracle instance"
            )
        ipc = IpcPathOracle.from_settings(config.oracle)
        closers.append(ipc.disconnect)
        oracle = ipc

    bus = bus or EventBus()
    event_log = JsonFileLogger(events_path, bus) if events_path is not None else None
    nav = NavigationController(world, oracle, sink, config, bus=bus, clock=clock)
    control = RunController(nav, bus)
    log.info("Runtime built with profile '%s'", config.profile_name)
    return NavRuntime(
        config=config,
        bus=bus,
        nav=nav,
        control=control,
        world=world,
        oracle=oracle,
        sink=sink,
        event_log=event_log,
        _closers=closers,
    )


def build_sim_runtime(
    config: NavConfig,
    *,
    grid: Optional[GridMap] = None,
    bus: Optional[EventBus] = None,
    events_path: Optional[Path] = None,
    clock: Callable[[], float] = time.monotonic,
) -> NavRuntime:
    """Runtime over the offline simulator with a thread-pool A* oracle."""
    grid = grid or GridMap.default()
    world = SimWorld(grid)
    sink = SimSink(world)
    oracle = ThreadPoolOracle(
        lambda start, goal: find_waypoints(grid, start, goal),
        world.current_position,
        max_workers=config.oracle.worker_threads,
    )
    runtime = build_runtime(
        config, world, sink, oracle=oracle, bus=bus, events_path=events_path, clock=clock
    )
    runtime._closers.append(oracle.shutdown)
    return runtime


def run_loop(
    control: RunController,
    tick_interval_s: float,
    *,
    max_ticks: Optional[int] = None,
    before_tick: Optional[Callable[[float], None]] = None,
    should_stop: Optional[Callable[[], bool]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """
    Tick at a fixed interval until max_ticks or should_stop().

    before_tick(dt) runs ahead of every tick (the simulator uses it to
    advance physics). Returns the number of ticks run.
    """
    ticks = 0
    while max_ticks is None or ticks < max_ticks:
        if should_stop is not None and should_stop():
            break
        if before_tick is not None:
            before_tick(tick_interval_s)
        control.maybe_tick()
        ticks += 1
        sleep(tick_interval_s)
    return ticks


def summarize(runtime: NavRuntime) -> dict[str, Any]:
    summary = runtime.nav.debug_state()
    summary["profile"] = runtime.config.profile_name
    return summary
