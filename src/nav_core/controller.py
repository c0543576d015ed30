# src/nav_core/controller.py
"""
NavigationController: the tick-driven navigation state machine.

One tick() call per host frame. A tick never blocks and never raises:

  - drains oracle results queued since the last tick and judges them
  - dispatches staggered candidate requests
  - runs the handler for the current BotPhase
  - any unexpected exception moves the loop to FAULTED

Phases:

  IDLE -> start() -> AWAITING_ORACLE -> AWAITING_GOAL -> ACQUIRING_PATH
  -> FOLLOWING -> AT_GOAL -> (zone change) AWAITING_GOAL
                         -> (timeout)     ACQUIRING_PATH

stop() / emergency_stop() return to IDLE from anywhere; start() also
recovers from FAULTED. The controller is the only writer of
NavigationState; oracle callbacks only enqueue.

Losing the oracle is never a fault. AWAITING_GOAL and ACQUIRING_PATH
fall back to AWAITING_ORACLE (spawn and visited zones are kept);
FOLLOWING and AT_GOAL keep the accepted path and re-check the oracle
before their next round.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from contracts.interfaces import ActuationSink, PathfindingOracle, WorldStateProvider
from monitoring.bus import EventBus
from monitoring.events import EventType
from monitoring.logger import log_event
from profiles.schema import NavConfig

from .acquisition import AcceptancePolicy, PathAcquisitionManager
from .actuation import ActuationGate
from .candidates import CandidateGenerator
from .oracle.client import OracleClient
from .pursuit import PurePursuitNavigator
from .state import ACTIVE_PHASES, BotPhase, NavigationState, TickResult
from .stuck import RecoveryAction, StuckDetector
from .tracing import ActuationTracer

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Domain errors
# ---------------------------------------------------------------------------


@dataclass
class NavCoreError(RuntimeError):
    """
    Domain-level error for collaborator failures inside a tick.

    tick() converts these (and anything else) into the FAULTED phase;
    they only escape from the explicit control methods.
    """

    code: str
    details: dict[str, Any]

    def __str__(self) -> str:
        return f"NavCoreError(code={self.code!r}, details={self.details!r})"


# ---------------------------------------------------------------------------
# Implementation
# ---------------------------------------------------------------------------


class NavigationController:
    def __init__(
        self,
        world: WorldStateProvider,
        oracle: PathfindingOracle,
        sink: ActuationSink,
        config: Optional[NavConfig] = None,
        *,
        bus: Optional[EventBus] = None,
        clock: Callable[[], float] = time.monotonic,
        tracer: Optional[ActuationTracer] = None,
    ) -> None:
        self.config = config or NavConfig()
        self._world = world
        self._bus = bus
        self._clock = clock

        self.state = NavigationState()
        self.tracer = tracer or ActuationTracer()
        self._oracle_client = OracleClient(oracle, clock=clock)
        self.acquisition = PathAcquisitionManager(
            self._oracle_client,
            CandidateGenerator(self.config.acquisition),
            AcceptancePolicy(self.config.acquisition),
            self.config.oracle,
        )
        self.navigator = PurePursuitNavigator(self.config.movement)
        self.stuck = StuckDetector(self.config.stuck, self.config.movement.movement_precision)
        self.gate = ActuationGate(
            sink,
            self.config.actuation,
            self.config.movement.pursuit_radius,
            tracer=self.tracer,
        )

        self._phase = BotPhase.IDLE
        self._phase_entered_at: float = clock()
        self._session_started_at: Optional[float] = None
        self._last_oracle_probe_at: Optional[float] = None
        self._oracle_down = False
        self._last_zone_id: Optional[str] = None
        self._left_zone = False
        self._fault: Optional[str] = None
        self._last_message = "idle"
        self.runs_completed = 0
        self.ticks = 0

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------

    @property
    def phase(self) -> BotPhase:
        return self._phase

    @property
    def running(self) -> bool:
        return self._phase in ACTIVE_PHASES

    @property
    def fault(self) -> Optional[str]:
        return self._fault

    def start(self) -> bool:
        """Begin a session. Returns False if one is already running."""
        if self.running:
            log.info("start() ignored; already in %s", self._phase.name)
            return False
        now = self._clock()
        self.acquisition.cancel()
        self._oracle_client.drain()
        self.state.reset_session()
        self.stuck.reset()
        self.gate.reset()
        self.runs_completed = 0
        self._session_started_at = now
        self._last_oracle_probe_at = None
        self._oracle_down = False
        self._last_zone_id = None
        self._left_zone = False
        self._fault = None
        self._set_phase(BotPhase.AWAITING_ORACLE, now, "session started")
        return True

    def stop(self, reason: str = "stop requested") -> None:
        if self._phase == BotPhase.IDLE:
            return
        self.acquisition.cancel()
        self._set_phase(BotPhase.IDLE, self._clock(), reason)

    def emergency_stop(self) -> None:
        log.warning("EMERGENCY STOP activated")
        self.acquisition.cancel()
        self._oracle_client.drain()
        self.state.clear_path()
        self.gate.reset()
        if self._phase != BotPhase.IDLE:
            self._set_phase(BotPhase.IDLE, self._clock(), "emergency stop")

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def tick(self, now: Optional[float] = None) -> TickResult:
        now = self._clock() if now is None else now
        self.ticks += 1
        result = TickResult(phase=self._phase)

        if not self.running:
            # Late results from a stopped session are dropped unread.
            self._oracle_client.drain()
            return result

        try:
            if self._limits_reached(now, result):
                return result
            oracle_ok = self._pump_oracle()
            self._track_zone(now, result)
            if not oracle_ok:
                self._on_oracle_lost(now, result)
            self._apply_oracle_results(now, result)
            self._dispatch_requests(now, result)

            handler = self._handlers()[self._phase]
            handler(now, result)
        except Exception as exc:
            self._enter_fault(exc, now, result)

        result.phase = self._phase
        result.diagnostics.setdefault("cursor_index", self.state.cursor_index)
        return result

    def _handlers(self) -> Dict[BotPhase, Callable[[float, TickResult], None]]:
        return {
            BotPhase.AWAITING_ORACLE: self._tick_awaiting_oracle,
            BotPhase.AWAITING_GOAL: self._tick_awaiting_goal,
            BotPhase.ACQUIRING_PATH: self._tick_acquiring,
            BotPhase.FOLLOWING: self._tick_following,
            BotPhase.AT_GOAL: self._tick_at_goal,
        }

    # ------------------------------------------------------------------
    # Phase handlers
    # ------------------------------------------------------------------

    def _tick_awaiting_oracle(self, now: float, result: TickResult) -> None:
        last = self._last_oracle_probe_at
        if last is not None and now - last < self.config.oracle.retry_interval_s:
            return
        self._last_oracle_probe_at = now
        if not self._oracle_client.is_available():
            log.warning(
                "Pathfinding oracle unreachable; retrying in %.1fs",
                self.config.oracle.retry_interval_s,
            )
            result.events.append(("oracle_unavailable", ""))
            return
        self._oracle_down = False
        self._set_phase(BotPhase.AWAITING_GOAL, now, "oracle available", result)
        self._tick_awaiting_goal(now, result)

    def _tick_awaiting_goal(self, now: float, result: TickResult) -> None:
        zone = self._world.current_zone_id()
        if not self.is_target_zone(zone):
            return
        self.state.visited_zones.add(zone)
        if self.state.initial_spawn_position is None:
            self.state.initial_spawn_position = self._world.current_position()
            log.info("Recorded spawn %s in zone %s", self.state.initial_spawn_position, zone)
        self._left_zone = False
        self._set_phase(BotPhase.ACQUIRING_PATH, now, f"in target zone {zone}", result)
        self._tick_acquiring(now, result)

    def _tick_acquiring(self, now: float, result: TickResult) -> None:
        if self.acquisition.check_timeout(now):
            self._publish(EventType.ROUND_TIMEOUT, "Acquisition round timed out")
            result.events.append(("round_timeout", ""))
        if not self.acquisition.can_start_round(now):
            return
        if not self._oracle_ready(now):
            self._await_oracle(now, result, "oracle unavailable")
            return
        self._start_round(now, result)

    def _tick_following(self, now: float, result: TickResult) -> None:
        if self.state.current_path is None:
            self._set_phase(BotPhase.ACQUIRING_PATH, now, "path dropped", result)
            return

        self._maybe_refresh(now, result)

        position = self._world.current_position()
        outcome = self.navigator.step(self.state, position, self._world, now)
        result.diagnostics["pursuit"] = outcome.reason
        if outcome.advanced_by:
            result.diagnostics["advanced_by"] = outcome.advanced_by

        if outcome.arrived:
            self._arrive(now, result)
            return

        target = outcome.target
        if target is None:
            result.skipped = True
            result.events.append(("no_target", outcome.reason))
            self._apply_recovery(self.stuck.observe_position(self.state, position), now, result)
            return

        result.target = target
        recovery = self.stuck.observe_target(self.state, target, position)
        if recovery.triggered:
            self._apply_recovery(recovery, now, result)
            return

        gate = self.gate.submit(target, position, self._world, now)
        result.surface_point = gate.surface_point
        if gate.error == "rate_limited":
            return
        if gate.error is not None:
            result.skipped = True
            result.events.append(("actuation_skipped", gate.error))
            return

        result.emitted = True
        self._publish(
            EventType.ACTUATION,
            "Movement command emitted",
            {
                "target": [round(target.x, 2), round(target.y, 2)],
                "surface": [round(gate.surface_point.x, 1), round(gate.surface_point.y, 1)],
                "cursor_index": self.state.cursor_index,
                "duplicate": gate.duplicate,
            },
        )
        self._apply_recovery(self.stuck.observe_actuation(self.state, gate.duplicate), now, result)
        if self._phase == BotPhase.FOLLOWING:
            self._apply_recovery(self.stuck.observe_position(self.state, position), now, result)

    def _tick_at_goal(self, now: float, result: TickResult) -> None:
        if self._left_zone:
            self.runs_completed += 1
            log.info("Run %d completed", self.runs_completed)
            self._publish(
                EventType.RUN_COMPLETED,
                f"Run {self.runs_completed} completed",
                {"runs_completed": self.runs_completed},
            )
            result.events.append(("run_completed", str(self.runs_completed)))
            self.state.clear_path()
            self.state.initial_spawn_position = None
            self._left_zone = False
            self._set_phase(BotPhase.AWAITING_GOAL, now, "zone changed", result)
            return

        if now - self._phase_entered_at >= self.config.timing.area_transition_timeout_s:
            # No transition happened; look for a way onward from here.
            self.state.clear_path()
            self._set_phase(BotPhase.ACQUIRING_PATH, now, "no zone transition", result)

    # ------------------------------------------------------------------
    # Acquisition plumbing
    # ------------------------------------------------------------------

    def _start_round(self, now: float, result: TickResult) -> None:
        position = self._world.current_position()
        rnd = self.acquisition.start_round(
            now,
            position,
            spawn=self.state.initial_spawn_position,
            zone_bounds=self._world.zone_bounds(),
        )
        result.events.append(("round_started", str(rnd.round_id)))
        self._dispatch_requests(now, result)

    def _maybe_refresh(self, now: float, result: TickResult) -> None:
        age = self.state.path_age(now)
        if age is None or age < self.config.acquisition.staleness_s:
            return
        if not self.acquisition.can_start_round(now):
            return
        if not self._oracle_ready(now):
            return
        log.info("Path is %.1fs old; requesting a refresh", age)
        self._start_round(now, result)

    def _oracle_ready(self, now: float) -> bool:
        """Availability check before a round, rate-limited while the oracle is down."""
        last = self._last_oracle_probe_at
        if last is not None:
            if self._oracle_down and now - last < self.config.oracle.retry_interval_s:
                return False
            if not self._oracle_down and last == now:
                return True
        self._last_oracle_probe_at = now
        self._oracle_down = not self._oracle_client.is_available()
        return not self._oracle_down

    def _on_oracle_lost(self, now: float, result: TickResult) -> None:
        if self._phase == BotPhase.AWAITING_ORACLE:
            return
        if not self._oracle_down:
            log.warning("Pathfinding oracle connection lost during %s", self._phase.name)
            result.events.append(("oracle_lost", self._phase.name))
            self._oracle_down = True
        if self._phase in (BotPhase.FOLLOWING, BotPhase.AT_GOAL):
            # The accepted path stays usable; only in-flight requests are gone.
            self.acquisition.cancel()
            return
        self._await_oracle(now, result, "oracle connection lost")

    def _await_oracle(self, now: float, result: TickResult, reason: str) -> None:
        self.acquisition.cancel()
        self.state.clear_path()
        self.stuck.reset(self.state)
        self._set_phase(BotPhase.AWAITING_ORACLE, now, reason, result)

    def _dispatch_requests(self, now: float, result: TickResult) -> None:
        for req in self.acquisition.dispatch_due(now):
            self._publish(
                EventType.PATH_REQUESTED,
                f"Requested path: {req.rationale}",
                {
                    "request_id": req.request_id,
                    "round_id": req.round_id,
                    "target": [round(req.target.x, 2), round(req.target.y, 2)],
                },
            )
            result.events.append(("path_requested", req.rationale))

    def _apply_oracle_results(self, now: float, result: TickResult) -> None:
        for msg in self._oracle_client.drain():
            if self._phase not in (BotPhase.ACQUIRING_PATH, BotPhase.FOLLOWING, BotPhase.AT_GOAL):
                log.debug("Discarding oracle result %d in %s", msg.request_id, self._phase.name)
                continue

            decision = self.acquisition.apply_result(msg, self.state, now)
            payload = {
                "request_id": msg.request_id,
                "round_id": msg.round_id,
                "rationale": msg.rationale,
                "length": len(msg.waypoints) if msg.waypoints else 0,
                "reason": decision.reason,
                "candidate_score": decision.candidate_score,
                "current_score": decision.current_score,
            }
            self._publish(EventType.PATH_RESULT, f"Path result: {msg.rationale}", payload)
            if not decision.accepted:
                log.debug("Rejected path from %s: %s", msg.rationale, decision.reason)
                self._publish(EventType.PATH_REJECTED, decision.reason, payload)
                result.events.append(("path_rejected", decision.reason))
                continue

            log.info(
                "Accepted %d-waypoint path toward %s (%s)",
                len(msg.waypoints),
                msg.rationale,
                decision.reason,
            )
            self._publish(EventType.PATH_ACCEPTED, decision.reason, payload)
            result.events.append(("path_accepted", decision.reason))
            self.stuck.reset(self.state)
            if self._phase != BotPhase.FOLLOWING:
                self._set_phase(BotPhase.FOLLOWING, now, decision.reason, result)

    # ------------------------------------------------------------------
    # Following helpers
    # ------------------------------------------------------------------

    def _arrive(self, now: float, result: TickResult) -> None:
        log.info("Reached end of path at cursor %d", self.state.cursor_index)
        result.events.append(("arrived", ""))
        self.acquisition.cancel()
        self._set_phase(BotPhase.AT_GOAL, now, "reached final waypoint", result)

    def _apply_recovery(self, action: RecoveryAction, now: float, result: TickResult) -> None:
        if not action.triggered:
            return
        payload = {
            "kind": action.kind,
            "advance_by": action.advance_by,
            "reason": action.reason,
            "cursor_index": self.state.cursor_index,
        }
        self._publish(EventType.STUCK_RECOVERY, f"Stuck recovery: {action.reason}", payload)
        result.events.append(("stuck_recovery", f"{action.kind}: {action.reason}"))

        if action.kind == "advance":
            self.state.advance_cursor(action.advance_by, now)
            log.info("Forced cursor forward to %d (%s)", self.state.cursor_index, action.reason)
            return

        log.info("Discarding path and re-pathing (%s)", action.reason)
        self.state.clear_path()
        self.stuck.reset(self.state)
        self.acquisition.cancel()
        self._set_phase(BotPhase.ACQUIRING_PATH, now, action.reason, result)

    # ------------------------------------------------------------------
    # Zone tracking and limits
    # ------------------------------------------------------------------

    def is_target_zone(self, zone_id: Optional[str]) -> bool:
        if not zone_id:
            return False
        return self.config.bot.target_zone.lower() in zone_id.lower()

    def _track_zone(self, now: float, result: TickResult) -> None:
        zone = self._world.current_zone_id()
        previous = self._last_zone_id
        self._last_zone_id = zone
        if previous is None or zone == previous:
            return

        log.info("Zone changed: %s -> %s", previous, zone)
        result.events.append(("zone_changed", f"{previous} -> {zone}"))
        self.state.visited_zones.add(zone)
        self.state.clear_path()
        self.acquisition.cancel()
        self.stuck.reset(self.state)
        self.gate.reset()

        if self._phase in (BotPhase.FOLLOWING, BotPhase.AT_GOAL):
            self._left_zone = True
            if self._phase == BotPhase.FOLLOWING:
                self._set_phase(BotPhase.AT_GOAL, now, "left zone", result)
        elif self._phase == BotPhase.ACQUIRING_PATH:
            self.state.initial_spawn_position = None
            self._set_phase(BotPhase.AWAITING_GOAL, now, "zone changed while acquiring", result)

    def _limits_reached(self, now: float, result: TickResult) -> bool:
        reason = None
        max_runs = self.config.bot.max_runs
        max_runtime = self.config.bot.max_runtime_s
        if max_runs > 0 and self.runs_completed >= max_runs:
            reason = f"max runs reached ({self.runs_completed})"
        elif (
            max_runtime > 0
            and self._session_started_at is not None
            and now - self._session_started_at >= max_runtime
        ):
            reason = f"max runtime reached ({max_runtime:.0f}s)"
        if reason is None:
            return False

        log.info("Stopping: %s", reason)
        self._publish(EventType.LIMIT_REACHED, reason, {"runs_completed": self.runs_completed})
        result.events.append(("limit_reached", reason))
        self.stop(reason)
        result.phase = self._phase
        return True

    # ------------------------------------------------------------------
    # Faults, phases, events
    # ------------------------------------------------------------------

    def _pump_oracle(self) -> bool:
        try:
            return self._oracle_client.pump()
        except Exception as exc:
            raise NavCoreError(
                code="oracle_pump_failed",
                details={"exception": repr(exc)},
            ) from exc

    def _enter_fault(self, exc: Exception, now: float, result: TickResult) -> None:
        log.exception("Unexpected error during %s tick; entering FAULTED", self._phase.name)
        self._fault = str(exc) if isinstance(exc, NavCoreError) else repr(exc)
        self.acquisition.cancel()
        self._publish(EventType.FAULT, "Navigation faulted", {"error": self._fault, "phase": self._phase.name})
        result.events.append(("fault", self._fault))
        self._set_phase(BotPhase.FAULTED, now, "unexpected error", result)

    def _set_phase(
        self,
        phase: BotPhase,
        now: float,
        reason: str,
        result: Optional[TickResult] = None,
    ) -> None:
        previous = self._phase
        if phase == previous:
            return
        self._phase = phase
        self._phase_entered_at = now
        self._last_message = reason
        log.info("Phase %s -> %s (%s)", previous.name, phase.name, reason)
        self._publish(
            EventType.PHASE_CHANGE,
            f"{previous.name} -> {phase.name}",
            {"phase": phase.name, "previous": previous.name, "reason": reason},
        )
        if result is not None:
            result.events.append(("phase", phase.name))

    def _publish(
        self,
        event_type: EventType,
        message: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        if self._bus is None:
            return
        log_event(
            bus=self._bus,
            module="nav_core.controller",
            event_type=event_type,
            message=message,
            payload=payload,
            correlation_id=f"run-{self.runs_completed + 1}",
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def debug_state(self) -> Dict[str, Any]:
        """JSON-safe snapshot for DUMP_STATE and the offline CLI."""
        state = self.state
        path = state.current_path
        now = self._clock()
        spawn = state.initial_spawn_position
        rnd = self.acquisition.round
        return {
            "phase": self._phase.name,
            "message": self._last_message,
            "fault": self._fault,
            "ticks": self.ticks,
            "runs_completed": self.runs_completed,
            "path_length": path.length if path is not None else 0,
            "cursor_index": state.cursor_index,
            "path_age_s": round(path.age(now), 3) if path is not None else None,
            "stuck_counter": state.stuck_counter,
            "duplicate_target_counter": state.duplicate_target_counter,
            "duplicate_actuation_counter": state.duplicate_actuation_counter,
            "spawn": [spawn.x, spawn.y] if spawn is not None else None,
            "visited_zones": sorted(state.visited_zones),
            "active_round": rnd.round_id if rnd is not None else None,
            "rounds_started": self.acquisition.rounds_started,
            "rounds_timed_out": self.acquisition.rounds_timed_out,
            "actuations": self.gate.emitted_count,
            "stuck_triggers": self.stuck.triggers,
        }

    def tick_interval(self) -> float:
        return self.config.timing.tick_interval_s
