# RunController linking control commands to the navigation loop
# src/monitoring/controller.py
"""
Control surface for the navigation loop.

RunController wraps a NavigationController-like object and applies
ControlCommands received on the EventBus.

Supported commands (ControlCommandType):
- START          -> begin a session (also recovers from FAULTED)
- STOP           -> graceful stop back to IDLE
- EMERGENCY_STOP -> stop immediately and drop the current path
- DUMP_STATE     -> emit a debug snapshot as a SNAPSHOT event

Commands may be published from any thread (hotkey listener, dashboard).
They are queued and applied at the start of the next maybe_tick() call,
so the navigation loop is only ever touched from the loop thread.
"""

from __future__ import annotations

from collections import deque
from dataclasses import asdict, is_dataclass
from threading import Lock
from typing import Any, Deque, Dict, Optional, Protocol

from .bus import EventBus
from .events import ControlCommand, ControlCommandType, EventType
from .logger import log_event


# ============================================================
# Interface expected by the controller
# ============================================================

class NavigationLoopControl(Protocol):
    """What RunController needs from the navigation loop."""

    def start(self) -> bool:
        ...

    def stop(self, reason: str = ...) -> None:
        ...

    def emergency_stop(self) -> None:
        ...

    def tick(self, now: Optional[float] = None) -> Any:
        ...

    def debug_state(self) -> Dict[str, Any]:
        ...


# ============================================================
# Run Controller
# ============================================================

class RunController:
    """
    The main loop should call `maybe_tick()` instead of `nav.tick()` so
    queued commands are applied first.
    """

    def __init__(self, nav: NavigationLoopControl, bus: EventBus) -> None:
        self._nav = nav
        self._bus = bus
        self._pending: Deque[ControlCommand] = deque()
        self._lock = Lock()
        self.commands_applied = 0
        self._bus.subscribe_commands(self._enqueue)

    def close(self) -> None:
        self._bus.unsubscribe_commands(self._enqueue)

    # --------------------------------------------------------
    # Command handling
    # --------------------------------------------------------

    def _enqueue(self, cmd: ControlCommand) -> None:
        with self._lock:
            self._pending.append(cmd)

    def apply_pending(self) -> int:
        """Apply queued commands in arrival order; returns how many ran."""
        with self._lock:
            commands = list(self._pending)
            self._pending.clear()
        for cmd in commands:
            self._apply(cmd)
        return len(commands)

    def _apply(self, cmd: ControlCommand) -> None:
        if cmd.cmd == ControlCommandType.START:
            started = self._nav.start()
            self._log_control("START", {"started": started})

        elif cmd.cmd == ControlCommandType.STOP:
            reason = cmd.args.get("reason", "operator")
            self._nav.stop(reason)
            self._log_control("STOP", {"reason": reason})

        elif cmd.cmd == ControlCommandType.EMERGENCY_STOP:
            self._nav.emergency_stop()
            self._log_control("EMERGENCY_STOP", {})

        elif cmd.cmd == ControlCommandType.DUMP_STATE:
            self._log_snapshot(self._safe_debug_state())

        self.commands_applied += 1

    # --------------------------------------------------------
    # Stepping API for the main loop
    # --------------------------------------------------------

    def maybe_tick(self, now: Optional[float] = None) -> Any:
        self.apply_pending()
        return self._nav.tick(now)

    # --------------------------------------------------------
    # Logging helpers
    # --------------------------------------------------------

    def _log_control(self, cmd_name: str, payload: Dict[str, Any]) -> None:
        log_event(
            bus=self._bus,
            module="monitoring.controller",
            event_type=EventType.CONTROL_COMMAND,
            message=f"Control command: {cmd_name}",
            payload={"cmd": cmd_name, **payload},
        )

    def _log_snapshot(self, state: Dict[str, Any]) -> None:
        log_event(
            bus=self._bus,
            module="monitoring.controller",
            event_type=EventType.SNAPSHOT,
            message="Navigation state snapshot",
            payload={"state": state},
        )

    def _safe_debug_state(self) -> Dict[str, Any]:
        try:
            state = self._nav.debug_state()
        except Exception as exc:  # pragma: no cover
            return {"error": "debug_state_failed", "details": repr(exc)}
        if is_dataclass(state):
            return asdict(state)
        return state
