# path: src/monitoring/events.py
"""
Event and command schemas for navigation monitoring.

This module defines:
- EventType enum (what the navigation loop reports)
- MonitoringEvent (one structured, JSON-safe event)
- ControlCommandType / ControlCommand (operator controls)

Events travel over monitoring.bus.EventBus and are persisted by
monitoring.logger.JsonFileLogger.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum, auto
from typing import Any, Dict, Optional


# ============================================================
# Event Types
# ============================================================

class EventType(Enum):
    """Typed monitoring events emitted by the navigation loop."""

    # BotPhase transitions
    PHASE_CHANGE = auto()

    # Path acquisition
    PATH_REQUESTED = auto()     # a candidate request was dispatched
    PATH_RESULT = auto()        # a result was drained (found or not)
    PATH_ACCEPTED = auto()
    PATH_REJECTED = auto()
    ROUND_TIMEOUT = auto()

    # Following
    STUCK_RECOVERY = auto()
    ACTUATION = auto()

    # Session
    RUN_COMPLETED = auto()
    LIMIT_REACHED = auto()
    FAULT = auto()

    # Full state snapshot (on DUMP_STATE)
    SNAPSHOT = auto()

    # Control surface events
    CONTROL_COMMAND = auto()

    # Generic log messages
    LOG = auto()


# ============================================================
# Monitoring Event Structure
# ============================================================

@dataclass
class MonitoringEvent:
    """
    One runtime event. All fields must be JSON-safe.
    """

    ts: float                   # UNIX timestamp (seconds)
    module: str                 # source module ("nav_core.controller", ...)
    event_type: EventType
    message: str                # short human-readable description
    payload: Dict[str, Any]     # structured data
    correlation_id: Optional[str] = None  # groups events per run ("run-3")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-safe dict for loggers."""
        data = asdict(self)
        data["event_type"] = self.event_type.name
        return data


# ============================================================
# Control Commands
# ============================================================

class ControlCommandType(Enum):
    """Commands an operator or tool can send to the navigation loop."""

    START = auto()            # begin a session (also restarts from FAULTED)
    STOP = auto()             # graceful stop back to IDLE
    EMERGENCY_STOP = auto()   # stop immediately and drop the current path
    DUMP_STATE = auto()       # emit a SNAPSHOT event


@dataclass
class ControlCommand:
    """
    An external command for the navigation loop.

    Sent through EventBus.publish_command() and interpreted by
    monitoring.controller.RunController.
    """

    cmd: ControlCommandType
    args: Dict[str, Any]

    @staticmethod
    def start() -> "ControlCommand":
        return ControlCommand(ControlCommandType.START, {})

    @staticmethod
    def stop(reason: str = "operator") -> "ControlCommand":
        return ControlCommand(ControlCommandType.STOP, {"reason": reason})

    @staticmethod
    def emergency_stop() -> "ControlCommand":
        return ControlCommand(ControlCommandType.EMERGENCY_STOP, {})

    @staticmethod
    def dump_state() -> "ControlCommand":
        return ControlCommand(ControlCommandType.DUMP_STATE, {})
