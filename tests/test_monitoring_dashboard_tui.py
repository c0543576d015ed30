#tests/test_monitoring_dashboard_tui.py
"""
Smoke tests for monitoring.dashboard_tui.NavDashboard.

Covers:
- Event updates patch internal state
- Recent history skips high-volume events
- Layout builds and renders cleanly
"""

from __future__ import annotations

import io

from rich.console import Console

from monitoring.bus import EventBus
from monitoring.dashboard_tui import NavDashboard
from monitoring.events import EventType, MonitoringEvent


def make_event(event_type: EventType, payload: dict, message: str = "") -> MonitoringEvent:
    return MonitoringEvent(
        ts=0.0,
        module="test",
        event_type=event_type,
        message=message,
        payload=payload,
        correlation_id=None,
    )


def make_dashboard():
    bus = EventBus()
    console = Console(file=io.StringIO(), width=100, force_terminal=False)
    return bus, console, NavDashboard(bus, console=console, history=4)


def test_dashboard_tracks_navigation_events():
    bus, _, dashboard = make_dashboard()

    bus.publish(make_event(EventType.PHASE_CHANGE, {"phase": "ACQUIRING_PATH", "reason": "in target zone"}))
    bus.publish(make_event(EventType.PATH_REQUESTED, {"request_id": 1}))
    bus.publish(make_event(EventType.PATH_REQUESTED, {"request_id": 2}))
    bus.publish(
        make_event(
            EventType.PATH_ACCEPTED,
            {"length": 57, "rationale": "E probe at 100"},
            message="no current path",
        )
    )
    bus.publish(make_event(EventType.PATH_REJECTED, {}, message="no improvement"))
    bus.publish(make_event(EventType.ACTUATION, {"cursor_index": 4, "duplicate": False}))
    bus.publish(make_event(EventType.ACTUATION, {"cursor_index": 4, "duplicate": True}))
    bus.publish(make_event(EventType.STUCK_RECOVERY, {"kind": "advance"}, message="Stuck recovery: no movement"))
    bus.publish(make_event(EventType.ROUND_TIMEOUT, {}))
    bus.publish(make_event(EventType.RUN_COMPLETED, {"runs_completed": 2}))

    s = dashboard.snapshot()
    assert s["phase"] == "ACQUIRING_PATH"
    assert s["phase_reason"] == "in target zone"
    assert s["requests"] == 2
    assert s["path_length"] == 57
    assert s["last_accept"] == "E probe at 100: no current path"
    assert s["last_reject"] == "no improvement"
    assert s["actuations"] == 2
    assert s["duplicates"] == 1
    assert s["cursor_index"] == 4
    assert s["recoveries"] == 1
    assert s["last_recovery"] == "Stuck recovery: no movement"
    assert s["round_timeouts"] == 1
    assert s["runs_completed"] == 2
    assert len(s["recent"]) == 4
    assert not any(line.startswith("ACTUATION") for line in s["recent"])


def test_fault_is_shown_until_phase_moves_on():
    bus, _, dashboard = make_dashboard()

    bus.publish(make_event(EventType.FAULT, {"error": "oracle_pump_failed"}))
    bus.publish(make_event(EventType.PHASE_CHANGE, {"phase": "FAULTED", "reason": "unexpected error"}))
    assert dashboard.snapshot()["fault"] == "oracle_pump_failed"

    bus.publish(make_event(EventType.PHASE_CHANGE, {"phase": "AWAITING_ORACLE", "reason": "session started"}))
    assert dashboard.snapshot()["fault"] is None


def test_layout_renders():
    bus, console, dashboard = make_dashboard()
    bus.publish(make_event(EventType.FAULT, {"error": "boom"}))
    bus.publish(make_event(EventType.PHASE_CHANGE, {"phase": "FAULTED", "reason": "unexpected error"}))

    layout = dashboard.build_layout()
    console.print(layout)

    output = console.file.getvalue()
    assert "FAULTED" in output
    assert "Activity" in output
