# rich-based TUI dashboard
#src/monitoring/dashboard_tui.py
"""
Terminal dashboard for the navigation loop.

Subscribes to the monitoring EventBus and renders:

- Status: phase, runs completed, last phase-change reason, fault
- Path: accepted path length, cursor, last acceptance / rejection reason
- Activity: actuation count, stuck recoveries, round timeouts
- Recent events: the last few event messages

Runs offline in the terminal; no web server.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Any, Deque, Dict, Optional

from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .bus import EventBus
from .events import EventType, MonitoringEvent


class NavDashboard:
    """
    Live terminal dashboard bound to an EventBus.

    Event handling only updates a small dict under a lock; rendering
    reads a copy of it.
    """

    def __init__(self, bus: EventBus, console: Optional[Console] = None, history: int = 8) -> None:
        self._bus = bus
        self._console = console or Console()
        self._lock = threading.Lock()
        self._recent: Deque[str] = deque(maxlen=history)
        self._state: Dict[str, Any] = {
            "phase": "IDLE",
            "phase_reason": "",
            "runs_completed": 0,
            "fault": None,
            "path_length": 0,
            "cursor_index": 0,
            "last_accept": None,
            "last_reject": None,
            "actuations": 0,
            "duplicates": 0,
            "recoveries": 0,
            "last_recovery": None,
            "round_timeouts": 0,
            "requests": 0,
        }
        self._bus.subscribe(self._on_event)

    # --------------------------------------------------------
    # Event handler
    # --------------------------------------------------------

    def _on_event(self, event: MonitoringEvent) -> None:
        et = event.event_type
        p = event.payload
        with self._lock:
            s = self._state
            if et == EventType.PHASE_CHANGE:
                s["phase"] = p.get("phase", "UNKNOWN")
                s["phase_reason"] = p.get("reason", "")
                if s["phase"] != "FAULTED":
                    s["fault"] = None
            elif et == EventType.PATH_REQUESTED:
                s["requests"] += 1
            elif et == EventType.PATH_ACCEPTED:
                s["path_length"] = p.get("length", 0)
                s["cursor_index"] = 0
                s["last_accept"] = f"{p.get('rationale', '?')}: {event.message}"
            elif et == EventType.PATH_REJECTED:
                s["last_reject"] = event.message
            elif et == EventType.ACTUATION:
                s["actuations"] += 1
                s["cursor_index"] = p.get("cursor_index", s["cursor_index"])
                if p.get("duplicate"):
                    s["duplicates"] += 1
            elif et == EventType.STUCK_RECOVERY:
                s["recoveries"] += 1
                s["last_recovery"] = event.message
            elif et == EventType.ROUND_TIMEOUT:
                s["round_timeouts"] += 1
            elif et == EventType.RUN_COMPLETED:
                s["runs_completed"] = p.get("runs_completed", s["runs_completed"] + 1)
            elif et == EventType.FAULT:
                s["fault"] = p.get("error", event.message)

            if et not in (EventType.ACTUATION, EventType.PATH_REQUESTED):
                self._recent.append(f"{et.name}: {event.message}")

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            data = dict(self._state)
            data["recent"] = list(self._recent)
        return data

    # --------------------------------------------------------
    # Rendering helpers
    # --------------------------------------------------------

    def _render_status_panel(self, s: Dict[str, Any]) -> Panel:
        txt = Text()
        txt.append("Phase: ", style="bold")
        txt.append(f"{s['phase']}", style="red" if s["phase"] == "FAULTED" else "")
        txt.append(f"  ({s['phase_reason'] or '-'})\n")
        txt.append("Runs completed: ", style="bold")
        txt.append(f"{s['runs_completed']}\n")
        if s["fault"]:
            txt.append("Fault: ", style="bold red")
            txt.append(str(s["fault"]))
        return Panel(txt, title="Navigation", border_style="cyan")

    def _render_path_panel(self, s: Dict[str, Any]) -> Panel:
        table = Table.grid(pad_edge=False)
        table.add_column(justify="left")
        table.add_row(f"[bold]Waypoints:[/bold] {s['path_length']}")
        table.add_row(f"[bold]Cursor:[/bold] {s['cursor_index']}")
        table.add_row(f"[bold]Requests:[/bold] {s['requests']}")
        table.add_row(f"[bold]Last accept:[/bold] {s['last_accept'] or '<none>'}")
        table.add_row(f"[bold]Last reject:[/bold] {s['last_reject'] or '<none>'}")
        return Panel(table, title="Path", border_style="green")

    def _render_activity_panel(self, s: Dict[str, Any]) -> Panel:
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Counter", style="bold", width=18)
        table.add_column("Value", justify="right")
        table.add_row("Actuations", str(s["actuations"]))
        table.add_row("Duplicate points", str(s["duplicates"]))
        table.add_row("Stuck recoveries", str(s["recoveries"]))
        table.add_row("Round timeouts", str(s["round_timeouts"]))
        table.add_row("Last recovery", s["last_recovery"] or "-")
        return Panel(table, title="Activity", border_style="magenta")

    def _render_recent_panel(self, s: Dict[str, Any]) -> Panel:
        txt = Text("\n".join(s["recent"]) if s["recent"] else "No events yet")
        return Panel(txt, title="Recent Events", border_style="yellow")

    def build_layout(self) -> Layout:
        s = self.snapshot()
        layout = Layout()
        layout.split(
            Layout(name="top", size=5),
            Layout(name="middle", ratio=1),
            Layout(name="bottom", size=12),
        )
        layout["top"].update(self._render_status_panel(s))
        layout["middle"].split_row(Layout(name="path"), Layout(name="activity"))
        layout["path"].update(self._render_path_panel(s))
        layout["activity"].update(self._render_activity_panel(s))
        layout["bottom"].update(self._render_recent_panel(s))
        return layout

    # --------------------------------------------------------
    # Main loop
    # --------------------------------------------------------

    def run(self, refresh_per_second: float = 4.0, stop: Optional[threading.Event] = None) -> None:
        """Block rendering until `stop` is set (forever if None)."""
        refresh_delay = 1.0 / max(refresh_per_second, 0.1)
        with Live(self.build_layout(), console=self._console, refresh_per_second=refresh_per_second) as live:
            while stop is None or not stop.is_set():
                live.update(self.build_layout())
                time.sleep(refresh_delay)

    def start_in_background(self, refresh_per_second: float = 4.0) -> threading.Event:
        """Run the dashboard on a daemon thread; set the returned event to stop it."""
        stop = threading.Event()
        t = threading.Thread(
            target=self.run,
            kwargs={"refresh_per_second": refresh_per_second, "stop": stop},
            name="NavDashboardThread",
            daemon=True,
        )
        t.start()
        return stop
