# JSON logger subscribing to EventBus
"""
Structured event persistence.

Provides:
- JsonFileLogger: subscribes to an EventBus and appends events as JSONL.
- log_event: helper that builds a MonitoringEvent and publishes it.

    bus = EventBus()
    sink = JsonFileLogger(Path("logs/nav/events.jsonl"), bus)
    log_event(
        bus=bus,
        module="nav_core.controller",
        event_type=EventType.PATH_ACCEPTED,
        message="Accepted path",
        payload={"length": 42},
    )
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Iterable, Optional

from .bus import EventBus
from .events import EventType, MonitoringEvent

log = logging.getLogger(__name__)


class JsonFileLogger:
    """
    JSON-lines writer for MonitoringEvents.

    Optionally restricted to a set of event types; everything else is
    ignored. Only the first write failure is logged.
    """

    def __init__(
        self,
        path: Path,
        bus: EventBus,
        event_types: Optional[Iterable[EventType]] = None,
    ) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self._path.open("a", encoding="utf-8")
        self._lock = Lock()
        self._bus = bus
        self._write_failed = False
        self.written = 0
        bus.subscribe(self._on_event, event_types)

    @property
    def path(self) -> Path:
        return self._path

    def _on_event(self, event: MonitoringEvent) -> None:
        line = json.dumps(event.to_dict(), ensure_ascii=False, default=str)
        with self._lock:
            if self._file.closed:
                return
            try:
                self._file.write(line + "\n")
                self._file.flush()
            except OSError:
                if not self._write_failed:
                    log.exception("Failed writing monitoring event to %s", self._path)
                self._write_failed = True
                return
            self.written += 1

    def close(self) -> None:
        """Unsubscribe and close the file. Idempotent."""
        self._bus.unsubscribe(self._on_event)
        with self._lock:
            if not self._file.closed:
                self._file.close()


def log_event(
    bus: EventBus,
    module: str,
    event_type: EventType,
    message: str,
    payload: Optional[Dict[str, Any]] = None,
    correlation_id: Optional[str] = None,
) -> MonitoringEvent:
    """
    Create and publish a MonitoringEvent; returns it for callers that
    also want to keep it.

    Parameters
    ----------
    bus:
        EventBus to publish on.
    module:
        Source module name ("nav_core.controller", "monitoring.controller").
    event_type:
        EventType member.
    message:
        Short human-readable description.
    payload:
        JSON-safe structured data.
    correlation_id:
        Optional id linking related events (per run).
    """
    event = MonitoringEvent(
        ts=time.time(),
        module=module,
        event_type=event_type,
        message=message,
        payload=payload or {},
        correlation_id=correlation_id,
    )
    bus.publish(event)
    return event
