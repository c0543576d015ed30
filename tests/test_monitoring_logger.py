#tests/test_monitoring_logger.py
"""
Tests for monitoring.logger.JsonFileLogger and log_event.

Covers:
- JSON structure validity
- Event type filtering
- Parent directory creation
- close() unsubscribes and is idempotent
"""

from __future__ import annotations

import json
from pathlib import Path

from monitoring.bus import EventBus
from monitoring.events import EventType
from monitoring.logger import JsonFileLogger, log_event


def read_lines(path: Path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line]


def test_json_file_logger_writes_valid_json(tmp_path: Path):
    bus = EventBus()
    log_path = tmp_path / "events.jsonl"
    logger = JsonFileLogger(log_path, bus)

    event = log_event(
        bus=bus,
        module="nav_core.controller",
        event_type=EventType.PATH_ACCEPTED,
        message="better direction",
        payload={"length": 42, "rationale": "E probe at 100"},
        correlation_id="run-3",
    )
    logger.close()

    (data,) = read_lines(log_path)
    assert event.event_type == EventType.PATH_ACCEPTED
    assert data["module"] == "nav_core.controller"
    assert data["event_type"] == "PATH_ACCEPTED"
    assert data["message"] == "better direction"
    assert data["payload"] == {"length": 42, "rationale": "E probe at 100"}
    assert data["correlation_id"] == "run-3"
    assert isinstance(data["ts"], (int, float))
    assert logger.written == 1


def test_logger_filters_event_types(tmp_path: Path):
    bus = EventBus()
    log_path = tmp_path / "events.jsonl"
    logger = JsonFileLogger(log_path, bus, event_types=[EventType.FAULT, EventType.RUN_COMPLETED])

    for et in (EventType.ACTUATION, EventType.FAULT, EventType.PATH_REQUESTED, EventType.RUN_COMPLETED):
        log_event(bus=bus, module="test", event_type=et, message=et.name)
    logger.close()

    assert [d["event_type"] for d in read_lines(log_path)] == ["FAULT", "RUN_COMPLETED"]


def test_logger_parent_dir_created(tmp_path: Path):
    log_path = tmp_path / "nested" / "logs" / "events.jsonl"
    bus = EventBus()
    logger = JsonFileLogger(log_path, bus)

    log_event(bus=bus, module="test", event_type=EventType.LOG, message="hello")
    logger.close()

    assert logger.path == log_path
    assert log_path.read_text(encoding="utf-8").strip()


def test_close_unsubscribes_and_is_idempotent(tmp_path: Path):
    bus = EventBus()
    log_path = tmp_path / "events.jsonl"
    logger = JsonFileLogger(log_path, bus)

    logger.close()
    logger.close()
    log_event(bus=bus, module="test", event_type=EventType.LOG, message="after close")

    assert logger.written == 0
    assert bus.handler_errors == 0
    assert log_path.read_text(encoding="utf-8") == ""
