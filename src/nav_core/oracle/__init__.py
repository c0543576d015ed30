# src/nav_core/oracle/__init__.py
"""Pathfinding oracle adapters and the tick-side result queue."""

from __future__ import annotations

from .client import OracleClient, OracleResultMessage, normalize_waypoints
from .ipc import IpcPathOracle
from .threaded import ThreadPoolOracle

__all__ = [
    "IpcPathOracle",
    "OracleClient",
    "OracleResultMessage",
    "ThreadPoolOracle",
    "normalize_waypoints",
]
