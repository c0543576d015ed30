# src/nav_core/tracing.py
"""
Rolling record of emitted actuation commands.

Keeps the last N emissions in memory and writes one compact log line per
emission, so a run can be reconstructed from logs or inspected live.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional

from contracts.types import Point2D, SurfacePoint


@dataclass
class ActuationTraceRecord:
    timestamp: float             # wall-clock time (time.time())
    world_target: Point2D
    surface_point: SurfacePoint
    agent_position: Point2D
    mode: str                    # "click" or "key"
    delay_s: float
    duplicate: bool
    error: Optional[str]


class ActuationTracer:
    def __init__(
        self,
        *,
        logger: Optional[logging.Logger] = None,
        max_records: int = 2_000,
    ) -> None:
        self._logger = logger or logging.getLogger("nav_core.actuation")
        self._records: Deque[ActuationTraceRecord] = deque(maxlen=max_records)

    def record(
        self,
        *,
        world_target: Point2D,
        surface_point: SurfacePoint,
        agent_position: Point2D,
        mode: str,
        delay_s: float,
        duplicate: bool,
        error: Optional[str] = None,
    ) -> ActuationTraceRecord:
        rec = ActuationTraceRecord(
            timestamp=time.time(),
            world_target=world_target,
            surface_point=surface_point,
            agent_position=agent_position,
            mode=mode,
            delay_s=delay_s,
            duplicate=duplicate,
            error=error,
        )
        self._records.append(rec)
        self._logger.debug(
            "actuation mode=%s target=(%.1f,%.1f) surface=(%.0f,%.0f) delay=%.3fs dup=%s error=%s",
            mode,
            world_target.x,
            world_target.y,
            surface_point.x,
            surface_point.y,
            delay_s,
            duplicate,
            error,
        )
        return rec

    def get_records(self) -> List[ActuationTraceRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)
