# tick-side wrapper around a PathfindingOracle
# src/nav_core/oracle/client.py
"""
Bridges asynchronous oracle callbacks into the tick loop.

Oracle callbacks may fire on any thread. They never touch navigation
state: they only append an OracleResultMessage to a lock-guarded queue,
which the tick drains and evaluates serially. Callbacks for requests
whose cancel token is already cancelled are dropped here.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, List, Optional, Sequence, Tuple

from contracts.types import Point2D, Waypoint
from contracts.interfaces import PathfindingOracle

from ..candidates import CandidateRequest

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class OracleResultMessage:
    request_id: int
    round_id: int
    target: Point2D
    rationale: str
    waypoints: Optional[Tuple[Waypoint, ...]]
    received_at: float
    error: Optional[str] = None

    @property
    def found(self) -> bool:
        return bool(self.waypoints)


def normalize_waypoints(raw: Optional[Sequence[Any]]) -> Optional[Tuple[Waypoint, ...]]:
    """
    Coerce an oracle payload into Waypoints.

    Accepts Waypoint objects, (x, y) pairs or {"x": .., "y": ..} mappings.
    Returns None for empty or malformed payloads.
    """
    if not raw:
        return None
    out = []
    for item in raw:
        if isinstance(item, Waypoint):
            out.append(item)
        elif isinstance(item, dict) and "x" in item and "y" in item:
            out.append(Waypoint(int(round(item["x"])), int(round(item["y"]))))
        elif isinstance(item, (list, tuple)) and len(item) >= 2:
            out.append(Waypoint(int(round(item[0])), int(round(item[1]))))
        else:
            log.warning("Dropping malformed oracle path; bad waypoint %r", item)
            return None
    return tuple(out)


class OracleClient:
    """Dispatches candidate requests and queues their results."""

    def __init__(
        self,
        oracle: PathfindingOracle,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._oracle = oracle
        self._clock = clock
        self._queue: Deque[OracleResultMessage] = deque()
        self._lock = threading.Lock()
        self._transport_lost = False

    def is_available(self) -> bool:
        try:
            return bool(self._oracle.is_available())
        except Exception:
            log.exception("Oracle availability probe failed")
            return False

    def pump(self) -> bool:
        """
        Let transport-backed oracles read pending results (no-op otherwise).

        Returns False when the transport is down: the oracle reports
        `connected` False, or a request failed with a ConnectionError
        since the previous pump.
        """
        tick = getattr(self._oracle, "tick", None)
        if callable(tick):
            tick()
        with self._lock:
            lost, self._transport_lost = self._transport_lost, False
        if getattr(self._oracle, "connected", True) is False:
            return False
        return not lost

    def request(self, req: CandidateRequest) -> bool:
        """Send one request. Returns False if the oracle transport is gone."""
        fired = threading.Event()

        def _on_result(waypoints: Optional[Sequence[Any]]) -> None:
            if fired.is_set():
                log.debug("Ignoring repeated callback for request %d", req.request_id)
                return
            fired.set()
            if req.cancel_token.cancelled:
                log.debug("Dropping result for cancelled request %d", req.request_id)
                return
            self._enqueue(req, normalize_waypoints(waypoints))

        try:
            self._oracle.request_path(req.target, _on_result, req.cancel_token)
        except ConnectionError as exc:
            log.warning("Oracle connection lost on request %d (%s): %s", req.request_id, req.rationale, exc)
            fired.set()
            self._enqueue(req, None, error=f"request_failed: {exc}")
            with self._lock:
                self._transport_lost = True
            return False
        except Exception as exc:
            log.warning("Oracle rejected request %d (%s): %s", req.request_id, req.rationale, exc)
            fired.set()
            self._enqueue(req, None, error=f"request_failed: {exc}")
        return True

    def drain(self) -> List[OracleResultMessage]:
        with self._lock:
            items = list(self._queue)
            self._queue.clear()
        return items

    def pending_count(self) -> int:
        with self._lock:
            return len(self._queue)

    def _enqueue(
        self,
        req: CandidateRequest,
        waypoints: Optional[Tuple[Waypoint, ...]],
        error: Optional[str] = None,
    ) -> None:
        msg = OracleResultMessage(
            request_id=req.request_id,
            round_id=req.round_id,
            target=req.target,
            rationale=req.rationale,
            waypoints=waypoints,
            received_at=self._clock(),
            error=error,
        )
        with self._lock:
            self._queue.append(msg)
