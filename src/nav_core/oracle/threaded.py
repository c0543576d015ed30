# src/nav_core/oracle/threaded.py
"""In-process PathfindingOracle running a path function on a thread pool."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, Sequence

from contracts.types import CancelToken, Point2D, Waypoint
from contracts.interfaces import PathCallback

log = logging.getLogger(__name__)

PathFunction = Callable[[Point2D, Point2D], Optional[Sequence[Waypoint]]]


class ThreadPoolOracle:
    """
    Wraps a blocking `find_path(start, goal)` so it looks like an async oracle.

    The start point is sampled from `position_fn` when the request is made.
    Cancelled requests are skipped before and after the search; their
    callbacks never fire.
    """

    def __init__(
        self,
        find_path: PathFunction,
        position_fn: Callable[[], Point2D],
        max_workers: int = 4,
        latency_s: float = 0.0,
    ) -> None:
        self._find_path = find_path
        self._position_fn = position_fn
        self._latency_s = latency_s
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="oracle")
        self._closed = False

    def is_available(self) -> bool:
        return not self._closed

    def request_path(
        self,
        target: Point2D,
        on_result: PathCallback,
        cancel_token: CancelToken,
    ) -> None:
        if self._closed:
            raise RuntimeError("ThreadPoolOracle is shut down")
        start = self._position_fn()
        self._executor.submit(self._run, start, target, on_result, cancel_token)

    def shutdown(self) -> None:
        self._closed = True
        self._executor.shutdown(wait=False, cancel_futures=True)

    def _run(
        self,
        start: Point2D,
        target: Point2D,
        on_result: PathCallback,
        cancel_token: CancelToken,
    ) -> None:
        if cancel_token.cancelled:
            return
        if self._latency_s > 0:
            time.sleep(self._latency_s)
        try:
            path = self._find_path(start, target)
        except Exception:
            log.exception("Path search %s -> %s failed", start, target)
            path = None
        if cancel_token.cancelled:
            return
        try:
            on_result(path)
        except Exception:
            log.exception("Error in oracle result callback")
