# EventBus for monitoring events and control commands
"""
In-process pub/sub for navigation monitoring.

- Subscribers receive MonitoringEvent objects, optionally only for a set
  of event types (the JSONL logger keeps just the low-volume ones).
- Command handlers receive ControlCommand objects (RunController).

Publishing may happen from any thread. Handlers run on the publisher's
thread, outside the lock.
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Callable, FrozenSet, Iterable, List, Optional, Tuple, TypeVar

from .events import ControlCommand, EventType, MonitoringEvent

log = logging.getLogger(__name__)

SubscriberFn = Callable[[MonitoringEvent], None]
CommandHandlerFn = Callable[[ControlCommand], None]

_T = TypeVar("_T")
_Subscription = Tuple[SubscriberFn, Optional[FrozenSet[EventType]]]


class EventBus:
    def __init__(self) -> None:
        self._subscriptions: List[_Subscription] = []
        self._cmd_handlers: List[CommandHandlerFn] = []
        self._lock = Lock()
        self.handler_errors = 0

    # --------------------------------------------------------
    # Subscription
    # --------------------------------------------------------

    def subscribe(
        self,
        fn: SubscriberFn,
        event_types: Optional[Iterable[EventType]] = None,
    ) -> None:
        """Deliver events to `fn`; only `event_types` ones when given."""
        wanted = frozenset(event_types) if event_types is not None else None
        with self._lock:
            self._subscriptions.append((fn, wanted))

    def unsubscribe(self, fn: SubscriberFn) -> None:
        """Safe to call even if `fn` is not subscribed."""
        with self._lock:
            self._subscriptions = [s for s in self._subscriptions if s[0] != fn]

    def subscribe_commands(self, fn: CommandHandlerFn) -> None:
        with self._lock:
            self._cmd_handlers.append(fn)

    def unsubscribe_commands(self, fn: CommandHandlerFn) -> None:
        with self._lock:
            if fn in self._cmd_handlers:
                self._cmd_handlers.remove(fn)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    # --------------------------------------------------------
    # Publish
    # --------------------------------------------------------

    def publish(self, event: MonitoringEvent) -> None:
        with self._lock:
            targets = [
                fn for fn, wanted in self._subscriptions
                if wanted is None or event.event_type in wanted
            ]
        self._dispatch(targets, event)

    def publish_command(self, cmd: ControlCommand) -> None:
        with self._lock:
            handlers = list(self._cmd_handlers)
        self._dispatch(handlers, cmd)

    def clear(self) -> None:
        """Drop all subscribers and handlers (tests, shutdown)."""
        with self._lock:
            self._subscriptions = []
            self._cmd_handlers = []

    def _dispatch(self, handlers: List[Callable[[_T], None]], item: _T) -> None:
        # A failing handler must not starve the others or the publisher.
        for fn in handlers:
            try:
                fn(item)
            except Exception:
                self.handler_errors += 1
                log.exception("Monitoring handler %r failed", fn)
