# JSON-lines TCP bridge to an external pathfinding service
# src/nav_core/oracle/ipc.py
"""
IPC-backed PathfindingOracle.

Talks to an out-of-process pathfinder (typically a plugin living inside
the game client) over TCP using newline-delimited JSON:

    -> {"type": "find_path",   "payload": {"request_id": 7, "x": 120.0, "y": 45.0}}
    -> {"type": "cancel",      "payload": {"request_id": 7}}
    <- {"type": "path_result", "payload": {"request_id": 7, "waypoints": [[1, 2], ...]}}

`waypoints` may be null or empty for "no path found". The socket is
non-blocking; tick() pumps it and fires callbacks on the caller's thread.

A dead peer (EOF, reset, failed send) disconnects and drops every
pending request. tick() never raises for it; request_path raises
OracleUnavailableError until is_available() reconnects.
"""

from __future__ import annotations

import itertools
import json
import logging
import socket
from dataclasses import dataclass
from threading import Lock
from typing import Any, Dict, Mapping, Optional, Tuple

from contracts.types import CancelToken, Point2D
from contracts.interfaces import OracleUnavailableError, PathCallback
from profiles.schema import OracleSettings

log = logging.getLogger(__name__)


@dataclass
class _PendingRequest:
    callback: PathCallback
    cancel_token: CancelToken


class IpcPathOracle:
    def __init__(
        self,
        host: str,
        port: int,
        connect_timeout_s: float = 1.0,
    ) -> None:
        self._address: Tuple[str, int] = (str(host), int(port))
        self._connect_timeout_s = connect_timeout_s
        self._sock: Optional[socket.socket] = None
        self._lock = Lock()
        self._recv_buffer = b""
        self._ids = itertools.count(1)
        self._pending: Dict[int, _PendingRequest] = {}

    @classmethod
    def from_settings(cls, cfg: OracleSettings) -> "IpcPathOracle":
        return cls(cfg.host, cfg.port, connect_timeout_s=cfg.connect_timeout_s)

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def connect(self) -> None:
        if self._sock is not None:
            return
        log.info("IpcPathOracle connecting to %s:%d", *self._address)
        sock = socket.create_connection(self._address, timeout=self._connect_timeout_s)
        sock.setblocking(False)
        self._sock = sock

    def disconnect(self) -> None:
        with self._lock:
            if self._sock is None:
                return
            log.info("IpcPathOracle disconnecting")
            try:
                self._sock.close()
            finally:
                self._sock = None
                self._recv_buffer = b""
                # Outstanding requests can no longer complete.
                self._pending.clear()

    # ------------------------------------------------------------------
    # PathfindingOracle protocol
    # ------------------------------------------------------------------

    def is_available(self) -> bool:
        if self._sock is not None:
            return True
        try:
            self.connect()
        except OSError as exc:
            log.debug("IpcPathOracle unavailable: %s", exc)
            return False
        return True

    def request_path(
        self,
        target: Point2D,
        on_result: PathCallback,
        cancel_token: CancelToken,
    ) -> None:
        request_id = next(self._ids)
        self._pending[request_id] = _PendingRequest(on_result, cancel_token)
        try:
            self._send("find_path", {"request_id": request_id, "x": target.x, "y": target.y})
        except OracleUnavailableError:
            self._pending.pop(request_id, None)
            raise

    # ------------------------------------------------------------------
    # Pump
    # ------------------------------------------------------------------

    def tick(self) -> None:
        """Forward cancellations, then read and dispatch complete lines."""
        if self._sock is None:
            return

        for request_id, pending in list(self._pending.items()):
            if not pending.cancel_token.cancelled:
                continue
            self._pending.pop(request_id, None)
            try:
                self._send("cancel", {"request_id": request_id})
            except OracleUnavailableError:
                # _send already disconnected; nothing left to read.
                return

        peer_gone = False
        while True:
            try:
                chunk = self._sock.recv(4096)
            except BlockingIOError:
                break
            except OSError as exc:
                log.warning("IpcPathOracle socket error (%s); disconnecting", exc)
                peer_gone = True
                break
            if not chunk:
                log.info("IpcPathOracle received EOF; disconnecting")
                peer_gone = True
                break
            self._recv_buffer += chunk

        # Results that arrived before the hang-up are still delivered.
        while b"\n" in self._recv_buffer:
            line, self._recv_buffer = self._recv_buffer.split(b"\n", 1)
            line = line.strip()
            if line:
                self._handle_raw_line(line)

        if peer_gone:
            self.disconnect()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _send(self, msg_type: str, payload: Mapping[str, Any]) -> None:
        sock = self._sock
        if sock is None:
            raise OracleUnavailableError("IpcPathOracle is not connected")
        encoded = json.dumps({"type": msg_type, "payload": dict(payload)}, separators=(",", ":"))
        try:
            with self._lock:
                sock.sendall(encoded.encode("utf-8") + b"\n")
        except OSError as exc:
            log.warning("IpcPathOracle send of %s failed (%s); disconnecting", msg_type, exc)
            self.disconnect()
            raise OracleUnavailableError(f"send failed: {exc}") from exc

    def _handle_raw_line(self, line: bytes) -> None:
        try:
            obj = json.loads(line.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            log.exception("IpcPathOracle failed to decode JSON line: %r", line)
            return
        if not isinstance(obj, dict):
            log.warning("IpcPathOracle received non-object message: %r", obj)
            return

        msg_type = obj.get("type")
        payload = obj.get("payload", {})
        if msg_type != "path_result":
            log.debug("IpcPathOracle ignoring message type=%r", msg_type)
            return
        if not isinstance(payload, dict):
            log.warning("IpcPathOracle received message with non-dict payload: %r", obj)
            return

        request_id = payload.get("request_id")
        if not isinstance(request_id, int):
            log.warning("IpcPathOracle result without request_id: %r", obj)
            return
        pending = self._pending.pop(request_id, None)
        if pending is None:
            log.debug("IpcPathOracle result for unknown request %d", request_id)
            return
        if pending.cancel_token.cancelled:
            return

        try:
            pending.callback(payload.get("waypoints"))
        except Exception:
            log.exception("Error in path_result callback")
