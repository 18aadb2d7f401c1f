"""Minimal blocking Chrome DevTools Protocol connection."""

from __future__ import annotations

import json
import socket
import time
from contextlib import suppress
from typing import Any

import websocket

from .errors import CdpError


class CdpConnection:
    """Low-level CDP WebSocket connection to a single page target.

    One connection serves one caller at a time: commands are sent and awaited in order,
    and events received while waiting are dropped.
    """

    def __init__(self, ws_url: str, timeout: float = 5.0):
        try:
            self.ws = websocket.create_connection(ws_url, timeout=timeout)
        except Exception as exc:  # noqa: BLE001
            raise CdpError(f"Cannot connect to {ws_url}: {exc}") from exc
        self.ws_url = ws_url
        self.timeout = timeout
        self._next_id = 1

    def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Send CDP command and wait for response."""
        msg_id = self._next_id
        self._next_id += 1

        msg: dict[str, Any] = {"id": msg_id, "method": method}
        if params:
            msg["params"] = params

        try:
            self.ws.settimeout(min(2.0, max(0.5, float(self.timeout))))
            self.ws.send(json.dumps(msg))
        except Exception as exc:  # noqa: BLE001
            raise CdpError(str(exc)) from exc

        return self._recv_until(msg_id)

    def _recv_until(self, expected_id: int) -> dict[str, Any]:
        """Wait for response with specific ID."""
        deadline = time.time() + self.timeout
        while True:
            remaining = deadline - time.time()
            if remaining <= 0:
                raise CdpError("CDP response timed out")

            try:
                self.ws.settimeout(min(0.5, remaining))
                raw = self.ws.recv()
            except Exception as exc:  # noqa: BLE001
                # Treat timeouts as "no message yet"; retry until deadline.
                msg = str(exc).lower()
                if isinstance(exc, (TimeoutError, websocket.WebSocketTimeoutException)) or "timed out" in msg:
                    continue
                raise CdpError(str(exc)) from exc

            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                continue

            if not isinstance(data, dict) or data.get("id") != expected_id:
                # CDP event or a stale response.
                continue
            if "error" in data:
                raise CdpError(str(data["error"]))
            result = data.get("result")
            return result if isinstance(result, dict) else {}

    def close(self) -> None:
        """Best-effort close; shut the raw socket down first so close() cannot hang."""
        sock = getattr(self.ws, "sock", None)
        if sock is not None:
            with suppress(Exception):
                sock.shutdown(socket.SHUT_RDWR)
        with suppress(Exception):
            self.ws.close()


__all__ = ["CdpConnection"]
