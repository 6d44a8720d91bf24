# src/upward_router/transport.py
"""
Upward transport: the collaborator that actually moves ticket bytes to the
parent.

The router only needs send(). Queueing, framing and backpressure belong to the
sender implementation.
"""

from __future__ import annotations

import threading
from typing import Any, List, Protocol, runtime_checkable

DEFAULT_MAX_MESSAGE_BYTES = 65_531


class TransportError(RuntimeError):
    """Sender failed. `detail` is kept verbatim for diagnostics."""

    def __init__(self, detail: Any) -> None:
        super().__init__(str(detail))
        self.detail = detail


class MessageTooBig(TransportError):
    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"message of {size} bytes exceeds limit of {limit} bytes")
        self.size = size
        self.limit = limit


@runtime_checkable
class TransportSender(Protocol):
    def send(self, payload: bytes) -> None: ...


class InMemoryUpwardSender:
    """
    In-process sender used by tests and the CLI.

    - Does not open sockets
    - Rejects payloads above max_message_bytes with MessageTooBig
    - Keeps accepted payloads in order until drain()
    """

    def __init__(self, *, max_message_bytes: int = DEFAULT_MAX_MESSAGE_BYTES) -> None:
        if int(max_message_bytes) <= 0:
            raise ValueError(f"max_message_bytes must be > 0; got: {max_message_bytes}")
        self.max_message_bytes = int(max_message_bytes)
        self._lock = threading.Lock()
        self._out: List[bytes] = []

    def send(self, payload: bytes) -> None:
        if not isinstance(payload, (bytes, bytearray)):
            raise TypeError("payload must be bytes")
        if len(payload) > self.max_message_bytes:
            raise MessageTooBig(len(payload), self.max_message_bytes)
        with self._lock:
            self._out.append(bytes(payload))

    def pending(self) -> int:
        with self._lock:
            return len(self._out)

    def drain(self) -> List[bytes]:
        with self._lock:
            out = list(self._out)
            self._out.clear()
        return out
