# src/upward_router/metrics.py
from __future__ import annotations

import threading
import time
from typing import Dict


_lock = threading.Lock()
_counters: Dict[str, int] = {}


def inc_counter(name: str, value: int = 1) -> None:
    n = str(name or "").strip()
    if not n:
        return
    with _lock:
        _counters[n] = int(_counters.get(n, 0)) + int(value)


def get_counter(name: str) -> int:
    with _lock:
        return int(_counters.get(name, 0))


def snapshot() -> dict:
    with _lock:
        return {
            "ts_ms": int(time.time() * 1000),
            "counters": dict(_counters),
        }


def reset() -> None:
    with _lock:
        _counters.clear()
