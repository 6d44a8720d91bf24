# src/upward_router/codec.py
"""
Ticket encoding: deterministic canonical JSON for versioned messages.

Shape:
  {"instructions": [{"op": ..., "params": {...}}, ...], "version": N}

Keys are sorted and separators are compact, so equal messages always encode to
identical bytes (and therefore identical fingerprints).
"""

from __future__ import annotations

import json
from typing import Any, Dict

from upward_router.messages import SUPPORTED_VERSIONS, Message, VersionedMessage

Json = Dict[str, Any]


class WireDecodeError(RuntimeError):
    def __init__(self, code: str, msg: str) -> None:
        super().__init__(msg)
        self.code = code


class WireEncodeError(RuntimeError):
    def __init__(self, code: str, msg: str) -> None:
        super().__init__(msg)
        self.code = code


def dumps_json(obj: Any) -> bytes:
    try:
        return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise WireEncodeError("encode_failed", f"encode failed: {e}") from e


def loads_json(data: bytes | str) -> Any:
    try:
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        return json.loads(data)
    except json.JSONDecodeError as e:
        raise WireDecodeError("invalid_json", f"invalid json: {e}") from e
    except UnicodeDecodeError as e:
        raise WireDecodeError("invalid_utf8", f"invalid utf-8: {e}") from e


def _coerce_version(v: Any) -> int:
    if isinstance(v, bool) or not isinstance(v, int):
        raise WireDecodeError("invalid_version", f"Invalid version field: {type(v).__name__}")
    if v not in SUPPORTED_VERSIONS:
        raise WireDecodeError("unsupported_version", f"Unsupported message version: {v}")
    return v


def encode_versioned(vm: VersionedMessage) -> bytes:
    if not isinstance(vm, VersionedMessage):
        raise WireEncodeError("not_versioned", "expected VersionedMessage")
    return dumps_json({"version": int(vm.version), "instructions": vm.message.to_json()})


def decode_versioned(payload: bytes) -> VersionedMessage:
    raw = loads_json(payload)
    if not isinstance(raw, dict):
        raise WireDecodeError("invalid_message", "versioned message must be an object")

    extra = set(raw.keys()) - {"version", "instructions"}
    if extra:
        raise WireDecodeError("invalid_message_shape", f"Unexpected fields: {sorted(extra)}")

    version = _coerce_version(raw.get("version"))
    try:
        message = Message.from_json(raw.get("instructions"))
    except ValueError as e:
        raise WireDecodeError("invalid_message_shape", f"Invalid message shape: {e}") from e
    return VersionedMessage(version=version, message=message)
