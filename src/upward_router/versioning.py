# src/upward_router/versioning.py
"""
Version wrappers: pick the message version a destination understands and
wrap the message in it.

A message is representable in version V iff V is supported and every
instruction in it exists in V (see messages.op_min_version()).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol, runtime_checkable

from upward_router.location import Destination
from upward_router.messages import LATEST_VERSION, SUPPORTED_VERSIONS, Message, VersionedMessage


class Unsupported(RuntimeError):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


@runtime_checkable
class VersionWrapper(Protocol):
    def wrap(self, destination: Destination, message: Message) -> VersionedMessage: ...


def wrap_as(version: int, message: Message) -> VersionedMessage:
    if version not in SUPPORTED_VERSIONS:
        raise Unsupported(f"version {version} is not supported")
    need = message.min_version()
    if need > version:
        raise Unsupported(f"message requires version >= {need}; destination speaks {version}")
    return VersionedMessage(version=version, message=message)


@dataclass(frozen=True, slots=True)
class AlwaysVersion:
    version: int

    def wrap(self, destination: Destination, message: Message) -> VersionedMessage:
        return wrap_as(self.version, message)


@dataclass(frozen=True, slots=True)
class AlwaysLatest:
    def wrap(self, destination: Destination, message: Message) -> VersionedMessage:
        return wrap_as(LATEST_VERSION, message)


@dataclass(frozen=True)
class VersionTable:
    """
    Negotiated versions per destination.

    Destinations without an entry use `safe_version`; with no safe version
    configured they are unsupported.
    """

    known: Dict[Destination, int] = field(default_factory=dict)
    safe_version: Optional[int] = None

    def version_for(self, destination: Destination) -> Optional[int]:
        v = self.known.get(destination)
        if v is not None:
            return v
        return self.safe_version

    def wrap(self, destination: Destination, message: Message) -> VersionedMessage:
        v = self.version_for(destination)
        if v is None:
            raise Unsupported(f"no known version for destination {destination}")
        return wrap_as(v, message)
