# src/upward_router/errors.py
from __future__ import annotations

from typing import Any


class RouterError(Exception):
    """Base for every failure the router reports. `code` is stable, `reason` is for humans."""

    code = "router_error"

    def __init__(self, reason: str = "") -> None:
        super().__init__(reason or self.code)
        self.reason = reason or self.code

    def __str__(self) -> str:
        return f"{self.code}:{self.reason}"


class MissingArgument(RouterError):
    code = "missing_argument"


class NotApplicableError(RouterError):
    """Destination is not ours; a caller-side chain should try the next router."""

    code = "not_applicable"


class DestinationUnsupported(RouterError):
    code = "destination_unsupported"


class ExceedsMaxMessageSize(RouterError):
    code = "exceeds_max_message_size"


class TransportFailed(RouterError):
    code = "transport"

    def __init__(self, detail: Any) -> None:
        super().__init__(str(detail))
        self.detail = detail
