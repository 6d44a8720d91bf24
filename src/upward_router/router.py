# src/upward_router/router.py
"""
Upward Router — two-phase send to the parent.

  validate(destination, message) -> Handled | NotApplicable | Failed
  deliver(ticket)                -> Fingerprint  (raises RouterError)

The router recognises only the parent destination (one hop up, no interior
junctions). Anything else comes back as NotApplicable with both inputs
untouched so a caller-side chain can offer them to the next router.

No state is kept between calls; concurrent callers need no locking.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from upward_router.codec import WireEncodeError, encode_versioned
from upward_router.errors import (
    DestinationUnsupported,
    ExceedsMaxMessageSize,
    MissingArgument,
    NotApplicableError,
    RouterError,
    TransportFailed,
)
from upward_router.location import Destination, matches_parent
from upward_router.messages import Message, Price
from upward_router.metrics import inc_counter
from upward_router.net_logging import log_event
from upward_router.pricing import PriceCalculator, ZeroPrice
from upward_router.transport import MessageTooBig, TransportError, TransportSender
from upward_router.versioning import AlwaysLatest, Unsupported, VersionWrapper

FINGERPRINT_BYTES = 32

log = logging.getLogger("upward_router.router")


# ---------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Ticket:
    """Fully prepared, destination-bound message bytes. Deliver at most once."""

    data: bytes

    def __post_init__(self) -> None:
        if isinstance(self.data, bytearray):
            object.__setattr__(self, "data", bytes(self.data))
        if not isinstance(self.data, bytes):
            raise TypeError("ticket data must be bytes")

    def __len__(self) -> int:
        return len(self.data)


@dataclass(frozen=True, slots=True)
class Fingerprint:
    digest: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.digest, bytes) or len(self.digest) != FINGERPRINT_BYTES:
            raise ValueError(f"fingerprint must be {FINGERPRINT_BYTES} bytes")

    def hex(self) -> str:
        return self.digest.hex()


def fingerprint_of(data: bytes) -> Fingerprint:
    """blake2b-256 over the exact bytes, no framing."""
    return Fingerprint(hashlib.blake2b(bytes(data), digest_size=FINGERPRINT_BYTES).digest())


# ---------------------------------------------------------------------
# validate() outcomes
# ---------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Handled:
    ticket: Ticket
    price: Price

    def unwrap(self) -> Tuple[Ticket, Price]:
        return self.ticket, self.price


@dataclass(frozen=True, slots=True)
class NotApplicable:
    """Both inputs handed back exactly as received."""

    destination: Destination
    message: Message

    @property
    def error(self) -> NotApplicableError:
        return NotApplicableError(f"destination {self.destination} is not the parent")

    def unwrap(self) -> Tuple[Ticket, Price]:
        raise self.error


@dataclass(frozen=True, slots=True)
class Failed:
    error: RouterError

    def unwrap(self) -> Tuple[Ticket, Price]:
        raise self.error


ValidateOutcome = Union[Handled, NotApplicable, Failed]


# ---------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class ParentRouter:
    sender: TransportSender
    price_calculator: PriceCalculator = field(default_factory=ZeroPrice)
    version_wrapper: VersionWrapper = field(default_factory=AlwaysLatest)

    def validate(self, destination: Optional[Destination], message: Optional[Message]) -> ValidateOutcome:
        if destination is None or message is None:
            inc_counter("router_validate_failed")
            missing = "destination" if destination is None else "message"
            return Failed(MissingArgument(f"{missing} is required"))

        if not matches_parent(destination):
            inc_counter("router_validate_not_applicable")
            log_event(log, "route_not_applicable", level=logging.DEBUG, destination=str(destination))
            return NotApplicable(destination=destination, message=message)

        price = self.price_calculator.price(message)

        try:
            wrapped = self.version_wrapper.wrap(destination, message)
        except Unsupported as e:
            inc_counter("router_validate_failed")
            log_event(log, "route_unsupported", destination=str(destination), reason=e.reason)
            return Failed(DestinationUnsupported(e.reason))

        try:
            ticket = Ticket(encode_versioned(wrapped))
        except WireEncodeError as e:
            inc_counter("router_validate_failed")
            log_event(log, "route_unsupported", destination=str(destination), reason=str(e), code=e.code)
            return Failed(DestinationUnsupported(f"message cannot be encoded: {e}"))

        inc_counter("router_validate_handled")
        log_event(
            log,
            "route_validated",
            version=wrapped.version,
            instructions=len(message),
            ticket_bytes=len(ticket),
            price=price.to_json(),
        )
        return Handled(ticket=ticket, price=price)

    def deliver(self, ticket: Ticket) -> Fingerprint:
        fp = fingerprint_of(ticket.data)

        try:
            self.sender.send(ticket.data)
        except MessageTooBig as e:
            inc_counter("router_deliver_failed")
            log_event(log, "route_delivery_failed", fingerprint=fp.hex(), code=ExceedsMaxMessageSize.code)
            raise ExceedsMaxMessageSize(str(e)) from e
        except TransportError as e:
            inc_counter("router_deliver_failed")
            log_event(log, "route_delivery_failed", fingerprint=fp.hex(), code=TransportFailed.code, detail=str(e.detail))
            raise TransportFailed(e.detail) from e
        except Exception as e:
            inc_counter("router_deliver_failed")
            log_event(log, "route_delivery_failed", fingerprint=fp.hex(), code=TransportFailed.code, detail=repr(e))
            raise TransportFailed(e) from e

        inc_counter("router_deliver_ok")
        log_event(log, "route_delivered", fingerprint=fp.hex(), ticket_bytes=len(ticket))
        return fp


def send_message(router: ParentRouter, destination: Destination, message: Message) -> Tuple[Fingerprint, Price]:
    """validate() then deliver(); any outcome other than Handled raises its RouterError."""
    ticket, price = router.validate(destination, message).unwrap()
    return router.deliver(ticket), price
