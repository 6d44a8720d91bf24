"""
Upward Router — routes outbound messages to the parent.

  - location: destinations and the parent matcher
  - messages: instructions, messages, prices, versioned messages
  - codec: deterministic ticket encoding
  - pricing: delivery price strategies
  - versioning: version negotiation strategies
  - transport: upward sender interface + in-memory sender
  - errors: router error taxonomy
  - router: ParentRouter (validate / deliver)
  - config: strategy selection and wiring
"""

from __future__ import annotations

from upward_router.errors import (
    DestinationUnsupported,
    ExceedsMaxMessageSize,
    MissingArgument,
    NotApplicableError,
    RouterError,
    TransportFailed,
)
from upward_router.location import Destination, Junction, JunctionKind, matches_parent
from upward_router.messages import AssetAmount, Instruction, Message, Price, VersionedMessage
from upward_router.pricing import ConstantPrice, PriceCalculator, ZeroPrice
from upward_router.router import (
    Failed,
    Fingerprint,
    Handled,
    NotApplicable,
    ParentRouter,
    Ticket,
    fingerprint_of,
    send_message,
)
from upward_router.transport import InMemoryUpwardSender, MessageTooBig, TransportError, TransportSender
from upward_router.versioning import AlwaysLatest, AlwaysVersion, Unsupported, VersionTable, VersionWrapper

__version__ = "0.1.0"

__all__ = [
    "AlwaysLatest",
    "AlwaysVersion",
    "AssetAmount",
    "ConstantPrice",
    "Destination",
    "DestinationUnsupported",
    "ExceedsMaxMessageSize",
    "Failed",
    "Fingerprint",
    "Handled",
    "InMemoryUpwardSender",
    "Instruction",
    "Junction",
    "JunctionKind",
    "Message",
    "MessageTooBig",
    "MissingArgument",
    "NotApplicable",
    "NotApplicableError",
    "ParentRouter",
    "Price",
    "PriceCalculator",
    "RouterError",
    "Ticket",
    "TransportError",
    "TransportFailed",
    "TransportSender",
    "Unsupported",
    "VersionTable",
    "VersionWrapper",
    "VersionedMessage",
    "ZeroPrice",
    "fingerprint_of",
    "matches_parent",
    "send_message",
]
