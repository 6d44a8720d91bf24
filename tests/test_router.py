from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from typing import List

import pytest

from upward_router import metrics
from upward_router.codec import decode_versioned, encode_versioned
from upward_router.errors import (
    DestinationUnsupported,
    ExceedsMaxMessageSize,
    MissingArgument,
    NotApplicableError,
    RouterError,
    TransportFailed,
)
from upward_router.location import Destination, Junction, JunctionKind, parachain
from upward_router.messages import LATEST_VERSION, Instruction, Message, Price, VersionedMessage
from upward_router.pricing import ConstantPrice, ZeroPrice
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
from upward_router.transport import InMemoryUpwardSender, MessageTooBig, TransportError
from upward_router.versioning import AlwaysVersion, Unsupported


MSG = Message((Instruction("withdraw_asset", {"DOT": 10}), Instruction("clear_origin")))


class IdentityWrapper:
    def wrap(self, destination: Destination, message: Message) -> VersionedMessage:
        return VersionedMessage(LATEST_VERSION, message)


class RefusingWrapper:
    def __init__(self) -> None:
        self.calls = 0

    def wrap(self, destination: Destination, message: Message) -> VersionedMessage:
        self.calls += 1
        raise Unsupported("peer speaks nothing we know")


@dataclass
class RecordingSender:
    sent: List[bytes] = field(default_factory=list)

    def send(self, payload: bytes) -> None:
        self.sent.append(payload)


@dataclass
class FailingSender:
    error: Exception

    def send(self, payload: bytes) -> None:
        raise self.error


def _router(**kw) -> ParentRouter:
    kw.setdefault("sender", RecordingSender())
    kw.setdefault("price_calculator", ZeroPrice())
    kw.setdefault("version_wrapper", IdentityWrapper())
    return ParentRouter(**kw)


# ---------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------

def test_parent_destination_is_handled() -> None:
    sender = RecordingSender()
    router = _router(sender=sender)

    outcome = router.validate(Destination.parent(), MSG)
    assert isinstance(outcome, Handled)

    ticket, price = outcome.unwrap()
    assert ticket.data == encode_versioned(VersionedMessage(LATEST_VERSION, MSG))
    assert price == Price.empty()
    assert decode_versioned(ticket.data).message == MSG

    # validate stages only; nothing reaches the transport yet
    assert sender.sent == []

    fp = router.deliver(ticket)
    assert fp.digest == hashlib.blake2b(ticket.data, digest_size=32).digest()
    assert sender.sent == [ticket.data]


def test_wrapper_failure_is_destination_unsupported() -> None:
    outcome = _router(version_wrapper=RefusingWrapper()).validate(Destination.parent(), MSG)
    assert isinstance(outcome, Failed)
    assert isinstance(outcome.error, DestinationUnsupported)
    assert outcome.error.code == "destination_unsupported"
    with pytest.raises(DestinationUnsupported):
        outcome.unwrap()


def test_real_wrapper_failure_is_destination_unsupported() -> None:
    m = Message((Instruction("expect_asset"),))
    outcome = _router(version_wrapper=AlwaysVersion(2)).validate(Destination.parent(), m)
    assert isinstance(outcome, Failed)
    assert isinstance(outcome.error, DestinationUnsupported)


@pytest.mark.parametrize(
    "dest",
    [
        Destination(parents=1, interior=(parachain(1000),)),
        Destination(parents=1, interior=(Junction(JunctionKind.ONLY_CHILD),)),
        Destination(parents=0),
        Destination(parents=2),
        Destination.child(parachain(2000)),
    ],
)
def test_non_parent_is_not_applicable_and_inputs_restored(dest: Destination) -> None:
    before = dest.to_json()
    wrapper = RefusingWrapper()
    outcome = _router(version_wrapper=wrapper).validate(dest, MSG)

    assert isinstance(outcome, NotApplicable)
    assert outcome.destination is dest
    assert outcome.destination.to_json() == before
    assert outcome.message is MSG
    # matcher rejected before any capability ran
    assert wrapper.calls == 0


def test_not_applicable_unwrap_raises() -> None:
    outcome = _router().validate(Destination.sibling(1000), MSG)
    with pytest.raises(NotApplicableError) as ei:
        outcome.unwrap()
    assert ei.value.code == "not_applicable"


def test_restored_message_can_be_offered_to_next_router() -> None:
    first = _router().validate(Destination.sibling(1000), MSG)
    assert isinstance(first, NotApplicable)
    second = _router().validate(Destination.parent(), first.message)
    assert isinstance(second, Handled)


def test_missing_destination() -> None:
    sender = RecordingSender()
    outcome = _router(sender=sender).validate(None, MSG)
    assert isinstance(outcome, Failed)
    assert isinstance(outcome.error, MissingArgument)
    assert "destination" in outcome.error.reason
    assert sender.sent == []


def test_missing_message() -> None:
    outcome = _router().validate(Destination.parent(), None)
    assert isinstance(outcome, Failed)
    assert isinstance(outcome.error, MissingArgument)
    assert "message" in outcome.error.reason


def test_constant_price_is_quoted() -> None:
    fixed = Price.of(DOT=1_000)
    _, price = _router(price_calculator=ConstantPrice(fixed)).validate(Destination.parent(), MSG).unwrap()
    assert price == fixed


def test_empty_message_is_handled() -> None:
    ticket, price = _router().validate(Destination.parent(), Message()).unwrap()
    assert price.is_empty()
    assert decode_versioned(ticket.data).message == Message()


# ---------------------------------------------------------------------
# deliver
# ---------------------------------------------------------------------

def test_transport_too_big_maps_to_exceeds_max_message_size() -> None:
    router = _router(sender=FailingSender(MessageTooBig(100, 10)))
    with pytest.raises(ExceedsMaxMessageSize) as ei:
        router.deliver(Ticket(b"x" * 100))
    assert ei.value.code == "exceeds_max_message_size"
    assert isinstance(ei.value.__cause__, MessageTooBig)


def test_other_transport_failure_preserves_detail() -> None:
    detail = {"reason": "channel closed", "errno": 32}
    router = _router(sender=FailingSender(TransportError(detail)))
    with pytest.raises(TransportFailed) as ei:
        router.deliver(Ticket(b"abc"))
    assert ei.value.detail is detail
    assert ei.value.code == "transport"
    assert isinstance(ei.value, RouterError)


def test_in_memory_sender_limit_surfaces_at_deliver() -> None:
    sender = InMemoryUpwardSender(max_message_bytes=16)
    router = _router(sender=sender)
    ticket, _ = router.validate(Destination.parent(), MSG).unwrap()
    assert len(ticket) > 16
    with pytest.raises(ExceedsMaxMessageSize):
        router.deliver(ticket)
    assert sender.pending() == 0


def test_fingerprint_is_pure_function_of_bytes() -> None:
    a = fingerprint_of(b"ticket-bytes")
    b = fingerprint_of(bytearray(b"ticket-bytes"))
    assert a == b
    assert len(a.digest) == 32
    assert fingerprint_of(b"ticket-bytes!") != a


def test_deliver_twice_same_fingerprint_but_two_sends() -> None:
    sender = RecordingSender()
    router = _router(sender=sender)
    ticket = Ticket(b"payload")
    assert router.deliver(ticket) == router.deliver(ticket)
    assert len(sender.sent) == 2


def test_fingerprint_size_enforced() -> None:
    with pytest.raises(ValueError):
        Fingerprint(b"short")


def test_ticket_value_semantics() -> None:
    assert Ticket(bytearray(b"ab")) == Ticket(b"ab")
    with pytest.raises(TypeError):
        Ticket("ab")  # type: ignore[arg-type]


# ---------------------------------------------------------------------
# send_message / observability
# ---------------------------------------------------------------------

def test_send_message_round() -> None:
    sender = RecordingSender()
    router = _router(sender=sender, price_calculator=ConstantPrice(Price.of(DOT=3)))
    fp, price = send_message(router, Destination.parent(), MSG)
    assert price.to_json() == {"DOT": 3}
    assert fp == fingerprint_of(sender.sent[0])


def test_send_message_raises_not_applicable() -> None:
    with pytest.raises(NotApplicableError):
        send_message(_router(), Destination.here(), MSG)


def test_counters() -> None:
    router = _router()
    router.validate(Destination.parent(), MSG)
    router.validate(Destination.here(), MSG)
    router.validate(None, MSG)
    router.deliver(Ticket(b"x"))

    snap = metrics.snapshot()
    assert set(snap) == {"ts_ms", "counters"}
    counters = metrics.snapshot()["counters"]
    assert counters["router_validate_handled"] == 1
    assert counters["router_validate_not_applicable"] == 1
    assert counters["router_validate_failed"] == 1
    assert counters["router_deliver_ok"] == 1
    assert metrics.get_counter("router_deliver_failed") == 0


def test_logs_jsonl_events(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="upward_router.router")
    router = _router()
    ticket, _ = router.validate(Destination.parent(), MSG).unwrap()
    router.deliver(ticket)
    router.validate(Destination.here(), MSG)

    text = caplog.text
    assert '"event":"route_validated"' in text
    assert '"event":"route_delivered"' in text
    assert '"event":"route_not_applicable"' in text


# ---------------------------------------------------------------------
# every call ends in a typed outcome
# ---------------------------------------------------------------------

class UnencodableWrapper:
    def wrap(self, destination: Destination, message: Message) -> VersionedMessage:
        return message  # type: ignore[return-value]


def test_bytes_params_rejected_before_routing() -> None:
    with pytest.raises(ValueError):
        Message((Instruction("transact", {"call": b"\x00\x01"}),))


def test_unencodable_wrap_result_is_failed_not_raised() -> None:
    sender = RecordingSender()
    outcome = _router(sender=sender, version_wrapper=UnencodableWrapper()).validate(Destination.parent(), MSG)
    assert isinstance(outcome, Failed)
    assert isinstance(outcome.error, DestinationUnsupported)
    assert sender.sent == []
    assert metrics.get_counter("router_validate_failed") == 1


@pytest.mark.parametrize(
    "error",
    [ConnectionResetError("peer reset"), OSError(32, "broken pipe"), RuntimeError("queue closed")],
)
def test_untyped_sender_failure_maps_to_transport(error: Exception) -> None:
    router = _router(sender=FailingSender(error))
    with pytest.raises(TransportFailed) as ei:
        router.deliver(Ticket(b"x"))
    assert ei.value.detail is error
    assert ei.value.__cause__ is error
    assert metrics.get_counter("router_deliver_failed") == 1
    assert metrics.get_counter("router_deliver_ok") == 0
