# src/upward_router/messages.py
from __future__ import annotations

import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

JsonScalar = Union[str, int, float, bool, None]
JsonValue = Union[JsonScalar, Dict[str, Any], List[Any]]
JsonObject = Dict[str, JsonValue]

AssetId = str

SUPPORTED_VERSIONS: Tuple[int, ...] = (2, 3, 4)
LATEST_VERSION = SUPPORTED_VERSIONS[-1]
OLDEST_VERSION = SUPPORTED_VERSIONS[0]


# ----------------------------
# Instruction registry
# ----------------------------

_V2_OPS = (
    "withdraw_asset",
    "reserve_asset_deposited",
    "receive_teleported_asset",
    "query_response",
    "transfer_asset",
    "transfer_reserve_asset",
    "transact",
    "hrmp_new_channel_open_request",
    "hrmp_channel_accepted",
    "hrmp_channel_closing",
    "clear_origin",
    "descend_origin",
    "report_error",
    "deposit_asset",
    "deposit_reserve_asset",
    "exchange_asset",
    "initiate_reserve_withdraw",
    "initiate_teleport",
    "query_holding",
    "buy_execution",
    "refund_surplus",
    "set_error_handler",
    "set_appendix",
    "clear_error",
    "claim_asset",
    "trap",
    "subscribe_version",
    "unsubscribe_version",
)

_V3_OPS = (
    "burn_asset",
    "expect_asset",
    "expect_origin",
    "expect_error",
    "expect_transact_status",
    "query_pallet",
    "expect_pallet",
    "report_transact_status",
    "clear_transact_status",
    "universal_origin",
    "export_message",
    "lock_asset",
    "unlock_asset",
    "note_unlockable",
    "request_unlock",
    "set_fees_mode",
    "set_topic",
    "clear_topic",
    "alias_origin",
    "unpaid_execution",
)

# Minimum message version able to carry each known op. v4 changed asset
# representation only, so it adds no ops of its own.
OP_MIN_VERSION: Dict[str, int] = {
    **{op: 2 for op in _V2_OPS},
    **{op: 3 for op in _V3_OPS},
}


def op_min_version(op: str) -> int:
    """Unknown ops are only representable in the latest version."""
    return OP_MIN_VERSION.get(op, LATEST_VERSION)


@dataclass(frozen=True, slots=True)
class Instruction:
    op: str
    params: Mapping[str, JsonValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.op, str) or not self.op.strip():
            raise ValueError("instruction op must be a non-empty string")
        if not isinstance(self.params, Mapping):
            raise ValueError("instruction params must be an object")
        try:
            canon = json.dumps(dict(self.params), sort_keys=True, separators=(",", ":"), ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise ValueError(f"instruction params must be JSON-encodable: {e}") from e
        # Private copy; later changes to the caller's dict cannot reach it.
        object.__setattr__(self, "params", MappingProxyType(json.loads(canon)))

    def __hash__(self) -> int:
        return hash((self.op, json.dumps(dict(self.params), sort_keys=True, separators=(",", ":"))))


@dataclass(frozen=True, slots=True)
class Message:
    """Version-agnostic instruction sequence. The router never inspects it."""

    instructions: Tuple[Instruction, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not isinstance(self.instructions, tuple):
            object.__setattr__(self, "instructions", tuple(self.instructions))

    def __len__(self) -> int:
        return len(self.instructions)

    def min_version(self) -> int:
        if not self.instructions:
            return OLDEST_VERSION
        return max(op_min_version(i.op) for i in self.instructions)

    def to_json(self) -> List[JsonObject]:
        return [{"op": i.op, "params": json.loads(json.dumps(dict(i.params)))} for i in self.instructions]

    @classmethod
    def from_json(cls, raw: Any) -> "Message":
        if not isinstance(raw, list):
            raise ValueError("message must be a list of instructions")
        out: List[Instruction] = []
        for item in raw:
            if not isinstance(item, dict):
                raise ValueError("instruction must be an object")
            out.append(Instruction(op=item.get("op"), params=item.get("params") or {}))
        return cls(instructions=tuple(out))


@dataclass(frozen=True, slots=True)
class VersionedMessage:
    version: int
    message: Message


# ----------------------------
# Price
# ----------------------------

@dataclass(frozen=True, slots=True)
class AssetAmount:
    asset_id: AssetId
    amount: int

    def __post_init__(self) -> None:
        if not isinstance(self.asset_id, str) or not self.asset_id.strip():
            raise ValueError("asset_id must be a non-empty string")
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise ValueError("amount must be an int")
        if self.amount < 0:
            raise ValueError(f"amount must be >= 0; got: {self.amount}")


def _normalize(assets: Iterable[AssetAmount]) -> Tuple[AssetAmount, ...]:
    totals: Dict[AssetId, int] = {}
    for a in assets:
        totals[a.asset_id] = totals.get(a.asset_id, 0) + a.amount
    return tuple(AssetAmount(k, v) for k, v in sorted(totals.items()) if v > 0)


@dataclass(frozen=True, slots=True)
class Price:
    """
    Unordered bag of (asset, amount) pairs.

    Stored normalized: sorted by asset id, equal ids merged, zero amounts
    dropped. Two prices holding the same bag therefore compare equal.
    """

    assets: Tuple[AssetAmount, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "assets", _normalize(self.assets))

    @classmethod
    def empty(cls) -> "Price":
        return cls()

    @classmethod
    def of(cls, pairs: Optional[Dict[AssetId, int]] = None, **kw: int) -> "Price":
        merged = dict(pairs or {})
        merged.update(kw)
        return cls(assets=tuple(AssetAmount(k, int(v)) for k, v in merged.items()))

    def is_empty(self) -> bool:
        return not self.assets

    def amount_of(self, asset_id: AssetId) -> int:
        for a in self.assets:
            if a.asset_id == asset_id:
                return a.amount
        return 0

    def to_json(self) -> Dict[AssetId, int]:
        return {a.asset_id: a.amount for a in self.assets}

    def __len__(self) -> int:
        return len(self.assets)
