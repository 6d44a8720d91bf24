# src/upward_router/location.py
"""
Destinations: relative addresses of the form (parents, interior junctions).

  - parents: how many hops up toward the parent boundary
  - interior: ordered path segments below that point

Only a destination of exactly one parent with an empty interior is handled by
the upward router (see matches_parent()).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

Json = Dict[str, Any]
JunctionValue = Union[int, str, None]

MAX_INTERIOR_JUNCTIONS = 8


class JunctionKind(str, Enum):
    PARACHAIN = "PARACHAIN"
    ACCOUNT_ID32 = "ACCOUNT_ID32"
    ACCOUNT_KEY20 = "ACCOUNT_KEY20"
    PALLET_INSTANCE = "PALLET_INSTANCE"
    GENERAL_INDEX = "GENERAL_INDEX"
    GENERAL_KEY = "GENERAL_KEY"
    ONLY_CHILD = "ONLY_CHILD"
    PLURALITY = "PLURALITY"
    GLOBAL_CONSENSUS = "GLOBAL_CONSENSUS"


# Kinds that carry no value.
_UNIT_KINDS = {JunctionKind.ONLY_CHILD}


@dataclass(frozen=True, slots=True)
class Junction:
    kind: JunctionKind
    value: JunctionValue = None

    def __post_init__(self) -> None:
        if not isinstance(self.kind, JunctionKind):
            object.__setattr__(self, "kind", JunctionKind(self.kind))
        if self.kind in _UNIT_KINDS:
            if self.value is not None:
                raise ValueError(f"{self.kind.value} junction takes no value")
            return
        if self.value is None:
            raise ValueError(f"{self.kind.value} junction requires a value")
        if isinstance(self.value, bool) or not isinstance(self.value, (int, str)):
            raise ValueError(f"{self.kind.value} junction value must be int or str")
        if isinstance(self.value, int) and self.value < 0:
            raise ValueError(f"{self.kind.value} junction value must be non-negative")

    def to_json(self) -> Json:
        return {"kind": self.kind.value, "value": self.value}

    @classmethod
    def from_json(cls, raw: Any) -> "Junction":
        if not isinstance(raw, dict):
            raise ValueError("junction must be an object")
        try:
            kind = JunctionKind(raw.get("kind"))
        except ValueError as e:
            raise ValueError(f"unknown junction kind: {raw.get('kind')!r}") from e
        return cls(kind=kind, value=raw.get("value"))


def parachain(para_id: int) -> Junction:
    return Junction(JunctionKind.PARACHAIN, int(para_id))


@dataclass(frozen=True, slots=True)
class Destination:
    """A relative location: `parents` hops up, then `interior` down."""

    parents: int = 0
    interior: Tuple[Junction, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if isinstance(self.parents, bool) or not isinstance(self.parents, int):
            raise ValueError("parents must be an int")
        if self.parents < 0:
            raise ValueError(f"parents must be >= 0; got: {self.parents}")
        if not isinstance(self.interior, tuple):
            object.__setattr__(self, "interior", tuple(self.interior))
        if len(self.interior) > MAX_INTERIOR_JUNCTIONS:
            raise ValueError(f"at most {MAX_INTERIOR_JUNCTIONS} interior junctions allowed")
        for j in self.interior:
            if not isinstance(j, Junction):
                raise ValueError("interior entries must be Junction")

    # -------------------------
    # constructors
    # -------------------------

    @classmethod
    def here(cls) -> "Destination":
        return cls(parents=0)

    @classmethod
    def parent(cls) -> "Destination":
        return cls(parents=1)

    @classmethod
    def child(cls, *junctions: Junction) -> "Destination":
        return cls(parents=0, interior=tuple(junctions))

    @classmethod
    def sibling(cls, para_id: int, *junctions: Junction) -> "Destination":
        return cls(parents=1, interior=(parachain(para_id),) + tuple(junctions))

    # -------------------------
    # queries
    # -------------------------

    def contains_parents_only(self, count: int) -> bool:
        return self.parents == count and not self.interior

    def to_json(self) -> Json:
        return {"parents": self.parents, "interior": [j.to_json() for j in self.interior]}

    @classmethod
    def from_json(cls, raw: Any) -> "Destination":
        if not isinstance(raw, dict):
            raise ValueError("destination must be an object")
        parents = raw.get("parents", 0)
        interior_raw = raw.get("interior") or []
        if not isinstance(interior_raw, list):
            raise ValueError("destination interior must be a list")
        return cls(parents=parents, interior=tuple(Junction.from_json(j) for j in interior_raw))

    def __str__(self) -> str:
        if not self.interior:
            return "../" * self.parents or "here"
        tail = "/".join(
            j.kind.value.lower() if j.value is None else f"{j.kind.value.lower()}:{j.value}" for j in self.interior
        )
        return "../" * self.parents + tail


def matches_parent(destination: Optional[Destination]) -> bool:
    """True iff `destination` is exactly one hop up with nothing below it."""
    if destination is None:
        return False
    return destination.contains_parents_only(1)
