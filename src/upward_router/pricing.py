# src/upward_router/pricing.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from upward_router.messages import Message, Price


@runtime_checkable
class PriceCalculator(Protocol):
    """Quote for delivering a message upward. Deterministic and total."""

    def price(self, message: Message) -> Price: ...


@dataclass(frozen=True, slots=True)
class ZeroPrice:
    """Free delivery."""

    def price(self, message: Message) -> Price:
        return Price.empty()


@dataclass(frozen=True, slots=True)
class ConstantPrice:
    """Same configured price for every message, regardless of content."""

    fixed: Price = field(default_factory=Price.empty)

    def price(self, message: Message) -> Price:
        return self.fixed
