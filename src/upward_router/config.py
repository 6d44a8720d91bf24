# src/upward_router/config.py
"""Router wiring config.

Selects the concrete price and version strategies for a ParentRouter.

File format is JSON, or YAML when the path ends in .yaml/.yml:

    {
      "price_mode": "constant",
      "constant_price": {"DOT": 1000},
      "version_mode": "table",
      "safe_version": 3,
      "version_table": [{"destination": {"parents": 1}, "version": 4}],
      "max_message_bytes": 65531,
      "log_level": "INFO"
    }

Shape is checked by strict pydantic models (unknown keys rejected); values are
then checked by validate_router_config().
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from upward_router.location import Destination
from upward_router.messages import SUPPORTED_VERSIONS, Price
from upward_router.net_logging import log_event
from upward_router.pricing import ConstantPrice, PriceCalculator, ZeroPrice
from upward_router.router import ParentRouter
from upward_router.transport import DEFAULT_MAX_MESSAGE_BYTES, InMemoryUpwardSender, TransportSender
from upward_router.versioning import AlwaysLatest, AlwaysVersion, VersionTable, VersionWrapper

_PRICE_MODES = {"zero", "constant"}
_VERSION_MODES = {"latest", "fixed", "table"}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


# ---------------------------------------------------------------------------
# File schema
# ---------------------------------------------------------------------------


class _StrictModel(BaseModel):
    """Strict model: reject unknown keys."""

    model_config = ConfigDict(extra="forbid")


class VersionEntryModel(_StrictModel):
    destination: Dict[str, Any]
    version: int


class RouterConfigFile(_StrictModel):
    price_mode: Literal["zero", "constant"] = "zero"
    constant_price: Dict[str, int] = Field(default_factory=dict)
    version_mode: Literal["latest", "fixed", "table"] = "latest"
    fixed_version: Optional[int] = None
    safe_version: Optional[int] = None
    version_table: List[VersionEntryModel] = Field(default_factory=list)
    max_message_bytes: int = DEFAULT_MAX_MESSAGE_BYTES
    log_level: str = "INFO"


# ---------------------------------------------------------------------------
# Runtime config
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RouterConfig:
    price_mode: str = "zero"  # "zero" | "constant"
    constant_price: Price = field(default_factory=Price.empty)

    version_mode: str = "latest"  # "latest" | "fixed" | "table"
    fixed_version: Optional[int] = None
    safe_version: Optional[int] = None
    version_table: Dict[Destination, int] = field(default_factory=dict)

    max_message_bytes: int = DEFAULT_MAX_MESSAGE_BYTES
    log_level: str = "INFO"


def default_router_config() -> RouterConfig:
    return RouterConfig()


def validate_router_config(cfg: RouterConfig) -> None:
    """Fail-fast validation. Raises ValueError on the first problem found."""

    if cfg.price_mode not in _PRICE_MODES:
        raise ValueError(f"price_mode must be one of {sorted(_PRICE_MODES)}; got: {cfg.price_mode!r}")

    if cfg.version_mode not in _VERSION_MODES:
        raise ValueError(f"version_mode must be one of {sorted(_VERSION_MODES)}; got: {cfg.version_mode!r}")

    if cfg.version_mode == "fixed" and cfg.fixed_version is None:
        raise ValueError("fixed_version is required when version_mode is 'fixed'")

    for name, v in (("fixed_version", cfg.fixed_version), ("safe_version", cfg.safe_version)):
        if v is not None and v not in SUPPORTED_VERSIONS:
            raise ValueError(f"{name} must be one of {SUPPORTED_VERSIONS}; got: {v}")

    for dest, v in cfg.version_table.items():
        if v not in SUPPORTED_VERSIONS:
            raise ValueError(f"version_table entry for {dest} must be one of {SUPPORTED_VERSIONS}; got: {v}")

    if int(cfg.max_message_bytes) <= 0:
        raise ValueError(f"max_message_bytes must be > 0; got: {cfg.max_message_bytes}")

    if str(cfg.log_level).upper() not in _LOG_LEVELS:
        raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}; got: {cfg.log_level!r}")


def router_config_from_dict(raw: Any) -> RouterConfig:
    if not isinstance(raw, dict):
        raise ValueError("router config must be an object")
    try:
        parsed = RouterConfigFile.model_validate(raw)
    except ValidationError as e:
        raise ValueError(f"invalid router config: {e}") from e

    table: Dict[Destination, int] = {}
    for entry in parsed.version_table:
        table[Destination.from_json(entry.destination)] = entry.version

    cfg = RouterConfig(
        price_mode=parsed.price_mode,
        constant_price=Price.of(parsed.constant_price),
        version_mode=parsed.version_mode,
        fixed_version=parsed.fixed_version,
        safe_version=parsed.safe_version,
        version_table=table,
        max_message_bytes=parsed.max_message_bytes,
        log_level=parsed.log_level.strip().upper(),
    )
    validate_router_config(cfg)
    return cfg


def read_router_config_file(path: str) -> RouterConfig:
    p = Path(path)
    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in {".yaml", ".yml"}:
        try:
            raw = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ValueError(f"invalid yaml: {e}") from e
    else:
        raw = json.loads(text)
    return router_config_from_dict(raw if raw is not None else {})


def load_router_config(*, config_path: Optional[str] = None) -> RouterConfig:
    p = config_path or os.environ.get("UPWARD_ROUTER_CONFIG_PATH")
    if p:
        return read_router_config_file(p)

    cfg = default_router_config()
    level = os.environ.get("UPWARD_ROUTER_LOG_LEVEL")
    if level:
        cfg = RouterConfig(log_level=level.strip().upper())
    validate_router_config(cfg)
    return cfg


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def build_price_calculator(cfg: RouterConfig) -> PriceCalculator:
    if cfg.price_mode == "constant":
        return ConstantPrice(cfg.constant_price)
    return ZeroPrice()


def build_version_wrapper(cfg: RouterConfig) -> VersionWrapper:
    if cfg.version_mode == "fixed":
        return AlwaysVersion(int(cfg.fixed_version))  # type: ignore[arg-type]
    if cfg.version_mode == "table":
        return VersionTable(known=dict(cfg.version_table), safe_version=cfg.safe_version)
    return AlwaysLatest()


def build_router(cfg: RouterConfig, sender: Optional[TransportSender] = None) -> ParentRouter:
    validate_router_config(cfg)
    if sender is None:
        sender = InMemoryUpwardSender(max_message_bytes=cfg.max_message_bytes)
    log_event(
        logging.getLogger("upward_router.config"),
        "router_wired",
        level=logging.DEBUG,
        price_mode=cfg.price_mode,
        version_mode=cfg.version_mode,
    )
    return ParentRouter(
        sender=sender,
        price_calculator=build_price_calculator(cfg),
        version_wrapper=build_version_wrapper(cfg),
    )
