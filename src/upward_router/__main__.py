# src/upward_router/__main__.py
"""
Dry-run a message through the router.

  python -m upward_router quote --message msg.json [--destination '{"parents": 1}'] [--config router.yaml]

Delivery goes to an in-memory sender, so nothing leaves the process.
Exit codes: 0 handled, 2 not applicable, 1 any error.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from upward_router.codec import WireDecodeError, loads_json
from upward_router.config import build_router, load_router_config
from upward_router.env import load_dotenv_if_present
from upward_router.errors import RouterError
from upward_router.location import Destination
from upward_router.messages import Message
from upward_router.net_logging import configure_logging
from upward_router.router import Failed, NotApplicable

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NOT_APPLICABLE = 2


def _emit(obj: dict) -> None:
    print(json.dumps(obj, sort_keys=True))


def _quote(args: argparse.Namespace) -> int:
    try:
        cfg = load_router_config(config_path=args.config)
    except (OSError, ValueError) as e:
        _emit({"outcome": "error", "code": "invalid_config", "reason": str(e)})
        return EXIT_ERROR

    configure_logging(cfg.log_level)

    try:
        message = Message.from_json(loads_json(Path(args.message).read_bytes()))
        destination = Destination.from_json(loads_json(args.destination))
    except (OSError, ValueError, WireDecodeError) as e:
        _emit({"outcome": "error", "code": "invalid_input", "reason": str(e)})
        return EXIT_ERROR

    router = build_router(cfg)
    outcome = router.validate(destination, message)

    if isinstance(outcome, NotApplicable):
        _emit({"outcome": "not_applicable", "destination": destination.to_json()})
        return EXIT_NOT_APPLICABLE

    if isinstance(outcome, Failed):
        _emit({"outcome": "error", "code": outcome.error.code, "reason": outcome.error.reason})
        return EXIT_ERROR

    ticket, price = outcome.unwrap()
    try:
        fp = router.deliver(ticket)
    except RouterError as e:
        _emit({"outcome": "error", "code": e.code, "reason": e.reason, "price": price.to_json()})
        return EXIT_ERROR

    _emit(
        {
            "outcome": "handled",
            "price": price.to_json(),
            "ticket_hex": ticket.data.hex(),
            "fingerprint": fp.hex(),
        }
    )
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    # Load .env early so UPWARD_ROUTER_* vars exist before config is read.
    load_dotenv_if_present()

    ap = argparse.ArgumentParser(prog="upward_router")
    sub = ap.add_subparsers(dest="command", required=True)

    q = sub.add_parser("quote", help="Validate and dry-run deliver a message")
    q.add_argument("--message", required=True, help="Path to a JSON list of instructions")
    q.add_argument("--destination", default='{"parents": 1}', help="Destination as JSON")
    q.add_argument("--config", default=None, help="Router config (JSON or YAML)")

    args = ap.parse_args(argv)
    if args.command == "quote":
        return _quote(args)
    return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
