from __future__ import annotations

import hashlib
import json
from pathlib import Path

import pytest

import upward_router.__main__ as cli


@pytest.fixture(autouse=True)
def _quiet(monkeypatch) -> None:
    monkeypatch.setattr(cli, "configure_logging", lambda *a, **k: None)
    monkeypatch.setattr(cli, "load_dotenv_if_present", lambda *a, **k: False)
    monkeypatch.delenv("UPWARD_ROUTER_CONFIG_PATH", raising=False)


def _write_msg(tmp_path: Path, instructions) -> str:
    p = tmp_path / "msg.json"
    p.write_text(json.dumps(instructions), encoding="utf-8")
    return str(p)


def _out(capsys) -> dict:
    return json.loads(capsys.readouterr().out.strip().splitlines()[-1])


def test_quote_handled(tmp_path: Path, capsys) -> None:
    msg = _write_msg(tmp_path, [{"op": "clear_origin"}])
    assert cli.main(["quote", "--message", msg]) == cli.EXIT_OK

    out = _out(capsys)
    assert out["outcome"] == "handled"
    assert out["price"] == {}
    ticket = bytes.fromhex(out["ticket_hex"])
    assert out["fingerprint"] == hashlib.blake2b(ticket, digest_size=32).hexdigest()


def test_quote_not_applicable(tmp_path: Path, capsys) -> None:
    msg = _write_msg(tmp_path, [])
    dest = json.dumps({"parents": 1, "interior": [{"kind": "PARACHAIN", "value": 1000}]})
    assert cli.main(["quote", "--message", msg, "--destination", dest]) == cli.EXIT_NOT_APPLICABLE
    assert _out(capsys)["outcome"] == "not_applicable"


def test_quote_with_config_price_and_too_big(tmp_path: Path, capsys) -> None:
    cfg = tmp_path / "router.json"
    cfg.write_text(json.dumps({"price_mode": "constant", "constant_price": {"KSM": 7}, "max_message_bytes": 8}))
    msg = _write_msg(tmp_path, [{"op": "transact", "params": {"call": "0x0102"}}])

    assert cli.main(["quote", "--message", msg, "--config", str(cfg)]) == cli.EXIT_ERROR
    out = _out(capsys)
    assert out["code"] == "exceeds_max_message_size"
    assert out["price"] == {"KSM": 7}


def test_quote_unsupported(tmp_path: Path, capsys) -> None:
    cfg = tmp_path / "router.json"
    cfg.write_text(json.dumps({"version_mode": "fixed", "fixed_version": 2}))
    msg = _write_msg(tmp_path, [{"op": "unpaid_execution"}])

    assert cli.main(["quote", "--message", msg, "--config", str(cfg)]) == cli.EXIT_ERROR
    assert _out(capsys)["code"] == "destination_unsupported"


def test_quote_bad_input(tmp_path: Path, capsys) -> None:
    p = tmp_path / "msg.json"
    p.write_text("{not json", encoding="utf-8")
    assert cli.main(["quote", "--message", str(p)]) == cli.EXIT_ERROR
    assert _out(capsys)["code"] == "invalid_input"


def test_quote_bad_config(tmp_path: Path, capsys) -> None:
    cfg = tmp_path / "router.json"
    cfg.write_text(json.dumps({"price_mode": "surge"}))
    msg = _write_msg(tmp_path, [])
    assert cli.main(["quote", "--message", msg, "--config", str(cfg)]) == cli.EXIT_ERROR
    assert _out(capsys)["code"] == "invalid_config"


def test_quote_malformed_yaml_config(tmp_path: Path, capsys) -> None:
    cfg = tmp_path / "router.yaml"
    cfg.write_text("price_mode: [unclosed\n", encoding="utf-8")
    msg = _write_msg(tmp_path, [])
    assert cli.main(["quote", "--message", msg, "--config", str(cfg)]) == cli.EXIT_ERROR
    assert _out(capsys)["code"] == "invalid_config"
