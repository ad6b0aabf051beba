from __future__ import annotations

import json
from decimal import Decimal

import pytest
from hexbytes import HexBytes
from web3.exceptions import ContractLogicError, TimeExhausted, Web3RPCError

from arisan_client.config import DEFAULTS, load_config
from arisan_client.errors import ErrorKind, FlowError, TransactionReverted, classify
from arisan_client.models import GroupStatus
from arisan_client.util import _json_dumps, from_raw_units, parse_display_amount, to_raw_units


@pytest.mark.parametrize("value", ["", "abc", "0", "-1", "NaN", "Infinity", None])
def test_parse_display_amount_rejects(value):
    with pytest.raises(ValueError):
        parse_display_amount(value)


def test_raw_unit_conversion():
    assert to_raw_units("50", 18) == 50 * 10**18
    assert to_raw_units(" 1.5 ", 6) == 1_500_000
    assert str(from_raw_units(50 * 10**18, 18)) == "50"
    assert str(from_raw_units(1_500_000, 6)) == "1.5"
    assert from_raw_units(0, 18) == 0

    with pytest.raises(ValueError):
        to_raw_units("0.1234567", 6)


def test_json_dumps_handles_chain_types():
    payload = {"hash": HexBytes(b"\x01\x02"), "fee": Decimal("1.5"), "status": GroupStatus.OPEN}

    assert json.loads(_json_dumps(payload)) == {"hash": "0x0102", "fee": "1.5", "status": "OPEN"}


@pytest.mark.parametrize(
    "exc, kind",
    [
        (FlowError(ErrorKind.FULL, "full"), ErrorKind.FULL),
        (TransactionReverted("0x01"), ErrorKind.TRANSACTION_REVERTED),
        (ContractLogicError("execution reverted"), ErrorKind.TRANSACTION_REVERTED),
        (ValueError({"code": 3, "message": "execution reverted: not owner"}), ErrorKind.TRANSACTION_REVERTED),
        (TimeExhausted("no receipt"), ErrorKind.NETWORK),
        (ConnectionError("reset"), ErrorKind.NETWORK),
        (Web3RPCError("header not found"), ErrorKind.NETWORK),
        (Web3RPCError("execution reverted: full"), ErrorKind.TRANSACTION_REVERTED),
        (ValueError({"code": -32000, "message": "nonce too low"}), ErrorKind.NETWORK),
        (KeyError("arisanAddress"), ErrorKind.UNEXPECTED),
        (TypeError("bad tuple"), ErrorKind.UNEXPECTED),
    ],
)
def test_classify(exc, kind):
    assert classify(exc) == kind


def test_load_config_merges_defaults(tmp_path, monkeypatch):
    monkeypatch.setenv("ARISAN_PRIVATE_KEY", "0x" + "11" * 32)
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"list_timeout": 3, "intervals": {"balance": 1}}))

    cfg = load_config(str(path))

    assert cfg["list_timeout"] == 3
    assert cfg["intervals"] == {**DEFAULTS["intervals"], "balance": 1}
    assert cfg["factory_address"] == DEFAULTS["factory_address"]
    assert cfg["private_key"] == "0x" + "11" * 32


def test_load_config_without_file(monkeypatch):
    monkeypatch.delenv("ARISAN_PRIVATE_KEY", raising=False)

    cfg = load_config("does-not-exist.json")

    assert cfg["chain_id"] == 4202
    assert cfg["private_key"] is None
