import dataclasses
import enum
import json
import sys
import time
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from hexbytes import HexBytes
from web3 import Web3


ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def _log(msg: str) -> None:
    ts = time.strftime("%Y-%m-%d %H:%M:%S", time.gmtime())
    sys.stderr.write(f"[{ts} UTC] {msg}\n")
    sys.stderr.flush()


def _json_default(obj: Any) -> Any:
    if isinstance(obj, HexBytes):
        return "0x" + bytes(obj).hex()
    if isinstance(obj, (bytes, bytearray)):
        return "0x" + obj.hex()
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, enum.Enum):
        return obj.value
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if isinstance(obj, set):
        return list(obj)
    return str(obj)


def _json_dumps(obj: Any) -> str:
    return json.dumps(obj, default=_json_default, ensure_ascii=True)


def _load_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _to_checksum(addr: str) -> str:
    return Web3.to_checksum_address(addr)


def _db_addr(addr: str) -> str:
    return addr.lower()


def _same_addr(a: Optional[str], b: Optional[str]) -> bool:
    if not a or not b:
        return False
    return a.lower() == b.lower()


def _parse_int(value: Any) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        if value.startswith("0x"):
            return int(value, 16)
        return int(value)
    return int(value)


def _hex(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    text = str(value)
    return text if text.startswith("0x") else "0x" + text


def _normalize_log(log: Dict[str, Any]) -> Dict[str, Any]:
    """Coerce a raw log (JSON-RPC strings or web3 objects) into the shape web3's decoder expects."""
    out = dict(log)
    for key in ("transactionHash", "blockHash"):
        if isinstance(out.get(key), str):
            out[key] = HexBytes(out[key])
    if isinstance(out.get("data"), str):
        out["data"] = HexBytes(out["data"])
    if isinstance(out.get("topics"), (list, tuple)):
        out["topics"] = [HexBytes(t) for t in out["topics"]]
    for key in ("blockNumber", "transactionIndex", "logIndex"):
        if key in out and out[key] is not None:
            out[key] = _parse_int(out[key])
    if "address" in out and isinstance(out["address"], str):
        out["address"] = _to_checksum(out["address"])
    return out


def _address_topic(addr: str) -> str:
    """Left-pad an address to a 32-byte indexed topic."""
    return "0x" + "0" * 24 + addr.lower().replace("0x", "")


def parse_display_amount(value: Any) -> Decimal:
    """Parse a user-entered amount, raising ValueError unless it is a finite positive number."""
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f"not a number: {value!r}") from None
    if not amount.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    if amount <= 0:
        raise ValueError(f"amount must be greater than zero: {value!r}")
    return amount


def to_raw_units(value: Any, decimals: int) -> int:
    amount = parse_display_amount(value)
    scaled = amount.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"{value!r} has more than {decimals} fractional digits")
    return int(scaled)


def from_raw_units(raw: int, decimals: int) -> Decimal:
    amount = Decimal(int(raw or 0)).scaleb(-decimals)
    if amount == amount.to_integral_value():
        return amount.quantize(Decimal(1))
    return amount.normalize()
