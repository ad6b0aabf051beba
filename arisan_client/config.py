import os
from typing import Any, Dict, Optional

from . import abis
from .util import _load_json


DEFAULTS: Dict[str, Any] = {
    "rpc_http": abis.LISK_SEPOLIA_RPC,
    "chain_id": abis.LISK_SEPOLIA_CHAIN_ID,
    "factory_address": abis.FACTORY_ADDRESS,
    "token_address": abis.USDT_ADDRESS,
    "currency": "USDT",
    "db_path": "./arisan_cache.db",
    "start_block": 0,
    "batch_size": 0,
    "list_timeout": 15.0,
    "read_retries": 2,
    "retry_delay": 0.5,
    "receipt_timeout": 180,
    "intervals": {
        "balance": 10,
        "pending_prize": 10,
        "history": 15,
        "cache_sync": 5,
    },
    "private_key": None,
}


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    cfg: Dict[str, Any] = {}
    if path and os.path.exists(path):
        cfg = _load_json(path)
    merged = dict(DEFAULTS)
    merged.update(cfg)
    merged["intervals"] = {**DEFAULTS["intervals"], **(cfg.get("intervals") or {})}
    if not merged.get("private_key"):
        merged["private_key"] = os.environ.get("ARISAN_PRIVATE_KEY")
    return merged
