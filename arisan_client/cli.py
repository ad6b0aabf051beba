#!/usr/bin/env python3
"""Arisan client command line.

Usage:
  arisan-client --config config.json groups
  arisan-client --config config.json history --group 0xGroup
  arisan-client --config config.json balance --wallet 0xWallet
  arisan-client --config config.json create --name "UMKM Jakarta" --fee 50 --max 10
  arisan-client --config config.json join --group 0xGroup
  arisan-client --config config.json pick-winner --group 0xGroup
  arisan-client --config config.json claim --group 0xGroup
  arisan-client --config config.json watch --group 0xGroup --seconds 60

Notes:
- Write commands sign locally with `private_key` from the config or ARISAN_PRIVATE_KEY.
- Every command prints one JSON document to stdout; diagnostics go to stderr.
"""

import argparse
import asyncio
from typing import Any, Dict

from .config import load_config
from .service import ArisanService
from .session import Role
from .util import _json_dumps, _log


def _result_dict(result: Any) -> Dict[str, Any]:
    out = {
        "ok": result.ok,
        "kind": result.kind.value if result.kind else None,
        "step": result.step,
        "message": result.message,
        "tx_hash": result.tx_hash,
    }
    for key in ("group_address", "winner", "prize", "prize_raw", "timestamp"):
        if hasattr(result, key):
            out[key] = getattr(result, key)
    return out


async def _run(args: argparse.Namespace, cfg: Dict[str, Any]) -> Any:
    service = ArisanService.from_config(cfg)
    if args.admin:
        service.session.role = Role.ADMIN
    try:
        if args.command == "groups":
            return await service.load_groups()
        if args.command == "history":
            return await service.group_history(args.group)
        if args.command == "balance":
            wallet = args.wallet or service.session.address
            if not wallet:
                raise SystemExit("--wallet is required without a private key")
            return {"wallet": wallet, "balance": await service.reader.token_balance_display(wallet)}
        if args.command == "create":
            result = await service.create_group(args.name, args.description, args.fee, args.max, args.period)
            return _result_dict(result)
        if args.command == "join":
            return _result_dict(await service.join_group(args.group))
        if args.command == "pick-winner":
            return _result_dict(await service.pick_winner(args.group))
        if args.command == "claim":
            return _result_dict(await service.claim_prize(args.group))
        if args.command == "watch":
            watcher = service.watcher(args.group)
            watcher.on_balance = lambda v: _log(f"balance: {v}")
            watcher.on_prize = lambda v: _log(f"pending prize: {v}")
            watcher.on_history = lambda v: _log(f"history: {len(v)} entries")
            watcher.on_cache_groups = lambda v: _log(f"cache groups: {_json_dumps(v)}")
            async with watcher:
                await asyncio.sleep(args.seconds)
            return {"watched": args.seconds}
    finally:
        service.cache.close()
    raise SystemExit(f"unknown command {args.command}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Arisan savings-circle client")
    parser.add_argument("--config", default="config.json", help="Path to config JSON")
    parser.add_argument("--admin", action="store_true", help="Act with the ADMIN role")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("groups", help="List groups (chain merged with cache)")

    history_parser = sub.add_parser("history", help="Transparency log for one group")
    history_parser.add_argument("--group", required=True)

    balance_parser = sub.add_parser("balance", help="Token balance of a wallet")
    balance_parser.add_argument("--wallet", default=None)

    create_parser = sub.add_parser("create", help="Deploy a new group through the factory")
    create_parser.add_argument("--name", required=True)
    create_parser.add_argument("--description", default="")
    create_parser.add_argument("--fee", required=True)
    create_parser.add_argument("--max", required=True)
    create_parser.add_argument("--period", default="Weekly")

    for name, help_text in (
        ("join", "Approve (if needed) and join a group"),
        ("pick-winner", "Draw this cycle's winner"),
        ("claim", "Withdraw a pending prize"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--group", required=True)

    watch_parser = sub.add_parser("watch", help="Poll balance, prize, history and cache")
    watch_parser.add_argument("--group", default=None)
    watch_parser.add_argument("--seconds", type=float, default=60.0)

    args = parser.parse_args()
    cfg = load_config(args.config)
    print(_json_dumps(asyncio.run(_run(args, cfg))))


if __name__ == "__main__":
    main()
