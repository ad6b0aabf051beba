"""Merge on-chain group reads with the off-chain cache.

The chain is authoritative for fee, membership and balances; the cache only
contributes groups the chain listing has not picked up yet and the lifecycle
status label. The merged view is recomputed per call and never stored.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

from .models import CacheGroupRecord, EventRecord, EventType, Group, GroupStatus, Participant
from .util import _log, _same_addr, _to_checksum, from_raw_units

DEFAULT_MAX_PARTICIPANTS = 10


def _cache_fee(value: Optional[str]) -> Decimal:
    if not value:
        return Decimal(0)
    try:
        fee = Decimal(str(value))
    except InvalidOperation:
        return Decimal(0)
    return fee if fee.is_finite() else Decimal(0)


def synthesize_group(record: CacheGroupRecord, participants: Optional[List[Participant]] = None) -> Group:
    """Build a placeholder Group for a cache record the chain listing does not include yet."""
    try:
        address = _to_checksum(record.contract_address)
    except ValueError:
        address = record.contract_address
    return Group(
        address=address,
        name=record.name,
        description=record.description,
        entry_fee=_cache_fee(record.entry_fee),
        entry_fee_raw=0,
        cycle_period=record.duration or "Weekly",
        max_participants=record.max_participants or DEFAULT_MAX_PARTICIPANTS,
        current_cycle=1,
        status=record.status or GroupStatus.OPEN.value,
        pool_balance=Decimal(0),
        created_at=(record.created_at or "")[:10],
        participants=list(participants or []),
        indexed=False,
    )


def merge_groups(chain_groups: Iterable[Group], cache_records: Iterable[CacheGroupRecord]) -> List[Group]:
    merged: Dict[str, Group] = {}
    for group in chain_groups:
        merged[group.key] = group

    for record in cache_records:
        key = record.key
        existing = merged.get(key)
        if existing is None:
            merged[key] = synthesize_group(record)
            continue
        if record.status and record.status != existing.status:
            if existing.indexed:
                _log(f"Cache status {record.status} overrides chain status {existing.status} for {key}")
            merged[key] = existing.with_status(record.status)
    return list(merged.values())


def merge_user_groups(
    chain_groups: Iterable[Group],
    created: Iterable[CacheGroupRecord],
    participating: Iterable[CacheGroupRecord],
    wallet: str,
) -> List[Group]:
    """Groups the wallet belongs to: chain membership first, then cache-only entries it created or joined."""
    merged: Dict[str, Group] = {}
    for group in chain_groups:
        if group.has_participant(wallet):
            merged[group.key] = group

    me = [Participant(wallet_address=wallet)]
    for record in list(created) + list(participating):
        if record.key not in merged:
            merged[record.key] = synthesize_group(record, participants=me)
    return list(merged.values())


def can_pick_winner(group: Group) -> bool:
    """Whether a draw can be attempted.

    An empty pool only means nothing is left to pay out; it is not treated
    as proof that the rotation has finished.
    """
    return len(group.participants) > 0 and group.pool_balance > 0


def dashboard_stats(groups: Iterable[Group]) -> Dict[str, Any]:
    groups = list(groups)
    wallets = {p.wallet_address.lower() for g in groups for p in g.participants}
    return {
        "total_groups": len(groups),
        "total_volume": sum((g.pool_balance for g in groups), Decimal(0)),
        "total_users": len(wallets),
    }


def user_stats(history: Iterable[EventRecord], wallet: str, groups: Iterable[Group], decimals: int) -> Dict[str, Decimal]:
    history = list(history)
    deposited = sum(e.amount for e in history if e.type == EventType.JOINED and _same_addr(e.participant, wallet))
    won = sum(e.amount for e in history if e.type == EventType.WINNER and _same_addr(e.participant, wallet))
    return {
        "total_deposited": from_raw_units(deposited, decimals),
        "total_won": from_raw_units(won, decimals),
        "next_payment": sum((g.entry_fee for g in groups), Decimal(0)),
    }
