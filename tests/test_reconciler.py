from __future__ import annotations

from decimal import Decimal

from arisan_client.models import CacheGroupRecord, EventRecord, EventType, Group, Participant
from arisan_client.reconciler import (
    can_pick_winner,
    dashboard_stats,
    merge_groups,
    merge_user_groups,
    synthesize_group,
    user_stats,
)
from arisan_client.util import _to_checksum
from tests.fakes import CALLER, GROUP, GROUP_B, OTHER, THIRD

MIXED = "0x" + "ab" * 20


def _chain_group(address=GROUP, participants=(CALLER,), fee=Decimal(50), status="OPEN"):
    members = [Participant(wallet_address=w) for w in participants]
    return Group(
        address=address,
        name="On-chain name",
        entry_fee=fee,
        entry_fee_raw=int(fee) * 10**18,
        max_participants=5,
        status=status,
        pool_balance=fee * len(members),
        participants=members,
    )


def test_merge_is_idempotent():
    chain = [_chain_group(), _chain_group(GROUP_B, participants=())]
    cache = [CacheGroupRecord(contract_address=GROUP, status="COMPLETED")]

    assert merge_groups(chain, cache) == merge_groups(chain, cache)


def test_cache_only_overrides_status():
    chain = [_chain_group(_to_checksum(MIXED))]
    cache = [
        CacheGroupRecord(
            contract_address=MIXED.lower(),
            name="Stale cache name",
            status="COMPLETED",
            entry_fee="999",
            max_participants=99,
        )
    ]

    merged = merge_groups(chain, cache)

    assert len(merged) == 1
    group = merged[0]
    assert group.status == "COMPLETED"
    assert group.name == "On-chain name"
    assert group.entry_fee == Decimal(50)
    assert group.max_participants == 5
    assert group.participants == chain[0].participants
    assert group.indexed


def test_cache_only_groups_are_synthesized():
    cache = [
        CacheGroupRecord(
            contract_address=GROUP_B,
            name="Fresh group",
            status="ACTIVE",
            entry_fee="25",
            duration="Monthly",
            created_at="2024-05-01T10:00:00+00:00",
        )
    ]

    merged = merge_groups([_chain_group()], cache)

    assert [g.key for g in merged] == [GROUP, GROUP_B]
    synthetic = merged[1]
    assert not synthetic.indexed
    assert synthetic.entry_fee == Decimal(25)
    assert synthetic.max_participants == 10
    assert synthetic.cycle_period == "Monthly"
    assert synthetic.created_at == "2024-05-01"
    assert synthetic.participants == []
    assert synthetic.pool_balance == 0


def test_synthesize_tolerates_bad_cache_fee():
    group = synthesize_group(CacheGroupRecord(contract_address=GROUP, entry_fee="abc"))

    assert group.entry_fee == Decimal(0)


def test_merged_groups_never_exceed_max_participants():
    chain = [_chain_group(participants=(CALLER, OTHER, THIRD))]
    cache = [CacheGroupRecord(contract_address=GROUP_B, max_participants=3)]

    for group in merge_groups(chain, cache):
        assert len(group.participants) <= group.max_participants


def test_user_groups_include_chain_membership_and_cache_entries():
    mine = _chain_group(GROUP, participants=(OTHER, "0x" + "AA" * 20))
    not_mine = _chain_group(GROUP_B, participants=(OTHER,))
    created = [CacheGroupRecord(contract_address=MIXED, name="Just created")]
    participating = [CacheGroupRecord(contract_address=MIXED, name="Just created")]

    merged = merge_user_groups([mine, not_mine], created, participating, CALLER)

    assert [g.key for g in merged] == [GROUP, MIXED]
    synthetic = merged[1]
    assert not synthetic.indexed
    assert [p.wallet_address for p in synthetic.participants] == [CALLER]


def test_can_pick_winner():
    assert can_pick_winner(_chain_group())
    assert not can_pick_winner(_chain_group(participants=()))
    assert not can_pick_winner(_chain_group(fee=Decimal(0)))


def test_dashboard_stats_counts_unique_wallets():
    groups = [
        _chain_group(GROUP, participants=(CALLER, OTHER)),
        _chain_group(GROUP_B, participants=(OTHER.upper().replace("0X", "0x"), THIRD)),
    ]

    stats = dashboard_stats(groups)

    assert stats == {"total_groups": 2, "total_volume": Decimal(200), "total_users": 3}


def test_user_stats_sums_wallet_events():
    history = [
        EventRecord(EventType.JOINED, CALLER, 50 * 10**18, 10, "0x01"),
        EventRecord(EventType.JOINED, OTHER, 50 * 10**18, 11, "0x02"),
        EventRecord(EventType.WINNER, CALLER, 100 * 10**18, 15, "0x03"),
        EventRecord(EventType.CLAIMED, CALLER, 100 * 10**18, 20, "0x04"),
    ]
    groups = [_chain_group(fee=Decimal(50)), _chain_group(GROUP_B, fee=Decimal("12.5"))]

    stats = user_stats(history, CALLER, groups, 18)

    assert stats["total_deposited"] == Decimal(50)
    assert stats["total_won"] == Decimal(100)
    assert stats["next_payment"] == Decimal("62.5")
