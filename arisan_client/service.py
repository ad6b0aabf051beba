import asyncio
from typing import Any, Dict, List, Optional

from .cache import CacheStore, default_avatar
from .decoder import EventDecoder
from .errors import ErrorKind
from .history import HistoryAggregator
from .models import EventRecord, Group, WinnerRecord
from .orchestrator import CreateGroupResult, FlowResult, TransactionOrchestrator, WinnerResult
from .reader import ChainReader
from .reconciler import dashboard_stats, merge_groups, merge_user_groups, user_stats
from .session import Session
from .signer import TransactionSender
from .util import _log
from .watcher import GroupWatcher


class ArisanService:
    """Ties chain flows to their cache mirrors for one session."""

    def __init__(
        self,
        config: Dict[str, Any],
        session: Session,
        reader: ChainReader,
        cache: CacheStore,
        sender: Optional[Any] = None,
        decoder: Optional[EventDecoder] = None,
    ):
        self.config = config
        self.session = session
        self.reader = reader
        self.cache = cache
        self.decoder = decoder or EventDecoder()
        self.history = HistoryAggregator(reader, self.decoder)
        self.orchestrator = (
            TransactionOrchestrator(reader, self.decoder, sender, cache) if sender is not None else None
        )

    @classmethod
    def from_config(cls, config: Dict[str, Any], session: Optional[Session] = None) -> "ArisanService":
        reader = ChainReader(config)
        cache = CacheStore(config.get("db_path", "./arisan_cache.db"))
        sender = None
        if config.get("private_key"):
            sender = TransactionSender.from_private_key(
                reader.w3, config["private_key"], config.get("receipt_timeout", 180)
            )
        if session is None:
            session = Session(address=sender.address if sender else None)
        return cls(config, session, reader, cache, sender=sender)

    @staticmethod
    def _no_signer(cls, flow: str):
        _log(f"{flow} rejected: no signing key configured")
        return cls(
            ok=False,
            kind=ErrorKind.VALIDATION,
            step="signer",
            message="a signing key (private_key or ARISAN_PRIVATE_KEY) is required for write operations",
        )

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------
    async def load_groups(self) -> List[Group]:
        chain_groups, cache_records = await asyncio.gather(
            self.reader.list_groups(),
            self.cache.all_groups(),
        )
        return merge_groups(chain_groups, cache_records)

    async def load_user_groups(self, wallet: Optional[str] = None) -> List[Group]:
        wallet = wallet or self.session.address
        if not wallet:
            return []
        chain_groups, created, participating = await asyncio.gather(
            self.reader.list_groups(),
            self.cache.groups_by_creator(wallet),
            self.cache.groups_by_participant(wallet),
        )
        return merge_user_groups(chain_groups, created, participating, wallet)

    async def group_history(self, group_address: str) -> List[EventRecord]:
        return await self.history.get_history(group_address)

    async def admin_overview(self) -> Dict[str, Any]:
        groups = await self.load_groups()
        overview = dashboard_stats(groups)
        overview.update(await self.cache.admin_stats())
        overview["recent_activity"] = await self.cache.recent_activity()
        return overview

    async def user_overview(self, group_address: str) -> Dict[str, Any]:
        wallet = self.session.address
        groups = await self.load_user_groups(wallet)
        history = await self.history.get_history(group_address)
        decimals = await self.reader.token_decimals()
        return user_stats(history, wallet, groups, decimals)

    async def ensure_user(self) -> bool:
        if not self.session.address:
            return False
        return await self.cache.upsert_user(self.session.address, avatar_url=default_avatar(self.session.address))

    def watcher(self, group_address: Optional[str] = None) -> GroupWatcher:
        return GroupWatcher(
            self.reader,
            self.history,
            self.cache,
            self.session.address,
            self.config.get("intervals", {}),
            group_address=group_address,
            admin=self.session.is_admin,
        )

    # ------------------------------------------------------------------
    # writes with cache mirroring
    # ------------------------------------------------------------------
    async def create_group(
        self, name: str, description: str, entry_fee: Any, max_participants: Any, cycle_period: str = "Weekly"
    ) -> CreateGroupResult:
        if self.orchestrator is None:
            return self._no_signer(CreateGroupResult, "createGroup")
        return await self.orchestrator.create_group(
            name, description, entry_fee, max_participants, cycle_period
        )

    async def join_group(self, group_address: str) -> FlowResult:
        orchestrator = self.orchestrator
        if orchestrator is None:
            return self._no_signer(FlowResult, "depositFunds")
        result = await orchestrator.deposit_funds(group_address)
        if result:
            await self.cache.upsert_participant(group_address, orchestrator.sender.address)
        return result

    async def pick_winner(self, group_address: str, cycle_number: Optional[int] = None) -> WinnerResult:
        orchestrator = self.orchestrator
        if orchestrator is None:
            return self._no_signer(WinnerResult, "pickWinner")
        if cycle_number is None:
            cycle_number = await self._current_cycle(group_address)
        result = await orchestrator.pick_winner(group_address)
        if result and result.winner:
            _log(f"Recording winner {result.winner} for {group_address}")
            await self.cache.insert_winner(
                WinnerRecord(
                    group_id=group_address,
                    winner_address=result.winner,
                    cycle_number=cycle_number,
                    prize_amount=str(result.prize),
                    tx_hash=result.tx_hash or "",
                )
            )
        return result

    async def claim_prize(self, group_address: str) -> FlowResult:
        if self.orchestrator is None:
            return self._no_signer(FlowResult, "claimPrize")
        return await self.orchestrator.claim_prize(group_address)

    async def _current_cycle(self, group_address: str) -> int:
        try:
            group = await self.reader.fetch_group(group_address)
        except Exception as exc:
            _log(f"WARN: could not read current cycle for {group_address}: {exc}")
            return 1
        return group.current_cycle
