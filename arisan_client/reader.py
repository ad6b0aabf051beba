import asyncio
from decimal import Decimal
from typing import Any, Dict, List, Optional

from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import ContractLogicError

from . import abis
from .models import Group, Participant
from .util import _log, _to_checksum, from_raw_units


_RANGE_ERRORS = ("query returned more than", "too many", "block range")


def _range_too_large(message: str) -> bool:
    return any(marker in message for marker in _RANGE_ERRORS)


class ChainReader:
    """Read-only access to the factory, the group contracts and the payment token.

    Reads used by write flows go through `call`, which retries and then raises.
    Reads used by views (`list_groups`, `token_balance`, `pending_prize`, ...)
    never raise and fall back to an empty or zero value.
    """

    def __init__(self, config: Dict[str, Any], w3: Optional[Any] = None):
        self.config = config
        self.rpc_http = config.get("rpc_http")
        self.factory_address = _to_checksum(config.get("factory_address", abis.FACTORY_ADDRESS))
        self.token_address = _to_checksum(config.get("token_address", abis.USDT_ADDRESS))
        self.currency = config.get("currency", "USDT")
        self.list_timeout = float(config.get("list_timeout", 15.0))
        self.read_retries = int(config.get("read_retries", 2))
        self.retry_delay = float(config.get("retry_delay", 0.5))
        self.start_block = int(config.get("start_block", 0))
        # 0 or None: ask for the whole range and only split it when the node refuses
        self.batch_size = int(config.get("batch_size") or 0)

        if w3 is None:
            w3 = AsyncWeb3(AsyncHTTPProvider(self.rpc_http))
        self.w3 = w3
        self._decimals: Optional[int] = None

    def factory(self) -> Any:
        return self.w3.eth.contract(address=self.factory_address, abi=abis.FACTORY_ABI)

    def group(self, address: str) -> Any:
        return self.w3.eth.contract(address=_to_checksum(address), abi=abis.ARISAN_ABI)

    def token(self) -> Any:
        return self.w3.eth.contract(address=self.token_address, abi=abis.ERC20_ABI)

    async def call(self, fn_call: Any) -> Any:
        delay = self.retry_delay
        attempt = 0
        while True:
            try:
                return await fn_call.call()
            except ContractLogicError:
                raise
            except Exception as exc:
                if attempt >= self.read_retries:
                    raise
                attempt += 1
                _log(f"WARN: read failed ({exc}), retry {attempt}/{self.read_retries} in {delay}s")
                await asyncio.sleep(delay)
                delay = min(delay * 2, 10.0)

    # ------------------------------------------------------------------
    # Bulk listing
    # ------------------------------------------------------------------
    async def list_groups(self, timeout: Optional[float] = None) -> List[Group]:
        timeout = self.list_timeout if timeout is None else timeout
        try:
            return await asyncio.wait_for(self._list_groups(), timeout)
        except asyncio.TimeoutError:
            _log(f"WARN: group listing timed out after {timeout}s, returning empty list")
            return []
        except Exception as exc:
            _log(f"Failed to list groups: {exc}")
            return []

    async def _list_groups(self) -> List[Group]:
        addresses = await self.call(self.factory().functions.getDeployedArisans())
        decimals = await self.token_decimals()
        results = await asyncio.gather(*(self._fetch_or_none(addr, decimals) for addr in addresses))
        return [group for group in results if group is not None]

    async def _fetch_or_none(self, address: str, decimals: int) -> Optional[Group]:
        try:
            return await self.fetch_group(address, decimals)
        except Exception as exc:
            _log(f"WARN: Error fetching group data for {address}: {exc}")
            return None

    async def fetch_group(self, address: str, decimals: Optional[int] = None) -> Group:
        if decimals is None:
            decimals = await self.token_decimals()
        contract = self.group(address)
        fns = contract.functions
        name, description, entry_fee, max_participants, owner = await asyncio.gather(
            self.call(fns.name()),
            self.call(fns.description()),
            self.call(fns.entryFee()),
            self.call(fns.maxParticipants()),
            self.call(fns.owner()),
        )
        raw_participants = await self.call(fns.getParticipants())
        participants = [Participant.from_tuple(p) for p in raw_participants]
        max_participants = int(max_participants)
        if len(participants) > max_participants:
            raise ValueError(
                f"{len(participants)} participants exceeds maxParticipants={max_participants}"
            )

        fee = from_raw_units(int(entry_fee), decimals)
        won = sum(1 for p in participants if p.has_won)
        return Group(
            address=_to_checksum(address),
            name=name,
            description=description,
            entry_fee=fee,
            entry_fee_raw=int(entry_fee),
            currency=self.currency,
            max_participants=max_participants,
            current_cycle=min(won + 1, max(max_participants, 1)),
            pool_balance=fee * len(participants),
            owner=owner,
            participants=participants,
        )

    # ------------------------------------------------------------------
    # Token and prize reads (never raise)
    # ------------------------------------------------------------------
    async def token_decimals(self) -> int:
        if self._decimals is not None:
            return self._decimals
        try:
            self._decimals = int(await self.call(self.token().functions.decimals()))
        except Exception as exc:
            _log(f"WARN: Could not fetch token decimals, using {abis.DEFAULT_DECIMALS}: {exc}")
            return abis.DEFAULT_DECIMALS
        return self._decimals

    async def token_balance(self, owner: str) -> int:
        try:
            return int(await self.call(self.token().functions.balanceOf(_to_checksum(owner))))
        except Exception as exc:
            _log(f"Failed to fetch token balance for {owner}: {exc}")
            return 0

    async def token_balance_display(self, owner: str) -> Decimal:
        raw = await self.token_balance(owner)
        return from_raw_units(raw, await self.token_decimals())

    async def pending_prize(self, group_address: str, owner: str) -> int:
        try:
            fn = self.group(group_address).functions.pendingWithdrawals(_to_checksum(owner))
            return int(await self.call(fn))
        except Exception as exc:
            _log(f"Error checking pending prize in {group_address}: {exc}")
            return 0

    # ------------------------------------------------------------------
    # Logs
    # ------------------------------------------------------------------
    async def get_logs(
        self,
        params: Dict[str, Any],
        from_block: Optional[int] = None,
        to_block: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Fetch logs over a block range, halving the window each time the node rejects it as too large.

        The first request covers the whole range unless `batch_size` caps it.
        """
        if to_block is None:
            to_block = await self.w3.eth.block_number
        current = self.start_block if from_block is None else from_block
        batch_size = self.batch_size or max(to_block - current + 1, 1)
        out: List[Dict[str, Any]] = []

        while current <= to_block:
            batch_to = min(current + batch_size - 1, to_block)
            try:
                logs = await self.w3.eth.get_logs({**params, "fromBlock": current, "toBlock": batch_to})
            except Exception as exc:
                msg = str(exc).lower()
                if batch_size > 1 and _range_too_large(msg):
                    batch_size = max(batch_size // 2, 1)
                    _log(f"WARN: get_logs too large ({current}-{batch_to}), reducing batch size to {batch_size}")
                    continue
                raise
            out.extend(logs)
            current = batch_to + 1
        return out
