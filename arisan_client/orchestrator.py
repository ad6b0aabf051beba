"""Write flows against the factory, group and token contracts.

Each public coroutine runs one flow end to end and returns a result object;
no exception escapes a flow. Steps inside a flow are strictly sequential:
an approval is confirmed before the join that depends on it is submitted.
"""

import asyncio
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from . import abis
from .cache import CacheStore
from .decoder import EventDecoder
from .errors import ErrorKind, FlowError, classify
from .models import CacheGroupRecord, GroupStatus, Participant
from .reader import ChainReader
from .util import _hex, _log, _same_addr, _to_checksum, from_raw_units, parse_display_amount, to_raw_units


@dataclass
class FlowResult:
    ok: bool
    kind: Optional[ErrorKind] = None
    step: Optional[str] = None
    message: str = ""
    receipt: Optional[Dict[str, Any]] = None

    def __bool__(self) -> bool:
        return self.ok

    @property
    def tx_hash(self) -> Optional[str]:
        if not self.receipt:
            return None
        return _hex(self.receipt.get("transactionHash"))


@dataclass
class CreateGroupResult(FlowResult):
    group_address: Optional[str] = None
    entry_fee_raw: int = 0


@dataclass
class WinnerResult(FlowResult):
    winner: Optional[str] = None
    prize_raw: int = 0
    prize: Decimal = Decimal(0)
    timestamp: int = 0


def _failed(cls, exc: BaseException, flow: str, **fields):
    kind = classify(exc)
    step = getattr(exc, "step", None)
    if kind == ErrorKind.UNEXPECTED:
        _log(f"ERROR: {flow} hit an unexpected {type(exc).__name__} at {step or 'unknown step'}: {exc!r}")
    else:
        _log(f"{flow} failed at {step or 'unknown step'} [{kind.value}]: {exc}")
    return cls(ok=False, kind=kind, step=step, message=str(exc), **fields)


class TransactionOrchestrator:
    def __init__(
        self,
        reader: ChainReader,
        decoder: EventDecoder,
        sender: Any,
        cache: Optional[CacheStore] = None,
    ):
        self.reader = reader
        self.decoder = decoder
        self.sender = sender
        self.cache = cache

    async def _submit(self, step: str, fn_call: Any, gas: int) -> Dict[str, Any]:
        try:
            return await self.sender.send(fn_call, gas=gas)
        except Exception as exc:
            exc.step = step
            raise

    async def _read(self, step: str, fn_call: Any) -> Any:
        try:
            return await self.reader.call(fn_call)
        except Exception as exc:
            exc.step = step
            raise

    # ------------------------------------------------------------------
    # create group
    # ------------------------------------------------------------------
    async def create_group(
        self,
        name: str,
        description: str,
        entry_fee: Any,
        max_participants: Any,
        cycle_period: str = "Weekly",
    ) -> CreateGroupResult:
        try:
            fee = parse_display_amount(entry_fee)
            max_participants = int(max_participants)
            if max_participants <= 0:
                raise ValueError("max participants must be greater than zero")
        except (TypeError, ValueError) as exc:
            _log(f"createGroup rejected: {exc}")
            return CreateGroupResult(ok=False, kind=ErrorKind.VALIDATION, step="validate", message=str(exc))

        try:
            return await self._create_group(name, description, fee, max_participants, cycle_period)
        except Exception as exc:
            return _failed(CreateGroupResult, exc, "createGroup")

    async def _create_group(
        self, name: str, description: str, fee: Decimal, max_participants: int, cycle_period: str
    ) -> CreateGroupResult:
        decimals = await self.reader.token_decimals()
        try:
            raw_fee = to_raw_units(fee, decimals)
        except ValueError as exc:
            raise FlowError(ErrorKind.VALIDATION, str(exc), step="validate")

        fn = self.reader.factory().functions.createArisan(name, description, raw_fee, max_participants)
        receipt = await self._submit("create", fn, abis.GAS_CREATE_GROUP)

        created = self.decoder.find(receipt.get("logs") or [], "ArisanCreated", address=self.reader.factory_address)
        if created is None:
            _log("WARN: createGroup confirmed but no ArisanCreated event was decoded")
            return CreateGroupResult(
                ok=True, kind=ErrorKind.DECODE, step="decode", receipt=receipt, entry_fee_raw=raw_fee
            )

        group_address = _to_checksum(created.args["arisanAddress"])
        _log(f"Group deployed at {group_address}")
        if self.cache is not None:
            record = CacheGroupRecord(
                contract_address=group_address,
                name=name,
                description=description,
                status=GroupStatus.ACTIVE.value,
                created_by=self.sender.address,
                max_participants=max_participants,
                entry_fee=str(fee),
                duration=cycle_period,
            )
            await self._mirror_group(record)
        return CreateGroupResult(ok=True, receipt=receipt, group_address=group_address, entry_fee_raw=raw_fee)

    async def _mirror_group(self, record: CacheGroupRecord) -> None:
        # deployment is confirmed at this point, mirror failures only log
        try:
            mirrored = await self.cache.upsert_group(record)
        except Exception as exc:
            _log(f"WARN: cache mirror raised for {record.contract_address}: {exc}")
            mirrored = False
        if not mirrored:
            _log(f"WARN: {record.contract_address} deployed but not mirrored to the cache")

    # ------------------------------------------------------------------
    # deposit (approve + join)
    # ------------------------------------------------------------------
    async def deposit_funds(self, group_address: str) -> FlowResult:
        try:
            return await self._deposit_funds(_to_checksum(group_address))
        except Exception as exc:
            return _failed(FlowResult, exc, "depositFunds")

    async def _deposit_funds(self, group_address: str) -> FlowResult:
        caller = self.sender.address
        group = self.reader.group(group_address)
        entry_fee, raw_participants, max_participants = await asyncio.gather(
            self._read("preflight", group.functions.entryFee()),
            self._read("preflight", group.functions.getParticipants()),
            self._read("preflight", group.functions.maxParticipants()),
        )
        entry_fee = int(entry_fee)
        participants = [Participant.from_tuple(p) for p in raw_participants]

        if len(participants) >= int(max_participants):
            raise FlowError(
                ErrorKind.FULL,
                f"group is full ({len(participants)}/{max_participants})",
                step="preflight",
            )
        if any(_same_addr(p.wallet_address, caller) for p in participants):
            raise FlowError(ErrorKind.ALREADY_JOINED, f"{caller} already joined", step="preflight")

        token = self.reader.token()
        decimals = await self.reader.token_decimals()
        balance = int(await self._read("balance", token.functions.balanceOf(caller)))
        if balance < entry_fee:
            need = from_raw_units(entry_fee, decimals)
            raise FlowError(
                ErrorKind.INSUFFICIENT_BALANCE,
                f"insufficient balance, need {need} {self.reader.currency}",
                step="balance",
            )

        allowance = int(await self._read("allowance", token.functions.allowance(caller, group_address)))
        if allowance < entry_fee:
            _log(f"Approving {entry_fee} (current allowance {allowance})")
            await self._submit("approve", token.functions.approve(group_address, entry_fee), abis.GAS_APPROVE)
        else:
            _log("Allowance sufficient, skipping approve")

        receipt = await self._submit("join", group.functions.join(), abis.GAS_JOIN)
        _log(f"Joined {group_address} with fee {entry_fee}")
        return FlowResult(ok=True, receipt=receipt)

    # ------------------------------------------------------------------
    # pick winner / claim
    # ------------------------------------------------------------------
    async def pick_winner(self, group_address: str) -> WinnerResult:
        try:
            fn = self.reader.group(group_address).functions.kocok()
            receipt = await self._submit("pick_winner", fn, abis.GAS_PICK_WINNER)
        except Exception as exc:
            return _failed(WinnerResult, exc, "pickWinner")

        picked = self.decoder.find(receipt.get("logs") or [], "WinnerPicked", address=group_address)
        if picked is None:
            _log("WARN: pickWinner confirmed but no WinnerPicked event was decoded")
            return WinnerResult(ok=True, kind=ErrorKind.DECODE, step="decode", receipt=receipt)

        decimals = await self.reader.token_decimals()
        prize_raw = int(picked.args["amount"])
        return WinnerResult(
            ok=True,
            receipt=receipt,
            winner=picked.args["winner"],
            prize_raw=prize_raw,
            prize=from_raw_units(prize_raw, decimals),
            timestamp=int(picked.args["timestamp"]),
        )

    async def claim_prize(self, group_address: str) -> FlowResult:
        try:
            fn = self.reader.group(group_address).functions.withdrawPrize()
            receipt = await self._submit("claim", fn, abis.GAS_CLAIM)
        except Exception as exc:
            return _failed(FlowResult, exc, "claimPrize")
        return FlowResult(ok=True, receipt=receipt)
