import asyncio
from typing import Any, Dict, List

from .decoder import EventDecoder
from .models import EventRecord, EventType
from .reader import ChainReader
from .util import _address_topic, _hex, _log, _to_checksum


class HistoryAggregator:
    """Transparency log for one group: joins, draws and payouts, newest block first."""

    def __init__(self, reader: ChainReader, decoder: EventDecoder):
        self.reader = reader
        self.decoder = decoder

    async def get_history(self, group_address: str) -> List[EventRecord]:
        group_address = _to_checksum(group_address)
        joined, winners, claims = await asyncio.gather(
            self._stream(
                "Joined",
                {"address": group_address, "topics": [self.decoder.topic("Joined")]},
            ),
            self._stream(
                "WinnerPicked",
                {"address": group_address, "topics": [self.decoder.topic("WinnerPicked")]},
            ),
            self._stream(
                "Transfer",
                {
                    "address": self.reader.token_address,
                    "topics": [self.decoder.topic("Transfer"), _address_topic(group_address)],
                },
            ),
        )

        history = []
        history.extend(self._record(EventType.JOINED, e, "participant", "amount") for e in joined)
        history.extend(self._record(EventType.WINNER, e, "winner", "amount") for e in winners)
        history.extend(self._record(EventType.CLAIMED, e, "to", "value") for e in claims)
        history.sort(key=lambda r: (r.block_number, r.log_index), reverse=True)
        return history

    async def _stream(self, name: str, params: Dict[str, Any]) -> List[Any]:
        try:
            logs = await self.reader.get_logs(params)
        except Exception as exc:
            _log(f"WARN: {name} history unavailable: {exc}")
            return []
        return [e for e in self.decoder.decode_logs(logs) if e.name == name]

    @staticmethod
    def _record(kind: EventType, event: Any, who: str, amount: str) -> EventRecord:
        log = event.log
        return EventRecord(
            type=kind,
            participant=event.args[who],
            amount=int(event.args[amount]),
            block_number=int(log.get("blockNumber") or 0),
            transaction_hash=_hex(log.get("transactionHash")),
            log_index=int(log.get("logIndex") or 0),
            timestamp=int(event.args.get("timestamp", 0)) if kind == EventType.WINNER else 0,
        )
