"""Receipt/log decoding against the known arisan event signatures.

Decoding is best-effort per log: a log that matches no signature, or that
matches a topic but carries malformed data, is dropped without affecting the
rest of the batch.
"""

from typing import Any, Dict, Iterable, List, Optional

from eth_abi.codec import ABICodec
from eth_abi.registry import registry as default_registry
from eth_utils import event_abi_to_log_topic
from hexbytes import HexBytes
from web3._utils.events import get_event_data

from . import abis
from .models import DecodedEvent
from .util import ZERO_ADDRESS, _log, _normalize_log, _same_addr


# get_event_data indexes these keys directly
_LOG_DEFAULTS = {
    "address": ZERO_ADDRESS,
    "blockHash": HexBytes(b"\x00" * 32),
    "blockNumber": 0,
    "logIndex": 0,
    "transactionHash": HexBytes(b"\x00" * 32),
    "transactionIndex": 0,
}


class EventDecoder:
    def __init__(self, event_abis: Optional[List[Dict[str, Any]]] = None, codec: Optional[ABICodec] = None):
        self.event_abis = [e for e in (event_abis or abis.KNOWN_EVENTS) if e.get("type") == "event"]
        self.codec = codec or ABICodec(default_registry)
        self.topic_to_abi: Dict[bytes, Dict[str, Any]] = {}
        self.name_to_abi: Dict[str, Dict[str, Any]] = {}
        for event_abi in self.event_abis:
            self.name_to_abi[event_abi["name"]] = event_abi
            if event_abi.get("anonymous"):
                continue
            self.topic_to_abi[bytes(event_abi_to_log_topic(event_abi))] = event_abi

    def topic(self, name: str) -> str:
        return "0x" + bytes(event_abi_to_log_topic(self.name_to_abi[name])).hex()

    def decode_log(self, log: Dict[str, Any]) -> Optional[DecodedEvent]:
        try:
            normalized = _normalize_log(log)
        except Exception as exc:
            _log(f"WARN: Unreadable log skipped: {exc}")
            return None
        for key, default in _LOG_DEFAULTS.items():
            if normalized.get(key) is None:
                normalized[key] = default

        topics = normalized.get("topics") or []
        first = self.topic_to_abi.get(bytes(topics[0])) if topics else None
        candidates = [first] if first is not None else []
        candidates.extend(e for e in self.event_abis if e is not first)

        for candidate in candidates:
            try:
                event_data = get_event_data(self.codec, candidate, normalized)
            except Exception:
                continue
            return DecodedEvent(
                name=event_data["event"],
                args=dict(event_data["args"]),
                log=normalized,
            )
        return None

    def decode_logs(self, logs: Iterable[Dict[str, Any]]) -> List[DecodedEvent]:
        decoded = []
        for log in logs or []:
            event = self.decode_log(log)
            if event is not None:
                decoded.append(event)
        return decoded

    def find(
        self, logs: Iterable[Dict[str, Any]], name: str, address: Optional[str] = None
    ) -> Optional[DecodedEvent]:
        """First decoded `name` event, optionally only from the contract at `address`."""
        for event in self.decode_logs(logs):
            if event.name != name:
                continue
            if address is not None and not _same_addr(event.log.get("address"), address):
                continue
            return event
        return None
