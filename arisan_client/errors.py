import asyncio
import enum
from typing import Optional

from web3.exceptions import (
    BadResponseFormat,
    ContractLogicError,
    ProviderConnectionError,
    TimeExhausted,
    TooManyRequests,
    Web3RPCError,
)


class ErrorKind(str, enum.Enum):
    VALIDATION = "VALIDATION"
    FULL = "FULL"
    ALREADY_JOINED = "ALREADY_JOINED"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    TRANSACTION_REVERTED = "TRANSACTION_REVERTED"
    NETWORK = "NETWORK"
    DECODE = "DECODE"
    UNEXPECTED = "UNEXPECTED"

    @property
    def category(self) -> str:
        if self in (ErrorKind.FULL, ErrorKind.ALREADY_JOINED, ErrorKind.INSUFFICIENT_BALANCE):
            return "PRECONDITION"
        return self.value


class FlowError(Exception):
    """Aborts a write flow with a specific kind."""

    def __init__(self, kind: ErrorKind, message: str = "", step: Optional[str] = None):
        super().__init__(message or kind.value)
        self.kind = kind
        self.step = step


class TransactionReverted(Exception):
    def __init__(self, tx_hash: str, message: str = ""):
        super().__init__(message or f"Transaction reverted: {tx_hash}")
        self.tx_hash = tx_hash


_NETWORK_ERRORS = (
    TimeExhausted,
    ProviderConnectionError,
    TooManyRequests,
    BadResponseFormat,
    asyncio.TimeoutError,
    ConnectionError,
    OSError,
)


def classify(exc: BaseException) -> ErrorKind:
    if isinstance(exc, FlowError):
        return exc.kind
    if isinstance(exc, (TransactionReverted, ContractLogicError)):
        return ErrorKind.TRANSACTION_REVERTED
    if isinstance(exc, Web3RPCError):
        if "revert" in str(exc.message).lower():
            return ErrorKind.TRANSACTION_REVERTED
        return ErrorKind.NETWORK
    if isinstance(exc, _NETWORK_ERRORS):
        return ErrorKind.NETWORK
    if isinstance(exc, ValueError) and exc.args and isinstance(exc.args[0], dict):
        # older providers surface JSON-RPC error payloads as ValueError(dict)
        message = str(exc.args[0].get("message", "")).lower()
        if "revert" in message:
            return ErrorKind.TRANSACTION_REVERTED
        return ErrorKind.NETWORK
    return ErrorKind.UNEXPECTED
