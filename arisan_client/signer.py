from typing import Any, Dict, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount

from .errors import TransactionReverted
from .util import _hex, _log


class TransactionSender:
    """Signs contract calls with a local account, broadcasts them and waits for the receipt."""

    def __init__(self, w3: Any, account: LocalAccount, receipt_timeout: float = 180):
        self.w3 = w3
        self.account = account
        self.receipt_timeout = receipt_timeout

    @classmethod
    def from_private_key(cls, w3: Any, private_key: str, receipt_timeout: float = 180) -> "TransactionSender":
        if not private_key:
            raise ValueError("private_key (or ARISAN_PRIVATE_KEY) is required for write operations")
        return cls(w3, Account.from_key(private_key), receipt_timeout)

    @property
    def address(self) -> str:
        return self.account.address

    async def send(self, fn_call: Any, gas: int, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        nonce = await self.w3.eth.get_transaction_count(self.address, "pending")
        params = {"from": self.address, "gas": gas, "nonce": nonce}
        params.update(overrides or {})
        tx = await fn_call.build_transaction(params)
        signed = self.account.sign_transaction(tx)
        tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        _log(f"Transaction sent: {_hex(tx_hash)} (gas limit {gas})")

        receipt = await self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        if receipt.get("status") != 1:
            raise TransactionReverted(_hex(tx_hash))
        return receipt
