import logging
from typing import Any, Dict, Optional

from eth_account import Account
from web3 import Web3

from shared.logger import setup_logging
from sweeper.errors import NetworkError, TransactionError

# Only the ERC-20 functions the sweeper needs
ERC20_ABI = [
    {
        "constant": True,
        "inputs": [{"name": "owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "constant": False,
        "inputs": [{"name": "to", "type": "address"}, {"name": "amount", "type": "uint256"}],
        "name": "transfer",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function",
    },
]


def error_details(error: Exception) -> Optional[str]:
    """Pull the provider's reason or code out of a web3 / RPC exception"""
    for attr in ("reason", "message", "code"):
        value = getattr(error, attr, None)
        if value and str(value) != str(error):
            return str(value)
    rpc_response = getattr(error, "rpc_response", None)
    if isinstance(rpc_response, dict) and isinstance(rpc_response.get("error"), dict):
        payload = rpc_response["error"]
    elif error.args and isinstance(error.args[0], dict):
        payload = error.args[0]
    else:
        return None
    parts = [str(payload[key]) for key in ("message", "code") if payload.get(key) is not None]
    return " / ".join(parts) or None


class TokenClient:
    """
    Narrow adapter over web3 for one ERC-20 token and one signing key.

    Read failures are raised as NetworkError, submission and confirmation
    failures as TransactionError.
    """

    def __init__(self, web3: Web3, token_address: str, private_key: str,
                 receipt_timeout: int = 120, logger: logging.Logger = None):
        self.web3 = web3
        self.account = Account.from_key(private_key)
        self.token_address = Web3.to_checksum_address(token_address)
        self.contract = web3.eth.contract(address=self.token_address, abi=ERC20_ABI)
        self.receipt_timeout = receipt_timeout
        self.logger = logger or setup_logging(__name__)

    @classmethod
    def connect(cls, rpc_url: str, token_address: str, private_key: str,
                rpc_timeout: int = 30, receipt_timeout: int = 120) -> 'TokenClient':
        web3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": rpc_timeout}))
        return cls(web3, token_address, private_key, receipt_timeout=receipt_timeout)

    @property
    def address(self) -> str:
        return self.account.address

    def _read(self, what: str, call):
        try:
            return call()
        except Exception as e:
            raise NetworkError(f"Failed to read {what}: {e}", details=error_details(e)) from e

    def chain_id(self) -> int:
        return int(self._read("chain id", lambda: self.web3.eth.chain_id))

    def native_balance(self) -> int:
        return int(self._read("native balance", lambda: self.web3.eth.get_balance(self.address)))

    def token_balance(self) -> int:
        return int(self._read("token balance",
                              lambda: self.contract.functions.balanceOf(self.address).call()))

    def token_decimals(self) -> int:
        return int(self._read("token decimals", lambda: self.contract.functions.decimals().call()))

    def transfer(self, to_address: str, amount: int) -> str:
        """Sign and submit transfer(to, amount); returns the 0x-prefixed transaction hash"""
        try:
            nonce = self.web3.eth.get_transaction_count(self.address, "pending")
            tx = self.contract.functions.transfer(
                Web3.to_checksum_address(to_address), amount
            ).build_transaction({
                "from": self.address,
                "nonce": nonce,
                "chainId": self.web3.eth.chain_id,
            })
            signed = self.account.sign_transaction(tx)
            tx_hash = self.web3.eth.send_raw_transaction(signed.raw_transaction)
        except Exception as e:
            self.logger.error(f"❌ Transfer submission failed: {e}")
            raise TransactionError(str(e) or "Transaction submission failed",
                                   details=error_details(e)) from e
        tx_hash = Web3.to_hex(tx_hash)
        self.logger.info(f"📤 Submitted transfer of {amount} to {to_address} (nonce {nonce}): {tx_hash}")
        return tx_hash

    def wait_for_receipt(self, tx_hash: str) -> Dict[str, Any]:
        self.logger.info(f"⏳ Waiting up to {self.receipt_timeout}s for receipt of {tx_hash}")
        try:
            receipt = self.web3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        except Exception as e:
            self.logger.error(f"❌ No receipt for {tx_hash}: {e}")
            raise TransactionError(str(e) or "Transaction confirmation failed",
                                   details=error_details(e), tx_hash=tx_hash) from e
        if receipt.get("status") == 0:
            self.logger.error(f"❌ Transaction {tx_hash} reverted")
            raise TransactionError("Transaction reverted",
                                   details=f"Transaction {tx_hash} reverted in block {receipt.get('blockNumber')}",
                                   tx_hash=tx_hash)
        self.logger.info(f"✅ Receipt for {tx_hash} in block {receipt.get('blockNumber')}")
        return receipt
