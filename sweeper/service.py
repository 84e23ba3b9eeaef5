#!/usr/bin/env python3
"""
Token Sweeper Service
Moves the whole token balance of the custodial wallet to the destination wallet
once it reaches the configured threshold
"""

import threading
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from shared.logger import setup_logging
from sweeper.config import RuntimeConfig, minimum_balance
from sweeper.errors import ConfigurationError

logger = setup_logging(__name__)

NATIVE_DECIMALS = 18


def format_units(raw_amount: int, decimals: int) -> str:
    """Render a smallest-unit amount as a decimal string, e.g. 50000000 @ 6 -> '50.0'"""
    whole, fraction = divmod(int(raw_amount), 10 ** decimals)
    digits = str(fraction).rjust(decimals, "0").rstrip("0") if decimals else ""
    return f"{whole}.{digits or '0'}"


@dataclass
class BalanceReading:
    """Token balance of the signer as observed by the balance gate"""
    raw_amount: int
    decimals: int

    @property
    def formatted(self) -> str:
        return format_units(self.raw_amount, self.decimals)


@dataclass
class SweepResult:
    """Result of a confirmed sweep"""
    transaction_hash: str
    block_number: int
    amount: int
    formatted_amount: str
    from_address: str
    to_address: str


_locks_guard = threading.Lock()
_signer_locks: Dict[str, threading.Lock] = {}


def signer_lock(address: str) -> threading.Lock:
    """One lock per signing address so sweeps of the same wallet never overlap"""
    with _locks_guard:
        return _signer_locks.setdefault(address.lower(), threading.Lock())


def verify_chain(client, runtime: RuntimeConfig) -> int:
    chain_id = client.chain_id()
    expected = runtime.profile.chain_id
    if chain_id != expected:
        message = (f"Connected to chain {chain_id}, expected {expected} "
                   f"({runtime.profile.display_name})")
        if not runtime.allow_chain_mismatch:
            raise ConfigurationError(message, details="Check RPC_URL or set ALLOW_CHAIN_MISMATCH")
        logger.warning(f"⚠️ {message}")
    return chain_id


def check_balance(client, runtime: RuntimeConfig) -> Tuple[BalanceReading, bool]:
    """Balance gate: read the live balance and decimals, compare against the threshold"""
    reading = BalanceReading(raw_amount=client.token_balance(), decimals=client.token_decimals())
    logger.info(f"Network: {runtime.profile.display_name} (Chain ID: {runtime.profile.chain_id})")
    logger.info(f"Wallet: {client.address}")
    logger.info(f"{runtime.profile.token_symbol} Balance: {reading.formatted}")
    return reading, reading.raw_amount >= minimum_balance(reading.decimals)


def execute_sweep(client, runtime: RuntimeConfig, reading: BalanceReading) -> SweepResult:
    """Transfer exactly the observed balance and wait for the receipt"""
    logger.info("Balance above threshold! Initiating transfer...")
    tx_hash = client.transfer(runtime.destination_address, reading.raw_amount)
    logger.info(f"Transaction sent: {tx_hash}")

    receipt = client.wait_for_receipt(tx_hash)
    block_number = receipt["blockNumber"]
    logger.info(f"Transaction confirmed in block {block_number}")

    return SweepResult(
        transaction_hash=tx_hash,
        block_number=block_number,
        amount=reading.raw_amount,
        formatted_amount=reading.formatted,
        from_address=client.address,
        to_address=runtime.destination_address,
    )


def sweep(client, runtime: RuntimeConfig) -> Tuple[BalanceReading, Optional[SweepResult]]:
    """
    Full check-then-sweep flow.

    Holds the signer lock from the balance read to the receipt, so a second trigger
    for the same wallet only reads the balance after the first transfer is mined.
    Returns the reading and, when a transfer happened, its result.
    """
    with signer_lock(client.address):
        verify_chain(client, runtime)
        reading, above_threshold = check_balance(client, runtime)
        if not above_threshold:
            return reading, None
        return reading, execute_sweep(client, runtime, reading)


def health_report(client, runtime: RuntimeConfig) -> Dict:
    decimals = client.token_decimals()
    balance = client.token_balance()
    native_balance = client.native_balance()
    chain_id = client.chain_id()
    if chain_id != runtime.profile.chain_id:
        logger.warning(f"⚠️ Connected to chain {chain_id}, expected {runtime.profile.chain_id} "
                       f"({runtime.profile.display_name})")

    return {
        "status": "ok",
        "network": runtime.profile.display_name,
        "chainId": chain_id,
        "walletAddress": client.address,
        "usdcBalance": format_units(balance, decimals),
        "ethBalance": format_units(native_balance, NATIVE_DECIMALS),
        "threshold": runtime.threshold_display,
        "destinationWallet": runtime.destination_address,
        "usdcContractAddress": runtime.profile.token_contract_address,
    }
