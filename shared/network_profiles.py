#!/usr/bin/env python3
"""
Network Profiles
Static per-network settings for the swept token (USDC on Base and Base Sepolia)
"""

from typing import Dict
from dataclasses import dataclass
from enum import Enum


class NetworkType(Enum):
    BASE = "base"
    BASE_SEPOLIA = "base-sepolia"


DEFAULT_NETWORK = NetworkType.BASE.value


@dataclass(frozen=True)
class NetworkProfile:
    """Immutable description of a supported chain and its token contract"""
    network: str
    chain_id: int
    display_name: str
    token_contract_address: str  # checksummed
    default_rpc_url: str
    token_symbol: str = "USDC"


NETWORK_PROFILES: Dict[str, NetworkProfile] = {
    NetworkType.BASE.value: NetworkProfile(
        network=NetworkType.BASE.value,
        chain_id=8453,
        display_name="Base",
        token_contract_address="0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",  # Native USDC
        default_rpc_url="https://1rpc.io/base",
    ),
    NetworkType.BASE_SEPOLIA.value: NetworkProfile(
        network=NetworkType.BASE_SEPOLIA.value,
        chain_id=84532,
        display_name="Base Sepolia",
        token_contract_address="0x754E7659257E67489e7ea9f4a126F9DFc69268ff",
        default_rpc_url="https://base-sepolia.gateway.tenderly.co",
    ),
}


def get_network_profile(network: str) -> NetworkProfile:
    """Look up a profile by network key; raises KeyError for unknown keys"""
    return NETWORK_PROFILES[network]


def supported_networks():
    return sorted(NETWORK_PROFILES)
