"""
Sweep service configuration.

``Settings`` is read once at process start with python-decouple (environment
variables first, then a ``.env`` file). ``resolve_runtime_config`` turns it into a
``RuntimeConfig`` for a single request, raising ``ConfigurationError`` for anything
the sweep cannot run without. Neither step touches the network.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from decouple import config
from web3 import Web3

from shared.network_profiles import DEFAULT_NETWORK, NetworkProfile, get_network_profile, supported_networks
from sweeper.errors import ConfigurationError

# Sweep only once the wallet holds at least this many whole tokens
MINIMUM_WHOLE_TOKENS = 100

DEFAULT_RPC_TIMEOUT = 30
DEFAULT_RECEIPT_TIMEOUT = 120


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, immutable after start-up"""
    network: str = DEFAULT_NETWORK
    private_key: Optional[str] = field(default=None, repr=False)
    rpc_url_override: Optional[str] = None
    destination_wallet: Optional[str] = None
    api_secret: Optional[str] = field(default=None, repr=False)
    allow_chain_mismatch: bool = False
    rpc_timeout: int = DEFAULT_RPC_TIMEOUT
    receipt_timeout: int = DEFAULT_RECEIPT_TIMEOUT

    @classmethod
    def from_env(cls) -> 'Settings':
        return cls(
            network=config("NETWORK", default=DEFAULT_NETWORK).strip() or DEFAULT_NETWORK,
            private_key=config("WALLET_PRIVATE_KEY", default=None) or None,
            rpc_url_override=config("RPC_URL", default=None) or None,
            destination_wallet=config("DESTINATION_WALLET", default=None) or None,
            api_secret=config("API_SECRET", default=None) or None,
            allow_chain_mismatch=config("ALLOW_CHAIN_MISMATCH", default=False, cast=bool),
            rpc_timeout=config("RPC_TIMEOUT", default=DEFAULT_RPC_TIMEOUT, cast=int),
            receipt_timeout=config("RECEIPT_TIMEOUT", default=DEFAULT_RECEIPT_TIMEOUT, cast=int),
        )

    def problems(self) -> List[str]:
        """Every configuration problem, for eager reporting at start-up"""
        found = []
        if not self.api_secret:
            found.append("API_SECRET not configured")
        for check in REQUIRED_CHECKS:
            try:
                check(self)
            except ConfigurationError as e:
                if e.message not in found:
                    found.append(e.message)
        return found


@dataclass(frozen=True)
class RuntimeConfig:
    """Everything one sweep or health request needs, resolved per request"""
    profile: NetworkProfile
    rpc_url: str
    private_key: str = field(repr=False)
    destination_address: str
    allow_chain_mismatch: bool = False
    rpc_timeout: int = DEFAULT_RPC_TIMEOUT
    receipt_timeout: int = DEFAULT_RECEIPT_TIMEOUT

    @property
    def threshold_display(self) -> str:
        return str(MINIMUM_WHOLE_TOKENS)


def minimum_balance(decimals: int) -> int:
    """Threshold in the token's smallest unit for the given precision"""
    return MINIMUM_WHOLE_TOKENS * 10 ** decimals


def resolve_network(settings: Settings) -> NetworkProfile:
    try:
        return get_network_profile(settings.network or DEFAULT_NETWORK)
    except KeyError:
        raise ConfigurationError(
            f"Unsupported network: {settings.network}",
            details=f"Supported networks: {', '.join(supported_networks())}",
        ) from None


def check_private_key(settings: Settings):
    if not settings.private_key:
        raise ConfigurationError("WALLET_PRIVATE_KEY not configured")


def resolve_rpc_url(settings: Settings) -> str:
    rpc_url = settings.rpc_url_override or resolve_network(settings).default_rpc_url
    if not rpc_url:
        raise ConfigurationError("RPC_URL not configured")
    return rpc_url


def resolve_destination(settings: Settings) -> str:
    if not settings.destination_wallet:
        raise ConfigurationError("DESTINATION_WALLET not configured")
    if not Web3.is_address(settings.destination_wallet):
        raise ConfigurationError("Invalid DESTINATION_WALLET address")
    return Web3.to_checksum_address(settings.destination_wallet)


REQUIRED_CHECKS = (check_private_key, resolve_network, resolve_rpc_url, resolve_destination)


def resolve_runtime_config(settings: Settings) -> RuntimeConfig:
    check_private_key(settings)
    return RuntimeConfig(
        profile=resolve_network(settings),
        rpc_url=resolve_rpc_url(settings),
        private_key=settings.private_key,
        destination_address=resolve_destination(settings),
        allow_chain_mismatch=settings.allow_chain_mismatch,
        rpc_timeout=settings.rpc_timeout,
        receipt_timeout=settings.receipt_timeout,
    )
