"""Error taxonomy for the sweep service."""

from typing import Optional

NO_DETAILS = "No additional details"


class SweeperError(Exception):
    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {
            "success": False,
            "error": self.message,
            "details": self.details or NO_DETAILS,
        }


class Unauthorized(SweeperError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ConfigurationError(SweeperError):
    """Required configuration is missing or invalid"""


class NetworkError(SweeperError):
    """RPC endpoint unreachable or returned something unusable"""


class TransactionError(SweeperError):
    """Transfer submission or confirmation failed"""

    def __init__(self, message: str, details: Optional[str] = None, tx_hash: Optional[str] = None):
        super().__init__(message, details)
        self.tx_hash = tx_hash
