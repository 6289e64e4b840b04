"""Error taxonomy for transaction preparation and chain access."""

from __future__ import annotations

from typing import Optional


class ChainError(Exception):
    """Base class for chain errors."""


class ParseError(ChainError, ValueError):
    """A hex or decimal field is not a non-negative integer."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class InvalidParameterError(ChainError, ValueError):
    """Caller contract violation (bad multiplier, malformed tx shape)."""


class InsufficientBalanceError(ChainError):
    """Not enough balance to cover value + gas * gasPrice."""

    def __init__(
        self,
        message: str,
        required: Optional[int] = None,
        available: Optional[int] = None,
    ):
        self.required = required
        self.available = available
        super().__init__(message)


class OversizedEstimateError(ChainError):
    """Gas estimate does not fit under the block gas limit."""

    def __init__(
        self,
        message: str,
        estimated_gas: Optional[int] = None,
        block_gas_limit: Optional[int] = None,
    ):
        self.estimated_gas = estimated_gas
        self.block_gas_limit = block_gas_limit
        super().__init__(message)


class RPCError(ChainError):
    """RPC request failed."""

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        data: Optional[object] = None,
    ):
        self.code = code
        self.data = data
        super().__init__(message)


class NetworkStatusError(ChainError):
    """Network status endpoint returned an unusable response."""
