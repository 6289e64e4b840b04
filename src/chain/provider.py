"""Chain configuration providers: where chain id and block gas limit come from."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Protocol

from core.hex_utils import normalize_hex

if TYPE_CHECKING:
    from .client import ChainClient

logger = logging.getLogger(__name__)


class ChainConfigProvider(Protocol):
    def get_chain_id(self) -> Optional[int]: ...

    def get_block_gas_limit(self) -> str: ...


@dataclass(frozen=True)
class StaticChainConfig:
    """Fixed chain parameters, e.g. from config or a test."""

    block_gas_limit: str
    chain_id: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "block_gas_limit", normalize_hex(self.block_gas_limit, "blockGasLimit")
        )

    def get_chain_id(self) -> Optional[int]:
        return self.chain_id

    def get_block_gas_limit(self) -> str:
        return self.block_gas_limit


class RpcChainConfig:
    """Reads chain id and latest block gas limit from a JSON-RPC node."""

    def __init__(self, client: "ChainClient", chain_id: Optional[int] = None):
        self._client = client
        self._chain_id = chain_id

    def get_chain_id(self) -> Optional[int]:
        if self._chain_id is None:
            self._chain_id = self._client.get_chain_id()
            logger.info("chain id resolved from rpc: %d", self._chain_id)
        return self._chain_id

    def get_block_gas_limit(self) -> str:
        # not cached: the limit moves block to block
        return self._client.get_block_gas_limit()
