"""Ethereum JSON-RPC client with retries and error classification."""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Optional, Union

import requests

from core.base_types import Address, CanonicalTransaction
from core.errors import (
    ChainError,
    InsufficientBalanceError,
    OversizedEstimateError,
    RPCError,
)
from core.hex_utils import hex_to_int, int_to_hex

logger = logging.getLogger(__name__)

# rate limiting and server-side failures; the next attempt or URL may succeed
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class ChainClient:
    """
    Ethereum RPC client supplying live inputs for transaction preparation.

    Features:
    - Automatic retry with exponential backoff
    - Multiple RPC endpoint fallback
    - Request timing/logging
    - Error classification into the transaction error taxonomy

    Quantities come back as minimal 0x hex strings so they can be fed
    straight into ``chain.tx_utils``.
    """

    def __init__(
        self,
        rpc_urls: list[str],
        timeout: int = 30,
        max_retries: int = 3,
    ):
        if not rpc_urls:
            raise ValueError("rpc_urls must not be empty")
        self._rpc_urls = rpc_urls
        self._timeout = timeout
        self._max_retries = max_retries
        self._session = requests.Session()

    def get_chain_id(self) -> int:
        return _hex_result(self._rpc_call("eth_chainId", []))

    def get_block(self, block: str = "latest", full: bool = False) -> dict:
        result = self._rpc_call("eth_getBlockByNumber", [block, full])
        if not isinstance(result, dict):
            raise RPCError(f"Block {block} not found")
        return result

    def get_block_gas_limit(self, block: str = "latest") -> str:
        gas_limit = self.get_block(block).get("gasLimit")
        return int_to_hex(_hex_result(gas_limit))

    def get_balance(self, address: Union[Address, str], block: str = "latest") -> str:
        if not isinstance(address, Address):
            address = Address.from_string(address)
        balance = self._rpc_call("eth_getBalance", [address.checksum, block])
        return int_to_hex(_hex_result(balance))

    def estimate_gas(self, tx: Union[CanonicalTransaction, dict]) -> str:
        payload = tx.to_dict() if isinstance(tx, CanonicalTransaction) else tx
        # the node rejects chainId in call objects
        payload = {k: v for k, v in payload.items() if k != "chainId"}
        gas = self._rpc_call("eth_estimateGas", [payload])
        return int_to_hex(_hex_result(gas))

    def _rpc_call(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        last_error: Optional[Exception] = None
        for url in self._rpc_urls:
            for attempt in range(self._max_retries):
                start = time.perf_counter()
                try:
                    response = self._session.post(
                        url,
                        json=payload,
                        timeout=self._timeout,
                    )
                    elapsed = time.perf_counter() - start
                    logger.info("rpc %s %s in %.3fs", method, url, elapsed)
                    if response.status_code in RETRYABLE_STATUS_CODES:
                        logger.warning(
                            "rpc %s %s attempt %d got HTTP %d",
                            method,
                            url,
                            attempt + 1,
                            response.status_code,
                        )
                        last_error = RPCError(
                            f"HTTP {response.status_code} from {url}",
                            code=response.status_code,
                        )
                        self._sleep_backoff(attempt)
                        continue
                    if response.status_code >= 400:
                        raise RPCError(
                            f"HTTP {response.status_code} from {url}",
                            code=response.status_code,
                        )
                    data = response.json()
                    if "error" in data:
                        self._raise_rpc_error(data["error"])
                    return data.get("result")
                except (requests.Timeout, requests.ConnectionError) as exc:
                    logger.warning(
                        "rpc %s %s attempt %d failed: %s", method, url, attempt + 1, exc
                    )
                    last_error = exc
                    self._sleep_backoff(attempt)
                except json.JSONDecodeError as exc:
                    last_error = exc
                    self._sleep_backoff(attempt)
        raise ChainError("RPC request failed") from last_error

    def _sleep_backoff(self, attempt: int) -> None:
        delay = 0.5 * (2**attempt)
        time.sleep(delay)

    def _raise_rpc_error(self, error: dict) -> None:
        message = str(error.get("message", "RPC error"))
        code = error.get("code")
        data = error.get("data")
        lowered = message.lower()
        if "insufficient funds" in lowered:
            raise InsufficientBalanceError(message)
        if "exceeds block gas limit" in lowered or "gas required exceeds" in lowered:
            raise OversizedEstimateError(message)
        raise RPCError(message, code=code, data=data)


def _hex_result(value: Any) -> int:
    if not isinstance(value, str):
        raise RPCError("Expected hex string result")
    return hex_to_int(value)
