"""Balance checks, transaction normalization and gas-limit buffering."""

from __future__ import annotations

import logging
import math
from fractions import Fraction
from typing import Any, Mapping, Optional, Union

from core.base_types import CanonicalTransaction, TransactionParams
from core.errors import (
    InsufficientBalanceError,
    InvalidParameterError,
    OversizedEstimateError,
    ParseError,
)
from core.hex_utils import (
    hex_to_bytes,
    hex_to_int,
    int_to_hex,
    parse_decimal,
    parse_quantity,
)

from .provider import ChainConfigProvider

logger = logging.getLogger(__name__)

DEFAULT_GAS_BUFFER_MULTIPLIER = 1.5
# Leave 10% of the block for other pending transactions.
BLOCK_GAS_LIMIT_CEILING_RATIO = Fraction(9, 10)

TxLike = Union[TransactionParams, CanonicalTransaction, Mapping[str, Any]]


def max_transaction_cost(tx: TxLike) -> int:
    """Worst-case spend: value + gas * gasPrice. Absent fields count as zero."""
    if isinstance(tx, (TransactionParams, CanonicalTransaction)):
        value, gas, gas_price = tx.value, tx.gas, tx.gas_price
    elif isinstance(tx, Mapping):
        value, gas, gas_price = tx.get("value"), tx.get("gas"), tx.get("gasPrice")
    else:
        raise InvalidParameterError("tx must be a mapping or transaction object")

    value_int = _optional_quantity(value, "value")
    gas_int = _optional_quantity(gas, "gas")
    gas_price_int = _optional_quantity(gas_price, "gasPrice")
    return value_int + gas_int * gas_price_int


def sufficient_balance(tx: TxLike, balance: Union[str, int]) -> bool:
    """True if ``balance`` covers the maximum cost; equality is enough."""
    balance_int = parse_quantity(balance, "balance")
    return balance_int >= max_transaction_cost(tx)


def build_transaction(params: TxLike) -> CanonicalTransaction:
    """
    Copy recognized fields into a ``CanonicalTransaction``.

    Hex strings are carried verbatim (ints are hex-encoded), ``chainId`` is
    embedded when present. Only the shape is checked: a transaction needs a
    recipient or, for contract creation, init code in ``data``.
    """
    if isinstance(params, CanonicalTransaction):
        params = TransactionParams.from_dict(params.to_dict())
    elif isinstance(params, Mapping):
        params = TransactionParams.from_dict(params)
    elif not isinstance(params, TransactionParams):
        raise InvalidParameterError("transaction params must be a mapping")

    to = _address_field(params.to, "to")
    data = _hex_field(params.data, "data")
    if to is None and not hex_to_bytes(data):
        raise InvalidParameterError(
            "transaction needs 'to' or contract creation code in 'data'"
        )

    chain_id = None
    if params.chain_id is not None:
        chain_id = parse_decimal(params.chain_id, "chainId")

    return CanonicalTransaction(
        to=to,
        sender=_address_field(params.sender, "from"),
        value=_hex_field(params.value, "value"),
        gas=_hex_field(params.gas, "gas"),
        gas_price=_hex_field(params.gas_price, "gasPrice"),
        data=data,
        nonce=_hex_field(params.nonce, "nonce"),
        chain_id=chain_id,
    )


def exceeds_block_limit(estimated_gas: str, block_gas_limit: str) -> bool:
    return hex_to_int(estimated_gas, "estimatedGas") > hex_to_int(
        block_gas_limit, "blockGasLimit"
    )


def add_gas_buffer(
    estimated_gas: str,
    block_gas_limit: str,
    buffer_multiplier: float = DEFAULT_GAS_BUFFER_MULTIPLIER,
) -> str:
    """
    Pad a naive gas estimate, capped at 90% of the block gas limit.

    Returns the estimate unchanged when it alone exceeds the block limit;
    callers that cannot submit such a transaction should check
    ``exceeds_block_limit`` first.
    """
    multiplier = _validate_multiplier(buffer_multiplier)
    estimated = hex_to_int(estimated_gas, "estimatedGas")
    block_limit = hex_to_int(block_gas_limit, "blockGasLimit")

    if estimated > block_limit:
        logger.debug(
            "gas estimate %d exceeds block limit %d, not buffering",
            estimated,
            block_limit,
        )
        return int_to_hex(estimated)

    buffered = math.floor(estimated * multiplier)
    ceiling = math.floor(block_limit * BLOCK_GAS_LIMIT_CEILING_RATIO)
    if buffered < ceiling:
        return int_to_hex(buffered)

    logger.debug("buffered gas %d capped at ceiling %d", buffered, ceiling)
    return int_to_hex(ceiling)


class TxUtils:
    """
    Transaction helpers bound to a chain configuration provider.

    The provider only has to answer ``get_chain_id`` and
    ``get_block_gas_limit``; tests pass a static stub.
    """

    def __init__(
        self,
        provider: ChainConfigProvider,
        buffer_multiplier: float = DEFAULT_GAS_BUFFER_MULTIPLIER,
    ) -> None:
        _validate_multiplier(buffer_multiplier)
        self._provider = provider
        self._buffer_multiplier = buffer_multiplier

    def sufficient_balance(self, tx: TxLike, balance: Union[str, int]) -> bool:
        return sufficient_balance(tx, balance)

    def build_transaction(self, params: TxLike) -> CanonicalTransaction:
        return build_transaction(params)

    def add_gas_buffer(
        self,
        estimated_gas: str,
        block_gas_limit: Optional[str] = None,
        buffer_multiplier: Optional[float] = None,
    ) -> str:
        if block_gas_limit is None:
            block_gas_limit = self._provider.get_block_gas_limit()
        if buffer_multiplier is None:
            buffer_multiplier = self._buffer_multiplier
        return add_gas_buffer(estimated_gas, block_gas_limit, buffer_multiplier)

    def prepare_transaction(
        self,
        params: TxLike,
        balance: Union[str, int],
        estimated_gas: str,
    ) -> CanonicalTransaction:
        """
        Normalize, check funds, buffer the gas estimate and attach it.

        Raises ``InsufficientBalanceError`` if the balance cannot cover the
        transaction (checked before and after the buffered gas is attached)
        and ``OversizedEstimateError`` if the estimate cannot fit in a block.
        """
        tx = build_transaction(params)
        if tx.chain_id is None:
            chain_id = self._provider.get_chain_id()
            if chain_id is not None:
                tx = tx.with_chain_id(chain_id)

        self._require_balance(tx, balance)

        block_gas_limit = self._provider.get_block_gas_limit()
        if exceeds_block_limit(estimated_gas, block_gas_limit):
            estimated = hex_to_int(estimated_gas, "estimatedGas")
            block_limit = hex_to_int(block_gas_limit, "blockGasLimit")
            raise OversizedEstimateError(
                f"gas estimate {estimated} exceeds block gas limit {block_limit}",
                estimated_gas=estimated,
                block_gas_limit=block_limit,
            )

        gas = add_gas_buffer(estimated_gas, block_gas_limit, self._buffer_multiplier)
        tx = tx.with_gas(gas)
        self._require_balance(tx, balance)

        logger.info(
            "prepared tx to=%s gas=%s chainId=%s", tx.to, tx.gas, tx.chain_id
        )
        return tx

    @staticmethod
    def _require_balance(tx: CanonicalTransaction, balance: Union[str, int]) -> None:
        required = max_transaction_cost(tx)
        available = parse_quantity(balance, "balance")
        if available < required:
            raise InsufficientBalanceError(
                f"insufficient balance: need {required}, have {available}",
                required=required,
                available=available,
            )


def _validate_multiplier(value: object) -> Fraction:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidParameterError("buffer multiplier must be a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise InvalidParameterError("buffer multiplier must be finite")
    if value <= 0:
        raise InvalidParameterError("buffer multiplier must be positive")
    if isinstance(value, int):
        return Fraction(value)
    # str() keeps the decimal the caller wrote (1.1 -> 11/10, not the float)
    return Fraction(str(value))


def _optional_quantity(value: object, field: str) -> int:
    if value is None:
        return 0
    return parse_quantity(value, field)


def _hex_field(value: object, field: str) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return int_to_hex(value)
    raise ParseError(f"{field} must be a hex string", field)


def _address_field(value: object, field: str) -> Optional[str]:
    if value is None or value in ("", "0x"):
        return None
    if not isinstance(value, str):
        raise InvalidParameterError(f"{field} must be a hex address string")
    return value
