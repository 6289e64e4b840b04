"""Core type definitions for transaction preparation."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional

import rlp
from eth_utils.address import is_address, to_checksum_address
from eth_utils.crypto import keccak
from rlp.sedes import Binary, big_endian_int, binary

from .errors import InvalidParameterError
from .hex_utils import hex_to_bytes, hex_to_int

ADDRESS_LEN = 20

# JSON-RPC key -> dataclass attribute
_FIELD_NAMES = {
    "to": "to",
    "from": "sender",
    "value": "value",
    "gas": "gas",
    "gasPrice": "gas_price",
    "data": "data",
    "nonce": "nonce",
    "chainId": "chain_id",
}


@dataclass(frozen=True)
class Address:
    """Ethereum address with validation and checksumming."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise TypeError("Address value must be a string")
        if not is_address(self.value):
            raise InvalidParameterError(f"Invalid Ethereum address: {self.value}")
        object.__setattr__(self, "value", to_checksum_address(self.value))

    @classmethod
    def from_string(cls, s: str) -> "Address":
        return cls(s)

    @property
    def checksum(self) -> str:
        return self.value

    @property
    def lower(self) -> str:
        return self.value.lower()

    def to_bytes(self) -> bytes:
        return bytes.fromhex(self.lower[2:])

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Address):
            return self.lower == other.lower
        if isinstance(other, str):
            return self.lower == other.lower()
        return False

    def __hash__(self) -> int:
        return hash(self.lower)


@dataclass(frozen=True)
class TransactionParams:
    """
    Raw transaction parameters as supplied by a dapp or RPC caller.

    Quantities are 0x-prefixed hex strings, ``chain_id`` is a decimal int.
    No validation happens here; see ``chain.tx_utils.build_transaction``.
    """

    to: Optional[str] = None
    sender: Optional[str] = None
    value: Optional[Any] = None
    gas: Optional[Any] = None
    gas_price: Optional[Any] = None
    data: Optional[str] = None
    nonce: Optional[Any] = None
    chain_id: Optional[Any] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "TransactionParams":
        """Build from a JSON-RPC style dict; unknown keys are ignored."""
        if not isinstance(payload, Mapping):
            raise InvalidParameterError("transaction params must be a mapping")
        kwargs = {
            attr: payload[key] for key, attr in _FIELD_NAMES.items() if key in payload
        }
        return cls(**kwargs)

    def to_dict(self) -> dict:
        return _to_rpc_dict(self)


_LEGACY_FIELDS = (
    ("nonce", big_endian_int),
    ("gas_price", big_endian_int),
    ("gas", big_endian_int),
    ("to", Binary.fixed_length(ADDRESS_LEN, allow_empty=True)),
    ("value", big_endian_int),
    ("data", binary),
)


class _UnsignedTransaction(rlp.Serializable):
    fields = _LEGACY_FIELDS


class _UnsignedChainTransaction(rlp.Serializable):
    """EIP-155 signing payload: chain id plus two empty placeholders."""

    fields = _LEGACY_FIELDS + (
        ("chain_id", big_endian_int),
        ("r", big_endian_int),
        ("s", big_endian_int),
    )


@dataclass(frozen=True)
class CanonicalTransaction:
    """
    Normalized legacy transaction, ready for encoding and signing.

    Hex quantities are kept exactly as supplied. When ``chain_id`` is set the
    signing payload follows EIP-155, so a signature is only valid on that
    network. Missing nonce/gas/gasPrice encode as zero, matching how
    unsigned transactions are pre-filled before the caller completes them.
    """

    to: Optional[str] = None
    sender: Optional[str] = None
    value: Optional[str] = None
    gas: Optional[str] = None
    gas_price: Optional[str] = None
    data: Optional[str] = None
    nonce: Optional[str] = None
    chain_id: Optional[int] = None

    @property
    def is_contract_creation(self) -> bool:
        return self.to is None

    def get_chain_id(self) -> Optional[int]:
        return self.chain_id

    def with_gas(self, gas: str) -> "CanonicalTransaction":
        """Return a copy carrying a new gas limit."""
        hex_to_int(gas, "gas")
        return replace(self, gas=gas)

    def with_chain_id(self, chain_id: int) -> "CanonicalTransaction":
        return replace(self, chain_id=chain_id)

    def to_dict(self) -> dict:
        """JSON-RPC dict with hex strings as supplied."""
        return _to_rpc_dict(self)

    def to_signable_dict(self) -> dict:
        """Integer-valued legacy transaction dict accepted by EVM signers."""
        payload: dict[str, object] = {
            "nonce": self._quantity("nonce"),
            "gasPrice": self._quantity("gas_price"),
            "gas": self._quantity("gas"),
            "value": self._quantity("value"),
            "data": f"0x{hex_to_bytes(self.data).hex()}",
        }
        if self.to is not None:
            payload["to"] = Address.from_string(self.to).checksum
        if self.chain_id is not None:
            payload["chainId"] = self.chain_id
        return payload

    def serialize_unsigned(self) -> bytes:
        """RLP-encode the payload a signer hashes."""
        to = Address.from_string(self.to).to_bytes() if self.to is not None else b""
        base = dict(
            nonce=self._quantity("nonce"),
            gas_price=self._quantity("gas_price"),
            gas=self._quantity("gas"),
            to=to,
            value=self._quantity("value"),
            data=hex_to_bytes(self.data),
        )
        if self.chain_id is None:
            return rlp.encode(_UnsignedTransaction(**base))
        return rlp.encode(
            _UnsignedChainTransaction(chain_id=self.chain_id, r=0, s=0, **base)
        )

    def signing_hash(self) -> bytes:
        return keccak(self.serialize_unsigned())

    def _quantity(self, attr: str) -> int:
        value = getattr(self, attr)
        if value is None:
            return 0
        return hex_to_int(value, attr)


def _to_rpc_dict(tx: TransactionParams | CanonicalTransaction) -> dict:
    payload: dict[str, object] = {}
    for key, attr in _FIELD_NAMES.items():
        value = getattr(tx, attr)
        if value is not None:
            payload[key] = value
    return payload
