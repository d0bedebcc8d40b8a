"""Execution layer block types built from builder payloads."""

from dataclasses import dataclass, field
from typing import Any, Optional

import rlp
from rlp.exceptions import DecodingError

from .trie import keccak256

MAX_UINT64 = 2**64 - 1
MAX_EXTRA_DATA_BYTES = 32
BYTES_PER_LOGS_BLOOM = 256

LEGACY_TX_TYPE = 0x00
ACCESS_LIST_TX_TYPE = 0x01
DYNAMIC_FEE_TX_TYPE = 0x02
BLOB_TX_TYPE = 0x03
SET_CODE_TX_TYPE = 0x04

# Number of RLP fields in the signed payload of each transaction type.
TX_FIELD_COUNTS = {
    LEGACY_TX_TYPE: 9,
    ACCESS_LIST_TX_TYPE: 11,
    DYNAMIC_FEE_TX_TYPE: 12,
    BLOB_TX_TYPE: 14,
    SET_CODE_TX_TYPE: 13,
}


class PayloadDecodeError(Exception):
    """Executable data could not be turned into a block."""


def parse_quantity(value: Any, name: str, max_value: Optional[int] = MAX_UINT64) -> int:
    if isinstance(value, bool):
        raise PayloadDecodeError(f"{name} must be hex quantity")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str) and value.startswith("0x") and len(value) > 2:
        try:
            result = int(value, 16)
        except ValueError as e:
            raise PayloadDecodeError(f"{name} is invalid hex quantity") from e
    else:
        raise PayloadDecodeError(f"{name} must be hex quantity")
    if result < 0:
        raise PayloadDecodeError(f"{name} must not be negative")
    if max_value is not None and result > max_value:
        raise PayloadDecodeError(f"{name} overflows")
    return result


def parse_bytes(value: Any, name: str, size: Optional[int] = None) -> bytes:
    if not isinstance(value, str) or not value.startswith("0x"):
        raise PayloadDecodeError(f"{name} must be hex")
    try:
        raw = bytes.fromhex(value[2:])
    except ValueError as e:
        raise PayloadDecodeError(f"{name} invalid hex") from e
    if size is not None and len(raw) != size:
        raise PayloadDecodeError(f"{name} must be {size} bytes, got {len(raw)}")
    return raw


@dataclass
class Transaction:
    """An opaque signed transaction, checked only for well-formed encoding."""

    tx_type: int
    raw: bytes

    @classmethod
    def decode(cls, raw: bytes) -> "Transaction":
        if not raw:
            raise ValueError("empty transaction")
        first = raw[0]
        if first >= 0xC0:
            tx_type, payload = LEGACY_TX_TYPE, raw
        elif first in TX_FIELD_COUNTS and first != LEGACY_TX_TYPE:
            tx_type, payload = first, raw[1:]
        else:
            raise ValueError(f"transaction type not supported: {first:#04x}")

        try:
            fields = rlp.decode(payload)
        except DecodingError as e:
            raise ValueError(f"rlp: {e}") from e
        if not isinstance(fields, list):
            raise ValueError("typed transaction payload is not a list")
        if len(fields) != TX_FIELD_COUNTS[tx_type]:
            raise ValueError(
                f"expected {TX_FIELD_COUNTS[tx_type]} fields for type {tx_type}, got {len(fields)}"
            )
        return cls(tx_type=tx_type, raw=raw)

    @property
    def hash(self) -> bytes:
        return keccak256(self.raw)


@dataclass
class Withdrawal:
    index: int
    validator_index: int
    address: bytes
    amount: int

    @classmethod
    def from_dict(cls, data: dict, name: str = "withdrawal") -> "Withdrawal":
        if not isinstance(data, dict):
            raise PayloadDecodeError(f"{name} must be object")
        return cls(
            index=parse_quantity(data.get("index"), f"{name}.index"),
            validator_index=parse_quantity(data.get("validatorIndex"), f"{name}.validatorIndex"),
            address=parse_bytes(data.get("address"), f"{name}.address", 20),
            amount=parse_quantity(data.get("amount"), f"{name}.amount"),
        )

    def to_rlp_list(self) -> list:
        return [self.index, self.validator_index, self.address, self.amount]


@dataclass
class BlockHeader:
    parent_hash: bytes
    ommers_hash: bytes
    coinbase: bytes
    state_root: bytes
    transactions_root: bytes
    receipts_root: bytes
    logs_bloom: bytes
    difficulty: int
    number: int
    gas_limit: int
    gas_used: int
    timestamp: int
    extra_data: bytes
    mix_hash: bytes
    nonce: bytes
    base_fee_per_gas: Optional[int] = None
    withdrawals_root: Optional[bytes] = None
    blob_gas_used: Optional[int] = None
    excess_blob_gas: Optional[int] = None
    parent_beacon_block_root: Optional[bytes] = None

    def to_rlp_list(self) -> list:
        items = [
            self.parent_hash,
            self.ommers_hash,
            self.coinbase,
            self.state_root,
            self.transactions_root,
            self.receipts_root,
            self.logs_bloom,
            self.difficulty,
            self.number,
            self.gas_limit,
            self.gas_used,
            self.timestamp,
            self.extra_data,
            self.mix_hash,
            self.nonce,
        ]
        # Optional fields are fork ordered; each one requires all earlier ones.
        optional = [
            self.base_fee_per_gas,
            self.withdrawals_root,
            self.blob_gas_used,
            self.excess_blob_gas,
            self.parent_beacon_block_root,
        ]
        while optional and optional[-1] is None:
            optional.pop()
        if any(value is None for value in optional):
            raise PayloadDecodeError("header has a gap in its fork-dependent fields")
        return items + optional

    def encode(self) -> bytes:
        return rlp.encode(self.to_rlp_list())

    def hash(self) -> bytes:
        return keccak256(self.encode())


@dataclass
class Block:
    """Canonical execution block materialised from builder executable data."""

    header: BlockHeader
    transactions: list[Transaction] = field(default_factory=list)
    withdrawals: Optional[list[Withdrawal]] = None

    @property
    def hash(self) -> bytes:
        return self.header.hash()

    @property
    def parent_hash(self) -> bytes:
        return self.header.parent_hash

    @property
    def number(self) -> int:
        return self.header.number

    def encode(self) -> bytes:
        """RLP encode the block as header, transactions, ommers[, withdrawals]."""
        items = [
            self.header.to_rlp_list(),
            [_tx_rlp_item(tx) for tx in self.transactions],
            [],
        ]
        if self.withdrawals is not None:
            items.append([w.to_rlp_list() for w in self.withdrawals])
        return rlp.encode(items)


def _tx_rlp_item(tx: Transaction):
    # Legacy transactions are embedded as lists, typed ones as opaque byte strings.
    if tx.tx_type == LEGACY_TX_TYPE:
        return rlp.decode(tx.raw)
    return tx.raw
