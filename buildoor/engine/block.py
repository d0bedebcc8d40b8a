"""Conversion of engine API executable data into an execution block."""

import logging
from typing import Any, Optional

import rlp

from .trie import EMPTY_OMMERS_HASH, ordered_trie_root
from .types import (
    BYTES_PER_LOGS_BLOOM,
    MAX_EXTRA_DATA_BYTES,
    Block,
    BlockHeader,
    PayloadDecodeError,
    Transaction,
    Withdrawal,
    parse_bytes,
    parse_quantity,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    "parentHash",
    "feeRecipient",
    "stateRoot",
    "receiptsRoot",
    "logsBloom",
    "prevRandao",
    "blockNumber",
    "gasLimit",
    "gasUsed",
    "timestamp",
    "extraData",
    "baseFeePerGas",
    "blockHash",
    "transactions",
)


def decode_transactions(raw_txs: Any) -> list[Transaction]:
    if not isinstance(raw_txs, list):
        raise PayloadDecodeError("transactions must be a list")
    txs = []
    for i, raw in enumerate(raw_txs):
        tx_bytes = parse_bytes(raw, f"transactions[{i}]")
        try:
            txs.append(Transaction.decode(tx_bytes))
        except ValueError as e:
            raise PayloadDecodeError(f"invalid transaction {i}: {e}") from e
    return txs


def decode_withdrawals(raw_withdrawals: Any) -> Optional[list[Withdrawal]]:
    if raw_withdrawals is None:
        return None
    if not isinstance(raw_withdrawals, list):
        raise PayloadDecodeError("withdrawals must be a list")
    return [
        Withdrawal.from_dict(w, f"withdrawals[{i}]")
        for i, w in enumerate(raw_withdrawals)
    ]


def _optional_quantity(data: dict, key: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    return parse_quantity(value, key)


def _build_block(data: dict) -> Block:
    if not isinstance(data, dict):
        raise PayloadDecodeError("executable data must be an object")

    missing = [key for key in REQUIRED_FIELDS if data.get(key) is None]
    if missing:
        raise PayloadDecodeError(f"missing required field(s): {', '.join(missing)}")

    txs = decode_transactions(data["transactions"])

    extra_data = parse_bytes(data["extraData"], "extraData")
    if len(extra_data) > MAX_EXTRA_DATA_BYTES:
        raise PayloadDecodeError(f"invalid extradata length: {len(extra_data)}")

    logs_bloom = parse_bytes(data["logsBloom"], "logsBloom")
    if len(logs_bloom) != BYTES_PER_LOGS_BLOOM:
        raise PayloadDecodeError(f"invalid logsBloom length: {len(logs_bloom)}")

    base_fee = parse_quantity(data["baseFeePerGas"], "baseFeePerGas", max_value=2**256 - 1)

    withdrawals = decode_withdrawals(data.get("withdrawals"))
    withdrawals_root = None
    if withdrawals is not None:
        withdrawals_root = ordered_trie_root([rlp.encode(w.to_rlp_list()) for w in withdrawals])

    parent_beacon_block_root = None
    if data.get("parentBeaconBlockRoot") is not None:
        parent_beacon_block_root = parse_bytes(
            data["parentBeaconBlockRoot"], "parentBeaconBlockRoot", 32
        )

    header = BlockHeader(
        parent_hash=parse_bytes(data["parentHash"], "parentHash", 32),
        ommers_hash=EMPTY_OMMERS_HASH,
        coinbase=parse_bytes(data["feeRecipient"], "feeRecipient", 20),
        state_root=parse_bytes(data["stateRoot"], "stateRoot", 32),
        transactions_root=ordered_trie_root([tx.raw for tx in txs]),
        receipts_root=parse_bytes(data["receiptsRoot"], "receiptsRoot", 32),
        logs_bloom=logs_bloom,
        difficulty=0,
        number=parse_quantity(data["blockNumber"], "blockNumber"),
        gas_limit=parse_quantity(data["gasLimit"], "gasLimit"),
        gas_used=parse_quantity(data["gasUsed"], "gasUsed"),
        timestamp=parse_quantity(data["timestamp"], "timestamp"),
        extra_data=extra_data,
        mix_hash=parse_bytes(data["prevRandao"], "prevRandao", 32),
        nonce=b"\x00" * 8,
        base_fee_per_gas=base_fee,
        withdrawals_root=withdrawals_root,
        blob_gas_used=_optional_quantity(data, "blobGasUsed"),
        excess_blob_gas=_optional_quantity(data, "excessBlobGas"),
        parent_beacon_block_root=parent_beacon_block_root,
    )
    return Block(header=header, transactions=txs, withdrawals=withdrawals)


def executable_data_to_block(data: dict) -> Block:
    """Build a block from engine API executable data and check its hash.

    The header is rebuilt from the payload fields (transactions and
    withdrawals roots are recomputed, the post-merge constants filled in)
    and its hash must match the ``blockHash`` the payload claims.

    Args:
        data: Executable data object in engine API JSON form

    Returns:
        The materialised block

    Raises:
        PayloadDecodeError: If a field is missing or malformed, a transaction
            does not decode, or the computed block hash differs
    """
    block = _build_block(data)

    want = parse_bytes(data["blockHash"], "blockHash", 32)
    got = block.hash
    if want != got:
        logger.debug(
            f"Block hash mismatch: number={block.number}, "
            f"want=0x{want.hex()}, got=0x{got.hex()}, txs={len(block.transactions)}"
        )
        raise PayloadDecodeError(f"blockhash mismatch, want 0x{want.hex()}, got 0x{got.hex()}")

    return block


def compute_block_hash(data: dict) -> bytes:
    """Hash of the header ``data`` describes, whatever its ``blockHash`` says."""
    return _build_block(data).hash
