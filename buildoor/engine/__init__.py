"""Execution payload decoding into execution blocks."""

from .types import (
    Block,
    BlockHeader,
    Transaction,
    Withdrawal,
    PayloadDecodeError,
)
from .trie import EMPTY_TRIE_ROOT, keccak256, ordered_trie_root
from .block import compute_block_hash, executable_data_to_block

__all__ = [
    "Block",
    "BlockHeader",
    "Transaction",
    "Withdrawal",
    "PayloadDecodeError",
    "EMPTY_TRIE_ROOT",
    "keccak256",
    "ordered_trie_root",
    "compute_block_hash",
    "executable_data_to_block",
]
