"""Ordered Merkle-Patricia trie roots for transaction and withdrawal lists.

Only the root is needed, so the trie is built in one pass from the full
key/value set instead of through incremental inserts.
"""

from typing import Sequence, Union

import rlp
from Crypto.Hash import keccak

Node = Union[bytes, list]


def keccak256(data: bytes) -> bytes:
    h = keccak.new(digest_bits=256)
    h.update(data)
    return h.digest()


EMPTY_TRIE_ROOT = keccak256(rlp.encode(b""))
EMPTY_OMMERS_HASH = keccak256(rlp.encode([]))


def _to_nibbles(key: bytes) -> tuple[int, ...]:
    out = []
    for b in key:
        out.append(b >> 4)
        out.append(b & 0x0F)
    return tuple(out)


def _hex_prefix(nibbles: Sequence[int], is_leaf: bool) -> bytes:
    flag = 2 if is_leaf else 0
    if len(nibbles) % 2:
        packed = [flag + 1] + list(nibbles)
    else:
        packed = [flag, 0] + list(nibbles)
    return bytes(packed[i] << 4 | packed[i + 1] for i in range(0, len(packed), 2))


def _common_prefix_length(items: list[tuple[tuple[int, ...], bytes]], depth: int) -> int:
    first = items[0][0]
    length = 0
    limit = min(len(key) for key, _ in items) - depth
    while length < limit:
        nibble = first[depth + length]
        if any(key[depth + length] != nibble for key, _ in items):
            break
        length += 1
    return length


def _node_ref(node: Node) -> Node:
    """Embed nodes shorter than 32 bytes, hash the rest."""
    encoded = rlp.encode(node)
    if len(encoded) < 32:
        return node
    return keccak256(encoded)


def _build(items: list[tuple[tuple[int, ...], bytes]], depth: int) -> Node:
    if not items:
        return b""

    if len(items) == 1:
        key, value = items[0]
        return [_hex_prefix(key[depth:], True), value]

    shared = _common_prefix_length(items, depth)
    if shared:
        child = _build(items, depth + shared)
        return [_hex_prefix(items[0][0][depth:depth + shared], False), _node_ref(child)]

    branch: list[Node] = [b""] * 17
    for key, value in items:
        if len(key) == depth:
            branch[16] = value
    for nibble in range(16):
        sub = [(key, value) for key, value in items if len(key) > depth and key[depth] == nibble]
        if sub:
            branch[nibble] = _node_ref(_build(sub, depth + 1))
    return branch


def trie_root(pairs: Sequence[tuple[bytes, bytes]]) -> bytes:
    """Root hash of a trie holding the given (key, value) pairs."""
    if not pairs:
        return EMPTY_TRIE_ROOT
    items = sorted((_to_nibbles(k), v) for k, v in pairs)
    return keccak256(rlp.encode(_build(items, 0)))


def ordered_trie_root(values: Sequence[bytes]) -> bytes:
    """Root of a trie keyed by the RLP encoding of each value's list index."""
    return trie_root([(rlp.encode(i), value) for i, value in enumerate(values)])
