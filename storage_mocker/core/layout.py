# core/layout.py
"""
Storage key formulas for mapping-typed contract fields.

Solidity and Vyper disagree on the argument order used when a mapping key is
hashed together with the slot that precedes it:

    Solidity: keccak256(abi.encode(key, slot))
    Vyper:    keccak256(abi.encode(slot, key))

Everything in this module is pure. Encoding goes through ``eth_abi`` so the
32-byte padding matches the compilers bit for bit.
"""

from enum import Enum
from typing import Sequence, Tuple, Union

from eth_abi import encode
from eth_utils import keccak, to_checksum_address

UINT256_MAX = 2**256 - 1

SlotIndex = int
Word = bytes


class LayoutConvention(Enum):
    """Argument order used to derive a mapping entry's storage location."""

    STANDARD = "solidity"
    REVERSED = "vyper"

    @property
    def is_vyper(self) -> bool:
        return self is LayoutConvention.REVERSED

    @classmethod
    def from_is_vyper(cls, is_vyper: bool) -> "LayoutConvention":
        return cls.REVERSED if is_vyper else cls.STANDARD


# Scan order: a Solidity match at an index wins over a Vyper match at the same index.
CONVENTIONS: Tuple[LayoutConvention, ...] = (
    LayoutConvention.STANDARD,
    LayoutConvention.REVERSED,
)


def normalize_address(address: str) -> str:
    """Lowercase hex form used for cache keys."""
    return to_checksum_address(address).lower()


def to_word(value: int) -> Word:
    """Left-pad an unsigned integer to a 32-byte big-endian word."""
    if value < 0 or value > UINT256_MAX:
        raise ValueError(f"Value {value} does not fit in uint256")
    return value.to_bytes(32, "big")


def word_to_hex(word: Union[Word, int]) -> str:
    if isinstance(word, int):
        word = to_word(word)
    return "0x" + word.rjust(32, b"\x00").hex()


def hex_to_int(value: Union[str, bytes, int]) -> int:
    """Interpret a storage word (hex string, raw bytes or int) as uint256."""
    if isinstance(value, int):
        return value
    if isinstance(value, (bytes, bytearray)):
        return int.from_bytes(value, "big")
    text = value[2:] if value.lower().startswith("0x") else value
    return int(text, 16) if text else 0


def _hash_key_and_slot(key: str, slot: SlotIndex, convention: LayoutConvention) -> Word:
    address = to_checksum_address(key)
    if convention is LayoutConvention.STANDARD:
        return keccak(encode(["address", "uint256"], [address, slot]))
    return keccak(encode(["uint256", "address"], [slot, address]))


def _hash_key_and_word(key: str, prior: Word, convention: LayoutConvention) -> Word:
    address = to_checksum_address(key)
    if convention is LayoutConvention.STANDARD:
        return keccak(encode(["address", "bytes32"], [address, prior]))
    return keccak(encode(["bytes32", "address"], [prior, address]))


def balance_storage_key(
    holder: str, slot_index: SlotIndex, convention: LayoutConvention
) -> Word:
    """
    Storage key of ``holder`` in a ``mapping(address => uint256)`` at ``slot_index``.

    Args:
        holder: Mapping key
        slot_index: Declaration-order slot of the mapping
        convention: Argument order of the hash

    Returns:
        The 32-byte storage key
    """
    return _hash_key_and_slot(holder, slot_index, convention)


def approval_base_hash(
    owner: str, slot_index: SlotIndex, convention: LayoutConvention
) -> Word:
    """Location of the inner mapping for ``owner`` (first level of the nesting)."""
    return _hash_key_and_slot(owner, slot_index, convention)


def approval_storage_key(
    owner: str, spender: str, slot_index: SlotIndex, convention: LayoutConvention
) -> Tuple[Word, Word]:
    """
    Storage key of ``allowance[owner][spender]`` for a two-level mapping.

    Args:
        owner: Outer mapping key
        spender: Inner mapping key
        slot_index: Declaration-order slot of the outer mapping
        convention: Argument order used at both levels

    Returns:
        Tuple of (storage key, intermediate hash for the owner)
    """
    base_hash = approval_base_hash(owner, slot_index, convention)
    return _hash_key_and_word(spender, base_hash, convention), base_hash


def nested_storage_key(keys: Sequence[str], slot_index: SlotIndex) -> Word:
    """
    Solidity storage key of ``m[keys[0]][keys[1]]...`` for address-keyed mappings.

    The first key is hashed with the base slot index, each following key with the
    hash produced by the previous level.
    """
    if not keys:
        raise ValueError("At least one mapping key is required")
    location = _hash_key_and_slot(keys[0], slot_index, LayoutConvention.STANDARD)
    for key in keys[1:]:
        location = _hash_key_and_word(key, location, LayoutConvention.STANDARD)
    return location
