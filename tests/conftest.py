import copy
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Tuple

import pytest

from storage_mocker.core.layout import (
    LayoutConvention,
    approval_storage_key,
    balance_storage_key,
    to_word,
)

# Addresses from the live scenarios; any 20-byte value works for the fake chain
USDC_BASE = "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913"
CRV = "0xd533a949740bb3306d119cc777fa900ba034cd52"
HOLDER = "0x0000c3caa36e2d9a8cd5269c976ede05018f0000"
SPENDER = "0x000000000022d473030f116ddee9f6b43ac78ba3"
MOCK_ADDRESS = "0x3e34b27a9bf37d8424e1a58ac7fc4d06914b76b9"
OTHER_TOKEN = "0x1111111111111111111111111111111111111111"


@dataclass(frozen=True)
class FakeToken:
    balance_slot: int
    approval_slot: int
    convention: LayoutConvention


class FakeChain:
    """
    In-memory stand-in for TokenReader.

    Each deployed token answers balanceOf/allowance by reading its own storage
    at its true layout, so writing an override into storage is visible through
    the contract queries exactly as in an eth_call with state overrides.
    """

    def __init__(self):
        self.tokens: Dict[str, FakeToken] = {}
        self.storage: Dict[str, Dict[bytes, int]] = defaultdict(dict)
        self.storage_reads = 0
        self.balance_calls = 0
        self.allowance_calls = 0
        self.pinned_calls = 0

    def deploy(self, token: str, balance_slot: int, approval_slot: int, convention: LayoutConvention):
        self.tokens[token.lower()] = FakeToken(balance_slot, approval_slot, convention)
        return self

    def mint(self, token: str, holder: str, amount: int):
        t = self.tokens[token.lower()]
        self.storage[token.lower()][balance_storage_key(holder, t.balance_slot, t.convention)] = amount
        return self

    def approve(self, token: str, owner: str, spender: str, amount: int):
        t = self.tokens[token.lower()]
        key, _ = approval_storage_key(owner, spender, t.approval_slot, t.convention)
        self.storage[token.lower()][key] = amount
        return self

    def poke(self, token: str, key: bytes, value: int):
        self.storage[token.lower()][key] = value
        return self

    def with_overrides(self, overrides) -> "FakeChain":
        simulated = FakeChain()
        simulated.tokens = dict(self.tokens)
        simulated.storage = copy.deepcopy(self.storage)
        for address, entry in overrides.items():
            for key, value in entry["stateDiff"].items():
                simulated.storage[address.lower()][bytes.fromhex(key[2:])] = int(value, 16)
        return simulated

    # TokenReader interface

    def pinned(self) -> "FakeChain":
        self.pinned_calls += 1
        return self

    def get_storage_at(self, address: str, key: bytes) -> bytes:
        self.storage_reads += 1
        return to_word(self.storage[address.lower()].get(key, 0))

    def balance_of(self, token: str, account: str) -> int:
        self.balance_calls += 1
        t = self.tokens[token.lower()]
        return self.storage[token.lower()].get(balance_storage_key(account, t.balance_slot, t.convention), 0)

    def allowance(self, token: str, owner: str, spender: str) -> int:
        self.allowance_calls += 1
        t = self.tokens[token.lower()]
        key, _ = approval_storage_key(owner, spender, t.approval_slot, t.convention)
        return self.storage[token.lower()].get(key, 0)


@pytest.fixture
def chain():
    """USDC-like Solidity token (balances 9, allowances 10) and CRV-like Vyper token (3, 4)."""
    fake = FakeChain()
    fake.deploy(USDC_BASE, 9, 10, LayoutConvention.STANDARD)
    fake.deploy(CRV, 3, 4, LayoutConvention.REVERSED)
    fake.mint(USDC_BASE, HOLDER, 8_600_000)
    fake.mint(CRV, HOLDER, 8_600_000)
    fake.approve(USDC_BASE, HOLDER, SPENDER, 2**160 - 1)
    fake.approve(CRV, HOLDER, SPENDER, 10**24)
    return fake
