# overrides.py
"""State-override entries in the shape ``eth_call`` expects."""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from web3 import Web3

from .core.layout import UINT256_MAX, LayoutConvention, word_to_hex
from .exceptions import InvalidAmountError

Amount = Union[int, str]
OverrideMap = Dict[str, Dict[str, Dict[str, str]]]


def parse_amount(amount: Amount) -> int:
    """Accept an int or a base-10 / 0x-hex string and check it fits in uint256."""
    if isinstance(amount, bool):
        raise InvalidAmountError(f"Invalid amount: {amount!r}")
    if isinstance(amount, str):
        text = amount.strip()
        try:
            value = int(text, 16) if text.lower().startswith("0x") else int(text)
        except ValueError as e:
            raise InvalidAmountError(f"Invalid amount: {amount!r}") from e
    elif isinstance(amount, int):
        value = amount
    else:
        raise InvalidAmountError(f"Invalid amount: {amount!r}")
    if value < 0 or value > UINT256_MAX:
        raise InvalidAmountError(f"Amount {value} does not fit in uint256")
    return value


@dataclass(frozen=True)
class MockData:
    """A single storage override: write ``value`` at ``storage_key`` of ``token``."""

    token: str
    storage_key: bytes
    value: int
    convention: Optional[LayoutConvention] = None

    @property
    def is_vyper(self) -> bool:
        return self.convention is not None and self.convention.is_vyper

    @property
    def slot(self) -> str:
        return word_to_hex(self.storage_key)

    @property
    def value_hex(self) -> str:
        return word_to_hex(self.value)

    def to_override(self) -> OverrideMap:
        return {
            Web3.to_checksum_address(self.token): {"stateDiff": {self.slot: self.value_hex}}
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token": Web3.to_checksum_address(self.token),
            "slot": self.slot,
            "value": self.value_hex,
            "isVyper": self.is_vyper,
        }


def merge_overrides(*mocks: MockData) -> OverrideMap:
    """Combine several mocks into one override map; later mocks win on the same key."""
    overrides: OverrideMap = {}
    for mock in mocks:
        for address, entry in mock.to_override().items():
            state_diff = overrides.setdefault(address, {"stateDiff": {}})["stateDiff"]
            state_diff.update(entry["stateDiff"])
    return overrides
