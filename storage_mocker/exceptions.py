# exceptions.py
"""
Error taxonomy for slot resolution and mock data generation.

Every failure is terminal for the resolution call that raised it. Callers can
tell the kinds apart to decide whether to retry with a larger ``max_slots`` or
with the fallback slot enabled.
"""
from typing import Optional


class StorageMockerError(Exception):
    """Base class for all errors raised by storage_mocker."""


class SlotResolutionError(StorageMockerError):
    """A storage slot could not be resolved for a token."""

    def __init__(self, message: str, token: Optional[str] = None, max_slots: Optional[int] = None):
        super().__init__(message)
        self.token = token
        self.max_slots = max_slots


class NoBalanceError(SlotResolutionError):
    """The holder's balance is zero, so there is no value to search for."""

    def __init__(self, token: str, holder: str):
        super().__init__(f"Holder {holder} has no balance of token {token}", token=token)
        self.holder = holder


class SlotNotFoundError(SlotResolutionError):
    """No candidate slot in range matched the oracle value under either convention."""


class AllowanceNotFoundError(SlotResolutionError):
    """The owner's allowance for the spender is zero and fallback was not requested."""

    def __init__(self, token: str, owner: str, spender: str):
        super().__init__(
            f"Allowance of {owner} for spender {spender} on token {token} is zero",
            token=token,
        )
        self.owner = owner
        self.spender = spender


class StorageReadError(StorageMockerError):
    """The underlying node failed to answer a storage read or contract call."""


class InvalidAmountError(StorageMockerError, ValueError):
    """An override amount does not fit in an unsigned 256-bit word."""
