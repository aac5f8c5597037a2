"""
Token storage slot discovery and state-override generation.
"""

# Layout formulas and cache
from .core import (
    LayoutConvention,
    SlotCache,
    SlotRecord,
    approval_storage_key,
    balance_storage_key,
    nested_storage_key,
    scan_slots,
)

# Resolvers
from .resolvers import (
    PERMIT2_ADDRESS,
    ApprovalSlot,
    ApprovalSlotResolver,
    BalanceSlot,
    BalanceSlotResolver,
    compute_permit2_allowance_storage_slot,
    generate_mock_permit2_allowance,
    get_erc20_approval_storage_slot,
    get_erc20_balance_storage_slot,
)

# Overrides
from .overrides import MockData, merge_overrides
from .mock_data import (
    MockDataGenerator,
    generate_mock_approval_data,
    generate_mock_balance_data,
)

from .ethereum import TokenReader
from .exceptions import (
    AllowanceNotFoundError,
    InvalidAmountError,
    NoBalanceError,
    SlotNotFoundError,
    SlotResolutionError,
    StorageMockerError,
    StorageReadError,
)

__version__ = "0.1.0"

__all__ = [
    "LayoutConvention",
    "SlotCache",
    "SlotRecord",
    "approval_storage_key",
    "balance_storage_key",
    "nested_storage_key",
    "scan_slots",
    "PERMIT2_ADDRESS",
    "ApprovalSlot",
    "ApprovalSlotResolver",
    "BalanceSlot",
    "BalanceSlotResolver",
    "compute_permit2_allowance_storage_slot",
    "generate_mock_permit2_allowance",
    "get_erc20_approval_storage_slot",
    "get_erc20_balance_storage_slot",
    "MockData",
    "merge_overrides",
    "MockDataGenerator",
    "generate_mock_approval_data",
    "generate_mock_balance_data",
    "TokenReader",
    "AllowanceNotFoundError",
    "InvalidAmountError",
    "NoBalanceError",
    "SlotNotFoundError",
    "SlotResolutionError",
    "StorageMockerError",
    "StorageReadError",
]
