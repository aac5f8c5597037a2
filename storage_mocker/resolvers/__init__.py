from .balance import BalanceSlot, BalanceSlotResolver, get_erc20_balance_storage_slot
from .approval import ApprovalSlot, ApprovalSlotResolver, get_erc20_approval_storage_slot
from .permit2 import (
    PERMIT2_ADDRESS,
    PERMIT2_ALLOWANCE_SLOT,
    compute_permit2_allowance_storage_slot,
    generate_mock_permit2_allowance,
    pack_permit2_allowance,
)

__all__ = [
    "BalanceSlot",
    "BalanceSlotResolver",
    "get_erc20_balance_storage_slot",
    "ApprovalSlot",
    "ApprovalSlotResolver",
    "get_erc20_approval_storage_slot",
    "PERMIT2_ADDRESS",
    "PERMIT2_ALLOWANCE_SLOT",
    "compute_permit2_allowance_storage_slot",
    "generate_mock_permit2_allowance",
    "pack_permit2_allowance",
]
