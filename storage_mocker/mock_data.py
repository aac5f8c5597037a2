# mock_data.py
"""
State-override data for mocked balances and approvals.

The generators resolve the real layout through a known holder/owner and then
recompute the storage key for an arbitrary ``mock_address`` at the same slot
index and convention.
"""

from typing import Optional

import structlog

from .core.cache import SlotCache
from .core.layout import approval_storage_key, balance_storage_key
from .overrides import Amount, MockData, parse_amount
from .resolvers.approval import ApprovalSlotResolver
from .resolvers.balance import DEFAULT_MAX_SLOTS, BalanceSlotResolver

logger = structlog.get_logger()


class MockDataGenerator:
    """
    Builds balance and approval overrides on top of the slot resolvers.

    Resolvers are created over ``reader`` when not supplied; sharing a generator
    shares its caches.
    """

    def __init__(
        self,
        reader,
        balance_resolver: Optional[BalanceSlotResolver] = None,
        approval_resolver: Optional[ApprovalSlotResolver] = None,
    ):
        self.reader = reader
        self.balance_resolver = balance_resolver or BalanceSlotResolver(reader)
        self.approval_resolver = approval_resolver or ApprovalSlotResolver(reader)

    def generate_mock_balance(
        self,
        token: str,
        holder: str,
        mock_address: str,
        value: Optional[Amount] = None,
        max_slots: int = DEFAULT_MAX_SLOTS,
    ) -> MockData:
        """
        Override giving ``mock_address`` a balance of ``value`` (defaults to the
        holder's real balance).
        """
        amount = parse_amount(value) if value is not None else None
        resolved = self.balance_resolver.resolve(token, holder, max_slots)
        if amount is None:
            amount = resolved.balance
        key = balance_storage_key(mock_address, resolved.slot_index, resolved.convention)
        logger.debug(
            "Generated mock balance",
            token=token,
            mock_address=mock_address,
            slot=resolved.slot_index,
        )
        return MockData(token, key, amount, resolved.convention)

    def generate_mock_approval(
        self,
        token: str,
        owner: str,
        spender: str,
        mock_address: str,
        value: Amount,
        max_slots: int = DEFAULT_MAX_SLOTS,
        use_fallback: bool = False,
    ) -> MockData:
        """
        Override making ``mock_address`` approve ``spender`` for ``value``.

        The layout is resolved through ``owner``'s real approval of ``spender``;
        the spender stays the same in the mocked key.
        """
        amount = parse_amount(value)
        resolved = self.approval_resolver.resolve(
            token, owner, spender, max_slots, use_fallback
        )
        key, _ = approval_storage_key(
            mock_address, spender, resolved.slot_index, resolved.convention
        )
        logger.debug(
            "Generated mock approval",
            token=token,
            mock_address=mock_address,
            spender=spender,
            slot=resolved.slot_index,
            verified=resolved.verified,
        )
        return MockData(token, key, amount, resolved.convention)


def generate_mock_balance_data(
    reader,
    token: str,
    holder: str,
    mock_address: str,
    value: Optional[Amount] = None,
    max_slots: int = DEFAULT_MAX_SLOTS,
    cache: Optional[SlotCache] = None,
) -> MockData:
    generator = MockDataGenerator(reader, balance_resolver=BalanceSlotResolver(reader, cache))
    return generator.generate_mock_balance(token, holder, mock_address, value, max_slots)


def generate_mock_approval_data(
    reader,
    token: str,
    owner: str,
    spender: str,
    mock_address: str,
    value: Amount,
    max_slots: int = DEFAULT_MAX_SLOTS,
    use_fallback: bool = False,
    cache: Optional[SlotCache] = None,
) -> MockData:
    generator = MockDataGenerator(reader, approval_resolver=ApprovalSlotResolver(reader, cache))
    return generator.generate_mock_approval(
        token, owner, spender, mock_address, value, max_slots, use_fallback
    )
