# resolvers/balance.py
"""
Discovery of the storage slot backing ``balanceOf`` for arbitrary tokens.

The holder's real balance is the oracle: each candidate slot index is hashed
with the holder's address under both layout conventions and the storage word
at the resulting key is compared against it. There are better ways of doing
this with a local EVM, but plain RPC reads work against any node and any chain.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import structlog

from ..core.cache import SlotCache, SlotRecord
from ..core.layout import LayoutConvention, balance_storage_key, hex_to_int, word_to_hex
from ..core.scanner import scan_slots
from ..exceptions import NoBalanceError, SlotNotFoundError

logger = structlog.get_logger()

DEFAULT_MAX_SLOTS = 30
CACHE_KIND = "balance"


@dataclass(frozen=True)
class BalanceSlot:
    slot_index: int
    convention: LayoutConvention
    balance: int
    storage_key: bytes

    @property
    def is_vyper(self) -> bool:
        return self.convention.is_vyper

    def to_dict(self) -> Dict[str, Any]:
        return {
            "slot": hex(self.slot_index),
            "balance": str(self.balance),
            "storageKey": word_to_hex(self.storage_key),
            "isVyper": self.is_vyper,
        }


class BalanceSlotResolver:
    """
    Finds and memoizes the balances mapping slot per token.

    Args:
        reader: Source of storage words and ``balanceOf`` results (see TokenReader)
        cache: Cache to consult and fill; a private one is created if omitted
        max_workers: Concurrent storage probes per search
    """

    def __init__(self, reader, cache: Optional[SlotCache] = None, max_workers: int = 1):
        self.reader = reader
        self.cache = (cache if cache is not None else SlotCache()).claim(CACHE_KIND)
        self.cache = cache if cache is not None else SlotCache()
        self.max_workers = max_workers

    def resolve(self, token: str, holder: str, max_slots: int = DEFAULT_MAX_SLOTS) -> BalanceSlot:
        """
        Resolve the balances slot of ``token`` using ``holder`` as the oracle.

        A cached layout is trusted as is: the holder's storage word is read at the
        cached location and returned without comparing it to ``balanceOf``.

        Raises:
            NoBalanceError: The holder's balance is zero
            SlotNotFoundError: No index below ``max_slots`` matched
            StorageReadError: The node failed a read
        """
        record = self.cache.get(token)
        if record is None:
            with self.cache.lock_for(token):
                # Another thread may have finished the same search while we waited
                record = self.cache.get(token)
                if record is None:
                    return self._search(token, holder, max_slots)
        return self._from_record(token, holder, record)

    def _from_record(self, token: str, holder: str, record: SlotRecord) -> BalanceSlot:
        key = balance_storage_key(holder, record.slot_index, record.convention)
        balance = hex_to_int(self.reader.get_storage_at(token, key))
        logger.debug("Balance slot served from cache", token=token, slot=record.slot_index)
        return BalanceSlot(record.slot_index, record.convention, balance, key)

    def _search(self, token: str, holder: str, max_slots: int) -> BalanceSlot:
        if max_slots < 0:
            raise ValueError("max_slots must be non-negative")

        # One block for the oracle and every probe of this search
        reader = self.reader.pinned()
        balance = reader.balance_of(token, holder)
        if balance == 0:
            raise NoBalanceError(token, holder)

        logger.info(
            "Searching balance slot", token=token, holder=holder, max_slots=max_slots
        )
        hit = scan_slots(
            lambda i, convention: reader.get_storage_at(
                token, balance_storage_key(holder, i, convention)
            ),
            balance,
            max_slots,
            max_workers=self.max_workers,
        )
        if hit is None:
            raise SlotNotFoundError(
                f"Unable to find balance slot for {token} in {max_slots} slots",
                token=token,
                max_slots=max_slots,
            )

        self.cache.set(token, hit.slot_index, hit.convention)
        logger.info(
            "Found balance slot",
            token=token,
            slot=hit.slot_index,
            convention=hit.convention.value,
        )
        return BalanceSlot(
            hit.slot_index,
            hit.convention,
            hit.value,
            balance_storage_key(holder, hit.slot_index, hit.convention),
        )


def get_erc20_balance_storage_slot(
    reader,
    token: str,
    holder: str,
    max_slots: int = DEFAULT_MAX_SLOTS,
    cache: Optional[SlotCache] = None,
) -> BalanceSlot:
    """One-shot resolution; pass a balance ``cache`` to share memoized layouts across calls."""
    return BalanceSlotResolver(reader, cache).resolve(token, holder, max_slots)
