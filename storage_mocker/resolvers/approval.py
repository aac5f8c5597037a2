# resolvers/approval.py
"""
Discovery of the storage slot backing ``allowance(owner, spender)``.

Same brute-force approach as the balance search, applied to the two-level
``mapping(address owner => mapping(address spender => uint256))``. A zero
allowance gives the search nothing to match, so in that case the only way
forward is the opt-in fallback slot.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import structlog

from ..core.cache import SlotCache, SlotRecord
from ..core.layout import LayoutConvention, approval_storage_key, word_to_hex
from ..core.scanner import scan_slots
from ..exceptions import AllowanceNotFoundError, SlotNotFoundError

logger = structlog.get_logger()

DEFAULT_MAX_SLOTS = 30
# Most common declaration-order slot for the allowances mapping of deployed tokens
DEFAULT_FALLBACK_SLOT = 10
CACHE_KIND = "approval"


@dataclass(frozen=True)
class ApprovalSlot:
    """
    Resolved approval layout for one (owner, spender) pair.

    Attributes:
        slot_index: Declaration-order slot of the outer mapping
        convention: Layout convention of the token
        slot_hash: Intermediate hash locating the owner's inner mapping
        storage_key: Final key of ``allowance[owner][spender]``
        allowance: Oracle allowance read during the search (None when served from cache)
        verified: False only for an unverified fallback guess
    """

    slot_index: int
    convention: LayoutConvention
    slot_hash: bytes
    storage_key: bytes
    allowance: Optional[int] = None
    verified: bool = True

    @property
    def is_vyper(self) -> bool:
        return self.convention.is_vyper

    def to_dict(self) -> Dict[str, Any]:
        return {
            "slot": hex(self.slot_index),
            "slotHash": word_to_hex(self.slot_hash),
            "storageKey": word_to_hex(self.storage_key),
            "isVyper": self.is_vyper,
            "verified": self.verified,
        }


class ApprovalSlotResolver:
    """
    Finds and memoizes the allowances mapping slot per token.

    Args:
        reader: Source of storage words and ``allowance`` results (see TokenReader)
        cache: Cache to consult and fill; a private one is created if omitted
        max_workers: Concurrent storage probes per search
        fallback_slot: Slot index assumed when ``use_fallback`` is requested
    """

    def __init__(
        self,
        reader,
        cache: Optional[SlotCache] = None,
        max_workers: int = 1,
        fallback_slot: int = DEFAULT_FALLBACK_SLOT,
    ):
        self.reader = reader
        self.cache = (cache if cache is not None else SlotCache()).claim(CACHE_KIND)
        self.max_workers = max_workers
        self.fallback_slot = fallback_slot

    def resolve(
        self,
        token: str,
        owner: str,
        spender: str,
        max_slots: int = DEFAULT_MAX_SLOTS,
        use_fallback: bool = False,
    ) -> ApprovalSlot:
        """
        Resolve the allowances slot of ``token`` using ``owner``'s approval of
        ``spender`` as the oracle.

        Raises:
            AllowanceNotFoundError: The allowance is zero and ``use_fallback`` is off
            SlotNotFoundError: A nonzero allowance matched no candidate, fallback included
            StorageReadError: The node failed a read
        """
        record = self.cache.get(token)
        if record is None:
            with self.cache.lock_for(token):
                record = self.cache.get(token)
                if record is None:
                    return self._search(token, owner, spender, max_slots, use_fallback)
        return self._from_record(owner, spender, record)

    def _from_record(self, owner: str, spender: str, record: SlotRecord) -> ApprovalSlot:
        storage_key, slot_hash = approval_storage_key(
            owner, spender, record.slot_index, record.convention
        )
        return ApprovalSlot(record.slot_index, record.convention, slot_hash, storage_key)

    @staticmethod
    def _probe(reader, token: str, owner: str, spender: str):
        def probe(slot_index: int, convention: LayoutConvention) -> bytes:
            storage_key, _ = approval_storage_key(owner, spender, slot_index, convention)
            return reader.get_storage_at(token, storage_key)

        return probe

    def _search(
        self, token: str, owner: str, spender: str, max_slots: int, use_fallback: bool
    ) -> ApprovalSlot:
        if max_slots < 0:
            raise ValueError("max_slots must be non-negative")

        # One block for the oracle and every probe of this search
        reader = self.reader.pinned()
        allowance = reader.allowance(token, owner, spender)

        if allowance > 0:
            logger.info(
                "Searching approval slot",
                token=token,
                owner=owner,
                spender=spender,
                max_slots=max_slots,
            )
            hit = scan_slots(
                self._probe(reader, token, owner, spender),
                allowance,
                max_slots,
                max_workers=self.max_workers,
            )
            if hit is not None:
                return self._found(token, owner, spender, hit.slot_index, hit.convention, allowance)
            if not use_fallback:
                raise SlotNotFoundError(
                    f"Unable to find approval slot for {token} in {max_slots} slots",
                    token=token,
                    max_slots=max_slots,
                )
        elif not use_fallback:
            raise AllowanceNotFoundError(token, owner, spender)

        return self._fallback(reader, token, owner, spender, allowance, max_slots)

    def _fallback(
        self,
        reader,
        token: str,
        owner: str,
        spender: str,
        allowance: int,
        max_slots: int,
    ) -> ApprovalSlot:
        slot_index = self.fallback_slot
        logger.warning(
            "Falling back to assumed approval slot",
            token=token,
            slot=slot_index,
            allowance=allowance,
        )
        hit = scan_slots(
            self._probe(reader, token, owner, spender),
            allowance,
            slot_index + 1,
            start=slot_index,
        )

        if allowance > 0:
            if hit is None:
                raise SlotNotFoundError(
                    f"Unable to find approval slot for {token}, fallback slot {slot_index} did not match",
                    token=token,
                    max_slots=max_slots,
                )
            return self._found(token, owner, spender, hit.slot_index, hit.convention, allowance)

        # A zero allowance matches any unused key, so this is a guess and stays out of the cache
        convention = hit.convention if hit is not None else LayoutConvention.STANDARD
        storage_key, slot_hash = approval_storage_key(owner, spender, slot_index, convention)
        return ApprovalSlot(
            slot_index,
            convention,
            slot_hash,
            storage_key,
            allowance=allowance,
            verified=False,
        )

    def _found(
        self,
        token: str,
        owner: str,
        spender: str,
        slot_index: int,
        convention: LayoutConvention,
        allowance: int,
    ) -> ApprovalSlot:
        self.cache.set(token, slot_index, convention)
        logger.info(
            "Found approval slot",
            token=token,
            slot=slot_index,
            convention=convention.value,
        )
        storage_key, slot_hash = approval_storage_key(owner, spender, slot_index, convention)
        return ApprovalSlot(slot_index, convention, slot_hash, storage_key, allowance=allowance)


def get_erc20_approval_storage_slot(
    reader,
    token: str,
    owner: str,
    spender: str,
    max_slots: int = DEFAULT_MAX_SLOTS,
    use_fallback: bool = False,
    cache: Optional[SlotCache] = None,
) -> ApprovalSlot:
    """One-shot resolution; pass an approval ``cache`` to share memoized layouts across calls."""
    return ApprovalSlotResolver(reader, cache).resolve(
        token, owner, spender, max_slots, use_fallback
    )
