# core/cache.py
"""
Per-token memoization of discovered storage layouts.

A cache is owned by the resolver that fills it. Resolvers for different
mappings (balances, approvals) keep separate caches because the same token
stores them at different slots.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

import structlog

from .layout import LayoutConvention, normalize_address

logger = structlog.get_logger()


@dataclass(frozen=True)
class SlotRecord:
    token: str
    slot_index: int
    convention: LayoutConvention
    discovered_at: float = field(default_factory=time.time)

    @property
    def is_vyper(self) -> bool:
        return self.convention.is_vyper

    def to_dict(self) -> Dict[str, object]:
        return {
            "token": self.token,
            "slot": self.slot_index,
            "isVyper": self.is_vyper,
            "ts": self.discovered_at,
        }


class SlotCache:
    """
    Thread-safe map from normalized token address to a SlotRecord.

    Records are replaced whole, never merged. When ``ttl`` is set, records older
    than ``ttl`` seconds are dropped on lookup and the caller searches again.

    A cache holds the layouts of one mapping kind. The first resolver to use it
    claims it for its kind (``"balance"`` or ``"approval"``), and any resolver of
    another kind is refused, since a token's balance slot says nothing about its
    approval slot.
    """

    def __init__(
        self,
        ttl: Optional[float] = None,
        clock: Callable[[], float] = time.time,
        kind: Optional[str] = None,
    ):
        self.ttl = ttl
        self.kind = kind
        self._clock = clock
        self._records: Dict[str, SlotRecord] = {}
        self._token_locks: Dict[str, threading.Lock] = {}
        self._lock = threading.RLock()

    def claim(self, kind: str) -> "SlotCache":
        """
        Bind the cache to ``kind`` on first use.

        Raises:
            ValueError: The cache already holds layouts of another kind
        """
        with self._lock:
            if self.kind is None:
                self.kind = kind
            elif self.kind != kind:
                raise ValueError(
                    f"SlotCache holds {self.kind} layouts and cannot be shared with a {kind} resolver"
                )
        return self

    def get(self, token: str) -> Optional[SlotRecord]:
        key = normalize_address(token)
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return None
            if self.ttl is not None and self._clock() - record.discovered_at > self.ttl:
                logger.debug("Slot record expired", token=key, slot=record.slot_index)
                del self._records[key]
                return None
            return record

    def set(self, token: str, slot_index: int, convention: LayoutConvention) -> SlotRecord:
        key = normalize_address(token)
        record = SlotRecord(
            token=key,
            slot_index=slot_index,
            convention=convention,
            discovered_at=self._clock(),
        )
        with self._lock:
            self._records[key] = record
        logger.debug(
            "Cached slot record",
            token=key,
            slot=slot_index,
            convention=convention.value,
        )
        return record

    def invalidate(self, token: str) -> None:
        with self._lock:
            self._records.pop(normalize_address(token), None)

    def clear(self) -> None:
        """Drop every record along with the per-token search locks."""
        with self._lock:
            self._records.clear()
            self._token_locks.clear()

    def lock_for(self, token: str) -> threading.Lock:
        """Lock serializing searches for one token; distinct tokens never contend."""
        key = normalize_address(token)
        with self._lock:
            lock = self._token_locks.get(key)
            if lock is None:
                lock = self._token_locks[key] = threading.Lock()
            return lock

    def __contains__(self, token: str) -> bool:
        return self.get(token) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
