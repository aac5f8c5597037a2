# core/scanner.py
"""Brute-force search over candidate slot indices under both layout conventions."""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import structlog

from .layout import CONVENTIONS, LayoutConvention, hex_to_int

logger = structlog.get_logger()

# probe(slot_index, convention) -> storage word read at the candidate key
Probe = Callable[[int, LayoutConvention], object]


@dataclass(frozen=True)
class ScanHit:
    slot_index: int
    convention: LayoutConvention
    value: int


def _candidates(
    start: int, max_slots: int, conventions: Sequence[LayoutConvention]
) -> List[Tuple[int, LayoutConvention]]:
    return [(i, c) for i in range(start, max_slots) for c in conventions]


def scan_slots(
    probe: Probe,
    expected: int,
    max_slots: int,
    conventions: Sequence[LayoutConvention] = CONVENTIONS,
    start: int = 0,
    max_workers: int = 1,
) -> Optional[ScanHit]:
    """
    Find the lowest slot index whose computed key holds ``expected``.

    Candidates are ordered by slot index, then by position in ``conventions``.
    Sequential scans stop at the first match. Parallel scans (``max_workers > 1``)
    read every candidate and pick the lowest match, so both modes return the
    same hit.

    Args:
        probe: Reads the storage word for a (slot index, convention) candidate
        expected: Oracle value, compared as an unsigned integer
        max_slots: Exclusive upper bound on the slot index
        conventions: Conventions tried at each index, in order
        start: First slot index to try
        max_workers: Concurrent probes; 1 scans sequentially

    Returns:
        The matching candidate, or None when nothing in range matches
    """
    candidates = _candidates(start, max_slots, conventions)

    if max_workers <= 1:
        for slot_index, convention in candidates:
            value = hex_to_int(probe(slot_index, convention))
            logger.debug(
                "Probed slot",
                slot=slot_index,
                convention=convention.value,
                value=value,
            )
            if value == expected:
                return ScanHit(slot_index, convention, value)
        return None

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        values = list(executor.map(lambda c: hex_to_int(probe(*c)), candidates))
    for (slot_index, convention), value in zip(candidates, values):
        if value == expected:
            return ScanHit(slot_index, convention, value)
    return None
