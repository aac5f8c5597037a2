from .layout import (
    CONVENTIONS,
    LayoutConvention,
    approval_base_hash,
    approval_storage_key,
    balance_storage_key,
    hex_to_int,
    nested_storage_key,
    normalize_address,
    to_word,
    word_to_hex,
)
from .cache import SlotCache, SlotRecord
from .scanner import ScanHit, scan_slots

__all__ = [
    "CONVENTIONS",
    "LayoutConvention",
    "approval_base_hash",
    "approval_storage_key",
    "balance_storage_key",
    "hex_to_int",
    "nested_storage_key",
    "normalize_address",
    "to_word",
    "word_to_hex",
    "SlotCache",
    "SlotRecord",
    "ScanHit",
    "scan_slots",
]
