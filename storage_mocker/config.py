# config.py
"""Runtime settings, read from the environment with the defaults below."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_WEB3_PROVIDER_URL = "http://localhost:8545"
DEFAULT_MAX_SLOTS = 30
DEFAULT_FALLBACK_SLOT = 10


def _optional_float(value: Optional[str]) -> Optional[float]:
    if value is None or value.strip() == "":
        return None
    return float(value)


@dataclass
class Settings:
    web3_provider_url: str = DEFAULT_WEB3_PROVIDER_URL
    max_slots: int = DEFAULT_MAX_SLOTS
    fallback_slot: int = DEFAULT_FALLBACK_SLOT
    cache_ttl: Optional[float] = None
    max_workers: int = 1
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 5000

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            web3_provider_url=env.get("WEB3_PROVIDER_URL", DEFAULT_WEB3_PROVIDER_URL),
            max_slots=int(env.get("STORAGE_MOCKER_MAX_SLOTS", DEFAULT_MAX_SLOTS)),
            fallback_slot=int(env.get("STORAGE_MOCKER_FALLBACK_SLOT", DEFAULT_FALLBACK_SLOT)),
            cache_ttl=_optional_float(env.get("STORAGE_MOCKER_CACHE_TTL")),
            max_workers=int(env.get("STORAGE_MOCKER_MAX_WORKERS", 1)),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            host=env.get("HOST", "0.0.0.0"),
            port=int(env.get("PORT", 5000)),
        )
