"""Configuration dataclass."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Set


@dataclass
class Settings:
    """Configuration settings for eagler_probe."""

    PROBE_TIMEOUT_S: float
    PROBE_CACHE_ENABLED: bool
    PROBE_CACHE_TTL_S: float
    PROBE_DEBUG: bool
    ICON_DIR: str
    ICON_FORMAT: str
    BOT_TOKEN: str | None
    ALLOWED_CHAT_IDS: Set[int]
    RATE_LIMIT_S: float
