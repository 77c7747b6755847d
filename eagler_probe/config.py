"""Central configuration for eagler_probe."""

from __future__ import annotations

import logging
import os
from typing import Set

from .models.settings import Settings

logger = logging.getLogger(__name__)

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _split_ints(s: str) -> Set[int]:
    """Parse comma-separated string into a set of integers.

    Args:
        s: Comma-separated string of integers (e.g., "123,456,789")

    Returns:
        Set of parsed integers. Invalid entries are silently skipped.

    Example:
        >>> _split_ints("123,456,invalid,789")
        {123, 456, 789}
    """
    out = set()
    for part in (s or "").split(","):
        p = part.strip()
        if p.isdigit():
            out.add(int(p))
    return out


def _float(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    try:
        value = float(raw) if raw.strip() else default
    except ValueError:
        logger.warning("Invalid %s=%r; using %s", name, raw, default)
        return default
    return value if value > 0 else default


def _bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    return default


def _read_settings() -> Settings:
    """Read all configuration from environment variables.

    Returns:
        Settings object with all configuration values.

    Note:
        Invalid or non-positive numeric values fall back to defaults.
        Booleans accept 1/true/yes/on and 0/false/no/off (case-insensitive).
    """
    icon_format = (os.environ.get("ICON_FORMAT") or "png").strip().lower()
    if icon_format not in {"png", "rgba"}:
        logger.warning("Invalid ICON_FORMAT=%r; using png", icon_format)
        icon_format = "png"

    return Settings(
        PROBE_TIMEOUT_S=_float("PROBE_TIMEOUT_S", 5.0),
        PROBE_CACHE_ENABLED=_bool("PROBE_CACHE_ENABLED", True),
        PROBE_CACHE_TTL_S=_float("PROBE_CACHE_TTL_S", 60.0),
        PROBE_DEBUG=_bool("PROBE_DEBUG", False),
        ICON_DIR=os.environ.get("ICON_DIR") or os.path.join(os.getcwd(), "server-icons"),
        ICON_FORMAT=icon_format,
        BOT_TOKEN=os.environ.get("BOT_TOKEN") or None,
        ALLOWED_CHAT_IDS=_split_ints(os.environ.get("ALLOWED_CHAT_IDS", "")),
        RATE_LIMIT_S=_float("RATE_LIMIT_S", 1.0),
    )


settings = _read_settings()


def validate_settings() -> None:
    """Log warnings for configuration that disables bot features."""
    if settings.BOT_TOKEN is None:
        logger.warning("BOT_TOKEN is not set; the Telegram bot cannot start")
    if not settings.ALLOWED_CHAT_IDS:
        logger.warning(
            "ALLOWED_CHAT_IDS is empty; guarded commands will be unauthorized."
        )
    if not settings.PROBE_CACHE_ENABLED:
        logger.info("Probe result cache disabled")


# Exported constants
TOKEN: str | None = settings.BOT_TOKEN
ALLOWED: set[int] = settings.ALLOWED_CHAT_IDS
RATE_LIMIT_S: float = settings.RATE_LIMIT_S
DEBUG: bool = settings.PROBE_DEBUG
