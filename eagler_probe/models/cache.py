"""Result cache entry dataclass."""

from __future__ import annotations

from dataclasses import dataclass

from .snapshot import ServerSnapshot


@dataclass
class CacheEntry:
    snapshot: ServerSnapshot
    captured_at: float
