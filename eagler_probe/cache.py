"""Process-wide probe result cache with TTL expiry and a periodic sweep."""

from __future__ import annotations

import asyncio
import logging
import time
from threading import Lock
from typing import Callable

from .models.cache import CacheEntry
from .models.snapshot import ServerSnapshot

logger = logging.getLogger(__name__)

DEFAULT_TTL_S = 60.0
SWEEP_INTERVAL_S = 60.0


class ResultCache:
    """Map of normalized probe target -> latest completed snapshot.

    Entries older than `ttl_s` are never returned. Independently of TTL,
    the background sweep wipes the whole mapping every `sweep_interval_s`.
    """

    def __init__(
        self,
        ttl_s: float = DEFAULT_TTL_S,
        sweep_interval_s: float = SWEEP_INTERVAL_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_s = ttl_s
        self.sweep_interval_s = sweep_interval_s
        self._clock = clock
        self._lock = Lock()
        self._entries: dict[str, CacheEntry] = {}
        self._sweep_task: asyncio.Task | None = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, target: object) -> bool:
        with self._lock:
            return target in self._entries

    def get(self, target: str) -> ServerSnapshot | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(target)
            if entry is None:
                return None
            if now - entry.captured_at >= self.ttl_s:
                self._entries.pop(target, None)
                logger.debug("Cache expired for %s", target)
                return None
        logger.debug("Cache hit for %s", target)
        return entry.snapshot

    def put(self, target: str, snapshot: ServerSnapshot) -> None:
        entry = CacheEntry(snapshot=snapshot, captured_at=self._clock())
        with self._lock:
            self._entries[target] = entry
        logger.debug("Cached result for %s", target)

    def clear(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        if count:
            logger.debug("Cleared %d cached result(s)", count)

    def sweep_once(self) -> None:
        self.clear()

    # Sweep lifecycle

    @property
    def sweeping(self) -> bool:
        task = self._sweep_task
        return isinstance(task, asyncio.Task) and not task.done()

    def start(self) -> None:
        """Start the sweep task on the running loop (no-op if already running)."""
        if self.sweeping:
            return
        self._sweep_task = asyncio.get_running_loop().create_task(self._sweep_loop())

    def ensure_started(self) -> None:
        """Start the sweep if a loop is running; silently skip otherwise."""
        try:
            self.start()
        except RuntimeError:
            logger.debug("No running event loop; cache sweep not started")

    async def stop(self) -> None:
        task = self._sweep_task
        self._sweep_task = None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _sweep_loop(self) -> None:
        logger.debug("Starting cache sweep loop (interval=%ss)", self.sweep_interval_s)
        while True:
            await asyncio.sleep(self.sweep_interval_s)
            self.sweep_once()
