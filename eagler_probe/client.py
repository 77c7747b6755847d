"""Public probe entry point: cache lookup in front of a ProbeSession."""

from __future__ import annotations

import logging
from typing import Callable

from .assembler import now_ms
from .cache import DEFAULT_TTL_S, ResultCache
from .models.settings import Settings
from .models.snapshot import ServerSnapshot
from .session import DEFAULT_TIMEOUT_S, Connector, ProbeSession, websocket_connect

logger = logging.getLogger(__name__)

_SCHEMES = ("ws://", "wss://")


def normalize_target(target: str) -> str:
    """Prefix `wss://` unless the target already names a WebSocket scheme.

    The result is used verbatim as the connection address and the cache key;
    casing and trailing slashes are left untouched.
    """
    if target.startswith(_SCHEMES):
        return target
    return f"wss://{target}"


class ProbeClient:
    def __init__(
        self,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        cache_enabled: bool = True,
        cache_ttl_s: float = DEFAULT_TTL_S,
        cache: ResultCache | None = None,
        connect: Connector = websocket_connect,
        clock_ms: Callable[[], int] = now_ms,
    ) -> None:
        self.timeout_s = timeout_s
        self.cache_enabled = cache_enabled
        self.cache = cache if cache is not None else ResultCache(ttl_s=cache_ttl_s)
        self._connect = connect
        self._clock_ms = clock_ms

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProbeClient":
        return cls(
            timeout_s=settings.PROBE_TIMEOUT_S,
            cache_enabled=settings.PROBE_CACHE_ENABLED,
            cache_ttl_s=settings.PROBE_CACHE_TTL_S,
        )

    async def probe(
        self, target: str, fetch_icon: bool = True, bypass_cache: bool = False
    ) -> ServerSnapshot:
        """Return the status snapshot for `target`.

        Raises one of the `errors.ProbeError` subclasses on failure.
        """
        url = normalize_target(target)
        self.cache.ensure_started()

        if not bypass_cache:
            cached = self.get_cached_result(url)
            if cached is not None:
                return cached

        session = ProbeSession(
            url,
            timeout_s=self.timeout_s,
            fetch_icon=fetch_icon,
            cache=self.cache if self.cache_enabled else None,
            connect=self._connect,
            clock_ms=self._clock_ms,
        )
        return await session.run()

    def get_cached_result(self, target: str) -> ServerSnapshot | None:
        if not self.cache_enabled:
            return None
        return self.cache.get(normalize_target(target))

    def clear_cache(self) -> None:
        self.cache.clear()

    def start(self) -> None:
        self.cache.start()

    async def aclose(self) -> None:
        await self.cache.stop()
