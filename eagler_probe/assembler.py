"""Correlates the metadata and icon frames of one probe into a snapshot.

The server answers a status request with a JSON metadata frame and, when it
advertises an icon, a raw 64x64 RGBA binary frame. The two may arrive in
either order, and the icon may never arrive at all. `ResponseAssembler`
consumes frames one at a time and reports, after each, whether the probe is
complete.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import Callable

from .errors import ProbeError, ProtocolError
from .models.snapshot import (
    ICON_SIZE,
    ServerSnapshot,
    decode_metadata,
    snapshot_from_payload,
)

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


class DecisionKind(enum.Enum):
    COMPLETE = "complete"
    AWAIT_ICON = "await_icon"
    AWAIT_METADATA = "await_metadata"
    IGNORED = "ignored"
    FATAL = "fatal"


@dataclass(frozen=True)
class Decision:
    kind: DecisionKind
    snapshot: ServerSnapshot | None = None
    error: ProbeError | None = None

    @property
    def terminal(self) -> bool:
        return self.kind in (DecisionKind.COMPLETE, DecisionKind.FATAL)


class ResponseAssembler:
    def __init__(
        self, fetch_icon: bool = True, clock_ms: Callable[[], int] = now_ms
    ) -> None:
        self.fetch_icon = fetch_icon
        self._clock_ms = clock_ms
        self._sent_at_ms: int | None = None
        self._metadata: ServerSnapshot | None = None
        self._icon: bytes | None = None

    @property
    def has_metadata(self) -> bool:
        return self._metadata is not None

    @property
    def has_icon(self) -> bool:
        return self._icon is not None

    def mark_sent(self) -> None:
        """Record when the status request went out (latency baseline)."""
        self._sent_at_ms = self._clock_ms()

    def on_metadata(self, payload: str | bytes) -> Decision:
        try:
            decoded = decode_metadata(payload)
        except ProtocolError as e:
            return self.on_unparseable(payload, e)

        self._metadata = snapshot_from_payload(decoded, self._clock_ms())
        logger.debug("Parsed server response from %r", self._metadata.name)

        if (
            not self.fetch_icon
            or not self._metadata.has_icon
            or self._icon is not None
        ):
            return Decision(DecisionKind.COMPLETE, snapshot=self._finish())
        return Decision(DecisionKind.AWAIT_ICON, snapshot=self._metadata)

    def on_binary(self, data: bytes) -> Decision:
        if len(data) != ICON_SIZE:
            logger.debug("Ignoring %d byte binary frame", len(data))
            return Decision(DecisionKind.IGNORED)
        if not self.fetch_icon:
            logger.debug("Ignoring icon frame; icon not requested")
            return Decision(DecisionKind.IGNORED)

        self._icon = bytes(data)
        logger.debug("Received server icon data (%d bytes)", ICON_SIZE)
        if self._metadata is not None:
            return Decision(DecisionKind.COMPLETE, snapshot=self._finish())
        return Decision(DecisionKind.AWAIT_METADATA)

    def on_unparseable(self, payload: str | bytes, error: Exception) -> Decision:
        logger.debug("Error parsing server response (%d bytes): %s", len(payload), error)
        if not isinstance(error, ProtocolError):
            wrapped = ProtocolError(f"Failed to parse server response: {error}")
            wrapped.__cause__ = error
            error = wrapped
        return Decision(DecisionKind.FATAL, error=error)

    def partial(self) -> ServerSnapshot | None:
        """Best snapshot from what has arrived so far, or None without metadata."""
        if self._metadata is None:
            return None
        return self._finish()

    def _finish(self) -> ServerSnapshot:
        assert self._metadata is not None
        now = self._clock_ms()
        sent_at = self._sent_at_ms if self._sent_at_ms is not None else now
        return self._metadata.completed(self._icon, now - sent_at)
