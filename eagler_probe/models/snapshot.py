"""Server status snapshot dataclass and metadata decoding."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from typing import Any

from ..errors import ProtocolError

ICON_WIDTH = 64
ICON_HEIGHT = 64
ICON_CHANNELS = 4
ICON_SIZE = ICON_WIDTH * ICON_HEIGHT * ICON_CHANNELS  # 16384

DEFAULT_SERVER_NAME = "Unknown Server"


@dataclass(frozen=True)
class ServerSnapshot:
    """Normalized status of one server, as delivered to callers."""

    name: str = DEFAULT_SERVER_NAME
    brand: str | None = None
    version: str | None = None
    cracked: bool = False
    uuid: str | None = None
    server_timestamp: int = 0
    online: int = 0
    max_players: int = 0
    motd: tuple[str, ...] = ()
    has_icon: bool = False
    icon: bytes | None = None
    players: tuple[Any, ...] = ()
    latency_ms: int = 0
    raw: dict[str, Any] = field(default_factory=dict, compare=False)

    def completed(self, icon: bytes | None, latency_ms: int) -> "ServerSnapshot":
        return replace(self, icon=icon, latency_ms=max(0, int(latency_ms)))


def _opt_str(value: object) -> str | None:
    if value is None or value == "" or value is False:
        return None
    return str(value)


def _count(value: object) -> int:
    try:
        n = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0
    return max(0, n)


def decode_metadata(payload: str | bytes) -> dict[str, Any]:
    """Decode one metadata frame into a dict or raise ProtocolError."""
    try:
        if isinstance(payload, (bytes, bytearray)):
            payload = bytes(payload).decode("utf-8")
        decoded = json.loads(payload)
    except (UnicodeDecodeError, ValueError) as e:
        raise ProtocolError(f"Failed to parse server response: {e}") from e
    if not isinstance(decoded, dict):
        raise ProtocolError(
            f"Failed to parse server response: expected an object, got {type(decoded).__name__}"
        )
    return decoded


def snapshot_from_payload(response: dict[str, Any], captured_at_ms: int) -> ServerSnapshot:
    """Build a snapshot from decoded metadata, defaulting missing fields.

    `icon` and `latency_ms` are left unset; they are filled in when the
    probe completes.
    """
    data = response.get("data")
    if not isinstance(data, dict):
        data = {}

    motd_raw = data.get("motd")
    motd = tuple(str(line) for line in motd_raw) if isinstance(motd_raw, list) else ()
    players_raw = data.get("players")
    players = tuple(players_raw) if isinstance(players_raw, list) else ()

    server_time = response.get("time")
    try:
        server_timestamp = int(server_time) if server_time else captured_at_ms
    except (TypeError, ValueError):
        server_timestamp = captured_at_ms

    return ServerSnapshot(
        name=_opt_str(response.get("name")) or DEFAULT_SERVER_NAME,
        brand=_opt_str(response.get("brand")),
        version=_opt_str(response.get("vers")),
        cracked=bool(response.get("cracked")),
        uuid=_opt_str(response.get("uuid")),
        server_timestamp=server_timestamp,
        online=_count(data.get("online")),
        max_players=_count(data.get("max")),
        motd=motd,
        has_icon=data.get("icon") is True,
        players=players,
        raw=response,
    )
