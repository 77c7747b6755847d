"""View layer for formatting Telegram messages (HTML)."""

from __future__ import annotations

import html
import time

from .commands import COMMANDS, GROUP_ORDER
from .models.snapshot import ServerSnapshot
from .text import strip_color_codes

_MAX_PLAYERS_SHOWN = 10


def bold(text: str) -> str:
    return f"<b>{html.escape(str(text))}</b>"


def code(text: str) -> str:
    return f"<code>{html.escape(str(text))}</code>"


def _player_name(player: object) -> str:
    if isinstance(player, dict):
        return str(player.get("name") or player.get("username") or "?")
    return str(player)


def _format_server_time(ts_ms: int) -> str:
    if ts_ms <= 0:
        return "unknown"
    return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(ts_ms / 1000))


def render_snapshot(target: str, snapshot: ServerSnapshot, cached: bool = False) -> str:
    name = strip_color_codes(snapshot.name)
    lines = [f"🟢 {bold(name)} {code(target)}"]

    motd = [strip_color_codes(line).strip() for line in snapshot.motd]
    motd = [line for line in motd if line]
    if motd:
        lines.append("<i>" + "\n".join(html.escape(line) for line in motd) + "</i>")

    lines.append(f"{bold('Players:')} {snapshot.online}/{snapshot.max_players}")
    if snapshot.players:
        names = [_player_name(p) for p in snapshot.players[:_MAX_PLAYERS_SHOWN]]
        more = len(snapshot.players) - len(names)
        suffix = f" (+{more} more)" if more > 0 else ""
        lines.append(", ".join(code(n) for n in names) + suffix)

    version = " ".join(v for v in (snapshot.brand, snapshot.version) if v)
    if version:
        lines.append(f"{bold('Version:')} {html.escape(version)}")
    if snapshot.cracked:
        lines.append(f"{bold('Auth:')} cracked")

    latency = f"{snapshot.latency_ms} ms"
    if cached:
        latency += " (cached)"
    lines.append(f"{bold('Latency:')} {latency}")
    lines.append(f"{bold('Server time:')} {_format_server_time(snapshot.server_timestamp)}")
    if snapshot.has_icon:
        icon_state = "received" if snapshot.icon else "advertised, not received"
        lines.append(f"{bold('Icon:')} {icon_state}")
    return "\n".join(lines)


def render_probe_error(target: str, exc: Exception) -> str:
    return f"🔴 {code(target)} unreachable: {html.escape(str(exc))}"


def render_help() -> str:
    lines: list[str] = []
    for group in GROUP_ORDER:
        specs = [s for s in COMMANDS if s.group == group]
        if not specs:
            continue
        if lines:
            lines.append("")
        lines.append(bold(group))
        for spec in specs:
            lines.append(f"{code(spec.usage)} – {html.escape(spec.description)}")
    return "\n".join(lines)
