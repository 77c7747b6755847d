"""Command registry (single source of truth for help + wiring)."""

from __future__ import annotations

from .models.command_spec import CommandSpec, Group

_INFO_COMMANDS = (
    CommandSpec("start", "Info", "/start", "show help", "cmd_start"),
    CommandSpec("help", "Info", "/help", "this menu", "cmd_help"),
)

_SERVER_COMMANDS = (
    CommandSpec(
        "status",
        "Servers",
        "/status <host> [noicon] [fresh]",
        "server name, MOTD, players and latency",
        "cmd_status",
        aliases=("ping",),
    ),
    CommandSpec(
        "icon",
        "Servers",
        "/icon <host>",
        "fetch and send the server icon",
        "cmd_icon",
    ),
    CommandSpec(
        "clearcache",
        "Servers",
        "/clearcache",
        "forget cached probe results",
        "cmd_clearcache",
    ),
)

COMMANDS: tuple[CommandSpec, ...] = _INFO_COMMANDS + _SERVER_COMMANDS

GROUP_ORDER: tuple[Group, ...] = ("Servers", "Info")
