"""Shared test fixtures and dummy classes."""

from __future__ import annotations

import asyncio
import json
from collections import deque
from typing import Any

from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK
from websockets.frames import Close

ICON_BYTES = bytes(range(256)) * 64  # 16384 bytes


def metadata(icon: bool = False, **overrides: Any) -> str:
    """Build a status metadata frame as sent by a server."""
    payload: dict[str, Any] = {
        "name": "§aTest §lServer",
        "brand": "EaglercraftXBungee",
        "vers": "1.8.8",
        "cracked": True,
        "uuid": "2d6e3b1c-0000-4000-8000-000000000000",
        "time": 1700000000000,
        "type": "motd",
        "data": {
            "online": 3,
            "max": 20,
            "motd": ["§6Welcome!", "Have fun"],
            "icon": icon,
            "players": ["alice", "bob", "carol"],
        },
    }
    payload.update(overrides)
    return json.dumps(payload)


def closed(code: int = 1000, reason: str = "") -> ConnectionClosedOK:
    return ConnectionClosedOK(Close(code, reason), None)


def dropped() -> ConnectionClosedError:
    return ConnectionClosedError(None, None)


class FakeClock:
    """Manually advanced clock usable for both seconds and milliseconds."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, delta: float) -> None:
        self.now += delta


class FakeConnection:
    """Scripted stand-in for a websockets client connection.

    `frames` are returned by `recv()` in order; exceptions in the list are
    raised instead. Once exhausted, `recv()` raises `end` (a normal close by
    default) or blocks forever when `hang=True`.
    """

    def __init__(
        self,
        frames: list[Any] | None = None,
        end: BaseException | None = None,
        hang: bool = False,
    ) -> None:
        self.frames = deque(frames or [])
        self.end = end if end is not None else closed()
        self.hang = hang
        self.sent: list[Any] = []
        self.closed = False

    async def send(self, data: Any) -> None:
        self.sent.append(data)

    async def recv(self) -> Any:
        if self.frames:
            item = self.frames.popleft()
            if isinstance(item, BaseException):
                raise item
            return item
        if self.hang:
            await asyncio.Event().wait()
        raise self.end

    async def close(self) -> None:
        self.closed = True


class FakeConnector:
    """Connector returning prepared connections (or raising prepared errors)."""

    def __init__(self, *results: Any) -> None:
        self.results = deque(results)
        self.targets: list[str] = []
        self.hang = False

    async def __call__(self, target: str) -> Any:
        self.targets.append(target)
        if self.hang:
            await asyncio.Event().wait()
        item = self.results.popleft() if self.results else FakeConnection([metadata()])
        if isinstance(item, BaseException):
            raise item
        return item


class DummyChat:
    """Dummy Telegram chat for testing."""

    def __init__(self, chat_id: int) -> None:
        self.id = chat_id
        self.sent: list[str] = []

    async def send_message(self, text: str) -> None:
        self.sent.append(text)


class DummyMessage:
    """Dummy Telegram message for testing."""

    def __init__(self) -> None:
        self.replies: list[str] = []
        self.photos: list[tuple[bytes, str]] = []

    async def reply_text(self, text: str, **_: Any) -> None:
        self.replies.append(text)

    async def reply_photo(self, photo: bytes, caption: str = "", **_: Any) -> None:
        self.photos.append((photo, caption))


class DummyUpdate:
    """Dummy Telegram update for testing."""

    def __init__(self, chat_id: int) -> None:
        self.effective_chat = DummyChat(chat_id)
        self.message = DummyMessage()
        self.effective_message = self.message


class DummyApplication:
    """Dummy Telegram application for testing."""

    def __init__(self) -> None:
        self.bot_data: dict[str, object] = {}


class DummyContext:
    """Dummy Telegram context for testing."""

    def __init__(self, args: list[str] | None = None) -> None:
        self.args = args or []
        self.application = DummyApplication()
