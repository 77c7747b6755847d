import time

import pytest

from eagler_probe import config
from eagler_probe.client import ProbeClient
from eagler_probe.errors import IconError
from eagler_probe.handlers import common, meta, status
from eagler_probe.icons import RawIconWriter
from eagler_probe.models.snapshot import ServerSnapshot
from eagler_probe.state import BOT_STATE_KEY, BotState

from conftest import (
    ICON_BYTES,
    DummyContext,
    DummyUpdate,
    FakeConnection,
    FakeConnector,
    closed,
    metadata,
)

CHAT_ID = 42


@pytest.fixture
def allow_chat(monkeypatch):
    monkeypatch.setattr(config, "ALLOWED", {CHAT_ID})


def _context(connector, tmp_path, args=None) -> DummyContext:
    context = DummyContext(args)
    context.application.bot_data[BOT_STATE_KEY] = BotState(
        client=ProbeClient(connect=connector),
        icon_writer=RawIconWriter(tmp_path),
    )
    return context


@pytest.mark.asyncio
async def test_status_unauthorized(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(config, "ALLOWED", {1})
    update = DummyUpdate(CHAT_ID)
    connector = FakeConnector()
    await status.cmd_status(update, _context(connector, tmp_path, ["example.test"]))

    assert update.effective_chat.sent == ["⛔ Not authorized"]
    assert connector.targets == []


@pytest.mark.asyncio
async def test_status_without_target_shows_usage(allow_chat, tmp_path) -> None:
    update = DummyUpdate(CHAT_ID)
    await status.cmd_status(update, _context(FakeConnector(), tmp_path))
    assert "Usage" in update.message.replies[0]


@pytest.mark.asyncio
async def test_status_renders_snapshot_then_cached(allow_chat, tmp_path) -> None:
    connector = FakeConnector(FakeConnection([metadata()]))
    context = _context(connector, tmp_path, ["example.test", "noicon"])
    update = DummyUpdate(CHAT_ID)
    try:
        await status.cmd_status(update, context)
        # Second call without args reuses the chat's last target.
        context.args = []
        await status.cmd_status(update, context)
    finally:
        await context.application.bot_data[BOT_STATE_KEY].client.aclose()

    first, second = update.message.replies
    assert "Test Server" in first
    assert "3/20" in first
    assert "(cached)" not in first
    assert "(cached)" in second
    assert connector.targets == ["wss://example.test"]


@pytest.mark.asyncio
async def test_status_reports_probe_error(allow_chat, tmp_path) -> None:
    connector = FakeConnector(FakeConnection([], end=closed(1000)))
    context = _context(connector, tmp_path, ["example.test"])
    update = DummyUpdate(CHAT_ID)
    try:
        await status.cmd_status(update, context)
    finally:
        await context.application.bot_data[BOT_STATE_KEY].client.aclose()

    assert "unreachable" in update.message.replies[0]
    assert "Code: 1000" in update.message.replies[0]


@pytest.mark.asyncio
async def test_icon_is_persisted_and_sent_as_png(allow_chat, tmp_path) -> None:
    connector = FakeConnector(FakeConnection([metadata(icon=True), ICON_BYTES]))
    context = _context(connector, tmp_path, ["example.test"])
    update = DummyUpdate(CHAT_ID)
    try:
        await status.cmd_icon(update, context)
    finally:
        await context.application.bot_data[BOT_STATE_KEY].client.aclose()

    assert update.message.replies == []
    photo, caption = update.message.photos[0]
    assert photo.startswith(b"\x89PNG")
    assert caption == "Test Server (64x64)"
    # The raw writer keeps its .rgba file; the PNG is written beside it.
    assert (tmp_path / "Test_Server.rgba").read_bytes() == ICON_BYTES
    assert (tmp_path / "Test_Server.png").exists()


class FailingIconWriter:
    def __init__(self, directory) -> None:
        self.directory = directory

    def write(self, data: bytes, suggested_name: str):
        raise IconError(f"disk full while writing {suggested_name}")


@pytest.mark.asyncio
async def test_icon_save_failure_keeps_probe_result(allow_chat, tmp_path) -> None:
    connector = FakeConnector(FakeConnection([metadata(icon=True), ICON_BYTES]))
    context = _context(connector, tmp_path, ["example.test"])
    state = context.application.bot_data[BOT_STATE_KEY]
    state.icon_writer = FailingIconWriter(tmp_path)
    update = DummyUpdate(CHAT_ID)
    try:
        await status.cmd_icon(update, context)
    finally:
        await state.client.aclose()

    assert "Could not save icon" in update.message.replies[0]
    assert "disk full" in update.message.replies[0]
    assert update.message.photos == []
    cached = state.client.cache.get("wss://example.test")
    assert cached is not None
    assert cached.icon == ICON_BYTES


@pytest.mark.asyncio
async def test_icon_reports_unexpected_error(allow_chat, monkeypatch, tmp_path) -> None:
    context = _context(FakeConnector(), tmp_path, ["example.test"])
    state = context.application.bot_data[BOT_STATE_KEY]

    async def raise_unexpected(*args, **kwargs):
        raise ValueError("unexpected")

    monkeypatch.setattr(state.client, "probe", raise_unexpected)
    update = DummyUpdate(CHAT_ID)

    await status.cmd_icon(update, context)

    assert "Icon fetch of wss://example.test failed" in update.message.replies[0]
    assert "unexpected" in update.message.replies[0]


@pytest.mark.asyncio
async def test_icon_missing(allow_chat, tmp_path) -> None:
    connector = FakeConnector(FakeConnection([metadata(icon=False)]))
    context = _context(connector, tmp_path, ["example.test"])
    update = DummyUpdate(CHAT_ID)
    try:
        await status.cmd_icon(update, context)
    finally:
        await context.application.bot_data[BOT_STATE_KEY].client.aclose()

    assert "has no icon" in update.message.replies[0]


@pytest.mark.asyncio
async def test_clearcache(allow_chat, tmp_path) -> None:
    context = _context(FakeConnector(), tmp_path)
    state = context.application.bot_data[BOT_STATE_KEY]
    state.client.cache.put("wss://example.test", ServerSnapshot())
    update = DummyUpdate(CHAT_ID)

    await status.cmd_clearcache(update, context)

    assert len(state.client.cache) == 0
    assert "Cleared 1" in update.message.replies[0]


@pytest.mark.asyncio
async def test_help_lists_commands(allow_chat, tmp_path) -> None:
    update = DummyUpdate(CHAT_ID)
    await meta.cmd_help(update, _context(FakeConnector(), tmp_path))
    assert "/status" in update.message.replies[0]


@pytest.mark.asyncio
async def test_rate_limit_blocks_fast_repeats(monkeypatch) -> None:
    monkeypatch.setattr(config, "RATE_LIMIT_S", 100.0)
    monkeypatch.setattr(common, "_last_command_ts", time.monotonic())
    calls: list[int] = []

    async def handler(update, context) -> None:
        calls.append(1)

    wrapped = common.rate_limit(handler, name="demo")
    update = DummyUpdate(CHAT_ID)
    await wrapped(update, DummyContext())

    assert calls == []
    assert "Rate limit" in update.message.replies[0]


@pytest.mark.asyncio
async def test_rate_limit_passes_through(monkeypatch) -> None:
    monkeypatch.setattr(config, "RATE_LIMIT_S", 0.0)
    monkeypatch.setattr(common, "_last_command_ts", 0.0)

    async def handler(update, context) -> str:
        return "ok"

    wrapped = common.rate_limit(handler, name="demo")
    assert await wrapped(DummyUpdate(CHAT_ID), DummyContext()) == "ok"
