"""Server status handlers: /status, /icon, /clearcache."""

from __future__ import annotations

import asyncio
import logging

from telegram.constants import ParseMode

from .. import icons, view
from ..client import normalize_target
from ..errors import IconError, ProbeError
from ..models.icon import IconInfo
from ..text import strip_color_codes
from .common import get_state, guard, reply_error, reply_usage

logger = logging.getLogger(__name__)

_FLAG_NOICON = "noicon"
_FLAG_FRESH = "fresh"


def _parse_args(args: list[str]) -> tuple[str | None, set[str]]:
    target: str | None = None
    flags: set[str] = set()
    for arg in args:
        lowered = arg.strip().lower()
        if lowered in (_FLAG_NOICON, _FLAG_FRESH):
            flags.add(lowered)
        elif target is None and arg.strip():
            target = arg.strip()
    return target, flags


def _chat_id(update) -> int | None:
    chat = getattr(update, "effective_chat", None)
    return getattr(chat, "id", None)


async def cmd_status(update, context) -> None:
    if not await guard(update, context):
        return

    state = get_state(context.application)
    target, flags = _parse_args(list(context.args or []))
    if target is None:
        target = state.recall_target(_chat_id(update))
    if target is None:
        await reply_usage(update, "<code>/status &lt;host&gt; [noicon] [fresh]</code>")
        return

    url = normalize_target(target)
    state.remember_target(_chat_id(update), target)
    bypass = _FLAG_FRESH in flags
    cached = not bypass and state.client.get_cached_result(url) is not None

    try:
        snapshot = await state.client.probe(
            url, fetch_icon=_FLAG_NOICON not in flags, bypass_cache=bypass
        )
    except ProbeError as e:
        logger.info("Probe of %s failed: %s", url, e)
        await update.message.reply_text(
            view.render_probe_error(url, e), parse_mode=ParseMode.HTML
        )
        return
    except Exception as e:
        await reply_error(update, f"Status check of {url} failed", e, logger)
        return

    await update.message.reply_text(
        view.render_snapshot(url, snapshot, cached=cached), parse_mode=ParseMode.HTML
    )


async def _icon_photo(info: IconInfo) -> bytes:
    """PNG bytes for `info`, converting a raw `.rgba` icon beside the original."""
    path = info.path
    if info.format != "png":
        path = await asyncio.to_thread(
            icons.convert_icon_to_png, info, info.path.with_suffix(".png")
        )
    try:
        return await asyncio.to_thread(path.read_bytes)
    except OSError as e:
        raise IconError(f"Cannot read icon {path}: {e}") from e


async def cmd_icon(update, context) -> None:
    if not await guard(update, context):
        return

    state = get_state(context.application)
    target, _ = _parse_args(list(context.args or []))
    if target is None:
        target = state.recall_target(_chat_id(update))
    if target is None:
        await reply_usage(update, "<code>/icon &lt;host&gt;</code>")
        return

    url = normalize_target(target)
    state.remember_target(_chat_id(update), target)
    # A cached noicon probe would hide an advertised icon.
    cached = state.client.get_cached_result(url)
    refetch = cached is not None and cached.has_icon and cached.icon is None
    try:
        snapshot = await state.client.probe(url, fetch_icon=True, bypass_cache=refetch)
    except ProbeError as e:
        logger.info("Icon probe of %s failed: %s", url, e)
        await update.message.reply_text(
            view.render_probe_error(url, e), parse_mode=ParseMode.HTML
        )
        return
    except Exception as e:
        await reply_error(update, f"Icon fetch of {url} failed", e, logger)
        return

    if snapshot.icon is None:
        title = view.bold(strip_color_codes(snapshot.name))
        await update.message.reply_text(
            f"{title} has no icon.", parse_mode=ParseMode.HTML
        )
        return

    name = icons.icon_name_for(url, strip_color_codes(snapshot.name))
    try:
        info = await icons.persist_icon(state.icon_writer, snapshot.icon, name)
        photo = await _icon_photo(info)
    except IconError as e:
        # The probe itself succeeded; only the icon could not be stored.
        await reply_error(update, "Could not save icon", e, logger)
        return

    caption = f"{strip_color_codes(snapshot.name)} ({info.width}x{info.height})"
    await update.message.reply_photo(photo=photo, caption=caption)


async def cmd_clearcache(update, context) -> None:
    if not await guard(update, context):
        return
    state = get_state(context.application)
    count = len(state.client.cache)
    state.client.clear_cache()
    await update.message.reply_text(f"🧹 Cleared {count} cached result(s).")
