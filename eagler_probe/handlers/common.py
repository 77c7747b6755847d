"""Shared handler helpers: auth guard, rate limit, error replies."""

from __future__ import annotations

import functools
import html
import logging
import time
from typing import TYPE_CHECKING, Callable

from telegram.constants import ParseMode

from .. import config
from ..state import BOT_STATE_KEY, BotState

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from telegram import Update
    from telegram.ext import ContextTypes


# Global rate limit (seconds) for all commands.
_last_command_ts = 0.0


def get_state(app) -> BotState:
    """Retrieve or initialize the bot state from application data."""
    return app.bot_data.setdefault(BOT_STATE_KEY, BotState())


def allowed(update: "Update") -> bool:
    """Check if the update sender is authorized to use the bot.

    Returns False if ALLOWED_CHAT_IDS is empty or the update has no chat.
    """
    if not config.ALLOWED:
        return False
    if not update.effective_chat:
        return False
    return update.effective_chat.id in config.ALLOWED


async def guard(update: "Update", context: "ContextTypes.DEFAULT_TYPE") -> bool:
    if allowed(update):
        return True
    if update and update.effective_chat:
        await update.effective_chat.send_message("⛔ Not authorized")
    return False


async def reply_error(
    update: "Update",
    message: str,
    exc: Exception,
    log: logging.Logger | None = None,
) -> None:
    (log or logger).exception(message)
    await update.message.reply_text(
        f"❌ {html.escape(message)}: {html.escape(str(exc))}",
        parse_mode=ParseMode.HTML,
    )


def rate_limit(func: Callable, name: str | None = None) -> Callable:
    """Decorator to enforce global rate limiting on command handlers.

    Note:
        Uses a global timestamp check. Rate limit applies across all commands.
        If rate limit is exceeded, sends a message to the user with wait time.
    """

    command_name = name or func.__name__.removeprefix("cmd_")

    @functools.wraps(func)
    async def wrapper(
        update: "Update", context: "ContextTypes.DEFAULT_TYPE", *args, **kwargs
    ):
        global _last_command_ts
        now = time.monotonic()
        elapsed = now - _last_command_ts

        if elapsed < config.RATE_LIMIT_S:
            try:
                if update and getattr(update, "effective_message", None):
                    await update.effective_message.reply_text(
                        f"⏱ Rate limit: please wait {config.RATE_LIMIT_S - elapsed:.1f}s",
                    )
            except Exception as e:
                logger.debug("rate-limit notice failed to send: %s", e)
            return

        _last_command_ts = now
        start = time.perf_counter()
        try:
            return await func(update, context, *args, **kwargs)
        finally:
            logger.debug(
                "/%s handled in %.3fs", command_name, time.perf_counter() - start
            )

    return wrapper


async def reply_usage(update: "Update", usage_html: str) -> None:
    await update.message.reply_text(
        f"<i>Usage:</i> {usage_html}", parse_mode=ParseMode.HTML
    )
