from __future__ import annotations

from telegram.constants import ParseMode

from .. import view
from .common import guard


async def cmd_start(update, context) -> None:
    if not await guard(update, context):
        return
    text = "Hi! I report live Eaglercraft server status.\n\n" + view.render_help()
    await update.message.reply_text(text, parse_mode=ParseMode.HTML)


async def cmd_help(update, context) -> None:
    await cmd_start(update, context)
