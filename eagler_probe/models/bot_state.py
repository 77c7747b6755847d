"""Bot runtime state (probe client, icon writer, background tasks)."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .. import config
from ..client import ProbeClient
from ..icons import IconWriter, make_icon_writer

logger = logging.getLogger(__name__)

BOT_STATE_KEY = "eagler_state"


def _default_client() -> ProbeClient:
    return ProbeClient.from_settings(config.settings)


def _default_icon_writer() -> IconWriter:
    return make_icon_writer(config.settings.ICON_FORMAT, config.settings.ICON_DIR)


@dataclass
class BotState:
    """Runtime state shared by all handlers of one Application."""

    client: ProbeClient = field(default_factory=_default_client)
    icon_writer: IconWriter = field(default_factory=_default_icon_writer)
    # chat_id -> last probed target, used when a command is sent without args
    last_target: dict[int, str] = field(default_factory=dict)

    def remember_target(self, chat_id: int | None, target: str) -> None:
        if chat_id is not None:
            self.last_target[chat_id] = target

    def recall_target(self, chat_id: int | None) -> str | None:
        if chat_id is None:
            return None
        return self.last_target.get(chat_id)
