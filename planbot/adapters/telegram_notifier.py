"""Telegram notification adapter — implements NotificationPort.

Wraps a telegram.Bot instance to satisfy the NotificationPort protocol.
"""

from __future__ import annotations

import logging
from pathlib import Path

from telegram import Bot

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Telegram implementation of NotificationPort."""

    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    async def send_message(
        self, chat_id: str | int, text: str, parse_mode: str | None = None
    ) -> None:
        await self._bot.send_message(chat_id=chat_id, text=text, parse_mode=parse_mode)

    async def send_sticker(self, chat_id: str | int, path: Path) -> None:
        with path.open("rb") as sticker:
            await self._bot.send_sticker(chat_id=chat_id, sticker=sticker)
        logger.info("Sticker %s sent to %s", path.name, chat_id)
