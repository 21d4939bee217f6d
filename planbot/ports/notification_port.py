"""Notification port — abstract interface for sending messages to chats.

Core modules depend on this protocol, never on a specific messaging provider.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol


class NotificationPort(Protocol):
    """Abstract notification interface used by core modules."""

    async def send_message(
        self, chat_id: str | int, text: str, parse_mode: str | None = None
    ) -> None: ...

    async def send_sticker(self, chat_id: str | int, path: Path) -> None: ...
