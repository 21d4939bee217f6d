"""Shared test fixtures and configuration.

Sets up fake environment variables so planbot.config doesn't sys.exit(),
and provides common fixtures like temp JSON stores and an AppContext.
"""

import os

# Patch env vars BEFORE any planbot imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("TIMEZONE", "Asia/Jakarta")
os.environ.setdefault("SPREADSHEET_ID", "fake-sheet")
os.environ.setdefault("QUOTE_API_URL", "")

from unittest.mock import AsyncMock, MagicMock

import pytest


@pytest.fixture
def sent_log(tmp_path):
    """Return an empty SentReminderLog backed by a temp file."""
    from planbot.data.store import SentReminderLog
    return SentReminderLog(tmp_path / "sent_reminders.json")


@pytest.fixture
def registry(tmp_path):
    """Return an empty SubscriberRegistry backed by a temp file."""
    from planbot.data.store import SubscriberRegistry
    return SubscriberRegistry(tmp_path / "subscribers.json")


@pytest.fixture
def test_settings(tmp_path):
    from planbot.config import Settings
    return Settings(
        TELEGRAM_BOT_TOKEN="fake-token-for-tests",
        TIMEZONE="Asia/Jakarta",
        DATA_DIR=str(tmp_path),
        STICKERS_DIR=str(tmp_path / "stickers"),
        STICKER_NAMES=["dea", "dimas"],
        ALLOWED_GROUP_IDS=["-100123"],
        TAG_ALL_USER_IDS=[111, 222],
        QUOTE_BROADCAST_HOUR=7,
        QUOTE_API_URL="",
    )


@pytest.fixture
def app_ctx(test_settings, sent_log, registry):
    """Return an AppContext with mocked calendar, sheets, notifier and JobQueue."""
    from planbot.bot.context import AppContext

    return AppContext(
        settings=test_settings,
        calendar=AsyncMock(),
        sheets=AsyncMock(),
        notifier=AsyncMock(),
        sent_log=sent_log,
        registry=registry,
        job_queue=MagicMock(),
    )


@pytest.fixture
def group_origin():
    from planbot.bot.router import OriginContext
    return OriginContext(chat_id="-100123", sender_id="42", is_group=True)


@pytest.fixture
def private_origin():
    from planbot.bot.router import OriginContext
    return OriginContext(chat_id="42", sender_id="42", is_group=False)
