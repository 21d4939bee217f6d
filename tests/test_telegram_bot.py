"""Tests for planbot.bot.telegram_bot — Telegram glue and job wiring.

The router itself is covered in test_router; here only the translation
between Telegram updates and router replies, and the job registration.
"""

from datetime import datetime, timezone

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from telegram import Chat, Message, MessageEntity, Update, User
from telegram.constants import ChatType
from telegram.error import TelegramError
from telegram.ext import MessageHandler

from planbot.adapters.telegram_notifier import TelegramNotifier
from planbot.bot.router import Reply
from planbot.bot.telegram_bot import (
    TEXT_MESSAGES,
    _setup_event_reminder,
    _setup_quote_broadcast,
    handle_text,
    origin_from_update,
)
from planbot.core.errors import PersistenceError


def _make_update(text, chat_id=-100123, chat_type=ChatType.SUPERGROUP, user_id=42, entities=None):
    update = MagicMock()
    update.effective_chat.id = chat_id
    update.effective_chat.type = chat_type
    update.effective_user.id = user_id
    message = MagicMock()
    message.text = text
    message.parse_entities.return_value = entities or {}
    message.reply_text = AsyncMock()
    message.reply_sticker = AsyncMock()
    update.effective_message = message
    return update


def _make_context(router):
    ctx = MagicMock()
    ctx.notifier.send_sticker = AsyncMock()
    context = MagicMock()
    context.bot_data = {"router": router, "ctx": ctx}
    return context


def _real_message(text="!jadwalpost klien"):
    return Message(
        message_id=1,
        date=datetime.now(timezone.utc),
        chat=Chat(id=-100123, type=ChatType.SUPERGROUP),
        from_user=User(id=42, first_name="A", is_bot=False),
        text=text,
    )


def _entity(kind, user_id=None):
    entity = MagicMock()
    entity.type = kind
    if user_id is None:
        entity.user = None
    else:
        entity.user.id = user_id
    return entity


# ---------------------------------------------------------------------------
# origin_from_update
# ---------------------------------------------------------------------------


class TestOriginFromUpdate:
    def test_group(self):
        origin = origin_from_update(_make_update("!groupid"))
        assert origin.chat_id == "-100123"
        assert origin.sender_id == "42"
        assert origin.is_group is True
        assert origin.mentions == []

    def test_private(self):
        origin = origin_from_update(_make_update("!userid", chat_id=42, chat_type=ChatType.PRIVATE))
        assert origin.is_group is False

    def test_basic_group(self):
        assert origin_from_update(_make_update("x", chat_type=ChatType.GROUP)).is_group is True

    def test_mentions(self):
        entities = {
            _entity(MessageEntity.MENTION): "@alice",
            _entity(MessageEntity.TEXT_MENTION, user_id=777): "Bob",
        }
        origin = origin_from_update(_make_update("!userid @alice Bob", entities=entities))
        assert origin.mentions == ["alice", "777"]


# ---------------------------------------------------------------------------
# handle_text
# ---------------------------------------------------------------------------


class TestHandleText:
    @pytest.mark.asyncio
    async def test_sends_every_reply(self):
        router = MagicMock()
        router.route = AsyncMock(return_value=[Reply("one"), Reply("*two*", parse_mode="Markdown")])
        context = _make_context(router)
        update = _make_update("!something")

        await handle_text(update, context)

        reply_text = update.effective_message.reply_text
        assert reply_text.await_count == 2
        reply_text.assert_any_await("one", parse_mode=None)
        reply_text.assert_any_await("*two*", parse_mode="Markdown")

    @pytest.mark.asyncio
    async def test_sticker_reply(self, tmp_path):
        sticker = tmp_path / "dea.webp"
        sticker.write_bytes(b"RIFF")
        router = MagicMock()
        router.route = AsyncMock(return_value=[Reply(sticker=sticker)])
        context = _make_context(router)
        update = _make_update("!dea")

        await handle_text(update, context)

        context.bot_data["ctx"].notifier.send_sticker.assert_awaited_once_with("-100123", sticker)
        update.effective_message.reply_sticker.assert_not_called()
        update.effective_message.reply_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_send_failure_does_not_stop_other_replies(self):
        router = MagicMock()
        router.route = AsyncMock(return_value=[Reply("one"), Reply("two")])
        context = _make_context(router)
        update = _make_update("!something")
        update.effective_message.reply_text.side_effect = [TelegramError("bad markup"), None]

        await handle_text(update, context)

        assert update.effective_message.reply_text.await_count == 2

    @pytest.mark.asyncio
    async def test_empty_message_ignored(self):
        router = MagicMock()
        router.route = AsyncMock()
        context = _make_context(router)

        await handle_text(_make_update(""), context)

        router.route.assert_not_called()


class TestTextFilter:
    def test_new_message_handled(self):
        handler = MessageHandler(TEXT_MESSAGES, handle_text)
        assert handler.check_update(Update(update_id=1, message=_real_message()))

    def test_edited_message_ignored(self):
        handler = MessageHandler(TEXT_MESSAGES, handle_text)
        update = Update(update_id=2, edited_message=_real_message("!ingatkan 14:30 besok\nRapat"))
        assert not handler.check_update(update)


# ---------------------------------------------------------------------------
# Job wiring
# ---------------------------------------------------------------------------


class TestEventReminderJob:
    def test_disabled_without_destination(self, app_ctx):
        app = MagicMock()
        _setup_event_reminder(app, app_ctx)
        app.job_queue.run_repeating.assert_not_called()

    def test_registered(self, app_ctx):
        app_ctx.settings.REMINDER_CHAT_ID = "-100555"
        app = MagicMock()

        _setup_event_reminder(app, app_ctx)

        kwargs = app.job_queue.run_repeating.call_args.kwargs
        assert kwargs["interval"] == 30
        assert kwargs["name"] == "event_reminder"

    @pytest.mark.asyncio
    async def test_persistence_failure_alerts_operator(self, app_ctx):
        app_ctx.settings.REMINDER_CHAT_ID = "-100555"
        app_ctx.settings.OPERATOR_CHAT_ID = "999"
        app = MagicMock()

        with patch("planbot.bot.telegram_bot.EventReminderScheduler") as scheduler_cls:
            scheduler_cls.return_value.tick = AsyncMock(side_effect=PersistenceError("disk full"))
            _setup_event_reminder(app, app_ctx)
            callback = app.job_queue.run_repeating.call_args.args[0]
            await callback(MagicMock())

        app_ctx.notifier.send_message.assert_awaited_once()
        assert app_ctx.notifier.send_message.call_args.args[0] == "999"

    @pytest.mark.asyncio
    async def test_undelivered_reminder_alerts_operator(self, app_ctx):
        app_ctx.settings.REMINDER_CHAT_ID = "-100555"
        app_ctx.settings.OPERATOR_CHAT_ID = "999"
        app = MagicMock()

        with patch("planbot.bot.telegram_bot.EventReminderScheduler") as scheduler_cls:
            _setup_event_reminder(app, app_ctx)
            alert = scheduler_cls.call_args.kwargs["alert"]
            await alert('⚠️ Reminder for "Standup" could not be delivered: blocked')

        app_ctx.notifier.send_message.assert_awaited_once_with(
            "999", '⚠️ Reminder for "Standup" could not be delivered: blocked'
        )


class TestQuoteJob:
    def test_registered_at_configured_hour(self, app_ctx):
        app = MagicMock()

        _setup_quote_broadcast(app, app_ctx)

        kwargs = app.job_queue.run_daily.call_args.kwargs
        assert kwargs["time"].hour == 7
        assert kwargs["time"].tzinfo == app_ctx.tz
        assert kwargs["name"] == "daily_quote"

    @pytest.mark.asyncio
    async def test_callback_broadcasts(self, app_ctx):
        app_ctx.registry.add("group", "-100123")
        app = MagicMock()

        _setup_quote_broadcast(app, app_ctx)
        callback = app.job_queue.run_daily.call_args.args[0]
        await callback(MagicMock())

        app_ctx.notifier.send_message.assert_awaited_once()
        assert app_ctx.notifier.send_message.call_args.args[0] == "-100123"


# ---------------------------------------------------------------------------
# TelegramNotifier
# ---------------------------------------------------------------------------


class TestTelegramNotifier:
    @pytest.mark.asyncio
    async def test_send_message(self):
        bot = AsyncMock()
        await TelegramNotifier(bot).send_message("-100123", "*hi*", parse_mode="Markdown")
        bot.send_message.assert_awaited_once_with(chat_id="-100123", text="*hi*", parse_mode="Markdown")

    @pytest.mark.asyncio
    async def test_send_sticker(self, tmp_path):
        sticker = tmp_path / "dea.webp"
        sticker.write_bytes(b"RIFF")
        bot = AsyncMock()

        await TelegramNotifier(bot).send_sticker("-100123", sticker)

        bot.send_sticker.assert_awaited_once()
        assert bot.send_sticker.call_args.kwargs["chat_id"] == "-100123"
