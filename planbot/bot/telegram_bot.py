"""
Content Planner Bot — Telegram Bot.

Telegram is the transport: every text message is handed to the
CommandRouter and its replies are sent back to the same chat.

Everything timed runs on the application's JobQueue: the event reminder
poll (every EVENT_POLL_SECONDS), the daily quote broadcast (QUOTE_BROADCAST_HOUR)
and the one-shot "!ingatkan" reminders.

Only new messages are routed. Edits are ignored, so editing a command
never runs it a second time.
"""

from __future__ import annotations

import logging
from datetime import time as dt_time
from datetime import timedelta
from typing import TYPE_CHECKING

from telegram import MessageEntity, Update
from telegram.constants import ChatType
from telegram.error import TelegramError
from telegram.ext import (
    Application,
    ApplicationBuilder,
    ContextTypes,
    MessageHandler,
    filters,
)

from planbot.bot.context import AppContext, build_context
from planbot.bot.router import CommandRouter, OriginContext, Reply
from planbot.config import settings
from planbot.core.broadcast import broadcast_daily_quote
from planbot.core.errors import PersistenceError
from planbot.core.event_reminder import EventReminderScheduler

if TYPE_CHECKING:
    from planbot.ports.calendar_port import CalendarPort
    from planbot.ports.notification_port import NotificationPort
    from planbot.ports.sheets_port import SheetsPort

logger = logging.getLogger(__name__)

TEXT_MESSAGES = filters.UpdateType.MESSAGE & filters.TEXT


# ---------------------------------------------------------------------------
# Inbound messages
# ---------------------------------------------------------------------------


def origin_from_update(update: Update) -> OriginContext:
    """Build the router's OriginContext from a Telegram update."""
    chat = update.effective_chat
    user = update.effective_user
    message = update.effective_message

    mentions: list[str] = []
    entities = message.parse_entities([MessageEntity.MENTION, MessageEntity.TEXT_MENTION])
    for entity, text in entities.items():
        if entity.type == MessageEntity.TEXT_MENTION and entity.user is not None:
            mentions.append(str(entity.user.id))
        else:
            mentions.append(text.lstrip("@"))

    return OriginContext(
        chat_id=str(chat.id),
        sender_id=str(user.id) if user else str(chat.id),
        is_group=chat.type in (ChatType.GROUP, ChatType.SUPERGROUP),
        mentions=mentions,
    )


async def _send_reply(update: Update, reply: Reply, ctx: AppContext) -> None:
    if reply.sticker is not None:
        await ctx.notifier.send_sticker(str(update.effective_chat.id), reply.sticker)
    else:
        await update.effective_message.reply_text(reply.text, parse_mode=reply.parse_mode)


async def handle_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle plain text messages — route and send every reply."""
    router: CommandRouter = context.bot_data["router"]
    ctx: AppContext = context.bot_data["ctx"]
    message = update.effective_message
    if message is None or not message.text:
        return

    replies = await router.route(message.text, origin_from_update(update))
    for reply in replies:
        try:
            await _send_reply(update, reply, ctx)
        except (TelegramError, OSError) as exc:
            logger.error("Failed to send reply in chat %s: %s", update.effective_chat.id, exc)


# ---------------------------------------------------------------------------
# Scheduled jobs
# ---------------------------------------------------------------------------


async def _alert_operator(ctx: AppContext, text: str) -> None:
    if not ctx.settings.OPERATOR_CHAT_ID:
        return
    try:
        await ctx.notifier.send_message(ctx.settings.OPERATOR_CHAT_ID, text)
    except Exception as exc:
        logger.error("Failed to alert operator: %s", exc)


def _setup_event_reminder(app: Application, ctx: AppContext) -> None:
    """Register the repeating calendar poll."""
    if not ctx.settings.REMINDER_CHAT_ID:
        logger.warning("REMINDER_CHAT_ID not set, event reminders disabled")
        return

    async def _alert(text: str) -> None:
        await _alert_operator(ctx, text)

    scheduler = EventReminderScheduler(
        ctx.calendar,
        ctx.notifier,
        ctx.sent_log,
        ctx.settings.REMINDER_CHAT_ID,
        lead=timedelta(minutes=ctx.settings.EVENT_LEAD_MINUTES),
        alert=_alert,
    )

    async def _event_job_callback(context: ContextTypes.DEFAULT_TYPE) -> None:
        try:
            await scheduler.tick()
        except PersistenceError as exc:
            logger.critical("Event reminder tick aborted: %s", exc)
            await _alert_operator(ctx, f"⚠️ Event reminder log could not be saved: {exc}")

    app.job_queue.run_repeating(
        _event_job_callback,
        interval=ctx.settings.EVENT_POLL_SECONDS,
        first=ctx.settings.EVENT_POLL_SECONDS,
        name="event_reminder",
    )
    logger.info("Event reminder poll every %ds", ctx.settings.EVENT_POLL_SECONDS)


def _setup_quote_broadcast(app: Application, ctx: AppContext) -> None:
    """Register the daily quote broadcast."""
    broadcast_time = dt_time(hour=ctx.settings.QUOTE_BROADCAST_HOUR, minute=0, tzinfo=ctx.tz)

    async def _quote_job_callback(context: ContextTypes.DEFAULT_TYPE) -> None:
        try:
            await broadcast_daily_quote(ctx.registry, ctx.notifier, ctx.quote_source)
        except PersistenceError as exc:
            logger.critical("Daily quote broadcast aborted: %s", exc)
            await _alert_operator(ctx, f"⚠️ Subscriber list could not be read: {exc}")

    app.job_queue.run_daily(
        _quote_job_callback,
        time=broadcast_time,
        name="daily_quote",
    )
    logger.info(
        "Daily quote scheduled at %02d:00 %s",
        ctx.settings.QUOTE_BROADCAST_HOUR,
        ctx.settings.TIMEZONE,
    )


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------


def build_app(
    calendar: CalendarPort | None = None,
    sheets: SheetsPort | None = None,
    notifier: NotificationPort | None = None,
) -> Application:
    """Build and configure the Telegram Application with all handlers and jobs.

    Args:
        calendar: Calendar port implementation. Defaults to GoogleCalendarAdapter.
        sheets: Sheets port implementation. Defaults to GoogleSheetsAdapter.
        notifier: Notification port implementation. Defaults to TelegramNotifier
                  (created from the bot instance after app is built).
    """
    app = (
        ApplicationBuilder()
        .token(settings.TELEGRAM_BOT_TOKEN)
        .build()
    )

    if notifier is None:
        from planbot.adapters.telegram_notifier import TelegramNotifier
        notifier = TelegramNotifier(app.bot)

    ctx = build_context(notifier, app.job_queue, calendar=calendar, sheets=sheets)
    app.bot_data["ctx"] = ctx
    app.bot_data["router"] = CommandRouter(ctx)

    app.add_handler(MessageHandler(TEXT_MESSAGES, handle_text))

    _setup_event_reminder(app, ctx)
    _setup_quote_broadcast(app, ctx)

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


def main() -> None:
    """Entry point: build the app and start polling."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting Content Planner bot...")
    try:
        app = build_app()
    except PersistenceError as exc:
        logger.critical("Cannot start: %s", exc)
        raise SystemExit(1) from exc
    app.run_polling()


if __name__ == "__main__":
    main()
