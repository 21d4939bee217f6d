"""
Content Planner Bot — Daily quote broadcast.

A daily job reads the subscriber registry once and sends the quote of the
day to every subscribed group and user. Each send is independent: one
failing chat never blocks the others.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Awaitable, Callable

from telegram.helpers import escape_markdown

if TYPE_CHECKING:
    from planbot.data.store import SubscriberRegistry
    from planbot.integrations.quotes import Quote
    from planbot.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)


def format_quote_message(quote: Quote) -> str:
    return f"*Quote of the day*\n\n{escape_markdown(quote.format(), version=1)}"


async def broadcast_daily_quote(
    registry: SubscriberRegistry,
    notifier: NotificationPort,
    quote_source: Callable[[], Awaitable[Quote]],
) -> int:
    """Send today's quote to all subscribers. Returns the number delivered."""
    subscribers = registry.all()
    recipients = subscribers.groups + subscribers.users
    if not recipients:
        logger.info("Daily quote: no subscribers")
        return 0

    message = format_quote_message(await quote_source())

    delivered = 0
    for chat_id in recipients:
        try:
            await notifier.send_message(chat_id, message, parse_mode="Markdown")
            delivered += 1
        except Exception as exc:
            logger.error("Failed to send daily quote to %s: %s", chat_id, exc)

    logger.info("Daily quote sent to %d of %d subscriber(s)", delivered, len(recipients))
    return delivered
