"""
Content Planner Bot — Event reminder.

A repeating job polls the calendar and, when an event is about to start,
posts one reminder to the team chat.

Each tick:
1. Fetch the next FETCH_LIMIT events.
2. Take the first one (calendar order) starting within the lead window.
3. Skip it if its id is already in the SentReminderLog.
4. Otherwise log the id (flushed to disk), then send the reminder.

The id is persisted before sending, so a crash or a failed flush can never
lead to the same event being announced twice.

This module is provider-agnostic: it depends on CalendarPort and
NotificationPort protocols, not on specific implementations.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Awaitable, Callable

from planbot.core.errors import ProviderError

if TYPE_CHECKING:
    from planbot.data.models import UpcomingEvent
    from planbot.data.store import SentReminderLog
    from planbot.ports.calendar_port import CalendarPort
    from planbot.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)

FETCH_LIMIT = 10
LEAD_WINDOW = timedelta(minutes=5)
POLL_INTERVAL_SECONDS = 30


def find_due_event(
    events: list[UpcomingEvent],
    now: datetime,
    lead: timedelta = LEAD_WINDOW,
) -> UpcomingEvent | None:
    """Return the first event with now <= start < now + lead, or None."""
    window_end = now + lead
    for event in events:
        if now <= event.start < window_end:
            return event
    return None


def format_event_reminder(event: UpcomingEvent) -> str:
    return f"Reminder: {event.summary} will start at {event.start_display}. Don't miss it!"


class EventReminderScheduler:
    """Polls upcoming events and reminds a fixed chat at most once per event."""

    def __init__(
        self,
        calendar: CalendarPort,
        notifier: NotificationPort,
        sent_log: SentReminderLog,
        destination: str | int,
        lead: timedelta = LEAD_WINDOW,
        alert: Callable[[str], Awaitable[None]] | None = None,
    ) -> None:
        self._calendar = calendar
        self._notifier = notifier
        self._sent_log = sent_log
        self._destination = destination
        self._lead = lead
        self._alert = alert

    async def tick(self, now: datetime | None = None) -> UpcomingEvent | None:
        """Run one poll. Returns the event that was logged and announced, if any.

        Raises PersistenceError if the sent-id log cannot be flushed; nothing
        is sent in that case.
        """
        if now is None:
            now = datetime.now(timezone.utc)

        try:
            events = await self._calendar.list_upcoming(FETCH_LIMIT)
        except ProviderError as exc:
            logger.error("Event reminder tick abandoned: %s", exc)
            return None

        event = find_due_event(events, now, self._lead)
        if event is None:
            return None
        if event.id in self._sent_log:
            logger.debug("Reminder for event %s already sent", event.id)
            return None

        self._sent_log.add(event.id)

        try:
            await self._notifier.send_message(self._destination, format_event_reminder(event))
            logger.info("Reminder sent for event: %s", event.summary)
        except Exception as exc:
            # The id is already logged, so this reminder will not be retried.
            logger.error("Failed to send reminder for event %s: %s", event.id, exc)
            if self._alert is not None:
                await self._alert(
                    f"⚠️ Reminder for \"{event.summary}\" could not be delivered: {exc}"
                )
        return event
