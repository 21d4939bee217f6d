"""Application context — the objects every handler and job works with.

Built once at startup and passed explicitly to the router and the
schedulers; nothing else holds references to the stores.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Awaitable, Callable
from zoneinfo import ZoneInfo

from planbot.config import Settings, settings as default_settings
from planbot.core.timed_reminder import TimedReminderScheduler
from planbot.data.store import SentReminderLog, SubscriberRegistry
from planbot.integrations.quotes import Quote, get_daily_quote

if TYPE_CHECKING:
    from telegram.ext import JobQueue

    from planbot.ports.calendar_port import CalendarPort
    from planbot.ports.notification_port import NotificationPort
    from planbot.ports.sheets_port import SheetsPort

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    calendar: CalendarPort
    sheets: SheetsPort
    notifier: NotificationPort
    sent_log: SentReminderLog
    registry: SubscriberRegistry
    job_queue: JobQueue
    reminders: TimedReminderScheduler = field(init=False)

    def __post_init__(self) -> None:
        self.reminders = TimedReminderScheduler(self.job_queue)

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.settings.TIMEZONE)

    @property
    def quote_source(self) -> Callable[[], Awaitable[Quote]]:
        async def _source() -> Quote:
            return await get_daily_quote(self.settings.QUOTE_API_URL)

        return _source


def build_context(
    notifier: NotificationPort,
    job_queue: JobQueue,
    calendar: CalendarPort | None = None,
    sheets: SheetsPort | None = None,
    settings: Settings | None = None,
) -> AppContext:
    """Wire the default Google adapters and the JSON stores."""
    settings = settings or default_settings

    if calendar is None:
        from planbot.adapters.google_calendar import GoogleCalendarAdapter
        calendar = GoogleCalendarAdapter()

    if sheets is None:
        from planbot.adapters.google_sheets import GoogleSheetsAdapter
        sheets = GoogleSheetsAdapter()

    sent_log = SentReminderLog(settings.sent_reminders_path)
    logger.info("Loaded %d sent reminder id(s)", len(sent_log))

    return AppContext(
        settings=settings,
        calendar=calendar,
        sheets=sheets,
        notifier=notifier,
        sent_log=sent_log,
        registry=SubscriberRegistry(settings.subscribers_path),
        job_queue=job_queue,
    )
