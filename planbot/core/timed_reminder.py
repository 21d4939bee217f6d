"""
Content Planner Bot — Timed reminders ("!ingatkan").

Message shape:

    !ingatkan 14:30 besok
    Rapat klien            <- optional title
    Bawa laptop, Bawa charger   <- optional details, comma-separated

The day is "hari ini" (today), "besok" (tomorrow), "lusa" (the day after)
or an explicit DD/MM/YYYY date. The reminder fires once, at the given local
time, into the chat it was requested from, as a run_once job on the
application's JobQueue.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import TYPE_CHECKING, Awaitable, Callable
from zoneinfo import ZoneInfo

from telegram.helpers import escape_markdown

from planbot.core.errors import FormatError

if TYPE_CHECKING:
    from telegram.ext import ContextTypes, Job, JobQueue

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Pengingat"

RELATIVE_DAYS = {
    "hari ini": 0,
    "hariini": 0,
    "besok": 1,
    "lusa": 2,
}

_FIRST_LINE_RE = re.compile(r"^(\S+)\s+(\d{1,2}):(\d{2})\s+(.+?)\s*$")
_DATE_FORMATS = ("%d/%m/%Y", "%d-%m-%Y")

USAGE = (
    "Format pengingat salah. Gunakan:\n\n"
    "!ingatkan [HH:MM] [hari ini|besok|lusa|DD/MM/YYYY]\n"
    "[judul]\n"
    "[detail, dipisah koma]\n\n"
    "Contoh:\n!ingatkan 14:30 besok\nRapat\nBawa laptop, Bawa charger"
)


@dataclass
class TimedReminder:
    """A reminder bound to an absolute instant."""

    fire_at: datetime
    title: str = DEFAULT_TITLE
    details: list[str] = field(default_factory=list)
    target_channel: str = ""

    @property
    def time(self) -> str:
        return self.fire_at.strftime("%H:%M")

    @property
    def date(self) -> date:
        return self.fire_at.date()


def _resolve_day(token: str, today: date) -> date:
    key = " ".join(token.lower().split())
    if key in RELATIVE_DAYS:
        return today + timedelta(days=RELATIVE_DAYS[key])
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(key, fmt).date()
        except ValueError:
            continue
    raise FormatError(USAGE)


def _split_details(line: str) -> list[str]:
    line = line.strip()
    if not line:
        return []
    if "," in line:
        return [item.strip() for item in line.split(",") if item.strip()]
    return [line]


def parse_reminder(
    text: str,
    now: datetime | None = None,
    tz: ZoneInfo | None = None,
    target_channel: str = "",
) -> TimedReminder:
    """Parse an "!ingatkan" message into a TimedReminder.

    Raises FormatError when the first line does not match, the time is out
    of range, or the day is neither a known word nor a DD/MM/YYYY date.
    """
    if tz is None:
        from planbot.config import settings

        tz = ZoneInfo(settings.TIMEZONE)
    if now is None:
        now = datetime.now(tz)

    lines = text.strip().splitlines()
    match = _FIRST_LINE_RE.match(lines[0]) if lines else None
    if match is None:
        raise FormatError(USAGE)

    hour, minute = int(match.group(2)), int(match.group(3))
    if hour > 23 or minute > 59:
        raise FormatError(USAGE)

    day = _resolve_day(match.group(4), now.astimezone(tz).date())
    fire_at = datetime.combine(day, time(hour, minute), tzinfo=tz)

    title = lines[1].strip() if len(lines) > 1 and lines[1].strip() else DEFAULT_TITLE
    details = _split_details(lines[2]) if len(lines) > 2 else []

    return TimedReminder(
        fire_at=fire_at,
        title=title,
        details=details,
        target_channel=target_channel,
    )


def format_details(details: list[str]) -> str:
    items = [escape_markdown(item, version=1) for item in details]
    if len(items) > 1:
        return "\n".join(f"• {item}" for item in items)
    if items:
        return items[0]
    return ""


def format_reminder(reminder: TimedReminder) -> str:
    """The Markdown body sent when the reminder fires."""
    title = escape_markdown(reminder.title, version=1)
    header = f"⏰ *PENGINGAT:* {title}\n{reminder.time}, {reminder.fire_at:%d/%m/%Y}"
    body = format_details(reminder.details)
    return f"{header}\n\n{body}" if body else header


class TimedReminderScheduler:
    """Binds TimedReminders to run_once jobs on a telegram.ext.JobQueue."""

    JOB_NAME = "timed_reminder"

    def __init__(self, job_queue: JobQueue) -> None:
        self._queue = job_queue

    def schedule(
        self,
        reminder: TimedReminder,
        notify: Callable[[str], Awaitable[None]],
    ) -> Job:
        """Fire `notify(body)` once at reminder.fire_at. Returns the Job."""
        body = format_reminder(reminder)

        async def _reminder_job_callback(context: ContextTypes.DEFAULT_TYPE) -> None:
            try:
                await notify(body)
                logger.info("Reminder '%s' sent to %s", reminder.title, reminder.target_channel)
            except Exception as exc:
                logger.error(
                    "Failed to send reminder '%s' to %s: %s",
                    reminder.title, reminder.target_channel, exc,
                )

        job = self._queue.run_once(
            _reminder_job_callback,
            when=reminder.fire_at,
            name=self.JOB_NAME,
            data=reminder,
        )
        logger.info(
            "Reminder '%s' for %s scheduled at %s",
            reminder.title, reminder.target_channel, reminder.fire_at.isoformat(),
        )
        return job

    def cancel(self, job: Job) -> bool:
        """Drop a pending reminder. Returns False if it was already removed."""
        if job.removed:
            return False
        job.schedule_removal()
        return True

    def pending(self) -> int:
        return len(self._queue.get_jobs_by_name(self.JOB_NAME))
