"""
Content Planner Bot — Data Models.

Rows from the content-plan spreadsheet and events from the calendar are
read fresh on every command; nothing here is cached or persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime


@dataclass
class DeadlineRow:
    """One post in a client's content plan."""

    code: str              # e.g. "VD-S10-P1", unique within one sheet only
    format: str            # e.g. "Video"
    deadline: date | None  # None only for PostDetail lookups with a bad date cell
    type: str
    title: str
    status: str | None = None


@dataclass
class PostDetail(DeadlineRow):
    """A full content-plan row, returned by a lookup by code."""

    copy: str = ""
    details: str = ""
    reference: str = ""
    caption: str = ""


@dataclass
class UpcomingEvent:
    """A calendar event as listed by the calendar port."""

    id: str
    summary: str
    start: datetime          # timezone-aware, local zone
    end: datetime | None = None

    @property
    def start_display(self) -> str:
        """e.g. "19 October 2026, 14:30"."""
        return f"{self.start.day} {self.start.strftime('%B %Y, %H:%M')}"

    @property
    def end_display(self) -> str:
        return self.end.strftime("%H:%M") if self.end else "N/A"


@dataclass
class EventDetails:
    """Full details of a single calendar event."""

    id: str
    summary: str
    start: datetime
    end: datetime | None = None
    description: str = ""
    location: str = ""


@dataclass
class Subscribers:
    """Snapshot of the quote subscriber registry."""

    groups: list[str] = field(default_factory=list)
    users: list[str] = field(default_factory=list)
