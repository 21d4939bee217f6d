"""Google Calendar adapter — implements CalendarPort for Google Calendar API.

All Google-specific logic lives here. Core modules never import this directly;
they depend on the CalendarPort protocol.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from planbot.config import settings
from planbot.data.models import EventDetails, UpcomingEvent
from planbot.ports.calendar_port import CalendarError

logger = logging.getLogger(__name__)


def _parse_event_time(raw: dict | None, tz: ZoneInfo) -> datetime | None:
    """Convert a Google {dateTime|date} object to an aware local datetime.

    All-day events (date only) start at local midnight.
    """
    if not raw:
        return None
    if raw.get("dateTime"):
        value = raw["dateTime"].replace("Z", "+00:00")
        return datetime.fromisoformat(value).astimezone(tz)
    if raw.get("date"):
        return datetime.combine(date.fromisoformat(raw["date"]), time.min, tzinfo=tz)
    return None


class GoogleCalendarAdapter:
    """Google Calendar implementation of CalendarPort."""

    def __init__(self, calendar_id: str | None = None, service=None) -> None:
        self._calendar_id = calendar_id or settings.GOOGLE_CALENDAR_ID
        self._service = service
        self._tz = ZoneInfo(settings.TIMEZONE)

    def _get_service(self):
        if self._service is None:
            from planbot.integrations.google_auth import get_calendar_service

            self._service = get_calendar_service()
        return self._service

    async def list_upcoming(self, max_results: int = 5) -> list[UpcomingEvent]:
        now = datetime.now(self._tz).isoformat()
        try:
            service = self._get_service()
            request = service.events().list(
                calendarId=self._calendar_id,
                timeMin=now,
                maxResults=max_results,
                singleEvents=True,
                orderBy="startTime",
            )
            result = await asyncio.to_thread(request.execute)
        except Exception as exc:
            logger.error("Failed to list upcoming events: %s", exc)
            raise CalendarError(f"Failed to list upcoming events: {exc}") from exc

        events = []
        for item in result.get("items", []):
            start = _parse_event_time(item.get("start"), self._tz)
            if start is None:
                logger.warning("Event %s has no start date, skipping", item.get("id"))
                continue
            events.append(
                UpcomingEvent(
                    id=item.get("id", ""),
                    summary=item.get("summary") or "No title",
                    start=start,
                    end=_parse_event_time(item.get("end"), self._tz),
                )
            )

        logger.info("Found %d upcoming event(s)", len(events))
        return events

    async def get_event_details(self, event_id: str) -> EventDetails:
        try:
            service = self._get_service()
            request = service.events().get(calendarId=self._calendar_id, eventId=event_id)
            item = await asyncio.to_thread(request.execute)
            start = _parse_event_time(item.get("start"), self._tz)
            if start is None:
                raise ValueError("event has no start date")
        except Exception as exc:
            logger.error("Failed to fetch event %s: %s", event_id, exc)
            raise CalendarError(f"Failed to fetch event: {exc}") from exc

        return EventDetails(
            id=item.get("id", event_id),
            summary=item.get("summary") or "No title",
            start=start,
            end=_parse_event_time(item.get("end"), self._tz),
            description=item.get("description", ""),
            location=item.get("location", ""),
        )

    async def insert_event(
        self, summary: str, description: str, start_iso: str, end_iso: str
    ) -> str:
        body = {
            "summary": summary,
            "description": description,
            "start": {"dateTime": start_iso, "timeZone": settings.TIMEZONE},
            "end": {"dateTime": end_iso, "timeZone": settings.TIMEZONE},
        }
        try:
            service = self._get_service()
            request = service.events().insert(calendarId=self._calendar_id, body=body)
            created = await asyncio.to_thread(request.execute)
        except Exception as exc:
            logger.error("Google Calendar API error: %s", exc)
            raise CalendarError(f"Failed to create event: {exc}") from exc

        link = created.get("htmlLink", "")
        logger.info("Event created: '%s' at %s — %s", summary, start_iso, link)
        return link
