"""Calendar port — abstract interface for calendar operations.

Core modules depend on this protocol, never on a specific provider.
"""

from __future__ import annotations

from typing import Protocol

from planbot.core.errors import ProviderError
from planbot.data.models import EventDetails, UpcomingEvent


class CalendarError(ProviderError):
    """Raised when any calendar provider operation fails."""


class CalendarPort(Protocol):
    """Abstract calendar interface used by core modules."""

    async def list_upcoming(self, max_results: int = 5) -> list[UpcomingEvent]: ...

    async def get_event_details(self, event_id: str) -> EventDetails: ...

    async def insert_event(
        self, summary: str, description: str, start_iso: str, end_iso: str
    ) -> str: ...
