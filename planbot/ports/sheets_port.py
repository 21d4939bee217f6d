"""Sheets port — abstract interface for the content-plan spreadsheet.

Each sheet is one client; each row is one planned post.
"""

from __future__ import annotations

from typing import Protocol

from planbot.core.errors import ProviderError


class SheetsError(ProviderError):
    """Raised when any spreadsheet provider operation fails."""


class SheetsPort(Protocol):
    """Abstract spreadsheet interface used by core modules."""

    async def list_sheet_names(self) -> list[str]: ...

    async def get_rows(self, sheet_name: str) -> list[list[str]]: ...
