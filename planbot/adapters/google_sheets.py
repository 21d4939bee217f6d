"""Google Sheets adapter — implements SheetsPort for the content-plan spreadsheet.

One spreadsheet, one sheet (tab) per client. Columns A..J hold the plan.
"""

from __future__ import annotations

import asyncio
import logging

from planbot.config import settings
from planbot.ports.sheets_port import SheetsError

logger = logging.getLogger(__name__)

_ROW_RANGE = "A1:J"


class GoogleSheetsAdapter:
    """Google Sheets implementation of SheetsPort."""

    def __init__(self, spreadsheet_id: str | None = None, service=None) -> None:
        self._spreadsheet_id = spreadsheet_id or settings.SPREADSHEET_ID
        self._service = service

    def _get_service(self):
        if self._service is None:
            from planbot.integrations.google_auth import get_sheets_service

            self._service = get_sheets_service()
        return self._service

    async def list_sheet_names(self) -> list[str]:
        try:
            service = self._get_service()
            request = service.spreadsheets().get(spreadsheetId=self._spreadsheet_id)
            result = await asyncio.to_thread(request.execute)
        except Exception as exc:
            logger.error("Failed to fetch sheet list: %s", exc)
            raise SheetsError(f"Failed to fetch sheet list: {exc}") from exc

        return [sheet["properties"]["title"] for sheet in result.get("sheets", [])]

    async def get_rows(self, sheet_name: str) -> list[list[str]]:
        try:
            service = self._get_service()
            request = service.spreadsheets().values().get(
                spreadsheetId=self._spreadsheet_id,
                range=f"{sheet_name}!{_ROW_RANGE}",
            )
            result = await asyncio.to_thread(request.execute)
        except Exception as exc:
            logger.error("Failed to fetch rows of sheet '%s': %s", sheet_name, exc)
            raise SheetsError(f"Failed to fetch rows: {exc}") from exc

        rows = result.get("values", [])
        if not rows:
            logger.info("No data found in sheet '%s'", sheet_name)
        return rows
