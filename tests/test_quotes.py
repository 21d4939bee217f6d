"""Tests for planbot.integrations.quotes — quote of the day."""

from datetime import date

import pytest
from unittest.mock import AsyncMock, patch, MagicMock

from planbot.integrations.quotes import (
    FALLBACK_QUOTES,
    Quote,
    fallback_quote,
    fetch_quote,
    get_daily_quote,
)

URL = "https://zenquotes.io/api/today"


def _mock_client(payload=None, get_side_effect=None):
    mock_resp = MagicMock()
    mock_resp.json.return_value = payload
    mock_resp.raise_for_status = MagicMock()

    mock_client = AsyncMock()
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    if get_side_effect is not None:
        mock_client.get = AsyncMock(side_effect=get_side_effect)
    else:
        mock_client.get = AsyncMock(return_value=mock_resp)
    return mock_client


class TestFetchQuote:
    @pytest.mark.asyncio
    async def test_successful_fetch(self):
        client = _mock_client([{"q": "Stay hungry. ", "a": "Steve Jobs"}])
        with patch("planbot.integrations.quotes.httpx.AsyncClient", return_value=client):
            result = await fetch_quote(URL)

        assert result == Quote("Stay hungry.", "Steve Jobs")
        client.get.assert_awaited_once_with(URL)

    @pytest.mark.asyncio
    async def test_missing_author(self):
        client = _mock_client([{"q": "Keep going."}])
        with patch("planbot.integrations.quotes.httpx.AsyncClient", return_value=client):
            result = await fetch_quote(URL)

        assert result.author == "Unknown"

    @pytest.mark.asyncio
    async def test_empty_array_returns_none(self):
        client = _mock_client([])
        with patch("planbot.integrations.quotes.httpx.AsyncClient", return_value=client):
            assert await fetch_quote(URL) is None

    @pytest.mark.asyncio
    async def test_api_error_returns_none(self):
        client = _mock_client(get_side_effect=Exception("Network error"))
        with patch("planbot.integrations.quotes.httpx.AsyncClient", return_value=client):
            assert await fetch_quote(URL) is None

    @pytest.mark.asyncio
    async def test_empty_url_returns_none(self):
        """No URL configured means no API call at all."""
        with patch("planbot.integrations.quotes.httpx.AsyncClient") as client_cls:
            assert await fetch_quote("") is None
        client_cls.assert_not_called()


class TestDailyQuote:
    def test_fallback_is_stable_within_a_day(self):
        day = date(2026, 10, 19)
        assert fallback_quote(day) is fallback_quote(day)
        assert fallback_quote(day) in FALLBACK_QUOTES

    def test_fallback_changes_next_day(self):
        day = date(2026, 10, 19)
        assert fallback_quote(day) != fallback_quote(date(2026, 10, 20))

    @pytest.mark.asyncio
    async def test_falls_back_when_api_unavailable(self):
        day = date(2026, 10, 19)
        assert await get_daily_quote("", today=day) is fallback_quote(day)

    def test_format(self):
        assert Quote("Hi", "Me").format() == "\"Hi\"\n- Me"
