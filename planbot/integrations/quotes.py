"""Quote of the day — fetched from a public quotes API.

Uses a ZenQuotes-compatible endpoint: a JSON array whose first element has
"q" (quote) and "a" (author).

Gracefully degrades: fetch_quote() returns None on any failure and
get_daily_quote() falls back to a built-in list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

import httpx

logger = logging.getLogger(__name__)

_TIMEOUT_SECONDS = 5


@dataclass
class Quote:
    text: str
    author: str

    def format(self) -> str:
        return f"\"{self.text}\"\n- {self.author}"


FALLBACK_QUOTES = [
    Quote("The secret of getting ahead is getting started.", "Mark Twain"),
    Quote("Done is better than perfect.", "Sheryl Sandberg"),
    Quote("Content is fire, social media is gasoline.", "Jay Baer"),
    Quote("Make it simple, but significant.", "Don Draper"),
    Quote("Creativity is intelligence having fun.", "Albert Einstein"),
    Quote("You can't use up creativity. The more you use, the more you have.", "Maya Angelou"),
    Quote("Action is the foundational key to all success.", "Pablo Picasso"),
]


async def fetch_quote(url: str) -> Quote | None:
    """Fetch one quote from `url`, or None on any failure."""
    if not url:
        return None

    try:
        async with httpx.AsyncClient(timeout=_TIMEOUT_SECONDS) as client:
            resp = await client.get(url)
            resp.raise_for_status()
            data = resp.json()

        if not data:
            logger.info("Quote API returned no quotes")
            return None

        item = data[0]
        text = item.get("q", "").strip()
        if not text:
            return None
        return Quote(text=text, author=item.get("a", "").strip() or "Unknown")
    except Exception as exc:
        logger.warning("Quote API failed for '%s': %s", url, exc)
        return None


def fallback_quote(today: date | None = None) -> Quote:
    """A built-in quote that changes once a day."""
    today = today or date.today()
    return FALLBACK_QUOTES[today.toordinal() % len(FALLBACK_QUOTES)]


async def get_daily_quote(url: str, today: date | None = None) -> Quote:
    quote = await fetch_quote(url)
    return quote if quote is not None else fallback_quote(today)
