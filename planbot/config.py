"""
Content Planner Bot — Centralized configuration.

Loads all settings from .env and validates required keys.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (two levels up from planbot/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Telegram
    TELEGRAM_BOT_TOKEN: str

    # Google (service account or OAuth client file)
    GOOGLE_CREDENTIALS_PATH: str = "credentials.json"
    GOOGLE_TOKEN_PATH: str = "token.json"
    GOOGLE_CALENDAR_ID: str = "primary"
    SPREADSHEET_ID: str = ""

    TIMEZONE: str = "Asia/Jakarta"

    # Local state: dedup log + quote subscribers
    DATA_DIR: str = "data"

    # Stickers: "!dea" sends stickers/dea.webp
    STICKERS_DIR: str = "stickers"
    STICKER_NAMES: list[str] = ["dea", "dimas", "ananta"]

    # Chats
    REMINDER_CHAT_ID: str = ""
    OPERATOR_CHAT_ID: str = ""
    ALLOWED_GROUP_IDS: list[str] = []
    TAG_ALL_USER_IDS: list[int] = []

    # Event reminder poll
    EVENT_POLL_SECONDS: int = 30
    EVENT_LEAD_MINUTES: int = 5

    # Daily quote
    QUOTE_BROADCAST_HOUR: int = 7
    QUOTE_API_URL: str = "https://zenquotes.io/api/today"

    @field_validator("STICKER_NAMES", "ALLOWED_GROUP_IDS", mode="before")
    @classmethod
    def parse_str_list(cls, v: str | list[str]) -> list[str]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip():
            return [item.strip() for item in v.split(",") if item.strip()]
        return []

    @field_validator("TAG_ALL_USER_IDS", mode="before")
    @classmethod
    def parse_user_ids(cls, v: str | list[int]) -> list[int]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip():
            return [int(uid.strip()) for uid in v.split(",") if uid.strip()]
        return []

    @field_validator(
        "EVENT_POLL_SECONDS", "EVENT_LEAD_MINUTES", "QUOTE_BROADCAST_HOUR",
        mode="before",
    )
    @classmethod
    def parse_int(cls, v: str | int) -> int:
        return int(v)

    @property
    def sent_reminders_path(self) -> Path:
        return Path(self.DATA_DIR) / "sent_reminders.json"

    @property
    def subscribers_path(self) -> Path:
        return Path(self.DATA_DIR) / "subscribers.json"


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    token = os.getenv("TELEGRAM_BOT_TOKEN", "")

    if not token or token.startswith("your-"):
        print("ERROR: TELEGRAM_BOT_TOKEN is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    return Settings(
        TELEGRAM_BOT_TOKEN=token,
        GOOGLE_CREDENTIALS_PATH=os.getenv("GOOGLE_CREDENTIALS_PATH", "credentials.json"),
        GOOGLE_TOKEN_PATH=os.getenv("GOOGLE_TOKEN_PATH", "token.json"),
        GOOGLE_CALENDAR_ID=os.getenv("GOOGLE_CALENDAR_ID", "primary"),
        SPREADSHEET_ID=os.getenv("SPREADSHEET_ID", ""),
        TIMEZONE=os.getenv("TIMEZONE", "Asia/Jakarta"),
        DATA_DIR=os.getenv("DATA_DIR", "data"),
        STICKERS_DIR=os.getenv("STICKERS_DIR", "stickers"),
        STICKER_NAMES=os.getenv("STICKER_NAMES", "dea,dimas,ananta"),
        REMINDER_CHAT_ID=os.getenv("REMINDER_CHAT_ID", ""),
        OPERATOR_CHAT_ID=os.getenv("OPERATOR_CHAT_ID", ""),
        ALLOWED_GROUP_IDS=os.getenv("ALLOWED_GROUP_IDS", ""),
        TAG_ALL_USER_IDS=os.getenv("TAG_ALL_USER_IDS", ""),
        EVENT_POLL_SECONDS=os.getenv("EVENT_POLL_SECONDS", "30"),
        EVENT_LEAD_MINUTES=os.getenv("EVENT_LEAD_MINUTES", "5"),
        QUOTE_BROADCAST_HOUR=os.getenv("QUOTE_BROADCAST_HOUR", "7"),
        QUOTE_API_URL=os.getenv("QUOTE_API_URL", "https://zenquotes.io/api/today"),
    )


# Module-level singleton, imported everywhere as:
#   from planbot.config import settings
settings = _load_settings()
