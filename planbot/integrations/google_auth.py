"""
Content Planner Bot — Google API Authentication.

Both data sources live in Google: the content plan in Sheets and the
posting/meeting schedule in Calendar. One set of credentials covers both.

Two credential kinds are accepted at GOOGLE_CREDENTIALS_PATH:
- a service account key ("type": "service_account"), used as-is;
- an OAuth client secret, which goes through the installed-app consent
  flow once and caches the token at GOOGLE_TOKEN_PATH.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from google.auth.transport.requests import Request
from google.oauth2 import service_account
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/spreadsheets",
]


def _is_service_account(creds_path: Path) -> bool:
    try:
        return json.loads(creds_path.read_text()).get("type") == "service_account"
    except (OSError, ValueError):
        return False


def get_credentials():
    """Return Google credentials for the configured account.

    OAuth flow:
    1. Try loading existing token from disk.
    2. If expired, refresh with the refresh token.
    3. If no valid credentials, run the interactive OAuth2 consent flow.
    4. Persist the (refreshed) token for next time.
    """
    from planbot.config import settings

    token_path = Path(settings.GOOGLE_TOKEN_PATH)
    creds_path = Path(settings.GOOGLE_CREDENTIALS_PATH)

    if not creds_path.exists() and not token_path.exists():
        raise FileNotFoundError(
            f"Google credentials file not found at {creds_path}. "
            "Download it from the Google Cloud Console."
        )

    if creds_path.exists() and _is_service_account(creds_path):
        logger.debug("Using service account credentials from %s", creds_path)
        return service_account.Credentials.from_service_account_file(
            str(creds_path), scopes=SCOPES,
        )

    creds: Credentials | None = None

    # 1. Load existing token
    if token_path.exists():
        creds = Credentials.from_authorized_user_file(str(token_path), SCOPES)
        logger.debug("Loaded existing token from %s", token_path)

    # 2. Refresh or re-authenticate
    if creds and creds.expired and creds.refresh_token:
        try:
            creds.refresh(Request())
            logger.info("Token refreshed successfully")
        except Exception as exc:
            logger.warning("Token refresh failed (%s), re-authenticating", exc)
            creds = None

    if not creds or not creds.valid:
        if not creds_path.exists():
            raise FileNotFoundError(
                f"Google credentials file not found at {creds_path}. "
                "Download it from the Google Cloud Console."
            )
        flow = InstalledAppFlow.from_client_secrets_file(str(creds_path), SCOPES)
        creds = flow.run_local_server(port=0)
        logger.info("New credentials obtained via OAuth2 consent flow")

    # 3. Save token
    token_path.parent.mkdir(parents=True, exist_ok=True)
    token_path.write_text(creds.to_json())
    logger.debug("Token saved to %s", token_path)
    return creds


def get_calendar_service():
    """Authenticate and return a Google Calendar API v3 service object."""
    service = build("calendar", "v3", credentials=get_credentials())
    logger.info("Google Calendar service built successfully")
    return service


def get_sheets_service():
    """Authenticate and return a Google Sheets API v4 service object."""
    service = build("sheets", "v4", credentials=get_credentials())
    logger.info("Google Sheets service built successfully")
    return service


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    print("Running Google authorization flow...")
    svc = get_calendar_service()
    # Quick sanity check: list next 3 events
    events = svc.events().list(calendarId="primary", maxResults=3).execute()
    items = events.get("items", [])
    print(f"Auth successful! Found {len(items)} upcoming event(s).")
    for item in items:
        print(f"  - {item.get('summary', '(no title)')}")
