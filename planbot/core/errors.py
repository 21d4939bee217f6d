"""Error taxonomy shared by the engines and the command router.

Engines raise these; the router turns them into replies and scheduled
jobs log them.
"""

from __future__ import annotations


class BotError(Exception):
    """Base class for all bot errors."""


class FormatError(BotError):
    """Malformed command arguments. The message is the user-facing usage text."""


class NotFoundError(BotError):
    """Unknown client, sheet, post code or event."""


class ProviderError(BotError):
    """A data provider (calendar, spreadsheet) call failed."""


class PersistenceError(BotError):
    """Reading or writing a local JSON store failed."""
