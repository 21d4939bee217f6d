"""
Content Planner Bot — JSON file stores.

Two small pieces of local state survive bot restarts:

- SentReminderLog: the ids of calendar events a reminder was already sent
  for. Append-only; an id is never removed.
- SubscriberRegistry: the groups and users subscribed to the daily quote.

Both are whole-file JSON documents, read and rewritten in full. Writes go
through a temp file and an atomic rename.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from planbot.core.errors import PersistenceError
from planbot.data.models import Subscribers

logger = logging.getLogger(__name__)

SUBSCRIBER_KINDS = ("group", "user")


class JsonFile:
    """A UTF-8 JSON document on disk."""

    def __init__(self, path: str | Path, default: Any) -> None:
        self._path = Path(path)
        self._default = default

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> Any:
        """Return the parsed document, or a copy of the default if the file is absent."""
        if not self._path.exists():
            return json.loads(json.dumps(self._default))
        try:
            return json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"Failed to read {self._path}: {exc}") from exc

    def write(self, data: Any) -> None:
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
            tmp_path.replace(self._path)
        except OSError as exc:
            raise PersistenceError(f"Failed to write {self._path}: {exc}") from exc


class SentReminderLog:
    """Persisted, append-only set of event ids already reminded about.

    Loaded once on construction; every new id is flushed to disk before
    add() returns.
    """

    def __init__(self, path: str | Path) -> None:
        self._file = JsonFile(path, default=[])
        data = self._file.read()
        if not isinstance(data, list):
            raise PersistenceError(f"{self._file.path} does not contain a JSON array")
        self._ids: list[str] = [str(i) for i in data]
        self._known: set[str] = set(self._ids)
        logger.debug("Loaded %d sent reminder id(s) from %s", len(self._ids), self._file.path)

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._known

    def __len__(self) -> int:
        return len(self._ids)

    def add(self, event_id: str) -> bool:
        """Append an id and flush. Returns False if it was already logged.

        If the flush fails the id is not kept in memory either, and
        PersistenceError propagates.
        """
        if event_id in self._known:
            return False
        try:
            self._file.write(self._ids + [event_id])
        except PersistenceError:
            logger.critical("Could not persist sent reminder id %s", event_id)
            raise
        self._ids.append(event_id)
        self._known.add(event_id)
        return True


class SubscriberRegistry:
    """Groups and users subscribed to the daily quote broadcast.

    Every mutation reads the whole file, applies the change and writes the
    whole file back (last writer wins).
    """

    def __init__(self, path: str | Path) -> None:
        self._file = JsonFile(path, default={"groups": [], "users": []})

    def _load(self) -> dict[str, list[str]]:
        data = self._file.read()
        if not isinstance(data, dict):
            raise PersistenceError(f"{self._file.path} does not contain a JSON object")
        return {
            "groups": [str(i) for i in data.get("groups", [])],
            "users": [str(i) for i in data.get("users", [])],
        }

    @staticmethod
    def _key(kind: str) -> str:
        if kind not in SUBSCRIBER_KINDS:
            raise ValueError(f"Unknown subscriber kind: {kind!r}")
        return f"{kind}s"

    def add(self, kind: str, member_id: str) -> bool:
        """Subscribe a group or user. Returns False if already subscribed."""
        key = self._key(kind)
        data = self._load()
        if member_id in data[key]:
            return False
        data[key].append(member_id)
        self._file.write(data)
        logger.info("Subscribed %s %s", kind, member_id)
        return True

    def remove(self, kind: str, member_id: str) -> bool:
        """Unsubscribe a group or user. Removing an absent id is a no-op.

        Returns True if the id was present.
        """
        key = self._key(kind)
        data = self._load()
        if member_id not in data[key]:
            return False
        data[key].remove(member_id)
        self._file.write(data)
        logger.info("Unsubscribed %s %s", kind, member_id)
        return True

    def all(self) -> Subscribers:
        data = self._load()
        return Subscribers(groups=data["groups"], users=data["users"])
