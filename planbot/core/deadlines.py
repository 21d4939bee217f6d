"""
Content Planner Bot — Deadline ranking.

Turns raw content-plan rows (as returned by the sheets port) into ordered,
filtered schedules: the next five deadlines, the last five deadlines, and
single-post lookups by code.

No I/O: this module only transforms data.

Row layout (row 0 is always the header):
    0 code | 1 format | 2 deadline (M/D/YYYY) | 3 type | 4 title |
    5 copy | 6 details | 7 reference | 8 caption | 9 status
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from telegram.helpers import escape_markdown

from planbot.data.models import DeadlineRow, PostDetail

logger = logging.getLogger(__name__)

RANK_LIMIT = 5
_NUM_COLUMNS = 10
_DATE_RE = re.compile(r"^\s*(\d{1,2})/(\d{1,2})/(\d{4})\s*$")

_NOT_AVAILABLE = "Tidak tersedia"


def try_parse_date(raw: str | None) -> date | None:
    """Parse an M/D/YYYY cell. Returns None for anything else."""
    if not raw:
        return None
    match = _DATE_RE.match(raw)
    if match is None:
        return None
    month, day, year = (int(g) for g in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _pad(row: list[str]) -> list[str]:
    # The Sheets API drops trailing empty cells.
    return list(row) + [""] * (_NUM_COLUMNS - len(row))


def rows_to_deadlines(rows: list[list[str]]) -> list[DeadlineRow]:
    """Skip the header and every row whose deadline does not parse, keeping row order."""
    result: list[DeadlineRow] = []
    for row in rows[1:]:
        cells = _pad(row)
        deadline = try_parse_date(cells[2])
        if deadline is None:
            continue
        result.append(
            DeadlineRow(
                code=cells[0],
                format=cells[1],
                deadline=deadline,
                type=cells[3],
                title=cells[4],
                status=cells[9] or None,
            )
        )
    return result


def _today(tz: ZoneInfo | None) -> date:
    return datetime.now(tz).date()


def rank_upcoming(
    rows: list[list[str]],
    today: date | None = None,
    tz: ZoneInfo | None = None,
) -> list[DeadlineRow]:
    """The next RANK_LIMIT deadlines on or after today, earliest first."""
    if today is None:
        today = _today(tz)
    upcoming = [r for r in rows_to_deadlines(rows) if r.deadline >= today]
    # sorted() is stable: equal dates keep sheet order
    upcoming = sorted(upcoming, key=lambda r: r.deadline)
    return upcoming[:RANK_LIMIT]


def rank_past(
    rows: list[list[str]],
    now: datetime | None = None,
    tz: ZoneInfo | None = None,
) -> list[DeadlineRow]:
    """The last RANK_LIMIT deadlines before now, latest first.

    A deadline is the midnight that starts its day, so today's posts count
    as past once the day has begun.
    """
    if now is None:
        now = datetime.now(tz)
    past = [
        r for r in rows_to_deadlines(rows)
        if datetime.combine(r.deadline, time.min, tzinfo=now.tzinfo) < now
    ]
    past = sorted(past, key=lambda r: r.deadline, reverse=True)
    return past[:RANK_LIMIT]


def lookup_by_code(rows: list[list[str]], code: str) -> PostDetail | None:
    """First row (after the header) whose code equals `code` exactly.

    No case normalisation happens here; callers decide.
    """
    for row in rows[1:]:
        cells = _pad(row)
        if cells[0] != code:
            continue
        return PostDetail(
            code=cells[0],
            format=cells[1],
            deadline=try_parse_date(cells[2]),
            type=cells[3],
            title=cells[4],
            copy=cells[5],
            details=cells[6],
            reference=cells[7],
            caption=cells[8],
            status=cells[9] or None,
        )
    return None


# ---------------------------------------------------------------------------
# Reply formatting
# ---------------------------------------------------------------------------


def _md(text: str) -> str:
    """Escape sheet text for Telegram legacy Markdown."""
    return escape_markdown(text, version=1)


def format_long_date(d: date) -> str:
    """e.g. "Monday, October 19, 2026"."""
    return f"{d.strftime('%A, %B')} {d.day}, {d.year}"


def format_deadlines(sheet_name: str, deadlines: list[DeadlineRow], past: bool) -> str:
    """Numbered schedule for one client."""
    label = "TERAKHIR" if past else "MENDATANG"
    lines = [f"*JADWAL POSTINGAN {label}* ({_md(sheet_name.upper())}):", ""]
    for index, row in enumerate(deadlines, start=1):
        lines.extend([
            f"{index}. \\[{_md(row.code)}] - {_md(row.title)}",
            f"Tanggal: {format_long_date(row.deadline)}",
            f"Jenis: {_md(row.format)}",
            f"Tipe: {_md(row.type)}",
            f"Status: {_md(row.status or 'Belum Ditentukan')}",
            "",
        ])
    return "\n".join(lines).strip()


def format_post_detail(sheet_name: str, code: str, detail: PostDetail) -> str:
    deadline = format_long_date(detail.deadline) if detail.deadline else None
    sections = [
        ("Title", detail.title),
        ("Deadline", deadline),
        ("Format", detail.format),
        ("Type", detail.type),
        ("Copy", detail.copy),
        ("Reference", detail.reference),
        ("Caption", detail.caption),
        ("Status", detail.status),
    ]
    lines = [f"DETAIL \\[{_md(code)}] (Sheet: {_md(sheet_name)}):"]
    for heading, value in sections:
        lines.extend(["", f"*{heading}:*", _md(value or _NOT_AVAILABLE)])
    return "\n".join(lines)
