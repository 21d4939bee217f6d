"""
Content Planner Bot — Command router.

Every inbound text message goes through CommandRouter.route(), which
returns the replies to send back. The router knows nothing about Telegram.

Dispatch is a fixed, ordered table of command families. Inside a family
the first matching rule wins, so overlapping prefixes are listed with exact
matches first and longer prefixes before the shorter ones they extend
("!jadwalpost klien" before "!jadwalpost"). Families are independent: one
message may trigger a rule in several families and get several replies.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from telegram.helpers import escape_markdown

from planbot.core.broadcast import format_quote_message
from planbot.core.deadlines import (
    format_deadlines,
    format_long_date,
    format_post_detail,
    lookup_by_code,
    rank_past,
    rank_upcoming,
)
from planbot.core.errors import FormatError, NotFoundError, PersistenceError, ProviderError
from planbot.core.timed_reminder import parse_reminder

if TYPE_CHECKING:
    from planbot.bot.context import AppContext
    from planbot.data.models import EventDetails

logger = logging.getLogger(__name__)

ANY = "any"
GROUP = "group"
PRIVATE = "private"

EVENT_LIST_SIZE = 5

GROUP_ONLY = "This command works only in groups!"
NO_PERMISSION = "You do not have permission to use this command in this group."
GENERIC_FAILURE = "Terjadi kesalahan. Silakan coba lagi nanti."

HELP_TEXT = """*Available Commands:*

1. *!all*: Tag all users in the allowed group.
2. *!groupid*: Show the group ID.
3. *!userid*: Show your user ID or the ID of mentioned participants.
4. *!events [query]*: List upcoming events or search events by query.
5. *!jadwalpost [client] [last]*: Show upcoming or last deadlines for a client.
6. *!detail [client] [code]*: Get detailed information about a post by code.
7. *!jadwalkan [client] [code] [DD/MM/YYYY] [HH:MM-HH:MM]*: Put a post on the calendar.
8. *!ingatkan [HH:MM] [hari ini|besok|lusa|DD/MM/YYYY]*: Set a one-time reminder.
9. *!quote*: Quote of the day. *!quote langganan* / *!quote berhenti* to subscribe or unsubscribe.

For more information, feel free to ask!"""

SCHEDULE_GUIDE = """*Tracking Client Content*

Berikut perintah yang tersedia untuk *Jadwal Posting*:
1. *!jadwalpost* - Menampilkan daftar perintah jadwal posting.
2. *!jadwalpost klien* - Menampilkan daftar klien yang terdaftar dalam Content Planning.
3. *!jadwalpost [nama_klien]* - Menampilkan jadwal posting mendatang dari klien tertentu.
4. *!jadwalpost [nama_klien] last* - Menampilkan 5 jadwal terakhir dari klien tertentu.
5. *!detail [nama_klien] [kode]* - Menampilkan detail postingan.
6. *!jadwalkan [nama_klien] [kode] [tanggal] [waktu]* - Menjadwalkan postingan ke google calendar

*Contoh Penggunaan:*
- *!jadwalpost klien*
- *!jadwalpost buodeh-1*
- *!jadwalpost buodeh-1 last*"""

CLIENT_SCHEDULE_USAGE = "Format perintah salah. Gunakan: !jadwalpost [nama_klien] [last]"
SCHEDULE_POST_USAGE = (
    "Format perintah salah. Gunakan: !jadwalkan [sheet name] [code] [tanggal] [waktu], contoh:\n\n"
    "!jadwalkan buodeh-1 VD-S10-P1 11/01/2025 12:00-13:00"
)
DETAIL_USAGE = "Format perintah salah. Gunakan: !detail [sheet name] [code]"


# ---------------------------------------------------------------------------
# Inbound message model
# ---------------------------------------------------------------------------


@dataclass
class OriginContext:
    """Where an inbound message came from."""

    chat_id: str
    sender_id: str
    is_group: bool
    mentions: list[str] = field(default_factory=list)


@dataclass
class Command:
    """A parsed inbound message: first token plus positional arguments."""

    name: str
    raw_args: list[str]
    origin_id: str
    is_group_origin: bool
    text: str


def parse_command(text: str, origin: OriginContext) -> Command:
    tokens = text.split()
    return Command(
        name=tokens[0] if tokens else "",
        raw_args=tokens[1:],
        origin_id=origin.chat_id,
        is_group_origin=origin.is_group,
        text=text,
    )


@dataclass
class Reply:
    """One outbound message: text, or a sticker file."""

    text: str = ""
    parse_mode: str | None = None
    sticker: Path | None = None


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

Matcher = Callable[[str], bool]


def exact(token: str, ignore_case: bool = False) -> Matcher:
    if ignore_case:
        token = token.lower()
        return lambda text: text.lower() == token
    return lambda text: text == token


def prefix(token: str, ignore_case: bool = False) -> Matcher:
    if ignore_case:
        token = token.lower()
        return lambda text: text.lower().startswith(token)
    return lambda text: text.startswith(token)


@dataclass(frozen=True)
class Rule:
    """One dispatch entry.

    A rule whose origin does not fit the message is skipped, unless it has
    a rejection text, in which case that text is the reply.
    """

    name: str
    matches: Matcher
    handler: str
    origin: str = ANY
    allow_listed: bool = False
    rejection: str | None = None
    failure: str = GENERIC_FAILURE

    def accepts(self, origin: OriginContext) -> bool:
        if self.origin == GROUP:
            return origin.is_group
        if self.origin == PRIVATE:
            return not origin.is_group
        return True


def build_families(sticker_names: list[str]) -> list[tuple[str, list[Rule]]]:
    """The dispatch table, in precedence order."""
    return [
        ("help", [
            Rule("help", exact("!help"), "_help"),
        ]),
        ("identity", [
            Rule("tag-all", exact("!all"), "_tag_all", origin=GROUP,
                 allow_listed=True, rejection=GROUP_ONLY,
                 failure="An error occurred while sending the tag-all message."),
            Rule("group-id", exact("!groupid"), "_group_id", origin=GROUP, rejection=GROUP_ONLY),
            Rule("user-id-group", prefix("!userid"), "_user_id_group", origin=GROUP),
            Rule("user-id-private", exact("!userid"), "_user_id_private", origin=PRIVATE),
        ]),
        ("sticker", [
            Rule(f"sticker-{name}", exact(f"!{name}"), "_sticker") for name in sticker_names
        ]),
        ("events", [
            Rule("events", prefix("!events"), "_events",
                 failure="There was an error retrieving events. Please try again later."),
        ]),
        ("schedule", [
            Rule("schedule-guide", exact("!jadwalpost", ignore_case=True), "_schedule_guide"),
            Rule("client-list", prefix("!jadwalpost klien", ignore_case=True), "_client_list",
                 failure="Terjadi kesalahan saat mengambil daftar klien."),
            Rule("client-schedule", prefix("!jadwalpost", ignore_case=True), "_client_schedule",
                 failure="Terjadi kesalahan saat memproses perintah. "
                         "Pastikan nama klien atau sheet sesuai."),
        ]),
        ("calendar", [
            Rule("schedule-post", prefix("!jadwalkan"), "_schedule_post",
                 failure="Terjadi kesalahan saat menjadwalkan acara. "
                         "Pastikan format sudah benar dan coba lagi."),
        ]),
        ("detail", [
            Rule("post-detail", prefix("!detail "), "_post_detail",
                 failure="Terjadi kesalahan saat mengambil detail postingan."),
        ]),
        ("reminder", [
            Rule("remind", prefix("!ingatkan"), "_remind"),
        ]),
        ("quote", [
            Rule("quote", exact("!quote", ignore_case=True), "_quote"),
            Rule("quote-subscribe", prefix("!quote langganan", ignore_case=True), "_quote_subscribe"),
            Rule("quote-unsubscribe", prefix("!quote berhenti", ignore_case=True), "_quote_unsubscribe"),
        ]),
    ]


def _md(text: str) -> str:
    return escape_markdown(text, version=1)


def format_event_details(details: EventDetails) -> str:
    start = f"{details.start.day} {details.start.strftime('%B %Y, %H:%M')}"
    end = details.end.strftime("%H:%M") if details.end else "N/A"
    return (
        "*EVENT DETAILS*\n\n"
        f"*Title*: {_md(details.summary)}\n"
        f"*Description*: {_md(details.description or 'No description available')}\n"
        f"*Start*: {start}\n"
        f"*End*: {end}\n"
        f"*Location*: {_md(details.location or 'No location available')}"
    )


# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------


class CommandRouter:
    """Turns inbound text into replies by way of the engines in AppContext."""

    def __init__(self, ctx: AppContext) -> None:
        self._ctx = ctx
        self.families = build_families(ctx.settings.STICKER_NAMES)

    @staticmethod
    def _select(rules: list[Rule], text: str, origin: OriginContext) -> Rule | None:
        for rule in rules:
            if not rule.matches(text):
                continue
            if not rule.accepts(origin) and rule.rejection is None:
                continue
            return rule
        return None

    def dispatch_plan(self, text: str, origin: OriginContext) -> list[str]:
        """Names of the rules route() would run for this message, in order."""
        plan = []
        for _family, rules in self.families:
            rule = self._select(rules, text, origin)
            if rule is not None:
                plan.append(rule.name)
        return plan

    async def route(self, text: str, origin: OriginContext) -> list[Reply]:
        if not text:
            return []
        command = parse_command(text, origin)
        replies: list[Reply] = []
        for _family, rules in self.families:
            rule = self._select(rules, text, origin)
            if rule is None:
                continue
            reply = await self._run(rule, command, origin)
            if reply is not None:
                replies.append(reply)
        return replies

    async def _run(self, rule: Rule, command: Command, origin: OriginContext) -> Reply | None:
        if not rule.accepts(origin):
            return Reply(rule.rejection)
        if rule.allow_listed and origin.chat_id not in self._ctx.settings.ALLOWED_GROUP_IDS:
            logger.warning("%s refused in chat %s (not allow-listed)", rule.name, origin.chat_id)
            return Reply(NO_PERMISSION)

        handler = getattr(self, rule.handler)
        try:
            return await handler(command, origin)
        except (FormatError, NotFoundError) as exc:
            return Reply(str(exc))
        except ProviderError as exc:
            logger.error("%s: provider error: %s", rule.name, exc)
            return Reply(rule.failure)
        except PersistenceError as exc:
            logger.critical("%s: persistence failure: %s", rule.name, exc)
            return Reply(GENERIC_FAILURE)
        except Exception as exc:
            logger.exception("%s failed: %s", rule.name, exc)
            return Reply(rule.failure)

    # -- general -------------------------------------------------------------

    async def _help(self, command: Command, origin: OriginContext) -> Reply:
        return Reply(HELP_TEXT, parse_mode="Markdown")

    async def _tag_all(self, command: Command, origin: OriginContext) -> Reply:
        user_ids = self._ctx.settings.TAG_ALL_USER_IDS
        if not user_ids:
            return Reply("No users are configured for !all.")
        mentions = " ".join(f"[@{uid}](tg://user?id={uid})" for uid in user_ids)
        logger.info("Tag-all sent in chat %s", origin.chat_id)
        return Reply(mentions, parse_mode="Markdown")

    async def _group_id(self, command: Command, origin: OriginContext) -> Reply:
        return Reply(f"Group ID: {origin.chat_id}")

    async def _user_id_group(self, command: Command, origin: OriginContext) -> Reply:
        if origin.mentions:
            user_ids = "\n".join(f"@{m}" for m in origin.mentions)
        else:
            user_ids = f"Your User ID: {origin.sender_id}"
        return Reply(f"User IDs:\n{user_ids}")

    async def _user_id_private(self, command: Command, origin: OriginContext) -> Reply:
        return Reply(f"Your User ID: {origin.sender_id}")

    async def _sticker(self, command: Command, origin: OriginContext) -> Reply | None:
        name = command.name.lstrip("!")
        path = Path(self._ctx.settings.STICKERS_DIR) / f"{name}.webp"
        if not path.exists():
            logger.error("Sticker '%s' not found at %s", name, path)
            return None
        return Reply(sticker=path)

    # -- calendar ------------------------------------------------------------

    async def _events(self, command: Command, origin: OriginContext) -> Reply:
        query = " ".join(command.raw_args) if command.name == "!events" else ""
        events = await self._ctx.calendar.list_upcoming(EVENT_LIST_SIZE)

        if query:
            needle = query.lower()
            matched = next((ev for ev in events if needle in ev.summary.lower()), None)
            if matched is None:
                raise NotFoundError("Event tidak ditemukan.")
            details = await self._ctx.calendar.get_event_details(matched.id)
            return Reply(format_event_details(details), parse_mode="Markdown")

        if not events:
            return Reply("No upcoming events.")
        lines = [f"• {_md(ev.summary)} - {ev.start_display} - {ev.end_display}" for ev in events]
        return Reply("*UPCOMING EVENTS:*\n\n" + "\n".join(lines), parse_mode="Markdown")

    async def _schedule_post(self, command: Command, origin: OriginContext) -> Reply:
        if len(command.raw_args) < 4:
            raise FormatError(SCHEDULE_POST_USAGE)
        sheet_name, code, day, time_range = command.raw_args[:4]

        try:
            start_time, end_time = time_range.split("-")
            start = datetime.strptime(f"{day} {start_time}", "%d/%m/%Y %H:%M")
            end = datetime.strptime(f"{day} {end_time}", "%d/%m/%Y %H:%M")
        except ValueError as exc:
            raise FormatError(SCHEDULE_POST_USAGE) from exc
        if end <= start:
            raise FormatError(SCHEDULE_POST_USAGE)

        tz = self._ctx.tz
        link = await self._ctx.calendar.insert_event(
            f"Posting {sheet_name} [{code}]",
            f"Post untuk klien {sheet_name} dengan kode {code}",
            start.replace(tzinfo=tz).isoformat(),
            end.replace(tzinfo=tz).isoformat(),
        )
        return Reply(f"Event berhasil dijadwalkan di Google Calendar!\n\nLink: {link}")

    # -- content plan --------------------------------------------------------

    async def _schedule_guide(self, command: Command, origin: OriginContext) -> Reply:
        return Reply(SCHEDULE_GUIDE, parse_mode="Markdown")

    async def _client_list(self, command: Command, origin: OriginContext) -> Reply:
        names = await self._ctx.sheets.list_sheet_names()
        if not names:
            return Reply("Tidak ada klien yang terdaftar dalam Content Planning.")
        lines = [f"{i}. {_md(name)}" for i, name in enumerate(names, start=1)]
        return Reply("*List Klien Content Planning:*\n\n" + "\n".join(lines), parse_mode="Markdown")

    async def _resolve_sheet(self, name: str) -> str | None:
        """The spreadsheet tab whose title matches `name`, ignoring case."""
        names = await self._ctx.sheets.list_sheet_names()
        return next((n for n in names if n.lower() == name.lower()), None)

    async def _client_schedule(self, command: Command, origin: OriginContext) -> Reply:
        if not command.raw_args:
            raise FormatError(CLIENT_SCHEDULE_USAGE)
        client = command.raw_args[0].lower()
        past = len(command.raw_args) > 1 and command.raw_args[1].lower() == "last"

        sheet_name = await self._resolve_sheet(client)
        if sheet_name is None:
            raise NotFoundError(
                f'Klien "{client}" tidak ditemukan. '
                "Gunakan !jadwalpost klien untuk melihat daftar klien."
            )

        rows = await self._ctx.sheets.get_rows(sheet_name)
        now = datetime.now(self._ctx.tz)
        deadlines = rank_past(rows, now=now) if past else rank_upcoming(rows, today=now.date())
        if not deadlines:
            return Reply(f'Tidak ada jadwal yang ditemukan untuk klien "{sheet_name}".')
        return Reply(format_deadlines(sheet_name, deadlines, past), parse_mode="Markdown")

    async def _post_detail(self, command: Command, origin: OriginContext) -> Reply:
        if len(command.raw_args) < 2:
            raise FormatError(DETAIL_USAGE)
        requested, code = command.raw_args[0], command.raw_args[1]
        not_found = f'Detail untuk kode "{code}" tidak ditemukan di sheet "{requested}".'

        sheet_name = await self._resolve_sheet(requested)
        if sheet_name is None:
            raise NotFoundError(not_found)

        rows = await self._ctx.sheets.get_rows(sheet_name)
        detail = lookup_by_code(rows, code.upper())
        if detail is None:
            raise NotFoundError(not_found)
        return Reply(format_post_detail(sheet_name, code, detail), parse_mode="Markdown")

    # -- reminders -----------------------------------------------------------

    async def _remind(self, command: Command, origin: OriginContext) -> Reply:
        tz = self._ctx.tz
        now = datetime.now(tz)
        reminder = parse_reminder(command.text, now=now, tz=tz, target_channel=origin.chat_id)
        if reminder.fire_at <= now:
            raise FormatError("Waktu pengingat sudah lewat. Pilih waktu yang akan datang.")

        notifier = self._ctx.notifier
        chat_id = origin.chat_id

        async def _notify(body: str) -> None:
            await notifier.send_message(chat_id, body, parse_mode="Markdown")

        self._ctx.reminders.schedule(reminder, _notify)
        return Reply(
            f"✅ Pengingat {_md(reminder.title)} dijadwalkan pada "
            f"{format_long_date(reminder.date)} pukul {reminder.time}.",
            parse_mode="Markdown",
        )

    # -- quotes --------------------------------------------------------------

    async def _quote(self, command: Command, origin: OriginContext) -> Reply:
        quote = await self._ctx.quote_source()
        return Reply(format_quote_message(quote), parse_mode="Markdown")

    @staticmethod
    def _subscriber_kind(origin: OriginContext) -> str:
        return "group" if origin.is_group else "user"

    async def _quote_subscribe(self, command: Command, origin: OriginContext) -> Reply:
        if self._ctx.registry.add(self._subscriber_kind(origin), origin.chat_id):
            hour = self._ctx.settings.QUOTE_BROADCAST_HOUR
            return Reply(f"✅ Berlangganan quote harian. Quote dikirim setiap hari pukul {hour:02d}:00.")
        return Reply("Chat ini sudah berlangganan quote harian.")

    async def _quote_unsubscribe(self, command: Command, origin: OriginContext) -> Reply:
        if self._ctx.registry.remove(self._subscriber_kind(origin), origin.chat_id):
            return Reply("Langganan quote harian dihentikan.")
        return Reply("Chat ini belum berlangganan quote harian.")
