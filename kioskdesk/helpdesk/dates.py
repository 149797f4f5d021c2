"""Calendar-day range handling for ticket filters.

Filter bounds arrive as ``YYYY-MM-DD`` strings.  A ``from`` day starts at
midnight and a ``to`` day ends at its last microsecond, both in the server
local time zone unless an explicit ``tz`` is passed, so the range is
inclusive on both calendar days.

A ticket is placed on the calendar by its *effective date*: the scheduled
``maintenance_time`` when set, otherwise ``reported_date``.  Adding a
maintenance time can therefore move a ticket in or out of a filtered view.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import TYPE_CHECKING

from kioskdesk.helpdesk.errors import InvalidInputError

if TYPE_CHECKING:
    from kioskdesk.helpdesk.models.records import TicketRecord

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_END_OF_DAY = time(23, 59, 59, 999999)


@dataclass(frozen=True)
class DateRange:
    """Inclusive bounds; a missing side is open-ended."""

    start: datetime | None = None
    end: datetime | None = None

    @property
    def is_open(self) -> bool:
        """True when neither bound is set (matches everything)."""
        return self.start is None and self.end is None


def localize(value: datetime, tz: tzinfo | None = None) -> datetime:
    """Attach a zone to naive datetimes; aware values are returned unchanged."""
    if value.tzinfo is not None:
        return value
    if tz is not None:
        return value.replace(tzinfo=tz)
    return value.astimezone()


def _parse_bound(value: str, boundary: time, tz: tzinfo | None) -> datetime:
    value = value.strip()
    if "T" in value:
        # Already a timestamp: keep the caller's exact instant.
        try:
            return localize(datetime.fromisoformat(value), tz)
        except ValueError:
            msg = f"Invalid date filter: {value!r}"
            raise InvalidInputError(msg) from None
    if not _DATE_RE.match(value):
        msg = f"Invalid date filter: {value!r} (expected YYYY-MM-DD)"
        raise InvalidInputError(msg)
    try:
        day = date.fromisoformat(value)
    except ValueError:
        msg = f"Invalid date filter: {value!r}"
        raise InvalidInputError(msg) from None
    return localize(datetime.combine(day, boundary), tz)


def normalize_date_range(
    date_from: str | None = None,
    date_to: str | None = None,
    *,
    tz: tzinfo | None = None,
) -> DateRange:
    """Turn optional ``YYYY-MM-DD`` strings into an inclusive :class:`DateRange`.

    Raises ``InvalidInputError`` for malformed input or a start after the
    end.  Empty strings are treated as missing.
    """
    start = _parse_bound(date_from, time.min, tz) if date_from else None
    end = _parse_bound(date_to, _END_OF_DAY, tz) if date_to else None
    if start is not None and end is not None and start > end:
        msg = f"Invalid date filter: {date_from!r} is after {date_to!r}"
        raise InvalidInputError(msg)
    return DateRange(start=start, end=end)


def effective_ticket_date(ticket: TicketRecord) -> datetime:
    """Scheduled maintenance time if present, else the reported date."""
    return ticket.maintenance_time or ticket.reported_date


def is_ticket_in_date_range(
    ticket: TicketRecord,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    *,
    tz: tzinfo | None = None,
) -> bool:
    """Check a ticket's effective date against already-normalized bounds."""
    if date_from is None and date_to is None:
        return True

    ticket_date = localize(effective_ticket_date(ticket), tz)
    if date_from is not None and ticket_date < date_from:
        return False
    return not (date_to is not None and ticket_date > date_to)


# -- Presets -------------------------------------------------------------------


def format_local_date(day: date) -> str:
    return day.strftime("%Y-%m-%d")


def today_local(tz: tzinfo | None = None) -> date:
    """Today's calendar date in ``tz`` (server local time when None)."""
    return datetime.now(tz).date()


def current_month_range(today: date) -> tuple[str, str]:
    first = today.replace(day=1)
    next_first = (first + timedelta(days=32)).replace(day=1)
    last = next_first - timedelta(days=1)
    return format_local_date(first), format_local_date(last)


def last_month_range(today: date) -> tuple[str, str]:
    last = today.replace(day=1) - timedelta(days=1)
    return format_local_date(last.replace(day=1)), format_local_date(last)


def current_year_range(today: date) -> tuple[str, str]:
    return format_local_date(date(today.year, 1, 1)), format_local_date(date(today.year, 12, 31))
