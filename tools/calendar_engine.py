"""
Calendar Engine — Month grid and session classification for the session calendar.

Pure Python, no I/O, no Discord imports. Everything here is a function of
its arguments (plus the system clock when `now` is omitted), so the cogs can
call it as often as they like, e.g. to pre-render the adjacent months.

Conventions:
  - Weeks start on Monday (Python's date.weekday(): Monday = 0).
  - A month view is always 6 full weeks = 42 cells.
  - Sessions are attached to a day by their LOCAL calendar date in the
    viewer's zone, never by raw UTC arithmetic. A session at 23:59 local
    stays on that day even when it is already tomorrow in UTC.
  - A session without a usable date is skipped, never raised on.
"""

import calendar
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from models.session import PlannedSession, SessionStatus

logger = logging.getLogger("CalendarEngine")

GRID_CELLS = 42
DAYS_PER_WEEK = 7

MONTH_NAMES = [
    "Janvier", "Février", "Mars", "Avril", "Mai", "Juin",
    "Juillet", "Août", "Septembre", "Octobre", "Novembre", "Décembre",
]
WEEKDAY_ABBREVIATIONS = ["Lun", "Mar", "Mer", "Jeu", "Ven", "Sam", "Dim"]
WEEKDAY_NAMES = ["lundi", "mardi", "mercredi", "jeudi", "vendredi", "samedi", "dimanche"]

STATUS_LABELS: Dict[SessionStatus, str] = {
    SessionStatus.SCHEDULED: "Planifiée",
    SessionStatus.LIVE: "\U0001f534 EN DIRECT",
    SessionStatus.COMPLETED: "Terminée",
    SessionStatus.CANCELLED: "Annulée",
}

STATUS_EMOJI: Dict[SessionStatus, str] = {
    SessionStatus.SCHEDULED: "\U0001f4c5",  # calendar
    SessionStatus.LIVE: "▶️",      # play
    SessionStatus.COMPLETED: "✅",       # check mark
    SessionStatus.CANCELLED: "❌",       # cross
}


# ----------------------------------------------------------------------
# Value types
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class DayCell:
    """One square of the month grid."""

    date: date
    is_current_month: bool
    sessions: Tuple[PlannedSession, ...] = ()

    @property
    def has_sessions(self) -> bool:
        return bool(self.sessions)


@dataclass(frozen=True)
class MonthView:
    """42 Monday-first day cells covering one month plus its spill-over days."""

    year: int
    month: int
    cells: Tuple[DayCell, ...]

    @property
    def title(self) -> str:
        return format_month_title(self.year, self.month)

    @property
    def weeks(self) -> List[Tuple[DayCell, ...]]:
        return [
            self.cells[i:i + DAYS_PER_WEEK]
            for i in range(0, len(self.cells), DAYS_PER_WEEK)
        ]

    @property
    def current_month_cells(self) -> List[DayCell]:
        return [c for c in self.cells if c.is_current_month]

    def cell_for(self, day: date) -> Optional[DayCell]:
        for cell in self.cells:
            if cell.date == day:
                return cell
        return None

    @property
    def session_count(self) -> int:
        return sum(len(c.sessions) for c in self.cells)


@dataclass(frozen=True)
class SessionPartition:
    upcoming: List[PlannedSession] = field(default_factory=list)
    past: List[PlannedSession] = field(default_factory=list)


# ----------------------------------------------------------------------
# Date helpers
# ----------------------------------------------------------------------

def local_date(value, tz: Optional[tzinfo] = None) -> Optional[date]:
    """Calendar date of an instant in the viewer's zone.

    Aware datetimes are converted to `tz` (system local zone when None).
    Naive datetimes are taken as local wall-clock time already.
    Anything else yields None.
    """
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        return value.date()
    try:
        return value.astimezone(tz).date()
    except (OverflowError, ValueError, OSError) as e:
        logger.debug(f"Cannot localise {value!r}: {e}")
        return None


def _instant(value, tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """Aware datetime usable for ordering, or None.

    Naive datetimes are wall-clock time in `tz`, as in local_date.
    """
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is not None:
        return value
    if tz is not None:
        return value.replace(tzinfo=tz)
    try:
        return value.astimezone()
    except (OverflowError, ValueError, OSError):
        return None


def _status(session) -> Optional[SessionStatus]:
    raw = getattr(session, "status", None)
    if isinstance(raw, SessionStatus):
        return raw
    try:
        return SessionStatus(str(raw).lower())
    except ValueError:
        return None


def _resolve_now(now: Optional[datetime], tz: Optional[tzinfo] = None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    return _instant(now, tz) or datetime.now(timezone.utc)


def shift_month(reference: date, delta: int) -> date:
    """First day of the month `delta` months away from `reference`."""
    index = reference.year * 12 + (reference.month - 1) + delta
    year, month_index = divmod(index, 12)
    return date(year, month_index + 1, 1)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


# ----------------------------------------------------------------------
# Month grid
# ----------------------------------------------------------------------

def build_month_view(
    reference: date,
    sessions: Optional[Iterable[PlannedSession]],
    tz: Optional[tzinfo] = None,
) -> MonthView:
    """Build the 42-cell month view containing `reference`.

    Args:
        reference: Any date (or datetime) inside the month to display.
        sessions: The full, unfiltered session list. Input order is kept
            within a day.
        tz: Viewer's zone. None means the system local zone.
    """
    if isinstance(reference, datetime) and reference.tzinfo is not None:
        reference = reference.astimezone(tz)
    year, month = reference.year, reference.month

    first = date(year, month, 1)
    last = date(year, month, days_in_month(year, month))
    leading = first.weekday()

    by_day: Dict[int, List[PlannedSession]] = defaultdict(list)
    skipped = 0
    for session in sessions or ():
        day = local_date(getattr(session, "scheduled_date", None), tz)
        if day is None:
            skipped += 1
            continue
        if day.year == year and day.month == month:
            by_day[day.day].append(session)
    if skipped:
        logger.debug(f"{skipped} session(s) without a usable date left off {year}-{month:02d}")

    cells: List[DayCell] = []
    for offset in range(leading, 0, -1):
        cells.append(DayCell(date=first - timedelta(days=offset), is_current_month=False))

    for day in range(1, last.day + 1):
        cells.append(DayCell(
            date=date(year, month, day),
            is_current_month=True,
            sessions=tuple(by_day.get(day, ())),
        ))

    trailing = GRID_CELLS - len(cells)
    for offset in range(1, trailing + 1):
        cells.append(DayCell(date=last + timedelta(days=offset), is_current_month=False))

    return MonthView(year=year, month=month, cells=tuple(cells))


# ----------------------------------------------------------------------
# Upcoming / past partition
# ----------------------------------------------------------------------

def _is_upcoming(session, now: datetime, tz: Optional[tzinfo] = None) -> bool:
    when = _instant(getattr(session, "scheduled_date", None), tz)
    return when is not None and when >= now and _status(session) != SessionStatus.CANCELLED


def _is_past(session, now: datetime, tz: Optional[tzinfo] = None) -> bool:
    when = _instant(getattr(session, "scheduled_date", None), tz)
    if when is not None and when < now:
        return True
    return _status(session) in (SessionStatus.COMPLETED, SessionStatus.CANCELLED)


def _sort_key(tz: Optional[tzinfo]):
    floor = datetime.min.replace(tzinfo=timezone.utc)
    return lambda session: _instant(getattr(session, "scheduled_date", None), tz) or floor


def upcoming_sessions(sessions: Iterable[PlannedSession], now: Optional[datetime] = None,
                      tz: Optional[tzinfo] = None) -> List[PlannedSession]:
    """Not-cancelled sessions at or after `now`, soonest first."""
    now = _resolve_now(now, tz)
    return sorted((s for s in sessions or () if _is_upcoming(s, now, tz)), key=_sort_key(tz))


def past_sessions(sessions: Iterable[PlannedSession], now: Optional[datetime] = None,
                  tz: Optional[tzinfo] = None) -> List[PlannedSession]:
    """Sessions before `now`, or completed, or cancelled; most recent first."""
    now = _resolve_now(now, tz)
    return sorted((s for s in sessions or () if _is_past(s, now, tz)), key=_sort_key(tz), reverse=True)


def partition_sessions(sessions: Sequence[PlannedSession], now: Optional[datetime] = None,
                       tz: Optional[tzinfo] = None) -> SessionPartition:
    """Split sessions for the list view using a single reading of the clock.

    The two predicates are independent: a completed session dated in the
    future shows up in both lists.
    """
    now = _resolve_now(now, tz)
    items = list(sessions or ())
    return SessionPartition(
        upcoming=upcoming_sessions(items, now, tz),
        past=past_sessions(items, now, tz),
    )


def next_session(sessions: Iterable[PlannedSession], now: Optional[datetime] = None,
                 tz: Optional[tzinfo] = None) -> Optional[PlannedSession]:
    """The soonest upcoming session still scheduled or live."""
    for session in upcoming_sessions(sessions, now, tz):
        if _status(session) in (SessionStatus.SCHEDULED, SessionStatus.LIVE):
            return session
    return None


def sessions_needing_reminder(sessions: Iterable[PlannedSession], now: Optional[datetime] = None,
                              lead: timedelta = timedelta(hours=24),
                              tz: Optional[tzinfo] = None) -> List[PlannedSession]:
    """Scheduled sessions starting within `lead` whose reminder has not gone out."""
    now = _resolve_now(now, tz)
    due = []
    for session in upcoming_sessions(sessions, now, tz):
        if _status(session) != SessionStatus.SCHEDULED or getattr(session, "reminder_sent", False):
            continue
        if _instant(session.scheduled_date, tz) <= now + lead:
            due.append(session)
    return due


# ----------------------------------------------------------------------
# Formatting
# ----------------------------------------------------------------------

def format_duration(minutes) -> str:
    """90 → '1h30', 180 → '3h', 45 → '45min'. Never raises."""
    try:
        minutes = int(minutes)
    except (TypeError, ValueError, OverflowError):
        return f"{minutes}"
    if minutes >= 60:
        hours, mins = divmod(minutes, 60)
        return f"{hours}h{mins}" if mins else f"{hours}h"
    return f"{minutes}min"


def _to_local_datetime(value, tz: Optional[tzinfo]) -> Optional[datetime]:
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value
        try:
            return value.astimezone(tz)
        except (OverflowError, ValueError, OSError):
            return None
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return None


def format_date(value, tz: Optional[tzinfo] = None) -> str:
    """Long French date: 'samedi 14 mars 2026'."""
    local = _to_local_datetime(value, tz)
    if local is None:
        return "" if value is None else str(value)
    weekday = WEEKDAY_NAMES[local.weekday()]
    month = MONTH_NAMES[local.month - 1].lower()
    return f"{weekday} {local.day} {month} {local.year}"


def format_time(value, tz: Optional[tzinfo] = None) -> str:
    """24-hour clock time: '20:30'."""
    local = _to_local_datetime(value, tz)
    if local is None:
        return ""
    return f"{local.hour:02d}:{local.minute:02d}"


def format_month_title(year: int, month: int) -> str:
    return f"{MONTH_NAMES[month - 1]} {year}"


def status_label(status: SessionStatus) -> str:
    return STATUS_LABELS[SessionStatus(status)]


def status_emoji(status: SessionStatus) -> str:
    return STATUS_EMOJI[SessionStatus(status)]


# ----------------------------------------------------------------------
# Navigation state
# ----------------------------------------------------------------------

@dataclass
class CalendarViewState:
    """Displayed month for one calendar message. Owned by its view, never global."""

    reference: date
    tz: Optional[tzinfo] = None

    def previous_month(self) -> date:
        self.reference = shift_month(self.reference, -1)
        return self.reference

    def next_month(self) -> date:
        self.reference = shift_month(self.reference, 1)
        return self.reference

    def today(self, today: Optional[date] = None) -> date:
        self.reference = today or datetime.now(self.tz).date()
        return self.reference

    def build(self, sessions: Iterable[PlannedSession]) -> MonthView:
        return build_month_view(self.reference, sessions, self.tz)
