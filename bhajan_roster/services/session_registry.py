from __future__ import annotations

import logging
import re
import uuid
from datetime import date, datetime, timedelta, timezone

from bhajan_roster.db import queries
from bhajan_roster.db.database import Database
from bhajan_roster.errors import ConflictRetry, InvalidInput, StaleReference, StorageUnavailable
from bhajan_roster.logging_utils import log_event
from bhajan_roster.models import DayOccupancy, Session

logger = logging.getLogger(__name__)

_DAY_RE = re.compile(r"(\d{4})-(\d{2})-(\d{2})")
_MONTH_RE = re.compile(r"(\d{4})-(\d{2})")


def parse_day(value: str | date) -> date:
    if isinstance(value, datetime):
        raise InvalidInput("Expected a calendar day without a time component.", value=str(value))
    if isinstance(value, date):
        parsed = value
    else:
        cleaned = str(value or "").strip()
        m = _DAY_RE.fullmatch(cleaned)
        if not m:
            raise InvalidInput("Invalid date. Use YYYY-MM-DD.", value=cleaned)
        try:
            parsed = date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        except ValueError as exc:
            raise InvalidInput("Invalid date. The day does not exist in the calendar.", value=cleaned) from exc
    # The bucket of a day ends at the next midnight, which must exist.
    if parsed == date.max:
        raise InvalidInput("Invalid date. The day is outside the supported range.", value=parsed.isoformat())
    return parsed


def parse_month(value: str) -> tuple[int, int]:
    cleaned = str(value or "").strip()
    m = _MONTH_RE.fullmatch(cleaned)
    if not m:
        raise InvalidInput("Invalid month. Use YYYY-MM.", value=cleaned)
    year, month = int(m.group(1)), int(m.group(2))
    if not 1 <= month <= 12 or year < 1:
        raise InvalidInput("Invalid month. Month must be between 01 and 12.", value=cleaned)
    if (year, month) == (date.max.year, date.max.month):
        raise InvalidInput("Invalid month. The month is outside the supported range.", value=cleaned)
    return year, month


def _utc_midnight(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


def _timestamp(moment: datetime) -> str:
    # isoformat zero-pads the year, keeping stored values lexicographically ordered.
    return moment.replace(tzinfo=None).isoformat(timespec="seconds") + "Z"


def day_bounds(day: date) -> tuple[str, str]:
    """Half-open UTC interval ``[start, next day start)`` for ``day``."""
    start = _utc_midnight(parse_day(day))
    return _timestamp(start), _timestamp(start + timedelta(days=1))


def month_bounds(year: int, month: int) -> tuple[str, str]:
    year, month = parse_month(f"{year:04d}-{month:02d}")
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(year, month + 1, 1, tzinfo=timezone.utc)
    return _timestamp(start), _timestamp(end)


def lookup_session(database: Database, day: str | date) -> str | None:
    parsed = parse_day(day)
    start, end = day_bounds(parsed)
    with database.connect() as conn:
        return queries.find_session_id_between(conn, start, end)


def create_session(database: Database, day: str | date, notes: str | None = None) -> str:
    """Insert a session for ``day``; raises ConflictRetry when the day already has one."""
    parsed = parse_day(day)
    start, _ = day_bounds(parsed)
    session_id = uuid.uuid4().hex
    created_at = _timestamp(datetime.now(timezone.utc))
    with database.transaction() as conn:
        queries.insert_session(conn, session_id, start, created_at, notes)
    log_event(logger, "session_created", session_id=session_id, day=parsed.isoformat())
    return session_id


def ensure_session(database: Database, day: str | date) -> str:
    parsed = parse_day(day)
    existing = lookup_session(database, parsed)
    if existing is not None:
        return existing

    try:
        return create_session(database, parsed)
    except ConflictRetry:
        log_event(logger, "session_create_conflict", level=logging.WARNING, day=parsed.isoformat())

    winner = lookup_session(database, parsed)
    if winner is None:
        raise StorageUnavailable("Session creation conflicted but no session was found for the day.", day=parsed.isoformat())
    return winner


def month_occupancy(database: Database, month: str) -> dict[str, DayOccupancy]:
    year, month_number = parse_month(month)
    start, end = month_bounds(year, month_number)
    with database.connect() as conn:
        sessions = queries.sessions_with_row_counts(conn, start, end)
    return {day: DayOccupancy(session_id=session_id, row_count=row_count) for session_id, day, row_count in sessions}


def get_session(database: Database, session_id: str) -> Session | None:
    if not (session_id or "").strip():
        raise InvalidInput("A session id is required.")
    with database.connect() as conn:
        return queries.get_session(conn, session_id)


def update_session_notes(database: Database, session_id: str, notes: str | None) -> None:
    if not (session_id or "").strip():
        raise InvalidInput("A session id is required.")
    with database.transaction() as conn:
        updated = queries.update_session_notes(conn, session_id, notes)
    if not updated:
        raise StaleReference("The session no longer exists.", session_id=session_id)
    log_event(logger, "session_notes_updated", session_id=session_id, notes_length=len(notes or ""))
