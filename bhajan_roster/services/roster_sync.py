from __future__ import annotations

import logging
import sqlite3
import uuid
from typing import Sequence

from bhajan_roster.db import queries
from bhajan_roster.db.database import Database
from bhajan_roster.errors import InvalidInput, StaleReference
from bhajan_roster.logging_utils import log_event, timed_operation
from bhajan_roster.models import CatalogEntry, RosterRow, RosterRowInput, Singer, SyncSummary
from bhajan_roster.services.pitch_recommendation import fill_recommended_pitch, tabla_for

logger = logging.getLogger(__name__)

PLACEHOLDER_PREFIX = "new_"


def is_placeholder_id(row_id: str | None) -> bool:
    cleaned = (row_id or "").strip()
    return not cleaned or cleaned.startswith(PLACEHOLDER_PREFIX)


def _optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


class _ReferenceLookup:
    """Per-transaction memo of singers, catalog entries and the pitch/tabla map."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._singers: dict[str, Singer | None] = {}
        self._bhajans: dict[str, CatalogEntry | None] = {}
        self.pitch_to_tabla = {label.strip(): tabla for label, tabla in queries.list_pitch_lookup(conn) if label.strip()}

    def singer(self, singer_id: str | None) -> Singer | None:
        if singer_id is None:
            return None
        if singer_id not in self._singers:
            self._singers[singer_id] = queries.get_singer(self._conn, singer_id)
        found = self._singers[singer_id]
        if found is None:
            raise InvalidInput("Unknown singer.", singer_id=singer_id)
        return found

    def bhajan(self, bhajan_id: str | None) -> CatalogEntry | None:
        if bhajan_id is None:
            return None
        if bhajan_id not in self._bhajans:
            self._bhajans[bhajan_id] = queries.get_bhajan(self._conn, bhajan_id)
        found = self._bhajans[bhajan_id]
        if found is None:
            raise InvalidInput("Unknown bhajan.", bhajan_id=bhajan_id)
        return found


def build_row(session_id: str, row_id: str, slot: int, row: RosterRowInput, lookup: _ReferenceLookup) -> RosterRow:
    singer = lookup.singer(row.singer_id)
    entry = lookup.bhajan(row.bhajan_id)
    gender = singer.gender if singer else None
    confirmed = _optional_text(row.confirmed_pitch)
    recommended = fill_recommended_pitch(row.recommended_pitch, gender, entry, confirmed)
    return RosterRow(
        id=row_id,
        session_id=session_id,
        singer_id=row.singer_id,
        singer_name=singer.name if singer else None,
        singer_gender=gender,
        bhajan_id=row.bhajan_id,
        # Free-text titles are stored exactly as submitted, linked or not.
        bhajan_title=row.bhajan_title,
        festival_bhajan_title=row.festival_bhajan_title,
        confirmed_pitch=confirmed,
        recommended_pitch=recommended or None,
        tabla_pitch=tabla_for(confirmed, lookup.pitch_to_tabla) or None,
        alternative_tabla_pitch=_optional_text(row.alternative_tabla_pitch),
        raga=_optional_text(row.raga),
        notes=row.notes,
        slot=slot,
    )


def _apply_row(conn: sqlite3.Connection, session_id: str, slot: int, row: RosterRowInput, lookup: _ReferenceLookup) -> tuple[str, bool]:
    if is_placeholder_id(row.id):
        built = build_row(session_id, uuid.uuid4().hex, slot, row, lookup)
        queries.insert_roster_row(conn, built)
        return built.id, True

    row_id = (row.id or "").strip()
    # Checked before the references, which may have vanished along with the row.
    if not queries.roster_row_exists(conn, row_id, session_id):
        raise StaleReference("Roster row no longer exists.", row_id=row_id)
    queries.update_roster_row(conn, build_row(session_id, row_id, slot, row, lookup))
    return row_id, False


def _skip(summary: SyncSummary, session_id: str, row_id: object, index: int, reason: str) -> None:
    log_event(
        logger,
        "roster_row_skipped",
        level=logging.WARNING,
        session_id=session_id,
        row_id=row_id,
        index=index,
        reason=reason,
    )
    summary.skipped += 1
    summary.row_ids.append(None)


def synchronize(database: Database, session_id: str, rows: Sequence[RosterRowInput]) -> SyncSummary:
    """Write the submitted rows for a session in one transaction.

    Rows are applied in array order and numbered ``1..n`` over the rows that
    were actually written. An update whose row has vanished is skipped and
    does not abort the batch, and so is a repeat of an id already written in
    this batch. Any other failure rolls the whole batch back.
    """
    session_id = (session_id or "").strip()
    if not session_id:
        raise InvalidInput("A session id is required.")

    summary = SyncSummary()
    with timed_operation(logger, "roster_synchronized", session_id=session_id, submitted=len(rows)) as fields:
        with database.transaction() as conn:
            if not queries.session_exists(conn, session_id):
                raise InvalidInput("Unknown session.", session_id=session_id)

            lookup = _ReferenceLookup(conn)
            applied: set[str] = set()
            slot = 0
            for index, row in enumerate(rows):
                row_key = (row.id or "").strip()
                if row_key in applied:
                    _skip(summary, session_id, row_key, index, "duplicate")
                    continue
                try:
                    row_id, created = _apply_row(conn, session_id, slot + 1, row, lookup)
                except StaleReference as exc:
                    _skip(summary, session_id, exc.context.get("row_id"), index, "stale")
                    continue
                applied.add(row_id)
                slot += 1
                summary.row_ids.append(row_id)
                if created:
                    summary.created += 1
                else:
                    summary.updated += 1
        fields.update(created_count=summary.created, updated_count=summary.updated, skipped_count=summary.skipped)
    return summary


def delete_row(database: Database, row_id: str) -> str | None:
    """Delete one roster row; returns its session id, or None when it was already gone."""
    row_id = (row_id or "").strip()
    if not row_id:
        raise InvalidInput("A roster row id is required.")
    with database.transaction() as conn:
        session_id = queries.delete_roster_row(conn, row_id)
    if session_id is None:
        log_event(logger, "roster_row_delete_noop", level=logging.DEBUG, row_id=row_id)
        return None
    log_event(logger, "roster_row_deleted", row_id=row_id, session_id=session_id)
    return session_id


def list_rows(database: Database, session_id: str) -> list[RosterRow]:
    with database.connect() as conn:
        return queries.list_roster_rows(conn, session_id)
