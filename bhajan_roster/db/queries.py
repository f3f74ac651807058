from __future__ import annotations

import sqlite3

from bhajan_roster.models import (
    CatalogEntry,
    CatalogTitle,
    FestivalBhajan,
    RosterRow,
    Session,
    SessionInstrument,
    Singer,
    SingerHistoryItem,
)

ROSTER_ROW_COLUMNS = (
    "id, session_id, singer_id, singer_name, singer_gender, bhajan_id, bhajan_title, festival_bhajan_title, "
    "confirmed_pitch, recommended_pitch, tabla_pitch, alternative_tabla_pitch, raga, notes, slot"
)
CATALOG_COLUMNS = (
    "id, title, raga, reference_gents_pitch, reference_ladies_pitch, lyrics, meaning, deity, language"
)
# Columns a caller may list distinct values of.
CATALOG_FACETS = frozenset({"deity", "language"})


def _iso_day(stored: str) -> str:
    return stored[:10]


# -------------------------------
# SESSIONS
# -------------------------------
def find_session_id_between(db: sqlite3.Connection, start: str, end: str) -> str | None:
    row = db.execute(
        "SELECT id FROM sessions WHERE date >= ? AND date < ? ORDER BY date LIMIT 1",
        (start, end),
    ).fetchone()
    return row["id"] if row else None


def insert_session(db: sqlite3.Connection, session_id: str, date: str, created_at: str, notes: str | None = None) -> None:
    db.execute(
        "INSERT INTO sessions (id, date, notes, created_at) VALUES (?, ?, ?, ?)",
        (session_id, date, notes, created_at),
    )


def get_session(db: sqlite3.Connection, session_id: str) -> Session | None:
    row = db.execute("SELECT id, date, notes FROM sessions WHERE id = ?", (session_id,)).fetchone()
    if row is None:
        return None
    return Session(id=row["id"], date=_iso_day(row["date"]), notes=row["notes"])


def session_exists(db: sqlite3.Connection, session_id: str) -> bool:
    return db.execute("SELECT 1 FROM sessions WHERE id = ?", (session_id,)).fetchone() is not None


def update_session_notes(db: sqlite3.Connection, session_id: str, notes: str | None) -> bool:
    cursor = db.execute("UPDATE sessions SET notes = ? WHERE id = ?", (notes, session_id))
    return cursor.rowcount > 0


def sessions_with_row_counts(db: sqlite3.Connection, start: str, end: str) -> list[tuple[str, str, int]]:
    cursor = db.execute(
        """
        SELECT s.id, s.date, COUNT(r.id) AS row_count
        FROM sessions s
        LEFT JOIN session_singers r ON r.session_id = s.id
        WHERE s.date >= ? AND s.date < ?
        GROUP BY s.id, s.date
        ORDER BY s.date
        """,
        (start, end),
    )
    return [(row["id"], _iso_day(row["date"]), int(row["row_count"])) for row in cursor.fetchall()]


# -------------------------------
# SINGERS
# -------------------------------
def get_singer(db: sqlite3.Connection, singer_id: str) -> Singer | None:
    row = db.execute("SELECT id, name, gender FROM singers WHERE id = ?", (singer_id,)).fetchone()
    if row is None:
        return None
    return Singer(id=row["id"], name=row["name"], gender=row["gender"])


def list_singers(db: sqlite3.Connection) -> list[Singer]:
    cursor = db.execute("SELECT id, name, gender FROM singers ORDER BY name COLLATE NOCASE, id")
    return [Singer(id=row["id"], name=row["name"], gender=row["gender"]) for row in cursor.fetchall()]


def insert_singer(db: sqlite3.Connection, singer: Singer) -> None:
    db.execute("INSERT INTO singers (id, name, gender) VALUES (?, ?, ?)", (singer.id, singer.name, singer.gender))


def singer_history(db: sqlite3.Connection, singer_id: str) -> list[SingerHistoryItem]:
    cursor = db.execute(
        """
        SELECT r.id, r.session_id, s.date, r.bhajan_id, r.bhajan_title, r.festival_bhajan_title,
               r.confirmed_pitch, r.recommended_pitch, r.tabla_pitch
        FROM session_singers r
        JOIN sessions s ON s.id = r.session_id
        WHERE r.singer_id = ?
        ORDER BY s.date DESC, r.slot
        """,
        (singer_id,),
    )
    return [
        SingerHistoryItem(
            row_id=row["id"],
            session_id=row["session_id"],
            session_date=_iso_day(row["date"]),
            bhajan_id=row["bhajan_id"],
            bhajan_title=row["bhajan_title"],
            festival_bhajan_title=row["festival_bhajan_title"],
            confirmed_pitch=row["confirmed_pitch"],
            recommended_pitch=row["recommended_pitch"],
            tabla_pitch=row["tabla_pitch"],
        )
        for row in cursor.fetchall()
    ]


# -------------------------------
# CATALOG
# -------------------------------
def _catalog_entry(row: sqlite3.Row) -> CatalogEntry:
    return CatalogEntry(**{key: row[key] for key in row.keys()})


def get_bhajan(db: sqlite3.Connection, bhajan_id: str) -> CatalogEntry | None:
    row = db.execute(f"SELECT {CATALOG_COLUMNS} FROM bhajans WHERE id = ?", (bhajan_id,)).fetchone()
    return _catalog_entry(row) if row else None


def list_bhajan_titles(db: sqlite3.Connection) -> list[CatalogTitle]:
    cursor = db.execute("SELECT id, title FROM bhajans ORDER BY title")
    return [CatalogTitle(id=row["id"], title=row["title"]) for row in cursor.fetchall()]


def _like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def browse_bhajans(
    db: sqlite3.Connection,
    query: str = "",
    deity: str = "",
    language: str = "",
    limit: int = 500,
) -> list[CatalogEntry]:
    """Contains-search over title, lyrics, meaning and raga with exact deity/language filters."""
    clauses: list[str] = []
    params: list[object] = []
    if query:
        pattern = _like_pattern(query)
        clauses.append(
            "(title LIKE ? ESCAPE '\\' OR lyrics LIKE ? ESCAPE '\\' "
            "OR meaning LIKE ? ESCAPE '\\' OR raga LIKE ? ESCAPE '\\')"
        )
        params.extend([pattern] * 4)
    if deity:
        clauses.append("deity = ?")
        params.append(deity)
    if language:
        clauses.append("language = ?")
        params.append(language)

    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    cursor = db.execute(
        f"SELECT {CATALOG_COLUMNS} FROM bhajans {where} ORDER BY title LIMIT ?",
        (*params, limit),
    )
    return [_catalog_entry(row) for row in cursor.fetchall()]


def distinct_bhajan_values(db: sqlite3.Connection, column: str) -> list[str]:
    if column not in CATALOG_FACETS:
        raise ValueError(f"Not a catalog facet: {column}")
    cursor = db.execute(
        f"SELECT DISTINCT {column} AS value FROM bhajans WHERE {column} IS NOT NULL AND {column} != '' ORDER BY {column}"
    )
    return [row["value"] for row in cursor.fetchall()]


def insert_bhajan(db: sqlite3.Connection, entry: CatalogEntry) -> None:
    db.execute(
        f"INSERT INTO bhajans ({CATALOG_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
        (
            entry.id,
            entry.title,
            entry.raga,
            entry.reference_gents_pitch,
            entry.reference_ladies_pitch,
            entry.lyrics,
            entry.meaning,
            entry.deity,
            entry.language,
        ),
    )


# -------------------------------
# FESTIVAL LISTS
# -------------------------------
def list_festival_bhajans(db: sqlite3.Connection) -> list[tuple[str, FestivalBhajan]]:
    cursor = db.execute(
        """
        SELECT singer_id, id, title, bhajan_id, position
        FROM festival_bhajans
        ORDER BY singer_id, position, id
        """
    )
    return [
        (
            row["singer_id"],
            FestivalBhajan(id=row["id"], title=row["title"], bhajan_id=row["bhajan_id"], position=row["position"]),
        )
        for row in cursor.fetchall()
    ]


def insert_festival_bhajan(db: sqlite3.Connection, singer_id: str, item: FestivalBhajan) -> None:
    db.execute(
        "INSERT INTO festival_bhajans (id, singer_id, bhajan_id, title, position) VALUES (?, ?, ?, ?, ?)",
        (item.id, singer_id, item.bhajan_id, item.title, item.position),
    )


# -------------------------------
# PITCH LOOKUP
# -------------------------------
def list_pitch_lookup(db: sqlite3.Connection) -> list[tuple[str, str]]:
    cursor = db.execute("SELECT label, tabla_pitch FROM pitch_lookup ORDER BY value, label")
    return [(row["label"] or "", row["tabla_pitch"] or "") for row in cursor.fetchall()]


def insert_pitch_lookup(db: sqlite3.Connection, label: str, value: int, tabla_pitch: str | None) -> None:
    db.execute(
        "INSERT INTO pitch_lookup (label, value, tabla_pitch) VALUES (?, ?, ?)",
        (label, value, tabla_pitch),
    )


# -------------------------------
# ROSTER ROWS
# -------------------------------
# Everything but the id, in ROSTER_ROW_COLUMNS order.
_ROSTER_VALUE_FIELDS = tuple(name.strip() for name in ROSTER_ROW_COLUMNS.split(","))[1:]


def _roster_row(row: sqlite3.Row) -> RosterRow:
    return RosterRow(**{key: row[key] for key in row.keys()})


def _roster_values(row: RosterRow) -> tuple:
    return tuple(getattr(row, name) for name in _ROSTER_VALUE_FIELDS)


def insert_roster_row(db: sqlite3.Connection, row: RosterRow) -> None:
    placeholders = ", ".join("?" for _ in range(len(_ROSTER_VALUE_FIELDS) + 1))
    db.execute(
        f"INSERT INTO session_singers ({ROSTER_ROW_COLUMNS}) VALUES ({placeholders})",
        (row.id, *_roster_values(row)),
    )


def roster_row_exists(db: sqlite3.Connection, row_id: str, session_id: str) -> bool:
    row = db.execute("SELECT 1 FROM session_singers WHERE id = ? AND session_id = ?", (row_id, session_id)).fetchone()
    return row is not None


def update_roster_row(db: sqlite3.Connection, row: RosterRow) -> bool:
    """Update a row in place; rows belonging to another session are never touched."""
    # session_id stays out of SET, it only scopes the WHERE.
    fields = _ROSTER_VALUE_FIELDS[1:]
    assignments = ", ".join(f"{name} = ?" for name in fields)
    cursor = db.execute(
        f"UPDATE session_singers SET {assignments} WHERE id = ? AND session_id = ?",
        (*(getattr(row, name) for name in fields), row.id, row.session_id),
    )
    return cursor.rowcount > 0


def delete_roster_row(db: sqlite3.Connection, row_id: str) -> str | None:
    row = db.execute("SELECT session_id FROM session_singers WHERE id = ?", (row_id,)).fetchone()
    if row is None:
        return None
    db.execute("DELETE FROM session_singers WHERE id = ?", (row_id,))
    return row["session_id"]


def list_roster_rows(db: sqlite3.Connection, session_id: str) -> list[RosterRow]:
    cursor = db.execute(
        f"SELECT {ROSTER_ROW_COLUMNS} FROM session_singers WHERE session_id = ? ORDER BY slot, id",
        (session_id,),
    )
    return [_roster_row(row) for row in cursor.fetchall()]


# -------------------------------
# INSTRUMENTS
# -------------------------------
def insert_instrument(db: sqlite3.Connection, instrument: SessionInstrument) -> None:
    db.execute(
        "INSERT INTO session_instruments (id, session_id, instrument, person, created_at) VALUES (?, ?, ?, ?, ?)",
        (instrument.id, instrument.session_id, instrument.instrument, instrument.person, instrument.created_at),
    )


def delete_instrument(db: sqlite3.Connection, instrument_id: str) -> bool:
    cursor = db.execute("DELETE FROM session_instruments WHERE id = ?", (instrument_id,))
    return cursor.rowcount > 0


def list_instruments(db: sqlite3.Connection, session_id: str) -> list[SessionInstrument]:
    cursor = db.execute(
        """
        SELECT id, session_id, instrument, person, created_at
        FROM session_instruments
        WHERE session_id = ?
        ORDER BY created_at, rowid
        """,
        (session_id,),
    )
    return [
        SessionInstrument(
            id=row["id"],
            session_id=row["session_id"],
            instrument=row["instrument"],
            person=row["person"],
            created_at=row["created_at"],
        )
        for row in cursor.fetchall()
    ]
