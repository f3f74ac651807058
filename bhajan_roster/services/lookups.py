from __future__ import annotations

from bhajan_roster.db import queries
from bhajan_roster.db.database import Database
from bhajan_roster.errors import InvalidInput
from bhajan_roster.models import (
    CatalogBrowseResponse,
    CatalogEntry,
    CatalogTitle,
    PitchSuggestions,
    Singer,
    SingerFestivalList,
    SingerHistoryItem,
)

CATALOG_BROWSE_LIMIT = 500


def get_catalog_entry(database: Database, bhajan_id: str) -> CatalogEntry | None:
    cleaned = (bhajan_id or "").strip()
    if not cleaned:
        raise InvalidInput("A bhajan id is required.")
    with database.connect() as conn:
        return queries.get_bhajan(conn, cleaned)


def catalog_titles(database: Database) -> list[CatalogTitle]:
    with database.connect() as conn:
        return queries.list_bhajan_titles(conn)


def browse_catalog(
    database: Database,
    query: str | None = "",
    deity: str | None = "",
    language: str | None = "",
    limit: int = CATALOG_BROWSE_LIMIT,
) -> CatalogBrowseResponse:
    """Catalog page data: matching entries by title plus the deity and language filter options."""
    with database.connect() as conn:
        return CatalogBrowseResponse(
            items=queries.browse_bhajans(
                conn,
                query=(query or "").strip(),
                deity=(deity or "").strip(),
                language=(language or "").strip(),
                limit=limit,
            ),
            deities=queries.distinct_bhajan_values(conn, "deity"),
            languages=queries.distinct_bhajan_values(conn, "language"),
        )


def list_singers(database: Database) -> list[Singer]:
    with database.connect() as conn:
        return queries.list_singers(conn)


def get_singer(database: Database, singer_id: str) -> Singer | None:
    with database.connect() as conn:
        return queries.get_singer(conn, singer_id)


def singer_history(database: Database, singer_id: str) -> list[SingerHistoryItem]:
    with database.connect() as conn:
        return queries.singer_history(conn, singer_id)


def pitch_suggestions(database: Database) -> PitchSuggestions:
    with database.connect() as conn:
        rows = queries.list_pitch_lookup(conn)

    suggestions = PitchSuggestions()
    for label, tabla_pitch in rows:
        cleaned = label.strip()
        if not cleaned:
            continue
        suggestions.pitches.append(cleaned)
        suggestions.pitch_to_tabla[cleaned] = tabla_pitch.strip()
    return suggestions


def festival_lists(database: Database) -> list[SingerFestivalList]:
    """Every singer by name with their festival bhajans in list order; singers without any get an empty list."""
    with database.connect() as conn:
        singers = queries.list_singers(conn)
        items = queries.list_festival_bhajans(conn)

    by_singer: dict[str, SingerFestivalList] = {singer.id: SingerFestivalList(singer=singer) for singer in singers}
    for singer_id, item in items:
        if singer_id in by_singer:
            by_singer[singer_id].bhajans.append(item)
    return list(by_singer.values())
