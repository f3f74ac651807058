from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from bhajan_roster.db import queries
from bhajan_roster.db.database import Database
from bhajan_roster.errors import InvalidInput
from bhajan_roster.logging_utils import log_event
from bhajan_roster.models import SessionInstrument

logger = logging.getLogger(__name__)


def add_instrument(database: Database, session_id: str, instrument: str, person: str | None = None) -> SessionInstrument:
    name = (instrument or "").strip()
    if not name:
        raise InvalidInput("An instrument name is required.")
    player = (person or "").strip()
    created = SessionInstrument(
        id=uuid.uuid4().hex,
        session_id=session_id,
        instrument=name,
        person=player or None,
        created_at=datetime.now(timezone.utc).isoformat(),
    )
    with database.transaction() as conn:
        if not queries.session_exists(conn, session_id):
            raise InvalidInput("Unknown session.", session_id=session_id)
        queries.insert_instrument(conn, created)
    log_event(logger, "session_instrument_added", session_id=session_id, instrument=name)
    return created


def delete_instrument(database: Database, instrument_id: str) -> bool:
    with database.transaction() as conn:
        deleted = queries.delete_instrument(conn, instrument_id)
    if deleted:
        log_event(logger, "session_instrument_deleted", instrument_id=instrument_id)
    return deleted


def list_instruments(database: Database, session_id: str) -> list[SessionInstrument]:
    with database.connect() as conn:
        return queries.list_instruments(conn, session_id)
