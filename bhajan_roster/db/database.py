from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from typing import Iterator

from bhajan_roster.db.schema import CURRENT_DB_VERSION, MIGRATIONS
from bhajan_roster.errors import ConflictRetry, InvalidInput, StorageUnavailable
from bhajan_roster.logging_utils import log_event

logger = logging.getLogger(__name__)


@contextmanager
def translate_storage_errors() -> Iterator[None]:
    """Map sqlite3 failures onto the roster error taxonomy.

    A UNIQUE violation is the conflict signal callers rely on; any other
    constraint failure means the caller referenced something that does not
    exist. Everything else is an unavailable store.
    """
    try:
        yield
    except sqlite3.IntegrityError as exc:
        message = str(exc)
        if "UNIQUE constraint failed" in message:
            raise ConflictRetry("A record with the same unique key already exists.", reason=message) from exc
        raise InvalidInput("The write references a record that does not exist.", reason=message) from exc
    except sqlite3.Error as exc:
        log_event(logger, "storage_unavailable", level=logging.ERROR, exception_type=type(exc).__name__, reason=str(exc))
        raise StorageUnavailable("The roster database is unavailable.", reason=str(exc)) from exc


class Database:
    def __init__(self, path: str, timeout: float = 5.0) -> None:
        self.path = path
        self.timeout = timeout

    def initialize(self) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        with self.connect() as conn:
            existing_version = int(conn.execute("PRAGMA user_version").fetchone()[0])
            upgrade_database_if_needed(conn, existing_version)

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        # Autocommit mode: transactions are opened explicitly by transaction().
        with translate_storage_errors():
            conn = sqlite3.connect(self.path, timeout=self.timeout, isolation_level=None, check_same_thread=False)
        try:
            with translate_storage_errors():
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA foreign_keys = ON")
                yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        with self.connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.rollback()
                raise
            conn.commit()


def upgrade_database_if_needed(conn: sqlite3.Connection, existing_version: int) -> None:
    if existing_version >= CURRENT_DB_VERSION:
        return

    log_event(logger, "database_migration_started", existing_version=existing_version, target_version=CURRENT_DB_VERSION)
    if existing_version <= 0:
        conn.execute("PRAGMA journal_mode=WAL")

    for version, script in MIGRATIONS:
        if version <= existing_version:
            continue
        conn.executescript(f"BEGIN;\n{script}\nPRAGMA user_version={version};\nCOMMIT;")
        log_event(logger, "database_migrated", version=version)
