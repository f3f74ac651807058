from __future__ import annotations

SCHEMA_V1_SQL = """
CREATE TABLE sessions (
    id TEXT PRIMARY KEY,
    date TEXT NOT NULL,
    notes TEXT,
    created_at TEXT NOT NULL
);
CREATE UNIQUE INDEX idx_sessions_date ON sessions(date);

CREATE TABLE singers (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    gender TEXT
);
CREATE INDEX idx_singers_name ON singers(name);

CREATE TABLE bhajans (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL UNIQUE,
    raga TEXT,
    reference_gents_pitch TEXT,
    reference_ladies_pitch TEXT
);

CREATE TABLE pitch_lookup (
    label TEXT PRIMARY KEY,
    value INTEGER NOT NULL DEFAULT 0,
    tabla_pitch TEXT
);

CREATE TABLE session_singers (
    id TEXT PRIMARY KEY,
    session_id TEXT NOT NULL,
    singer_id TEXT,
    singer_name TEXT,
    singer_gender TEXT,
    bhajan_id TEXT,
    bhajan_title TEXT,
    confirmed_pitch TEXT,
    recommended_pitch TEXT,
    tabla_pitch TEXT,
    slot INTEGER NOT NULL DEFAULT 0,
    FOREIGN KEY(session_id) REFERENCES sessions(id) ON DELETE CASCADE,
    FOREIGN KEY(singer_id) REFERENCES singers(id),
    FOREIGN KEY(bhajan_id) REFERENCES bhajans(id) ON DELETE SET NULL
);
CREATE INDEX idx_session_singers_session_slot ON session_singers(session_id, slot);
CREATE INDEX idx_session_singers_singer ON session_singers(singer_id);
"""

# v2: per-row notes and instrument assignments.
SCHEMA_V2_SQL = """
ALTER TABLE session_singers ADD COLUMN notes TEXT;

CREATE TABLE session_instruments (
    id TEXT PRIMARY KEY,
    session_id TEXT NOT NULL,
    instrument TEXT NOT NULL,
    person TEXT,
    created_at TEXT NOT NULL,
    FOREIGN KEY(session_id) REFERENCES sessions(id) ON DELETE CASCADE
);
CREATE INDEX idx_session_instruments_session ON session_instruments(session_id);
"""

# v3: festival and accompaniment fields on roster rows, catalog text for browsing,
# and the per-singer festival lists.
SCHEMA_V3_SQL = """
ALTER TABLE session_singers ADD COLUMN festival_bhajan_title TEXT;
ALTER TABLE session_singers ADD COLUMN alternative_tabla_pitch TEXT;
ALTER TABLE session_singers ADD COLUMN raga TEXT;

ALTER TABLE bhajans ADD COLUMN lyrics TEXT;
ALTER TABLE bhajans ADD COLUMN meaning TEXT;
ALTER TABLE bhajans ADD COLUMN deity TEXT;
ALTER TABLE bhajans ADD COLUMN language TEXT;
CREATE INDEX idx_bhajans_deity ON bhajans(deity);
CREATE INDEX idx_bhajans_language ON bhajans(language);

CREATE TABLE festival_bhajans (
    id TEXT PRIMARY KEY,
    singer_id TEXT NOT NULL,
    bhajan_id TEXT,
    title TEXT NOT NULL,
    position INTEGER NOT NULL,
    FOREIGN KEY(singer_id) REFERENCES singers(id) ON DELETE CASCADE,
    FOREIGN KEY(bhajan_id) REFERENCES bhajans(id) ON DELETE SET NULL
);
CREATE INDEX idx_festival_bhajans_singer ON festival_bhajans(singer_id, position);
"""

MIGRATIONS = [
    (1, SCHEMA_V1_SQL),
    (2, SCHEMA_V2_SQL),
    (3, SCHEMA_V3_SQL),
]

CURRENT_DB_VERSION = MIGRATIONS[-1][0]
