import pytest

from bhajan_roster.db import queries
from bhajan_roster.db.database import Database
from bhajan_roster.models import CatalogEntry, FestivalBhajan, Singer


SINGERS = [
    Singer(id="s-asha", name="Asha", gender="Female"),
    Singer(id="s-ravi", name="Ravi", gender="M"),
    Singer(id="s-kiran", name="Kiran", gender=None),
]

BHAJANS = [
    CatalogEntry(
        id="b-ram",
        title="Ram Bhajan One",
        raga="Yaman",
        reference_gents_pitch="C",
        reference_ladies_pitch="F",
        lyrics="Raghupati raghava raja ram",
        meaning="Praise of Rama",
        deity="Rama",
        language="Hindi",
    ),
    CatalogEntry(
        id="b-shyam",
        title="Shyam Bhajan",
        raga="Bhairavi",
        reference_gents_pitch="D",
        reference_ladies_pitch=None,
        lyrics="Shyam murali manohar",
        deity="Krishna",
        language="Hindi",
    ),
    CatalogEntry(
        id="b-om",
        title="Om Namah Shivaya",
        reference_gents_pitch=None,
        reference_ladies_pitch=None,
        meaning="Salutations to Shiva",
        deity="Shiva",
        language="Sanskrit",
    ),
]

PITCHES = [
    ("C", 1, "G"),
    ("D", 2, "A"),
    ("F", 3, "C"),
    ("G#", 4, None),
]

FESTIVAL_BHAJANS = [
    ("s-asha", FestivalBhajan(id="f-2", title="Devi Stuti", position=2)),
    ("s-asha", FestivalBhajan(id="f-1", title="Om Namah Shivaya", bhajan_id="b-om", position=1)),
    ("s-ravi", FestivalBhajan(id="f-3", title="Shyam Bhajan", bhajan_id="b-shyam", position=1)),
]


@pytest.fixture
def database(tmp_path):
    db = Database(str(tmp_path / "roster.sqlite3"))
    db.initialize()
    return db


@pytest.fixture
def seeded_database(database):
    with database.transaction() as conn:
        for singer in SINGERS:
            queries.insert_singer(conn, singer)
        for entry in BHAJANS:
            queries.insert_bhajan(conn, entry)
        for label, value, tabla in PITCHES:
            queries.insert_pitch_lookup(conn, label, value, tabla)
        for singer_id, item in FESTIVAL_BHAJANS:
            queries.insert_festival_bhajan(conn, singer_id, item)
    return database
