import pytest

from bhajan_roster.errors import InvalidInput
from bhajan_roster.services import lookups


def _titles(result):
    return [item.title for item in result.items]


@pytest.mark.parametrize(
    ("query", "expected"),
    [
        ("ram", ["Ram Bhajan One"]),
        ("RAGHAVA", ["Ram Bhajan One"]),
        ("shiva", ["Om Namah Shivaya"]),
        ("bhairavi", ["Shyam Bhajan"]),
        ("bhajan", ["Ram Bhajan One", "Shyam Bhajan"]),
        ("  ", ["Om Namah Shivaya", "Ram Bhajan One", "Shyam Bhajan"]),
    ],
)
def test_browse_searches_title_lyrics_meaning_and_raga(seeded_database, query, expected):
    assert _titles(lookups.browse_catalog(seeded_database, query=query)) == expected


def test_browse_filters_are_exact_and_combine(seeded_database):
    assert _titles(lookups.browse_catalog(seeded_database, deity="Krishna")) == ["Shyam Bhajan"]
    assert _titles(lookups.browse_catalog(seeded_database, language="Hindi")) == ["Ram Bhajan One", "Shyam Bhajan"]
    assert _titles(lookups.browse_catalog(seeded_database, query="bhajan", deity="Rama")) == ["Ram Bhajan One"]
    assert _titles(lookups.browse_catalog(seeded_database, query="shyam", deity="Rama")) == []
    assert _titles(lookups.browse_catalog(seeded_database, deity="krishna")) == []


def test_browse_treats_wildcards_literally(seeded_database):
    assert _titles(lookups.browse_catalog(seeded_database, query="%")) == []
    assert _titles(lookups.browse_catalog(seeded_database, query="_")) == []


def test_browse_lists_filter_options(seeded_database):
    result = lookups.browse_catalog(seeded_database, query="ram")

    assert result.deities == ["Krishna", "Rama", "Shiva"]
    assert result.languages == ["Hindi", "Sanskrit"]


def test_browse_is_bounded(seeded_database):
    assert _titles(lookups.browse_catalog(seeded_database, limit=1)) == ["Om Namah Shivaya"]


def test_catalog_entry_carries_lyrics_and_meaning(seeded_database):
    entry = lookups.get_catalog_entry(seeded_database, " b-ram ")

    assert entry.lyrics == "Raghupati raghava raja ram"
    assert entry.meaning == "Praise of Rama"
    assert lookups.get_catalog_entry(seeded_database, "b-missing") is None
    with pytest.raises(InvalidInput):
        lookups.get_catalog_entry(seeded_database, "")


def test_festival_lists_cover_every_singer_in_order(seeded_database):
    lists = lookups.festival_lists(seeded_database)

    assert [entry.singer.name for entry in lists] == ["Asha", "Kiran", "Ravi"]
    assert [item.title for item in lists[0].bhajans] == ["Om Namah Shivaya", "Devi Stuti"]
    assert [item.position for item in lists[0].bhajans] == [1, 2]
    assert lists[0].bhajans[1].bhajan_id is None
    assert lists[1].bhajans == []
    assert lists[2].bhajans[0].bhajan_id == "b-shyam"


def test_pitch_suggestions_skip_blank_labels(seeded_database):
    with seeded_database.transaction() as conn:
        conn.execute("INSERT INTO pitch_lookup (label, value, tabla_pitch) VALUES ('  ', 0, 'X')")

    suggestions = lookups.pitch_suggestions(seeded_database)

    assert suggestions.pitches == ["C", "D", "F", "G#"]
