import logging

import pytest
from fastapi.testclient import TestClient

from bhajan_roster import main as main_module
from bhajan_roster.config import Settings
from bhajan_roster.errors import StorageUnavailable
from bhajan_roster.services import lookups
from bhajan_roster.services.catalog_index import CatalogIndex


EDIT = {"Cookie": "edit=1"}


@pytest.fixture
def client(monkeypatch, seeded_database):
    monkeypatch.setattr(main_module, "database", seeded_database)
    monkeypatch.setattr(main_module, "catalog_index", CatalogIndex(lambda: lookups.catalog_titles(seeded_database)))
    return TestClient(main_module.app)


def _ensure(client, day="2024-05-12"):
    res = client.post("/api/sessions/ensure", json={"date": day}, headers=EDIT)
    assert res.status_code == 200
    return res.json()["session_id"]


def test_health(client):
    assert client.get("/api/health").json() == {"ok": True}


def test_responses_echo_request_id(client):
    res = client.get("/api/health", headers={"X-Request-ID": "req-123"})

    assert res.headers["X-Request-ID"] == "req-123"


def test_mutations_require_edit_mode(client, caplog):
    with caplog.at_level(logging.WARNING):
        res = client.post("/api/sessions/ensure", json={"date": "2024-05-12"})

    assert res.status_code == 403
    assert res.json()["detail"]["error"] == "read_only"
    assert "Session creation" in res.json()["detail"]["message"]
    assert res.json()["detail"]["request_id"]
    assert any(getattr(record, "event", "") == "edit_refused" for record in caplog.records)
    assert client.get("/api/sessions/lookup", params={"date": "2024-05-12"}).json() == {"session_id": None}


def test_read_only_refuses_every_write(client):
    session_id = _ensure(client)

    assert client.put(f"/api/sessions/{session_id}/roster", json={"rows": []}).status_code == 403
    assert client.put(f"/api/sessions/{session_id}/notes", json={"notes": "x"}).status_code == 403
    assert client.delete("/api/roster-rows/anything").status_code == 403
    assert client.post(f"/api/sessions/{session_id}/instruments", json={"instrument": "Tabla"}).status_code == 403
    assert client.delete("/api/instruments/anything").status_code == 403


def test_ensure_then_lookup_returns_same_session(client):
    session_id = _ensure(client)

    assert _ensure(client) == session_id
    res = client.get("/api/sessions/lookup", params={"date": "2024-05-12"})
    assert res.json() == {"session_id": session_id}


def test_malformed_date_is_bad_request(client):
    res = client.post("/api/sessions/ensure", json={"date": "12/05/2024"}, headers=EDIT)

    assert res.status_code == 400
    assert res.json()["detail"]["error"] == "invalid_input"
    assert client.get("/api/sessions/lookup", params={"date": "nope"}).status_code == 400


def test_month_occupancy(client):
    session_id = _ensure(client, "2024-05-05")
    _ensure(client, "2024-05-20")
    client.put(f"/api/sessions/{session_id}/roster", json={"rows": [{"singer_id": "s-ravi"}]}, headers=EDIT)

    res = client.get("/api/sessions/month", params={"month": "2024-05"})

    days = res.json()["days"]
    assert set(days) == {"2024-05-05", "2024-05-20"}
    assert days["2024-05-05"] == {"session_id": session_id, "row_count": 1}
    assert days["2024-05-20"]["row_count"] == 0


def test_month_occupancy_is_lenient(client):
    res = client.get("/api/sessions/month", params={"month": "garbage"})

    assert res.status_code == 200
    assert res.json() == {"days": {}}


def test_roster_save_and_session_detail(client):
    session_id = _ensure(client)

    res = client.put(
        f"/api/sessions/{session_id}/roster",
        json={
            "rows": [
                {"id": "new_1", "singer_id": "s-asha", "bhajan_id": "b-ram", "bhajan_title": "Ram Bhajan One", "confirmed_pitch": "F"},
                {"id": "new_2", "singer_id": "s-ravi", "bhajan_title": "Govinda Gopala"},
            ]
        },
        headers=EDIT,
    )

    assert res.status_code == 200
    assert res.json()["created"] == 2
    detail = client.get(f"/api/sessions/{session_id}").json()
    assert detail["session"]["date"] == "2024-05-12"
    assert [row["singer_name"] for row in detail["rows"]] == ["Asha", "Ravi"]
    assert [row["slot"] for row in detail["rows"]] == [1, 2]
    assert detail["rows"][0]["recommended_pitch"] == "F"
    assert detail["rows"][0]["tabla_pitch"] == "C"
    assert detail["rows"][1]["bhajan_id"] is None
    assert detail["instruments"] == []


def test_roster_save_with_unknown_singer_is_rejected(client):
    session_id = _ensure(client)

    res = client.put(f"/api/sessions/{session_id}/roster", json={"rows": [{"singer_id": "s-nobody"}]}, headers=EDIT)

    assert res.status_code == 400
    assert "Roster save failed" in res.json()["detail"]["message"]
    assert client.get(f"/api/sessions/{session_id}").json()["rows"] == []


def test_roster_save_for_unknown_session_is_rejected(client):
    res = client.put("/api/sessions/missing/roster", json={"rows": []}, headers=EDIT)

    assert res.status_code == 400


def test_unknown_session_detail_is_not_found(client):
    res = client.get("/api/sessions/missing")

    assert res.status_code == 404
    assert res.json()["detail"]["error"] == "stale_reference"


def test_delete_roster_row(client):
    session_id = _ensure(client)
    saved = client.put(f"/api/sessions/{session_id}/roster", json={"rows": [{"singer_id": "s-ravi"}]}, headers=EDIT).json()
    row_id = saved["row_ids"][0]

    assert client.delete(f"/api/roster-rows/{row_id}", headers=EDIT).json() == {"ok": True, "deleted": True}
    assert client.delete(f"/api/roster-rows/{row_id}", headers=EDIT).json() == {"ok": True, "deleted": False}
    assert client.get(f"/api/sessions/{session_id}").json()["rows"] == []


def test_session_notes(client):
    session_id = _ensure(client)

    assert client.put(f"/api/sessions/{session_id}/notes", json={"notes": "Start 6pm"}, headers=EDIT).json() == {"ok": True}
    assert client.get(f"/api/sessions/{session_id}").json()["session"]["notes"] == "Start 6pm"
    assert client.put("/api/sessions/missing/notes", json={"notes": "x"}, headers=EDIT).status_code == 404


def test_instruments(client):
    session_id = _ensure(client)

    res = client.post(f"/api/sessions/{session_id}/instruments", json={"instrument": " Tabla ", "person": "Mohan"}, headers=EDIT)

    assert res.status_code == 200
    added = res.json()
    assert added["instrument"] == "Tabla"
    assert client.get(f"/api/sessions/{session_id}").json()["instruments"][0]["person"] == "Mohan"
    assert client.delete(f"/api/instruments/{added['id']}", headers=EDIT).json() == {"ok": True, "deleted": True}
    assert client.post(f"/api/sessions/{session_id}/instruments", json={"instrument": "  "}, headers=EDIT).status_code == 400


def test_catalog_search_and_entry(client):
    res = client.get("/api/bhajans/search", params={"q": "ram"})

    assert res.json()["items"] == [{"id": "b-ram", "title": "Ram Bhajan One"}]
    entry = client.get("/api/bhajans/by-id", params={"id": "b-ram"}).json()["bhajan"]
    assert entry["raga"] == "Yaman"
    assert entry["reference_ladies_pitch"] == "F"
    assert client.get("/api/bhajans/by-id", params={"id": "b-missing"}).json() == {"bhajan": None}
    assert client.get("/api/bhajans/by-id").status_code == 400


def test_catalog_search_degrades_to_empty(client, monkeypatch):
    def unavailable():
        raise StorageUnavailable("down")

    monkeypatch.setattr(main_module, "catalog_index", CatalogIndex(unavailable))

    res = client.get("/api/bhajans/search", params={"q": "ram"})

    assert res.status_code == 200
    assert res.json() == {"items": []}


def test_singers_and_history(client):
    session_id = _ensure(client)
    client.put(f"/api/sessions/{session_id}/roster", json={"rows": [{"singer_id": "s-ravi", "bhajan_id": "b-shyam"}]}, headers=EDIT)

    assert [singer["name"] for singer in client.get("/api/singers").json()] == ["Asha", "Kiran", "Ravi"]
    history = client.get("/api/singers/s-ravi/history").json()
    assert history["singer"]["name"] == "Ravi"
    assert history["history"][0]["session_date"] == "2024-05-12"
    assert history["history"][0]["recommended_pitch"] == "D"
    assert client.get("/api/singers/s-nobody/history").status_code == 404


def test_pitch_suggestions(client):
    res = client.get("/api/pitches").json()

    assert res["pitches"] == ["C", "D", "F", "G#"]
    assert res["pitch_to_tabla"] == {"C": "G", "D": "A", "F": "C", "G#": ""}


def test_edit_mode_requires_matching_key(client, monkeypatch):
    monkeypatch.setattr(main_module, "settings", Settings(edit_key="secret"))

    rejected = client.get("/api/edit", params={"k": "wrong"}, follow_redirects=False)
    accepted = client.get("/api/edit", params={"k": "secret", "next": "/roster"}, follow_redirects=False)

    assert rejected.status_code == 401
    assert rejected.json() == {"error": "Invalid key"}
    assert accepted.status_code == 307
    assert accepted.headers["location"] == "/roster"
    assert "edit=1" in accepted.headers["set-cookie"]


def test_edit_mode_disabled_without_configured_key(client, monkeypatch):
    monkeypatch.setattr(main_module, "settings", Settings(edit_key=""))

    assert client.get("/api/edit", params={"k": ""}, follow_redirects=False).status_code == 401


def test_edit_redirect_stays_on_site(client, monkeypatch):
    monkeypatch.setattr(main_module, "settings", Settings(edit_key="secret"))

    res = client.get("/api/edit", params={"k": "secret", "next": "//evil.example"}, follow_redirects=False)

    assert res.headers["location"] == "/"


def test_readonly_clears_edit_cookie(client):
    res = client.get("/api/readonly", follow_redirects=False)

    assert res.status_code == 307
    assert res.headers["location"] == "/roster"
    assert "edit=" in res.headers["set-cookie"]


def test_calendar_edge_is_rejected_without_server_error(client):
    assert client.get("/api/sessions/month", params={"month": "9999-12"}).json() == {"days": {}}
    assert client.post("/api/sessions/ensure", json={"date": "9999-12-31"}, headers=EDIT).status_code == 400
    assert client.get("/api/sessions/lookup", params={"date": "9999-12-31"}).status_code == 400


def test_catalog_browse(client):
    res = client.get("/api/bhajans", params={"q": "raghava"})

    body = res.json()
    assert [item["id"] for item in body["items"]] == ["b-ram"]
    assert body["items"][0]["meaning"] == "Praise of Rama"
    assert body["deities"] == ["Krishna", "Rama", "Shiva"]
    assert body["languages"] == ["Hindi", "Sanskrit"]
    filtered = client.get("/api/bhajans", params={"lang": "Sanskrit"}).json()
    assert [item["title"] for item in filtered["items"]] == ["Om Namah Shivaya"]


def test_festival_lists(client):
    singers = client.get("/api/festival").json()["singers"]

    assert [entry["singer"]["name"] for entry in singers] == ["Asha", "Kiran", "Ravi"]
    assert [item["title"] for item in singers[0]["bhajans"]] == ["Om Namah Shivaya", "Devi Stuti"]
    assert singers[1]["bhajans"] == []


def test_singer_history_shows_festival_title(client):
    session_id = _ensure(client)
    client.put(
        f"/api/sessions/{session_id}/roster",
        json={"rows": [{"singer_id": "s-asha", "festival_bhajan_title": "Devi Stuti", "raga": "Kafi"}]},
        headers=EDIT,
    )

    history = client.get("/api/singers/s-asha/history").json()["history"]
    row = client.get(f"/api/sessions/{session_id}").json()["rows"][0]

    assert history[0]["festival_bhajan_title"] == "Devi Stuti"
    assert history[0]["bhajan_title"] is None
    assert row["raga"] == "Kafi"
