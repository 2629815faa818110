import pytest
from fastapi.testclient import TestClient

import matchplay.main as main
from builders import four_players, make_match

SCRAMBLE_ROUND = {"format": "twoManScramble", "tournamentId": "t1", "pointsValue": 1}


@pytest.fixture
def client(wired_store, monkeypatch):
    monkeypatch.setattr(main, "store", wired_store)
    return TestClient(main.app)


def _new_match(client, match_id="m1"):
    client.put("/api/tournaments/t1", json={"name": "Autumn Cup"})
    client.put("/api/rounds/r1", json=SCRAMBLE_ROUND)
    response = client.put(f"/api/matches/{match_id}", json=make_match({}, *four_players()))
    assert response.status_code == 200
    return response


def _play(client, holes, match_id="m1"):
    for hole in holes:
        response = client.patch(
            f"/api/matches/{match_id}/holes/{hole}",
            json={"teamAGross": 3, "teamBGross": 4, "teamADrive": 0, "teamBDrive": 1},
        )
        assert response.status_code == 200
    return response


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_put_and_get_document(client):
    response = client.put("/api/courses/c1", json={"par": 71})
    assert response.status_code == 200
    assert response.json() == {"id": "c1", "par": 71}

    assert client.get("/api/courses/c1").json() == {"id": "c1", "par": 71}


def test_unknown_documents_and_collections_are_404(client):
    assert client.get("/api/matches/nope").status_code == 404
    assert client.get("/api/secrets/x").status_code == 404
    assert client.put("/api/playerStats/p1", json={"wins": 9}).status_code == 404
    assert client.delete("/api/matches/nope").status_code == 404
    assert client.post("/api/matches/nope/recompute").status_code == 404
    assert client.get("/api/players/nobody/stats").status_code == 404


def test_put_rejects_non_object_bodies(client):
    response = client.put("/api/rounds/r1", json=["singles"])
    assert response.status_code == 422
    assert response.json()["error"] == "Invalid payload"


def test_put_match_validates_players(client):
    response = client.put("/api/matches/m1", json={"teamAPlayers": [{"strokesReceived": []}]})
    assert response.status_code == 422
    body = response.json()
    assert body["error"] == "Invalid payload"
    assert body["details"]


def test_hole_entry_updates_status(client):
    _new_match(client)

    response = _play(client, [1, 2])

    body = response.json()
    assert body["holes"]["2"]["input"] == {"teamAGross": 3, "teamBGross": 4, "teamADrive": 0, "teamBDrive": 1}
    assert body["status"]["thru"] == 2
    assert body["status"]["leader"] == "teamA"
    assert body["result"]["holesWonA"] == 2
    assert client.get("/api/rounds/r1").json()["matchIds"] == ["m1"]


def test_hole_entry_merges_and_null_clears(client):
    _new_match(client)
    client.patch("/api/matches/m1/holes/1", json={"teamAGross": 4, "teamBGross": 5})
    client.patch("/api/matches/m1/holes/1", json={"teamBGross": 4})
    response = client.patch("/api/matches/m1/holes/1", json={"teamAGross": None})

    assert response.status_code == 200
    body = response.json()
    assert body["holes"]["1"]["input"] == {"teamBGross": 4}
    assert body["status"]["thru"] == 0


@pytest.mark.parametrize(
    "payload",
    [
        {"teamAGross": "4"},
        {"teamAGross": True},
        {"teamADrive": 2},
        {"teamAPlayersGross": [4]},
        {"teamAGrossTypo": 4},
        ["teamAGross"],
    ],
)
def test_hole_entry_rejects_bad_payloads(client, payload):
    _new_match(client)

    response = client.patch("/api/matches/m1/holes/1", json=payload)

    assert response.status_code == 422
    assert response.json()["error"] == "Invalid payload"


def test_hole_entry_checks_hole_range_and_match(client):
    _new_match(client)

    response = client.patch("/api/matches/m1/holes/19", json={"teamAGross": 4})
    assert response.status_code == 422
    assert response.json()["error"] == "Invalid hole"
    assert client.patch("/api/matches/m1/holes/0", json={"teamAGross": 4}).status_code == 422
    assert client.patch("/api/matches/m9/holes/1", json={"teamAGross": 4}).status_code == 404


def test_closed_match_exposes_facts_and_stats(client):
    _new_match(client)
    _play(client, range(1, 13))

    facts = client.get("/api/matches/m1/facts").json()["facts"]
    assert sorted(fact["id"] for fact in facts) == ["m1_a1", "m1_a2", "m1_b1", "m1_b2"]
    assert all(fact["winningHole"] == 10 for fact in facts)

    player_facts = client.get("/api/players/a1/facts").json()["facts"]
    assert [fact["matchId"] for fact in player_facts] == ["m1"]

    stats = client.get("/api/players/a1/stats").json()
    assert stats["wins"] == 1
    assert stats["matchesPlayed"] == 1

    assert client.delete("/api/matches/m1").json() == {"deleted": "m1"}
    assert client.get("/api/players/a1/facts").json() == {"facts": []}
    assert client.get("/api/players/a1/stats").json()["matchesPlayed"] == 0


def test_put_match_keeps_derived_status(client):
    _new_match(client)
    _play(client, [1])
    match = client.get("/api/matches/m1").json()
    match.pop("id")
    match["status"] = {"closed": True}

    response = client.put("/api/matches/m1", json=match)

    assert response.json()["status"]["thru"] == 1
    assert response.json()["status"]["closed"] is False


def test_recompute_repairs_a_stale_status(client, wired_store):
    _new_match(client)
    _play(client, [1, 2, 3])
    wired_store.set("matches", "m1", {"status": {"thru": 99}}, merge=True, derived=True)

    response = client.post("/api/matches/m1/recompute")

    assert response.status_code == 200
    body = response.json()
    assert body["statusChanged"] is True
    assert body["status"]["thru"] == 3
    assert body["factWrites"] == 0


def test_course_import_endpoint(client, monkeypatch):
    def fake_import(store, course_id, api_key):
        return {"id": str(course_id), "par": 72}

    monkeypatch.setattr(main, "import_course", fake_import)
    assert client.post("/api/courses/import/55").json() == {"id": "55", "par": 72}

    def failing_import(store, course_id, api_key):
        raise main.GolfApiError("Missing Golf Course API key.")

    monkeypatch.setattr(main, "import_course", failing_import)
    assert client.post("/api/courses/import/55").status_code == 502
