import logging

from matchplay.formats import BEST_BALL, SHAMBLE
from matchplay.lookups import load_match_context, load_round_format, resolve_course_par
from matchplay.store import SqliteDocumentStore, StoreError


class FlakyRoundStore(SqliteDocumentStore):
    def _read(self, collection, doc_id):
        if collection == "rounds":
            raise StoreError("rounds unavailable")
        return super()._read(collection, doc_id)


def test_course_par_resolution_order():
    embedded = {"course": {"holes": [{"par": 3}, {"par": 5}, {}]}}

    assert resolve_course_par(None, None) == 72
    assert resolve_course_par(embedded, None) == 12
    assert resolve_course_par(embedded, {"par": 70}) == 70
    assert resolve_course_par(embedded, {"holes": [{"par": 4}, {"par": 4}]}) == 8
    assert resolve_course_par(embedded, {"holes": []}) == 12
    assert resolve_course_par(None, {"par": 0}) == 72
    assert resolve_course_par(None, {"par": "72"}) == 72


def test_match_context_defaults_without_documents(store):
    context = load_match_context(store, {"roundId": "r1", "tournamentId": "t1"})

    assert context.format == BEST_BALL
    assert context.points_value == 1
    assert context.day == 0
    assert context.course_par == 72
    assert context.hole_par(7) == 4
    assert context.team_a_id == "teamA"
    assert context.tier("anyone") == "Unknown"
    assert context.handicap("anyone") is None


def test_match_context_reads_round_course_and_tournament(store):
    store.set(
        "rounds",
        "r1",
        {
            "format": SHAMBLE,
            "pointsValue": 2,
            "day": 3,
            "courseId": "c1",
            "course": {"holes": [{"par": 3}] * 18},
        },
    )
    store.set("courses", "c1", {"holes": [{"number": n, "par": 5 if n == 18 else 4} for n in range(1, 19)]})
    store.set(
        "tournaments",
        "t1",
        {
            "year": 2026,
            "name": "Autumn Cup",
            "teamA": {"id": "usa", "rosterByTier": {"B": ["a1", "a2"]}, "handicapByPlayer": {"a1": 9.1, "a2": "x"}},
            "teamB": {"id": "eur", "rosterByTier": {"A": ["b1"]}},
        },
    )

    context = load_match_context(store, {"roundId": "r1", "tournamentId": "t1"})

    assert context.format == SHAMBLE
    assert context.points_value == 2
    assert context.day == 3
    assert context.course_id == "c1"
    assert context.course_par == 73
    assert context.hole_par(18) == 5
    assert context.hole_par(1) == 4
    assert (context.team_a_id, context.team_b_id) == ("usa", "eur")
    assert context.tier("a2") == "B"
    assert context.tier("b1") == "A"
    assert context.handicap("a1") == 9.1
    assert context.handicap("a2") is None
    assert context.tournament_name == "Autumn Cup"


def test_malformed_roster_entries_are_skipped(store):
    store.set(
        "tournaments",
        "t1",
        {"teamA": {"rosterByTier": {"A": [["x"], {"id": "a2"}, 5, "a1"]}}, "teamB": {"rosterByTier": ["b1"]}},
    )

    context = load_match_context(store, {"tournamentId": "t1"})

    assert context.tier_by_player == {"a1": "A"}
    assert context.tier("b1") == "Unknown"


def test_failed_lookup_degrades_to_defaults(tmp_path, caplog):
    store = FlakyRoundStore(tmp_path / "flaky.db")
    store.ensure_schema()

    with caplog.at_level(logging.WARNING):
        fmt = load_round_format(store, {"roundId": "r1"})
        context = load_match_context(store, {"roundId": "r1"})

    assert fmt == BEST_BALL
    assert context.format == BEST_BALL
    assert context.course_par == 72
    assert "Lookup of rounds/r1 failed" in caplog.text
