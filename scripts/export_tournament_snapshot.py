import argparse
import json
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from matchplay.facts import FACTS_COLLECTION
from matchplay.rollup import STATS_COLLECTION
from matchplay.settings import load_settings
from matchplay.store import DocumentStore, open_store


def _with_id(doc_id: str, data: dict) -> dict:
    return {"id": doc_id, **data}


def export_snapshot(store: DocumentStore, tournament_id: str) -> dict:
    tournament = store.get("tournaments", tournament_id) or {}
    rounds = store.where("rounds", "tournamentId", tournament_id)
    matches = store.where("matches", "tournamentId", tournament_id)
    facts = store.where(FACTS_COLLECTION, "tournamentId", tournament_id)

    player_ids = sorted({data["playerId"] for _, data in facts if data.get("playerId")})
    stats = []
    for player_id in player_ids:
        data = store.get(STATS_COLLECTION, player_id)
        if data:
            stats.append(_with_id(player_id, data))

    return {
        "tournament": _with_id(tournament_id, tournament),
        "rounds": [_with_id(doc_id, data) for doc_id, data in rounds],
        "matches": [_with_id(doc_id, data) for doc_id, data in matches],
        "playerMatchFacts": [_with_id(doc_id, data) for doc_id, data in facts],
        "playerStats": stats,
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Dump a tournament's matches, facts and player stats as JSON.")
    parser.add_argument("--tournament-id", "-t", type=str, required=True, help="Tournament document id.")
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        help="Path to write the JSON export (defaults to stdout).",
    )
    args = parser.parse_args()

    store = open_store(load_settings().database_url)
    if store.get("tournaments", args.tournament_id) is None:
        raise SystemExit(f"Tournament {args.tournament_id} not found.")

    snapshot = export_snapshot(store, args.tournament_id)
    payload = json.dumps(snapshot, default=str, indent=2)

    if args.output:
        args.output.write_text(payload, encoding="utf-8")
        print(f"Snapshot saved to {args.output}")
    else:
        print(payload)


if __name__ == "__main__":
    main()
