#!/usr/bin/env python3
"""Re-run status, fact and player-stat derivation for every match of a tournament."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from matchplay.controller import recompute_match
from matchplay.facts import refresh_match_facts
from matchplay.settings import configure_logging, load_settings
from matchplay.store import DocumentStore, open_store
from matchplay.triggers import build_dispatcher


def recompute_tournament(store: DocumentStore, tournament_id: str) -> tuple[int, int]:
    matches = store.where("matches", "tournamentId", tournament_id)
    changed = 0
    for match_id, match in matches:
        if recompute_match(store, match_id, match):
            changed += 1
        refresh_match_facts(store, match_id, store.get("matches", match_id))
    return len(matches), changed


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Recompute match status, player facts and player stats for a tournament."
    )
    parser.add_argument("--tournament-id", type=str, help="Target tournament document id.")
    parser.add_argument(
        "--list",
        action="store_true",
        help="List available tournaments from the database.",
    )
    parser.add_argument(
        "--confirm",
        action="store_true",
        help="Required: derived records are rewritten in place.",
    )
    args = parser.parse_args()

    settings = load_settings()
    configure_logging(settings)
    store = open_store(settings.database_url)

    if args.list:
        tournaments = store.list_documents("tournaments")
        if not tournaments:
            print("No tournaments found.")
            return
        print("Tournaments:")
        for doc_id, data in tournaments:
            print(f"  {doc_id}: {data.get('name') or ''}")
        return

    if not args.tournament_id:
        parser.error("Provide --tournament-id (or --list to see the options).")
    if not args.confirm:
        parser.error("This command rewrites derived match records. Re-run with --confirm to proceed.")

    build_dispatcher(store)
    total, changed = recompute_tournament(store, args.tournament_id)
    print(
        f"Recomputed {total} match{'es' if total != 1 else ''} "
        f"({changed} status change{'s' if changed != 1 else ''}) for tournament {args.tournament_id}."
    )


if __name__ == "__main__":
    main()
