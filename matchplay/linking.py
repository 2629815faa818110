"""Keeps parent documents' id lists (round.matchIds, tournament.roundIds) current."""

from __future__ import annotations

import logging

from matchplay.store import Change, DocumentStore, Transaction

logger = logging.getLogger(__name__)


def append_unique_id(store: DocumentStore, collection: str, doc_id: str, field: str, value: str) -> bool:
    """Append ``value`` to the list ``field`` of a parent document. Returns True when it was added."""

    def _append(tx: Transaction) -> bool:
        parent = tx.get(collection, doc_id)
        if parent is None:
            return False
        current = parent.get(field)
        current = current if isinstance(current, list) else []
        if value in current:
            return False
        tx.update(collection, doc_id, {field: [*current, value]})
        return True

    return store.run_transaction(_append)


def link_match_to_round(store: DocumentStore, change: Change) -> None:
    round_id = (change.after or {}).get("roundId")
    if not round_id or not isinstance(round_id, str):
        return
    if append_unique_id(store, "rounds", round_id, "matchIds", change.doc_id):
        logger.info("Linked match %s to round %s", change.doc_id, round_id)


def link_round_to_tournament(store: DocumentStore, change: Change) -> None:
    tournament_id = (change.after or {}).get("tournamentId")
    if not tournament_id or not isinstance(tournament_id, str):
        return
    if append_unique_id(store, "tournaments", tournament_id, "roundIds", change.doc_id):
        logger.info("Linked round %s to tournament %s", change.doc_id, tournament_id)
