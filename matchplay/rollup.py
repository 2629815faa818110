"""Lifetime win/loss/halve totals per player, rebuilt from their fact records."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable

from matchplay.facts import FACTS_COLLECTION
from matchplay.formats import is_num
from matchplay.store import Change, DocumentStore

logger = logging.getLogger(__name__)

STATS_COLLECTION = "playerStats"


def rollup_player_stats(facts: Iterable[dict]) -> dict:
    stats = {"wins": 0, "losses": 0, "halves": 0, "totalPoints": 0, "matchesPlayed": 0}
    for fact in facts:
        outcome = fact.get("outcome")
        if outcome == "win":
            stats["wins"] += 1
        elif outcome == "loss":
            stats["losses"] += 1
        elif outcome == "halve":
            stats["halves"] += 1
        points = fact.get("pointsEarned")
        if is_num(points):
            stats["totalPoints"] += points
        stats["matchesPlayed"] += 1
    return stats


def refresh_player_stats(store: DocumentStore, player_id: str) -> dict:
    facts = [data for _, data in store.where(FACTS_COLLECTION, "playerId", player_id)]
    stats = rollup_player_stats(facts)
    stats["lastUpdated"] = datetime.now(timezone.utc).isoformat()
    store.set(STATS_COLLECTION, player_id, stats, merge=True, derived=True)
    logger.info(
        "Player %s: %s-%s-%s over %s match(es)",
        player_id,
        stats["wins"],
        stats["losses"],
        stats["halves"],
        stats["matchesPlayed"],
    )
    return stats


def aggregate_player_stats(store: DocumentStore, change: Change) -> None:
    snapshot = change.after or change.before or {}
    player_id = snapshot.get("playerId")
    if not player_id:
        return
    refresh_player_stats(store, player_id)
