"""Keeps a match's derived ``status`` and ``result`` in step with its hole inputs."""

from __future__ import annotations

import logging

from matchplay.lookups import load_round_format
from matchplay.scoring import build_status_and_result, summarize
from matchplay.store import Change, DocumentStore

logger = logging.getLogger(__name__)

DERIVED_FIELDS = frozenset({"status", "result", "_computeSig"})


def changed_fields(before: dict | None, after: dict | None) -> set[str]:
    before = before or {}
    after = after or {}
    return {key for key in set(before) | set(after) if before.get(key) != after.get(key)}


def only_derived_fields_changed(change: Change) -> bool:
    return changed_fields(change.before, change.after) <= DERIVED_FIELDS


def recompute_match(store: DocumentStore, match_id: str, match: dict) -> bool:
    """Summarize the match and store status/result when they differ. Returns True on write."""
    fmt = load_round_format(store, match)
    status, result = build_status_and_result(summarize(fmt, match))
    if match.get("status") == status and match.get("result") == result:
        return False
    store.set("matches", match_id, {"status": status, "result": result}, merge=True, derived=True)
    logger.info(
        "Match %s: thru %s, %s by %s%s",
        match_id,
        status["thru"],
        status["leader"] or "all square",
        status["margin"],
        " (closed)" if status["closed"] else "",
    )
    return True


def compute_match_on_write(store: DocumentStore, change: Change) -> None:
    if change.after is None or change.derived:
        return
    if only_derived_fields_changed(change):
        return
    recompute_match(store, change.doc_id, change.after)
