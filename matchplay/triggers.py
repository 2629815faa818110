"""In-process delivery of document change events to handlers."""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from typing import Callable

from matchplay.controller import compute_match_on_write
from matchplay.facts import update_match_facts
from matchplay.linking import link_match_to_round, link_round_to_tournament
from matchplay.rollup import aggregate_player_stats
from matchplay.store import Change, DocumentStore

logger = logging.getLogger(__name__)

CREATED = "created"
WRITTEN = "written"

Handler = Callable[[DocumentStore, Change], None]


class TriggerDispatcher:
    """
    Routes store changes to handlers registered per collection and event.

    Changes are queued and drained in order; a write made by a handler is
    queued behind the current event rather than handled recursively. A
    handler that raises is logged and skipped, the remaining handlers still run.
    """

    def __init__(self, store: DocumentStore) -> None:
        self.store = store
        self._handlers: dict[tuple[str, str], list[Handler]] = defaultdict(list)
        self._queue: deque[Change] = deque()
        self._draining = False
        store.add_listener(self.dispatch)

    def on_created(self, collection: str, handler: Handler) -> None:
        self._handlers[(collection, CREATED)].append(handler)

    def on_written(self, collection: str, handler: Handler) -> None:
        self._handlers[(collection, WRITTEN)].append(handler)

    def handlers_for(self, change: Change) -> list[Handler]:
        handlers = []
        if change.created:
            handlers.extend(self._handlers[(change.collection, CREATED)])
        handlers.extend(self._handlers[(change.collection, WRITTEN)])
        return handlers

    def dispatch(self, change: Change) -> None:
        self._queue.append(change)
        if self._draining:
            return
        self._draining = True
        try:
            while self._queue:
                self._run(self._queue.popleft())
        finally:
            self._draining = False

    def _run(self, change: Change) -> None:
        for handler in self.handlers_for(change):
            try:
                handler(self.store, change)
            except Exception:  # noqa: BLE001
                logger.exception(
                    "Trigger %s failed for %s/%s",
                    getattr(handler, "__name__", handler),
                    change.collection,
                    change.doc_id,
                )


def build_dispatcher(store: DocumentStore) -> TriggerDispatcher:
    dispatcher = TriggerDispatcher(store)
    dispatcher.on_created("matches", link_match_to_round)
    dispatcher.on_written("matches", compute_match_on_write)
    dispatcher.on_written("matches", update_match_facts)
    dispatcher.on_written("playerMatchFacts", aggregate_player_stats)
    dispatcher.on_written("rounds", link_round_to_tournament)
    return dispatcher
