"""Round, course and tournament lookups that fall back to defaults instead of failing."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from matchplay.formats import DEFAULT_FORMAT, HOLE_COUNT, is_num, normalize_format
from matchplay.store import DocumentStore, StoreError

logger = logging.getLogger(__name__)

DEFAULT_COURSE_PAR = 72
DEFAULT_HOLE_PAR = 4
DEFAULT_POINTS_VALUE = 1
UNKNOWN_TIER = "Unknown"


@dataclass
class MatchContext:
    format: str = DEFAULT_FORMAT
    points_value: float = DEFAULT_POINTS_VALUE
    course_id: str = ""
    course_par: float = DEFAULT_COURSE_PAR
    hole_pars: dict[int, float] = field(default_factory=dict)
    day: int = 0
    tournament_id: str = ""
    round_id: str = ""
    team_a_id: str = "teamA"
    team_b_id: str = "teamB"
    tier_by_player: dict[str, str] = field(default_factory=dict)
    handicap_by_player: dict[str, float] = field(default_factory=dict)
    tournament_year: int = 0
    tournament_name: str = ""
    tournament_series: str = ""

    def hole_par(self, hole: int) -> float:
        return self.hole_pars.get(hole, DEFAULT_HOLE_PAR)

    def tier(self, player_id: str) -> str:
        return self.tier_by_player.get(player_id, UNKNOWN_TIER)

    def handicap(self, player_id: str) -> Optional[float]:
        return self.handicap_by_player.get(player_id)


def _safe_get(store: DocumentStore, collection: str, doc_id: Any) -> Optional[dict]:
    if not doc_id or not isinstance(doc_id, str):
        return None
    try:
        return store.get(collection, doc_id)
    except StoreError as exc:
        logger.warning("Lookup of %s/%s failed, using defaults: %s", collection, doc_id, exc)
        return None


def _sum_hole_pars(holes: Any) -> Optional[float]:
    if not isinstance(holes, list) or not holes:
        return None
    total = 0
    for hole in holes:
        par = hole.get("par") if isinstance(hole, dict) else None
        total += par if is_num(par) and par else DEFAULT_HOLE_PAR
    return total


def _hole_pars(holes: Any) -> dict[int, float]:
    pars: dict[int, float] = {}
    if not isinstance(holes, list):
        return pars
    for idx, hole in enumerate(holes, 1):
        if not isinstance(hole, dict):
            continue
        number = hole.get("number")
        number = int(number) if is_num(number) and number else idx
        par = hole.get("par")
        pars[number] = par if is_num(par) and par else DEFAULT_HOLE_PAR
    return pars


def resolve_course_par(round_doc: Optional[dict], course_doc: Optional[dict]) -> float:
    """
    Course par for strokes-vs-par. The course record wins over a course
    embedded in the round; a scalar par wins over summing hole pars.
    """
    par: Optional[float] = None
    embedded = (round_doc or {}).get("course")
    if isinstance(embedded, dict):
        par = _sum_hole_pars(embedded.get("holes"))
    if course_doc:
        if is_num(course_doc.get("par")):
            par = course_doc["par"]
        else:
            par = _sum_hole_pars(course_doc.get("holes")) or par
    if not is_num(par) or par <= 0:
        return DEFAULT_COURSE_PAR
    return par


def load_round_format(store: DocumentStore, match: dict) -> str:
    round_doc = _safe_get(store, "rounds", match.get("roundId"))
    return normalize_format((round_doc or {}).get("format"))


def _apply_tournament(context: MatchContext, tournament: dict) -> None:
    team_a = tournament.get("teamA") if isinstance(tournament.get("teamA"), dict) else {}
    team_b = tournament.get("teamB") if isinstance(tournament.get("teamB"), dict) else {}
    context.team_a_id = team_a.get("id") or "teamA"
    context.team_b_id = team_b.get("id") or "teamB"
    context.tournament_year = tournament.get("year") or 0
    context.tournament_name = tournament.get("name") or ""
    context.tournament_series = tournament.get("series") or ""

    for team in (team_a, team_b):
        roster = team.get("rosterByTier")
        if isinstance(roster, dict):
            for tier, player_ids in roster.items():
                if isinstance(player_ids, list):
                    for player_id in player_ids:
                        if isinstance(player_id, str):
                            context.tier_by_player[player_id] = tier
        handicaps = team.get("handicapByPlayer")
        if isinstance(handicaps, dict):
            for player_id, handicap in handicaps.items():
                if is_num(handicap):
                    context.handicap_by_player[player_id] = handicap


def load_match_context(store: DocumentStore, match: dict) -> MatchContext:
    context = MatchContext(
        tournament_id=match.get("tournamentId") or "",
        round_id=match.get("roundId") or "",
    )

    round_doc = _safe_get(store, "rounds", context.round_id)
    if round_doc:
        context.format = normalize_format(round_doc.get("format"))
        points = round_doc.get("pointsValue")
        context.points_value = points if is_num(points) else DEFAULT_POINTS_VALUE
        context.course_id = round_doc.get("courseId") or ""
        day = round_doc.get("day")
        context.day = day if is_num(day) else 0
        embedded = round_doc.get("course")
        if isinstance(embedded, dict):
            context.hole_pars = _hole_pars(embedded.get("holes"))

    course_doc = _safe_get(store, "courses", context.course_id)
    if course_doc and isinstance(course_doc.get("holes"), list):
        context.hole_pars = _hole_pars(course_doc["holes"])
    context.course_par = resolve_course_par(round_doc, course_doc)
    if not context.hole_pars:
        context.hole_pars = {hole: DEFAULT_HOLE_PAR for hole in range(1, HOLE_COUNT + 1)}

    tournament = _safe_get(store, "tournaments", context.tournament_id)
    if tournament:
        _apply_tournament(context, tournament)
    return context
