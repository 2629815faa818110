from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from matchplay.formats import (
    HOLE_COUNT,
    ScrambleHole,
    ShambleHole,
    SinglesHole,
    hole_input,
    stroke_received,
)

TEAM_A = "teamA"
TEAM_B = "teamB"
HALVED = "AS"
MOMENTUM_START_HOLE = 10
MOMENTUM_THRESHOLD = 3


def _compare(score_a: float, score_b: float) -> str:
    if score_a < score_b:
        return TEAM_A
    if score_b < score_a:
        return TEAM_B
    return HALVED


def decide_hole(fmt: str, hole: int, match: dict) -> Optional[str]:
    """
    Return "teamA", "teamB" or "AS" for a hole, or None while any score the
    format needs is still missing.
    """
    entry = hole_input(match, hole, fmt)

    if isinstance(entry, ScrambleHole):
        if entry.team_a is None or entry.team_b is None:
            return None
        return _compare(entry.team_a, entry.team_b)

    if isinstance(entry, SinglesHole):
        if entry.team_a is None or entry.team_b is None:
            return None
        net_a = entry.team_a - stroke_received(match, TEAM_A, 0, hole)
        net_b = entry.team_b - stroke_received(match, TEAM_B, 0, hole)
        return _compare(net_a, net_b)

    if None in entry.team_a or None in entry.team_b:
        return None

    if isinstance(entry, ShambleHole):
        return _compare(min(entry.team_a), min(entry.team_b))

    best_a = min(gross - stroke_received(match, TEAM_A, idx, hole) for idx, gross in enumerate(entry.team_a))
    best_b = min(gross - stroke_received(match, TEAM_B, idx, hole) for idx, gross in enumerate(entry.team_b))
    return _compare(best_a, best_b)


def holes_left(thru: int) -> int:
    return HOLE_COUNT - thru


@dataclass(frozen=True)
class MatchSummary:
    holes_won_a: int
    holes_won_b: int
    thru: int
    leader: Optional[str]
    margin: int
    dormie: bool
    closed: bool
    winner: Optional[str]
    was_team_a_down_3_plus_back_9: bool
    was_team_a_up_3_plus_back_9: bool
    margin_history: list[int] = field(default_factory=list)
    outcomes: dict[int, Optional[str]] = field(default_factory=dict)


def summarize(fmt: str, match: dict) -> MatchSummary:
    """Walk holes 1-18 and derive the running match state from scratch."""
    won_a = won_b = thru = 0
    running = 0
    down_3_back_9 = up_3_back_9 = False
    margin_history: list[int] = []
    outcomes: dict[int, Optional[str]] = {}

    for hole in range(1, HOLE_COUNT + 1):
        outcome = decide_hole(fmt, hole, match)
        outcomes[hole] = outcome
        if outcome is None:
            continue
        thru = max(thru, hole)
        if outcome == TEAM_A:
            won_a += 1
            running += 1
        elif outcome == TEAM_B:
            won_b += 1
            running -= 1
        margin_history.append(running)

        if hole >= MOMENTUM_START_HOLE:
            if running <= -MOMENTUM_THRESHOLD:
                down_3_back_9 = True
            if running >= MOMENTUM_THRESHOLD:
                up_3_back_9 = True

    leader = TEAM_A if won_a > won_b else TEAM_B if won_b > won_a else None
    margin = abs(won_a - won_b)
    remaining = holes_left(thru)
    closed = (leader is not None and margin > remaining) or thru == HOLE_COUNT
    dormie = leader is not None and margin == remaining and thru < HOLE_COUNT
    if thru == HOLE_COUNT and leader is None:
        winner: Optional[str] = HALVED
    else:
        winner = leader

    return MatchSummary(
        holes_won_a=won_a,
        holes_won_b=won_b,
        thru=thru,
        leader=leader,
        margin=margin,
        dormie=dormie,
        closed=closed,
        winner=winner,
        was_team_a_down_3_plus_back_9=down_3_back_9,
        was_team_a_up_3_plus_back_9=up_3_back_9,
        margin_history=margin_history,
        outcomes=outcomes,
    )


def build_status_and_result(summary: MatchSummary) -> tuple[dict, dict]:
    status = {
        "leader": summary.leader,
        "margin": summary.margin,
        "thru": summary.thru,
        "dormie": summary.dormie,
        "closed": summary.closed,
        "wasTeamADown3PlusBack9": summary.was_team_a_down_3_plus_back_9,
        "wasTeamAUp3PlusBack9": summary.was_team_a_up_3_plus_back_9,
        "marginHistory": list(summary.margin_history),
    }
    result = {
        "winner": summary.winner,
        "holesWonA": summary.holes_won_a,
        "holesWonB": summary.holes_won_b,
    }
    return status, result
