"""
Per-player fact records for closed matches.

Once a match is closed every player gets one ``playerMatchFacts`` record
holding the outcome, hole counts, momentum narrative (lead changes, never
behind, comebacks, walk-off finishes), format-specific usage (balls and
drives) and scoring against par, plus tournament context so the record can
be queried on its own. Records are rebuilt from the hole inputs on every
match write and removed again when the match reopens or is deleted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from matchplay.formats import (
    BEST_BALL,
    HOLE_COUNT,
    SCRAMBLE,
    SHAMBLE,
    SINGLES,
    HoleInput,
    hole_input,
    is_drive_format,
    is_individual_format,
    is_num,
    is_pair_format,
    players_per_side,
    side_players,
    stroke_received,
)
from matchplay.lookups import MatchContext, load_match_context
from matchplay.scoring import (
    HALVED,
    TEAM_A,
    TEAM_B,
    MatchSummary,
    build_status_and_result,
    holes_left,
    summarize,
)
from matchplay.store import Change, DocumentStore

logger = logging.getLogger(__name__)

FACTS_COLLECTION = "playerMatchFacts"
SIDE_ATTR = {TEAM_A: "team_a", TEAM_B: "team_b"}
OTHER_SIDE = {TEAM_A: TEAM_B, TEAM_B: TEAM_A}


def _pair() -> list:
    return [0, 0]


@dataclass
class SideTally:
    balls_used: list[int] = field(default_factory=_pair)
    balls_used_solo: list[int] = field(default_factory=_pair)
    balls_used_shared: list[int] = field(default_factory=_pair)
    balls_used_solo_won_hole: list[int] = field(default_factory=_pair)
    balls_used_solo_push: list[int] = field(default_factory=_pair)
    ball_used_on_18: list[Optional[bool]] = field(default_factory=lambda: [None, None])
    drives_used: list[int] = field(default_factory=_pair)
    player_gross: list[float] = field(default_factory=_pair)
    player_net: list[float] = field(default_factory=_pair)
    team_gross: float = 0
    never_behind: bool = True


@dataclass
class MatchWalk:
    sides: dict[str, SideTally] = field(
        default_factory=lambda: {TEAM_A: SideTally(), TEAM_B: SideTally()}
    )
    lead_changes: int = 0
    winning_hole: Optional[int] = None
    margin_into_18: int = 0
    hole_18_result: Optional[str] = None


def fact_id(match_id: str, player_id: str) -> str:
    return f"{match_id}_{player_id}"


def _side_gross(entry: HoleInput, side: str):
    return getattr(entry, SIDE_ATTR[side])


def _side_drive(entry: HoleInput, side: str) -> Optional[int]:
    return getattr(entry, f"{SIDE_ATTR[side]}_drive", None)


def _credit_balls(tally: SideTally, scores: tuple, won: bool, halved: bool, hole: int) -> None:
    if scores[0] is None or scores[1] is None:
        return
    for idx in (0, 1):
        mine, partner = scores[idx], scores[1 - idx]
        if mine <= partner:
            tally.balls_used[idx] += 1
        if mine < partner:
            tally.balls_used_solo[idx] += 1
            if won:
                tally.balls_used_solo_won_hole[idx] += 1
            if halved:
                tally.balls_used_solo_push[idx] += 1
        elif mine == partner:
            tally.balls_used_shared[idx] += 1
        if hole == HOLE_COUNT:
            tally.ball_used_on_18[idx] = mine <= partner


def _ball_scores(fmt: str, match: dict, entry: HoleInput, side: str, hole: int) -> tuple:
    gross = _side_gross(entry, side)
    if fmt == SHAMBLE:
        return gross
    return tuple(
        None if value is None else value - stroke_received(match, side, idx, hole)
        for idx, value in enumerate(gross)
    )


def _tally_scores(fmt: str, match: dict, entry: HoleInput, side: str, tally: SideTally, hole: int) -> None:
    gross = _side_gross(entry, side)
    if fmt == SCRAMBLE:
        if gross is not None:
            tally.team_gross += gross
    elif fmt == SINGLES:
        if gross is not None:
            tally.player_gross[0] += gross
            tally.player_net[0] += gross - stroke_received(match, side, 0, hole)
    elif fmt == SHAMBLE:
        posted = [value for value in gross if value is not None]
        for idx, value in enumerate(gross):
            if value is not None:
                tally.player_gross[idx] += value
        if posted:
            tally.team_gross += min(posted)
    else:
        for idx, value in enumerate(gross):
            if value is not None:
                tally.player_gross[idx] += value
                tally.player_net[idx] += value - stroke_received(match, side, idx, hole)


def walk_match(fmt: str, match: dict, summary: MatchSummary) -> MatchWalk:
    """Re-walk holes 1..thru collecting the running narrative and usage tallies."""
    walk = MatchWalk()
    running = 0
    previous_leader: Optional[str] = None

    for hole in range(1, summary.thru + 1):
        entry = hole_input(match, hole, fmt)
        outcome = summary.outcomes.get(hole)
        if hole == HOLE_COUNT:
            walk.margin_into_18 = running
            walk.hole_18_result = outcome

        if outcome is not None:
            if outcome == TEAM_A:
                running += 1
            elif outcome == TEAM_B:
                running -= 1
            leader = TEAM_A if running > 0 else TEAM_B if running < 0 else None
            if leader is not None:
                if previous_leader is not None and leader != previous_leader:
                    walk.lead_changes += 1
                previous_leader = leader
            if running < 0:
                walk.sides[TEAM_A].never_behind = False
            if running > 0:
                walk.sides[TEAM_B].never_behind = False
            if summary.closed and walk.winning_hole is None and abs(running) > holes_left(hole):
                walk.winning_hole = hole

        for side, tally in walk.sides.items():
            if is_pair_format(fmt):
                _credit_balls(
                    tally,
                    _ball_scores(fmt, match, entry, side, hole),
                    won=outcome == side,
                    halved=outcome == HALVED,
                    hole=hole,
                )
            if is_drive_format(fmt):
                drive = _side_drive(entry, side)
                if drive is not None:
                    tally.drives_used[drive] += 1
            _tally_scores(fmt, match, entry, side, tally, hole)
    return walk


def decided_on_18(walk: MatchWalk, final_thru: int, side: str) -> tuple[bool, Optional[bool]]:
    """Whether hole 18 settled the match, and if so whether ``side`` won that hole."""
    went_to_18 = final_thru == HOLE_COUNT and walk.winning_hole in (None, HOLE_COUNT)
    result_18 = walk.hole_18_result
    if not went_to_18 or result_18 is None:
        return False, None
    won = result_18 == side
    if walk.margin_into_18 == 0:
        if result_18 == HALVED:
            return False, None
        return True, won
    if abs(walk.margin_into_18) == 1:
        leader_into_18 = TEAM_A if walk.margin_into_18 > 0 else TEAM_B
        if result_18 not in (HALVED, leader_into_18):
            return True, won
    return False, None


def hole_performance(
    fmt: str,
    match: dict,
    context: MatchContext,
    summary: MatchSummary,
    side: str,
    idx: int,
) -> list[dict]:
    holes = match.get("holes") if isinstance(match.get("holes"), dict) else {}
    performance = []
    for hole in range(1, HOLE_COUNT + 1):
        if str(hole) not in holes:
            continue
        entry = hole_input(match, hole, fmt)
        outcome = summary.outcomes.get(hole)
        if outcome is None:
            result = None
        elif outcome == HALVED:
            result = "halve"
        else:
            result = "win" if outcome == side else "loss"
        row: dict = {"hole": hole, "par": context.hole_par(hole), "result": result}

        gross = _side_gross(entry, side)
        if fmt in (BEST_BALL, SHAMBLE):
            gross = gross[idx]
        row["gross"] = gross
        if is_individual_format(fmt) and gross is not None:
            strokes = stroke_received(match, side, idx, hole)
            row["strokes"] = strokes
            row["net"] = gross - strokes
        if is_drive_format(fmt):
            row["driveUsed"] = _side_drive(entry, side) == idx
        performance.append(row)
    return performance


def _course_handicap(match: dict, fmt: str, side: str, idx: int) -> Optional[float]:
    handicaps = match.get("courseHandicaps")
    if not isinstance(handicaps, list):
        return None
    if fmt == SINGLES:
        position = 0 if side == TEAM_A else 1
    else:
        position = idx if side == TEAM_A else idx + 2
    if position >= len(handicaps) or not is_num(handicaps[position]):
        return None
    return handicaps[position]


def _people(players: list, context: MatchContext, exclude: str = "") -> tuple[list, list, list]:
    ids, tiers, handicaps = [], [], []
    for player in players:
        player_id = player.get("playerId") if isinstance(player, dict) else None
        if not isinstance(player_id, str) or not player_id or player_id == exclude:
            continue
        ids.append(player_id)
        tiers.append(context.tier(player_id))
        handicaps.append(context.handicap(player_id))
    return ids, tiers, handicaps


def build_player_fact(
    match_id: str,
    match: dict,
    context: MatchContext,
    summary: MatchSummary,
    walk: MatchWalk,
    side: str,
    idx: int,
    player: dict,
) -> dict:
    fmt = context.format
    status, result = build_status_and_result(summary)
    player_id = player["playerId"]
    tally = walk.sides[side]
    final_thru = status["thru"] or HOLE_COUNT

    if result["winner"] == HALVED:
        outcome, points = "halve", context.points_value / 2
    elif result["winner"] == side:
        outcome, points = "win", context.points_value
    else:
        outcome, points = "loss", 0

    holes_won = result["holesWonA"] if side == TEAM_A else result["holesWonB"]
    holes_lost = result["holesWonB"] if side == TEAM_A else result["holesWonA"]
    if side == TEAM_A:
        was_down = status["wasTeamADown3PlusBack9"]
        was_up = status["wasTeamAUp3PlusBack9"]
    else:
        was_down = status["wasTeamAUp3PlusBack9"]
        was_up = status["wasTeamADown3PlusBack9"]

    strokes = player.get("strokesReceived")
    strokes_given = sum(v for v in strokes if is_num(v)) if isinstance(strokes, list) else 0
    opponent_ids, opponent_tiers, opponent_handicaps = _people(
        side_players(match, OTHER_SIDE[side]), context
    )
    partner_ids, partner_tiers, partner_handicaps = _people(
        side_players(match, side), context, exclude=player_id
    )
    on_18, won_18 = decided_on_18(walk, final_thru, side)
    course_handicap = _course_handicap(match, fmt, side, idx)

    fact = {
        "playerId": player_id,
        "matchId": match_id,
        "tournamentId": context.tournament_id,
        "roundId": context.round_id,
        "format": fmt,
        "outcome": outcome,
        "pointsEarned": points,
        "playerTier": context.tier(player_id),
        "playerTeamId": context.team_a_id if side == TEAM_A else context.team_b_id,
        "opponentTeamId": context.team_b_id if side == TEAM_A else context.team_a_id,
        "playerHandicap": context.handicap(player_id),
        "opponentIds": opponent_ids,
        "opponentTiers": opponent_tiers,
        "opponentHandicaps": opponent_handicaps,
        "partnerIds": partner_ids,
        "partnerTiers": partner_tiers,
        "partnerHandicaps": partner_handicaps,
        "holesWon": holes_won,
        "holesLost": holes_lost,
        "holesHalved": final_thru - holes_won - holes_lost,
        "finalMargin": status["margin"],
        "finalThru": final_thru,
        "comebackWin": outcome == "win" and was_down,
        "blownLead": outcome == "loss" and was_up,
        "strokesGiven": strokes_given,
        "leadChanges": walk.lead_changes,
        "wasNeverBehind": tally.never_behind,
        "winningHole": walk.winning_hole,
        "decidedOn18": on_18,
        "won18thHole": won_18,
        "courseId": context.course_id,
        "day": context.day,
        "tournamentYear": context.tournament_year,
        "tournamentName": context.tournament_name,
        "tournamentSeries": context.tournament_series,
        "coursePar": context.course_par,
        "playerCourseHandicap": course_handicap or 0,
        "holePerformance": hole_performance(fmt, match, context, summary, side, idx),
    }

    if is_pair_format(fmt):
        fact.update(
            {
                "ballsUsed": tally.balls_used[idx],
                "ballsUsedSolo": tally.balls_used_solo[idx],
                "ballsUsedShared": tally.balls_used_shared[idx],
                "ballsUsedSoloWonHole": tally.balls_used_solo_won_hole[idx],
                "ballsUsedSoloPush": tally.balls_used_solo_push[idx],
            }
        )
        if tally.ball_used_on_18[idx] is not None:
            fact["ballUsedOn18"] = tally.ball_used_on_18[idx]
    if is_drive_format(fmt):
        fact["drivesUsed"] = tally.drives_used[idx]
    if is_individual_format(fmt):
        total_gross = tally.player_gross[idx]
        if course_handicap is not None:
            total_net = total_gross - course_handicap
        else:
            total_net = tally.player_net[idx]
        fact.update(
            {
                "totalGross": total_gross,
                "totalNet": total_net,
                "strokesVsParGross": total_gross - context.course_par,
                "strokesVsParNet": total_net - context.course_par,
            }
        )
    else:
        fact.update(
            {
                "teamTotalGross": tally.team_gross,
                "teamStrokesVsParGross": tally.team_gross - context.course_par,
            }
        )
    return fact


def derive_player_facts(match_id: str, match: dict, context: MatchContext) -> list[dict]:
    """One fact per listed player when the match is closed; empty otherwise."""
    summary = summarize(context.format, match)
    if not summary.closed:
        return []
    walk = walk_match(context.format, match, summary)
    facts = []
    for side in (TEAM_A, TEAM_B):
        listed = side_players(match, side)[: players_per_side(context.format)]
        for idx, player in enumerate(listed):
            player_id = player.get("playerId") if isinstance(player, dict) else None
            if not isinstance(player_id, str) or not player_id:
                continue
            facts.append(build_player_fact(match_id, match, context, summary, walk, side, idx, player))
    return facts


def _without_timestamp(fact: dict) -> dict:
    return {key: value for key, value in fact.items() if key != "updatedAt"}


def clear_match_facts(store: DocumentStore, match_id: str) -> int:
    existing = store.where(FACTS_COLLECTION, "matchId", match_id)
    if not existing:
        return 0
    batch = store.batch(derived=True)
    for doc_id, _ in existing:
        batch.delete(FACTS_COLLECTION, doc_id)
    batch.commit()
    logger.info("Removed %s fact record(s) for match %s", len(existing), match_id)
    return len(existing)


def write_match_facts(store: DocumentStore, match_id: str, facts: list[dict]) -> int:
    existing = dict(store.where(FACTS_COLLECTION, "matchId", match_id))
    stamp = datetime.now(timezone.utc).isoformat()
    batch = store.batch(derived=True)
    wanted = set()
    for fact in facts:
        doc_id = fact_id(match_id, fact["playerId"])
        wanted.add(doc_id)
        current = existing.get(doc_id)
        if current is not None and _without_timestamp(current) == fact:
            continue
        batch.set(FACTS_COLLECTION, doc_id, {**fact, "updatedAt": stamp})
    for doc_id in existing:
        if doc_id not in wanted:
            batch.delete(FACTS_COLLECTION, doc_id)
    written = len(batch)
    batch.commit()
    if written:
        logger.info("Wrote %s fact change(s) for match %s", written, match_id)
    return written


def refresh_match_facts(store: DocumentStore, match_id: str, match: Optional[dict]) -> int:
    """Bring the fact records of one match in line with its current state."""
    if match is None:
        return clear_match_facts(store, match_id)
    context = load_match_context(store, match)
    facts = derive_player_facts(match_id, match, context)
    if not facts:
        return clear_match_facts(store, match_id)
    return write_match_facts(store, match_id, facts)


def update_match_facts(store: DocumentStore, change: Change) -> None:
    refresh_match_facts(store, change.doc_id, change.after)
