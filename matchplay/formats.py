"""Round formats and the per-format shape of a hole's score input."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Optional, Union

SINGLES = "singles"
BEST_BALL = "twoManBestBall"
SHAMBLE = "twoManShamble"
SCRAMBLE = "twoManScramble"

DEFAULT_FORMAT = BEST_BALL
ROUND_FORMATS = (SINGLES, BEST_BALL, SHAMBLE, SCRAMBLE)
FORMAT_ALIASES = {"fourManScramble": SCRAMBLE}

HOLE_COUNT = 18

Score = Optional[float]


def normalize_format(value: Any) -> str:
    """Map a stored format value onto one of the supported formats.

    Anything unrecognised is scored as best ball.
    """
    if not isinstance(value, str):
        return DEFAULT_FORMAT
    value = FORMAT_ALIASES.get(value, value)
    return value if value in ROUND_FORMATS else DEFAULT_FORMAT


def is_pair_format(fmt: str) -> bool:
    return fmt in (BEST_BALL, SHAMBLE)


def is_drive_format(fmt: str) -> bool:
    return fmt in (SCRAMBLE, SHAMBLE)


def is_individual_format(fmt: str) -> bool:
    return fmt in (SINGLES, BEST_BALL)


def players_per_side(fmt: str) -> int:
    return 1 if fmt == SINGLES else 2


def is_num(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def score(value: Any) -> Score:
    return value if is_num(value) else None


def clamp01(value: Any) -> int:
    return 1 if is_num(value) and value == 1 else 0


def _pair(value: Any) -> tuple[Score, Score]:
    if not isinstance(value, (list, tuple)):
        return None, None
    first = score(value[0]) if len(value) > 0 else None
    second = score(value[1]) if len(value) > 1 else None
    return first, second


def _drive(value: Any) -> Optional[int]:
    if is_num(value) and value in (0, 1):
        return int(value)
    return None


@dataclass(frozen=True)
class SinglesHole:
    team_a: Score
    team_b: Score


@dataclass(frozen=True)
class ScrambleHole:
    team_a: Score
    team_b: Score
    team_a_drive: Optional[int]
    team_b_drive: Optional[int]


@dataclass(frozen=True)
class BestBallHole:
    team_a: tuple[Score, Score]
    team_b: tuple[Score, Score]


@dataclass(frozen=True)
class ShambleHole:
    team_a: tuple[Score, Score]
    team_b: tuple[Score, Score]
    team_a_drive: Optional[int]
    team_b_drive: Optional[int]


HoleInput = Union[SinglesHole, ScrambleHole, BestBallHole, ShambleHole]


def parse_hole_input(fmt: str, raw: Any) -> HoleInput:
    """Read one hole's stored ``input`` mapping as the shape for ``fmt``.

    Non-numeric scores read as ``None``; a missing or malformed mapping
    reads as an empty hole.
    """
    data = raw if isinstance(raw, dict) else {}
    if fmt == SCRAMBLE:
        return ScrambleHole(
            team_a=score(data.get("teamAGross")),
            team_b=score(data.get("teamBGross")),
            team_a_drive=_drive(data.get("teamADrive")),
            team_b_drive=_drive(data.get("teamBDrive")),
        )
    if fmt == SINGLES:
        return SinglesHole(
            team_a=score(data.get("teamAPlayerGross")),
            team_b=score(data.get("teamBPlayerGross")),
        )
    if fmt == SHAMBLE:
        return ShambleHole(
            team_a=_pair(data.get("teamAPlayersGross")),
            team_b=_pair(data.get("teamBPlayersGross")),
            team_a_drive=_drive(data.get("teamADrive")),
            team_b_drive=_drive(data.get("teamBDrive")),
        )
    return BestBallHole(
        team_a=_pair(data.get("teamAPlayersGross")),
        team_b=_pair(data.get("teamBPlayersGross")),
    )


def hole_input(match: dict, hole: int, fmt: str) -> HoleInput:
    holes = match.get("holes") if isinstance(match, dict) else None
    entry = holes.get(str(hole)) if isinstance(holes, dict) else None
    raw = entry.get("input") if isinstance(entry, dict) else None
    return parse_hole_input(fmt, raw)


def side_players(match: dict, side: str) -> list:
    """Players listed for ``side`` ("teamA" or "teamB"), or an empty list."""
    players = match.get(f"{side}Players") if isinstance(match, dict) else None
    return players if isinstance(players, list) else []


def stroke_received(match: dict, side: str, player_index: int, hole: int) -> int:
    players = side_players(match, side)
    if player_index >= len(players) or not isinstance(players[player_index], dict):
        return 0
    strokes = players[player_index].get("strokesReceived")
    if not isinstance(strokes, list) or not 1 <= hole <= len(strokes):
        return 0
    return clamp01(strokes[hole - 1])
