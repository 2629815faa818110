"""Small constructors for match documents used across the tests."""

HOLES = range(1, 19)


def strokes_on(*holes):
    return [1 if hole in holes else 0 for hole in HOLES]


def player(player_id, strokes=None):
    return {"playerId": player_id, "strokesReceived": strokes or strokes_on()}


def make_match(holes, team_a, team_b, **extra):
    match = {
        "tournamentId": "t1",
        "roundId": "r1",
        "teamAPlayers": team_a,
        "teamBPlayers": team_b,
        "holes": holes,
    }
    match.update(extra)
    return match


def scramble_holes(scores, drives=None):
    holes = {}
    for hole, (team_a, team_b) in enumerate(scores, 1):
        entry = {"teamAGross": team_a, "teamBGross": team_b}
        if drives:
            entry["teamADrive"], entry["teamBDrive"] = drives[hole - 1]
        holes[str(hole)] = {"input": entry}
    return holes


def singles_holes(scores):
    return {
        str(hole): {"input": {"teamAPlayerGross": team_a, "teamBPlayerGross": team_b}}
        for hole, (team_a, team_b) in enumerate(scores, 1)
    }


def pair_holes(scores, drives=None):
    holes = {}
    for hole, (team_a, team_b) in enumerate(scores, 1):
        entry = {"teamAPlayersGross": list(team_a), "teamBPlayersGross": list(team_b)}
        if drives:
            entry["teamADrive"], entry["teamBDrive"] = drives[hole - 1]
        holes[str(hole)] = {"input": entry}
    return holes


def best_ball_from_outcomes(outcomes):
    """'A', 'B' or 'H' per hole, played as 4/5 against 5/5 (or 4/5 each for a half)."""
    played = {"A": ((4, 5), (5, 5)), "B": ((5, 5), (4, 5)), "H": ((4, 5), (4, 5))}
    return pair_holes([played[outcome] for outcome in outcomes])


def four_players():
    return [player("a1"), player("a2")], [player("b1"), player("b2")]


def scramble_rout(holes_played=12):
    """Side A wins every hole 3 to 4."""
    drives = [(0, 1) if hole <= 6 else (1, 0) for hole in range(1, holes_played + 1)]
    team_a, team_b = four_players()
    return make_match(scramble_holes([(3, 4)] * holes_played, drives), team_a, team_b)
