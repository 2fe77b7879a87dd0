"""Standings calculator with tie-breaking rules."""

from functools import cmp_to_key

from gamenight.models import POINTS_DRAW, POINTS_LOSS, POINTS_WIN, Match, TableRow, Team
from gamenight.results import counted_goals, decisive_score


def _award(row: TableRow, goals_for: int, goals_against: int) -> None:
    row.played += 1
    row.goals_for += goals_for
    row.goals_against += goals_against
    if goals_for > goals_against:
        row.wins += 1
        row.points += POINTS_WIN
    elif goals_for < goals_against:
        row.losses += 1
        row.points += POINTS_LOSS
    else:
        row.draws += 1
        row.points += POINTS_DRAW


def head_to_head(team_a: str, team_b: str, matches: list[Match]) -> tuple[int, int, int]:
    """Mini-league between two teams.

    Uses the decisive scoreline of each completed match between the pair,
    so a knockout settled on penalties counts as a win here even though the
    points column scores it as a draw.

    Args:
        team_a: First team id
        team_b: Second team id
        matches: Matches to consider

    Returns:
        Tuple of (points for a, points for b, goal difference from a's view)
    """
    a_points = 0
    b_points = 0
    a_diff = 0

    for match in matches:
        if {match.home_id, match.away_id} != {team_a, team_b}:
            continue
        score = decisive_score(match)
        if score is None:
            continue

        a_goals, b_goals = score if match.home_id == team_a else (score[1], score[0])
        a_diff += a_goals - b_goals
        if a_goals > b_goals:
            a_points += POINTS_WIN
        elif b_goals > a_goals:
            b_points += POINTS_WIN
        else:
            a_points += POINTS_DRAW
            b_points += POINTS_DRAW

    return a_points, b_points, a_diff


def compare_rows(a: TableRow, b: TableRow, matches: list[Match]) -> int:
    """Compare two table rows; negative means ``a`` ranks higher.

    Tie-breaking chain, each step only consulted when all previous ones are
    equal:
    1. Points (desc)
    2. Goal difference (desc)
    3. Goals for (desc)
    4. Head-to-head points between the pair (desc)
    5. Head-to-head goal difference between the pair (desc)
    6. Team name (asc), then team id
    """
    if a.points != b.points:
        return b.points - a.points
    if a.goal_difference != b.goal_difference:
        return b.goal_difference - a.goal_difference
    if a.goals_for != b.goals_for:
        return b.goals_for - a.goals_for

    a_points, b_points, a_diff = head_to_head(a.team_id, b.team_id, matches)
    if a_points != b_points:
        return b_points - a_points
    if a_diff != 0:
        return -1 if a_diff > 0 else 1

    a_name = (a.name.casefold(), a.name, a.team_id)
    b_name = (b.name.casefold(), b.name, b.team_id)
    if a_name == b_name:
        return 0
    return -1 if a_name < b_name else 1


def calculate_table(teams: list[Team], matches: list[Match]) -> list[TableRow]:
    """Calculate the standings table.

    Scoring:
    - Win: 3 points
    - Draw: 1 point
    - Loss: 0 points

    Only complete matches count. Goals are regular time plus extra time for
    knockout matches settled in extra time; penalty shoot-outs leave the
    goals level, so such a match is a draw for the points column.

    Args:
        teams: Teams of the night
        matches: Matches to aggregate (any stage)

    Returns:
        One TableRow per team, sorted best first
    """
    rows = {
        team.id: TableRow(team_id=team.id, name=team.name, color=team.color)
        for team in teams
    }

    for match in matches:
        goals = counted_goals(match)
        if goals is None:
            continue

        home_row = rows.get(match.home_id)
        away_row = rows.get(match.away_id)
        if home_row is None or away_row is None:
            continue

        home_goals, away_goals = goals
        _award(home_row, home_goals, away_goals)
        _award(away_row, away_goals, home_goals)

    key = cmp_to_key(lambda a, b: compare_rows(a, b, matches))
    return sorted(rows.values(), key=key)
