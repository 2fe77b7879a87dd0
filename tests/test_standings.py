"""Tests for standings calculation and tie-breaking."""

from functools import cmp_to_key
from itertools import permutations

from gamenight.models import Match, MatchStage, TableRow, Team, TieBreakMethod
from gamenight.standings import calculate_table, compare_rows, head_to_head


def make_team(team_id, name):
    return Team(id=team_id, name=name, color="#FFFFFF")


def result(home, away, home_score, away_score, stage=MatchStage.ROUND_ROBIN, slot=1, **kwargs):
    """Create a played match."""
    return Match(
        id=f"{stage.value}-{home}-{away}",
        stage=stage,
        slot=slot,
        home_id=home,
        away_id=away,
        home_score=home_score,
        away_score=away_score,
        **kwargs,
    )


def test_distinct_points_order():
    """Four teams with distinct point totals are ordered by points."""
    teams = [make_team(t, t.upper()) for t in "abcd"]
    matches = [
        result("a", "b", 2, 0),
        result("a", "c", 1, 0),
        result("a", "d", 3, 1),
        result("b", "c", 2, 1),
        result("b", "d", 1, 1),
        result("c", "d", 4, 0),
    ]

    table = calculate_table(teams, matches)

    assert [row.team_id for row in table] == ["a", "b", "c", "d"]
    assert [row.points for row in table] == [9, 4, 3, 1]
    a = table[0]
    assert (a.played, a.wins, a.draws, a.losses) == (3, 3, 0, 0)
    assert (a.goals_for, a.goals_against, a.goal_difference) == (6, 1, 5)


def test_unplayed_matches_do_not_count():
    """Only complete matches contribute; every team still gets a row."""
    teams = [make_team("a", "A"), make_team("b", "B")]
    matches = [Match(id="m", stage=MatchStage.ROUND_ROBIN, slot=1, home_id="a", away_id="b")]

    table = calculate_table(teams, matches)

    assert len(table) == 2
    assert all(row.played == 0 and row.points == 0 for row in table)
    # Nothing separates them but the name
    assert [row.name for row in table] == ["A", "B"]


def test_matches_with_unknown_teams_are_ignored():
    teams = [make_team("a", "A")]
    table = calculate_table(teams, [result("a", "ghost", 5, 0)])
    assert table[0].played == 0


def test_goal_difference_then_goals_for():
    """Equal points fall back to goal difference, then goals scored."""
    teams = [make_team("a", "A"), make_team("b", "B"), make_team("c", "C")]
    matches = [
        result("a", "c", 3, 0),  # a: +3
        result("b", "c", 4, 1),  # b: +3 with more goals
    ]

    table = calculate_table(teams, matches)

    assert [row.team_id for row in table] == ["b", "a", "c"]


def test_head_to_head_breaks_tie():
    """Identical aggregates: the head-to-head winner ranks higher."""
    teams = [make_team(t, t.upper()) for t in "xyz"]
    # Everyone on 3 points and GD 0; z leads on goals for, x and y are level
    # on every aggregate.
    matches = [
        result("y", "x", 0, 1),  # x beats y 1-0
        result("x", "z", 1, 2),  # z beats x
        result("y", "z", 2, 1),  # y beats z
    ]

    table = calculate_table(teams, matches)
    x = next(r for r in table if r.team_id == "x")
    y = next(r for r in table if r.team_id == "y")
    assert (x.points, x.goal_difference, x.goals_for) == (y.points, y.goal_difference, y.goals_for)

    assert [row.team_id for row in table] == ["z", "x", "y"]


def test_penalty_draw_asymmetry():
    """A shoot-out is a draw in the points column but a win head-to-head."""
    teams = [make_team("a", "Alpha"), make_team("b", "Bravo")]
    matches = [
        result("a", "b", 2, 2, stage=MatchStage.FINAL, pen_home=3, pen_away=4,
               resolved_by=TieBreakMethod.PENALTIES),
    ]

    table = calculate_table(teams, matches)

    assert [row.points for row in table] == [1, 1]
    assert all(row.draws == 1 and row.goals_for == 2 for row in table)
    # Head-to-head uses the shoot-out: Bravo first despite the name order
    assert [row.team_id for row in table] == ["b", "a"]
    assert head_to_head("a", "b", matches) == (0, 3, -1)


def test_extra_time_counts_as_win_and_goals():
    """Extra-time goals are added to the tally and produce a win."""
    teams = [make_team("a", "A"), make_team("b", "B")]
    matches = [
        result("a", "b", 1, 1, stage=MatchStage.SEMI_FINAL_1, extra_time_home=1, extra_time_away=0,
               resolved_by=TieBreakMethod.EXTRA_TIME),
    ]

    table = calculate_table(teams, matches)

    assert table[0].team_id == "a"
    assert (table[0].points, table[0].goals_for, table[0].goals_against) == (3, 2, 1)
    assert (table[1].points, table[1].losses) == (0, 1)


def test_unresolved_knockout_draw_is_ignored():
    teams = [make_team("a", "A"), make_team("b", "B")]
    table = calculate_table(teams, [result("a", "b", 0, 0, stage=MatchStage.QUALIFICATION)])
    assert all(row.played == 0 for row in table)


def test_points_per_match():
    """Decisive matches award 3 points in total, draws 2."""
    teams = [make_team(t, t) for t in "abcd"]
    matches = [
        result("a", "b", 1, 0),
        result("c", "d", 2, 2),
        result("a", "c", 0, 0),
    ]
    table = calculate_table(teams, matches)
    assert sum(row.points for row in table) == 3 + 2 + 2


def test_name_is_final_tiebreak():
    teams = [make_team("2", "beta"), make_team("1", "Alpha")]
    table = calculate_table(teams, [])
    assert [row.name for row in table] == ["Alpha", "beta"]


def test_comparator_consistent_over_permutations():
    """Sorting any input order gives the same table, pairwise consistent."""
    teams = [make_team(t, t.upper()) for t in "abcde"]
    matches = [
        result("a", "b", 1, 1),
        result("c", "d", 2, 0),
        result("e", "a", 0, 1),
        result("b", "c", 1, 1),
        result("d", "e", 3, 3),
        result("a", "c", 0, 2),
        result("b", "d", 2, 0),
        result("e", "c", 1, 1),
        result("a", "d", 2, 2),
        result("b", "e", 0, 0),
    ]
    rows = calculate_table(teams, matches)
    expected = [row.team_id for row in rows]

    for order in permutations(rows):
        resorted = sorted(order, key=cmp_to_key(lambda x, y: compare_rows(x, y, matches)))
        assert [row.team_id for row in resorted] == expected

    for i, upper in enumerate(rows):
        for lower in rows[i + 1:]:
            assert compare_rows(upper, lower, matches) < 0
            assert compare_rows(lower, upper, matches) > 0


def test_compare_rows_is_reflexive():
    row = TableRow(team_id="a", name="A", color="#000000")
    assert compare_rows(row, row, []) == 0
