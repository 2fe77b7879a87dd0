"""Tests for round-robin fixture generation."""

from itertools import combinations

import pytest

from gamenight.fixtures import generate_round_robin
from gamenight.models import MatchStage, MatchStatus, Team


def make_teams(count):
    """Create teams A, B, C, ... with ids t1, t2, ..."""
    return [Team(id=f"t{i}", name=chr(ord("A") + i - 1), color=f"#00000{i}") for i in range(1, count + 1)]


@pytest.mark.parametrize("count", [2, 3, 4, 5, 6])
def test_every_pair_plays_once(count):
    """Each unordered pair meets exactly once and nobody plays itself."""
    teams = make_teams(count)
    matches = generate_round_robin(teams)

    assert len(matches) == count * (count - 1) // 2

    pairs = [frozenset((m.home_id, m.away_id)) for m in matches]
    assert all(len(p) == 2 for p in pairs)
    assert set(pairs) == {frozenset(p) for p in combinations([t.id for t in teams], 2)}


def test_four_team_schedule():
    """Circle method for 4 teams: anchor first, the rest rotating."""
    matches = generate_round_robin(make_teams(4))

    schedule = [(m.slot, m.home_id, m.away_id) for m in matches]
    assert schedule == [
        (1, "t1", "t4"),
        (2, "t2", "t3"),
        (3, "t1", "t3"),
        (4, "t4", "t2"),
        (5, "t1", "t2"),
        (6, "t3", "t4"),
    ]


def test_three_team_schedule_skips_byes():
    """With an odd count the bye pairing is dropped and its slot left empty."""
    matches = generate_round_robin(make_teams(3))

    schedule = [(m.slot, m.home_id, m.away_id) for m in matches]
    assert schedule == [
        (2, "t2", "t3"),
        (3, "t1", "t3"),
        (5, "t1", "t2"),
    ]


def test_generated_matches_are_scheduled_round_robin():
    """Fresh fixtures carry no scores."""
    for match in generate_round_robin(make_teams(5)):
        assert match.stage == MatchStage.ROUND_ROBIN
        assert match.status == MatchStatus.SCHEDULED
        assert match.home_score is None and match.away_score is None
        assert match.id.startswith(f"rr-{match.home_id}-{match.away_id}-")


def test_slots_are_unique_and_ascending():
    """Slots establish a chronological order."""
    matches = generate_round_robin(make_teams(6))
    slots = [m.slot for m in matches]
    assert slots == sorted(slots)
    assert len(set(slots)) == len(slots)
    # 6 teams: 5 rounds of 3 matches
    assert slots == list(range(1, 16))


def test_deterministic():
    """Same team order, same pairings, slots and ids."""
    first = generate_round_robin(make_teams(5))
    second = generate_round_robin(make_teams(5))
    assert first == second


@pytest.mark.parametrize("count", [0, 1])
def test_too_few_teams(count):
    """Fewer than 2 teams gives an empty schedule, no error."""
    assert generate_round_robin(make_teams(count)) == []
