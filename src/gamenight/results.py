"""Completeness and winner rules for matches.

A round-robin match is complete as soon as both scores are in, draws
included. A knockout match is only complete once it has a winner: either
the regular-time scores differ, or the recorded tie-break (extra time or
penalties) has differing scores.
"""

from typing import Optional

from gamenight.models import Match, TieBreakMethod


def _differs(home: Optional[int], away: Optional[int]) -> bool:
    return home is not None and away is not None and home != away


def decisive_score(match: Match) -> Optional[tuple[int, int]]:
    """Return the (home, away) score pair that decided the match.

    Regular time for a round-robin match (draws included) or a knockout
    match won in regulation, otherwise the extra-time or penalty pair named
    by ``resolved_by``.

    Args:
        match: Match to inspect

    Returns:
        Score pair, or None if the match is not complete
    """
    if not match.has_score:
        return None

    if not match.is_knockout or match.home_score != match.away_score:
        return match.home_score, match.away_score

    if match.resolved_by == TieBreakMethod.EXTRA_TIME:
        if _differs(match.extra_time_home, match.extra_time_away):
            return match.extra_time_home, match.extra_time_away
    elif match.resolved_by == TieBreakMethod.PENALTIES:
        if _differs(match.pen_home, match.pen_away):
            return match.pen_home, match.pen_away

    return None


def is_complete(match: Match) -> bool:
    """Check whether a match is decisively complete."""
    return decisive_score(match) is not None


def counted_goals(match: Match) -> Optional[tuple[int, int]]:
    """Goals that count toward goals for/against in the table.

    Regular-time goals plus extra-time goals when the match was settled in
    extra time. Penalties never count.

    Returns:
        (home, away) goals, or None if the match is not complete
    """
    if not is_complete(match):
        return None

    home, away = match.home_score, match.away_score
    if match.is_knockout and match.resolved_by == TieBreakMethod.EXTRA_TIME and home == away:
        home += match.extra_time_home
        away += match.extra_time_away
    return home, away


def match_winner_id(match: Match) -> Optional[str]:
    """Return the winning team id, or None for a draw or unfinished match.

    Stable once the match is completed: it only depends on the scores that
    made the match complete.
    """
    score = decisive_score(match)
    if score is None or score[0] == score[1]:
        return None
    return match.home_id if score[0] > score[1] else match.away_id


def match_loser_id(match: Match) -> Optional[str]:
    """Return the losing team id, or None for a draw or unfinished match."""
    winner = match_winner_id(match)
    if winner is None:
        return None
    return match.away_id if winner == match.home_id else match.home_id
