"""Knockout bracket synchronization.

The bracket is re-derived from scratch on every call: round-robin matches
are kept as they are, and the qualification, semifinal, consolation and
final fixtures are recomputed from the current standings. Bracket matches
use fixed ids (the stage value) so a re-derived fixture updates the same
logical match instead of creating a duplicate.

Branches by team count N:
- N odd and >= 3: qualification between the bottom two of the round robin
- N >= 4: semifinals 1v4 and 2v3 (qualification winner is seed 4 for odd N)
- N == 3: final between the table topper and the qualification winner
- N == 2: final between the two teams, ordered by the round-robin table
- Both semifinals complete: final (winners) and consolation (losers)
"""

from dataclasses import replace
from typing import Optional

from gamenight.models import Match, MatchStage, MatchStatus, TableRow, Team
from gamenight.results import is_complete, match_loser_id, match_winner_id
from gamenight.standings import calculate_table

BRACKET_IDS = {stage.value for stage in MatchStage if stage != MatchStage.ROUND_ROBIN}

# Carried over from a previous version of a bracket match. Team ids and slot
# are always taken from the recomputation.
PRESERVED_FIELDS = (
    "home_score",
    "away_score",
    "extra_time_home",
    "extra_time_away",
    "pen_home",
    "pen_away",
    "resolved_by",
    "duration_seconds",
)


def _with_status(match: Match) -> Match:
    match.status = MatchStatus.COMPLETED if is_complete(match) else MatchStatus.SCHEDULED
    return match


def _upsert(
    stage: MatchStage,
    slot: int,
    home_id: str,
    away_id: str,
    previous: Optional[Match],
) -> Match:
    """Build a bracket match, merging scores from its previous version."""
    match = Match(id=stage.value, stage=stage, slot=slot, home_id=home_id, away_id=away_id)
    if previous is not None:
        for name in PRESERVED_FIELDS:
            setattr(match, name, getattr(previous, name))
    return _with_status(match)


def _seed_qualification(
    need_qualification: bool,
    table_after_rr: list[TableRow],
    last_slot: int,
    existing: Optional[Match],
) -> Optional[Match]:
    """Qualification between the bottom two; frozen once completed."""
    if existing is not None and is_complete(existing):
        return _with_status(replace(existing))

    if need_qualification and len(table_after_rr) >= 2:
        return _upsert(
            MatchStage.QUALIFICATION,
            last_slot + 1,
            table_after_rr[-2].team_id,
            table_after_rr[-1].team_id,
            existing,
        )
    return None


def _seed_ids(
    team_count: int,
    table_for_seeds: list[TableRow],
    qualification: Optional[Match],
    team_ids: set[str],
) -> list[str]:
    """Return semifinal seeds 1-4, or an empty list if not yet known."""
    if team_count % 2 == 0:
        return [row.team_id for row in table_for_seeds[:4]]

    if qualification is None:
        return []
    winner = match_winner_id(qualification)
    if winner not in team_ids:
        return []

    participants = {qualification.home_id, qualification.away_id}
    others = [row.team_id for row in table_for_seeds if row.team_id not in participants]
    return others[:3] + [winner]


def sync_knockouts(teams: list[Team], matches: list[Match]) -> list[Match]:
    """Re-derive the knockout bracket from the current match list.

    Never raises for inapplicable states: stages that cannot be seeded yet
    are simply omitted. The inputs are not modified.

    Args:
        teams: Teams of the night
        matches: Current match list (any mix of stages, possibly partial)

    Returns:
        New match list sorted by slot. Calling it again on its own output
        returns an equal list.
    """
    previous = {m.id: m for m in matches if m.id in BRACKET_IDS}
    team_ids = {team.id for team in teams}
    team_count = len(teams)

    rr_matches = sorted(
        (replace(m) for m in matches if m.stage == MatchStage.ROUND_ROBIN),
        key=lambda m: m.slot,
    )
    result = list(rr_matches)

    rr_complete = bool(rr_matches) and all(is_complete(m) for m in rr_matches)
    last_slot = max((m.slot for m in rr_matches), default=0)
    table_after_rr = calculate_table(teams, rr_matches)

    need_qualification = rr_complete and team_count >= 3 and team_count % 2 == 1
    qualification = _seed_qualification(
        need_qualification, table_after_rr, last_slot, previous.get(MatchStage.QUALIFICATION.value)
    )
    if qualification is not None:
        result.append(qualification)
        last_slot = max(last_slot, qualification.slot)

    qualification_complete = not need_qualification or (
        qualification is not None and is_complete(qualification)
    )
    seeding_ready = rr_complete and qualification_complete

    table_for_seeds = calculate_table(
        teams, rr_matches + ([qualification] if qualification is not None else [])
    )

    semis = []
    if team_count >= 4 and seeding_ready:
        seeds = _seed_ids(team_count, table_for_seeds, qualification, team_ids)
        if len(seeds) == 4:
            semis = [
                _upsert(
                    MatchStage.SEMI_FINAL_1,
                    last_slot + 1,
                    seeds[0],
                    seeds[3],
                    previous.get(MatchStage.SEMI_FINAL_1.value),
                ),
                _upsert(
                    MatchStage.SEMI_FINAL_2,
                    last_slot + 2,
                    seeds[1],
                    seeds[2],
                    previous.get(MatchStage.SEMI_FINAL_2.value),
                ),
            ]
            result.extend(semis)

    if team_count == 3 and seeding_ready and qualification is not None:
        winner = match_winner_id(qualification)
        participants = {qualification.home_id, qualification.away_id}
        top = [row.team_id for row in table_for_seeds if row.team_id not in participants]
        if winner in team_ids and top:
            result.append(
                _upsert(
                    MatchStage.FINAL,
                    qualification.slot + 1,
                    top[0],
                    winner,
                    previous.get(MatchStage.FINAL.value),
                )
            )

    if team_count == 2 and rr_complete and len(table_after_rr) == 2:
        result.append(
            _upsert(
                MatchStage.FINAL,
                last_slot + 1,
                table_after_rr[0].team_id,
                table_after_rr[1].team_id,
                previous.get(MatchStage.FINAL.value),
            )
        )

    if semis and all(is_complete(semi) for semi in semis):
        semi1, semi2 = semis
        after = max(semi1.slot, semi2.slot)
        winners = (match_winner_id(semi1), match_winner_id(semi2))
        losers = (match_loser_id(semi1), match_loser_id(semi2))
        if all(winners):
            result.append(
                _upsert(MatchStage.FINAL, after + 1, *winners, previous.get(MatchStage.FINAL.value))
            )
        if all(losers):
            result.append(
                _upsert(
                    MatchStage.CONSOLATION,
                    after + 2,
                    *losers,
                    previous.get(MatchStage.CONSOLATION.value),
                )
            )

    return sorted(result, key=lambda m: m.slot)
