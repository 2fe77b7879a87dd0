"""CSV export utilities."""

import csv
from datetime import datetime

from gamenight.models import STAGE_LABELS, GameNight, Match, MatchStage, TableRow
from gamenight.results import match_winner_id


def format_score(match: Match) -> str:
    """Regular-time score with the tie-break method, e.g. ``2-2 (penalties)``."""
    if not match.has_score:
        return ""
    score = f"{match.home_score}-{match.away_score}"
    if match.resolved_by is not None:
        score += f" ({match.resolved_by.value})"
    return score


def format_date(created_at: str) -> str:
    """Human readable date for an ISO timestamp; unparseable values pass through."""
    try:
        return datetime.fromisoformat(created_at).strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return created_at


def export_nights_csv(nights: list[GameNight], path: str):
    """Export a summary of game nights to CSV.

    The champion is the winner of the night's final, if decided.

    Args:
        nights: Game nights to export
        path: Output CSV path
    """
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f, quoting=csv.QUOTE_ALL)
        writer.writerow(["Title", "Date", "Teams", "Winner", "Final Score"])

        for night in nights:
            final = next((m for m in night.matches if m.stage == MatchStage.FINAL), None)
            winner_id = match_winner_id(final) if final else None
            winner = night.get_team(winner_id) if winner_id else None
            writer.writerow([
                night.title,
                format_date(night.created_at),
                len(night.teams),
                winner.name if winner else "",
                format_score(final) if final else "",
            ])


def export_table_csv(rows: list[TableRow], path: str):
    """Export standings to CSV.

    Args:
        rows: Sorted TableRow list
        path: Output CSV path
    """
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["Position", "Team", "P", "W", "D", "L", "GF", "GA", "GD", "Pts"])

        for position, row in enumerate(rows, start=1):
            writer.writerow([
                position,
                row.name,
                row.played,
                row.wins,
                row.draws,
                row.losses,
                row.goals_for,
                row.goals_against,
                row.goal_difference,
                row.points,
            ])


def export_fixtures_csv(night: GameNight, path: str):
    """Export the match list of a night to CSV.

    Args:
        night: Game night
        path: Output CSV path
    """
    names = {team.id: team.name for team in night.teams}

    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["Slot", "Stage", "Home", "Away", "Score", "Status"])

        for match in sorted(night.matches, key=lambda m: m.slot):
            writer.writerow([
                match.slot,
                STAGE_LABELS[match.stage],
                names.get(match.home_id, match.home_id),
                names.get(match.away_id, match.away_id),
                format_score(match),
                match.status.value,
            ])
