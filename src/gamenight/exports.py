"""
Excel export for gamenight.
Generates a workbook with standings, matches and rosters of a game night.
"""

import io
from datetime import datetime
from typing import Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from gamenight.io_csv import format_score
from gamenight.models import STAGE_LABELS, GameNight, MatchStage
from gamenight.results import match_loser_id, match_winner_id
from gamenight.standings import calculate_table

PODIUM_FILLS = {
    1: PatternFill(start_color="FFD700", end_color="FFD700", fill_type="solid"),
    2: PatternFill(start_color="C0C0C0", end_color="C0C0C0", fill_type="solid"),
    3: PatternFill(start_color="CD7F32", end_color="CD7F32", fill_type="solid"),
}


def _style_header_row(ws, num_cols: int):
    """Apply consistent header styling to the first row."""
    header_font = Font(bold=True, color="FFFFFF", size=11)
    header_fill = PatternFill(start_color="333333", end_color="333333", fill_type="solid")
    header_alignment = Alignment(horizontal="center", vertical="center")
    thin_border = Border(
        left=Side(style="thin"),
        right=Side(style="thin"),
        top=Side(style="thin"),
        bottom=Side(style="thin"),
    )
    for col in range(1, num_cols + 1):
        cell = ws.cell(row=1, column=col)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = header_alignment
        cell.border = thin_border


def _auto_width(ws):
    """Auto-adjust column widths based on content."""
    for column_cells in ws.columns:
        max_length = max((len(str(c.value)) for c in column_cells if c.value is not None), default=0)
        column_letter = column_cells[0].column_letter
        ws.column_dimensions[column_letter].width = max(min(max_length + 3, 40), 8)


def final_positions(night: GameNight) -> dict[str, int]:
    """Map team id -> final position, for the places the bracket has decided.

    Final winner and loser take 1st and 2nd; consolation winner and loser
    take 3rd and 4th.
    """
    by_stage = {m.stage: m for m in night.matches}
    positions = {}
    for stage, first in ((MatchStage.FINAL, 1), (MatchStage.CONSOLATION, 3)):
        match = by_stage.get(stage)
        if match is None:
            continue
        winner, loser = match_winner_id(match), match_loser_id(match)
        if winner and loser:
            positions[winner] = first
            positions[loser] = first + 1
    return positions


def generate_night_excel(night: GameNight, exported_at: Optional[datetime] = None) -> bytes:
    """
    Generate a multi-sheet Excel workbook for a game night.

    Returns: Excel file as bytes.
    """
    names = {team.id: team.name for team in night.teams}
    positions = final_positions(night)

    wb = Workbook()

    # --- Sheet 1: Standings ---
    ws_table = wb.active
    ws_table.title = "Standings"
    headers = ["Pos", "Team", "P", "W", "D", "L", "GF", "GA", "GD", "Pts", "Final Place"]
    ws_table.append(headers)
    _style_header_row(ws_table, len(headers))
    for pos, row in enumerate(calculate_table(night.teams, night.matches), 1):
        place = positions.get(row.team_id)
        ws_table.append([
            pos,
            row.name,
            row.played,
            row.wins,
            row.draws,
            row.losses,
            row.goals_for,
            row.goals_against,
            row.goal_difference,
            row.points,
            place or "",
        ])
        if place in PODIUM_FILLS:
            for col in range(1, len(headers) + 1):
                ws_table.cell(row=ws_table.max_row, column=col).fill = PODIUM_FILLS[place]
    _auto_width(ws_table)

    # --- Sheet 2: Matches ---
    ws_matches = wb.create_sheet("Matches")
    headers = ["Slot", "Stage", "Home", "Away", "Score", "Winner", "Status"]
    ws_matches.append(headers)
    _style_header_row(ws_matches, len(headers))
    for match in sorted(night.matches, key=lambda m: m.slot):
        winner_id = match_winner_id(match)
        ws_matches.append([
            match.slot,
            STAGE_LABELS[match.stage],
            names.get(match.home_id, match.home_id),
            names.get(match.away_id, match.away_id),
            format_score(match) or "-",
            names.get(winner_id, "-") if winner_id else "-",
            match.status.value,
        ])
    _auto_width(ws_matches)

    # --- Sheet 3: Players ---
    ws_players = wb.create_sheet("Players")
    headers = ["Team", "Color", "Player"]
    ws_players.append(headers)
    _style_header_row(ws_players, len(headers))
    for team in night.teams:
        for player in team.players or [None]:
            ws_players.append([team.name, team.color, player.name if player else ""])
    _auto_width(ws_players)

    # --- Night info at top of first sheet ---
    exported_at = exported_at or datetime.now()
    ws_table.insert_rows(1, 2)
    ws_table.cell(row=1, column=1).value = night.title
    ws_table.cell(row=1, column=1).font = Font(bold=True, size=14)
    ws_table.cell(row=2, column=1).value = f"Exported: {exported_at.strftime('%Y-%m-%d %H:%M')}"
    ws_table.cell(row=2, column=1).font = Font(size=9, color="999999")

    # Save to bytes
    output = io.BytesIO()
    wb.save(output)
    output.seek(0)
    return output.read()
