"""Command-line interface for gamenight."""

import logging
from pathlib import Path
from typing import Optional

import click

from gamenight.config_loader import DEFAULT_CONFIG, ConfigError, load_and_validate_config
from gamenight.models import STAGE_LABELS, GameNight, Match, Team, TieBreakMethod
from gamenight.storage import DatabaseManager, StateRepository
from gamenight.store import TournamentStore


def _open_store(config: Optional[str]) -> TournamentStore:
    """Load configuration, set up logging and storage, and load the state."""
    try:
        cfg = load_and_validate_config(config) if config else dict(DEFAULT_CONFIG)
    except ConfigError as e:
        click.echo(f"[ERROR] Configuration Error: {e}", err=True)
        raise click.Abort()

    logging.basicConfig(
        level=getattr(logging, cfg["log_level"]),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    db = DatabaseManager(cfg["db_path"])
    db.create_tables()
    store = TournamentStore(
        repository=StateRepository(db.get_session()),
        palette=cfg["palette"],
        default_title=cfg["default_title"],
    )
    store.load()
    return store


def _require_night(store: TournamentStore) -> GameNight:
    night = store.current_night
    if night is None:
        click.echo("[ERROR] No current game night", err=True)
        raise click.Abort()
    return night


def _find_team(night: GameNight, ref: str) -> Team:
    """Find a team by id or (case-insensitive) name."""
    for team in night.teams:
        if team.id == ref or team.name.lower() == ref.lower():
            return team
    click.echo(f"[ERROR] Unknown team: {ref}", err=True)
    raise click.Abort()


def _find_match(night: GameNight, ref: str) -> Match:
    """Find a match by id or slot number."""
    for match in night.matches:
        if match.id == ref or (ref.isdigit() and match.slot == int(ref)):
            return match
    click.echo(f"[ERROR] Unknown match: {ref}", err=True)
    raise click.Abort()


def _describe(night: GameNight, match: Match) -> str:
    names = {t.id: t.name for t in night.teams}
    home = names.get(match.home_id, match.home_id)
    away = names.get(match.away_id, match.away_id)
    if match.has_score:
        score = f"{match.home_score}-{match.away_score}"
        if match.resolved_by is not None:
            tb = (
                (match.extra_time_home, match.extra_time_away)
                if match.resolved_by == TieBreakMethod.EXTRA_TIME
                else (match.pen_home, match.pen_away)
            )
            score += f" ({match.resolved_by.value} {tb[0]}-{tb[1]})"
    else:
        score = "vs"
    return f"#{match.slot:<3} {STAGE_LABELS[match.stage]:<13} {home} {score} {away}  [{match.status.value}]"


@click.group()
@click.version_option(version="0.1.0")
@click.option("--config", required=False, help="Path to config YAML file")
@click.pass_context
def cli(ctx, config: Optional[str]):
    """Game Night - schedule and score small round-robin + knockout tournaments."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


# ============================================================================
# Nights
# ============================================================================


@cli.command()
@click.pass_context
def nights(ctx):
    """List game nights (current one marked with *)."""
    store = _open_store(ctx.obj["config"])
    for summary in store.summaries():
        marker = "*" if summary.id == store.current_night_id else " "
        night = store.get_night(summary.id)
        champion = night.get_team(summary.winner_id) if summary.winner_id else None
        line = f"{marker} {summary.id}  {summary.title}  ({summary.team_count} teams)"
        if champion:
            line += f"  Champion: {champion.name}"
        click.echo(line)


@cli.command()
@click.option("--title", required=False, help="Night title")
@click.option("--fresh", is_flag=True, help="Start without copying the current teams")
@click.pass_context
def new_night(ctx, title: Optional[str], fresh: bool):
    """Start a new game night.

    Example:
        gamenight new-night --title "Friday Futsal"
    """
    store = _open_store(ctx.obj["config"])
    night = store.start_night(title, clone_teams=not fresh)
    click.echo(f"[SUCCESS] Started '{night.title}' ({night.id}) with {len(night.teams)} teams")


@cli.command()
@click.argument("night_id")
@click.pass_context
def switch(ctx, night_id: str):
    """Make another night the current one."""
    store = _open_store(ctx.obj["config"])
    if not store.set_current_night(night_id):
        click.echo(f"[ERROR] Unknown night: {night_id}", err=True)
        raise click.Abort()
    click.echo(f"[SUCCESS] Current night: {store.current_night.title}")


@cli.command()
@click.argument("title")
@click.pass_context
def rename_night(ctx, title: str):
    """Rename the current night."""
    store = _open_store(ctx.obj["config"])
    if not store.rename_night(title):
        click.echo("[ERROR] Title cannot be empty", err=True)
        raise click.Abort()
    click.echo(f"[SUCCESS] Renamed to '{store.current_night.title}'")


@cli.command()
@click.pass_context
def reset_night(ctx):
    """Clear all scores of the current night and regenerate its fixtures."""
    store = _open_store(ctx.obj["config"])
    store.reset_night()
    click.echo(f"[SUCCESS] Reset '{store.current_night.title}'")


@cli.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def wipe(ctx, yes: bool):
    """Delete every night and the player library."""
    if not yes:
        click.confirm("This deletes all game nights and players. Continue?", abort=True)
    store = _open_store(ctx.obj["config"])
    store.reset_all_data()
    click.echo("[DONE] All data wiped")


# ============================================================================
# Teams and players
# ============================================================================


@cli.command()
@click.option("--name", required=True, help="Team name")
@click.option("--color", required=False, help="Team color (#RRGGBB); defaults to a free palette color")
@click.pass_context
def add_team(ctx, name: str, color: Optional[str]):
    """Add a team to the current night (max 6).

    Example:
        gamenight add-team --name Reds --color "#EF4444"
    """
    store = _open_store(ctx.obj["config"])
    team = store.add_team(name, color)
    if team is None:
        click.echo("[ERROR] Team not added (empty name, night full or no free color)", err=True)
        raise click.Abort()
    click.echo(f"[SUCCESS] Added {team.name} ({team.color})")
    click.echo(f"[INFO] {len(store.current_night.matches)} round-robin matches scheduled")


@cli.command()
@click.option("--team", "team_ref", required=True, help="Team id or name")
@click.option("--name", required=False, help="New name")
@click.option("--color", required=False, help="New color")
@click.pass_context
def edit_team(ctx, team_ref: str, name: Optional[str], color: Optional[str]):
    """Rename or recolor a team."""
    store = _open_store(ctx.obj["config"])
    team = _find_team(_require_night(store), team_ref)
    if not store.update_team(team.id, name=name, color=color):
        click.echo("[ERROR] Team not updated", err=True)
        raise click.Abort()
    click.echo(f"[SUCCESS] {team.name} ({team.color})")


@cli.command()
@click.option("--team", "team_ref", required=True, help="Team id or name")
@click.pass_context
def remove_team(ctx, team_ref: str):
    """Remove a team (fixtures are regenerated)."""
    store = _open_store(ctx.obj["config"])
    team = _find_team(_require_night(store), team_ref)
    store.remove_team(team.id)
    click.echo(f"[SUCCESS] Removed {team.name}")


@cli.command()
@click.option("--team", "team_ref", required=True, help="Team id or name")
@click.option("--name", required=True, help='Player name ("Last, First" accepted)')
@click.pass_context
def add_player(ctx, team_ref: str, name: str):
    """Add a player to a team."""
    store = _open_store(ctx.obj["config"])
    team = _find_team(_require_night(store), team_ref)
    player = store.add_player(team.id, name)
    if player is None:
        click.echo("[ERROR] Player name cannot be empty", err=True)
        raise click.Abort()
    click.echo(f"[SUCCESS] {player.name} joined {team.name}")


@cli.command()
@click.option("--player", "player_id", required=True, help="Player id")
@click.option("--from-team", "from_ref", required=True, help="Source team id or name")
@click.option("--to-team", "to_ref", required=True, help="Target team id or name")
@click.pass_context
def transfer_player(ctx, player_id: str, from_ref: str, to_ref: str):
    """Move a player to another team."""
    store = _open_store(ctx.obj["config"])
    night = _require_night(store)
    source = _find_team(night, from_ref)
    target = _find_team(night, to_ref)
    if not store.transfer_player(player_id, source.id, target.id):
        click.echo("[ERROR] Transfer not possible", err=True)
        raise click.Abort()
    click.echo(f"[SUCCESS] Moved player to {target.name}")


@cli.command()
@click.option("--team", "team_ref", required=True, help="Team id or name")
@click.option("--player", "player_id", required=True, help="Player id")
@click.pass_context
def remove_player(ctx, team_ref: str, player_id: str):
    """Remove a player from a team."""
    store = _open_store(ctx.obj["config"])
    team = _find_team(_require_night(store), team_ref)
    if not store.remove_player(team.id, player_id):
        click.echo(f"[ERROR] Player {player_id} is not on {team.name}", err=True)
        raise click.Abort()
    click.echo(f"[SUCCESS] Removed player from {team.name}")


@cli.command()
@click.option("--add", "names", multiple=True, help="Add a name to the library (repeatable)")
@click.option("--remove", "remove_id", required=False, help="Remove a library player by id")
@click.pass_context
def library(ctx, names: tuple[str, ...], remove_id: Optional[str]):
    """Show or edit the reusable player library."""
    store = _open_store(ctx.obj["config"])
    if names:
        added = store.add_library_players(names)
        click.echo(f"[SUCCESS] Added {len(added)} players")
    if remove_id and not store.remove_library_player(remove_id):
        click.echo(f"[WARNING] Unknown library player: {remove_id}")
    for player in store.library:
        click.echo(f"  {player.id}  {player.name}")


# ============================================================================
# Matches
# ============================================================================


@cli.command()
@click.pass_context
def fixtures(ctx):
    """Show the match list of the current night."""
    store = _open_store(ctx.obj["config"])
    night = _require_night(store)
    if not night.matches:
        click.echo("[INFO] No fixtures yet (add at least 2 teams)")
        return
    for match in night.matches:
        marker = ">" if match.id == night.current_match_id else " "
        click.echo(f"{marker} {_describe(night, match)}")


@cli.command()
@click.option("--match", "match_ref", required=True, help="Match id or slot number")
@click.option("--home", type=click.IntRange(min=0), required=False, help="Home goals")
@click.option("--away", type=click.IntRange(min=0), required=False, help="Away goals")
@click.option("--clear", is_flag=True, help="Clear the score")
@click.pass_context
def score(ctx, match_ref: str, home: Optional[int], away: Optional[int], clear: bool):
    """Record a regular-time score.

    Example:
        gamenight score --match 3 --home 2 --away 1
    """
    if not clear and (home is None or away is None):
        click.echo("[ERROR] Give --home and --away, or --clear", err=True)
        raise click.Abort()

    store = _open_store(ctx.obj["config"])
    night = _require_night(store)
    match = _find_match(night, match_ref)
    if clear:
        home = away = None
    store.update_match_score(match.id, home, away)

    night = store.current_night
    updated = night.get_match(match.id)
    click.echo(f"[SUCCESS] {_describe(night, updated)}")
    if updated.is_knockout and not updated.is_completed and updated.has_score:
        click.echo("[INFO] Level knockout match: settle it with resolve-tie")


@cli.command()
@click.option("--match", "match_ref", required=True, help="Match id or slot number")
@click.option(
    "--method",
    type=click.Choice([m.value for m in TieBreakMethod]),
    required=True,
    help="How the tie was settled",
)
@click.option("--home", type=click.IntRange(min=0), required=True)
@click.option("--away", type=click.IntRange(min=0), required=True)
@click.pass_context
def resolve_tie(ctx, match_ref: str, method: str, home: int, away: int):
    """Settle a level knockout match by extra time or penalties."""
    store = _open_store(ctx.obj["config"])
    night = _require_night(store)
    match = _find_match(night, match_ref)
    if not store.resolve_tie(match.id, TieBreakMethod(method), home, away):
        click.echo("[ERROR] Tie not resolved (not a level knockout match, or scores still level)", err=True)
        raise click.Abort()
    click.echo(f"[SUCCESS] {_describe(store.current_night, store.current_night.get_match(match.id))}")


@cli.command()
@click.pass_context
def table(ctx):
    """Show the standings of the current night."""
    store = _open_store(ctx.obj["config"])
    click.echo(f"{'Pos':<4}{'Team':<16}{'P':>3}{'W':>3}{'D':>3}{'L':>3}{'GF':>4}{'GA':>4}{'GD':>4}{'Pts':>5}")
    for pos, row in enumerate(store.table(), 1):
        click.echo(
            f"{pos:<4}{row.name:<16}{row.played:>3}{row.wins:>3}{row.draws:>3}{row.losses:>3}"
            f"{row.goals_for:>4}{row.goals_against:>4}{row.goal_difference:>4}{row.points:>5}"
        )


@cli.command()
@click.option("--match", "match_ref", required=True, help="Match id or slot number")
@click.option("--seconds", type=click.IntRange(min=0), required=True)
@click.pass_context
def set_duration(ctx, match_ref: str, seconds: int):
    """Set the timer duration of a match."""
    store = _open_store(ctx.obj["config"])
    match = _find_match(_require_night(store), match_ref)
    store.set_match_duration(match.id, seconds)
    click.echo(f"[SUCCESS] Match #{match.slot} lasts {seconds // 60}:{seconds % 60:02d}")


@cli.command()
@click.option("--match", "match_ref", required=False, help="Match id or slot number")
@click.option("--detach", is_flag=True, help="Detach the timer")
@click.pass_context
def attach_timer(ctx, match_ref: Optional[str], detach: bool):
    """Attach the timer to a match, or detach it."""
    store = _open_store(ctx.obj["config"])
    night = _require_night(store)
    if detach or not match_ref:
        store.attach_match_to_timer(None)
        click.echo("[SUCCESS] Timer detached")
        return
    match = _find_match(night, match_ref)
    store.attach_match_to_timer(match.id)
    click.echo(f"[SUCCESS] Timer attached to match #{match.slot}")


# ============================================================================
# Export
# ============================================================================


@cli.command()
@click.option("--what", type=click.Choice(["nights", "table", "fixtures", "excel"]), required=True)
@click.option("--out", required=True, help="Output file path")
@click.pass_context
def export(ctx, what: str, out: str):
    """Export data to files.

    Example:
        gamenight export --what nights --out nights.csv
    """
    from gamenight.exports import generate_night_excel
    from gamenight.io_csv import export_fixtures_csv, export_nights_csv, export_table_csv

    store = _open_store(ctx.obj["config"])
    Path(out).parent.mkdir(parents=True, exist_ok=True)

    if what == "nights":
        export_nights_csv(store.nights, out)
    elif what == "table":
        export_table_csv(store.table(), out)
    elif what == "fixtures":
        export_fixtures_csv(_require_night(store), out)
    else:
        Path(out).write_bytes(generate_night_excel(_require_night(store)))

    click.echo(f"[SUCCESS] Exported {what} to {out}")


if __name__ == "__main__":
    cli()
