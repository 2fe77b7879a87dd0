"""Tournament state store.

Owns the list of game nights, the "current night" pointer and the reusable
player library. Every mutation is applied in memory first and then written
through to storage; a failed write is logged and the in-memory state is
kept. Every mutation that touches scores goes through sync_knockouts before
it is stored.

Invalid but plausible input (blank names, unknown ids, a seventh team, a
tie-break that does not break the tie) is a silent no-op: methods return
None or False instead of raising.
"""

import logging
from dataclasses import replace
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError

from gamenight.fixtures import generate_round_robin
from gamenight.knockout import sync_knockouts
from gamenight.models import (
    DEFAULT_PALETTE,
    MAX_TEAMS,
    GameNight,
    MatchStage,
    MatchStatus,
    NightSummary,
    Player,
    TableRow,
    Team,
    TieBreakMethod,
    new_id,
    utc_now_iso,
)
from gamenight.results import is_complete, match_winner_id
from gamenight.standings import calculate_table
from gamenight.storage import STORAGE_KEY, StateRepository, dump_state, load_state

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Game Night"


def format_name(raw: str) -> str:
    """Normalize a player name.

    Trims whitespace and rewrites "Last, First" as "First Last".

    Examples:
        >>> format_name("  Ana  ")
        'Ana'
        >>> format_name("Silva, Marta")
        'Marta Silva'
        >>> format_name("   ")
        ''
    """
    trimmed = raw.strip()
    if not trimmed:
        return ""
    if "," in trimmed:
        last, first = trimmed.split(",", 1)
        return f"{first.strip()} {last.strip()}".strip()
    return trimmed


def create_game_night(title: Optional[str] = None, teams: Optional[list[Team]] = None) -> GameNight:
    """Create a new game night with freshly generated fixtures."""
    teams = teams or []
    return GameNight(
        id=new_id("night"),
        title=title or DEFAULT_TITLE,
        created_at=utc_now_iso(),
        teams=teams,
        matches=generate_round_robin(teams),
    )


class TournamentStore:
    """In-memory tournament state with write-through persistence."""

    def __init__(
        self,
        repository: Optional[StateRepository] = None,
        palette: Optional[list[str]] = None,
        default_title: str = DEFAULT_TITLE,
    ):
        """Initialize the store.

        Args:
            repository: Storage backend; None keeps everything in memory
            palette: Team colors to choose from
            default_title: Title for nights created without one
        """
        self.repository = repository
        self.palette = list(palette or DEFAULT_PALETTE)
        self.default_title = default_title
        self.nights: list[GameNight] = []
        self.library: list[Player] = []
        self.current_night_id: Optional[str] = None

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Load stored state, or start fresh if there is none or it is unreadable."""
        nights: list[GameNight] = []
        library: list[Player] = []

        raw = None
        if self.repository is not None:
            try:
                raw = self.repository.get(STORAGE_KEY)
            except SQLAlchemyError as e:
                logger.warning("Failed to load stored game nights: %s", e)

        if raw:
            try:
                nights, library = load_state(raw)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Stored game nights are unreadable, starting fresh: %s", e)
                nights, library = [], []

        for night in nights:
            night.matches = sync_knockouts(night.teams, night.matches)

        self.nights = nights
        self.library = library
        if not self.nights:
            self.nights = [create_game_night(self.default_title)]
        self.current_night_id = self.nights[0].id
        self.save()

    def save(self) -> None:
        """Write the current state to storage; failures are only logged."""
        if self.repository is None:
            return
        try:
            self.repository.set(STORAGE_KEY, dump_state(self.nights, self.library))
        except SQLAlchemyError as e:
            logger.warning("Failed saving game nights: %s", e)
            self.repository.session.rollback()

    # ------------------------------------------------------------------
    # Nights
    # ------------------------------------------------------------------

    @property
    def current_night(self) -> Optional[GameNight]:
        return self.get_night(self.current_night_id) if self.current_night_id else None

    def get_night(self, night_id: str) -> Optional[GameNight]:
        for night in self.nights:
            if night.id == night_id:
                return night
        return None

    def start_night(self, title: Optional[str] = None, clone_teams: bool = True) -> GameNight:
        """Start a new night and make it current.

        Args:
            title: Night title (defaults to the configured title)
            clone_teams: Copy the current night's teams, each with its own
                copy of the player list

        Returns:
            The new night
        """
        teams = []
        if clone_teams and self.current_night is not None:
            teams = [replace(team, players=list(team.players)) for team in self.current_night.teams]

        night = create_game_night(title or self.default_title, teams)
        self.nights.insert(0, night)
        self.current_night_id = night.id
        self.save()
        return night

    def rename_night(self, title: str) -> bool:
        night = self.current_night
        if night is None or not title.strip():
            return False
        night.title = title.strip()
        self.save()
        return True

    def set_current_night(self, night_id: str) -> bool:
        if self.get_night(night_id) is None:
            logger.debug("Unknown night %s", night_id)
            return False
        self.current_night_id = night_id
        self.save()
        return True

    def reset_night(self) -> bool:
        """Regenerate the current night's fixtures, keeping its teams and players."""
        night = self.current_night
        if night is None:
            return False
        night.matches = generate_round_robin(night.teams)
        night.current_match_id = None
        self.save()
        return True

    def reset_all_data(self) -> GameNight:
        """Wipe every night and the library, then start one fresh night."""
        if self.repository is not None:
            try:
                self.repository.delete(STORAGE_KEY)
            except SQLAlchemyError as e:
                logger.warning("Failed to clear storage: %s", e)
                self.repository.session.rollback()

        night = create_game_night(self.default_title)
        self.nights = [night]
        self.library = []
        self.current_night_id = night.id
        self.save()
        return night

    def summaries(self) -> list[NightSummary]:
        """One listing entry per night, with the champion once the final is decided."""
        result = []
        for night in self.nights:
            final = next((m for m in night.matches if m.stage == MatchStage.FINAL), None)
            result.append(
                NightSummary(
                    id=night.id,
                    title=night.title,
                    created_at=night.created_at,
                    team_count=len(night.teams),
                    winner_id=match_winner_id(final) if final else None,
                )
            )
        return result

    def table(self) -> list[TableRow]:
        """Standings of the current night."""
        night = self.current_night
        if night is None:
            return []
        return calculate_table(night.teams, night.matches)

    # ------------------------------------------------------------------
    # Teams
    # ------------------------------------------------------------------

    def _unique_color(self, preferred: Optional[str], teams: list[Team]) -> Optional[str]:
        used = {team.color.upper() for team in teams}
        if preferred and preferred.upper() not in used:
            return preferred
        return next((c for c in self.palette if c.upper() not in used), None)

    def add_team(self, name: str, color: Optional[str] = None) -> Optional[Team]:
        """Add a team to the current night and regenerate its fixtures.

        A color already used in the night is replaced by the first free
        palette color.

        Returns:
            The new team, or None if rejected (blank name, night full, no
            free color)
        """
        night = self.current_night
        if night is None or not name.strip():
            return None
        if len(night.teams) >= MAX_TEAMS:
            logger.debug("Night %s already has %d teams", night.id, MAX_TEAMS)
            return None

        safe_color = self._unique_color(color, night.teams)
        if safe_color is None:
            return None

        team = Team(id=new_id("team"), name=name.strip(), color=safe_color)
        night.teams.append(team)
        night.matches = generate_round_robin(night.teams)
        night.current_match_id = None
        self.save()
        return team

    def update_team(self, team_id: str, name: Optional[str] = None, color: Optional[str] = None) -> bool:
        """Rename and/or recolor a team."""
        night = self.current_night
        team = night.get_team(team_id) if night else None
        if team is None:
            return False
        if name is not None and not name.strip():
            return False

        if color is not None and color.upper() != team.color.upper():
            others = [t for t in night.teams if t.id != team_id]
            safe_color = self._unique_color(color, others)
            if safe_color is None:
                return False
            team.color = safe_color
        if name is not None:
            team.name = name.strip()
        self.save()
        return True

    def remove_team(self, team_id: str) -> bool:
        """Remove a team and regenerate the fixtures of the remaining ones."""
        night = self.current_night
        if night is None or night.get_team(team_id) is None:
            return False
        night.teams = [t for t in night.teams if t.id != team_id]
        night.matches = generate_round_robin(night.teams)
        night.current_match_id = None
        self.save()
        return True

    # ------------------------------------------------------------------
    # Players
    # ------------------------------------------------------------------

    def _find_library_player(self, name: str) -> Optional[Player]:
        lower = name.lower()
        return next((p for p in self.library if p.name.lower() == lower), None)

    def add_player(self, team_id: str, name: str) -> Optional[Player]:
        """Create a player on a team; also records the name in the library."""
        night = self.current_night
        team = night.get_team(team_id) if night else None
        formatted = format_name(name)
        if team is None or not formatted:
            return None

        player = Player(id=new_id("player"), name=formatted)
        team.players.append(player)
        if self._find_library_player(formatted) is None:
            self.library.append(player)
        self.save()
        return player

    def add_existing_player(self, team_id: str, player_id: str) -> bool:
        """Put a known player (from this night or the library) on a team."""
        night = self.current_night
        team = night.get_team(team_id) if night else None
        if team is None:
            return False

        candidates = [p for t in night.teams for p in t.players] + self.library
        player = next((p for p in candidates if p.id == player_id), None)
        if player is None or any(p.id == player_id for p in team.players):
            return False

        team.players.append(player)
        self.save()
        return True

    def transfer_player(self, player_id: str, from_team_id: str, to_team_id: str) -> bool:
        """Move a player between two teams of the current night."""
        night = self.current_night
        if night is None or from_team_id == to_team_id:
            return False
        source = night.get_team(from_team_id)
        target = night.get_team(to_team_id)
        if source is None or target is None:
            return False
        player = next((p for p in source.players if p.id == player_id), None)
        if player is None:
            return False

        source.players = [p for p in source.players if p.id != player_id]
        target.players.append(player)
        self.save()
        return True

    def remove_player(self, team_id: str, player_id: str) -> bool:
        night = self.current_night
        team = night.get_team(team_id) if night else None
        if team is None or not any(p.id == player_id for p in team.players):
            return False
        team.players = [p for p in team.players if p.id != player_id]
        self.save()
        return True

    def add_library_player(self, name: str) -> Optional[Player]:
        """Add a name to the library; returns the existing entry on duplicates."""
        formatted = format_name(name)
        if not formatted:
            return None
        existing = self._find_library_player(formatted)
        if existing is not None:
            return existing

        player = Player(id=new_id("player"), name=formatted)
        self.library.append(player)
        self.save()
        return player

    def add_library_players(self, names: Iterable[str]) -> list[Player]:
        """Bulk add; returns only the players that were actually added."""
        added = []
        for raw in names:
            formatted = format_name(raw)
            if not formatted or self._find_library_player(formatted) is not None:
                continue
            player = Player(id=new_id("player"), name=formatted)
            self.library.append(player)
            added.append(player)
        if added:
            self.save()
        return added

    def remove_library_player(self, player_id: str) -> bool:
        """Remove a player from the library and from every team of every night."""
        if not any(p.id == player_id for p in self.library):
            return False
        self.library = [p for p in self.library if p.id != player_id]
        for night in self.nights:
            for team in night.teams:
                team.players = [p for p in team.players if p.id != player_id]
        self.save()
        return True

    # ------------------------------------------------------------------
    # Matches
    # ------------------------------------------------------------------

    def update_match_score(
        self, match_id: str, home_score: Optional[int], away_score: Optional[int]
    ) -> bool:
        """Record (or clear, with None) the regular-time score of a match.

        Tie-break data is cleared when the new score is no longer level, or
        when it is a different level score than the one the tie-break
        settled.
        """
        night = self.current_night
        match = night.get_match(match_id) if night else None
        if match is None:
            return False
        if any(score is not None and score < 0 for score in (home_score, away_score)):
            return False

        updated = replace(match, home_score=home_score, away_score=away_score)
        level = home_score is not None and home_score == away_score
        same_level_score = level and (match.home_score, match.away_score) == (home_score, away_score)
        if not same_level_score:
            updated = replace(
                updated,
                extra_time_home=None,
                extra_time_away=None,
                pen_home=None,
                pen_away=None,
                resolved_by=None,
            )
        updated.status = MatchStatus.COMPLETED if is_complete(updated) else MatchStatus.SCHEDULED

        matches = [updated if m.id == match_id else m for m in night.matches]
        night.matches = sync_knockouts(night.teams, matches)
        self.save()
        return True

    def resolve_tie(self, match_id: str, method: TieBreakMethod, home: int, away: int) -> bool:
        """Settle a level knockout match by extra time or penalties.

        Rejected when the inputs are equal, or the match is a round-robin
        match or not level in regular time.
        """
        night = self.current_night
        match = night.get_match(match_id) if night else None
        if match is None or home == away:
            return False
        if not match.is_knockout or not match.has_score or match.home_score != match.away_score:
            return False

        method = TieBreakMethod(method)
        if method == TieBreakMethod.EXTRA_TIME:
            updated = replace(
                match,
                extra_time_home=home,
                extra_time_away=away,
                pen_home=None,
                pen_away=None,
                resolved_by=method,
            )
        else:
            updated = replace(match, pen_home=home, pen_away=away, resolved_by=method)
        updated.status = MatchStatus.COMPLETED if is_complete(updated) else MatchStatus.SCHEDULED

        matches = [updated if m.id == match_id else m for m in night.matches]
        night.matches = sync_knockouts(night.teams, matches)
        self.save()
        return True

    def set_match_duration(self, match_id: str, seconds: int) -> bool:
        """Store the timer duration of a match; no effect on scheduling."""
        night = self.current_night
        match = night.get_match(match_id) if night else None
        if match is None or seconds < 0:
            return False
        match.duration_seconds = seconds
        self.save()
        return True

    def attach_match_to_timer(self, match_id: Optional[str] = None) -> bool:
        """Attach a match to the timer widget, or detach with None."""
        night = self.current_night
        if night is None:
            return False
        if match_id is not None and night.get_match(match_id) is None:
            return False
        night.current_match_id = match_id
        self.save()
        return True
