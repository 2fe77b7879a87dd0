"""Data models for gamenight.

Domain model hierarchy:
- GameNight contains Teams and Matches
- Team contains Players
- Match holds regular, extra-time and penalty scores
- TableRow is derived from matches and never stored
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


POINTS_WIN = 3
POINTS_DRAW = 1
POINTS_LOSS = 0

MIN_TEAMS = 2
MAX_TEAMS = 6

DEFAULT_PALETTE = ["#2563EB", "#22C55E", "#FACC15", "#EC4899", "#F97316", "#EF4444"]


class MatchStage(str, Enum):
    """Bracket stage of a match."""

    ROUND_ROBIN = "roundRobin"
    QUALIFICATION = "qualification"
    SEMI_FINAL_1 = "semiFinal1"
    SEMI_FINAL_2 = "semiFinal2"
    CONSOLATION = "consolation"
    FINAL = "final"


class MatchStatus(str, Enum):
    """Match status."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"  # Decisively complete, see results.is_complete


class TieBreakMethod(str, Enum):
    """How a level knockout match was settled."""

    EXTRA_TIME = "extraTime"
    PENALTIES = "penalties"


STAGE_LABELS = {
    MatchStage.ROUND_ROBIN: "Round Robin",
    MatchStage.QUALIFICATION: "Qualification",
    MatchStage.SEMI_FINAL_1: "Semi-final 1",
    MatchStage.SEMI_FINAL_2: "Semi-final 2",
    MatchStage.CONSOLATION: "Consolation",
    MatchStage.FINAL: "Final",
}


def new_id(prefix: str) -> str:
    """Return a fresh identifier such as ``team-3f2a9c01b7de``."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def utc_now_iso() -> str:
    """Current time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


# ============================================================================
# Core Domain Models
# ============================================================================


@dataclass
class Player:
    """A player, either on a team or in the reusable library."""

    id: str
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass
class Team:
    """A team taking part in a game night.

    The color is drawn from a fixed palette and is unique within a night.
    """

    id: str
    name: str
    color: str
    players: list[Player] = field(default_factory=list)

    def __str__(self) -> str:
        """String representation."""
        return f"{self.name} ({len(self.players)} players)"


@dataclass
class Match:
    """A match between two teams.

    Regular-time scores are always the primary result. Knockout matches that
    end level carry the extra-time or penalty scores that settled them, and
    ``resolved_by`` records which of the two applies.
    """

    id: str
    stage: MatchStage
    slot: int  # Ascending = chronological order within the night
    home_id: str
    away_id: str
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    extra_time_home: Optional[int] = None
    extra_time_away: Optional[int] = None
    pen_home: Optional[int] = None
    pen_away: Optional[int] = None
    resolved_by: Optional[TieBreakMethod] = None
    status: MatchStatus = MatchStatus.SCHEDULED
    duration_seconds: Optional[int] = None  # Timer widget pass-through

    @property
    def is_knockout(self) -> bool:
        """True for every stage except the round robin."""
        return self.stage != MatchStage.ROUND_ROBIN

    @property
    def has_score(self) -> bool:
        """Both regular-time scores are set."""
        return self.home_score is not None and self.away_score is not None

    @property
    def is_completed(self) -> bool:
        return self.status == MatchStatus.COMPLETED

    def __str__(self) -> str:
        """String representation."""
        score = f"{self.home_score}-{self.away_score}" if self.has_score else "vs"
        return f"{STAGE_LABELS[self.stage]} #{self.slot}: {self.home_id} {score} {self.away_id}"


@dataclass
class GameNight:
    """One tournament instance.

    ``current_match_id`` points at the match attached to the external timer
    widget; the engine never reads it.
    """

    id: str
    title: str
    created_at: str
    teams: list[Team] = field(default_factory=list)
    matches: list[Match] = field(default_factory=list)
    current_match_id: Optional[str] = None

    def get_team(self, team_id: str) -> Optional[Team]:
        for team in self.teams:
            if team.id == team_id:
                return team
        return None

    def get_match(self, match_id: str) -> Optional[Match]:
        for match in self.matches:
            if match.id == match_id:
                return match
        return None

    def __str__(self) -> str:
        """String representation."""
        return f"{self.title} ({len(self.teams)} teams, {len(self.matches)} matches)"


# ============================================================================
# Derived Models
# ============================================================================


@dataclass
class TableRow:
    """Standings row for one team.

    Recomputed from the match list on every read.
    """

    team_id: str
    name: str
    color: str
    played: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    goals_for: int = 0
    goals_against: int = 0
    points: int = 0

    @property
    def goal_difference(self) -> int:
        return self.goals_for - self.goals_against

    def __str__(self) -> str:
        """String representation."""
        return f"{self.name}: {self.points}pts {self.wins}W-{self.draws}D-{self.losses}L"


@dataclass
class NightSummary:
    """Listing entry for a game night."""

    id: str
    title: str
    created_at: str
    team_count: int
    winner_id: Optional[str] = None
