"""SQLite storage layer for gamenight.

The whole application state (game nights plus the reusable player library)
is persisted as a single JSON document in a key-value table, so the engine
never deals with the storage format directly.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from sqlalchemy import Column, DateTime, String, Text, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import NullPool

from gamenight.models import (
    GameNight,
    Match,
    MatchStage,
    MatchStatus,
    Player,
    Team,
    TieBreakMethod,
)

logger = logging.getLogger(__name__)

Base = declarative_base()

STORAGE_KEY = "gamenight:data"
DEFAULT_DB_PATH = ".gamenight/gamenight.sqlite"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# ORM Models
# ============================================================================


class KeyValueORM(Base):
    """Key-value table holding serialized state documents."""

    __tablename__ = "kv_store"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


# ============================================================================
# Database Manager
# ============================================================================


class DatabaseManager:
    """Manages SQLite database connection and session."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize database manager.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        # Use NullPool for SQLite to avoid connection pool issues
        self.engine = create_engine(
            f"sqlite:///{self.db_path}",
            echo=False,
            poolclass=NullPool,
            connect_args={"check_same_thread": False},
        )
        self.SessionLocal = sessionmaker(bind=self.engine)
        logger.debug("Using database %s", self.db_path)

    def create_tables(self):
        """Create all tables in the database."""
        Base.metadata.create_all(self.engine)

    def drop_tables(self):
        """Drop all tables (use with caution!)."""
        Base.metadata.drop_all(self.engine)

    def get_session(self):
        """Get a new database session."""
        return self.SessionLocal()


# ============================================================================
# Repository
# ============================================================================


class StateRepository:
    """Repository for serialized state documents."""

    def __init__(self, session):
        self.session = session

    def get(self, key: str = STORAGE_KEY) -> Optional[str]:
        """Get the raw document stored under a key.

        Returns:
            Stored text, or None if nothing is stored
        """
        row = self.session.get(KeyValueORM, key)
        return row.value if row else None

    def set(self, key: str, value: str) -> None:
        """Insert or replace the document stored under a key."""
        row = self.session.get(KeyValueORM, key)
        if row is None:
            self.session.add(KeyValueORM(key=key, value=value))
        else:
            row.value = value
        self.session.commit()

    def delete(self, key: str = STORAGE_KEY) -> bool:
        """Delete the document stored under a key.

        Returns:
            True if deleted, False if not found
        """
        row = self.session.get(KeyValueORM, key)
        if row:
            self.session.delete(row)
            self.session.commit()
            return True
        return False


# ============================================================================
# JSON codec
# ============================================================================

# Python attribute -> persisted key, for optional match fields
_OPTIONAL_MATCH_FIELDS = {
    "home_score": "homeScore",
    "away_score": "awayScore",
    "extra_time_home": "extraTimeHome",
    "extra_time_away": "extraTimeAway",
    "pen_home": "penHome",
    "pen_away": "penAway",
    "duration_seconds": "durationSeconds",
}


def player_to_dict(player: Player) -> dict[str, Any]:
    return {"id": player.id, "name": player.name}


def player_from_dict(data: dict[str, Any]) -> Player:
    return Player(id=data["id"], name=data["name"])


def match_to_dict(match: Match) -> dict[str, Any]:
    """Serialize a match, omitting unset optional values."""
    data = {
        "id": match.id,
        "stage": match.stage.value,
        "slot": match.slot,
        "homeId": match.home_id,
        "awayId": match.away_id,
        "status": match.status.value,
    }
    for attr, key in _OPTIONAL_MATCH_FIELDS.items():
        value = getattr(match, attr)
        if value is not None:
            data[key] = value
    if match.resolved_by is not None:
        data["resolvedBy"] = match.resolved_by.value
    return data


def match_from_dict(data: dict[str, Any]) -> Match:
    """Deserialize a match.

    Raises:
        KeyError: If a required field is missing
        ValueError: If stage, status or resolvedBy is unknown
    """
    match = Match(
        id=data["id"],
        stage=MatchStage(data["stage"]),
        slot=int(data["slot"]),
        home_id=data["homeId"],
        away_id=data["awayId"],
        status=MatchStatus(data.get("status", MatchStatus.SCHEDULED.value)),
    )
    for attr, key in _OPTIONAL_MATCH_FIELDS.items():
        if data.get(key) is not None:
            setattr(match, attr, int(data[key]))
    if data.get("resolvedBy"):
        match.resolved_by = TieBreakMethod(data["resolvedBy"])
    return match


def night_to_dict(night: GameNight) -> dict[str, Any]:
    data = {
        "id": night.id,
        "title": night.title,
        "createdAt": night.created_at,
        "teams": [
            {
                "id": team.id,
                "name": team.name,
                "color": team.color,
                "players": [player_to_dict(p) for p in team.players],
            }
            for team in night.teams
        ],
        "matches": [match_to_dict(m) for m in night.matches],
    }
    if night.current_match_id is not None:
        data["currentMatchId"] = night.current_match_id
    return data


def night_from_dict(data: dict[str, Any]) -> GameNight:
    teams = [
        Team(
            id=t["id"],
            name=t["name"],
            color=t["color"],
            players=[player_from_dict(p) for p in t.get("players", [])],
        )
        for t in data.get("teams", [])
    ]
    return GameNight(
        id=data["id"],
        title=data["title"],
        created_at=data["createdAt"],
        teams=teams,
        matches=[match_from_dict(m) for m in data.get("matches") or []],
        current_match_id=data.get("currentMatchId"),
    )


def dump_state(nights: list[GameNight], library: list[Player]) -> str:
    """Serialize the full application state to JSON."""
    return json.dumps(
        {
            "nights": [night_to_dict(n) for n in nights],
            "globalPlayers": [player_to_dict(p) for p in library],
        }
    )


def load_state(raw: str) -> tuple[list[GameNight], list[Player]]:
    """Parse a JSON state document.

    Returns:
        Tuple of (nights, library players)

    Raises:
        ValueError: If the document is not valid JSON or has unknown values
        KeyError: If a required field is missing
    """
    data = json.loads(raw)
    nights = [night_from_dict(n) for n in data["nights"]]
    library = [player_from_dict(p) for p in data.get("globalPlayers") or []]
    return nights, library
