"""Tournament player and team-assignment storage.

The engine never talks to storage. ``BalancingService`` reads a snapshot
through a repository before a run and writes the final assignment back
after it.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol, Sequence

import duckdb
import pandas as pd

from atlas_balancer.errors import TournamentNotFoundError
from atlas_balancer.models.player import PlayerRecord
from atlas_balancer.models.team import Team
from atlas_balancer.utils.player_normalizer import normalize_player_payload

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS tournament_players (
        tournament_id VARCHAR NOT NULL,
        player_id VARCHAR NOT NULL,
        registration_order INTEGER NOT NULL,
        discord_username VARCHAR,
        current_rank VARCHAR,
        peak_rank VARCHAR,
        use_manual_override BOOLEAN DEFAULT FALSE,
        manual_rank_override VARCHAR,
        manual_weight_override INTEGER,
        rank_override_reason VARCHAR,
        tournaments_won INTEGER DEFAULT 0,
        last_tournament_win TIMESTAMP,
        tournaments_played INTEGER DEFAULT 0,
        wins INTEGER DEFAULT 0,
        losses INTEGER DEFAULT 0,
        last_rank_update TIMESTAMP,
        weight_rating INTEGER,
        PRIMARY KEY (tournament_id, player_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS team_assignments (
        tournament_id VARCHAR NOT NULL,
        team_ordinal INTEGER NOT NULL,
        team_name VARCHAR NOT NULL,
        slot INTEGER NOT NULL,
        player_id VARCHAR NOT NULL,
        points INTEGER NOT NULL,
        is_elite BOOLEAN NOT NULL
    )
    """,
]

PLAYER_COLUMNS = [
    "player_id", "discord_username", "current_rank", "peak_rank", "use_manual_override",
    "manual_rank_override", "manual_weight_override", "rank_override_reason",
    "tournaments_won", "last_tournament_win", "tournaments_played", "wins", "losses",
    "last_rank_update", "weight_rating",
]


def _naive_utc(value: datetime | None) -> datetime | None:
    """TIMESTAMP columns store naive UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class TournamentRepository(Protocol):
    """What the balancing service needs from storage."""

    def get_players(self, tournament_id: str) -> list[PlayerRecord]: ...

    def save_teams(self, tournament_id: str, teams: Sequence[Team]) -> None: ...


class DuckDBTournamentRepository:
    """Data access layer - DuckDB tables for registrations and assignments."""

    def __init__(self, database_path: str | Path):
        """Initialize with path to a DuckDB database file, creating tables if needed.

        Args:
            database_path: Path to the .duckdb file (created if missing)
        """
        self._db_path = Path(database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with duckdb.connect(str(self._db_path)) as conn:
            for statement in SCHEMA:
                conn.execute(statement)

    def _query(self, sql: str, params: list[Any] | None = None) -> list[dict]:
        """Execute query and return list of dicts with proper type conversion."""
        with duckdb.connect(str(self._db_path)) as conn:
            df = conn.execute(sql, params or []).df()

        for col in df.columns:
            if pd.api.types.is_datetime64_any_dtype(df[col]):
                # Convert datetime to ISO string
                df[col] = df[col].dt.strftime("%Y-%m-%dT%H:%M:%S")

        # Nullable columns come back as NaN/NaT
        df = df.astype(object).where(pd.notna(df), None)
        return df.to_dict(orient="records")

    def add_players(self, tournament_id: str, payloads: list[dict[str, Any]]) -> int:
        """Register raw player payloads for a tournament.

        Payloads are normalized first, so any accepted field spelling works.

        Returns:
            Number of players registered
        """
        records = [normalize_player_payload(p) for p in payloads]
        existing = self._query(
            "SELECT COALESCE(MAX(registration_order), 0) AS n FROM tournament_players "
            "WHERE tournament_id = ?",
            [tournament_id],
        )
        start = int(existing[0]["n"]) if existing else 0

        rows = []
        for offset, r in enumerate(records, start=1):
            o = r.manual_override
            rows.append([
                tournament_id, r.id, start + offset, r.display_name, r.current_rank, r.peak_rank,
                o.enabled, o.rank, o.weight, o.reason,
                r.tournaments_won, _naive_utc(r.last_tournament_win_at), r.tournaments_played,
                r.wins, r.losses, _naive_utc(r.last_rank_update_at), r.weight_rating,
            ])

        placeholders = ", ".join(["?"] * (len(PLAYER_COLUMNS) + 2))
        with duckdb.connect(str(self._db_path)) as conn:
            conn.executemany(
                f"INSERT OR REPLACE INTO tournament_players "
                f"(tournament_id, {PLAYER_COLUMNS[0]}, registration_order, {', '.join(PLAYER_COLUMNS[1:])}) "
                f"VALUES ({placeholders})",
                rows,
            )
        return len(rows)

    def get_players(self, tournament_id: str) -> list[PlayerRecord]:
        """Get the registration snapshot for a tournament, in registration order.

        Raises:
            TournamentNotFoundError: If no players are registered
        """
        rows = self._query(
            f"SELECT {', '.join(PLAYER_COLUMNS)} FROM tournament_players "
            "WHERE tournament_id = ? ORDER BY registration_order",
            [tournament_id],
        )
        if not rows:
            raise TournamentNotFoundError(tournament_id)
        return [normalize_player_payload(row) for row in rows]

    def save_teams(self, tournament_id: str, teams: Sequence[Team]) -> None:
        """Replace the stored team assignment for a tournament."""
        rows = [
            [tournament_id, team.ordinal, team.name, slot, p.player_id, p.points, p.is_elite]
            for team in teams
            for slot, p in enumerate(team.players, start=1)
        ]
        with duckdb.connect(str(self._db_path)) as conn:
            conn.execute("BEGIN TRANSACTION")
            conn.execute("DELETE FROM team_assignments WHERE tournament_id = ?", [tournament_id])
            if rows:
                conn.executemany("INSERT INTO team_assignments VALUES (?, ?, ?, ?, ?, ?, ?)", rows)
            conn.execute("COMMIT")

    def get_team_assignments(self, tournament_id: str) -> list[dict]:
        """Get the stored assignment rows, ordered by team then slot."""
        return self._query(
            "SELECT team_ordinal, team_name, slot, player_id, points, is_elite "
            "FROM team_assignments WHERE tournament_id = ? ORDER BY team_ordinal, slot",
            [tournament_id],
        )


class InMemoryTournamentRepository:
    """Dict-backed repository for scripts and tests."""

    def __init__(self, players: dict[str, list[dict[str, Any]]] | None = None):
        self._players: dict[str, list[PlayerRecord]] = {
            tid: [normalize_player_payload(p) for p in payloads]
            for tid, payloads in (players or {}).items()
        }
        self.saved: dict[str, list[Team]] = {}

    def get_players(self, tournament_id: str) -> list[PlayerRecord]:
        if tournament_id not in self._players:
            raise TournamentNotFoundError(tournament_id)
        return list(self._players[tournament_id])

    def save_teams(self, tournament_id: str, teams: Sequence[Team]) -> None:
        self.saved[tournament_id] = [t.copy() for t in teams]
