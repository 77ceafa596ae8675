"""Player snapshot models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class ManualOverride:
    """Admin-set override of a player's rank and/or weight."""

    enabled: bool = False
    rank: Optional[str] = None
    weight: Optional[int] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class PlayerRecord:
    """Immutable, canonical input snapshot for one participant.

    Built only by ``normalize_player_payload``; rank strings are already
    normalized and counts are non-negative.
    """

    id: str
    display_name: str
    current_rank: Optional[str] = None
    peak_rank: Optional[str] = None
    manual_override: ManualOverride = field(default_factory=ManualOverride)
    tournaments_won: int = 0
    last_tournament_win_at: Optional[datetime] = None
    tournaments_played: int = 0
    wins: int = 0
    losses: int = 0
    last_rank_update_at: Optional[datetime] = None
    weight_rating: Optional[int] = None  # admin-synced rank weight

    @property
    def games_played(self) -> int:
        return self.wins + self.losses

    @property
    def win_rate(self) -> Optional[float]:
        """Win rate in [0, 1], or None when no games are on record."""
        if self.games_played == 0:
            return None
        return self.wins / self.games_played
