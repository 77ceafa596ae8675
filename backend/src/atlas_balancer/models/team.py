"""Team, roster member and placement ledger models."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class TeamMember:
    """A weighted player as placed on a team."""

    player_id: str
    display_name: str
    points: int  # effective weight used for balancing
    base_points: int  # resolver weight before analysis adjustments
    source: str
    is_elite: bool
    skill_tier: str  # elite, high, medium, low


@dataclass
class Team:
    """A capacity-bounded team. Rosters keep placement order."""

    ordinal: int  # 1-based
    capacity: int
    players: list[TeamMember] = field(default_factory=list)

    @property
    def id(self) -> str:
        return f"team-{self.ordinal}"

    @property
    def name(self) -> str:
        return f"Team {self.ordinal}"

    @property
    def total_points(self) -> int:
        return sum(p.points for p in self.players)

    @property
    def size(self) -> int:
        return len(self.players)

    @property
    def has_capacity(self) -> bool:
        return len(self.players) < self.capacity

    @property
    def elite_count(self) -> int:
        return sum(1 for p in self.players if p.is_elite)

    def count_at_or_above(self, points: int) -> int:
        return sum(1 for p in self.players if p.points >= points)

    def copy(self) -> "Team":
        return Team(ordinal=self.ordinal, capacity=self.capacity, players=list(self.players))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ordinal": self.ordinal,
            "name": self.name,
            "total_points": self.total_points,
            "players": [
                {
                    "player_id": p.player_id,
                    "display_name": p.display_name,
                    "points": p.points,
                    "base_points": p.base_points,
                    "source": p.source,
                    "is_elite": p.is_elite,
                    "skill_tier": p.skill_tier,
                }
                for p in self.players
            ],
        }


def clone_teams(teams: list[Team]) -> list[Team]:
    return [t.copy() for t in teams]


def team_spread(teams: list[Team]) -> int:
    """Max team total minus min team total (0 for fewer than two teams)."""
    if len(teams) < 2:
        return 0
    totals = [t.total_points for t in teams]
    return max(totals) - min(totals)


@dataclass(frozen=True)
class PlacementStep:
    """Ledger entry for one placement made by the distribution engine."""

    step: int
    phase: str  # elite_dispersion or regular_fill
    player_id: str
    display_name: str
    points: int
    is_elite: bool
    team_ordinal: int
    reasoning: str
    team_totals_after: tuple[int, ...]
    team_sizes_after: tuple[int, ...]


@dataclass(frozen=True)
class ExcludedPlayer:
    """A player who could not be placed because every slot was taken."""

    player_id: str
    display_name: str
    points: int
    reason: str
    rank_position: Optional[int] = None  # 1-based position in weight order
