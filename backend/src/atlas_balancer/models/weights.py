"""Weight resolution and player analysis models."""

from dataclasses import dataclass, field
from enum import Enum


class WeightSource(str, Enum):
    """Which resolver rule produced a weight."""

    MANUAL_OVERRIDE = "manual_override"
    EVIDENCE_BASED = "evidence_based"
    CURRENT_RANK = "current_rank"
    PEAK_RANK = "peak_rank"
    DEFAULT = "default"


@dataclass(frozen=True)
class WeightResult:
    """Resolved skill weight with its provenance."""

    player_id: str
    display_name: str
    points: int  # always >= the configured floor
    source: WeightSource
    reasoning: tuple[str, ...]
    is_elite: bool

    @property
    def explanation(self) -> str:
        return "; ".join(self.reasoning)


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Confidence increment per fired flag
SEVERITY_CONFIDENCE: dict[Severity, int] = {
    Severity.CRITICAL: 15,
    Severity.HIGH: 10,
    Severity.MEDIUM: 5,
    Severity.LOW: 2,
}


@dataclass(frozen=True)
class AnalysisFlag:
    """One fired heuristic from the player analyzer."""

    type: str  # tournament_champion, rank_mismatch, undervalued, inactivity_decay, consistent_performer
    severity: Severity
    delta: int
    reasoning: str


@dataclass(frozen=True)
class PlayerAnalysis:
    """Heuristic review of one player's resolved weight."""

    weight: WeightResult
    adjusted_points: int
    flags: tuple[AnalysisFlag, ...] = field(default_factory=tuple)
    confidence_score: int = 50
    win_rate: float | None = None
    consistency: str = "stable"  # stable, climbing, declining, volatile

    @property
    def player_id(self) -> str:
        return self.weight.player_id

    @property
    def original_points(self) -> int:
        return self.weight.points

    @property
    def total_delta(self) -> int:
        return self.adjusted_points - self.weight.points

    @property
    def needs_adjustment(self) -> bool:
        return self.total_delta != 0
