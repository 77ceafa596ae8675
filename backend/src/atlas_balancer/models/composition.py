"""Team composition and global balance models."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CompositionIssue:
    type: str  # skill_stacking, elite_concentration, extreme_variance
    severity: str
    description: str
    point_impact: int
    fix: str


@dataclass(frozen=True)
class CompositionStrength:
    type: str  # balanced_distribution, skill_diversity, consistent_level
    description: str
    benefit: int


@dataclass(frozen=True)
class TeamComposition:
    """Scored structure of one team."""

    team_ordinal: int
    total_points: int
    average_points: float
    elite_count: int
    tier_counts: dict[str, int]
    variance: float
    score: int  # 0-100
    issues: tuple[CompositionIssue, ...] = field(default_factory=tuple)
    strengths: tuple[CompositionStrength, ...] = field(default_factory=tuple)
    recommendations: tuple[str, ...] = field(default_factory=tuple)

    @property
    def has_critical_issue(self) -> bool:
        return any(i.severity == "critical" for i in self.issues)


@dataclass(frozen=True)
class GlobalBalance:
    """Cross-team balance summary."""

    average_points: float
    min_points: int
    max_points: int
    spread: int
    elite_distribution: tuple[int, ...]
    stacked_teams: int
    quality_tier: str  # critical, poor, acceptable, good, excellent
    overall_score: int
    critical_issues: tuple[str, ...] = field(default_factory=tuple)
    recommendations: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class BalanceAnalysis:
    """Per-team compositions plus the global view."""

    teams: tuple[TeamComposition, ...]
    balance: GlobalBalance
