"""Data models for the ATLAS balancing engine."""

from atlas_balancer.models.player import ManualOverride, PlayerRecord
from atlas_balancer.models.weights import (
    AnalysisFlag,
    PlayerAnalysis,
    Severity,
    WeightResult,
    WeightSource,
)
from atlas_balancer.models.team import (
    ExcludedPlayer,
    PlacementStep,
    Team,
    TeamMember,
    team_spread,
)
from atlas_balancer.models.composition import (
    BalanceAnalysis,
    CompositionIssue,
    CompositionStrength,
    GlobalBalance,
    TeamComposition,
)
from atlas_balancer.models.decisions import (
    Decision,
    DecisionAction,
    DecisionImpact,
    DecisionType,
    ExecutionPlan,
    ExecutionStep,
    Priority,
    SwapAnalysis,
    SwapSuggestion,
)
from atlas_balancer.models.results import BalanceResult
from atlas_balancer.models.report import (
    AtlasBalanceReport,
    LegacyBalanceReport,
    migrate_report,
    parse_report,
)

__all__ = [
    "ManualOverride",
    "PlayerRecord",
    "AnalysisFlag",
    "PlayerAnalysis",
    "Severity",
    "WeightResult",
    "WeightSource",
    "ExcludedPlayer",
    "PlacementStep",
    "Team",
    "TeamMember",
    "team_spread",
    "BalanceAnalysis",
    "CompositionIssue",
    "CompositionStrength",
    "GlobalBalance",
    "TeamComposition",
    "Decision",
    "DecisionAction",
    "DecisionImpact",
    "DecisionType",
    "ExecutionPlan",
    "ExecutionStep",
    "Priority",
    "SwapAnalysis",
    "SwapSuggestion",
    "BalanceResult",
    "AtlasBalanceReport",
    "LegacyBalanceReport",
    "migrate_report",
    "parse_report",
]
