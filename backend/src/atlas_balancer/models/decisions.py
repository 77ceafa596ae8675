"""Decision, execution plan and swap models produced by the orchestrator."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class DecisionType(str, Enum):
    PLAYER_ADJUSTMENT = "player_adjustment"
    TEAM_REDISTRIBUTION = "team_redistribution"
    PLAYER_SWAP = "player_swap"
    NO_ACTION = "no_action"


class Priority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class DecisionAction:
    """What to apply. Unused fields stay None."""

    player_id: Optional[str] = None
    from_team: Optional[int] = None
    to_team: Optional[int] = None
    point_adjustment: Optional[int] = None
    swap_player_id: Optional[str] = None
    new_points: Optional[int] = None


@dataclass(frozen=True)
class DecisionImpact:
    expected_improvement: int
    affected_players: tuple[str, ...] = field(default_factory=tuple)
    affected_teams: tuple[int, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Decision:
    id: str
    type: DecisionType
    priority: Priority
    confidence: int
    reasoning: str
    impact: DecisionImpact
    action: DecisionAction


@dataclass(frozen=True)
class ExecutionStep:
    step: int
    action: str  # adjust_points, redistribute_players, swap_players, validate_balance
    description: str
    decision_ids: tuple[str, ...]
    details: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ExecutionPlan:
    steps: tuple[ExecutionStep, ...]
    validation_required: bool = True


@dataclass(frozen=True)
class BalanceImpact:
    before: int  # spread before the move
    after: int  # spread the move would produce
    violation_resolved: bool  # spread at or under the swap trigger afterwards


@dataclass(frozen=True)
class SwapSuggestion:
    """A proposed corrective move and what happened to it."""

    id: str
    strategy: str  # critical_swap, pairwise_swap, secondary_swap, cascading_rotation, fallback_relocation
    pass_number: int
    player_ids: tuple[str, ...]
    source_team: int
    target_team: int
    expected_improvement: int
    outcome: str  # executed, rejected, considered
    reasoning: str
    balance_impact: BalanceImpact
    rejection_reason: Optional[str] = None


@dataclass(frozen=True)
class SwapAnalysis:
    total_suggestions_considered: int
    strategies_attempted: tuple[str, ...]
    successful_swaps: tuple[SwapSuggestion, ...]
    rejected_swaps: tuple[SwapSuggestion, ...]
    considered_swaps: tuple[SwapSuggestion, ...]
    final_outcome: str  # improved, no_improvement, fallback_used
    overall_improvement: int
    passes_run: int = 0


@dataclass(frozen=True)
class BalanceSummary:
    total_players_analyzed: int
    players_adjusted: int
    redistributions: int
    swaps: int
    expected_balance_improvement: int
    confidence_score: int
