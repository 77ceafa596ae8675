"""Engine output model."""

from dataclasses import asdict, dataclass, field, is_dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from atlas_balancer.models.composition import BalanceAnalysis
from atlas_balancer.models.decisions import BalanceSummary, Decision, ExecutionPlan, SwapAnalysis
from atlas_balancer.models.team import ExcludedPlayer, PlacementStep, Team
from atlas_balancer.models.weights import PlayerAnalysis, WeightResult

REPORT_FORMAT = "atlas_v2"


def to_jsonable(value: Any) -> Any:
    """Recursively convert result objects into JSON-ready builtins."""
    if isinstance(value, Team):
        return value.to_dict()
    if isinstance(value, PlayerAnalysis):
        data = {f: to_jsonable(v) for f, v in asdict(value).items()}
        data["original_points"] = value.original_points
        data["total_delta"] = value.total_delta
        return data
    if is_dataclass(value) and not isinstance(value, type):
        return {k: to_jsonable(v) for k, v in asdict(value).items()}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


@dataclass(frozen=True)
class BalanceResult:
    """Everything one run produced. Presentation layers render only this."""

    teams: tuple[Team, ...]
    balance_analysis: BalanceAnalysis
    initial_balance: BalanceAnalysis
    player_analyses: tuple[PlayerAnalysis, ...]
    weight_results: tuple[WeightResult, ...]
    decisions: tuple[Decision, ...]
    execution_plan: ExecutionPlan
    swap_analysis: SwapAnalysis
    placement_ledger: tuple[PlacementStep, ...]
    excluded_players: tuple[ExcludedPlayer, ...] = field(default_factory=tuple)
    summary: BalanceSummary | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "format": REPORT_FORMAT,
            "teams": to_jsonable(self.teams),
            "balance_analysis": to_jsonable(self.balance_analysis),
            "initial_balance": to_jsonable(self.initial_balance),
            "player_analyses": to_jsonable(self.player_analyses),
            "weight_results": to_jsonable(self.weight_results),
            "decisions": to_jsonable(self.decisions),
            "execution_plan": to_jsonable(self.execution_plan),
            "swap_analysis": to_jsonable(self.swap_analysis),
            "placement_ledger": to_jsonable(self.placement_ledger),
            "excluded_players": to_jsonable(self.excluded_players),
            "summary": to_jsonable(self.summary),
        }
