"""ATLAS balancing engine entry point.

``AtlasBalancingEngine.run`` is a pure function of its inputs: one immutable
player snapshot plus one configuration in, one result graph out. It never
reads the clock, touches storage or shares state with other runs.
"""

import logging
from typing import Optional

from atlas_balancer.config import BalanceConfig
from atlas_balancer.errors import InputError
from atlas_balancer.models.player import PlayerRecord
from atlas_balancer.models.results import BalanceResult
from atlas_balancer.models.weights import WeightResult
from atlas_balancer.services.balance_logger import BalanceLogger
from atlas_balancer.services.decision_orchestrator import DecisionOrchestrator
from atlas_balancer.services.weight_resolver import WeightResolver

logger = logging.getLogger(__name__)


class AtlasBalancingEngine:
    """Validates input, resolves weights and runs the orchestrated pipeline."""

    def __init__(self, config: Optional[BalanceConfig] = None, logger: Optional[BalanceLogger] = None):
        self.config = (config or BalanceConfig()).validate()
        self.audit = logger or BalanceLogger(enabled=False)
        self.resolver = WeightResolver(self.config, self.audit)
        self.orchestrator = DecisionOrchestrator(self.config, self.audit)

    def validate_players(self, players: list[PlayerRecord]) -> None:
        """Raise InputError for snapshots that cannot be balanced."""
        if not players:
            raise InputError("No players to balance")
        seen: set[str] = set()
        duplicates = []
        for player in players:
            if player.id in seen and player.id not in duplicates:
                duplicates.append(player.id)
            seen.add(player.id)
        if duplicates:
            raise InputError(f"Duplicate player ids: {', '.join(duplicates)}")

    def run(
        self,
        players: list[PlayerRecord],
        weight_results: Optional[list[WeightResult]] = None,
    ) -> BalanceResult:
        """Balance one snapshot.

        Args:
            players: Canonical player records
            weight_results: Weights already resolved by the caller (e.g. an
                awaited evidence sub-call). Resolved here when omitted.

        Raises:
            InputError: If the snapshot or configuration cannot be balanced
        """
        self.validate_players(players)
        cfg = self.config

        if weight_results is None:
            weights = self.resolver.resolve_all(players)
        else:
            if [w.player_id for w in weight_results] != [p.id for p in players]:
                raise InputError("Precomputed weights do not match the player snapshot")
            weights = list(weight_results)

        logger.info(
            f"Balancing {len(players)} players into {cfg.team_count} teams of {cfg.team_capacity} "
            f"(evidence mode: {cfg.evidence_mode})"
        )
        result = self.orchestrator.orchestrate(players, weights)
        self._validate_result(players, result)
        return result

    def _validate_result(self, players: list[PlayerRecord], result: BalanceResult) -> None:
        cfg = self.config
        placed = [p.player_id for team in result.teams for p in team.players]
        expected = min(len(players), cfg.total_capacity)

        self.audit.validation(
            "team_capacity",
            all(team.size <= team.capacity for team in result.teams),
            f"sizes {[team.size for team in result.teams]} within capacity {cfg.team_capacity}",
        )
        self.audit.validation(
            "unique_assignment",
            len(placed) == len(set(placed)),
            f"{len(placed)} placements for {len(set(placed))} players",
        )
        self.audit.validation(
            "placement_count",
            len(placed) == expected,
            f"{len(placed)} placed, {len(result.excluded_players)} excluded, expected {expected}",
        )
