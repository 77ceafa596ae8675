"""Caller-side orchestration around the pure engine.

Fetch the snapshot -> await the optional evidence sub-call under a deadline
-> run the engine -> persist the final assignment. Storage I/O happens only
before and after the engine run.
"""

import asyncio
import logging
from typing import Any, Optional

from atlas_balancer.config import BalanceConfig
from atlas_balancer.errors import EvidenceAnalysisError
from atlas_balancer.models.player import PlayerRecord
from atlas_balancer.models.results import BalanceResult
from atlas_balancer.models.weights import WeightResult
from atlas_balancer.repositories.tournament_repository import TournamentRepository
from atlas_balancer.services.balance_logger import BalanceLogger
from atlas_balancer.services.balancing_engine import AtlasBalancingEngine
from atlas_balancer.services.weight_resolver import WeightResolver
from atlas_balancer.utils.player_normalizer import normalize_players

logger = logging.getLogger(__name__)


class BalancingService:
    """Runs balancing for stored tournaments or ad-hoc snapshots."""

    def __init__(self, repository: Optional[TournamentRepository] = None, evidence_timeout: float = 5.0):
        self.repository = repository
        self.evidence_timeout = evidence_timeout

    async def resolve_weights(
        self, engine: AtlasBalancingEngine, players: list[PlayerRecord]
    ) -> Optional[list[WeightResult]]:
        """Await the evidence weighting sub-call, falling back on failure.

        Returns None when the config does not ask for evidence weighting, so
        the engine resolves weights itself.
        """
        if engine.config.evidence_mode == "off":
            return None

        # The sub-call records into its own trail; it is merged only on success
        scratch = BalanceLogger(run_id=engine.audit.run_id, enabled=engine.audit.enabled)
        evidence_resolver = WeightResolver(engine.config, scratch, engine.resolver.evidence)
        try:
            weights = await asyncio.wait_for(
                asyncio.to_thread(evidence_resolver.resolve_all, players, strict=True),
                timeout=self.evidence_timeout,
            )
        except asyncio.TimeoutError:
            note = (
                f"Evidence analysis timed out after {self.evidence_timeout:g}s; "
                f"using standard rank resolution"
            )
        except EvidenceAnalysisError as e:
            note = f"Evidence analysis failed ({e}); using standard rank resolution"
        else:
            engine.audit.extend(scratch)
            return weights

        logger.warning(note)
        engine.audit.error(note, category="weight")
        return engine.resolver.resolve_all(players, use_evidence=False, fallback_note=note)

    async def balance_players(
        self,
        players: list[PlayerRecord],
        config: BalanceConfig,
        audit: Optional[BalanceLogger] = None,
    ) -> BalanceResult:
        engine = AtlasBalancingEngine(config, logger=audit)
        engine.validate_players(players)
        weights = await self.resolve_weights(engine, players)
        return engine.run(players, weight_results=weights)

    async def preview(
        self,
        payloads: list[dict[str, Any]],
        config: BalanceConfig,
        audit: Optional[BalanceLogger] = None,
    ) -> BalanceResult:
        """Balance raw payloads without touching storage."""
        return await self.balance_players(normalize_players(payloads), config, audit)

    async def balance_tournament(
        self,
        tournament_id: str,
        config: BalanceConfig,
        audit: Optional[BalanceLogger] = None,
        persist: bool = True,
    ) -> BalanceResult:
        """Balance a stored tournament and write the assignment back.

        Raises:
            TournamentNotFoundError: If the repository has no such tournament
            InputError: If the snapshot cannot be balanced
        """
        if self.repository is None:
            raise RuntimeError("BalancingService has no repository configured")

        players = self.repository.get_players(tournament_id)
        result = await self.balance_players(players, config, audit)
        if persist:
            self.repository.save_teams(tournament_id, list(result.teams))
            logger.info(f"Saved {len(result.teams)} teams for tournament {tournament_id}")
        return result
