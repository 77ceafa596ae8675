"""Resolve each player's skill weight with a first-match priority chain."""

import logging
from typing import Optional

from atlas_balancer.config import BalanceConfig
from atlas_balancer.errors import EvidenceAnalysisError, WeightResolutionError
from atlas_balancer.models.player import PlayerRecord
from atlas_balancer.models.weights import WeightResult, WeightSource
from atlas_balancer.services.balance_logger import BalanceLogger
from atlas_balancer.services.evidence_weighting import EvidenceWeighting
from atlas_balancer.utils.rank_table import rank_points

logger = logging.getLogger(__name__)


class WeightResolver:
    """Resolves a PlayerRecord into a WeightResult.

    Priority chain:
        1. Enabled manual override (weight, else override rank, else default)
        2. Evidence/adaptive weighting, when the config enables it
        3. Current rank (admin-synced weight rating wins over the table)
        4. Peak rank, when there is no current rank
        5. Default points

    The configured floor is applied to every branch. Malformed rank data
    resolves to the default weight and is logged as an anomaly.
    """

    def __init__(
        self,
        config: BalanceConfig,
        audit: Optional[BalanceLogger] = None,
        evidence: Optional[EvidenceWeighting] = None,
    ):
        self.config = config
        self.audit = audit or BalanceLogger(enabled=False)
        self.evidence = evidence or EvidenceWeighting(config)

    def resolve(
        self,
        player: PlayerRecord,
        use_evidence: Optional[bool] = None,
        fallback_note: Optional[str] = None,
        strict: bool = False,
    ) -> WeightResult:
        """Resolve one player.

        Args:
            player: Canonical player snapshot
            use_evidence: Force the evidence branch on/off; defaults to the
                config's evidence mode
            fallback_note: Reasoning prepended when the caller already gave
                up on the evidence branch (e.g. it timed out)
            strict: Let EvidenceAnalysisError propagate instead of falling
                back per player
        """
        cfg = self.config
        if use_evidence is None:
            use_evidence = cfg.evidence_mode != "off"

        reasons: list[str] = [fallback_note] if fallback_note else []
        try:
            points, source = self._resolve_chain(player, use_evidence, reasons, strict)
        except WeightResolutionError as e:
            points, source = cfg.default_points, WeightSource.DEFAULT
            reasons.append(f"Malformed rank data ({e}); using default {points} pts")
            self.audit.weight_anomaly(player.id, str(e), points)

        if points < cfg.min_points:
            reasons.append(f"Raised from {points} to the {cfg.min_points} pt floor")
            points = cfg.min_points

        is_elite = points >= cfg.elite_threshold
        if is_elite:
            reasons.append(f"Elite: {points} >= {cfg.elite_threshold}")

        result = WeightResult(
            player_id=player.id,
            display_name=player.display_name,
            points=points,
            source=source,
            reasoning=tuple(reasons),
            is_elite=is_elite,
        )
        self.audit.weight_calculated(player.id, points, source.value, reasons)
        return result

    def resolve_all(
        self,
        players: list[PlayerRecord],
        use_evidence: Optional[bool] = None,
        fallback_note: Optional[str] = None,
        strict: bool = False,
    ) -> list[WeightResult]:
        return [self.resolve(p, use_evidence, fallback_note, strict) for p in players]

    def _compute_evidence(self, player: PlayerRecord) -> tuple[int, list[str]]:
        """Run the evidence sub-call, reporting any unexpected failure as EvidenceAnalysisError.

        Malformed rank data keeps its own error so it still resolves to the
        default weight with an anomaly.
        """
        try:
            return self.evidence.compute(player)
        except (WeightResolutionError, EvidenceAnalysisError):
            raise
        except Exception as e:
            logger.error(f"Evidence weighting raised for {player.id}: {e!r}")
            raise EvidenceAnalysisError(f"{type(e).__name__}: {e}") from e

    def _resolve_chain(
        self, player: PlayerRecord, use_evidence: bool, reasons: list[str], strict: bool = False
    ) -> tuple[int, WeightSource]:
        cfg = self.config
        override = player.manual_override

        if override.enabled:
            suffix = f" ({override.reason})" if override.reason else ""
            if override.weight is not None:
                reasons.append(f"Manual override: weight {override.weight}{suffix}")
                return override.weight, WeightSource.MANUAL_OVERRIDE
            try:
                points = rank_points(override.rank, "override rank", player.id)
            except WeightResolutionError:
                points = None
            if points is not None:
                reasons.append(f"Manual override: rank {override.rank} = {points} pts{suffix}")
                return points, WeightSource.MANUAL_OVERRIDE
            reasons.append(
                f"Manual override without usable weight or rank: default {cfg.default_points} pts{suffix}"
            )
            return cfg.default_points, WeightSource.MANUAL_OVERRIDE

        if use_evidence:
            try:
                points, evidence_reasons = self._compute_evidence(player)
            except EvidenceAnalysisError as e:
                if strict:
                    raise
                logger.warning(f"Evidence weighting failed for {player.id}: {e}")
                self.audit.error(f"Evidence weighting failed for {player.id}: {e}", category="weight")
                reasons.append(f"Evidence analysis unavailable ({e}); using standard rank resolution")
            else:
                reasons.extend(evidence_reasons)
                return points, WeightSource.EVIDENCE_BASED

        current = rank_points(player.current_rank, "current rank", player.id)
        if current is not None:
            if player.weight_rating is not None:
                reasons.append(
                    f"Current rank {player.current_rank}: synced weight rating {player.weight_rating} pts"
                )
                return player.weight_rating, WeightSource.CURRENT_RANK
            reasons.append(f"Current rank {player.current_rank}: {current} pts")
            return current, WeightSource.CURRENT_RANK

        peak = rank_points(player.peak_rank, "peak rank", player.id)
        if peak is not None:
            reasons.append(f"No current rank; peak rank {player.peak_rank}: {peak} pts")
            return peak, WeightSource.PEAK_RANK

        reasons.append(f"No rank data: default {cfg.default_points} pts")
        return cfg.default_points, WeightSource.DEFAULT
