"""Per-player heuristic review of resolved weights.

Runs a fixed, ordered list of independent checks. Each check may fire one
flag carrying a point delta, a severity and a reasoning string. The
analyzer only proposes adjustments; the orchestrator decides which ones are
applied.
"""

import logging
from typing import Optional

from atlas_balancer.config import BalanceConfig
from atlas_balancer.errors import WeightResolutionError
from atlas_balancer.models.player import PlayerRecord
from atlas_balancer.models.weights import (
    SEVERITY_CONFIDENCE,
    AnalysisFlag,
    PlayerAnalysis,
    Severity,
    WeightResult,
)
from atlas_balancer.services.evidence_weighting import days_between, is_recent_win
from atlas_balancer.utils.rank_table import rank_points

logger = logging.getLogger(__name__)

BASE_CONFIDENCE = 50
MAX_CONFIDENCE = 95


def _table_points(rank: Optional[str]) -> Optional[int]:
    # The resolver already reported malformed ranks; here they carry no signal
    try:
        return rank_points(rank)
    except WeightResolutionError:
        return None


def rank_consistency(player: PlayerRecord) -> str:
    """Classify rank history as stable, climbing, declining or volatile."""
    current = _table_points(player.current_rank)
    peak = _table_points(player.peak_rank)
    if current is None or peak is None:
        return "stable"
    difference = abs(peak - current)
    if difference <= 25:
        return "stable"
    if current > peak:
        return "climbing"
    if difference > 100:
        return "volatile"
    return "declining"


class PlayerAnalyzer:
    """Flags skill mismatches and proposes point adjustments."""

    def __init__(self, config: BalanceConfig):
        self.config = config

    def is_recently_active(self, player: PlayerRecord) -> bool:
        elapsed = days_between(self.config.as_of, player.last_rank_update_at)
        return elapsed is not None and elapsed <= self.config.inactivity_days

    def analyze(self, player: PlayerRecord, weight: WeightResult) -> PlayerAnalysis:
        consistency = rank_consistency(player)
        win_rate = player.win_rate

        checks = (
            self._tournament_champion,
            self._rank_mismatch,
            self._undervalued,
            self._inactivity_decay,
            self._consistent_performer,
        )
        flags: list[AnalysisFlag] = []
        for check in checks:
            flag = check(player, weight, consistency)
            if flag is not None:
                flags.append(flag)

        adjusted = max(weight.points + sum(f.delta for f in flags), self.config.analysis_floor)
        confidence = self._confidence(player, flags)

        if flags:
            logger.debug(
                f"{player.id}: {len(flags)} flag(s), {weight.points} -> {adjusted} "
                f"(confidence {confidence})"
            )

        return PlayerAnalysis(
            weight=weight,
            adjusted_points=adjusted,
            flags=tuple(flags),
            confidence_score=confidence,
            win_rate=round(win_rate, 4) if win_rate is not None else None,
            consistency=consistency,
        )

    def analyze_all(
        self, players: list[PlayerRecord], weights: list[WeightResult]
    ) -> list[PlayerAnalysis]:
        return [self.analyze(p, w) for p, w in zip(players, weights)]

    def _confidence(self, player: PlayerRecord, flags: list[AnalysisFlag]) -> int:
        confidence = BASE_CONFIDENCE
        if player.peak_rank:
            confidence += 15
        if player.tournaments_won > 0:
            confidence += 20
        if player.win_rate is not None:
            confidence += 10
        if self.is_recently_active(player):
            confidence += 10
        for flag in flags:
            confidence += SEVERITY_CONFIDENCE[flag.severity]
        return min(confidence, MAX_CONFIDENCE)

    def _tournament_champion(self, player, weight, consistency) -> Optional[AnalysisFlag]:
        cfg = self.config
        wins = player.tournaments_won
        if wins <= 0:
            return None

        peak = _table_points(player.peak_rank) or cfg.default_points
        bonus = wins * cfg.tournament_win_bonus
        severity = Severity.MEDIUM
        parts = [f"base bonus {wins} x {cfg.tournament_win_bonus}"]

        if peak >= cfg.elite_threshold:
            bonus += cfg.champion_elite_peak_bonus
            severity = Severity.HIGH
            parts.append(f"elite peak +{cfg.champion_elite_peak_bonus}")

        if weight.points < peak - cfg.champion_rank_drop_gap:
            bonus += cfg.champion_rank_drop_bonus
            severity = Severity.CRITICAL
            parts.append(f"underranked +{cfg.champion_rank_drop_bonus}")

        return AnalysisFlag(
            type="tournament_champion",
            severity=severity,
            delta=bonus,
            reasoning=f"Tournament champion ({wins} win(s)): {', '.join(parts)} = +{bonus}",
        )

    def _rank_mismatch(self, player, weight, consistency) -> Optional[AnalysisFlag]:
        cfg = self.config
        current = _table_points(player.current_rank)
        peak = _table_points(player.peak_rank)
        if current is None or peak is None:
            return None

        gap = peak - current
        if gap < cfg.mismatch_min_gap:
            return None

        adjustment = min(gap * cfg.mismatch_factor, cfg.mismatch_cap)
        recent = is_recent_win(player, cfg)
        if recent:
            adjustment += cfg.mismatch_recent_win_bonus
        delta = round(adjustment)

        if gap >= 250:
            severity = Severity.CRITICAL
        elif gap >= 200:
            severity = Severity.HIGH
        else:
            severity = Severity.MEDIUM

        return AnalysisFlag(
            type="rank_mismatch",
            severity=severity,
            delta=delta,
            reasoning=(
                f"Peaked at {player.peak_rank} but currently {player.current_rank}: "
                f"{gap} pt gap suggests retained skill (+{delta}"
                f"{', includes recent win bonus' if recent else ''})"
            ),
        )

    def _undervalued(self, player, weight, consistency) -> Optional[AnalysisFlag]:
        cfg = self.config
        indicators = []
        score = 0

        win_rate = player.win_rate
        if win_rate is not None and win_rate > 0.7:
            indicators.append(f"{round(win_rate * 100)}% win rate")
            score += 15

        if player.tournaments_played >= 5:
            ratio = player.tournaments_won / player.tournaments_played
            if ratio > 0.3:
                indicators.append(f"{round(ratio * 100)}% tournament win rate")
                score += 20

        if consistency == "stable" and player.tournaments_won > 0:
            indicators.append("stable rank while winning tournaments")
            score += 10

        if len(indicators) < cfg.undervalued_min_indicators or score < cfg.undervalued_min_score:
            return None

        delta = min(score, cfg.undervalued_cap)
        return AnalysisFlag(
            type="undervalued",
            severity=Severity.HIGH if score >= 40 else Severity.MEDIUM,
            delta=delta,
            reasoning=f"Multiple skill indicators suggest undervaluation: {', '.join(indicators)} (+{delta})",
        )

    def _inactivity_decay(self, player, weight, consistency) -> Optional[AnalysisFlag]:
        cfg = self.config
        if weight.points < cfg.high_tier_points or player.tournaments_won > 0:
            return None
        if self.is_recently_active(player):
            return None

        decay = round(min(weight.points * cfg.inactivity_pct, cfg.inactivity_cap))
        if cfg.as_of is None:
            when = "no reference time to confirm recent activity"
        elif player.last_rank_update_at is None:
            when = "no rank update on record"
        else:
            when = f"rank last updated {days_between(cfg.as_of, player.last_rank_update_at)} days ago"
        return AnalysisFlag(
            type="inactivity_decay",
            severity=Severity.LOW,
            delta=-decay,
            reasoning=f"High-ranked player without tournament wins, {when}: -{decay}",
        )

    def _consistent_performer(self, player, weight, consistency) -> Optional[AnalysisFlag]:
        win_rate = player.win_rate
        if consistency != "stable" or win_rate is None or win_rate <= 0.6:
            return None
        bonus = self.config.consistency_bonus
        return AnalysisFlag(
            type="consistent_performer",
            severity=Severity.LOW,
            delta=bonus,
            reasoning=f"Stable rank with {round(win_rate * 100)}% win rate: +{bonus}",
        )
