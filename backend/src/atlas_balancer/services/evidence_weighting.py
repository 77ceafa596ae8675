"""Evidence-based and adaptive skill weighting.

Both modes start from a rank-derived base and add evidence bonuses:

- "evidence": base is the current rank (an admin-synced weight rating wins
  over the table value), else the peak rank, else the default, plus the
  underranked bonus and a flat tournament bonus.
- "adaptive": an unranked player's peak is discounted by a tiered penalty,
  the underranked gap is blended toward peak with a confidence/time-decay
  factor, and the tournament bonus is scaled for elite peaks and recent wins.

Every factor appends one reasoning string, in evaluation order.
"""

import logging
import math
from datetime import datetime
from typing import Optional

from atlas_balancer.config import BalanceConfig
from atlas_balancer.models.player import PlayerRecord
from atlas_balancer.utils.rank_table import rank_points

logger = logging.getLogger(__name__)


def underranked_bonus(base: int, peak_points: int, config: BalanceConfig) -> int:
    """Bonus for a player whose peak sits well above their base.

    Zero below the minimum gap. From there the percentage of base grows by
    one configured step per full tier dropped, capped at the configured share
    of base. Always at least 1 point once the gap qualifies.
    """
    gap = peak_points - base
    if gap < config.underranked_min_gap:
        return 0
    tiers_dropped = max(gap // config.tier_points, 1)
    steps = config.underranked_steps[:tiers_dropped]
    pct = min(sum(steps), config.underranked_cap_pct)
    return max(int(base * pct), 1)


def unranked_penalty(peak_points: int, config: BalanceConfig) -> float:
    """Share of peak points removed when a player has no current rank."""
    for min_peak, penalty in config.unranked_penalty_tiers:
        if peak_points >= min_peak:
            return penalty
    return config.unranked_penalty_tiers[-1][1]


def days_between(later: Optional[datetime], earlier: Optional[datetime]) -> Optional[int]:
    if later is None or earlier is None:
        return None
    return (later - earlier).days


def is_recent_win(player: PlayerRecord, config: BalanceConfig) -> bool:
    elapsed = days_between(config.as_of, player.last_tournament_win_at)
    return elapsed is not None and 0 <= elapsed <= config.recent_win_days


def blend_factor(gap: int, player: PlayerRecord, config: BalanceConfig) -> tuple[float, list[str]]:
    """Share of the current-to-peak gap credited in adaptive mode."""
    notes = []
    boost = min(gap / config.rank_gap_scale, config.confidence_boost_max)
    factor = config.base_blend_factor + boost

    elapsed = days_between(config.as_of, player.last_rank_update_at)
    if elapsed is not None and elapsed > config.time_weight_days:
        decay = config.time_decay_max * (
            1 - math.exp(-(elapsed - config.time_weight_days) / config.time_decay_constant_days)
        )
        factor -= decay
        notes.append(f"Rank last updated {elapsed} days ago: peak credit reduced by {decay:.0%}")
    elif elapsed is None and config.as_of is None:
        notes.append("No reference time: rank age not considered")

    factor = min(max(factor, 0.0), config.max_blend_factor)
    return factor, notes


class EvidenceWeighting:
    """Computes evidence-based or adaptive weights for one player."""

    def __init__(self, config: BalanceConfig):
        self.config = config

    @property
    def adaptive(self) -> bool:
        return self.config.evidence_mode == "adaptive"

    def compute(self, player: PlayerRecord) -> tuple[int, list[str]]:
        """Return (points before floor, ordered reasoning).

        Raises:
            WeightResolutionError: If a consulted rank is malformed
        """
        cfg = self.config
        reasons: list[str] = []
        current = rank_points(player.current_rank, "current rank", player.id)
        peak = rank_points(player.peak_rank, "peak rank", player.id)

        if current is not None and player.weight_rating is not None:
            base = player.weight_rating
            reasons.append(f"Current rank {player.current_rank}: synced weight rating {base} pts")
        elif current is not None:
            base = current
            reasons.append(f"Current rank {player.current_rank}: {base} pts")
        elif peak is not None and self.adaptive:
            penalty = unranked_penalty(peak, cfg)
            base = int(peak * (1 - penalty))
            reasons.append(
                f"No current rank; peak rank {player.peak_rank} ({peak} pts) "
                f"with {penalty:.0%} unranked penalty: {base} pts"
            )
        elif peak is not None:
            base = peak
            reasons.append(f"No current rank; using peak rank {player.peak_rank}: {base} pts")
        else:
            base = cfg.default_points
            reasons.append(f"No rank data; default {base} pts")

        bonus = 0
        if current is not None and peak is not None:
            bonus = self._underranked(base, peak, player, reasons)

        tournament = self._tournament_bonus(player, peak, reasons)
        return base + bonus + tournament, reasons

    def _underranked(self, base: int, peak: int, player: PlayerRecord, reasons: list[str]) -> int:
        cfg = self.config
        gap = peak - base
        if gap < cfg.underranked_min_gap:
            return 0

        if not self.adaptive:
            bonus = underranked_bonus(base, peak, cfg)
            reasons.append(
                f"Underranked: peak {player.peak_rank} is {gap} pts above current (+{bonus})"
            )
            return bonus

        factor, notes = blend_factor(gap, player, cfg)
        reasons.extend(notes)
        bonus = max(min(int(gap * factor), int(base * cfg.underranked_cap_pct)), 1)
        reasons.append(
            f"Underranked: adaptive blend {1 - factor:.0%} current / {factor:.0%} "
            f"peak {player.peak_rank} (+{bonus})"
        )
        return bonus

    def _tournament_bonus(self, player: PlayerRecord, peak: Optional[int], reasons: list[str]) -> int:
        cfg = self.config
        wins = player.tournaments_won
        if wins <= 0:
            return 0

        raw = wins * cfg.tournament_win_bonus
        multiplier = 1.0
        extras = []
        if self.adaptive:
            if peak is not None and peak >= cfg.elite_threshold:
                multiplier += cfg.elite_peak_bonus_pct
                extras.append(f"+{cfg.elite_peak_bonus_pct:.0%} elite peak")
            if is_recent_win(player, cfg):
                multiplier += cfg.recent_win_bonus_pct
                extras.append(f"+{cfg.recent_win_bonus_pct:.0%} win within {cfg.recent_win_days} days")

        bonus = min(int(raw * multiplier), cfg.tournament_bonus_cap)
        detail = f"Tournament wins: {wins} x {cfg.tournament_win_bonus}"
        if extras:
            detail += f" ({', '.join(extras)})"
        detail += f" = +{bonus}"
        if int(raw * multiplier) > cfg.tournament_bonus_cap:
            detail += f" (capped at {cfg.tournament_bonus_cap})"
        reasons.append(detail)
        return bonus
