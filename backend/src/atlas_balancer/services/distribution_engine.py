"""Initial placement of weighted players into capacity-bounded teams.

Placement runs in two phases over players sorted by weight (highest first,
input order breaking ties):

1. Elite dispersion: each elite goes to the elite-free team with capacity
   that minimizes ``total + penalty * high_value_count``. Only when every
   team already holds an elite are teams with elites considered.
2. Regular fill: each remaining player goes to the lightest team with
   capacity.

Ties always go to the lowest team ordinal. Every placement is written to
the ledger together with the comparison that decided it.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from atlas_balancer.config import BalanceConfig
from atlas_balancer.models.team import ExcludedPlayer, PlacementStep, Team, TeamMember
from atlas_balancer.services.balance_logger import BalanceLogger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DistributionResult:
    teams: list[Team]
    ledger: list[PlacementStep]
    excluded: list[ExcludedPlayer]


class DistributionEngine:
    """Greedy, explainable team formation."""

    def __init__(self, config: BalanceConfig, audit: Optional[BalanceLogger] = None):
        self.config = config
        self.audit = audit or BalanceLogger(enabled=False)

    def distribute(self, members: list[TeamMember]) -> DistributionResult:
        cfg = self.config
        teams = [Team(ordinal=i + 1, capacity=cfg.team_capacity) for i in range(cfg.team_count)]

        ordered = sorted(enumerate(members), key=lambda item: (-item[1].points, item[0]))
        ordered = [member for _, member in ordered]

        capacity = cfg.total_capacity
        placed, overflow = ordered[:capacity], ordered[capacity:]

        excluded = []
        for position, member in enumerate(overflow, start=capacity + 1):
            reason = (
                f"All {cfg.team_count} x {cfg.team_capacity} = {capacity} slots were filled by "
                f"higher-weighted players (weight rank {position} of {len(ordered)})"
            )
            excluded.append(ExcludedPlayer(
                player_id=member.player_id,
                display_name=member.display_name,
                points=member.points,
                reason=reason,
                rank_position=position,
            ))
            self.audit.player_excluded(member.player_id, member.points, reason)
        if excluded:
            logger.info(f"{len(excluded)} player(s) excluded: {len(ordered)} players for {capacity} slots")

        ledger: list[PlacementStep] = []
        elites = [m for m in placed if m.is_elite]
        regulars = [m for m in placed if not m.is_elite]

        for member in elites:
            team, reasoning = self._choose_elite_team(teams)
            self._place(teams, team, member, "elite_dispersion", reasoning, ledger)

        for member in regulars:
            team, reasoning = self._choose_lightest_team(teams)
            self._place(teams, team, member, "regular_fill", reasoning, ledger)

        return DistributionResult(teams=teams, ledger=ledger, excluded=excluded)

    def _elite_score(self, team: Team) -> int:
        cfg = self.config
        return team.total_points + cfg.elite_dispersion_penalty * team.count_at_or_above(
            cfg.high_value_threshold
        )

    def _choose_elite_team(self, teams: list[Team]) -> tuple[Team, str]:
        open_teams = [t for t in teams if t.has_capacity]
        elite_free = [t for t in open_teams if t.elite_count == 0]
        candidates = elite_free or open_teams

        best = min(candidates, key=lambda t: (self._elite_score(t), t.ordinal))
        scores = ", ".join(f"T{t.ordinal}={self._elite_score(t)}" for t in candidates)
        pool = "elite-free teams" if elite_free else "all open teams (no elite-free team left)"
        reasoning = (
            f"Lowest dispersion score among {pool} "
            f"(total + {self.config.elite_dispersion_penalty} x players >= "
            f"{self.config.high_value_threshold}): {scores}"
        )
        return best, reasoning

    def _choose_lightest_team(self, teams: list[Team]) -> tuple[Team, str]:
        open_teams = [t for t in teams if t.has_capacity]
        best = min(open_teams, key=lambda t: (t.total_points, t.ordinal))
        totals = ", ".join(f"T{t.ordinal}={t.total_points}" for t in open_teams)
        return best, f"Lightest team with capacity: {totals}"

    def _place(
        self,
        teams: list[Team],
        team: Team,
        member: TeamMember,
        phase: str,
        reasoning: str,
        ledger: list[PlacementStep],
    ) -> None:
        team.players.append(member)
        step = PlacementStep(
            step=len(ledger) + 1,
            phase=phase,
            player_id=member.player_id,
            display_name=member.display_name,
            points=member.points,
            is_elite=member.is_elite,
            team_ordinal=team.ordinal,
            reasoning=reasoning,
            team_totals_after=tuple(t.total_points for t in teams),
            team_sizes_after=tuple(t.size for t in teams),
        )
        ledger.append(step)
        self.audit.player_placed(member.player_id, team.ordinal, member.points, phase, reasoning)
