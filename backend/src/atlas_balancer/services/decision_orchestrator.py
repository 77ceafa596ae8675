"""Sequences the balancing stages and turns findings into decisions.

Stage order for one run:
    analyze players -> apply confident adjustments -> distribute ->
    analyze initial composition -> redistribute stacked elites ->
    swap passes -> analyze final composition -> plan + summary

Decisions are ranked by stage, then by the order their findings were made,
and every decision id is derived from the players and teams it touches.
"""

import logging
from typing import Optional

from atlas_balancer.config import BalanceConfig
from atlas_balancer.models.decisions import (
    BalanceSummary,
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
from atlas_balancer.models.player import PlayerRecord
from atlas_balancer.models.results import BalanceResult
from atlas_balancer.models.team import Team, TeamMember
from atlas_balancer.models.weights import PlayerAnalysis, Severity, WeightResult
from atlas_balancer.services.balance_logger import BalanceLogger
from atlas_balancer.services.composition_analyzer import CompositionAnalyzer
from atlas_balancer.services.distribution_engine import DistributionEngine
from atlas_balancer.services.player_analyzer import PlayerAnalyzer
from atlas_balancer.services.swap_search import FALLBACK_STRATEGY, SwapSearch
from atlas_balancer.utils.rank_table import skill_tier

logger = logging.getLogger(__name__)

# strategy -> (priority, confidence, expected improvement, id prefix)
SWAP_DECISION_PROFILE: dict[str, tuple[Priority, int, int, str]] = {
    "critical_swap": (Priority.CRITICAL, 95, 80, "swap_critical"),
    "pairwise_swap": (Priority.HIGH, 85, 40, "swap"),
    "secondary_swap": (Priority.MEDIUM, 80, 30, "swap_secondary"),
    "cascading_rotation": (Priority.MEDIUM, 80, 30, "swap_cascade"),
    FALLBACK_STRATEGY: (Priority.MEDIUM, 75, 20, "relocate"),
}

REDISTRIBUTION_CONFIDENCE = 95
REDISTRIBUTION_IMPROVEMENT = 60


class DecisionOrchestrator:
    """Runs the analysis/formation/optimization stages for one snapshot."""

    def __init__(self, config: BalanceConfig, audit: Optional[BalanceLogger] = None):
        self.config = config
        self.audit = audit or BalanceLogger(enabled=False)
        self.analyzer = PlayerAnalyzer(config)
        self.distribution = DistributionEngine(config, self.audit)
        self.composition = CompositionAnalyzer(config)
        self.swap_search = SwapSearch(config, self.audit)

    def orchestrate(self, players: list[PlayerRecord], weights: list[WeightResult]) -> BalanceResult:
        analyses = self.analyzer.analyze_all(players, weights)
        decisions, effective = self.adjustment_decisions(analyses)

        members = [self.build_member(a, effective[a.player_id]) for a in analyses]
        formation = self.distribution.distribute(members)
        initial = self.composition.analyze(formation.teams)

        teams, redistributions = self.redistribute_elites(formation.teams)
        decisions.extend(redistributions)

        teams, swap_analysis = self.swap_search.optimize(teams)
        decisions.extend(self.swap_decisions(swap_analysis))

        final = self.composition.analyze(teams)
        if not decisions:
            decisions.append(self._no_action(final.balance.spread))

        for decision in decisions:
            self.audit.decision_made(
                decision.id, decision.type.value, decision.priority.value, decision.reasoning
            )

        return BalanceResult(
            teams=tuple(teams),
            balance_analysis=final,
            initial_balance=initial,
            player_analyses=tuple(analyses),
            weight_results=tuple(weights),
            decisions=tuple(decisions),
            execution_plan=self.execution_plan(decisions),
            swap_analysis=swap_analysis,
            placement_ledger=tuple(formation.ledger),
            excluded_players=tuple(formation.excluded),
            summary=self.summary(analyses, decisions),
        )

    def build_member(self, analysis: PlayerAnalysis, points: int) -> TeamMember:
        return TeamMember(
            player_id=analysis.player_id,
            display_name=analysis.weight.display_name,
            points=points,
            base_points=analysis.original_points,
            source=analysis.weight.source.value,
            is_elite=points >= self.config.elite_threshold,
            skill_tier=skill_tier(points, self.config),
        )

    # -- adjustments ---------------------------------------------------------

    def priority_for(self, analysis: PlayerAnalysis, adjustment: int) -> Priority:
        pct = abs(adjustment) / analysis.original_points
        if any(f.severity == Severity.CRITICAL for f in analysis.flags) or pct > 0.3:
            return Priority.CRITICAL
        if pct > 0.2 or analysis.confidence_score > 90:
            return Priority.HIGH
        if pct > 0.1 or analysis.confidence_score > 80:
            return Priority.MEDIUM
        return Priority.LOW

    def adjustment_decisions(
        self, analyses: list[PlayerAnalysis]
    ) -> tuple[list[Decision], dict[str, int]]:
        """Decide which analyzer adjustments change distribution weights.

        Returns:
            (player_adjustment decisions, player id -> effective points)
        """
        cfg = self.config
        decisions = []
        effective = {a.player_id: a.original_points for a in analyses}

        for analysis in analyses:
            if not analysis.needs_adjustment:
                continue
            if analysis.confidence_score < cfg.confidence_threshold:
                logger.debug(
                    f"{analysis.player_id}: confidence {analysis.confidence_score} below "
                    f"{cfg.confidence_threshold}, adjustment not applied"
                )
                continue

            proposed = analysis.total_delta
            cap = round(analysis.original_points * cfg.max_adjustment_pct)
            adjustment = max(-cap, min(proposed, cap))
            new_points = max(analysis.original_points + adjustment, cfg.min_points)
            adjustment = new_points - analysis.original_points
            if adjustment == 0:
                continue
            effective[analysis.player_id] = new_points

            reasons = [f"Analysis confidence {analysis.confidence_score}%"]
            reasons += [f.reasoning for f in analysis.flags]
            if adjustment != proposed:
                reasons.append(f"Proposed {proposed:+d} capped at {adjustment:+d}")

            decisions.append(Decision(
                id=f"player_adj_{analysis.player_id}",
                type=DecisionType.PLAYER_ADJUSTMENT,
                priority=self.priority_for(analysis, adjustment),
                confidence=analysis.confidence_score,
                reasoning=". ".join(reasons),
                impact=DecisionImpact(
                    expected_improvement=round(min(abs(adjustment) / 10, 30)),
                    affected_players=(analysis.player_id,),
                ),
                action=DecisionAction(
                    player_id=analysis.player_id,
                    point_adjustment=adjustment,
                    new_points=new_points,
                ),
            ))
        return decisions, effective

    # -- elite redistribution -----------------------------------------------

    def redistribute_elites(self, teams: list[Team]) -> tuple[list[Team], list[Decision]]:
        """Move excess elites off stacked teams onto elite-free teams.

        The highest-weighted elite stays. A full target team gives up its
        lowest-weighted non-elite player in exchange.
        """
        teams = [t.copy() for t in teams]
        decisions = []

        for team in teams:
            while team.elite_count > 1:
                elites = sorted(
                    (p for p in team.players if p.is_elite), key=lambda p: -p.points
                )
                mover = elites[1]
                targets = [t for t in teams if t.elite_count == 0 and t is not team]
                if not targets:
                    logger.info(f"Team {team.ordinal} keeps {team.elite_count} elites: no elite-free team")
                    break
                target = min(targets, key=lambda t: (t.total_points, t.ordinal))

                partner = None
                if not target.has_capacity:
                    non_elite = [p for p in target.players if not p.is_elite]
                    if not non_elite:
                        break
                    partner = min(non_elite, key=lambda p: p.points)

                index = team.players.index(mover)
                if partner is None:
                    team.players.pop(index)
                    target.players.append(mover)
                    how = f"moved to open slot on Team {target.ordinal}"
                else:
                    team.players[index] = partner
                    target.players[target.players.index(partner)] = mover
                    how = (
                        f"swapped with {partner.display_name} ({partner.points}) "
                        f"from full Team {target.ordinal}"
                    )

                decisions.append(Decision(
                    id=f"redistribute_{mover.player_id}_{target.ordinal}",
                    type=DecisionType.TEAM_REDISTRIBUTION,
                    priority=Priority.CRITICAL,
                    confidence=REDISTRIBUTION_CONFIDENCE,
                    reasoning=(
                        f"{mover.display_name} ({mover.points}) was a second elite on Team "
                        f"{team.ordinal} while Team {target.ordinal} had none; {how}"
                    ),
                    impact=DecisionImpact(
                        expected_improvement=REDISTRIBUTION_IMPROVEMENT,
                        affected_players=tuple(
                            p for p in (mover.player_id, partner.player_id if partner else None) if p
                        ),
                        affected_teams=(team.ordinal, target.ordinal),
                    ),
                    action=DecisionAction(
                        player_id=mover.player_id,
                        from_team=team.ordinal,
                        to_team=target.ordinal,
                        swap_player_id=partner.player_id if partner else None,
                    ),
                ))
        return teams, decisions

    # -- swaps ----------------------------------------------------------------

    def swap_decisions(self, analysis: SwapAnalysis) -> list[Decision]:
        return [self._swap_decision(s) for s in analysis.successful_swaps]

    def _swap_decision(self, suggestion: SwapSuggestion) -> Decision:
        priority, confidence, improvement, prefix = SWAP_DECISION_PROFILE[suggestion.strategy]
        is_relocation = suggestion.strategy == FALLBACK_STRATEGY
        ids = suggestion.player_ids
        return Decision(
            id=f"{prefix}_{'_'.join(ids)}_p{suggestion.pass_number}",
            type=DecisionType.TEAM_REDISTRIBUTION if is_relocation else DecisionType.PLAYER_SWAP,
            priority=priority,
            confidence=confidence,
            reasoning=suggestion.reasoning,
            impact=DecisionImpact(
                expected_improvement=improvement,
                affected_players=ids,
                affected_teams=(suggestion.source_team, suggestion.target_team),
            ),
            action=DecisionAction(
                player_id=ids[0],
                from_team=suggestion.source_team,
                to_team=suggestion.target_team,
                swap_player_id=ids[1] if len(ids) > 1 else None,
            ),
        )

    def _no_action(self, spread: int) -> Decision:
        return Decision(
            id="no_action",
            type=DecisionType.NO_ACTION,
            priority=Priority.LOW,
            confidence=100,
            reasoning=f"No adjustments, redistributions or swaps needed (spread {spread})",
            impact=DecisionImpact(expected_improvement=0),
            action=DecisionAction(),
        )

    # -- plan and summary ----------------------------------------------------

    def execution_plan(self, decisions: list[Decision]) -> ExecutionPlan:
        adjustments = [d for d in decisions if d.type == DecisionType.PLAYER_ADJUSTMENT]
        redistributions = [
            d for d in decisions
            if d.type == DecisionType.TEAM_REDISTRIBUTION and d.priority == Priority.CRITICAL
        ]
        swaps = [
            d for d in decisions
            if d.type == DecisionType.PLAYER_SWAP
            or (d.type == DecisionType.TEAM_REDISTRIBUTION and d.priority != Priority.CRITICAL)
        ]

        steps = []
        if adjustments:
            steps.append(("adjust_points",
                          f"Adjust points for {len(adjustments)} players based on skill analysis",
                          adjustments,
                          [f"{d.action.player_id}: {d.action.point_adjustment:+d}" for d in adjustments]))
        if redistributions:
            steps.append(("redistribute_players",
                          f"Redistribute {len(redistributions)} players to fix elite stacking",
                          redistributions,
                          [f"{d.action.player_id}: Team {d.action.from_team} -> Team {d.action.to_team}"
                           for d in redistributions]))
        if swaps:
            steps.append(("swap_players",
                          f"Execute {len(swaps)} balance moves",
                          swaps,
                          [d.reasoning for d in swaps]))

        actionable = [d for d in decisions if d.type != DecisionType.NO_ACTION]
        steps.append(("validate_balance",
                      "Validate final team balance and composition",
                      decisions,
                      [f"expected improvement {self._mean_improvement(actionable)}",
                       f"total decisions {len(actionable)}"]))

        return ExecutionPlan(steps=tuple(
            ExecutionStep(
                step=index,
                action=action,
                description=description,
                decision_ids=tuple(d.id for d in group),
                details=tuple(details),
            )
            for index, (action, description, group, details) in enumerate(steps, start=1)
        ))

    @staticmethod
    def _mean_improvement(decisions: list[Decision]) -> int:
        if not decisions:
            return 0
        return round(sum(d.impact.expected_improvement for d in decisions) / len(decisions))

    def summary(self, analyses: list[PlayerAnalysis], decisions: list[Decision]) -> BalanceSummary:
        actionable = [d for d in decisions if d.type != DecisionType.NO_ACTION]
        confidence = (
            round(sum(d.confidence for d in actionable) / len(actionable)) if actionable else 100
        )
        return BalanceSummary(
            total_players_analyzed=len(analyses),
            players_adjusted=sum(1 for d in actionable if d.type == DecisionType.PLAYER_ADJUSTMENT),
            redistributions=sum(1 for d in actionable if d.type == DecisionType.TEAM_REDISTRIBUTION),
            swaps=sum(1 for d in actionable if d.type == DecisionType.PLAYER_SWAP),
            expected_balance_improvement=self._mean_improvement(actionable),
            confidence_score=confidence,
        )
