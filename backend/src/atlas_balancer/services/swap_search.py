"""Corrective player moves after initial distribution.

Each pass tries the strategies below in order and applies the first move
that is accepted, then stops so the next pass re-evaluates from scratch:

1. critical_swap: strongest player on the strongest team for the weakest
   player on the weakest team
2. pairwise_swap: every one-for-one swap across strong/weak team pairs,
   largest total gap first; the first acceptable pair wins
3. secondary_swap: two-for-two swaps between the strongest/weakest teams and
   their runner-up counterparts; the best acceptable combination wins
4. cascading_rotation: one player each moves strongest -> middle ->
   weakest -> strongest; the best acceptable rotation wins
5. fallback_relocation: one-way move from the strongest team into spare
   capacity on the weakest team

A move is accepted only if it keeps every roster within capacity, does not
put a second elite on a team while another team has none, and lowers the
global spread by more than the configured minimum. Candidates are always
evaluated on copies, so a rejected move never touches the live teams.
"""

import logging
from dataclasses import dataclass, field
from itertools import combinations
from typing import Optional

from atlas_balancer.config import BalanceConfig
from atlas_balancer.models.decisions import BalanceImpact, SwapAnalysis, SwapSuggestion
from atlas_balancer.models.team import Team, TeamMember, clone_teams, team_spread
from atlas_balancer.services.balance_logger import BalanceLogger

logger = logging.getLogger(__name__)

DIRECT_STRATEGIES = ("critical_swap", "pairwise_swap")
MULTI_STRATEGIES = ("secondary_swap", "cascading_rotation")
FALLBACK_STRATEGY = "fallback_relocation"

# (member, from ordinal, to ordinal)
Move = tuple[TeamMember, int, int]


@dataclass
class Candidate:
    strategy: str
    moves: list[Move]
    description: str
    teams_after: list[Team]
    spread_after: int
    rejection: Optional[str]


@dataclass
class SwapPassResult:
    teams: list[Team]
    applied: Optional[SwapSuggestion]
    suggestions: list[SwapSuggestion] = field(default_factory=list)
    strategies_attempted: list[str] = field(default_factory=list)
    # candidates evaluated, recorded or not
    evaluated: int = 0


def apply_moves(teams: list[Team], moves: list[Move]) -> list[Team]:
    """Return copies of ``teams`` with the moves applied.

    A member leaving and another arriving on the same team takes over the
    leaver's roster slot; other arrivals are appended.
    """
    new_teams = clone_teams(teams)
    by_ordinal = {t.ordinal: t for t in new_teams}
    open_slots: dict[int, list[int]] = {}
    for member, source, _ in moves:
        roster = by_ordinal[source].players
        index = next(
            i for i, p in enumerate(roster) if p is not None and p.player_id == member.player_id
        )
        open_slots.setdefault(source, []).append(index)
        roster[index] = None
    for member, _, target in moves:
        slots = open_slots.get(target)
        if slots:
            by_ordinal[target].players[slots.pop(0)] = member
        else:
            by_ordinal[target].players.append(member)
    for team in new_teams:
        team.players = [p for p in team.players if p is not None]
    return new_teams


class SwapSearch:
    """Proposes, evaluates and applies corrective moves."""

    def __init__(self, config: BalanceConfig, audit: Optional[BalanceLogger] = None):
        self.config = config
        self.audit = audit or BalanceLogger(enabled=False)

    def optimize(self, teams: list[Team]) -> tuple[list[Team], SwapAnalysis]:
        """Run passes while the spread stays above the trigger."""
        cfg = self.config
        initial_spread = team_spread(teams)
        current = teams
        suggestions: list[SwapSuggestion] = []
        attempted: list[str] = []
        evaluated = 0
        passes = 0

        while passes < cfg.max_swap_passes and team_spread(current) > cfg.swap_trigger_spread:
            passes += 1
            result = self.run_pass(current, passes)
            suggestions.extend(result.suggestions)
            evaluated += result.evaluated
            for strategy in result.strategies_attempted:
                if strategy not in attempted:
                    attempted.append(strategy)
            current = result.teams
            if result.applied is None:
                logger.info(f"Swap pass {passes}: no acceptable move, stopping")
                break

        executed = [s for s in suggestions if s.outcome == "executed"]
        if any(s.strategy == FALLBACK_STRATEGY for s in executed):
            outcome = "fallback_used"
        elif executed:
            outcome = "improved"
        else:
            outcome = "no_improvement"

        analysis = SwapAnalysis(
            total_suggestions_considered=evaluated,
            strategies_attempted=tuple(attempted),
            successful_swaps=tuple(executed),
            rejected_swaps=tuple(s for s in suggestions if s.outcome == "rejected"),
            considered_swaps=tuple(s for s in suggestions if s.outcome == "considered"),
            final_outcome=outcome,
            overall_improvement=initial_spread - team_spread(current),
            passes_run=passes,
        )
        return current, analysis

    def run_pass(self, teams: list[Team], pass_number: int) -> SwapPassResult:
        """Try each strategy in order; apply at most one move."""
        result = SwapPassResult(teams=teams, applied=None)
        if len(teams) < 2:
            return result
        spread = team_spread(teams)

        strategies = (
            ("critical_swap", self._critical_candidates, True),
            ("pairwise_swap", self._pairwise_candidates, True),
            ("secondary_swap", self._secondary_candidates, False),
            ("cascading_rotation", self._cascading_candidates, False),
            (FALLBACK_STRATEGY, self._fallback_candidates, False),
        )
        for name, generate, first_wins in strategies:
            result.strategies_attempted.append(name)
            if first_wins:
                chosen = self._first_acceptable(teams, spread, name, generate, pass_number, result)
            else:
                chosen = self._best_acceptable(teams, spread, name, generate, pass_number, result)

            if chosen is not None:
                result.teams = chosen.teams_after
                logger.info(
                    f"Swap pass {pass_number}: {name} applied, spread {spread} -> {chosen.spread_after}"
                )
                break
        return result

    def _first_acceptable(self, teams, spread, name, generate, pass_number, result) -> Optional[Candidate]:
        # candidates after the first accepted one are never evaluated
        for moves, description in generate(teams):
            candidate = self._evaluate(teams, spread, moves, description, name)
            result.evaluated += 1
            accepted = candidate.rejection is None
            suggestion = self._record(
                candidate, spread, pass_number, len(result.suggestions) + 1,
                "executed" if accepted else "rejected",
            )
            result.suggestions.append(suggestion)
            if accepted:
                result.applied = suggestion
                return candidate
        return None

    def _best_acceptable(self, teams, spread, name, generate, pass_number, result) -> Optional[Candidate]:
        """Apply the lowest-spread acceptable candidate.

        Every rejected candidate is recorded. Of the acceptable ones only the
        chosen move and the ``swap_record_limit`` next best (as "considered")
        are recorded.
        """
        limit = self.config.swap_record_limit
        candidates = [self._evaluate(teams, spread, m, d, name) for m, d in generate(teams)]
        result.evaluated += len(candidates)
        acceptable = sorted((c for c in candidates if c.rejection is None), key=lambda c: c.spread_after)
        rejected = [c for c in candidates if c.rejection is not None]
        chosen = acceptable[0] if acceptable else None

        outcomes = [(chosen, "executed")] if chosen else []
        outcomes += [(c, "considered") for c in acceptable[1:limit + 1]]
        outcomes += [(c, "rejected") for c in rejected]
        if len(outcomes) < len(candidates):
            logger.debug(
                f"Swap pass {pass_number}: {name} recorded {len(outcomes)} of {len(candidates)} candidates"
            )
        for candidate, outcome in outcomes:
            suggestion = self._record(candidate, spread, pass_number, len(result.suggestions) + 1, outcome)
            result.suggestions.append(suggestion)
            if outcome == "executed":
                result.applied = suggestion
        return chosen

    def _evaluate(
        self, teams: list[Team], spread: int, moves: list[Move], description: str, strategy: str
    ) -> Candidate:
        cfg = self.config
        after = apply_moves(teams, moves)
        spread_after = team_spread(after)
        rejection = None

        over = [t for t in after if t.size > t.capacity]
        stacked = self._new_stacking(teams, after)
        improvement = spread - spread_after
        if over:
            rejection = f"Team {over[0].ordinal} would exceed capacity ({over[0].size}/{over[0].capacity})"
        elif stacked:
            rejection = stacked
        elif improvement <= cfg.swap_min_improvement:
            rejection = (
                f"Spread {spread} -> {spread_after} changes by {improvement} pts, "
                f"not more than the {cfg.swap_min_improvement} pt minimum"
            )
        return Candidate(strategy, moves, description, after, spread_after, rejection)

    @staticmethod
    def _new_stacking(before: list[Team], after: list[Team]) -> Optional[str]:
        elite_free = [t for t in after if t.elite_count == 0]
        if not elite_free:
            return None
        before_counts = {t.ordinal: t.elite_count for t in before}
        for team in after:
            if team.elite_count > 1 and team.elite_count > before_counts[team.ordinal]:
                return (
                    f"Would place {team.elite_count} elite players on Team {team.ordinal} "
                    f"while Team {elite_free[0].ordinal} has none"
                )
        return None

    def _record(
        self, candidate: Candidate, spread: int, pass_number: int, index: int, outcome: str
    ) -> SwapSuggestion:
        first_move = candidate.moves[0]
        last_move = candidate.moves[-1]
        suggestion = SwapSuggestion(
            id=f"p{pass_number}-{index}",
            strategy=candidate.strategy,
            pass_number=pass_number,
            player_ids=tuple(m[0].player_id for m in candidate.moves),
            source_team=first_move[1],
            target_team=last_move[1] if len(candidate.moves) > 1 else first_move[2],
            expected_improvement=spread - candidate.spread_after,
            outcome=outcome,
            reasoning=f"{candidate.description}: spread {spread} -> {candidate.spread_after}",
            balance_impact=BalanceImpact(
                before=spread,
                after=candidate.spread_after,
                violation_resolved=candidate.spread_after <= self.config.swap_trigger_spread,
            ),
            rejection_reason=candidate.rejection if outcome == "rejected" else None,
        )
        self.audit.swap_evaluated(
            suggestion.id, candidate.strategy, outcome, spread, candidate.spread_after,
            suggestion.rejection_reason,
        )
        return suggestion

    # -- candidate generators: yield (moves, description) -------------------

    @staticmethod
    def _strongest(teams: list[Team]) -> Team:
        return min(teams, key=lambda t: (-t.total_points, t.ordinal))

    @staticmethod
    def _weakest(teams: list[Team]) -> Team:
        return min(teams, key=lambda t: (t.total_points, t.ordinal))

    @staticmethod
    def _swap(a: TeamMember, strong: Team, b: TeamMember, weak: Team) -> tuple[list[Move], str]:
        return (
            [(a, strong.ordinal, weak.ordinal), (b, weak.ordinal, strong.ordinal)],
            f"Swap {a.display_name} ({a.points}, Team {strong.ordinal}) with "
            f"{b.display_name} ({b.points}, Team {weak.ordinal})",
        )

    def _critical_candidates(self, teams: list[Team]):
        strong, weak = self._strongest(teams), self._weakest(teams)
        if strong is weak or not strong.players or not weak.players:
            return
        a = max(strong.players, key=lambda p: p.points)
        b = min(weak.players, key=lambda p: p.points)
        yield self._swap(a, strong, b, weak)

    def _pairwise_candidates(self, teams: list[Team]):
        pairs = [
            (s, w) for s in teams for w in teams
            if s.total_points > w.total_points
        ]
        pairs.sort(key=lambda pair: (-(pair[0].total_points - pair[1].total_points),
                                     pair[0].ordinal, pair[1].ordinal))
        critical = next(self._critical_candidates(teams), None)
        critical_ids = [m[0].player_id for m in critical[0]] if critical else []
        for strong, weak in pairs:
            for a in sorted(strong.players, key=lambda p: -p.points):
                for b in sorted(weak.players, key=lambda p: p.points):
                    if a.points <= b.points:
                        continue
                    if [a.player_id, b.player_id] == critical_ids:
                        continue
                    yield self._swap(a, strong, b, weak)

    def _secondary_candidates(self, teams: list[Team]):
        ranked = sorted(teams, key=lambda t: (-t.total_points, t.ordinal))
        strongest, weakest = ranked[0], ranked[-1]
        pairs = [(strongest, weakest)]
        if len(ranked) >= 3:
            pairs += [(strongest, ranked[-2]), (ranked[1], weakest)]
        for strong, weak in pairs:
            if strong.total_points <= weak.total_points:
                continue
            for out_pair in combinations(strong.players, 2):
                for in_pair in combinations(weak.players, 2):
                    if sum(p.points for p in out_pair) <= sum(p.points for p in in_pair):
                        continue
                    moves = [(p, strong.ordinal, weak.ordinal) for p in out_pair]
                    moves += [(p, weak.ordinal, strong.ordinal) for p in in_pair]
                    names_out = " + ".join(p.display_name for p in out_pair)
                    names_in = " + ".join(p.display_name for p in in_pair)
                    yield moves, (
                        f"Swap {names_out} (Team {strong.ordinal}) with "
                        f"{names_in} (Team {weak.ordinal})"
                    )

    def _cascading_candidates(self, teams: list[Team]):
        if len(teams) < 3:
            return
        strong, weak = self._strongest(teams), self._weakest(teams)
        middles = [t for t in sorted(teams, key=lambda t: t.ordinal) if t is not strong and t is not weak]
        for middle in middles:
            for a in strong.players:
                for c in weak.players:
                    if a.points <= c.points:
                        continue
                    for b in middle.players:
                        yield (
                            [
                                (a, strong.ordinal, middle.ordinal),
                                (b, middle.ordinal, weak.ordinal),
                                (c, weak.ordinal, strong.ordinal),
                            ],
                            f"Rotate {a.display_name} ({a.points}) Team {strong.ordinal} -> "
                            f"Team {middle.ordinal}, {b.display_name} ({b.points}) Team "
                            f"{middle.ordinal} -> Team {weak.ordinal}, {c.display_name} "
                            f"({c.points}) Team {weak.ordinal} -> Team {strong.ordinal}",
                        )

    def _fallback_candidates(self, teams: list[Team]):
        strong, weak = self._strongest(teams), self._weakest(teams)
        if strong is weak or not weak.has_capacity:
            return
        for a in sorted(strong.players, key=lambda p: -p.points):
            yield (
                [(a, strong.ordinal, weak.ordinal)],
                f"Relocate {a.display_name} ({a.points}) from Team {strong.ordinal} "
                f"to open slot on Team {weak.ordinal}",
            )
