"""Scores completed team sets and detects structural problems."""

from atlas_balancer.config import BalanceConfig
from atlas_balancer.models.composition import (
    BalanceAnalysis,
    CompositionIssue,
    CompositionStrength,
    GlobalBalance,
    TeamComposition,
)
from atlas_balancer.models.team import Team

BASE_TEAM_SCORE = 70
TIERS = ("elite", "high", "medium", "low")


def population_variance(values: list[int]) -> float:
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    return sum((v - mean) ** 2 for v in values) / len(values)


def quality_tier(spread: int, elite_distribution: list[int]) -> str:
    """Classify global balance from spread and elite placement.

    Checked from worst to best; the first matching tier wins.
    """
    max_elite = max(elite_distribution, default=0)
    stacked = sum(1 for count in elite_distribution if count > 1)
    if max_elite > 2 or stacked > 1:
        return "critical"
    if max_elite > 1 or spread > 200:
        return "poor"
    if spread > 150:
        return "acceptable"
    if spread <= 50:
        return "excellent"
    if spread <= 100:
        return "good"
    return "acceptable"


class CompositionAnalyzer:
    """Per-team composition scoring plus a global balance verdict."""

    def __init__(self, config: BalanceConfig):
        self.config = config

    def analyze(self, teams: list[Team]) -> BalanceAnalysis:
        compositions = [self.analyze_team(team) for team in teams]
        return BalanceAnalysis(teams=tuple(compositions), balance=self._global(teams, compositions))

    def analyze_team(self, team: Team) -> TeamComposition:
        points = [p.points for p in team.players]
        tier_counts = {tier: 0 for tier in TIERS}
        for player in team.players:
            tier_counts[player.skill_tier] = tier_counts.get(player.skill_tier, 0) + 1
        variance = population_variance(points)

        issues = self._issues(team, tier_counts, variance)
        strengths = self._strengths(tier_counts, variance)

        score = BASE_TEAM_SCORE
        score += sum(issue.point_impact for issue in issues) / 5
        score += sum(strength.benefit for strength in strengths) / 3
        score = max(0, min(100, round(score)))

        return TeamComposition(
            team_ordinal=team.ordinal,
            total_points=team.total_points,
            average_points=round(sum(points) / len(points), 2) if points else 0.0,
            elite_count=team.elite_count,
            tier_counts=tier_counts,
            variance=round(variance, 2),
            score=score,
            issues=tuple(issues),
            strengths=tuple(strengths),
            recommendations=tuple(self._team_recommendations(team, issues)),
        )

    def _issues(self, team: Team, tier_counts: dict[str, int], variance: float) -> list[CompositionIssue]:
        issues = []
        elite_count = team.elite_count
        if elite_count > 1:
            issues.append(CompositionIssue(
                type="skill_stacking",
                severity="critical" if elite_count > 2 else "high",
                description=f"{elite_count} elite players on one team",
                point_impact=-50 * elite_count,
                fix=f"Redistribute {elite_count - 1} elite player(s) to other teams",
            ))

        if team.size and tier_counts["elite"] + tier_counts["high"] > team.size * 0.6:
            issues.append(CompositionIssue(
                type="elite_concentration",
                severity="medium",
                description="High concentration of top-tier players",
                point_impact=-25,
                fix="Balance with more medium-tier players",
            ))

        if variance > 10_000:
            issues.append(CompositionIssue(
                type="extreme_variance",
                severity="medium",
                description="Large skill gap within team",
                point_impact=-20,
                fix="Swap players to reduce internal skill gaps",
            ))
        return issues

    def _strengths(self, tier_counts: dict[str, int], variance: float) -> list[CompositionStrength]:
        strengths = []
        if tier_counts["elite"] <= 1 and tier_counts["high"] >= 1 and tier_counts["medium"] >= 1:
            strengths.append(CompositionStrength(
                type="balanced_distribution",
                description="Good skill tier distribution",
                benefit=30,
            ))
        if sum(1 for count in tier_counts.values() if count > 0) >= 3:
            strengths.append(CompositionStrength(
                type="skill_diversity",
                description="Diverse skill levels represented",
                benefit=20,
            ))
        if variance < 2_500:
            strengths.append(CompositionStrength(
                type="consistent_level",
                description="Consistent skill level across players",
                benefit=15,
            ))
        return strengths

    def _team_recommendations(self, team: Team, issues: list[CompositionIssue]) -> list[str]:
        recommendations = []
        for issue in issues:
            if issue.type == "skill_stacking":
                for player in [p for p in team.players if p.is_elite][1:]:
                    recommendations.append(
                        f"Redistribute {player.display_name} ({player.points} pts) "
                        f"to a team without elite players"
                    )
            elif issue.type == "extreme_variance":
                recommendations.append("Swap players to reduce skill gaps within the team")
        return recommendations

    def _global(self, teams: list[Team], compositions: list[TeamComposition]) -> GlobalBalance:
        totals = [t.total_points for t in teams]
        elite_distribution = [t.elite_count for t in teams]
        spread = (max(totals) - min(totals)) if totals else 0
        stacked = sum(1 for count in elite_distribution if count > 1)

        score = 100 - min(spread / 5, 40)
        score -= sum(25 * (count - 1) for count in elite_distribution if count > 1)
        if compositions:
            score = (score + sum(c.score for c in compositions) / len(compositions)) / 2
        overall = max(0, min(100, round(score)))

        critical = []
        if stacked:
            critical.append(f"{stacked} team(s) have multiple elite players")
        if spread > self.config.swap_trigger_spread:
            critical.append(f"Extreme point imbalance: {spread} point difference")
        for comp in compositions:
            descriptions = [i.description for i in comp.issues if i.severity == "critical"]
            if descriptions:
                critical.append(f"Team {comp.team_ordinal}: {', '.join(descriptions)}")

        return GlobalBalance(
            average_points=round(sum(totals) / len(totals), 2) if totals else 0.0,
            min_points=min(totals, default=0),
            max_points=max(totals, default=0),
            spread=spread,
            elite_distribution=tuple(elite_distribution),
            stacked_teams=stacked,
            quality_tier=quality_tier(spread, elite_distribution),
            overall_score=overall,
            critical_issues=tuple(critical),
            recommendations=tuple(self._global_recommendations(teams)),
        )

    def _global_recommendations(self, teams: list[Team]) -> list[str]:
        recommendations = []
        for team in teams:
            elites = [p for p in team.players if p.is_elite]
            if len(elites) <= 1:
                continue
            targets = [t for t in teams if t.elite_count == 0 and t.ordinal != team.ordinal]
            if not targets:
                recommendations.append(
                    f"Team {team.ordinal} holds {len(elites)} elite players but no elite-free "
                    f"team is available"
                )
                continue
            for index, player in enumerate(elites[1:]):
                target = targets[index % len(targets)]
                recommendations.append(
                    f"Move {player.display_name} from Team {team.ordinal} to Team {target.ordinal}"
                )
        return recommendations
