"""Stored balance report formats.

Two report shapes exist in stored tournament data: the legacy snake-draft
step list and the current engine output. They are modelled as a tagged
union discriminated by ``format`` and detected once, at the boundary.
"""

from dataclasses import dataclass, field
from typing import Any, Literal, Union

from atlas_balancer.errors import InputError
from atlas_balancer.models.results import REPORT_FORMAT

LEGACY_FORMAT = "legacy_snake"


@dataclass(frozen=True)
class LegacyStep:
    """One snake-draft placement as the old balancer recorded it."""

    round: int
    player_name: str
    player_rank: str | None
    points: int
    team_name: str
    reasoning: str = ""


@dataclass(frozen=True)
class LegacyBalanceReport:
    format: Literal["legacy_snake"]
    steps: tuple[LegacyStep, ...]
    final_team_stats: tuple[dict[str, Any], ...]
    max_point_difference: int
    avg_point_difference: float
    quality_score: str | None = None


@dataclass(frozen=True)
class AtlasBalanceReport:
    format: Literal["atlas_v2"]
    payload: dict[str, Any]
    migrated_from: str | None = None
    notes: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.payload)
        data["format"] = REPORT_FORMAT
        if self.migrated_from:
            data["migrated_from"] = self.migrated_from
            data["migration_notes"] = list(self.notes)
        return data


BalanceReport = Union[LegacyBalanceReport, AtlasBalanceReport]


def _get(payload: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return default


def _parse_legacy(payload: dict[str, Any]) -> LegacyBalanceReport:
    raw_steps = _get(payload, "balanceSteps", "balance_steps", default=[])
    if not isinstance(raw_steps, list):
        raise InputError("Legacy report balanceSteps must be a list")

    steps = []
    for index, raw in enumerate(raw_steps, start=1):
        if not isinstance(raw, dict):
            raise InputError(f"Legacy report step {index} is not an object")
        player = raw.get("player") if isinstance(raw.get("player"), dict) else {}
        name = _get(player, "discordUsername", "username", "name") or _get(
            raw, "playerName", "player_name"
        )
        team_name = _get(raw, "assignedTo", "assigned_to", "team")
        if not name or not team_name:
            raise InputError(f"Legacy report step {index} has no player or team")
        try:
            round_number = int(_get(raw, "round", default=index))
            points = int(_get(player, "points", "weight") or _get(raw, "points", default=0))
        except (TypeError, ValueError):
            raise InputError(f"Legacy report step {index} has a non-numeric round or points")
        steps.append(
            LegacyStep(
                round=round_number,
                player_name=str(name),
                player_rank=_get(player, "rank", "currentRank") or _get(raw, "rank"),
                points=points,
                team_name=str(team_name),
                reasoning=str(_get(raw, "reasoning", default="")),
            )
        )

    return LegacyBalanceReport(
        format=LEGACY_FORMAT,
        steps=tuple(steps),
        final_team_stats=tuple(_get(payload, "finalTeamStats", "final_team_stats", default=[])),
        max_point_difference=int(_get(payload, "maxPointDifference", "max_point_difference", default=0)),
        avg_point_difference=float(_get(payload, "avgPointDifference", "avg_point_difference", default=0.0)),
        quality_score=_get(payload, "balanceQuality", "qualityScore", "quality_score"),
    )


def parse_report(payload: dict[str, Any]) -> BalanceReport:
    """Detect a stored report's shape and parse it.

    Raises:
        InputError: If the payload matches neither known format
    """
    if not isinstance(payload, dict):
        raise InputError("Report payload must be an object")

    declared = payload.get("format")
    if declared == REPORT_FORMAT or (
        declared is None and ("execution_plan" in payload or "executionPlan" in payload)
    ):
        return AtlasBalanceReport(format=REPORT_FORMAT, payload=dict(payload))
    if declared == LEGACY_FORMAT or (
        declared is None and ("balanceSteps" in payload or "balance_steps" in payload)
    ):
        return _parse_legacy(payload)
    raise InputError(f"Unrecognized report format: {declared!r}")


def migrate_report(report: BalanceReport) -> AtlasBalanceReport:
    """Upgrade a report to the current format. Current reports pass through.

    Legacy reports only kept a step list, so rosters are rebuilt from the
    steps in their recorded order and every step becomes a placement ledger
    entry. No decisions or analyses are invented for them.
    """
    if isinstance(report, AtlasBalanceReport):
        return report

    team_names: list[str] = []
    rosters: dict[str, list[LegacyStep]] = {}
    for step in report.steps:
        if step.team_name not in rosters:
            team_names.append(step.team_name)
            rosters[step.team_name] = []
        rosters[step.team_name].append(step)

    teams = []
    totals = []
    for ordinal, name in enumerate(team_names, start=1):
        roster = rosters[name]
        total = sum(s.points for s in roster)
        totals.append(total)
        teams.append({
            "id": f"team-{ordinal}",
            "ordinal": ordinal,
            "name": name,
            "total_points": total,
            "players": [
                {
                    "player_id": s.player_name,
                    "display_name": s.player_name,
                    "points": s.points,
                    "base_points": s.points,
                    "source": "legacy",
                    "rank": s.player_rank,
                }
                for s in roster
            ],
        })

    running: dict[str, int] = {name: 0 for name in team_names}
    ledger = []
    for index, step in enumerate(report.steps, start=1):
        running[step.team_name] += step.points
        ledger.append({
            "step": index,
            "phase": "legacy_snake",
            "player_id": step.player_name,
            "display_name": step.player_name,
            "points": step.points,
            "team_ordinal": team_names.index(step.team_name) + 1,
            "reasoning": step.reasoning or f"Round {step.round}: assigned to {step.team_name}",
            "team_totals_after": [running[n] for n in team_names],
        })

    spread = (max(totals) - min(totals)) if len(totals) > 1 else 0
    notes = ["Rosters rebuilt from legacy snake-draft steps"]
    if report.max_point_difference and report.max_point_difference != spread:
        notes.append(
            f"Recorded max point difference {report.max_point_difference} "
            f"differs from rebuilt spread {spread}"
        )

    payload = {
        "teams": teams,
        "balance_analysis": {
            "balance": {
                "average_points": round(sum(totals) / len(totals), 2) if totals else 0.0,
                "min_points": min(totals) if totals else 0,
                "max_points": max(totals) if totals else 0,
                "spread": spread,
                "quality_tier": report.quality_score,
            },
        },
        "player_analyses": [],
        "decisions": [],
        "execution_plan": {"steps": [], "validation_required": False},
        "swap_analysis": None,
        "placement_ledger": ledger,
        "excluded_players": [],
    }
    return AtlasBalanceReport(
        format=REPORT_FORMAT,
        payload=payload,
        migrated_from=LEGACY_FORMAT,
        notes=tuple(notes),
    )
