#!/usr/bin/env python3
"""Balance a JSON player snapshot from the command line.

The snapshot is either a list of player objects or an object with a
"players" list. Any accepted field spelling works (see player_normalizer).

Usage:
    uv run python scripts/balance_snapshot.py players.json --teams 4 --capacity 5
    uv run python scripts/balance_snapshot.py players.json --evidence-mode adaptive \
        --as-of 2026-03-01 --output report.json --audit
"""
import argparse
import json
import sys
from pathlib import Path

from atlas_balancer.config import settings
from atlas_balancer.errors import InputError
from atlas_balancer.models.results import BalanceResult
from atlas_balancer.services.balance_logger import BalanceLogger
from atlas_balancer.services.balancing_engine import AtlasBalancingEngine
from atlas_balancer.utils.player_normalizer import normalize_players, parse_datetime


def load_snapshot(path: Path) -> list[dict]:
    """Read player payloads from a snapshot file."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("players", [])
    if not isinstance(data, list):
        raise InputError(f"Snapshot must be a list of players: {path}")
    return data


def format_summary(result: BalanceResult) -> str:
    """Plain-text team overview."""
    lines = []
    for team in result.teams:
        lines.append(f"{team.name} ({team.total_points} pts)")
        for player in team.players:
            marker = " *" if player.is_elite else ""
            lines.append(f"  {player.display_name:<24} {player.points:>4}{marker}")
    balance = result.balance_analysis.balance
    lines.append("")
    lines.append(f"Spread: {balance.spread} ({balance.quality_tier}), score {balance.overall_score}")
    for excluded in result.excluded_players:
        lines.append(f"Excluded: {excluded.display_name} - {excluded.reason}")
    for decision in result.decisions:
        lines.append(f"[{decision.priority.value}] {decision.id}: {decision.reasoning}")
    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(description="Balance a player snapshot into teams")
    parser.add_argument("snapshot", type=Path, help="JSON file with player payloads")
    parser.add_argument("--teams", type=int, default=None, help="Number of teams")
    parser.add_argument("--capacity", type=int, default=None, help="Players per team")
    parser.add_argument("--elite-threshold", type=int, default=None, help="Elite weight threshold")
    parser.add_argument("--evidence-mode", choices=["off", "evidence", "adaptive"], default=None)
    parser.add_argument("--as-of", default=None, help="Reference time (ISO date) for recency heuristics")
    parser.add_argument("--output", type=Path, default=None, help="Write the full JSON report here")
    parser.add_argument("--audit", action="store_true", help="Save the audit trail to the diagnostics dir")

    args = parser.parse_args()

    if not args.snapshot.exists():
        raise FileNotFoundError(f"Snapshot not found: {args.snapshot}")

    try:
        config = settings.balance_config(
            team_count=args.teams,
            team_capacity=args.capacity,
            elite_threshold=args.elite_threshold,
            evidence_mode=args.evidence_mode,
            as_of=parse_datetime(args.as_of),
        )
        players = normalize_players(load_snapshot(args.snapshot))
        audit = BalanceLogger(run_id=args.snapshot.stem)
        result = AtlasBalancingEngine(config, logger=audit).run(players)
    except InputError as e:
        print(f"Cannot balance snapshot: {e}", file=sys.stderr)
        sys.exit(1)

    print(format_summary(result))

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(result.to_dict(), f, indent=2)
        print(f"\nReport written to {args.output}")

    if args.audit:
        saved = audit.save(Path(settings.diagnostics_dir))
        if saved:
            print(f"Audit trail saved to {saved}")


if __name__ == "__main__":
    main()
