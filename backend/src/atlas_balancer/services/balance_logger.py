"""Per-run audit trail for the balancing pipeline.

Every engine stage reports what it decided to the ``BalanceLogger`` it was
handed. One logger belongs to one run; nothing is shared between runs.

Usage:
    from atlas_balancer.services.balance_logger import BalanceLogger

    audit = BalanceLogger()
    engine = AtlasBalancingEngine(config, logger=audit)
    result = engine.run(players)

    audit.entries_for("formation")
    audit.save(Path("logs/balancing"))  # optional, caller-invoked
"""
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

# Configure module logger
module_logger = logging.getLogger("atlas_balancer.balance_diagnostics")

CATEGORIES = ("weight", "formation", "optimization", "validation", "general")


class BalanceLogger:
    """Collects ordered, structured entries for one balancing run.

    Entries carry a sequence number instead of a timestamp, so two runs over
    the same input produce identical trails.
    """

    def __init__(self, run_id: str = "run", enabled: bool = True):
        """Initialize the collector.

        Args:
            run_id: Identifier used in saved file names
            enabled: Whether entries are recorded. Saving to disk is the
                caller's decision (see Settings.diagnostics).
        """
        self.enabled = enabled
        self.run_id = run_id
        self.entries: list[dict[str, Any]] = []
        self._seq = 0

    def log(self, category: str, event: str, message: str, **data: Any) -> None:
        """Append one entry."""
        if not self.enabled:
            return
        if category not in CATEGORIES:
            category = "general"
        self._seq += 1
        self.entries.append({
            "seq": self._seq,
            "category": category,
            "event": event,
            "message": message,
            **data,
        })
        module_logger.debug(f"[{category}] {event}: {message}")

    def weight_calculated(self, player_id: str, points: int, source: str, reasoning: list[str]):
        self.log(
            "weight", "weight_calculated",
            f"{player_id} resolved to {points} points via {source}",
            player_id=player_id, points=points, source=source, reasoning=list(reasoning),
        )

    def weight_anomaly(self, player_id: str, problem: str, fallback_points: int):
        """Record malformed rank data that was resolved to a fallback weight."""
        self.log(
            "weight", "weight_anomaly",
            f"{player_id}: {problem}; using {fallback_points} points",
            player_id=player_id, problem=problem, fallback_points=fallback_points,
        )
        module_logger.warning(f"Weight anomaly for {player_id}: {problem}")

    def player_placed(self, player_id: str, team_ordinal: int, points: int, phase: str, reasoning: str):
        self.log(
            "formation", "player_placed",
            f"{player_id} ({points}) -> Team {team_ordinal}: {reasoning}",
            player_id=player_id, team_ordinal=team_ordinal, points=points, phase=phase,
        )

    def player_excluded(self, player_id: str, points: int, reason: str):
        self.log(
            "formation", "player_excluded",
            f"{player_id} ({points}) excluded: {reason}",
            player_id=player_id, points=points, reason=reason,
        )

    def swap_evaluated(self, suggestion_id: str, strategy: str, outcome: str,
                       before: int, after: int, reason: Optional[str] = None):
        self.log(
            "optimization", "swap_evaluated",
            f"{strategy} {suggestion_id}: {outcome} (spread {before} -> {after})"
            + (f" - {reason}" if reason else ""),
            suggestion_id=suggestion_id, strategy=strategy, outcome=outcome,
            spread_before=before, spread_after=after, reason=reason,
        )

    def decision_made(self, decision_id: str, decision_type: str, priority: str, reasoning: str):
        self.log(
            "optimization", "decision_made",
            f"{decision_id} [{priority}] {reasoning}",
            decision_id=decision_id, decision_type=decision_type, priority=priority,
        )

    def validation(self, check: str, passed: bool, detail: str):
        self.log(
            "validation", "check",
            f"{check}: {'ok' if passed else 'FAILED'} - {detail}",
            check=check, passed=passed,
        )
        if not passed:
            module_logger.warning(f"Validation check failed: {check} - {detail}")

    def error(self, error_message: str, category: str = "general"):
        """Record a recovered error."""
        self.log(category, "error", error_message)
        module_logger.error(f"Balancing error logged: {error_message[:200]}")

    def extend(self, other: "BalanceLogger") -> None:
        """Append another collector's entries, renumbering them in order."""
        for entry in other.entries:
            data = {k: v for k, v in entry.items() if k not in ("seq", "category", "event", "message")}
            self.log(entry["category"], entry["event"], entry["message"], **data)

    def entries_for(self, category: str) -> list[dict[str, Any]]:
        return [e for e in self.entries if e["category"] == category]

    def summary(self) -> dict[str, Any]:
        """Counts per category and event."""
        by_category = {c: 0 for c in CATEGORIES}
        by_event: dict[str, int] = {}
        for entry in self.entries:
            by_category[entry["category"]] += 1
            by_event[entry["event"]] = by_event.get(entry["event"], 0) + 1
        return {
            "total_entries": len(self.entries),
            "by_category": by_category,
            "by_event": by_event,
            "anomalies": by_event.get("weight_anomaly", 0),
            "errors": by_event.get("error", 0),
        }

    def save(self, output_dir: Path, suffix: str = "") -> Optional[Path]:
        """Save the trail to a JSON file.

        Returns:
            Path to saved file, or None if disabled/empty
        """
        if not self.enabled or not self.entries:
            return None

        output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        output_path = output_dir / f"{self.run_id}_{timestamp}{suffix}.json"

        with open(output_path, "w") as f:
            json.dump({
                "metadata": {"run_id": self.run_id, "saved_at": datetime.now().isoformat()},
                "summary": self.summary(),
                "entries": self.entries,
            }, f, indent=2)

        module_logger.info(f"Balancing diagnostics saved: {output_path}")
        return output_path
