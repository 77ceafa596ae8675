"""Ingestion normalization for raw player payloads.

Player data arrives from sign-up forms, the bot, older exports and the
database with several spellings for the same field. This module is the one
place those spellings are understood; everything downstream works with
``PlayerRecord`` only.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from atlas_balancer.errors import InputError
from atlas_balancer.models.player import ManualOverride, PlayerRecord
from atlas_balancer.utils.rank_table import normalize_rank

# Canonical field -> accepted source keys, first present wins
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "id": ("id", "player_id", "playerId", "discord_id", "discordId"),
    "display_name": (
        "display_name", "displayName", "discord_username", "discordUsername",
        "username", "name", "ign",
    ),
    "current_rank": ("current_rank", "currentRank", "rank"),
    "peak_rank": ("peak_rank", "peakRank"),
    "override_enabled": (
        "use_manual_override", "useManualOverride", "manual_override_enabled",
    ),
    "override_rank": ("manual_rank_override", "manualRankOverride", "override_rank"),
    "override_weight": (
        "manual_weight_override", "manualWeightOverride", "override_weight",
    ),
    "override_reason": ("rank_override_reason", "rankOverrideReason", "override_reason"),
    "tournaments_won": ("tournaments_won", "tournamentsWon"),
    "last_tournament_win_at": (
        "last_tournament_win_at", "last_tournament_win", "lastTournamentWin",
        "lastTournamentWinAt",
    ),
    "tournaments_played": ("tournaments_played", "tournamentsPlayed"),
    "wins": ("wins", "total_wins", "totalWins"),
    "losses": ("losses", "total_losses", "totalLosses"),
    "last_rank_update_at": (
        "last_rank_update_at", "last_rank_update", "lastRankUpdate", "lastRankUpdateAt",
    ),
    "weight_rating": ("weight_rating", "weightRating"),
}


def _pick(raw: dict[str, Any], canonical: str) -> Any:
    for key in FIELD_ALIASES[canonical]:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO string, epoch seconds, or datetime into an aware datetime.

    Naive values are assumed to be UTC. Unparseable values become None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        dt = datetime.fromtimestamp(value, tz=timezone.utc)
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _count(value: Any) -> int:
    if value is None:
        return 0
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        return 0


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def normalize_player_payload(raw: dict[str, Any]) -> PlayerRecord:
    """Convert one raw player payload into a canonical PlayerRecord.

    Args:
        raw: Player dict using any of the accepted field spellings

    Returns:
        Frozen PlayerRecord with normalized ranks, parsed timestamps and
        non-negative counts

    Raises:
        InputError: If the payload has no usable player id
    """
    player_id = _pick(raw, "id")
    if player_id is None or str(player_id).strip() == "":
        raise InputError(f"Player payload has no id: {sorted(raw)}")
    player_id = str(player_id).strip()

    display_name = _pick(raw, "display_name")
    display_name = str(display_name).strip() if display_name else player_id

    override_weight = _optional_int(_pick(raw, "override_weight"))
    override = ManualOverride(
        enabled=_flag(_pick(raw, "override_enabled")),
        rank=normalize_rank(_pick(raw, "override_rank")),
        weight=override_weight if override_weight and override_weight > 0 else None,
        reason=_pick(raw, "override_reason"),
    )

    weight_rating = _optional_int(_pick(raw, "weight_rating"))

    return PlayerRecord(
        id=player_id,
        display_name=display_name,
        current_rank=normalize_rank(_pick(raw, "current_rank")),
        peak_rank=normalize_rank(_pick(raw, "peak_rank")),
        manual_override=override,
        tournaments_won=_count(_pick(raw, "tournaments_won")),
        last_tournament_win_at=parse_datetime(_pick(raw, "last_tournament_win_at")),
        tournaments_played=_count(_pick(raw, "tournaments_played")),
        wins=_count(_pick(raw, "wins")),
        losses=_count(_pick(raw, "losses")),
        last_rank_update_at=parse_datetime(_pick(raw, "last_rank_update_at")),
        weight_rating=weight_rating if weight_rating and weight_rating > 0 else None,
    )


def normalize_players(payloads: list[dict[str, Any]]) -> list[PlayerRecord]:
    """Normalize a batch of payloads, preserving order."""
    return [normalize_player_payload(raw) for raw in payloads]
