"""Utility modules for atlas_balancer."""

from atlas_balancer.utils.rank_table import (
    RANK_POINTS,
    UNRANKED,
    normalize_rank,
    rank_points,
    skill_tier,
)
from atlas_balancer.utils.player_normalizer import (
    normalize_player_payload,
    normalize_players,
    parse_datetime,
)

__all__ = [
    "RANK_POINTS",
    "UNRANKED",
    "normalize_rank",
    "rank_points",
    "skill_tier",
    "normalize_player_payload",
    "normalize_players",
    "parse_datetime",
]
