"""Centralized rank table and rank-name normalization.

Every rank lookup in the codebase goes through this module so that the
point values and the accepted spellings live in exactly one place. The
canonical format is title case with a space before the division number:
"Iron 1" ... "Immortal 3", plus "Radiant".
"""

from typing import TYPE_CHECKING, Any, Optional

from atlas_balancer.errors import WeightResolutionError

if TYPE_CHECKING:
    from atlas_balancer.config import BalanceConfig

# Points awarded per canonical rank
RANK_POINTS: dict[str, int] = {
    "Iron 1": 10,
    "Iron 2": 15,
    "Iron 3": 20,
    "Bronze 1": 25,
    "Bronze 2": 30,
    "Bronze 3": 35,
    "Silver 1": 40,
    "Silver 2": 50,
    "Silver 3": 60,
    "Gold 1": 70,
    "Gold 2": 80,
    "Gold 3": 90,
    "Platinum 1": 100,
    "Platinum 2": 115,
    "Platinum 3": 130,
    "Diamond 1": 150,
    "Diamond 2": 170,
    "Diamond 3": 190,
    "Ascendant 1": 215,
    "Ascendant 2": 240,
    "Ascendant 3": 265,
    "Immortal 1": 300,
    "Immortal 2": 350,
    "Immortal 3": 400,
    "Radiant": 500,
}

UNRANKED = "Unranked"

# Markers meaning "no rank on record"
UNRANKED_MARKERS = frozenset({"unranked", "unrated", "none", "n/a", "-"})

# Short tier names seen in sign-up sheets and bot commands
TIER_ALIASES: dict[str, str] = {
    "iron": "Iron",
    "bronze": "Bronze",
    "silver": "Silver",
    "gold": "Gold",
    "plat": "Platinum",
    "platinum": "Platinum",
    "dia": "Diamond",
    "diamond": "Diamond",
    "asc": "Ascendant",
    "ascendant": "Ascendant",
    "imm": "Immortal",
    "immo": "Immortal",
    "immortal": "Immortal",
    "rad": "Radiant",
    "radiant": "Radiant",
}

# Fully spelled aliases resolved before tier parsing
RANK_ALIASES: dict[str, str] = {
    "radiant": "Radiant",
    "RADIANT": "Radiant",
    "rad": "Radiant",
    "unranked": UNRANKED,
    "UNRANKED": UNRANKED,
    "unrated": UNRANKED,
    "Unrated": UNRANKED,
}


def normalize_rank(rank: Any) -> Optional[str]:
    """Normalize a rank string to its canonical name.

    Args:
        rank: Rank string in any known format (e.g., "imm3", "IMMORTAL 3",
            "Immortal3", "radiant", "unrated")

    Returns:
        The canonical rank name, "Unranked" for a no-rank marker, None for a
        null/blank value, or the stripped input unchanged when the spelling is
        not recognized (so callers can report it as malformed). Non-string
        values are kept as their string form and never match the table.

    Examples:
        >>> normalize_rank("imm3")
        'Immortal 3'
        >>> normalize_rank("Unrated")
        'Unranked'
        >>> normalize_rank("  ") is None
        True
        >>> normalize_rank(5)
        '5'
    """
    if rank is None:
        return None
    if not isinstance(rank, str):
        return str(rank).strip() or None

    stripped = rank.strip()
    if not stripped:
        return None

    if stripped in RANK_POINTS:
        return stripped
    if stripped in RANK_ALIASES:
        return RANK_ALIASES[stripped]

    lowered = stripped.lower()
    if lowered in UNRANKED_MARKERS:
        return UNRANKED
    if lowered in RANK_ALIASES:
        return RANK_ALIASES[lowered]

    # "immortal 3", "imm3", "Immortal-3"
    compact = lowered.replace(" ", "").replace("-", "").replace("_", "")
    tier_part = compact.rstrip("0123456789")
    division = compact[len(tier_part):]
    tier = TIER_ALIASES.get(tier_part)
    if tier == "Radiant" and not division:
        return "Radiant"
    if tier and division:
        candidate = f"{tier} {int(division)}"
        if candidate in RANK_POINTS:
            return candidate

    return stripped


def rank_points(
    rank: Any, field_name: str = "rank", player_id: Optional[str] = None
) -> Optional[int]:
    """Look up the base points for a rank.

    Args:
        rank: Rank value in any known format
        field_name: Name used in the error message (e.g. "peak rank")
        player_id: Player the rank belongs to, carried on the error

    Returns:
        Base points from the rank table, or None when no rank is on record
        (null, blank, or an unranked marker)

    Raises:
        WeightResolutionError: If a rank is present but not recognized
    """
    normalized = normalize_rank(rank)
    if normalized is None or normalized == UNRANKED:
        return None
    if normalized not in RANK_POINTS:
        raise WeightResolutionError(
            f"Unknown {field_name} {rank!r}", player_id=player_id, rank=normalized
        )
    return RANK_POINTS[normalized]


def skill_tier(points: float, config: "BalanceConfig") -> str:
    """Bucket a weight into elite/high/medium/low using the config's thresholds."""
    if points >= config.elite_threshold:
        return "elite"
    if points >= config.high_tier_points:
        return "high"
    if points >= config.medium_tier_points:
        return "medium"
    return "low"
