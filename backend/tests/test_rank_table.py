"""Tests for rank table lookups and rank-name normalization."""

import pytest

from atlas_balancer.config import BalanceConfig
from atlas_balancer.errors import WeightResolutionError
from atlas_balancer.utils.rank_table import (
    RANK_POINTS,
    UNRANKED,
    normalize_rank,
    rank_points,
    skill_tier,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Immortal 3", "Immortal 3"),
        ("imm3", "Immortal 3"),
        ("IMMORTAL 3", "Immortal 3"),
        ("Immortal3", "Immortal 3"),
        ("immortal-3", "Immortal 3"),
        ("plat2", "Platinum 2"),
        ("asc 1", "Ascendant 1"),
        ("radiant", "Radiant"),
        ("RADIANT", "Radiant"),
        ("  Gold 1  ", "Gold 1"),
    ],
)
def test_normalize_rank_aliases(raw, expected):
    assert normalize_rank(raw) == expected


@pytest.mark.parametrize("raw", ["unranked", "Unrated", "UNRATED", "n/a", "-"])
def test_normalize_rank_unranked_markers(raw):
    assert normalize_rank(raw) == UNRANKED


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_normalize_rank_blank_is_none(raw):
    assert normalize_rank(raw) is None


def test_normalize_rank_keeps_unknown_value():
    """Unrecognized spellings survive so the resolver can flag them."""
    assert normalize_rank("Mythic") == "Mythic"
    assert normalize_rank(" Diamond 4 ") == "Diamond 4"


@pytest.mark.parametrize("raw,expected", [(5, "5"), (3.5, "3.5"), ({"tier": "Gold"}, "{'tier': 'Gold'}")])
def test_normalize_rank_non_string_value(raw, expected):
    assert normalize_rank(raw) == expected


def test_rank_points_lookup():
    assert rank_points("Gold 3") == 90
    assert rank_points("imm1") == 300
    assert rank_points("Radiant") == 500
    assert max(RANK_POINTS.values()) == rank_points("rad")


@pytest.mark.parametrize("raw", [None, "", "Unrated", "unranked"])
def test_rank_points_no_rank_on_record(raw):
    assert rank_points(raw) is None


@pytest.mark.parametrize("raw", ["Mythic", "Diamond 4"])
def test_rank_points_rejects_unknown_rank(raw):
    with pytest.raises(WeightResolutionError) as exc:
        rank_points(raw, "peak rank", player_id="p1")
    assert exc.value.rank == raw
    assert exc.value.player_id == "p1"
    assert "peak rank" in str(exc.value)


@pytest.mark.parametrize("raw", [5, ["Gold", 1]])
def test_rank_points_rejects_non_string_rank(raw):
    with pytest.raises(WeightResolutionError):
        rank_points(raw, "current rank")


@pytest.mark.parametrize(
    "points,tier",
    [(500, "elite"), (400, "elite"), (399, "high"), (350, "high"), (200, "medium"), (199, "low")],
)
def test_skill_tier_boundaries(points, tier):
    assert skill_tier(points, BalanceConfig()) == tier


def test_skill_tier_follows_config_thresholds():
    config = BalanceConfig(elite_threshold=450, high_tier_points=300, medium_tier_points=150)

    assert skill_tier(420, config) == "high"
    assert skill_tier(300, config) == "high"
    assert skill_tier(299, config) == "medium"
    assert skill_tier(149, config) == "low"
