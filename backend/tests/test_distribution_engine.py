"""Tests for initial team formation."""

import pytest

from atlas_balancer.config import BalanceConfig
from atlas_balancer.models.team import TeamMember
from atlas_balancer.services.balance_logger import BalanceLogger
from atlas_balancer.services.distribution_engine import DistributionEngine
from atlas_balancer.utils.rank_table import skill_tier


def member(player_id: str, points: int) -> TeamMember:
    return TeamMember(
        player_id=player_id,
        display_name=player_id.upper(),
        points=points,
        base_points=points,
        source="current_rank",
        is_elite=points >= 400,
        skill_tier=skill_tier(points, BalanceConfig()),
    )


def roster_ids(team):
    return [p.player_id for p in team.players]


def test_regular_fill_goes_to_lightest_team():
    engine = DistributionEngine(BalanceConfig(team_count=2, team_capacity=2))
    result = engine.distribute([member("a", 300), member("b", 200), member("c", 150), member("d", 120)])

    t1, t2 = result.teams
    assert roster_ids(t1) == ["a", "d"]
    assert roster_ids(t2) == ["b", "c"]
    assert [s.phase for s in result.ledger] == ["regular_fill"] * 4
    assert result.excluded == []


def test_over_capacity_excludes_lowest_weights():
    audit = BalanceLogger()
    engine = DistributionEngine(BalanceConfig(team_count=2, team_capacity=2), audit)
    members = [member("a", 100), member("b", 200), member("c", 300), member("d", 150), member("e", 120)]

    result = engine.distribute(members)

    assert sum(t.size for t in result.teams) == 4
    assert [e.player_id for e in result.excluded] == ["a"]
    excluded = result.excluded[0]
    assert excluded.rank_position == 5
    assert "4 slots" in excluded.reason
    assert [e["player_id"] for e in audit.entries if e["event"] == "player_excluded"] == ["a"]


def test_equal_weights_keep_input_order():
    engine = DistributionEngine(BalanceConfig(team_count=2, team_capacity=1))
    result = engine.distribute([member("first", 150), member("second", 150), member("third", 150)])

    assert roster_ids(result.teams[0]) == ["first"]
    assert roster_ids(result.teams[1]) == ["second"]
    assert [e.player_id for e in result.excluded] == ["third"]


def test_elites_land_on_different_teams():
    engine = DistributionEngine(BalanceConfig(team_count=2, team_capacity=5))
    members = [member(f"r{i}", 150 + i) for i in range(8)]
    members.insert(3, member("e1", 500))
    members.insert(7, member("e2", 420))

    result = engine.distribute(members)

    assert [t.elite_count for t in result.teams] == [1, 1]
    assert [s.phase for s in result.ledger[:2]] == ["elite_dispersion", "elite_dispersion"]
    assert result.ledger[0].player_id == "e1"
    assert result.ledger[0].team_ordinal == 1
    assert result.ledger[1].team_ordinal == 2


@pytest.mark.parametrize("team_count,elite_count", [(3, 3), (4, 3), (5, 2)])
def test_no_second_elite_while_an_elite_free_team_exists(team_count, elite_count):
    engine = DistributionEngine(BalanceConfig(team_count=team_count, team_capacity=3))
    members = [member(f"e{i}", 400 + 10 * i) for i in range(elite_count)]
    members += [member(f"r{i}", 100 + 20 * i) for i in range(team_count * 3 - elite_count)]

    result = engine.distribute(members)

    assert max(t.elite_count for t in result.teams) == 1


def test_extra_elite_goes_to_lowest_dispersion_score():
    engine = DistributionEngine(BalanceConfig(team_count=3, team_capacity=3))
    members = [member("e1", 500), member("e2", 450), member("e3", 410), member("e4", 405)]

    result = engine.distribute(members)

    assert roster_ids(result.teams[2]) == ["e3", "e4"]
    last = result.ledger[-1]
    assert "no elite-free team left" in last.reasoning
    assert "T1=600" in last.reasoning


def test_ledger_records_running_totals():
    engine = DistributionEngine(BalanceConfig(team_count=2, team_capacity=3))
    result = engine.distribute([member(f"p{i}", 100 + 50 * i) for i in range(6)])

    assert [s.step for s in result.ledger] == list(range(1, 7))
    final = result.ledger[-1]
    assert final.team_totals_after == tuple(t.total_points for t in result.teams)
    assert final.team_sizes_after == (3, 3)


def test_empty_member_list():
    result = DistributionEngine(BalanceConfig()).distribute([])
    assert len(result.teams) == 2
    assert all(t.size == 0 for t in result.teams)
    assert result.ledger == []
