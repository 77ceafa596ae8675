"""Tests for post-distribution swap search."""

from atlas_balancer.config import BalanceConfig
from atlas_balancer.models.team import Team, TeamMember, clone_teams, team_spread
from atlas_balancer.services.balance_logger import BalanceLogger
from atlas_balancer.services.swap_search import SwapPassResult, SwapSearch, apply_moves
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


def team(ordinal: int, *points_by_id: tuple[str, int], capacity: int = 5) -> Team:
    return Team(ordinal=ordinal, capacity=capacity, players=[member(pid, pts) for pid, pts in points_by_id])


def snapshot(teams):
    return [t.to_dict() for t in teams]


# ======================================================================
# apply_moves
# ======================================================================


def test_apply_moves_two_for_two_keeps_slots():
    teams = [
        team(1, ("a", 300), ("b", 250), ("c", 200)),
        team(2, ("d", 150), ("e", 120), ("f", 100)),
    ]
    a, b = teams[0].players[:2]
    d, e = teams[1].players[:2]

    after = apply_moves(teams, [(a, 1, 2), (b, 1, 2), (d, 2, 1), (e, 2, 1)])

    assert [p.player_id for p in after[0].players] == ["d", "e", "c"]
    assert [p.player_id for p in after[1].players] == ["a", "b", "f"]
    # originals untouched
    assert [p.player_id for p in teams[0].players] == ["a", "b", "c"]


def test_apply_moves_one_way_relocation_appends():
    teams = [team(1, ("a", 300), ("b", 250)), team(2, ("c", 100))]
    after = apply_moves(teams, [(teams[0].players[0], 1, 2)])

    assert [p.player_id for p in after[0].players] == ["b"]
    assert [p.player_id for p in after[1].players] == ["c", "a"]


# ======================================================================
# Passes
# ======================================================================


def test_critical_swap_accepted():
    audit = BalanceLogger()
    search = SwapSearch(BalanceConfig(), audit)
    teams = [
        team(1, ("a", 390), ("b", 300), ("c", 200), ("d", 150), ("e", 100)),
        team(2, ("f", 250), ("g", 150), ("h", 120), ("i", 110), ("j", 100)),
    ]
    before = snapshot(teams)

    result, analysis = search.optimize(teams)

    assert team_spread(teams) == 410
    assert team_spread(result) == 170
    assert snapshot(teams) == before

    assert analysis.passes_run == 1
    assert analysis.final_outcome == "improved"
    assert analysis.overall_improvement == 240
    assert len(analysis.successful_swaps) == 1
    swap = analysis.successful_swaps[0]
    assert swap.strategy == "critical_swap"
    assert swap.player_ids == ("a", "j")
    assert swap.balance_impact.before == 410
    assert swap.balance_impact.after == 170
    assert swap.balance_impact.violation_resolved
    assert swap.expected_improvement > 50
    assert [e["outcome"] for e in audit.entries_for("optimization")] == ["executed"]


def test_no_improvement_leaves_teams_identical():
    search = SwapSearch(BalanceConfig())
    teams = [team(1, ("a", 350), capacity=1), team(2, ("b", 100), capacity=1)]
    before = snapshot(teams)

    pass_result = search.run_pass(teams, 1)

    assert pass_result.applied is None
    assert snapshot(pass_result.teams) == before
    assert snapshot(teams) == before
    assert len(pass_result.suggestions) == 1
    rejected = pass_result.suggestions[0]
    assert rejected.outcome == "rejected"
    assert "50 pt minimum" in rejected.rejection_reason

    _, analysis = search.optimize(teams)
    assert analysis.final_outcome == "no_improvement"
    assert analysis.overall_improvement == 0
    assert analysis.passes_run == 1
    assert analysis.strategies_attempted == (
        "critical_swap", "pairwise_swap", "secondary_swap", "cascading_rotation", "fallback_relocation",
    )


def test_fallback_relocation_into_open_slot():
    search = SwapSearch(BalanceConfig())
    teams = [team(1, ("a", 300), ("b", 300), capacity=2), team(2, capacity=2)]

    result, analysis = search.optimize(teams)

    assert analysis.final_outcome == "fallback_used"
    assert [t.size for t in result] == [1, 1]
    assert team_spread(result) == 0
    relocation = analysis.successful_swaps[0]
    assert relocation.strategy == "fallback_relocation"
    assert relocation.source_team == 1
    assert relocation.target_team == 2


def test_accepted_moves_always_beat_threshold():
    search = SwapSearch(BalanceConfig())
    teams = [
        team(1, ("a", 380), ("b", 370), ("c", 360), ("d", 300), ("e", 290)),
        team(2, ("f", 250), ("g", 240), ("h", 220), ("i", 130), ("j", 110)),
        team(3, ("k", 200), ("l", 150), ("m", 140), ("n", 120), ("o", 100)),
    ]

    result, analysis = search.optimize(teams)

    for swap in analysis.successful_swaps:
        assert swap.balance_impact.before - swap.balance_impact.after > 50
    for swap in analysis.rejected_swaps:
        assert swap.rejection_reason
    assert sorted(p.player_id for t in result for p in t.players) == sorted("abcdefghijklmno")
    assert all(t.size <= t.capacity for t in result)


def test_trigger_spread_not_exceeded_means_no_passes():
    search = SwapSearch(BalanceConfig())
    teams = [team(1, ("a", 300)), team(2, ("b", 150))]

    result, analysis = search.optimize(teams)

    assert analysis.passes_run == 0
    assert analysis.total_suggestions_considered == 0
    assert snapshot(result) == snapshot(teams)


def test_max_swap_passes_zero_disables_search():
    search = SwapSearch(BalanceConfig(max_swap_passes=0))
    teams = [team(1, ("a", 390), ("b", 300)), team(2, ("c", 100))]

    _, analysis = search.optimize(teams)

    assert analysis.passes_run == 0
    assert analysis.final_outcome == "no_improvement"


# ======================================================================
# Constraints and generators
# ======================================================================


def test_new_stacking_detected():
    before = [team(1, ("a", 450)), team(2, ("b", 410)), team(3, ("c", 100))]
    after = apply_moves(before, [(before[1].players[0], 2, 1)])

    reason = SwapSearch._new_stacking(before, after)

    assert reason == "Would place 2 elite players on Team 1 while Team 2 has none"


def test_existing_stacking_is_not_blamed_on_move():
    before = [team(1, ("a", 450), ("b", 410)), team(2, ("c", 100))]
    assert SwapSearch._new_stacking(before, clone_teams(before)) is None


def test_secondary_candidates_are_two_for_two():
    search = SwapSearch(BalanceConfig())
    teams = [
        team(1, ("a", 300), ("b", 250), ("c", 200)),
        team(2, ("d", 150), ("e", 120), ("f", 100)),
    ]

    candidates = list(search._secondary_candidates(teams))

    assert candidates
    for moves, description in candidates:
        assert len(moves) == 4
        outgoing = sum(m[0].points for m in moves if m[1] == 1)
        incoming = sum(m[0].points for m in moves if m[1] == 2)
        assert outgoing > incoming
        assert description.startswith("Swap ")


def test_cascading_rotation_needs_three_teams():
    search = SwapSearch(BalanceConfig())
    two = [team(1, ("a", 300)), team(2, ("b", 100))]
    assert list(search._cascading_candidates(two)) == []

    three = [team(1, ("a", 300)), team(2, ("b", 200)), team(3, ("c", 100))]
    candidates = list(search._cascading_candidates(three))
    assert len(candidates) == 1
    moves, _ = candidates[0]
    assert [(m[0].player_id, m[1], m[2]) for m in moves] == [("a", 1, 2), ("b", 2, 3), ("c", 3, 1)]


# ======================================================================
# Recording
# ======================================================================


def test_best_acceptable_records_rejected_and_top_considered():
    audit = BalanceLogger()
    search = SwapSearch(BalanceConfig(swap_min_improvement=250, swap_record_limit=2), audit)
    teams = [
        team(1, ("a", 300), ("b", 250), ("c", 200)),
        team(2, ("d", 150), ("e", 120), ("f", 100)),
    ]
    result = SwapPassResult(teams=teams, applied=None)

    chosen = search._best_acceptable(
        teams, team_spread(teams), "secondary_swap", search._secondary_candidates, 1, result
    )

    # 9 two-for-two swaps: 5 clear the 250 pt minimum, 4 do not
    assert result.evaluated == 9
    assert chosen.spread_after == 20
    outcomes = [s.outcome for s in result.suggestions]
    assert outcomes == ["executed", "considered", "considered"] + ["rejected"] * 4
    assert [s.id for s in result.suggestions] == [f"p1-{i}" for i in range(1, 8)]
    considered = [s.balance_impact.after for s in result.suggestions if s.outcome == "considered"]
    assert considered == sorted(considered)
    assert all(after >= 20 for after in considered)
    assert len(audit.entries_for("optimization")) == 7


def test_record_limit_zero_keeps_only_executed_move():
    search = SwapSearch(BalanceConfig(swap_record_limit=0))
    teams = [
        team(1, ("a", 300), ("b", 250), ("c", 200)),
        team(2, ("d", 150), ("e", 120), ("f", 100)),
    ]
    result = SwapPassResult(teams=teams, applied=None)

    search._best_acceptable(teams, team_spread(teams), "secondary_swap", search._secondary_candidates, 1, result)

    assert result.evaluated == 9
    assert [s.outcome for s in result.suggestions] == ["executed"]
    assert result.applied is result.suggestions[0]


def test_suggestions_considered_counts_every_evaluated_candidate():
    search = SwapSearch(BalanceConfig(max_swap_passes=1))
    teams = [team(1, ("a", 350), capacity=1), team(2, ("b", 100), capacity=1)]

    _, analysis = search.optimize(teams)

    assert analysis.total_suggestions_considered == 1
    assert len(analysis.rejected_swaps) == 1
