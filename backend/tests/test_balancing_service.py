"""Tests for the async balancing service around the engine."""

import time
from unittest.mock import MagicMock, patch

import pytest

from atlas_balancer.config import BalanceConfig
from atlas_balancer.errors import EvidenceAnalysisError, InputError, TournamentNotFoundError
from atlas_balancer.models.weights import WeightSource
from atlas_balancer.repositories.tournament_repository import InMemoryTournamentRepository
from atlas_balancer.services.balance_logger import BalanceLogger
from atlas_balancer.services.balancing_engine import AtlasBalancingEngine
from atlas_balancer.services.balancing_service import BalancingService
from atlas_balancer.utils.player_normalizer import normalize_players

pytestmark = pytest.mark.anyio

PAYLOADS = [
    {"id": "rad", "peak_rank": "Radiant", "tournaments_won": 1},
    {"id": "dia", "current_rank": "Diamond 3"},
    {"id": "gold", "current_rank": "Gold 2"},
    {"id": "asc", "current_rank": "Ascendant 1"},
]


@pytest.fixture
def players():
    return normalize_players(PAYLOADS)


@pytest.fixture
def repository():
    return InMemoryTournamentRepository({"t1": PAYLOADS})


def slow_compute(player):
    time.sleep(0.2)
    return 999, ["too late"]


async def test_off_mode_skips_evidence_call(players):
    engine = AtlasBalancingEngine(BalanceConfig(evidence_mode="off"))
    assert await BalancingService().resolve_weights(engine, players) is None


async def test_evidence_call_success_merges_trail(players):
    audit = BalanceLogger()
    engine = AtlasBalancingEngine(BalanceConfig(evidence_mode="evidence"), logger=audit)

    weights = await BalancingService().resolve_weights(engine, players)

    assert weights[0].points == 515
    assert weights[0].source == WeightSource.EVIDENCE_BASED
    assert [e["player_id"] for e in audit.entries_for("weight")] == ["rad", "dia", "gold", "asc"]
    assert [e["seq"] for e in audit.entries] == [1, 2, 3, 4]


async def test_evidence_timeout_falls_back(players):
    audit = BalanceLogger()
    engine = AtlasBalancingEngine(BalanceConfig(evidence_mode="adaptive"), logger=audit)
    engine.resolver.evidence = MagicMock()
    engine.resolver.evidence.compute.side_effect = slow_compute

    weights = await BalancingService(evidence_timeout=0.05).resolve_weights(engine, players)

    assert weights[0].source == WeightSource.PEAK_RANK
    assert weights[0].points == 500
    assert weights[0].reasoning[0].startswith("Evidence analysis timed out after 0.05s")
    assert audit.summary()["errors"] == 1
    assert all(e["event"] != "weight_calculated" or "too late" not in e["reasoning"] for e in audit.entries)


async def test_evidence_failure_falls_back(players):
    audit = BalanceLogger()
    engine = AtlasBalancingEngine(BalanceConfig(evidence_mode="evidence"), logger=audit)
    engine.resolver.evidence = MagicMock()
    engine.resolver.evidence.compute.side_effect = EvidenceAnalysisError("upstream 503")

    weights = await BalancingService().resolve_weights(engine, players)

    assert [w.source for w in weights] == [
        WeightSource.PEAK_RANK, WeightSource.CURRENT_RANK, WeightSource.CURRENT_RANK, WeightSource.CURRENT_RANK,
    ]
    assert weights[1].reasoning[0] == "Evidence analysis failed (upstream 503); using standard rank resolution"


async def test_unexpected_evidence_error_falls_back(players):
    audit = BalanceLogger()
    engine = AtlasBalancingEngine(BalanceConfig(evidence_mode="evidence"), logger=audit)
    engine.resolver.evidence = MagicMock()
    engine.resolver.evidence.compute.side_effect = RuntimeError("upstream exploded")

    weights = await BalancingService().resolve_weights(engine, players)

    assert weights[1].source == WeightSource.CURRENT_RANK
    assert weights[1].reasoning[0] == (
        "Evidence analysis failed (RuntimeError: upstream exploded); using standard rank resolution"
    )
    assert audit.summary()["errors"] == 1


async def test_preview_runs_full_pipeline():
    result = await BalancingService().preview(PAYLOADS, BalanceConfig(evidence_mode="evidence"))

    assert sum(t.size for t in result.teams) == 4
    assert {w.player_id: w.points for w in result.weight_results}["rad"] == 515


async def test_preview_with_broken_evidence_still_balances():
    with patch("atlas_balancer.services.weight_resolver.EvidenceWeighting") as weighting_cls:
        weighting_cls.return_value.compute.side_effect = EvidenceAnalysisError("boom")
        result = await BalancingService().preview(PAYLOADS, BalanceConfig(evidence_mode="evidence"))

    assert sum(t.size for t in result.teams) == 4
    assert all(w.source != WeightSource.EVIDENCE_BASED for w in result.weight_results)


async def test_preview_with_crashing_evidence_still_balances():
    with patch("atlas_balancer.services.weight_resolver.EvidenceWeighting") as weighting_cls:
        weighting_cls.return_value.compute.side_effect = RuntimeError("upstream exploded")
        result = await BalancingService().preview(PAYLOADS, BalanceConfig(evidence_mode="evidence"))

    assert sum(t.size for t in result.teams) == 4
    weights = {w.player_id: w for w in result.weight_results}
    assert weights["rad"].source == WeightSource.PEAK_RANK
    assert weights["dia"].reasoning[0] == (
        "Evidence analysis failed (RuntimeError: upstream exploded); using standard rank resolution"
    )


async def test_preview_rejects_empty_snapshot():
    with pytest.raises(InputError):
        await BalancingService().preview([], BalanceConfig())


async def test_balance_tournament_persists(repository):
    service = BalancingService(repository=repository)

    result = await service.balance_tournament("t1", BalanceConfig())

    saved = repository.saved["t1"]
    assert [t.total_points for t in saved] == [t.total_points for t in result.teams]


async def test_balance_tournament_without_persist(repository):
    service = BalancingService(repository=repository)
    await service.balance_tournament("t1", BalanceConfig(), persist=False)
    assert repository.saved == {}


async def test_balance_unknown_tournament(repository):
    with pytest.raises(TournamentNotFoundError):
        await BalancingService(repository=repository).balance_tournament("missing", BalanceConfig())


async def test_balance_tournament_requires_repository():
    with pytest.raises(RuntimeError):
        await BalancingService().balance_tournament("t1", BalanceConfig())
