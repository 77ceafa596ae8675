"""Tests for balancing configuration and settings."""

from datetime import datetime, timezone

import pytest

from atlas_balancer.config import BalanceConfig, Settings
from atlas_balancer.errors import InputError


def test_defaults_validate():
    config = BalanceConfig()
    assert config.validate() is config
    assert config.total_capacity == 10
    assert config.elite_threshold == 400
    assert config.evidence_mode == "off"
    assert config.as_of is None


@pytest.mark.parametrize(
    "overrides",
    [
        {"team_count": 0},
        {"team_capacity": 0},
        {"team_count": -1},
        {"evidence_mode": "psychic"},
        {"max_adjustment_pct": 1.5},
        {"max_swap_passes": -1},
        {"elite_threshold": 0},
        {"swap_record_limit": -1},
    ],
)
def test_invalid_values_raise_input_error(overrides):
    with pytest.raises(InputError):
        BalanceConfig(**overrides).validate()


def test_with_overrides_skips_none_and_validates():
    as_of = datetime(2026, 3, 1, tzinfo=timezone.utc)
    config = BalanceConfig().with_overrides(team_count=4, team_capacity=None, as_of=as_of)
    assert config.team_count == 4
    assert config.team_capacity == 5
    assert config.as_of == as_of

    with pytest.raises(InputError):
        BalanceConfig().with_overrides(team_capacity=0)


def test_naive_reference_time_is_utc():
    config = BalanceConfig(as_of=datetime(2026, 3, 1))
    assert config.as_of == datetime(2026, 3, 1, tzinfo=timezone.utc)
    assert config.as_of.tzinfo is timezone.utc

    copied = config.with_overrides(as_of=datetime(2026, 4, 1, 12))
    assert copied.as_of.tzinfo is timezone.utc


def test_with_overrides_rejects_unknown_keys():
    with pytest.raises(InputError, match="Unknown balance options"):
        BalanceConfig().with_overrides(teams=3)


def test_settings_build_balance_config():
    settings = Settings(_env_file=None, team_count=4, evidence_mode="evidence")
    config = settings.balance_config(team_capacity=3)
    assert config.team_count == 4
    assert config.team_capacity == 3
    assert config.evidence_mode == "evidence"


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("ATLAS_TEAM_COUNT", "6")
    monkeypatch.setenv("ATLAS_CORS_ORIGINS", "http://a.test, http://b.test,")
    settings = Settings(_env_file=None)
    assert settings.team_count == 6
    assert settings.cors_origins_list == ["http://a.test", "http://b.test"]
