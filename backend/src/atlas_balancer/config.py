"""Application configuration via pydantic-settings.

``Settings`` carries service settings and the balancing defaults read from the
environment. ``BalanceConfig`` is the frozen set of constants one engine run
uses; every engine module reads its thresholds from the config it is given.
"""

from dataclasses import dataclass, fields, replace
from datetime import datetime, timezone
from functools import lru_cache
from typing import Literal, Optional

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from atlas_balancer.errors import InputError

EvidenceMode = Literal["off", "evidence", "adaptive"]
EVIDENCE_MODES = ("off", "evidence", "adaptive")


@dataclass(frozen=True)
class BalanceConfig:
    """Constants for one balancing run."""

    # Formation
    team_count: int = 2
    team_capacity: int = 5
    elite_threshold: int = 400
    high_value_threshold: int = 250
    elite_dispersion_penalty: int = 100
    high_tier_points: int = 350
    medium_tier_points: int = 200

    # Weight resolution
    default_points: int = 150
    min_points: int = 100
    evidence_mode: EvidenceMode = "off"
    tournament_win_bonus: int = 15
    tournament_bonus_cap: int = 60
    elite_peak_bonus_pct: float = 0.20
    recent_win_bonus_pct: float = 0.50
    recent_win_days: int = 90
    underranked_min_gap: int = 75
    tier_points: int = 50
    underranked_steps: tuple[float, ...] = (0.10, 0.08, 0.07, 0.05, 0.05)
    underranked_cap_pct: float = 0.35
    # (minimum peak points, penalty) from highest to lowest
    unranked_penalty_tiers: tuple[tuple[int, float], ...] = (
        (400, 0.20),
        (265, 0.17),
        (190, 0.15),
        (130, 0.12),
        (0, 0.10),
    )
    time_weight_days: int = 60
    time_decay_max: float = 0.25
    time_decay_constant_days: float = 120.0
    base_blend_factor: float = 0.3
    confidence_boost_max: float = 0.15
    rank_gap_scale: float = 500.0
    max_blend_factor: float = 0.75

    # Player analysis
    champion_elite_peak_bonus: int = 10
    champion_rank_drop_bonus: int = 20
    champion_rank_drop_gap: int = 100
    mismatch_min_gap: int = 150
    mismatch_factor: float = 0.3
    mismatch_cap: int = 75
    mismatch_recent_win_bonus: int = 25
    undervalued_min_indicators: int = 2
    undervalued_min_score: int = 25
    undervalued_cap: int = 50
    inactivity_days: int = 30
    inactivity_pct: float = 0.10
    inactivity_cap: int = 35
    consistency_bonus: int = 10
    analysis_floor: int = 50

    # Orchestration
    confidence_threshold: int = 75
    max_adjustment_pct: float = 0.30
    swap_min_improvement: int = 50
    swap_trigger_spread: int = 200
    max_swap_passes: int = 5
    # Runner-up acceptable candidates recorded per multi-candidate strategy
    swap_record_limit: int = 10

    # Reference time for every time-dependent heuristic; None means unknown
    as_of: Optional[datetime] = None

    def __post_init__(self):
        # Player timestamps are always aware; a naive reference time is UTC
        if self.as_of is not None and self.as_of.tzinfo is None:
            object.__setattr__(self, "as_of", self.as_of.replace(tzinfo=timezone.utc))

    @property
    def total_capacity(self) -> int:
        return self.team_count * self.team_capacity

    def validate(self) -> "BalanceConfig":
        """Raise InputError for values no run can work with."""
        if self.team_count < 0 or self.team_capacity < 0:
            raise InputError(
                f"Team count and capacity must be non-negative "
                f"(got {self.team_count} x {self.team_capacity})"
            )
        if self.total_capacity == 0:
            raise InputError(
                f"No team slots available: {self.team_count} teams x "
                f"{self.team_capacity} capacity"
            )
        if self.evidence_mode not in EVIDENCE_MODES:
            raise InputError(f"Unknown evidence mode: {self.evidence_mode!r}")
        if self.elite_threshold <= 0 or self.min_points <= 0:
            raise InputError("Elite threshold and minimum points must be positive")
        if not 0 <= self.max_adjustment_pct <= 1:
            raise InputError(f"max_adjustment_pct out of range: {self.max_adjustment_pct}")
        if self.max_swap_passes < 0:
            raise InputError(f"max_swap_passes must be >= 0: {self.max_swap_passes}")
        if self.swap_record_limit < 0:
            raise InputError(f"swap_record_limit must be >= 0: {self.swap_record_limit}")
        return self

    def with_overrides(self, **overrides) -> "BalanceConfig":
        """Copy with the non-None overrides applied and validated."""
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise InputError(f"Unknown balance options: {sorted(unknown)}")
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes).validate()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ATLAS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API Settings
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS - comma-separated origins (env var: ATLAS_CORS_ORIGINS)
    cors_origins: str = "http://localhost:5173,http://127.0.0.1:5173"

    @computed_field
    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # Database path (DuckDB file)
    database_path: str = "data/atlas.duckdb"

    # Diagnostics (env var: ATLAS_DIAGNOSTICS)
    diagnostics: bool = False
    diagnostics_dir: str = "logs/balancing"

    # Seconds to wait for the evidence/adaptive weighting sub-call
    evidence_timeout_seconds: float = 5.0

    # Balancing defaults
    team_count: int = 2
    team_capacity: int = 5
    elite_threshold: int = 400
    evidence_mode: EvidenceMode = "off"
    tournament_win_bonus: int = 15
    confidence_threshold: int = 75
    max_adjustment_pct: float = 0.30
    swap_min_improvement: int = 50
    swap_trigger_spread: int = 200
    max_swap_passes: int = 5
    swap_record_limit: int = 10

    def balance_config(self, **overrides) -> BalanceConfig:
        """Build the engine config from these defaults plus per-run overrides."""
        base = BalanceConfig(
            team_count=self.team_count,
            team_capacity=self.team_capacity,
            elite_threshold=self.elite_threshold,
            evidence_mode=self.evidence_mode,
            tournament_win_bonus=self.tournament_win_bonus,
            confidence_threshold=self.confidence_threshold,
            max_adjustment_pct=self.max_adjustment_pct,
            swap_min_improvement=self.swap_min_improvement,
            swap_trigger_spread=self.swap_trigger_spread,
            max_swap_passes=self.max_swap_passes,
            swap_record_limit=self.swap_record_limit,
        )
        return base.with_overrides(**overrides)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
