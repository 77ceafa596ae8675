"""REST endpoints for team balancing."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Literal, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from atlas_balancer.config import BalanceConfig, settings
from atlas_balancer.errors import InputError, TournamentNotFoundError
from atlas_balancer.models.report import migrate_report, parse_report
from atlas_balancer.models.results import BalanceResult
from atlas_balancer.services.balance_logger import BalanceLogger
from atlas_balancer.services.balancing_service import BalancingService
from atlas_balancer.utils.player_normalizer import parse_datetime

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["balancing"])


class BalanceOptions(BaseModel):
    """Per-run overrides of the configured balancing defaults."""

    team_count: Optional[int] = Field(default=None, ge=0)
    team_capacity: Optional[int] = Field(default=None, ge=0)
    elite_threshold: Optional[int] = Field(default=None, gt=0)
    evidence_mode: Optional[Literal["off", "evidence", "adaptive"]] = None
    tournament_win_bonus: Optional[int] = None
    confidence_threshold: Optional[int] = None
    max_adjustment_pct: Optional[float] = None
    swap_min_improvement: Optional[int] = None
    swap_trigger_spread: Optional[int] = None
    max_swap_passes: Optional[int] = Field(default=None, ge=0)
    as_of: Optional[datetime] = None  # reference time for recency heuristics


class PreviewRequest(BaseModel):
    players: list[dict[str, Any]]
    options: BalanceOptions = Field(default_factory=BalanceOptions)
    include_audit: bool = False


class TournamentBalanceRequest(BaseModel):
    options: BalanceOptions = Field(default_factory=BalanceOptions)
    persist: bool = True
    include_audit: bool = False


def _get_service(request: Request) -> BalancingService:
    """Get or lazily create the balancing service from app state."""
    if not hasattr(request.app.state, "balancing_service"):
        request.app.state.balancing_service = BalancingService(
            repository=getattr(request.app.state, "repository", None),
            evidence_timeout=settings.evidence_timeout_seconds,
        )
    return request.app.state.balancing_service


def _build_config(options: BalanceOptions) -> BalanceConfig:
    overrides = options.model_dump(exclude_none=True)
    if "as_of" in overrides:
        overrides["as_of"] = parse_datetime(overrides["as_of"])
    try:
        return settings.balance_config(**overrides)
    except InputError as e:
        raise HTTPException(422, str(e))


def _response(result: BalanceResult, audit: BalanceLogger, include_audit: bool) -> dict[str, Any]:
    if settings.diagnostics:
        audit.save(Path(settings.diagnostics_dir))

    body = result.to_dict()
    body["diagnostics"] = audit.summary()
    if include_audit:
        body["audit"] = audit.entries
    return body


@router.post("/balance/preview")
async def preview_balance(request: Request, body: PreviewRequest):
    """Balance an ad-hoc player snapshot without persisting anything."""
    config = _build_config(body.options)
    audit = BalanceLogger(run_id="preview")
    try:
        result = await _get_service(request).preview(body.players, config, audit)
    except InputError as e:
        raise HTTPException(422, str(e))
    return _response(result, audit, body.include_audit)


@router.post("/tournaments/{tournament_id}/balance")
async def balance_tournament(
    request: Request,
    tournament_id: str,
    body: Optional[TournamentBalanceRequest] = None,
):
    """Balance a stored tournament and save the team assignment."""
    body = body or TournamentBalanceRequest()
    config = _build_config(body.options)
    audit = BalanceLogger(run_id=f"tournament_{tournament_id}")
    service = _get_service(request)
    if service.repository is None:
        raise HTTPException(503, "No tournament repository configured")

    try:
        result = await service.balance_tournament(tournament_id, config, audit, persist=body.persist)
    except TournamentNotFoundError:
        raise HTTPException(404, f"Tournament not found: {tournament_id}")
    except InputError as e:
        raise HTTPException(422, str(e))

    logger.info(
        f"Balanced tournament {tournament_id}: spread "
        f"{result.balance_analysis.balance.spread}, {len(result.decisions)} decision(s)"
    )
    response = _response(result, audit, body.include_audit)
    response["tournament_id"] = tournament_id
    response["persisted"] = body.persist
    return response


@router.post("/reports/migrate")
async def migrate_stored_report(payload: dict[str, Any]):
    """Upgrade a stored report (legacy snake-draft or current) to the current format."""
    try:
        report = parse_report(payload)
    except InputError as e:
        raise HTTPException(422, str(e))
    return migrate_report(report).to_dict()
