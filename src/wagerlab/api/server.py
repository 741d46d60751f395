"""FastAPI backend for WagerLab."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Annotated, Any

from fastapi import Depends, FastAPI, Header, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware

from wagerlab import __version__
from wagerlab.api.schemas import (
    ClvEstimateRequest,
    ClvEstimateResponse,
    ImportRequest,
    ImportResponse,
    JobRequest,
    JobResponse,
    ParseErrorOut,
    ParseWarningOut,
    ProgressOut,
    WagerOut,
)
from wagerlab.clv.line_adjustment import clv_with_line_adjustment, expected_value
from wagerlab.config import get_api_access_key
from wagerlab.data.aggregator import LiveDataAggregator
from wagerlab.db.repository import WagerRepository
from wagerlab.scheduling.jobs import run_clv_job
from wagerlab.settlement.evaluator import SettlementEvaluator
from wagerlab.settlement.progress import build_progress
from wagerlab.settlement.service import run_settlement_pass
from wagerlab.wagers.parser import parse_slips

app = FastAPI(
    title="WagerLab API",
    version=__version__,
    description="Import bet slips, track live progress and settle wagers automatically.",
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_repository() -> WagerRepository:
    return WagerRepository()


async def get_aggregator() -> AsyncIterator[LiveDataAggregator]:
    aggregator = LiveDataAggregator.from_settings()
    try:
        yield aggregator
    finally:
        await aggregator.aclose()


def require_api_key(x_api_key: str | None = Header(default=None, alias="X-API-Key")) -> None:
    try:
        expected = get_api_access_key()
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    if not x_api_key or x_api_key != expected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


RepositoryDep = Annotated[WagerRepository, Depends(get_repository)]
AggregatorDep = Annotated[LiveDataAggregator, Depends(get_aggregator)]
APIKeyDep = Annotated[None, Depends(require_api_key)]
UserQuery = Annotated[str | None, Query()]


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/version")
def version() -> dict[str, Any]:
    return {"name": "wagerlab", "version": __version__}


@app.post("/wagers/import", response_model=ImportResponse)
def import_wagers(payload: ImportRequest, _: APIKeyDep, repository: RepositoryDep) -> ImportResponse:
    if not payload.text.strip():
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Slip text is empty.")
    parsed = parse_slips(payload.text, user_id=payload.user_id)
    added = set(repository.add_wagers(parsed.wagers))
    return ImportResponse(
        imported=[WagerOut.from_wager(wager) for wager in parsed.wagers if wager.id in added],
        duplicates=[wager.id for wager in parsed.wagers if wager.id not in added],
        errors=[ParseErrorOut(**vars(error)) for error in parsed.errors],
        warnings=[ParseWarningOut(wager_id=warning.wager_id, message=warning.message) for warning in parsed.warnings],
    )


@app.get("/wagers/active", response_model=list[WagerOut])
def active_wagers(_: APIKeyDep, repository: RepositoryDep, user_id: UserQuery = None) -> list[WagerOut]:
    return [WagerOut.from_wager(wager) for wager in repository.get_active_wagers(user_id)]


@app.get("/wagers/progress", response_model=list[ProgressOut])
async def wager_progress(
    _: APIKeyDep,
    repository: RepositoryDep,
    aggregator: AggregatorDep,
    user_id: UserQuery = None,
) -> list[ProgressOut]:
    wagers = repository.get_active_wagers(user_id)
    projections = await asyncio.gather(*(build_progress(wager, aggregator) for wager in wagers))
    return [ProgressOut.from_progress(progress) for progress in projections]


@app.post("/run_settlement", response_model=JobResponse)
async def api_run_settlement(
    payload: JobRequest,
    _: APIKeyDep,
    repository: RepositoryDep,
    aggregator: AggregatorDep,
) -> JobResponse:
    report = await run_settlement_pass(repository, SettlementEvaluator(aggregator), user_id=payload.user_id)
    return JobResponse(
        details={
            "checked": report.checked,
            "settled": report.settled,
            "unresolved": report.unresolved,
            "failed": report.failed,
        }
    )


@app.post("/run_clv", response_model=JobResponse)
def api_run_clv(payload: JobRequest, _: APIKeyDep, repository: RepositoryDep) -> JobResponse:
    try:
        summary = run_clv_job(repository, user_id=payload.user_id)
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return JobResponse(details=summary)


@app.post("/clv/estimate", response_model=ClvEstimateResponse)
def clv_estimate(payload: ClvEstimateRequest, _: APIKeyDep) -> ClvEstimateResponse:
    estimate = clv_with_line_adjustment(
        payload.opening_odds,
        payload.booked_line,
        payload.current_odds,
        payload.current_line,
        sport=payload.sport,
        kind=payload.kind,
        direction=payload.direction,
        stat=payload.stat,
    )
    return ClvEstimateResponse(
        clv=round(estimate.clv, 2),
        adjusted_odds=estimate.adjusted_odds,
        confidence=estimate.confidence,
        explanation=estimate.explanation,
        warning=estimate.warning,
        expected_value=round(expected_value(payload.stake, estimate.clv), 2) if payload.stake is not None else None,
    )
