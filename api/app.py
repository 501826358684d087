"""
Minimal API service for compliance periods.

Record-creation forms ask for the current period and its selectable date range,
dashboards ask whether a period is overdue, and timeline views ask for the
status of every period in a year.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from api.schema import (
    CurrentPeriodRequest,
    CurrentPeriodResponse,
    PeriodRangeOut,
    PeriodRangeRequest,
    PeriodStatusRequest,
    PeriodStatusResponse,
    TimelineEntryOut,
    TimelineRequest,
    TimelineResponse,
    parse_datetime,
    parse_now,
    parse_refdate,
)
from compliance_periods.resolver import (
    PeriodRange,
    current_period_identifier,
    is_within_period,
    period_label,
    period_range,
)
from compliance_periods.timeline import build_timeline, completion_rate, period_status


def _range_out(r: PeriodRange) -> PeriodRangeOut:
    return PeriodRangeOut(
        period_identifier=r.period_identifier,
        frequency=r.frequency,
        start=r.start.isoformat(),
        end=r.end.isoformat(),
        fallback=r.fallback,
        warnings=list(r.warnings),
    )


def _now_or_400(s: str | None) -> datetime:
    try:
        return parse_now(s)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid now: {e}") from e


app = FastAPI(
    title="Compliance Periods API",
    description="Period identifiers, boundaries and overdue status for recurring compliance checks.",
    version="0.1.0",
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Loaded at startup
_policy: Any = None


@app.on_event("startup")
def startup() -> None:
    from compliance_periods.config import load_dotenv_into_env, load_settings

    load_dotenv_into_env()
    settings = load_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.WARNING))
    global _policy
    _policy = settings.policy()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


def _require_policy() -> Any:
    if _policy is None:
        raise HTTPException(status_code=503, detail="Settings not loaded")
    return _policy


@app.post("/periods/current", response_model=CurrentPeriodResponse)
def current_period(req: CurrentPeriodRequest) -> CurrentPeriodResponse:
    """Period containing the reference date, with its selectable range."""
    policy = _require_policy()
    try:
        refdate = parse_refdate(req.reference_date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid reference_date: {e}") from e
    pid = current_period_identifier(req.frequency, refdate, policy=policy)
    try:
        r = period_range(pid, req.frequency, now=datetime.combine(refdate, datetime.min.time()), policy=policy)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return CurrentPeriodResponse(period_identifier=pid, label=period_label(pid, req.frequency), range=_range_out(r))


@app.post("/periods/range", response_model=PeriodRangeOut)
def get_period_range(req: PeriodRangeRequest) -> PeriodRangeOut:
    policy = _require_policy()
    now = _now_or_400(req.now)
    try:
        r = period_range(req.period_identifier, req.frequency, now=now, policy=policy)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return _range_out(r)


@app.post("/periods/status", response_model=PeriodStatusResponse)
def get_period_status(req: PeriodStatusRequest) -> PeriodStatusResponse:
    """Overdue status of a period, optionally validating a completion date against it."""
    policy = _require_policy()
    now = _now_or_400(req.now)
    try:
        r = period_range(req.period_identifier, req.frequency, now=now, policy=policy)
        status = period_status(req.period_identifier, req.frequency, now, policy=policy)
        within = None
        if req.candidate_date:
            try:
                candidate = parse_datetime(req.candidate_date)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=f"Invalid candidate_date: {e}") from e
            within = is_within_period(candidate, req.period_identifier, req.frequency, now=now, policy=policy)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return PeriodStatusResponse(
        period_identifier=req.period_identifier,
        status=status,
        overdue=now > r.end,
        within=within,
        range=_range_out(r),
    )


@app.post("/periods/timeline", response_model=TimelineResponse)
def get_timeline(req: TimelineRequest) -> TimelineResponse:
    policy = _require_policy()
    now = _now_or_400(req.now)
    year = req.year or now.year
    records = [rec.model_dump() for rec in req.records]
    try:
        entries = build_timeline(req.frequency, year, now, records, policy=policy)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    own_records = [{"status": e.status} for e in entries]
    return TimelineResponse(
        frequency=req.frequency,
        year=year,
        entries=[
            TimelineEntryOut(
                period_identifier=e.period_identifier,
                label=e.label,
                status=e.status,
                completed_date=e.completed_date,
            )
            for e in entries
        ],
        completion_rate=completion_rate(own_records, len(entries)),
    )
