"""
Request/response schemas for the compliance-period API.

Frequencies: weekly, monthly, quarterly, bi-annual, annual (case-insensitive).
Ranges are end-inclusive: `end` is the last instant of the period's final day.
"""

from __future__ import annotations

from datetime import date, datetime
from pydantic import BaseModel, Field


class PeriodRangeOut(BaseModel):
    """Inclusive period boundary."""

    period_identifier: str = Field(..., description="Identifier the range was computed for")
    frequency: str = Field(..., description="Normalized frequency")
    start: str = Field(..., description="Start datetime (ISO 8601, inclusive)")
    end: str = Field(..., description="End datetime (ISO 8601, inclusive)")
    fallback: bool = Field(False, description="True when the identifier was malformed and a year-to-date range was used")
    warnings: list[str] = Field(default_factory=list, description="e.g. INVALID_PERIOD_IDENTIFIER, UNKNOWN_FREQUENCY")


class CurrentPeriodRequest(BaseModel):
    frequency: str = Field(..., description="Recurrence frequency")
    reference_date: str | None = Field(None, description="Reference date YYYY-MM-DD; default is today")


class CurrentPeriodResponse(BaseModel):
    period_identifier: str
    label: str
    range: PeriodRangeOut


class PeriodRangeRequest(BaseModel):
    period_identifier: str = Field(..., description="Canonical identifier, e.g. 2025-Q2")
    frequency: str
    now: str | None = Field(None, description="Current datetime (ISO 8601); default is server time")


class PeriodStatusRequest(BaseModel):
    period_identifier: str
    frequency: str
    now: str | None = Field(None, description="Current datetime (ISO 8601); default is server time")
    candidate_date: str | None = Field(None, description="Completion date to validate against the period")


class PeriodStatusResponse(BaseModel):
    period_identifier: str
    status: str = Field(..., description="due, overdue or upcoming")
    overdue: bool
    within: bool | None = Field(None, description="Whether candidate_date falls inside the period")
    range: PeriodRangeOut


class ComplianceRecordIn(BaseModel):
    """A persisted compliance row, reduced to the fields the timeline needs."""

    period_identifier: str
    status: str | None = None
    completion_date: str | None = None
    notes: str | None = None


class TimelineRequest(BaseModel):
    frequency: str
    year: int | None = Field(None, ge=1, le=9999, description="Calendar year; default is the year of `now`")
    now: str | None = None
    records: list[ComplianceRecordIn] = Field(default_factory=list)


class TimelineEntryOut(BaseModel):
    period_identifier: str
    label: str
    status: str = Field(..., description="completed, due, overdue or upcoming")
    completed_date: str | None = None


class TimelineResponse(BaseModel):
    frequency: str
    year: int
    entries: list[TimelineEntryOut] = Field(default_factory=list)
    completion_rate: float = Field(0.0, ge=0.0, le=100.0, description="Completed periods as a percentage")


def parse_refdate(s: str | None) -> date:
    if not s:
        return date.today()
    return date.fromisoformat(s)


def parse_datetime(s: str) -> datetime:
    # Period boundaries are wall-clock; offsets are dropped rather than converted.
    return datetime.fromisoformat(s).replace(tzinfo=None)


def parse_now(s: str | None) -> datetime:
    if not s:
        return datetime.now()
    return parse_datetime(s)
