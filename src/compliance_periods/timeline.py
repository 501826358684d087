from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable, Literal, Mapping, Optional

from compliance_periods.policy import Policy
from compliance_periods.resolver import (
    DEFAULT_POLICY,
    as_datetime,
    is_overdue,
    is_within_period,
    period_label,
    period_range,
    periods_in_year,
)
from compliance_periods.schema import (
    Frequency,
    format_period_identifier,
    parse_frequency,
    parse_period_identifier,
)


PeriodStatus = Literal["completed", "due", "overdue", "upcoming"]
RecordStatus = Literal["compliant", "overdue", "due"]

_COMPLETED_STATUSES = {"completed", "compliant"}


@dataclass(frozen=True)
class TimelineEntry:
    period_identifier: str
    label: str
    status: PeriodStatus
    completed_date: Optional[str] = None


def is_completed(record: Optional[Mapping[str, Any]]) -> bool:
    if not record:
        return False
    status = str(record.get("status") or "").lower()
    return status in _COMPLETED_STATUSES or bool(record.get("completion_date"))


def _is_empty_placeholder(record: Mapping[str, Any]) -> bool:
    # Auto-generated rows: pending, never filled in.
    return (
        str(record.get("status") or "").lower() == "pending"
        and not record.get("completion_date")
        and not record.get("notes")
    )


def _canonical_identifier(raw: str, freq: Optional[Frequency], policy: Policy) -> Optional[str]:
    # Stored rows may use any spelling the parser accepts (2025-q1, 2025-W9).
    if not raw:
        return None
    try:
        key = parse_period_identifier(raw, freq or "annual")
    except ValueError:
        return None
    return format_period_identifier(key, pad_week=policy.pad_week_numbers)


def period_status(
    period_identifier: str,
    frequency: Optional[str],
    now: datetime,
    *,
    completed: bool = False,
    policy: Policy = DEFAULT_POLICY,
) -> PeriodStatus:
    if completed:
        return "completed"
    r = period_range(period_identifier, frequency, now=now, policy=policy)
    now_dt = as_datetime(now)
    if now_dt > r.end:
        return "overdue"
    if r.start <= now_dt:
        return "due"
    return "upcoming"


def build_timeline(
    frequency: Optional[str],
    year: int,
    now: datetime,
    records: Iterable[Mapping[str, Any]] = (),
    *,
    policy: Policy = DEFAULT_POLICY,
) -> list[TimelineEntry]:
    """
    One entry per period of `year`, in calendar order.

    `records` are compliance rows with `period_identifier`, `status` and
    `completion_date`; the first completed row for a period wins.
    Identifiers are matched in canonical form; unparsable ones are ignored.
    """
    freq = parse_frequency(frequency)
    by_period: dict[str, Mapping[str, Any]] = {}
    for rec in records:
        pid = _canonical_identifier(str(rec.get("period_identifier") or ""), freq, policy)
        if pid is None:
            continue
        if pid not in by_period or (is_completed(rec) and not is_completed(by_period[pid])):
            by_period[pid] = rec

    out: list[TimelineEntry] = []
    for pid in periods_in_year(frequency, year, policy=policy):
        rec = by_period.get(pid)
        done = is_completed(rec)
        completed_date = None
        if done and rec is not None and rec.get("completion_date"):
            completed_date = str(rec.get("completion_date"))
        out.append(
            TimelineEntry(
                period_identifier=pid,
                label=period_label(pid, frequency),
                status=period_status(pid, frequency, now, completed=done, policy=policy),
                completed_date=completed_date,
            )
        )
    return out


def record_status(
    record: Optional[Mapping[str, Any]],
    period_identifier: str,
    frequency: Optional[str],
    now: datetime,
    *,
    policy: Policy = DEFAULT_POLICY,
) -> RecordStatus:
    """
    Dashboard status of one employee/client for a period.
    Missing records (or empty placeholders) are due until the period ends, then overdue.
    """
    if record is not None and _is_empty_placeholder(record):
        record = None

    if record is None:
        return "overdue" if is_overdue(period_identifier, frequency, now, policy=policy) else "due"

    if is_completed(record):
        return "compliant"
    if str(record.get("status") or "").lower() == "overdue" or record.get("is_overdue") is True:
        return "overdue"
    return "due"


def completion_rate(records: Iterable[Mapping[str, Any]], population: int) -> float:
    """Completed records as a percentage of `population` (0.0 for an empty population)."""
    if population <= 0:
        return 0.0
    done = sum(1 for r in records if is_completed(r))
    return done / population * 100


def completed_within_period(record: Mapping[str, Any], frequency: Optional[str]) -> bool:
    """True when the record's completion date lies inside its own (well-formed) period."""
    raw = record.get("completion_date")
    if not raw:
        return False
    try:
        completed_on = date.fromisoformat(str(raw)[:10])
    except ValueError:
        return False
    try:
        return is_within_period(
            completed_on,
            str(record.get("period_identifier") or ""),
            frequency,
            policy=Policy(strict=True),
        )
    except ValueError:
        return False
