from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
import re
from typing import Final, Optional

import logging

from dateutil.relativedelta import relativedelta

from compliance_periods.policy import Policy
from compliance_periods.schema import (
    MAX_WEEK,
    Frequency,
    PeriodHalf,
    PeriodKey,
    PeriodMonth,
    PeriodQuarter,
    PeriodWeek,
    PeriodYear,
    format_period_identifier,
    parse_frequency,
    parse_period_identifier,
)

logger = logging.getLogger(__name__)

DEFAULT_POLICY: Final[Policy] = Policy()

INVALID_PERIOD_IDENTIFIER: Final[str] = "INVALID_PERIOD_IDENTIFIER"
UNKNOWN_FREQUENCY: Final[str] = "UNKNOWN_FREQUENCY"

_RE_LEADING_YEAR: Final[re.Pattern[str]] = re.compile(r"^\s*(\d{4})")

_MONTH_NAMES: Final[tuple[str, ...]] = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


@dataclass
class PeriodRange:
    start: datetime
    end: datetime  # end-inclusive: last instant of the final day
    frequency: str
    warnings: list[str] = field(default_factory=list)
    fallback: bool = False
    period_identifier: str = ""


def as_datetime(d: date) -> datetime:
    """Naive wall-clock datetime for comparisons; a date becomes its midnight."""
    if isinstance(d, datetime):
        return d.replace(tzinfo=None)
    return datetime.combine(d, time.min)


def _start_of_day(d: date) -> datetime:
    return datetime.combine(d, time.min)


def _end_of_day(d: date) -> datetime:
    return datetime.combine(d, time.max)


def _last_day_of_month(y: int, m: int) -> date:
    if m == 12:
        return date(y, 12, 31)
    # "Day 0" of the following month.
    return date(y, m + 1, 1) - timedelta(days=1)


def _add_months(y: int, m: int, delta: int) -> tuple[int, int]:
    """Add delta months to (y,m) returning (new_y,new_m)."""
    idx = (y * 12 + (m - 1)) + delta
    ny = idx // 12
    nm = (idx % 12) + 1
    return ny, nm


def week_of_year(d: date) -> int:
    """Week number counted in 7-day blocks from Jan 1 (1..53)."""
    if isinstance(d, datetime):
        d = d.date()
    return (d - date(d.year, 1, 1)).days // 7 + 1


def _period_key_for(freq: Optional[Frequency], d: date) -> PeriodKey:
    if freq == "monthly":
        return PeriodMonth(year=d.year, m=d.month)
    if freq == "quarterly":
        return PeriodQuarter(year=d.year, q=(d.month - 1) // 3 + 1)
    if freq == "bi-annual":
        return PeriodHalf(year=d.year, h=1 if d.month <= 6 else 2)
    if freq == "weekly":
        return PeriodWeek(year=d.year, w=week_of_year(d))
    return PeriodYear(year=d.year)


def _bounds(key: PeriodKey) -> tuple[date, date]:
    """First and last calendar day of a parsed period."""
    if isinstance(key, PeriodYear):
        return date(key.year, 1, 1), date(key.year, 12, 31)

    if isinstance(key, PeriodMonth):
        return date(key.year, key.m, 1), _last_day_of_month(key.year, key.m)

    if isinstance(key, PeriodQuarter):
        start_month = (key.q - 1) * 3 + 1
        end_month = start_month + 2
        return date(key.year, start_month, 1), _last_day_of_month(key.year, end_month)

    if isinstance(key, PeriodHalf):
        if key.h == 1:
            return date(key.year, 1, 1), date(key.year, 6, 30)
        return date(key.year, 7, 1), date(key.year, 12, 31)

    if isinstance(key, PeriodWeek):
        start = date(key.year, 1, 1) + timedelta(days=(key.w - 1) * 7)
        if (date.max - start).days < 6:
            # W53 of the last representable year is cut short.
            return start, date.max
        return start, start + timedelta(days=6)

    raise TypeError(f"Unknown PeriodKey: {type(key)}")


def _fallback_range(frequency: str, now: datetime, warnings: list[str], period_identifier: str) -> PeriodRange:
    return PeriodRange(
        start=datetime(now.year, 1, 1),
        end=now,
        frequency=frequency,
        warnings=warnings,
        fallback=True,
        period_identifier=period_identifier,
    )


def current_period_key(frequency: Optional[str], reference_date: date) -> PeriodKey:
    freq = parse_frequency(frequency)
    if freq is None:
        logger.debug("Unrecognized frequency %r, using annual period", frequency)
    return _period_key_for(freq, reference_date)


def current_period_identifier(
    frequency: Optional[str],
    reference_date: date,
    *,
    policy: Policy = DEFAULT_POLICY,
) -> str:
    """
    Canonical identifier of the period containing `reference_date`.

    An empty or unrecognized frequency yields the annual form (YYYY).
    """
    key = current_period_key(frequency, reference_date)
    return format_period_identifier(key, pad_week=policy.pad_week_numbers)


def period_range(
    period_identifier: str,
    frequency: Optional[str],
    *,
    now: Optional[datetime] = None,
    policy: Policy = DEFAULT_POLICY,
) -> PeriodRange:
    """
    Inclusive [start, end] boundary of a period identifier.

    A malformed identifier does not raise (unless policy.strict): the result is
    [Jan 1 of now's year, now] with fallback=True and an INVALID_PERIOD_IDENTIFIER warning.
    An unrecognized frequency resolves the identifier's leading year as an annual period.
    """
    warnings: list[str] = []
    freq = parse_frequency(frequency)

    try:
        if freq is None:
            warnings.append(UNKNOWN_FREQUENCY)
            m = _RE_LEADING_YEAR.match(period_identifier or "")
            if not m:
                raise ValueError(f"Invalid period for unknown frequency: {period_identifier!r}")
            key: PeriodKey = PeriodYear(year=int(m.group(1)))
        else:
            key = parse_period_identifier(period_identifier, freq)
        first, last = _bounds(key)
    except (ValueError, OverflowError) as e:
        if policy.strict:
            raise ValueError(f"Cannot resolve period {period_identifier!r} ({frequency}): {e}") from e
        logger.warning(
            "Falling back to year-to-date range for period %r (%s): %s",
            period_identifier,
            frequency,
            e,
        )
        warnings.append(INVALID_PERIOD_IDENTIFIER)
        now_dt = as_datetime(now) if now is not None else datetime.now()
        return _fallback_range(freq or "annual", now_dt, warnings, period_identifier)

    return PeriodRange(
        start=_start_of_day(first),
        end=_end_of_day(last),
        frequency=freq or "annual",
        warnings=warnings,
        period_identifier=period_identifier,
    )


def is_overdue(
    period_identifier: str,
    frequency: Optional[str],
    now: datetime,
    *,
    policy: Policy = DEFAULT_POLICY,
) -> bool:
    now_dt = as_datetime(now)
    r = period_range(period_identifier, frequency, now=now_dt, policy=policy)
    return now_dt > r.end


def is_within_period(
    candidate: date,
    period_identifier: str,
    frequency: Optional[str],
    *,
    now: Optional[datetime] = None,
    policy: Policy = DEFAULT_POLICY,
) -> bool:
    """True when `candidate` falls inside the inclusive period range (dates compare as midnight)."""
    r = period_range(period_identifier, frequency, now=now, policy=policy)
    c = as_datetime(candidate)
    return r.start <= c <= r.end


def periods_in_year(frequency: Optional[str], year: int, *, policy: Policy = DEFAULT_POLICY) -> list[str]:
    """All identifiers of `year` in calendar order."""
    freq = parse_frequency(frequency)
    keys: list[PeriodKey]
    if freq == "monthly":
        keys = [PeriodMonth(year=year, m=m) for m in range(1, 13)]
    elif freq == "quarterly":
        keys = [PeriodQuarter(year=year, q=q) for q in range(1, 5)]
    elif freq == "bi-annual":
        keys = [PeriodHalf(year=year, h=h) for h in (1, 2)]
    elif freq == "weekly":
        last_week = week_of_year(date(year, 12, 31))
        keys = [PeriodWeek(year=year, w=w) for w in range(1, last_week + 1)]
    else:
        keys = [PeriodYear(year=year)]
    return [format_period_identifier(k, pad_week=policy.pad_week_numbers) for k in keys]


def shift_period(
    period_identifier: str,
    frequency: Optional[str],
    delta: int,
    *,
    policy: Policy = DEFAULT_POLICY,
) -> str:
    """
    Identifier `delta` periods after (negative: before) the given one.
    Raises ValueError for malformed identifiers or unknown frequencies.
    """
    freq = parse_frequency(frequency)
    if freq is None:
        raise ValueError(f"Unknown frequency: {frequency}")
    key = parse_period_identifier(period_identifier, freq)

    shifted: PeriodKey
    if isinstance(key, PeriodYear):
        shifted = PeriodYear(year=key.year + delta)
    elif isinstance(key, PeriodMonth):
        y, m = _add_months(key.year, key.m, delta)
        shifted = PeriodMonth(year=y, m=m)
    elif isinstance(key, PeriodQuarter):
        idx = key.year * 4 + (key.q - 1) + delta
        shifted = PeriodQuarter(year=idx // 4, q=idx % 4 + 1)
    elif isinstance(key, PeriodHalf):
        idx = key.year * 2 + (key.h - 1) + delta
        shifted = PeriodHalf(year=idx // 2, h=idx % 2 + 1)
    else:
        # Every year has W01..W53; weeks restart at W01 on Jan 1.
        years, idx = divmod(key.w - 1 + delta, MAX_WEEK)
        shifted = PeriodWeek(year=key.year + years, w=idx + 1)

    if not (1 <= shifted.year <= 9999):
        raise ValueError("Shifted period out of range")
    return format_period_identifier(shifted, pad_week=policy.pad_week_numbers)


def period_label(period_identifier: str, frequency: Optional[str]) -> str:
    """Display label, e.g. 'Q2 2025', 'Mar 2025', 'Week 9 2025'. Malformed input is echoed."""
    freq = parse_frequency(frequency)
    if freq is None:
        return period_identifier
    try:
        key = parse_period_identifier(period_identifier, freq)
    except ValueError:
        return period_identifier

    if isinstance(key, PeriodYear):
        return f"Year {key.year}"
    if isinstance(key, PeriodMonth):
        return f"{_MONTH_NAMES[key.m - 1]} {key.year}"
    if isinstance(key, PeriodQuarter):
        return f"Q{key.q} {key.year}"
    if isinstance(key, PeriodHalf):
        return f"H{key.h} {key.year}"
    return f"Week {key.w} {key.year}"


def next_due_date(
    frequency: Optional[str],
    last_completion: Optional[date] = None,
    *,
    now: Optional[date] = None,
) -> date:
    """
    Last completion (or `now`) plus one frequency interval.
    Month steps clamp to the month end; unknown frequencies step one year.
    """
    base = last_completion or now or date.today()
    if isinstance(base, datetime):
        base = base.date()

    freq = parse_frequency(frequency)
    if freq == "weekly":
        return base + timedelta(days=7)
    if freq == "monthly":
        return base + relativedelta(months=1)
    if freq == "quarterly":
        return base + relativedelta(months=3)
    if freq == "bi-annual":
        return base + relativedelta(months=6)
    return base + relativedelta(years=1)
