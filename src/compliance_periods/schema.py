from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Final, Literal, Optional


# -----------------------------
# Period structures
# -----------------------------

Frequency = Literal["weekly", "monthly", "quarterly", "bi-annual", "annual"]

FREQUENCIES: Final[tuple[Frequency, ...]] = ("weekly", "monthly", "quarterly", "bi-annual", "annual")

_FREQUENCY_ALIASES: Final[dict[str, Frequency]] = {
    "biannual": "bi-annual",
}

_FREQUENCY_LABELS: Final[dict[str, str]] = {
    "weekly": "Weekly",
    "monthly": "Monthly",
    "quarterly": "Quarterly",
    "bi-annual": "Bi-Annual",
    "annual": "Annual",
}


@dataclass(frozen=True)
class PeriodYear:
    year: int


@dataclass(frozen=True)
class PeriodMonth:
    year: int
    m: int  # 1..12


@dataclass(frozen=True)
class PeriodQuarter:
    year: int
    q: int  # 1..4


@dataclass(frozen=True)
class PeriodHalf:
    year: int
    h: int  # 1..2


@dataclass(frozen=True)
class PeriodWeek:
    year: int
    w: int  # 1..53, counted from Jan 1


PeriodKey = PeriodYear | PeriodMonth | PeriodQuarter | PeriodHalf | PeriodWeek


# -----------------------------
# Parsing
# -----------------------------

_RE_YEAR: Final[re.Pattern[str]] = re.compile(r"^(\d{4})$")
_RE_MONTH: Final[re.Pattern[str]] = re.compile(r"^(\d{4})-(\d{1,2})$")
_RE_QUARTER: Final[re.Pattern[str]] = re.compile(r"^(\d{4})-Q(\d{1,2})$", re.IGNORECASE)
_RE_HALF: Final[re.Pattern[str]] = re.compile(r"^(\d{4})-H(\d{1,2})$", re.IGNORECASE)
_RE_WEEK: Final[re.Pattern[str]] = re.compile(r"^(\d{4})-W(\d{1,2})$", re.IGNORECASE)

MAX_WEEK: Final[int] = 53


def parse_frequency(value: Optional[str]) -> Optional[Frequency]:
    """
    Normalize a frequency string (case-insensitive, surrounding whitespace ignored).
    Returns None for empty or unrecognized values; callers pick their own fallback.
    """
    if not value:
        return None
    v = value.strip().lower()
    v = _FREQUENCY_ALIASES.get(v, v)
    if v in FREQUENCIES:
        return v  # type: ignore[return-value]
    return None


def frequency_label(value: Optional[str]) -> str:
    freq = parse_frequency(value)
    if freq is None:
        return value or ""
    return _FREQUENCY_LABELS[freq]


def _parse_year(value: str) -> int:
    year = int(value)
    if not (1 <= year <= 9999):
        raise ValueError("Year out of range")
    return year


def parse_period_identifier(identifier: str, frequency: Frequency) -> PeriodKey:
    """
    Strict parser for canonical period identifiers.

    `frequency` must already be normalized (see parse_frequency). Raises ValueError
    on a wrong separator, a non-numeric segment or an out-of-range month/quarter/half/week.
    """
    v = (identifier or "").strip()
    if not v:
        raise ValueError("Empty period identifier")

    if frequency == "annual":
        m = _RE_YEAR.match(v)
        if not m:
            raise ValueError(f"Invalid annual period: {identifier!r}")
        return PeriodYear(year=_parse_year(m.group(1)))

    if frequency == "monthly":
        m = _RE_MONTH.match(v)
        if not m:
            raise ValueError(f"Invalid monthly period: {identifier!r}")
        month = int(m.group(2))
        if not (1 <= month <= 12):
            raise ValueError("Month out of range")
        return PeriodMonth(year=_parse_year(m.group(1)), m=month)

    if frequency == "quarterly":
        m = _RE_QUARTER.match(v)
        if not m:
            raise ValueError(f"Invalid quarterly period: {identifier!r}")
        q = int(m.group(2))
        if not (1 <= q <= 4):
            raise ValueError("Quarter out of range")
        return PeriodQuarter(year=_parse_year(m.group(1)), q=q)

    if frequency == "bi-annual":
        m = _RE_HALF.match(v)
        if not m:
            raise ValueError(f"Invalid bi-annual period: {identifier!r}")
        h = int(m.group(2))
        if h not in (1, 2):
            raise ValueError("Half out of range")
        return PeriodHalf(year=_parse_year(m.group(1)), h=h)

    if frequency == "weekly":
        m = _RE_WEEK.match(v)
        if not m:
            raise ValueError(f"Invalid weekly period: {identifier!r}")
        w = int(m.group(2))
        if not (1 <= w <= MAX_WEEK):
            raise ValueError("Week out of range")
        return PeriodWeek(year=_parse_year(m.group(1)), w=w)

    raise ValueError(f"Unknown frequency: {frequency}")


def format_period_identifier(key: PeriodKey, *, pad_week: bool = True) -> str:
    if isinstance(key, PeriodYear):
        return f"{key.year:04d}"
    if isinstance(key, PeriodMonth):
        return f"{key.year:04d}-{key.m:02d}"
    if isinstance(key, PeriodQuarter):
        return f"{key.year:04d}-Q{key.q}"
    if isinstance(key, PeriodHalf):
        return f"{key.year:04d}-H{key.h}"
    if isinstance(key, PeriodWeek):
        week = f"{key.w:02d}" if pad_week else str(key.w)
        return f"{key.year:04d}-W{week}"
    raise TypeError(f"Unknown PeriodKey: {type(key)}")


def frequency_of(key: PeriodKey) -> Frequency:
    if isinstance(key, PeriodYear):
        return "annual"
    if isinstance(key, PeriodMonth):
        return "monthly"
    if isinstance(key, PeriodQuarter):
        return "quarterly"
    if isinstance(key, PeriodHalf):
        return "bi-annual"
    if isinstance(key, PeriodWeek):
        return "weekly"
    raise TypeError(f"Unknown PeriodKey: {type(key)}")


def to_json(key: PeriodKey) -> dict:
    if isinstance(key, PeriodYear):
        return {"type": "YEAR", "year": key.year}
    if isinstance(key, PeriodMonth):
        return {"type": "MONTH", "year": key.year, "m": key.m}
    if isinstance(key, PeriodQuarter):
        return {"type": "QUARTER", "year": key.year, "q": key.q}
    if isinstance(key, PeriodHalf):
        return {"type": "HALF", "year": key.year, "h": key.h}
    if isinstance(key, PeriodWeek):
        return {"type": "WEEK", "year": key.year, "w": key.w}
    raise TypeError(f"Unknown PeriodKey: {type(key)}")
