from datetime import date, datetime, timedelta, timezone
import logging

import pytest

from compliance_periods.policy import Policy
from compliance_periods.resolver import (
    INVALID_PERIOD_IDENTIFIER,
    UNKNOWN_FREQUENCY,
    current_period_identifier,
    is_overdue,
    is_within_period,
    next_due_date,
    period_label,
    period_range,
    periods_in_year,
    shift_period,
    week_of_year,
)


NOW = datetime(2025, 8, 15, 10, 30)


def test_current_quarterly() -> None:
    assert current_period_identifier("quarterly", date(2025, 5, 15)) == "2025-Q2"


def test_current_bi_annual() -> None:
    assert current_period_identifier("bi-annual", date(2025, 8, 1)) == "2025-H2"
    assert current_period_identifier("bi-annual", date(2025, 6, 30)) == "2025-H1"


def test_current_monthly_zero_padded() -> None:
    assert current_period_identifier("Monthly", date(2025, 3, 9)) == "2025-03"


def test_current_annual_and_unknown_fallback() -> None:
    assert current_period_identifier("annual", date(2025, 3, 9)) == "2025"
    assert current_period_identifier("fortnightly", date(2025, 3, 9)) == "2025"
    assert current_period_identifier("", date(2025, 3, 9)) == "2025"


def test_current_weekly_counts_from_jan_1() -> None:
    assert current_period_identifier("weekly", date(2025, 1, 1)) == "2025-W01"
    assert current_period_identifier("weekly", date(2025, 1, 7)) == "2025-W01"
    assert current_period_identifier("weekly", date(2025, 1, 8)) == "2025-W02"
    assert current_period_identifier("weekly", date(2025, 12, 31)) == "2025-W53"
    assert current_period_identifier("weekly", date(2025, 1, 8), policy=Policy(pad_week_numbers=False)) == "2025-W2"


def test_current_accepts_datetime() -> None:
    assert current_period_identifier("quarterly", datetime(2025, 10, 1, 0, 0)) == "2025-Q4"
    assert current_period_identifier("weekly", datetime(2025, 3, 5, 14, 30)) == "2025-W10"
    assert current_period_identifier("weekly", datetime(2000, 1, 1)) == "2000-W01"


def test_range_quarterly() -> None:
    r = period_range("2025-Q2", "quarterly", now=NOW)
    assert r.start == datetime(2025, 4, 1)
    assert r.end == datetime(2025, 6, 30, 23, 59, 59, 999999)
    assert r.fallback is False
    assert r.warnings == []


def test_range_monthly_february() -> None:
    assert period_range("2025-02", "monthly", now=NOW).end.date() == date(2025, 2, 28)
    assert period_range("2024-02", "monthly", now=NOW).end.date() == date(2024, 2, 29)


def test_range_monthly_december_crosses_year() -> None:
    r = period_range("2025-12", "monthly", now=NOW)
    assert (r.start.date(), r.end.date()) == (date(2025, 12, 1), date(2025, 12, 31))


def test_range_annual() -> None:
    r = period_range("2024", "annual", now=NOW)
    assert r.start == datetime(2024, 1, 1)
    assert r.end.date() == date(2024, 12, 31)


def test_range_bi_annual_halves() -> None:
    h1 = period_range("2025-H1", "bi-annual", now=NOW)
    h2 = period_range("2025-H2", "bi-annual", now=NOW)
    assert (h1.start.date(), h1.end.date()) == (date(2025, 1, 1), date(2025, 6, 30))
    assert (h2.start.date(), h2.end.date()) == (date(2025, 7, 1), date(2025, 12, 31))


def test_range_weekly() -> None:
    r = period_range("2025-W09", "weekly", now=NOW)
    assert (r.start.date(), r.end.date()) == (date(2025, 2, 26), date(2025, 3, 4))


def test_range_weekly_last_block_runs_into_next_year() -> None:
    r = period_range("2025-W53", "weekly", now=NOW)
    assert (r.start.date(), r.end.date()) == (date(2025, 12, 31), date(2026, 1, 6))


def test_range_last_supported_year() -> None:
    r = period_range("9999-12", "monthly", now=NOW)
    assert r.fallback is False
    assert r.end == datetime(9999, 12, 31, 23, 59, 59, 999999)
    assert period_range("9999-Q4", "quarterly", now=NOW).fallback is False
    w53 = period_range("9999-W53", "weekly", now=NOW)
    assert w53.fallback is False
    assert w53.start == datetime(9999, 12, 31)
    assert w53.end.date() == date(9999, 12, 31)


def test_range_case_insensitive_frequency() -> None:
    r = period_range("2025-q3", "QUARTERLY", now=NOW)
    assert r.frequency == "quarterly"
    assert r.start.date() == date(2025, 7, 1)


@pytest.mark.parametrize(
    "identifier,frequency",
    [("abc", "annual"), ("2025-Q9", "quarterly"), ("2025-H5", "bi-annual"), ("", "monthly"), ("2025-W99", "weekly")],
)
def test_range_malformed_falls_back_to_year_to_date(identifier: str, frequency: str) -> None:
    r = period_range(identifier, frequency, now=NOW)
    assert r.fallback is True
    assert r.start == datetime(2025, 1, 1)
    assert r.end == NOW
    assert INVALID_PERIOD_IDENTIFIER in r.warnings


def test_range_fallback_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="compliance_periods.resolver"):
        period_range("2025-Q9", "quarterly", now=NOW)
    assert any("2025-Q9" in rec.getMessage() for rec in caplog.records)


def test_range_strict_policy_raises() -> None:
    with pytest.raises(ValueError):
        period_range("2025-Q9", "quarterly", now=NOW, policy=Policy(strict=True))


def test_range_unknown_frequency_uses_annual_branch() -> None:
    r = period_range("2024", "fortnightly", now=NOW)
    assert (r.start.date(), r.end.date()) == (date(2024, 1, 1), date(2024, 12, 31))
    assert r.fallback is False
    assert UNKNOWN_FREQUENCY in r.warnings

    r2 = period_range("2024-Q3", "", now=NOW)
    assert r2.start.date() == date(2024, 1, 1)


def test_range_unknown_frequency_without_year_falls_back() -> None:
    r = period_range("soon", "fortnightly", now=NOW)
    assert r.fallback is True
    assert r.end == NOW


def test_is_overdue() -> None:
    assert is_overdue("2024", "annual", datetime(2025, 1, 1)) is True
    assert is_overdue("2024", "annual", date(2025, 1, 1)) is True
    assert is_overdue("2025-Q3", "quarterly", NOW) is False
    assert is_overdue("2025-Q2", "quarterly", NOW) is True


def test_is_overdue_boundary_inclusive() -> None:
    r = period_range("2025-03", "monthly", now=NOW)
    assert is_overdue("2025-03", "monthly", r.end) is False
    assert is_overdue("2025-03", "monthly", r.end + timedelta(milliseconds=1)) is True


def test_is_overdue_fallback_never_overdue_at_now() -> None:
    assert is_overdue("garbage", "quarterly", NOW) is False


def test_is_within_period() -> None:
    assert is_within_period(date(2025, 7, 1), "2025-H1", "bi-annual", now=NOW) is False
    assert is_within_period(date(2025, 6, 30), "2025-H1", "bi-annual", now=NOW) is True
    assert is_within_period(datetime(2025, 6, 30, 23, 59), "2025-H1", "bi-annual", now=NOW) is True
    assert is_within_period(date(2025, 3, 31), "2025-Q2", "quarterly", now=NOW) is False


def test_aware_datetimes_compare_as_wall_clock() -> None:
    aware = datetime(2025, 6, 30, 12, 0, tzinfo=timezone.utc)
    assert is_within_period(aware, "2025-H1", "bi-annual", now=NOW) is True
    assert is_overdue("2025-Q2", "quarterly", aware) is False


def test_week_of_year() -> None:
    assert week_of_year(date(2024, 12, 30)) == 53
    assert week_of_year(date(2024, 12, 29)) == 52


def test_periods_in_year() -> None:
    assert periods_in_year("quarterly", 2025) == ["2025-Q1", "2025-Q2", "2025-Q3", "2025-Q4"]
    assert periods_in_year("bi-annual", 2025) == ["2025-H1", "2025-H2"]
    assert periods_in_year("annual", 2025) == ["2025"]
    months = periods_in_year("monthly", 2025)
    assert len(months) == 12 and months[0] == "2025-01" and months[-1] == "2025-12"
    weeks = periods_in_year("weekly", 2025)
    assert len(weeks) == 53 and weeks[0] == "2025-W01" and weeks[-1] == "2025-W53"


def test_shift_period() -> None:
    assert shift_period("2025-Q4", "quarterly", 1) == "2026-Q1"
    assert shift_period("2025-Q1", "quarterly", -1) == "2024-Q4"
    assert shift_period("2025-01", "monthly", -1) == "2024-12"
    assert shift_period("2025-H2", "bi-annual", 1) == "2026-H1"
    assert shift_period("2025", "annual", -3) == "2022"
    assert shift_period("2025-W53", "weekly", 1) == "2026-W01"
    assert shift_period("2025-W01", "weekly", -1) == "2024-W53"
    assert shift_period("2025-W10", "weekly", 0) == "2025-W10"


def test_shift_period_rejects_malformed() -> None:
    with pytest.raises(ValueError):
        shift_period("2025-Q9", "quarterly", 1)
    with pytest.raises(ValueError):
        shift_period("2025", "fortnightly", 1)


def test_period_label() -> None:
    assert period_label("2025", "annual") == "Year 2025"
    assert period_label("2025-03", "monthly") == "Mar 2025"
    assert period_label("2025-Q2", "quarterly") == "Q2 2025"
    assert period_label("2025-H1", "bi-annual") == "H1 2025"
    assert period_label("2025-W09", "weekly") == "Week 9 2025"
    assert period_label("2025-Q9", "quarterly") == "2025-Q9"


def test_next_due_date() -> None:
    assert next_due_date("weekly", date(2025, 1, 1)) == date(2025, 1, 8)
    assert next_due_date("monthly", date(2025, 1, 31)) == date(2025, 2, 28)
    assert next_due_date("quarterly", date(2025, 11, 30)) == date(2026, 2, 28)
    assert next_due_date("bi-annual", date(2025, 3, 1)) == date(2025, 9, 1)
    assert next_due_date("annual", date(2024, 2, 29)) == date(2025, 2, 28)
    assert next_due_date("fortnightly", date(2025, 3, 1)) == date(2026, 3, 1)


def test_next_due_date_defaults_to_now() -> None:
    assert next_due_date("monthly", now=date(2025, 5, 10)) == date(2025, 6, 10)
    assert next_due_date("weekly", None, now=datetime(2025, 5, 10, 9, 0)) == date(2025, 5, 17)
