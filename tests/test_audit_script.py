from datetime import datetime

from scripts.audit_period_records import audit_record


NOW = datetime(2025, 8, 15, 9, 0)


def _kinds(rec: dict) -> list[str]:
    return [i.kind for i in audit_record(1, rec, NOW)]


def test_clean_record_has_no_issues() -> None:
    rec = {"id": "a", "frequency": "Quarterly", "period_identifier": "2025-Q2", "status": "completed", "completion_date": "2025-05-14"}
    assert _kinds(rec) == []


def test_frequency_problems() -> None:
    assert _kinds({"period_identifier": "2025"}) == ["MISSING_FREQUENCY"]
    assert _kinds({"frequency": "fortnightly", "period_identifier": "2025"}) == ["UNKNOWN_FREQUENCY"]


def test_malformed_identifier() -> None:
    issues = audit_record(7, {"frequency": "bi-annual", "period_identifier": "2025-H5"}, NOW)
    assert [i.kind for i in issues] == ["INVALID_PERIOD_IDENTIFIER"]
    assert issues[0].rec_id == "line000007"


def test_completion_outside_period_and_overdue() -> None:
    rec = {"frequency": "monthly", "period_identifier": "2025-03", "completion_date": "2025-04-02"}
    assert _kinds(rec) == ["COMPLETION_OUTSIDE_PERIOD"]
    assert _kinds({"frequency": "monthly", "period_identifier": "2025-03", "status": "pending"}) == ["OVERDUE"]
    assert _kinds({"frequency": "monthly", "period_identifier": "2025-08", "status": "pending"}) == []
