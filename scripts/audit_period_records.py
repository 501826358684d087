#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Audit a JSONL export of compliance records of the form:
  {"id": "...", "frequency": "quarterly", "period_identifier": "2025-Q2",
   "status": "completed", "completion_date": "2025-05-14", ...}

Focus: surface the upstream data problems that date pickers otherwise hide behind
the year-to-date fallback range (malformed identifiers, unknown frequencies,
completion dates recorded against the wrong period), plus open overdue periods.
"""

from __future__ import annotations

import argparse
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
import json
import sys
from typing import Any, Dict, Iterable, List, Tuple

from compliance_periods.policy import Policy
from compliance_periods.resolver import is_overdue
from compliance_periods.schema import parse_frequency, parse_period_identifier
from compliance_periods.timeline import completed_within_period, is_completed


@dataclass(frozen=True)
class RecordIssue:
    kind: str
    rec_id: str
    line_no: int
    frequency: str
    period_identifier: str
    detail: str = ""


def iter_jsonl(path: str) -> Iterable[Tuple[int, Dict[str, Any]]]:
    with open(path, "r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, 1):
            line = line.strip("\n")
            if not line.strip():
                continue
            yield line_no, json.loads(line)


def audit_record(line_no: int, rec: Dict[str, Any], now: datetime) -> List[RecordIssue]:
    rec_id = str(rec.get("id", f"line{line_no:06d}"))
    raw_freq = str(rec.get("frequency") or "")
    pid = str(rec.get("period_identifier") or "")

    def issue(kind: str, detail: str = "") -> RecordIssue:
        return RecordIssue(kind=kind, rec_id=rec_id, line_no=line_no, frequency=raw_freq, period_identifier=pid, detail=detail)

    if not raw_freq:
        return [issue("MISSING_FREQUENCY")]

    freq = parse_frequency(raw_freq)
    if freq is None:
        return [issue("UNKNOWN_FREQUENCY")]

    try:
        parse_period_identifier(pid, freq)
    except ValueError as e:
        return [issue("INVALID_PERIOD_IDENTIFIER", str(e))]

    issues: List[RecordIssue] = []
    if rec.get("completion_date") and not completed_within_period(rec, freq):
        issues.append(issue("COMPLETION_OUTSIDE_PERIOD", str(rec.get("completion_date"))))

    if not is_completed(rec) and is_overdue(pid, freq, now, policy=Policy(strict=True)):
        issues.append(issue("OVERDUE"))

    return issues


def main() -> None:
    if hasattr(sys.stdout, "reconfigure"):
        try:
            sys.stdout.reconfigure(encoding="utf-8", errors="backslashreplace")
        except Exception:
            pass

    ap = argparse.ArgumentParser()
    ap.add_argument("input", nargs="?", default="compliance_records.jsonl", help="Path to JSONL to audit")
    ap.add_argument("--now", default=None, help="Audit datetime (ISO 8601); default is now")
    ap.add_argument("--max-print", type=int, default=40, help="Max issues to print")
    args = ap.parse_args()

    now = datetime.fromisoformat(args.now) if args.now else datetime.now()

    counts = Counter()
    all_issues: List[RecordIssue] = []
    n_recs = 0

    for line_no, rec in iter_jsonl(args.input):
        n_recs += 1
        issues = audit_record(line_no, rec, now)
        for it in issues:
            counts[it.kind] += 1
        all_issues.extend(issues)

    print(f"records={n_recs} issues={len(all_issues)} now={now.isoformat()}")
    if counts:
        print("by_kind:")
        for k, v in counts.most_common():
            print(f"  {k}: {v}")

    if all_issues:
        print("\nexamples:")
        for it in all_issues[: args.max_print]:
            detail = f" ({it.detail})" if it.detail else ""
            print(f"- {it.kind} id={it.rec_id} line={it.line_no} [{it.frequency} {it.period_identifier!r}]{detail}")


if __name__ == "__main__":
    main()
