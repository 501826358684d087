from __future__ import annotations

import argparse
from dataclasses import asdict
from datetime import date, datetime
import json
import logging
from typing import Any

from compliance_periods import resolver
from compliance_periods.config import load_dotenv_into_env, load_settings
from compliance_periods.resolver import PeriodRange
from compliance_periods.timeline import build_timeline


def _parse_date(s: str) -> date:
    try:
        return date.fromisoformat(s)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid date '{s}', expected YYYY-MM-DD") from e


def _parse_datetime(s: str) -> datetime:
    try:
        return datetime.fromisoformat(s)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid datetime '{s}', expected ISO 8601") from e


def _range_to_json(r: PeriodRange) -> dict[str, Any]:
    return {
        "period_identifier": r.period_identifier,
        "frequency": r.frequency,
        "start": r.start.isoformat(),
        "end": r.end.isoformat(),
        "fallback": r.fallback,
        "warnings": list(r.warnings),
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="compliance-periods")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_current = sub.add_parser("current", help="Period identifier containing a date.")
    p_current.add_argument("--frequency", required=True)
    p_current.add_argument("--date", type=_parse_date, default=None, help="Reference date (default: today).")

    p_range = sub.add_parser("range", help="Start/end boundary of a period.")
    p_range.add_argument("--period", required=True)
    p_range.add_argument("--frequency", required=True)
    p_range.add_argument("--now", type=_parse_datetime, default=None)

    p_overdue = sub.add_parser("overdue", help="Whether a period has ended.")
    p_overdue.add_argument("--period", required=True)
    p_overdue.add_argument("--frequency", required=True)
    p_overdue.add_argument("--now", type=_parse_datetime, default=None)

    p_within = sub.add_parser("within", help="Whether a date falls inside a period.")
    p_within.add_argument("--date", type=_parse_datetime, required=True)
    p_within.add_argument("--period", required=True)
    p_within.add_argument("--frequency", required=True)
    p_within.add_argument("--now", type=_parse_datetime, default=None)

    p_timeline = sub.add_parser("timeline", help="Status of every period in a year (records from JSONL).")
    p_timeline.add_argument("--frequency", required=True)
    p_timeline.add_argument("--year", type=int, default=None)
    p_timeline.add_argument("--records", default=None, help="JSONL file of compliance records.")
    p_timeline.add_argument("--now", type=_parse_datetime, default=None)

    return parser


def _read_records(path: str | None) -> list[dict[str, Any]]:
    if not path:
        return []
    rows: list[dict[str, Any]] = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                rows.append(json.loads(line))
    return rows


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    load_dotenv_into_env()
    try:
        settings = load_settings()
    except RuntimeError as e:
        parser.error(str(e))
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.WARNING))
    policy = settings.policy()

    now: datetime = getattr(args, "now", None) or datetime.now()

    try:
        if args.cmd == "current":
            ref = args.date or now.date()
            pid = resolver.current_period_identifier(args.frequency, ref, policy=policy)
            print(json.dumps({"period_identifier": pid, "frequency": args.frequency, "reference_date": ref.isoformat()}))
            return 0

        if args.cmd == "range":
            r = resolver.period_range(args.period, args.frequency, now=now, policy=policy)
            print(json.dumps(_range_to_json(r)))
            return 0

        if args.cmd == "overdue":
            overdue = resolver.is_overdue(args.period, args.frequency, now, policy=policy)
            print(json.dumps({"period_identifier": args.period, "overdue": overdue, "now": now.isoformat()}))
            return 0

        if args.cmd == "within":
            within = resolver.is_within_period(args.date, args.period, args.frequency, now=now, policy=policy)
            print(json.dumps({"period_identifier": args.period, "date": args.date.isoformat(), "within": within}))
            return 0

        if args.cmd == "timeline":
            year = args.year or now.year
            entries = build_timeline(args.frequency, year, now, _read_records(args.records), policy=policy)
            for e in entries:
                print(json.dumps(asdict(e), ensure_ascii=False))
            return 0
    except (OSError, ValueError) as e:
        # Strict policy rejections and unreadable record files.
        print(json.dumps({"error": str(e)}))
        return 1

    parser.error("Unknown command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
