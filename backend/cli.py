"""
CLI entry point for calendar and ordinance tasks.

Usage:
    python -m backend.cli calendar
    python -m backend.cli calendar --year 2027
    python -m backend.cli ordinances --stage hearing
    python -m backend.cli next-hearing 2026-01-28
"""
import argparse
import logging
import sys

from backend.db.session import SessionLocal
from backend.db.seed import seed_calendar
from backend.services.calendar import parse_date, today
from backend.services.ordinances import (
    FILTER_KEYS,
    HEARING_MIN_DAYS,
    hearing_too_soon,
    list_ordinances,
    suggest_hearing_date,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s — %(message)s",
)


def cmd_calendar(args):
    db = SessionLocal()
    try:
        created = seed_calendar(db, args.year)
        if created:
            print(f"Generated {len(created)} new meeting(s):")
            for m in created:
                print(f"  {m.meeting_date}  {m.meeting_type}  (cycle {m.cycle_date})")
        else:
            print("Calendar already up to date.")
    finally:
        db.close()


def cmd_ordinances(args):
    db = SessionLocal()
    try:
        rows = list_ordinances(db, today(), args.stage)
        if not rows:
            print("No ordinances.")
            return
        for item, tracking, stage in rows:
            number = tracking.ordinance_number or "(no number)"
            flag = "  [hearing < %d days]" % HEARING_MIN_DAYS if hearing_too_soon(
                tracking.introduction_date, tracking.hearing_date
            ) else ""
            print(f"{number:<16} {stage.label:<20} {max(stage.index, 0)}/8  {item.email_subject[:60]}{flag}")
    finally:
        db.close()


def cmd_next_hearing(args):
    db = SessionLocal()
    try:
        introduced = parse_date(args.date)
        suggested = suggest_hearing_date(db, introduced)
        # Keep any meetings generated to reach the suggestion
        db.commit()
        if suggested:
            print(f"Earliest hearing: {suggested}")
        else:
            print(f"No hearing meeting on the calendar {HEARING_MIN_DAYS}+ days after {introduced}.")
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(description="Clerk Docket CLI")
    sub = parser.add_subparsers(dest="command")

    calendar_p = sub.add_parser("calendar", help="Generate meetings for a year")
    calendar_p.add_argument("--year", type=int, default=None, help="Year (default: configured)")

    ord_p = sub.add_parser("ordinances", help="List ordinances with their stage")
    ord_p.add_argument("--stage", default="all", choices=FILTER_KEYS, help="Stage filter")

    next_p = sub.add_parser("next-hearing", help="Suggest a hearing date after introduction")
    next_p.add_argument("date", help="Introduction date (YYYY-MM-DD)")

    args = parser.parse_args()
    if args.command == "calendar":
        cmd_calendar(args)
    elif args.command == "ordinances":
        cmd_ordinances(args)
    elif args.command == "next-hearing":
        cmd_next_hearing(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
