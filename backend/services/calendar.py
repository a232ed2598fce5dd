"""
Calendar generation for the legislative meeting cycle.

The annual schedule is a plain list of ``ScheduledMeeting`` values handed in
by the caller; ``ensure_meetings_generated`` turns it into Meeting rows,
inserting only the (type, date) pairs that are not already present.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from dateutil import parser as dateutil_parser
from pytz import timezone as pytz_timezone
from sqlalchemy import func
from sqlalchemy.orm import Session

from backend.config import (
    CLERK_TIMEZONE,
    CYCLE_OFFSETS,
    MEETING_ANCHOR_DATE,
    MEETING_START_TIME,
    MEETING_TYPES,
)
from backend.db.models import Meeting, MeetingStatus

logger = logging.getLogger(__name__)

CYCLE_LENGTH_DAYS = 14


@dataclass(frozen=True)
class ScheduledMeeting:
    meeting_date: date
    meeting_time: Optional[time]
    meeting_type: str
    cycle_date: Optional[date] = None

    def resolved_cycle_date(self) -> date:
        """Explicit cycle date, or the Monday of the meeting's week."""
        if self.cycle_date is not None:
            return self.cycle_date
        return self.meeting_date - timedelta(days=self.meeting_date.weekday())


def today() -> date:
    """Current date in the clerk's timezone."""
    return datetime.now(pytz_timezone(CLERK_TIMEZONE)).date()


def parse_date(value) -> Optional[date]:
    """Coerce a date, ISO string or free-form date text into a ``date``.

    Empty strings and None mean "no date".
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return dateutil_parser.parse(str(value)).date()


def biweekly_schedule(
    start: date,
    end: date,
    anchor: Optional[date] = None,
    offsets: Optional[dict[str, int]] = None,
    start_time: Optional[time] = None,
) -> list[ScheduledMeeting]:
    """
    Build the meeting list for every cycle between ``start`` and ``end``.

    A cycle begins on ``anchor`` and repeats every 14 days. Each meeting type
    in ``offsets`` falls that many days after the cycle start and shares the
    cycle start as its ``cycle_date``.
    """
    anchor = anchor or parse_date(MEETING_ANCHOR_DATE)
    offsets = offsets if offsets is not None else CYCLE_OFFSETS
    if start_time is None:
        start_time = dateutil_parser.parse(MEETING_START_TIME).time()

    # First cycle start on or before ``start``
    periods = (start - anchor).days // CYCLE_LENGTH_DAYS
    cursor = anchor + timedelta(days=periods * CYCLE_LENGTH_DAYS)

    schedule: list[ScheduledMeeting] = []
    while cursor <= end:
        for meeting_type, offset in offsets.items():
            meeting_date = cursor + timedelta(days=offset)
            if start <= meeting_date <= end:
                schedule.append(
                    ScheduledMeeting(meeting_date, start_time, meeting_type, cursor)
                )
        cursor += timedelta(days=CYCLE_LENGTH_DAYS)

    return sorted(schedule, key=lambda m: (m.meeting_date, m.meeting_type))


def annual_schedule(year: int) -> list[ScheduledMeeting]:
    """The biweekly schedule for one legislative year."""
    return biweekly_schedule(date(year, 1, 1), date(year, 12, 31))


def ensure_meetings_generated(
    db: Session, schedule: Iterable[ScheduledMeeting], commit: bool = True
) -> list[Meeting]:
    """
    Make sure every scheduled meeting has exactly one Meeting row.

    Existing rows are left untouched (video, minutes and status belong to
    other writers). Returns the rows that were newly inserted. With
    ``commit=False`` the rows are only flushed and the caller commits.
    """
    created: list[Meeting] = []
    for entry in schedule:
        if entry.meeting_type not in MEETING_TYPES:
            raise ValueError(f"Unknown meeting type '{entry.meeting_type}'")

        existing = (
            db.query(Meeting)
            .filter_by(meeting_type=entry.meeting_type, meeting_date=entry.meeting_date)
            .first()
        )
        if existing:
            continue

        meeting = Meeting(
            meeting_type=entry.meeting_type,
            meeting_date=entry.meeting_date,
            meeting_time=entry.meeting_time,
            cycle_date=entry.resolved_cycle_date(),
            minutes="",
            status=MeetingStatus.upcoming,
        )
        db.add(meeting)
        # Flush so a duplicate entry later in the same schedule is seen
        db.flush()
        created.append(meeting)

    if commit:
        db.commit()
    if created:
        logger.info("Generated %d new meeting(s)", len(created))
    return created


def ensure_calendar_covers(db: Session, through: date, commit: bool = True) -> list[Meeting]:
    """
    Extend a seeded calendar year by year until it reaches ``through``.

    Lookups past December 31 would otherwise find nothing. An empty calendar
    is left empty; seeding the first year is the caller's decision.
    """
    latest = db.query(func.max(Meeting.meeting_date)).scalar()
    if latest is None:
        return []

    created: list[Meeting] = []
    year = latest.year
    while latest < through:
        year += 1
        logger.info("Calendar ends %s; generating %d", latest, year)
        created += ensure_meetings_generated(db, annual_schedule(year), commit=commit)
        latest = date(year, 12, 31)
    return created
