"""
Meeting lookup and meeting-level updates.

Lookups are pure reads and return None / empty lists for missing rows.
"""
import logging
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from backend.db.models import AGENDA_STATUSES, DocketItem, Meeting, MeetingStatus
from backend.services import history
from backend.services.errors import InvalidTransition, UnknownField

logger = logging.getLogger(__name__)

STATUS_ORDER = [MeetingStatus.upcoming, MeetingStatus.in_progress, MeetingStatus.completed]

UPDATABLE_FIELDS = ("video_url", "minutes", "status")


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


def get_meeting(db: Session, meeting_id: int) -> Optional[Meeting]:
    return db.get(Meeting, meeting_id)


def get_meeting_by_type_and_date(
    db: Session, meeting_type: str, meeting_date: date
) -> Optional[Meeting]:
    return (
        db.query(Meeting)
        .filter_by(meeting_type=meeting_type, meeting_date=meeting_date)
        .first()
    )


def meetings_on(db: Session, meeting_date: date) -> list[Meeting]:
    """All meetings on a date, of any type."""
    return (
        db.query(Meeting)
        .filter(Meeting.meeting_date == meeting_date)
        .order_by(Meeting.meeting_type)
        .all()
    )


def next_meeting_of_type_after(
    db: Session, meeting_type: str, from_date: date, min_days: int = 0
) -> Optional[Meeting]:
    """Earliest meeting of ``meeting_type`` on or after ``from_date + min_days``."""
    earliest = from_date + timedelta(days=min_days)
    return (
        db.query(Meeting)
        .filter(Meeting.meeting_type == meeting_type, Meeting.meeting_date >= earliest)
        .order_by(Meeting.meeting_date.asc())
        .first()
    )


def agenda_items_for_meeting(db: Session, meeting: Meeting) -> list[DocketItem]:
    """Docket items assigned to the meeting's date and accepted onto an agenda."""
    return (
        db.query(DocketItem)
        .filter(
            DocketItem.target_meeting_date == meeting.meeting_date,
            DocketItem.status.in_(AGENDA_STATUSES),
        )
        .order_by(DocketItem.item_type, DocketItem.id)
        .all()
    )


def meeting_cycles(
    db: Session,
    today: date,
    filter: str = "all",
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[dict], int]:
    """
    Group meetings into cycles keyed by ``cycle_date``.

    ``filter`` is one of upcoming, past or all. Past cycles come newest
    first, the others oldest first. Returns (page of cycles, total cycles).
    """
    query = db.query(Meeting)
    if filter == "upcoming":
        query = query.filter(Meeting.cycle_date >= today)
    elif filter == "past":
        query = query.filter(Meeting.cycle_date < today)
    elif filter != "all":
        raise ValueError(f"Unknown cycle filter '{filter}'")

    if filter == "past":
        query = query.order_by(Meeting.cycle_date.desc(), Meeting.meeting_type)
    else:
        query = query.order_by(Meeting.cycle_date.asc(), Meeting.meeting_type)

    cycles: dict[date, dict] = {}
    for meeting in query.all():
        cycle = cycles.setdefault(
            meeting.cycle_date, {"cycle_date": meeting.cycle_date, "meetings": {}}
        )
        cycle["meetings"][meeting.meeting_type] = meeting

    all_cycles = list(cycles.values())
    return all_cycles[offset:offset + limit], len(all_cycles)


def meetings_needing_minutes(db: Session, today: date) -> list[Meeting]:
    """Past meetings with a video, no minutes, and at least one agenda item."""
    candidates = (
        db.query(Meeting)
        .filter(
            Meeting.video_url.isnot(None),
            Meeting.video_url != "",
            Meeting.meeting_date <= today,
        )
        .order_by(Meeting.meeting_date.asc())
        .all()
    )
    return [
        m for m in candidates
        if not m.minutes and agenda_items_for_meeting(db, m)
    ]


# ---------------------------------------------------------------------------
# Updates
# ---------------------------------------------------------------------------


def _check_status(current: MeetingStatus, requested: MeetingStatus) -> None:
    if STATUS_ORDER.index(requested) < STATUS_ORDER.index(current):
        raise InvalidTransition(current.value, requested.value)


def update_meeting(db: Session, meeting: Meeting, updates: dict) -> Meeting:
    """
    Apply video, minutes and status changes to a meeting.

    Minutes edits are written to history. Status only moves forward.
    """
    unknown = set(updates) - set(UPDATABLE_FIELDS)
    if unknown:
        raise UnknownField(f"Cannot update meeting field(s): {', '.join(sorted(unknown))}")

    if "status" in updates and updates["status"] is not None:
        requested = MeetingStatus(updates["status"])
        _check_status(meeting.status, requested)
        meeting.status = requested

    if "video_url" in updates:
        meeting.video_url = updates["video_url"] or None

    if "minutes" in updates and updates["minutes"] is not None:
        new_minutes = updates["minutes"]
        history.record(
            db, history.OWNER_MEETING, meeting.id, "minutes",
            meeting.minutes or "", new_minutes,
        )
        meeting.minutes = new_minutes

    db.commit()
    db.refresh(meeting)
    return meeting


def serialize_meeting(meeting: Meeting) -> dict:
    return {
        "id": meeting.id,
        "meeting_type": meeting.meeting_type,
        "meeting_date": meeting.meeting_date.isoformat(),
        "meeting_time": meeting.meeting_time.strftime("%H:%M") if meeting.meeting_time else None,
        "cycle_date": meeting.cycle_date.isoformat(),
        "video_url": meeting.video_url,
        "minutes": meeting.minutes,
        "status": meeting.status.value if meeting.status else "upcoming",
    }
