"""
API routes for the meeting calendar.

Endpoints:
  GET   /api/meetings                    - Meeting cycles (upcoming/past/all)
  GET   /api/meetings/needing-minutes    - Past meetings with video but no minutes
  GET   /api/meetings/next               - Next meeting of a type N+ days after a date
  GET   /api/meetings/{meeting_id}       - Meeting with its agenda items
  PATCH /api/meetings/{meeting_id}       - Update video, minutes or status
  GET   /api/meetings/{meeting_id}/history
  POST  /api/meetings/{meeting_id}/revert
  POST  /admin/calendar                  - Generate meetings for a year
"""
import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from backend.api.schemas import MeetingUpdate, RevertRequest
from backend.db.models import Meeting
from backend.db.seed import seed_calendar
from backend.db.session import get_db
from backend.services import history
from backend.services.calendar import today
from backend.services.docket import serialize_docket_item
from backend.services.meetings import (
    agenda_items_for_meeting,
    get_meeting,
    meeting_cycles,
    meetings_needing_minutes,
    next_meeting_of_type_after,
    serialize_meeting,
    update_meeting,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_meeting_or_404(db: Session, meeting_id: int) -> Meeting:
    meeting = get_meeting(db, meeting_id)
    if not meeting:
        raise HTTPException(status_code=404, detail="Meeting not found")
    return meeting


def _serialize_with_agenda(db: Session, meeting: Meeting) -> dict:
    result = serialize_meeting(meeting)
    result["agenda_items"] = [
        serialize_docket_item(item) for item in agenda_items_for_meeting(db, meeting)
    ]
    return result


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/api/meetings")
def list_meeting_cycles(
    filter: str = Query("all", pattern="^(upcoming|past|all)$"),
    limit: int = Query(30, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    cycles, total = meeting_cycles(db, today(), filter=filter, limit=limit, offset=offset)
    return {
        "total": total,
        "cycles": [
            {
                "cycle_date": cycle["cycle_date"].isoformat(),
                "meetings": {
                    meeting_type: serialize_meeting(m)
                    for meeting_type, m in cycle["meetings"].items()
                },
            }
            for cycle in cycles
        ],
    }


@router.get("/api/meetings/needing-minutes")
def list_meetings_needing_minutes(db: Session = Depends(get_db)):
    return {"meetings": [serialize_meeting(m) for m in meetings_needing_minutes(db, today())]}


@router.get("/api/meetings/next")
def next_meeting(
    meeting_type: str = Query(..., description="Meeting type to look for"),
    after: date = Query(..., description="Start date (YYYY-MM-DD)"),
    min_days: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """Earliest meeting of a type at least ``min_days`` after a date, or null."""
    meeting = next_meeting_of_type_after(db, meeting_type, after, min_days)
    return {"meeting": serialize_meeting(meeting) if meeting else None}


@router.get("/api/meetings/{meeting_id}")
def meeting_detail(meeting_id: int, db: Session = Depends(get_db)):
    meeting = _get_meeting_or_404(db, meeting_id)
    return _serialize_with_agenda(db, meeting)


@router.patch("/api/meetings/{meeting_id}")
def patch_meeting(
    meeting_id: int,
    body: MeetingUpdate,
    db: Session = Depends(get_db),
):
    meeting = _get_meeting_or_404(db, meeting_id)
    try:
        meeting = update_meeting(db, meeting, body.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return serialize_meeting(meeting)


@router.get("/api/meetings/{meeting_id}/history")
def meeting_history(meeting_id: int, db: Session = Depends(get_db)):
    _get_meeting_or_404(db, meeting_id)
    entries = history.list_history(db, history.OWNER_MEETING, meeting_id)
    return {"history": [history.serialize_entry(e) for e in entries]}


@router.post("/api/meetings/{meeting_id}/revert")
def revert_meeting_field(
    meeting_id: int,
    body: RevertRequest,
    db: Session = Depends(get_db),
):
    _get_meeting_or_404(db, meeting_id)
    try:
        meeting = history.revert(db, history.OWNER_MEETING, meeting_id, body.field)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if meeting is None:
        raise HTTPException(status_code=404, detail=f"No history for '{body.field}'")
    return serialize_meeting(meeting)


# ---------------------------------------------------------------------------
# Admin endpoints
# ---------------------------------------------------------------------------


@router.post("/admin/calendar")
def admin_generate_calendar(
    year: Optional[int] = Query(None, description="Legislative year (default: configured)"),
    db: Session = Depends(get_db),
):
    """Generate the year's meetings. Safe to call repeatedly."""
    try:
        created = seed_calendar(db, year)
    except Exception as e:
        logger.exception("Calendar generation failed")
        raise HTTPException(status_code=500, detail=str(e))
    return {
        "status": "ok",
        "new_meetings": len(created),
        "meetings": [serialize_meeting(m) for m in created],
    }
