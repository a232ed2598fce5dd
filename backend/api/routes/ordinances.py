"""
API routes for ordinance lifecycle tracking.

Endpoints:
  GET   /api/ordinances                     - All ordinances with derived stage
  GET   /api/ordinances/{docket_id}         - Tracking record for one ordinance
  PATCH /api/ordinances/{docket_id}         - Clerk edits to tracking fields
  GET   /api/ordinances/{docket_id}/history
  POST  /api/ordinances/{docket_id}/revert
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from backend.api.schemas import OrdinanceTrackingUpdate, RevertRequest
from backend.db.models import DocketItem
from backend.db.session import get_db
from backend.services import history
from backend.services.calendar import today
from backend.services.docket import get_docket_item, serialize_docket_item
from backend.services.ordinances import (
    ensure_tracking,
    lazy_defaults,
    list_ordinances,
    serialize_tracking,
    update_tracking,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_ordinance_or_404(db: Session, docket_id: int) -> DocketItem:
    item = get_docket_item(db, docket_id)
    if not item or not item.is_ordinance:
        raise HTTPException(status_code=404, detail="Ordinance not found")
    return item


@router.get("/api/ordinances")
def ordinances_index(
    stage: str = Query("all", description="Stage filter key"),
    db: Session = Depends(get_db),
):
    current = today()
    try:
        rows = list_ordinances(db, current, stage)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "ordinances": [
            {**serialize_docket_item(item), "tracking": serialize_tracking(tracking, current)}
            for item, tracking, _stage in rows
        ]
    }


@router.get("/api/ordinances/{docket_id}")
def ordinance_detail(docket_id: int, db: Session = Depends(get_db)):
    item = _get_ordinance_or_404(db, docket_id)
    tracking = ensure_tracking(db, item, lazy_defaults(item))
    db.commit()
    return {"tracking": serialize_tracking(tracking, today())}


@router.patch("/api/ordinances/{docket_id}")
def patch_ordinance(
    docket_id: int,
    body: OrdinanceTrackingUpdate,
    db: Session = Depends(get_db),
):
    _get_ordinance_or_404(db, docket_id)
    try:
        tracking = update_tracking(db, docket_id, body.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"tracking": serialize_tracking(tracking, today())}


@router.get("/api/ordinances/{docket_id}/history")
def ordinance_history(docket_id: int, db: Session = Depends(get_db)):
    _get_ordinance_or_404(db, docket_id)
    entries = history.list_history(db, history.OWNER_ORDINANCE, docket_id)
    return {"history": [history.serialize_entry(e) for e in entries]}


@router.post("/api/ordinances/{docket_id}/revert")
def revert_ordinance_field(
    docket_id: int,
    body: RevertRequest,
    db: Session = Depends(get_db),
):
    _get_ordinance_or_404(db, docket_id)
    try:
        tracking = history.revert(db, history.OWNER_ORDINANCE, docket_id, body.field)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if tracking is None:
        raise HTTPException(status_code=404, detail=f"No history for '{body.field}'")
    return {"tracking": serialize_tracking(tracking, today())}
