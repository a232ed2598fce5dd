"""
API routes for docket items.

Endpoints:
  GET   /api/docket                 - List docket items
  GET   /api/docket/stats           - Counts by status, type and department
  GET   /api/docket/{item_id}       - One docket item
  PATCH /api/docket/{item_id}       - Status, meeting date, notes, overrides
  GET   /api/docket/{item_id}/history
  POST  /api/docket/{item_id}/revert
  POST  /admin/intake               - Docket one classified submission
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from backend.api.schemas import DocketItemUpdate, IntakeSubmission, RevertRequest
from backend.db.models import DocketItem
from backend.db.session import get_db
from backend.ingestion.intake import intake_classified_item
from backend.services import history
from backend.services.docket import (
    docket_stats,
    get_docket_item,
    list_docket_items,
    serialize_docket_item,
    update_docket_item,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_item_or_404(db: Session, item_id: int) -> DocketItem:
    item = get_docket_item(db, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Docket item not found")
    return item


@router.get("/api/docket")
def list_docket(
    status: Optional[str] = Query(None, description="Filter by status"),
    relevant: Optional[bool] = Query(None),
    item_type: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    try:
        items, total = list_docket_items(db, status, relevant, item_type, limit, offset)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"total": total, "entries": [serialize_docket_item(i) for i in items]}


@router.get("/api/docket/stats")
def stats(db: Session = Depends(get_db)):
    return docket_stats(db)


@router.get("/api/docket/{item_id}")
def docket_detail(item_id: int, db: Session = Depends(get_db)):
    return serialize_docket_item(_get_item_or_404(db, item_id))


@router.patch("/api/docket/{item_id}")
def patch_docket_item(
    item_id: int,
    body: DocketItemUpdate,
    db: Session = Depends(get_db),
):
    item = _get_item_or_404(db, item_id)
    updates = body.model_dump(exclude_unset=True, exclude={"text_override"})
    if body.text_override is not None:
        updates["text_override"] = body.text_override.model_dump(exclude_unset=True)
    try:
        item = update_docket_item(db, item, updates)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return serialize_docket_item(item)


@router.get("/api/docket/{item_id}/history")
def docket_history(item_id: int, db: Session = Depends(get_db)):
    _get_item_or_404(db, item_id)
    entries = history.list_history(db, history.OWNER_DOCKET, item_id)
    return {"history": [history.serialize_entry(e) for e in entries]}


@router.post("/api/docket/{item_id}/revert")
def revert_docket_field(
    item_id: int,
    body: RevertRequest,
    db: Session = Depends(get_db),
):
    _get_item_or_404(db, item_id)
    try:
        item = history.revert(db, history.OWNER_DOCKET, item_id, body.field)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if item is None:
        raise HTTPException(status_code=404, detail=f"No history for '{body.field}'")
    return serialize_docket_item(item)


@router.post("/admin/intake")
def admin_intake(body: IntakeSubmission, db: Session = Depends(get_db)):
    """Docket a submission produced by the email classifier."""
    try:
        item, created = intake_classified_item(db, body.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Intake failed for %s", body.email_id)
        raise HTTPException(status_code=500, detail=str(e))
    return {"status": "ok", "created": created, "item": serialize_docket_item(item)}
