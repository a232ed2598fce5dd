"""
Docket item workflow: status transitions, meeting assignment and text
overrides.

Status moves follow ``TRANSITIONS``. ``accepted`` and ``on_agenda`` are the
same state for every rule here. Any status may go back to ``new``.
"""
import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from backend.db.models import AGENDA_STATUSES, DocketItem, DocketStatus
from backend.services import history, ordinances
from backend.services.calendar import parse_date
from backend.services.errors import InvalidTransition, UnknownField

logger = logging.getLogger(__name__)

TRANSITIONS: dict[DocketStatus, set[DocketStatus]] = {
    DocketStatus.new: {DocketStatus.reviewed, DocketStatus.rejected},
    DocketStatus.reviewed: {
        DocketStatus.accepted,
        DocketStatus.needs_info,
        DocketStatus.rejected,
    },
    DocketStatus.needs_info: {
        DocketStatus.accepted,
        DocketStatus.rejected,
        DocketStatus.reviewed,
    },
    DocketStatus.accepted: set(),
    DocketStatus.rejected: set(),
}

UPDATABLE_FIELDS = (
    "status",
    "target_meeting_date",
    "notes",
    "item_type",
    "department",
    "text_override",
)
# Plain fields whose changes are kept in history
AUDITED_FIELDS = ("status", "target_meeting_date", "notes")


def _canonical(status: DocketStatus) -> DocketStatus:
    return DocketStatus.accepted if status == DocketStatus.on_agenda else status


def is_on_agenda(status: Optional[DocketStatus]) -> bool:
    return status in AGENDA_STATUSES


def can_transition(current: DocketStatus, requested: DocketStatus) -> bool:
    current, requested = _canonical(current), _canonical(requested)
    if requested == current or requested == DocketStatus.new:
        return True
    return requested in TRANSITIONS[current]


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def get_docket_item(db: Session, item_id: int) -> Optional[DocketItem]:
    return db.get(DocketItem, item_id)


def list_docket_items(
    db: Session,
    status: Optional[str] = None,
    relevant: Optional[bool] = None,
    item_type: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[DocketItem], int]:
    query = db.query(DocketItem)
    if status:
        query = query.filter(DocketItem.status == DocketStatus(status))
    if relevant is not None:
        query = query.filter(DocketItem.relevant == relevant)
    if item_type:
        query = query.filter(DocketItem.item_type == item_type)

    total = query.count()
    items = (
        query.order_by(DocketItem.created_at.desc(), DocketItem.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
    return items, total


def docket_stats(db: Session) -> dict:
    """Counts of relevant items by status, item type and department."""
    relevant = db.query(DocketItem).filter(DocketItem.relevant.is_(True))

    by_status = dict(
        relevant.with_entities(DocketItem.status, func.count(DocketItem.id))
        .group_by(DocketItem.status)
        .all()
    )
    by_type = (
        relevant.with_entities(DocketItem.item_type, func.count(DocketItem.id))
        .filter(DocketItem.item_type.isnot(None))
        .group_by(DocketItem.item_type)
        .order_by(func.count(DocketItem.id).desc())
        .all()
    )
    by_department = (
        relevant.with_entities(DocketItem.department, func.count(DocketItem.id))
        .filter(DocketItem.department.isnot(None))
        .group_by(DocketItem.department)
        .order_by(func.count(DocketItem.id).desc())
        .all()
    )

    return {
        "total": relevant.count(),
        "by_status": {status.value: by_status.get(status, 0) for status in DocketStatus},
        "by_type": [{"item_type": t, "count": c} for t, c in by_type],
        "by_department": [{"department": d, "count": c} for d, c in by_department],
    }


# ---------------------------------------------------------------------------
# Updates
# ---------------------------------------------------------------------------


def _merge_overrides(db: Session, item: DocketItem, new_fields: dict) -> None:
    """Merge override keys into ``text_override``; None removes a key."""
    for field_name in new_fields:
        if field_name not in history.TEXT_OVERRIDE_FIELDS:
            raise UnknownField(f"'{field_name}' is not an overridable text field")

    current = dict(item.text_override or {})
    for field_name, value in new_fields.items():
        history.record(
            db, history.OWNER_DOCKET, item.id, field_name,
            current.get(field_name), value,
        )
        if value is None:
            current.pop(field_name, None)
        else:
            current[field_name] = value
    # Reassign so the JSON column is marked dirty
    item.text_override = current or None


def update_docket_item(
    db: Session, item: DocketItem, updates: dict, enforce_transitions: bool = True
) -> DocketItem:
    """
    Apply clerk changes to a docket item.

    When an ordinance ends up on an agenda with a meeting date, and either the
    date changed or it just joined the agenda, its lifecycle dates are
    inferred from that meeting. The item change and the inferred dates are
    committed together. Reverts pass ``enforce_transitions=False`` so an
    earlier status can always be restored.
    """
    unknown = set(updates) - set(UPDATABLE_FIELDS)
    if unknown:
        raise UnknownField(f"Cannot update docket field(s): {', '.join(sorted(unknown))}")

    was_on_agenda = is_on_agenda(item.status)
    old_date = item.target_meeting_date

    if updates.get("status") is not None:
        requested = DocketStatus(updates["status"])
        if enforce_transitions and not can_transition(item.status, requested):
            raise InvalidTransition(item.status.value, requested.value)
        history.record(db, history.OWNER_DOCKET, item.id, "status", item.status, requested)
        item.status = requested

    if "target_meeting_date" in updates:
        new_date = parse_date(updates["target_meeting_date"])
        history.record(
            db, history.OWNER_DOCKET, item.id, "target_meeting_date", old_date, new_date
        )
        item.target_meeting_date = new_date

    if updates.get("notes") is not None:
        history.record(db, history.OWNER_DOCKET, item.id, "notes", item.notes, updates["notes"])
        item.notes = updates["notes"]

    if updates.get("item_type") is not None:
        item.item_type = updates["item_type"]
    if updates.get("department") is not None:
        item.department = updates["department"]

    if updates.get("text_override") is not None:
        _merge_overrides(db, item, updates["text_override"])

    try:
        db.flush()
        if item.is_ordinance:
            # First touch creates the tracking record
            ordinances.ensure_tracking(db, item, ordinances.number_defaults(item))

            date_changed = item.target_meeting_date != old_date
            joined_agenda = is_on_agenda(item.status) and not was_on_agenda
            if (
                is_on_agenda(item.status)
                and item.target_meeting_date is not None
                and (date_changed or joined_agenda)
            ):
                ordinances.apply_meeting_assignment(
                    db, item, item.target_meeting_date, commit=False
                )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(item)
    return item


def serialize_docket_item(item: DocketItem) -> dict:
    return {
        "id": item.id,
        "email_id": item.email_id,
        "email_from": item.email_from,
        "email_subject": item.email_subject,
        "email_date": item.email_date.isoformat() if item.email_date else None,
        "email_body_preview": item.email_body_preview,
        "relevant": item.relevant,
        "confidence": item.confidence,
        "item_type": item.item_type,
        "department": item.department,
        "summary": item.summary,
        "extracted_fields": item.extracted_fields or {},
        "completeness": item.completeness or {},
        "attachment_filenames": item.attachment_filenames or [],
        "status": item.status.value if item.status else "new",
        "notes": item.notes,
        "target_meeting_date": (
            item.target_meeting_date.isoformat() if item.target_meeting_date else None
        ),
        "text_override": item.text_override,
    }
