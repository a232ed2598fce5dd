"""
Append-only field history for docket items, meetings and ordinance tracking.

Values are stored JSON-serialized. A revert never deletes history: it
re-applies an old value through the owning service, which records the
revert as one more entry.
"""
import json
import logging
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from backend.db.models import HistoryEntry

logger = logging.getLogger(__name__)

OWNER_DOCKET = "docket"
OWNER_MEETING = "meeting"
OWNER_ORDINANCE = "ordinance"

OWNER_TYPES = (OWNER_DOCKET, OWNER_MEETING, OWNER_ORDINANCE)

# Free-text overrides on a docket item. Reverting one clears the override so
# the generated text shows again.
TEXT_OVERRIDE_FIELDS = (
    "whereas",
    "resolved",
    "further_resolved",
    "ordinance_title",
    "summary",
)


def _default(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if hasattr(value, "value"):  # enums
        return value.value
    raise TypeError(f"Cannot serialize {type(value).__name__}")


def serialize(value: Any) -> str:
    return json.dumps(value, default=_default, sort_keys=True)


def deserialize(raw: str) -> Any:
    return json.loads(raw)


def record(
    db: Session,
    owner_type: str,
    owner_id: int,
    field_name: str,
    old_value: Any,
    new_value: Any,
) -> Optional[HistoryEntry]:
    """
    Append a history entry if the value actually changed.

    The caller owns the transaction; nothing is committed here.
    """
    old_raw = serialize(old_value)
    new_raw = serialize(new_value)
    if old_raw == new_raw:
        return None

    entry = HistoryEntry(
        owner_type=owner_type,
        owner_id=owner_id,
        field_name=field_name,
        old_value=old_raw,
        new_value=new_raw,
        changed_at=datetime.utcnow(),
    )
    db.add(entry)
    return entry


def list_history(db: Session, owner_type: str, owner_id: int) -> list[HistoryEntry]:
    """Full history for one owner, newest first."""
    return (
        db.query(HistoryEntry)
        .filter_by(owner_type=owner_type, owner_id=owner_id)
        .order_by(HistoryEntry.changed_at.desc(), HistoryEntry.id.desc())
        .all()
    )


def latest_entry(
    db: Session, owner_type: str, owner_id: int, field_name: str
) -> Optional[HistoryEntry]:
    return (
        db.query(HistoryEntry)
        .filter_by(owner_type=owner_type, owner_id=owner_id, field_name=field_name)
        .order_by(HistoryEntry.changed_at.desc(), HistoryEntry.id.desc())
        .first()
    )


def serialize_entry(entry: HistoryEntry) -> dict:
    return {
        "id": entry.id,
        "owner_type": entry.owner_type,
        "owner_id": entry.owner_id,
        "field_name": entry.field_name,
        "old_value": deserialize(entry.old_value),
        "new_value": deserialize(entry.new_value),
        "changed_at": entry.changed_at.isoformat() if entry.changed_at else None,
    }


def revert(db: Session, owner_type: str, owner_id: int, field_name: str) -> Any:
    """
    Undo the most recent change to ``field_name``.

    Returns the updated owner record, or None when the owner or its history
    for that field does not exist.
    """
    # Imported here: the owning services record history through this module.
    from backend.services import docket, meetings, ordinances

    if owner_type not in OWNER_TYPES:
        raise ValueError(f"Unknown history owner type '{owner_type}'")

    entry = latest_entry(db, owner_type, owner_id, field_name)
    if entry is None:
        return None

    previous = deserialize(entry.old_value)
    logger.info(
        "Reverting %s %s field %s", owner_type, owner_id, field_name
    )

    if owner_type == OWNER_DOCKET:
        item = docket.get_docket_item(db, owner_id)
        if item is None:
            return None
        if field_name in TEXT_OVERRIDE_FIELDS:
            return docket.update_docket_item(db, item, {"text_override": {field_name: None}})
        # An undo may go against the forward workflow
        return docket.update_docket_item(
            db, item, {field_name: previous}, enforce_transitions=False
        )

    if owner_type == OWNER_MEETING:
        meeting = meetings.get_meeting(db, owner_id)
        if meeting is None:
            return None
        return meetings.update_meeting(db, meeting, {field_name: previous})

    return ordinances.update_tracking(db, owner_id, {field_name: previous})
