"""
Ordinance lifecycle tracking.

An ordinance is not stored with a state column. Its tracking record is a
checklist of dates, and the stage shown to the clerk is derived from whichever
dates are filled in (see ``derive_stage``). Assigning an ordinance to a
meeting fills in dates automatically according to the role that meeting kind
plays in this deployment (``MEETING_ROLES``).
"""
import logging
import re
from dataclasses import dataclass, fields
from datetime import date, timedelta
from typing import NamedTuple, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.config import MEETING_ROLES, MEETING_TYPES
from backend.db.models import ORDINANCE_ITEM_TYPES, DocketItem, Meeting, OrdinanceTracking
from backend.services import history
from backend.services.calendar import CYCLE_LENGTH_DAYS, ensure_calendar_covers, parse_date
from backend.services.errors import UnknownField
from backend.services.meetings import meetings_on, next_meeting_of_type_after

logger = logging.getLogger(__name__)

# Statutory minimum days between introduction and public hearing.
HEARING_MIN_DAYS = 10
# Days after adoption an ordinance normally takes effect.
EFFECTIVE_OFFSET_DAYS = 20

ROLE_INTRODUCTION = "introduction"
ROLE_HEARING = "hearing"

ORDINANCE_NUMBER_PATTERN = re.compile(r"^(O\.\d+-\d{4})", re.IGNORECASE)

DATE_FIELDS = (
    "introduction_date",
    "pub_intro_date",
    "bulletin_posted_date",
    "hearing_date",
    "adoption_date",
    "pub_final_date",
    "effective_date",
    "website_posted_date",
)
BOOL_FIELDS = ("hearing_amended", "adoption_failed", "is_emergency")
NOTE_FIELDS = ("hearing_notes", "clerk_notes")
TEXT_FIELDS = (
    "ordinance_number",
    "introduction_meeting",
    "pub_intro_newspaper",
    "adoption_vote",
    "pub_final_newspaper",
    "website_url",
)
EDITABLE_FIELDS = DATE_FIELDS + BOOL_FIELDS + NOTE_FIELDS + TEXT_FIELDS


# ---------------------------------------------------------------------------
# Stage derivation
# ---------------------------------------------------------------------------

STAGE_FAILED = "Failed"
STAGE_IN_EFFECT = "In Effect"
STAGE_AWAITING_EFFECTIVE = "Awaiting Effective"
STAGE_ADOPTED = "Adopted"
STAGE_AMENDED = "Amended — Reset"
STAGE_HEARING = "Public Hearing"
STAGE_POSTED = "Posted"
STAGE_PUBLISHED = "Published"
STAGE_INTRODUCED = "Introduced"
STAGE_DRAFT = "Draft"

# Dashboard filter bucket for each stage label.
STAGE_FILTERS: dict[str, str] = {
    STAGE_DRAFT: "draft",
    STAGE_INTRODUCED: "introduced",
    STAGE_PUBLISHED: "published",
    STAGE_POSTED: "posted",
    STAGE_HEARING: "hearing",
    STAGE_AMENDED: "hearing",
    STAGE_ADOPTED: "adopted",
    STAGE_AWAITING_EFFECTIVE: "adopted",
    STAGE_IN_EFFECT: "effective",
    STAGE_FAILED: "failed",
}
FILTER_KEYS = ("all",) + tuple(dict.fromkeys(STAGE_FILTERS.values()))


class Stage(NamedTuple):
    label: str
    index: int

    @property
    def filter_key(self) -> str:
        return STAGE_FILTERS[self.label]


@dataclass(frozen=True)
class TrackingSnapshot:
    """Immutable copy of the fields the stage depends on."""

    introduction_date: Optional[date] = None
    pub_intro_date: Optional[date] = None
    bulletin_posted_date: Optional[date] = None
    hearing_date: Optional[date] = None
    hearing_amended: bool = False
    adoption_date: Optional[date] = None
    adoption_failed: bool = False
    pub_final_date: Optional[date] = None
    effective_date: Optional[date] = None
    website_posted_date: Optional[date] = None

    @classmethod
    def from_record(cls, record) -> "TrackingSnapshot":
        values = {}
        for f in fields(cls):
            value = getattr(record, f.name, None)
            values[f.name] = bool(value) if f.name in BOOL_FIELDS else value
        return cls(**values)


def derive_stage(snapshot: TrackingSnapshot, today: date) -> Stage:
    """Most advanced stage the filled-in dates support. First match wins."""
    s = snapshot
    if s.adoption_failed:
        return Stage(STAGE_FAILED, -1)
    if s.effective_date is not None and s.effective_date <= today:
        return Stage(STAGE_IN_EFFECT, 7)
    if s.website_posted_date is not None:
        return Stage(STAGE_IN_EFFECT, 8)
    if s.pub_final_date is not None:
        return Stage(STAGE_AWAITING_EFFECTIVE, 6)
    if s.adoption_date is not None:
        return Stage(STAGE_ADOPTED, 5)
    if s.hearing_date is not None:
        if s.hearing_amended:
            return Stage(STAGE_AMENDED, 4)
        return Stage(STAGE_HEARING, 4)
    if s.bulletin_posted_date is not None:
        return Stage(STAGE_POSTED, 3)
    if s.pub_intro_date is not None:
        return Stage(STAGE_PUBLISHED, 2)
    if s.introduction_date is not None:
        return Stage(STAGE_INTRODUCED, 1)
    return Stage(STAGE_DRAFT, 0)


def hearing_too_soon(
    introduction_date: Optional[date], hearing_date: Optional[date]
) -> bool:
    """True when both dates are set and fewer than HEARING_MIN_DAYS apart."""
    if introduction_date is None or hearing_date is None:
        return False
    return (hearing_date - introduction_date).days < HEARING_MIN_DAYS


def effective_date_for(adoption_date: date) -> date:
    return adoption_date + timedelta(days=EFFECTIVE_OFFSET_DAYS)


# ---------------------------------------------------------------------------
# Meeting roles
# ---------------------------------------------------------------------------


def types_for_role(role: str, roles: Optional[dict[str, str]] = None) -> list[str]:
    roles = roles if roles is not None else MEETING_ROLES
    return [meeting_type for meeting_type, r in roles.items() if r == role]


def _meeting_with_role(
    meetings: list[Meeting], role: str, roles: Optional[dict[str, str]] = None
) -> Optional[Meeting]:
    wanted = types_for_role(role, roles)
    for meeting in meetings:
        if meeting.meeting_type in wanted:
            return meeting
    return None


def meeting_label(meeting: Meeting) -> str:
    """Human label such as ``Work Session 2/9/2026``."""
    kind = MEETING_TYPES.get(meeting.meeting_type, meeting.meeting_type.replace("_", " ").title())
    d = meeting.meeting_date
    return f"{kind} {d.month}/{d.day}/{d.year}"


def suggest_hearing_date(
    db: Session, introduction_date: date, roles: Optional[dict[str, str]] = None
) -> Optional[date]:
    """
    First hearing-capable meeting at least HEARING_MIN_DAYS after introduction.

    Extends the calendar into the next year when the lookup runs past its
    end. New meetings are flushed, not committed.
    """
    ensure_calendar_covers(
        db,
        introduction_date + timedelta(days=HEARING_MIN_DAYS + CYCLE_LENGTH_DAYS),
        commit=False,
    )
    candidates = []
    for meeting_type in types_for_role(ROLE_HEARING, roles):
        meeting = next_meeting_of_type_after(
            db, meeting_type, introduction_date, HEARING_MIN_DAYS
        )
        if meeting is not None:
            candidates.append(meeting.meeting_date)
    return min(candidates) if candidates else None


# ---------------------------------------------------------------------------
# Record access
# ---------------------------------------------------------------------------


def parse_ordinance_number(
    extracted_fields: Optional[dict], attachment_filenames: Optional[list]
) -> Optional[str]:
    """Classifier hint first, then the first filename like ``O.2271-2026_...``."""
    hint = (extracted_fields or {}).get("ordinance_number")
    if hint:
        return str(hint)
    for filename in attachment_filenames or []:
        match = ORDINANCE_NUMBER_PATTERN.match(filename)
        if match:
            return match.group(1)
    return None


def get_tracking(db: Session, docket_id: int) -> Optional[OrdinanceTracking]:
    return db.query(OrdinanceTracking).filter_by(docket_id=docket_id).first()


def ensure_tracking(
    db: Session, item: DocketItem, defaults: Optional[dict] = None
) -> OrdinanceTracking:
    """
    Return the item's tracking row, creating it if absent.

    The row is locked for the rest of the transaction. ``defaults`` only
    apply when the row is created.
    """
    tracking = (
        db.query(OrdinanceTracking)
        .filter_by(docket_id=item.id)
        .with_for_update()
        .first()
    )
    if tracking:
        return tracking

    values = {
        "hearing_amended": False,
        "adoption_failed": False,
        "is_emergency": False,
        "hearing_notes": "",
        "clerk_notes": "",
    }
    values.update(defaults or {})
    try:
        with db.begin_nested():
            tracking = OrdinanceTracking(docket_id=item.id, **values)
            db.add(tracking)
    except IntegrityError:
        # Another writer created it first
        tracking = get_tracking(db, item.id)
    else:
        logger.info("Created ordinance tracking for docket item %s", item.id)
    return tracking


def _apply_changes(db: Session, tracking: OrdinanceTracking, changes: dict) -> dict:
    """Write changes onto the record, recording history. Returns what changed."""
    applied = {}
    for field_name, value in changes.items():
        old = getattr(tracking, field_name)
        if history.record(
            db, history.OWNER_ORDINANCE, tracking.docket_id, field_name, old, value
        ):
            setattr(tracking, field_name, value)
            applied[field_name] = value
    return applied


# ---------------------------------------------------------------------------
# Inference from meeting assignment
# ---------------------------------------------------------------------------


def _introduce(
    db: Session, tracking: OrdinanceTracking, meeting: Meeting, roles: Optional[dict]
) -> dict:
    meeting_date = meeting.meeting_date
    changes: dict = {}

    if tracking.introduction_date is None:
        changes["introduction_date"] = meeting_date
        changes["introduction_meeting"] = meeting_label(meeting)
        if tracking.hearing_date is None:
            suggested = suggest_hearing_date(db, meeting_date, roles)
            if suggested is not None:
                changes["hearing_date"] = suggested
            else:
                logger.warning(
                    "No hearing meeting %d+ days after %s", HEARING_MIN_DAYS, meeting_date
                )
    elif tracking.introduction_date != meeting_date:
        # Moved to a different introduction meeting
        changes["introduction_date"] = meeting_date
        changes["introduction_meeting"] = meeting_label(meeting)
        if tracking.adoption_date is None:
            suggested = suggest_hearing_date(db, meeting_date, roles)
            if suggested is not None:
                changes["hearing_date"] = suggested
            else:
                logger.warning(
                    "No hearing meeting %d+ days after %s; keeping hearing date %s",
                    HEARING_MIN_DAYS,
                    meeting_date,
                    tracking.hearing_date,
                )

    return changes


def _hear_or_adopt(
    db: Session, tracking: OrdinanceTracking, meeting: Meeting, roles: Optional[dict]
) -> dict:
    meeting_date = meeting.meeting_date

    if tracking.introduction_date is None:
        # Ordinances may be introduced at either meeting kind
        return _introduce(db, tracking, meeting, roles)

    if meeting_date == tracking.introduction_date:
        return {}

    if tracking.hearing_date is None:
        return {"hearing_date": meeting_date}

    if tracking.adoption_date is None and meeting_date != tracking.hearing_date:
        changes: dict = {"adoption_date": meeting_date}
        if not tracking.is_emergency:
            changes["effective_date"] = effective_date_for(meeting_date)
        return changes

    return {}


def apply_meeting_assignment(
    db: Session,
    item: DocketItem,
    meeting_date: date,
    roles: Optional[dict[str, str]] = None,
    commit: bool = True,
) -> dict:
    """
    Fill in lifecycle dates after an ordinance is assigned to a meeting date.

    Does nothing for non-ordinance items or dates with no known meeting.
    Returns the fields that changed. With ``commit=False`` the caller owns
    the transaction.
    """
    if item.item_type not in ORDINANCE_ITEM_TYPES:
        return {}

    meetings = meetings_on(db, meeting_date)
    if not meetings:
        logger.debug("No meeting on %s; nothing to infer", meeting_date)
        return {}

    tracking = ensure_tracking(db, item)

    intro_meeting = _meeting_with_role(meetings, ROLE_INTRODUCTION, roles)
    hearing_meeting = _meeting_with_role(meetings, ROLE_HEARING, roles)
    if intro_meeting is not None:
        changes = _introduce(db, tracking, intro_meeting, roles)
    elif hearing_meeting is not None:
        changes = _hear_or_adopt(db, tracking, hearing_meeting, roles)
    else:
        changes = {}

    applied = _apply_changes(db, tracking, changes)
    if commit:
        db.commit()
    if applied:
        logger.info(
            "Ordinance %s assigned to %s: %s",
            item.id,
            meeting_date,
            ", ".join(sorted(applied)),
        )
    return applied


# ---------------------------------------------------------------------------
# Direct edits
# ---------------------------------------------------------------------------


def _coerce(field_name: str, value):
    if field_name in DATE_FIELDS:
        return parse_date(value)
    if field_name in BOOL_FIELDS:
        return bool(value)
    if field_name in NOTE_FIELDS:
        return value or ""
    return value or None


def update_tracking(db: Session, docket_id: int, updates: dict) -> Optional[OrdinanceTracking]:
    """
    Apply clerk edits to an ordinance's tracking record.

    Clearing ``adoption_date`` also clears ``effective_date``. Setting it
    without an explicit ``effective_date`` fills the 20-day default unless
    the ordinance is an emergency. Returns None if the docket item is missing.
    """
    unknown = set(updates) - set(EDITABLE_FIELDS)
    if unknown:
        raise UnknownField(f"Cannot update tracking field(s): {', '.join(sorted(unknown))}")

    item = db.get(DocketItem, docket_id)
    if item is None:
        return None

    tracking = ensure_tracking(db, item)
    changes = {name: _coerce(name, value) for name, value in updates.items()}

    if "adoption_date" in changes:
        adoption = changes["adoption_date"]
        emergency = changes.get("is_emergency", tracking.is_emergency)
        if adoption is None:
            changes["effective_date"] = None
        elif (
            "effective_date" not in changes
            and not emergency
            and adoption != tracking.adoption_date
        ):
            changes["effective_date"] = effective_date_for(adoption)

    applied = _apply_changes(db, tracking, changes)
    db.commit()
    db.refresh(tracking)
    if applied:
        logger.info("Updated ordinance %s: %s", docket_id, ", ".join(sorted(applied)))
    return tracking


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


def number_defaults(item: DocketItem) -> dict:
    number = parse_ordinance_number(item.extracted_fields, item.attachment_filenames)
    return {"ordinance_number": number} if number else {}


def lazy_defaults(item: DocketItem) -> dict:
    """Defaults for an ordinance first seen in a listing."""
    defaults = number_defaults(item)
    if item.target_meeting_date:
        defaults["introduction_date"] = item.target_meeting_date
    return defaults


def list_ordinances(
    db: Session, today: date, stage_filter: str = "all"
) -> list[tuple[DocketItem, OrdinanceTracking, Stage]]:
    """Every ordinance item with its tracking (created if missing) and stage."""
    if stage_filter not in FILTER_KEYS:
        raise ValueError(f"Unknown stage filter '{stage_filter}'")

    items = (
        db.query(DocketItem)
        .filter(DocketItem.item_type.in_(ORDINANCE_ITEM_TYPES))
        .order_by(DocketItem.created_at.desc(), DocketItem.id.desc())
        .all()
    )

    results = []
    for item in items:
        tracking = item.tracking or ensure_tracking(db, item, lazy_defaults(item))
        stage = derive_stage(TrackingSnapshot.from_record(tracking), today)
        if stage_filter == "all" or stage.filter_key == stage_filter:
            results.append((item, tracking, stage))
    db.commit()
    return results


def serialize_tracking(tracking: OrdinanceTracking, today: date) -> dict:
    data = {"docket_id": tracking.docket_id}
    for name in EDITABLE_FIELDS:
        value = getattr(tracking, name)
        data[name] = value.isoformat() if isinstance(value, date) else value
    stage = derive_stage(TrackingSnapshot.from_record(tracking), today)
    data["stage"] = stage.label
    data["stage_index"] = stage.index
    data["stage_filter"] = stage.filter_key
    data["hearing_too_soon"] = hearing_too_soon(
        tracking.introduction_date, tracking.hearing_date
    )
    return data
