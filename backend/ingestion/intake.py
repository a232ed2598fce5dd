"""
Intake of classified agenda submissions.

Email fetching, attachment parsing and the LLM classification call happen
upstream. This module receives their result, upserts a DocketItem keyed on
the source email id, and starts ordinance tracking for ordinance items.
"""
import logging

from sqlalchemy.orm import Session

from backend.db.models import ORDINANCE_ITEM_TYPES, DocketItem, DocketStatus
from backend.services import ordinances
from backend.services.calendar import parse_date

logger = logging.getLogger(__name__)

# Classifier reading_stage hints that mean the ordinance was already introduced.
INTRODUCED_READING_STAGES = ("first", "second")


def _tracking_defaults(
    email_date, extracted_fields: dict, attachment_filenames: list[str]
) -> dict:
    defaults = {}
    number = ordinances.parse_ordinance_number(extracted_fields, attachment_filenames)
    if number:
        defaults["ordinance_number"] = number

    # The submission date approximates the introduction; the clerk refines it.
    if extracted_fields.get("reading_stage") in INTRODUCED_READING_STAGES and email_date:
        defaults["introduction_date"] = email_date
    return defaults


def intake_classified_item(db: Session, payload: dict) -> tuple[DocketItem, bool]:
    """
    Create a docket item from one classified submission.

    Idempotent on ``email_id``: a submission seen before is returned as-is so
    clerk edits are never overwritten. Returns (item, created).
    """
    email_id = payload["email_id"]
    existing = db.query(DocketItem).filter_by(email_id=email_id).first()
    if existing:
        logger.debug("Submission %s already on the docket (id=%s)", email_id, existing.id)
        return existing, False

    classification = payload.get("classification") or {}
    extracted_fields = classification.get("extracted_fields") or {}
    attachment_filenames = payload.get("attachment_filenames") or []
    email_date = parse_date(payload.get("email_date"))

    item = DocketItem(
        email_id=email_id,
        email_from=payload.get("email_from", ""),
        email_subject=payload.get("email_subject", ""),
        email_date=email_date,
        email_body_preview=payload.get("email_body_preview", ""),
        relevant=bool(classification.get("relevant", False)),
        confidence=classification.get("confidence"),
        item_type=classification.get("item_type"),
        department=classification.get("department"),
        summary=classification.get("summary"),
        extracted_fields=extracted_fields,
        completeness=classification.get("completeness") or {},
        attachment_filenames=attachment_filenames,
        status=DocketStatus(payload.get("status") or "new"),
        notes="",
        target_meeting_date=parse_date(payload.get("target_meeting_date")),
    )
    db.add(item)
    db.flush()  # Ensure item.id is available

    if item.item_type in ORDINANCE_ITEM_TYPES:
        ordinances.ensure_tracking(
            db, item, _tracking_defaults(email_date, extracted_fields, attachment_filenames)
        )

    db.commit()
    db.refresh(item)
    logger.info(
        "Docketed submission %s as item %s (%s)", email_id, item.id, item.item_type
    )
    return item, True
