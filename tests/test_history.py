"""Field history and revert tests."""
from datetime import date

import pytest

from backend.db.models import DocketStatus, HistoryEntry
from backend.services import history
from backend.services.docket import update_docket_item
from backend.services.meetings import get_meeting_by_type_and_date, update_meeting
from backend.services.ordinances import apply_meeting_assignment, get_tracking, update_tracking


def test_unchanged_value_is_not_recorded(db):
    assert history.record(db, history.OWNER_DOCKET, 1, "notes", "same", "same") is None
    assert history.record(db, history.OWNER_DOCKET, 1, "notes", "old", "new") is not None
    db.commit()

    assert db.query(HistoryEntry).count() == 1


def test_dates_are_stored_as_iso_strings(db):
    entry = history.record(
        db, history.OWNER_ORDINANCE, 1, "hearing_date", None, date(2026, 1, 28)
    )

    assert history.deserialize(entry.old_value) is None
    assert history.deserialize(entry.new_value) == "2026-01-28"


def test_repeated_identical_edit_records_once(db, make_item):
    item = make_item()

    update_tracking(db, item.id, {"clerk_notes": "Call Law dept."})
    update_tracking(db, item.id, {"clerk_notes": "Call Law dept."})

    entries = history.list_history(db, history.OWNER_ORDINANCE, item.id)
    assert [e.field_name for e in entries] == ["clerk_notes"]


def test_history_is_newest_first(db, make_item):
    item = make_item()
    update_tracking(db, item.id, {"pub_intro_date": "2026-01-16"})
    update_tracking(db, item.id, {"bulletin_posted_date": "2026-01-17"})

    entries = history.list_history(db, history.OWNER_ORDINANCE, item.id)

    assert [e.field_name for e in entries] == ["bulletin_posted_date", "pub_intro_date"]


def test_revert_restores_previous_value_and_is_itself_recorded(db, calendar, make_item):
    item = make_item()
    apply_meeting_assignment(db, item, date(2026, 1, 12))
    update_tracking(db, item.id, {"hearing_date": date(2026, 2, 25)})

    tracking = history.revert(db, history.OWNER_ORDINANCE, item.id, "hearing_date")

    assert tracking.hearing_date == date(2026, 1, 28)
    hearing_entries = [
        e for e in history.list_history(db, history.OWNER_ORDINANCE, item.id)
        if e.field_name == "hearing_date"
    ]
    assert len(hearing_entries) == 3
    assert history.deserialize(hearing_entries[0].new_value) == "2026-01-28"


def test_reverting_adoption_clears_effective_date(db, make_item):
    item = make_item()
    update_tracking(db, item.id, {"adoption_date": date(2026, 2, 11)})
    assert get_tracking(db, item.id).effective_date == date(2026, 3, 3)

    tracking = history.revert(db, history.OWNER_ORDINANCE, item.id, "adoption_date")

    assert tracking.adoption_date is None
    assert tracking.effective_date is None


def test_reverting_a_text_override_clears_it(db, make_item):
    item = make_item()
    update_docket_item(db, item, {"text_override": {"ordinance_title": "First draft"}})
    update_docket_item(db, item, {"text_override": {"ordinance_title": "Second draft"}})

    reverted = history.revert(db, history.OWNER_DOCKET, item.id, "ordinance_title")

    assert reverted.text_override is None


def test_reverting_docket_notes(db, make_item):
    item = make_item(notes="Original")
    update_docket_item(db, item, {"notes": "Edited"})

    reverted = history.revert(db, history.OWNER_DOCKET, item.id, "notes")

    assert reverted.notes == "Original"


def test_reverting_meeting_minutes(db, calendar):
    meeting = get_meeting_by_type_and_date(db, "regular", date(2026, 1, 14))
    update_meeting(db, meeting, {"minutes": "Draft"})
    update_meeting(db, meeting, {"minutes": "Final"})

    reverted = history.revert(db, history.OWNER_MEETING, meeting.id, "minutes")

    assert reverted.minutes == "Draft"


def test_revert_without_history_returns_none(db, make_item):
    item = make_item()

    assert history.revert(db, history.OWNER_ORDINANCE, item.id, "hearing_date") is None


def test_revert_unknown_owner_type(db):
    with pytest.raises(ValueError):
        history.revert(db, "agenda", 1, "notes")


def test_undoing_removal_from_agenda_restores_accepted(db, calendar, make_item):
    item = make_item()
    update_docket_item(db, item, {"status": "accepted", "target_meeting_date": "2026-01-12"})
    update_docket_item(db, item, {"status": "new"})

    reverted = history.revert(db, history.OWNER_DOCKET, item.id, "status")

    assert reverted.status == DocketStatus.accepted
    assert get_tracking(db, item.id).introduction_date == date(2026, 1, 12)


def test_undoing_an_accept_restores_reviewed(db, make_item):
    item = make_item(status=DocketStatus.reviewed)
    update_docket_item(db, item, {"status": "accepted"})

    reverted = history.revert(db, history.OWNER_DOCKET, item.id, "status")

    assert reverted.status == DocketStatus.reviewed
    latest = history.list_history(db, history.OWNER_DOCKET, item.id)[0]
    assert history.deserialize(latest.new_value) == "reviewed"
