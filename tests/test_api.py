"""HTTP surface tests through FastAPI's TestClient."""
from datetime import date

from backend.services.meetings import get_meeting_by_type_and_date


def _intake(client, email_id="msg-api-1", item_type="ordinance_new", **extra):
    body = {
        "email_id": email_id,
        "email_subject": "Ordinance - Sidewalk Cafes",
        "email_date": "2026-01-05",
        "classification": {"relevant": True, "item_type": item_type, "department": "Law"},
        "attachment_filenames": ["O.2280-2026_Sidewalk_Cafes.pdf"],
    }
    body.update(extra)
    return client.post("/admin/intake", json=body)


# ===== Meetings =====


def test_admin_calendar_is_idempotent(client):
    first = client.post("/admin/calendar", params={"year": 2026})
    second = client.post("/admin/calendar", params={"year": 2026})

    assert first.status_code == 200
    assert first.json()["new_meetings"] == 52
    assert second.json()["new_meetings"] == 0


def test_next_meeting_endpoint(client, calendar):
    resp = client.get(
        "/api/meetings/next",
        params={"meeting_type": "regular", "after": "2026-01-28", "min_days": 10},
    )

    assert resp.status_code == 200
    assert resp.json()["meeting"]["meeting_date"] == "2026-02-11"


def test_next_meeting_endpoint_returns_null(client, calendar):
    resp = client.get(
        "/api/meetings/next",
        params={"meeting_type": "regular", "after": "2026-12-28", "min_days": 10},
    )

    assert resp.json() == {"meeting": None}


def test_meeting_detail_and_404(client, db, calendar):
    meeting = get_meeting_by_type_and_date(db, "work_session", date(2026, 1, 12))

    resp = client.get(f"/api/meetings/{meeting.id}")
    assert resp.status_code == 200
    assert resp.json()["cycle_date"] == "2026-01-12"
    assert resp.json()["agenda_items"] == []

    assert client.get("/api/meetings/999999").status_code == 404


def test_meeting_status_cannot_go_backwards(client, db, calendar):
    meeting = get_meeting_by_type_and_date(db, "regular", date(2026, 1, 14))

    assert client.patch(f"/api/meetings/{meeting.id}", json={"status": "completed"}).status_code == 200
    resp = client.patch(f"/api/meetings/{meeting.id}", json={"status": "upcoming"})

    assert resp.status_code == 400


def test_meeting_list_rejects_unknown_filter(client, calendar):
    assert client.get("/api/meetings", params={"filter": "someday"}).status_code == 422


def test_meeting_minutes_history_and_revert(client, db, calendar):
    meeting = get_meeting_by_type_and_date(db, "regular", date(2026, 1, 14))
    client.patch(f"/api/meetings/{meeting.id}", json={"minutes": "Draft"})
    client.patch(f"/api/meetings/{meeting.id}", json={"minutes": "Final"})

    entries = client.get(f"/api/meetings/{meeting.id}/history").json()["history"]
    assert [e["new_value"] for e in entries] == ["Final", "Draft"]

    resp = client.post(f"/api/meetings/{meeting.id}/revert", json={"field": "minutes"})
    assert resp.json()["minutes"] == "Draft"


# ===== Docket =====


def test_intake_endpoint(client):
    first = _intake(client)
    second = _intake(client)

    assert first.status_code == 200
    assert first.json()["created"] is True
    assert second.json()["created"] is False
    assert second.json()["item"]["id"] == first.json()["item"]["id"]


def test_docket_list_and_detail(client):
    item_id = _intake(client).json()["item"]["id"]

    listing = client.get("/api/docket", params={"status": "new"}).json()
    assert listing["total"] == 1
    assert listing["entries"][0]["id"] == item_id

    assert client.get(f"/api/docket/{item_id}").json()["email_subject"] == "Ordinance - Sidewalk Cafes"
    assert client.get("/api/docket/999999").status_code == 404


def test_docket_invalid_transition_is_400(client):
    item_id = _intake(client).json()["item"]["id"]

    resp = client.patch(f"/api/docket/{item_id}", json={"status": "accepted"})

    assert resp.status_code == 400


def test_accepting_on_a_meeting_fills_ordinance_tracking(client, calendar):
    item_id = _intake(client).json()["item"]["id"]
    client.patch(f"/api/docket/{item_id}", json={"status": "reviewed"})

    resp = client.patch(
        f"/api/docket/{item_id}",
        json={"status": "accepted", "target_meeting_date": "2026-01-12"},
    )
    assert resp.status_code == 200

    tracking = client.get(f"/api/ordinances/{item_id}").json()["tracking"]
    assert tracking["ordinance_number"] == "O.2280-2026"
    assert tracking["introduction_date"] == "2026-01-12"
    assert tracking["introduction_meeting"] == "Work Session 1/12/2026"
    assert tracking["hearing_date"] == "2026-01-28"
    assert tracking["hearing_too_soon"] is False


def test_text_override_set_and_cleared(client):
    item_id = _intake(client).json()["item"]["id"]

    resp = client.patch(f"/api/docket/{item_id}", json={"text_override": {"summary": "Short"}})
    assert resp.json()["text_override"] == {"summary": "Short"}

    resp = client.patch(f"/api/docket/{item_id}", json={"text_override": {"summary": None}})
    assert resp.json()["text_override"] is None


def test_docket_revert_without_history_is_404(client):
    item_id = _intake(client).json()["item"]["id"]

    resp = client.post(f"/api/docket/{item_id}/revert", json={"field": "notes"})

    assert resp.status_code == 404


def test_docket_stats_endpoint(client):
    _intake(client)
    _intake(client, email_id="msg-api-2", item_type="resolution_bid_award")

    stats = client.get("/api/docket/stats").json()

    assert stats["total"] == 2
    assert stats["by_status"]["new"] == 2


# ===== Ordinances =====


def test_ordinance_edit_fills_effective_date(client):
    item_id = _intake(client).json()["item"]["id"]

    resp = client.patch(f"/api/ordinances/{item_id}", json={"adoption_date": "2026-02-11"})

    tracking = resp.json()["tracking"]
    assert tracking["adoption_date"] == "2026-02-11"
    assert tracking["effective_date"] == "2026-03-03"


def test_ordinance_clearing_adoption_via_api(client):
    item_id = _intake(client).json()["item"]["id"]
    client.patch(f"/api/ordinances/{item_id}", json={"adoption_date": "2026-02-11"})

    resp = client.patch(f"/api/ordinances/{item_id}", json={"adoption_date": None})

    tracking = resp.json()["tracking"]
    assert tracking["adoption_date"] is None
    assert tracking["effective_date"] is None


def test_ordinance_list_and_filters(client):
    ordinance_id = _intake(client).json()["item"]["id"]
    _intake(client, email_id="msg-api-2", item_type="resolution_bid_award")

    everything = client.get("/api/ordinances").json()["ordinances"]
    assert [o["id"] for o in everything] == [ordinance_id]
    assert everything[0]["tracking"]["stage"] == "Draft"

    assert client.get("/api/ordinances", params={"stage": "draft"}).json()["ordinances"]
    assert client.get("/api/ordinances", params={"stage": "failed"}).json()["ordinances"] == []
    assert client.get("/api/ordinances", params={"stage": "pending"}).status_code == 400


def test_ordinance_routes_404_for_non_ordinances(client):
    item_id = _intake(client, item_type="resolution_bid_award").json()["item"]["id"]

    assert client.get(f"/api/ordinances/{item_id}").status_code == 404
    assert client.patch(f"/api/ordinances/{item_id}", json={"clerk_notes": "x"}).status_code == 404


def test_ordinance_history_and_revert(client):
    item_id = _intake(client).json()["item"]["id"]
    client.patch(f"/api/ordinances/{item_id}", json={"hearing_date": "2026-01-28"})
    client.patch(f"/api/ordinances/{item_id}", json={"hearing_date": "2026-02-11"})

    entries = client.get(f"/api/ordinances/{item_id}/history").json()["history"]
    assert [e["new_value"] for e in entries] == ["2026-02-11", "2026-01-28"]

    resp = client.post(f"/api/ordinances/{item_id}/revert", json={"field": "hearing_date"})
    assert resp.json()["tracking"]["hearing_date"] == "2026-01-28"
