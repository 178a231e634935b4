"""Tests for the event registry.

Covers:
- Event create / validation / organizer assignment
- Lookup of missing events → 404
- Public listing: visibility, search, location filter, sort keys, tie-breaks
- Organizer-only edits with optimistic locking
- Head-count stats
"""
from datetime import datetime, timezone, timedelta

import pytest

from soulpass.errors import ValidationError
from soulpass.services import event_service
from tests.conftest import (
    ALICE, BOB, ORGANIZER, create_test_event, event_fields, request_to_join, wallet,
)


class TestEventCreate:
    """Event creation and initial state."""

    def test_create_event(self, client):
        data = create_test_event(client, title="Dinner", capacity=10)
        assert data["title"] == "Dinner"
        assert data["organizer_id"] == ORGANIZER.lower()
        assert data["capacity"] == 10
        assert data["visibility"] == "public"
        assert data["version"] == 1

    def test_create_event_creates_organizer_profile(self, client):
        create_test_event(client)
        resp = client.get(f"/api/profiles/{ORGANIZER}")
        assert resp.status_code == 200
        profile = resp.json()
        assert profile["reputation_score"] == 0.0
        assert profile["events_attended"] == 0
        assert profile["events_approved"] == 0
        assert profile["full_name"] == "User 0xa11c...0001"

    def test_missing_wallet_header_rejected(self, client):
        resp = client.post("/api/events/", json={
            "title": "x", "description": "y",
            "start_time": datetime.now(timezone.utc).isoformat(),
        })
        assert resp.status_code == 422
        assert resp.json()["error"] == "validation_error"

    @pytest.mark.parametrize("overrides", [
        {"title": "   "},
        {"description": ""},
        {"capacity": 0},
        {"capacity": -3},
    ])
    def test_invalid_fields_rejected(self, client, overrides):
        start = datetime.now(timezone.utc) + timedelta(days=1)
        payload = {"title": "Meetup", "description": "About things", "start_time": start.isoformat()}
        payload.update(overrides)
        resp = client.post("/api/events/", json=payload, headers=wallet(ORGANIZER))
        assert resp.status_code == 422
        assert resp.json()["error"] == "validation_error"

    def test_end_before_start_rejected(self, db):
        fields = event_fields()
        fields["end_time"] = fields["start_time"] - timedelta(minutes=1)
        with pytest.raises(ValidationError):
            event_service.create_event(db, ORGANIZER, fields)

    def test_end_equal_to_start_allowed(self, db):
        fields = event_fields()
        fields["end_time"] = fields["start_time"]
        event = event_service.create_event(db, ORGANIZER, fields)
        assert event.end_time is not None

    def test_immutable_fields_cannot_be_supplied(self, db):
        fields = event_fields(organizer_id=BOB)
        with pytest.raises(ValidationError):
            event_service.create_event(db, ORGANIZER, fields)


class TestEventGet:

    def test_get_event(self, client):
        event = create_test_event(client, title="Hackathon")
        resp = client.get(f"/api/events/{event['event_id']}")
        assert resp.status_code == 200
        assert resp.json()["title"] == "Hackathon"

    def test_get_missing_event(self, client):
        resp = client.get("/api/events/does-not-exist")
        assert resp.status_code == 404
        assert resp.json()["error"] == "not_found"


class TestEventList:
    """Public listing with filters and deterministic ordering."""

    def test_private_events_excluded(self, client):
        create_test_event(client, title="Open Day")
        create_test_event(client, title="Board Meeting", visibility="private")
        titles = [e["title"] for e in client.get("/api/events/").json()]
        assert "Open Day" in titles
        assert "Board Meeting" not in titles

    def test_search_is_case_insensitive_on_title_and_description(self, client):
        create_test_event(client, title="Solidity Workshop")
        create_test_event(client, title="Coffee", description="Chat about SOLIDITY audits")
        create_test_event(client, title="Yoga", description="Stretching")
        resp = client.get("/api/events/?search=solidity")
        titles = sorted(e["title"] for e in resp.json())
        assert titles == ["Coffee", "Solidity Workshop"]

    def test_search_treats_wildcards_literally(self, client):
        create_test_event(client, title="100% fun")
        create_test_event(client, title="1000 fun")
        resp = client.get("/api/events/", params={"search": "0%"})
        assert [e["title"] for e in resp.json()] == ["100% fun"]

    def test_location_filter_matches_location_or_address(self, client):
        create_test_event(client, title="A", location="Berlin Hub")
        create_test_event(client, title="B", address="12 Main St, berlin")
        create_test_event(client, title="C", location="Lisbon")
        resp = client.get("/api/events/?location=BERLIN")
        assert sorted(e["title"] for e in resp.json()) == ["A", "B"]

    def test_sort_by_title(self, client):
        for title in ("Charlie", "alpha", "Bravo"):
            create_test_event(client, title=title)
        resp = client.get("/api/events/?sort=title")
        assert [e["title"] for e in resp.json()] == ["Bravo", "Charlie", "alpha"]

    def test_sort_by_start_time_descending(self, client):
        start = datetime.now(timezone.utc) + timedelta(days=3)
        for title, offset in (("later", 2), ("sooner", 0), ("middle", 1)):
            create_test_event(
                client, title=title,
                start_time=(start + timedelta(hours=offset)).isoformat(),
                end_time=None,
            )
        resp = client.get("/api/events/?sort=start_time&descending=true")
        assert [e["title"] for e in resp.json()] == ["later", "middle", "sooner"]

    def test_ties_broken_by_id(self, db):
        start = datetime.now(timezone.utc) + timedelta(days=2)
        for _ in range(4):
            event_service.create_event(db, ORGANIZER, event_fields(title="Same", start_time=start))
        listed = list(event_service.list_public_events(db, sort="title"))
        ids = [e.event_id for e in listed]
        assert ids == sorted(ids)

    def test_listing_is_restartable(self, db):
        event_service.create_event(db, ORGANIZER, event_fields(title="First"))
        listing = event_service.list_public_events(db)
        assert [e.title for e in listing] == ["First"]
        event_service.create_event(db, ORGANIZER, event_fields(title="Second", start_offset_hours=48))
        assert [e.title for e in listing] == ["First", "Second"]

    def test_unknown_sort_key_rejected(self, client):
        resp = client.get("/api/events/?sort=popularity")
        assert resp.status_code == 422


class TestEventUpdate:
    """Organizer edits with authorization and optimistic locking."""

    def test_update_event_organizer(self, client):
        event = create_test_event(client)
        resp = client.patch(
            f"/api/events/{event['event_id']}",
            json={"title": "Updated Title", "version": 1},
            headers=wallet(ORGANIZER),
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["title"] == "Updated Title"
        assert data["version"] == 2
        assert data["organizer_id"] == ORGANIZER.lower()

    def test_update_event_checksum_address_is_same_organizer(self, client):
        event = create_test_event(client)
        resp = client.patch(
            f"/api/events/{event['event_id']}",
            json={"location": "Rooftop", "version": 1},
            headers=wallet(ORGANIZER.upper().replace("0X", "0x")),
        )
        assert resp.status_code == 200

    def test_update_event_non_organizer_forbidden(self, client):
        event = create_test_event(client)
        resp = client.patch(
            f"/api/events/{event['event_id']}",
            json={"title": "Hacked Title", "version": 1},
            headers=wallet(ALICE),
        )
        assert resp.status_code == 403

    def test_update_event_version_mismatch(self, client):
        event = create_test_event(client)
        resp = client.patch(
            f"/api/events/{event['event_id']}",
            json={"title": "Stale Update", "version": 999},
            headers=wallet(ORGANIZER),
        )
        assert resp.status_code == 409

    def test_update_rejects_end_before_start(self, client):
        event = create_test_event(client)
        start = datetime.fromisoformat(event["start_time"])
        resp = client.patch(
            f"/api/events/{event['event_id']}",
            json={"end_time": (start - timedelta(hours=1)).isoformat(), "version": 1},
            headers=wallet(ORGANIZER),
        )
        assert resp.status_code == 422

    def test_capacity_cannot_drop_below_approved(self, client):
        event = create_test_event(client, capacity=5)
        for participant in (ALICE, BOB):
            rsvp = request_to_join(client, event["event_id"], participant)
            client.post(
                f"/api/events/{event['event_id']}/rsvps/{rsvp['rsvp_id']}/approve",
                headers=wallet(ORGANIZER),
            )
        resp = client.patch(
            f"/api/events/{event['event_id']}",
            json={"capacity": 1, "version": 1},
            headers=wallet(ORGANIZER),
        )
        assert resp.status_code == 422
        resp = client.patch(
            f"/api/events/{event['event_id']}",
            json={"capacity": 2, "version": 1},
            headers=wallet(ORGANIZER),
        )
        assert resp.status_code == 200
        assert resp.json()["capacity"] == 2


class TestEventStats:

    def test_stats_count_each_state(self, client):
        event = create_test_event(client)
        eid = event["event_id"]
        a = request_to_join(client, eid, ALICE)
        request_to_join(client, eid, BOB)
        client.post(f"/api/events/{eid}/rsvps/{a['rsvp_id']}/approve", headers=wallet(ORGANIZER))
        client.post(f"/api/events/{eid}/rsvps/{a['rsvp_id']}/attend", headers=wallet(ORGANIZER))

        resp = client.get(f"/api/events/{eid}/stats")
        assert resp.status_code == 200
        assert resp.json() == {"event_id": eid, "pending": 1, "approved": 1, "attended": 1}

    def test_organized_events_newest_first(self, client):
        create_test_event(client, title="Old")
        create_test_event(client, title="New")
        create_test_event(client, organizer=ALICE, title="Not mine")
        resp = client.get(f"/api/profiles/{ORGANIZER}/events")
        assert [e["title"] for e in resp.json()] == ["New", "Old"]
