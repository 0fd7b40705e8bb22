"""Unit tests for event creation and attendance reporting."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from presence.services import event_service
from presence.services.attendance_service import toggle_session
from presence.schemas.event import EventCreate
from presence.exceptions import SlugTaken, EventNotFound
from conftest import T0, MINUTE


class TestEventService:
    def test_create_event(self, db):
        event = event_service.create_event(db, EventCreate(slug="demo-day", title="Demo Day", start_date=T0,
                                                           minimum_attendance_minutes=45))
        assert event_service.get_event(db, "demo-day").id == event.id

    def test_duplicate_slug(self, db, make_event):
        make_event("demo-day")
        with pytest.raises(SlugTaken):
            event_service.create_event(db, EventCreate(slug="demo-day", title="Again", start_date=T0))

    def test_missing_event(self, db):
        with pytest.raises(EventNotFound):
            event_service.get_event(db, "nope")

    @pytest.mark.asyncio
    async def test_sessions_report(self, db, make_identity, make_event, register):
        event = make_event()
        register(event, make_identity("alice", "CARD-A"))
        register(event, make_identity("bob", "CARD-B"))
        await toggle_session(db, "CARD-A", "hackathon", T0)
        await toggle_session(db, "CARD-A", "hackathon", T0 + 20 * MINUTE)
        await toggle_session(db, "CARD-B", "hackathon", T0 + 30 * MINUTE)

        report = event_service.get_event_sessions(db, "hackathon")

        assert report.total_sessions == 2
        assert report.active_sessions == 1
        assert report.completed_sessions == 1
        assert report.total_duration == 20 * MINUTE
        assert [s.username for s in report.sessions] == ["bob", "alice"]

    @pytest.mark.asyncio
    async def test_attendee_list(self, db, make_identity, make_event, register):
        event = make_event(minimum=10)
        register(event, make_identity("alice", "CARD-A"))
        await toggle_session(db, "CARD-A", "hackathon", T0)
        await toggle_session(db, "CARD-A", "hackathon", T0 + 15 * MINUTE)

        [attendee] = event_service.list_attendees(db, "hackathon")
        assert attendee.username == "alice"
        assert attendee.total_duration == 15 * MINUTE
        assert attendee.is_eligible is True
