"""Unit tests for the facility occupancy ledger."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from presence.services.occupancy_service import record_scan, get_occupancy, reset_occupancy
from presence.models.access_event import AccessEvent
from presence.models.alert import Alert
from presence.models.facility_session import FacilitySession
from presence.models.occupancy_snapshot import OccupancySnapshot
from presence.config import settings
from presence.exceptions import (
    UnknownCard, FacilityNotFound, FacilityInactive, CapacityExceeded, AlreadyCheckedIn, ClockSkew,
)
from conftest import T0, MINUTE


def access_log(db):
    return db.query(AccessEvent).order_by(AccessEvent.id).all()


def snapshot_of(db, facility_id):
    return db.query(OccupancySnapshot).filter(OccupancySnapshot.facility_id == facility_id).first()


class TestRecordScan:
    @pytest.mark.asyncio
    async def test_capacity_one_scenario(self, db, make_identity, make_facility):
        facility = make_facility(capacity=1)
        make_identity("alice", "CARD-A")
        make_identity("bob", "CARD-B")

        result = await record_scan(db, "CARD-A", facility.id, T0)
        assert result.action == "enter"
        assert result.occupancy.current == 1

        with pytest.raises(CapacityExceeded):
            await record_scan(db, "CARD-B", facility.id, T0 + MINUTE)
        assert get_occupancy(db, facility.id).current == 1

        result = await record_scan(db, "CARD-A", facility.id, T0 + 2 * MINUTE)
        assert result.action == "exit"
        assert result.occupancy.current == 0

        result = await record_scan(db, "CARD-B", facility.id, T0 + 3 * MINUTE)
        assert result.action == "enter"
        assert result.occupancy.current == 1

        denied = [e for e in access_log(db) if not e.success]
        assert len(denied) == 1
        assert denied[0].reason == "CAPACITY_EXCEEDED"
        assert denied[0].action == "denied"

    @pytest.mark.asyncio
    async def test_taps_alternate_enter_and_exit(self, db, make_identity, make_facility):
        facility = make_facility()
        make_identity()

        actions = []
        for i in range(5):
            result = await record_scan(db, "CARD-A", facility.id, T0 + i * MINUTE)
            actions.append(result.action)

        assert actions == ["enter", "exit", "enter", "exit", "enter"]
        assert [e.action for e in access_log(db)] == actions

    @pytest.mark.asyncio
    async def test_exit_reports_duration_and_closes_stay(self, db, make_identity, make_facility):
        facility = make_facility()
        make_identity()

        entered = await record_scan(db, "CARD-A", facility.id, T0)
        left = await record_scan(db, "CARD-A", facility.id, T0 + 45 * MINUTE)

        assert left.session_id == entered.session_id
        assert left.duration == 45 * MINUTE
        stay = db.query(FacilitySession).filter(FacilitySession.id == entered.session_id).one()
        assert stay.is_active is False
        assert stay.time_out == T0 + 45 * MINUTE
        assert stay.duration == 45 * MINUTE

    @pytest.mark.asyncio
    async def test_snapshot_count_matches_active_sessions(self, db, make_identity, make_facility):
        facility = make_facility(capacity=5)
        for name in ("alice", "bob", "carol"):
            make_identity(name, f"CARD-{name}")

        for t, card in enumerate(["CARD-alice", "CARD-bob", "CARD-carol", "CARD-bob", "CARD-alice"]):
            await record_scan(db, card, facility.id, T0 + t * MINUTE)

        snapshot = snapshot_of(db, facility.id)
        assert snapshot.current_count == len(snapshot.active_sessions) == 1
        identity_ids = [e["identity_id"] for e in snapshot.active_sessions]
        assert len(identity_ids) == len(set(identity_ids))

    @pytest.mark.asyncio
    async def test_unknown_card_logged_and_rejected(self, db, make_facility):
        facility = make_facility()

        with pytest.raises(UnknownCard):
            await record_scan(db, "NOPE", facility.id, T0)

        [event] = access_log(db)
        assert event.success is False
        assert event.reason == "UNKNOWN_CARD"
        assert event.identity_id is None
        assert event.facility_id == facility.id
        assert snapshot_of(db, facility.id) is None

    @pytest.mark.asyncio
    async def test_revoked_card_is_unknown(self, db, make_identity, make_facility):
        facility = make_facility()
        make_identity("alice", None)

        with pytest.raises(UnknownCard):
            await record_scan(db, "CARD-A", facility.id, T0)

    @pytest.mark.asyncio
    async def test_missing_facility(self, db, make_identity):
        make_identity()

        with pytest.raises(FacilityNotFound):
            await record_scan(db, "CARD-A", 999, T0)
        assert access_log(db)[0].reason == "FACILITY_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_inactive_facility(self, db, make_identity, make_facility):
        facility = make_facility(is_active=False)
        make_identity()

        with pytest.raises(FacilityInactive):
            await record_scan(db, "CARD-A", facility.id, T0)
        assert access_log(db)[0].reason == "FACILITY_INACTIVE"

    @pytest.mark.asyncio
    async def test_zero_capacity_rejects_entry(self, db, make_identity, make_facility):
        facility = make_facility(capacity=0)
        make_identity()

        with pytest.raises(CapacityExceeded):
            await record_scan(db, "CARD-A", facility.id, T0)

    @pytest.mark.asyncio
    async def test_clock_skew_leaves_state_untouched(self, db, make_identity, make_facility):
        facility = make_facility()
        make_identity()
        entered = await record_scan(db, "CARD-A", facility.id, T0)

        with pytest.raises(ClockSkew):
            await record_scan(db, "CARD-A", facility.id, T0 - MINUTE)

        occupancy = get_occupancy(db, facility.id)
        assert occupancy.current == 1
        assert occupancy.active_sessions[0].session_id == entered.session_id
        stay = db.query(FacilitySession).filter(FacilitySession.id == entered.session_id).one()
        assert stay.is_active is True
        assert [e.reason for e in access_log(db)] == [None, "CLOCK_SKEW"]

    @pytest.mark.asyncio
    async def test_single_facility_presence(self, db, make_identity, make_facility):
        lab = make_facility("Lab")
        lounge = make_facility("Lounge")
        make_identity()
        await record_scan(db, "CARD-A", lab.id, T0)

        with pytest.raises(AlreadyCheckedIn):
            await record_scan(db, "CARD-A", lounge.id, T0 + MINUTE)
        assert get_occupancy(db, lounge.id).current == 0

    @pytest.mark.asyncio
    async def test_multi_facility_presence_when_allowed(self, db, make_identity, make_facility, monkeypatch):
        monkeypatch.setattr(settings, "SINGLE_FACILITY_PRESENCE", False)
        lab = make_facility("Lab")
        lounge = make_facility("Lounge")
        make_identity()
        await record_scan(db, "CARD-A", lab.id, T0)

        result = await record_scan(db, "CARD-A", lounge.id, T0 + MINUTE)
        assert result.action == "enter"

    @pytest.mark.asyncio
    async def test_alert_when_threshold_reached(self, db, make_identity, make_facility):
        facility = make_facility(capacity=2)
        make_identity("alice", "CARD-A")
        make_identity("bob", "CARD-B")

        await record_scan(db, "CARD-A", facility.id, T0)
        assert db.query(Alert).count() == 0

        await record_scan(db, "CARD-B", facility.id, T0 + MINUTE)
        [alert] = db.query(Alert).all()
        assert alert.alert_type == "occupancy_high"
        assert alert.facility_id == facility.id


class TestOccupancyQueries:
    @pytest.mark.asyncio
    async def test_get_occupancy_numbers(self, db, make_identity, make_facility):
        facility = make_facility(capacity=4)
        make_identity("alice", "CARD-A")
        make_identity("bob", "CARD-B")
        await record_scan(db, "CARD-A", facility.id, T0)
        await record_scan(db, "CARD-B", facility.id, T0 + MINUTE)

        occupancy = get_occupancy(db, facility.id)
        assert occupancy.current == 2
        assert occupancy.max == 4
        assert occupancy.available == 2
        assert occupancy.percentage == 50.0
        assert occupancy.is_full is False
        assert [s.username for s in occupancy.active_sessions] == ["bob", "alice"]

    def test_empty_facility_without_snapshot(self, db, make_facility):
        facility = make_facility(capacity=3)
        occupancy = get_occupancy(db, facility.id)
        assert occupancy.current == 0
        assert occupancy.available == 3
        assert occupancy.active_sessions == []

    def test_unknown_facility(self, db):
        with pytest.raises(FacilityNotFound):
            get_occupancy(db, 42)

    @pytest.mark.asyncio
    async def test_reset_closes_every_stay(self, db, make_identity, make_facility):
        facility = make_facility()
        make_identity("alice", "CARD-A")
        make_identity("bob", "CARD-B")
        await record_scan(db, "CARD-A", facility.id, T0)
        await record_scan(db, "CARD-B", facility.id, T0 + MINUTE)

        occupancy = reset_occupancy(db, facility.id, T0 + 10 * MINUTE)

        assert occupancy.current == 0
        assert db.query(FacilitySession).filter(FacilitySession.is_active == True).count() == 0  # noqa: E712
        resets = [e for e in access_log(db) if e.reason == "manual_reset"]
        assert len(resets) == 2
        assert all(e.action == "exit" for e in resets)

        result = await record_scan(db, "CARD-A", facility.id, T0 + 11 * MINUTE)
        assert result.action == "enter"
