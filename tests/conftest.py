"""Shared fixtures: a fresh in-memory SQLite database per test plus row factories."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.pop("API_KEY", None)

import pytest
from datetime import datetime
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from presence.database import create_tables
from presence.models.identity import AccessIdentity
from presence.models.facility import Facility
from presence.models.event import Event
from presence.models.attendee import Attendee

T0 = 1_700_000_000_000      # epoch ms
MINUTE = 60 * 1000


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def make_identity(db):
    def _make(username="alice", card_id="CARD-A"):
        identity = AccessIdentity(username=username, card_id=card_id, first_name=username.title(),
                                  created_at=datetime.utcnow())
        db.add(identity)
        db.commit()
        return identity
    return _make


@pytest.fixture
def make_facility(db):
    def _make(name="Makerspace", capacity=10, is_active=True):
        facility = Facility(name=name, capacity=capacity, is_active=is_active,
                            created_at=datetime.utcnow(), updated_at=datetime.utcnow())
        db.add(facility)
        db.commit()
        return facility
    return _make


@pytest.fixture
def make_event(db):
    def _make(slug="hackathon", minimum=60, start_date=T0 + 7 * 24 * 60 * MINUTE):
        event = Event(slug=slug, title=slug.title(), start_date=start_date,
                      minimum_attendance_minutes=minimum, created_at=datetime.utcnow())
        db.add(event)
        db.commit()
        return event
    return _make


@pytest.fixture
def register(db):
    def _register(event, identity):
        attendee = Attendee(event_id=event.id, identity_id=identity.id, total_duration=0,
                            is_eligible=False, registered_at=T0)
        db.add(attendee)
        db.commit()
        return attendee
    return _register
