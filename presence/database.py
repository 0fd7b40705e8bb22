# presence/database.py
"""
Database connection, session management, and table creation.
Uses SQLAlchemy with PostgreSQL (SQLite works for local runs and tests).
All models are auto-imported here so create_tables() creates every table in one call.

Every scan is a single read-modify-write transaction. The engine runs at
DB_ISOLATION_LEVEL so that concurrent taps against the same facility or
attendee are serialized by the database, not by the application.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from presence.config import settings


def _engine_options(url: str) -> dict:
    options = {"isolation_level": settings.DB_ISOLATION_LEVEL, "echo": False}
    if url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    else:
        options.update(
            pool_pre_ping=True,          # Auto-reconnect if DB connection drops
            pool_size=10,
            max_overflow=20,
        )
    return options


engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency: yields a DB session and closes it after request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind=None):
    """
    Creates all DB tables on startup. Safe to call multiple times.
    Import all models here so SQLAlchemy knows about them.
    """
    from presence.models.identity import AccessIdentity              # noqa
    from presence.models.facility import Facility                    # noqa
    from presence.models.facility_session import FacilitySession     # noqa
    from presence.models.occupancy_snapshot import OccupancySnapshot  # noqa
    from presence.models.access_event import AccessEvent             # noqa
    from presence.models.event import Event                          # noqa
    from presence.models.attendee import Attendee                    # noqa
    from presence.models.attendance_session import AttendanceSession  # noqa
    from presence.models.alert import Alert                          # noqa

    Base.metadata.create_all(bind=bind or engine)
