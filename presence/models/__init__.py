# Presence Tracker: Database Models
# Import all models here for SQLAlchemy discovery

from presence.models.identity import AccessIdentity              # noqa
from presence.models.facility import Facility                    # noqa
from presence.models.facility_session import FacilitySession     # noqa
from presence.models.occupancy_snapshot import OccupancySnapshot  # noqa
from presence.models.access_event import AccessEvent             # noqa
from presence.models.event import Event                          # noqa
from presence.models.attendee import Attendee                    # noqa
from presence.models.attendance_session import AttendanceSession  # noqa
from presence.models.alert import Alert                          # noqa
