# presence/models/occupancy_snapshot.py
"""
Real-time occupancy per facility.
Denormalized projection of the open facility_sessions, rewritten in the same
transaction as every successful scan. current_count always equals
len(active_sessions); each entry is {identity_id, session_id, time_in}.
"""

from sqlalchemy import Column, Integer, BigInteger, JSON
from presence.database import Base


class OccupancySnapshot(Base):
    __tablename__ = "occupancy_snapshots"

    id = Column(Integer, primary_key=True, autoincrement=True)
    facility_id = Column(Integer, unique=True, nullable=False, index=True)
    current_count = Column(Integer, default=0, nullable=False)
    max_capacity = Column(Integer, default=0, nullable=False)
    active_sessions = Column(JSON, default=list, nullable=False)
    last_updated = Column(BigInteger)                            # epoch ms

    def __repr__(self):
        return f"<OccupancySnapshot facility={self.facility_id} count={self.current_count}/{self.max_capacity}>"
