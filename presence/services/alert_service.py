# presence/services/alert_service.py
"""
Shared alert creation service.
Used by occupancy_service when a facility crosses OCCUPANCY_ALERT_THRESHOLD.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session
from presence.models.alert import Alert
from presence.utils.logger import get_logger

logger = get_logger(__name__)


async def create_alert(db, alert_type, facility_id, description):
    """Create and persist an alert record. Always commits immediately."""
    db.add(Alert(alert_type=alert_type, facility_id=facility_id, description=description,
                 is_resolved=0, triggered_at=datetime.utcnow()))
    db.commit()
    logger.warning(f"[ALERT][{alert_type.upper()}] {description}")


def list_alerts(db: Session, alert_type: Optional[str] = None, is_resolved: Optional[int] = None,
                limit: int = 50):
    q = db.query(Alert)
    if alert_type:
        q = q.filter(Alert.alert_type == alert_type)
    if is_resolved is not None:
        q = q.filter(Alert.is_resolved == is_resolved)
    return q.order_by(Alert.triggered_at.desc()).limit(limit).all()
