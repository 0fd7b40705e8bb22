# presence/routers/alerts.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from presence.database import get_db
from presence.schemas.alert import AlertOut
from presence.services.alert_service import list_alerts
from typing import Optional

router = APIRouter()

@router.get("/alerts", response_model=list[AlertOut], summary="All alerts: filterable by type")
def get_all_alerts(
    alert_type: Optional[str] = None,
    is_resolved: Optional[int] = None,
    limit: int = 50,
    db: Session = Depends(get_db)
):
    """Combined alerts endpoint. Filter by alert_type or is_resolved."""
    return list_alerts(db, alert_type, is_resolved, limit)
