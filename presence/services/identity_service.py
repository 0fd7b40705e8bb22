# presence/services/identity_service.py
"""
Card holder lookup and card lifecycle.
Used by occupancy_service and attendance_service to resolve taps, and by the
identities router for enrollment.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session
from presence.models.identity import AccessIdentity
from presence.schemas.identity import IdentityCreate
from presence.exceptions import IdentityNotFound, CardInUse, UsernameTaken
from presence.utils.logger import get_logger

logger = get_logger(__name__)


def lookup_identity_by_card(db: Session, card_id: str) -> Optional[AccessIdentity]:
    """Find the holder of a card. Returns None for unknown or revoked cards."""
    if not card_id:
        return None
    return db.query(AccessIdentity).filter(AccessIdentity.card_id == card_id).first()


def get_identity(db: Session, username: str) -> AccessIdentity:
    identity = db.query(AccessIdentity).filter(AccessIdentity.username == username).first()
    if not identity:
        raise IdentityNotFound(f"User '{username}' not found")
    return identity


def _ensure_card_free(db: Session, card_id: str, owner_id: Optional[int] = None):
    holder = lookup_identity_by_card(db, card_id)
    if holder and holder.id != owner_id:
        raise CardInUse(f"Card {card_id} is already assigned to {holder.username}")


def create_identity(db: Session, body: IdentityCreate) -> AccessIdentity:
    if db.query(AccessIdentity).filter(AccessIdentity.username == body.username).first():
        raise UsernameTaken(f"Username '{body.username}' is already taken")
    if body.card_id:
        _ensure_card_free(db, body.card_id)

    identity = AccessIdentity(
        username=body.username,
        card_id=body.card_id or None,
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        created_at=datetime.utcnow(),
    )
    db.add(identity)
    db.commit()
    db.refresh(identity)
    logger.info(f"Enrolled {identity.username} card={identity.card_id}")
    return identity


def assign_card(db: Session, username: str, card_id: str) -> AccessIdentity:
    """Issue (or replace) the RFID card of a user."""
    identity = get_identity(db, username)
    _ensure_card_free(db, card_id, owner_id=identity.id)
    identity.card_id = card_id
    db.commit()
    db.refresh(identity)
    logger.info(f"Card {card_id} assigned to {username}")
    return identity


def revoke_card(db: Session, username: str) -> AccessIdentity:
    identity = get_identity(db, username)
    previous = identity.card_id
    identity.card_id = None
    db.commit()
    db.refresh(identity)
    logger.info(f"Card {previous} revoked for {username}")
    return identity
