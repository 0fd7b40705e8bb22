# presence/routers/identities.py
"""Card holder enrollment and card issue / revocation."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from presence.database import get_db
from presence.schemas.identity import IdentityCreate, IdentityOut, CardAssign
from presence.services import identity_service

router = APIRouter()


@router.post("/identities", response_model=IdentityOut, status_code=201)
def create_identity(body: IdentityCreate, db: Session = Depends(get_db)):
    return identity_service.create_identity(db, body)


@router.get("/identities/lookup/{card_id}", summary="Who holds this card?")
def lookup_card(card_id: str, db: Session = Depends(get_db)):
    identity = identity_service.lookup_identity_by_card(db, card_id)
    if not identity:
        return {"card_id": card_id, "status": "unknown", "registered": False}
    return {"card_id": card_id, "status": "known", "registered": True,
            "username": identity.username, "identity_id": identity.id}


@router.put("/identities/{username}/card", response_model=IdentityOut)
def assign_card(username: str, body: CardAssign, db: Session = Depends(get_db)):
    return identity_service.assign_card(db, username, body.card_id)


@router.delete("/identities/{username}/card", response_model=IdentityOut)
def revoke_card(username: str, db: Session = Depends(get_db)):
    return identity_service.revoke_card(db, username)
