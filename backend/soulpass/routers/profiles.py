"""Profile API routes."""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from soulpass.database import get_db
from soulpass.identity import get_caller_address
from soulpass.schemas.event import EventOut
from soulpass.schemas.profile import ProfileOut, ProfileUpdate
from soulpass.schemas.rsvp import RSVPOut
from soulpass.services import event_service, profile_service, rsvp_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/{address}", response_model=ProfileOut)
def get_profile(address: str, db: Session = Depends(get_db)):
    """Profile with current reputation score and label."""
    return profile_service.get_profile(db=db, address=address)


@router.patch("/{address}", response_model=ProfileOut)
def update_profile(
    address: str,
    payload: ProfileUpdate,
    caller: str = Depends(get_caller_address),
    db: Session = Depends(get_db),
):
    """Edit your own profile (partial update)."""
    return profile_service.update_profile(
        db=db,
        address=address,
        actor_id=caller,
        updates=payload.model_dump(exclude_unset=True),
    )


@router.get("/{address}/events", response_model=list[EventOut])
def list_organized_events(address: str, db: Session = Depends(get_db)):
    """Events this address organizes."""
    return event_service.list_organized_events(db=db, organizer_id=address)


@router.get("/{address}/rsvps", response_model=list[RSVPOut])
def list_rsvps(address: str, db: Session = Depends(get_db)):
    """Every RSVP this address made."""
    return rsvp_service.list_participant_rsvps(db=db, participant_id=address)
