"""RSVP API routes."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from soulpass.database import get_db
from soulpass.identity import get_caller_address
from soulpass.schemas.rsvp import PendingRSVPOut, RSVPOut
from soulpass.services import rsvp_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/{event_id}/rsvps", response_model=RSVPOut, status_code=status.HTTP_201_CREATED)
def request_join(
    event_id: str,
    caller: str = Depends(get_caller_address),
    db: Session = Depends(get_db),
):
    """Ask to join an event. The request waits for organizer approval."""
    return rsvp_service.request_join(db=db, event_id=event_id, participant_id=caller)


@router.get("/{event_id}/rsvps/pending", response_model=list[PendingRSVPOut])
def list_pending(
    event_id: str,
    caller: str = Depends(get_caller_address),
    db: Session = Depends(get_db),
):
    """Pending requests, most reputable first (organizer only)."""
    return rsvp_service.list_pending(db=db, event_id=event_id, acting_id=caller)


@router.get("/{event_id}/rsvps/approved", response_model=list[RSVPOut])
def list_approved(event_id: str, db: Session = Depends(get_db)):
    """Approved and attended participants."""
    return rsvp_service.list_approved(db=db, event_id=event_id)


@router.get("/{event_id}/rsvps/mine", response_model=RSVPOut)
def get_my_rsvp(
    event_id: str,
    caller: str = Depends(get_caller_address),
    db: Session = Depends(get_db),
):
    """The caller's own RSVP for this event."""
    return rsvp_service.get_rsvp_for(db=db, event_id=event_id, participant_id=caller)


@router.post("/{event_id}/rsvps/{rsvp_id}/approve", response_model=RSVPOut)
def approve(
    event_id: str,
    rsvp_id: str,
    caller: str = Depends(get_caller_address),
    db: Session = Depends(get_db),
):
    """Approve a request (organizer only). Re-approving is a no-op."""
    return rsvp_service.approve(db=db, event_id=event_id, rsvp_id=rsvp_id, acting_id=caller)


@router.post("/{event_id}/rsvps/{rsvp_id}/attend", response_model=RSVPOut)
def mark_attended(
    event_id: str,
    rsvp_id: str,
    caller: str = Depends(get_caller_address),
    db: Session = Depends(get_db),
):
    """Mark an approved participant as attended (organizer only)."""
    return rsvp_service.mark_attended(db=db, event_id=event_id, rsvp_id=rsvp_id, acting_id=caller)
