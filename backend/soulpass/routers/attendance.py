"""Attendance scan route (in-person check-in)."""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from soulpass.database import get_db
from soulpass.identity import get_caller_address
from soulpass.schemas.rsvp import AttendanceScan, RSVPOut
from soulpass.services import attendance_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/scan", response_model=RSVPOut)
def scan(
    payload: AttendanceScan,
    caller: str = Depends(get_caller_address),
    db: Session = Depends(get_db),
):
    """Record attendance from a scanned event code (organizer only)."""
    return attendance_service.record_scan(
        db=db, uri=payload.uri, rsvp_id=payload.rsvp_id, acting_id=caller,
    )
