"""Event API routes. Rules live in event_service."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from soulpass.database import get_db
from soulpass.identity import get_caller_address
from soulpass.schemas.event import AttendanceCodeOut, EventCreate, EventOut, EventStatsOut, EventUpdate
from soulpass.services import attendance_service, event_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    caller: str = Depends(get_caller_address),
    db: Session = Depends(get_db),
):
    """Create a new event; the caller becomes its organizer."""
    return event_service.create_event(db=db, organizer_id=caller, fields=payload.model_dump())


@router.get("/", response_model=list[EventOut])
def list_events(
    search: Optional[str] = Query(None, description="Substring of title or description"),
    location: Optional[str] = Query(None, description="Substring of location or address"),
    sort: str = Query("start_time", description="start_time, title or created_at"),
    descending: bool = Query(False),
    db: Session = Depends(get_db),
):
    """List public events with optional filters."""
    query = event_service.list_public_events(
        db=db, search=search, location=location, sort=sort, descending=descending,
    )
    return list(query)


@router.get("/{event_id}", response_model=EventOut)
def get_event(event_id: str, db: Session = Depends(get_db)):
    """Fetch a single event by ID."""
    return event_service.get_event(db=db, event_id=event_id)


@router.patch("/{event_id}", response_model=EventOut)
def update_event(
    event_id: str,
    payload: EventUpdate,
    caller: str = Depends(get_caller_address),
    db: Session = Depends(get_db),
):
    """Update descriptive fields (organizer only, optimistic locking enforced)."""
    updates = payload.model_dump(exclude_unset=True, exclude={"version"})
    return event_service.update_event(
        db=db,
        event_id=event_id,
        actor_id=caller,
        version=payload.version,
        updates=updates,
    )


@router.get("/{event_id}/stats", response_model=EventStatsOut)
def get_event_stats(event_id: str, db: Session = Depends(get_db)):
    """Pending / approved / attended counts."""
    return event_service.get_event_stats(db=db, event_id=event_id)


@router.get("/{event_id}/attendance-code", response_model=AttendanceCodeOut)
def get_attendance_code(
    event_id: str,
    caller: str = Depends(get_caller_address),
    db: Session = Depends(get_db),
):
    """Check-in URI to render as a QR code (organizer only)."""
    uri = attendance_service.get_attendance_code(db=db, event_id=event_id, acting_id=caller)
    return {"event_id": event_id, "uri": uri}
