"""Event registry: creation, lookup, listing and organizer edits.

Responsibilities:
- Field validation (required text, end >= start, positive capacity)
- Authorization hook: only the organizer may edit an event
- Optimistic locking via the version field on edits
- Lazy profile creation for first-time organizers
"""
import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from soulpass.database import commit_within, read_retry, store_deadline
from soulpass.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from soulpass.identity import normalize_address
from soulpass.models.event import Event, Visibility
from soulpass.models.rsvp import RSVP
from soulpass.services import reputation_service
from soulpass.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "title",
    "description",
    "start_time",
    "end_time",
    "location",
    "address",
    "capacity",
    "visibility",
    "image_url",
)
REQUIRED_TEXT_FIELDS = ("title", "description")

SORT_KEYS = {
    "start_time": Event.start_time,
    "title": Event.title,
    "created_at": Event.created_at,
}


def _clean_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Reject unknown/immutable keys and coerce values to their stored form."""
    unknown = set(fields) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Fields cannot be set: {', '.join(sorted(unknown))}")

    cleaned = dict(fields)
    for name in REQUIRED_TEXT_FIELDS:
        if name in cleaned:
            value = cleaned[name]
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"'{name}' is required and cannot be empty")
            cleaned[name] = value.strip()

    for name in ("start_time", "end_time"):
        if name in cleaned and cleaned[name] is not None:
            if not isinstance(cleaned[name], datetime):
                raise ValidationError(f"'{name}' must be a datetime")
            cleaned[name] = as_utc(cleaned[name])
    if "start_time" in cleaned and cleaned["start_time"] is None:
        raise ValidationError("'start_time' is required")

    if cleaned.get("capacity") is not None:
        capacity = cleaned["capacity"]
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity <= 0:
            raise ValidationError("'capacity' must be a positive integer")

    if "visibility" in cleaned:
        try:
            cleaned["visibility"] = Visibility(cleaned["visibility"] or Visibility.public)
        except ValueError:
            raise ValidationError(f"Invalid visibility: {cleaned['visibility']}")
    return cleaned


def _check_time_range(start_time: Optional[datetime], end_time: Optional[datetime]) -> None:
    if end_time is not None and as_utc(end_time) < as_utc(start_time):
        raise ValidationError("'end_time' cannot be before 'start_time'")


def check_organizer(event: Event, actor_id: str) -> None:
    """Only the organizer may edit an event or move its RSVPs forward."""
    if event.organizer_id != actor_id:
        raise ForbiddenError("Only the organizer may perform this action on the event")


def find_event(db: Session, event_id: str) -> Event:
    event = db.get(Event, event_id)
    if event is None:
        raise NotFoundError("Event not found")
    return event


def lock_event(db: Session, event_id: str) -> Event:
    """Load an event holding its row lock until the transaction ends.

    FOR UPDATE is a no-op on SQLite, where BEGIN IMMEDIATE already holds the
    database write lock.
    """
    event = (
        db.query(Event)
        .filter(Event.event_id == event_id)
        .populate_existing()
        .with_for_update()
        .first()
    )
    if event is None:
        raise NotFoundError("Event not found")
    return event


def approved_count(db: Session, event_id: str) -> int:
    """RSVPs in approved or attended state for an event."""
    return (
        db.query(func.count(RSVP.rsvp_id))
        .filter(RSVP.event_id == event_id, RSVP.approved_at.isnot(None))
        .scalar()
    ) or 0


def create_event(
    db: Session,
    organizer_id: str,
    fields: dict[str, Any],
    timeout: Optional[float] = None,
) -> Event:
    """Create an event; the creating address becomes its immutable organizer."""
    organizer_id = normalize_address(organizer_id)
    cleaned = _clean_fields(fields)
    for name in REQUIRED_TEXT_FIELDS + ("start_time",):
        if cleaned.get(name) is None:
            raise ValidationError(f"'{name}' is required")
    _check_time_range(cleaned["start_time"], cleaned.get("end_time"))

    with store_deadline(db, timeout) as deadline:
        reputation_service.ensure_profile(db, organizer_id)
        now = utcnow()
        event = Event(
            organizer_id=organizer_id,
            version=1,
            created_at=now,
            updated_at=now,
            **cleaned,
        )
        db.add(event)
        commit_within(db, deadline)
    db.refresh(event)
    logger.info("Created event '%s' (%s) by organizer %s", event.title, event.event_id, organizer_id)
    return event


@read_retry
def get_event(db: Session, event_id: str) -> Event:
    """Fetch a single event or raise NotFoundError."""
    return find_event(db, event_id)


def list_public_events(
    db: Session,
    search: Optional[str] = None,
    location: Optional[str] = None,
    sort: str = "start_time",
    descending: bool = False,
) -> Query:
    """Public events, filtered and deterministically ordered.

    Returns the unexecuted query: it is lazy, finite, and every iteration
    re-runs it against the store.
    """
    if sort not in SORT_KEYS:
        raise ValidationError(f"Unknown sort key '{sort}'; expected one of {', '.join(SORT_KEYS)}")

    query = db.query(Event).filter(Event.visibility == Visibility.public)
    if search and search.strip():
        term = search.strip().lower()
        query = query.filter(
            func.lower(Event.title).contains(term, autoescape=True)
            | func.lower(Event.description).contains(term, autoescape=True)
        )
    if location and location.strip():
        term = location.strip().lower()
        query = query.filter(
            func.lower(func.coalesce(Event.location, "")).contains(term, autoescape=True)
            | func.lower(func.coalesce(Event.address, "")).contains(term, autoescape=True)
        )

    key = SORT_KEYS[sort]
    return query.order_by(key.desc() if descending else key.asc(), Event.event_id.asc())


def update_event(
    db: Session,
    event_id: str,
    actor_id: str,
    version: int,
    updates: dict[str, Any],
    timeout: Optional[float] = None,
) -> Event:
    """Edit descriptive metadata (organizer only, optimistic locking enforced)."""
    actor_id = normalize_address(actor_id)
    cleaned = _clean_fields(updates)

    with store_deadline(db, timeout) as deadline:
        event = lock_event(db, event_id)
        check_organizer(event, actor_id)

        if event.version != version:
            raise ConflictError(
                f"Version mismatch: expected {event.version}, got {version}. Re-fetch and retry."
            )

        _check_time_range(
            cleaned.get("start_time", event.start_time),
            cleaned.get("end_time", event.end_time),
        )
        if cleaned.get("capacity") is not None:
            taken = approved_count(db, event_id)
            if cleaned["capacity"] < taken:
                raise ValidationError(
                    f"Capacity cannot be lowered below the {taken} already approved participants"
                )

        for name, value in cleaned.items():
            setattr(event, name, value)
        event.version += 1
        event.updated_at = utcnow()
        commit_within(db, deadline)
    db.refresh(event)
    logger.info("Updated event %s to version %d", event_id, event.version)
    return event


@read_retry
def list_organized_events(db: Session, organizer_id: str) -> list[Event]:
    """Events created by an address, newest first."""
    organizer_id = normalize_address(organizer_id)
    return (
        db.query(Event)
        .filter(Event.organizer_id == organizer_id)
        .order_by(Event.created_at.desc(), Event.event_id.asc())
        .all()
    )


@read_retry
def get_event_stats(db: Session, event_id: str) -> dict[str, int]:
    """Pending / approved / attended head counts for an event."""
    find_event(db, event_id)
    total, approved, attended = db.query(
        func.count(RSVP.rsvp_id),
        func.count(RSVP.approved_at),
        func.count(RSVP.attended_at),
    ).filter(RSVP.event_id == event_id).one()
    total, approved, attended = total or 0, approved or 0, attended or 0
    return {
        "event_id": event_id,
        "pending": total - approved,
        "approved": approved,
        "attended": attended,
    }
