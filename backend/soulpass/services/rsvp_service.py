"""RSVP state machine.

    requested --approve--> approved --mark_attended--> attended

Rules enforced here:
- At most one RSVP per (event, participant); organizers cannot RSVP to their own event
- Only the organizer moves an RSVP forward; nothing ever moves backward
- Re-approving / re-marking is a successful no-op, never a conflict
- Approval is capacity-gated; the count is re-read under the event lock
- Attendance requires a prior approval
- Every transition flags the participant's reputation stale and, after
  commit, publishes a domain event
"""
import logging
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from soulpass.database import commit_within, read_retry, store_deadline
from soulpass.errors import (
    CapacityExceededError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    PreconditionError,
)
from soulpass.identity import normalize_address
from soulpass.models.rsvp import RSVP
from soulpass.services import event_service, reputation_service
from soulpass.services.notifications import AttendanceMarked, RsvpApproved, RsvpRequested, hub
from soulpass.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)


def _find_rsvp(db: Session, event_id: str, rsvp_id: str) -> RSVP:
    rsvp = db.get(RSVP, rsvp_id, populate_existing=True)
    if rsvp is None or rsvp.event_id != event_id:
        raise NotFoundError("RSVP not found for this event")
    return rsvp


def _existing_rsvp(db: Session, event_id: str, participant_id: str) -> Optional[RSVP]:
    return (
        db.query(RSVP)
        .filter(RSVP.event_id == event_id, RSVP.participant_id == participant_id)
        .first()
    )


def request_join(
    db: Session,
    event_id: str,
    participant_id: str,
    timeout: Optional[float] = None,
) -> RSVP:
    """Create a pending RSVP. A second request for the same pair is rejected."""
    participant_id = normalize_address(participant_id)

    with store_deadline(db, timeout) as deadline:
        event = event_service.find_event(db, event_id)
        if event.organizer_id == participant_id:
            raise ForbiddenError("Organizers cannot RSVP to their own event")
        if _existing_rsvp(db, event_id, participant_id) is not None:
            raise ConflictError("An RSVP for this event already exists")

        # a new request changes the approval-rate denominator
        reputation_service.invalidate(db, participant_id)
        rsvp = RSVP(event_id=event_id, participant_id=participant_id, requested_at=utcnow())
        db.add(rsvp)
        try:
            db.flush()
        except IntegrityError as exc:
            # lost a race against a concurrent request for the same pair
            raise ConflictError("An RSVP for this event already exists") from exc
        commit_within(db, deadline)

    db.refresh(rsvp)
    logger.info("RSVP %s requested by %s for event %s", rsvp.rsvp_id, participant_id, event_id)
    hub.publish(RsvpRequested(event_id=event_id, rsvp_id=rsvp.rsvp_id, participant_id=participant_id))
    return rsvp


def approve(
    db: Session,
    event_id: str,
    rsvp_id: str,
    acting_id: str,
    timeout: Optional[float] = None,
) -> RSVP:
    """Approve a pending RSVP (organizer only). Already-approved is success."""
    acting_id = normalize_address(acting_id)

    with store_deadline(db, timeout) as deadline:
        # serializes approvals per event for the capacity check below
        event = event_service.lock_event(db, event_id)
        event_service.check_organizer(event, acting_id)
        rsvp = _find_rsvp(db, event_id, rsvp_id)

        if rsvp.approved_at is not None:
            db.rollback()
            logger.info("RSVP %s already approved; nothing to do", rsvp_id)
            return rsvp

        if event.capacity is not None:
            taken = event_service.approved_count(db, event_id)
            if taken >= event.capacity:
                raise CapacityExceededError(
                    f"Event is full: {taken} of {event.capacity} places already approved"
                )

        result = db.execute(
            update(RSVP)
            .where(RSVP.rsvp_id == rsvp_id, RSVP.approved_at.is_(None))
            .values(approved_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            # approved by someone else between our read and write
            db.rollback()
            return _find_rsvp(db, event_id, rsvp_id)

        reputation_service.invalidate(db, rsvp.participant_id)
        commit_within(db, deadline)

    db.refresh(rsvp)
    logger.info("RSVP %s approved by organizer %s", rsvp_id, acting_id)
    hub.publish(RsvpApproved(event_id=event_id, rsvp_id=rsvp_id, participant_id=rsvp.participant_id))
    return rsvp


def mark_attended(
    db: Session,
    event_id: str,
    rsvp_id: str,
    acting_id: str,
    timeout: Optional[float] = None,
) -> RSVP:
    """Record attendance for an approved RSVP (organizer only). Idempotent."""
    acting_id = normalize_address(acting_id)

    with store_deadline(db, timeout) as deadline:
        event = event_service.find_event(db, event_id)
        event_service.check_organizer(event, acting_id)
        rsvp = _find_rsvp(db, event_id, rsvp_id)

        if rsvp.approved_at is None:
            raise PreconditionError("Attendance cannot be recorded before the RSVP is approved")
        if rsvp.attended_at is not None:
            db.rollback()
            logger.info("RSVP %s already marked attended; nothing to do", rsvp_id)
            return rsvp

        result = db.execute(
            update(RSVP)
            .where(
                RSVP.rsvp_id == rsvp_id,
                RSVP.approved_at.isnot(None),
                RSVP.attended_at.is_(None),
            )
            .values(attended_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            db.rollback()
            return _find_rsvp(db, event_id, rsvp_id)

        reputation_service.invalidate(db, rsvp.participant_id)
        commit_within(db, deadline)

    db.refresh(rsvp)
    logger.info("RSVP %s marked attended by organizer %s", rsvp_id, acting_id)
    hub.publish(AttendanceMarked(event_id=event_id, rsvp_id=rsvp_id, participant_id=rsvp.participant_id))
    return rsvp


def list_pending(
    db: Session,
    event_id: str,
    acting_id: str,
    timeout: Optional[float] = None,
) -> list[RSVP]:
    """Pending requests for the organizer, most reputable requester first.

    Ties go to the earlier request, then to the lower rsvp id.
    """
    acting_id = normalize_address(acting_id)

    with store_deadline(db, timeout) as deadline:
        event = event_service.find_event(db, event_id)
        event_service.check_organizer(event, acting_id)
        pending = (
            db.query(RSVP)
            .filter(RSVP.event_id == event_id, RSVP.approved_at.is_(None))
            .all()
        )
        scores = reputation_service.scores_for(db, (r.participant_id for r in pending))
        ordered = sorted(
            pending,
            key=lambda r: (-scores.get(r.participant_id, 0.0), as_utc(r.requested_at), r.rsvp_id),
        )
        # persist any recomputed scores
        commit_within(db, deadline)
    return ordered


@read_retry
def list_approved(db: Session, event_id: str) -> list[RSVP]:
    """Approved and attended RSVPs, in approval order. Public."""
    event_service.find_event(db, event_id)
    return (
        db.query(RSVP)
        .filter(RSVP.event_id == event_id, RSVP.approved_at.isnot(None))
        .order_by(RSVP.approved_at.asc(), RSVP.rsvp_id.asc())
        .all()
    )


@read_retry
def get_rsvp_for(db: Session, event_id: str, participant_id: str) -> RSVP:
    """The participant's own RSVP for an event."""
    participant_id = normalize_address(participant_id)
    event_service.find_event(db, event_id)
    rsvp = _existing_rsvp(db, event_id, participant_id)
    if rsvp is None:
        raise NotFoundError("No RSVP for this event")
    return rsvp


@read_retry
def list_participant_rsvps(db: Session, participant_id: str) -> list[RSVP]:
    """Every RSVP an address ever made, newest first."""
    participant_id = normalize_address(participant_id)
    return (
        db.query(RSVP)
        .filter(RSVP.participant_id == participant_id)
        .order_by(RSVP.requested_at.desc(), RSVP.rsvp_id.asc())
        .all()
    )
