"""Attendance check-in channel.

The organizer's QR code encodes ``<scheme>://event/<event_id>/attendance``.
A scan supplies that URI together with the participant's RSVP id and the
scanning address; it goes through exactly the same rules as a manual
``mark_attended`` call.
"""
import logging
import re
from typing import Optional

from sqlalchemy.orm import Session

from soulpass.config import settings
from soulpass.errors import ValidationError
from soulpass.identity import normalize_address
from soulpass.models.rsvp import RSVP
from soulpass.services import event_service, rsvp_service

logger = logging.getLogger(__name__)


def attendance_uri(event_id: str) -> str:
    return f"{settings.ATTENDANCE_URI_SCHEME}://event/{event_id}/attendance"


def parse_attendance_uri(uri: str) -> str:
    """Event id encoded in an attendance URI."""
    pattern = rf"^{re.escape(settings.ATTENDANCE_URI_SCHEME)}://event/([^/\s]+)/attendance$"
    match = re.match(pattern, (uri or "").strip())
    if not match:
        raise ValidationError("Not an attendance code")
    return match.group(1)


def get_attendance_code(db: Session, event_id: str, acting_id: str) -> str:
    """The check-in URI for an event; only its organizer may display it."""
    acting_id = normalize_address(acting_id)
    event = event_service.get_event(db, event_id)
    event_service.check_organizer(event, acting_id)
    return attendance_uri(event.event_id)


def record_scan(
    db: Session,
    uri: str,
    rsvp_id: str,
    acting_id: str,
    timeout: Optional[float] = None,
) -> RSVP:
    event_id = parse_attendance_uri(uri)
    logger.info("Attendance scan for event %s, rsvp %s", event_id, rsvp_id)
    return rsvp_service.mark_attended(db, event_id, rsvp_id, acting_id, timeout=timeout)
