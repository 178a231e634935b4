"""RSVP ORM model.

The lifecycle state is not stored as a column; it is derived from the
timestamps so that it can only move forward:
requested (approved_at NULL) -> approved -> attended.
"""
import enum
import uuid
from sqlalchemy import CheckConstraint, Column, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from soulpass.database import Base


class RSVPStatus(str, enum.Enum):
    requested = "requested"
    approved = "approved"
    attended = "attended"


class RSVP(Base):
    __tablename__ = "rsvps"
    __table_args__ = (
        UniqueConstraint("event_id", "participant_id", name="uq_rsvps_event_participant"),
        CheckConstraint("attended_at IS NULL OR approved_at IS NOT NULL", name="ck_rsvps_attended_after_approved"),
    )

    rsvp_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = Column(String(36), ForeignKey("events.event_id"), nullable=False, index=True)
    participant_id = Column(String(128), ForeignKey("profiles.address"), nullable=False, index=True)
    requested_at = Column(DateTime(timezone=True), nullable=False)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    attended_at = Column(DateTime(timezone=True), nullable=True)

    event = relationship("Event")
    participant = relationship("Profile")

    @property
    def status(self) -> RSVPStatus:
        if self.attended_at is not None:
            return RSVPStatus.attended
        if self.approved_at is not None:
            return RSVPStatus.approved
        return RSVPStatus.requested
