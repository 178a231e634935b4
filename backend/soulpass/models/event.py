"""Event ORM model."""
import uuid
import enum
from sqlalchemy import CheckConstraint, Column, String, Text, DateTime, Integer, ForeignKey, Enum as SAEnum
from soulpass.database import Base
from soulpass.timeutils import utcnow


class Visibility(str, enum.Enum):
    public = "public"
    private = "private"


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint("end_time IS NULL OR end_time >= start_time", name="ck_events_end_after_start"),
        CheckConstraint("capacity IS NULL OR capacity > 0", name="ck_events_capacity_positive"),
    )

    event_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    organizer_id = Column(String(128), ForeignKey("profiles.address"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)
    location = Column(String(255), nullable=True)
    address = Column(String(500), nullable=True)
    capacity = Column(Integer, nullable=True)  # NULL = unlimited
    visibility = Column(SAEnum(Visibility, native_enum=False, length=10), nullable=False, default=Visibility.public)
    image_url = Column(String(1000), nullable=True)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
