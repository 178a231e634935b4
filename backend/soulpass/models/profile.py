"""Profile ORM model, keyed by wallet address.

``reputation_score``, ``events_attended`` and ``events_approved`` are a cache
of values derived from the rsvps table; ``score_stale`` marks them for
recomputation on the next read.
"""
from sqlalchemy import Boolean, Column, Float, Integer, String, Text, DateTime
from soulpass.database import Base
from soulpass.timeutils import utcnow


class Profile(Base):
    __tablename__ = "profiles"

    address = Column(String(128), primary_key=True)
    full_name = Column(String(100), nullable=False)
    bio = Column(Text, nullable=True)
    avatar_url = Column(String(1000), nullable=True)
    linkedin_url = Column(String(500), nullable=True)
    twitter_url = Column(String(500), nullable=True)
    github_url = Column(String(500), nullable=True)
    reputation_score = Column(Float, nullable=False, default=0.0)
    events_attended = Column(Integer, nullable=False, default=0)
    events_approved = Column(Integer, nullable=False, default=0)
    score_stale = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
