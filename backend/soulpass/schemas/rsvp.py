"""Pydantic schemas for RSVPs."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from soulpass.models.rsvp import RSVPStatus


class RequesterOut(BaseModel):
    address: str
    full_name: str
    reputation_score: float

    model_config = {"from_attributes": True}


class RSVPOut(BaseModel):
    rsvp_id: str
    event_id: str
    participant_id: str
    status: RSVPStatus
    requested_at: datetime
    approved_at: Optional[datetime] = None
    attended_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class PendingRSVPOut(RSVPOut):
    participant: RequesterOut


class AttendanceScan(BaseModel):
    uri: str
    rsvp_id: str
