"""Pydantic schemas for Events."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from soulpass.models.event import Visibility


class EventCreate(BaseModel):
    title: str
    description: str
    start_time: datetime
    end_time: Optional[datetime] = None
    location: Optional[str] = None
    address: Optional[str] = None
    capacity: Optional[int] = None
    visibility: str = "public"
    image_url: Optional[str] = None


class EventUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    location: Optional[str] = None
    address: Optional[str] = None
    capacity: Optional[int] = None
    visibility: Optional[str] = None
    image_url: Optional[str] = None
    version: int  # required for optimistic locking


class EventOut(BaseModel):
    event_id: str
    organizer_id: str
    title: str
    description: str
    start_time: datetime
    end_time: Optional[datetime] = None
    location: Optional[str] = None
    address: Optional[str] = None
    capacity: Optional[int] = None
    visibility: Visibility
    image_url: Optional[str] = None
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class EventStatsOut(BaseModel):
    event_id: str
    pending: int
    approved: int
    attended: int


class AttendanceCodeOut(BaseModel):
    event_id: str
    uri: str
