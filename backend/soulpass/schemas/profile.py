"""Pydantic schemas for Profiles."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, computed_field

from soulpass.services.reputation_service import reputation_label


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    twitter_url: Optional[str] = None
    github_url: Optional[str] = None


class ProfileOut(BaseModel):
    address: str
    full_name: str
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    twitter_url: Optional[str] = None
    github_url: Optional[str] = None
    reputation_score: float
    events_attended: int
    events_approved: int
    created_at: datetime

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def reputation_label(self) -> str:
        return reputation_label(self.reputation_score)
