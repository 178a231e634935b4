"""Profile reads and owner edits."""
import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from soulpass.database import commit_within, store_deadline
from soulpass.errors import ForbiddenError, NotFoundError, ValidationError
from soulpass.identity import normalize_address
from soulpass.models.profile import Profile
from soulpass.services import reputation_service

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("full_name", "bio", "avatar_url", "linkedin_url", "twitter_url", "github_url")


def get_profile(db: Session, address: str, timeout: Optional[float] = None) -> Profile:
    """Profile with an up-to-date reputation score."""
    address = normalize_address(address)
    with store_deadline(db, timeout) as deadline:
        profile = db.get(Profile, address)
        if profile is None:
            raise NotFoundError("Profile not found")
        if profile.score_stale:
            reputation_service.refresh(db, profile)
        commit_within(db, deadline)
    db.refresh(profile)
    return profile


def update_profile(
    db: Session,
    address: str,
    actor_id: str,
    updates: dict[str, Any],
    timeout: Optional[float] = None,
) -> Profile:
    """Owner-only edit of descriptive fields. Score and counts are derived, not editable."""
    address = normalize_address(address)
    actor_id = normalize_address(actor_id)
    if address != actor_id:
        raise ForbiddenError("Only the owner may edit this profile")

    not_editable = set(updates) - set(EDITABLE_FIELDS)
    if not_editable:
        raise ValidationError(f"Fields cannot be set: {', '.join(sorted(not_editable))}")
    if "full_name" in updates and not (updates["full_name"] or "").strip():
        raise ValidationError("'full_name' cannot be empty")

    with store_deadline(db, timeout) as deadline:
        profile = reputation_service.ensure_profile(db, address)
        for field, value in updates.items():
            setattr(profile, field, value.strip() if isinstance(value, str) else value)
        commit_within(db, deadline)
    db.refresh(profile)
    logger.info("Updated profile %s", address)
    return profile
