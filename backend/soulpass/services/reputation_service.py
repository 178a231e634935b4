"""Reputation engine.

The score is a pure function of a participant's RSVP outcomes::

    approval_rate   = approved-or-better / all requested
    attendance_rate = attended / approved-or-better   (0 when nothing approved)
    score           = 0.7 * attendance_rate + 0.3 * approval_rate, clamped to [0, 1]

Profiles cache the last computed value. Approvals and attendance only flag the
cache stale (``invalidate``); the next read recomputes from the rsvps table.
"""
import logging
from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from soulpass.identity import short_address
from soulpass.models.profile import Profile
from soulpass.models.rsvp import RSVP

logger = logging.getLogger(__name__)

ATTENDANCE_WEIGHT = 0.7
APPROVAL_WEIGHT = 0.3

# (threshold, label), highest first
REPUTATION_BANDS = (
    (0.8, "Excellent"),
    (0.6, "Good"),
    (0.4, "Fair"),
)


def compute_reputation(total: int, approved: int, attended: int) -> float:
    """Score from raw counts; ``approved`` counts approved-or-better RSVPs."""
    if total <= 0:
        return 0.0
    approval_rate = approved / total
    attendance_rate = attended / approved if approved else 0.0
    score = ATTENDANCE_WEIGHT * attendance_rate + APPROVAL_WEIGHT * approval_rate
    return min(1.0, max(0.0, score))


def reputation_label(score: float) -> str:
    """Display band for a score. Not used by any state transition."""
    for threshold, label in REPUTATION_BANDS:
        if score >= threshold:
            return label
    return "Poor"


def find_profile(db: Session, address: str) -> Optional[Profile]:
    return db.get(Profile, address)


def ensure_profile(db: Session, address: str) -> Profile:
    """Fetch the profile for ``address``, creating an empty one on first contact.

    The insert runs under a savepoint: when a concurrent transaction created
    the same profile first, the savepoint is rolled back and that row is used.
    The caller commits.
    """
    profile = find_profile(db, address)
    if profile is not None:
        return profile

    profile = Profile(
        address=address,
        full_name=f"User {short_address(address)}",
        reputation_score=0.0,
        events_attended=0,
        events_approved=0,
        score_stale=False,
    )
    try:
        with db.begin_nested():
            db.add(profile)
    except IntegrityError:
        existing = db.get(Profile, address)
        if existing is None:
            raise
        logger.info("Profile for %s was created concurrently; reusing it", address)
        return existing
    logger.info("Created profile for %s", address)
    return profile


def invalidate(db: Session, address: str) -> None:
    """Mark the cached score stale inside the caller's transaction."""
    profile = ensure_profile(db, address)
    profile.score_stale = True


def _outcome_counts(db: Session, address: str) -> tuple[int, int, int]:
    total, approved, attended = db.query(
        func.count(RSVP.rsvp_id),
        func.count(RSVP.approved_at),
        func.count(RSVP.attended_at),
    ).filter(RSVP.participant_id == address).one()
    return total or 0, approved or 0, attended or 0


def refresh(db: Session, profile: Profile) -> Profile:
    """Recompute the cached score and counts from the authoritative RSVP set."""
    total, approved, attended = _outcome_counts(db, profile.address)
    profile.reputation_score = compute_reputation(total, approved, attended)
    profile.events_approved = approved
    profile.events_attended = attended
    profile.score_stale = False
    logger.debug(
        "Recomputed reputation for %s: %.3f (%d requested, %d approved, %d attended)",
        profile.address, profile.reputation_score, total, approved, attended,
    )
    return profile


def get_reputation(db: Session, address: str) -> float:
    """Current score for ``address``; 0.0 for an address with no history.

    Writes the recomputed value back when the cache was stale; the caller
    commits.
    """
    profile = db.get(Profile, address)
    if profile is None:
        return 0.0
    if profile.score_stale:
        refresh(db, profile)
    return profile.reputation_score


def scores_for(db: Session, addresses: Iterable[str]) -> dict[str, float]:
    """Current scores for many addresses, recomputing stale ones."""
    wanted = set(addresses)
    if not wanted:
        return {}
    profiles = db.query(Profile).filter(Profile.address.in_(wanted)).all()
    scores = {address: 0.0 for address in wanted}
    for profile in profiles:
        if profile.score_stale:
            refresh(db, profile)
        scores[profile.address] = profile.reputation_score
    return scores
