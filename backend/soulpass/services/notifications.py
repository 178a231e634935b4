"""Domain events emitted by the RSVP state machine.

Services publish only after their transaction committed. A failing
subscriber is logged and skipped; it can never undo the mutation that
produced the event.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Union

from soulpass.timeutils import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RsvpRequested:
    event_id: str
    rsvp_id: str
    participant_id: str
    occurred_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class RsvpApproved:
    event_id: str
    rsvp_id: str
    participant_id: str
    occurred_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class AttendanceMarked:
    event_id: str
    rsvp_id: str
    participant_id: str
    occurred_at: datetime = field(default_factory=utcnow)


DomainEvent = Union[RsvpRequested, RsvpApproved, AttendanceMarked]
Subscriber = Callable[[DomainEvent], None]


class NotificationHub:
    """In-process fan-out to external notifiers (email, push, toasts)."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, handler: Subscriber) -> Subscriber:
        self._subscribers.append(handler)
        return handler

    def unsubscribe(self, handler: Subscriber) -> None:
        if handler in self._subscribers:
            self._subscribers.remove(handler)

    def publish(self, domain_event: DomainEvent) -> None:
        for handler in list(self._subscribers):
            try:
                handler(domain_event)
            except Exception:
                logger.exception(
                    "Notification handler %r failed for %s (rsvp %s)",
                    handler, type(domain_event).__name__, domain_event.rsvp_id,
                )


hub = NotificationHub()
