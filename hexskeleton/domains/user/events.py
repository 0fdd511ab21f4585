# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain events raised by the User aggregate.

Events are collected on the aggregate and published by the application
service after the change is persisted. Payloads never contain credentials.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, ClassVar

from hexskeleton.infrastructure.events.types import EventTypes
from hexskeleton.utils.datetime import utc_now

if TYPE_CHECKING:
    from hexskeleton.infrastructure.events.bus import EventBus


@dataclass(frozen=True)
class DomainEvent:
    """Base class for user domain events."""

    event_type: ClassVar[str] = ""

    user_id: str
    occurred_at: datetime = field(default_factory=utc_now, kw_only=True)

    def to_payload(self) -> dict[str, Any]:
        """Serialize to an event bus payload."""
        payload = asdict(self)
        payload["occurred_at"] = self.occurred_at.isoformat()
        return payload


@dataclass(frozen=True)
class UserCreated(DomainEvent):
    event_type: ClassVar[str] = EventTypes.User.CREATED

    email: str
    first_name: str
    last_name: str
    phone_number: str


@dataclass(frozen=True)
class UserProfileUpdated(DomainEvent):
    event_type: ClassVar[str] = EventTypes.User.PROFILE_UPDATED

    email: str
    previous_first_name: str
    new_first_name: str


@dataclass(frozen=True)
class UserLoggedIn(DomainEvent):
    event_type: ClassVar[str] = EventTypes.User.LOGGED_IN

    email: str
    login_at: datetime

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["login_at"] = self.login_at.isoformat()
        return payload


@dataclass(frozen=True)
class UserDeleted(DomainEvent):
    event_type: ClassVar[str] = EventTypes.User.DELETED

    email: str


def publish_domain_events(bus: "EventBus", events: list[DomainEvent]) -> None:
    """Hand drained aggregate events to the bus without waiting for handlers."""
    for event in events:
        bus.publish_background(event.event_type, event.to_payload())
