# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Event infrastructure module.

Components:
- EventBus: In-memory pub/sub with pattern matching and background delivery
- EventTypes: Centralized event type constants

Architecture:
    Service -> EventBus.publish_background() -> retried handler -> repository
"""

from hexskeleton.infrastructure.events.bus import (
    EventBus,
    EventData,
    EventHandler,
)
from hexskeleton.infrastructure.events.types import EventPatterns, EventTypes

__all__ = [
    # Event Bus
    "EventBus",
    "EventData",
    "EventHandler",
    # Event Types
    "EventTypes",
    "EventPatterns",
]
