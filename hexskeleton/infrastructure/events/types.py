# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Centralized event type definitions.

Using constants instead of string literals keeps a single source of truth
for event names. Pattern subscribers pick up new events automatically.
"""


class EventTypes:
    """All event types organized by domain."""

    class User:
        """User lifecycle events."""

        CREATED = "user.created"
        LOGGED_IN = "user.logged_in"
        PROFILE_UPDATED = "user.profile.updated"
        DELETED = "user.deleted"


class EventPatterns:
    """Wildcard patterns for subscribing to multiple events."""

    ALL_USER = "user.*"

    # Global wildcard
    ALL = "*"
