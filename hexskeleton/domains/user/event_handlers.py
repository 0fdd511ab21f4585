# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Audit handlers for user lifecycle events.

These handlers only log. They run in the background alongside the
LoginNotifier and never raise.
"""

import logging

from hexskeleton.infrastructure.events import EventBus, EventData, EventTypes

logger = logging.getLogger(__name__)


async def on_user_created(event: EventData) -> None:
    logger.info(
        "User created: %s (%s)",
        event.payload.get("user_id"),
        event.payload.get("email"),
    )


async def on_user_logged_in(event: EventData) -> None:
    logger.info(
        "User logged in: %s at %s",
        event.payload.get("user_id"),
        event.payload.get("login_at"),
    )


async def on_profile_updated(event: EventData) -> None:
    logger.info(
        "User %s changed first name from %r to %r",
        event.payload.get("user_id"),
        event.payload.get("previous_first_name"),
        event.payload.get("new_first_name"),
    )


async def on_user_deleted(event: EventData) -> None:
    logger.info("User deleted: %s", event.payload.get("user_id"))


def register_user_event_handlers(bus: EventBus) -> None:
    """Subscribe the audit handlers to the user events."""
    bus.subscribe(EventTypes.User.CREATED, on_user_created)
    bus.subscribe(EventTypes.User.LOGGED_IN, on_user_logged_in)
    bus.subscribe(EventTypes.User.PROFILE_UPDATED, on_profile_updated)
    bus.subscribe(EventTypes.User.DELETED, on_user_deleted)
