# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Records the last successful login of a user.

The authenticating caller does not wait for this write: the login path
publishes the user.logged_in domain event with EventBus.publish_background()
and returns the token. The bus retries the handler on failure, so
record_login() may run more than once for the same login; each run
overwrites last_login with the current time, which makes repeated
deliveries harmless.

A failed password check never reaches this module.
"""

import asyncio
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from hexskeleton.core.errors import HexSkeletonError
from hexskeleton.infrastructure.events import EventBus, EventData, EventTypes
from hexskeleton.utils.datetime import utc_now
from hexskeleton.utils.logging import bind_context, clear_context, get_logger

if TYPE_CHECKING:
    from hexskeleton.domains.user.repository import UserRepository

logger = get_logger(__name__)


class LoginRecordError(HexSkeletonError):
    """Raised when the last-login timestamp could not be written."""

    pass


class LoginNotifier:
    """Writes the last-login timestamp through the user repository.

    Attributes:
        _repository: User persistence port.
        _timeout: Default upper bound in seconds for one write, or None.
        _clock: Callable returning the current UTC time.
    """

    def __init__(
        self,
        repository: "UserRepository",
        timeout_seconds: float | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repository = repository
        self._timeout = timeout_seconds
        self._clock = clock

    async def record_login(self, user_id: str, timeout: float | None = None) -> datetime:
        """Overwrite the user's last-login timestamp with the current time.

        Args:
            user_id: Authenticated user.
            timeout: Seconds to wait for the write, defaults to the
                notifier's timeout. None waits indefinitely.

        Returns:
            The timestamp that was written.

        Raises:
            LoginRecordError: If the user does not exist.
            asyncio.TimeoutError: If the write did not finish in time.
        """
        timestamp = self._clock()
        timeout = self._timeout if timeout is None else timeout

        write = self._repository.update_last_login(str(user_id), timestamp)
        if timeout is not None:
            updated = await asyncio.wait_for(write, timeout=timeout)
        else:
            updated = await write

        if not updated:
            raise LoginRecordError(f"Cannot record login for unknown user: {user_id}")

        logger.debug("Recorded login", user_id=str(user_id), recorded_at=timestamp.isoformat())
        return timestamp

    async def handle(self, event: EventData) -> None:
        """Event bus handler for user.logged_in.

        The user and event ids are bound to the log context for the
        duration of the write. Errors propagate so that the bus can retry
        the delivery.
        """
        user_id = event.payload.get("user_id")
        if not user_id:
            logger.warning("Login event without user_id ignored", event_id=event.event_id)
            return

        bind_context(user_id=str(user_id), event_id=event.event_id)
        try:
            await self.record_login(user_id)
        finally:
            clear_context()

    def register(self, bus: EventBus) -> None:
        """Subscribe this notifier to successful login events."""
        bus.subscribe(EventTypes.User.LOGGED_IN, self.handle)
