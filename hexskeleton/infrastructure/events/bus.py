# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-memory event bus.

This module provides an async event bus for decoupled communication
between system components. Events are published and subscribed to
by event type strings.

The EventBus supports:
- Exact event type matching (e.g., "user.logged_in")
- Wildcard pattern matching (e.g., "user.*", "*.deleted")
- Awaited delivery with publish()
- Fire-and-forget delivery with publish_background(), retried per handler

Example:
    from hexskeleton.infrastructure.events import EventBus, EventTypes

    event_bus = EventBus()

    async def on_login(event):
        print(f"Logged in: {event.payload['user_id']}")

    event_bus.subscribe(EventTypes.User.LOGGED_IN, on_login)

    # Caller does not wait for the handler
    event_bus.publish_background(
        EventTypes.User.LOGGED_IN,
        {"user_id": "123"},
    )

    # On shutdown
    await event_bus.drain(timeout=5)
"""

import asyncio
import fnmatch
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable
from uuid import uuid4

from hexskeleton.utils.datetime import utc_now

logger = logging.getLogger(__name__)

# Type alias for event handlers
EventHandler = Callable[[Any], Awaitable[None]]


@dataclass
class EventData:
    """Container for event data with metadata.

    Attributes:
        event_type: The event type string.
        payload: The event payload data.
        event_id: Unique event identifier.
        timestamp: When the event was published.
    """

    event_type: str
    payload: dict[str, Any]
    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "payload": self.payload,
            "timestamp": self.timestamp.isoformat(),
        }


class EventBus:
    """In-memory async event bus with pattern matching support.

    Publishers emit events and subscribers receive them based on exact
    match or wildcard patterns.

    Background deliveries run as asyncio tasks owned by the bus. Each
    handler is attempted up to max_delivery_attempts times, so a handler
    may see the same event more than once and must be idempotent.

    Thread-safety: This implementation is designed for single-threaded
    async use.

    Attributes:
        _handlers: Dictionary mapping event types to handler lists.
        _pattern_handlers: Dictionary mapping patterns to handler lists.
        _pending: Background delivery tasks not yet finished.
        _max_attempts: Attempts per handler for background delivery.
        _retry_delay: Seconds to wait between attempts.

    Example:
        bus = EventBus(max_delivery_attempts=3, retry_delay_seconds=0.5)

        # Exact subscription
        bus.subscribe("user.created", handler)

        # Pattern subscription
        bus.subscribe("user.*", pattern_handler)

        # Publish
        await bus.publish("user.created", {"id": "123"})
    """

    def __init__(
        self,
        max_delivery_attempts: int = 3,
        retry_delay_seconds: float = 0.5,
    ) -> None:
        """Initialize the event bus.

        Args:
            max_delivery_attempts: Attempts per handler for background events.
            retry_delay_seconds: Pause between two attempts.
        """
        self._handlers: dict[str, list[EventHandler]] = {}
        self._pattern_handlers: dict[str, list[EventHandler]] = {}
        self._pending: set[asyncio.Task] = set()
        self._max_attempts = max(1, max_delivery_attempts)
        self._retry_delay = max(0.0, retry_delay_seconds)
        self._event_count = 0
        self._failed_deliveries = 0
        logger.debug("EventBus initialized")

    def subscribe(
        self,
        event_type: str,
        handler: EventHandler,
    ) -> None:
        """Subscribe a handler to an event type or pattern.

        Args:
            event_type: Event type string or pattern with wildcards.
            handler: Async function to call when event is published.

        Example:
            # Exact match
            bus.subscribe("user.logged_in", my_handler)

            # Pattern match (any user event)
            bus.subscribe("user.*", my_handler)
        """
        if "*" in event_type or "?" in event_type:
            if event_type not in self._pattern_handlers:
                self._pattern_handlers[event_type] = []
            self._pattern_handlers[event_type].append(handler)
            logger.debug("Subscribed pattern handler to: %s", event_type)
        else:
            if event_type not in self._handlers:
                self._handlers[event_type] = []
            self._handlers[event_type].append(handler)
            logger.debug("Subscribed handler to: %s", event_type)

    def unsubscribe(
        self,
        event_type: str,
        handler: EventHandler,
    ) -> bool:
        """Unsubscribe a handler from an event type or pattern.

        Args:
            event_type: Event type string or pattern.
            handler: The handler function to remove.

        Returns:
            True if handler was found and removed, False otherwise.
        """
        if "*" in event_type or "?" in event_type:
            registry = self._pattern_handlers
        else:
            registry = self._handlers

        if event_type not in registry:
            return False

        try:
            registry[event_type].remove(handler)
        except ValueError:
            return False

        if not registry[event_type]:
            del registry[event_type]
        return True

    def _matching_handlers(self, event_type: str) -> list[EventHandler]:
        handlers: list[EventHandler] = list(self._handlers.get(event_type, []))

        for pattern, pattern_handlers in self._pattern_handlers.items():
            if fnmatch.fnmatch(event_type, pattern):
                handlers.extend(pattern_handlers)

        return handlers

    async def publish(
        self,
        event_type: str,
        payload: dict[str, Any],
    ) -> EventData:
        """Publish an event and wait for all matching subscribers.

        Handlers are called concurrently using asyncio.gather.
        Errors in individual handlers are logged but don't stop
        other handlers from executing. Handlers are attempted once.

        Args:
            event_type: The event type string.
            payload: Event data dictionary.

        Returns:
            EventData object with event metadata.
        """
        event = EventData(
            event_type=event_type,
            payload=payload,
        )

        self._event_count += 1

        handlers_to_call = self._matching_handlers(event_type)
        if not handlers_to_call:
            logger.debug("No handlers for event: %s", event_type)
            return event

        logger.debug(
            "Publishing event %s to %d handlers",
            event_type,
            len(handlers_to_call),
        )

        async def safe_call(handler: EventHandler) -> None:
            """Call handler with error handling."""
            try:
                await handler(event)
            except Exception as e:
                logger.error(
                    "Handler error for event %s: %s",
                    event_type,
                    str(e),
                    exc_info=True,
                )

        await asyncio.gather(
            *[safe_call(handler) for handler in handlers_to_call],
            return_exceptions=True,
        )

        return event

    def publish_background(
        self,
        event_type: str,
        payload: dict[str, Any],
    ) -> EventData:
        """Schedule delivery of an event and return immediately.

        Must be called from a running event loop. Every matching handler
        is retried independently until it succeeds or the attempts are
        exhausted.

        Args:
            event_type: The event type string.
            payload: Event data dictionary.

        Returns:
            EventData object with event metadata.
        """
        event = EventData(
            event_type=event_type,
            payload=payload,
        )

        self._event_count += 1

        handlers_to_call = self._matching_handlers(event_type)
        if not handlers_to_call:
            logger.debug("No handlers for background event: %s", event_type)
            return event

        task = asyncio.get_running_loop().create_task(
            self._deliver_all(event, handlers_to_call),
            name=f"event:{event_type}:{event.event_id}",
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

        logger.debug(
            "Scheduled event %s for %d handlers",
            event_type,
            len(handlers_to_call),
        )
        return event

    async def _deliver_all(self, event: EventData, handlers: list[EventHandler]) -> None:
        await asyncio.gather(
            *[self._deliver_with_retry(event, handler) for handler in handlers],
            return_exceptions=True,
        )

    async def _deliver_with_retry(self, event: EventData, handler: EventHandler) -> bool:
        for attempt in range(1, self._max_attempts + 1):
            try:
                await handler(event)
                return True
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if attempt < self._max_attempts:
                    logger.warning(
                        "Handler error for event %s (attempt %d/%d): %s",
                        event.event_type,
                        attempt,
                        self._max_attempts,
                        str(e),
                    )
                    await asyncio.sleep(self._retry_delay)
                else:
                    self._failed_deliveries += 1
                    logger.error(
                        "Giving up on event %s after %d attempts: %s",
                        event.event_type,
                        self._max_attempts,
                        str(e),
                        exc_info=True,
                    )
        return False

    async def drain(self, timeout: float | None = None) -> bool:
        """Wait for scheduled background deliveries to finish.

        Deliveries scheduled while draining are waited for as well.

        Args:
            timeout: Maximum seconds to wait, None to wait indefinitely.

        Returns:
            True if nothing is pending anymore, False on timeout.
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout

        while self._pending:
            remaining = None if deadline is None else deadline - loop.time()
            if remaining is not None and remaining <= 0:
                break

            _, not_done = await asyncio.wait(set(self._pending), timeout=remaining)
            if not_done and remaining is not None and loop.time() >= deadline:
                break

        if self._pending:
            logger.warning("EventBus drain left %d deliveries pending", len(self._pending))
            return False
        return True

    @property
    def pending_count(self) -> int:
        """Number of background deliveries still running."""
        return len(self._pending)

    def clear(self) -> None:
        """Remove all subscriptions."""
        self._handlers.clear()
        self._pattern_handlers.clear()
        logger.debug("EventBus cleared all subscriptions")

    def get_stats(self) -> dict[str, Any]:
        """Get event bus statistics.

        Returns:
            Dictionary with subscription and event counts.
        """
        exact_count = sum(len(h) for h in self._handlers.values())
        pattern_count = sum(len(h) for h in self._pattern_handlers.values())

        return {
            "exact_subscriptions": len(self._handlers),
            "pattern_subscriptions": len(self._pattern_handlers),
            "total_handlers": exact_count + pattern_count,
            "events_published": self._event_count,
            "pending_deliveries": len(self._pending),
            "failed_deliveries": self._failed_deliveries,
            "event_types": list(self._handlers.keys()),
            "patterns": list(self._pattern_handlers.keys()),
        }

