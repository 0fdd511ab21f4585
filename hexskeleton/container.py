# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Composition root.

Builds the object graph once per process: hasher and token issuer from the
security settings, the event bus with its subscribers, and the services on
top. Missing secrets stop the build with ConfigurationError.

Example:
    >>> container = build_container()
    >>> result = await container.auth_service.login(request)
    >>> await container.shutdown()

    >>> async with run_application() as container:
    ...     await container.user_service.register_user(request)
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from hexskeleton.core.config.settings import Settings, get_settings
from hexskeleton.domains.auth.jwt import TokenIssuer
from hexskeleton.domains.auth.login_notifier import LoginNotifier
from hexskeleton.domains.auth.password import PasswordHasher, create_password_hasher
from hexskeleton.domains.auth.service import AuthService
from hexskeleton.domains.user.event_handlers import register_user_event_handlers
from hexskeleton.domains.user.repository import InMemoryUserRepository, UserRepository
from hexskeleton.domains.user.service import UserService
from hexskeleton.infrastructure.database import (
    DatabaseError,
    SqlAlchemyUserRepository,
    check_database_connection,
    close_database,
    create_tables,
    get_sessionmaker,
    init_database,
)
from hexskeleton.infrastructure.events import EventBus
from hexskeleton.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@dataclass
class Container:
    """Wired application services."""

    settings: Settings
    repository: UserRepository
    hasher: PasswordHasher
    token_issuer: TokenIssuer
    event_bus: EventBus
    login_notifier: LoginNotifier
    auth_service: AuthService
    user_service: UserService

    async def shutdown(self, timeout: float | None = None) -> bool:
        """Wait for background event deliveries before exiting.

        Returns:
            True if every delivery finished in time.
        """
        drained = await self.event_bus.drain(timeout=timeout)
        logger.info("Container shut down (drained=%s)", drained)
        return drained


def build_container(
    settings: Settings | None = None,
    repository: UserRepository | None = None,
) -> Container:
    """Build the application services.

    Args:
        settings: Configuration, defaults to get_settings().
        repository: User persistence adapter, defaults to in-memory.

    Returns:
        Container with every service wired.

    Raises:
        ConfigurationError: If the pepper, JWT secret, issuer or audience
            is missing.
    """
    settings = settings or get_settings()
    settings.require_security()

    repository = repository if repository is not None else InMemoryUserRepository()
    hasher = create_password_hasher(settings.security)
    token_issuer = TokenIssuer(settings.jwt)

    event_bus = EventBus(
        max_delivery_attempts=settings.events.max_delivery_attempts,
        retry_delay_seconds=settings.events.retry_delay_seconds,
    )
    login_notifier = LoginNotifier(
        repository,
        timeout_seconds=settings.events.login_record_timeout_seconds,
    )
    login_notifier.register(event_bus)
    register_user_event_handlers(event_bus)

    auth_service = AuthService(repository, hasher, token_issuer, event_bus)
    user_service = UserService(
        repository,
        hasher,
        auth_service,
        event_bus,
        min_password_length=settings.security.min_password_length,
        allowed_image_extensions=settings.profile.allowed_image_extensions,
    )

    logger.info(
        "Container built (environment=%s, password_scheme=%s)",
        settings.environment,
        hasher.scheme,
    )

    return Container(
        settings=settings,
        repository=repository,
        hasher=hasher,
        token_issuer=token_issuer,
        event_bus=event_bus,
        login_notifier=login_notifier,
        auth_service=auth_service,
        user_service=user_service,
    )


@asynccontextmanager
async def run_application(
    settings: Settings | None = None,
    create_schema: bool = False,
) -> AsyncIterator[Container]:
    """Run the application for the lifetime of the context.

    Startup configures logging, opens the database when the SQL backend is
    selected and builds the container. Shutdown drains pending background
    deliveries and closes the database.

    Args:
        settings: Configuration, defaults to get_settings().
        create_schema: Create the tables on startup (development and tests).

    Yields:
        The wired Container.

    Raises:
        ConfigurationError: If a required secret is missing.
        DatabaseError: If the database cannot be initialized or reached.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    # Fail on missing secrets before opening any connection
    settings.require_security()

    repository: UserRepository | None = None
    container: Container | None = None
    use_sql = settings.database.backend == "sql"
    try:
        if use_sql:
            await init_database(settings)
            if not await check_database_connection():
                raise DatabaseError("Database is not reachable")
            if create_schema:
                await create_tables()
            repository = SqlAlchemyUserRepository(get_sessionmaker())
            logger.info("Using SQL user repository")

        container = build_container(settings, repository=repository)
        yield container
    finally:
        if container is not None:
            drained = await container.shutdown(timeout=settings.events.shutdown_timeout_seconds)
            if not drained:
                logger.warning(
                    "Shutdown timed out with %d deliveries pending",
                    container.event_bus.pending_count,
                )
        if use_sql:
            await close_database()
