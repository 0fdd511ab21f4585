# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

Settings are built explicitly instead of read from the environment so the
tests never depend on the machine they run on.
"""

from datetime import date
from typing import Any

import pytest
from pydantic import SecretStr

from hexskeleton.core.config.settings import (
    EventSettings,
    JWTSettings,
    SecuritySettings,
    Settings,
    clear_settings_cache,
)
from hexskeleton.domains.auth.jwt import TokenIssuer
from hexskeleton.domains.auth.login_notifier import LoginNotifier
from hexskeleton.domains.auth.password import PasswordHasher
from hexskeleton.domains.auth.service import AuthService
from hexskeleton.domains.user.repository import InMemoryUserRepository
from hexskeleton.domains.user.schemas import RegisterUserRequest
from hexskeleton.domains.user.service import UserService
from hexskeleton.infrastructure.events import EventBus

TEST_PEPPER = "test-pepper"
TEST_SECRET = "test-secret-key-for-jwt-testing"


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def jwt_settings() -> JWTSettings:
    """Provide JWT settings for testing."""
    return JWTSettings(
        secret_key=SecretStr(TEST_SECRET),
        issuer="hexskeleton-tests",
        audience="hexskeleton-test-clients",
    )


@pytest.fixture
def security_settings() -> SecuritySettings:
    """Provide security settings with a pepper."""
    return SecuritySettings(pepper=SecretStr(TEST_PEPPER))


@pytest.fixture
def settings(jwt_settings: JWTSettings, security_settings: SecuritySettings) -> Settings:
    """Provide complete application settings."""
    return Settings(
        environment="development",
        jwt=jwt_settings,
        security=security_settings,
        events=EventSettings(retry_delay_seconds=0, login_record_timeout_seconds=1.0),
    )


@pytest.fixture(autouse=True)
def _reset_settings_cache() -> Any:
    """Reset cached settings around each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def hasher() -> PasswordHasher:
    """Provide a peppered password hasher."""
    return PasswordHasher(pepper=TEST_PEPPER)


@pytest.fixture
def token_issuer(jwt_settings: JWTSettings) -> TokenIssuer:
    """Provide a token issuer."""
    return TokenIssuer(jwt_settings)


@pytest.fixture
def event_bus() -> EventBus:
    """Provide an event bus that retries without delay."""
    return EventBus(max_delivery_attempts=3, retry_delay_seconds=0)


@pytest.fixture
def repository() -> InMemoryUserRepository:
    """Provide an empty in-memory user repository."""
    return InMemoryUserRepository()


@pytest.fixture
def login_notifier(repository: InMemoryUserRepository, event_bus: EventBus) -> LoginNotifier:
    """Provide a login notifier subscribed to the bus."""
    notifier = LoginNotifier(repository, timeout_seconds=1.0)
    notifier.register(event_bus)
    return notifier


@pytest.fixture
def auth_service(
    repository: InMemoryUserRepository,
    hasher: PasswordHasher,
    token_issuer: TokenIssuer,
    event_bus: EventBus,
    login_notifier: LoginNotifier,
) -> AuthService:
    """Provide an auth service with the login notifier wired."""
    return AuthService(repository, hasher, token_issuer, event_bus)


@pytest.fixture
def user_service(
    repository: InMemoryUserRepository,
    hasher: PasswordHasher,
    auth_service: AuthService,
    event_bus: EventBus,
) -> UserService:
    """Provide a user service."""
    return UserService(repository, hasher, auth_service, event_bus)


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def sample_registration_data() -> dict[str, Any]:
    """Provide valid registration data for alice."""
    return {
        "email": "Alice@Example.com",
        "password": "Secret123!",
        "password_confirmation": "Secret123!",
        "first_name": "Alice",
        "last_name": "Smith",
        "birthdate": date(1990, 5, 1),
        "phone_number": "+34 600 123 456",
        "latitude": 40.4168,
        "longitude": -3.7038,
        "about_me": "Hiking and chess.",
    }


@pytest.fixture
def register_request(sample_registration_data: dict[str, Any]) -> RegisterUserRequest:
    """Provide a valid registration request."""
    return RegisterUserRequest(**sample_registration_data)


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "slow: mark test as slow running")
