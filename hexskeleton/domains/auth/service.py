# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication service.

This module provides the AuthService that orchestrates login:
- Email normalization and user lookup
- Password verification against the stored salt and digest
- Token issuance
- Fire-and-forget recording of the last login

Failures are reported with one generic message whether the email is
unknown, the account is deleted or the password is wrong. Unknown users
still pay for one hash computation so that both paths cost about the same.

Example:
    >>> auth_service = AuthService(repository, hasher, token_issuer, event_bus)
    >>> result = await auth_service.login(LoginRequest(email=..., password=...))
    >>> result.access_token
"""

import logging

from hexskeleton.core.errors import HexSkeletonError
from hexskeleton.domains.auth.jwt import TokenIssuer
from hexskeleton.domains.auth.password import PasswordHasher
from hexskeleton.domains.user.entities import User
from hexskeleton.domains.user.events import publish_domain_events
from hexskeleton.domains.user.repository import UserRepository
from hexskeleton.domains.user.schemas import AuthenticationResult, LoginRequest, UserResponse
from hexskeleton.infrastructure.events import EventBus

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Invalid email or password"
DUMMY_PASSWORD = "dummy-password-for-timing"


class AuthenticationFailure(HexSkeletonError):
    """Raised when credentials do not match.

    The message never says whether the user exists.
    """

    def __init__(self, message: str = GENERIC_FAILURE_MESSAGE) -> None:
        super().__init__(message)


class AuthService:
    """Login and token issuance.

    Attributes:
        _users: User persistence port.
        _hasher: Password hasher holding the pepper.
        _tokens: Token issuer holding the signing secret.
        _bus: Event bus used for the background login record.
        _dummy_salt: Salt of the digest verified for unknown users.
        _dummy_digest: Digest built with the active scheme, so unknown
            users pay the same verification cost as a wrong password.

    Example:
        >>> service = AuthService(repository, hasher, token_issuer, bus)
        >>> result = await service.login(request)
    """

    def __init__(
        self,
        repository: UserRepository,
        hasher: PasswordHasher,
        token_issuer: TokenIssuer,
        event_bus: EventBus,
    ) -> None:
        """Initialize the authentication service.

        Args:
            repository: User persistence port.
            hasher: Password hasher.
            token_issuer: Token issuer.
            event_bus: Event bus for login notifications.
        """
        self._users = repository
        self._hasher = hasher
        self._tokens = token_issuer
        self._bus = event_bus
        self._dummy_salt = hasher.generate_salt()
        self._dummy_digest = hasher.hash(DUMMY_PASSWORD, self._dummy_salt)

    async def login(self, request: LoginRequest) -> AuthenticationResult:
        """Authenticate a user by email and password.

        On success the token is returned right away; the last-login write
        happens in the background through the LoginNotifier.

        Args:
            request: Validated login request.

        Returns:
            AuthenticationResult with the access token and user.

        Raises:
            AuthenticationFailure: If the email is unknown, the user is
                deleted or the password does not match.
        """
        email = request.email.strip().lower()
        user = await self._users.get_by_email(email)

        if user is None or user.is_deleted:
            self._hasher.verify(request.password, self._dummy_salt, self._dummy_digest)
            logger.info("Login failed: no active account for the given email")
            raise AuthenticationFailure()

        credential = await self._users.find_credential(user.id)
        if credential is None:
            logger.warning("Login failed: user %s has no stored credential", user.id)
            raise AuthenticationFailure()

        password_hash, salt = credential
        if not self._hasher.verify(request.password, salt, password_hash):
            logger.info("Login failed: wrong password for user %s", user.id)
            raise AuthenticationFailure()

        if self._hasher.needs_rehash(password_hash):
            await self._users.store_credential(
                user.id, self._hasher.hash(request.password, salt), salt
            )
            logger.info("Upgraded stored credential for user %s", user.id)

        user.record_login()
        publish_domain_events(self._bus, user.pull_domain_events())

        logger.info("User %s authenticated", user.id)
        return self.issue_for(user)

    def issue_for(self, user: User) -> AuthenticationResult:
        """Issue a token for an already authenticated user.

        Args:
            user: Authenticated user.

        Returns:
            AuthenticationResult with the access token and user.
        """
        issued = self._tokens.issue(user.id)
        return AuthenticationResult(
            access_token=issued.token,
            expires_in=issued.expires_in,
            expires_at=issued.expires_at,
            user=UserResponse.from_user(user),
        )
