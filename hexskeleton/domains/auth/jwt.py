# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""JWT issuance and verification using python-jose.

Tokens carry the user identifier as ``sub`` together with ``iss``, ``aud``,
``iat``, ``nbf``, ``exp`` and a random ``jti``. They are HS256-signed with the
deployment secret and valid for a fixed window (7 days) from issuance.

Verification checks the signature, the exact issuer and audience, and the
validity window with a clock-skew leeway (5 minutes by default).

Replay is not detected: there is no revocation list, so a stolen token stays
usable until it expires.

Example:
    >>> from hexskeleton.core.config import get_settings
    >>> issuer = TokenIssuer(get_settings().jwt)
    >>> issued = issuer.issue("user-123")
    >>> issuer.decode_token(issued.token).sub
    'user-123'
"""

import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from jose import ExpiredSignatureError, JWTError as JoseJWTError, jwt
from pydantic import BaseModel

from hexskeleton.core.errors import ConfigurationError, HexSkeletonError
from hexskeleton.utils.datetime import ensure_utc, utc_now

if TYPE_CHECKING:
    from hexskeleton.core.config.settings import JWTSettings

logger = logging.getLogger(__name__)

TOKEN_VALIDITY = timedelta(days=7)
DEFAULT_ALGORITHM = "HS256"
DEFAULT_CLOCK_SKEW_SECONDS = 300


class TokenPayload(BaseModel):
    """Decoded JWT claims.

    Attributes:
        sub: Subject (user ID).
        iss: Issuer.
        aud: Audience.
        iat: Issued at timestamp.
        nbf: Not-before timestamp.
        exp: Expiration timestamp.
        jti: JWT ID.
    """

    sub: str
    iss: str
    aud: str
    iat: int
    nbf: int
    exp: int
    jti: str


class IssuedToken(BaseModel):
    """A freshly signed token and its validity window.

    Attributes:
        token: Serialized, signed JWT.
        subject: User identifier carried as sub.
        issued_at: Issuance time (UTC).
        expires_at: Expiration time (UTC).
        expires_in: Seconds between issuance and expiration.
    """

    token: str
    subject: str
    issued_at: datetime
    expires_at: datetime
    expires_in: int


class JWTError(HexSkeletonError):
    """Base exception for JWT operations."""

    pass


class TokenExpiredError(JWTError):
    """Raised when a token has expired."""

    pass


class InvalidTokenError(JWTError):
    """Raised when a token is invalid."""

    pass


def _require(value: str | None, name: str) -> str:
    if value is None or not str(value).strip():
        raise ConfigurationError(f"JWT {name} is required")
    return value


def _build_claims(
    subject_id: str,
    issuer: str,
    audience: str,
    issued_at: datetime,
    validity: timedelta = TOKEN_VALIDITY,
) -> dict:
    expires_at = issued_at + validity
    iat = int(issued_at.timestamp())
    return {
        "sub": subject_id,
        "iss": issuer,
        "aud": audience,
        "iat": iat,
        "nbf": iat,
        "exp": int(expires_at.timestamp()),
        "jti": secrets.token_urlsafe(16),
    }


def issue_token(
    subject_id: str,
    secret: str,
    issuer: str,
    audience: str,
    now: datetime | None = None,
) -> str:
    """Build and sign a token valid for 7 days.

    Args:
        subject_id: User identifier, stored verbatim as the sub claim.
        secret: Symmetric signing secret.
        issuer: Issuer claim.
        audience: Audience claim.
        now: Issuance time, defaults to the current UTC time.

    Returns:
        Serialized HS256-signed JWT.

    Raises:
        ConfigurationError: If secret, issuer or audience is missing.
    """
    secret = _require(secret, "secret")
    issuer = _require(issuer, "issuer")
    audience = _require(audience, "audience")

    claims = _build_claims(str(subject_id), issuer, audience, ensure_utc(now) or utc_now())
    return jwt.encode(claims, secret, algorithm=DEFAULT_ALGORITHM)


class TokenIssuer:
    """Token issuance and verification bound to one deployment's secrets.

    Attributes:
        _secret: Signing secret.
        _issuer: Expected issuer.
        _audience: Expected audience.
        _algorithm: Signing algorithm.
        _leeway: Clock-skew tolerance in seconds.
        _clock: Callable returning the current UTC time.
    """

    def __init__(
        self,
        settings: "JWTSettings",
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the token issuer.

        Args:
            settings: JWT configuration.
            clock: Time source used for issuance.

        Raises:
            ConfigurationError: If secret, issuer or audience is missing.
        """
        self._secret = _require(settings.secret_key.get_secret_value(), "secret")
        self._issuer = _require(settings.issuer, "issuer")
        self._audience = _require(settings.audience, "audience")
        self._algorithm = settings.algorithm or DEFAULT_ALGORITHM
        self._leeway = settings.clock_skew_seconds
        self._validity = timedelta(days=settings.expire_days)
        self._clock = clock

    def issue(self, subject_id: str) -> IssuedToken:
        """Issue a signed token for an authenticated user.

        Args:
            subject_id: User identifier.

        Returns:
            IssuedToken with the serialized token and its window.
        """
        issued_at = ensure_utc(self._clock())
        claims = _build_claims(
            str(subject_id), self._issuer, self._audience, issued_at, self._validity
        )
        expires_at = issued_at + self._validity

        token = jwt.encode(claims, self._secret, algorithm=self._algorithm)

        return IssuedToken(
            token=token,
            subject=str(subject_id),
            issued_at=issued_at,
            expires_at=expires_at,
            expires_in=int(self._validity.total_seconds()),
        )

    def decode_token(self, token: str) -> TokenPayload:
        """Decode and validate a token.

        Args:
            token: Serialized JWT.

        Returns:
            TokenPayload with the verified claims.

        Raises:
            TokenExpiredError: If the token expired (beyond the leeway).
            InvalidTokenError: If the signature, issuer, audience or
                structure is wrong.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=self._audience,
                issuer=self._issuer,
                options={
                    "leeway": self._leeway,
                    "require_iat": True,
                    "require_exp": True,
                    "require_nbf": True,
                    "require_iss": True,
                    "require_aud": True,
                    "require_sub": True,
                    "require_jti": True,
                },
            )
            return TokenPayload(**payload)

        except ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except (JoseJWTError, ValueError) as e:
            logger.warning("Token decode failed: %s", str(e))
            raise InvalidTokenError(f"Invalid token: {str(e)}")

    def verify_token(self, token: str) -> bool:
        """Check whether a token is valid right now."""
        try:
            self.decode_token(token)
            return True
        except (TokenExpiredError, InvalidTokenError):
            return False
