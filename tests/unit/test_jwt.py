# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for JWT issuance and verification.

Tests the TokenIssuer class and the issue_token function.
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt
from pydantic import SecretStr

from hexskeleton.core.config.settings import JWTSettings
from hexskeleton.core.errors import ConfigurationError
from hexskeleton.domains.auth.jwt import (
    InvalidTokenError,
    TokenExpiredError,
    TokenIssuer,
    TokenPayload,
    issue_token,
)


def _issuer_at(settings: JWTSettings, moment: datetime) -> TokenIssuer:
    return TokenIssuer(settings, clock=lambda: moment)


class TestTokenIssuer:
    """Tests for TokenIssuer class."""

    def test_issue_returns_token_with_claims(self, token_issuer: TokenIssuer) -> None:
        """Test that an issued token decodes to the expected claims."""
        issued = token_issuer.issue("user-123")

        payload = token_issuer.decode_token(issued.token)

        assert isinstance(payload, TokenPayload)
        assert payload.sub == "user-123"
        assert payload.iss == "hexskeleton-tests"
        assert payload.aud == "hexskeleton-test-clients"
        assert payload.nbf == payload.iat
        assert payload.jti

    def test_validity_window_is_seven_days(self, token_issuer: TokenIssuer) -> None:
        """Test that exp is exactly 7 days after iat."""
        issued = token_issuer.issue("user-123")
        payload = token_issuer.decode_token(issued.token)

        assert payload.exp - payload.iat == 7 * 24 * 3600
        assert issued.expires_in == 7 * 24 * 3600
        assert issued.expires_at - issued.issued_at == timedelta(days=7)
        assert issued.subject == "user-123"

    def test_each_token_has_unique_jti(self, token_issuer: TokenIssuer) -> None:
        """Test that two tokens for the same user differ."""
        first = token_issuer.issue("user-123")
        second = token_issuer.issue("user-123")

        assert first.token != second.token
        assert (
            token_issuer.decode_token(first.token).jti
            != token_issuer.decode_token(second.token).jti
        )

    def test_token_expired_after_window(self, jwt_settings: JWTSettings) -> None:
        """Test that a token issued 8 days ago is expired."""
        now = datetime.now(timezone.utc)
        old = _issuer_at(jwt_settings, now - timedelta(days=8)).issue("user-123")

        verifier = TokenIssuer(jwt_settings)

        with pytest.raises(TokenExpiredError):
            verifier.decode_token(old.token)
        assert verifier.verify_token(old.token) is False

    def test_token_valid_within_clock_skew(self, jwt_settings: JWTSettings) -> None:
        """Test that a token expired two minutes ago is still accepted."""
        now = datetime.now(timezone.utc)
        issued = _issuer_at(jwt_settings, now - timedelta(days=7, minutes=2)).issue("user-123")

        assert TokenIssuer(jwt_settings).verify_token(issued.token) is True

    def test_token_expired_beyond_clock_skew(self, jwt_settings: JWTSettings) -> None:
        """Test that the leeway does not extend past five minutes."""
        now = datetime.now(timezone.utc)
        issued = _issuer_at(jwt_settings, now - timedelta(days=7, minutes=10)).issue("user-123")

        with pytest.raises(TokenExpiredError):
            TokenIssuer(jwt_settings).decode_token(issued.token)

    def test_different_secret_fails(self, token_issuer: TokenIssuer) -> None:
        """Test that a token only verifies with the secret that signed it."""
        other = TokenIssuer(
            JWTSettings(
                secret_key=SecretStr("another-secret"),
                issuer="hexskeleton-tests",
                audience="hexskeleton-test-clients",
            )
        )
        issued = other.issue("user-123")

        with pytest.raises(InvalidTokenError):
            token_issuer.decode_token(issued.token)

    @pytest.mark.parametrize(
        "field,value",
        [
            ("issuer", "someone-else"),
            ("audience", "other-clients"),
        ],
    )
    def test_wrong_issuer_or_audience_fails(
        self,
        jwt_settings: JWTSettings,
        token_issuer: TokenIssuer,
        field: str,
        value: str,
    ) -> None:
        """Test that issuer and audience are matched exactly."""
        foreign = TokenIssuer(jwt_settings.model_copy(update={field: value}))
        issued = foreign.issue("user-123")

        with pytest.raises(InvalidTokenError):
            token_issuer.decode_token(issued.token)

    def test_tampered_payload_fails(self, token_issuer: TokenIssuer) -> None:
        """Test that swapping the payload invalidates the signature."""
        alice = token_issuer.issue("alice").token.split(".")
        mallory = token_issuer.issue("mallory").token.split(".")

        forged = ".".join([alice[0], mallory[1], alice[2]])

        with pytest.raises(InvalidTokenError):
            token_issuer.decode_token(forged)

    def test_malformed_token_fails(self, token_issuer: TokenIssuer) -> None:
        """Test that garbage is rejected."""
        assert token_issuer.verify_token("not.a.token") is False
        with pytest.raises(InvalidTokenError):
            token_issuer.decode_token("garbage")

    def test_token_without_jti_fails(
        self,
        jwt_settings: JWTSettings,
        token_issuer: TokenIssuer,
    ) -> None:
        """Test that the required claims are enforced."""
        now = int(datetime.now(timezone.utc).timestamp())
        token = jwt.encode(
            {
                "sub": "user-123",
                "iss": jwt_settings.issuer,
                "aud": jwt_settings.audience,
                "iat": now,
                "nbf": now,
                "exp": now + 60,
            },
            jwt_settings.secret_key.get_secret_value(),
            algorithm="HS256",
        )

        with pytest.raises(InvalidTokenError):
            token_issuer.decode_token(token)

    @pytest.mark.parametrize("field", ["issuer", "audience"])
    def test_missing_configuration_raises(self, jwt_settings: JWTSettings, field: str) -> None:
        """Test that a blank issuer or audience fails at construction."""
        with pytest.raises(ConfigurationError):
            TokenIssuer(jwt_settings.model_copy(update={field: "  "}))

    def test_missing_secret_raises(self, jwt_settings: JWTSettings) -> None:
        """Test that a blank secret fails at construction."""
        with pytest.raises(ConfigurationError):
            TokenIssuer(jwt_settings.model_copy(update={"secret_key": SecretStr("")}))


class TestIssueToken:
    """Tests for the issue_token function."""

    def test_issue_token_signs_hs256(self) -> None:
        """Test that the token verifies with the same secret."""
        now = datetime(2030, 1, 1, tzinfo=timezone.utc)
        token = issue_token("user-1", "secret", "iss", "aud", now=now)

        claims = jwt.decode(
            token,
            "secret",
            algorithms=["HS256"],
            audience="aud",
            issuer="iss",
            options={"verify_exp": False, "verify_nbf": False, "verify_iat": False},
        )

        assert jwt.get_unverified_header(token)["alg"] == "HS256"
        assert claims["sub"] == "user-1"
        assert claims["iat"] == int(now.timestamp())
        assert claims["exp"] == int((now + timedelta(days=7)).timestamp())

    @pytest.mark.parametrize(
        "secret,issuer,audience",
        [
            ("", "iss", "aud"),
            ("secret", "", "aud"),
            ("secret", "iss", None),
        ],
    )
    def test_issue_token_requires_configuration(
        self,
        secret: str,
        issuer: str,
        audience: str | None,
    ) -> None:
        """Test that missing secret, issuer or audience is a configuration error."""
        with pytest.raises(ConfigurationError):
            issue_token("user-1", secret, issuer, audience)
