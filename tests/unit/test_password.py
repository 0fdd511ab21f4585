# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for salt generation and password hashing.

Tests compute_hash, generate_salt and the PasswordHasher classes.
"""

import base64
import hashlib

import pytest
from pydantic import SecretStr

from hexskeleton.core.config.settings import SecuritySettings
from hexskeleton.core.errors import ConfigurationError, InvalidArgumentError
from hexskeleton.domains.auth.password import (
    BcryptPasswordHasher,
    PasswordHasher,
    compute_hash,
    create_password_hasher,
    generate_salt,
)


class TestComputeHash:
    """Tests for compute_hash."""

    def test_matches_reference_digest(self) -> None:
        """Test that the digest is base64(sha256(password + salt + pepper))."""
        expected = base64.b64encode(
            hashlib.sha256("Secret123!saltpepper".encode("utf-8")).digest()
        ).decode("ascii")

        assert compute_hash("Secret123!", "salt", "pepper") == expected

    def test_is_deterministic(self) -> None:
        """Test that the same inputs always give the same digest."""
        first = compute_hash("Secret123!", "c2FsdA==", "pepper")
        second = compute_hash("Secret123!", "c2FsdA==", "pepper")

        assert first == second

    @pytest.mark.parametrize(
        "changed",
        [
            ("Secret124!", "salt", "pepper"),
            ("Secret123!", "salu", "pepper"),
            ("Secret123!", "salt", "peppes"),
        ],
    )
    def test_changing_one_input_changes_digest(self, changed: tuple[str, str, str]) -> None:
        """Test that changing password, salt or pepper changes the digest."""
        assert compute_hash(*changed) != compute_hash("Secret123!", "salt", "pepper")

    def test_concatenation_has_no_separator(self) -> None:
        """Test that moving characters between password and salt collides.

        The parts are concatenated without a separator, so "ab" + "c" and
        "a" + "bc" hash the same string.
        """
        assert compute_hash("ab", "c", "p") == compute_hash("a", "bc", "p")
        assert compute_hash("ab", "c", "p") != compute_hash("ac", "c", "p")

    def test_handles_unicode(self) -> None:
        """Test that non-ASCII input is UTF-8 encoded."""
        expected = base64.b64encode(
            hashlib.sha256("contraseñaSALTpepper".encode("utf-8")).digest()
        ).decode("ascii")

        assert compute_hash("contraseña", "SALT", "pepper") == expected

    @pytest.mark.parametrize("password", ["", "   ", None])
    def test_empty_password_raises(self, password: str | None) -> None:
        """Test that an empty or blank password is rejected."""
        with pytest.raises(InvalidArgumentError) as exc_info:
            compute_hash(password, "salt", "pepper")

        assert exc_info.value.field == "password"

    @pytest.mark.parametrize("salt", ["", "\t", None])
    def test_empty_salt_raises(self, salt: str | None) -> None:
        """Test that an empty or blank salt is rejected."""
        with pytest.raises(InvalidArgumentError) as exc_info:
            compute_hash("Secret123!", salt, "pepper")

        assert exc_info.value.field == "salt"

    def test_missing_pepper_raises(self) -> None:
        """Test that a None pepper is rejected."""
        with pytest.raises(InvalidArgumentError) as exc_info:
            compute_hash("Secret123!", "salt", None)

        assert exc_info.value.field == "pepper"

    def test_empty_pepper_is_accepted(self) -> None:
        """Test that an empty pepper string is a valid pepper."""
        digest = compute_hash("Secret123!", "salt", "")
        expected = base64.b64encode(hashlib.sha256(b"Secret123!salt").digest()).decode("ascii")

        assert digest == expected
        assert digest != compute_hash("Secret123!", "salt", "pepper")

    def test_invalid_argument_is_value_error(self) -> None:
        """Test that InvalidArgumentError can be caught as ValueError."""
        with pytest.raises(ValueError):
            compute_hash("", "salt", "pepper")


class TestGenerateSalt:
    """Tests for generate_salt."""

    def test_salt_decodes_to_16_bytes(self) -> None:
        """Test that a salt is 16 random bytes in base64."""
        salt = generate_salt()

        assert len(salt) == 24
        assert len(base64.b64decode(salt)) == 16

    @pytest.mark.slow
    def test_ten_thousand_salts_are_unique(self) -> None:
        """Test that 10,000 salts contain no duplicates."""
        salts = [generate_salt() for _ in range(10_000)]

        assert len(set(salts)) == len(salts)
        assert all(len(base64.b64decode(s)) == 16 for s in salts)


class TestPasswordHasher:
    """Tests for PasswordHasher class."""

    def test_hash_and_verify(self, hasher: PasswordHasher) -> None:
        """Test that a hashed password verifies."""
        salt = hasher.generate_salt()
        digest = hasher.hash("Secret123!", salt)

        assert hasher.verify("Secret123!", salt, digest) is True

    def test_verify_wrong_password(self, hasher: PasswordHasher) -> None:
        """Test that a wrong password does not verify."""
        salt = hasher.generate_salt()
        digest = hasher.hash("Secret123!", salt)

        assert hasher.verify("WrongPass!", salt, digest) is False

    def test_verify_wrong_salt(self, hasher: PasswordHasher) -> None:
        """Test that the digest only verifies with its own salt."""
        digest = hasher.hash("Secret123!", hasher.generate_salt())

        assert hasher.verify("Secret123!", hasher.generate_salt(), digest) is False

    def test_different_pepper_does_not_verify(self, hasher: PasswordHasher) -> None:
        """Test that a digest from another deployment does not verify."""
        salt = hasher.generate_salt()
        digest = PasswordHasher(pepper="other-pepper").hash("Secret123!", salt)

        assert hasher.verify("Secret123!", salt, digest) is False

    @pytest.mark.parametrize(
        "password,salt,digest",
        [
            ("", "salt", "digest"),
            ("Secret123!", "", "digest"),
            ("Secret123!", "salt", ""),
        ],
    )
    def test_verify_empty_inputs_return_false(
        self,
        hasher: PasswordHasher,
        password: str,
        salt: str,
        digest: str,
    ) -> None:
        """Test that verification with empty input returns False."""
        assert hasher.verify(password, salt, digest) is False

    def test_hash_rejects_empty_password(self, hasher: PasswordHasher) -> None:
        """Test that hashing an empty password raises."""
        with pytest.raises(InvalidArgumentError):
            hasher.hash("", hasher.generate_salt())

    def test_missing_pepper_raises_configuration_error(self) -> None:
        """Test that a hasher cannot be built without a pepper."""
        with pytest.raises(ConfigurationError):
            PasswordHasher(pepper=None)

    def test_plain_hasher_never_needs_rehash(self, hasher: PasswordHasher) -> None:
        """Test that SHA-256 digests are kept as they are."""
        assert hasher.needs_rehash(hasher.hash("Secret123!", "salt")) is False


class TestBcryptPasswordHasher:
    """Tests for BcryptPasswordHasher class."""

    @pytest.fixture
    def bcrypt_hasher(self) -> BcryptPasswordHasher:
        """Create a bcrypt hasher with the minimum cost for speed."""
        return BcryptPasswordHasher(pepper="test-pepper", rounds=4)

    def test_hash_returns_bcrypt_hash(self, bcrypt_hasher: BcryptPasswordHasher) -> None:
        """Test that hashing returns a bcrypt hash string."""
        hashed = bcrypt_hasher.hash("Secret123!", "salt")

        assert hashed.startswith("$2b$04$")
        assert len(hashed) == 60

    def test_verify_correct_and_wrong_password(
        self,
        bcrypt_hasher: BcryptPasswordHasher,
    ) -> None:
        """Test verification against a bcrypt hash."""
        hashed = bcrypt_hasher.hash("Secret123!", "salt")

        assert bcrypt_hasher.verify("Secret123!", "salt", hashed) is True
        assert bcrypt_hasher.verify("WrongPass!", "salt", hashed) is False

    def test_verifies_legacy_digest(self, bcrypt_hasher: BcryptPasswordHasher) -> None:
        """Test that an existing SHA-256 digest still verifies."""
        legacy = compute_hash("Secret123!", "salt", "test-pepper")

        assert bcrypt_hasher.verify("Secret123!", "salt", legacy) is True
        assert bcrypt_hasher.needs_rehash(legacy) is True

    def test_rehash_legacy_keeps_password_valid(
        self,
        bcrypt_hasher: BcryptPasswordHasher,
    ) -> None:
        """Test that wrapping a legacy digest does not need the password."""
        legacy = compute_hash("Secret123!", "salt", "test-pepper")

        wrapped = bcrypt_hasher.rehash_legacy(legacy)

        assert bcrypt_hasher.verify("Secret123!", "salt", wrapped) is True

    def test_needs_rehash_on_cost_change(self, bcrypt_hasher: BcryptPasswordHasher) -> None:
        """Test that a different cost factor triggers a rehash."""
        hashed = BcryptPasswordHasher(pepper="test-pepper", rounds=5).hash("Secret123!", "salt")

        assert bcrypt_hasher.needs_rehash(hashed) is True
        assert bcrypt_hasher.needs_rehash(bcrypt_hasher.hash("Secret123!", "salt")) is False


class TestCreatePasswordHasher:
    """Tests for create_password_hasher."""

    def test_defaults_to_sha256(self) -> None:
        """Test that the default scheme keeps existing digests."""
        hasher = create_password_hasher(SecuritySettings(pepper=SecretStr("p")))

        assert type(hasher) is PasswordHasher
        assert hasher.scheme == "sha256"

    def test_bcrypt_scheme(self) -> None:
        """Test that the bcrypt scheme is selected from settings."""
        hasher = create_password_hasher(
            SecuritySettings(pepper=SecretStr("p"), password_scheme="bcrypt", bcrypt_rounds=4)
        )

        assert isinstance(hasher, BcryptPasswordHasher)

    def test_missing_pepper(self) -> None:
        """Test that a missing pepper fails at construction."""
        with pytest.raises(ConfigurationError):
            create_password_hasher(SecuritySettings(pepper=None))
