# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Salt generation and password hashing.

Stored digests are ``base64(sha256(utf8(password + salt + pepper)))``, with
the three parts concatenated literally and no separator. The per-user salt
is 16 random bytes, base64 encoded; the pepper is a single process-wide
secret injected at construction and never stored per user.

The single-pass SHA-256 scheme has no work factor. It is kept as the
default so that existing digests keep verifying. BcryptPasswordHasher wraps
the same digest in bcrypt for deployments that can afford a forced reset
or an in-place rehash on next login.

Example:
    >>> hasher = PasswordHasher(pepper="s3cr3t")
    >>> salt = hasher.generate_salt()
    >>> digest = hasher.hash("Secret123!", salt)
    >>> hasher.verify("Secret123!", salt, digest)
    True
"""

import base64
import hashlib
import hmac
import logging
import secrets
from typing import TYPE_CHECKING

import bcrypt

from hexskeleton.core.errors import ConfigurationError, InvalidArgumentError

if TYPE_CHECKING:
    from hexskeleton.core.config.settings import SecuritySettings

logger = logging.getLogger(__name__)

SALT_BYTES = 16


def generate_salt() -> str:
    """Generate a cryptographically secure random salt.

    Returns:
        16 random bytes encoded as base64 (24 characters).
    """
    return base64.b64encode(secrets.token_bytes(SALT_BYTES)).decode("ascii")


def compute_hash(password: str, salt: str, pepper: str | None) -> str:
    """Compute the digest of password, salt and pepper.

    Args:
        password: Plain text password.
        salt: Per-user salt.
        pepper: Process-wide secret. An empty string is accepted.

    Returns:
        Base64 encoded SHA-256 digest.

    Raises:
        InvalidArgumentError: If password or salt is empty or blank, or if
            pepper is None.
    """
    if not password or not password.strip():
        raise InvalidArgumentError("Password cannot be null or empty", field="password")

    if not salt or not salt.strip():
        raise InvalidArgumentError("Salt cannot be null or empty", field="salt")

    if pepper is None:
        raise InvalidArgumentError("Pepper cannot be null", field="pepper")

    digest = hashlib.sha256(f"{password}{salt}{pepper}".encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


class PasswordHasher:
    """Peppered SHA-256 password hasher.

    Verification recomputes the digest with the stored salt and compares it
    in constant time.

    Attributes:
        _pepper: Process-wide secret.
    """

    scheme = "sha256"

    def __init__(self, pepper: str | None) -> None:
        """Initialize the hasher.

        Args:
            pepper: Process-wide secret. Empty string allowed, None is not.

        Raises:
            ConfigurationError: If pepper is None.
        """
        if pepper is None:
            raise ConfigurationError("Pepper configuration is required for password hashing")
        self._pepper = pepper

    def generate_salt(self) -> str:
        """Generate a fresh per-credential salt."""
        return generate_salt()

    def hash(self, password: str, salt: str) -> str:
        """Hash a password with the given salt and the configured pepper.

        Raises:
            InvalidArgumentError: If password or salt is empty.
        """
        return compute_hash(password, salt, self._pepper)

    def verify(self, password: str, salt: str, password_hash: str) -> bool:
        """Verify a password against a stored digest.

        Args:
            password: Plain text password to verify.
            salt: Salt stored with the credential.
            password_hash: Stored digest.

        Returns:
            True if the recomputed digest matches, False otherwise.
        """
        if not password or not salt or not password_hash:
            return False

        try:
            candidate = compute_hash(password, salt, self._pepper)
        except InvalidArgumentError:
            return False

        return hmac.compare_digest(candidate.encode("ascii"), password_hash.encode("utf-8"))

    def needs_rehash(self, password_hash: str) -> bool:
        """Check whether a stored digest should be recomputed on next login."""
        return False


def _is_bcrypt(password_hash: str) -> bool:
    return password_hash.startswith(("$2a$", "$2b$", "$2y$"))


class BcryptPasswordHasher(PasswordHasher):
    """Bcrypt over the peppered SHA-256 digest.

    The inner digest is 44 ASCII bytes, below bcrypt's 72 byte input limit,
    so long passwords are not silently truncated. An existing SHA-256 digest
    can be upgraded in place with rehash_legacy() without knowing the
    password.

    Attributes:
        _rounds: Number of bcrypt rounds.
    """

    scheme = "bcrypt"

    def __init__(self, pepper: str | None, rounds: int = 12) -> None:
        """Initialize the hasher.

        Args:
            pepper: Process-wide secret.
            rounds: bcrypt cost factor.
        """
        super().__init__(pepper)
        self._rounds = rounds

    def hash(self, password: str, salt: str) -> str:
        """Hash a password with bcrypt on top of the peppered digest."""
        return self.rehash_legacy(compute_hash(password, salt, self._pepper))

    def rehash_legacy(self, legacy_digest: str) -> str:
        """Wrap an existing SHA-256 digest in bcrypt."""
        hashed = bcrypt.hashpw(legacy_digest.encode("ascii"), bcrypt.gensalt(rounds=self._rounds))
        return hashed.decode("utf-8")

    def verify(self, password: str, salt: str, password_hash: str) -> bool:
        """Verify a password against a bcrypt-wrapped or legacy digest."""
        if not password or not salt or not password_hash:
            return False

        if not _is_bcrypt(password_hash):
            return super().verify(password, salt, password_hash)

        try:
            inner = compute_hash(password, salt, self._pepper)
            return bcrypt.checkpw(inner.encode("ascii"), password_hash.encode("utf-8"))
        except ValueError as e:
            logger.warning("Password verification failed: %s", str(e))
            return False

    def needs_rehash(self, password_hash: str) -> bool:
        """Check whether a stored bcrypt hash uses a different cost factor.

        Args:
            password_hash: Stored bcrypt hash ("$2b$12$...").

        Returns:
            True for legacy SHA-256 digests and for bcrypt hashes with a
            different cost factor.
        """
        if not password_hash:
            return False

        if not _is_bcrypt(password_hash):
            return True

        try:
            rounds = int(password_hash.split("$")[2])
        except (IndexError, ValueError):
            return False

        return rounds != self._rounds


def create_password_hasher(settings: "SecuritySettings") -> PasswordHasher:
    """Build the hasher selected by configuration.

    Args:
        settings: Security settings with pepper and scheme.

    Returns:
        PasswordHasher or BcryptPasswordHasher.

    Raises:
        ConfigurationError: If the pepper is not configured.
    """
    pepper = settings.pepper.get_secret_value() if settings.pepper is not None else None

    if settings.password_scheme == "bcrypt":
        return BcryptPasswordHasher(pepper, rounds=settings.bcrypt_rounds)

    return PasswordHasher(pepper)
