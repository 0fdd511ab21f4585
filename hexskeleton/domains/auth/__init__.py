# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication domain.

This package provides credential and token handling:
- Salt generation and peppered password hashing
- JWT issuance and verification
- Background recording of the last successful login
- Login orchestration (hexskeleton.domains.auth.service)

Exports:
    PasswordHasher: Peppered SHA-256 password hashing.
    BcryptPasswordHasher: bcrypt over the peppered digest.
    TokenIssuer: JWT creation and validation.
    LoginNotifier: Last-login writer subscribed to the event bus.
"""

from hexskeleton.domains.auth.jwt import TokenIssuer, issue_token
from hexskeleton.domains.auth.login_notifier import LoginNotifier
from hexskeleton.domains.auth.password import (
    BcryptPasswordHasher,
    PasswordHasher,
    compute_hash,
    create_password_hasher,
    generate_salt,
)

__all__ = [
    "PasswordHasher",
    "BcryptPasswordHasher",
    "compute_hash",
    "create_password_hasher",
    "generate_salt",
    "TokenIssuer",
    "issue_token",
    "LoginNotifier",
]
