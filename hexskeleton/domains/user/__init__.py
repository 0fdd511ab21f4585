# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User domain package.

This package provides the User aggregate and its value objects. The
application service lives in hexskeleton.domains.user.service.

Example:
    >>> from hexskeleton.domains.user import Email
    >>> Email("Alice@Example.com").value
    'alice@example.com'
"""

from hexskeleton.domains.user.entities import User
from hexskeleton.domains.user.value_objects import (
    Email,
    FullName,
    Location,
    PhoneNumber,
    UserDomainError,
)

__all__ = [
    "User",
    "Email",
    "FullName",
    "Location",
    "PhoneNumber",
    "UserDomainError",
]
