# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared exception hierarchy.

Errors raised by more than one domain module live here. Domain specific
errors (authentication, user management, tokens) are declared next to the
code that raises them and subclass HexSkeletonError.
"""


class HexSkeletonError(Exception):
    """Base exception for all hexskeleton errors."""

    pass


class InvalidArgumentError(HexSkeletonError, ValueError):
    """Raised when a caller passes malformed or missing input.

    Attributes:
        field: Name of the offending argument, for per-field reporting.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class ConfigurationError(HexSkeletonError):
    """Raised when required deployment configuration is missing.

    This is fatal: the process should refuse to start rather than hash
    passwords or sign tokens with incomplete secrets.
    """

    pass
