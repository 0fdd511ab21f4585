# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for hexskeleton.

Example:
    >>> from hexskeleton.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.environment
    'development'
"""

from hexskeleton.core.config.settings import (
    DatabaseSettings,
    EventSettings,
    JWTSettings,
    ProfileSettings,
    SecuritySettings,
    Settings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "clear_settings_cache",
    "JWTSettings",
    "SecuritySettings",
    "DatabaseSettings",
    "EventSettings",
    "ProfileSettings",
]
