# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Cross-cutting utilities: structured logging and UTC datetime helpers."""

from hexskeleton.utils.datetime import (
    days_ago,
    ensure_utc,
    one_month_before,
    start_of_day,
    utc_now,
    utc_today,
)
from hexskeleton.utils.logging import bind_context, clear_context, get_logger, setup_logging

__all__ = [
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "utc_now",
    "utc_today",
    "ensure_utc",
    "start_of_day",
    "days_ago",
    "one_month_before",
]
