# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Relational persistence: connection management, models and repository."""

from hexskeleton.infrastructure.database.connection import (
    DatabaseError,
    check_database_connection,
    close_database,
    create_tables,
    get_engine,
    get_sessionmaker,
    init_database,
)
from hexskeleton.infrastructure.database.models import (
    Base,
    SoftDeleteMixin,
    TimestampMixin,
    UserRecord,
)
from hexskeleton.infrastructure.database.user_repository import SqlAlchemyUserRepository

__all__ = [
    "DatabaseError",
    "init_database",
    "close_database",
    "get_engine",
    "get_sessionmaker",
    "create_tables",
    "check_database_connection",
    "Base",
    "TimestampMixin",
    "SoftDeleteMixin",
    "UserRecord",
    "SqlAlchemyUserRepository",
]
