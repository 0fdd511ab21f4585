# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User persistence port and in-memory adapter.

UserRepository is the port the services depend on. Two adapters implement
it: InMemoryUserRepository below (tests, local runs) and
SqlAlchemyUserRepository in hexskeleton.infrastructure.database.

Adapters hand out copies of the stored aggregates, so a change only
becomes visible to other callers after save().
"""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime
from typing import Protocol

from hexskeleton.domains.user.entities import User
from hexskeleton.domains.user.schemas import PagedResult, PaginationParams
from hexskeleton.utils.datetime import ensure_utc

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    "created_at": lambda u: u.created_at,
    "email": lambda u: u.email.value,
    "first_name": lambda u: u.full_name.first_name.lower(),
    "last_name": lambda u: u.full_name.last_name.lower(),
    "last_login": lambda u: u.last_login or u.created_at,
}
DEFAULT_SORT_FIELD = "created_at"


class UserRepository(Protocol):
    """Persistence port for the User aggregate."""

    async def add(self, user: User) -> None: ...

    async def get_by_id(self, user_id: str) -> User | None: ...

    async def get_by_email(self, email: str) -> User | None: ...

    async def save(self, user: User) -> None: ...

    async def delete(self, user_id: str) -> bool: ...

    async def exists_by_email(self, email: str) -> bool: ...

    async def exists_by_phone_number(self, phone_number: str) -> bool: ...

    async def find_credential(self, user_id: str) -> tuple[str, str] | None: ...

    async def store_credential(self, user_id: str, password_hash: str, salt: str) -> bool: ...

    async def update_last_login(self, user_id: str, timestamp: datetime) -> bool: ...

    async def list_users(
        self,
        pagination: PaginationParams,
        search: str | None = None,
        include_deleted: bool = False,
    ) -> PagedResult[User]: ...

    async def list_active(self) -> list[User]: ...


def latest_login(stored: datetime | None, incoming: datetime | None) -> datetime | None:
    """Pick the later of two last-login timestamps, so saves never move it back."""
    if stored is None:
        return incoming
    if incoming is None:
        return stored
    return max(ensure_utc(stored), ensure_utc(incoming))


def matches_search(user: User, search: str) -> bool:
    """Case-insensitive match on first name, last name, email or phone."""
    term = search.strip().lower()
    if not term:
        return True
    return (
        term in user.full_name.first_name.lower()
        or term in user.full_name.last_name.lower()
        or term in user.email.value
        or term in user.phone_number.value
    )


class InMemoryUserRepository:
    """Dict-backed repository guarded by an asyncio.Lock.

    Attributes:
        _users: Stored aggregates keyed by user ID.
        _lock: Serializes mutations.
    """

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._lock = asyncio.Lock()

    async def add(self, user: User) -> None:
        async with self._lock:
            if user.id in self._users:
                raise ValueError(f"User {user.id} already stored")
            self._users[user.id] = replace(user)
        logger.debug("Stored user %s", user.id)

    async def get_by_id(self, user_id: str) -> User | None:
        user = self._users.get(str(user_id))
        return replace(user) if user else None

    async def get_by_email(self, email: str) -> User | None:
        normalized = email.strip().lower()
        for user in self._users.values():
            if user.email.value == normalized:
                return replace(user)
        return None

    async def save(self, user: User) -> None:
        """Store the aggregate, keeping a later last_login written meanwhile."""
        async with self._lock:
            stored = self._users.get(user.id)
            if stored is None:
                raise KeyError(user.id)
            self._users[user.id] = replace(
                user, last_login=latest_login(stored.last_login, user.last_login)
            )

    async def delete(self, user_id: str) -> bool:
        async with self._lock:
            return self._users.pop(str(user_id), None) is not None

    async def exists_by_email(self, email: str) -> bool:
        return await self.get_by_email(email) is not None

    async def exists_by_phone_number(self, phone_number: str) -> bool:
        return any(u.phone_number.value == phone_number for u in self._users.values())

    async def find_credential(self, user_id: str) -> tuple[str, str] | None:
        user = self._users.get(str(user_id))
        if user is None:
            return None
        return user.password_hash, user.password_salt

    async def store_credential(self, user_id: str, password_hash: str, salt: str) -> bool:
        async with self._lock:
            user = self._users.get(str(user_id))
            if user is None:
                return False
            self._users[user.id] = replace(user, password_hash=password_hash, password_salt=salt)
            return True

    async def update_last_login(self, user_id: str, timestamp: datetime) -> bool:
        """Overwrite last_login unless a later login is already stored."""
        timestamp = ensure_utc(timestamp)
        async with self._lock:
            user = self._users.get(str(user_id))
            if user is None:
                return False
            if user.last_login is None or timestamp >= user.last_login:
                self._users[user.id] = replace(user, last_login=timestamp)
            return True

    async def list_users(
        self,
        pagination: PaginationParams,
        search: str | None = None,
        include_deleted: bool = False,
    ) -> PagedResult[User]:
        users = [
            u
            for u in self._users.values()
            if (include_deleted or not u.is_deleted) and (not search or matches_search(u, search))
        ]

        key = SORTABLE_FIELDS.get(pagination.sort_by or DEFAULT_SORT_FIELD)
        if key is None:
            key = SORTABLE_FIELDS[DEFAULT_SORT_FIELD]
        users.sort(key=key, reverse=pagination.sort_direction == "desc")

        page = users[pagination.skip : pagination.skip + pagination.page_size]
        return PagedResult(
            items=[replace(u) for u in page],
            total_count=len(users),
            page_number=pagination.page_number,
            page_size=pagination.page_size,
        )

    async def list_active(self) -> list[User]:
        return [replace(u) for u in self._users.values() if not u.is_deleted]
