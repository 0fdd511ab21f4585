# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy adapter for the user persistence port.

Each operation opens its own session from the sessionmaker and commits
before returning, so the repository can be shared between request handling
and background event handlers.

Example:
    >>> repository = SqlAlchemyUserRepository(get_sessionmaker())
    >>> user = await repository.get_by_email("alice@example.com")
"""

import logging
from datetime import datetime

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hexskeleton.domains.user.entities import User
from hexskeleton.domains.user.repository import DEFAULT_SORT_FIELD, latest_login
from hexskeleton.domains.user.schemas import PagedResult, PaginationParams
from hexskeleton.domains.user.value_objects import Email, FullName, Location, PhoneNumber
from hexskeleton.infrastructure.database.connection import DatabaseError
from hexskeleton.infrastructure.database.models import UserRecord
from hexskeleton.utils.datetime import ensure_utc, utc_now

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "created_at": UserRecord.created_at,
    "email": UserRecord.email,
    "first_name": UserRecord.first_name,
    "last_name": UserRecord.last_name,
    "last_login": UserRecord.last_login,
}


def to_entity(record: UserRecord) -> User:
    """Rebuild the aggregate from a row without recording events."""
    return User(
        id=record.id,
        email=Email(record.email),
        full_name=FullName(record.first_name, record.last_name),
        phone_number=PhoneNumber(record.phone_number),
        location=Location(record.latitude, record.longitude),
        birthdate=record.birthdate,
        password_salt=record.password_salt,
        password_hash=record.password_hash,
        about_me=record.about_me or "",
        last_login=ensure_utc(record.last_login),
        profile_image_name=record.profile_image_name,
        created_at=ensure_utc(record.created_at),
        updated_at=ensure_utc(record.updated_at),
        deleted_at=ensure_utc(record.deleted_at),
        is_deleted=record.is_deleted,
    )


def apply_to_record(user: User, record: UserRecord) -> UserRecord:
    """Copy the aggregate state onto a row."""
    record.id = user.id
    record.email = user.email.value
    record.password_hash = user.password_hash
    record.password_salt = user.password_salt
    record.first_name = user.full_name.first_name
    record.last_name = user.full_name.last_name
    record.birthdate = user.birthdate
    record.phone_number = user.phone_number.value
    record.latitude = user.location.latitude
    record.longitude = user.location.longitude
    record.about_me = user.about_me
    record.profile_image_name = user.profile_image_name
    record.last_login = user.last_login
    record.created_at = user.created_at
    record.updated_at = user.updated_at
    record.deleted_at = user.deleted_at
    record.is_deleted = user.is_deleted
    return record


class SqlAlchemyUserRepository:
    """User repository backed by an async SQLAlchemy sessionmaker.

    Attributes:
        _sessionmaker: Factory for short-lived sessions.
    """

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]) -> None:
        self._sessionmaker = sessionmaker

    async def add(self, user: User) -> None:
        async with self._sessionmaker() as session:
            session.add(apply_to_record(user, UserRecord()))
            await self._commit(session)

    async def get_by_id(self, user_id: str) -> User | None:
        async with self._sessionmaker() as session:
            result = await session.execute(select(UserRecord).where(UserRecord.id == str(user_id)))
            record = result.scalar_one_or_none()
            return to_entity(record) if record else None

    async def get_by_email(self, email: str) -> User | None:
        async with self._sessionmaker() as session:
            result = await session.execute(
                select(UserRecord).where(UserRecord.email == email.strip().lower())
            )
            record = result.scalar_one_or_none()
            return to_entity(record) if record else None

    async def save(self, user: User) -> None:
        """Write the aggregate back, keeping a later stored last_login."""
        async with self._sessionmaker() as session:
            record = await session.get(UserRecord, user.id, with_for_update=True)
            if record is None:
                raise KeyError(user.id)
            stored_login = record.last_login
            apply_to_record(user, record)
            record.last_login = latest_login(stored_login, user.last_login)
            await self._commit(session)

    async def delete(self, user_id: str) -> bool:
        async with self._sessionmaker() as session:
            result = await session.execute(delete(UserRecord).where(UserRecord.id == str(user_id)))
            await self._commit(session)
            return result.rowcount > 0

    async def exists_by_email(self, email: str) -> bool:
        async with self._sessionmaker() as session:
            result = await session.execute(
                select(UserRecord.id).where(UserRecord.email == email.strip().lower()).limit(1)
            )
            return result.scalar_one_or_none() is not None

    async def exists_by_phone_number(self, phone_number: str) -> bool:
        async with self._sessionmaker() as session:
            result = await session.execute(
                select(UserRecord.id).where(UserRecord.phone_number == phone_number).limit(1)
            )
            return result.scalar_one_or_none() is not None

    async def find_credential(self, user_id: str) -> tuple[str, str] | None:
        async with self._sessionmaker() as session:
            result = await session.execute(
                select(UserRecord.password_hash, UserRecord.password_salt).where(
                    UserRecord.id == str(user_id)
                )
            )
            row = result.one_or_none()
            return (row[0], row[1]) if row else None

    async def store_credential(self, user_id: str, password_hash: str, salt: str) -> bool:
        async with self._sessionmaker() as session:
            result = await session.execute(
                update(UserRecord)
                .where(UserRecord.id == str(user_id))
                .values(password_hash=password_hash, password_salt=salt, updated_at=utc_now())
            )
            await self._commit(session)
            return result.rowcount > 0

    async def update_last_login(self, user_id: str, timestamp: datetime) -> bool:
        """Overwrite last_login unless a later login is already stored.

        Returns:
            True if the user exists, False otherwise.
        """
        async with self._sessionmaker() as session:
            result = await session.execute(
                update(UserRecord)
                .where(
                    UserRecord.id == str(user_id),
                    or_(UserRecord.last_login.is_(None), UserRecord.last_login <= timestamp),
                )
                .values(last_login=timestamp)
            )
            if result.rowcount > 0:
                await self._commit(session)
                return True

            exists = await session.execute(
                select(UserRecord.id).where(UserRecord.id == str(user_id))
            )
            return exists.scalar_one_or_none() is not None

    async def list_users(
        self,
        pagination: PaginationParams,
        search: str | None = None,
        include_deleted: bool = False,
    ) -> PagedResult[User]:
        query = select(UserRecord)
        if not include_deleted:
            query = query.where(UserRecord.is_deleted.is_(False))
        if search and search.strip():
            term = f"%{search.strip().lower()}%"
            query = query.where(
                or_(
                    func.lower(UserRecord.first_name).like(term),
                    func.lower(UserRecord.last_name).like(term),
                    UserRecord.email.like(term),
                    UserRecord.phone_number.like(term),
                )
            )

        column = SORT_COLUMNS.get(pagination.sort_by or DEFAULT_SORT_FIELD)
        if column is None:
            column = SORT_COLUMNS[DEFAULT_SORT_FIELD]
        order = column.desc() if pagination.sort_direction == "desc" else column.asc()

        async with self._sessionmaker() as session:
            count_result = await session.execute(
                select(func.count()).select_from(query.subquery())
            )
            total = count_result.scalar_one()

            result = await session.execute(
                query.order_by(order).offset(pagination.skip).limit(pagination.page_size)
            )
            records = result.scalars().all()

        return PagedResult(
            items=[to_entity(r) for r in records],
            total_count=total,
            page_number=pagination.page_number,
            page_size=pagination.page_size,
        )

    async def list_active(self) -> list[User]:
        async with self._sessionmaker() as session:
            result = await session.execute(
                select(UserRecord).where(UserRecord.is_deleted.is_(False))
            )
            return [to_entity(r) for r in result.scalars().all()]

    async def _commit(self, session: AsyncSession) -> None:
        try:
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error("User repository commit failed: %s", str(e))
            raise DatabaseError("Database operation failed", e) from e
