# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User service for user management.

This module provides the UserService that handles:
- Registration (credential creation and first login)
- Profile and partial user updates
- Password change
- Profile image replacement and removal
- Soft and hard deletion
- Listing, search and nearby lookup
- User statistics

Domain events recorded by the aggregate are published in the background
after the change is persisted.

Example:
    >>> user_service = UserService(repository, hasher, auth_service, event_bus)
    >>> result = await user_service.register_user(request)
    >>> page = await user_service.list_users(PaginationParams(), search="alice")
"""

import logging
import os
from collections.abc import Sequence
from datetime import datetime
from uuid import uuid4

from hexskeleton.core.errors import HexSkeletonError, InvalidArgumentError
from hexskeleton.domains.auth.password import PasswordHasher
from hexskeleton.domains.auth.service import AuthenticationFailure, AuthService
from hexskeleton.domains.user.entities import User
from hexskeleton.domains.user.events import publish_domain_events
from hexskeleton.domains.user.repository import UserRepository
from hexskeleton.domains.user.schemas import (
    AuthenticationResult,
    ChangePasswordRequest,
    NearbyUserResponse,
    PagedResult,
    PaginationParams,
    ProfileImageResult,
    RegisterUserRequest,
    UpdateProfileRequest,
    UpdateUserRequest,
    UserResponse,
    UserStats,
    check_password_composition,
)
from hexskeleton.domains.user.value_objects import Location, PhoneNumber
from hexskeleton.infrastructure.events import EventBus
from hexskeleton.utils.datetime import days_ago, ensure_utc, one_month_before, start_of_day, utc_now

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif")


class UserServiceError(HexSkeletonError):
    """Base exception for user service errors."""

    pass


class UserNotFoundError(UserServiceError):
    """Raised when a user is not found."""

    pass


class UserAlreadyExistsError(UserServiceError):
    """Raised when the email or phone number is already registered."""

    pass


class WeakPasswordError(UserServiceError):
    """Raised when a password does not meet the strength rules."""

    pass


class UserService:
    """Service for managing users.

    Attributes:
        _users: User persistence port.
        _hasher: Password hasher holding the pepper.
        _auth: Authentication service, used to issue the first token.
        _bus: Event bus for domain events.
        _min_password_length: Minimum accepted password length.
        _image_extensions: Accepted profile image extensions, lowercased.
    """

    def __init__(
        self,
        repository: UserRepository,
        hasher: PasswordHasher,
        auth_service: AuthService,
        event_bus: EventBus,
        min_password_length: int = 8,
        allowed_image_extensions: Sequence[str] = DEFAULT_IMAGE_EXTENSIONS,
    ) -> None:
        """Initialize the user service.

        Args:
            repository: User persistence port.
            hasher: Password hasher.
            auth_service: Authentication service.
            event_bus: Event bus for domain events.
            min_password_length: Minimum accepted password length.
            allowed_image_extensions: Accepted profile image extensions.
        """
        self._users = repository
        self._hasher = hasher
        self._auth = auth_service
        self._bus = event_bus
        self._min_password_length = min_password_length
        self._image_extensions = frozenset(ext.lower() for ext in allowed_image_extensions)

    # Commands

    async def register_user(self, request: RegisterUserRequest) -> AuthenticationResult:
        """Register a new user and log them in.

        Args:
            request: Validated registration request.

        Returns:
            AuthenticationResult with a fresh token.

        Raises:
            WeakPasswordError: If the password is too weak.
            UserAlreadyExistsError: If email or phone number is taken.
            UserDomainError: If a business rule is violated.
        """
        self._check_password_strength(request.password)

        email = request.email.strip().lower()
        if await self._users.exists_by_email(email):
            raise UserAlreadyExistsError(f"User with email {email} already exists")

        phone = PhoneNumber(request.phone_number).value
        if await self._users.exists_by_phone_number(phone):
            raise UserAlreadyExistsError(f"User with phone number {phone} already exists")

        salt = self._hasher.generate_salt()
        password_hash = self._hasher.hash(request.password, salt)

        user = User.create(
            email=email,
            password_salt=salt,
            password_hash=password_hash,
            first_name=request.first_name,
            last_name=request.last_name,
            birthdate=request.birthdate,
            phone_number=phone,
            latitude=request.latitude,
            longitude=request.longitude,
            about_me=request.about_me,
        )

        await self._users.add(user)
        publish_domain_events(self._bus, user.pull_domain_events())

        logger.info("Registered user %s", user.id)
        return self._auth.issue_for(user)

    async def update_profile(self, user_id: str, request: UpdateProfileRequest) -> UserResponse:
        """Replace name, birthdate and biography.

        Raises:
            UserNotFoundError: If the user does not exist or is deleted.
            UserDomainError: If a business rule is violated.
        """
        user = await self._get_active(user_id)

        user.update_profile(
            first_name=request.first_name,
            last_name=request.last_name,
            birthdate=request.birthdate,
            about_me=request.about_me,
        )
        await self._persist(user)

        logger.info("Updated profile of user %s", user.id)
        return UserResponse.from_user(user)

    async def update_user(self, user_id: str, request: UpdateUserRequest) -> UserResponse:
        """Apply a partial update. Fields left as None keep their value.

        Raises:
            UserNotFoundError: If the user does not exist or is deleted.
            UserAlreadyExistsError: If the new email or phone is taken.
            UserDomainError: If a business rule is violated.
        """
        user = await self._get_active(user_id)
        changes = request.model_dump(exclude_none=True)

        if "email" in changes:
            email = changes["email"].strip().lower()
            if email != user.email.value:
                if await self._users.exists_by_email(email):
                    raise UserAlreadyExistsError(f"User with email {email} already exists")
                user.update_email(email)

        if "phone_number" in changes:
            phone = PhoneNumber(changes["phone_number"]).value
            if phone != user.phone_number.value:
                if await self._users.exists_by_phone_number(phone):
                    raise UserAlreadyExistsError(
                        f"User with phone number {phone} already exists"
                    )
                user.update_phone_number(phone)

        if changes.keys() & {"first_name", "last_name", "birthdate", "about_me"}:
            user.update_profile(
                first_name=changes.get("first_name", user.full_name.first_name),
                last_name=changes.get("last_name", user.full_name.last_name),
                birthdate=changes.get("birthdate", user.birthdate),
                about_me=changes.get("about_me", user.about_me),
            )

        if "latitude" in changes:
            user.update_location(changes["latitude"], changes["longitude"])

        await self._persist(user)

        logger.info("Updated user %s (%s)", user.id, ", ".join(sorted(changes)) or "no changes")
        return UserResponse.from_user(user)

    async def change_password(self, user_id: str, request: ChangePasswordRequest) -> None:
        """Replace the password after verifying the current one.

        A fresh salt is generated for the new credential.

        Raises:
            UserNotFoundError: If the user does not exist or is deleted.
            AuthenticationFailure: If the current password is wrong.
            WeakPasswordError: If the new password is too weak.
        """
        user = await self._get_active(user_id)

        if not self._hasher.verify(request.current_password, user.password_salt, user.password_hash):
            logger.info("Password change rejected for user %s", user.id)
            raise AuthenticationFailure("Current password is incorrect")

        self._check_password_strength(request.new_password)

        salt = self._hasher.generate_salt()
        user.change_password(salt, self._hasher.hash(request.new_password, salt))
        await self._persist(user)

        logger.info("Changed password of user %s", user.id)

    async def set_profile_image(self, user_id: str, file_name: str) -> ProfileImageResult:
        """Replace the profile image with a uniquely named file.

        Only the extension of the uploaded file name is kept; the stored
        name is a fresh UUID so uploads never collide or overwrite.

        Args:
            user_id: Owner of the image.
            file_name: Name of the uploaded file, e.g. "me.PNG".

        Returns:
            ProfileImageResult with the generated and the replaced name.

        Raises:
            InvalidArgumentError: If the extension is not allowed.
            UserNotFoundError: If the user does not exist or is deleted.
        """
        extension = os.path.splitext(file_name or "")[1].lower()
        if extension not in self._image_extensions:
            allowed = ",".join(sorted(self._image_extensions))
            raise InvalidArgumentError(f"Only {allowed} are allowed.", field="file_name")

        user = await self._get_active(user_id)
        previous = user.profile_image_name

        user.set_profile_image(f"{uuid4()}{extension}")
        await self._persist(user)

        logger.info("Replaced profile image of user %s", user.id)
        return ProfileImageResult(
            user_id=user.id,
            file_name=user.profile_image_name,
            previous_file_name=previous,
        )

    async def remove_profile_image(self, user_id: str) -> ProfileImageResult:
        """Clear the profile image.

        Raises:
            UserNotFoundError: If the user does not exist or is deleted.
        """
        user = await self._get_active(user_id)
        previous = user.profile_image_name

        user.remove_profile_image()
        await self._persist(user)

        logger.info("Removed profile image of user %s", user.id)
        return ProfileImageResult(user_id=user.id, file_name=None, previous_file_name=previous)

    async def soft_delete(self, user_id: str) -> None:
        """Mark the user as deleted, keeping the record.

        Raises:
            UserNotFoundError: If the user does not exist.
        """
        user = await self._get(user_id)
        user.delete()
        await self._persist(user)
        logger.info("Soft deleted user %s", user.id)

    async def hard_delete(self, user_id: str) -> None:
        """Remove the user record permanently.

        Raises:
            UserNotFoundError: If the user does not exist.
        """
        if not await self._users.delete(str(user_id)):
            raise UserNotFoundError(f"User not found: {user_id}")
        logger.info("Hard deleted user %s", user_id)

    # Queries

    async def get_user(self, user_id: str) -> UserResponse:
        """Get a user by ID.

        Raises:
            UserNotFoundError: If the user does not exist or is deleted.
        """
        return UserResponse.from_user(await self._get_active(user_id))

    async def list_users(
        self,
        pagination: PaginationParams | None = None,
        search: str | None = None,
    ) -> PagedResult[UserResponse]:
        """List non-deleted users, optionally filtered by a search term.

        The term matches first name, last name, email or phone number.
        """
        pagination = pagination or PaginationParams()
        page = await self._users.list_users(pagination, search=search)

        return PagedResult(
            items=[UserResponse.from_user(u) for u in page.items],
            total_count=page.total_count,
            page_number=page.page_number,
            page_size=page.page_size,
        )

    async def find_nearby_adults(
        self,
        latitude: float,
        longitude: float,
        radius_km: float,
        pagination: PaginationParams | None = None,
    ) -> PagedResult[NearbyUserResponse]:
        """Find active adults with complete profiles within a radius.

        Results are sorted by creation time, newest first.

        Args:
            latitude: Search point latitude.
            longitude: Search point longitude.
            radius_km: Search radius in kilometres.
            pagination: Page to return.

        Returns:
            Paged users, each with its distance to the search point.

        Raises:
            UserDomainError: If the coordinates are out of range.
            ValueError: If the radius is negative.
        """
        if radius_km < 0:
            raise ValueError("Radius must not be negative")

        pagination = pagination or PaginationParams()
        origin = Location(latitude, longitude)

        matches: list[tuple[User, float]] = []
        for user in await self._users.list_active():
            if not (user.is_adult() and user.has_complete_profile):
                continue
            distance = origin.distance_to(user.location)
            if distance <= radius_km:
                matches.append((user, distance))

        matches.sort(key=lambda m: m[0].created_at, reverse=True)
        page = matches[pagination.skip : pagination.skip + pagination.page_size]

        return PagedResult(
            items=[NearbyUserResponse.from_user_at(u, d) for u, d in page],
            total_count=len(matches),
            page_number=pagination.page_number,
            page_size=pagination.page_size,
        )

    async def get_statistics(self, now: datetime | None = None) -> UserStats:
        """Compute aggregate figures over non-deleted users.

        Args:
            now: Reference time, defaults to the current UTC time.

        Returns:
            UserStats with counts and averages.
        """
        now = ensure_utc(now) or utc_now()
        today = start_of_day(now)
        week_ago = days_ago(7, today)
        month_ago = one_month_before(today)

        users = await self._users.list_active()
        total = len(users)

        return UserStats(
            total_users=total,
            active_users=total,
            new_users_today=sum(1 for u in users if u.created_at >= today),
            new_users_this_week=sum(1 for u in users if u.created_at >= week_ago),
            new_users_this_month=sum(1 for u in users if u.created_at >= month_ago),
            average_age=(sum(u.age(now) for u in users) / total) if total else 0.0,
            average_profile_completeness=(
                sum(u.profile_completeness for u in users) / total if total else 0.0
            ),
            generated_at=now,
        )

    # Helpers

    def _check_password_strength(self, password: str) -> None:
        if len(password) < self._min_password_length:
            raise WeakPasswordError(
                f"Password must be at least {self._min_password_length} characters long"
            )
        try:
            check_password_composition(password)
        except ValueError as e:
            raise WeakPasswordError(str(e)) from e

    async def _get(self, user_id: str) -> User:
        user = await self._users.get_by_id(str(user_id))
        if user is None:
            raise UserNotFoundError(f"User not found: {user_id}")
        return user

    async def _get_active(self, user_id: str) -> User:
        user = await self._get(user_id)
        if user.is_deleted:
            raise UserNotFoundError(f"User not found: {user_id}")
        return user

    async def _persist(self, user: User) -> None:
        await self._users.save(user)
        publish_domain_events(self._bus, user.pull_domain_events())
