# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User aggregate root.

The User owns its value objects, enforces the lifecycle rules (minimum age,
no changes after deletion) and records domain events that the application
layer drains with pull_domain_events() once the change is persisted.

Credentials (salt and digest) are stored on the aggregate but are only
ever produced by the password hasher; the entity never sees a plain text
password.

Example:
    >>> user = User.create(
    ...     email="alice@example.com",
    ...     password_salt=salt,
    ...     password_hash=digest,
    ...     first_name="Alice",
    ...     last_name="Smith",
    ...     birthdate=date(1990, 5, 1),
    ...     phone_number="+34600123456",
    ...     latitude=40.4,
    ...     longitude=-3.7,
    ... )
    >>> [type(e).__name__ for e in user.pull_domain_events()]
    ['UserCreated']
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from uuid import uuid4

from hexskeleton.domains.user.events import (
    DomainEvent,
    UserCreated,
    UserDeleted,
    UserLoggedIn,
    UserProfileUpdated,
)
from hexskeleton.domains.user.value_objects import (
    ADULT_AGE,
    MINIMUM_AGE,
    Email,
    FullName,
    Location,
    PhoneNumber,
    UserDomainError,
    calculate_age,
)
from hexskeleton.utils.datetime import ensure_utc, utc_now

PROFILE_FIELDS = 7


@dataclass(eq=False)
class User:
    """User aggregate root.

    Attributes:
        id: User identifier (UUID string).
        email: Normalized email.
        full_name: First and last name.
        phone_number: Normalized phone number.
        location: Last known coordinates.
        birthdate: Date of birth.
        about_me: Free text biography.
        password_salt: Per-user salt.
        password_hash: Stored password digest.
        last_login: Last successful authentication.
        profile_image_name: Stored profile image file name.
        created_at: Creation time.
        updated_at: Last modification time.
        deleted_at: Soft deletion time.
        is_deleted: Soft deletion flag.
    """

    id: str
    email: Email
    full_name: FullName
    phone_number: PhoneNumber
    location: Location
    birthdate: date | None
    password_salt: str
    password_hash: str
    about_me: str = ""
    last_login: datetime | None = None
    profile_image_name: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime | None = None
    deleted_at: datetime | None = None
    is_deleted: bool = False
    _domain_events: list[DomainEvent] = field(default_factory=list, init=False, repr=False)

    @classmethod
    def create(
        cls,
        email: str,
        password_salt: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        birthdate: date,
        phone_number: str,
        latitude: float,
        longitude: float,
        about_me: str = "",
        now: datetime | None = None,
    ) -> "User":
        """Create a new user and record UserCreated.

        Raises:
            UserDomainError: If the user is younger than 13 or any value
                object is invalid.
            ValueError: If salt or digest is empty.
        """
        now = ensure_utc(now) or utc_now()

        age = calculate_age(birthdate, now)
        if age < MINIMUM_AGE:
            raise UserDomainError.invalid_age(age, MINIMUM_AGE)

        if not password_salt or not password_hash:
            raise ValueError("Password salt and hash are required")

        user = cls(
            id=str(uuid4()),
            email=Email(email),
            full_name=FullName(first_name, last_name),
            phone_number=PhoneNumber(phone_number),
            location=Location(latitude, longitude),
            birthdate=birthdate,
            password_salt=password_salt,
            password_hash=password_hash,
            about_me=about_me or "",
            last_login=now,
            created_at=now,
        )
        user._record(
            UserCreated(
                user_id=user.id,
                email=user.email.value,
                first_name=user.full_name.first_name,
                last_name=user.full_name.last_name,
                phone_number=user.phone_number.value,
                occurred_at=now,
            )
        )
        return user

    # Commands

    def update_profile(
        self,
        first_name: str,
        last_name: str,
        birthdate: date,
        about_me: str | None,
        now: datetime | None = None,
    ) -> None:
        """Replace name, birthdate and biography.

        Records UserProfileUpdated when the first name changes.

        Raises:
            UserDomainError: If the user is deleted or younger than 13.
        """
        self._ensure_not_deleted("UpdateProfile")
        now = ensure_utc(now) or utc_now()

        previous_first_name = self.full_name.first_name
        new_full_name = FullName(first_name, last_name)

        age = calculate_age(birthdate, now)
        if age < MINIMUM_AGE:
            raise UserDomainError.invalid_age(age, MINIMUM_AGE)

        self.full_name = new_full_name
        self.birthdate = birthdate
        self.about_me = about_me or ""
        self._touch(now)

        if previous_first_name != new_full_name.first_name:
            self._record(
                UserProfileUpdated(
                    user_id=self.id,
                    email=self.email.value,
                    previous_first_name=previous_first_name,
                    new_first_name=new_full_name.first_name,
                    occurred_at=now,
                )
            )

    def update_location(self, latitude: float, longitude: float) -> None:
        self._ensure_not_deleted("UpdateLocation")
        self.location = Location(latitude, longitude)
        self._touch()

    def update_phone_number(self, phone_number: str) -> None:
        self._ensure_not_deleted("UpdatePhoneNumber")
        self.phone_number = PhoneNumber(phone_number)
        self._touch()

    def update_email(self, email: str) -> None:
        self._ensure_not_deleted("UpdateEmail")
        self.email = Email(email)
        self._touch()

    def set_profile_image(self, file_name: str) -> None:
        self._ensure_not_deleted("SetProfileImage")
        if not file_name or not file_name.strip():
            raise ValueError("File name cannot be null or empty")
        self.profile_image_name = file_name
        self._touch()

    def remove_profile_image(self) -> None:
        self.profile_image_name = None
        self._touch()

    def record_login(self, now: datetime | None = None) -> datetime:
        """Mark a successful authentication and record UserLoggedIn.

        Returns:
            The login timestamp.

        Raises:
            UserDomainError: If the user is deleted.
        """
        self._ensure_not_deleted("RecordLogin")
        now = ensure_utc(now) or utc_now()

        self.last_login = now
        self._touch(now)
        self._record(
            UserLoggedIn(user_id=self.id, email=self.email.value, login_at=now, occurred_at=now)
        )
        return now

    def change_password(self, password_salt: str, password_hash: str) -> None:
        """Replace the stored credential.

        Raises:
            UserDomainError: If the user is deleted.
            ValueError: If salt or digest is empty.
        """
        self._ensure_not_deleted("ChangePassword")

        if not password_salt or not password_salt.strip():
            raise ValueError("Password salt cannot be null or empty")
        if not password_hash or not password_hash.strip():
            raise ValueError("Password hash cannot be null or empty")

        self.password_salt = password_salt
        self.password_hash = password_hash
        self._touch()

    def delete(self, now: datetime | None = None) -> None:
        """Soft delete the user and record UserDeleted. Idempotent."""
        if self.is_deleted:
            return

        now = ensure_utc(now) or utc_now()
        self.is_deleted = True
        self.deleted_at = now
        self._touch(now)
        self._record(UserDeleted(user_id=self.id, email=self.email.value, occurred_at=now))

    # Queries

    def age(self, reference: date | datetime | None = None) -> int:
        return calculate_age(self.birthdate, reference) if self.birthdate else 0

    def is_adult(self, reference: date | datetime | None = None) -> bool:
        return self.age(reference) >= ADULT_AGE

    def distance_to(self, other: "User") -> float:
        return self.location.distance_to(other.location)

    def is_nearby(self, other: "User", radius_km: float) -> bool:
        return self.distance_to(other) <= radius_km

    @property
    def profile_completeness(self) -> float:
        """Percentage (0 to 100) of the profile fields that are filled in."""
        filled = [
            bool(self.email.value.strip()),
            bool(self.full_name.first_name.strip()),
            bool(self.full_name.last_name.strip()),
            bool(self.phone_number.value.strip()),
            self.birthdate is not None,
            self.location.latitude != 0 and self.location.longitude != 0,
            bool(self.about_me.strip()),
        ]
        return sum(filled) / PROFILE_FIELDS * 100

    @property
    def has_complete_profile(self) -> bool:
        return (
            bool(self.full_name.first_name)
            and bool(self.full_name.last_name)
            and bool(self.email.value)
            and bool(self.phone_number.value)
            and self.birthdate is not None
            and bool(self.about_me)
        )

    @property
    def is_active(self) -> bool:
        return not self.is_deleted

    # Events

    def pull_domain_events(self) -> list[DomainEvent]:
        """Return and clear the recorded domain events."""
        events, self._domain_events = self._domain_events, []
        return events

    def _record(self, event: DomainEvent) -> None:
        self._domain_events.append(event)

    def _touch(self, now: datetime | None = None) -> None:
        self.updated_at = ensure_utc(now) or utc_now()

    def _ensure_not_deleted(self, operation: str) -> None:
        if self.is_deleted:
            raise UserDomainError.deleted_user_operation(operation)
