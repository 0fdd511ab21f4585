# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request and response models for the user and auth services.

Request models validate the caller's input field by field; a failure is a
pydantic ValidationError listing every offending field. Response models
never expose the password salt or digest.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Annotated, Generic, Literal, Self, TypeVar

from pydantic import AfterValidator, BaseModel, EmailStr, Field, model_validator

from hexskeleton.domains.user.value_objects import MINIMUM_AGE, calculate_age
from hexskeleton.utils.datetime import utc_today

T = TypeVar("T")

MAX_AGE = 120
MAX_EMAIL_LENGTH = 150

_NAME_PATTERN = re.compile(r"^[a-zA-Z\s]+$")
_PHONE_PATTERN = re.compile(r"^[\+]?[0-9\-\s]+$")


def _check_email_length(value: str) -> str:
    if len(value) > MAX_EMAIL_LENGTH:
        raise ValueError(f"Email must be at most {MAX_EMAIL_LENGTH} characters")
    return value


def check_password_composition(value: str) -> str:
    """Require a lowercase letter, an uppercase letter and a digit.

    Raises:
        ValueError: If a character class is missing.
    """
    if not (
        re.search(r"[a-z]", value) and re.search(r"[A-Z]", value) and re.search(r"\d", value)
    ):
        raise ValueError(
            "Password must contain at least one lowercase letter, "
            "one uppercase letter, and one digit"
        )
    return value


def _check_name(value: str) -> str:
    if not _NAME_PATTERN.match(value):
        raise ValueError("Name can only contain letters and spaces")
    return value


def _check_phone(value: str) -> str:
    if not _PHONE_PATTERN.match(value):
        raise ValueError("Phone number format is invalid")
    return value


def _check_birthdate(value: date) -> date:
    today = utc_today()
    if value > today:
        raise ValueError("Birth date cannot be in the future")
    age = calculate_age(value, today)
    if age < MINIMUM_AGE:
        raise ValueError(f"User must be at least {MINIMUM_AGE} years old")
    if age > MAX_AGE:
        raise ValueError("Birth date must be within reasonable range")
    return value


EmailField = Annotated[EmailStr, AfterValidator(_check_email_length)]
StrongPassword = Annotated[str, Field(min_length=8), AfterValidator(check_password_composition)]
NameField = Annotated[str, Field(min_length=1, max_length=50), AfterValidator(_check_name)]
PhoneField = Annotated[str, Field(min_length=1), AfterValidator(_check_phone)]
Birthdate = Annotated[date, AfterValidator(_check_birthdate)]
Latitude = Annotated[float, Field(ge=-90, le=90)]
Longitude = Annotated[float, Field(ge=-180, le=180)]


# ============================================================================
# Request Models
# ============================================================================


class RegisterUserRequest(BaseModel):
    """Request to register a new user."""

    email: EmailField
    password: StrongPassword
    password_confirmation: str = Field(min_length=1, description="Must equal password")
    first_name: NameField
    last_name: NameField
    birthdate: Birthdate
    phone_number: PhoneField
    latitude: Latitude
    longitude: Longitude
    about_me: str = Field(default="", max_length=500, description="Short biography")

    @model_validator(mode="after")
    def passwords_match(self) -> Self:
        if self.password != self.password_confirmation:
            raise ValueError("Password confirmation must match password")
        return self


class LoginRequest(BaseModel):
    """Request to authenticate with email and password."""

    email: EmailField
    password: str = Field(min_length=8, description="Plain text password")


class UpdateProfileRequest(BaseModel):
    """Request to replace the user's own profile data."""

    first_name: NameField
    last_name: NameField
    birthdate: Birthdate
    about_me: str = Field(min_length=1, max_length=500)


class UpdateUserRequest(BaseModel):
    """Partial update of a user. Only the provided fields change."""

    email: EmailField | None = None
    first_name: NameField | None = None
    last_name: NameField | None = None
    birthdate: Birthdate | None = None
    phone_number: PhoneField | None = None
    latitude: Latitude | None = None
    longitude: Longitude | None = None
    about_me: str | None = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def coordinates_together(self) -> Self:
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("Latitude and longitude must be provided together")
        return self


class ChangePasswordRequest(BaseModel):
    """Request to replace the current password."""

    current_password: str = Field(min_length=1)
    new_password: StrongPassword
    new_password_confirmation: str = Field(min_length=1)

    @model_validator(mode="after")
    def passwords_match(self) -> Self:
        if self.new_password != self.new_password_confirmation:
            raise ValueError("Password confirmation must match password")
        return self


class PaginationParams(BaseModel):
    """Paging and sorting for list queries."""

    page_number: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1, le=100)
    sort_by: str | None = None
    sort_direction: Literal["asc", "desc"] = "asc"

    @property
    def skip(self) -> int:
        return (self.page_number - 1) * self.page_size


# ============================================================================
# Response Models
# ============================================================================


@dataclass
class PagedResult(Generic[T]):
    """One page of results with paging metadata.

    A plain dataclass so it can carry domain aggregates as well as response
    models.
    """

    items: list[T]
    total_count: int
    page_number: int
    page_size: int

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return (self.total_count + self.page_size - 1) // self.page_size

    @property
    def has_next_page(self) -> bool:
        return self.page_number < self.total_pages

    @property
    def has_previous_page(self) -> bool:
        return self.page_number > 1


class UserResponse(BaseModel):
    """Public view of a user."""

    id: str
    email: str
    first_name: str
    last_name: str
    full_name: str
    birthdate: date | None
    age: int
    phone_number: str
    latitude: float
    longitude: float
    about_me: str
    profile_image_name: str | None
    last_login: datetime | None
    created_at: datetime
    updated_at: datetime | None
    is_deleted: bool
    profile_completeness: float

    @classmethod
    def from_user(cls, user) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email.value,
            first_name=user.full_name.first_name,
            last_name=user.full_name.last_name,
            full_name=user.full_name.full_name,
            birthdate=user.birthdate,
            age=user.age(),
            phone_number=user.phone_number.value,
            latitude=user.location.latitude,
            longitude=user.location.longitude,
            about_me=user.about_me,
            profile_image_name=user.profile_image_name,
            last_login=user.last_login,
            created_at=user.created_at,
            updated_at=user.updated_at,
            is_deleted=user.is_deleted,
            profile_completeness=user.profile_completeness,
        )


class NearbyUserResponse(UserResponse):
    """User found by a proximity search."""

    distance_km: float = Field(description="Distance from the search point")

    @classmethod
    def from_user_at(cls, user, distance_km: float) -> "NearbyUserResponse":
        data = UserResponse.from_user(user).model_dump()
        return cls(**data, distance_km=round(distance_km, 3))


class AuthenticationResult(BaseModel):
    """Token and user returned after login or registration."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Token lifetime in seconds")
    expires_at: datetime
    user: UserResponse


class UserStats(BaseModel):
    """Aggregate figures over the user base."""

    total_users: int
    active_users: int
    new_users_today: int
    new_users_this_week: int
    new_users_this_month: int
    average_age: float
    average_profile_completeness: float
    generated_at: datetime


class ProfileImageResult(BaseModel):
    """Outcome of replacing or removing a profile image.

    The caller stores the uploaded bytes under file_name and deletes the
    file named by previous_file_name, if any.
    """

    user_id: str
    file_name: str | None
    previous_file_name: str | None
