# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Value objects for the user domain.

Value objects are immutable and validate themselves on construction, so an
instance that exists is always valid. Invalid input raises UserDomainError
carrying the name of the violated business rule.

Example:
    >>> Email("Alice@Example.com").value
    'alice@example.com'
    >>> PhoneNumber("+34 600-123-456").value
    '+34600123456'
    >>> FullName(" Alice ", "Smith").initials
    'AS'
"""

import math
from dataclasses import dataclass
from datetime import date, datetime

from email_validator import EmailNotValidError, validate_email

from hexskeleton.core.errors import HexSkeletonError
from hexskeleton.utils.datetime import utc_today

EARTH_RADIUS_KM = 6371.0
MINIMUM_AGE = 13
ADULT_AGE = 18
MAX_NAME_LENGTH = 100
MIN_PHONE_DIGITS = 7
MAX_PHONE_DIGITS = 15


class UserDomainError(HexSkeletonError):
    """Raised when a user business rule is violated.

    Attributes:
        business_rule: Name of the violated rule (e.g. "MinimumAgeRequirement").
        entity: Aggregate the rule belongs to.
    """

    def __init__(self, business_rule: str, message: str) -> None:
        super().__init__(message)
        self.business_rule = business_rule
        self.entity = "User"

    @classmethod
    def invalid_age(cls, age: int, minimum_age: int) -> "UserDomainError":
        return cls(
            "MinimumAgeRequirement",
            f"User age {age} is below the minimum required age of {minimum_age}",
        )

    @classmethod
    def deleted_user_operation(cls, operation: str) -> "UserDomainError":
        return cls(
            "DeletedUserOperation",
            f"Cannot perform '{operation}' on a deleted user",
        )


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def calculate_age(birthdate: date | datetime, reference: date | datetime | None = None) -> int:
    """Calculate age in whole years.

    Args:
        birthdate: Date of birth.
        reference: Date to compute the age at, defaults to today (UTC).

    Returns:
        Completed years between birthdate and reference.
    """
    born = _as_date(birthdate)
    today = _as_date(reference) if reference is not None else utc_today()

    age = today.year - born.year
    if (today.month, today.day) < (born.month, born.day):
        age -= 1
    return age


def is_at_least_age(
    birthdate: date | datetime,
    minimum_age: int,
    reference: date | datetime | None = None,
) -> bool:
    """Check whether someone born on birthdate is at least minimum_age."""
    return calculate_age(birthdate, reference) >= minimum_age


@dataclass(frozen=True)
class Email:
    """Normalized (lowercased) email address."""

    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            raise UserDomainError("EmailValidation", "Email cannot be null or empty")

        try:
            validate_email(self.value, check_deliverability=False)
        except EmailNotValidError as e:
            raise UserDomainError(
                "EmailValidation",
                f"The email '{self.value}' is not in a valid format: {e}",
            ) from e

        object.__setattr__(self, "value", self.value.lower())

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class PhoneNumber:
    """Phone number reduced to digits, keeping a leading '+'."""

    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            raise UserDomainError("PhoneNumberValidation", "Phone number cannot be null or empty")

        raw = self.value.strip()
        cleaned = "".join(
            c for i, c in enumerate(raw) if c.isdigit() or (i == 0 and c == "+")
        )
        digits = sum(1 for c in cleaned if c.isdigit())

        if not MIN_PHONE_DIGITS <= digits <= MAX_PHONE_DIGITS:
            raise UserDomainError(
                "PhoneNumberValidation",
                f"The phone number '{self.value}' is not in a valid format",
            )

        object.__setattr__(self, "value", cleaned)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class FullName:
    """First and last name, trimmed."""

    first_name: str
    last_name: str

    def __post_init__(self) -> None:
        if not self.first_name or not self.first_name.strip():
            raise UserDomainError("NameValidation", "First name cannot be null or empty")
        if not self.last_name or not self.last_name.strip():
            raise UserDomainError("NameValidation", "Last name cannot be null or empty")
        if len(self.first_name) > MAX_NAME_LENGTH:
            raise UserDomainError(
                "NameValidation", f"First name cannot exceed {MAX_NAME_LENGTH} characters"
            )
        if len(self.last_name) > MAX_NAME_LENGTH:
            raise UserDomainError(
                "NameValidation", f"Last name cannot exceed {MAX_NAME_LENGTH} characters"
            )

        object.__setattr__(self, "first_name", self.first_name.strip())
        object.__setattr__(self, "last_name", self.last_name.strip())

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def initials(self) -> str:
        return f"{self.first_name[0]}{self.last_name[0]}".upper()

    def __str__(self) -> str:
        return self.full_name


@dataclass(frozen=True)
class Location:
    """Geographic coordinates in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90 <= self.latitude <= 90:
            raise UserDomainError("LocationValidation", "Latitude must be between -90 and 90")
        if not -180 <= self.longitude <= 180:
            raise UserDomainError("LocationValidation", "Longitude must be between -180 and 180")

    def distance_to(self, other: "Location") -> float:
        """Great-circle distance in kilometres (haversine)."""
        lat1 = math.radians(self.latitude)
        lat2 = math.radians(other.latitude)
        delta_lat = math.radians(other.latitude - self.latitude)
        delta_lon = math.radians(other.longitude - self.longitude)

        a = (
            math.sin(delta_lat / 2) ** 2
            + math.cos(lat1) * math.cos(lat2) * math.sin(delta_lon / 2) ** 2
        )
        c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
        return EARTH_RADIUS_KM * c

    def __str__(self) -> str:
        return f"({self.latitude:.4f}, {self.longitude:.4f})"
