# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the User aggregate."""

from datetime import date, datetime, timedelta, timezone

import pytest

from hexskeleton.domains.user.entities import User
from hexskeleton.domains.user.events import (
    UserCreated,
    UserDeleted,
    UserLoggedIn,
    UserProfileUpdated,
)
from hexskeleton.domains.user.value_objects import UserDomainError

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_user(**overrides) -> User:
    data = {
        "email": "Alice@Example.com",
        "password_salt": "c2FsdHNhbHRzYWx0c2FsdA==",
        "password_hash": "ZGlnZXN0",
        "first_name": "Alice",
        "last_name": "Smith",
        "birthdate": date(1990, 5, 1),
        "phone_number": "+34600123456",
        "latitude": 40.4168,
        "longitude": -3.7038,
        "about_me": "Hiking",
        "now": NOW,
    }
    data.update(overrides)
    return User.create(**data)


class TestUserCreate:
    """Tests for User.create."""

    def test_create_sets_fields_and_event(self) -> None:
        """Test that creation normalizes values and records UserCreated."""
        user = make_user()

        assert user.email.value == "alice@example.com"
        assert user.last_login == NOW
        assert user.created_at == NOW
        assert user.is_deleted is False

        events = user.pull_domain_events()
        assert len(events) == 1
        assert isinstance(events[0], UserCreated)
        assert events[0].email == "alice@example.com"
        assert user.pull_domain_events() == []

    def test_create_rejects_under_13(self) -> None:
        """Test the minimum age of 13."""
        with pytest.raises(UserDomainError) as exc_info:
            make_user(birthdate=date(2013, 6, 2))

        assert exc_info.value.business_rule == "MinimumAgeRequirement"

    def test_create_accepts_exactly_13(self) -> None:
        """Test that a 13th birthday today is enough."""
        assert make_user(birthdate=date(2012, 6, 1)).age(NOW) == 13

    def test_event_payload_has_no_credentials(self) -> None:
        """Test that domain events never carry the salt or digest."""
        payload = make_user().pull_domain_events()[0].to_payload()

        assert "password_hash" not in payload
        assert "password_salt" not in payload
        assert payload["occurred_at"] == NOW.isoformat()


class TestUserCommands:
    """Tests for the aggregate commands."""

    def test_update_profile_records_event_on_first_name_change(self) -> None:
        """Test that changing the first name records UserProfileUpdated."""
        user = make_user()
        user.pull_domain_events()

        user.update_profile("Alicia", "Smith", date(1990, 5, 1), "Chess", now=NOW)

        events = user.pull_domain_events()
        assert [type(e) for e in events] == [UserProfileUpdated]
        assert events[0].previous_first_name == "Alice"
        assert events[0].new_first_name == "Alicia"
        assert user.about_me == "Chess"
        assert user.updated_at == NOW

    def test_update_profile_without_name_change_has_no_event(self) -> None:
        """Test that other profile changes record no event."""
        user = make_user()
        user.pull_domain_events()

        user.update_profile("Alice", "Jones", date(1990, 5, 1), "Chess", now=NOW)

        assert user.pull_domain_events() == []
        assert user.full_name.last_name == "Jones"

    def test_record_login(self) -> None:
        """Test that a login updates last_login and records UserLoggedIn."""
        user = make_user()
        user.pull_domain_events()
        later = NOW + timedelta(hours=1)

        assert user.record_login(now=later) == later
        assert user.last_login == later
        assert isinstance(user.pull_domain_events()[0], UserLoggedIn)

    def test_change_password_requires_values(self) -> None:
        """Test that an empty salt or digest is rejected."""
        user = make_user()

        with pytest.raises(ValueError):
            user.change_password("", "digest")

        user.change_password("new-salt", "new-digest")
        assert (user.password_salt, user.password_hash) == ("new-salt", "new-digest")

    def test_delete_is_soft_and_idempotent(self) -> None:
        """Test that deletion keeps the record and records one event."""
        user = make_user()
        user.pull_domain_events()

        user.delete(now=NOW)
        user.delete(now=NOW + timedelta(days=1))

        assert user.is_deleted is True
        assert user.deleted_at == NOW
        assert [type(e) for e in user.pull_domain_events()] == [UserDeleted]

    @pytest.mark.parametrize(
        "operation",
        [
            lambda u: u.record_login(),
            lambda u: u.update_profile("A", "B", date(1990, 1, 1), ""),
            lambda u: u.update_location(1.0, 1.0),
            lambda u: u.update_phone_number("1234567"),
            lambda u: u.change_password("s", "h"),
            lambda u: u.set_profile_image("me.png"),
        ],
    )
    def test_deleted_user_rejects_operations(self, operation) -> None:
        """Test that a deleted user cannot be changed."""
        user = make_user()
        user.delete()

        with pytest.raises(UserDomainError) as exc_info:
            operation(user)

        assert exc_info.value.business_rule == "DeletedUserOperation"

    def test_profile_image(self) -> None:
        """Test setting and removing a profile image."""
        user = make_user()

        user.set_profile_image("alice.png")
        assert user.profile_image_name == "alice.png"

        user.remove_profile_image()
        assert user.profile_image_name is None


class TestUserQueries:
    """Tests for the aggregate queries."""

    def test_is_adult(self) -> None:
        """Test the adult threshold of 18."""
        assert make_user(birthdate=date(2007, 6, 1)).is_adult(NOW) is True
        assert make_user(birthdate=date(2007, 6, 2)).is_adult(NOW) is False

    def test_distance_and_nearby(self) -> None:
        """Test distance between two users."""
        madrid = make_user()
        barcelona = make_user(email="bob@example.com", latitude=41.3874, longitude=2.1686)

        assert madrid.distance_to(barcelona) == pytest.approx(505, abs=5)
        assert madrid.is_nearby(barcelona, 600) is True
        assert madrid.is_nearby(barcelona, 100) is False

    def test_profile_completeness(self) -> None:
        """Test completeness over the seven profile fields."""
        assert make_user().profile_completeness == pytest.approx(100.0)
        assert make_user(about_me="").profile_completeness == pytest.approx(6 / 7 * 100)

    def test_has_complete_profile(self) -> None:
        """Test that an empty biography makes the profile incomplete."""
        assert make_user().has_complete_profile is True
        assert make_user(about_me="").has_complete_profile is False
