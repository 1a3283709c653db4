"""
Unit tests for reminder email composition.
"""
from datetime import datetime, timedelta, timezone

import pytest

from conftest import make_session
from studyblock.models.user import UserContact
from studyblock.services.reminder_email import (
    build_reminder_email,
    build_subject,
    format_time,
)


@pytest.fixture
def alice():
    return UserContact(id="user-a", email="alice@example.com", display_name="Alice")


class TestSubject:
    """Test subject pluralization."""

    def test_single_session(self):
        assert build_subject(1) == "Reminder: Your study session starts in 10 minutes"

    def test_multiple_sessions(self):
        assert build_subject(3) == "Reminder: Your study sessions start in 10 minutes"

    def test_custom_lead(self):
        assert build_subject(1, lead_minutes=15).endswith("in 15 minutes")


class TestFormatTime:
    """Test timestamp rendering."""

    def test_utc(self):
        value = datetime(2026, 3, 4, 9, 30, tzinfo=timezone.utc)
        assert format_time(value) == "Mar 04, 2026, 09:30 AM"

    def test_converts_timezone(self):
        value = datetime(2026, 3, 4, 9, 30, tzinfo=timezone.utc)
        assert format_time(value, "Asia/Kolkata") == "Mar 04, 2026, 03:00 PM"

    def test_naive_is_treated_as_utc(self):
        assert format_time(datetime(2026, 3, 4, 21, 5)) == "Mar 04, 2026, 09:05 PM"


class TestBuildReminderEmail:
    """Test the composed email."""

    def test_single_session_without_end(self, alice):
        email = build_reminder_email([make_session("s1")], alice)

        assert email.to == "alice@example.com"
        assert email.subject == "Reminder: Your study session starts in 10 minutes"
        assert "Hi Alice," in email.html
        assert "Mar 04, 2026, 09:30 AM" in email.html
        assert "Until" not in email.html
        assert "Your Upcoming Session:" in email.html

    def test_end_time_is_listed(self, alice):
        session = make_session("s1", duration=timedelta(minutes=90))

        email = build_reminder_email([session], alice)

        assert "Until Mar 04, 2026, 11:00 AM" in email.html
        assert "(until Mar 04, 2026, 11:00 AM)" in email.text

    def test_lists_every_session(self, alice):
        sessions = [
            make_session("s1", starts_in=timedelta(minutes=10)),
            make_session("s2", starts_in=timedelta(minutes=10, seconds=30)),
        ]

        email = build_reminder_email(sessions, alice)

        assert "Your Upcoming Sessions:" in email.html
        assert email.html.count("&#128218;") == 2
        assert "study sessions will begin" in email.text

    def test_display_name_is_escaped(self):
        contact = UserContact(id="u", email="x@example.com", display_name="<script>x</script>")

        email = build_reminder_email([make_session("s1")], contact)

        assert "<script>" not in email.html
        assert "&lt;script&gt;" in email.html

    def test_uses_timezone(self, alice):
        email = build_reminder_email([make_session("s1")], alice, tz_name="Asia/Kolkata")

        assert "03:00 PM" in email.html

    def test_rejects_empty_sessions(self, alice):
        with pytest.raises(ValueError):
            build_reminder_email([], alice)
