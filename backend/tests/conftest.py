"""
Pytest fixtures for StudyBlock backend tests.
"""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from studyblock.config import Settings
from studyblock.models.session import StudySession
from studyblock.models.user import UserContact
from studyblock.services.reminder_service import ReminderDispatcher
from studyblock.utils.errors import ContactResolutionError, EmailDeliveryError

NOW = datetime(2026, 3, 4, 9, 20, 0, tzinfo=timezone.utc)


class FakeSessionStore:
    """
    In-memory study_sessions table.

    conditional_update_session checks and writes without awaiting in between,
    which makes it atomic under asyncio just like a single UPDATE statement.
    The sleep(0) calls let concurrent runs interleave between operations.
    """

    def __init__(self, sessions=()):
        self.rows = {s.id: s.model_copy() for s in sessions}
        self.query_calls = []
        self.update_calls = []
        self.query_error = None
        self.update_errors = {}

    async def query_sessions_by_start_window(self, start, end, reminder_sent=False, limit=500):
        self.query_calls.append({"start": start, "end": end, "reminder_sent": reminder_sent, "limit": limit})
        await asyncio.sleep(0)
        if self.query_error:
            raise self.query_error

        rows = [
            row for row in self.rows.values()
            if row.reminder_sent == reminder_sent and start <= row.start_time < end
        ]
        rows.sort(key=lambda row: row.start_time)
        return [row.model_copy() for row in rows[:limit]]

    async def conditional_update_session(self, session_id, expected, values):
        self.update_calls.append({"id": session_id, "expected": dict(expected), "values": dict(values)})
        await asyncio.sleep(0)
        if session_id in self.update_errors:
            raise self.update_errors[session_id]

        row = self.rows.get(session_id)
        if row is None:
            return None
        if any(getattr(row, column) != value for column, value in expected.items()):
            return None

        updated = row.model_copy(update=values)
        self.rows[session_id] = updated
        return updated.model_copy()


class FakeIdentity:
    """Identity provider backed by a dict of user_id -> UserContact."""

    def __init__(self, contacts=()):
        self.contacts = {c.id: c for c in contacts}
        self.lookups = []

    async def get_user_contact(self, user_id):
        self.lookups.append(user_id)
        contact = self.contacts.get(user_id)
        if contact is None:
            raise ContactResolutionError(user_id)
        return contact


class FakeMailer:
    """Records sent emails; addresses in fail_for are rejected."""

    def __init__(self):
        self.sent = []
        self.fail_for = set()
        self.crash_for = set()

    async def send_email(self, to, subject, html, text=None):
        await asyncio.sleep(0)
        if to in self.crash_for:
            raise RuntimeError("connection reset")
        if to in self.fail_for:
            raise EmailDeliveryError("Invalid `to` field.")
        self.sent.append({"to": to, "subject": subject, "html": html, "text": text})
        return f"msg-{len(self.sent)}"


def make_session(
    session_id: str,
    user_id: str = "user-a",
    starts_in: timedelta = timedelta(minutes=10, seconds=30),
    duration: timedelta = None,
    **fields,
) -> StudySession:
    """Build a session starting `starts_in` after NOW."""
    start = NOW + starts_in
    return StudySession(
        id=session_id,
        user_id=user_id,
        start_time=start,
        end_time=start + duration if duration else None,
        **fields,
    )


@pytest.fixture
def settings():
    """Settings isolated from any local .env."""
    return Settings(
        _env_file=None,
        supabase_url="https://project.supabase.co",
        supabase_service_role_key="service-role-key",
        supabase_jwt_secret="test-jwt-secret-with-at-least-32-characters",
        resend_api_key="re_test_key",
        reminder_timezone="UTC",
    )


@pytest.fixture
def contacts():
    return [
        UserContact(id="user-a", email="alice@example.com", display_name="Alice"),
        UserContact(id="user-b", email="bob@example.com", display_name="Bob"),
    ]


@pytest.fixture
def identity(contacts):
    return FakeIdentity(contacts)


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def store():
    return FakeSessionStore()


@pytest.fixture
def dispatcher(store, identity, mailer, settings):
    return ReminderDispatcher(store, identity, mailer, settings=settings, clock=lambda: NOW)
