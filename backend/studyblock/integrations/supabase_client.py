"""
Supabase client integration.

This module talks to the two Supabase services the reminder dispatcher needs:
1. PostgREST (/rest/v1) - query study sessions, conditional updates
2. GoTrue admin (/auth/v1/admin) - look up a user's email

All requests use the service role key, which bypasses row-level security.

PostgREST reference: https://postgrest.org/en/stable/references/api/tables_views.html
"""
import asyncio
from datetime import datetime
from typing import Any, List, Optional

import httpx

from studyblock.config import Settings, get_settings
from studyblock.models.session import StudySession
from studyblock.models.user import UserContact
from studyblock.utils.logger import get_logger
from studyblock.utils.errors import AuthError, ContactResolutionError, RateLimitError, StoreError

logger = get_logger(__name__)

SESSIONS_TABLE = "study_sessions"
SESSION_COLUMNS = (
    "id,user_id,start_time,end_time,"
    "reminder_sent,reminder_sent_at,reminder_attempts"
)


def _filter_value(value: Any) -> str:
    """Render a Python value as a PostgREST eq. operand."""
    if value is None:
        return "is.null"
    if isinstance(value, bool):
        return f"eq.{'true' if value else 'false'}"
    if isinstance(value, datetime):
        return f"eq.{value.isoformat()}"
    return f"eq.{value}"


def _json_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class SupabaseClient:
    """
    Supabase client acting as both session store and identity provider.

    Usage:
        client = SupabaseClient()
        sessions = await client.query_sessions_by_start_window(start, end)
        claimed = await client.conditional_update_session(
            session_id, {"reminder_sent": False}, {"reminder_sent": True}
        )
        contact = await client.get_user_contact(user_id)
    """

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize Supabase client.

        Args:
            settings: Application settings (defaults to cached settings)
        """
        self.settings = settings or get_settings()
        key = self.settings.supabase_service_role_key
        self.headers = {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
        }

    async def _make_request(
        self,
        method: str,
        url: str,
        json_data: Any = None,
        params: Any = None,
        headers: Optional[dict] = None,
        retries: int = 3,
    ) -> Any:
        """
        Make an authenticated request to Supabase.

        Transient failures (429, 5xx, timeouts) are retried with exponential
        backoff. Only pass retries > 0 for reads: a write that committed
        before its response was lost must not be sent again.

        Args:
            method: HTTP method
            url: Absolute URL
            json_data: Request body
            params: Query parameters (list of tuples allows repeated keys)
            headers: Extra headers merged over the defaults
            retries: Number of retries for transient errors

        Returns:
            Response JSON, {} for empty bodies, None for 404

        Raises:
            AuthError: Service key rejected
            RateLimitError: Rate limited after retries
            StoreError: Any other failure
        """
        request_headers = {**self.headers, **(headers or {})}

        for attempt in range(retries + 1):
            async with httpx.AsyncClient() as client:
                try:
                    response = await client.request(
                        method=method,
                        url=url,
                        headers=request_headers,
                        json=json_data,
                        params=params,
                        timeout=self.settings.http_timeout_seconds,
                    )

                    if 200 <= response.status_code < 300:
                        if response.status_code == 204 or not response.content:
                            return {}
                        return response.json()

                    if response.status_code == 429 or response.status_code >= 500:
                        if attempt < retries:
                            wait_time = 2 ** attempt
                            logger.warning(f"Supabase transient error {response.status_code}, retrying in {wait_time}s...")
                            await asyncio.sleep(wait_time)
                            continue
                        if response.status_code == 429:
                            raise RateLimitError("Supabase rate limit exceeded")

                    if response.status_code == 404:
                        return None

                    if response.status_code in (401, 403):
                        logger.warning(f"Supabase rejected service key: {response.status_code}")
                        raise AuthError("Supabase rejected the service role key")

                    error_data = response.json() if response.content else {}
                    logger.error(f"Supabase error: {response.status_code} - {error_data}")
                    raise StoreError(
                        f"Supabase error: {response.status_code}",
                        details={"status": response.status_code, "body": error_data},
                    )

                except (httpx.TimeoutException, httpx.ConnectError) as e:
                    if attempt < retries:
                        wait_time = 2 ** attempt
                        logger.warning(f"Supabase connection error, retrying in {wait_time}s...")
                        await asyncio.sleep(wait_time)
                        continue

                    logger.error(f"Supabase: request failed after {retries} retries - {e}")
                    raise StoreError("Session store unavailable. Please try again later.")

                except (AuthError, RateLimitError, StoreError):
                    raise
                except Exception as e:
                    logger.error(f"Unexpected Supabase error: {e}")
                    raise StoreError(f"Unexpected error: {str(e)}")

    # ------------------------------------------------------------------
    # Session store
    # ------------------------------------------------------------------

    async def query_sessions_by_start_window(
        self,
        start: datetime,
        end: datetime,
        reminder_sent: bool = False,
        limit: int = 500,
    ) -> List[StudySession]:
        """
        Fetch sessions with start_time in [start, end).

        Args:
            start: Inclusive lower bound
            end: Exclusive upper bound
            reminder_sent: Required value of the reminder_sent flag
            limit: Maximum rows returned

        Returns:
            Sessions ordered by start_time
        """
        params = [
            ("select", SESSION_COLUMNS),
            ("start_time", f"gte.{start.isoformat()}"),
            ("start_time", f"lt.{end.isoformat()}"),
            ("reminder_sent", _filter_value(reminder_sent)),
            ("order", "start_time.asc"),
            ("limit", str(limit)),
        ]

        rows = await self._make_request(
            "GET",
            f"{self.settings.supabase_rest_url}/{SESSIONS_TABLE}",
            params=params,
        )

        if rows is None:
            raise StoreError(f"Table '{SESSIONS_TABLE}' not found")

        return [StudySession(**row) for row in rows or []]

    async def conditional_update_session(
        self,
        session_id: str,
        expected: dict,
        values: dict,
    ) -> Optional[StudySession]:
        """
        Update one session only if its stored fields match `expected`.

        Issued as a single PATCH whose filters carry the precondition, so
        the check and the write happen in one statement on the database.

        Args:
            session_id: Session to update
            expected: Column -> value that must hold at update time
            values: Column -> new value

        Returns:
            The updated row, or None if the precondition no longer held
        """
        params = [("id", f"eq.{session_id}")]
        params.extend((column, _filter_value(value)) for column, value in expected.items())

        rows = await self._make_request(
            "PATCH",
            f"{self.settings.supabase_rest_url}/{SESSIONS_TABLE}",
            json_data={column: _json_value(value) for column, value in values.items()},
            params=params,
            headers={"Prefer": "return=representation"},
            retries=0,
        )

        if not rows:
            return None
        return StudySession(**rows[0])

    # ------------------------------------------------------------------
    # Identity provider
    # ------------------------------------------------------------------

    async def get_user_contact(self, user_id: str) -> UserContact:
        """
        Resolve a user's email and display name from Supabase Auth.

        Raises:
            ContactResolutionError: User missing or has no email
        """
        user = await self._make_request(
            "GET",
            f"{self.settings.supabase_auth_url}/admin/users/{user_id}",
        )

        if not user:
            raise ContactResolutionError(user_id)

        # Some GoTrue versions wrap the payload
        user = user.get("user", user)

        email = user.get("email")
        if not email:
            raise ContactResolutionError(user_id, "user has no email address")

        metadata = user.get("user_metadata") or {}
        return UserContact(
            id=user.get("id", user_id),
            email=email,
            display_name=metadata.get("name") or email,
        )
