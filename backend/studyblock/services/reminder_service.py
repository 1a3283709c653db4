"""
Study session reminder dispatcher.

One run does:
1. Select sessions starting in [now + lead, now + lead + window) that have
   not been reminded yet
2. Claim each one with a conditional update (reminder_sent false -> true)
3. Group claimed sessions by user
4. Send one email per user listing all of their sessions
5. Revert the claims of any user whose email could not be sent

The conditional update is the only thing keeping overlapping runs from
reminding the same session twice. It has to stay a single statement on the
store; a read followed by a write would let two runs both succeed.

Known gap: a process killed between a claim and its send/revert leaves the
session marked sent with no email delivered. Nothing here reconciles that.
"""
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple

from studyblock.config import Settings, get_settings
from studyblock.integrations.resend_client import ResendClient
from studyblock.integrations.supabase_client import SupabaseClient
from studyblock.models.reminder import DispatchSummary
from studyblock.models.session import StudySession
from studyblock.services.reminder_email import build_reminder_email
from studyblock.utils.logger import get_logger
from studyblock.utils.errors import AppError, ContactResolutionError, EmailDeliveryError

logger = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def reminder_window(
    now: datetime,
    lead_minutes: int = 10,
    window_seconds: int = 60,
) -> Tuple[datetime, datetime]:
    """Half-open [start, end) window of start times due for a reminder at `now`."""
    window_start = now + timedelta(minutes=lead_minutes)
    window_end = window_start + timedelta(seconds=window_seconds)
    return window_start, window_end


class ReminderDispatcher:
    """
    Finds due sessions, claims them and sends reminder emails.

    Usage:
        dispatcher = ReminderDispatcher(store, identity, mailer)
        summary = await dispatcher.run()

    Collaborators:
        store: query_sessions_by_start_window(), conditional_update_session()
        identity: get_user_contact()
        mailer: send_email()
    """

    def __init__(
        self,
        store,
        identity,
        mailer,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.identity = identity
        self.mailer = mailer
        self.settings = settings or get_settings()
        self.clock = clock

    async def run(self) -> DispatchSummary:
        """
        Execute one dispatch cycle.

        Returns:
            Counts of sessions processed and emails sent/failed

        Raises:
            AppError: Candidate query failed. Nothing has been claimed yet.
        """
        now = self.clock()
        logger.info(f"Starting study session reminder run at {now.isoformat()}")

        window_start, window_end = reminder_window(
            now,
            self.settings.reminder_lead_minutes,
            self.settings.reminder_window_seconds,
        )
        logger.info(f"Looking for sessions between {window_start.isoformat()} and {window_end.isoformat()}")

        candidates = await self.store.query_sessions_by_start_window(
            window_start,
            window_end,
            reminder_sent=False,
            limit=self.settings.reminder_batch_size,
        )

        if not candidates:
            logger.info("No sessions found that need reminders")
            return DispatchSummary(message="No sessions to remind")

        logger.info(f"Found {len(candidates)} candidate sessions")

        claimed_by_user = await self.claim_sessions(candidates, now)

        if not claimed_by_user:
            logger.info("No sessions were successfully claimed")
            return DispatchSummary(
                message="No sessions were claimed",
                sessions_processed=len(candidates),
            )

        logger.info(f"Processing {len(claimed_by_user)} users for email reminders")

        emails_sent = 0
        emails_failed = 0
        for user_id, sessions in claimed_by_user.items():
            if await self.notify_user(user_id, sessions):
                emails_sent += 1
            else:
                emails_failed += 1

        summary = DispatchSummary(
            message=(
                f"Processed {len(candidates)} sessions, "
                f"sent {emails_sent} emails, {emails_failed} failed"
            ),
            emails_sent=emails_sent,
            emails_failed=emails_failed,
            sessions_processed=len(candidates),
        )
        logger.info(f"Reminder run completed: {summary.to_response()}")
        return summary

    async def claim_sessions(
        self,
        candidates: List[StudySession],
        now: datetime,
    ) -> Dict[str, List[StudySession]]:
        """
        Claim every candidate and group the winners by user.

        Returns:
            user_id -> claimed sessions, both in claim order
        """
        claimed_by_user: Dict[str, List[StudySession]] = OrderedDict()

        for candidate in candidates:
            claimed = await self.claim(candidate, now)
            if claimed is None:
                continue
            claimed_by_user.setdefault(claimed.user_id, []).append(claimed)

        return claimed_by_user

    async def claim(self, session: StudySession, now: datetime) -> Optional[StudySession]:
        """
        Atomically mark one session as reminded.

        The update only applies while reminder_sent is still false and the
        attempt counter still holds the value we read, so at most one
        concurrent caller gets a row back.

        Returns:
            The claimed row, or None if another run got there first
        """
        try:
            claimed = await self.store.conditional_update_session(
                session.id,
                expected={
                    "reminder_sent": False,
                    "reminder_attempts": session.reminder_attempts,
                },
                values={
                    "reminder_sent": True,
                    "reminder_sent_at": now,
                    "reminder_attempts": session.reminder_attempts + 1,
                },
            )
        except AppError as e:
            logger.warning(f"Failed to claim session {session.id}: {e.message}")
            return None
        except Exception:
            # Must not escape: earlier claims in this run are not sent yet
            logger.exception(f"Unexpected error claiming session {session.id}")
            return None

        if claimed is None:
            logger.info(f"Session {session.id} was already claimed by another process")
            return None

        logger.info(f"Successfully claimed session {session.id}")
        return claimed

    async def notify_user(self, user_id: str, sessions: List[StudySession]) -> bool:
        """
        Send one reminder email covering all of a user's claimed sessions.

        Any failure reverts those claims so a later run can retry them.
        Errors never propagate: one user's failure must not affect others.

        Returns:
            True if the email was accepted by the provider
        """
        try:
            contact = await self.identity.get_user_contact(user_id)
            email = build_reminder_email(
                sessions,
                contact,
                tz_name=self.settings.reminder_timezone,
                lead_minutes=self.settings.reminder_lead_minutes,
            )
            await self.mailer.send_email(
                to=email.to,
                subject=email.subject,
                html=email.html,
                text=email.text,
            )
        except ContactResolutionError as e:
            logger.error(f"Failed to get user email for {user_id}: {e.message}")
            await self.revert_claims(sessions)
            return False
        except EmailDeliveryError as e:
            logger.error(f"Failed to send email for user {user_id}: {e.message}")
            await self.revert_claims(sessions)
            return False
        except Exception:
            logger.exception(f"Error processing user {user_id}")
            await self.revert_claims(sessions)
            return False

        logger.info(f"Sent reminder email to {contact.email} for {len(sessions)} session(s)")
        return True

    async def revert_claims(self, sessions: List[StudySession]) -> int:
        """
        Undo claims made by this run.

        Each revert is conditional on the row still carrying this run's
        claim (reminder_sent true, attempt counter as we wrote it).
        reminder_attempts is left incremented.

        Returns:
            Number of sessions actually reverted
        """
        reverted = 0
        for session in sessions:
            try:
                row = await self.store.conditional_update_session(
                    session.id,
                    expected={
                        "reminder_sent": True,
                        "reminder_attempts": session.reminder_attempts,
                    },
                    values={
                        "reminder_sent": False,
                        "reminder_sent_at": None,
                    },
                )
            except Exception:
                logger.exception(f"Failed to revert claim for session {session.id}")
                continue

            if row is None:
                logger.warning(f"Claim for session {session.id} changed since it was made, not reverting")
                continue
            reverted += 1

        logger.info(f"Reverted claims for {reverted}/{len(sessions)} sessions due to email failure")
        return reverted


def get_reminder_dispatcher() -> ReminderDispatcher:
    """Build a dispatcher wired to Supabase and Resend."""
    settings = get_settings()
    supabase = SupabaseClient(settings)
    return ReminderDispatcher(
        store=supabase,
        identity=supabase,
        mailer=ResendClient(settings),
        settings=settings,
    )
