"""
Reminder email composition.

Builds one email per user listing every session that starts in the
reminder window. Pure functions, no I/O.
"""
from datetime import datetime, timezone
from html import escape
from typing import List
from zoneinfo import ZoneInfo

from studyblock.models.reminder import ReminderEmail
from studyblock.models.session import StudySession
from studyblock.models.user import UserContact

TIME_FORMAT = "%b %d, %Y, %I:%M %p"

STUDY_TIPS = [
    "Find a quiet, comfortable space",
    "Put your phone in silent mode",
    "Have water and any needed materials ready",
    "Take deep breaths and focus on your goals",
]


def format_time(value: datetime, tz_name: str = "UTC") -> str:
    """Render a timestamp in the given IANA timezone, e.g. 'Mar 04, 2026, 09:30 AM'."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(ZoneInfo(tz_name)).strftime(TIME_FORMAT)


def build_subject(session_count: int, lead_minutes: int = 10) -> str:
    if session_count == 1:
        return f"Reminder: Your study session starts in {lead_minutes} minutes"
    return f"Reminder: Your study sessions start in {lead_minutes} minutes"


def _session_block_html(session: StudySession, tz_name: str) -> str:
    until = ""
    if session.end_time:
        until = (
            '<div style="color: #666; font-size: 14px; margin-top: 5px;">'
            f"Until {format_time(session.end_time, tz_name)}</div>"
        )
    return (
        '<div style="background: #f8f9fa; padding: 15px; margin: 10px 0; '
        'border-radius: 8px; border-left: 4px solid #007bff;">'
        f'<div style="font-weight: bold; color: #333;">&#128218; {format_time(session.start_time, tz_name)}</div>'
        f"{until}</div>"
    )


def build_html(
    sessions: List[StudySession],
    contact: UserContact,
    tz_name: str = "UTC",
    lead_minutes: int = 10,
) -> str:
    """
    Build the HTML body.

    Args:
        sessions: Claimed sessions for one user, in claim order
        contact: Recipient
        tz_name: Timezone for rendered times
        lead_minutes: How far ahead the reminder is sent

    Returns:
        Complete HTML document
    """
    plural = len(sessions) > 1
    s = "s" if plural else ""
    verb = "start" if plural else "starts"
    blocks = "\n".join(_session_block_html(session, tz_name) for session in sessions)
    tips = "".join(f"<li>{tip}</li>" for tip in STUDY_TIPS)

    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Study Session Reminder</title>
</head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
  <div style="background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: white; padding: 30px; text-align: center; border-radius: 10px 10px 0 0;">
    <h1 style="margin: 0; font-size: 28px;">&#128276; Study Session Reminder</h1>
    <p style="margin: 10px 0 0 0; opacity: 0.9;">Your silent study block{s} {verb} in {lead_minutes} minutes!</p>
  </div>
  <div style="background: white; padding: 30px; border: 1px solid #e1e5e9; border-radius: 0 0 10px 10px;">
    <p>Hi {escape(contact.display_name)},</p>
    <p>This is a friendly reminder that your study session{s} will begin in approximately <strong>{lead_minutes} minutes</strong>.</p>
    <div style="margin: 25px 0;">
      <h3 style="color: #333; margin-bottom: 15px;">Your Upcoming Session{s}:</h3>
      {blocks}
    </div>
    <div style="background: #e3f2fd; padding: 20px; border-radius: 8px; margin: 25px 0;">
      <h4 style="margin: 0 0 10px 0; color: #1976d2;">&#128161; Tips for Your Study Session:</h4>
      <ul style="margin: 0; padding-left: 20px;">{tips}</ul>
    </div>
    <p style="color: #666; font-size: 14px; margin-top: 30px;">
      Good luck with your study session! Stay focused and make the most of your dedicated time.
    </p>
    <hr style="border: none; border-top: 1px solid #eee; margin: 30px 0;">
    <p style="color: #999; font-size: 12px; text-align: center;">
      This is an automated reminder from your Study Session app.<br>
      You're receiving this because you scheduled a study block that starts soon.
    </p>
  </div>
</body>
</html>
"""


def build_text(
    sessions: List[StudySession],
    contact: UserContact,
    tz_name: str = "UTC",
    lead_minutes: int = 10,
) -> str:
    """Plain-text alternative of build_html."""
    s = "s" if len(sessions) > 1 else ""
    lines = [
        f"Hi {contact.display_name},",
        "",
        f"Your study session{s} will begin in approximately {lead_minutes} minutes.",
        "",
        f"Your upcoming session{s}:",
    ]
    for session in sessions:
        line = f"- {format_time(session.start_time, tz_name)}"
        if session.end_time:
            line += f" (until {format_time(session.end_time, tz_name)})"
        lines.append(line)

    lines.append("")
    lines.append("Tips for your study session:")
    lines.extend(f"- {tip}" for tip in STUDY_TIPS)
    lines.append("")
    lines.append("Good luck with your study session!")
    return "\n".join(lines)


def build_reminder_email(
    sessions: List[StudySession],
    contact: UserContact,
    tz_name: str = "UTC",
    lead_minutes: int = 10,
) -> ReminderEmail:
    """Compose the single reminder email for one user's claimed sessions."""
    if not sessions:
        raise ValueError("Cannot build a reminder for zero sessions")

    return ReminderEmail(
        to=contact.email,
        subject=build_subject(len(sessions), lead_minutes),
        html=build_html(sessions, contact, tz_name, lead_minutes),
        text=build_text(sessions, contact, tz_name, lead_minutes),
    )
