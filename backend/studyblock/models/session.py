"""
Study session Pydantic models.
"""
from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class StudySession(BaseModel):
    """A row of the study_sessions table."""
    id: str
    user_id: str
    start_time: datetime
    end_time: Optional[datetime] = None

    # Reminder bookkeeping, only ever touched by the dispatcher
    reminder_sent: bool = False
    reminder_sent_at: Optional[datetime] = None
    reminder_attempts: int = 0

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
