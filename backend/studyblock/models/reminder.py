"""
Reminder dispatch Pydantic models.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class ReminderEmail(BaseModel):
    """A composed reminder email, ready for the delivery provider."""
    to: str
    subject: str
    html: str
    text: Optional[str] = None


class DispatchSummary(BaseModel):
    """Outcome of one dispatcher run. Observability only."""
    model_config = ConfigDict(populate_by_name=True)

    message: str
    emails_sent: int = Field(0, alias="emailsSent")
    emails_failed: int = Field(0, alias="emailsFailed")
    sessions_processed: int = Field(0, alias="sessionsProcessed")

    def to_response(self) -> dict:
        """Serialize with the camelCase keys the scheduler expects."""
        return self.model_dump(by_alias=True)
