"""
Resend email API integration.

Resend API Reference: https://resend.com/docs/api-reference/emails/send-email
"""
from typing import Optional

import httpx

from studyblock.config import Settings, get_settings
from studyblock.utils.logger import get_logger
from studyblock.utils.errors import EmailDeliveryError

logger = get_logger(__name__)

RESEND_API_BASE = "https://api.resend.com"


class ResendClient:
    """
    Resend client for sending reminder emails.

    Sends are never retried here: Resend is not asked to deduplicate, so a
    retried request that had already been accepted would email the user twice.
    A failed send is reported and the caller decides what to do.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.headers = {
            "Authorization": f"Bearer {self.settings.resend_api_key}",
            "Content-Type": "application/json",
        }

    async def _make_request(self, method: str, endpoint: str, json_data: dict = None) -> dict:
        """
        Make an authenticated request to Resend.

        Raises:
            EmailDeliveryError: Non-2xx response or transport failure
        """
        url = f"{RESEND_API_BASE}{endpoint}"

        async with httpx.AsyncClient() as client:
            try:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=self.headers,
                    json=json_data,
                    timeout=self.settings.http_timeout_seconds,
                )
            except httpx.HTTPError as e:
                logger.error(f"Resend request failed: {e}")
                raise EmailDeliveryError(f"Resend unreachable: {e}")

        if 200 <= response.status_code < 300:
            return response.json() if response.content else {}

        try:
            error_data = response.json()
        except ValueError:
            error_data = {"message": response.text}

        logger.error(f"Resend error: {response.status_code} - {error_data}")
        raise EmailDeliveryError(
            error_data.get("message") or f"Resend error: {response.status_code}",
            details={"status": response.status_code, "name": error_data.get("name")},
        )

    async def send_email(
        self,
        to: str,
        subject: str,
        html: str,
        text: Optional[str] = None,
    ) -> str:
        """
        Send a single email.

        Args:
            to: Recipient address
            subject: Subject line
            html: HTML body
            text: Optional plain-text alternative

        Returns:
            Resend message ID
        """
        payload = {
            "from": self.settings.reminder_from_address,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        if text:
            payload["text"] = text

        logger.info(f"Sending email to: {to}")
        result = await self._make_request("POST", "/emails", json_data=payload)

        message_id = result.get("id")
        if not message_id:
            raise EmailDeliveryError("Resend accepted the request but returned no message id")

        logger.info(f"Email sent successfully, ID: {message_id}")
        return message_id
