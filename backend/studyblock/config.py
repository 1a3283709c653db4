"""
Application configuration loaded from environment variables.
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Supabase project (service role key bypasses row-level security)
    supabase_url: str = "http://localhost:54321"
    supabase_service_role_key: str = ""
    supabase_jwt_secret: str = ""

    # Require a project JWT on the reminder trigger
    verify_jwt: bool = True

    # Resend
    resend_api_key: str = ""
    reminder_from_address: str = "Study Reminder <noreply@yourdomain.com>"

    # Reminder window: sessions starting in [now + lead, now + lead + window)
    reminder_lead_minutes: int = 10
    reminder_window_seconds: int = 60
    reminder_batch_size: int = 500

    # IANA timezone used to render times in reminder emails
    reminder_timezone: str = "UTC"

    # CORS
    cors_allow_origin: str = "*"

    # Outbound HTTP
    http_timeout_seconds: float = 30.0

    # Debug mode
    debug: bool = True

    @field_validator("reminder_timezone")
    @classmethod
    def check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {value!r}")
        return value

    @property
    def supabase_rest_url(self) -> str:
        return f"{self.supabase_url.rstrip('/')}/rest/v1"

    @property
    def supabase_auth_url(self) -> str:
        return f"{self.supabase_url.rstrip('/')}/auth/v1"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
