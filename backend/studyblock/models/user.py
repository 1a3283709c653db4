"""
User-related Pydantic models.
"""
from pydantic import BaseModel


class UserContact(BaseModel):
    """Where and how to address a user's reminder."""
    id: str
    email: str
    display_name: str
