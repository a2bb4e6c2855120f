"""Pydantic schemas for comment validation.

Checks a comment before it is handed to storage.
"""

import html

from pydantic import BaseModel, Field, field_validator


# ==============================================================================
# Constants
# ==============================================================================
USERNAME_MAX_LENGTH = 80
IP_MAX_LENGTH = 50


class CommentCreate(BaseModel):
    """Fields bound when a new comment is inserted."""

    post_id: int = Field(..., ge=1)
    parent_id: int = Field(0, ge=0)
    username: str | None = None
    message: str = Field(..., min_length=1)
    ip: str | None = Field(None, max_length=IP_MAX_LENGTH)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str | None) -> str | None:
        """Limit the length of the name as typed, before HTML encoding."""
        if v is not None and len(html.unescape(v)) > USERNAME_MAX_LENGTH:
            msg = f"Username cannot be longer than {USERNAME_MAX_LENGTH} characters"
            raise ValueError(msg)
        return v

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str) -> str:
        """Reject blank messages."""
        if not v.strip():
            msg = "Message cannot be empty"
            raise ValueError(msg)
        return v

