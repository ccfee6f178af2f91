"""Conversation session domain models."""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from mitr.models.domain.profile import UserProfile
from mitr.models.enums import ChatRole


class HistoryTurn(BaseModel):
    """One message in a session's rolling history."""
    role: ChatRole
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    mentioned_ids: list[str] = Field(default_factory=list)


class Session(BaseModel):
    """
    Short-lived, in-memory conversation state.

    Concurrent turns on the same id are last-write-wins; callers treat a
    session that disappears between calls as expired.
    """
    id: str = Field(default_factory=lambda: str(uuid4()))
    profile: UserProfile = Field(default_factory=UserProfile)
    history: list[HistoryTurn] = Field(default_factory=list)
    language: str = "en"
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_active_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SessionSummary(BaseModel):
    """Read-only digest of what a session has covered so far."""
    session_id: str
    interested_schemes: list[str] = Field(default_factory=list)
    scheme_names: list[str] = Field(default_factory=list)
    business_info: UserProfile = Field(default_factory=UserProfile)
    requirements: list[str] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list)
    markdown: Optional[str] = None
