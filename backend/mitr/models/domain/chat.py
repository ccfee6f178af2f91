"""Domain models for chat turn workflows."""

from typing import Optional

from pydantic import BaseModel, Field

from mitr.models.domain.profile import UserProfile
from mitr.models.domain.scheme import Scheme
from mitr.models.enums import ContextFormat, SchemeCategory


class ChatTurnRequest(BaseModel):
    """Request payload for preparing a model prompt for one user message."""

    message: str = Field(min_length=1, max_length=12000)
    session_id: Optional[str] = None
    language: Optional[str] = None
    profile: Optional[UserProfile] = None


class SchemeBrief(BaseModel):
    """Compact scheme reference returned alongside a prompt."""

    id: str
    name: str
    category: SchemeCategory
    url: str = ""

    @classmethod
    def from_scheme(cls, scheme: Scheme) -> "SchemeBrief":
        return cls(id=scheme.id, name=scheme.name, category=scheme.category, url=scheme.url)


class ChatTurnResponse(BaseModel):
    """Response payload for a prepared chat turn."""

    session_id: str
    prompt: str
    format: ContextFormat
    token_budget: int
    include_all: bool = False
    amount_needed: Optional[float] = None
    is_urgent: bool = False
    schemes: list[SchemeBrief] = Field(default_factory=list)


class RecordTurnRequest(BaseModel):
    """Request payload reporting back the model's answer for a turn."""

    user_message: str = Field(min_length=1, max_length=12000)
    assistant_message: str = Field(max_length=60000)
    mentioned_ids: Optional[list[str]] = None


class FollowUpResponse(BaseModel):
    """Suggested follow-up questions for a session."""

    session_id: str
    questions: list[str] = Field(default_factory=list)


class RecommendationsResponse(BaseModel):
    """Personalised scheme suggestions grouped by purpose."""

    primary: list[SchemeBrief] = Field(default_factory=list)
    complementary: list[SchemeBrief] = Field(default_factory=list)
    trending: list[SchemeBrief] = Field(default_factory=list)


class DigestResponse(BaseModel):
    """One-line summaries for the opening screen, before any query."""

    digest: str
    count: int
