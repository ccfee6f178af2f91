"""Result models for per-turn context assembly."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from mitr.models.domain.profile import UserProfile
from mitr.models.domain.scheme import Scheme
from mitr.models.domain.session import HistoryTurn
from mitr.models.enums import ContextFormat


class TurnContext(BaseModel):
    """Everything one turn fed into the prompt. Built per request, never stored."""
    model_config = ConfigDict(frozen=True)

    query: str
    profile: UserProfile = Field(default_factory=UserProfile)
    schemes: tuple[Scheme, ...] = ()
    history: tuple[HistoryTurn, ...] = ()
    format: ContextFormat = ContextFormat.STRUCTURED
    token_budget: int = 0
    include_all: bool = False
    ranked_count: int = 0
    language: str = "en"
    amount_needed: Optional[float] = None
    is_urgent: bool = False
