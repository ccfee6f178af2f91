"""Domain models: scheme catalog records, user profiles and conversation sessions."""

from mitr.models.domain.scheme import (
    SchemeSource,
    ApplicationProcess,
    RawScheme,
    AmountRange,
    SubsidyPercentage,
    FinancialDetails,
    Scheme,
)
from mitr.models.domain.profile import BusinessStage, Location, UserProfile
from mitr.models.domain.session import HistoryTurn, Session, SessionSummary
from mitr.models.domain.chat import (
    ChatTurnRequest,
    ChatTurnResponse,
    SchemeBrief,
    RecordTurnRequest,
    FollowUpResponse,
    RecommendationsResponse,
    DigestResponse,
)

__all__ = [
    "SchemeSource", "ApplicationProcess", "RawScheme",
    "AmountRange", "SubsidyPercentage", "FinancialDetails", "Scheme",
    "BusinessStage", "Location", "UserProfile",
    "HistoryTurn", "Session", "SessionSummary",
    "ChatTurnRequest", "ChatTurnResponse", "SchemeBrief", "RecordTurnRequest",
    "FollowUpResponse", "RecommendationsResponse", "DigestResponse",
]
