"""
MSME Mitr models.

Usage:
    from mitr.models import RawScheme, Scheme, UserProfile, Session
    from mitr.models import SchemeCategory, ContextFormat, ChatRole
    from mitr.models import TurnContext
"""

# --- Enums & utilities ---
from mitr.models.enums import (
    SchemeCategory,
    ContextFormat,
    ChatRole,
    normalize_text,
)

# --- Domain models ---
from mitr.models.domain import (
    SchemeSource, ApplicationProcess, RawScheme,
    AmountRange, SubsidyPercentage, FinancialDetails, Scheme,
    BusinessStage, Location, UserProfile,
    HistoryTurn, Session, SessionSummary,
    ChatTurnRequest, ChatTurnResponse, SchemeBrief, RecordTurnRequest,
    FollowUpResponse, RecommendationsResponse, DigestResponse,
)

# --- Result models ---
from mitr.models.results import TurnContext

__all__ = [
    # Enums
    "SchemeCategory", "ContextFormat", "ChatRole", "normalize_text",
    # Domain
    "SchemeSource", "ApplicationProcess", "RawScheme",
    "AmountRange", "SubsidyPercentage", "FinancialDetails", "Scheme",
    "BusinessStage", "Location", "UserProfile",
    "HistoryTurn", "Session", "SessionSummary",
    "ChatTurnRequest", "ChatTurnResponse", "SchemeBrief", "RecordTurnRequest",
    "FollowUpResponse", "RecommendationsResponse", "DigestResponse",
    # Results
    "TurnContext",
]
