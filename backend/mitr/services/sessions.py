"""In-memory conversation sessions: lifecycle, profile inference and read-only digests."""

from __future__ import annotations

import asyncio
import contextlib
import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from mitr.logging import get_logger
from mitr.models import (
    ChatRole,
    HistoryTurn,
    Location,
    Scheme,
    SchemeCategory,
    Session,
    SessionSummary,
    UserProfile,
)
from mitr.services.ranking import mentioned_scheme_ids, schemes_for_profile

logger = get_logger("services.sessions")

DEFAULT_TIMEOUT_SECONDS = 30 * 60
DEFAULT_HISTORY_LIMIT = 20

FULL_CATALOG_PHRASES: tuple[str, ...] = (
    "all schemes",
    "show me everything",
    "list all",
    "what are all",
    "complete list",
)

BUSINESS_TYPES: tuple[str, ...] = (
    "manufacturing",
    "service",
    "trading",
    "retail",
    "agriculture",
    "handicraft",
    "technology",
    "export",
)

INDIAN_STATES: tuple[str, ...] = (
    "Andhra Pradesh", "Arunachal Pradesh", "Assam", "Bihar", "Chhattisgarh", "Goa",
    "Gujarat", "Haryana", "Himachal Pradesh", "Jharkhand", "Karnataka", "Kerala",
    "Madhya Pradesh", "Maharashtra", "Manipur", "Meghalaya", "Mizoram", "Nagaland",
    "Odisha", "Punjab", "Rajasthan", "Sikkim", "Tamil Nadu", "Telangana", "Tripura",
    "Uttar Pradesh", "Uttarakhand", "West Bengal", "Delhi", "Jammu and Kashmir",
    "Ladakh", "Puducherry",
)

_STATE_PATTERNS = tuple(
    (state, re.compile(rf"\b{re.escape(state.lower())}\b")) for state in INDIAN_STATES
)
_STAGE_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("new", re.compile(r"\bstart|\bnew\b")),
    ("existing", re.compile(r"\bexisting\b|\brunning\b")),
    ("expansion", re.compile(r"\bexpan|\bgrowth\b")),
)
_FEMALE = re.compile(r"\bwom[ae]n\b|\bfemale\b")
_SC_ST = re.compile(r"\bsc\b|\bst\b")
_REQUIREMENT = re.compile(r"(?:need|require|want)\s+([^.?!]+)")

MAX_FOLLOW_UPS = 3
MAX_NEXT_STEPS = 3
SUGGESTION_COUNT = 3
COMPLEMENTARY_COUNT = 2
COMPLEMENTARY_CATEGORIES: dict[SchemeCategory, SchemeCategory] = {
    SchemeCategory.LOAN: SchemeCategory.SUBSIDY,
    SchemeCategory.TRAINING: SchemeCategory.CERTIFICATION,
}


class SessionNotFoundError(LookupError):
    """No live session has this id (never created, or already evicted)."""

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Pure helpers ──

def merge_missing_profile(current: UserProfile, incoming: UserProfile | None) -> UserProfile:
    """Copy fields from ``incoming`` into ``current`` only where ``current`` has none."""
    if incoming is None:
        return current

    updates = {}
    for name in UserProfile.model_fields:
        if name == "location":
            continue
        if getattr(current, name) in (None, [], "") and getattr(incoming, name) not in (None, [], ""):
            updates[name] = getattr(incoming, name)

    if incoming.location is not None:
        if current.location is None:
            updates["location"] = incoming.location
        else:
            filled = {
                name: getattr(incoming.location, name)
                for name in Location.model_fields
                if getattr(current.location, name) is None and getattr(incoming.location, name) is not None
            }
            if filled:
                updates["location"] = current.location.model_copy(update=filled)

    return current.model_copy(update=updates) if updates else current


def infer_profile_fields(profile: UserProfile, message: str) -> UserProfile:
    """Fill unset profile fields from keywords in a user message."""
    text = (message or "").lower()
    updates: dict[str, object] = {}

    if not profile.business_type:
        business_type = next((kind for kind in BUSINESS_TYPES if kind in text), None)
        if business_type:
            updates["business_type"] = business_type

    if profile.location is None or not profile.location.state:
        state = next((name for name, pattern in _STATE_PATTERNS if pattern.search(text)), None)
        if state:
            location = profile.location or Location()
            updates["location"] = location.model_copy(update={"state": state})

    if not profile.business_stage:
        stage = next((stage for stage, pattern in _STAGE_PATTERNS if pattern.search(text)), None)
        if stage:
            updates["business_stage"] = stage

    if not profile.gender and _FEMALE.search(text):
        updates["gender"] = "female"

    if not profile.category and _SC_ST.search(text):
        updates["category"] = "SC/ST"

    return profile.model_copy(update=updates) if updates else profile


def determine_token_budget(
    history: Sequence[HistoryTurn],
    base: int = 2500,
    extended: int = 3500,
    multi_scheme: int = 4000,
    history_threshold: int = 10,
    mentioned_threshold: int = 3,
) -> int:
    """Longer conversations and broader scheme discussions get larger budgets."""
    budget = base
    if len(history) > history_threshold:
        budget = max(budget, extended)
    if len(mentioned_scheme_ids(history)) > mentioned_threshold:
        budget = max(budget, multi_scheme)
    return budget


def wants_full_catalog(message: str) -> bool:
    lowered = (message or "").lower()
    return any(phrase in lowered for phrase in FULL_CATALOG_PHRASES)


def extract_mentioned_ids(text: str, schemes: Iterable[Scheme]) -> list[str]:
    """Ids of schemes whose name or short name appears in ``text``."""
    if not text:
        return []
    mentioned: list[str] = []
    for scheme in schemes:
        short_name = scheme.short_name if len(scheme.short_name) >= 3 else ""
        if scheme.name in text or (short_name and short_name in text):
            if scheme.id not in mentioned:
                mentioned.append(scheme.id)
    return mentioned


# ── Session store ──

class SessionStore:
    """
    Owns every live session.

    Turns on the same id are not serialized; the last write wins. A swept
    session is gone for good and its id is never revived.
    """

    def __init__(
        self,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.timeout = timedelta(seconds=timeout_seconds)
        self.history_limit = history_limit
        self._clock = clock
        self._sessions: dict[str, Session] = {}
        self._sweeper: asyncio.Task | None = None

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return isinstance(session_id, str) and self.get(session_id) is not None

    def _is_expired(self, session: Session, now: datetime) -> bool:
        return now - session.last_active_at > self.timeout

    def get(self, session_id: str) -> Session | None:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if self._is_expired(session, self._clock()):
            self._sessions.pop(session_id, None)
            return None
        return session

    def require(self, session_id: str) -> Session:
        session = self.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def create(self, profile: UserProfile | None = None, language: str = "en") -> Session:
        now = self._clock()
        session = Session(
            id=str(uuid4()),
            profile=profile.model_copy() if profile is not None else UserProfile(),
            language=language,
            created_at=now,
            last_active_at=now,
        )
        self._sessions[session.id] = session
        logger.info("[SESSION] created session_id=%s language=%s", session.id, language)
        return session

    def resolve(
        self,
        session_id: str | None,
        profile: UserProfile | None = None,
        language: str | None = None,
    ) -> Session:
        """Existing live session with ``profile`` merged in, or a fresh one."""
        session = self.get(session_id) if session_id else None
        if session is None:
            return self.create(profile, language or "en")

        session.profile = merge_missing_profile(session.profile, profile)
        if language:
            session.language = language
        return session

    def touch(self, session: Session) -> None:
        session.last_active_at = self._clock()

    def append_exchange(
        self,
        session_id: str,
        user_text: str,
        assistant_text: str,
        mentioned_ids: Sequence[str] | None = None,
    ) -> Session:
        """Record one user/assistant exchange, trim history and learn from the user text."""
        session = self.require(session_id)
        now = self._clock()
        session.history.extend(
            [
                HistoryTurn(role=ChatRole.USER, content=user_text, timestamp=now, mentioned_ids=[]),
                HistoryTurn(
                    role=ChatRole.ASSISTANT,
                    content=assistant_text,
                    timestamp=now,
                    mentioned_ids=list(mentioned_ids or []),
                ),
            ]
        )
        if len(session.history) > self.history_limit:
            del session.history[: len(session.history) - self.history_limit]
        session.profile = infer_profile_fields(session.profile, user_text)
        session.last_active_at = now
        return session

    def sweep(self) -> int:
        """Drop sessions idle longer than the timeout. Returns how many went."""
        now = self._clock()
        expired = [sid for sid, session in list(self._sessions.items()) if self._is_expired(session, now)]
        for session_id in expired:
            self._sessions.pop(session_id, None)
        if expired:
            logger.info("[SESSION] swept expired=%d remaining=%d", len(expired), len(self._sessions))
        return len(expired)

    async def _sweep_forever(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            self.sweep()

    def start_sweeper(self, interval_seconds: float) -> asyncio.Task:
        if self._sweeper is not None and not self._sweeper.done():
            return self._sweeper
        self._sweeper = asyncio.create_task(self._sweep_forever(interval_seconds))
        return self._sweeper

    async def stop_sweeper(self) -> None:
        task, self._sweeper = self._sweeper, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


# ── Read-only digests ──

def _last_assistant_text(session: Session) -> str:
    for turn in reversed(session.history):
        if turn.role == ChatRole.ASSISTANT:
            return turn.content
    return ""


def follow_up_questions(session: Session, last_response: str | None = None) -> list[str]:
    profile = session.profile
    response = (last_response if last_response is not None else _last_assistant_text(session)).lower()
    questions: list[str] = []

    if not profile.business_type:
        questions.append("What type of business are you running or planning to start?")
    if profile.location is None or not profile.location.state:
        questions.append("Which state are you located in?")
    if not profile.business_stage:
        questions.append("Is this a new business or an existing one?")
    if "loan" in response:
        questions.append("How much funding do you need?")
    if "eligib" in response:
        questions.append("Would you like me to check your eligibility for specific schemes?")
    if "application" in response:
        questions.append("Do you need help with the application process?")

    return questions[:MAX_FOLLOW_UPS]


def quick_suggestions(session: Session | None, schemes: Sequence[Scheme]) -> list[Scheme]:
    """Top profile matches, or the most popular schemes when nothing matches."""
    if session is not None:
        matches = schemes_for_profile(schemes, session.profile)[:SUGGESTION_COUNT]
        if matches:
            return matches
    return sorted(schemes, key=lambda scheme: scheme.popularity_rank)[:SUGGESTION_COUNT]


@dataclass(frozen=True)
class SchemeRecommendations:
    primary: tuple[Scheme, ...] = ()
    complementary: tuple[Scheme, ...] = ()
    trending: tuple[Scheme, ...] = ()


def recommendations(session: Session | None, schemes: Sequence[Scheme]) -> SchemeRecommendations:
    popular = sorted(schemes, key=lambda scheme: scheme.popularity_rank)
    primary = quick_suggestions(session, popular)
    primary_ids = {scheme.id for scheme in primary}

    complementary: list[Scheme] = []
    for anchor in primary:
        partner = COMPLEMENTARY_CATEGORIES.get(anchor.category)
        if partner is None:
            continue
        for scheme in popular:
            if scheme.category == partner and scheme.id not in primary_ids and scheme not in complementary:
                complementary.append(scheme)
    complementary = complementary[:COMPLEMENTARY_COUNT]

    listed = primary_ids | {scheme.id for scheme in complementary}
    trending = [scheme for scheme in popular if scheme.id not in listed][:SUGGESTION_COUNT]
    return SchemeRecommendations(tuple(primary), tuple(complementary), tuple(trending))


def _next_steps(session: Session, discussed: Sequence[Scheme]) -> list[str]:
    profile = session.profile
    steps: list[str] = []

    if not profile.business_type:
        steps.append("Define your business type and industry")
    if profile.location is None or not profile.location.state:
        steps.append("Provide your business location for state-specific schemes")
    if any(scheme.category == SchemeCategory.LOAN for scheme in discussed):
        steps.append("Decide how much funding you need")

    recent = " ".join(turn.content for turn in session.history[-4:]).lower()
    if "eligib" in recent:
        steps.append("Complete eligibility assessment for recommended schemes")
    if "application" in recent or "apply" in recent:
        steps.append("Gather required documents for application")
        steps.append("Start online application process")
    if "loan" in recent or "fund" in recent:
        steps.append("Prepare business plan and financial projections")

    return list(dict.fromkeys(steps))[:MAX_NEXT_STEPS]


def _requirements(session: Session) -> list[str]:
    found: dict[str, None] = {}
    for turn in session.history:
        if turn.role != ChatRole.USER:
            continue
        match = _REQUIREMENT.search(turn.content.lower())
        if match:
            found.setdefault(match.group(1).strip(), None)
    return list(found)


def render_summary_markdown(summary: SessionSummary, has_history: bool) -> str:
    if not has_history:
        return "No conversation history available."

    lines = ["## Conversation Summary", ""]
    profile = summary.business_info
    if not profile.is_empty():
        lines.append("**User Profile:**")
        if profile.business_type:
            lines.append(f"- Business: {profile.business_type}")
        if profile.business_stage:
            lines.append(f"- Stage: {profile.business_stage}")
        if profile.location is not None and profile.location.state:
            lines.append(f"- Location: {profile.location.state}")
        lines.append("")
    for title, items in (
        ("Schemes Discussed", summary.scheme_names),
        ("Requirements", summary.requirements),
        ("Recommended Next Steps", summary.next_steps),
    ):
        if items:
            lines.append(f"**{title}:**")
            lines.extend(f"- {item}" for item in items)
            lines.append("")
    return "\n".join(lines).rstrip() + "\n"


def summarize_session(session: Session, schemes: Sequence[Scheme]) -> SessionSummary:
    """Structured digest of a session. Never mutates it."""
    by_id = {scheme.id: scheme for scheme in reversed(schemes)}
    interested = mentioned_scheme_ids(session.history)
    discussed = [by_id[scheme_id] for scheme_id in interested if scheme_id in by_id]

    summary = SessionSummary(
        session_id=session.id,
        interested_schemes=interested,
        scheme_names=[scheme.name for scheme in discussed],
        business_info=session.profile.model_copy(deep=True),
        requirements=_requirements(session),
        next_steps=_next_steps(session, discussed),
    )
    return summary.model_copy(update={"markdown": render_summary_markdown(summary, bool(session.history))})
