"""Per-turn orchestration: session, ranking, budget, rendering and prompt."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from mitr.config import settings
from mitr.logging import get_logger
from mitr.models import Scheme, Session, SessionSummary, TurnContext, UserProfile
from mitr.services.catalog import CatalogCache
from mitr.services.context_assembler import assemble, digest, render
from mitr.services.languages import detect_language, get_language
from mitr.services.prompts import compose_prompt
from mitr.services.ranking import extract_intent, rank_schemes
from mitr.services.sessions import (
    SchemeRecommendations,
    SessionNotFoundError,
    SessionStore,
    determine_token_budget,
    extract_mentioned_ids,
    follow_up_questions,
    quick_suggestions,
    recommendations,
    summarize_session,
    wants_full_catalog,
)

logger = get_logger("services.conversation")


@dataclass(frozen=True)
class TurnResult:
    prompt: str
    context: TurnContext
    session: Session


class ConversationService:
    """Prepares model prompts for chat turns and records what the model said."""

    def __init__(
        self,
        catalog: CatalogCache,
        sessions: SessionStore,
        base_budget: int = settings.DEFAULT_TOKEN_BUDGET,
        extended_budget: int = settings.EXTENDED_TOKEN_BUDGET,
        multi_scheme_budget: int = settings.MULTI_SCHEME_TOKEN_BUDGET,
        history_threshold: int = settings.HISTORY_BUDGET_THRESHOLD,
        mentioned_threshold: int = settings.MENTIONED_BUDGET_THRESHOLD,
        default_language: str = settings.DEFAULT_LANGUAGE,
    ):
        self.catalog = catalog
        self.sessions = sessions
        self.base_budget = base_budget
        self.extended_budget = extended_budget
        self.multi_scheme_budget = multi_scheme_budget
        self.history_threshold = history_threshold
        self.mentioned_threshold = mentioned_threshold
        self.default_language = get_language(default_language).code

    def token_budget_for(self, session: Session) -> int:
        return determine_token_budget(
            session.history,
            base=self.base_budget,
            extended=self.extended_budget,
            multi_scheme=self.multi_scheme_budget,
            history_threshold=self.history_threshold,
            mentioned_threshold=self.mentioned_threshold,
        )

    async def turn(
        self,
        message: str,
        session_id: str | None = None,
        language: str | None = None,
        profile: UserProfile | None = None,
    ) -> TurnResult:
        snapshot = await self.catalog.get()

        if language:
            language = get_language(language).code
        elif session_id is None or self.sessions.get(session_id) is None:
            language = detect_language(message, default=self.default_language)
        session = self.sessions.resolve(session_id, profile, language)

        budget = self.token_budget_for(session)
        include_all = wants_full_catalog(message)
        intent = extract_intent(message)
        ranked: Sequence[Scheme] = (
            () if include_all else rank_schemes(snapshot.schemes, message, session.profile, session.history)
        )
        assembled = assemble(ranked, budget, include_all=include_all, catalog=snapshot.schemes)
        block = render(assembled.schemes, assembled.format)
        prompt = compose_prompt(
            block,
            session.profile,
            session.language,
            candidate_count=len(assembled.schemes),
            total_count=len(snapshot),
        )
        self.sessions.touch(session)

        context = TurnContext(
            query=message,
            profile=session.profile.model_copy(deep=True),
            schemes=assembled.schemes,
            history=tuple(turn.model_copy() for turn in session.history),
            format=assembled.format,
            token_budget=budget,
            include_all=include_all,
            ranked_count=len(snapshot) if include_all else len(ranked),
            language=session.language,
            amount_needed=intent.amount_needed,
            is_urgent=intent.is_urgent,
        )
        logger.info(
            "[TURN] session_id=%s budget=%d format=%s selected=%d ranked=%d include_all=%s",
            session.id,
            budget,
            assembled.format.value,
            len(assembled.schemes),
            context.ranked_count,
            include_all,
        )
        return TurnResult(prompt=prompt, context=context, session=session)

    async def record(
        self,
        session_id: str,
        user_text: str,
        assistant_text: str,
        mentioned_ids: Sequence[str] | None = None,
    ) -> Session:
        """Append the exchange; mentions default to schemes named in the assistant text."""
        if self.sessions.get(session_id) is None:
            logger.warning("[TURN] record for unknown session_id=%s", session_id)
            raise SessionNotFoundError(session_id)
        if mentioned_ids is None:
            snapshot = await self.catalog.get()
            mentioned_ids = extract_mentioned_ids(assistant_text, snapshot.schemes)
        return self.sessions.append_exchange(session_id, user_text, assistant_text, mentioned_ids)

    async def summary(self, session_id: str) -> SessionSummary:
        session = self.sessions.require(session_id)
        snapshot = await self.catalog.get()
        return summarize_session(session, snapshot.schemes)

    async def follow_ups(self, session_id: str, last_response: str | None = None) -> list[str]:
        return follow_up_questions(self.sessions.require(session_id), last_response)

    async def suggestions(self, session_id: str | None = None) -> list[Scheme]:
        session = self.sessions.get(session_id) if session_id else None
        snapshot = await self.catalog.get()
        return quick_suggestions(session, snapshot.schemes)

    async def recommendations(self, session_id: str | None = None) -> SchemeRecommendations:
        session = self.sessions.get(session_id) if session_id else None
        snapshot = await self.catalog.get()
        return recommendations(session, snapshot.schemes)

    async def welcome_digest(self, k: int = settings.DIGEST_SIZE) -> str:
        snapshot = await self.catalog.get()
        return digest(snapshot.schemes, k)
