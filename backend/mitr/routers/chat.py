"""Chat turn preparation and session digest routes."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from mitr.config import settings
from mitr.dependencies import ConversationServiceDep
from mitr.models import (
    ChatTurnRequest,
    ChatTurnResponse,
    DigestResponse,
    FollowUpResponse,
    RecommendationsResponse,
    RecordTurnRequest,
    SchemeBrief,
    SessionSummary,
)
from mitr.services.catalog import CatalogLoadError

router = APIRouter()


@router.post("/turn", response_model=ChatTurnResponse)
async def prepare_turn(body: ChatTurnRequest, service: ConversationServiceDep):
    try:
        result = await service.turn(
            message=body.message,
            session_id=body.session_id,
            language=body.language,
            profile=body.profile,
        )
    except CatalogLoadError as exc:
        raise HTTPException(503, str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc

    return ChatTurnResponse(
        session_id=result.session.id,
        prompt=result.prompt,
        format=result.context.format,
        token_budget=result.context.token_budget,
        include_all=result.context.include_all,
        amount_needed=result.context.amount_needed,
        is_urgent=result.context.is_urgent,
        schemes=[SchemeBrief.from_scheme(scheme) for scheme in result.context.schemes],
    )


@router.get("/welcome-digest", response_model=DigestResponse)
async def welcome_digest(
    service: ConversationServiceDep,
    k: int = Query(default=settings.DIGEST_SIZE, ge=1, le=50),
):
    try:
        text = await service.welcome_digest(k)
    except CatalogLoadError as exc:
        raise HTTPException(503, str(exc)) from exc
    return DigestResponse(digest=text, count=len(text.splitlines()))


@router.get("/suggestions", response_model=list[SchemeBrief])
async def quick_suggestions(
    service: ConversationServiceDep,
    session_id: Optional[str] = None,
):
    try:
        schemes = await service.suggestions(session_id)
    except CatalogLoadError as exc:
        raise HTTPException(503, str(exc)) from exc
    return [SchemeBrief.from_scheme(scheme) for scheme in schemes]


@router.post("/{session_id}/record")
async def record_turn(session_id: str, body: RecordTurnRequest, service: ConversationServiceDep):
    try:
        await service.record(
            session_id,
            user_text=body.user_message,
            assistant_text=body.assistant_message,
            mentioned_ids=body.mentioned_ids,
        )
    except LookupError as exc:
        raise HTTPException(404, str(exc)) from exc
    except CatalogLoadError as exc:
        raise HTTPException(503, str(exc)) from exc
    return {"status": "recorded"}


@router.get("/{session_id}/summary", response_model=SessionSummary)
async def session_summary(session_id: str, service: ConversationServiceDep):
    try:
        return await service.summary(session_id)
    except LookupError as exc:
        raise HTTPException(404, str(exc)) from exc
    except CatalogLoadError as exc:
        raise HTTPException(503, str(exc)) from exc


@router.get("/{session_id}/follow-ups", response_model=FollowUpResponse)
async def follow_ups(session_id: str, service: ConversationServiceDep):
    try:
        questions = await service.follow_ups(session_id)
    except LookupError as exc:
        raise HTTPException(404, str(exc)) from exc
    return FollowUpResponse(session_id=session_id, questions=questions)


@router.get("/{session_id}/recommendations", response_model=RecommendationsResponse)
async def session_recommendations(session_id: str, service: ConversationServiceDep):
    try:
        picks = await service.recommendations(session_id)
    except CatalogLoadError as exc:
        raise HTTPException(503, str(exc)) from exc
    return RecommendationsResponse(
        primary=[SchemeBrief.from_scheme(scheme) for scheme in picks.primary],
        complementary=[SchemeBrief.from_scheme(scheme) for scheme in picks.complementary],
        trending=[SchemeBrief.from_scheme(scheme) for scheme in picks.trending],
    )
