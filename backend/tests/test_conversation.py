import pytest

from mitr.models import ContextFormat, Location, UserProfile
from mitr.services.catalog import CatalogCache, static_loader
from mitr.services.conversation import ConversationService
from mitr.services.sessions import SessionNotFoundError, SessionStore


@pytest.fixture
def service(raw_records, clock):
    catalog = CatalogCache(static_loader(raw_records), ttl_seconds=3600)
    sessions = SessionStore(timeout_seconds=1800, clock=clock)
    return ConversationService(catalog=catalog, sessions=sessions)


async def test_turn_builds_prompt_and_session(service, scheme_by_name):
    result = await service.turn(
        "I need a loan of 10 lakhs for my rural manufacturing unit",
        profile=UserProfile(location=Location(is_rural=True)),
    )

    context = result.context
    assert context.format == ContextFormat.STRUCTURED
    assert context.token_budget == 2500
    assert context.include_all is False
    assert context.language == "en"
    assert 0 < len(context.schemes) <= context.ranked_count
    assert context.schemes[0].id == scheme_by_name["Rural Enterprise Loan"].id
    assert "## Available Schemes Context:\n[Scheme 1]\nName: Rural Enterprise Loan" in result.prompt
    assert "Location: (Rural)" in result.prompt
    assert service.sessions.get(result.session.id) is result.session


async def test_turn_reuses_session(service):
    first = await service.turn("hello")
    second = await service.turn("tell me about loans", session_id=first.session.id)

    assert second.session is first.session


async def test_show_all_bypasses_ranking(service, schemes):
    result = await service.turn("show me all schemes")

    assert result.context.include_all is True
    assert [scheme.id for scheme in result.context.schemes] == [scheme.id for scheme in schemes]


async def test_language_detection_and_override(service):
    detected = await service.turn("मुझे लोन चाहिए")
    explicit = await service.turn("loan please", language="ta")
    unknown = await service.turn("loan please", language="xx")

    assert detected.session.language == "hi"
    assert "Primary Language: हिन्दी" in detected.prompt
    assert explicit.session.language == "ta"
    assert unknown.session.language == "en"


async def test_record_appends_history_and_detects_mentions(service, scheme_by_name):
    result = await service.turn("I am a woman entrepreneur looking for a loan")

    session = await service.record(
        result.session.id,
        "I am a woman entrepreneur looking for a loan",
        "Stand-Up India is a good fit for you.",
    )

    assert len(session.history) == 2
    assert session.history[1].mentioned_ids == [scheme_by_name["Stand-Up India"].id]
    assert session.profile.gender == "female"


async def test_record_unknown_session(service):
    with pytest.raises(SessionNotFoundError):
        await service.record("missing", "hi", "hello")


async def test_mentions_grow_the_budget(service, schemes):
    result = await service.turn("hello")
    session_id = result.session.id
    await service.record(session_id, "compare them", "...", mentioned_ids=[s.id for s in schemes[:4]])

    follow_up = await service.turn("which is better?", session_id=session_id)

    assert follow_up.context.token_budget == 4000
    assert follow_up.context.format == ContextFormat.MARKDOWN
    mentioned = {s.id for s in schemes[:4]}
    assert mentioned <= {s.id for s in follow_up.context.schemes}


async def test_summary_follow_ups_and_recommendations(service):
    result = await service.turn("hello")
    session_id = result.session.id
    await service.record(session_id, "I want a loan for my shop", "Loan schemes need an application.")

    summary = await service.summary(session_id)
    questions = await service.follow_ups(session_id)
    picks = await service.recommendations(session_id)

    assert summary.requirements == ["a loan for my shop"]
    assert len(questions) == 3
    assert len(picks.primary) == 3

    with pytest.raises(SessionNotFoundError):
        await service.summary("missing")


async def test_welcome_digest(service, schemes):
    text = await service.welcome_digest(2)
    assert text.splitlines() == [schemes[0].minimal_context, schemes[1].minimal_context]


async def test_turn_context_carries_amount_and_urgency(service):
    urgent = await service.turn("Urgent: I need a loan of 10 lakhs")
    plain = await service.turn("tell me about training")

    assert urgent.context.amount_needed == 1_000_000
    assert urgent.context.is_urgent is True
    assert plain.context.amount_needed is None
    assert plain.context.is_urgent is False
