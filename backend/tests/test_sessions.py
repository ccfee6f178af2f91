import asyncio

import pytest

from mitr.models import ChatRole, HistoryTurn, Location, UserProfile
from mitr.services.sessions import (
    SessionNotFoundError,
    SessionStore,
    determine_token_budget,
    extract_mentioned_ids,
    follow_up_questions,
    infer_profile_fields,
    merge_missing_profile,
    quick_suggestions,
    recommendations,
    summarize_session,
    wants_full_catalog,
)


def _store(clock, **kwargs):
    return SessionStore(timeout_seconds=1800, clock=clock, **kwargs)


def test_resolve_creates_and_reuses(clock):
    store = _store(clock)

    created = store.resolve(None, UserProfile(business_type="retail"), "hi")
    again = store.resolve(created.id)

    assert again is created
    assert created.language == "hi"
    assert created.profile.business_type == "retail"
    assert len(store) == 1


def test_unknown_id_gets_a_fresh_session(clock):
    store = _store(clock)

    session = store.resolve("made-up-id")

    assert session.id != "made-up-id"
    assert store.get("made-up-id") is None


def test_profile_merge_fills_missing_only(clock):
    store = _store(clock)
    session = store.resolve(None, UserProfile(business_type="retail", location=Location(state="Kerala")))

    store.resolve(
        session.id,
        UserProfile(business_type="trading", gender="female", location=Location(state="Goa", is_rural=True)),
    )

    assert session.profile.business_type == "retail"
    assert session.profile.gender == "female"
    assert session.profile.location.state == "Kerala"
    assert session.profile.location.is_rural is True


def test_merge_missing_profile_without_incoming():
    profile = UserProfile(category="OBC")
    assert merge_missing_profile(profile, None) is profile


def test_history_is_trimmed_to_twenty(clock):
    store = _store(clock)
    session = store.resolve(None)

    for turn in range(13):
        store.append_exchange(session.id, f"question {turn}", f"answer {turn}")

    assert len(session.history) == 20
    assert session.history[0].content == "question 3"
    assert session.history[-1].role == ChatRole.ASSISTANT
    # history > 10 entries bumps the next turn's budget
    assert determine_token_budget(session.history) == 3500


def test_append_records_mentions_on_assistant_turn_only(clock):
    store = _store(clock)
    session = store.resolve(None)

    store.append_exchange(session.id, "tell me more", "Stand-Up India fits.", ["stand-up-india-3"])

    user_turn, assistant_turn = session.history
    assert user_turn.mentioned_ids == []
    assert assistant_turn.mentioned_ids == ["stand-up-india-3"]


def test_budget_rules():
    assert determine_token_budget([]) == 2500

    many_mentions = [
        HistoryTurn(role=ChatRole.ASSISTANT, content="...", mentioned_ids=[f"scheme-{index}"])
        for index in range(4)
    ]
    assert determine_token_budget(many_mentions) == 4000

    long_and_broad = many_mentions * 3
    assert determine_token_budget(long_and_broad) == 4000


def test_full_catalog_trigger():
    assert wants_full_catalog("show me ALL SCHEMES please") is True
    assert wants_full_catalog("Give me the complete list") is True
    assert wants_full_catalog("show me loans") is False


def test_expired_session_reads_as_not_found(clock):
    store = _store(clock)
    session = store.resolve(None)

    clock.advance(1801)

    assert store.get(session.id) is None
    assert session.id not in store
    with pytest.raises(SessionNotFoundError):
        store.require(session.id)
    # Reusing the id after expiry behaves like a brand-new id
    assert store.resolve(session.id).id != session.id


def test_sweep_removes_only_idle_sessions(clock):
    store = _store(clock)
    idle = store.resolve(None)
    clock.advance(1000)
    active = store.resolve(None)
    clock.advance(900)

    assert store.sweep() == 1
    assert store.get(idle.id) is None
    assert store.get(active.id) is active


def test_append_to_unknown_session_raises(clock):
    store = _store(clock)
    with pytest.raises(SessionNotFoundError):
        store.append_exchange("nope", "hi", "hello")


async def test_background_sweeper_runs_and_stops(clock):
    store = _store(clock)
    store.resolve(None)
    clock.advance(3600)

    task = store.start_sweeper(0.01)
    await asyncio.sleep(0.05)
    await store.stop_sweeper()

    assert task.done()
    assert len(store) == 0


def test_profile_inference_from_user_text():
    profile = infer_profile_fields(
        UserProfile(), "I run a small manufacturing unit in Tamil Nadu and want to expand"
    )

    assert profile.business_type == "manufacturing"
    assert profile.location.state == "Tamil Nadu"
    assert profile.business_stage == "expansion"
    assert profile.gender is None
    assert profile.category is None


def test_profile_inference_gender_and_category():
    profile = infer_profile_fields(UserProfile(), "I am a woman from the SC community starting a business")

    assert profile.gender == "female"
    assert profile.category == "SC/ST"
    assert profile.business_stage == "new"


def test_profile_inference_never_overwrites():
    known = UserProfile(business_type="trading", business_stage="existing", location=Location(state="Goa"))

    profile = infer_profile_fields(known, "new manufacturing unit in Kerala")

    assert profile.business_type == "trading"
    assert profile.business_stage == "existing"
    assert profile.location.state == "Goa"


def test_record_infers_profile(clock):
    store = _store(clock)
    session = store.resolve(None)

    store.append_exchange(session.id, "I do handicraft work in Rajasthan", "Great!")

    assert session.profile.business_type == "handicraft"
    assert session.profile.location.state == "Rajasthan"


def test_extract_mentioned_ids(schemes, scheme_by_name):
    text = "You could look at Stand-Up India or the Zero Defect Certification."

    mentioned = extract_mentioned_ids(text, schemes)

    assert mentioned == [scheme_by_name["Stand-Up India"].id, scheme_by_name["Zero Defect Certification"].id]
    assert extract_mentioned_ids("", schemes) == []


def test_follow_up_questions(clock):
    store = _store(clock)
    session = store.resolve(None)

    assert follow_up_questions(session, "You can get a loan") == [
        "What type of business are you running or planning to start?",
        "Which state are you located in?",
        "Is this a new business or an existing one?",
    ]

    session.profile = UserProfile(business_type="retail", business_stage="new", location=Location(state="Goa"))
    assert follow_up_questions(session, "Check eligibility before the application for a loan") == [
        "How much funding do you need?",
        "Would you like me to check your eligibility for specific schemes?",
        "Do you need help with the application process?",
    ]


def test_quick_suggestions(clock, schemes, scheme_by_name):
    store = _store(clock)
    session = store.resolve(None)

    assert [s.id for s in quick_suggestions(session, schemes)] == [s.id for s in schemes[:3]]

    session.profile = UserProfile(gender="female")
    assert quick_suggestions(session, schemes)[0].id == scheme_by_name["Stand-Up India"].id


def test_recommendations_pair_loans_with_subsidies(clock, schemes, scheme_by_name):
    store = _store(clock)
    session = store.resolve(None, UserProfile(gender="female"))

    picks = recommendations(session, schemes)

    assert [s.id for s in picks.primary] == [scheme_by_name["Stand-Up India"].id]
    assert [s.id for s in picks.complementary] == [scheme_by_name["Margin Money Subsidy Scheme"].id]
    listed = {s.id for s in picks.primary} | {s.id for s in picks.complementary}
    assert len(picks.trending) == 3
    assert not listed & {s.id for s in picks.trending}


def test_summary_is_read_only_and_rendered(clock, schemes, scheme_by_name):
    store = _store(clock)
    session = store.resolve(None)
    stand_up = scheme_by_name["Stand-Up India"]
    store.append_exchange(session.id, "I need a loan for my bakery.", "Stand-Up India could help.", [stand_up.id])
    history_before = [turn.model_copy() for turn in session.history]

    summary = summarize_session(session, schemes)

    assert summary.interested_schemes == [stand_up.id]
    assert summary.scheme_names == ["Stand-Up India"]
    assert summary.requirements == ["a loan for my bakery"]
    assert summary.next_steps == [
        "Define your business type and industry",
        "Provide your business location for state-specific schemes",
        "Decide how much funding you need",
    ]
    assert summary.markdown.startswith("## Conversation Summary")
    assert "**Schemes Discussed:**\n- Stand-Up India" in summary.markdown
    assert session.history == history_before


def test_summary_without_history(clock, schemes):
    store = _store(clock)
    session = store.resolve(None)

    summary = summarize_session(session, schemes)

    assert summary.markdown == "No conversation history available."
    assert summary.interested_schemes == []
