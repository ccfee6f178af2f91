from mitr.models import ChatRole, HistoryTurn, Location, SchemeCategory, UserProfile
from mitr.services.ranking import (
    extract_intent,
    lexical_score,
    mentioned_scheme_ids,
    profile_affinity,
    rank_schemes,
    tokenize,
)

RURAL_LOAN_QUERY = "I need a loan of 10 lakhs for my rural manufacturing unit"


def test_tokenize_drops_short_tokens_and_punctuation():
    assert tokenize("I need a Loan!") == ["need", "loan"]
    assert tokenize("") == []


def test_extract_intent():
    intent = extract_intent("I need a loan of 10 lakhs urgently, online please")

    assert intent.search_terms == ("loan",)
    assert intent.categories == (SchemeCategory.LOAN,)
    assert intent.amount_needed == 1_000_000
    assert intent.is_urgent is True
    assert intent.prefers_online is True
    assert intent.prefers_subsidy is False


def test_lexical_score_components(scheme_by_name):
    scheme = scheme_by_name["Rural Enterprise Loan"]

    # Full name match (+10) plus summary substring (+5)
    assert lexical_score(scheme, "Rural Enterprise Loan") == 15
    # Half the query tokens overlap the name
    assert lexical_score(scheme, "rural bakery") == 2.5
    assert lexical_score(scheme, "") == 0


def test_profile_affinity_needs_known_location(scheme_by_name):
    rural = scheme_by_name["Rural Enterprise Loan"]

    assert profile_affinity(rural, None) == 0
    assert profile_affinity(rural, UserProfile(location=Location(state="Bihar"))) == 0
    assert profile_affinity(rural, UserProfile(location=Location(is_rural=True))) == 3


def test_rural_loan_outranks_urban_twin(schemes, scheme_by_name):
    profile = UserProfile(location=Location(is_rural=True))

    ranked = rank_schemes(schemes, RURAL_LOAN_QUERY, profile)
    ids = [scheme.id for scheme in ranked]

    rural = scheme_by_name["Rural Enterprise Loan"]
    urban = scheme_by_name["Urban Enterprise Loan"]
    # The urban twin sits earlier in the catalog, so popularity alone favours it
    assert urban.popularity_rank < rural.popularity_rank
    assert ids.index(rural.id) < ids.index(urban.id)


def test_ranking_is_deterministic_and_pure(schemes):
    profile = UserProfile(gender="female", location=Location(is_rural=True))
    before = list(schemes)

    first = rank_schemes(schemes, RURAL_LOAN_QUERY, profile)
    second = rank_schemes(schemes, RURAL_LOAN_QUERY, profile)

    assert [scheme.id for scheme in first] == [scheme.id for scheme in second]
    assert schemes == before


def test_women_profile_surfaces_targeted_scheme(schemes):
    ranked = rank_schemes(schemes, "hello there", UserProfile(gender="female"))
    assert ranked[0].name == "Stand-Up India"


def test_no_signal_falls_back_to_popularity_order(schemes):
    ranked = rank_schemes(schemes, "hello there")
    assert [scheme.id for scheme in ranked] == [scheme.id for scheme in schemes]


def test_output_has_no_duplicate_ids(schemes):
    ranked = rank_schemes(list(schemes) + list(schemes), "hello there")
    ids = [scheme.id for scheme in ranked]
    assert len(ids) == len(set(ids)) == len(schemes)


def test_previously_mentioned_schemes_are_kept(schemes, scheme_by_name):
    certification = scheme_by_name["Zero Defect Certification"]
    history = [
        HistoryTurn(role=ChatRole.USER, content="Tell me about quality certification"),
        HistoryTurn(role=ChatRole.ASSISTANT, content="Zero Defect Certification helps.", mentioned_ids=[certification.id]),
    ]

    without_history = [scheme.id for scheme in rank_schemes(schemes, "loan")]
    with_history = [scheme.id for scheme in rank_schemes(schemes, "loan", history=history)]

    assert certification.id not in without_history
    assert certification.id in with_history


def test_subsidy_preference_rewards_higher_percentages(schemes, scheme_by_name):
    ranked = rank_schemes(schemes, "which subsidy is best")
    assert ranked[0].id == scheme_by_name["Margin Money Subsidy Scheme"].id


def test_history_mentions_do_not_narrow_a_no_signal_turn(schemes, scheme_by_name):
    certification = scheme_by_name["Zero Defect Certification"]
    history = [
        HistoryTurn(role=ChatRole.ASSISTANT, content="Zero Defect Certification helps.", mentioned_ids=[certification.id]),
    ]

    ranked = rank_schemes(schemes, "hello there", history=history)
    ids = [scheme.id for scheme in ranked]

    assert len(ids) == len(schemes)
    assert set(ids) == {scheme.id for scheme in schemes}
    assert certification.id in ids


def test_mentioned_scheme_ids_are_distinct_in_first_mention_order():
    history = [
        HistoryTurn(role=ChatRole.ASSISTANT, content="a", mentioned_ids=["b-1", "a-0"]),
        HistoryTurn(role=ChatRole.USER, content="tell me more"),
        HistoryTurn(role=ChatRole.ASSISTANT, content="b", mentioned_ids=["a-0", "c-2"]),
    ]

    assert mentioned_scheme_ids(history) == ["b-1", "a-0", "c-2"]
    assert mentioned_scheme_ids(None) == []
