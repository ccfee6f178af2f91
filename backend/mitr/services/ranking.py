"""Deterministic, rule-based relevance ranking of schemes for one chat turn."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Optional

from mitr.models import HistoryTurn, Scheme, SchemeCategory, UserProfile

NAME_MATCH_SCORE = 10.0
NAME_TOKEN_WEIGHT = 5.0
SUMMARY_MATCH_SCORE = 5.0
TAG_MATCH_SCORE = 7.0
BENEFIT_MATCH_SCORE = 4.0
ELIGIBILITY_MATCH_SCORE = 3.0
AUDIENCE_MATCH_SCORE = 6.0

PROFILE_WEIGHT = 2.0
LEXICAL_HIT_BONUS = 5.0
INTENT_CATEGORY_BONUS = 2.0
ONLINE_BONUS = 3.0
POPULARITY_PIVOT = 11
POPULARITY_WEIGHT = 0.5

CANDIDATES_PER_STRATEGY = 3

INTENT_SEARCH_KEYWORDS: tuple[str, ...] = (
    "pmegp",
    "loan",
    "subsidy",
    "grant",
    "training",
    "women",
    "startup",
    "rural",
    "technology",
    "export",
)
INTENT_CATEGORY_KEYWORDS: tuple[tuple[SchemeCategory, tuple[str, ...]], ...] = (
    (SchemeCategory.LOAN, ("loan", "credit")),
    (SchemeCategory.SUBSIDY, ("subsidy",)),
    (SchemeCategory.TRAINING, ("training", "skill")),
)

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_AMOUNT_NEEDED = re.compile(r"₹?\s*(\d+(?:\.\d+)?)\s*(lakhs?|lacs?|crores?|cr)?\b", re.IGNORECASE)


@dataclass(frozen=True)
class QueryIntent:
    search_terms: tuple[str, ...] = ()
    categories: tuple[SchemeCategory, ...] = ()
    amount_needed: Optional[float] = None
    is_urgent: bool = False
    prefers_online: bool = False
    prefers_subsidy: bool = False


def tokenize(text: str) -> list[str]:
    cleaned = _NON_ALNUM.sub("", (text or "").lower())
    return [token for token in cleaned.split() if len(token) > 2]


def token_overlap_ratio(field_tokens: Sequence[str], query_tokens: Sequence[str]) -> float:
    """Share of query tokens that overlap (either way round) some field token."""
    if not query_tokens:
        return 0.0
    matches = sum(
        1
        for query_token in query_tokens
        if any(field_token in query_token or query_token in field_token for field_token in field_tokens)
    )
    return matches / len(query_tokens)


def extract_intent(query: str) -> QueryIntent:
    lowered = (query or "").lower()

    search_terms = tuple(keyword for keyword in INTENT_SEARCH_KEYWORDS if keyword in lowered)
    categories = tuple(
        category
        for category, keywords in INTENT_CATEGORY_KEYWORDS
        if any(keyword in lowered for keyword in keywords)
    )

    amount_needed: float | None = None
    for match in _AMOUNT_NEEDED.finditer(query or ""):
        unit = (match.group(2) or "").lower()
        if not unit and "₹" not in match.group(0):
            continue
        amount = float(match.group(1))
        if unit.startswith("l"):
            amount *= 1e5
        elif unit.startswith("cr"):
            amount *= 1e7
        amount_needed = amount
        break

    return QueryIntent(
        search_terms=search_terms,
        categories=categories,
        amount_needed=amount_needed,
        is_urgent="urgent" in lowered or "immediate" in lowered,
        prefers_online="online" in lowered,
        prefers_subsidy="subsidy" in lowered,
    )


def lexical_score(scheme: Scheme, query: str) -> float:
    needle = (query or "").strip().lower()
    if not needle:
        return 0.0

    score = 0.0
    if needle in scheme.name.lower():
        score += NAME_MATCH_SCORE
    else:
        score += NAME_TOKEN_WEIGHT * token_overlap_ratio(tokenize(scheme.name), tokenize(needle))

    if needle in scheme.summary.lower():
        score += SUMMARY_MATCH_SCORE
    if any(needle in tag.lower() for tag in scheme.tags):
        score += TAG_MATCH_SCORE
    if any(needle in benefit.lower() for benefit in scheme.key_benefits):
        score += BENEFIT_MATCH_SCORE
    if any(needle in criterion.lower() for criterion in scheme.eligibility_criteria):
        score += ELIGIBILITY_MATCH_SCORE
    if any(needle in audience.lower() for audience in scheme.target_audience):
        score += AUDIENCE_MATCH_SCORE
    return score


def profile_affinity(scheme: Scheme, profile: UserProfile | None) -> float:
    if profile is None:
        return 0.0

    audience = scheme.target_audience
    score = 0.0

    location = profile.location
    if location is not None and location.is_rural is not None:
        if location.is_rural and "Rural Enterprises" in audience:
            score += 3
        if not location.is_rural and "Urban Enterprises" in audience:
            score += 2

    if profile.category and any(profile.category in entry for entry in audience):
        score += 5

    if (profile.gender or "").lower() == "female" and "Women Entrepreneurs" in audience:
        score += 5

    if profile.business_stage == "new" and "New Entrepreneurs" in audience:
        score += 4
    if profile.business_stage == "existing" and "Existing Businesses" in audience:
        score += 4

    if profile.interests:
        tags = [tag.lower() for tag in scheme.tags]
        if any(interest.lower() in tag for interest in profile.interests if interest for tag in tags):
            score += 2

    if profile.business_type:
        business_type = profile.business_type.lower()
        if any(business_type in entry.lower() for entry in audience):
            score += 3

    return score


def intent_bonus(scheme: Scheme, intent: QueryIntent) -> float:
    score = 0.0
    if scheme.category in intent.categories:
        score += INTENT_CATEGORY_BONUS
    if intent.prefers_online and scheme.online_application:
        score += ONLINE_BONUS
    financial = scheme.financial_details
    if intent.prefers_subsidy and financial is not None and financial.subsidy_percentage is not None:
        score += financial.subsidy_percentage.highest / 10
    return score


def popularity_score(scheme: Scheme) -> float:
    return (POPULARITY_PIVOT - scheme.popularity_rank) * POPULARITY_WEIGHT


def final_score(scheme: Scheme, query: str, profile: UserProfile | None, intent: QueryIntent) -> float:
    score = 0.0
    score += PROFILE_WEIGHT * profile_affinity(scheme, profile)
    if lexical_score(scheme, query) > 0:
        score += LEXICAL_HIT_BONUS
    score += intent_bonus(scheme, intent)
    score += popularity_score(scheme)
    return score


def mentioned_scheme_ids(history: Iterable[HistoryTurn] | None) -> list[str]:
    """Distinct scheme ids mentioned across the history, in order of first mention."""
    seen: dict[str, None] = {}
    for turn in history or ():
        for scheme_id in turn.mentioned_ids:
            seen.setdefault(scheme_id, None)
    return list(seen)


def search_schemes(schemes: Sequence[Scheme], query: str) -> list[Scheme]:
    """Schemes with any lexical match, best first."""
    scored = [(lexical_score(scheme, query), scheme) for scheme in schemes]
    matches = [item for item in scored if item[0] > 0]
    matches.sort(key=lambda item: -item[0])
    return [scheme for _, scheme in matches]


def schemes_for_profile(schemes: Sequence[Scheme], profile: UserProfile | None) -> list[Scheme]:
    """Schemes with positive profile affinity, best first."""
    scored = [(profile_affinity(scheme, profile), scheme) for scheme in schemes]
    matches = [item for item in scored if item[0] > 0]
    matches.sort(key=lambda item: -item[0])
    return [scheme for _, scheme in matches]


def gather_candidates(
    schemes: Sequence[Scheme],
    query: str,
    profile: UserProfile | None,
    history: Sequence[HistoryTurn] | None,
    intent: QueryIntent,
) -> list[Scheme]:
    candidates: list[Scheme] = []

    search_query = " ".join(intent.search_terms) or (query or "").strip()
    if search_query:
        candidates.extend(search_schemes(schemes, search_query))

    if profile is not None:
        candidates.extend(schemes_for_profile(schemes, profile)[:CANDIDATES_PER_STRATEGY])

    if intent.categories:
        in_category = [scheme for scheme in schemes if scheme.category in intent.categories]
        candidates.extend(in_category[:CANDIDATES_PER_STRATEGY])

    # Mentions from history extend the candidate set, never narrow it.
    if not candidates:
        candidates = list(schemes)

    by_id = {scheme.id: scheme for scheme in reversed(schemes)}
    for scheme_id in mentioned_scheme_ids(history):
        scheme = by_id.get(scheme_id)
        if scheme is not None:
            candidates.append(scheme)
    return dedupe_schemes(candidates)


def dedupe_schemes(schemes: Iterable[Scheme]) -> list[Scheme]:
    seen: set[str] = set()
    unique: list[Scheme] = []
    for scheme in schemes:
        if scheme.id in seen:
            continue
        seen.add(scheme.id)
        unique.append(scheme)
    return unique


def rank_schemes(
    schemes: Sequence[Scheme],
    query: str,
    profile: UserProfile | None = None,
    history: Sequence[HistoryTurn] | None = None,
) -> list[Scheme]:
    """
    Order the schemes most relevant to this turn, best first.

    Pure and deterministic: the inputs are not mutated, ties keep the
    catalog's popularity order and every id appears at most once.
    """
    intent = extract_intent(query)
    candidates = gather_candidates(schemes, query, profile, history, intent)
    scored = [
        (final_score(scheme, query, profile, intent), scheme.popularity_rank, scheme)
        for scheme in candidates
    ]
    scored.sort(key=lambda item: (-item[0], item[1]))
    return [scheme for _, _, scheme in scored]
