"""Budget-aware selection and rendering of ranked schemes for the model prompt."""

from __future__ import annotations

import json
import math
from collections.abc import Sequence
from dataclasses import dataclass

from mitr.models import ContextFormat, Scheme
from mitr.services.scheme_processor import format_amount, format_number

# Upper token bound of each format tier, smallest first. Anything larger is JSON.
FORMAT_LIMITS: tuple[tuple[int, ContextFormat], ...] = (
    (1000, ContextFormat.MINIMAL),
    (2500, ContextFormat.STRUCTURED),
    (5000, ContextFormat.MARKDOWN),
)

TOKENS_PER_SCHEME: dict[ContextFormat, int] = {
    ContextFormat.MINIMAL: 50,
    ContextFormat.STRUCTURED: 150,
    ContextFormat.MARKDOWN: 300,
    ContextFormat.JSON: 600,
}

# Share of the budget available to the scheme block, as a fraction.
CONTEXT_SHARE_NUMERATOR = 3
CONTEXT_SHARE_DENOMINATOR = 5

CHARS_PER_TOKEN = 4


@dataclass(frozen=True)
class AssembledContext:
    schemes: tuple[Scheme, ...]
    format: ContextFormat
    token_budget: int
    include_all: bool = False


def select_format(token_budget: int) -> ContextFormat:
    for limit, fmt in FORMAT_LIMITS:
        if token_budget <= limit:
            return fmt
    return ContextFormat.JSON


def max_schemes_for(token_budget: int, fmt: ContextFormat) -> int:
    """floor(60% of the budget / per-scheme cost), never negative."""
    cost = TOKENS_PER_SCHEME[fmt]
    return max(0, (token_budget * CONTEXT_SHARE_NUMERATOR) // (CONTEXT_SHARE_DENOMINATOR * cost))


def assemble(
    ranked: Sequence[Scheme],
    token_budget: int,
    include_all: bool = False,
    catalog: Sequence[Scheme] | None = None,
) -> AssembledContext:
    """
    Trim schemes to what fits in ``token_budget`` and pick the format tier.

    With ``include_all`` the unranked ``catalog`` (falling back to
    ``ranked`` when no catalog is given) goes through the same truncation.
    """
    fmt = select_format(token_budget)
    pool = (catalog if catalog is not None else ranked) if include_all else ranked
    limit = max_schemes_for(token_budget, fmt)
    return AssembledContext(
        schemes=tuple(pool[: min(limit, len(pool))]),
        format=fmt,
        token_budget=token_budget,
        include_all=include_all,
    )


# ── Renderers ──

def render_json(schemes: Sequence[Scheme]) -> str:
    payload = []
    for scheme in schemes:
        item: dict[str, object] = {
            "id": scheme.id,
            "name": scheme.name,
            "category": scheme.category.value,
            "summary": scheme.summary,
            "keyBenefits": list(scheme.key_benefits[:2]),
            "eligibility": list(scheme.eligibility_criteria[:2]),
        }
        financial = scheme.financial_details
        if financial is not None:
            subsidy = financial.subsidy_percentage
            item["financial"] = {
                "maxLoan": financial.loan_amount.max if financial.loan_amount else None,
                "subsidy": subsidy.model_dump() if subsidy else None,
            }
        item["url"] = scheme.url
        payload.append(item)
    return json.dumps(payload, indent=2, ensure_ascii=False)


def render_markdown(schemes: Sequence[Scheme]) -> str:
    sections = []
    for scheme in schemes:
        lines = [
            f"### {scheme.name}",
            f"**Category:** {scheme.category.value}",
            f"**Summary:** {scheme.summary}",
        ]
        if scheme.key_benefits:
            lines.append("**Key Benefits:**")
            lines.extend(f"- {benefit}" for benefit in scheme.key_benefits[:3])
        if scheme.eligibility_criteria:
            lines.append("**Eligibility:**")
            lines.extend(f"- {criterion}" for criterion in scheme.eligibility_criteria[:2])

        financial = scheme.financial_details
        if financial is not None:
            if financial.loan_amount and financial.loan_amount.max:
                lines.append(f"**Max Loan:** ₹{format_amount(financial.loan_amount.max)}")
            if financial.subsidy_percentage:
                subsidy = financial.subsidy_percentage
                lines.append(
                    f"**Subsidy:** Urban {format_number(subsidy.urban)}%, Rural {format_number(subsidy.rural)}%"
                )

        lines.append(f"**Apply:** {scheme.url}")
        sections.append("\n".join(lines) + "\n\n")
    return "---\n\n".join(sections)


def render_structured(schemes: Sequence[Scheme]) -> str:
    blocks = []
    for index, scheme in enumerate(schemes, start=1):
        lines = [
            f"[Scheme {index}]",
            f"Name: {scheme.name}",
            f"Type: {scheme.category.value}",
            f"For: {', '.join(scheme.target_audience[:2])}",
            f"Benefits: {scheme.key_benefits[0] if scheme.key_benefits else 'Various benefits available'}",
            f"Eligibility: {scheme.eligibility_criteria[0] if scheme.eligibility_criteria else 'Check detailed eligibility'}",
        ]
        financial = scheme.financial_details
        if financial is not None and financial.loan_amount is not None:
            lines.append(f"Funding: Up to ₹{format_amount(financial.loan_amount.max or 0)}")
        lines.append(f"Link: {scheme.url}")
        blocks.append("\n".join(lines) + "\n")
    return "\n".join(blocks)


def render_minimal(schemes: Sequence[Scheme]) -> str:
    return "\n".join(f"{scheme.minimal_context} | Apply: {scheme.url}" for scheme in schemes)


_RENDERERS = {
    ContextFormat.JSON: render_json,
    ContextFormat.MARKDOWN: render_markdown,
    ContextFormat.STRUCTURED: render_structured,
    ContextFormat.MINIMAL: render_minimal,
}


def render(schemes: Sequence[Scheme], fmt: ContextFormat) -> str:
    return _RENDERERS[ContextFormat(fmt)](schemes)


def digest(schemes: Sequence[Scheme], k: int = 5) -> str:
    """Minimal summaries of the first ``k`` schemes, one per line."""
    return "\n".join(scheme.minimal_context for scheme in schemes[: max(0, k)])


def estimate_tokens(text: str) -> int:
    """Character-based approximation: ceil(len / 4)."""
    return math.ceil(len(text or "") / CHARS_PER_TOKEN)
