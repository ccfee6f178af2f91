"""Turn raw catalog records into structured, render-ready schemes.

Every helper here is a pure function over text. None of them raise on
missing or oddly formatted input: absent sections degrade to empty values.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from mitr.models import (
    AmountRange,
    FinancialDetails,
    RawScheme,
    Scheme,
    SchemeCategory,
    SubsidyPercentage,
    normalize_text,
)

MAX_LIST_ITEMS = 5
MAX_LINE_CHARS = 200
MIN_LINE_CHARS = 10
SUMMARY_MAX_CHARS = 150

KNOWN_ACRONYMS: tuple[str, ...] = ("PMEGP", "CGTMSE", "CLCSS")

# Checked in order; the first category with a matching keyword wins.
CATEGORY_KEYWORDS: tuple[tuple[SchemeCategory, tuple[str, ...]], ...] = (
    (SchemeCategory.LOAN, ("loan", "credit")),
    (SchemeCategory.SUBSIDY, ("subsidy", "margin money")),
    (SchemeCategory.TRAINING, ("training", "skill")),
    (SchemeCategory.GRANT, ("grant",)),
    (SchemeCategory.TECHNOLOGY, ("technology", "upgradation")),
    (SchemeCategory.MARKETING, ("marketing",)),
    (SchemeCategory.CERTIFICATION, ("certification", "quality")),
)

DEFAULT_AUDIENCE = "All MSMEs"
AUDIENCE_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("Women Entrepreneurs", re.compile(r"\bwom[ae]n\b")),
    ("SC/ST", re.compile(r"\bsc\b|\bst\b|scheduled (?:caste|tribe)")),
    ("OBC", re.compile(r"\bobc\b")),
    ("Minorities", re.compile(r"\bminorit")),
    ("Rural Enterprises", re.compile(r"\brural\b")),
    ("Urban Enterprises", re.compile(r"\burban\b")),
    ("New Entrepreneurs", re.compile(r"new enterprise|start-?ups?\b")),
    ("Existing Businesses", re.compile(r"\bexisting\b")),
    ("Micro Enterprises", re.compile(r"\bmicro\b")),
    ("Small Enterprises", re.compile(r"\bsmall\b")),
    ("Medium Enterprises", re.compile(r"\bmedium\b")),
)

COMMON_DOCUMENTS: tuple[str, ...] = (
    "Aadhaar",
    "PAN",
    "GST",
    "Bank Statement",
    "Project Report",
    "Address Proof",
    "Identity Proof",
    "Caste Certificate",
    "Income Certificate",
    "Educational Certificate",
)

_NUMBERED_LINE = re.compile(r"^\d+[.)]\s+")
_BULLET_LINE = re.compile(r"^[•\-*]\s+")
_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")
_BENEFIT_KEYWORDS = re.compile(r"subsidy|loan|grant|assistance|support|training|benefit", re.IGNORECASE)
_ELIGIBILITY_KEYWORDS = re.compile(r"years|age|must|should|eligible|required|require", re.IGNORECASE)
_NEGATIVE_LIST = re.compile(r"negative list|not eligible", re.IGNORECASE)

_AMOUNT_PATTERN = re.compile(
    r"(?P<currency>₹|\brs\.?|\binr)?\s*"
    r"(?P<number>\d+(?:,\d+)*(?:\.\d+)?)\s*"
    r"(?P<unit>thousand|lakhs?|lacs?|crores?|cr)?\b",
    re.IGNORECASE,
)
_UNIT_MULTIPLIERS: dict[str, float] = {
    "thousand": 1e3,
    "lakh": 1e5,
    "lakhs": 1e5,
    "lac": 1e5,
    "lacs": 1e5,
    "crore": 1e7,
    "crores": 1e7,
    "cr": 1e7,
}
_PERCENT_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*%")
_CLAUSE_SPLIT = re.compile(r"(?<!\d)\.(?!\d)|[;,\n]|\band\b", re.IGNORECASE)
_LOCATION_PATTERN = re.compile(r"\b(?:urban|rural)\b", re.IGNORECASE)
_COLLATERAL_FREE = re.compile(r"collateral[\s-]free|no collateral|without (?:any )?collateral", re.IGNORECASE)

_STEP_LINE = re.compile(r"^\s*\d+[.)]\s*(\S.*)$", re.MULTILINE)
_STEP_VERBS = ("Visit", "Click", "Apply", "Submit", "Fill", "Upload")
_URL_PATTERN = re.compile(r"https?://[^\s)\]>\"']+")


# ── Identity ──

def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def make_scheme_id(name: str, position: int) -> str:
    """Slug of the name plus the record's catalog position."""
    return f"{slugify(name) or 'scheme'}-{position}"


def make_short_name(name: str) -> str:
    for acronym in KNOWN_ACRONYMS:
        if acronym in name:
            return acronym

    words = [word for word in re.split(r"[\s\-/]+", name) if word]
    acronym = "".join(word[0] for word in words if word[0].isalnum()).upper()
    if acronym and len(acronym) <= 6:
        return acronym
    return name[:20] + "..." if len(name) > 20 else name


# ── Classification ──

def categorize(tags: Iterable[str]) -> SchemeCategory:
    tag_text = " ".join(tags).lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in tag_text for keyword in keywords):
            return category
    return SchemeCategory.MIXED


def extract_target_audience(benefits: str, eligibility: str, tags: Iterable[str]) -> tuple[str, ...]:
    text = " ".join([benefits or "", eligibility or "", " ".join(tags)]).lower()
    audience = tuple(label for label, pattern in AUDIENCE_PATTERNS if pattern.search(text))
    return audience or (DEFAULT_AUDIENCE,)


# ── Lists from free text ──

def split_sentences(text: str) -> list[str]:
    sentences: list[str] = []
    for line in (text or "").splitlines():
        for sentence in _SENTENCE_SPLIT.split(line.strip()):
            sentence = sentence.strip()
            if sentence:
                sentences.append(sentence)
    return sentences


def first_sentence(text: str) -> str:
    """First sentence without its closing punctuation."""
    sentences = split_sentences(text)
    if not sentences:
        return ""
    return sentences[0].rstrip(".!? ").strip()


def _marked_lines(lines: Sequence[str]) -> list[str]:
    items: list[str] = []
    for line in lines:
        if _NUMBERED_LINE.match(line):
            items.append(_NUMBERED_LINE.sub("", line, count=1).strip())
        elif _BULLET_LINE.match(line):
            items.append(_BULLET_LINE.sub("", line, count=1).strip())
    return [item for item in items if item]


def _extract_items(text: str, keywords: re.Pattern[str], skip: re.Pattern[str] | None = None) -> list[str]:
    if not text or not text.strip():
        return []

    lines = [
        line.strip()
        for line in re.split(r"[\n\r]+", text)
        if len(line.strip()) > MIN_LINE_CHARS and not (skip and skip.search(line))
    ]

    items = _marked_lines(lines)
    if not items:
        items = [
            sentence
            for sentence in split_sentences("\n".join(lines))
            if keywords.search(sentence) and len(sentence) < MAX_LINE_CHARS
        ]
    if not items:
        items = split_sentences(text)[:3]
    return items[:MAX_LIST_ITEMS]


def extract_key_benefits(benefits_text: str) -> tuple[str, ...]:
    return tuple(_extract_items(benefits_text, _BENEFIT_KEYWORDS))


def extract_eligibility_criteria(eligibility_text: str) -> tuple[str, ...]:
    return tuple(_extract_items(eligibility_text, _ELIGIBILITY_KEYWORDS, skip=_NEGATIVE_LIST))


def extract_application_steps(process_text: str) -> tuple[str, ...]:
    steps = [match.group(1).strip() for match in _STEP_LINE.finditer(process_text or "")]
    if not steps:
        steps = [
            line.strip()
            for line in (process_text or "").splitlines()
            if line.strip() and any(verb in line for verb in _STEP_VERBS)
        ][:MAX_LIST_ITEMS]
    return tuple(steps)


def extract_documents(documents_text: str | None, process_text: str) -> tuple[str, ...]:
    text = f"{documents_text or ''} {process_text or ''}".lower()
    return tuple(doc for doc in COMMON_DOCUMENTS if doc.lower() in text)


def extract_application_urls(raw: RawScheme) -> tuple[str, ...]:
    urls = [raw.scheme_url] if raw.scheme_url else []
    urls.extend(match.rstrip(".,;") for match in _URL_PATTERN.findall(raw.application_process.content))
    urls.extend(source.url for source in raw.sources if source.url)
    return tuple(dict.fromkeys(urls))


# ── Money ──

def parse_amount(number: str, unit: str | None) -> float:
    try:
        value = float(number.replace(",", ""))
    except ValueError:
        return 0.0
    return value * _UNIT_MULTIPLIERS.get((unit or "").lower(), 1.0)


def extract_amounts(text: str) -> list[float]:
    """Rupee amounts mentioned with a currency marker or an Indian unit."""
    amounts: list[float] = []
    for match in _AMOUNT_PATTERN.finditer(text or ""):
        if not match.group("currency") and not match.group("unit"):
            continue
        amount = parse_amount(match.group("number"), match.group("unit"))
        if amount > 0:
            amounts.append(amount)
    return amounts


def _nearest_percent(
    keyword: re.Match, percents: list[re.Match], claimed: set[int]
) -> re.Match | None:
    """Closest percentage to the keyword, preferring unclaimed ones and then the one before it."""

    def gap(percent: re.Match) -> int:
        if percent.end() <= keyword.start():
            return keyword.start() - percent.end()
        return percent.start() - keyword.end()

    ranked = sorted(
        percents,
        key=lambda percent: (percent.start() in claimed, gap(percent), percent.start() > keyword.start()),
    )
    return ranked[0] if ranked else None


def _location_percentages(text: str) -> tuple[float | None, float | None]:
    found: dict[str, float] = {}

    # Each location keyword owns the nearest percentage in its own clause.
    for clause in _CLAUSE_SPLIT.split(text):
        percents = list(_PERCENT_PATTERN.finditer(clause))
        if not percents:
            continue
        claimed: set[int] = set()
        for keyword in _LOCATION_PATTERN.finditer(clause):
            location = keyword.group(0).lower()
            if location in found:
                continue
            percent = _nearest_percent(keyword, percents, claimed)
            if percent is None:
                continue
            claimed.add(percent.start())
            found[location] = float(percent.group(1))

    return found.get("urban"), found.get("rural")


def _subsidy_from_text(text: str) -> SubsidyPercentage | None:
    percentages = [float(value) for value in _PERCENT_PATTERN.findall(text or "")]
    if not percentages:
        return None

    lowered = text.lower()
    if "urban" in lowered and "rural" in lowered:
        urban, rural = _location_percentages(text)
        if urban is not None or rural is not None:
            return SubsidyPercentage(urban=urban, rural=rural)

    return SubsidyPercentage(urban=percentages[0], rural=percentages[0])


def _loan_range_from_text(text: str) -> AmountRange | None:
    amounts = extract_amounts(text)
    if not amounts:
        return None
    return AmountRange(min=min(amounts), max=max(amounts))


def extract_financial_details(details_text: str, benefits_text: str = "") -> FinancialDetails | None:
    """
    Pull loan range, subsidy split and collateral terms out of free text.

    The financial-details section is authoritative; the benefits text only
    fills facets the details section does not mention.
    """
    loan_amount = _loan_range_from_text(details_text) or _loan_range_from_text(benefits_text)
    subsidy = _subsidy_from_text(details_text) or _subsidy_from_text(benefits_text)

    collateral_required: bool | None = None
    if _COLLATERAL_FREE.search(f"{details_text or ''}\n{benefits_text or ''}"):
        collateral_required = False

    if loan_amount is None and subsidy is None and collateral_required is None:
        return None
    return FinancialDetails(
        loan_amount=loan_amount,
        subsidy_percentage=subsidy,
        collateral_required=collateral_required,
    )


def format_number(value: float | None) -> str:
    if value is None:
        return "?"
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def format_amount(amount: float) -> str:
    """Indian-unit shorthand: 2.5 Cr, 10.0 L, 50K."""
    if amount >= 1e7:
        return f"{amount / 1e7:.1f} Cr"
    if amount >= 1e5:
        return f"{amount / 1e5:.1f} L"
    if amount >= 1e3:
        return f"{amount / 1e3:.0f}K"
    return format_number(amount)


# ── Summaries ──

def summarize_description(description: str) -> str:
    text = normalize_text(description)
    match = re.match(r"^[^.!?]+[.!?]", text)
    sentence = match.group(0) if match else text
    if len(sentence) > SUMMARY_MAX_CHARS:
        return sentence[: SUMMARY_MAX_CHARS - 3] + "..."
    return sentence


def build_minimal_context(name: str, category: SchemeCategory, benefits: str, eligibility: str) -> str:
    text = f"{name} ({category.value})"
    key_benefit = first_sentence(benefits)
    main_eligibility = first_sentence(eligibility)
    if key_benefit:
        text += f": {key_benefit}."
    if main_eligibility:
        text += f" Eligibility: {main_eligibility}"
    return text


def build_detailed_context(
    raw: RawScheme,
    category: SchemeCategory,
    key_benefits: Sequence[str],
    eligibility: Sequence[str],
    financial: FinancialDetails | None,
) -> str:
    lines = [
        f"Scheme: {raw.scheme_name}",
        f"Ministry: {raw.ministry or 'Not specified'}",
        f"Category: {category.value}",
        f"Benefits: {'; '.join(key_benefits[:3])}",
        f"Eligibility: {'; '.join(eligibility[:3])}",
    ]
    if financial and financial.loan_amount:
        loan = financial.loan_amount
        lines.append(
            f"Loan Amount: ₹{format_amount(loan.min or 0)} - ₹{format_amount(loan.max or 0)}"
        )
    if financial and financial.subsidy_percentage:
        subsidy = financial.subsidy_percentage
        lines.append(
            f"Subsidy: Urban {format_number(subsidy.urban)}%, Rural {format_number(subsidy.rural)}%"
        )
    if financial and financial.collateral_required is False:
        lines.append("Collateral: Not required")
    lines.append(f"Apply: {raw.scheme_url}")
    return "\n".join(lines)


# ── Entry points ──

def process_scheme(raw: RawScheme, position: int) -> Scheme:
    """Build the processed scheme for the record at ``position`` in the catalog."""
    category = categorize(raw.tags)
    key_benefits = extract_key_benefits(raw.benefits)
    eligibility = extract_eligibility_criteria(raw.eligibility)
    financial = extract_financial_details(raw.details, raw.benefits)
    process_text = raw.application_process.content

    return Scheme(
        id=make_scheme_id(raw.scheme_name, position),
        name=raw.scheme_name,
        short_name=make_short_name(raw.scheme_name),
        url=raw.scheme_url,
        ministry=raw.ministry,
        summary=summarize_description(raw.description),
        full_description=raw.description,
        category=category,
        tags=raw.tags,
        target_audience=extract_target_audience(raw.benefits, raw.eligibility, raw.tags),
        key_benefits=key_benefits,
        eligibility_criteria=eligibility,
        financial_details=financial,
        application_steps=extract_application_steps(process_text),
        documents_needed=extract_documents(raw.documents_required, process_text),
        online_application="online" in process_text.lower(),
        application_urls=extract_application_urls(raw),
        minimal_context=build_minimal_context(raw.scheme_name, category, raw.benefits, raw.eligibility),
        detailed_context=build_detailed_context(raw, category, key_benefits, eligibility, financial),
        popularity_rank=position + 1,
    )


def process_catalog(raw_schemes: Iterable[RawScheme]) -> list[Scheme]:
    return [process_scheme(raw, position) for position, raw in enumerate(raw_schemes)]
