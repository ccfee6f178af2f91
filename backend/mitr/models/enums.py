"""
Enum definitions for the MSME Mitr context engine.

Audience labels are plain strings so catalogs can introduce new groups.
"""
from enum import Enum


class SchemeCategory(str, Enum):
    """Primary benefit type of a scheme, derived from its tags."""
    LOAN = "loan"
    SUBSIDY = "subsidy"
    GRANT = "grant"
    TRAINING = "training"
    TECHNOLOGY = "technology"
    MARKETING = "marketing"
    CERTIFICATION = "certification"
    MIXED = "mixed"


class ContextFormat(str, Enum):
    """Rendering tier for the scheme block handed to the model."""
    MINIMAL = "minimal"
    STRUCTURED = "structured"
    MARKDOWN = "markdown"
    JSON = "json"


class ChatRole(str, Enum):
    """Speaker of a history turn."""
    USER = "user"
    ASSISTANT = "assistant"


def normalize_text(value: str | None) -> str:
    """
    Collapse whitespace and strip a free-text value.

    Examples:
        "  Credit\\n Guarantee " -> "Credit Guarantee"
        None -> ""
    """
    return " ".join(str(value or "").split())
