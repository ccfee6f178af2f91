"""Scheme domain models: raw catalog records and processed schemes."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mitr.models.enums import SchemeCategory


class SchemeSource(BaseModel):
    """A cited source page for a scheme."""
    model_config = ConfigDict(frozen=True)

    text: str = ""
    url: str = ""


class ApplicationProcess(BaseModel):
    """Application instructions as scraped from the scheme page."""
    model_config = ConfigDict(frozen=True)

    content: str = ""
    has_tabs: bool = False

    @field_validator("content", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class RawScheme(BaseModel):
    """
    One scheme record exactly as it appears in the catalog dump.

    Missing or null text sections become empty values so extraction never
    has to guard against None.
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    scheme_name: str
    scheme_url: str = ""
    ministry: str = ""
    description: str = ""
    tags: tuple[str, ...] = ()
    details: str = ""
    benefits: str = ""
    eligibility: str = ""
    application_process: ApplicationProcess = Field(default_factory=ApplicationProcess)
    documents_required: Optional[str] = None
    faqs: Optional[str] = None
    sources: tuple[SchemeSource, ...] = ()

    @field_validator(
        "scheme_url", "ministry", "description", "details", "benefits", "eligibility",
        mode="before",
    )
    @classmethod
    def _text_or_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("tags", "sources", mode="before")
    @classmethod
    def _list_or_empty(cls, value: Any) -> Any:
        return () if value is None else value

    @field_validator("tags", mode="after")
    @classmethod
    def _strip_tags(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(tag.strip() for tag in value if tag and tag.strip())

    @field_validator("application_process", mode="before")
    @classmethod
    def _coerce_process(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, str):
            return {"content": value}
        return value


class AmountRange(BaseModel):
    """Loan amount bounds in rupees."""
    model_config = ConfigDict(frozen=True)

    min: Optional[float] = None
    max: Optional[float] = None


class SubsidyPercentage(BaseModel):
    """Subsidy share by location type."""
    model_config = ConfigDict(frozen=True)

    urban: Optional[float] = None
    rural: Optional[float] = None

    @property
    def highest(self) -> float:
        return max(self.urban or 0.0, self.rural or 0.0)


class FinancialDetails(BaseModel):
    """Financial figures extracted from free text."""
    model_config = ConfigDict(frozen=True)

    loan_amount: Optional[AmountRange] = None
    subsidy_percentage: Optional[SubsidyPercentage] = None
    collateral_required: Optional[bool] = None


class Scheme(BaseModel):
    """
    A processed scheme ready for ranking and rendering.

    Built once per raw record by ``process_scheme`` and never mutated; the
    two context strings are precomputed so renderers reuse them verbatim.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    short_name: str
    url: str = ""
    ministry: str = ""
    summary: str = ""
    full_description: str = ""
    category: SchemeCategory = SchemeCategory.MIXED
    tags: tuple[str, ...] = ()
    target_audience: tuple[str, ...] = ()
    key_benefits: tuple[str, ...] = ()
    eligibility_criteria: tuple[str, ...] = ()
    financial_details: Optional[FinancialDetails] = None
    application_steps: tuple[str, ...] = ()
    documents_needed: tuple[str, ...] = ()
    online_application: bool = False
    application_urls: tuple[str, ...] = ()
    minimal_context: str = ""
    detailed_context: str = ""
    popularity_rank: int = 1
