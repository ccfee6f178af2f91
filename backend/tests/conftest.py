# conftest.py
# Small in-memory catalogs and a controllable clock shared by the tests.

from datetime import datetime, timedelta, timezone

import pytest

from mitr.models import RawScheme
from mitr.services.scheme_processor import process_catalog


def make_raw(
    name,
    tags=(),
    benefits="",
    eligibility="",
    details="",
    description="",
    process="",
    documents=None,
    url=None,
):
    return {
        "scheme_name": name,
        "scheme_url": url if url is not None else f"https://schemes.example.in/{name.lower().replace(' ', '-')}",
        "ministry": "Ministry Of Micro, Small and Medium Enterprises",
        "description": description or f"{name} supports micro and small enterprises.",
        "tags": list(tags),
        "details": details,
        "benefits": benefits,
        "eligibility": eligibility,
        "application_process": {"content": process, "has_tabs": False},
        "documents_required": documents,
        "faqs": None,
        "sources": [],
    }


SAMPLE_RECORDS = [
    make_raw(
        "Urban Enterprise Loan",
        tags=["Loan"],
        benefits="Term loan for units in urban areas.",
        eligibility="Enterprises must be located in urban areas.",
    ),
    make_raw(
        "Rural Enterprise Loan",
        tags=["Loan"],
        benefits="Term loan for units in rural areas.",
        eligibility="Enterprises must be located in rural areas.",
    ),
    make_raw(
        "Margin Money Subsidy Scheme",
        tags=["Subsidy"],
        benefits="35% subsidy in rural areas. 25% in urban.",
        eligibility="Applicants must be above 18 years of age.",
    ),
    make_raw(
        "Stand-Up India",
        tags=["Loan", "Women", "SC/ST"],
        benefits="Bank loans between ₹10 lakh and ₹1 crore for greenfield enterprises.",
        eligibility="SC/ST and women entrepreneurs above 18 years of age.",
        process="Apply online at the Stand-Up Mitra portal https://www.standupmitra.in/apply.",
        documents="Caste Certificate, Project Report, PAN",
    ),
    make_raw(
        "Entrepreneurship Skill Programme",
        tags=["Training"],
        benefits="Free skill training for startups.",
        eligibility="Youth above 18 years are eligible.",
    ),
    make_raw(
        "Zero Defect Certification",
        tags=["Certification"],
        benefits="Subsidy on certification cost.",
        eligibility="All registered units are eligible.",
    ),
]


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start=None):
        self.now = start or datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now = self.now + timedelta(seconds=seconds)


class FakeMonotonic:
    def __init__(self):
        self.value = 1000.0

    def __call__(self):
        return self.value

    def advance(self, seconds):
        self.value += seconds


@pytest.fixture
def raw_records():
    return [dict(record) for record in SAMPLE_RECORDS]


@pytest.fixture
def raw_schemes(raw_records):
    return [RawScheme.model_validate(record) for record in raw_records]


@pytest.fixture
def schemes(raw_schemes):
    return process_catalog(raw_schemes)


@pytest.fixture
def scheme_by_name(schemes):
    return {scheme.name: scheme for scheme in schemes}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def monotonic():
    return FakeMonotonic()
