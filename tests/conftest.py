import re
from typing import Any, Dict, Iterable, List, Optional

import pytest

from startup_search.core.errors import ClassificationFailure
from startup_search.core.schemas import RankedHit, RetrieverRequest, StartupDocument
from startup_search.retrieval.catalog import ValueCatalog

STARTUPS: Dict[str, Dict[str, Any]] = {
    "payflow": {
        "company_name": "PayFlow",
        "industry": "fintech",
        "location": "San Francisco",
        "funding_stage": "Series A",
        "funding_amount": 12_000_000,
        "lead_investor": "Andreessen Horowitz",
        "monthly_revenue": 450_000,
        "employee_count": 60,
        "business_model": "B2B",
        "founded_year": 2021,
        "other_investors": ["Y Combinator"],
        "description": "Payments infrastructure for small business fintech teams",
    },
    "ledgerloop": {
        "company_name": "LedgerLoop",
        "industry": "fintech",
        "location": "New York",
        "funding_stage": "Series B",
        "funding_amount": 25_000_000,
        "lead_investor": "Sequoia Capital",
        "monthly_revenue": 900_000,
        "employee_count": 110,
        "business_model": "B2B",
        "founded_year": 2019,
        "description": "Accounting automation for mid-market finance teams",
    },
    "shipsmart": {
        "company_name": "ShipSmart",
        "industry": "logistics",
        "location": "San Francisco",
        "funding_stage": "Series A",
        "funding_amount": 8_000_000,
        "lead_investor": "Kleiner Perkins",
        "monthly_revenue": 300_000,
        "employee_count": 45,
        "business_model": "B2B2C",
        "founded_year": 2022,
        "description": "AI-powered supply chain optimization for retailers",
    },
    "medimind": {
        "company_name": "MediMind",
        "industry": "healthtech",
        "location": "Boston",
        "funding_stage": "Seed",
        "funding_amount": 2_000_000,
        "lead_investor": "Tiger Global Management",
        "monthly_revenue": 50_000,
        "employee_count": 12,
        "business_model": "B2C",
        "founded_year": 2023,
        "description": "Mental health companion app for students",
    },
    "coinnest": {
        "company_name": "CoinNest",
        "industry": "fintech",
        "location": "San Francisco",
        "funding_stage": "Series A",
        "funding_amount": 14_000_000,
        "lead_investor": "Andreessen Horowitz",
        "monthly_revenue": 380_000,
        "employee_count": 70,
        "business_model": "B2C",
        "founded_year": 2020,
        "description": "Savings and investing fintech app for young professionals",
    },
    "opspilot": {
        "company_name": "OpsPilot",
        "industry": "ai",
        "location": "Austin",
        "funding_stage": "Series C",
        "funding_amount": 40_000_000,
        "lead_investor": "Sequoia Capital",
        "monthly_revenue": 2_000_000,
        "employee_count": 220,
        "business_model": "B2B",
        "founded_year": 2018,
        "description": "Autonomous incident response for cloud operations",
    },
}

_TOKEN = re.compile(r"[a-z0-9]+")


def _tokens(text: str) -> set:
    return set(_TOKEN.findall(text.lower()))


def semantic_score(text: str, payload: Dict[str, Any]) -> float:
    """Token overlap between the query and a document's text fields."""
    haystack = " ".join(
        str(payload.get(f, ""))
        for f in ("description", "industry", "location", "company_name", "funding_stage")
    )
    query_tokens = _tokens(text)
    if not query_tokens:
        return 0.0
    return len(query_tokens & _tokens(haystack)) / len(query_tokens)


def make_hit(doc_id: str, rank: int, score: float = 1.0, retriever: str = None) -> RankedHit:
    return RankedHit(
        id=doc_id,
        document=StartupDocument.model_validate(STARTUPS[doc_id]),
        rank=rank,
        score=score,
        retriever=retriever,
    )


class StubClassifier:
    """Returns scripted answers, or raises them when they are exceptions."""

    def __init__(self, routing: Any = None, extraction: Any = None):
        self.routing = routing
        self.extraction = extraction if extraction is not None else {}
        self.calls: List[str] = []

    async def classify(self, query: str, catalog_context: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append("classify")
        if isinstance(self.routing, Exception):
            raise self.routing
        return self.routing

    async def extract(self, query: str, catalog_context: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append("extract")
        if isinstance(self.extraction, Exception):
            raise self.extraction
        return self.extraction


class InMemoryStore:
    """
    SearchStore over a dict of payloads.

    Filter clauses gate membership, should clauses must reach the request's
    threshold, and a required semantic component must overlap the query.
    """

    def __init__(self, documents: Optional[Dict[str, Dict[str, Any]]] = None, fail_on: Iterable[str] = ()):
        self.documents = documents if documents is not None else STARTUPS
        self.fail_on = set(fail_on)
        self.requests: List[RetrieverRequest] = []

    def search(self, request: RetrieverRequest) -> List[RankedHit]:
        self.requests.append(request)
        if request.name in self.fail_on or "*" in self.fail_on:
            raise ConnectionError("store unavailable")

        scored = []
        for doc_id, payload in self.documents.items():
            if not all(c.matches(payload) for c in request.filter_clauses):
                continue
            matched = sum(1 for c in request.should_clauses if c.matches(payload))
            if request.should_clauses and matched < request.minimum_should_match:
                continue
            similarity = semantic_score(request.semantic_text, payload) if request.semantic_text else 0.0
            if request.semantic_text and request.semantic_required and similarity == 0.0:
                continue
            scored.append((doc_id, similarity + matched))

        scored.sort(key=lambda item: -item[1])
        return [
            RankedHit(
                id=doc_id,
                document=StartupDocument.model_validate(self.documents[doc_id]),
                rank=position,
                score=score,
            )
            for position, (doc_id, score) in enumerate(scored[: request.size], start=1)
        ]

    def fetch_catalog(self) -> ValueCatalog:
        return ValueCatalog.from_documents(self.documents.values())


STRICT_QUERY = (
    "Find exactly Series A fintech startups in San Francisco with funding "
    "between $10M-$15M from Andreessen Horowitz"
)

FLEXIBLE_QUERY = (
    "Find promising early-stage startups in tech hubs similar to successful fintech companies"
)

STRICT_EXTRACTION = {
    "funding_stage": ["Series A"],
    "industry": ["fintech"],
    "location": ["San Francisco"],
    "funding_amount": {"gte": 10_000_000, "lte": 15_000_000},
    "lead_investor": ["Andreessen Horowitz"],
}


@pytest.fixture
def catalog() -> ValueCatalog:
    return ValueCatalog.from_documents(STARTUPS.values())


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def strict_classifier() -> StubClassifier:
    return StubClassifier(
        routing={"strategy": "strict", "rationale": "Names exact stage, location and investor."},
        extraction=STRICT_EXTRACTION,
    )


@pytest.fixture
def flexible_classifier() -> StubClassifier:
    return StubClassifier(
        routing={"strategy": "flexible", "rationale": "Exploratory request."},
        extraction={},
    )


@pytest.fixture
def unavailable_classifier() -> StubClassifier:
    return StubClassifier(
        routing=ClassificationFailure("routing returned no usable output"),
        extraction=ClassificationFailure("extraction returned no usable output"),
    )
