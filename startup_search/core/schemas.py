"""
Pydantic schemas for request/response validation and data models.

This module defines the data structures used throughout the application
for type safety and API documentation. Schemas include:
- Startup document representation and the filterable field layout
- Routing decisions and extracted constraint sets
- Compiled query variants and their clauses
- Ranked and fused retrieval results
- Search request and response models
"""

import math
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# Keyword fields that are filtered by exact membership
CATEGORICAL_FIELDS = (
    "industry",
    "location",
    "funding_stage",
    "business_model",
    "lead_investor",
    "other_investors",
)

# Numeric fields that are filtered by range
NUMERIC_FIELDS = (
    "funding_amount",
    "monthly_revenue",
    "employee_count",
    "founded_year",
)

KNOWN_FIELDS = CATEGORICAL_FIELDS + NUMERIC_FIELDS


class StartupDocument(BaseModel):
    """A startup record as stored in the search index."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    company_name: str
    industry: str
    location: str
    funding_stage: str
    funding_amount: float
    lead_investor: str
    monthly_revenue: float
    employee_count: int
    business_model: str
    description: str
    founded_year: Optional[int] = None
    last_funding_date: Optional[str] = None
    other_investors: List[str] = Field(default_factory=list)


class SearchStrategy(str, Enum):
    """How binding the structured criteria of a query are."""

    STRICT = "strict"
    FLEXIBLE = "flexible"


class RoutingDecision(BaseModel):
    strategy: SearchStrategy
    rationale: str
    fallback: bool = False


class NumericRange(BaseModel):
    """Inclusive numeric bounds. A missing bound is unconstrained."""

    gte: Optional[float] = None
    lte: Optional[float] = None

    def is_unbounded(self) -> bool:
        return self.gte is None and self.lte is None

    def is_valid(self) -> bool:
        """Bounds must be finite and ordered."""
        bounds = [b for b in (self.gte, self.lte) if b is not None]
        if not all(math.isfinite(b) for b in bounds):
            return False
        return len(bounds) < 2 or self.gte <= self.lte


class ConstraintSet(BaseModel):
    """
    Structured constraints extracted from a query.

    Fields with no constraint are simply absent. An empty value list or an
    unbounded range is treated as "no constraint" wherever it shows up.
    """

    categorical: Dict[str, List[str]] = Field(default_factory=dict)
    numeric: Dict[str, NumericRange] = Field(default_factory=dict)

    @classmethod
    def unconstrained(cls) -> "ConstraintSet":
        return cls()

    def populated_fields(self) -> List[str]:
        fields = [name for name, values in self.categorical.items() if values]
        fields.extend(
            name for name, bounds in self.numeric.items() if not bounds.is_unbounded()
        )
        return fields

    def is_empty(self) -> bool:
        return not self.populated_fields()


class TermsClause(BaseModel):
    """Membership test: the field must hold one of the values."""

    kind: Literal["terms"] = "terms"
    field: str
    values: List[str]

    def matches(self, payload: Mapping[str, Any]) -> bool:
        actual = payload.get(self.field)
        if isinstance(actual, (list, tuple, set)):
            return any(item in self.values for item in actual)
        return actual in self.values


class RangeClause(BaseModel):
    """Inclusive range test on a numeric field."""

    kind: Literal["range"] = "range"
    field: str
    gte: Optional[float] = None
    lte: Optional[float] = None

    def matches(self, payload: Mapping[str, Any]) -> bool:
        actual = payload.get(self.field)
        if not isinstance(actual, (int, float)) or isinstance(actual, bool):
            return False
        if self.gte is not None and actual < self.gte:
            return False
        if self.lte is not None and actual > self.lte:
            return False
        return True


Clause = Annotated[Union[TermsClause, RangeClause], Field(discriminator="kind")]


class FilteredQuery(BaseModel):
    """Every clause is a hard constraint; semantic text only orders the gated set."""

    kind: Literal["filtered"] = "filtered"
    clauses: List[Clause]
    semantic_text: Optional[str] = None


class ScoredQuery(BaseModel):
    """Semantic match is mandatory; clauses are soft signals."""

    kind: Literal["scored"] = "scored"
    semantic_text: str
    should_clauses: List[Clause]
    minimum_should_match: int = 2

    @property
    def effective_minimum_should_match(self) -> int:
        """Threshold actually enforced, never above the number of clauses."""
        if not self.should_clauses:
            return 0
        return max(1, min(self.minimum_should_match, len(self.should_clauses)))


class SemanticOnlyQuery(BaseModel):
    kind: Literal["semantic"] = "semantic"
    semantic_text: str


CompiledQuery = Annotated[
    Union[FilteredQuery, ScoredQuery, SemanticOnlyQuery],
    Field(discriminator="kind"),
]


class RetrieverRequest(BaseModel):
    """
    Store-neutral description of a single retrieval call.

    Filter clauses are AND-ed and gate membership. Should clauses are soft
    and at least ``minimum_should_match`` of them must hold. The semantic
    text, when present, contributes the similarity score.
    """

    name: str
    semantic_text: Optional[str] = None
    semantic_required: bool = True
    filter_clauses: List[Clause] = Field(default_factory=list)
    should_clauses: List[Clause] = Field(default_factory=list)
    minimum_should_match: int = 0
    size: int = 100


class RankedHit(BaseModel):
    id: str
    document: StartupDocument
    rank: int
    score: float
    retriever: Optional[str] = None


class FusedHit(BaseModel):
    id: str
    document: StartupDocument
    score: float
    ranks: Dict[str, int] = Field(default_factory=dict)


class FusedResult(BaseModel):
    """Final ordered result set. Possibly empty, never an error."""

    hits: List[FusedHit] = Field(default_factory=list)

    @property
    def documents(self) -> List[StartupDocument]:
        return [hit.document for hit in self.hits]

    def is_empty(self) -> bool:
        return not self.hits


class StageError(BaseModel):
    """A non-fatal failure recorded by one pipeline stage."""

    stage: str
    error_type: str
    message: str


class SearchRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=2000)
    top_k: Optional[int] = Field(default=None, ge=1, le=100)


class SearchResponse(BaseModel):
    query: str
    strategy: SearchStrategy
    rationale: str = ""
    constraints: ConstraintSet = Field(default_factory=ConstraintSet)
    compiled_query: Optional[CompiledQuery] = None
    result: FusedResult = Field(default_factory=FusedResult)
    errors: List[StageError] = Field(default_factory=list)
    timestamps: Dict[str, float] = Field(default_factory=dict)
