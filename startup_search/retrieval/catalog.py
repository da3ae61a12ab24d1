"""
Value catalog of permissible filter values.

The catalog is a read-only snapshot of what the corpus actually contains:
the distinct values of each categorical field (bounded to the most
frequent ones) and a min/max/avg summary of each numeric field. It is the
vocabulary the extractor is allowed to use and the extent the compiler
compares numeric bounds against.

Snapshots are never mutated. CatalogProvider replaces the cached snapshot
wholesale when it refreshes.
"""

import logging
import threading
import time
from collections import Counter
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from startup_search.core.config import settings
from startup_search.core.schemas import CATEGORICAL_FIELDS, NUMERIC_FIELDS

logger = logging.getLogger(__name__)


def _normalize(value: str) -> str:
    return " ".join(value.split()).casefold()


class NumericSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: float
    max: float
    avg: Optional[float] = None


class ValueCatalog(BaseModel):
    """Snapshot of known categorical values and numeric extents per field."""

    model_config = ConfigDict(frozen=True)

    categorical: Dict[str, List[str]] = Field(default_factory=dict)
    numeric: Dict[str, NumericSummary] = Field(default_factory=dict)

    def is_empty(self) -> bool:
        return not any(self.categorical.values()) and not self.numeric

    def values_for(self, field: str) -> List[str]:
        return self.categorical.get(field, [])

    def summary_for(self, field: str) -> Optional[NumericSummary]:
        return self.numeric.get(field)

    def canonical_value(self, field: str, raw: str) -> Optional[str]:
        """
        Map a value mentioned in free text onto the catalog's spelling.

        Matching ignores case and repeated whitespace. Returns None when the
        value does not exist in the corpus.
        """
        if not isinstance(raw, str) or not raw.strip():
            return None
        wanted = _normalize(raw)
        for known in self.values_for(field):
            if _normalize(known) == wanted:
                return known
        return None

    def to_prompt_context(self) -> Dict[str, Any]:
        """JSON-serializable view handed to the classifier."""
        context: Dict[str, Any] = {
            field: list(values) for field, values in self.categorical.items()
        }
        for field, summary in self.numeric.items():
            context[field] = summary.model_dump(exclude_none=True)
        return context

    @staticmethod
    def build_aggregations(terms_size: Optional[int] = None) -> Dict[str, Any]:
        """Elasticsearch aggregation body that produces a catalog."""
        size = terms_size or settings.CATALOG_TERMS_SIZE
        aggs: Dict[str, Any] = {
            field: {"terms": {"field": field, "size": size}}
            for field in CATEGORICAL_FIELDS
        }
        for field in NUMERIC_FIELDS:
            aggs[field] = {"stats": {"field": field}}
        return aggs

    @classmethod
    def from_aggregations(cls, aggregations: Mapping[str, Any]) -> "ValueCatalog":
        """Build a catalog from a terms/stats aggregation response."""
        categorical: Dict[str, List[str]] = {}
        numeric: Dict[str, NumericSummary] = {}

        for field in CATEGORICAL_FIELDS:
            buckets = (aggregations.get(field) or {}).get("buckets") or []
            values = [str(b["key"]) for b in buckets if b.get("key") not in (None, "")]
            if values:
                categorical[field] = values

        for field in NUMERIC_FIELDS:
            stats = aggregations.get(field) or {}
            if stats.get("min") is None or stats.get("max") is None:
                continue
            numeric[field] = NumericSummary(
                min=stats["min"], max=stats["max"], avg=stats.get("avg")
            )

        return cls(categorical=categorical, numeric=numeric)

    @classmethod
    def from_documents(
        cls,
        payloads: Iterable[Mapping[str, Any]],
        terms_size: Optional[int] = None,
    ) -> "ValueCatalog":
        """
        Build a catalog from raw document payloads.

        Categorical values are ordered by frequency, ties broken
        alphabetically, and capped at ``terms_size`` per field.
        """
        size = terms_size or settings.CATALOG_TERMS_SIZE
        counters: Dict[str, Counter] = {field: Counter() for field in CATEGORICAL_FIELDS}
        numbers: Dict[str, List[float]] = {field: [] for field in NUMERIC_FIELDS}

        for payload in payloads:
            for field in CATEGORICAL_FIELDS:
                value = payload.get(field)
                items = value if isinstance(value, (list, tuple)) else [value]
                for item in items:
                    if isinstance(item, str) and item:
                        counters[field][item] += 1
            for field in NUMERIC_FIELDS:
                value = payload.get(field)
                if isinstance(value, (int, float)) and not isinstance(value, bool):
                    numbers[field].append(float(value))

        categorical = {}
        for field, counter in counters.items():
            ranked = sorted(counter.items(), key=lambda kv: (-kv[1], kv[0]))
            if ranked:
                categorical[field] = [value for value, _ in ranked[:size]]

        numeric = {
            field: NumericSummary(
                min=min(values), max=max(values), avg=sum(values) / len(values)
            )
            for field, values in numbers.items()
            if values
        }

        return cls(categorical=categorical, numeric=numeric)


class CatalogProvider:
    """
    Caches a catalog snapshot for a bounded time.

    The cached snapshot is swapped atomically on refresh, so concurrent
    readers always see a complete catalog. A failed refresh keeps the
    previous snapshot, or an empty catalog when there is none yet.
    """

    def __init__(
        self,
        loader: Callable[[], ValueCatalog],
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._loader = loader
        self._ttl = settings.CATALOG_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._snapshot: Optional[ValueCatalog] = None
        self._loaded_at = 0.0

    def _is_fresh(self) -> bool:
        return (
            self._snapshot is not None
            and self._clock() - self._loaded_at < self._ttl
        )

    def get(self) -> ValueCatalog:
        if self._is_fresh():
            return self._snapshot
        with self._lock:
            if self._is_fresh():
                return self._snapshot
            return self._refresh_locked()

    def refresh(self) -> ValueCatalog:
        with self._lock:
            return self._refresh_locked()

    def invalidate(self) -> None:
        with self._lock:
            self._loaded_at = 0.0

    def _refresh_locked(self) -> ValueCatalog:
        try:
            snapshot = self._loader()
        except Exception as e:
            logger.warning(f"Catalog refresh failed, keeping previous snapshot: {e}")
            if self._snapshot is None:
                return ValueCatalog()
            return self._snapshot

        self._snapshot = snapshot
        self._loaded_at = self._clock()
        logger.debug(
            f"Catalog refreshed: {len(snapshot.categorical)} categorical, "
            f"{len(snapshot.numeric)} numeric fields"
        )
        return snapshot
