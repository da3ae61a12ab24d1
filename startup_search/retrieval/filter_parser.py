"""
LLM-based filter extraction from natural language queries.

This module uses the classifier to parse natural language search queries
into a ConstraintSet against the current value catalog. The raw model
output is never trusted: categorical values that are not in the catalog
are dropped, numeric bounds are coerced to numbers, and anything else is
ignored.
"""

import logging
import math
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

from startup_search.core.errors import ClassificationFailure
from startup_search.core.schemas import (
    CATEGORICAL_FIELDS,
    NUMERIC_FIELDS,
    ConstraintSet,
    NumericRange,
)
from startup_search.llm.classifier import QueryClassifier
from startup_search.retrieval.catalog import ValueCatalog

logger = logging.getLogger(__name__)

_AMOUNT_PATTERN = re.compile(r"^\$?\s*([0-9]+(?:\.[0-9]+)?)\s*([kmb])?$", re.IGNORECASE)
_MULTIPLIERS = {"k": 1_000, "m": 1_000_000, "b": 1_000_000_000}


def _coerce_number(value: Any) -> Optional[float]:
    """Accept numbers and strings like "15000000", "$10M" or "400k"."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None
    if isinstance(value, str):
        match = _AMOUNT_PATTERN.match(value.replace(",", "").strip())
        if not match:
            return None
        number = float(match.group(1))
        suffix = match.group(2)
        if suffix:
            number *= _MULTIPLIERS[suffix.lower()]
        return number if math.isfinite(number) else None
    return None


class FilterExtractor:
    """
    Extracts structured constraints from a query using the classifier.

    Fields the query does not mention are left out of the ConstraintSet.
    On classifier failure the fully unconstrained set is returned, so the
    query degrades to semantic-only search instead of matching nothing.
    """

    def __init__(self, classifier: QueryClassifier):
        self.classifier = classifier

    def _parse_categorical(
        self, field: str, data: Any, catalog: ValueCatalog
    ) -> List[str]:
        """
        Keep only values that exist in the catalog, in catalog spelling.
        """
        if not data:
            return []
        if not isinstance(data, list):
            data = [data]

        accepted: List[str] = []
        for raw in data:
            canonical = catalog.canonical_value(field, raw) if isinstance(raw, str) else None
            if canonical is None:
                logger.debug(f"Dropping {field}={raw!r}: not in catalog")
                continue
            if canonical not in accepted:
                accepted.append(canonical)
        return accepted

    def _parse_numeric(self, field: str, data: Any, flat: Mapping[str, Any]) -> Optional[NumericRange]:
        """
        Parse a numeric range from ``{"gte": .., "lte": ..}`` or from flat
        ``<field>_gte`` / ``<field>_lte`` keys.
        """
        gte = lte = None
        if isinstance(data, dict):
            gte = _coerce_number(data.get("gte"))
            lte = _coerce_number(data.get("lte"))
        elif data is not None:
            # A bare number is an exact value
            gte = lte = _coerce_number(data)

        if gte is None:
            gte = _coerce_number(flat.get(f"{field}_gte"))
        if lte is None:
            lte = _coerce_number(flat.get(f"{field}_lte"))

        bounds = NumericRange(gte=gte, lte=lte)
        return None if bounds.is_unbounded() else bounds

    def _parse_constraints(
        self, raw: Mapping[str, Any], catalog: ValueCatalog
    ) -> ConstraintSet:
        filters = raw.get("filters") if isinstance(raw.get("filters"), dict) else raw

        categorical: Dict[str, List[str]] = {}
        for field in CATEGORICAL_FIELDS:
            values = self._parse_categorical(field, filters.get(field), catalog)
            if values:
                categorical[field] = values

        numeric: Dict[str, NumericRange] = {}
        for field in NUMERIC_FIELDS:
            bounds = self._parse_numeric(field, filters.get(field), filters)
            if bounds is not None:
                numeric[field] = bounds

        return ConstraintSet(categorical=categorical, numeric=numeric)

    async def extract(
        self, query: str, catalog: ValueCatalog
    ) -> Tuple[ConstraintSet, Optional[ClassificationFailure]]:
        """
        Extract constraints from a natural language query.

        Args:
            query: User's natural language search query
            catalog: Current value catalog snapshot

        Returns:
            The extracted constraints, and the classification failure that
            forced the unconstrained fallback (None on success)
        """
        try:
            raw = await self.classifier.extract(query, catalog.to_prompt_context())
            if not isinstance(raw, dict):
                raise ClassificationFailure(
                    f"extraction output is {type(raw).__name__}, expected an object"
                )
        except ClassificationFailure as e:
            failure = e
        except Exception as e:
            failure = ClassificationFailure(f"classifier error: {e}")
        else:
            constraints = self._parse_constraints(raw, catalog)
            logger.debug(f"Extracted constraints: {constraints.model_dump()}")
            return constraints, None

        logger.debug(
            f"Filter extraction failed for query {query!r}, "
            f"continuing unconstrained: {failure}"
        )
        return ConstraintSet.unconstrained(), failure
