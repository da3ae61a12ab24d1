"""
Compilation of constraint sets into query shapes.

A ConstraintSet becomes one of three CompiledQuery variants:

- FilteredQuery (strict): every populated field is a hard clause, and the
  query text only orders the gated set.
- ScoredQuery (flexible): the same clauses become soft should-signals on
  top of a mandatory semantic match, with a minimum_should_match threshold.
- SemanticOnlyQuery: no field carries an effective constraint.

Clause problems (unknown fields, inverted ranges) drop that clause only.
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple

from startup_search.core.config import settings
from startup_search.core.errors import CompilationValidationError
from startup_search.core.schemas import (
    CATEGORICAL_FIELDS,
    NUMERIC_FIELDS,
    Clause,
    CompiledQuery,
    ConstraintSet,
    FilteredQuery,
    NumericRange,
    RangeClause,
    ScoredQuery,
    SearchStrategy,
    SemanticOnlyQuery,
    TermsClause,
)
from startup_search.retrieval.catalog import ValueCatalog

logger = logging.getLogger(__name__)


class QueryCompiler:
    """
    Compiles constraints into a strategy-specific query shape.

    One compiler serves both strategies: clause construction is shared and
    only the final shape is chosen by a dispatch on the strategy value.
    """

    def __init__(self, minimum_should_match: Optional[int] = None):
        self.minimum_should_match = (
            minimum_should_match
            if minimum_should_match is not None
            else settings.MINIMUM_SHOULD_MATCH
        )
        self._shapes: Dict[
            SearchStrategy, Callable[[List[Clause], str], CompiledQuery]
        ] = {
            SearchStrategy.STRICT: self._compile_strict,
            SearchStrategy.FLEXIBLE: self._compile_flexible,
        }

    def _terms_clause(self, field: str, values: List[str]) -> Optional[TermsClause]:
        if field not in CATEGORICAL_FIELDS:
            raise CompilationValidationError(field, "unknown categorical field")

        effective: List[str] = []
        for value in values or []:
            if isinstance(value, str) and value.strip() and value not in effective:
                effective.append(value)

        # An empty terms clause would exclude every document
        if not effective:
            return None
        return TermsClause(field=field, values=effective)

    def _range_clause(
        self, field: str, bounds: NumericRange, catalog: Optional[ValueCatalog]
    ) -> Optional[RangeClause]:
        if field not in NUMERIC_FIELDS:
            raise CompilationValidationError(field, "unknown numeric field")
        if not bounds.is_valid():
            raise CompilationValidationError(
                field, f"malformed range gte={bounds.gte} lte={bounds.lte}"
            )

        gte, lte = bounds.gte, bounds.lte

        # Bounds at or beyond the corpus extent constrain nothing
        summary = catalog.summary_for(field) if catalog is not None else None
        if summary is not None:
            if gte is not None and gte <= summary.min:
                gte = None
            if lte is not None and lte >= summary.max:
                lte = None

        if gte is None and lte is None:
            return None
        return RangeClause(field=field, gte=gte, lte=lte)

    def build_clauses(
        self, constraints: ConstraintSet, catalog: Optional[ValueCatalog] = None
    ) -> Tuple[List[Clause], List[CompilationValidationError]]:
        """
        Build one clause per effectively constrained field.

        Returns:
            The clauses, and the validation errors for clauses that were dropped
        """
        clauses: List[Clause] = []
        errors: List[CompilationValidationError] = []

        for field, values in constraints.categorical.items():
            try:
                clause = self._terms_clause(field, values)
            except CompilationValidationError as e:
                logger.debug(f"Dropping terms clause: {e}")
                errors.append(e)
                continue
            if clause is not None:
                clauses.append(clause)

        for field, bounds in constraints.numeric.items():
            try:
                clause = self._range_clause(field, bounds, catalog)
            except CompilationValidationError as e:
                logger.debug(f"Dropping range clause: {e}")
                errors.append(e)
                continue
            if clause is not None:
                clauses.append(clause)

        return clauses, errors

    def _compile_strict(self, clauses: List[Clause], query_text: str) -> FilteredQuery:
        return FilteredQuery(clauses=clauses, semantic_text=query_text.strip() or None)

    def _compile_flexible(self, clauses: List[Clause], query_text: str) -> ScoredQuery:
        return ScoredQuery(
            semantic_text=query_text,
            should_clauses=clauses,
            minimum_should_match=self.minimum_should_match,
        )

    def compile(
        self,
        constraints: ConstraintSet,
        query_text: str,
        strategy: SearchStrategy,
        catalog: Optional[ValueCatalog] = None,
    ) -> Tuple[CompiledQuery, List[CompilationValidationError]]:
        """
        Compile constraints into a query for the given strategy.

        Args:
            constraints: Extracted constraints
            query_text: Original query, used as the semantic component
            strategy: Strict or flexible
            catalog: Catalog whose numeric extents make bounds redundant

        Returns:
            The compiled query, and any clause-level validation errors
        """
        clauses, errors = self.build_clauses(constraints, catalog)

        if not clauses:
            compiled: CompiledQuery = SemanticOnlyQuery(semantic_text=query_text)
        else:
            compiled = self._shapes[strategy](clauses, query_text)

        logger.debug(f"Compiled {strategy.value} query: {compiled.model_dump()}")
        return compiled, errors
