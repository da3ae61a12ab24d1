"""
Query strategy routing.

This module decides whether a request names binding criteria (strict)
or is exploratory (flexible), which determines how extracted constraints
are compiled. The decision is delegated to the classifier; when that
fails for any reason the router falls back to the strict strategy.
"""

import logging
from typing import Optional, Tuple

from pydantic import BaseModel, ValidationError, field_validator

from startup_search.core.errors import ClassificationFailure
from startup_search.core.schemas import RoutingDecision, SearchStrategy
from startup_search.llm.classifier import QueryClassifier
from startup_search.retrieval.catalog import ValueCatalog

logger = logging.getLogger(__name__)

FALLBACK_RATIONALE = "Classification unavailable; applying criteria literally."


class RoutingOutput(BaseModel):
    """Schema the classifier's routing answer must satisfy."""

    strategy: SearchStrategy
    rationale: str = ""

    @field_validator("strategy", mode="before")
    @classmethod
    def _normalize_strategy(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value


class StrategyRouter:
    """
    Classifies a query as strict or flexible.

    Strict is the fallback: it is the more literal reading of a request,
    so a classifier outage never silently widens the result set.
    """

    def __init__(self, classifier: QueryClassifier):
        self.classifier = classifier

    async def decide(
        self, query: str, catalog: ValueCatalog
    ) -> Tuple[RoutingDecision, Optional[ClassificationFailure]]:
        """
        Decide the strategy for a query.

        Args:
            query: User's natural language search query
            catalog: Current value catalog snapshot

        Returns:
            The routing decision, and the classification failure that forced
            the fallback (None when the classifier answered correctly)
        """
        try:
            raw = await self.classifier.classify(query, catalog.to_prompt_context())
            output = RoutingOutput.model_validate(raw)
        except ValidationError as e:
            failure = ClassificationFailure(f"routing output violates schema: {e}")
        except ClassificationFailure as e:
            failure = e
        except Exception as e:
            failure = ClassificationFailure(f"classifier error: {e}")
        else:
            rationale = output.rationale.strip() or f"Classified as {output.strategy.value}."
            logger.debug(f"Routed query to {output.strategy.value}: {rationale}")
            return RoutingDecision(strategy=output.strategy, rationale=rationale), None

        logger.debug(
            f"Routing failed for query {query!r}, falling back to strict: {failure}"
        )
        decision = RoutingDecision(
            strategy=SearchStrategy.STRICT,
            rationale=FALLBACK_RATIONALE,
            fallback=True,
        )
        return decision, failure
