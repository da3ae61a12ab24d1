"""
Text classification capability backed by an LLM.

The pipeline only depends on the QueryClassifier protocol: an async
``classify`` for strategy routing and an async ``extract`` for filter
extraction, both taking the query and a JSON-serializable catalog
context and returning a raw dict. Validating that dict is the caller's
job; a missing or non-object answer raises ClassificationFailure here.

GroqQueryClassifier is the production implementation, built on
LangChain's LCEL with fallback handling.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol

from langchain_core.output_parsers import JsonOutputParser
from langchain_core.runnables import RunnableLambda, RunnableWithFallbacks
from langchain_groq import ChatGroq

from startup_search.core.config import settings
from startup_search.core.errors import ClassificationFailure
from startup_search.llm.prompts import get_filter_extraction_prompt, get_routing_prompt

logger = logging.getLogger(__name__)


class QueryClassifier(Protocol):
    async def classify(
        self, query: str, catalog_context: Dict[str, Any]
    ) -> Dict[str, Any]: ...

    async def extract(
        self, query: str, catalog_context: Dict[str, Any]
    ) -> Dict[str, Any]: ...


def _create_fallback_runnable(chain_name: str) -> RunnableLambda:
    """Create a runnable that logs the upstream error and returns None."""

    def _fallback(inputs: Dict[str, Any]) -> None:
        logger.warning(f"{chain_name} chain failed: {inputs.get('error')!r}")
        return None

    return RunnableLambda(_fallback)


class GroqQueryClassifier:
    """
    Routes and extracts filters from queries using a Groq-hosted LLM.

    Each call is a single attempt: retries are disabled on the client and
    any provider or parsing error falls back to None, which is reported
    as a ClassificationFailure.
    """

    def __init__(
        self,
        model_name: Optional[str] = None,
        temperature: Optional[float] = None,
    ):
        """
        Initialize the classifier.

        Args:
            model_name: Groq model to use (default: from settings)
            temperature: LLM temperature (default: from settings, 0.0)
        """
        self._model_name = model_name or settings.GROQ_MODEL
        self._temperature = (
            temperature if temperature is not None else settings.LLM_TEMPERATURE
        )

        self.llm = ChatGroq(
            model=self._model_name,
            temperature=self._temperature,
            max_tokens=settings.LLM_MAX_TOKENS,
            timeout=settings.LLM_TIMEOUT_SECONDS,
            max_retries=0,
        )

        self.parser = JsonOutputParser()

        self._build_chains()

    def _build_chains(self):
        routing_chain = get_routing_prompt() | self.llm | self.parser
        extraction_chain = get_filter_extraction_prompt() | self.llm | self.parser

        self.routing_chain: RunnableWithFallbacks = routing_chain.with_fallbacks(
            [_create_fallback_runnable("routing")],
            exceptions_to_handle=(Exception,),
            exception_key="error",
        )
        self.extraction_chain: RunnableWithFallbacks = extraction_chain.with_fallbacks(
            [_create_fallback_runnable("extraction")],
            exceptions_to_handle=(Exception,),
            exception_key="error",
        )

    @staticmethod
    def _require_object(result: Any, chain_name: str) -> Dict[str, Any]:
        if result is None:
            raise ClassificationFailure(f"{chain_name} returned no usable output")
        if not isinstance(result, dict):
            raise ClassificationFailure(
                f"{chain_name} returned {type(result).__name__}, expected an object"
            )
        return result

    async def classify(
        self, query: str, catalog_context: Dict[str, Any]
    ) -> Dict[str, Any]:
        result = await self.routing_chain.ainvoke(
            {"query": query, "catalog": json.dumps(catalog_context, indent=2)}
        )
        return self._require_object(result, "routing")

    async def extract(
        self, query: str, catalog_context: Dict[str, Any]
    ) -> Dict[str, Any]:
        result = await self.extraction_chain.ainvoke(
            {
                "query": query,
                "catalog": json.dumps(catalog_context, indent=2),
                "current_year": datetime.now(timezone.utc).year,
            }
        )
        return self._require_object(result, "extraction")


# Module-level singleton
_classifier: Optional[GroqQueryClassifier] = None


def get_classifier() -> GroqQueryClassifier:
    """Get or create the singleton GroqQueryClassifier instance."""
    global _classifier
    if _classifier is None:
        _classifier = GroqQueryClassifier()
    return _classifier
