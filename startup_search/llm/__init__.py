"""
LLM module for query understanding.

This module handles interaction with large language models for
turning free-text search requests into structured decisions.

Key responsibilities:
- Strategy routing (strict vs flexible)
- Constraint extraction against the value catalog
"""

from startup_search.llm.classifier import (
    GroqQueryClassifier,
    QueryClassifier,
    get_classifier,
)

__all__ = ["QueryClassifier", "GroqQueryClassifier", "get_classifier"]
