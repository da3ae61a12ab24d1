import asyncio

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.output_parsers import JsonOutputParser

from startup_search.core.errors import ClassificationFailure
from startup_search.llm.classifier import GroqQueryClassifier

CATALOG = {"industry": ["fintech", "ai"], "funding_amount": {"min": 1.0, "max": 9.0}}


def make_classifier(responses):
    # Skip ChatGroq construction; chains are built around a scripted model
    classifier = GroqQueryClassifier.__new__(GroqQueryClassifier)
    classifier.llm = FakeListChatModel(responses=responses)
    classifier.parser = JsonOutputParser()
    classifier._build_chains()
    return classifier


def test_classify_returns_parsed_object():
    classifier = make_classifier(['{"strategy": "flexible", "rationale": "broad"}'])
    result = asyncio.run(classifier.classify("similar to stripe", CATALOG))
    assert result == {"strategy": "flexible", "rationale": "broad"}


def test_extract_accepts_fenced_json():
    classifier = make_classifier(['```json\n{"industry": ["fintech"]}\n```'])
    result = asyncio.run(classifier.extract("fintech startups", CATALOG))
    assert result == {"industry": ["fintech"]}


def test_malformed_output_is_a_classification_failure():
    classifier = make_classifier(["I think this is a strict query."])
    with pytest.raises(ClassificationFailure):
        asyncio.run(classifier.classify("q", CATALOG))


def test_non_object_output_is_a_classification_failure():
    classifier = make_classifier(['["fintech"]'])
    with pytest.raises(ClassificationFailure, match="expected an object"):
        asyncio.run(classifier.extract("q", CATALOG))
