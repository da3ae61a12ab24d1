"""
Error taxonomy for the search pipeline.

None of these escape the pipeline: each stage catches them at its
boundary, logs them, and records a StageError on the response.
"""


class SearchPipelineError(Exception):
    """Base class for all pipeline stage failures."""


class ClassificationFailure(SearchPipelineError):
    """The classifier was unavailable or returned malformed output."""


class CompilationValidationError(SearchPipelineError):
    """A single constraint could not be compiled into a clause."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field


class RetrievalFailure(SearchPipelineError):
    """One retriever call against the store failed."""

    def __init__(self, retriever: str, message: str):
        super().__init__(f"{retriever}: {message}")
        self.retriever = retriever


class TotalRetrievalFailure(SearchPipelineError):
    """Every retriever for a query failed."""
