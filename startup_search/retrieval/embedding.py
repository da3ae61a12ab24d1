"""
Query embedding for the vector store backend.

The sentence-transformers model is loaded on first use so that the
Elasticsearch backend, which embeds server-side, never pays for it.
"""

from typing import List, Optional

from startup_search.core.config import settings


class QueryEmbedder:
    """Embeds query text with a lazily loaded sentence-transformers model."""

    def __init__(self, model_name: Optional[str] = None):
        self.model_name = model_name or settings.EMBEDDING_MODEL
        self._model = None

    def _get_model(self):
        if self._model is None:
            from sentence_transformers import SentenceTransformer

            self._model = SentenceTransformer(self.model_name, device="cpu")
            self._model.eval()
        return self._model

    def __call__(self, text: str) -> List[float]:
        return self._get_model().encode(
            text,
            normalize_embeddings=True,
            convert_to_numpy=True,
            show_progress_bar=False,
        ).tolist()
