from types import SimpleNamespace

from startup_search.retrieval.embedding import QueryEmbedder


class FakeModel:
    def __init__(self):
        self.calls = []

    def encode(self, text, **kwargs):
        self.calls.append((text, kwargs))
        return SimpleNamespace(tolist=lambda: [0.5, 0.5])


def test_model_is_not_loaded_until_first_query():
    embedder = QueryEmbedder(model_name="some/model")
    assert embedder.model_name == "some/model"
    assert embedder._model is None


def test_encodes_normalized_embeddings():
    embedder = QueryEmbedder(model_name="some/model")
    model = FakeModel()
    embedder._model = model

    assert embedder("fintech in san francisco") == [0.5, 0.5]
    text, kwargs = model.calls[0]
    assert text == "fintech in san francisco"
    assert kwargs["normalize_embeddings"] is True
