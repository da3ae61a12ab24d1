from conftest import STARTUPS
from startup_search.core.schemas import RetrieverRequest, TermsClause
from startup_search.retrieval.elastic_store import ElasticsearchStore, parse_hits
from startup_search.retrieval.filter_builder import ElasticsearchQueryBuilder


class FakeElasticsearch:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def search(self, **kwargs):
        self.calls.append(kwargs)
        return self.response


def _store(response):
    client = FakeElasticsearch(response)
    store = ElasticsearchStore(
        client=client,
        index_name="startups-index",
        query_builder=ElasticsearchQueryBuilder(semantic_field="semantic_field"),
        terms_size=100,
    )
    return store, client


def test_search_sends_built_query_and_parses_hits():
    response = {
        "hits": {
            "hits": [
                {"_id": "a1", "_score": 3.2, "_source": STARTUPS["payflow"]},
                {"_id": "a2", "_score": 1.1, "_source": STARTUPS["coinnest"]},
            ]
        }
    }
    store, client = _store(response)
    request = RetrieverRequest(
        name="filtered",
        semantic_text="payments",
        semantic_required=False,
        filter_clauses=[TermsClause(field="industry", values=["fintech"])],
        size=100,
    )

    hits = store.search(request)

    call = client.calls[0]
    assert call["index"] == "startups-index"
    assert call["size"] == 100
    assert call["query"]["bool"]["filter"] == [{"terms": {"industry": ["fintech"]}}]
    assert call["source_excludes"] == ["semantic_field"]
    assert [(h.id, h.rank, h.score, h.retriever) for h in hits] == [
        ("a1", 1, 3.2, "filtered"),
        ("a2", 2, 1.1, "filtered"),
    ]
    assert hits[0].document.company_name == "PayFlow"


def test_parse_hits_skips_malformed_sources():
    hits = parse_hits(
        [
            {"_id": "bad", "_score": 9.0, "_source": {"company_name": "Nameless"}},
            {"_id": "good", "_score": None, "_source": STARTUPS["medimind"]},
        ]
    )
    assert [(h.id, h.rank, h.score) for h in hits] == [("good", 1, 0.0)]


def test_fetch_catalog_uses_aggregations():
    response = {
        "hits": {"hits": []},
        "aggregations": {
            "industry": {"buckets": [{"key": "fintech", "doc_count": 2}]},
            "funding_amount": {"min": 1.0, "max": 5.0, "avg": 3.0},
        },
    }
    store, client = _store(response)

    catalog = store.fetch_catalog()

    assert client.calls[0]["size"] == 0
    assert client.calls[0]["aggs"]["industry"]["terms"]["size"] == 100
    assert catalog.values_for("industry") == ["fintech"]
    assert catalog.summary_for("funding_amount").max == 5.0


def test_fetch_catalog_without_aggregations_is_empty():
    store, _ = _store({"hits": {"hits": []}})
    assert store.fetch_catalog().is_empty()
