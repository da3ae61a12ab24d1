import pytest

from conftest import make_hit
from startup_search.retrieval.aggregator import ResultAggregator


def test_document_in_two_lists_sums_contributions():
    aggregator = ResultAggregator(k=20)
    semantic = [make_hit("payflow", 1), make_hit("coinnest", 2)]
    structured = [make_hit("coinnest", 1), make_hit("payflow", 3)]
    structured.insert(1, make_hit("ledgerloop", 2))

    result = aggregator.aggregate([semantic, structured])
    scores = {hit.id: hit.score for hit in result.hits}

    assert scores["payflow"] == pytest.approx(1 / 21 + 1 / 23)
    assert scores["coinnest"] == pytest.approx(1 / 22 + 1 / 21)
    assert scores["ledgerloop"] == pytest.approx(1 / 22)


def test_two_lists_beat_one_list_at_same_best_rank():
    aggregator = ResultAggregator(k=20)
    result = aggregator.aggregate(
        [
            [make_hit("payflow", 1), make_hit("coinnest", 2)],
            [make_hit("shipsmart", 1), make_hit("coinnest", 2)],
        ]
    )
    scores = {hit.id: hit.score for hit in result.hits}
    assert scores["coinnest"] > scores["payflow"]
    assert result.hits[0].id == "coinnest"


def test_contribution_is_non_increasing_in_rank():
    aggregator = ResultAggregator(k=20)
    contributions = [aggregator.rrf_contribution(r) for r in range(1, 200)]
    assert all(a >= b for a, b in zip(contributions, contributions[1:]))


def test_rank_window_caps_contributing_positions():
    aggregator = ResultAggregator(k=20, rank_window_size=2)
    result = aggregator.aggregate(
        [[make_hit("payflow", 1), make_hit("coinnest", 2), make_hit("medimind", 3)]]
    )
    assert [hit.id for hit in result.hits] == ["payflow", "coinnest"]


def test_ties_keep_first_seen_order():
    aggregator = ResultAggregator(k=20)
    result = aggregator.aggregate(
        [[make_hit("shipsmart", 1)], [make_hit("medimind", 1)], [make_hit("payflow", 1)]]
    )
    assert [hit.id for hit in result.hits] == ["shipsmart", "medimind", "payflow"]


def test_absent_documents_are_excluded_and_empty_lists_are_fine():
    result = ResultAggregator().aggregate([[], [make_hit("opspilot", 1)]])
    assert [hit.id for hit in result.hits] == ["opspilot"]
    assert ResultAggregator().aggregate([[], []]).is_empty()


def test_top_k_truncates_and_ranks_are_recorded():
    aggregator = ResultAggregator(k=20)
    result = aggregator.aggregate(
        [
            [make_hit("payflow", 1, retriever="semantic"), make_hit("coinnest", 2, retriever="semantic")],
            [make_hit("coinnest", 1, retriever="structured")],
        ],
        top_k=1,
    )
    assert len(result.hits) == 1
    assert result.hits[0].id == "coinnest"
    assert result.hits[0].ranks == {"semantic": 2, "structured": 1}


def test_duplicate_ids_within_a_list_count_once():
    aggregator = ResultAggregator(k=20)
    result = aggregator.aggregate([[make_hit("payflow", 1), make_hit("payflow", 2), make_hit("coinnest", 3)]])
    scores = {hit.id: hit.score for hit in result.hits}
    assert scores["payflow"] == pytest.approx(1 / 21)
    assert scores["coinnest"] == pytest.approx(1 / 22)


def test_deduplicate_simple_sorts_by_score_stably():
    hits = [
        make_hit("payflow", 1, score=0.5),
        make_hit("coinnest", 2, score=0.9),
        make_hit("medimind", 3, score=0.5),
        make_hit("coinnest", 4, score=0.1),
    ]
    result = ResultAggregator().deduplicate_simple(hits, top_k=5)
    assert [hit.id for hit in result.hits] == ["coinnest", "payflow", "medimind"]
    assert result.hits[0].score == 0.9
