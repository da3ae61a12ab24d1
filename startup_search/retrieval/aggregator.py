"""
Result aggregation and ranking.

This module merges ranked lists produced by independent retrievers into
a final ranked list of startups using Reciprocal Rank Fusion: a document
at 1-based position r of a list contributes 1 / (rank_constant + r), and
contributions are summed across every list the document appears in.
"""

import logging
from typing import Dict, List, Optional, Sequence

from startup_search.core.config import settings
from startup_search.core.schemas import FusedHit, FusedResult, RankedHit

logger = logging.getLogger(__name__)


class ResultAggregator:
    """
    Fuses ranked lists with Reciprocal Rank Fusion.

    Only the first ``rank_window_size`` positions of each list contribute.
    Ties in fused score keep the order in which documents were first seen,
    walking the lists in the order given.
    """

    def __init__(
        self,
        k: Optional[int] = None,
        rank_window_size: Optional[int] = None,
    ):
        """
        Args:
            k: RRF rank constant (default: from settings, 20)
            rank_window_size: Positions per list eligible to contribute (default: 100)
        """
        self.k = k if k is not None else settings.RRF_RANK_CONSTANT
        self.rank_window_size = (
            rank_window_size if rank_window_size is not None else settings.RANK_WINDOW_SIZE
        )

    def rrf_contribution(self, rank: int) -> float:
        return 1.0 / (self.k + rank)

    def aggregate(
        self,
        ranked_lists: Sequence[Sequence[RankedHit]],
        top_k: Optional[int] = None,
    ) -> FusedResult:
        """
        Fuse several ranked lists into one.

        Args:
            ranked_lists: One list per retriever, best hit first
            top_k: Number of fused hits to keep (default: all)

        Returns:
            FusedResult sorted by fused score, descending
        """
        scores: Dict[str, float] = {}
        hits: Dict[str, FusedHit] = {}
        first_seen: Dict[str, int] = {}

        for list_index, ranked in enumerate(ranked_lists):
            seen_in_list = set()
            position = 0
            for hit in ranked:
                if hit.id in seen_in_list:
                    continue
                seen_in_list.add(hit.id)
                position += 1
                if position > self.rank_window_size:
                    break

                retriever = hit.retriever or f"list_{list_index}"
                if hit.id not in hits:
                    first_seen[hit.id] = len(first_seen)
                    hits[hit.id] = FusedHit(id=hit.id, document=hit.document, score=0.0)
                    scores[hit.id] = 0.0
                scores[hit.id] += self.rrf_contribution(position)
                hits[hit.id].ranks[retriever] = position

        ordered = sorted(hits, key=lambda doc_id: (-scores[doc_id], first_seen[doc_id]))
        if top_k is not None:
            ordered = ordered[:top_k]

        fused = [hits[doc_id].model_copy(update={"score": scores[doc_id]}) for doc_id in ordered]
        logger.debug(
            f"RRF fused {len(ranked_lists)} lists into {len(hits)} documents "
            f"(k={self.k}, window={self.rank_window_size})"
        )
        return FusedResult(hits=fused)

    def deduplicate_simple(
        self, ranked: Sequence[RankedHit], top_k: Optional[int] = None
    ) -> FusedResult:
        """
        Order a single ranked list by score without fusion.

        Duplicate ids keep their first occurrence; equal scores keep list order.
        """
        seen = set()
        unique: List[RankedHit] = []
        for hit in ranked:
            if hit.id in seen:
                continue
            seen.add(hit.id)
            unique.append(hit)

        unique.sort(key=lambda hit: -hit.score)
        if top_k is not None:
            unique = unique[:top_k]

        return FusedResult(
            hits=[
                FusedHit(
                    id=hit.id,
                    document=hit.document,
                    score=hit.score,
                    ranks={hit.retriever or "list_0": hit.rank},
                )
                for hit in unique
            ]
        )
