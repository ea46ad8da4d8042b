# FeedRec/recommend.py
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from FeedRec.config import FeedRecConfig
from FeedRec.errors import EmbeddingGenerationError, ValidationError
from FeedRec.index import VectorIndex
from FeedRec.similarity import (
    CosineSimilarityCalculator,
    SimilarityCalculator,
    is_numeric_vector,
    vectors_equal,
)
from FeedRec.store import ContentItem, ItemStore

logger = logging.getLogger(__name__)


@dataclass
class ScoredCandidate:
    item_id: str
    score: float
    item: Optional[ContentItem] = None
    # Present when the source has the full vector; used for exact self-match checks.
    embedding: Optional[List[float]] = None


@dataclass
class RecommendationResult:
    items: List[ContentItem] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class CandidateSource(ABC):
    """Where candidates come from. Filtering and ranking happen in the recommender."""

    @abstractmethod
    async def fetch(self, query: Sequence[float], limit: int) -> List[ScoredCandidate]:
        pass

    async def resolve(self, candidate: ScoredCandidate) -> Optional[ContentItem]:
        return candidate.item


class FullScanSource(CandidateSource):
    """Scores every stored item against the query in memory."""

    def __init__(
        self,
        item_store: ItemStore,
        similarity_calculator: Optional[SimilarityCalculator] = None,
    ):
        self.item_store = item_store
        self.similarity_calculator = similarity_calculator or CosineSimilarityCalculator()

    async def fetch(self, query: Sequence[float], limit: int) -> List[ScoredCandidate]:
        items = await self.item_store.get_all_items_with_embeddings()
        candidates = []
        for item in items:
            if not item.embedding or len(item.embedding) != len(query):
                continue
            if not is_numeric_vector(item.embedding):
                logger.warning("Skipping item %s with a malformed embedding", item.id)
                continue
            score = self.similarity_calculator.calculate(query, item.embedding)
            candidates.append(
                ScoredCandidate(item.id, score, item=item, embedding=item.embedding)
            )
        return candidates


class VectorIndexSource(CandidateSource):
    """Delegates ranking to a vector index and resolves ids through the item store."""

    def __init__(self, index: VectorIndex, item_store: ItemStore):
        self.index = index
        self.item_store = item_store

    async def fetch(self, query: Sequence[float], limit: int) -> List[ScoredCandidate]:
        matches = await self.index.query(query, top_k=limit)
        return [ScoredCandidate(item_id, score) for item_id, score in matches]

    async def resolve(self, candidate: ScoredCandidate) -> Optional[ContentItem]:
        try:
            item = await self.item_store.get_item_by_id(candidate.item_id)
        except ValidationError as e:
            logger.warning("Skipping malformed item %s: %s", candidate.item_id, e)
            return None
        if item is None:
            logger.debug("Index entry %s has no stored item, skipping", candidate.item_id)
        return item


def is_self_match(candidate: ScoredCandidate, query: Sequence[float]) -> bool:
    if candidate.embedding is not None:
        return vectors_equal(query, candidate.embedding)
    # Without the vector, a perfect score stands in for identity.
    return candidate.score == 1


class EmbeddingRecommender:
    """
    Recommends content similar to a query embedding (or a text query).

    Candidate retrieval is pluggable; self-match exclusion, threshold
    filtering, ordering and truncation are shared by every source.
    """

    def __init__(
        self,
        embedding_client,
        candidate_source: CandidateSource,
        config: Optional[FeedRecConfig] = None,
    ):
        self.embedding_client = embedding_client
        self.candidate_source = candidate_source
        self.config = config or FeedRecConfig()

    # -------------------------------------------------------------------
    # Shared filtering and ranking
    # -------------------------------------------------------------------
    def rank(
        self,
        candidates: List[ScoredCandidate],
        query: Sequence[float],
        threshold: float,
        limit: int,
        exclude_id: Optional[str] = None,
    ) -> List[ScoredCandidate]:
        kept = [
            c
            for c in candidates
            if c.item_id != exclude_id
            and not is_self_match(c, query)
            and c.score >= threshold
        ]
        # sorted() is stable, equal scores keep their source order
        kept = sorted(kept, key=lambda c: c.score, reverse=True)
        return kept[:limit]

    # -------------------------------------------------------------------
    # Recommend from an embedding
    # -------------------------------------------------------------------
    async def recommend_from_embedding(
        self,
        embedding: Sequence[float],
        threshold: Optional[float] = None,
        limit: Optional[int] = None,
        exclude_id: Optional[str] = None,
        source: Optional[CandidateSource] = None,
    ) -> RecommendationResult:
        """
        Ranked items similar to `embedding`.

        Never raises: a failing store or index yields an empty result with
        `error` set.
        """
        threshold = self.config.similarity_threshold if threshold is None else threshold
        limit = self.config.recommendation_limit if limit is None else limit
        source = source or self.candidate_source

        if limit <= 0:
            return RecommendationResult()

        try:
            candidates = await source.fetch(embedding, limit)
            ranked = self.rank(candidates, embedding, threshold, limit, exclude_id)

            items = []
            for candidate in ranked:
                item = await source.resolve(candidate)
                if item is not None:
                    items.append(item)
            return RecommendationResult(items=items)

        except Exception as e:
            logger.exception("Error in recommend_from_embedding")
            return RecommendationResult(error=str(e) or type(e).__name__)

    # -------------------------------------------------------------------
    # Recommend from free text
    # -------------------------------------------------------------------
    async def recommend_from_text(
        self,
        query: str,
        threshold: Optional[float] = None,
        limit: Optional[int] = None,
        exclude_id: Optional[str] = None,
        source: Optional[CandidateSource] = None,
    ) -> RecommendationResult:
        """
        Embed `query` and recommend from the result.

        Raises EmbeddingGenerationError when no usable embedding comes back,
        so callers can tell "nothing similar" from "could not search at all".
        """
        if not isinstance(query, str) or not query.strip():
            raise ValidationError("query must be a non-empty string")

        embedding = await self.embedding_client.generate_embedding(query)
        if not embedding:
            raise EmbeddingGenerationError("empty embedding")

        return await self.recommend_from_embedding(
            embedding,
            threshold=threshold,
            limit=limit,
            exclude_id=exclude_id,
            source=source,
        )
