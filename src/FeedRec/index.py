# FeedRec/index.py
import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import faiss
import numpy as np

from FeedRec.errors import DimensionalityMismatchError, ValidationError
from FeedRec.store import ContentItem

logger = logging.getLogger(__name__)

# Scores are reported with this many decimals, so an identical vector
# scores exactly 1.0 despite float32 normalization error.
SCORE_DECIMALS = 6


class VectorIndex(ABC):
    """Approximate nearest-neighbour lookup over item embeddings."""

    @abstractmethod
    async def upsert(self, item_id: str, vector: Sequence[float]) -> None:
        pass

    @abstractmethod
    async def remove(self, item_id: str) -> None:
        pass

    @abstractmethod
    async def query(self, vector: Sequence[float], top_k: int) -> List[Tuple[str, float]]:
        """(id, score) pairs, best first, at most top_k of them."""


class FaissVectorIndex(VectorIndex):
    """
    Cosine-similarity index on FAISS inner product over L2-normalized vectors.

    Vectors are kept in a dict and the FAISS index is rebuilt on the next
    query after any write.
    """

    def __init__(self, dimension: Optional[int] = None):
        self.dimension = dimension
        self._vectors: Dict[str, np.ndarray] = {}
        self._ids: List[str] = []
        self._faiss_index = None

    def __len__(self) -> int:
        return len(self._vectors)

    @classmethod
    def from_items(cls, items: Iterable[ContentItem]) -> "FaissVectorIndex":
        index = cls()
        for item in items:
            if item.has_embedding():
                index._add(item.id, item.embedding)
        return index

    def _add(self, item_id: str, vector: Sequence[float]) -> None:
        if not vector:
            raise ValidationError(f"cannot index an empty embedding for {item_id}")
        if self.dimension is None:
            self.dimension = len(vector)
        elif len(vector) != self.dimension:
            raise DimensionalityMismatchError(self.dimension, len(vector))
        self._vectors[item_id] = np.asarray(vector, dtype="float32")
        self._faiss_index = None

    def build_faiss_index(self) -> None:
        """Build the FAISS index from the stored vectors."""
        self._ids = list(self._vectors)
        index = faiss.IndexFlatIP(self.dimension)
        if self._ids:
            matrix = np.stack([self._vectors[i] for i in self._ids]).astype("float32")
            faiss.normalize_L2(matrix)
            index.add(matrix)
        self._faiss_index = index
        logger.debug("FAISS index built with %d vectors", len(self._ids))

    async def upsert(self, item_id: str, vector: Sequence[float]) -> None:
        self._add(item_id, vector)

    async def remove(self, item_id: str) -> None:
        if self._vectors.pop(item_id, None) is not None:
            self._faiss_index = None

    async def query(self, vector: Sequence[float], top_k: int) -> List[Tuple[str, float]]:
        if not self._vectors or top_k <= 0 or len(vector) != self.dimension:
            return []
        if self._faiss_index is None:
            self.build_faiss_index()

        query_vec = np.array([vector]).astype("float32")
        faiss.normalize_L2(query_vec)
        D, I = self._faiss_index.search(query_vec, min(top_k, len(self._ids)))
        return [
            (self._ids[i], round(float(d), SCORE_DECIMALS))
            for d, i in zip(D[0], I[0])
            if i >= 0
        ]
