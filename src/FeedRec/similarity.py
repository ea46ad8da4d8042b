# FeedRec/similarity.py
import math
import numpy as np
from abc import ABC, abstractmethod
from enum import Enum
from typing import List, Sequence, Union

from FeedRec.errors import DimensionalityMismatchError, ValidationError


class Direction(str, Enum):
    TOWARD = "toward"
    AWAY = "away"

    @classmethod
    def parse(cls, value: Union["Direction", str]) -> "Direction":
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(
                f"direction must be 'toward' or 'away', got {value!r}"
            ) from None


class SimilarityCalculator(ABC):
    @abstractmethod
    def calculate(self, vec1: Sequence[float], vec2: Sequence[float]) -> float:
        pass


class CosineSimilarityCalculator(SimilarityCalculator):
    """
    Cosine similarity for embeddings.

    Never raises: vectors of different length, or a vector with zero
    magnitude, are treated as unrelated and score 0.
    """

    def calculate(self, vec1: Sequence[float], vec2: Sequence[float]) -> float:
        if len(vec1) != len(vec2):
            return 0.0
        a = np.asarray(vec1, dtype=float)
        b = np.asarray(vec2, dtype=float)
        norm_vec1 = np.linalg.norm(a)
        norm_vec2 = np.linalg.norm(b)
        if norm_vec1 == 0 or norm_vec2 == 0:
            return 0.0
        dot_product = np.dot(a, b)
        return float(dot_product / (norm_vec1 * norm_vec2))


def cosine_similarity(vec1: Sequence[float], vec2: Sequence[float]) -> float:
    return CosineSimilarityCalculator().calculate(vec1, vec2)


def is_numeric_vector(value) -> bool:
    """A list of finite real numbers (bools excluded)."""
    return isinstance(value, (list, tuple)) and all(
        isinstance(x, (int, float)) and not isinstance(x, bool) and math.isfinite(x)
        for x in value
    )


def vectors_equal(vec1: Sequence[float], vec2: Sequence[float]) -> bool:
    """Exact element-wise equality, no tolerance."""
    if len(vec1) != len(vec2):
        return False
    return all(x == y for x, y in zip(vec1, vec2))


def lerp(
    current: Sequence[float],
    target: Sequence[float],
    alpha: float,
    direction: Union[Direction, str],
) -> List[float]:
    """
    Move `current` toward `target` (or away from it) by `alpha`.

    toward: (1 - alpha) * current + alpha * target
    away:   (1 - alpha) * current - alpha * target

    alpha is not clamped, values outside [0, 1] extrapolate.
    """
    direction = Direction.parse(direction)
    if len(current) != len(target):
        raise DimensionalityMismatchError(len(current), len(target))

    sign = 1.0 if direction is Direction.TOWARD else -1.0
    cur = np.asarray(current, dtype=float)
    tgt = np.asarray(target, dtype=float)
    updated = (1 - alpha) * cur + sign * alpha * tgt
    return updated.tolist()
