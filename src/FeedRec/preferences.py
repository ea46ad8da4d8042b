# FeedRec/preferences.py
import logging
from typing import List, Sequence, Union

from FeedRec.errors import NotFoundError
from FeedRec.similarity import Direction, lerp
from FeedRec.store import PreferenceStore

logger = logging.getLogger(__name__)


def update_preference(
    current: Sequence[float],
    target: Sequence[float],
    alpha: float,
    direction: Union[Direction, str],
) -> List[float]:
    """
    New preference vector after reacting to an item.

    Raises DimensionalityMismatchError when the vectors differ in length.
    """
    return lerp(current, target, alpha, direction)


class PreferenceUpdater:
    """Reads a user's preference vector, moves it and writes it back whole."""

    def __init__(self, store: PreferenceStore):
        self.store = store

    async def apply(
        self,
        uid: str,
        post_embedding: Sequence[float],
        alpha: float,
        direction: Union[Direction, str],
    ) -> List[float]:
        direction = Direction.parse(direction)

        current = await self.store.get_embedding(uid)
        if current is None:
            raise NotFoundError(f"user embedding not found for {uid}")

        updated = update_preference(current, post_embedding, alpha, direction)
        await self.store.set_embedding(uid, updated)
        logger.info("Moved preference of %s %s a post (alpha=%s)", uid, direction.value, alpha)
        return updated
