import pytest

from FeedRec.errors import DimensionalityMismatchError, NotFoundError, ValidationError
from FeedRec.preferences import PreferenceUpdater, update_preference
from FeedRec.store import InMemoryStore

from utils import BrokenStore


class RecordingStore(InMemoryStore):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.writes = []

    async def set_embedding(self, uid, vector):
        self.writes.append((uid, list(vector)))
        await super().set_embedding(uid, vector)


def test_update_preference_toward_and_away():
    assert update_preference([1, 0], [0, 1], 0.5, "toward") == [0.5, 0.5]
    assert update_preference([1, 0], [0, 1], 0.5, "away") == [0.5, -0.5]


def test_update_preference_mismatch():
    with pytest.raises(DimensionalityMismatchError, match="dimensionality mismatch"):
        update_preference([1, 2], [1, 2, 3], 0.5, "toward")


@pytest.mark.asyncio
async def test_apply_writes_whole_vector_once():
    store = RecordingStore(user_embeddings={"u1": [1.0, 0.0]})
    updater = PreferenceUpdater(store)

    updated = await updater.apply("u1", [0.0, 1.0], 0.25, "toward")

    assert updated == [0.75, 0.25]
    assert store.writes == [("u1", [0.75, 0.25])]
    assert await store.get_embedding("u1") == [0.75, 0.25]


@pytest.mark.asyncio
async def test_apply_mismatch_never_writes():
    store = RecordingStore(user_embeddings={"u1": [1.0, 2.0]})
    updater = PreferenceUpdater(store)

    with pytest.raises(DimensionalityMismatchError):
        await updater.apply("u1", [1.0, 2.0, 3.0], 0.5, "toward")

    assert store.writes == []
    assert await store.get_embedding("u1") == [1.0, 2.0]


@pytest.mark.asyncio
async def test_apply_unknown_user():
    store = RecordingStore()
    with pytest.raises(NotFoundError):
        await PreferenceUpdater(store).apply("ghost", [1.0], 0.5, "away")
    assert store.writes == []


@pytest.mark.asyncio
async def test_apply_rejects_bad_direction_before_reading():
    updater = PreferenceUpdater(BrokenStore())
    with pytest.raises(ValidationError):
        await updater.apply("u1", [1.0], 0.5, "sideways")


@pytest.mark.asyncio
async def test_apply_surfaces_store_failure():
    updater = PreferenceUpdater(BrokenStore())
    with pytest.raises(ConnectionError):
        await updater.apply("u1", [1.0], 0.5, "toward")


@pytest.mark.asyncio
async def test_repeated_updates_converge_toward_target():
    store = InMemoryStore(user_embeddings={"u1": [1.0, 0.0]})
    updater = PreferenceUpdater(store)
    for _ in range(30):
        await updater.apply("u1", [0.0, 1.0], 0.3, "toward")
    final = await store.get_embedding("u1")
    assert final == pytest.approx([0.0, 1.0], abs=1e-4)
