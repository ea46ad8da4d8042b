import pytest

from FeedRec.config import FeedRecConfig
from FeedRec.index import FaissVectorIndex
from FeedRec.recommend import EmbeddingRecommender, FullScanSource, VectorIndexSource
from FeedRec.store import InMemoryStore

from utils import FakeEmbeddingClient, post


@pytest.fixture
def posts():
    return [
        post("A", [1.0, 0.0, 0.0]),
        post("B", [0.9, 0.1, 0.0]),
        post("C", [0.0, 1.0, 0.0]),
    ]


@pytest.fixture
def store(posts):
    return InMemoryStore(posts, user_embeddings={"u1": [1.0, 0.0]})


@pytest.fixture
def config():
    return FeedRecConfig()


@pytest.fixture
def full_scan_recommender(store, config):
    return EmbeddingRecommender(FakeEmbeddingClient(), FullScanSource(store), config)


@pytest.fixture
def faiss_index(posts):
    return FaissVectorIndex.from_items(posts)


@pytest.fixture
def index_recommender(store, faiss_index, config):
    return EmbeddingRecommender(
        FakeEmbeddingClient(), VectorIndexSource(faiss_index, store), config
    )
