from FeedRec.errors import EmbeddingGenerationError
from FeedRec.store import ContentItem, InMemoryStore


class FakeEmbeddingClient:
    def __init__(self, vectors=None, fail=False):
        self.vectors = vectors or {}
        self.fail = fail
        self.calls = []

    async def generate_embedding(self, text):
        self.calls.append(text)
        if self.fail:
            raise EmbeddingGenerationError("upstream said no")
        return self.vectors.get(text, [])


class FakeIndex:
    """Vector index returning canned matches."""

    def __init__(self, matches=None, error=None):
        self.matches = matches or []
        self.error = error
        self.queries = []
        self.upserted = {}
        self.removed = []

    async def upsert(self, item_id, vector):
        self.upserted[item_id] = list(vector)

    async def remove(self, item_id):
        self.removed.append(item_id)

    async def query(self, vector, top_k):
        self.queries.append((list(vector), top_k))
        if self.error:
            raise self.error
        return self.matches[:top_k]


class BrokenStore(InMemoryStore):
    async def get_all_items_with_embeddings(self):
        raise ConnectionError("store unreachable")

    async def get_embedding(self, uid):
        raise ConnectionError("store unreachable")


def post(post_id, embedding, **payload):
    payload.setdefault("title", f"post {post_id}")
    return ContentItem(id=post_id, embedding=embedding, payload=payload)
