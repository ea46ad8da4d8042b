# FeedRec/store.py
"""
Item and preference stores.

The recommendation core only needs a handful of reads and one whole-vector
write, so both stores expose async methods and nothing else. Two
implementations are provided: an in-memory one for tests and offline tools,
and one backed by the Firebase Realtime Database REST API.
"""
import asyncio
import copy
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from FeedRec.errors import UpstreamError, ValidationError
from FeedRec.similarity import is_numeric_vector

logger = logging.getLogger(__name__)


@dataclass
class ContentItem:
    """A post or user profile, as far as recommendations are concerned."""

    id: str
    embedding: Optional[List[float]] = None
    payload: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], item_id: Optional[str] = None) -> "ContentItem":
        payload = dict(data)
        stored_id = payload.pop("id", None)
        item_id = item_id or stored_id
        if not item_id:
            raise ValidationError("item is missing an id")
        embedding = payload.pop("embedding", None)
        if embedding is not None and not (
            isinstance(embedding, list) and is_numeric_vector(embedding)
        ):
            raise ValidationError(f"item {item_id} has a malformed embedding")
        return cls(id=str(item_id), embedding=embedding, payload=payload)

    def has_embedding(self) -> bool:
        return bool(self.embedding)

    def to_dict(self) -> Dict[str, Any]:
        out = {"id": self.id, **self.payload}
        if self.embedding is not None:
            out["embedding"] = list(self.embedding)
        return out


class ItemStore(ABC):
    @abstractmethod
    async def get_all_items_with_embeddings(self) -> List[ContentItem]:
        """Every item with a non-empty embedding, in no particular order."""

    @abstractmethod
    async def get_item_by_id(self, item_id: str) -> Optional[ContentItem]:
        """The item, or None when it does not exist."""

    @abstractmethod
    async def put_item(self, item: ContentItem) -> None:
        pass

    @abstractmethod
    async def delete_item(self, item_id: str) -> None:
        pass


class PreferenceStore(ABC):
    @abstractmethod
    async def get_embedding(self, uid: str) -> Optional[List[float]]:
        pass

    @abstractmethod
    async def set_embedding(self, uid: str, vector: List[float]) -> None:
        """Replace the whole vector in a single write."""


class InMemoryStore(ItemStore, PreferenceStore):
    def __init__(self, items: Optional[List[ContentItem]] = None, user_embeddings=None):
        self._items: Dict[str, ContentItem] = {}
        self._user_embeddings: Dict[str, List[float]] = {}
        for item in items or []:
            self._items[item.id] = item
        for uid, vector in (user_embeddings or {}).items():
            self._user_embeddings[uid] = list(vector)

    def __len__(self) -> int:
        return len(self._items)

    async def get_all_items_with_embeddings(self) -> List[ContentItem]:
        return [copy.deepcopy(i) for i in self._items.values() if i.has_embedding()]

    async def get_item_by_id(self, item_id: str) -> Optional[ContentItem]:
        item = self._items.get(item_id)
        return copy.deepcopy(item) if item is not None else None

    async def put_item(self, item: ContentItem) -> None:
        self._items[item.id] = copy.deepcopy(item)

    async def delete_item(self, item_id: str) -> None:
        self._items.pop(item_id, None)

    async def get_embedding(self, uid: str) -> Optional[List[float]]:
        vector = self._user_embeddings.get(uid)
        return list(vector) if vector is not None else None

    async def set_embedding(self, uid: str, vector: List[float]) -> None:
        self._user_embeddings[uid] = list(vector)


def load_snapshot(path: str) -> InMemoryStore:
    """Load a JSON list of posts (as written by 1_retrieve_posts_snapshot.py)."""
    with open(path, "r", encoding="utf-8") as fh:
        records = json.load(fh)
    if isinstance(records, dict):
        records = [{"id": key, **value} for key, value in records.items()]
    items = []
    for record in records:
        if not isinstance(record, dict):
            continue
        try:
            items.append(ContentItem.from_dict(record))
        except ValidationError as e:
            logger.warning("Skipping snapshot record: %s", e)
    return InMemoryStore(items)


class RealtimeDatabaseStore(ItemStore, PreferenceStore):
    """
    Firebase Realtime Database over its REST API.

    Posts live under /posts/{id}, user preference vectors under
    /users/{uid}/embedding. Every call is attempted once.
    """

    def __init__(
        self,
        database_url: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        if not database_url:
            raise ValidationError("database_url is required")
        self.database_url = database_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.database_url}/{path.strip('/')}.json"

    def _request(self, method: str, path: str, payload: Any = None) -> Any:
        url = self._url(path)
        try:
            resp = self.session.request(method, url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise UpstreamError(f"{method} {path} failed: {e}") from e
        if not resp.content:
            return None
        return resp.json()

    async def _call(self, method: str, path: str, payload: Any = None) -> Any:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self._request, method, path, payload)

    async def get_all_items_with_embeddings(self) -> List[ContentItem]:
        data = await self._call("GET", "posts") or {}
        items = []
        for key, value in data.items():
            if not isinstance(value, dict):
                continue
            try:
                item = ContentItem.from_dict(value, item_id=key)
            except ValidationError as e:
                logger.warning("Skipping malformed post %s: %s", key, e)
                continue
            if item.has_embedding():
                items.append(item)
        return items

    async def get_item_by_id(self, item_id: str) -> Optional[ContentItem]:
        data = await self._call("GET", f"posts/{item_id}")
        if not isinstance(data, dict):
            return None
        return ContentItem.from_dict(data, item_id=item_id)

    async def put_item(self, item: ContentItem) -> None:
        await self._call("PUT", f"posts/{item.id}", item.to_dict())

    async def delete_item(self, item_id: str) -> None:
        await self._call("DELETE", f"posts/{item_id}")

    async def get_embedding(self, uid: str) -> Optional[List[float]]:
        data = await self._call("GET", f"users/{uid}/embedding")
        if not isinstance(data, list):
            return None
        return data

    async def set_embedding(self, uid: str, vector: List[float]) -> None:
        await self._call("PUT", f"users/{uid}/embedding", list(vector))
