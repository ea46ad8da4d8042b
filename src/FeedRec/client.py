# FeedRec/client.py
import asyncio
import logging
from functools import cached_property
from typing import Any, List, Optional

import ollama
import openai

from FeedRec.config import FeedRecConfig
from FeedRec.errors import EmbeddingGenerationError, ValidationError

logger = logging.getLogger(__name__)


def _usable_embedding(value: Any) -> List[float]:
    if not isinstance(value, (list, tuple)) or not value:
        raise EmbeddingGenerationError("response carried no embedding")
    if not all(isinstance(x, (int, float)) and not isinstance(x, bool) for x in value):
        raise EmbeddingGenerationError("embedding contains non-numeric values")
    return [float(x) for x in value]


def _check_text(text: str) -> None:
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("text to embed must be a non-empty string")


class LocalOllamaClient:
    """
    Wrapper around a local Ollama embedding model.
    """

    def __init__(self, embedding_model: str = "nomic-embed-text"):
        self.embedding_model = embedding_model

    async def generate_embedding(self, text: str) -> List[float]:
        """
        Generate an embedding for the given text using the Ollama embedding model.
        """
        _check_text(text)
        loop = asyncio.get_event_loop()

        def _call():
            return ollama.embeddings(model=self.embedding_model, prompt=text)

        try:
            resp = await loop.run_in_executor(None, _call)
        except Exception as e:
            logger.error("Ollama embedding call failed: %s", e)
            raise EmbeddingGenerationError(str(e)) from e

        try:
            embedding = resp["embedding"]
        except (KeyError, TypeError):
            embedding = None
        return _usable_embedding(embedding)


class OpenAIEmbeddingClient:
    """
    Embedding client backed by OpenAI's embeddings endpoint.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "text-embedding-3-small",
        timeout: float = 10.0,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    @cached_property
    def _client(self) -> openai.AsyncOpenAI:
        return openai.AsyncOpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)

    async def generate_embedding(self, text: str) -> List[float]:
        _check_text(text)
        try:
            resp = await self._client.embeddings.create(input=text, model=self.model)
        except openai.OpenAIError as e:
            logger.error("OpenAI embedding call failed: %s", e)
            raise EmbeddingGenerationError(str(e)) from e

        if not resp.data:
            raise EmbeddingGenerationError("response carried no embedding")
        return _usable_embedding(resp.data[0].embedding)


def build_embedding_client(config: FeedRecConfig):
    if config.embedding_provider == "openai":
        return OpenAIEmbeddingClient(
            api_key=config.api_key,
            model=config.model_name,
            timeout=config.request_timeout,
        )
    if config.embedding_provider == "ollama":
        return LocalOllamaClient(embedding_model=config.model_name)
    raise ValidationError(f"unknown embedding provider: {config.embedding_provider!r}")
