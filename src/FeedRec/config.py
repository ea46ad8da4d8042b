# FeedRec/config.py
"""
Runtime configuration for the recommendation core.

Values are passed around explicitly as a FeedRecConfig; only `from_env`
looks at the process environment (after loading an optional .env file).
"""
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

DEFAULT_SIMILARITY_THRESHOLD = 0.4
DEFAULT_RECOMMENDATION_LIMIT = 10


@dataclass(frozen=True)
class FeedRecConfig:
    api_key: Optional[str] = None
    region: str = "europe-west3"
    model_name: str = "text-embedding-3-small"
    database_url: Optional[str] = None
    embedding_provider: str = "openai"
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    recommendation_limit: int = DEFAULT_RECOMMENDATION_LIMIT
    request_timeout: float = 10.0

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "FeedRecConfig":
        load_dotenv(dotenv_path)
        defaults = cls()
        return cls(
            api_key=os.getenv("FEEDREC_API_KEY") or os.getenv("OPENAI_API_KEY"),
            region=os.getenv("FEEDREC_REGION", defaults.region),
            model_name=os.getenv("FEEDREC_MODEL_NAME", defaults.model_name),
            database_url=os.getenv("FEEDREC_DATABASE_URL"),
            embedding_provider=os.getenv(
                "FEEDREC_EMBEDDING_PROVIDER", defaults.embedding_provider
            ).lower(),
            similarity_threshold=float(
                os.getenv("FEEDREC_SIMILARITY_THRESHOLD", defaults.similarity_threshold)
            ),
            recommendation_limit=int(
                os.getenv("FEEDREC_RECOMMENDATION_LIMIT", defaults.recommendation_limit)
            ),
            request_timeout=float(
                os.getenv("FEEDREC_REQUEST_TIMEOUT", defaults.request_timeout)
            ),
        )
