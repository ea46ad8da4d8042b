# FeedRec/handlers.py
"""
Request adapters.

Each handler takes a decoded JSON body and returns ``(status_code, body)``,
leaving routing and serialization to whatever serves them.
"""
import logging
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError,
    field_validator,
    model_validator,
)

from FeedRec.errors import (
    EmbeddingGenerationError,
    FeedRecError,
    NotFoundError,
    ValidationError,
)
from FeedRec.index import VectorIndex
from FeedRec.preferences import PreferenceUpdater
from FeedRec.recommend import EmbeddingRecommender
from FeedRec.store import ContentItem, ItemStore

logger = logging.getLogger(__name__)

Response = Tuple[int, Any]


def _non_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


class RecommendRequest(BaseModel):
    model_config = ConfigDict(strict=True, allow_inf_nan=False)

    embedding: Optional[List[float]] = None
    query: Optional[str] = None
    threshold: Optional[float] = Field(
        None, validation_alias=AliasChoices("threshold", "similarityThreshold")
    )
    limit: Optional[int] = Field(None, ge=0)
    exclude_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("excludeId", "exclude_id")
    )

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _non_blank(v)

    @model_validator(mode="after")
    def exactly_one_input(self) -> "RecommendRequest":
        if (self.embedding is None) == (self.query is None):
            raise ValueError("exactly one of 'embedding' or 'query' is required")
        return self


class UpdatePreferenceRequest(BaseModel):
    model_config = ConfigDict(strict=True, populate_by_name=True, allow_inf_nan=False)

    uid: str = Field(min_length=1)
    post_embedding: List[float] = Field(alias="postEmbedding")
    alpha: float
    direction: Literal["toward", "away"]


class GenerateEmbeddingRequest(BaseModel):
    model_config = ConfigDict(strict=True)

    text: str

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, v: str) -> str:
        return _non_blank(v)


class UploadPostRequest(BaseModel):
    model_config = ConfigDict(strict=True, extra="allow", allow_inf_nan=False)

    id: str = Field(min_length=1)
    embedding: List[float] = Field(min_length=1)


class DeletePostRequest(BaseModel):
    model_config = ConfigDict(strict=True, populate_by_name=True)

    post_id: str = Field(alias="postId", min_length=1)


def _invalid(e: PydanticValidationError) -> Response:
    details = "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}"
        for err in e.errors()
    )
    return 400, {"error": f"Invalid input parameters: {details}"}


def _as_dict(payload: Any) -> Dict[str, Any]:
    return payload if isinstance(payload, dict) else {}


# -------------------------------------------------------------------
# Recommendations
# -------------------------------------------------------------------
async def handle_recommend(payload: Any, recommender: EmbeddingRecommender) -> Response:
    try:
        req = RecommendRequest.model_validate(_as_dict(payload))
    except PydanticValidationError as e:
        return _invalid(e)

    kwargs = dict(threshold=req.threshold, limit=req.limit, exclude_id=req.exclude_id)
    try:
        if req.query is not None:
            result = await recommender.recommend_from_text(req.query, **kwargs)
        else:
            result = await recommender.recommend_from_embedding(req.embedding, **kwargs)
    except EmbeddingGenerationError as e:
        logger.error("recommend: %s", e)
        return 500, {"error": "embedding generation failed"}
    except ValidationError as e:
        return 400, {"error": str(e)}
    except FeedRecError:
        logger.exception("Error in recommend")
        return 500, {"error": "Internal Server Error"}

    if not result.ok:
        logger.warning("recommend degraded to an empty result: %s", result.error)
    return 200, [item.to_dict() for item in result.items]


# -------------------------------------------------------------------
# Preference vector
# -------------------------------------------------------------------
async def handle_update_preference(payload: Any, updater: PreferenceUpdater) -> Response:
    try:
        req = UpdatePreferenceRequest.model_validate(_as_dict(payload))
    except PydanticValidationError as e:
        return _invalid(e)

    try:
        await updater.apply(req.uid, req.post_embedding, req.alpha, req.direction)
    except ValidationError as e:
        return 400, {"error": str(e)}
    except NotFoundError:
        return 404, {"error": "User embedding not found"}
    except Exception:
        logger.exception("Error updating user embedding")
        return 500, {"error": "Internal server error"}

    return 200, {"success": True}


# -------------------------------------------------------------------
# Embeddings and post indexing
# -------------------------------------------------------------------
async def handle_generate_embedding(payload: Any, embedding_client) -> Response:
    try:
        req = GenerateEmbeddingRequest.model_validate(_as_dict(payload))
    except PydanticValidationError as e:
        return _invalid(e)

    try:
        embedding = await embedding_client.generate_embedding(req.text)
    except EmbeddingGenerationError as e:
        logger.error("generate_embedding: %s", e)
        return 500, {"error": "Failed to generate embedding"}
    return 200, {"embedding": embedding}


async def handle_upload_post(payload: Any, store: ItemStore, index: VectorIndex) -> Response:
    try:
        req = UploadPostRequest.model_validate(_as_dict(payload))
    except PydanticValidationError as e:
        return _invalid(e)

    item = ContentItem.from_dict(req.model_dump())
    # Index first; stale index entries are skipped when recommending.
    try:
        await index.upsert(item.id, item.embedding)
        await store.put_item(item)
    except ValidationError as e:
        return 400, {"error": str(e)}
    except Exception:
        logger.exception("Error uploading post %s", item.id)
        return 500, {"error": "Internal Server Error"}
    return 200, {"success": True}


async def handle_delete_post(
    payload: Any, store: ItemStore, index: Optional[VectorIndex] = None
) -> Response:
    try:
        req = DeletePostRequest.model_validate(_as_dict(payload))
    except PydanticValidationError as e:
        return _invalid(e)

    try:
        await store.delete_item(req.post_id)
        if index is not None:
            await index.remove(req.post_id)
    except Exception:
        logger.exception("Failed to delete post %s", req.post_id)
        return 500, {"error": "Failed to delete post"}
    return 200, {"success": True}
