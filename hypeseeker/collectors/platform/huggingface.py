"""Hugging Face model listing fetcher."""

from datetime import datetime
from typing import Any

import structlog

from hypeseeker.collectors.base import parse_timestamp, request_json, schema_error
from hypeseeker.config.schemas import HuggingFaceSourceConfig
from hypeseeker.store.models import Post


logger = structlog.get_logger()

HF_MODELS_URL = "https://huggingface.co/api/models"
HF_BASE_URL = "https://huggingface.co"
_PAGE_SIZE = 100


class HuggingFaceFetcher:
    """Most-liked models above the like and download thresholds."""

    name = "huggingface"

    def __init__(self, config: HuggingFaceSourceConfig) -> None:
        self._config = config
        self._log = logger.bind(component="collectors", subcomponent="huggingface")

    def fetch(self, now: datetime) -> list[Post]:
        """Fetch models sorted by likes.

        Raises:
            CollectorError: If the API call fails or the response is malformed.
        """
        data = request_json(
            HF_MODELS_URL,
            source=self.name,
            params={
                "sort": "likes",
                "direction": -1,
                "limit": _PAGE_SIZE,
                "full": "true",
            },
        )
        if not isinstance(data, list):
            raise schema_error(self.name, "Model listing is not a list")

        posts = [
            self._to_post(model, now)
            for model in data
            if isinstance(model, dict) and self._accepts(model)
        ]
        self._log.info("huggingface_fetched", count=len(posts), listed=len(data))
        return posts

    def _accepts(self, model: dict[str, Any]) -> bool:
        model_id = model.get("id") or model.get("modelId")
        if not model_id:
            return False
        likes = int(model.get("likes") or 0)
        downloads = int(model.get("downloads") or 0)
        return likes >= self._config.min_likes and downloads >= self._config.min_downloads

    def _to_post(self, model: dict[str, Any], now: datetime) -> Post:
        model_id: str = model.get("id") or model["modelId"]
        owner, _, name = model_id.partition("/")
        return Post(
            id=model_id,
            source=self.name,
            username=owner if name else model.get("author") or "",
            name=name or owner,
            stars=int(model.get("likes") or 0),
            description=model.get("pipeline_tag") or "",
            url=f"{HF_BASE_URL}/{model_id}",
            created_at=parse_timestamp(model.get("createdAt"), now),
        )
