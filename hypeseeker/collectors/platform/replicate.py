"""Replicate public model listing fetcher."""

from datetime import datetime
from typing import Any

import structlog

from hypeseeker.collectors.base import parse_timestamp, request_json, schema_error
from hypeseeker.config.schemas import ReplicateSourceConfig
from hypeseeker.store.models import Post


logger = structlog.get_logger()

REPLICATE_MODELS_URL = "https://api.replicate.com/v1/models"
_MAX_PAGES = 5


class ReplicateFetcher:
    """Public models with at least ``min_runs`` runs.

    The listing is paginated; at most a few pages are read per run.
    """

    name = "replicate"

    def __init__(self, config: ReplicateSourceConfig, token: str) -> None:
        self._config = config
        self._token = token
        self._log = logger.bind(component="collectors", subcomponent="replicate")

    def fetch(self, now: datetime) -> list[Post]:
        """Fetch model pages until the listing ends or the page cap is hit.

        Raises:
            CollectorError: If a page cannot be read.
        """
        headers = {"Authorization": f"Bearer {self._token}"}
        url: str | None = REPLICATE_MODELS_URL
        posts: list[Post] = []
        pages = 0

        while url and pages < _MAX_PAGES:
            data = request_json(url, source=self.name, headers=headers)
            if not isinstance(data, dict) or not isinstance(data.get("results"), list):
                raise schema_error(self.name, "Model page has no results list")
            posts.extend(
                self._to_post(model, now)
                for model in data["results"]
                if self._accepts(model)
            )
            url = data.get("next")
            pages += 1

        self._log.info("replicate_fetched", count=len(posts), pages=pages)
        return posts

    def _accepts(self, model: Any) -> bool:
        if not isinstance(model, dict) or not model.get("owner") or not model.get("name"):
            return False
        return int(model.get("run_count") or 0) >= self._config.min_runs

    def _to_post(self, model: dict[str, Any], now: datetime) -> Post:
        latest = model.get("latest_version") or {}
        owner, name = model["owner"], model["name"]
        return Post(
            id=f"{owner}/{name}",
            source=self.name,
            username=owner,
            name=name,
            stars=int(model.get("run_count") or 0),
            description=model.get("description") or "",
            url=model.get("url") or f"https://replicate.com/{owner}/{name}",
            created_at=parse_timestamp(latest.get("created_at"), now),
        )
