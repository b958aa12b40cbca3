"""GitHub repository search fetcher."""

from datetime import datetime, timedelta
from typing import Any

import structlog

from hypeseeker.collectors.base import parse_timestamp, request_json, schema_error
from hypeseeker.config.schemas import GitHubSourceConfig
from hypeseeker.store.models import Post


logger = structlog.get_logger()

GITHUB_SEARCH_URL = "https://api.github.com/search/repositories"
_PAGE_SIZE = 100


class GitHubFetcher:
    """Fresh repositories with a minimum number of stars.

    Searches repositories created within the lookback window, most starred
    first. A token raises the API rate limit but is optional.
    """

    name = "github"

    def __init__(self, config: GitHubSourceConfig, token: str | None = None) -> None:
        self._config = config
        self._token = token
        self._log = logger.bind(component="collectors", subcomponent="github")

    def build_query(self, now: datetime) -> str:
        """Search query for repos created since the lookback start."""
        since = (now - timedelta(days=self._config.lookback_days)).date().isoformat()
        return f"created:>{since} stars:>={self._config.min_stars}"

    def fetch(self, now: datetime) -> list[Post]:
        """Fetch repositories matching the search query.

        Raises:
            CollectorError: If the API call fails or the response is malformed.
        """
        headers = {"Accept": "application/vnd.github+json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        data = request_json(
            GITHUB_SEARCH_URL,
            source=self.name,
            params={
                "q": self.build_query(now),
                "sort": "stars",
                "order": "desc",
                "per_page": _PAGE_SIZE,
            },
            headers=headers,
        )
        if not isinstance(data, dict) or not isinstance(data.get("items"), list):
            raise schema_error(self.name, "Search response has no items list")

        posts = [self._to_post(repo, now) for repo in data["items"] if repo.get("id")]
        self._log.info("github_fetched", count=len(posts))
        return posts

    def _to_post(self, repo: dict[str, Any], now: datetime) -> Post:
        owner = repo.get("owner") or {}
        return Post(
            id=str(repo["id"]),
            source=self.name,
            username=owner.get("login") or "",
            name=repo.get("name") or "",
            stars=int(repo.get("stargazers_count") or 0),
            description=repo.get("description") or "",
            url=repo.get("html_url") or "",
            created_at=parse_timestamp(repo.get("created_at"), now),
        )
