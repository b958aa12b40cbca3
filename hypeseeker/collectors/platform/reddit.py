"""Reddit weekly top listing fetcher."""

from datetime import datetime
from typing import Any

import structlog

from hypeseeker.collectors.base import parse_timestamp, request_json, schema_error
from hypeseeker.config.schemas import RedditSourceConfig
from hypeseeker.store.models import Post


logger = structlog.get_logger()

REDDIT_BASE_URL = "https://www.reddit.com"
_PAGE_SIZE = 100
_DESCRIPTION_MAX_LENGTH = 500


class RedditFetcher:
    """Top posts of the week from the configured subreddits.

    Posts below ``min_score`` are dropped. When a subreddit has a flair
    allow-list, only posts whose flair is on it are kept.
    """

    name = "reddit"

    def __init__(self, config: RedditSourceConfig) -> None:
        self._config = config
        self._flairs = {
            sub.lower(): {flair.lower() for flair in flairs}
            for sub, flairs in config.flair_filters.items()
        }
        self._log = logger.bind(component="collectors", subcomponent="reddit")

    def fetch(self, now: datetime) -> list[Post]:
        """Fetch every configured subreddit.

        A failing subreddit fails the whole source.

        Raises:
            CollectorError: If a listing cannot be read.
        """
        posts: list[Post] = []
        for subreddit in self._config.subreddits:
            posts.extend(self._fetch_subreddit(subreddit, now))
        self._log.info("reddit_fetched", count=len(posts))
        return posts

    def _fetch_subreddit(self, subreddit: str, now: datetime) -> list[Post]:
        data = request_json(
            f"{REDDIT_BASE_URL}/r/{subreddit}/top.json",
            source=self.name,
            params={"t": "week", "limit": _PAGE_SIZE},
        )
        try:
            children = data["data"]["children"]
        except (KeyError, TypeError) as exc:
            raise schema_error(self.name, f"Unexpected listing for r/{subreddit}") from exc

        posts = []
        for child in children:
            entry = child.get("data") if isinstance(child, dict) else None
            if entry and self._accepts(subreddit, entry):
                posts.append(self._to_post(entry, now))
        return posts

    def _accepts(self, subreddit: str, entry: dict[str, Any]) -> bool:
        if not entry.get("id") or int(entry.get("score") or 0) < self._config.min_score:
            return False
        allowed = self._flairs.get(subreddit.lower())
        if not allowed:
            return True
        flair = (entry.get("link_flair_text") or "").strip().lower()
        return flair in allowed

    def _to_post(self, entry: dict[str, Any], now: datetime) -> Post:
        permalink = entry.get("permalink") or ""
        return Post(
            id=str(entry["id"]),
            source=self.name,
            username=entry.get("author") or "",
            name=entry.get("title") or "",
            stars=int(entry.get("score") or 0),
            description=(entry.get("selftext") or "")[:_DESCRIPTION_MAX_LENGTH],
            url=f"{REDDIT_BASE_URL}{permalink}" if permalink else entry.get("url") or "",
            created_at=parse_timestamp(entry.get("created_utc"), now),
        )
