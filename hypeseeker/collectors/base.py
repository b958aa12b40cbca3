"""Source fetcher interface and shared HTTP helper."""

from datetime import UTC, datetime
from typing import Any, Protocol, runtime_checkable

import httpx

from hypeseeker.collectors.errors import CollectorError, CollectorErrorClass
from hypeseeker.store.models import Post


DEFAULT_TIMEOUT = 30.0
USER_AGENT = "hypeseeker/0.1"


@runtime_checkable
class SourceFetcher(Protocol):
    """One content source.

    ``fetch`` runs on a worker thread and must not touch the store. It
    raises ``CollectorError`` (or anything else) on failure; the
    orchestrator isolates the error.
    """

    name: str

    def fetch(self, now: datetime) -> list[Post]:
        """Fetch the current posts of this source."""
        ...


def request_json(
    url: str,
    source: str,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Any:
    """GET a URL and decode its JSON body.

    Raises:
        CollectorError: FETCH on network or HTTP errors, PARSE on bad JSON.
    """
    request_headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
    request_headers.update(headers or {})

    try:
        response = httpx.get(
            url,
            params=params,
            headers=request_headers,
            timeout=timeout,
            follow_redirects=True,
        )
    except httpx.HTTPError as exc:
        raise CollectorError(
            CollectorErrorClass.FETCH,
            f"Request failed: {exc}",
            source=source,
            details={"url": url},
        ) from exc

    if response.status_code != httpx.codes.OK:
        raise CollectorError(
            CollectorErrorClass.FETCH,
            f"HTTP {response.status_code}",
            source=source,
            details={"url": url, "status_code": response.status_code},
        )

    try:
        return response.json()
    except ValueError as exc:
        raise CollectorError(
            CollectorErrorClass.PARSE,
            f"Invalid JSON: {exc}",
            source=source,
            details={"url": url},
        ) from exc


def parse_timestamp(value: Any, fallback: datetime) -> datetime:
    """Parse an ISO-8601 string or a unix timestamp into aware UTC."""
    if isinstance(value, int | float) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, UTC)
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return fallback
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=UTC)
        return parsed.astimezone(UTC)
    return fallback


def schema_error(source: str, message: str) -> CollectorError:
    """Build a SCHEMA error for an unexpected response shape."""
    return CollectorError(CollectorErrorClass.SCHEMA, message, source=source)
