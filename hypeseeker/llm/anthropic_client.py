"""Anthropic Messages API backend."""

from http import HTTPStatus

import httpx
import structlog

from hypeseeker.llm.errors import LlmApiError, LlmTimeoutError
from hypeseeker.llm.protocols import ModelTier


logger = structlog.get_logger()

_MESSAGES_URL = "https://api.anthropic.com/v1/messages"
_API_VERSION = "2023-06-01"

DEFAULT_FAST_MODEL = "claude-3-5-haiku-20241022"
DEFAULT_STRONG_MODEL = "claude-sonnet-4-20250514"


def parse_retry_after(response: httpx.Response) -> float | None:
    """Read a numeric ``retry-after`` header in seconds.

    HTTP-date values are ignored; the caller falls back to its fixed delay.
    """
    raw = response.headers.get("retry-after")
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if value >= 0 else None


def _error_type(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        error_type = body["error"].get("type")
        return error_type if isinstance(error_type, str) else None
    return None


class AnthropicBackend:
    """Single-shot client for the Anthropic Messages API.

    Tier ``FAST`` maps to a Haiku model and ``STRONG`` to a Sonnet model.
    Failures are raised as ``LlmApiError`` with the status code and any
    ``retry-after`` hint; this class never retries.
    """

    name = "anthropic"

    def __init__(
        self,
        api_key: str,
        fast_model: str = DEFAULT_FAST_MODEL,
        strong_model: str = DEFAULT_STRONG_MODEL,
        timeout: float = 60.0,
    ) -> None:
        """Initialize the backend.

        Args:
            api_key: Anthropic API key.
            fast_model: Model id for the fast tier.
            strong_model: Model id for the strong tier.
            timeout: Request timeout in seconds.
        """
        self._api_key = api_key
        self._models = {ModelTier.FAST: fast_model, ModelTier.STRONG: strong_model}
        self._timeout = timeout
        self._log = logger.bind(component="llm", subcomponent="anthropic")

    def model_for(self, tier: ModelTier) -> str:
        """Model id used for a tier."""
        return self._models[tier]

    def complete(self, tier: ModelTier, prompt: str, max_tokens: int) -> str:
        """Send one Messages API request.

        Args:
            tier: Model tier.
            prompt: User prompt text.
            max_tokens: Output token cap.

        Returns:
            Text of the first text block, or an empty string.

        Raises:
            LlmTimeoutError: If the request times out.
            LlmApiError: If the request fails or returns a non-200 status.
        """
        model = self._models[tier]
        try:
            response = httpx.post(
                _MESSAGES_URL,
                headers={
                    "x-api-key": self._api_key,
                    "anthropic-version": _API_VERSION,
                    "content-type": "application/json",
                },
                json={
                    "model": model,
                    "max_tokens": max_tokens,
                    "messages": [{"role": "user", "content": prompt}],
                },
                timeout=self._timeout,
            )
        except httpx.TimeoutException as exc:
            msg = f"Anthropic request timed out after {self._timeout}s"
            raise LlmTimeoutError(msg) from exc
        except httpx.HTTPError as exc:
            msg = f"Anthropic request failed: {exc}"
            raise LlmApiError(msg) from exc

        if response.status_code != HTTPStatus.OK:
            error_type = _error_type(response)
            msg = f"Anthropic API returned {response.status_code}"
            if error_type:
                msg = f"{msg} ({error_type})"
            raise LlmApiError(
                msg,
                status_code=response.status_code,
                retry_after=parse_retry_after(response),
                overloaded=error_type == "overloaded_error",
            )

        try:
            data = response.json()
            for block in data.get("content", []):
                if block.get("type") == "text":
                    text: str = block.get("text", "")
                    return text
        except (ValueError, LookupError, AttributeError, TypeError) as exc:
            msg = f"Malformed Anthropic API response: {response.text[:200]}"
            raise LlmApiError(msg, status_code=response.status_code) from exc

        self._log.debug("anthropic_no_text_block", model=model)
        return ""
