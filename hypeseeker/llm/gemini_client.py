"""Gemini API backend using API key authentication."""

from http import HTTPStatus

import httpx
import structlog

from hypeseeker.llm.anthropic_client import parse_retry_after
from hypeseeker.llm.errors import LlmApiError, LlmTimeoutError
from hypeseeker.llm.protocols import ModelTier


logger = structlog.get_logger()

_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

DEFAULT_FAST_MODEL = "gemini-2.5-flash"
DEFAULT_STRONG_MODEL = "gemini-2.5-pro"


class GeminiBackend:
    """Client for the standard Gemini API using API key authentication.

    Uses the ``generativelanguage.googleapis.com`` endpoint with an
    ``x-goog-api-key`` header. One request per call; retries are left to
    the resilient client wrapping it.
    """

    name = "gemini"

    def __init__(
        self,
        api_key: str,
        fast_model: str = DEFAULT_FAST_MODEL,
        strong_model: str = DEFAULT_STRONG_MODEL,
        timeout: float = 60.0,
    ) -> None:
        self._api_key = api_key
        self._models = {ModelTier.FAST: fast_model, ModelTier.STRONG: strong_model}
        self._timeout = timeout
        self._log = logger.bind(component="llm", subcomponent="gemini")

    def model_for(self, tier: ModelTier) -> str:
        """Model id used for a tier."""
        return self._models[tier]

    def complete(self, tier: ModelTier, prompt: str, max_tokens: int) -> str:
        """Send a generate content request to the Gemini API.

        Args:
            tier: Model tier.
            prompt: User prompt text.
            max_tokens: Output token cap.

        Returns:
            Generated text from the first candidate.

        Raises:
            LlmTimeoutError: If the request times out.
            LlmApiError: If the call fails or the response has no text.
        """
        url = f"{_BASE_URL}/{self._models[tier]}:generateContent"

        request_body: dict[str, object] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"maxOutputTokens": max_tokens},
        }

        try:
            response = httpx.post(
                url,
                headers={
                    "x-goog-api-key": self._api_key,
                    "Content-Type": "application/json",
                },
                json=request_body,
                timeout=self._timeout,
            )
        except httpx.TimeoutException as exc:
            msg = f"Gemini request timed out after {self._timeout}s"
            raise LlmTimeoutError(msg) from exc
        except httpx.HTTPError as exc:
            msg = f"Gemini API request failed: {exc}"
            raise LlmApiError(msg) from exc

        if response.status_code != HTTPStatus.OK:
            msg = f"Gemini API returned {response.status_code}"
            raise LlmApiError(
                msg,
                status_code=response.status_code,
                retry_after=parse_retry_after(response),
            )

        try:
            data = response.json()
            candidates = data.get("candidates", [])
            if not candidates:
                msg = "No candidates in Gemini API response"
                raise LlmApiError(msg, status_code=response.status_code)

            parts = candidates[0].get("content", {}).get("parts", [])
            if not parts:
                msg = "No parts in first candidate"
                raise LlmApiError(msg, status_code=response.status_code)

            text: str = parts[0].get("text", "")
        except (ValueError, LookupError, AttributeError, TypeError) as exc:
            msg = f"Malformed Gemini API response: {response.text[:200]}"
            raise LlmApiError(msg, status_code=response.status_code) from exc
        return text
