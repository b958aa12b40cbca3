"""Protocol interface for model backends."""

from enum import Enum
from typing import Protocol, runtime_checkable


class ModelTier(str, Enum):
    """Capability tier requested from a backend.

    - fast: cheap model used for bulk scoring
    - strong: capable model used for enrichment
    """

    FAST = "fast"
    STRONG = "strong"


@runtime_checkable
class ModelBackend(Protocol):
    """Protocol for a single model provider.

    Backends make exactly one HTTP request per call and never retry;
    retry policy lives in ``ResilientModelClient``.
    """

    name: str

    def complete(self, tier: ModelTier, prompt: str, max_tokens: int) -> str:
        """Generate text for a prompt.

        Args:
            tier: Which model tier to use.
            prompt: User prompt text.
            max_tokens: Output token cap.

        Returns:
            Generated text (may be empty).

        Raises:
            LlmApiError: If the request fails or returns a non-200 status.
            LlmTimeoutError: If the request times out.
        """
        ...


class ModelClient(Protocol):
    """What the scorer and enricher depend on."""

    def invoke(self, tier: ModelTier, prompt: str, max_tokens: int) -> str:
        """Generate text, raising ``LlmRetryExhaustedError`` on failure."""
        ...
