"""Domain-specific error types for the LLM module."""

from http import HTTPStatus


_OVERLOADED_STATUS = 529


class LlmAuthError(Exception):
    """Missing or rejected provider credentials."""


class LlmApiError(Exception):
    """Model provider call failure.

    Attributes:
        status_code: HTTP status code, 0 for network-level failures.
        retry_after: Server-provided wait in seconds, when present.
        overloaded: Whether the provider reported an overload condition.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        retry_after: float | None = None,
        overloaded: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retry_after = retry_after
        self.overloaded = overloaded or status_code == _OVERLOADED_STATUS

    @property
    def is_rate_limited(self) -> bool:
        """True for HTTP 429."""
        return self.status_code == HTTPStatus.TOO_MANY_REQUESTS

    @property
    def is_transient(self) -> bool:
        """True for failures worth retrying after a backoff.

        Covers network errors (status 0), request timeouts, 5xx and
        overload signals. Rate limits are handled separately.
        """
        if self.overloaded or self.status_code == 0:
            return True
        if self.status_code == HTTPStatus.REQUEST_TIMEOUT:
            return True
        return self.status_code >= HTTPStatus.INTERNAL_SERVER_ERROR


class LlmTimeoutError(LlmApiError):
    """The provider did not answer within the request timeout."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=0)


class LlmRetryExhaustedError(Exception):
    """Every attempt of a model call failed.

    Attributes:
        attempts: Number of attempts made.
        last_error: Error raised by the final attempt.
    """

    def __init__(self, attempts: int, last_error: Exception) -> None:
        super().__init__(f"Model call failed after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class LlmProcessingError(Exception):
    """Response parsing or processing failure."""
