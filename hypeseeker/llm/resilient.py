"""Retrying, rate-limit-aware wrapper around a model backend."""

import time
from collections.abc import Callable

import structlog

from hypeseeker.llm.errors import LlmApiError, LlmRetryExhaustedError
from hypeseeker.llm.failure_log import FailureLog
from hypeseeker.llm.protocols import ModelBackend, ModelTier


logger = structlog.get_logger()


class ResilientModelClient:
    """Applies one retry policy to any ``ModelBackend``.

    - transient failures (network, timeout, 5xx, overload) back off
      linearly: ``retry_base_delay * attempt``;
    - rate limits wait ``retry_after`` when the server sends one, capped at
      ``max_retry_after``, else a fixed ``rate_limit_delay``. The wait does
      not grow but still uses up an attempt;
    - any other error fails at once.

    Every failed attempt is written to the failure log.
    """

    def __init__(
        self,
        backend: ModelBackend,
        max_attempts: int = 5,
        retry_base_delay: float = 2.0,
        rate_limit_delay: float = 30.0,
        max_retry_after: float = 120.0,
        failure_log: FailureLog | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the client.

        Args:
            backend: Provider implementation.
            max_attempts: Attempts per call, including the first.
            retry_base_delay: Backoff step for transient failures.
            rate_limit_delay: Wait after a 429 without a retry-after hint.
            max_retry_after: Cap for server-provided retry-after values.
            failure_log: Where failed attempts are recorded.
            sleep: Sleep function, replaceable in tests.
        """
        if max_attempts < 1:
            msg = "max_attempts must be at least 1"
            raise ValueError(msg)
        self._backend = backend
        self._max_attempts = max_attempts
        self._retry_base_delay = retry_base_delay
        self._rate_limit_delay = rate_limit_delay
        self._max_retry_after = max_retry_after
        self._failure_log = failure_log
        self._sleep = sleep
        self._log = logger.bind(
            component="llm",
            subcomponent="resilient_client",
            backend=getattr(backend, "name", type(backend).__name__),
        )

    def _retry_delay(self, exc: LlmApiError, attempt: int) -> float | None:
        """Delay before the next attempt, or None if the error is terminal."""
        if exc.is_rate_limited:
            if exc.retry_after is not None:
                return min(exc.retry_after, self._max_retry_after)
            return self._rate_limit_delay
        if exc.is_transient:
            return self._retry_base_delay * attempt
        return None

    def invoke(self, tier: ModelTier, prompt: str, max_tokens: int) -> str:
        """Call the backend until it answers or the attempts run out.

        Args:
            tier: Model tier.
            prompt: User prompt text.
            max_tokens: Output token cap.

        Returns:
            Generated text.

        Raises:
            LlmApiError: On a terminal (non-retryable) error.
            LlmRetryExhaustedError: When every attempt failed.
        """
        last_error = LlmApiError("no attempt made")

        for attempt in range(1, self._max_attempts + 1):
            try:
                return self._backend.complete(tier, prompt, max_tokens)
            except LlmApiError as exc:
                last_error = exc
                delay = self._retry_delay(exc, attempt)
                will_retry = delay is not None and attempt < self._max_attempts

                if self._failure_log is not None:
                    self._failure_log.record(
                        attempt=attempt,
                        max_attempts=self._max_attempts,
                        tier=tier.value,
                        status=exc.status_code,
                        error=str(exc),
                        will_retry=will_retry,
                    )

                self._log.warning(
                    "llm_call_failed",
                    tier=tier.value,
                    attempt=attempt,
                    status=exc.status_code,
                    error=str(exc),
                    will_retry=will_retry,
                    retry_delay=delay if will_retry else None,
                )

                if delay is None:
                    raise
                if will_retry:
                    self._sleep(delay)

        raise LlmRetryExhaustedError(self._max_attempts, last_error) from last_error
