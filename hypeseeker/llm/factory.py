"""Factory for creating model clients from configuration."""

import structlog

from hypeseeker.config.schemas import LlmBackendKind, LlmConfig
from hypeseeker.llm.errors import LlmAuthError
from hypeseeker.llm.failure_log import FailureLog
from hypeseeker.llm.protocols import ModelBackend
from hypeseeker.llm.resilient import ResilientModelClient
from hypeseeker.settings import AppSettings


logger = structlog.get_logger()


def create_backend(settings: AppSettings, config: LlmConfig) -> ModelBackend:
    """Create the configured provider backend.

    Args:
        settings: Credentials from the environment.
        config: LLM section of the app config.

    Returns:
        A backend ready for use.

    Raises:
        LlmAuthError: If the selected provider has no API key.
    """
    log = logger.bind(component="llm", subcomponent="factory")
    overrides = {
        key: value
        for key, value in (
            ("fast_model", config.fast_model),
            ("strong_model", config.strong_model),
        )
        if value
    }

    if config.backend is LlmBackendKind.ANTHROPIC:
        if not settings.anthropic_api_key:
            msg = "ANTHROPIC_API_KEY is required for the anthropic backend"
            raise LlmAuthError(msg)
        from hypeseeker.llm.anthropic_client import AnthropicBackend

        log.info("llm_backend_created", backend="anthropic")
        return AnthropicBackend(
            api_key=settings.anthropic_api_key,
            timeout=config.timeout_seconds,
            **overrides,
        )

    if not settings.gemini_api_key:
        msg = "GEMINI_API_KEY is required for the gemini backend"
        raise LlmAuthError(msg)
    from hypeseeker.llm.gemini_client import GeminiBackend

    log.info("llm_backend_created", backend="gemini")
    return GeminiBackend(
        api_key=settings.gemini_api_key,
        timeout=config.timeout_seconds,
        **overrides,
    )


def create_model_client(
    settings: AppSettings, config: LlmConfig
) -> ResilientModelClient:
    """Create the backend and wrap it in the retry policy from config.

    Raises:
        LlmAuthError: If the selected provider has no API key.
    """
    return ResilientModelClient(
        backend=create_backend(settings, config),
        max_attempts=config.max_attempts,
        retry_base_delay=config.retry_base_delay,
        rate_limit_delay=config.rate_limit_delay,
        max_retry_after=config.max_retry_after,
        failure_log=FailureLog(config.failure_log),
    )
