"""Model clients, relevance scoring and enrichment."""

from hypeseeker.llm.enricher import PostEnricher
from hypeseeker.llm.errors import (
    LlmApiError,
    LlmAuthError,
    LlmProcessingError,
    LlmRetryExhaustedError,
    LlmTimeoutError,
)
from hypeseeker.llm.factory import create_backend, create_model_client
from hypeseeker.llm.failure_log import FailureLog
from hypeseeker.llm.models import (
    EnrichmentPhaseResult,
    EnrichmentResult,
    ScoreResult,
    ScoreStatus,
    ScoringPhaseResult,
)
from hypeseeker.llm.protocols import ModelBackend, ModelTier
from hypeseeker.llm.resilient import ResilientModelClient
from hypeseeker.llm.scorer import PostScorer


__all__ = [
    "EnrichmentPhaseResult",
    "EnrichmentResult",
    "FailureLog",
    "LlmApiError",
    "LlmAuthError",
    "LlmProcessingError",
    "LlmRetryExhaustedError",
    "LlmTimeoutError",
    "ModelBackend",
    "ModelTier",
    "PostEnricher",
    "PostScorer",
    "ResilientModelClient",
    "ScoreResult",
    "ScoreStatus",
    "ScoringPhaseResult",
    "create_backend",
    "create_model_client",
]
