"""Data models for scoring and enrichment results."""

from dataclasses import dataclass, field
from enum import Enum


class ScoreStatus(str, Enum):
    """Outcome of a single scoring or enrichment call.

    - ok: the response was parsed
    - parse_failed: the model answered but no JSON object was found
    - call_failed: the model call failed after all retries
    """

    OK = "ok"
    PARSE_FAILED = "parse_failed"
    CALL_FAILED = "call_failed"


@dataclass(frozen=True)
class ScoreResult:
    """Relevance score for one post.

    Attributes:
        post_key: ``(id, source)`` of the scored post.
        score: Relevance clamped to [0, 1]; 0 for failed results.
        matched_interest: Interest the post matched, if any.
        status: Whether the score can be trusted.
        error: Failure description for non-OK results.
    """

    post_key: tuple[str, str]
    score: float
    matched_interest: str | None
    status: ScoreStatus = ScoreStatus.OK
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is ScoreStatus.OK


@dataclass(frozen=True)
class EnrichmentResult:
    """Summary and relevance explanation for one post."""

    post_key: tuple[str, str]
    summary: str
    relevance: str
    status: ScoreStatus = ScoreStatus.OK
    error: str | None = None

    @property
    def complete(self) -> bool:
        """True when both fields are usable."""
        return self.status is ScoreStatus.OK and bool(self.summary and self.relevance)


@dataclass
class ScoringPhaseResult:
    """Aggregated result of the scoring phase.

    Attributes:
        attempted: Posts submitted for scoring.
        scored: Posts whose score was persisted.
        parse_failed: Responses without a usable JSON object.
        call_failed: Calls that exhausted their retries.
        save_failed: OK results the store could not write.
        results: Every result, for the audit trail.
    """

    attempted: int = 0
    scored: int = 0
    parse_failed: int = 0
    call_failed: int = 0
    save_failed: int = 0
    results: list[ScoreResult] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return self.parse_failed + self.call_failed + self.save_failed


@dataclass
class EnrichmentPhaseResult:
    """Aggregated result of the enrichment phase."""

    attempted: int = 0
    enriched: int = 0
    failed: int = 0
    results: list[EnrichmentResult] = field(default_factory=list)
