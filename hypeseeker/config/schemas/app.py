"""Top-level application configuration schema."""

import re
import zoneinfo
from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator, model_validator

from hypeseeker.config.schemas.base import (
    LlmBackendKind,
    StrictBaseModel,
    TransformKind,
)
from hypeseeker.config.schemas.profile import InterestProfile
from hypeseeker.config.schemas.sources import SourcesConfig


DEFAULT_BANNED_SUBSTRINGS = ("nft", "crypto", "telegram", "clicker", "solana", "stealer")


class PopularityTransformConfig(StrictBaseModel):
    """Per-source popularity transform.

    Attributes:
        kind: Transform family.
        coefficient: Multiplier for ``linear``, exponent for ``power``.
    """

    kind: TransformKind = TransformKind.IDENTITY
    coefficient: Annotated[float, Field(gt=0.0, le=10.0)] = 1.0


def _default_transforms() -> dict[str, PopularityTransformConfig]:
    return {
        "reddit": PopularityTransformConfig(kind=TransformKind.LINEAR, coefficient=0.3),
        "replicate": PopularityTransformConfig(kind=TransformKind.POWER, coefficient=0.6),
    }


class RankingConfig(StrictBaseModel):
    """Moderation and ranking knobs applied at query time.

    Attributes:
        query_limit: Maximum rows read from the store per query.
        relevance_boost: Points added per unit of relevance score.
        transforms: Popularity transform per source (identity when absent).
        banned_substrings: Case-insensitive substrings that hide a post.
        banned_combinations: Term groups that hide a post when all match its name.
    """

    query_limit: Annotated[int, Field(ge=1, le=10000)] = 500
    relevance_boost: Annotated[float, Field(ge=0.0)] = 100.0
    transforms: dict[str, PopularityTransformConfig] = Field(
        default_factory=_default_transforms
    )
    banned_substrings: list[str] = Field(
        default_factory=lambda: list(DEFAULT_BANNED_SUBSTRINGS)
    )
    banned_combinations: list[list[str]] = Field(
        default_factory=lambda: [["stake", "predict"]]
    )


class PipelineConfig(StrictBaseModel):
    """Batch sizes, windows and pacing for the pipeline phases."""

    fetch_workers: Annotated[int, Field(ge=1, le=16)] = 4
    unscored_limit: Annotated[int, Field(ge=1)] = 300
    scoring_window_days: Annotated[int, Field(ge=1, le=60)] = 7
    score_batch_size: Annotated[int, Field(ge=1, le=32)] = 5
    score_delay_seconds: Annotated[float, Field(ge=0.0)] = 0.2
    enrich_min_score: Annotated[float, Field(ge=0.0, le=1.0)] = 0.6
    enrich_limit: Annotated[int, Field(ge=0)] = 50
    enrich_delay_seconds: Annotated[float, Field(ge=0.0)] = 0.5
    digest_recency_hours: Annotated[int, Field(ge=1)] = 24

    @model_validator(mode="after")
    def recency_within_scoring_window(self) -> "PipelineConfig":
        """The digest window must be narrower than the scoring window."""
        if self.digest_recency_hours > self.scoring_window_days * 24:
            msg = "digest_recency_hours must not exceed the scoring window"
            raise ValueError(msg)
        return self


class LlmConfig(StrictBaseModel):
    """Model provider selection and retry policy.

    Attributes:
        backend: Which provider implementation to use.
        fast_model: Optional override for the fast tier model id.
        strong_model: Optional override for the strong tier model id.
        timeout_seconds: Per-request timeout.
        max_attempts: Attempts before a call is given up.
        retry_base_delay: Linear backoff step for transient failures.
        rate_limit_delay: Wait after a 429 without a retry-after hint.
        max_retry_after: Upper bound for server-provided retry-after.
        failure_log: JSON-lines file receiving every failed attempt.
    """

    backend: LlmBackendKind = LlmBackendKind.ANTHROPIC
    fast_model: str | None = None
    strong_model: str | None = None
    timeout_seconds: Annotated[float, Field(gt=0.0, le=600.0)] = 60.0
    max_attempts: Annotated[int, Field(ge=1, le=20)] = 5
    retry_base_delay: Annotated[float, Field(ge=0.0)] = 2.0
    rate_limit_delay: Annotated[float, Field(ge=0.0)] = 30.0
    max_retry_after: Annotated[float, Field(ge=0.0)] = 120.0
    failure_log: Path = Path("data/llm-failures.jsonl")


class ChannelsConfig(StrictBaseModel):
    """Notification channels to dispatch the digest to."""

    telegram: bool = False
    slack: bool = False
    inter_chunk_delay_seconds: Annotated[float, Field(ge=0.0)] = 0.5


TIME_OF_DAY_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


class ScheduleConfig(StrictBaseModel):
    """Times of day at which the daemon runs an update.

    Attributes:
        enabled: Whether ``hypeseeker daemon`` follows this schedule.
        times: ``HH:MM`` entries, read in ``timezone``.
        timezone: IANA zone name; the system zone when unset.
    """

    enabled: bool = False
    times: list[str] = Field(default_factory=list)
    timezone: str | None = None

    @field_validator("times")
    @classmethod
    def validate_times(cls, v: list[str]) -> list[str]:
        """Each entry must be a valid 24-hour ``HH:MM`` time."""
        for entry in v:
            match = TIME_OF_DAY_PATTERN.match(entry.strip())
            if not match or int(match.group(1)) > 23 or int(match.group(2)) > 59:
                msg = f"Invalid time '{entry}', expected HH:MM"
                raise ValueError(msg)
        return [entry.strip() for entry in v]

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str | None) -> str | None:
        """The zone must be known to the tz database."""
        if v is None:
            return v
        try:
            zoneinfo.ZoneInfo(v)
        except (KeyError, ValueError, zoneinfo.ZoneInfoNotFoundError) as exc:
            msg = f"Unknown timezone '{v}'"
            raise ValueError(msg) from exc
        return v

    @model_validator(mode="after")
    def enabled_requires_times(self) -> "ScheduleConfig":
        """An enabled schedule needs at least one time."""
        if self.enabled and not self.times:
            msg = "schedule.times must not be empty when the schedule is enabled"
            raise ValueError(msg)
        return self


class AppConfig(InterestProfile):
    """Full application configuration loaded from ``config.yaml``.

    Attributes:
        language: Language for enrichment summaries (e.g. ``en``, ``ru``).
        min_score_for_digest: Minimum relevance (0-100) for the digest.
    """

    language: str = Field(default="en", min_length=2)
    min_score_for_digest: Annotated[int, Field(ge=0, le=100)] = 70
    sources: SourcesConfig = Field(default_factory=SourcesConfig)
    ranking: RankingConfig = Field(default_factory=RankingConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    llm: LlmConfig = Field(default_factory=LlmConfig)
    channels: ChannelsConfig = Field(default_factory=ChannelsConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)

    @property
    def digest_threshold(self) -> float:
        """Digest threshold on the 0-1 relevance scale."""
        return self.min_score_for_digest / 100

    def interest_profile(self) -> InterestProfile:
        """Return just the profile part, as used by prompts."""
        return InterestProfile(
            profile=self.profile,
            interests=self.interests,
            exclude=self.exclude,
        )
