"""Data models for the post store."""

from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class TimeWindow(str, Enum):
    """Creation-time windows accepted by ``PostStore.query``."""

    PAST_DAY = "past_day"
    PAST_THREE_DAYS = "past_three_days"
    PAST_WEEK = "past_week"

    @property
    def delta(self) -> timedelta:
        """Length of the window."""
        days = {"past_day": 1, "past_three_days": 3, "past_week": 7}[self.value]
        return timedelta(days=days)


class ItemEventType(str, Enum):
    """Event type for upsert operations.

    - NEW: Post was inserted
    - UPDATED: Post existed and was merged
    """

    NEW = "NEW"
    UPDATED = "UPDATED"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class Post(BaseModel):
    """A discovered piece of content, keyed by ``(id, source)``.

    Scoring fields stay ``None`` until the scorer or enricher fills them.
    ``sent_at`` maps a channel name to the time the post was delivered there.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: Annotated[str, Field(min_length=1, description="Source-native identifier")]
    source: Annotated[str, Field(min_length=1, description="Source name")]
    username: str = ""
    name: str = ""
    stars: int = Field(default=0, description="Stars, likes, score or runs")
    description: str = ""
    url: str = ""
    created_at: datetime

    relevance_score: float | None = Field(default=None, ge=0.0, le=1.0)
    matched_interest: str | None = None
    summary: str | None = None
    relevance: str | None = Field(
        default=None, description="Why the post matters to the profile"
    )
    scored_at: datetime | None = None

    sent_at: dict[str, datetime] = Field(default_factory=dict)
    inserted_at: datetime | None = None

    @field_validator("source", mode="before")
    @classmethod
    def normalize_source(cls, value: Any) -> Any:
        """Sources are stored lowercase."""
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("created_at", "scored_at", "inserted_at")
    @classmethod
    def coerce_utc(cls, value: datetime | None) -> datetime | None:
        """Store every timestamp as timezone-aware UTC."""
        return _as_utc(value) if value is not None else None

    @field_validator("sent_at")
    @classmethod
    def coerce_sent_utc(cls, value: dict[str, datetime]) -> dict[str, datetime]:
        """Normalize sent markers to UTC."""
        return {channel: _as_utc(ts) for channel, ts in value.items()}

    @model_validator(mode="after")
    def scored_at_requires_score(self) -> "Post":
        """A post cannot carry ``scored_at`` without a score."""
        if self.scored_at is not None and self.relevance_score is None:
            msg = "scored_at set without relevance_score"
            raise ValueError(msg)
        return self

    @property
    def key(self) -> tuple[str, str]:
        """Composite identity ``(id, source)``."""
        return (self.id, self.source)


class UpsertResult(BaseModel):
    """Outcome of a single upsert."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    event_type: ItemEventType
    post: Post
