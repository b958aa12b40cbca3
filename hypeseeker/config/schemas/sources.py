"""Source fetcher configuration schema."""

from typing import Annotated

from pydantic import Field

from hypeseeker.config.schemas.base import StrictBaseModel


class GitHubSourceConfig(StrictBaseModel):
    """GitHub repository search filters."""

    enabled: bool = True
    min_stars: Annotated[int, Field(ge=0)] = 50
    lookback_days: Annotated[int, Field(ge=1, le=30)] = 7


class RedditSourceConfig(StrictBaseModel):
    """Reddit subreddit filters.

    Attributes:
        subreddits: Subreddits to read the weekly top listing from.
        min_score: Minimum post score.
        flair_filters: Optional per-subreddit flair allow-lists.
    """

    enabled: bool = True
    subreddits: list[str] = Field(
        default_factory=lambda: ["MachineLearning", "LocalLLaMA"]
    )
    min_score: Annotated[int, Field(ge=0)] = 50
    flair_filters: dict[str, list[str]] = Field(default_factory=dict)


class HuggingFaceSourceConfig(StrictBaseModel):
    """Hugging Face model listing filters."""

    enabled: bool = True
    min_likes: Annotated[int, Field(ge=0)] = 20
    min_downloads: Annotated[int, Field(ge=0)] = 0


class ReplicateSourceConfig(StrictBaseModel):
    """Replicate model listing filters."""

    enabled: bool = True
    min_runs: Annotated[int, Field(ge=0)] = 1000


class SourcesConfig(StrictBaseModel):
    """Configuration for every supported source."""

    github: GitHubSourceConfig = Field(default_factory=GitHubSourceConfig)
    reddit: RedditSourceConfig = Field(default_factory=RedditSourceConfig)
    huggingface: HuggingFaceSourceConfig = Field(
        default_factory=HuggingFaceSourceConfig
    )
    replicate: ReplicateSourceConfig = Field(default_factory=ReplicateSourceConfig)
