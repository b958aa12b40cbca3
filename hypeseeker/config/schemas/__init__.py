"""Configuration schemas."""

from hypeseeker.config.schemas.app import (
    AppConfig,
    ChannelsConfig,
    LlmConfig,
    PipelineConfig,
    PopularityTransformConfig,
    RankingConfig,
    ScheduleConfig,
)
from hypeseeker.config.schemas.base import (
    LlmBackendKind,
    StrictBaseModel,
    TransformKind,
)
from hypeseeker.config.schemas.profile import InterestProfile, InterestTiers
from hypeseeker.config.schemas.sources import (
    GitHubSourceConfig,
    HuggingFaceSourceConfig,
    RedditSourceConfig,
    ReplicateSourceConfig,
    SourcesConfig,
)


__all__ = [
    "AppConfig",
    "ChannelsConfig",
    "GitHubSourceConfig",
    "HuggingFaceSourceConfig",
    "InterestProfile",
    "InterestTiers",
    "LlmBackendKind",
    "LlmConfig",
    "PipelineConfig",
    "PopularityTransformConfig",
    "RankingConfig",
    "RedditSourceConfig",
    "ReplicateSourceConfig",
    "ScheduleConfig",
    "SourcesConfig",
    "StrictBaseModel",
    "TransformKind",
]
