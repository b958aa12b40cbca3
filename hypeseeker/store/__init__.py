"""Post store: SQLite persistence with merge-upsert semantics."""

from hypeseeker.store.errors import (
    InvalidChannelNameError,
    MigrationError,
    StateStoreError,
    StoreConnectionError,
    UnknownChannelError,
)
from hypeseeker.store.metrics import StoreMetrics
from hypeseeker.store.models import ItemEventType, Post, TimeWindow, UpsertResult
from hypeseeker.store.moderation import ContentPolicy, PopularityRanker, SourceTransform
from hypeseeker.store.store import PostStore


__all__ = [
    "ContentPolicy",
    "InvalidChannelNameError",
    "ItemEventType",
    "MigrationError",
    "PopularityRanker",
    "Post",
    "PostStore",
    "SourceTransform",
    "StateStoreError",
    "StoreConnectionError",
    "StoreMetrics",
    "TimeWindow",
    "UnknownChannelError",
    "UpsertResult",
]
