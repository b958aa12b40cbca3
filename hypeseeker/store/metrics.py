"""Metrics collection for the post store."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class StoreMetrics:
    """Counters for store operations.

    Attributes:
        posts_inserted_total: Upserts that created a row.
        posts_merged_total: Upserts that merged into an existing row.
        posts_scored_total: Score writes.
        posts_enriched_total: Enrichment writes.
        posts_marked_sent_total: Sent markers newly set, across channels.
        tx_duration_ms: Cumulative transaction duration in milliseconds.
        tx_count: Number of committed transactions.
    """

    posts_inserted_total: int = 0
    posts_merged_total: int = 0
    posts_scored_total: int = 0
    posts_enriched_total: int = 0
    posts_marked_sent_total: int = 0
    tx_duration_ms: float = 0.0
    tx_count: int = 0

    _instance: ClassVar["StoreMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "StoreMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_insert(self) -> None:
        self.posts_inserted_total += 1

    def record_merge(self) -> None:
        self.posts_merged_total += 1

    def record_score(self) -> None:
        self.posts_scored_total += 1

    def record_enrichment(self) -> None:
        self.posts_enriched_total += 1

    def record_marked_sent(self, count: int) -> None:
        self.posts_marked_sent_total += count

    def record_tx_duration(self, duration_ms: float) -> None:
        """Record one committed transaction."""
        self.tx_duration_ms += duration_ms
        self.tx_count += 1

    @property
    def avg_tx_duration_ms(self) -> float:
        """Average transaction duration, 0 when nothing ran."""
        if self.tx_count == 0:
            return 0.0
        return self.tx_duration_ms / self.tx_count

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to a dictionary."""
        return {
            "posts_inserted_total": self.posts_inserted_total,
            "posts_merged_total": self.posts_merged_total,
            "posts_scored_total": self.posts_scored_total,
            "posts_enriched_total": self.posts_enriched_total,
            "posts_marked_sent_total": self.posts_marked_sent_total,
            "tx_duration_ms": self.tx_duration_ms,
            "tx_count": self.tx_count,
        }


@dataclass
class TransactionContext:
    """Context for a single transaction with timing."""

    tx_id: str
    start_time_ns: int
    operation: str
    affected_rows: int = field(default=0)

    def add_affected_rows(self, rows: int) -> None:
        self.affected_rows += rows
