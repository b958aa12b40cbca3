"""Unit tests for store metrics."""

from hypeseeker.store.metrics import StoreMetrics


class TestStoreMetrics:
    """Tests for StoreMetrics."""

    def test_singleton_and_reset(self) -> None:
        StoreMetrics.reset()
        first = StoreMetrics.get_instance()
        first.record_insert()

        assert StoreMetrics.get_instance() is first
        StoreMetrics.reset()
        assert StoreMetrics.get_instance().posts_inserted_total == 0

    def test_counters(self) -> None:
        metrics = StoreMetrics()
        metrics.record_merge()
        metrics.record_score()
        metrics.record_enrichment()
        metrics.record_marked_sent(3)
        metrics.record_tx_duration(4.0)
        metrics.record_tx_duration(2.0)

        data = metrics.to_dict()
        assert data["posts_merged_total"] == 1
        assert data["posts_scored_total"] == 1
        assert data["posts_enriched_total"] == 1
        assert data["posts_marked_sent_total"] == 3
        assert data["tx_count"] == 2
        assert metrics.avg_tx_duration_ms == 3.0

    def test_avg_without_transactions(self) -> None:
        assert StoreMetrics().avg_tx_duration_ms == 0.0
