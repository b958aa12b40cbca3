"""Fetch orchestrator with parallel execution and failure isolation."""

import sqlite3
import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog
from pydantic import ValidationError

from hypeseeker.collectors.base import SourceFetcher
from hypeseeker.collectors.errors import (
    CollectorError,
    CollectorErrorClass,
    ErrorRecord,
)
from hypeseeker.store import ItemEventType, PostStore, StateStoreError
from hypeseeker.store.models import Post


logger = structlog.get_logger()


@dataclass
class SourceFetchResult:
    """Result of fetching a single source."""

    source: str
    items: list[Post] = field(default_factory=list)
    error: ErrorRecord | None = None
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class FetchPhaseResult:
    """Result of the fetch-and-save phase.

    Attributes:
        source_results: Per-source outcome, in fetcher order.
        total_fetched: Items returned by all sources.
        saved: Items upserted successfully.
        save_failed: Items whose upsert raised.
        new: Upserts that inserted a row.
        updated: Upserts that merged into an existing row.
    """

    source_results: dict[str, SourceFetchResult] = field(default_factory=dict)
    total_fetched: int = 0
    saved: int = 0
    save_failed: int = 0
    new: int = 0
    updated: int = 0

    @property
    def failed_sources(self) -> list[str]:
        return [name for name, r in self.source_results.items() if not r.success]

    @property
    def per_source_counts(self) -> dict[str, int]:
        return {name: len(r.items) for name, r in self.source_results.items()}


class FetchOrchestrator:
    """Fetches all sources concurrently, then saves on the calling thread.

    Provides:
    - Parallel source fetches on a thread pool
    - Failure isolation (one source failing doesn't stop others)
    - Item upserts in a stable source order, one transaction per item
    """

    def __init__(
        self,
        store: PostStore,
        fetchers: Sequence[SourceFetcher],
        max_workers: int = 4,
        run_id: str | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            store: Post store receiving the items.
            fetchers: Enabled source fetchers; their order is the save order.
            max_workers: Maximum parallel fetches.
            run_id: Optional run ID for logging context.
        """
        self._store = store
        self._fetchers = list(fetchers)
        self._max_workers = max_workers
        self._log = logger.bind(component="collectors", subcomponent="runner", run_id=run_id)

    def run(self, now: datetime | None = None) -> FetchPhaseResult:
        """Fetch every source and upsert the results.

        Args:
            now: Reference time passed to fetchers.

        Returns:
            FetchPhaseResult with per-source outcomes and save counts.
        """
        now = now or datetime.now(UTC)
        self._log.info(
            "fetch_started",
            source_count=len(self._fetchers),
            max_workers=self._max_workers,
        )

        by_source = self._fetch_all(now)
        result = FetchPhaseResult(
            source_results={f.name: by_source[f.name] for f in self._fetchers}
        )

        for source_result in result.source_results.values():
            result.total_fetched += len(source_result.items)
            for post in source_result.items:
                self._save(post, result)

        self._log.info(
            "fetch_complete",
            total_fetched=result.total_fetched,
            saved=result.saved,
            save_failed=result.save_failed,
            new=result.new,
            updated=result.updated,
            failed_sources=result.failed_sources,
        )
        return result

    def _fetch_all(self, now: datetime) -> dict[str, SourceFetchResult]:
        results: dict[str, SourceFetchResult] = {}
        if not self._fetchers:
            return results

        workers = max(1, min(self._max_workers, len(self._fetchers)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_fetcher = {
                executor.submit(self._fetch_one, fetcher, now): fetcher
                for fetcher in self._fetchers
            }
            for future in as_completed(future_to_fetcher):
                fetcher = future_to_fetcher[future]
                results[fetcher.name] = future.result()
        return results

    def _fetch_one(self, fetcher: SourceFetcher, now: datetime) -> SourceFetchResult:
        """Fetch a single source, converting any error into a result."""
        log = self._log.bind(source=fetcher.name)
        start_ns = time.perf_counter_ns()

        try:
            items = fetcher.fetch(now)
        except CollectorError as exc:
            error = ErrorRecord.from_exception(exc)
        except Exception as exc:  # noqa: BLE001
            error = ErrorRecord(
                error_class=CollectorErrorClass.FETCH,
                message=f"Execution error: {exc!r}",
                source=fetcher.name,
            )
        else:
            duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
            log.info("source_fetched", items=len(items), duration_ms=round(duration_ms, 2))
            return SourceFetchResult(
                source=fetcher.name, items=list(items), duration_ms=duration_ms
            )

        duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
        log.warning(
            "source_failed",
            error_class=error.error_class.value,
            error=error.message,
            duration_ms=round(duration_ms, 2),
        )
        return SourceFetchResult(source=fetcher.name, error=error, duration_ms=duration_ms)

    def _save(self, post: Post, result: FetchPhaseResult) -> None:
        try:
            upsert = self._store.upsert(post)
        except (StateStoreError, sqlite3.Error, ValidationError) as exc:
            result.save_failed += 1
            self._log.error(
                "item_save_failed",
                post_id=post.id,
                source=post.source,
                error=str(exc),
            )
            return

        result.saved += 1
        if upsert.event_type is ItemEventType.NEW:
            result.new += 1
        else:
            result.updated += 1
