"""The fetch, score, enrich and dispatch pipeline."""

import time
import uuid
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from pathlib import Path

import structlog

from hypeseeker.collectors import FetchOrchestrator, FetchPhaseResult, SourceFetcher
from hypeseeker.collectors.platform import (
    GitHubFetcher,
    HuggingFaceFetcher,
    RedditFetcher,
    ReplicateFetcher,
)
from hypeseeker.config import AppConfig, ConfigValidationError
from hypeseeker.llm import (
    EnrichmentPhaseResult,
    PostEnricher,
    PostScorer,
    ScoringPhaseResult,
    create_model_client,
)
from hypeseeker.llm.protocols import ModelClient
from hypeseeker.notify import (
    DigestDispatcher,
    DispatchPhaseResult,
    NotificationChannel,
    SlackChannel,
    TelegramChannel,
)
from hypeseeker.settings import AppSettings
from hypeseeker.status import RunSummary
from hypeseeker.store import ContentPolicy, PopularityRanker, PostStore, StoreMetrics


logger = structlog.get_logger()


class DigestPipeline:
    """Runs the phases of one update against an open store.

    Every phase reads its input from the store and writes item by item,
    so any phase can be re-run on its own and an interrupted run resumes
    where it stopped.
    """

    def __init__(
        self,
        config: AppConfig,
        store: PostStore,
        model_client: ModelClient,
        fetchers: Sequence[SourceFetcher],
        channels: Sequence[NotificationChannel],
        run_id: str | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the pipeline.

        Args:
            config: Application configuration.
            store: Connected post store.
            model_client: Retrying model client.
            fetchers: Enabled source fetchers.
            channels: Enabled notification channels.
            run_id: Run identifier for logs and the summary.
            sleep: Sleep function used for all pacing.
        """
        self._config = config
        self._store = store
        self._run_id = run_id or str(uuid.uuid4())
        pipeline = config.pipeline
        profile = config.interest_profile()

        self._orchestrator = FetchOrchestrator(
            store, fetchers, max_workers=pipeline.fetch_workers, run_id=self._run_id
        )
        self._scorer = PostScorer(
            model_client,
            profile,
            store,
            batch_size=pipeline.score_batch_size,
            delay_seconds=pipeline.score_delay_seconds,
            sleep=sleep,
        )
        self._enricher = PostEnricher(
            model_client,
            profile,
            store,
            language=config.language,
            delay_seconds=pipeline.enrich_delay_seconds,
            sleep=sleep,
        )
        self._dispatcher = DigestDispatcher(
            store,
            channels,
            min_score=config.digest_threshold,
            recency_hours=pipeline.digest_recency_hours,
            inter_chunk_delay=config.channels.inter_chunk_delay_seconds,
            sleep=sleep,
        )
        self._log = logger.bind(component="pipeline", run_id=self._run_id)

    @property
    def run_id(self) -> str:
        return self._run_id

    def fetch(self, now: datetime | None = None) -> FetchPhaseResult:
        """Fetch all sources and upsert the items."""
        return self._orchestrator.run(now)

    def score(self, now: datetime | None = None) -> ScoringPhaseResult:
        """Score posts that are still unscored and inside the scoring window."""
        posts = self._store.get_unscored(self._config.pipeline.unscored_limit, now=now)
        self._log.info("unscored_posts_found", count=len(posts))
        return self._scorer.score_batch(posts)

    def enrich(self) -> EnrichmentPhaseResult:
        """Enrich the best scored posts that have no summary yet."""
        pipeline = self._config.pipeline
        posts = self._store.get_top_scored(
            pipeline.enrich_min_score, pipeline.enrich_limit
        )
        self._log.info("top_posts_found", count=len(posts))
        return self._enricher.enrich_batch(posts)

    def dispatch(self, now: datetime | None = None) -> DispatchPhaseResult:
        """Send the digest to every enabled channel."""
        return self._dispatcher.dispatch(now)

    def run(self, now: datetime | None = None, skip_dispatch: bool = False) -> RunSummary:
        """Run every phase in order.

        Args:
            now: Reference time for windows and markers.
            skip_dispatch: Leave out the digest.

        Returns:
            RunSummary of the run.
        """
        started_at = datetime.now(UTC)
        self._log.info("pipeline_started", skip_dispatch=skip_dispatch)

        fetched = self.fetch(now)
        scored = self.score(now)
        enriched = self.enrich()
        dispatched = None if skip_dispatch else self.dispatch(now)

        summary = RunSummary(
            run_id=self._run_id,
            started_at=started_at,
            finished_at=datetime.now(UTC),
            fetched=fetched.total_fetched,
            per_source=fetched.per_source_counts,
            saved=fetched.saved,
            save_failed=fetched.save_failed,
            failed_sources=fetched.failed_sources,
            scored=scored.scored,
            score_failed=scored.failed,
            enriched=enriched.enriched,
            enrich_failed=enriched.failed,
            dispatched=dispatched is not None,
            sent=dispatched.sent if dispatched else {},
            failed_channels=dispatched.failed_channels if dispatched else [],
        )
        self._log.info(
            "pipeline_complete",
            degraded=summary.degraded,
            duration_ms=summary.duration_ms,
            store_metrics=StoreMetrics.get_instance().to_dict(),
        )
        return summary

    def dispatch_only(self, now: datetime | None = None) -> RunSummary:
        """Run just the digest phase and summarize it."""
        started_at = datetime.now(UTC)
        dispatched = self.dispatch(now)
        return RunSummary(
            run_id=self._run_id,
            started_at=started_at,
            finished_at=datetime.now(UTC),
            dispatched=True,
            sent=dispatched.sent,
            failed_channels=dispatched.failed_channels,
        )


def build_fetchers(config: AppConfig, settings: AppSettings) -> list[SourceFetcher]:
    """Create fetchers for the enabled sources, in a fixed order."""
    log = logger.bind(component="pipeline")
    sources = config.sources
    fetchers: list[SourceFetcher] = []

    if sources.huggingface.enabled:
        fetchers.append(HuggingFaceFetcher(sources.huggingface))
    if sources.github.enabled:
        fetchers.append(GitHubFetcher(sources.github, token=settings.github_token))
    if sources.reddit.enabled:
        fetchers.append(RedditFetcher(sources.reddit))
    if sources.replicate.enabled:
        if settings.replicate_api_token:
            fetchers.append(
                ReplicateFetcher(sources.replicate, token=settings.replicate_api_token)
            )
        else:
            log.warning("source_skipped", source="replicate", reason="no_token")

    return fetchers


def build_channels(
    config: AppConfig, settings: AppSettings, config_path: str = "config"
) -> list[NotificationChannel]:
    """Create the enabled channels.

    Raises:
        ConfigValidationError: If an enabled channel has no credentials.
    """
    errors: list[dict[str, str]] = []
    channels: list[NotificationChannel] = []

    if config.channels.telegram:
        if settings.telegram_bot_token and settings.telegram_chat_id:
            channels.append(
                TelegramChannel(settings.telegram_bot_token, settings.telegram_chat_id)
            )
        else:
            errors.append(
                {
                    "loc": "channels.telegram",
                    "msg": "TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID are required",
                    "type": "missing_credentials",
                }
            )

    if config.channels.slack:
        if settings.slack_webhook_url:
            channels.append(SlackChannel(settings.slack_webhook_url))
        else:
            errors.append(
                {
                    "loc": "channels.slack",
                    "msg": "SLACK_WEBHOOK_URL is required",
                    "type": "missing_credentials",
                }
            )

    if errors:
        raise ConfigValidationError(errors, config_path)
    return channels


def open_store(config: AppConfig, db_path: Path | str, run_id: str | None = None) -> PostStore:
    """Create a store configured from the ranking and pipeline sections."""
    return PostStore(
        db_path,
        policy=ContentPolicy.from_config(config.ranking),
        ranker=PopularityRanker.from_config(config.ranking),
        scoring_window_days=config.pipeline.scoring_window_days,
        query_limit=config.ranking.query_limit,
        run_id=run_id,
    )


def build_pipeline(
    config: AppConfig,
    settings: AppSettings,
    store: PostStore,
    run_id: str | None = None,
    config_path: str = "config",
) -> DigestPipeline:
    """Wire a pipeline from configuration.

    All fatal checks happen here, before any network call.

    Raises:
        LlmAuthError: If the model provider has no API key.
        ConfigValidationError: If an enabled channel has no credentials.
    """
    channels = build_channels(config, settings, config_path)
    model_client = create_model_client(settings, config.llm)
    store.register_channels(channel.name for channel in channels)

    return DigestPipeline(
        config=config,
        store=store,
        model_client=model_client,
        fetchers=build_fetchers(config, settings),
        channels=channels,
        run_id=run_id,
    )
