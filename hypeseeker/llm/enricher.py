"""Summary and relevance explanations for top-scored posts."""

import sqlite3
import time
from collections.abc import Callable, Sequence

import structlog

from hypeseeker.config.schemas import InterestProfile
from hypeseeker.llm.errors import (
    LlmApiError,
    LlmProcessingError,
    LlmRetryExhaustedError,
)
from hypeseeker.llm.json_utils import parse_json_object
from hypeseeker.llm.models import EnrichmentPhaseResult, EnrichmentResult, ScoreStatus
from hypeseeker.llm.prompts import ENRICH_MAX_TOKENS, build_enrich_prompt
from hypeseeker.llm.protocols import ModelClient, ModelTier
from hypeseeker.store import PostStore, StateStoreError
from hypeseeker.store.models import Post


logger = structlog.get_logger()

DEFAULT_DELAY_SECONDS = 0.5


def _text_field(parsed: dict[str, object], key: str) -> str:
    value = parsed.get(key)
    return value.strip() if isinstance(value, str) else ""


class PostEnricher:
    """Describes posts with the strong model tier, one at a time.

    A post is only written when both the summary and the relevance text
    came back non-empty. Anything else leaves the post for the next run.
    """

    def __init__(
        self,
        client: ModelClient,
        profile: InterestProfile,
        store: PostStore,
        language: str = "en",
        delay_seconds: float = DEFAULT_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._profile = profile
        self._store = store
        self._language = language
        self._delay_seconds = delay_seconds
        self._sleep = sleep
        self._log = logger.bind(component="llm", subcomponent="enricher")

    def enrich(self, post: Post) -> EnrichmentResult:
        """Enrich a single post. Never raises."""
        prompt = build_enrich_prompt(self._profile, post, self._language)

        try:
            response = self._client.invoke(ModelTier.STRONG, prompt, ENRICH_MAX_TOKENS)
        except (LlmApiError, LlmRetryExhaustedError) as exc:
            self._log.warning(
                "enrich_call_failed",
                post_id=post.id,
                source=post.source,
                error=str(exc),
            )
            return EnrichmentResult(
                post_key=post.key,
                summary="",
                relevance="",
                status=ScoreStatus.CALL_FAILED,
                error=str(exc),
            )

        try:
            return self._parse_response(post, response)
        except LlmProcessingError as exc:
            self._log.warning(
                "enrich_parse_failed",
                post_id=post.id,
                source=post.source,
                error=str(exc),
            )
            return EnrichmentResult(
                post_key=post.key,
                summary="",
                relevance="",
                status=ScoreStatus.PARSE_FAILED,
                error=str(exc),
            )

    @staticmethod
    def _parse_response(post: Post, response: str) -> EnrichmentResult:
        """Turn the model answer into an EnrichmentResult.

        Raises:
            LlmProcessingError: If no JSON object can be recovered.
        """
        parsed = parse_json_object(response)
        if parsed is None:
            msg = f"No JSON object in enrichment response: {response[:200]}"
            raise LlmProcessingError(msg)

        return EnrichmentResult(
            post_key=post.key,
            summary=_text_field(parsed, "summary"),
            relevance=_text_field(parsed, "relevance"),
        )

    def enrich_batch(
        self,
        posts: Sequence[Post],
        delay_seconds: float | None = None,
    ) -> EnrichmentPhaseResult:
        """Enrich posts sequentially, writing each complete result at once.

        Args:
            posts: Posts to enrich, usually from ``get_top_scored``.
            delay_seconds: Override for the configured pause between calls.

        Returns:
            EnrichmentPhaseResult with counts.
        """
        delay = self._delay_seconds if delay_seconds is None else delay_seconds
        result = EnrichmentPhaseResult(attempted=len(posts))
        self._log.info("enrichment_started", posts=len(posts))

        for idx, post in enumerate(posts):
            enrichment = self.enrich(post)
            result.results.append(enrichment)

            if enrichment.complete and self._save(post, enrichment):
                result.enriched += 1
            else:
                result.failed += 1

            if idx + 1 < len(posts) and delay > 0:
                self._sleep(delay)

        self._log.info(
            "enrichment_complete", enriched=result.enriched, failed=result.failed
        )
        return result

    def _save(self, post: Post, enrichment: EnrichmentResult) -> bool:
        try:
            self._store.update_enrichment(
                post.key, enrichment.summary, enrichment.relevance
            )
        except (StateStoreError, sqlite3.Error) as exc:
            self._log.error(
                "enrich_save_failed",
                post_id=post.id,
                source=post.source,
                error=str(exc),
            )
            return False
        self._log.debug("post_enriched", post_id=post.id, source=post.source)
        return True
