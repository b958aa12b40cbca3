"""Relevance scoring of posts against the interest profile."""

import sqlite3
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import UTC, datetime

import structlog

from hypeseeker.config.schemas import InterestProfile
from hypeseeker.llm.errors import (
    LlmApiError,
    LlmProcessingError,
    LlmRetryExhaustedError,
)
from hypeseeker.llm.json_utils import parse_json_object
from hypeseeker.llm.models import ScoreResult, ScoreStatus, ScoringPhaseResult
from hypeseeker.llm.prompts import SCORE_MAX_TOKENS, build_score_prompt
from hypeseeker.llm.protocols import ModelClient, ModelTier
from hypeseeker.store import PostStore, StateStoreError
from hypeseeker.store.models import Post


logger = structlog.get_logger()

DEFAULT_BATCH_SIZE = 5
DEFAULT_DELAY_SECONDS = 0.2


def clamp_score(value: object) -> float:
    """Clamp a raw score into [0.0, 1.0].

    Missing and non-numeric values become 0.
    """
    if isinstance(value, bool) or value is None:
        return 0.0
    try:
        score = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if score != score:  # NaN
        return 0.0
    return max(0.0, min(1.0, score))


def normalize_interest(value: object) -> str | None:
    """Empty strings and the literal ``null`` mean no match."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value or value.lower() == "null":
        return None
    return value


class PostScorer:
    """Scores posts with the fast model tier and stores the results.

    Failed calls and unparseable answers are never written, so the post
    stays unscored and is picked up again on the next run.
    """

    def __init__(
        self,
        client: ModelClient,
        profile: InterestProfile,
        store: PostStore,
        batch_size: int = DEFAULT_BATCH_SIZE,
        delay_seconds: float = DEFAULT_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the scorer.

        Args:
            client: Model client (normally a ``ResilientModelClient``).
            profile: User interest profile.
            store: Store receiving the scores.
            batch_size: Posts scored concurrently per batch.
            delay_seconds: Pause between batches.
            sleep: Sleep function, replaceable in tests.
        """
        self._client = client
        self._profile = profile
        self._store = store
        self._batch_size = batch_size
        self._delay_seconds = delay_seconds
        self._sleep = sleep
        self._log = logger.bind(component="llm", subcomponent="scorer")

    def score(self, post: Post) -> ScoreResult:
        """Score a single post. Never raises.

        Args:
            post: Post to score.

        Returns:
            ScoreResult; failed variants carry score 0 and no interest.
        """
        prompt = build_score_prompt(self._profile, post)

        try:
            response = self._client.invoke(ModelTier.FAST, prompt, SCORE_MAX_TOKENS)
        except (LlmApiError, LlmRetryExhaustedError) as exc:
            self._log.warning(
                "score_call_failed",
                post_id=post.id,
                source=post.source,
                error=str(exc),
            )
            return ScoreResult(
                post_key=post.key,
                score=0.0,
                matched_interest=None,
                status=ScoreStatus.CALL_FAILED,
                error=str(exc),
            )

        try:
            return self._parse_response(post, response)
        except LlmProcessingError as exc:
            self._log.warning(
                "score_parse_failed",
                post_id=post.id,
                source=post.source,
                error=str(exc),
            )
            return ScoreResult(
                post_key=post.key,
                score=0.0,
                matched_interest=None,
                status=ScoreStatus.PARSE_FAILED,
                error=str(exc),
            )

    @staticmethod
    def _parse_response(post: Post, response: str) -> ScoreResult:
        """Turn the model answer into a ScoreResult.

        Raises:
            LlmProcessingError: If no JSON object can be recovered.
        """
        parsed = parse_json_object(response)
        if parsed is None:
            msg = f"No JSON object in score response: {response[:200]}"
            raise LlmProcessingError(msg)

        return ScoreResult(
            post_key=post.key,
            score=clamp_score(parsed.get("score")),
            matched_interest=normalize_interest(parsed.get("matched_interest")),
        )

    def score_batch(
        self,
        posts: Sequence[Post],
        batch_size: int | None = None,
        delay_seconds: float | None = None,
    ) -> ScoringPhaseResult:
        """Score posts in fixed-size concurrent batches.

        Each OK result is written as soon as its call completes. Batches
        run one after another with a pause between them.

        Args:
            posts: Posts to score.
            batch_size: Override for the configured batch size.
            delay_seconds: Override for the configured pause.

        Returns:
            ScoringPhaseResult with per-status counts.
        """
        size = batch_size or self._batch_size
        delay = self._delay_seconds if delay_seconds is None else delay_seconds
        result = ScoringPhaseResult(attempted=len(posts))

        if not posts:
            self._log.info("scoring_no_posts")
            return result

        batches = [posts[i : i + size] for i in range(0, len(posts), size)]
        self._log.info("scoring_started", posts=len(posts), batches=len(batches))

        for batch_idx, batch in enumerate(batches):
            self._score_one_batch(batch, result)
            if batch_idx + 1 < len(batches) and delay > 0:
                self._sleep(delay)

        self._log.info(
            "scoring_complete",
            scored=result.scored,
            parse_failed=result.parse_failed,
            call_failed=result.call_failed,
            save_failed=result.save_failed,
        )
        return result

    def _score_one_batch(
        self, batch: Sequence[Post], result: ScoringPhaseResult
    ) -> None:
        """Score one batch concurrently and persist as results arrive.

        Store writes happen on the calling thread only.
        """
        with ThreadPoolExecutor(max_workers=len(batch)) as executor:
            futures = {executor.submit(self.score, post): post for post in batch}

            for future in as_completed(futures):
                post = futures[future]
                try:
                    score_result = future.result()
                except Exception as exc:
                    self._log.error(
                        "score_unexpected_error",
                        post_id=post.id,
                        source=post.source,
                        error=str(exc),
                        error_type=type(exc).__name__,
                    )
                    score_result = ScoreResult(
                        post_key=post.key,
                        score=0.0,
                        matched_interest=None,
                        status=ScoreStatus.CALL_FAILED,
                        error=str(exc),
                    )

                result.results.append(score_result)
                self._record(post, score_result, result)

    def _record(
        self, post: Post, score_result: ScoreResult, result: ScoringPhaseResult
    ) -> None:
        if score_result.status is ScoreStatus.PARSE_FAILED:
            result.parse_failed += 1
            return
        if score_result.status is ScoreStatus.CALL_FAILED:
            result.call_failed += 1
            return

        try:
            self._store.update_score(
                post.key,
                score_result.score,
                score_result.matched_interest,
                now=datetime.now(UTC),
            )
        except (StateStoreError, sqlite3.Error) as exc:
            result.save_failed += 1
            self._log.error(
                "score_save_failed",
                post_id=post.id,
                source=post.source,
                error=str(exc),
            )
            return

        result.scored += 1
        self._log.debug(
            "post_scored",
            post_id=post.id,
            source=post.source,
            score=round(score_result.score, 2),
            matched_interest=score_result.matched_interest,
        )
