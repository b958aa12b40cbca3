"""Digest dispatch with per-channel sent markers."""

import sqlite3
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog

from hypeseeker.notify.base import NotificationChannel, chunk_fragments
from hypeseeker.store import PostStore, StateStoreError


logger = structlog.get_logger()


@dataclass
class ChannelDispatchResult:
    """Outcome of one channel's dispatch.

    Attributes:
        channel: Channel name.
        posts_found: Unsent qualifying posts.
        chunks_total: Chunks the posts were packed into.
        chunks_sent: Chunks the channel accepted.
        marked: Posts newly marked as sent.
        error: Failure description, None on success.
    """

    channel: str
    posts_found: int = 0
    chunks_total: int = 0
    chunks_sent: int = 0
    marked: int = 0
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class DispatchPhaseResult:
    """Per-channel outcomes of the dispatch phase."""

    channel_results: dict[str, ChannelDispatchResult] = field(default_factory=dict)

    @property
    def sent(self) -> dict[str, int]:
        return {name: r.marked for name, r in self.channel_results.items()}

    @property
    def failed_channels(self) -> list[str]:
        return [name for name, r in self.channel_results.items() if not r.success]


class DigestDispatcher:
    """Sends unsent high-scoring posts to each channel, then marks them.

    Channels are handled one after another and independently. Within a
    channel the run is all-or-nothing: posts are marked only after every
    chunk was accepted, so a failed run is repeated in full next time.
    Delivery is therefore at-least-once.
    """

    def __init__(
        self,
        store: PostStore,
        channels: Sequence[NotificationChannel],
        min_score: float,
        recency_hours: int = 24,
        inter_chunk_delay: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            store: Post store holding scores and sent markers.
            channels: Channels to deliver to.
            min_score: Relevance threshold on the 0-1 scale.
            recency_hours: Only posts created within this window qualify.
            inter_chunk_delay: Pause between chunks of one channel.
            sleep: Sleep function, replaceable in tests.
        """
        self._store = store
        self._channels = list(channels)
        self._min_score = min_score
        self._recency_hours = recency_hours
        self._inter_chunk_delay = inter_chunk_delay
        self._sleep = sleep
        self._log = logger.bind(component="notify", subcomponent="dispatcher")

    def dispatch(self, now: datetime | None = None) -> DispatchPhaseResult:
        """Dispatch the digest to every channel.

        Args:
            now: Reference time for the recency window and sent markers.

        Returns:
            DispatchPhaseResult keyed by channel name.
        """
        now = now or datetime.now(UTC)
        result = DispatchPhaseResult()
        if not self._channels:
            return result

        self._store.register_channels(channel.name for channel in self._channels)

        for channel in self._channels:
            result.channel_results[channel.name] = self.dispatch_channel(channel, now)
        return result

    def dispatch_channel(
        self, channel: NotificationChannel, now: datetime
    ) -> ChannelDispatchResult:
        """Run the read, chunk, send, mark sequence for one channel."""
        log = self._log.bind(channel=channel.name)
        outcome = ChannelDispatchResult(channel=channel.name)

        posts = self._store.get_unsent(
            channel.name,
            min_score=self._min_score,
            recency_hours=self._recency_hours,
            now=now,
        )
        outcome.posts_found = len(posts)
        if not posts:
            log.info("digest_nothing_to_send")
            return outcome

        fragments = [channel.format_item(post, idx) for idx, post in enumerate(posts, 1)]
        chunks = chunk_fragments(fragments, channel.max_chunk_size, channel.fragment_size)
        outcome.chunks_total = len(chunks)

        for part, chunk in enumerate(chunks, 1):
            try:
                accepted = channel.send(chunk, part, len(chunks))
            except Exception as exc:  # noqa: BLE001
                log.error("digest_chunk_error", part=part, error=str(exc))
                accepted = False

            if not accepted:
                outcome.error = f"chunk {part}/{len(chunks)} rejected"
                log.warning(
                    "digest_channel_aborted",
                    part=part,
                    total=len(chunks),
                    posts=len(posts),
                )
                return outcome

            outcome.chunks_sent += 1
            if part < len(chunks) and self._inter_chunk_delay > 0:
                self._sleep(self._inter_chunk_delay)

        try:
            outcome.marked = self._store.mark_sent(channel.name, posts, now=now)
        except (StateStoreError, sqlite3.Error) as exc:
            # Delivered but not marked: the next run sends these again
            outcome.error = f"mark_sent failed: {exc}"
            log.error("digest_mark_failed", error=str(exc))
            return outcome

        log.info(
            "digest_sent",
            posts=len(posts),
            chunks=len(chunks),
            marked=outcome.marked,
        )
        return outcome
