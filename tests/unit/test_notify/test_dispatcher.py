"""Unit tests for the digest dispatcher."""

from collections.abc import Generator, Sequence
from datetime import timedelta
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from hypeseeker.notify.dispatcher import DigestDispatcher
from hypeseeker.store import PostStore, StateStoreError, StoreMetrics
from hypeseeker.store.models import Post
from tests.helpers.posts import make_post
from tests.helpers.time import FIXED_NOW


class RecordingChannel:
    """Channel that records sent chunks and rejects selected parts."""

    def __init__(
        self,
        name: str = "telegram",
        max_chunk_size: int = 2,
        reject_parts: frozenset[int] = frozenset(),
        raise_parts: frozenset[int] = frozenset(),
    ) -> None:
        self.name = name
        self.max_chunk_size = max_chunk_size
        self.reject_parts = reject_parts
        self.raise_parts = raise_parts
        self.sent: list[tuple[list[str], int, int]] = []

    def format_item(self, post: Post, index: int) -> str:
        return f"{index}:{post.id}"

    def fragment_size(self, fragment: str) -> int:
        return 1

    def send(self, fragments: Sequence[str], part: int, total: int) -> bool:
        if part in self.raise_parts:
            raise RuntimeError("socket closed")
        if part in self.reject_parts:
            return False
        self.sent.append((list(fragments), part, total))
        return True


@pytest.fixture
def store(tmp_path: Path) -> Generator[PostStore]:
    StoreMetrics.reset()
    store = PostStore(tmp_path / "posts.sqlite")
    store.connect()
    yield store
    store.close()


def _seed(store: PostStore, count: int, score: float = 0.9) -> list[Post]:
    posts = [make_post(f"p{i}", relevance_score=score, stars=100 - i) for i in range(count)]
    for post in posts:
        store.upsert(post, now=FIXED_NOW)
    return posts


class TestDigestDispatcher:
    """Tests for DigestDispatcher."""

    def test_sends_and_marks(self, store: PostStore) -> None:
        _seed(store, 5)
        channel = RecordingChannel()
        sleeps: list[float] = []
        dispatcher = DigestDispatcher(store, [channel], min_score=0.7, sleep=sleeps.append)

        result = dispatcher.dispatch(now=FIXED_NOW)

        outcome = result.channel_results["telegram"]
        assert outcome.success
        assert outcome.posts_found == 5
        assert outcome.chunks_total == 3
        assert outcome.marked == 5
        assert [(part, total) for _, part, total in channel.sent] == [(1, 3), (2, 3), (3, 3)]
        assert channel.sent[0][0] == ["1:p0", "2:p1"]
        assert sleeps == [0.5, 0.5]
        assert store.get_unsent("telegram", 0.7, now=FIXED_NOW) == []

    def test_mid_batch_failure_marks_nothing(self, store: PostStore) -> None:
        """A rejected second chunk of three leaves every post unsent."""
        _seed(store, 6)
        failing = RecordingChannel(reject_parts=frozenset({2}))

        result = DigestDispatcher(store, [failing], min_score=0.7, sleep=lambda _: None).dispatch(
            now=FIXED_NOW
        )

        outcome = result.channel_results["telegram"]
        assert outcome.chunks_total == 3
        assert outcome.chunks_sent == 1
        assert outcome.marked == 0
        assert outcome.error == "chunk 2/3 rejected"
        assert result.failed_channels == ["telegram"]
        assert len(store.get_unsent("telegram", 0.7, now=FIXED_NOW)) == 6

        # Retry with a working channel delivers everything
        working = RecordingChannel()
        retry = DigestDispatcher(store, [working], min_score=0.7, sleep=lambda _: None).dispatch(
            now=FIXED_NOW + timedelta(minutes=5)
        )

        assert retry.channel_results["telegram"].marked == 6
        delivered = [frag for chunk, _, _ in working.sent for frag in chunk]
        assert len(delivered) == 6
        assert store.get_unsent("telegram", 0.7, now=FIXED_NOW) == []

    def test_send_exception_treated_as_rejection(self, store: PostStore) -> None:
        _seed(store, 3)
        channel = RecordingChannel(raise_parts=frozenset({1}))

        result = DigestDispatcher(store, [channel], min_score=0.7).dispatch(now=FIXED_NOW)

        assert result.channel_results["telegram"].marked == 0
        assert not result.channel_results["telegram"].success

    def test_channels_are_independent(self, store: PostStore) -> None:
        """One channel failing does not affect the other's markers."""
        _seed(store, 2)
        bad = RecordingChannel(name="telegram", reject_parts=frozenset({1}))
        good = RecordingChannel(name="slack")

        result = DigestDispatcher(store, [bad, good], min_score=0.7).dispatch(now=FIXED_NOW)

        assert result.sent == {"telegram": 0, "slack": 2}
        assert len(store.get_unsent("telegram", 0.7, now=FIXED_NOW)) == 2
        assert store.get_unsent("slack", 0.7, now=FIXED_NOW) == []

    def test_second_run_sends_nothing(self, store: PostStore) -> None:
        _seed(store, 2)
        channel = RecordingChannel()
        dispatcher = DigestDispatcher(store, [channel], min_score=0.7)
        dispatcher.dispatch(now=FIXED_NOW)

        again = dispatcher.dispatch(now=FIXED_NOW)

        assert again.channel_results["telegram"].posts_found == 0
        assert len(channel.sent) == 1

    def test_threshold_and_new_channel(self, store: PostStore) -> None:
        """New channels are registered; weak posts are skipped."""
        _seed(store, 1, score=0.9)
        store.upsert(make_post("weak", relevance_score=0.3), now=FIXED_NOW)
        channel = RecordingChannel(name="discord")

        result = DigestDispatcher(store, [channel], min_score=0.7).dispatch(now=FIXED_NOW)

        assert "discord" in store.channels
        assert result.channel_results["discord"].marked == 1

    def test_mark_failure_recorded(self) -> None:
        store = MagicMock()
        store.get_unsent.return_value = [make_post("p1", relevance_score=0.9)]
        store.mark_sent.side_effect = StateStoreError("disk full")
        channel = RecordingChannel()

        result = DigestDispatcher(store, [channel], min_score=0.7).dispatch(now=FIXED_NOW)

        outcome = result.channel_results["telegram"]
        assert outcome.chunks_sent == 1
        assert outcome.error is not None
        assert "mark_sent failed" in outcome.error

    def test_no_channels(self) -> None:
        store = MagicMock()
        assert DigestDispatcher(store, [], min_score=0.7).dispatch(now=FIXED_NOW).sent == {}
        store.register_channels.assert_not_called()
