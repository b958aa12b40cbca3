"""Notification channel interface and chunk packing."""

from collections.abc import Callable, Sequence
from typing import Any, Protocol, TypeVar, runtime_checkable

from hypeseeker.store.models import Post


DIGEST_TITLE = "HypeSeeker Digest"

Fragment = TypeVar("Fragment")


@runtime_checkable
class NotificationChannel(Protocol):
    """A destination for the digest.

    A fragment is the formatted form of one post (text for Telegram,
    a block list for Slack). The dispatcher packs fragments into chunks
    no larger than ``max_chunk_size`` as measured by ``fragment_size``
    and sends each chunk as one message.
    """

    name: str
    max_chunk_size: int

    def format_item(self, post: Post, index: int) -> Any:
        """Format one post; ``index`` is its 1-based position in the digest."""
        ...

    def fragment_size(self, fragment: Any) -> int:
        """Size of a fragment in the channel's budget unit."""
        ...

    def send(self, fragments: Sequence[Any], part: int, total: int) -> bool:
        """Send one chunk. Returns False when the channel rejected it."""
        ...


def chunk_fragments(
    fragments: Sequence[Fragment],
    max_size: int,
    size_of: Callable[[Fragment], int],
) -> list[list[Fragment]]:
    """Pack fragments greedily, in order, into chunks of at most ``max_size``.

    A fragment larger than ``max_size`` on its own becomes a single-item
    chunk instead of being split.

    Args:
        fragments: Formatted posts in digest order.
        max_size: Budget per chunk.
        size_of: Size function for one fragment.

    Returns:
        Non-empty chunks covering every fragment exactly once.
    """
    chunks: list[list[Fragment]] = []
    current: list[Fragment] = []
    current_size = 0

    for fragment in fragments:
        size = size_of(fragment)
        if current and current_size + size > max_size:
            chunks.append(current)
            current, current_size = [], 0
        current.append(fragment)
        current_size += size

    if current:
        chunks.append(current)
    return chunks


def format_score(post: Post) -> str:
    """Relevance as a whole percentage."""
    return f"{round((post.relevance_score or 0.0) * 100)}%"
