"""Slack incoming webhook channel."""

from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Any

import httpx
import structlog

from hypeseeker.notify.base import DIGEST_TITLE, format_score
from hypeseeker.store.models import Post


logger = structlog.get_logger()

BLOCK_LIMIT = 50
CHUNK_BUDGET = 45

Block = dict[str, Any]


def _mrkdwn_escape(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


class SlackChannel:
    """Sends the digest as Block Kit messages to an incoming webhook.

    Chunks are measured in blocks. The header adds three blocks to the
    first part and every part gets a context footer, which keeps each
    message under Slack's 50-block limit.
    """

    name = "slack"
    max_chunk_size = CHUNK_BUDGET

    def __init__(
        self,
        webhook_url: str,
        timeout: float = 30.0,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._webhook_url = webhook_url
        self._timeout = timeout
        self._clock = clock or (lambda: datetime.now(UTC))
        self._log = logger.bind(component="notify", subcomponent="slack")

    def format_item(self, post: Post, index: int) -> list[Block]:
        """Render one post as a list of blocks, ending with a divider."""
        name = _mrkdwn_escape(post.name or "Untitled")
        blocks: list[Block] = [
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": (
                        f"*{index}. <{post.url}|{name}>* "
                        f"[{format_score(post)} · {post.source}]"
                    ),
                },
            }
        ]
        if post.summary:
            blocks.append(
                {
                    "type": "section",
                    "text": {"type": "mrkdwn", "text": _mrkdwn_escape(post.summary)},
                }
            )
        context = post.matched_interest or "-"
        if post.relevance:
            context = f"{context} · {post.relevance}"
        blocks.append(
            {
                "type": "context",
                "elements": [{"type": "mrkdwn", "text": f"_{_mrkdwn_escape(context)}_"}],
            }
        )
        blocks.append({"type": "divider"})
        return blocks

    def fragment_size(self, fragment: list[Block]) -> int:
        return len(fragment)

    def build_blocks(
        self, fragments: Sequence[list[Block]], part: int, total: int
    ) -> list[Block]:
        """Assemble one chunk into the message blocks."""
        blocks: list[Block] = []
        if part == 1:
            blocks.extend(
                [
                    {
                        "type": "header",
                        "text": {
                            "type": "plain_text",
                            "text": f"🔥 {DIGEST_TITLE}",
                            "emoji": True,
                        },
                    },
                    {
                        "type": "context",
                        "elements": [
                            {"type": "mrkdwn", "text": f"📅 {self._clock():%Y-%m-%d}"}
                        ],
                    },
                    {"type": "divider"},
                ]
            )
        for fragment in fragments:
            blocks.extend(fragment)
        if total > 1:
            blocks.append(
                {
                    "type": "context",
                    "elements": [{"type": "mrkdwn", "text": f"Part {part}/{total}"}],
                }
            )
        return blocks

    def send(self, fragments: Sequence[list[Block]], part: int, total: int) -> bool:
        """Post one chunk to the webhook.

        Returns:
            True if Slack answered 200.
        """
        blocks = self.build_blocks(fragments, part, total)
        payload = {"text": f"{DIGEST_TITLE} - Part {part}", "blocks": blocks}

        try:
            response = httpx.post(self._webhook_url, json=payload, timeout=self._timeout)
        except httpx.HTTPError as exc:
            self._log.error("slack_send_failed", part=part, error=str(exc))
            return False

        if response.status_code != httpx.codes.OK:
            self._log.error(
                "slack_api_error",
                part=part,
                status=response.status_code,
                body=response.text[:300],
            )
            return False
        return True
