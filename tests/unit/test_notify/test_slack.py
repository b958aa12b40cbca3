"""Unit tests for the Slack channel."""

from unittest.mock import MagicMock, patch

import httpx

from hypeseeker.notify.slack import BLOCK_LIMIT, CHUNK_BUDGET, SlackChannel
from tests.helpers.posts import make_post
from tests.helpers.time import FIXED_NOW


def _channel() -> SlackChannel:
    return SlackChannel(webhook_url="https://hooks.slack.test/T/B/X", clock=lambda: FIXED_NOW)


class TestSlackFormatting:
    """Tests for block formatting."""

    def test_full_item(self) -> None:
        post = make_post(
            name="agent-kit",
            relevance_score=0.9,
            summary="A kit",
            relevance="Agents",
            matched_interest="LLM agents",
        )

        blocks = _channel().format_item(post, 1)

        assert [b["type"] for b in blocks] == ["section", "section", "context", "divider"]
        assert f"<{post.url}|agent-kit>" in blocks[0]["text"]["text"]
        assert "90%" in blocks[0]["text"]["text"]
        assert blocks[2]["elements"][0]["text"] == "_LLM agents · Agents_"

    def test_item_without_summary(self) -> None:
        blocks = _channel().format_item(make_post(relevance_score=0.8), 2)
        assert [b["type"] for b in blocks] == ["section", "context", "divider"]

    def test_header_and_part_marker(self) -> None:
        channel = _channel()
        fragment = channel.format_item(make_post(relevance_score=0.8), 1)

        first = channel.build_blocks([fragment], 1, 2)
        second = channel.build_blocks([fragment], 2, 2)

        assert first[0]["type"] == "header"
        assert len(first) == 3 + len(fragment) + 1
        assert second[-1]["elements"][0]["text"] == "Part 2/2"
        assert len(second) == len(fragment) + 1

    def test_budget_fits_block_limit(self) -> None:
        """A full chunk plus header and footer stays within Slack's limit."""
        assert CHUNK_BUDGET + 3 + 1 <= BLOCK_LIMIT


class TestSlackSend:
    """Tests for SlackChannel.send."""

    @patch("hypeseeker.notify.slack.httpx.post")
    def test_success(self, mock_post: MagicMock) -> None:
        mock_post.return_value = httpx.Response(200, text="ok")

        assert _channel().send([[{"type": "divider"}]], 1, 1) is True
        assert mock_post.call_args[0][0] == "https://hooks.slack.test/T/B/X"
        assert mock_post.call_args[1]["json"]["blocks"][-1] == {"type": "divider"}

    @patch("hypeseeker.notify.slack.httpx.post")
    def test_rejection(self, mock_post: MagicMock) -> None:
        mock_post.return_value = httpx.Response(400, text="invalid_blocks")
        assert _channel().send([[{"type": "divider"}]], 1, 1) is False

    @patch("hypeseeker.notify.slack.httpx.post")
    def test_network_error(self, mock_post: MagicMock) -> None:
        mock_post.side_effect = httpx.ReadTimeout("slow")
        assert _channel().send([[{"type": "divider"}]], 1, 1) is False
