"""Unit tests for the Telegram channel."""

import re
from unittest.mock import MagicMock, patch

import httpx

from hypeseeker.notify.telegram import MESSAGE_LIMIT, TelegramChannel, escape_clipped
from tests.helpers.posts import make_post
from tests.helpers.time import FIXED_NOW


def _channel() -> TelegramChannel:
    return TelegramChannel(bot_token="123:abc", chat_id="-100", clock=lambda: FIXED_NOW)


class TestTelegramFormatting:
    """Tests for message formatting."""

    def test_format_item_escapes_html(self) -> None:
        post = make_post(
            name="<script> & co",
            relevance_score=0.87,
            summary="Fast a<b",
            relevance="Matches agents",
            matched_interest="agents",
        )

        text = _channel().format_item(post, 3)

        assert text.startswith(f'<b>3. <a href="{post.url}">&lt;script&gt; &amp; co</a></b>')
        assert "[87% · github]" in text
        assert "Fast a&lt;b" in text
        assert "<i>Matches agents</i>" in text
        assert "(agents)" in text

    def test_header_on_first_part_only(self) -> None:
        channel = _channel()

        first = channel.build_message(["one\n"], 1, 2)
        second = channel.build_message(["two\n"], 2, 2)

        assert "HypeSeeker Digest" in first
        assert "2025-06-13" in first
        assert first.endswith("<i>1/2</i>")
        assert "HypeSeeker Digest" not in second
        assert second.endswith("<i>2/2</i>")

    def test_single_part_has_no_marker(self) -> None:
        assert "1/1" not in _channel().build_message(["one\n"], 1, 1)

    def test_long_fields_clipped_to_valid_html(self) -> None:
        """Oversized text is clipped per field without splitting entities."""
        post = make_post(
            name="&" * 1000,
            relevance_score=0.9,
            summary="a<b " * 2000,
            relevance="R&D " * 1000,
            matched_interest="agents",
        )
        channel = _channel()

        fragment = channel.format_item(post, 1)
        message = channel.build_message([fragment], 1, 2)

        assert len(message) <= MESSAGE_LIMIT
        assert fragment.count("<i>") == fragment.count("</i>") == 1
        assert fragment.count("<b>") == fragment.count("</b>") == 1
        assert "…" in fragment
        assert "(agents)" in fragment
        stripped = re.sub(r"&(amp|lt|gt);", "", fragment)
        assert "&" not in stripped

    def test_long_url_drops_link(self) -> None:
        post = make_post(name="kit", url="https://example.com/" + "a" * 600)

        fragment = _channel().format_item(post, 1)

        assert "<a href" not in fragment
        assert fragment.startswith("<b>1. kit</b>")


class TestEscapeClipped:
    """Tests for escape_clipped."""

    def test_short_text_only_escaped(self) -> None:
        assert escape_clipped("a & b", 20) == "a &amp; b"

    def test_clip_never_splits_entity(self) -> None:
        result = escape_clipped("ab&cd", 6)
        assert result == "ab…"
        assert len(result) <= 6

    def test_clip_length(self) -> None:
        result = escape_clipped("x" * 50, 10)
        assert result == "x" * 9 + "…"


class TestTelegramSend:
    """Tests for TelegramChannel.send."""

    @patch("hypeseeker.notify.telegram.httpx.post")
    def test_success(self, mock_post: MagicMock) -> None:
        mock_post.return_value = httpx.Response(200, json={"ok": True})

        assert _channel().send(["hello\n"], 1, 1) is True

        url = mock_post.call_args[0][0]
        payload = mock_post.call_args[1]["json"]
        assert url == "https://api.telegram.org/bot123:abc/sendMessage"
        assert payload["chat_id"] == "-100"
        assert payload["parse_mode"] == "HTML"
        assert payload["disable_web_page_preview"] is True

    @patch("hypeseeker.notify.telegram.httpx.post")
    def test_api_rejection(self, mock_post: MagicMock) -> None:
        mock_post.return_value = httpx.Response(
            400, json={"ok": False, "description": "can't parse entities"}
        )
        assert _channel().send(["x"], 1, 1) is False

    @patch("hypeseeker.notify.telegram.httpx.post")
    def test_ok_false_with_200(self, mock_post: MagicMock) -> None:
        mock_post.return_value = httpx.Response(200, json={"ok": False})
        assert _channel().send(["x"], 1, 1) is False

    @patch("hypeseeker.notify.telegram.httpx.post")
    def test_network_error(self, mock_post: MagicMock) -> None:
        mock_post.side_effect = httpx.ConnectError("refused")
        assert _channel().send(["x"], 1, 1) is False

    @patch("hypeseeker.notify.telegram.httpx.post")
    def test_overlong_message_not_sent(self, mock_post: MagicMock) -> None:
        """A message over the API limit is refused instead of sliced."""
        assert _channel().send(["x" * 5000], 1, 1) is False
        mock_post.assert_not_called()
