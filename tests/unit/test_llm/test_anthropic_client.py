"""Unit tests for the Anthropic backend."""

from unittest.mock import MagicMock, patch

import httpx
import pytest

from hypeseeker.llm.anthropic_client import AnthropicBackend, parse_retry_after
from hypeseeker.llm.errors import LlmApiError, LlmTimeoutError
from hypeseeker.llm.protocols import ModelTier


def _ok_response(text: str = "ok") -> MagicMock:
    mock_response = MagicMock()
    mock_response.status_code = 200
    mock_response.json.return_value = {"content": [{"type": "text", "text": text}]}
    return mock_response


class TestAnthropicBackendComplete:
    """Tests for AnthropicBackend.complete."""

    @patch("hypeseeker.llm.anthropic_client.httpx.post")
    def test_success_returns_text(self, mock_post: MagicMock) -> None:
        """Should return the first text block."""
        mock_post.return_value = _ok_response('{"score": 0.7}')

        backend = AnthropicBackend(api_key="test-key")
        assert backend.complete(ModelTier.FAST, "rate this", 256) == '{"score": 0.7}'

    @patch("hypeseeker.llm.anthropic_client.httpx.post")
    def test_request_shape(self, mock_post: MagicMock) -> None:
        """Should send key, version header, model and token cap."""
        mock_post.return_value = _ok_response()

        backend = AnthropicBackend(api_key="my-key", strong_model="sonnet-x")
        backend.complete(ModelTier.STRONG, "hello", 512)

        url = mock_post.call_args[0][0]
        kwargs = mock_post.call_args[1]
        assert url == "https://api.anthropic.com/v1/messages"
        assert kwargs["headers"]["x-api-key"] == "my-key"
        assert kwargs["headers"]["anthropic-version"] == "2023-06-01"
        assert kwargs["json"]["model"] == "sonnet-x"
        assert kwargs["json"]["max_tokens"] == 512
        assert kwargs["json"]["messages"] == [{"role": "user", "content": "hello"}]

    def test_tiers_map_to_models(self) -> None:
        """Fast and strong tiers use different models."""
        backend = AnthropicBackend(api_key="k")
        assert backend.model_for(ModelTier.FAST) != backend.model_for(ModelTier.STRONG)

    @patch("hypeseeker.llm.anthropic_client.httpx.post")
    def test_no_text_block_returns_empty(self, mock_post: MagicMock) -> None:
        """A response without text yields an empty string."""
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.json.return_value = {"content": [{"type": "tool_use"}]}
        mock_post.return_value = mock_response

        assert AnthropicBackend(api_key="k").complete(ModelTier.FAST, "p", 10) == ""

    @patch("hypeseeker.llm.anthropic_client.httpx.post")
    def test_rate_limit_carries_retry_after(self, mock_post: MagicMock) -> None:
        """A 429 exposes the retry-after header."""
        mock_post.return_value = httpx.Response(
            429,
            headers={"retry-after": "12"},
            json={"error": {"type": "rate_limit_error"}},
        )

        with pytest.raises(LlmApiError) as exc_info:
            AnthropicBackend(api_key="k").complete(ModelTier.FAST, "p", 10)

        assert exc_info.value.status_code == 429
        assert exc_info.value.retry_after == 12.0
        assert exc_info.value.is_rate_limited

    @patch("hypeseeker.llm.anthropic_client.httpx.post")
    def test_overloaded_error_type(self, mock_post: MagicMock) -> None:
        """overloaded_error marks the error transient."""
        mock_post.return_value = httpx.Response(
            529, json={"error": {"type": "overloaded_error"}}
        )

        with pytest.raises(LlmApiError) as exc_info:
            AnthropicBackend(api_key="k").complete(ModelTier.FAST, "p", 10)

        assert exc_info.value.overloaded
        assert "overloaded_error" in str(exc_info.value)

    @patch("hypeseeker.llm.anthropic_client.httpx.post")
    def test_client_error(self, mock_post: MagicMock) -> None:
        """A 400 is not transient."""
        mock_post.return_value = httpx.Response(400, text="bad")

        with pytest.raises(LlmApiError) as exc_info:
            AnthropicBackend(api_key="k").complete(ModelTier.FAST, "p", 10)

        assert exc_info.value.status_code == 400
        assert not exc_info.value.is_transient

    @patch("hypeseeker.llm.anthropic_client.httpx.post")
    def test_timeout(self, mock_post: MagicMock) -> None:
        """Timeouts become LlmTimeoutError."""
        mock_post.side_effect = httpx.ReadTimeout("slow")

        with pytest.raises(LlmTimeoutError):
            AnthropicBackend(api_key="k").complete(ModelTier.FAST, "p", 10)

    @patch("hypeseeker.llm.anthropic_client.httpx.post")
    def test_network_error(self, mock_post: MagicMock) -> None:
        """Connection failures become a transient LlmApiError."""
        mock_post.side_effect = httpx.ConnectError("refused")

        with pytest.raises(LlmApiError) as exc_info:
            AnthropicBackend(api_key="k").complete(ModelTier.FAST, "p", 10)

        assert exc_info.value.status_code == 0
        assert exc_info.value.is_transient

    @patch("hypeseeker.llm.anthropic_client.httpx.post")
    def test_non_json_body_raises_api_error(self, mock_post: MagicMock) -> None:
        """A 200 carrying an HTML page becomes LlmApiError, not a decode error."""
        mock_post.return_value = httpx.Response(200, text="<html>gateway</html>")

        with pytest.raises(LlmApiError, match="Malformed Anthropic") as exc_info:
            AnthropicBackend(api_key="k").complete(ModelTier.FAST, "p", 10)

        assert exc_info.value.status_code == 200
        assert not exc_info.value.is_transient

    @patch("hypeseeker.llm.anthropic_client.httpx.post")
    def test_unexpected_shape_raises_api_error(self, mock_post: MagicMock) -> None:
        """Content that is not a list of blocks is rejected."""
        mock_post.return_value = httpx.Response(200, json={"content": "oops"})

        with pytest.raises(LlmApiError, match="Malformed Anthropic"):
            AnthropicBackend(api_key="k").complete(ModelTier.FAST, "p", 10)


class TestParseRetryAfter:
    """Tests for parse_retry_after."""

    def test_seconds(self) -> None:
        assert parse_retry_after(httpx.Response(429, headers={"retry-after": "3"})) == 3.0

    def test_missing(self) -> None:
        assert parse_retry_after(httpx.Response(429)) is None

    def test_http_date_ignored(self) -> None:
        response = httpx.Response(
            429, headers={"retry-after": "Wed, 21 Oct 2015 07:28:00 GMT"}
        )
        assert parse_retry_after(response) is None
