"""Unit tests for the shared fetch helpers."""

from datetime import UTC, datetime
from unittest.mock import MagicMock, patch

import httpx
import pytest

from hypeseeker.collectors.base import USER_AGENT, parse_timestamp, request_json
from hypeseeker.collectors.errors import CollectorError, CollectorErrorClass
from tests.helpers.time import FIXED_NOW


class TestRequestJson:
    """Tests for request_json."""

    @patch("hypeseeker.collectors.base.httpx.get")
    def test_returns_decoded_body(self, mock_get: MagicMock) -> None:
        mock_get.return_value = httpx.Response(200, json={"items": []})

        assert request_json("https://api.example.com/x", source="test") == {"items": []}
        headers = mock_get.call_args[1]["headers"]
        assert headers["User-Agent"] == USER_AGENT

    @patch("hypeseeker.collectors.base.httpx.get")
    def test_extra_headers_merged(self, mock_get: MagicMock) -> None:
        mock_get.return_value = httpx.Response(200, json={})

        request_json("https://x", source="test", headers={"Authorization": "Bearer t"})

        headers = mock_get.call_args[1]["headers"]
        assert headers["Authorization"] == "Bearer t"
        assert headers["Accept"] == "application/json"

    @patch("hypeseeker.collectors.base.httpx.get")
    def test_http_error_status(self, mock_get: MagicMock) -> None:
        """Non-200 responses are FETCH errors with the status code."""
        mock_get.return_value = httpx.Response(403, text="rate limited")

        with pytest.raises(CollectorError) as exc_info:
            request_json("https://x", source="github")

        assert exc_info.value.error_class is CollectorErrorClass.FETCH
        assert exc_info.value.details["status_code"] == 403
        assert exc_info.value.source == "github"

    @patch("hypeseeker.collectors.base.httpx.get")
    def test_network_error(self, mock_get: MagicMock) -> None:
        mock_get.side_effect = httpx.ConnectError("refused")

        with pytest.raises(CollectorError) as exc_info:
            request_json("https://x", source="reddit")

        assert exc_info.value.error_class is CollectorErrorClass.FETCH

    @patch("hypeseeker.collectors.base.httpx.get")
    def test_invalid_json(self, mock_get: MagicMock) -> None:
        mock_get.return_value = httpx.Response(200, text="<html>")

        with pytest.raises(CollectorError) as exc_info:
            request_json("https://x", source="reddit")

        assert exc_info.value.error_class is CollectorErrorClass.PARSE


class TestParseTimestamp:
    """Tests for parse_timestamp."""

    def test_iso_with_zulu(self) -> None:
        assert parse_timestamp("2025-06-12T10:00:00Z", FIXED_NOW) == datetime(
            2025, 6, 12, 10, 0, tzinfo=UTC
        )

    def test_naive_iso_is_utc(self) -> None:
        assert parse_timestamp("2025-06-12T10:00:00", FIXED_NOW).tzinfo == UTC

    def test_unix_seconds(self) -> None:
        assert parse_timestamp(1749808800.0, FIXED_NOW) == datetime(
            2025, 6, 13, 10, 0, tzinfo=UTC
        )

    @pytest.mark.parametrize("value", [None, "", "yesterday", True])
    def test_fallback(self, value: object) -> None:
        assert parse_timestamp(value, FIXED_NOW) == FIXED_NOW
