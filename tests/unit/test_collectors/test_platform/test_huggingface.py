"""Unit tests for the Hugging Face fetcher."""

from unittest.mock import MagicMock, patch

import httpx
import pytest

from hypeseeker.collectors.errors import CollectorError
from hypeseeker.collectors.platform.huggingface import HuggingFaceFetcher
from hypeseeker.config.schemas import HuggingFaceSourceConfig
from tests.helpers.time import FIXED_NOW


MODELS = [
    {
        "id": "acme/tiny-llm",
        "likes": 300,
        "downloads": 5000,
        "pipeline_tag": "text-generation",
        "createdAt": "2025-06-11T00:00:00.000Z",
    },
    {"id": "acme/unloved", "likes": 2, "downloads": 10},
    {"id": "acme/no-downloads", "likes": 500, "downloads": 0},
    {"likes": 900},
]


class TestHuggingFaceFetcher:
    """Tests for HuggingFaceFetcher."""

    @patch("hypeseeker.collectors.base.httpx.get")
    def test_filters_and_maps(self, mock_get: MagicMock) -> None:
        mock_get.return_value = httpx.Response(200, json=MODELS)
        config = HuggingFaceSourceConfig(min_likes=20, min_downloads=100)

        posts = HuggingFaceFetcher(config).fetch(FIXED_NOW)

        assert [p.id for p in posts] == ["acme/tiny-llm"]
        post = posts[0]
        assert post.username == "acme"
        assert post.name == "tiny-llm"
        assert post.stars == 300
        assert post.description == "text-generation"
        assert post.url == "https://huggingface.co/acme/tiny-llm"

    @patch("hypeseeker.collectors.base.httpx.get")
    def test_sorted_by_likes(self, mock_get: MagicMock) -> None:
        mock_get.return_value = httpx.Response(200, json=[])

        HuggingFaceFetcher(HuggingFaceSourceConfig()).fetch(FIXED_NOW)

        params = mock_get.call_args[1]["params"]
        assert params["sort"] == "likes"
        assert params["direction"] == -1

    @patch("hypeseeker.collectors.base.httpx.get")
    def test_non_list_is_schema_error(self, mock_get: MagicMock) -> None:
        mock_get.return_value = httpx.Response(200, json={"error": "oops"})

        with pytest.raises(CollectorError):
            HuggingFaceFetcher(HuggingFaceSourceConfig()).fetch(FIXED_NOW)
