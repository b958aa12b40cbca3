"""Unit tests for the post enricher."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import httpx

from hypeseeker.config.schemas import InterestProfile
from hypeseeker.llm.anthropic_client import AnthropicBackend
from hypeseeker.llm.enricher import PostEnricher
from hypeseeker.llm.errors import LlmApiError, LlmRetryExhaustedError
from hypeseeker.llm.failure_log import FailureLog
from hypeseeker.llm.models import ScoreStatus
from hypeseeker.llm.protocols import ModelTier
from hypeseeker.llm.resilient import ResilientModelClient
from tests.helpers.posts import make_post


PROFILE = InterestProfile(profile="ML engineer")


def _client(*answers: object) -> MagicMock:
    client = MagicMock()
    client.invoke.side_effect = list(answers)
    return client


class TestPostEnricherEnrich:
    """Tests for PostEnricher.enrich."""

    def test_parses_answer(self) -> None:
        """Uses the strong tier and strips the fields."""
        client = _client('```json\n{"summary": " A kit. ", "relevance": "Agents."}\n```')
        enricher = PostEnricher(client, PROFILE, MagicMock(), language="de")

        result = enricher.enrich(make_post())

        assert result.complete
        assert result.summary == "A kit."
        assert result.relevance == "Agents."
        tier, prompt, _ = client.invoke.call_args[0]
        assert tier is ModelTier.STRONG
        assert "German" in prompt

    def test_missing_field_is_incomplete(self) -> None:
        client = _client('{"summary": "only summary"}')

        result = PostEnricher(client, PROFILE, MagicMock()).enrich(make_post())

        assert result.status is ScoreStatus.OK
        assert not result.complete

    def test_call_failure(self) -> None:
        client = _client(LlmRetryExhaustedError(3, LlmApiError("x", status_code=500)))

        result = PostEnricher(client, PROFILE, MagicMock()).enrich(make_post())

        assert result.status is ScoreStatus.CALL_FAILED


class TestPostEnricherBatch:
    """Tests for PostEnricher.enrich_batch."""

    def test_writes_only_complete_results(self) -> None:
        """Incomplete and failed results are not written."""
        client = _client(
            '{"summary": "S1", "relevance": "R1"}',
            '{"summary": "", "relevance": "R2"}',
            "not json",
            LlmApiError("bad request", status_code=400),
        )
        store = MagicMock()
        sleeps: list[float] = []
        posts = [make_post(str(i)) for i in range(4)]
        enricher = PostEnricher(client, PROFILE, store, delay_seconds=0.5, sleep=sleeps.append)

        result = enricher.enrich_batch(posts)

        assert result.attempted == 4
        assert result.enriched == 1
        assert result.failed == 3
        store.update_enrichment.assert_called_once_with(("0", "github"), "S1", "R1")
        assert sleeps == [0.5, 0.5, 0.5]

    @patch("hypeseeker.llm.anthropic_client.httpx.post")
    def test_malformed_provider_reply_does_not_abort_batch(
        self, mock_post: MagicMock, tmp_path: Path
    ) -> None:
        """A 200 reply that is not JSON fails each post without raising."""
        mock_post.return_value = httpx.Response(200, text="<html>gateway</html>")
        failure_log = FailureLog(tmp_path / "failures.jsonl")
        client = ResilientModelClient(
            AnthropicBackend(api_key="k"), failure_log=failure_log, sleep=lambda _: None
        )
        store = MagicMock()
        enricher = PostEnricher(client, PROFILE, store, delay_seconds=0)

        result = enricher.enrich_batch([make_post("a"), make_post("b")])

        assert result.enriched == 0
        assert result.failed == 2
        assert all(r.status is ScoreStatus.CALL_FAILED for r in result.results)
        store.update_enrichment.assert_not_called()
        assert len(failure_log.read_entries()) == 2
