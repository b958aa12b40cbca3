"""Unit tests for the run summary."""

import json
from datetime import timedelta

from hypeseeker.status import RunSummary
from tests.helpers.time import FIXED_NOW


def _summary(**fields: object) -> RunSummary:
    return RunSummary(
        run_id="run-1",
        started_at=FIXED_NOW,
        finished_at=FIXED_NOW + timedelta(seconds=2.5),
        **fields,  # type: ignore[arg-type]
    )


class TestRunSummary:
    """Tests for RunSummary."""

    def test_clean_run_not_degraded(self) -> None:
        summary = _summary(fetched=10, saved=10, scored=8)
        assert not summary.degraded
        assert summary.duration_ms == 2500.0

    def test_failed_source_degrades(self) -> None:
        assert _summary(failed_sources=["reddit"]).degraded

    def test_failed_channel_degrades(self) -> None:
        assert _summary(failed_channels=["slack"]).degraded

    def test_model_failures_degrade(self) -> None:
        assert _summary(score_failed=1).degraded
        assert _summary(enrich_failed=2).degraded

    def test_json_includes_computed_fields(self) -> None:
        data = json.loads(_summary(sent={"telegram": 3}).model_dump_json())

        assert data["degraded"] is False
        assert data["duration_ms"] == 2500.0
        assert data["sent"] == {"telegram": 3}
