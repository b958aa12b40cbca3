"""Unit tests for configuration schemas."""

import pytest
from pydantic import ValidationError

from hypeseeker.config.schemas import (
    AppConfig,
    InterestTiers,
    PipelineConfig,
    ScheduleConfig,
)


class TestInterestTiers:
    def test_blank_entries_dropped(self) -> None:
        tiers = InterestTiers(high=[" agents ", "", "  "], low=["vision"])
        assert tiers.high == ["agents"]
        assert tiers.low == ["vision"]


class TestAppConfig:
    """Tests for AppConfig."""

    def test_profile_required(self) -> None:
        with pytest.raises(ValidationError):
            AppConfig.model_validate({})

    def test_digest_threshold_scale(self) -> None:
        config = AppConfig.model_validate({"profile": "x", "min_score_for_digest": 85})
        assert config.digest_threshold == pytest.approx(0.85)

    def test_interest_profile_subset(self) -> None:
        config = AppConfig.model_validate(
            {"profile": "x", "interests": {"high": ["agents"]}, "exclude": ["jobs"]}
        )

        profile = config.interest_profile()

        assert profile.profile == "x"
        assert profile.interests.high == ["agents"]
        assert profile.exclude == ["jobs"]

    def test_config_is_frozen(self) -> None:
        config = AppConfig.model_validate({"profile": "x"})
        with pytest.raises(ValidationError):
            config.language = "ru"  # type: ignore[misc]


class TestPipelineConfig:
    def test_recency_within_scoring_window(self) -> None:
        with pytest.raises(ValidationError, match="digest_recency_hours"):
            PipelineConfig(scoring_window_days=1, digest_recency_hours=25)

    def test_recency_equal_to_window_allowed(self) -> None:
        assert PipelineConfig(scoring_window_days=1, digest_recency_hours=24)


class TestScheduleConfig:
    """Tests for the daemon schedule section."""

    def test_disabled_by_default(self) -> None:
        config = AppConfig.model_validate({"profile": "x"})
        assert not config.schedule.enabled
        assert config.schedule.times == []

    def test_valid_schedule(self) -> None:
        schedule = ScheduleConfig(
            enabled=True, times=[" 08:00", "20:30"], timezone="Europe/Berlin"
        )
        assert schedule.times == ["08:00", "20:30"]

    @pytest.mark.parametrize("entry", ["24:00", "8:60", "0800", "noon", "8:5"])
    def test_rejects_bad_times(self, entry: str) -> None:
        with pytest.raises(ValidationError, match="expected HH:MM"):
            ScheduleConfig(times=[entry])

    def test_rejects_unknown_timezone(self) -> None:
        with pytest.raises(ValidationError, match="Unknown timezone"):
            ScheduleConfig(times=["08:00"], timezone="Mars/Olympus")

    def test_enabled_requires_times(self) -> None:
        with pytest.raises(ValidationError, match="must not be empty"):
            ScheduleConfig(enabled=True)
