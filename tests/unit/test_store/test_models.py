"""Unit tests for store models."""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from hypeseeker.store.models import Post, TimeWindow
from tests.helpers.posts import make_post
from tests.helpers.time import FIXED_NOW


class TestTimeWindow:
    """Tests for TimeWindow."""

    @pytest.mark.parametrize(
        ("window", "days"),
        [("past_day", 1), ("past_three_days", 3), ("past_week", 7)],
    )
    def test_delta(self, window: str, days: int) -> None:
        """Each window maps to its length."""
        assert TimeWindow(window).delta == timedelta(days=days)

    def test_unknown_window_rejected(self) -> None:
        """Unknown names are not windows."""
        with pytest.raises(ValueError):
            TimeWindow("past_month")


class TestPost:
    """Tests for the Post model."""

    def test_source_lowercased(self) -> None:
        """Sources are normalized."""
        assert make_post(source=" GitHub ").source == "github"

    def test_key(self) -> None:
        """Identity is (id, source)."""
        assert make_post("abc", source="reddit").key == ("abc", "reddit")

    def test_naive_timestamp_is_utc(self) -> None:
        """Naive datetimes are taken as UTC."""
        post = make_post(created_at=datetime(2025, 6, 1, 8, 0))
        assert post.created_at.tzinfo == UTC

    def test_aware_timestamp_converted(self) -> None:
        """Offsets are converted to UTC."""
        plus_two = timezone(timedelta(hours=2))
        post = make_post(created_at=datetime(2025, 6, 1, 10, 0, tzinfo=plus_two))
        assert post.created_at == datetime(2025, 6, 1, 8, 0, tzinfo=UTC)

    @pytest.mark.parametrize("score", [-0.1, 1.01])
    def test_score_range(self, score: float) -> None:
        """Scores must lie in [0, 1]."""
        with pytest.raises(ValidationError):
            make_post(relevance_score=score)

    def test_scored_at_requires_score(self) -> None:
        """A scoring timestamp without a score is inconsistent."""
        with pytest.raises(ValidationError, match="scored_at"):
            make_post(scored_at=FIXED_NOW)

    def test_frozen(self) -> None:
        """Posts are immutable."""
        post = make_post()
        with pytest.raises(ValidationError):
            post.stars = 5  # type: ignore[misc]

    def test_unknown_field_rejected(self) -> None:
        """Extra fields are forbidden."""
        with pytest.raises(ValidationError):
            Post(
                id="x",
                source="github",
                created_at=FIXED_NOW,
                rating=3,  # type: ignore[call-arg]
            )
