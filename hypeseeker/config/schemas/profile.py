"""Interest profile schema."""

from pydantic import Field, field_validator

from hypeseeker.config.schemas.base import StrictBaseModel


class InterestTiers(StrictBaseModel):
    """Interest lists grouped by how strongly they should score.

    Attributes:
        high: Topics that warrant 0.8-1.0.
        medium: Topics that warrant 0.5-0.7.
        low: Topics that warrant 0.2-0.4.
    """

    high: list[str] = Field(default_factory=list)
    medium: list[str] = Field(default_factory=list)
    low: list[str] = Field(default_factory=list)

    @field_validator("high", "medium", "low")
    @classmethod
    def strip_entries(cls, value: list[str]) -> list[str]:
        """Drop blank entries and surrounding whitespace."""
        return [entry.strip() for entry in value if entry.strip()]


class InterestProfile(StrictBaseModel):
    """Who the digest is for and what they care about."""

    profile: str = Field(min_length=1)
    interests: InterestTiers = Field(default_factory=InterestTiers)
    exclude: list[str] = Field(default_factory=list)
