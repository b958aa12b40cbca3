"""Run outcome summary."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field


class RunSummary(BaseModel):
    """Counts describing one pipeline run, emitted as JSON.

    A run is degraded when anything was skipped or failed but the run as
    a whole still completed.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    run_id: str
    started_at: datetime
    finished_at: datetime

    fetched: int = Field(default=0, ge=0)
    per_source: dict[str, int] = Field(default_factory=dict)
    saved: int = Field(default=0, ge=0)
    save_failed: int = Field(default=0, ge=0)
    failed_sources: list[str] = Field(default_factory=list)

    scored: int = Field(default=0, ge=0)
    score_failed: int = Field(default=0, ge=0)
    enriched: int = Field(default=0, ge=0)
    enrich_failed: int = Field(default=0, ge=0)

    dispatched: bool = False
    sent: dict[str, int] = Field(default_factory=dict)
    failed_channels: list[str] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def degraded(self) -> bool:
        """True when any source, item, model call or channel failed."""
        return bool(
            self.failed_sources
            or self.failed_channels
            or self.save_failed
            or self.score_failed
            or self.enrich_failed
        )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def duration_ms(self) -> float:
        return round((self.finished_at - self.started_at).total_seconds() * 1000, 2)
