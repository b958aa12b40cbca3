"""Run status reporting."""

from hypeseeker.status.models import RunSummary


__all__ = ["RunSummary"]
