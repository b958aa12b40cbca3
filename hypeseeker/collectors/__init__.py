"""Source fetchers and the fetch orchestrator."""

from hypeseeker.collectors.base import SourceFetcher
from hypeseeker.collectors.errors import CollectorError, CollectorErrorClass, ErrorRecord
from hypeseeker.collectors.runner import FetchOrchestrator, FetchPhaseResult, SourceFetchResult


__all__ = [
    "CollectorError",
    "CollectorErrorClass",
    "ErrorRecord",
    "FetchOrchestrator",
    "FetchPhaseResult",
    "SourceFetchResult",
    "SourceFetcher",
]
