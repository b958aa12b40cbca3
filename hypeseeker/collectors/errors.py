"""Error types for the fetch layer."""

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class CollectorErrorClass(str, Enum):
    """Classification of fetch errors.

    - FETCH: HTTP/network errors during fetch
    - PARSE: Response body is not the expected format
    - SCHEMA: Data doesn't match expected schema
    """

    FETCH = "FETCH"
    PARSE = "PARSE"
    SCHEMA = "SCHEMA"


class CollectorError(Exception):
    """Raised by a source fetcher when the source cannot be read.

    Provides structured error information for logging and the run summary.
    """

    def __init__(
        self,
        error_class: CollectorErrorClass,
        message: str,
        source: str | None = None,
        details: dict[str, str | int | bool | None] | None = None,
    ) -> None:
        """Initialize the collector error.

        Args:
            error_class: Classification of the error.
            message: Human-readable error message.
            source: Name of the source that failed.
            details: Additional structured error details.
        """
        super().__init__(message)
        self.error_class = error_class
        self.message = message
        self.source = source
        self.details = details or {}


class ErrorRecord(BaseModel):
    """Serializable error record for the run summary."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    error_class: CollectorErrorClass = Field(description="Error classification")
    message: Annotated[str, Field(min_length=1, description="Error message")]
    source: str | None = Field(default=None, description="Source name")
    details: dict[str, str | int | bool | None] = Field(
        default_factory=dict, description="Additional error details"
    )

    @classmethod
    def from_exception(cls, error: CollectorError) -> "ErrorRecord":
        """Create an ErrorRecord from a CollectorError exception."""
        return cls(
            error_class=error.error_class,
            message=error.message,
            source=error.source,
            details=error.details,
        )
