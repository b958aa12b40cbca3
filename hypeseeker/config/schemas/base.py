"""Base schema types for configuration."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class StrictBaseModel(BaseModel):
    """Base model with strict, immutable defaults."""

    model_config = ConfigDict(frozen=True, extra="forbid")


class TransformKind(str, Enum):
    """How a source's raw popularity is mapped onto the ranking scale.

    - identity: raw popularity
    - linear: popularity multiplied by a coefficient
    - power: popularity raised to a (sub-linear) exponent
    """

    IDENTITY = "identity"
    LINEAR = "linear"
    POWER = "power"


class LlmBackendKind(str, Enum):
    """Supported model providers."""

    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
