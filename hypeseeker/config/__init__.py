"""Configuration loading and schemas."""

from hypeseeker.config.loader import ConfigLoader, ConfigValidationError
from hypeseeker.config.schemas import AppConfig


__all__ = ["AppConfig", "ConfigLoader", "ConfigValidationError"]
