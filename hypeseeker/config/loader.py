"""Configuration loader with validation."""

import hashlib
from pathlib import Path

import structlog
import yaml
from pydantic import ValidationError

from hypeseeker.config.schemas.app import AppConfig


logger = structlog.get_logger()


class ConfigValidationError(Exception):
    """Raised when configuration cannot be loaded or validated."""

    def __init__(self, errors: list[dict[str, str]], file_path: str) -> None:
        """Initialize the error.

        Args:
            errors: Validation error details (``loc``, ``msg``, ``type``).
            file_path: Path to the file that failed validation.
        """
        self.errors = errors
        self.file_path = file_path
        super().__init__(f"Validation failed for {file_path}: {len(errors)} errors")


class ConfigLoader:
    """Loads ``config.yaml`` and validates it into an immutable AppConfig."""

    def __init__(self, run_id: str | None = None) -> None:
        self._log = logger.bind(component="config", run_id=run_id)
        self._checksum: str | None = None

    @property
    def checksum(self) -> str | None:
        """SHA-256 of the last loaded file."""
        return self._checksum

    def load(self, config_path: Path) -> AppConfig:
        """Load and validate a configuration file.

        Args:
            config_path: Path to the YAML file.

        Returns:
            Validated configuration.

        Raises:
            ConfigValidationError: If the file is missing, unparsable or invalid.
        """
        try:
            content = config_path.read_bytes()
        except OSError as exc:
            raise ConfigValidationError(
                [{"loc": "", "msg": str(exc), "type": "file_error"}],
                str(config_path),
            ) from exc

        self._checksum = hashlib.sha256(content).hexdigest()

        try:
            parsed = yaml.safe_load(content.decode("utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(
                [{"loc": "", "msg": str(exc), "type": "yaml_error"}],
                str(config_path),
            ) from exc

        if not isinstance(parsed, dict):
            raise ConfigValidationError(
                [{"loc": "", "msg": "Top level must be a mapping", "type": "type_error"}],
                str(config_path),
            )

        try:
            config = AppConfig.model_validate(parsed)
        except ValidationError as exc:
            errors = [
                {
                    "loc": ".".join(str(part) for part in err["loc"]),
                    "msg": err["msg"],
                    "type": err["type"],
                }
                for err in exc.errors()
            ]
            self._log.error(
                "config_validation_failed",
                path=str(config_path),
                error_count=len(errors),
            )
            raise ConfigValidationError(errors, str(config_path)) from exc

        self._log.info(
            "config_loaded",
            path=str(config_path),
            checksum=self._checksum[:12],
            llm_backend=config.llm.backend.value,
        )
        return config
