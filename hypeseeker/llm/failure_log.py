"""Append-only JSON-lines log of failed model calls."""

import json
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import structlog


logger = structlog.get_logger()


class FailureLog:
    """Durable record of every failed model attempt.

    Each line is one JSON object. Writes are serialized with a lock so
    concurrent scorer threads never interleave lines. A write error is
    logged and dropped; the model call it describes is unaffected.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._log = logger.bind(component="llm", subcomponent="failure_log")

    @property
    def path(self) -> Path:
        return self._path

    def record(self, **fields: Any) -> bool:
        """Append one failure entry.

        Args:
            **fields: JSON-serializable details (attempt, tier, status, ...).

        Returns:
            True if the entry was written.
        """
        entry = {"ts": datetime.now(UTC).isoformat(), **fields}
        line = json.dumps(entry, ensure_ascii=False, default=str)

        with self._lock:
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                with self._path.open("a", encoding="utf-8") as fh:
                    fh.write(line + "\n")
            except OSError as exc:
                self._log.warning(
                    "failure_log_write_failed",
                    path=str(self._path),
                    error=str(exc),
                )
                return False
        return True

    def read_entries(self) -> list[dict[str, Any]]:
        """Read back every entry, oldest first."""
        if not self._path.exists():
            return []
        with self._path.open(encoding="utf-8") as fh:
            return [json.loads(line) for line in fh if line.strip()]
