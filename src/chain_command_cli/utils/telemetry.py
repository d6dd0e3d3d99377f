"""Run journal for dispatched commands, one JSONL record per run."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from chain_command_cli.exceptions import ChainTelemetryError

if TYPE_CHECKING:
    from chain_command_cli.utils.settings import ChainSettings

JOURNAL_FILE_NAME = "chain_cli_telemetry.jsonl"


class TelemetryClient:
    """
    Appends a record for every command run to ``<directory>/chain_cli_telemetry.jsonl``.

    When the journal grows past ``max_bytes`` it is moved to ``.jsonl.1``
    (replacing any previous one) and a fresh journal is started.
    """

    def __init__(self, log_directory: str | Path, max_bytes: int):
        if max_bytes <= 0:
            raise ValueError("max_bytes must be positive")
        self.log_directory = Path(log_directory)
        self.max_bytes = max_bytes

    @classmethod
    def from_settings(cls, settings: "ChainSettings") -> Optional["TelemetryClient"]:
        """Return a client, or None when telemetry is not enabled."""
        if not settings.telemetry_enabled:
            return None
        return cls(settings.telemetry_dir, settings.telemetry_max_bytes)

    @property
    def log_file(self) -> Path:
        return self.log_directory / JOURNAL_FILE_NAME

    @property
    def rotated_file(self) -> Path:
        return self.log_file.with_suffix(".jsonl.1")

    def _needs_rotation(self) -> bool:
        return self.log_file.exists() and self.log_file.stat().st_size > self.max_bytes

    def record_run(
        self,
        command: str,
        exit_code: int,
        status: str,
        duration_ms: int,
    ) -> None:
        """
        Append one run record.

        Raises:
            ChainTelemetryError: If the journal cannot be written.
        """
        record = {
            "timestamp": datetime.now(tz=timezone.utc).isoformat(),
            "command": command,
            "exit_code": exit_code,
            "status": status,
            "duration_ms": duration_ms,
        }
        try:
            self.log_directory.mkdir(parents=True, exist_ok=True)
            if self._needs_rotation():
                self.log_file.replace(self.rotated_file)
            with open(self.log_file, "a", encoding="utf-8") as fh:
                fh.write(json.dumps(record) + "\n")
        except OSError as exc:
            raise ChainTelemetryError(f"Failed to write telemetry: {exc}") from exc
