"""Custom exception types for chained command orchestration."""

from __future__ import annotations

from typing import List, Optional


class ChainCommandError(RuntimeError):
    """Base exception for chain command failures."""


class CommandNotFoundError(ChainCommandError):
    """Raised when a command name cannot be resolved by the application."""

    def __init__(self, command_name: str, alternatives: Optional[List[str]] = None):
        self.command_name = command_name
        self.alternatives = list(alternatives or [])
        message = f'Command "{command_name}" is not defined.'
        if self.alternatives:
            message += f" Did you mean: {', '.join(self.alternatives)}?"
        super().__init__(message)


class ChainConfigurationError(ChainCommandError):
    """Raised when a chain declaration or chain file is invalid."""


class ChainTelemetryError(RuntimeError):
    """Raised when telemetry logging itself fails."""
