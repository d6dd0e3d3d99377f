"""Utils package - Settings and telemetry helpers."""

from chain_command_cli.utils.settings import ChainSettings, get_settings
from chain_command_cli.utils.telemetry import TelemetryClient

__all__ = [
    "ChainSettings",
    "get_settings",
    "TelemetryClient",
]
