"""
Chain Command CLI - command-line entry point.

Builds the ConsoleApplication, registers the demo commands and their
chains, and subscribes the chain interceptor before dispatching ``argv``.
"""

import logging
import sys
from typing import Optional, Sequence

from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape

from chain_command_cli.commands import register_all
from chain_command_cli.exceptions import ChainConfigurationError
from chain_command_cli.services.application import FAILURE, ConsoleApplication
from chain_command_cli.services.interceptor import ChainCommandInterceptor
from chain_command_cli.services.registration import register_chains
from chain_command_cli.services.registry import ChainCommandRegistry
from chain_command_cli.utils.settings import ChainSettings, get_settings
from chain_command_cli.utils.telemetry import TelemetryClient

# Ensure .env vars are loaded before settings are read
load_dotenv()

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

console = Console()


def configure_logging(level: int) -> None:
    """Send log records to stderr at ``level``."""
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)
    logging.getLogger().setLevel(level)


def build_application(
    settings: Optional[ChainSettings] = None,
    output: Optional[Console] = None,
) -> ConsoleApplication:
    """
    Assemble the application.

    Chains are fully registered before this returns, so the registry is
    read-only once commands start running.

    Raises:
        ChainConfigurationError: If a chain declaration or chain file is invalid.
        FileNotFoundError: If the configured chain file does not exist.
    """
    settings = settings or get_settings()

    registry = ChainCommandRegistry()
    application = ConsoleApplication(
        name="chain-cli",
        help="Chain Command CLI - run member commands after their main command",
        console=output or console,
        telemetry=TelemetryClient.from_settings(settings),
        registry=registry,
    )
    register_all(application)

    pair_count = register_chains(registry, application, settings.chain_config)
    logger.debug("Registered %d chain pair(s)", pair_count)

    application.add_subscriber(ChainCommandInterceptor(registry))
    return application


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the CLI and return its exit code."""
    try:
        settings = get_settings()
    except ValueError as e:
        console.print(f"[red]❌ Invalid settings: {escape(str(e))}[/red]")
        return FAILURE

    configure_logging(settings.log_level_value)

    try:
        application = build_application(settings)
    except (ChainConfigurationError, FileNotFoundError) as e:
        console.print(f"[red]❌ Chain configuration failed: {escape(str(e))}[/red]")
        return FAILURE

    return application.run(argv)


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
