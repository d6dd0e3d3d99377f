"""
Chain Command CLI - run member commands automatically after a main command.

Commands registered as members of a main command's chain run after it,
in order, and can never be run on their own.
"""

__version__ = "1.0.0"
__author__ = "Chain Command CLI Team"

from chain_command_cli.exceptions import (
    ChainCommandError,
    ChainConfigurationError,
    CommandNotFoundError,
)
from chain_command_cli.services.interceptor import ChainCommandInterceptor
from chain_command_cli.services.registry import ChainCommandRegistry
from chain_command_cli.cli import build_application, main

__all__ = [
    "build_application",
    "main",
    "ChainCommandRegistry",
    "ChainCommandInterceptor",
    "ChainCommandError",
    "ChainConfigurationError",
    "CommandNotFoundError",
    "__version__",
]
