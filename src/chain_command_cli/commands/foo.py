"""Foo commands - ``foo:hello`` is the main command of the demo chain."""

import logging

import typer

from chain_command_cli.services.application import ConsoleApplication, console_for

logger = logging.getLogger(__name__)


def register(application: ConsoleApplication) -> None:
    """Register the foo commands on ``application``."""

    @application.command("foo:hello", help="Says hello from Foo")
    def hello(ctx: typer.Context):
        message = "Hello from Foo!"
        console_for(ctx).print(message)
        logger.info(message)
