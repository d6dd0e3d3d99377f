"""Bar commands - ``bar:hi`` only runs as part of the ``foo:hello`` chain."""

import logging

import typer

from chain_command_cli.services.application import ConsoleApplication, console_for
from chain_command_cli.services.registration import chain_member

logger = logging.getLogger(__name__)


def register(application: ConsoleApplication) -> None:
    """Register the bar commands on ``application``."""

    @application.command("bar:hi", help="Says hi from Bar")
    @chain_member("foo:hello")
    def hi(ctx: typer.Context):
        message = "Hi from Bar!"
        console_for(ctx).print(message)
        logger.info(message)
