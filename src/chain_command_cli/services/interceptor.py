"""
Chain Command Interceptor.

Hooks into the console.command / console.terminate events of a
ConsoleApplication:

- Blocks direct execution of member commands (before the body runs)
- Runs the members of a main command, in order, after it finishes

A failing member is logged and skipped; the next member still runs and the
main command's exit code is left untouched.
"""

import logging
from typing import Dict, Optional, Tuple, TYPE_CHECKING

from rich.console import Console
from rich.markup import escape

from chain_command_cli.services.application import (
    SUCCESS,
    CommandInput,
    ConsoleCommandEvent,
    ConsoleEvents,
    ConsoleTerminateEvent,
)
from chain_command_cli.services.registry import ChainCommandRegistry

if TYPE_CHECKING:
    from chain_command_cli.services.application import ConsoleApplication

logger = logging.getLogger(__name__)


class ChainCommandInterceptor:
    """Enforces chain membership and executes chain members."""

    def __init__(self, registry: ChainCommandRegistry):
        self.registry = registry

    @classmethod
    def get_subscribed_events(cls) -> Dict[ConsoleEvents, Tuple[str, int]]:
        # Run before other command listeners and after other terminate listeners
        return {
            ConsoleEvents.COMMAND: ("on_console_command", 100),
            ConsoleEvents.TERMINATE: ("on_console_terminate", -100),
        }

    def on_console_command(self, event: ConsoleCommandEvent) -> None:
        """
        Prevent execution of member commands and announce main commands.

        A member command gets an error on the event's console and the event
        is disabled, so its body never runs.
        """
        command_name = event.command_name
        if not command_name:
            return

        if self.registry.is_member_command(command_name):
            main_command = self.registry.get_main_command_name(command_name)
            error_msg = (
                f"Error: {command_name} command is a member of {main_command} "
                "command chain and cannot be executed on its own."
            )
            event.console.print(f"[red]{escape(error_msg)}[/red]")
            logger.error(
                error_msg,
                extra={"member_command": command_name, "main_command": main_command},
            )
            event.disable_command()
            return

        if self.registry.is_main_command(command_name):
            members = self.registry.get_member_command_names(command_name)
            logger.info(
                "%s is a master command of a command chain that has registered "
                "member commands",
                command_name,
                extra={"main_command": command_name},
            )
            for member in members:
                logger.info(
                    "%s registered as a member of %s command chain",
                    member,
                    command_name,
                    extra={"member_command": member, "main_command": command_name},
                )
            logger.info(
                "Executing %s command itself first:",
                command_name,
                extra={"main_command": command_name},
            )

    def on_console_terminate(self, event: ConsoleTerminateEvent) -> None:
        """Execute the members of a main command once it has finished."""
        command_name = event.command_name
        if not command_name or not self.registry.is_main_command(command_name):
            return

        members = self.registry.get_member_command_names(command_name)
        if not members:
            return

        logger.info(
            "Executing %s chain members:",
            command_name,
            extra={"main_command": command_name},
        )

        application = event.application
        if application is None:
            logger.error(
                "Cannot execute chain members: no console application available",
                extra={"main_command": command_name},
            )
            return

        for member in members:
            self._run_member(application, command_name, member, event.console)

        logger.info(
            "Execution of %s chain completed.",
            command_name,
            extra={"main_command": command_name},
        )

    def _run_member(
        self,
        application: "ConsoleApplication",
        main_command: str,
        member: str,
        console: Console,
    ) -> None:
        fields = {"member_command": member, "main_command": main_command}
        try:
            command = application.find(member)
            exit_code = application.invoke_command(
                command, CommandInput.empty(), console, name=member
            )
        except Exception as e:
            # click.Abort carries no message
            detail = str(e) or type(e).__name__
            logger.error(
                "Error executing chain member %s: %s", member, detail, extra=fields
            )
            return

        if exit_code != SUCCESS:
            logger.error(
                "Chain member %s exited with status %s",
                member,
                exit_code,
                extra={**fields, "exit_code": exit_code},
            )

    # ── Direct hooks for hosts without an event system ─────────────

    def before_execute(self, command_name: Optional[str], console: Console) -> bool:
        """
        Run the before-hook directly.

        Returns:
            False if the command must not run.
        """
        event = ConsoleCommandEvent(command_name=command_name, console=console)
        self.on_console_command(event)
        return event.command_should_run()

    def after_execute(
        self,
        command_name: Optional[str],
        console: Console,
        exit_code: int,
        application: Optional["ConsoleApplication"] = None,
    ) -> None:
        """Run the after-hook directly."""
        self.on_console_terminate(
            ConsoleTerminateEvent(
                command_name=command_name,
                console=console,
                exit_code=exit_code,
                application=application,
            )
        )
