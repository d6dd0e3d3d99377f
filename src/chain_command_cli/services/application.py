"""
Console Application - Typer based command dispatcher with lifecycle events.

Commands are registered on a Typer app and dispatched by name. Every run
goes through two events so listeners can act around the command body:

- ``console.command``: before the body runs; a listener may disable the
  command, which skips the body and yields ``RETURN_CODE_DISABLED``.
- ``console.terminate``: after the body has finished (or was skipped),
  exactly once per run, carrying the exit code.

``invoke_command`` runs a command directly, without events.
"""

import difflib
import io
import logging
import sys
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    List,
    Optional,
    Sequence,
    Tuple,
    Union,
)

import click
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from chain_command_cli.exceptions import ChainTelemetryError, CommandNotFoundError

if TYPE_CHECKING:
    from chain_command_cli.services.registry import ChainCommandRegistry
    from chain_command_cli.utils.telemetry import TelemetryClient

logger = logging.getLogger(__name__)

SUCCESS = 0
FAILURE = 1
INVALID = 2
# Reserved for commands disabled by a console.command listener
RETURN_CODE_DISABLED = 113

BUILTIN_LIST_ARGS = ("list", "-h", "--help")
HELP_ARGS = ("-h", "--help")


class ConsoleEvents(str, Enum):
    """Lifecycle events dispatched around every command run."""

    COMMAND = "console.command"
    TERMINATE = "console.terminate"


@dataclass(frozen=True)
class CommandInput:
    """Arguments handed to a command, and whether it may prompt the user."""

    args: Tuple[str, ...] = ()
    interactive: bool = True

    @classmethod
    def empty(cls) -> "CommandInput":
        """No arguments, no prompting."""
        return cls((), interactive=False)


@dataclass
class CommandContext:
    """Placed on ``ctx.obj`` for every command run by the application."""

    console: Console
    application: Optional["ConsoleApplication"]
    command_name: str
    command_input: CommandInput = field(default_factory=CommandInput)


@dataclass
class ConsoleCommandEvent:
    """Dispatched before a command body runs."""

    command_name: Optional[str]
    console: Console
    application: Optional["ConsoleApplication"] = None
    command_input: CommandInput = field(default_factory=CommandInput)
    _command_should_run: bool = field(default=True, init=False, repr=False)

    def disable_command(self) -> None:
        self._command_should_run = False

    def enable_command(self) -> None:
        self._command_should_run = True

    def command_should_run(self) -> bool:
        return self._command_should_run


@dataclass
class ConsoleTerminateEvent:
    """Dispatched after a command run, whatever its outcome."""

    command_name: Optional[str]
    console: Console
    exit_code: int
    application: Optional["ConsoleApplication"] = None


Listener = Callable[[Any], None]


def console_for(ctx: typer.Context) -> Console:
    """Return the output console of a command run, or a default one."""
    if isinstance(ctx.obj, CommandContext):
        return ctx.obj.console
    return Console()


def _event_key(event_name: Union[ConsoleEvents, str]) -> str:
    if isinstance(event_name, ConsoleEvents):
        return event_name.value
    return event_name


def _wants_help(args: Sequence[str]) -> bool:
    """True if a help flag appears before any ``--`` separator."""
    for arg in args:
        if arg == "--":
            return False
        if arg in HELP_ARGS:
            return True
    return False


class ConsoleApplication:
    """
    Command dispatcher built on Typer.

    Example:
        >>> application = ConsoleApplication()
        >>> @application.command("foo:hello")
        ... def hello(ctx: typer.Context):
        ...     console_for(ctx).print("Hello from Foo!")
        >>> application.run(["foo:hello"])
        Hello from Foo!
        0
    """

    def __init__(
        self,
        name: str = "chain-cli",
        help: Optional[str] = None,
        console: Optional[Console] = None,
        telemetry: Optional["TelemetryClient"] = None,
        registry: Optional["ChainCommandRegistry"] = None,
    ):
        self.name = name
        self.console = console or Console()
        self.telemetry = telemetry
        # Only used to annotate the command list
        self.registry = registry
        self.typer_app = typer.Typer(name=name, help=help, add_completion=False)

        self._callbacks: Dict[str, Callable[..., Any]] = {}
        self._listeners: Dict[str, List[Tuple[int, int, Listener]]] = {}
        self._listener_sequence = 0
        self._group: Optional[click.Group] = None

    # ── Registration ───────────────────────────────────────────────

    def command(self, name: Optional[str] = None, **kwargs: Any):
        """Register a function as a command, like ``typer.Typer.command``."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            command_name = name or func.__name__.lower().replace("_", "-")
            if command_name in self._callbacks:
                raise ValueError(f"Command '{command_name}' already registered.")

            self.typer_app.command(command_name, **kwargs)(func)
            self._callbacks[command_name] = func
            self._group = None
            return func

        return decorator

    def callbacks(self) -> Dict[str, Callable[..., Any]]:
        """Registered command name -> callback, in registration order."""
        return dict(self._callbacks)

    def names(self) -> List[str]:
        return list(self._callbacks)

    def has(self, name: str) -> bool:
        return name in self._callbacks

    # ── Lookup ─────────────────────────────────────────────────────

    def _click_group(self) -> click.Group:
        if self._group is None:
            self._group = typer.main.get_group(self.typer_app)
        return self._group

    def find(self, name: str) -> click.Command:
        """
        Resolve a command by name.

        Raises:
            CommandNotFoundError: If no command is registered under ``name``.
        """
        command = self._click_group().commands.get(name) if self._callbacks else None
        if command is None:
            alternatives = difflib.get_close_matches(name, self.names(), n=3, cutoff=0.6)
            raise CommandNotFoundError(name, alternatives)
        return command

    # ── Events ─────────────────────────────────────────────────────

    def add_listener(
        self,
        event_name: Union[ConsoleEvents, str],
        listener: Listener,
        priority: int = 0,
    ) -> None:
        """Higher priority listeners are called first."""
        key = _event_key(event_name)
        self._listener_sequence += 1
        self._listeners.setdefault(key, []).append(
            (priority, self._listener_sequence, listener)
        )

    def add_subscriber(self, subscriber: Any) -> None:
        """
        Register every listener a subscriber declares.

        ``subscriber.get_subscribed_events()`` maps an event name to either a
        method name or a ``(method_name, priority)`` tuple.
        """
        for event_name, listener_spec in subscriber.get_subscribed_events().items():
            if isinstance(listener_spec, str):
                method_name, priority = listener_spec, 0
            else:
                method_name, priority = listener_spec
            self.add_listener(event_name, getattr(subscriber, method_name), priority)

    def get_listeners(self, event_name: Union[ConsoleEvents, str]) -> List[Listener]:
        entries = self._listeners.get(_event_key(event_name), [])
        return [
            listener
            for _, _, listener in sorted(entries, key=lambda entry: (-entry[0], entry[1]))
        ]

    def dispatch(self, event_name: Union[ConsoleEvents, str], event: Any) -> Any:
        for listener in self.get_listeners(event_name):
            listener(event)
        return event

    # ── Execution ──────────────────────────────────────────────────

    def invoke_command(
        self,
        command: click.Command,
        command_input: CommandInput,
        console: Console,
        name: Optional[str] = None,
    ) -> int:
        """
        Run a command body directly, without dispatching any event.

        Non-interactive input reads stdin from an empty stream, so a prompt
        aborts instead of waiting on the user. ``sys.exit()`` in the body is
        turned into its exit code. Other errors propagate to the caller.

        Returns:
            The command's exit code.
        """
        command_name = name or command.name or ""
        context = CommandContext(
            console=console,
            application=self,
            command_name=command_name,
            command_input=command_input,
        )

        saved_stdin = sys.stdin
        if not command_input.interactive:
            sys.stdin = io.StringIO("")
        try:
            result = command.main(
                args=list(command_input.args),
                prog_name=f"{self.name} {command_name}",
                standalone_mode=False,
                obj=context,
            )
        except SystemExit as e:
            return self._exit_code_from_system_exit(e.code)
        finally:
            sys.stdin = saved_stdin
        return self._exit_code_from(result)

    @staticmethod
    def _exit_code_from(result: Any) -> int:
        if result is None or result is True:
            return SUCCESS
        if result is False:
            return FAILURE
        if isinstance(result, int):
            return result
        return SUCCESS

    @staticmethod
    def _exit_code_from_system_exit(code: Any) -> int:
        # Same mapping as the interpreter: None is success, a message is failure
        if code is None:
            return SUCCESS
        if isinstance(code, int):
            return code
        return FAILURE

    def run_command(
        self,
        name: str,
        command_input: Optional[CommandInput] = None,
        console: Optional[Console] = None,
    ) -> int:
        """
        Run a command by name through the console.command/terminate events.

        Raises:
            CommandNotFoundError: If the command is unknown. No event is
                dispatched in that case.
        """
        command_input = command_input or CommandInput()
        console = console or self.console
        command = self.find(name)
        started = time.monotonic()

        command_event = ConsoleCommandEvent(
            command_name=name,
            console=console,
            application=self,
            command_input=command_input,
        )
        self.dispatch(ConsoleEvents.COMMAND, command_event)

        if command_event.command_should_run():
            exit_code = self._execute(name, command, command_input, console)
        else:
            logger.debug("Command %s was disabled", name, extra={"command": name})
            exit_code = RETURN_CODE_DISABLED

        terminate_event = ConsoleTerminateEvent(
            command_name=name,
            console=console,
            exit_code=exit_code,
            application=self,
        )
        self.dispatch(ConsoleEvents.TERMINATE, terminate_event)
        exit_code = terminate_event.exit_code

        self._emit_telemetry(name, exit_code, started)
        return exit_code

    def _execute(
        self,
        name: str,
        command: click.Command,
        command_input: CommandInput,
        console: Console,
    ) -> int:
        try:
            return self.invoke_command(command, command_input, console, name=name)
        except click.ClickException as e:
            console.print(f"[red]{escape(e.format_message())}[/red]")
            return e.exit_code
        except click.exceptions.Abort:
            console.print("[yellow]Aborted.[/yellow]")
            return FAILURE
        except Exception as e:
            logger.error(
                "Command %s failed: %s", name, e, extra={"command": name}
            )
            console.print(f"[red]Command {escape(name)} failed: {escape(str(e))}[/red]")
            return FAILURE

    def _emit_telemetry(self, name: str, exit_code: int, started: float) -> None:
        if self.telemetry is None:
            return

        if exit_code == RETURN_CODE_DISABLED:
            status = "disabled"
        elif exit_code == SUCCESS:
            status = "success"
        else:
            status = "failure"

        try:
            self.telemetry.record_run(
                command=name,
                exit_code=exit_code,
                status=status,
                duration_ms=int((time.monotonic() - started) * 1000),
            )
        except ChainTelemetryError as e:
            logger.warning("Telemetry write failed: %s", e)

    def run(
        self,
        argv: Optional[Sequence[str]] = None,
        console: Optional[Console] = None,
    ) -> int:
        """
        Parse ``argv`` (``sys.argv[1:]`` by default) and run the named command.

        ``list``, ``-h`` and ``--help`` (or no arguments) show the command list.
        ``<command> --help`` shows the command's help without running it, so
        no lifecycle event is dispatched.

        Returns:
            The process exit code.
        """
        args = list(sys.argv[1:] if argv is None else argv)
        console = console or self.console

        if not args or args[0] in BUILTIN_LIST_ARGS:
            self.render_command_list(console)
            return SUCCESS

        name, *rest = args
        try:
            if _wants_help(rest):
                self.render_command_help(name, console)
                return SUCCESS
            return self.run_command(name, CommandInput(tuple(rest)), console)
        except CommandNotFoundError as e:
            console.print(f"[red]{escape(str(e))}[/red]")
            return FAILURE

    # ── Presentation ───────────────────────────────────────────────

    def _chain_role(self, name: str) -> str:
        if self.registry is None:
            return ""
        if self.registry.is_member_command(name):
            return f"member of {self.registry.get_main_command_name(name)}"
        if self.registry.is_main_command(name):
            members = self.registry.get_member_command_names(name)
            return f"runs {', '.join(members)}"
        return ""

    def render_command_list(self, console: Optional[Console] = None) -> None:
        console = console or self.console

        if not self._callbacks:
            console.print("[yellow]No commands registered.[/yellow]")
            return

        table = Table(title=f"Available commands: {self.name}")
        table.add_column("Command", style="cyan")
        table.add_column("Description")
        table.add_column("Chain", style="green")

        for name in self.names():
            command = self.find(name)
            table.add_row(
                escape(name),
                escape(command.get_short_help_str(limit=60)),
                escape(self._chain_role(name)),
            )

        console.print(table)

    def render_command_help(self, name: str, console: Optional[Console] = None) -> None:
        """
        Print the usage and options of a command.

        Raises:
            CommandNotFoundError: If no command is registered under ``name``.
        """
        console = console or self.console
        command = self.find(name)

        with click.Context(command, info_name=f"{self.name} {name}") as ctx:
            formatter = ctx.make_formatter()
            # Plain Click layout; Typer's rich help prints to its own stdout console
            click.Command.format_help(command, ctx, formatter)
        console.print(escape(formatter.getvalue()), end="")
