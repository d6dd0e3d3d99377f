"""
Unit tests for ChainCommandInterceptor (services/interceptor.py).

Tests verify:
- Direct execution of a member command is disabled
- Main commands are announced and allowed to run
- Members run in order after the main command finishes
- A failing member never stops the chain or changes the exit code
- Missing application handle skips the chain
- Members that exit or prompt, run through a real application
"""

import io
import logging
import sys
from unittest.mock import MagicMock, call

import pytest
import typer

from chain_command_cli.services.application import (
    SUCCESS,
    CommandInput,
    ConsoleApplication,
    ConsoleCommandEvent,
    ConsoleEvents,
    ConsoleTerminateEvent,
    console_for,
)
from chain_command_cli.services.interceptor import ChainCommandInterceptor
from chain_command_cli.services.registry import ChainCommandRegistry

INTERCEPTOR_LOGGER = "chain_command_cli.services.interceptor"


def interceptor_records(caplog, level=None):
    return [
        r
        for r in caplog.records
        if r.name == INTERCEPTOR_LOGGER and (level is None or r.levelno == level)
    ]


@pytest.fixture
def registry():
    return ChainCommandRegistry([("foo", "bar")])


@pytest.fixture
def interceptor(registry):
    return ChainCommandInterceptor(registry)


@pytest.fixture
def application():
    """Mock application resolving every name to a distinct command."""
    app = MagicMock()
    app.find.side_effect = lambda name: f"<command {name}>"
    app.invoke_command.return_value = 0
    return app


class TestSubscribedEvents:
    def test_subscribes_to_both_lifecycle_events(self):
        events = ChainCommandInterceptor.get_subscribed_events()

        assert events[ConsoleEvents.COMMAND] == ("on_console_command", 100)
        assert events[ConsoleEvents.TERMINATE] == ("on_console_terminate", -100)


class TestBeforeHook:
    """Tests for on_console_command()."""

    def test_empty_command_name_is_allowed(self, interceptor, console, caplog):
        caplog.set_level(logging.INFO)
        event = ConsoleCommandEvent(command_name=None, console=console)

        interceptor.on_console_command(event)

        assert event.command_should_run() is True
        assert interceptor_records(caplog) == []

    def test_member_command_is_disabled(self, interceptor, console, output, caplog):
        """Running 'bar' directly is blocked with a message naming both commands."""
        caplog.set_level(logging.INFO)
        event = ConsoleCommandEvent(command_name="bar", console=console)

        interceptor.on_console_command(event)

        assert event.command_should_run() is False
        errors = interceptor_records(caplog, logging.ERROR)
        assert len(errors) == 1
        assert errors[0].member_command == "bar"
        assert errors[0].main_command == "foo"
        assert "bar" in output()
        assert "foo" in output()
        assert (
            "Error: bar command is a member of foo command chain and cannot be "
            "executed on its own." in output()
        )

    def test_main_command_is_announced_and_allowed(self, interceptor, console, output, caplog):
        caplog.set_level(logging.INFO)
        event = ConsoleCommandEvent(command_name="foo", console=console)

        interceptor.on_console_command(event)

        assert event.command_should_run() is True
        infos = interceptor_records(caplog, logging.INFO)
        assert [r.getMessage() for r in infos] == [
            "foo is a master command of a command chain that has registered member commands",
            "bar registered as a member of foo command chain",
            "Executing foo command itself first:",
        ]
        assert output() == ""

    def test_main_command_lists_every_member(self, console, caplog):
        caplog.set_level(logging.INFO)
        interceptor = ChainCommandInterceptor(
            ChainCommandRegistry([("foo", "bar"), ("foo", "baz")])
        )

        interceptor.on_console_command(ConsoleCommandEvent("foo", console))

        assert len(interceptor_records(caplog, logging.INFO)) == 4

    def test_unrelated_command_is_untouched(self, interceptor, console, output, caplog):
        caplog.set_level(logging.INFO)
        event = ConsoleCommandEvent(command_name="other", console=console)

        interceptor.on_console_command(event)

        assert event.command_should_run() is True
        assert interceptor_records(caplog) == []
        assert output() == ""

    def test_before_execute_returns_whether_command_may_run(self, interceptor, console):
        assert interceptor.before_execute("bar", console) is False
        assert interceptor.before_execute("foo", console) is True
        assert interceptor.before_execute("other", console) is True
        assert interceptor.before_execute("", console) is True


class TestAfterHook:
    """Tests for on_console_terminate()."""

    def test_members_run_after_main(self, interceptor, application, console, caplog):
        """'bar' runs once with empty non-interactive input on the same console."""
        caplog.set_level(logging.INFO)
        event = ConsoleTerminateEvent("foo", console, exit_code=0, application=application)

        interceptor.on_console_terminate(event)

        application.find.assert_called_once_with("bar")
        application.invoke_command.assert_called_once_with(
            "<command bar>", CommandInput.empty(), console, name="bar"
        )
        passed_input = application.invoke_command.call_args[0][1]
        assert passed_input.args == ()
        assert passed_input.interactive is False

        infos = interceptor_records(caplog, logging.INFO)
        assert [r.getMessage() for r in infos] == [
            "Executing foo chain members:",
            "Execution of foo chain completed.",
        ]
        assert interceptor_records(caplog, logging.ERROR) == []

    def test_members_run_in_registration_order(self, application, console):
        interceptor = ChainCommandInterceptor(
            ChainCommandRegistry([("foo", "m1"), ("foo", "m2"), ("foo", "m3")])
        )

        interceptor.on_console_terminate(
            ConsoleTerminateEvent("foo", console, 0, application)
        )

        assert application.find.call_args_list == [call("m1"), call("m2"), call("m3")]
        invoked = [c.kwargs["name"] for c in application.invoke_command.call_args_list]
        assert invoked == ["m1", "m2", "m3"]

    def test_runs_even_when_main_failed(self, interceptor, application, console):
        event = ConsoleTerminateEvent("foo", console, exit_code=1, application=application)

        interceptor.on_console_terminate(event)

        application.invoke_command.assert_called_once()
        assert event.exit_code == 1

    def test_failed_lookup_does_not_stop_chain(self, console, caplog):
        """A member that cannot be resolved is logged; the next one still runs."""
        caplog.set_level(logging.INFO)
        interceptor = ChainCommandInterceptor(
            ChainCommandRegistry([("foo", "bar"), ("foo", "baz")])
        )
        application = MagicMock()

        def find(name):
            if name == "bar":
                raise RuntimeError("lookup exploded")
            return f"<command {name}>"

        application.find.side_effect = find
        application.invoke_command.return_value = 0
        event = ConsoleTerminateEvent("foo", console, exit_code=0, application=application)

        interceptor.on_console_terminate(event)

        application.invoke_command.assert_called_once_with(
            "<command baz>", CommandInput.empty(), console, name="baz"
        )
        errors = interceptor_records(caplog, logging.ERROR)
        assert len(errors) == 1
        assert errors[0].getMessage() == "Error executing chain member bar: lookup exploded"
        assert errors[0].member_command == "bar"
        assert event.exit_code == 0
        assert interceptor_records(caplog, logging.INFO)[-1].getMessage() == (
            "Execution of foo chain completed."
        )

    def test_failed_invocation_does_not_stop_chain(self, console, caplog):
        caplog.set_level(logging.INFO)
        interceptor = ChainCommandInterceptor(
            ChainCommandRegistry([("foo", "bar"), ("foo", "baz")])
        )
        application = MagicMock()
        application.find.side_effect = lambda name: name
        application.invoke_command.side_effect = [ValueError("bad member"), 0]
        event = ConsoleTerminateEvent("foo", console, exit_code=0, application=application)

        interceptor.on_console_terminate(event)

        assert application.invoke_command.call_count == 2
        errors = interceptor_records(caplog, logging.ERROR)
        assert len(errors) == 1
        assert "bar" in errors[0].getMessage()
        assert "bad member" in errors[0].getMessage()
        assert event.exit_code == 0

    def test_non_zero_member_status_is_logged(self, interceptor, application, console, caplog):
        caplog.set_level(logging.INFO)
        application.invoke_command.return_value = 3
        event = ConsoleTerminateEvent("foo", console, exit_code=0, application=application)

        interceptor.on_console_terminate(event)

        errors = interceptor_records(caplog, logging.ERROR)
        assert len(errors) == 1
        assert errors[0].getMessage() == "Chain member bar exited with status 3"
        assert event.exit_code == 0

    def test_no_application_skips_members(self, interceptor, console, caplog):
        caplog.set_level(logging.INFO)
        event = ConsoleTerminateEvent("foo", console, exit_code=0, application=None)

        interceptor.on_console_terminate(event)

        errors = interceptor_records(caplog, logging.ERROR)
        assert len(errors) == 1
        assert errors[0].getMessage() == (
            "Cannot execute chain members: no console application available"
        )
        assert event.exit_code == 0

    def test_non_main_command_is_ignored(self, interceptor, application, console, caplog):
        caplog.set_level(logging.INFO)

        for name in ("bar", "other", "", None):
            interceptor.on_console_terminate(
                ConsoleTerminateEvent(name, console, 0, application)
            )

        application.find.assert_not_called()
        application.invoke_command.assert_not_called()
        assert interceptor_records(caplog) == []

    def test_after_execute_runs_chain(self, interceptor, application, console):
        interceptor.after_execute("foo", console, 0, application)

        application.invoke_command.assert_called_once()

    def test_after_execute_without_application(self, interceptor, console, caplog):
        caplog.set_level(logging.INFO)

        interceptor.after_execute("foo", console, 0)

        assert len(interceptor_records(caplog, logging.ERROR)) == 1


class TestMembersInApplication:
    """Chain foo -> [bar, baz] run by a real ConsoleApplication."""

    @pytest.fixture
    def chain_app(self, console):
        app = ConsoleApplication(console=console)
        app.add_subscriber(
            ChainCommandInterceptor(ChainCommandRegistry([("foo", "bar"), ("foo", "baz")]))
        )

        @app.command("foo")
        def foo(ctx: typer.Context):
            console_for(ctx).print("FOO")

        @app.command("baz")
        def baz(ctx: typer.Context):
            console_for(ctx).print("BAZ")

        return app

    def test_member_calling_sys_exit_does_not_stop_chain(self, chain_app, output, caplog):
        caplog.set_level(logging.INFO)

        @chain_app.command("bar")
        def bar(ctx: typer.Context):
            console_for(ctx).print("BAR")
            sys.exit(3)

        assert chain_app.run(["foo"]) == SUCCESS

        assert output().splitlines() == ["FOO", "BAR", "BAZ"]
        errors = interceptor_records(caplog, logging.ERROR)
        assert [r.getMessage() for r in errors] == ["Chain member bar exited with status 3"]

    def test_prompting_member_does_not_read_user_input(
        self, chain_app, output, caplog, monkeypatch
    ):
        caplog.set_level(logging.INFO)
        monkeypatch.setattr(sys, "stdin", io.StringIO("typed-by-user\n"))

        @chain_app.command("bar")
        def bar(ctx: typer.Context, who: str = typer.Option(..., prompt=True)):
            console_for(ctx).print(f"BAR got {who}")

        assert chain_app.run(["foo"]) == SUCCESS

        assert "typed-by-user" not in output()
        assert "BAZ" in output()
        errors = interceptor_records(caplog, logging.ERROR)
        assert [r.getMessage() for r in errors] == [
            "Error executing chain member bar: Abort"
        ]

    def test_main_command_help_runs_no_members(self, chain_app, output, caplog):
        caplog.set_level(logging.INFO)

        @chain_app.command("bar")
        def bar(ctx: typer.Context):
            console_for(ctx).print("BAR")

        assert chain_app.run(["foo", "--help"]) == SUCCESS

        assert "Usage:" in output()
        assert "BAR" not in output()
        assert "BAZ" not in output()
        assert interceptor_records(caplog) == []
