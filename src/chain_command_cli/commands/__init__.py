"""Commands package - demo commands wired into the application by cli.py."""

from chain_command_cli.commands import bar, foo

COMMAND_MODULES = [foo, bar]


def register_all(application) -> None:
    """Register every command module on ``application``."""
    for module in COMMAND_MODULES:
        module.register(application)


__all__ = ["COMMAND_MODULES", "register_all"]
