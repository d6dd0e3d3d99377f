"""Services package - chain registry, interceptor and command dispatcher."""

from chain_command_cli.services.application import (
    RETURN_CODE_DISABLED,
    CommandContext,
    CommandInput,
    ConsoleApplication,
    ConsoleCommandEvent,
    ConsoleEvents,
    ConsoleTerminateEvent,
    console_for,
)
from chain_command_cli.services.interceptor import ChainCommandInterceptor
from chain_command_cli.services.registration import (
    chain_member,
    collect_tagged_pairs,
    load_chain_file,
    register_chains,
)
from chain_command_cli.services.registry import ChainCommandRegistry

__all__ = [
    "ChainCommandRegistry",
    "ChainCommandInterceptor",
    "ConsoleApplication",
    "ConsoleEvents",
    "ConsoleCommandEvent",
    "ConsoleTerminateEvent",
    "CommandContext",
    "CommandInput",
    "RETURN_CODE_DISABLED",
    "console_for",
    "chain_member",
    "collect_tagged_pairs",
    "load_chain_file",
    "register_chains",
]
